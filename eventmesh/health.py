"""
Health check endpoints for liveness and readiness probes.
"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict
import psutil
from .logging import get_logger

logger = get_logger()


class HealthChecker:
    """
    Health checker for the event mesh service.

    Provides:
    - Liveness checks (is the service running?)
    - Readiness checks (can the service reach the cluster?)
    """

    def __init__(
        self,
        cluster_probe: Callable[[], bool],
        service_name: str = "eventmesh",
        version: str = "0.1.0",
    ):
        self.cluster_probe = cluster_probe
        self.service_name = service_name
        self.version = version

    def liveness(self) -> Dict[str, Any]:
        """
        Liveness check - basic health check.

        Returns:
            dict: Health status with service info and timestamp
        """
        return {
            "status": "ok",
            "service": self.service_name,
            "version": self.version,
            "timestamp": _now(),
        }

    def readiness(self) -> Dict[str, Any]:
        """
        Readiness check.

        Checks:
        - Cluster API reachability with the service's own credentials
        - Memory availability

        Returns:
            dict: Readiness status with detailed check results
        """
        checks = {
            "cluster": self._check_cluster(),
            "memory": self._check_memory(),
        }
        overall_status = "ready"
        if any(check["status"] == "error" for check in checks.values()):
            overall_status = "not_ready"

        return {
            "status": overall_status,
            "service": self.service_name,
            "version": self.version,
            "timestamp": _now(),
            "checks": checks,
        }

    def _check_cluster(self) -> Dict[str, Any]:
        try:
            if self.cluster_probe():
                return {"status": "ok"}
            return {"status": "error", "error": "cluster unreachable"}
        except Exception as e:
            logger.warning("cluster_health_check_failed", error=str(e))
            return {
                "status": "error",
                "error": str(e),
            }

    def _check_memory(self, threshold_mb: float = 50.0) -> Dict[str, Any]:
        """
        Check available memory.

        Args:
            threshold_mb: Minimum available memory in MB (default: 50.0)

        Returns:
            dict: Memory health check result
        """
        try:
            memory = psutil.virtual_memory()
            available_mb = memory.available / (1024**2)

            if available_mb < threshold_mb:
                status = "error"
            elif available_mb < threshold_mb * 2:
                status = "warning"
            else:
                status = "ok"

            return {
                "status": status,
                "available_mb": round(available_mb, 2),
                "total_mb": round(memory.total / (1024**2), 2),
                "used_percent": memory.percent,
            }

        except Exception as e:
            logger.warning("memory_health_check_failed", error=str(e))
            return {
                "status": "error",
                "error": str(e),
            }


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
