"""
Prometheus metrics for the event mesh service.
"""
from prometheus_client import Counter, Histogram, Gauge, Info, CollectorRegistry


class Metrics:
    """
    Centralized metrics for the event mesh service.
    """

    def __init__(self, service_name: str = "eventmesh", version: str = "0.1.0", registry=None):
        self.service_name = service_name
        self.version = version
        self.registry = registry or CollectorRegistry()

        # HTTP Metrics
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["service", "method", "path", "status"],
            registry=self.registry,
        )

        self.http_request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["service", "method", "path"],
            registry=self.registry,
        )

        self.http_requests_active = Gauge(
            "http_requests_active",
            "Number of active HTTP requests",
            ["service"],
            registry=self.registry,
        )
        self.http_requests_active.labels(service=service_name).set(0)

        # Application Info
        self.app_info = Info(
            "app",
            "Application information",
            registry=self.registry,
        )
        self.app_info.info({"service": service_name, "version": version})

        self.app_up = Gauge(
            "app_up",
            "Application up status (1=up, 0=down)",
            ["service", "version"],
            registry=self.registry,
        )
        self.app_up.labels(service=service_name, version=version).set(1)

        # Event mesh builds
        self.builds_total = Counter(
            "eventmesh_builds_total",
            "Total event mesh builds",
            ["outcome"],
            registry=self.registry,
        )

        self.build_duration = Histogram(
            "eventmesh_build_duration_seconds",
            "Event mesh build duration in seconds",
            registry=self.registry,
        )

        self.items_skipped_total = Counter(
            "eventmesh_items_skipped_total",
            "Items left out of a build because of a local error",
            ["reason"],
            registry=self.registry,
        )

        self.entities = Gauge(
            "eventmesh_entities",
            "Number of entities in the last successful build",
            ["kind"],
            registry=self.registry,
        )

    def record_build(self, outcome: str, duration: float):
        """Record a finished build ("success" or "error")."""
        self.builds_total.labels(outcome=outcome).inc()
        self.build_duration.observe(duration)

    def record_skip(self, reason: str):
        """Record an item skipped by the builder."""
        self.items_skipped_total.labels(reason=reason).inc()

    def set_entities(self, counts: dict[str, int]):
        """Set entity counts per kind."""
        for kind, count in counts.items():
            self.entities.labels(kind=kind).set(count)
