"""Event mesh service with pluggable cluster adapters."""
from typing import Callable
import time
import structlog
from kubernetes import client
from ..adapters.base import ClusterAdapter
from ..adapters.kubernetes import KubernetesAdapter, load_configuration
from ..adapters.memory import InMemoryAdapter
from ..config import Settings, get_settings
from ..mesh.annotations import AnnotationSanitizer
from ..mesh.builder import EventMeshBuilder
from ..mesh.converters import EntityConverter
from ..mesh.models import EventMesh
from ..metrics import Metrics

log = structlog.get_logger()

AdapterFactory = Callable[[str | None], ClusterAdapter]


class MeshService:
    """
    Builds event meshes on behalf of callers.

    Each build gets its own adapter, created from the caller's token by the
    adapter factory selected through the CLUSTER_ADAPTER setting.
    """

    def __init__(
        self,
        adapter_factory: AdapterFactory | None = None,
        settings: Settings | None = None,
        metrics: Metrics | None = None,
    ):
        """
        Initialize the service.

        Args:
            adapter_factory: Maps a bearer token to an adapter (defaults to configured adapter)
            settings: Service settings
            metrics: Metrics sink for builds
        """
        self.settings = settings or get_settings()
        self.metrics = metrics
        if adapter_factory is None:
            adapter_factory = _create_default_factory(self.settings)
        self._adapter_factory = adapter_factory
        self._converter = EntityConverter(
            sanitizer=AnnotationSanitizer(self.settings.EXCLUDED_ANNOTATIONS),
            event_types_annotation=self.settings.EVENT_TYPES_ANNOTATION,
        )

    def adapter_for(self, token: str | None) -> ClusterAdapter:
        """Create the adapter used for one build."""
        return self._adapter_factory(token)

    def build(self, token: str | None) -> EventMesh:
        """
        Build the event mesh as the token's owner.

        Raises:
            EventMeshError: If the build fails
        """
        start_time = time.time()
        adapter = self.adapter_for(token)
        builder = EventMeshBuilder(
            adapter,
            converter=self._converter,
            identity_label=self.settings.IDENTITY_LABEL,
            subscribable_tag=self.settings.SUBSCRIBABLE_TAG,
            source_tag=self.settings.SOURCE_TAG,
            metrics=self.metrics,
        )

        try:
            mesh = builder.build()
        except Exception:
            self._record("error", start_time)
            raise
        finally:
            adapter.close()

        self._record("success", start_time)
        if self.metrics is not None:
            self.metrics.set_entities({
                "broker": len(mesh.brokers),
                "subscribable": len(mesh.subscribables),
                "eventtype": len(mesh.event_types),
                "source": len(mesh.sources),
            })
        return mesh

    def health_check(self) -> bool:
        """Check the cluster backend with the service's own credentials."""
        adapter = self.adapter_for(None)
        try:
            return adapter.health_check()
        finally:
            adapter.close()

    def _record(self, outcome: str, start_time: float):
        if self.metrics is not None:
            self.metrics.record_build(outcome, time.time() - start_time)


def _create_default_factory(settings: Settings) -> AdapterFactory:
    """
    Create the adapter factory based on configuration.

    Returns:
        Factory producing adapters based on the CLUSTER_ADAPTER setting
    """
    if settings.CLUSTER_ADAPTER == "memory":
        if settings.CLUSTER_SNAPSHOT:
            snapshot = InMemoryAdapter.from_snapshot(settings.CLUSTER_SNAPSHOT)
        else:
            log.warning("adapter.empty_snapshot", reason="CLUSTER_SNAPSHOT not configured")
            snapshot = InMemoryAdapter()
        log.info("adapter.selected", type="memory")
        return lambda token: snapshot

    log.info("adapter.selected", type="kubernetes", in_cluster=settings.KUBE_IN_CLUSTER)
    base: list[client.Configuration] = []

    def factory(token: str | None) -> ClusterAdapter:
        # loaded on first use so the app can start outside a cluster
        if not base:
            base.append(load_configuration(settings.KUBE_IN_CLUSTER, settings.KUBECONFIG))
        return KubernetesAdapter(base[0], token=token, event_types_version=settings.EVENT_TYPES_VERSION)

    return factory


# Global mesh service instance
mesh_service = MeshService()


def set_metrics(metrics: Metrics):
    """Attach the application's metrics to the global service."""
    mesh_service.metrics = metrics


def get_mesh_service() -> MeshService:
    """Dependency returning the global mesh service."""
    return mesh_service
