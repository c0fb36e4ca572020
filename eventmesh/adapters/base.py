"""Base adapter interface for cluster backends."""
from abc import ABC, abstractmethod
from typing import Any
from ..mesh.models import KindCoordinates, ObjectReference

RawResource = dict[str, Any]


class AdapterError(Exception):
    """A cluster call failed."""

    def __init__(self, message: str, status: int | None = None):
        self.status = status
        super().__init__(message)


class ResourceNotFound(AdapterError):
    """The requested resource or resource type does not exist."""

    def __init__(self, message: str):
        super().__init__(message, status=404)


class ClusterAdapter(ABC):
    """
    Abstract interface for reading eventing resources from a cluster.

    Every listing spans all namespaces visible to the adapter's credentials.
    Implementations raise ResourceNotFound for not-found conditions and
    AdapterError for everything else.
    """

    @abstractmethod
    def list_brokers(self) -> list[RawResource]:
        """List Broker resources."""
        pass

    @abstractmethod
    def list_event_types(self) -> list[RawResource]:
        """List EventType resources."""
        pass

    @abstractmethod
    def list_triggers(self) -> list[RawResource]:
        """List Trigger resources."""
        pass

    @abstractmethod
    def list_subscriptions(self) -> list[RawResource]:
        """List channel Subscription resources."""
        pass

    @abstractmethod
    def list_schema_definitions(self, tag: str) -> list[RawResource]:
        """
        List custom resource definitions carrying a label.

        Args:
            tag: Label selector, e.g. ``"duck.knative.dev/source=true"``
        """
        pass

    @abstractmethod
    def list_instances(self, coords: KindCoordinates) -> list[RawResource]:
        """List all instances of a discovered kind."""
        pass

    @abstractmethod
    def resolve_identity(self, ref: ObjectReference, label: str) -> str | None:
        """
        Fetch the referenced resource and return the value of ``label``.

        Returns:
            The label value, or None if the resource is missing or unlabeled

        Raises:
            AdapterError: For any failure other than not-found
        """
        pass

    @abstractmethod
    def health_check(self) -> bool:
        """
        Check if the backend is reachable.

        Returns:
            True if backend is healthy, False otherwise
        """
        pass

    def close(self):
        """Release connections held by the adapter."""
        pass
