"""In-memory cluster adapter."""
from pathlib import Path
from typing import Any, Iterable
import orjson
import structlog
from .base import AdapterError, ClusterAdapter, RawResource
from ..mesh.models import KindCoordinates, ObjectReference
from ..mesh.refs import api_version_to_group

log = structlog.get_logger()

_EVENTING = "eventing.knative.dev"
_MESSAGING = "messaging.knative.dev"
_APIEXTENSIONS = "apiextensions.k8s.io"


def _group_of(obj: RawResource) -> str:
    api_version = obj.get("apiVersion", "")
    if "/" not in api_version:
        return ""
    return api_version_to_group(api_version)


def _matches_selector(labels: dict[str, str], selector: str) -> bool:
    """Equality-based label selector (``a=b,c``)."""
    for term in filter(None, (t.strip() for t in selector.split(","))):
        if "=" in term:
            key, value = term.split("=", 1)
            if labels.get(key.strip()) != value.strip():
                return False
        elif term not in labels:
            return False
    return True


class InMemoryAdapter(ClusterAdapter):
    """
    Cluster adapter over a fixed set of raw resources.

    Resources are routed by apiVersion/kind: Brokers, EventTypes, Triggers,
    channel Subscriptions and CustomResourceDefinitions go to their own
    listings; anything else is an instance of some other kind, reachable
    through list_instances and resolve_identity.
    """

    def __init__(self, objects: Iterable[RawResource] = ()):
        self.brokers: list[RawResource] = []
        self.event_types: list[RawResource] = []
        self.triggers: list[RawResource] = []
        self.subscriptions: list[RawResource] = []
        self.definitions: list[RawResource] = []
        self.objects: list[RawResource] = []

        # listing name -> error raised instead of returning
        self.listing_errors: dict[str, AdapterError] = {}
        # str(ObjectReference) -> error raised by resolve_identity
        self.lookup_errors: dict[str, AdapterError] = {}

        self.add(*objects)

    @classmethod
    def from_snapshot(cls, path: str | Path) -> "InMemoryAdapter":
        """
        Load resources from a JSON file.

        The file holds either a list of resources or a Kubernetes ``List``
        object with ``items``.
        """
        data: Any = orjson.loads(Path(path).read_bytes())
        if isinstance(data, dict):
            data = data.get("items", [])
        adapter = cls(data)
        log.info("adapter.snapshot_loaded", path=str(path), objects=len(data))
        return adapter

    def add(self, *objects: RawResource):
        """Add raw resources to the fake cluster."""
        for obj in objects:
            group, kind = _group_of(obj), obj.get("kind")
            if group == _EVENTING and kind == "Broker":
                self.brokers.append(obj)
            elif group == _EVENTING and kind == "EventType":
                self.event_types.append(obj)
            elif group == _EVENTING and kind == "Trigger":
                self.triggers.append(obj)
            elif group == _MESSAGING and kind == "Subscription":
                self.subscriptions.append(obj)
            elif group == _APIEXTENSIONS and kind == "CustomResourceDefinition":
                self.definitions.append(obj)
            else:
                self.objects.append(obj)

    def fail_listing(self, listing: str, error: AdapterError):
        """
        Make a listing raise.

        Args:
            listing: "brokers", "eventtypes", "triggers", "subscriptions",
                "definitions" or the plural name of a discovered kind
            error: Error to raise
        """
        self.listing_errors[listing] = error

    def fail_lookup(self, ref: ObjectReference, error: AdapterError):
        """Make resolve_identity raise for one reference."""
        self.lookup_errors[str(ref)] = error

    def _listing(self, listing: str, items: list[RawResource]) -> list[RawResource]:
        if listing in self.listing_errors:
            raise self.listing_errors[listing]
        return list(items)

    def list_brokers(self) -> list[RawResource]:
        return self._listing("brokers", self.brokers)

    def list_event_types(self) -> list[RawResource]:
        return self._listing("eventtypes", self.event_types)

    def list_triggers(self) -> list[RawResource]:
        return self._listing("triggers", self.triggers)

    def list_subscriptions(self) -> list[RawResource]:
        return self._listing("subscriptions", self.subscriptions)

    def list_schema_definitions(self, tag: str) -> list[RawResource]:
        matching = [
            d for d in self.definitions
            if _matches_selector((d.get("metadata") or {}).get("labels") or {}, tag)
        ]
        return self._listing("definitions", matching)

    def list_instances(self, coords: KindCoordinates) -> list[RawResource]:
        matching = [
            o for o in self.objects
            if _group_of(o) == coords.group and o.get("kind") == coords.kind
        ]
        return self._listing(coords.resource, matching)

    def resolve_identity(self, ref: ObjectReference, label: str) -> str | None:
        if str(ref) in self.lookup_errors:
            raise self.lookup_errors[str(ref)]

        for obj in self.objects:
            meta = obj.get("metadata") or {}
            if (
                _group_of(obj) == ref.group
                and obj.get("kind") == ref.kind
                and meta.get("namespace") == ref.namespace
                and meta.get("name") == ref.name
            ):
                return (meta.get("labels") or {}).get(label)

        log.debug("adapter.subscriber_not_found", reference=str(ref), adapter="memory")
        return None

    def health_check(self) -> bool:
        """In-memory adapter is always healthy."""
        return True
