"""Event mesh builder.

Correlates brokers, channel-like resources, event types, sources and
subscriptions into one :class:`EventMesh`. The procedure is:

1. Fetch brokers and discovered subscribables, index them by key.
2. Fetch event types, sort them by (namespace, name), index them.
3. Register every event type on the provider its reference points to.
4. Fetch discovered sources and match their kind-level declared types to
   event types of the same namespace.
5. Fetch triggers and channel subscriptions, resolve each subscriber's
   catalog identity and record it on the event types it consumes.
6. Assemble the graph from the indices.

Each call to :meth:`EventMeshBuilder.build` works on fresh listings and
keeps no state once it returns.
"""
from typing import Callable, TYPE_CHECKING
import structlog
from .converters import EntityConverter
from .discovery import KindDiscovery
from .errors import DeclarationParseError, IdentityLookupError, ListingError
from .models import (
    Broker,
    EventMesh,
    EventType,
    KindCoordinates,
    Source,
    Subscribable,
    Subscription,
)
from .refs import namespaced_name
from ..adapters.base import AdapterError, ClusterAdapter, RawResource, ResourceNotFound

if TYPE_CHECKING:
    from ..metrics import Metrics

log = structlog.get_logger()

# Label tying a cluster resource to its catalog entity
IDENTITY_LABEL = "backstage.io/kubernetes-id"
SUBSCRIBABLE_TAG = "messaging.knative.dev/subscribable=true"
SOURCE_TAG = "duck.knative.dev/source=true"


class _Arena:
    """Per-build indices. Records stay frozen; links live in side tables."""

    def __init__(self):
        self.providers: dict[str, Broker | Subscribable] = {}
        self.broker_keys: list[str] = []
        self.subscribable_keys: list[str] = []
        self.provided: dict[str, list[str]] = {}

        self.event_types: dict[str, EventType] = {}
        # ordered set per event type
        self.consumed_by: dict[str, dict[str, None]] = {}
        # "<namespace>/<type>" -> event type ids
        self.by_namespaced_type: dict[str, list[str]] = {}

        self.sources: list[Source] = []

    def add_provider(self, provider: Broker | Subscribable, keys: list[str]):
        if provider.key in self.providers:
            return
        self.providers[provider.key] = provider
        self.provided[provider.key] = []
        keys.append(provider.key)

    def add_event_type(self, et: EventType):
        et_id = et.namespaced_name
        self.event_types[et_id] = et
        self.consumed_by[et_id] = {}
        self.by_namespaced_type.setdefault(et.namespaced_type, []).append(et_id)

    def snapshot(self) -> EventMesh:
        """Copy the linked records out into an immutable graph."""
        return EventMesh(
            brokers=[self._provider_copy(k) for k in self.broker_keys],
            subscribables=[self._provider_copy(k) for k in self.subscribable_keys],
            event_types=[
                et.model_copy(update={"consumed_by": list(self.consumed_by[et_id])})
                for et_id, et in self.event_types.items()
            ],
            sources=list(self.sources),
        )

    def _provider_copy(self, key: str):
        return self.providers[key].model_copy(
            update={"provided_event_types": list(self.provided[key])}
        )


class EventMeshBuilder:
    """
    Builds the event mesh from a cluster adapter.

    The builder is read-only towards the cluster. Fatal errors (failed
    listings, failed kind discovery) propagate out of :meth:`build`; per-item
    problems are logged and the item is skipped.
    """

    def __init__(
        self,
        adapter: ClusterAdapter,
        converter: EntityConverter | None = None,
        identity_label: str = IDENTITY_LABEL,
        subscribable_tag: str = SUBSCRIBABLE_TAG,
        source_tag: str = SOURCE_TAG,
        metrics: "Metrics | None" = None,
    ):
        """
        Initialize the builder.

        Args:
            adapter: Source of raw cluster resources
            converter: Record converter (defaults to the standard sanitizer)
            identity_label: Label carrying a subscriber's catalog identity
            subscribable_tag: Selector for channel-like schema definitions
            source_tag: Selector for source-like schema definitions
            metrics: Optional metrics sink for skipped items
        """
        self.adapter = adapter
        self.converter = converter or EntityConverter()
        self.discovery = KindDiscovery(adapter)
        self.identity_label = identity_label
        self.subscribable_tag = subscribable_tag
        self.source_tag = source_tag
        self.metrics = metrics

    def build(self) -> EventMesh:
        """
        Build the event mesh.

        Returns:
            The assembled graph; event types are ordered by (namespace, name)

        Raises:
            ListingError: If a top-level listing fails
            DiscoveryError: If a tagged kind cannot be resolved
        """
        arena = _Arena()

        self._collect_providers(arena)
        self._collect_event_types(arena)
        self._link_references(arena)
        self._collect_sources(arena)

        for subscription in self._collect_subscriptions():
            self._process_subscription(arena, subscription)

        mesh = arena.snapshot()
        log.info(
            "mesh.build.completed",
            brokers=len(mesh.brokers),
            subscribables=len(mesh.subscribables),
            event_types=len(mesh.event_types),
            sources=len(mesh.sources),
        )
        return mesh

    def _list(self, listing: str, fetch: Callable[[], list[RawResource]]) -> list[RawResource]:
        """Run a top-level listing; not-found counts as empty."""
        try:
            return fetch()
        except ResourceNotFound:
            log.debug("mesh.listing.not_found", listing=listing)
            return []
        except AdapterError as e:
            log.error("mesh.listing.failed", listing=listing, error=str(e))
            raise ListingError(listing, e) from e

    def _list_kind(self, coords: KindCoordinates) -> list[RawResource]:
        return self._list(
            f"{coords.resource}.{coords.group}/{coords.version}",
            lambda: self.adapter.list_instances(coords),
        )

    def _collect_providers(self, arena: _Arena):
        for raw in self._list("brokers", self.adapter.list_brokers):
            arena.add_provider(self.converter.broker(raw), arena.broker_keys)

        for coords in self.discovery.discover(self.subscribable_tag):
            for raw in self._list_kind(coords):
                arena.add_provider(self.converter.subscribable(coords, raw), arena.subscribable_keys)

    def _collect_event_types(self, arena: _Arena):
        converted = [self.converter.event_type(raw) for raw in self._list("eventtypes", self.adapter.list_event_types)]
        converted.sort(key=lambda et: (et.namespace, et.name))
        for et in converted:
            arena.add_event_type(et)

    def _link_references(self, arena: _Arena):
        """Register each event type on the provider it references."""
        for et_id, et in arena.event_types.items():
            if et.reference is None:
                continue

            key = str(et.reference)
            if key not in arena.providers:
                # dangling reference stays visible on the event type only
                log.debug("mesh.reference.dangling", event_type=et_id, reference=key)
                continue

            arena.provided[key].append(et_id)

    def _collect_sources(self, arena: _Arena):
        for coords in self.discovery.discover(self.source_tag):
            try:
                declared = self.converter.declared_types(coords)
            except DeclarationParseError as e:
                log.warning("mesh.source_kind.skipped", definition=coords.definition, error=str(e))
                self._record_skip("declaration_parse_error")
                continue

            for raw in self._list_kind(coords):
                source = self.converter.source(coords, declared, raw)
                arena.sources.append(
                    source.model_copy(update={"provided_event_types": _match_types(arena, source)})
                )

    def _collect_subscriptions(self) -> list[Subscription]:
        subscriptions = [self.converter.trigger(raw) for raw in self._list("triggers", self.adapter.list_triggers)]
        subscriptions.extend(
            self.converter.channel_subscription(raw)
            for raw in self._list("subscriptions", self.adapter.list_subscriptions)
        )
        return subscriptions

    def _process_subscription(self, arena: _Arena, subscription: Subscription):
        """Record the subscriber's identity on every event type it consumes."""
        ctx = {
            "origin": subscription.origin,
            "namespace": subscription.namespace,
            "name": subscription.name,
        }

        if subscription.target is None:
            log.debug("mesh.subscription.no_target", **ctx)
            return
        if subscription.target not in arena.providers:
            log.info("mesh.subscription.provider_not_found", target=subscription.target, **ctx)
            return
        if subscription.subscriber is None:
            log.debug("mesh.subscription.no_subscriber", **ctx)
            return

        try:
            identity = self.adapter.resolve_identity(subscription.subscriber, self.identity_label)
        except ResourceNotFound:
            identity = None
        except AdapterError as e:
            # one unreadable subscriber must not hide the rest of the mesh
            err = IdentityLookupError(str(subscription.subscriber), e)
            log.error("mesh.subscription.lookup_failed", error=str(err), **ctx)
            self._record_skip("identity_lookup_error")
            return

        if not identity:
            log.debug("mesh.subscription.no_identity", subscriber=str(subscription.subscriber), **ctx)
            return

        targets = _subscribed_event_types(arena, subscription)
        log.debug("mesh.subscription.resolved", identity=identity, event_types=targets, **ctx)
        for et_id in targets:
            arena.consumed_by[et_id][identity] = None

    def _record_skip(self, reason: str):
        if self.metrics is not None:
            self.metrics.record_skip(reason)


def _subscribed_event_types(arena: _Arena, subscription: Subscription) -> list[str]:
    """
    Event types of the target provider that the subscription receives.

    Without a type filter (or with the any-type value) that is everything the
    provider provides; otherwise only event types whose type equals the filter.
    """
    provided = arena.provided[subscription.target]
    if subscription.matches_any_type:
        return list(provided)
    return [et_id for et_id in provided if arena.event_types[et_id].type == subscription.type_filter]


def _match_types(arena: _Arena, source: Source) -> list[str]:
    """Same-namespace event types whose type a source declares."""
    matched: dict[str, None] = {}
    for declared in source.provided_event_type_types:
        for et_id in arena.by_namespaced_type.get(namespaced_name(source.namespace, declared), []):
            matched[et_id] = None
    return list(matched)
