"""Conversion of raw cluster resources into mesh records."""
from typing import Any
import orjson
from .annotations import AnnotationSanitizer
from .errors import DeclarationParseError
from .models import (
    BROKER_GROUP,
    BROKER_KIND,
    Broker,
    EventType,
    GroupKindNamespacedName,
    KindCoordinates,
    ObjectReference,
    Source,
    Subscribable,
    Subscription,
)
from .refs import api_version_to_group, gk_namespaced_name

EVENT_TYPES_ANNOTATION = "registry.knative.dev/eventTypes"


def _meta(raw: dict[str, Any]) -> dict[str, Any]:
    return raw.get("metadata") or {}


def _spec(raw: dict[str, Any]) -> dict[str, Any]:
    return raw.get("spec") or {}


def _str_or_none(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _labels(meta: dict[str, Any]) -> dict[str, str] | None:
    labels = meta.get("labels")
    if labels is None:
        return None
    return dict(labels)


class EntityConverter:
    """
    Converts raw resource dicts into normalized records.

    All methods are pure: inputs are never modified and labels/annotations
    are copied.
    """

    def __init__(
        self,
        sanitizer: AnnotationSanitizer | None = None,
        event_types_annotation: str = EVENT_TYPES_ANNOTATION,
    ):
        self.sanitizer = sanitizer or AnnotationSanitizer()
        self.event_types_annotation = event_types_annotation

    def broker(self, raw: dict[str, Any]) -> Broker:
        meta = _meta(raw)
        return Broker(
            name=meta.get("name", ""),
            namespace=meta.get("namespace", ""),
            uid=meta.get("uid", ""),
            labels=_labels(meta),
            annotations=self.sanitizer.sanitize(meta.get("annotations")),
        )

    def subscribable(self, coords: KindCoordinates, raw: dict[str, Any]) -> Subscribable:
        meta = _meta(raw)
        return Subscribable(
            name=meta.get("name", ""),
            namespace=meta.get("namespace", ""),
            uid=meta.get("uid", ""),
            group=coords.group,
            kind=raw.get("kind") or coords.kind,
            labels=_labels(meta),
            annotations=self.sanitizer.sanitize(meta.get("annotations")),
        )

    def event_type(self, raw: dict[str, Any]) -> EventType:
        """
        Convert an EventType.

        Both the ``spec.type`` layout and the ``spec.attributes`` list layout
        are understood; the attribute list wins when present.
        """
        meta = _meta(raw)
        spec = _spec(raw)
        namespace = meta.get("namespace", "")

        event_type = spec.get("type", "")
        schema_url = _str_or_none(spec.get("schema"))
        for attr in spec.get("attributes") or []:
            attr_name = attr.get("name")
            if attr_name == "type":
                event_type = attr.get("value", "")
            elif attr_name == "schemadata":
                schema_url = _str_or_none(attr.get("value"))

        reference = None
        ref = spec.get("reference")
        if ref:
            reference = GroupKindNamespacedName(
                group=api_version_to_group(ref.get("apiVersion", "")),
                kind=ref.get("kind", ""),
                namespace=namespace,
                name=ref.get("name", ""),
            )

        return EventType(
            name=meta.get("name", ""),
            namespace=namespace,
            type=event_type or "",
            uid=meta.get("uid", ""),
            description=_str_or_none(spec.get("description")),
            schema_data=_str_or_none(spec.get("schemaData")),
            schema_url=schema_url,
            labels=_labels(meta),
            annotations=self.sanitizer.sanitize(meta.get("annotations")),
            reference=reference,
        )

    def declared_types(self, coords: KindCoordinates) -> list[str]:
        """
        Parse the event types a source kind declares on its schema definition.

        The annotation holds a JSON array of ``{"type", "schema", "description"}``
        entries; only the types are returned.

        Raises:
            DeclarationParseError: If the annotation is not a JSON array of objects
        """
        payload = coords.annotations.get(self.event_types_annotation)
        if payload is None:
            return []

        try:
            entries = orjson.loads(payload)
        except orjson.JSONDecodeError as e:
            raise DeclarationParseError(coords.definition, str(e)) from e

        if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
            raise DeclarationParseError(coords.definition, "expected a JSON array of objects")

        return [str(entry.get("type") or "") for entry in entries]

    def source(
        self,
        coords: KindCoordinates,
        declared_types: list[str],
        raw: dict[str, Any],
    ) -> Source:
        meta = _meta(raw)
        return Source(
            name=meta.get("name", ""),
            namespace=meta.get("namespace", ""),
            uid=meta.get("uid", ""),
            group=coords.group,
            kind=raw.get("kind") or coords.kind,
            labels=_labels(meta),
            annotations=self.sanitizer.sanitize(meta.get("annotations")),
            provided_event_type_types=list(declared_types),
            sink=_sink_ref(raw),
        )

    def trigger(self, raw: dict[str, Any]) -> Subscription:
        """Convert a Trigger; its target is a broker in its own namespace."""
        meta = _meta(raw)
        spec = _spec(raw)
        namespace = meta.get("namespace", "")

        target = None
        if spec.get("broker"):
            target = gk_namespaced_name(BROKER_GROUP, BROKER_KIND, namespace, spec["broker"])

        type_filter = None
        attributes = (spec.get("filter") or {}).get("attributes") or {}
        if "type" in attributes:
            type_filter = attributes["type"]

        return Subscription(
            name=meta.get("name", ""),
            namespace=namespace,
            origin="Trigger",
            target=target,
            subscriber=_subscriber_ref(spec, namespace),
            type_filter=type_filter,
        )

    def channel_subscription(self, raw: dict[str, Any]) -> Subscription:
        """Convert a channel Subscription; it receives everything its channel carries."""
        meta = _meta(raw)
        spec = _spec(raw)
        namespace = meta.get("namespace", "")

        target = None
        channel = spec.get("channel") or {}
        if channel.get("name") and channel.get("kind"):
            target = gk_namespaced_name(
                api_version_to_group(channel.get("apiVersion", "")),
                channel["kind"],
                namespace,
                channel["name"],
            )

        return Subscription(
            name=meta.get("name", ""),
            namespace=namespace,
            origin="Subscription",
            target=target,
            subscriber=_subscriber_ref(spec, namespace),
        )


def _subscriber_ref(spec: dict[str, Any], default_namespace: str) -> ObjectReference | None:
    ref = (spec.get("subscriber") or {}).get("ref")
    if not ref or not ref.get("name") or not ref.get("kind"):
        return None
    return ObjectReference(
        api_version=ref.get("apiVersion", ""),
        kind=ref["kind"],
        namespace=ref.get("namespace") or default_namespace,
        name=ref["name"],
    )


def _sink_ref(raw: dict[str, Any]) -> GroupKindNamespacedName | None:
    ref = (_spec(raw).get("sink") or {}).get("ref")
    if not isinstance(ref, dict):
        return None

    # URI sinks carry no reference worth linking
    api_version, kind, name = ref.get("apiVersion"), ref.get("kind"), ref.get("name")
    if not (api_version and kind and name):
        return None

    return GroupKindNamespacedName(
        group=api_version_to_group(api_version),
        kind=kind,
        namespace=_meta(raw).get("namespace", ""),
        name=name,
    )
