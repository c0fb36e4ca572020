"""Event mesh record models.

The public models serialize to the camelCase JSON shape consumed by the
catalog plugin. They are frozen: the builder links them through side tables
and hands out updated copies.
"""
from typing import Any, ClassVar
from pydantic import BaseModel, ConfigDict, Field, model_serializer
from pydantic.alias_generators import to_camel
from .refs import api_version_to_group, gk_namespaced_name, namespaced_name

BROKER_GROUP = "eventing.knative.dev"
BROKER_KIND = "Broker"

# Trigger filter value meaning "any type"
ANY_TYPE = ""


class MeshModel(BaseModel):
    """Base for serialized records."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    # Optional fields left out of the JSON entirely when unset
    omit_if_none: ClassVar[tuple[str, ...]] = ()

    @model_serializer(mode="wrap")
    def drop_unset_optionals(self, handler) -> dict[str, Any]:
        data = handler(self)
        for field in self.omit_if_none:
            if getattr(self, field) is None:
                data.pop(field, None)
                data.pop(type(self).model_fields[field].alias, None)
        return data


class GroupKindNamespacedName(MeshModel):
    """Kind-qualified reference to a namespaced resource."""
    group: str
    kind: str
    namespace: str
    name: str

    def __str__(self) -> str:
        return gk_namespaced_name(self.group, self.kind, self.namespace, self.name)


class Broker(MeshModel):
    name: str
    namespace: str
    uid: str = ""
    labels: dict[str, str] | None = None
    annotations: dict[str, str] | None = None
    provided_event_types: list[str] = Field(default_factory=list)

    @property
    def namespaced_name(self) -> str:
        return namespaced_name(self.namespace, self.name)

    @property
    def key(self) -> str:
        """Provider index key."""
        return gk_namespaced_name(BROKER_GROUP, BROKER_KIND, self.namespace, self.name)


class Subscribable(MeshModel):
    """A channel-like provider discovered through its schema definition."""
    name: str
    namespace: str
    uid: str = ""
    group: str
    kind: str
    labels: dict[str, str] | None = None
    annotations: dict[str, str] | None = None
    provided_event_types: list[str] = Field(default_factory=list)

    @property
    def key(self) -> str:
        """Provider index key."""
        return gk_namespaced_name(self.group, self.kind, self.namespace, self.name)


class EventType(MeshModel):
    omit_if_none: ClassVar[tuple[str, ...]] = (
        "description", "schema_data", "schema_url", "reference",
    )

    name: str
    namespace: str
    type: str = ""
    uid: str = ""
    description: str | None = None
    schema_data: str | None = None
    schema_url: str | None = Field(default=None, alias="schemaURL")
    labels: dict[str, str] | None = None
    annotations: dict[str, str] | None = None
    reference: GroupKindNamespacedName | None = None
    consumed_by: list[str] = Field(default_factory=list)

    @property
    def namespaced_name(self) -> str:
        return namespaced_name(self.namespace, self.name)

    @property
    def namespaced_type(self) -> str:
        return namespaced_name(self.namespace, self.type)


class Source(MeshModel):
    omit_if_none: ClassVar[tuple[str, ...]] = ("sink",)

    name: str
    namespace: str
    uid: str = ""
    group: str
    kind: str
    labels: dict[str, str] | None = None
    annotations: dict[str, str] | None = None
    # declared on the kind's schema definition, shared by all instances
    provided_event_type_types: list[str] = Field(default_factory=list)
    provided_event_types: list[str] = Field(default_factory=list)
    sink: GroupKindNamespacedName | None = None

    @property
    def key(self) -> str:
        return gk_namespaced_name(self.group, self.kind, self.namespace, self.name)


class EventMesh(MeshModel):
    """The assembled graph returned to callers."""
    brokers: list[Broker] = Field(default_factory=list)
    event_types: list[EventType] = Field(default_factory=list)
    subscribables: list[Subscribable] = Field(default_factory=list)
    sources: list[Source] = Field(default_factory=list)

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize to the wire shape."""
        return self.model_dump(mode="json", by_alias=True)


class ObjectReference(BaseModel):
    """A versioned reference to any resource, used to look up subscribers."""
    model_config = ConfigDict(frozen=True)

    api_version: str
    kind: str
    namespace: str
    name: str

    @property
    def group(self) -> str:
        # core resources ("v1") live in the "" group
        if "/" not in self.api_version:
            return ""
        return api_version_to_group(self.api_version)

    def __str__(self) -> str:
        return gk_namespaced_name(self.group, self.kind, self.namespace, self.name)


class Subscription(BaseModel):
    """
    A binding of a target provider to a subscriber.

    Built from both Triggers and channel Subscriptions; never serialized.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    namespace: str
    origin: str = "Trigger"
    target: str | None = Field(default=None, description="Provider index key")
    subscriber: ObjectReference | None = None
    type_filter: str | None = Field(default=None, description="Value of the 'type' filter attribute")

    @property
    def matches_any_type(self) -> bool:
        return self.type_filter is None or self.type_filter == ANY_TYPE


class KindCoordinates(BaseModel):
    """Addressable coordinates of a discovered custom resource kind."""
    model_config = ConfigDict(frozen=True)

    definition: str = Field(..., description="Name of the schema definition")
    group: str
    version: str
    resource: str = Field(..., description="Plural resource name")
    kind: str = ""
    annotations: dict[str, str] = Field(default_factory=dict)
