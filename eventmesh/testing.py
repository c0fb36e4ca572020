"""Factories for raw cluster resources, for tests and local snapshots."""
from typing import Any

IDENTITY_LABEL = "backstage.io/kubernetes-id"

_UNSET: Any = object()


def _metadata(name: str, namespace: str | None, uid: str = "", labels=None, annotations=None) -> dict[str, Any]:
    meta: dict[str, Any] = {"name": name}
    if namespace is not None:
        meta["namespace"] = namespace
    if uid:
        meta["uid"] = uid
    if labels is not None:
        meta["labels"] = labels
    if annotations is not None:
        meta["annotations"] = annotations
    return meta


def reference(api_version: str, kind: str, name: str, namespace: str | None = None) -> dict[str, str]:
    ref = {"apiVersion": api_version, "kind": kind, "name": name}
    if namespace is not None:
        ref["namespace"] = namespace
    return ref


def broker_reference(name: str) -> dict[str, str]:
    return reference("eventing.knative.dev/v1", "Broker", name)


def service_reference(name: str, namespace: str | None = None) -> dict[str, str]:
    return reference("v1", "Service", name, namespace)


def broker(name: str, namespace: str, uid: str = "", labels=None, annotations=None) -> dict[str, Any]:
    return {
        "apiVersion": "eventing.knative.dev/v1",
        "kind": "Broker",
        "metadata": _metadata(name, namespace, uid, labels, annotations),
        "spec": {},
    }


def event_type(
    name: str,
    namespace: str,
    type_: str,
    ref: dict[str, str] | None = None,
    uid: str = "",
    description: str = "",
    schema: str = "",
    schema_data: str = "",
    labels=None,
    annotations=None,
) -> dict[str, Any]:
    spec: dict[str, Any] = {"type": type_}
    if ref is not None:
        spec["reference"] = ref
    if description:
        spec["description"] = description
    if schema:
        spec["schema"] = schema
    if schema_data:
        spec["schemaData"] = schema_data
    return {
        "apiVersion": "eventing.knative.dev/v1beta2",
        "kind": "EventType",
        "metadata": _metadata(name, namespace, uid, labels, annotations),
        "spec": spec,
    }


def trigger(
    name: str,
    namespace: str,
    broker_name: str,
    subscriber: dict[str, str] | None = None,
    type_filter: str = _UNSET,
) -> dict[str, Any]:
    """A Trigger; pass ``type_filter=""`` for the any-type filter."""
    spec: dict[str, Any] = {"broker": broker_name}
    if subscriber is not None:
        spec["subscriber"] = {"ref": subscriber}
    if type_filter is not _UNSET:
        spec["filter"] = {"attributes": {"type": type_filter}}
    return {
        "apiVersion": "eventing.knative.dev/v1",
        "kind": "Trigger",
        "metadata": _metadata(name, namespace),
        "spec": spec,
    }


def channel_subscription(
    name: str,
    namespace: str,
    channel: dict[str, str],
    subscriber: dict[str, str] | None = None,
) -> dict[str, Any]:
    spec: dict[str, Any] = {"channel": channel}
    if subscriber is not None:
        spec["subscriber"] = {"ref": subscriber}
    return {
        "apiVersion": "messaging.knative.dev/v1",
        "kind": "Subscription",
        "metadata": _metadata(name, namespace),
        "spec": spec,
    }


def service(name: str, namespace: str, identity: str | None = None) -> dict[str, Any]:
    labels = {IDENTITY_LABEL: identity} if identity is not None else None
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": _metadata(name, namespace, labels=labels),
    }


def definition(
    group: str,
    kind: str,
    plural: str,
    labels: dict[str, str],
    annotations: dict[str, str] | None = None,
    versions: list[tuple[str, bool]] | None = None,
) -> dict[str, Any]:
    """A CustomResourceDefinition; ``versions`` is a list of (name, served)."""
    if versions is None:
        versions = [("v1", True)]
    return {
        "apiVersion": "apiextensions.k8s.io/v1",
        "kind": "CustomResourceDefinition",
        "metadata": _metadata(f"{plural}.{group}", None, labels=labels, annotations=annotations),
        "spec": {
            "group": group,
            "names": {"kind": kind, "listKind": f"{kind}List", "plural": plural},
            "versions": [{"name": n, "served": s, "storage": s} for n, s in versions],
        },
    }


def instance(
    api_version: str,
    kind: str,
    name: str,
    namespace: str,
    sink: dict[str, str] | None = None,
    labels=None,
    annotations=None,
) -> dict[str, Any]:
    obj: dict[str, Any] = {
        "apiVersion": api_version,
        "kind": kind,
        "metadata": _metadata(name, namespace, labels=labels, annotations=annotations),
        "spec": {},
    }
    if sink is not None:
        obj["spec"]["sink"] = {"ref": sink}
    return obj
