"""Composite key helpers.

Records are indexed throughout the engine by string keys:

- ``"<namespace>/<name>"`` for namespaced identities (event types, brokers)
- ``"<group>/<kind>/<namespace>/<name>"`` for kind-qualified identities
"""


def namespaced_name(namespace: str, name: str) -> str:
    """Render ``namespace/name``."""
    return f"{namespace}/{name}"


def gk_namespaced_name(group: str, kind: str, namespace: str, name: str) -> str:
    """Render ``group/kind/namespace/name``."""
    return f"{group}/{kind}/{namespace}/{name}"


def parse_namespaced_name(key: str) -> tuple[str, str]:
    """
    Split a ``namespace/name`` key.

    Raises:
        ValueError: If the key does not have exactly two parts
    """
    parts = key.split("/")
    if len(parts) != 2:
        raise ValueError(f"invalid namespaced name: {key!r}")
    return parts[0], parts[1]


def parse_gk_namespaced_name(key: str) -> tuple[str, str, str, str]:
    """
    Split a ``group/kind/namespace/name`` key.

    The core API group is the empty string, so ``"/Service/ns/name"`` is valid.

    Raises:
        ValueError: If the key does not have exactly four parts
    """
    parts = key.split("/")
    if len(parts) != 4:
        raise ValueError(f"invalid group/kind/namespace/name: {key!r}")
    return parts[0], parts[1], parts[2], parts[3]


def api_version_to_group(api_version: str) -> str:
    """
    Return the group part of an apiVersion.

    ``"apps/v1"`` gives ``"apps"``; a version without a slash (``"v1"``) is
    returned as is.
    """
    if "/" not in api_version:
        return api_version
    return api_version.split("/", 1)[0]
