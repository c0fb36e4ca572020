"""Runtime discovery of channel-like and source-like resource kinds."""
from typing import Any
import structlog
from .errors import DiscoveryError, NotServedError
from .models import KindCoordinates
from ..adapters.base import AdapterError, ClusterAdapter, ResourceNotFound

log = structlog.get_logger()


class KindDiscovery:
    """Resolves which custom kinds carry a schema-level tag."""

    def __init__(self, adapter: ClusterAdapter):
        self.adapter = adapter

    def discover(self, tag: str) -> list[KindCoordinates]:
        """
        List the kinds whose schema definition carries ``tag``.

        Args:
            tag: Label selector on the schema definitions

        Returns:
            Coordinates of each tagged kind, in listing order (empty when the
            definitions API itself is not found)

        Raises:
            DiscoveryError: If listing fails or a definition cannot be resolved
        """
        try:
            definitions = self.adapter.list_schema_definitions(tag)
        except ResourceNotFound:
            log.debug("discovery.definitions_not_found", tag=tag)
            return []
        except AdapterError as e:
            raise DiscoveryError(f"error listing schema definitions tagged {tag}: {e}") from e

        coordinates = [coordinates_from_definition(d) for d in definitions]
        log.debug(
            "discovery.completed",
            tag=tag,
            kinds=[f"{c.resource}.{c.group}" for c in coordinates],
        )
        return coordinates


def coordinates_from_definition(definition: dict[str, Any]) -> KindCoordinates:
    """
    Derive group, served version and plural name from a schema definition.

    Raises:
        NotServedError: If versions are declared but none is served
        DiscoveryError: If group, version or plural name is missing
    """
    metadata = definition.get("metadata") or {}
    spec = definition.get("spec") or {}
    name = metadata.get("name", "")

    group = spec.get("group")
    if not group:
        raise DiscoveryError(f"can't find group in schema definition {name}")

    names = spec.get("names") or {}
    plural = names.get("plural")
    if not plural:
        raise DiscoveryError(f"can't find plural resource name in schema definition {name}")

    return KindCoordinates(
        definition=name,
        group=group,
        version=_served_version(name, spec),
        resource=plural,
        kind=names.get("kind", ""),
        annotations=metadata.get("annotations") or {},
    )


def _served_version(name: str, spec: dict[str, Any]) -> str:
    """First served version in declaration order."""
    versions = spec.get("versions") or []
    if not versions:
        # pre-v1 definitions carry a single version
        version = spec.get("version")
        if not version:
            raise DiscoveryError(f"can't find version in schema definition {name}")
        return version

    for v in versions:
        if isinstance(v, dict) and v.get("served") is True and v.get("name"):
            return v["name"]

    raise NotServedError(name)
