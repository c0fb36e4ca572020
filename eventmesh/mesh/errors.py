"""Error taxonomy for event mesh builds.

Fatal errors abort :meth:`EventMeshBuilder.build`. Local errors are logged by
the builder and only cause the affected item to be skipped.
"""


class EventMeshError(Exception):
    """Base class for all build errors."""


class ListingError(EventMeshError):
    """A top-level listing failed for a reason other than not-found (fatal)."""

    def __init__(self, listing: str, cause: Exception):
        self.listing = listing
        self.cause = cause
        super().__init__(f"error listing {listing}: {cause}")


class DiscoveryError(EventMeshError):
    """The coordinates of a dynamically discovered kind cannot be resolved (fatal)."""


class NotServedError(DiscoveryError):
    """A schema definition declares versions but serves none of them."""

    def __init__(self, definition: str):
        self.definition = definition
        super().__init__(f"no served version in schema definition {definition}")


class DeclarationParseError(EventMeshError):
    """A source kind carries a malformed event type declaration (local)."""

    def __init__(self, kind: str, detail: str):
        self.kind = kind
        self.detail = detail
        super().__init__(f"failed to parse event types declared by {kind}: {detail}")


class IdentityLookupError(EventMeshError):
    """A subscriber's identity could not be resolved (local)."""

    def __init__(self, reference: str, cause: Exception):
        self.reference = reference
        self.cause = cause
        super().__init__(f"error getting identity of subscriber {reference}: {cause}")
