"""Annotation filtering."""
from typing import Iterable, Mapping

LAST_APPLIED_CONFIGURATION = "kubectl.kubernetes.io/last-applied-configuration"

DEFAULT_EXCLUDED_ANNOTATIONS = frozenset({LAST_APPLIED_CONFIGURATION})


class AnnotationSanitizer:
    """
    Drops metadata entries that are not interesting to catalog consumers.

    The exclusion set is fixed at construction.
    """

    def __init__(self, excluded: Iterable[str] = DEFAULT_EXCLUDED_ANNOTATIONS):
        self.excluded = frozenset(excluded)

    def sanitize(self, entries: Mapping[str, str] | None) -> dict[str, str] | None:
        """
        Return a filtered copy of ``entries``.

        Returns:
            The remaining entries, or None when the input is None or nothing
            remains after filtering
        """
        if entries is None:
            return None

        ret = {k: v for k, v in entries.items() if k not in self.excluded}
        if not ret:
            return None
        return ret
