"""
Destination routing - picks the storage backend for a batch.

Classification is a literal prefix match in fixed order; anything else
non-empty is rejected.
"""
import logging
import os
from typing import Mapping, Optional, Tuple

from .config import DESTINATION_ENV
from .errors import InvalidDestinationError
from .models import BackendKind, Destination

logger = logging.getLogger(__name__)

SCHEMES: Tuple[Tuple[str, BackendKind], ...] = (
    ("s3://", BackendKind.S3),
    ("gs://", BackendKind.GS),
    ("rt://", BackendKind.ARTIFACTORY),
)


class DestinationRouter:
    """
    Classify a destination identifier into a BackendKind.

    An explicit destination wins over the configured one
    (ARTIFACT_UPLOAD_DESTINATION); both empty selects the default backend.
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = os.environ if environ is None else environ

    def effective(self, destination: Optional[str] = None) -> str:
        """Apply argument-over-configuration precedence."""
        if destination:
            return destination
        return self._environ.get(DESTINATION_ENV, "") or ""

    def route(self, destination: Optional[str] = None) -> BackendKind:
        value = self.effective(destination)
        if not value:
            return BackendKind.NONE

        for prefix, kind in SCHEMES:
            if value.startswith(prefix):
                return kind

        raise InvalidDestinationError(value)

    def parse(self, destination: Optional[str] = None) -> Destination:
        """Route and split into bucket and path prefix."""
        value = self.effective(destination)
        kind = self.route(value)
        return parse_destination(value, kind)


def parse_destination(value: str, kind: BackendKind) -> Destination:
    """
    Split `scheme://bucket/some/prefix` into its parts.

    The prefix keeps no leading or trailing slashes.
    """
    if kind == BackendKind.NONE:
        return Destination(kind=kind, raw=value)

    remainder = value.split("://", 1)[1]
    bucket, _, prefix = remainder.partition("/")
    return Destination(
        kind=kind,
        bucket=bucket,
        prefix=prefix.strip("/"),
        raw=value,
    )
