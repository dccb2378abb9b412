"""
Error taxonomy for the artifact upload pipeline.

Fatal errors abort a run with a single-cause message.
PerArtifactUploadError is collected per file instead.
"""
from typing import Optional


class ArtifactUploadError(RuntimeError):
    """Base class for every pipeline error."""

    stage = "upload"


class NoFilesMatchedError(ArtifactUploadError):
    """Raised when a glob pattern resolves to zero files."""

    stage = "resolve"

    def __init__(self, pattern: str):
        self.pattern = pattern
        super().__init__(
            f"No files matched the pattern {pattern!r}. "
            "Did you forget to surround the pattern in quotes?"
        )


class InvalidDestinationError(ArtifactUploadError):
    """Raised when a destination matches none of the known schemes."""

    stage = "destination"

    def __init__(self, destination: str):
        self.destination = destination
        super().__init__(
            f"Invalid upload destination: {destination!r}. "
            "Only s3://, gs:// or rt:// upload destinations are allowed. "
            "Did you forget to surround your artifact upload pattern in double quotes?"
        )


class UploaderConstructionError(ArtifactUploadError):
    """Raised when a backend uploader cannot be configured."""

    stage = "uploader"


class RegistrationError(ArtifactUploadError):
    """Raised when the orchestration service rejects or cannot serve a call."""

    stage = "registration"

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class PerArtifactUploadError(ArtifactUploadError):
    """A single artifact failed to upload."""

    def __init__(
        self,
        message: str,
        transient: bool = False,
        status_code: Optional[int] = None,
    ):
        self.transient = transient
        self.status_code = status_code
        super().__init__(message)
