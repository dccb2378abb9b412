"""Services for artifact_uploader module."""
from .api_client import HTTPAPIClient
from .registry import ArtifactRegistry

__all__ = [
    "HTTPAPIClient",
    "ArtifactRegistry",
]
