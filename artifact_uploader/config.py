"""
Configuration for upload operations.

Immutable dataclasses; environment values are read once via from_env().
"""
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional


DESTINATION_ENV = "ARTIFACT_UPLOAD_DESTINATION"
DEFAULT_API_ENDPOINT = "http://127.0.0.1:8000"


def _env_flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget with exponential backoff for transient failures."""
    max_attempts: int = 5
    base_delay: float = 0.5
    factor: float = 2.0
    max_delay: float = 10.0

    def delay_for(self, attempt: int) -> float:
        """Delay to sleep after failed attempt number `attempt` (1-based)."""
        delay = self.base_delay * (self.factor ** (attempt - 1))
        return min(delay, self.max_delay)


@dataclass(frozen=True)
class UploadConfig:
    """Immutable configuration for one upload invocation."""
    endpoint: str = DEFAULT_API_ENDPOINT
    access_token: str = ""
    concurrency: int = 10
    follow_symlinks: bool = False
    content_type: str = ""
    timeout: float = 60.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def __post_init__(self):
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")


@dataclass(frozen=True)
class BackendSettings:
    """Per-backend parameters supplied through the environment."""
    s3_access_key_id: str = ""
    s3_secret_access_key: str = ""
    s3_session_token: str = ""
    s3_region: str = "us-east-1"
    s3_acl: str = "public-read"
    s3_endpoint: str = ""
    gs_access_token: str = ""
    gs_acl: str = ""
    artifactory_url: str = ""
    artifactory_user: str = ""
    artifactory_password: str = ""

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BackendSettings":
        env = os.environ if environ is None else environ
        return cls(
            s3_access_key_id=env.get("ARTIFACT_S3_ACCESS_KEY_ID", ""),
            s3_secret_access_key=env.get("ARTIFACT_S3_SECRET_ACCESS_KEY", ""),
            s3_session_token=env.get("ARTIFACT_S3_SESSION_TOKEN", ""),
            s3_region=env.get("ARTIFACT_S3_DEFAULT_REGION") or "us-east-1",
            s3_acl=env.get("ARTIFACT_S3_ACL") or "public-read",
            s3_endpoint=env.get("ARTIFACT_S3_ENDPOINT", ""),
            gs_access_token=env.get("ARTIFACT_GS_ACCESS_TOKEN", ""),
            gs_acl=env.get("ARTIFACT_GS_ACL", ""),
            artifactory_url=env.get("ARTIFACT_ARTIFACTORY_URL", ""),
            artifactory_user=env.get("ARTIFACT_ARTIFACTORY_USER", ""),
            artifactory_password=env.get("ARTIFACT_ARTIFACTORY_PASSWORD", ""),
        )


def follow_symlinks_from_env(environ: Optional[Mapping[str, str]] = None) -> bool:
    env = os.environ if environ is None else environ
    return _env_flag(env.get("ARTIFACT_FOLLOW_SYMLINKS"))
