"""Git materialisation pipeline for artifact snapshots."""

from __future__ import annotations

from .auth import auth_environment, credentials_from_secret
from .errors import (
    BlobFetchError,
    CredentialsError,
    ExtractionFailedError,
    GitCommandError,
    GitOperationError,
)
from .models import (
    DEFAULT_COMMIT_MESSAGE,
    BasicAuth,
    Credential,
    PushOptions,
    PushOutcome,
    SnapshotRef,
    SSHAuth,
)
from .pipeline import GitPushPipeline
from .runner import GitResult, run_git

__all__ = [
    "DEFAULT_COMMIT_MESSAGE",
    "BasicAuth",
    "BlobFetchError",
    "Credential",
    "CredentialsError",
    "ExtractionFailedError",
    "GitCommandError",
    "GitOperationError",
    "GitPushPipeline",
    "GitResult",
    "PushOptions",
    "PushOutcome",
    "SSHAuth",
    "SnapshotRef",
    "auth_environment",
    "credentials_from_secret",
    "run_git",
]
