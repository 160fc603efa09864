"""Value types passed into and out of the git push pipeline."""

from __future__ import annotations

import dataclasses

DEFAULT_COMMIT_MESSAGE = "Uploading snapshot to location"


@dataclasses.dataclass(frozen=True, slots=True)
class BasicAuth:
    """Username/password (or token) authentication over HTTPS."""

    username: str
    password: str = dataclasses.field(repr=False)


@dataclasses.dataclass(frozen=True, slots=True)
class SSHAuth:
    """Private-key authentication over SSH.

    Attributes
    ----------
    identity
        PEM-encoded private key.
    user
        SSH user used when the URL does not name one.
    passphrase
        Passphrase for an encrypted key; empty for unencrypted keys.

    """

    identity: str = dataclasses.field(repr=False)
    user: str = "git"
    passphrase: str = dataclasses.field(default="", repr=False)


type Credential = BasicAuth | SSHAuth


@dataclasses.dataclass(frozen=True, slots=True)
class SnapshotRef:
    """Blob-store coordinates of the artifact to materialise."""

    repository_name: str
    digest: str


@dataclasses.dataclass(frozen=True, slots=True)
class PushOptions:
    """Everything one push attempt needs.

    ``commit_message`` falls back to :data:`DEFAULT_COMMIT_MESSAGE` when
    empty. ``sub_path`` is relative to the repository root.
    """

    url: str
    base_branch: str
    target_branch: str
    author_name: str
    author_email: str
    snapshot: SnapshotRef
    auth: Credential | None = None
    commit_message: str = ""
    sub_path: str = "."
    prune: bool = False

    @property
    def effective_commit_message(self) -> str:
        """Return the commit message to record."""
        return self.commit_message or DEFAULT_COMMIT_MESSAGE


@dataclasses.dataclass(frozen=True, slots=True)
class PushOutcome:
    """Result of a successful push.

    ``committed`` is ``False`` when the artifact matched the branch contents
    already and the push published no new commit.
    """

    digest: str
    branch: str
    committed: bool
