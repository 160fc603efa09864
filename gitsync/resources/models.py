"""Typed resource structures for sync requests and hosted repositories.

Manifests use camelCase keys and a ``kind`` tag, mirroring the resources a
GitOps pipeline would apply; Python attributes stay snake_case. The models are
plain data: policies such as ``existing_repository_policy`` and ``visibility``
are kept as strings here and validated by the reconcilers, so an unknown value
surfaces as a configuration error on the object rather than a decode failure.
"""

from __future__ import annotations

import datetime as dt  # noqa: TC003
import enum
import re
import typing as typ

import msgspec

from gitsync.common.slug import object_key, repo_slug


class ExistingRepositoryPolicy(enum.StrEnum):
    """What to do when a requested provider repository already exists."""

    ADOPT = "adopt"
    FAIL = "fail"


class Visibility(enum.StrEnum):
    """Repository visibility values accepted by the provider adapters."""

    PUBLIC = "public"
    PRIVATE = "private"
    INTERNAL = "internal"


_PROVIDER_DEFAULT_DOMAINS: dict[str, str] = {
    "github": "github.com",
    "gitlab": "gitlab.com",
    "gitea": "gitea.com",
}


class ObjectMeta(msgspec.Struct, kw_only=True, rename="camel"):
    """Identity and versioning metadata shared by every resource.

    Attributes
    ----------
    name : str
        Object name, unique per namespace and kind.
    namespace : str
        Namespace the object lives in.
    generation : int
        Incremented by the store whenever the spec changes.
    resource_version : int
        Optimistic-concurrency token incremented on every write.

    """

    name: str
    namespace: str = "default"
    generation: int = 1
    resource_version: int = 0

    @property
    def key(self) -> str:
        """Return the ``namespace/name`` object key."""
        return object_key(self.namespace, self.name)


class Condition(msgspec.Struct, kw_only=True, rename="camel"):
    """Observation of one aspect of an object's state."""

    type: str
    status: typ.Literal["True", "False", "Unknown"]
    reason: str
    message: str = ""
    last_transition_time: dt.datetime
    observed_generation: int = 0


class LocalObjectReference(msgspec.Struct, kw_only=True, rename="camel"):
    """Reference to an object in the referrer's namespace."""

    name: str


class NamespacedObjectReference(msgspec.Struct, kw_only=True, rename="camel"):
    """Reference to an object, optionally in another namespace."""

    name: str
    namespace: str | None = None


class SnapshotSpec(msgspec.Struct, kw_only=True, rename="camel"):
    """Location of a content-addressed artifact in the blob store.

    Attributes
    ----------
    identity : str
        Name of the artifact, e.g. ``acme.org/frontend``.
    digest : str
        Content digest of the artifact blob, e.g. ``sha256:...``.

    """

    identity: str
    digest: str


_BLOB_NAME_INVALID = re.compile(r"[^a-z0-9._/-]+")


class Snapshot(msgspec.Struct, kw_only=True, tag="Snapshot", tag_field="kind"):
    """Content-addressed build artifact produced by an upstream pipeline."""

    metadata: ObjectMeta
    spec: SnapshotSpec

    def repository_name(self) -> str:
        """Return the blob-store repository name derived from the identity.

        Registry repository names are lowercase and limited to ``[a-z0-9._/-]``;
        any other run of characters collapses to ``-``.

        Examples
        --------
        >>> spec = SnapshotSpec(identity="Acme.org/Front End", digest="sha256:0")
        >>> Snapshot(metadata=ObjectMeta(name="s"), spec=spec).repository_name()
        'acme.org/front-end'

        """
        return _BLOB_NAME_INVALID.sub("-", self.spec.identity.lower()).strip("-")


class CommitTemplate(msgspec.Struct, kw_only=True, rename="camel"):
    """Commit identity and branch selection for a sync.

    Attributes
    ----------
    name : str
        Commit author name.
    email : str
        Commit author email.
    message : str
        Commit message; a fixed message is used when empty.
    base_branch : str
        Branch cloned from and targeted by pull requests.
    target_branch : str, optional
        Branch pushed to. Generated when automatic pull requests are enabled
        and no branch is given.

    """

    name: str
    email: str
    message: str = ""
    base_branch: str = "main"
    target_branch: str | None = None


class PullRequestTemplate(msgspec.Struct, kw_only=True, rename="camel"):
    """Overrides for automatically created pull requests."""

    title: str = ""
    description: str = ""
    base: str = ""


class SyncSpec(msgspec.Struct, kw_only=True, rename="camel"):
    """Desired delivery of a snapshot into a git repository."""

    snapshot_ref: LocalObjectReference
    repository_ref: NamespacedObjectReference
    commit_template: CommitTemplate
    sub_path: str = "."
    prune: bool = False
    automatic_pull_request_creation: bool = False
    pull_request_template: PullRequestTemplate = msgspec.field(
        default_factory=PullRequestTemplate
    )


class SyncStatus(msgspec.Struct, kw_only=True, rename="camel"):
    """Observed state of a sync.

    Attributes
    ----------
    digest : str
        Digest of the snapshot last pushed.
    digest_generation : int
        Generation whose attempt completed with ``digest``, including its
        pull request when one was requested. The generation is done when this
        equals the current generation.
    pull_request_id : int, optional
        Provider-assigned id of the pull request opened for the push.
    observed_generation : int
        Last generation that reached a terminal state.
    conditions : list[Condition]
        Ready/Reconciling/Stalled conditions.

    """

    digest: str = ""
    digest_generation: int = 0
    pull_request_id: int | None = None
    observed_generation: int = 0
    conditions: list[Condition] = msgspec.field(default_factory=list)


class Sync(msgspec.Struct, kw_only=True, tag="Sync", tag_field="kind"):
    """Request to materialise a snapshot into a repository."""

    metadata: ObjectMeta
    spec: SyncSpec
    status: SyncStatus = msgspec.field(default_factory=SyncStatus)


class Credentials(msgspec.Struct, kw_only=True, rename="camel"):
    """Pointer to the secret that authenticates against the provider."""

    secret_ref: LocalObjectReference


class RepositorySpec(msgspec.Struct, kw_only=True, rename="camel"):
    """Desired hosted repository.

    Attributes
    ----------
    provider : str
        Provider-type tag (``github``, ``gitlab``, ``gitea``).
    owner : str
        User or organisation that owns the repository.
    credentials : Credentials
        Secret holding the provider token.
    repository_name : str, optional
        Repository name; the object name when omitted.
    default_branch : str
        Default branch, protected when the provider supports it.
    visibility : str
        ``public``, ``private`` or ``internal``.
    is_organization : bool
        Whether ``owner`` is an organisation rather than a user.
    domain : str, optional
        Provider domain override without scheme, e.g. ``git.example.com``.
    maintainers : list[str]
        Entries written to ``CODEOWNERS`` on a freshly created repository.
    existing_repository_policy : str
        ``adopt`` or ``fail``.

    """

    provider: str
    owner: str
    credentials: Credentials
    repository_name: str | None = None
    default_branch: str = "main"
    visibility: str = Visibility.PRIVATE.value
    is_organization: bool = True
    domain: str | None = None
    maintainers: list[str] = msgspec.field(default_factory=list)
    existing_repository_policy: str = ExistingRepositoryPolicy.ADOPT.value


class RepositoryStatus(msgspec.Struct, kw_only=True, rename="camel"):
    """Observed state of a hosted repository.

    ``url`` is set once the repository has been created or adopted, so a
    retry after a failed protection step does not create it again.
    """

    url: str = ""
    created: bool = False
    observed_generation: int = 0
    conditions: list[Condition] = msgspec.field(default_factory=list)


class Repository(msgspec.Struct, kw_only=True, tag="Repository", tag_field="kind"):
    """Hosted git repository managed through a provider API."""

    metadata: ObjectMeta
    spec: RepositorySpec
    status: RepositoryStatus = msgspec.field(default_factory=RepositoryStatus)

    @property
    def name(self) -> str:
        """Return the repository name on the provider."""
        return self.spec.repository_name or self.metadata.name

    @property
    def slug(self) -> str:
        """Return the provider-style ``owner/name`` identifier."""
        return repo_slug(self.spec.owner, self.name)

    def domain(self) -> str:
        """Return the configured domain or the provider's public default."""
        if self.spec.domain:
            return self.spec.domain
        return _PROVIDER_DEFAULT_DOMAINS.get(self.spec.provider, "")

    def repository_url(self) -> str:
        """Return the clone URL for the repository.

        A domain containing ``@`` is treated as an SCP-style SSH prefix
        (``git@host``); anything else is served over HTTPS.

        Examples
        --------
        >>> repo = msgspec.convert(
        ...     {
        ...         "kind": "Repository",
        ...         "metadata": {"name": "reef"},
        ...         "spec": {
        ...             "provider": "github",
        ...             "owner": "octo",
        ...             "credentials": {"secretRef": {"name": "token"}},
        ...         },
        ...     },
        ...     type=Repository,
        ... )
        >>> repo.repository_url()
        'https://github.com/octo/reef'

        """
        domain = self.domain()
        if "@" in domain:
            return f"{domain}:{self.spec.owner}/{self.name}"
        return f"https://{domain}/{self.spec.owner}/{self.name}"


class Secret(msgspec.Struct, kw_only=True, tag="Secret", tag_field="kind"):
    """Opaque key/value credential material."""

    metadata: ObjectMeta
    data: dict[str, str] = msgspec.field(default_factory=dict)


type Resource = Sync | Repository | Snapshot | Secret

RESOURCE_TYPES: tuple[type[msgspec.Struct], ...] = (Sync, Repository, Snapshot, Secret)
