"""Clone, extract, commit, and push one artifact into a git repository."""

from __future__ import annotations

import asyncio
import os
import tempfile
import typing as typ
from pathlib import Path

from gitsync.archive import ArchiveExtractionError, extract_tar, open_decompressed
from gitsync.logging import get_logger, log_info

from .auth import auth_environment
from .errors import ExtractionFailedError
from .models import PushOutcome
from .runner import DEFAULT_TIMEOUT_S, git_environment, run_git

if typ.TYPE_CHECKING:
    from gitsync.archive import ExtractionSummary
    from gitsync.blobs import BlobStore
    from gitsync.config import ControllerConfig

    from .models import PushOptions
    from .runner import GitResult

logger = get_logger(__name__)


class GitPushPipeline:
    """Materialise an artifact into a repository branch.

    Every call to :meth:`push` works in its own temporary directory, removed
    on return, on error, and on cancellation. The clone is shallow and
    limited to the base branch; the remote is never merged or rebased, so a
    remote that moved ahead makes the push fail.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        *,
        work_dir: Path | None = None,
        git_timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        """Initialise with the blob source and per-command git timeout."""
        self._blob_store = blob_store
        self._work_dir = work_dir
        self._git_timeout_s = git_timeout_s

    @classmethod
    def from_config(
        cls, config: ControllerConfig, blob_store: BlobStore
    ) -> GitPushPipeline:
        """Build a pipeline using controller configuration."""
        return cls(
            blob_store, work_dir=config.work_dir, git_timeout_s=config.git_timeout_s
        )

    async def push(self, options: PushOptions) -> PushOutcome:
        """Run one push attempt.

        Raises
        ------
        GitOperationError
            For any clone, extraction, blob, commit or push failure. Nothing
            is pushed when extraction fails.

        """
        if self._work_dir is not None:
            self._work_dir.mkdir(parents=True, exist_ok=True)

        with tempfile.TemporaryDirectory(prefix="gitsync-", dir=self._work_dir) as tmp:
            scratch = Path(tmp)
            auth_dir = scratch / "auth"
            auth_dir.mkdir(mode=0o700)
            clone_dir = scratch / "repo"

            env = git_environment(
                {
                    **auth_environment(options.auth, auth_dir),
                    "GIT_AUTHOR_NAME": options.author_name,
                    "GIT_AUTHOR_EMAIL": options.author_email,
                    "GIT_COMMITTER_NAME": options.author_name,
                    "GIT_COMMITTER_EMAIL": options.author_email,
                }
            )

            log_info(
                logger,
                "Cloning %s at %s for snapshot %s",
                options.url,
                options.base_branch,
                options.snapshot.digest,
            )
            await self._git(
                [
                    "clone",
                    "--depth",
                    "1",
                    "--single-branch",
                    "--branch",
                    options.base_branch,
                    "--",
                    options.url,
                    str(clone_dir),
                ],
                cwd=scratch,
                env=env,
            )

            if options.target_branch != options.base_branch:
                await self._git(
                    ["checkout", "-b", options.target_branch], cwd=clone_dir, env=env
                )

            destination = _prepare_sub_path(clone_dir, options.sub_path)
            data = await self._blob_store.fetch(
                options.snapshot.repository_name, options.snapshot.digest
            )
            await asyncio.to_thread(_extract, data, destination)

            committed = await self._commit(clone_dir, env, options)

            await self._git(_push_args(options), cwd=clone_dir, env=env)

        log_info(
            logger,
            "Pushed snapshot %s to %s branch %s (committed=%s)",
            options.snapshot.digest,
            options.url,
            options.target_branch,
            committed,
        )
        return PushOutcome(
            digest=options.snapshot.digest,
            branch=options.target_branch,
            committed=committed,
        )

    async def _commit(
        self, clone_dir: Path, env: dict[str, str], options: PushOptions
    ) -> bool:
        await self._git(["add", "--all"], cwd=clone_dir, env=env)
        status = await self._git(["status", "--porcelain"], cwd=clone_dir, env=env)
        if not status.stdout.strip():
            log_info(
                logger,
                "Snapshot %s matches branch %s; nothing to commit",
                options.snapshot.digest,
                options.target_branch,
            )
            return False

        await self._git(
            [
                "-c",
                "commit.gpgsign=false",
                "commit",
                "--no-verify",
                "--message",
                options.effective_commit_message,
            ],
            cwd=clone_dir,
            env=env,
        )
        return True

    async def _git(
        self, args: list[str], *, cwd: Path, env: dict[str, str]
    ) -> GitResult:
        return await run_git(args, cwd=cwd, env=env, timeout_s=self._git_timeout_s)


def _push_args(options: PushOptions) -> list[str]:
    """Return the ``git push`` arguments for ``options``.

    Git only prunes through a pattern refspec, so a pruning push mirrors
    every local branch (the base and the target) and deletes any other
    remote branch.

    Examples
    --------
    >>> from gitsync.git.models import PushOptions, SnapshotRef
    >>> opts = PushOptions(
    ...     url="u", base_branch="main", target_branch="main",
    ...     author_name="n", author_email="e", commit_message="",
    ...     snapshot=SnapshotRef(repository_name="r", digest="d"),
    ... )
    >>> _push_args(opts)
    ['push', 'origin', 'HEAD:refs/heads/main']

    """
    if options.prune:
        return ["push", "--prune", "origin", "refs/heads/*:refs/heads/*"]
    return ["push", "origin", f"HEAD:refs/heads/{options.target_branch}"]


def _prepare_sub_path(clone_dir: Path, sub_path: str) -> Path:
    """Create ``sub_path`` beneath the clone and return its resolved path."""
    root = os.path.realpath(clone_dir)
    if os.path.isabs(sub_path):
        raise ExtractionFailedError.sub_path_escapes(sub_path)
    target = os.path.realpath(os.path.join(root, sub_path))
    git_dir = os.path.join(root, ".git")
    if (
        os.path.commonpath([root, target]) != root
        or os.path.commonpath([git_dir, target]) == git_dir
    ):
        raise ExtractionFailedError.sub_path_escapes(sub_path)
    try:
        os.makedirs(target, exist_ok=True)
    except OSError as exc:
        msg = f"unable to create sub path {sub_path!r}: {exc}"
        raise ExtractionFailedError(msg) from exc
    return Path(target)


def _extract(data: bytes, destination: Path) -> ExtractionSummary:
    try:
        with open_decompressed(data) as stream:
            return extract_tar(stream, destination)
    except ArchiveExtractionError as exc:
        msg = f"extracting snapshot failed: {exc}"
        raise ExtractionFailedError(msg) from exc
