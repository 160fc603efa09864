"""Errors raised by the git push pipeline."""

from __future__ import annotations


class GitOperationError(RuntimeError):
    """Raised when any stage of a push attempt fails."""


class GitCommandError(GitOperationError):
    """Raised when a git subprocess exits non-zero or times out."""

    def __init__(
        self,
        message: str,
        *,
        command: str | None = None,
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        """Initialise with the failing command and its diagnostics."""
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)

    @classmethod
    def failed(cls, command: str, returncode: int, stderr: str) -> GitCommandError:
        """Return an error for a git command that exited non-zero."""
        detail = stderr.strip().splitlines()[-1] if stderr.strip() else "no output"
        return cls(
            f"git {command} failed with exit code {returncode}: {detail}",
            command=command,
            returncode=returncode,
            stderr=stderr,
        )

    @classmethod
    def timed_out(cls, command: str, timeout_s: float) -> GitCommandError:
        """Return an error for a git command killed after its timeout."""
        return cls(f"git {command} timed out after {timeout_s:g}s", command=command)

    @classmethod
    def git_missing(cls) -> GitCommandError:
        """Return an error when no git executable is available."""
        return cls("git executable not found on PATH")


class ExtractionFailedError(GitOperationError):
    """Raised when the artifact cannot be written into the working tree."""

    @classmethod
    def sub_path_escapes(cls, sub_path: str) -> ExtractionFailedError:
        """Return an error for a sub-path that leaves the working tree."""
        return cls(f"sub path {sub_path!r} escapes the repository working tree")


class BlobFetchError(GitOperationError):
    """Raised when the artifact blob cannot be fetched or verified."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, name: str, digest: str, status_code: int) -> BlobFetchError:
        """Return an error for a non-2xx registry response."""
        return cls(
            f"fetching blob {name}@{digest} failed with HTTP {status_code}",
            status_code=status_code,
        )

    @classmethod
    def digest_mismatch(cls, expected: str, actual: str) -> BlobFetchError:
        """Return an error for a blob whose content does not match its digest."""
        return cls(f"blob digest mismatch: expected {expected}, got {actual}")


class CredentialsError(ValueError):
    """Raised when a secret does not hold usable git credentials."""

    @classmethod
    def missing_key(cls, secret: str, key: str) -> CredentialsError:
        """Return an error for a secret without a required key."""
        return cls(f"secret {secret} is missing required key {key!r}")
