"""Errors raised by provider adapters and the provider chain."""

from __future__ import annotations


class ProviderError(RuntimeError):
    """Base class for provider adapter failures."""


class ProviderAPIError(ProviderError):
    """Raised when a provider API call fails.

    ``status_code`` is ``None`` for transport failures that never produced an
    HTTP response.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(
        cls, provider: str, operation: str, status_code: int, detail: str = ""
    ) -> ProviderAPIError:
        """Return an error for a non-2xx provider response."""
        suffix = f": {detail}" if detail else ""
        return cls(
            f"{provider} {operation} failed with HTTP {status_code}{suffix}",
            status_code=status_code,
        )

    @classmethod
    def transport(
        cls, provider: str, operation: str, exc: BaseException
    ) -> ProviderAPIError:
        """Return an error for a request that never completed."""
        return cls(f"{provider} {operation} request failed: {exc}")


class RepositoryExistsError(ProviderAPIError):
    """Raised when creating a repository that already exists."""

    @classmethod
    def for_slug(
        cls, provider: str, slug: str, status_code: int | None = None
    ) -> RepositoryExistsError:
        """Return an error naming the conflicting repository."""
        return cls(
            f"{provider} repository {slug} already exists", status_code=status_code
        )


class ProviderAuthError(ProviderError):
    """Raised when a secret carries no usable provider token."""

    @classmethod
    def missing_token(cls, secret: str) -> ProviderAuthError:
        """Return an error for a secret without ``password`` or ``token``."""
        return cls(f"secret {secret} has no 'password' or 'token' key")


class UnsupportedProviderError(ProviderError):
    """Raised when no adapter in the chain handles a provider type."""

    @classmethod
    def for_type(cls, provider: str, known: list[str]) -> UnsupportedProviderError:
        """Return an error naming the unhandled provider and those available."""
        available = ", ".join(known) or "none"
        return cls(
            f"no provider adapter handles {provider!r} (available: {available})"
        )
