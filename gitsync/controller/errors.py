"""Controller error types and classification for log events."""

from __future__ import annotations

import enum

from sqlalchemy.exc import SQLAlchemyError

from gitsync.errors import ConfigurationError
from gitsync.git.errors import CredentialsError, GitOperationError
from gitsync.providers.errors import (
    ProviderAPIError,
    ProviderAuthError,
    ProviderError,
    UnsupportedProviderError,
)
from gitsync.store.errors import ConflictError, ObjectNotFoundError

_HTTP_SERVER_ERROR_THRESHOLD = 500


class ErrorCategory(enum.StrEnum):
    """Stable categories attached to reconcile failure events."""

    DEPENDENCY = "dependency"
    CONFIGURATION = "configuration"
    GIT = "git"
    PROVIDER = "provider"
    TRANSIENT = "transient"
    CONFLICT = "conflict"
    UNKNOWN = "unknown"


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (ObjectNotFoundError, ErrorCategory.DEPENDENCY),
    (CredentialsError, ErrorCategory.DEPENDENCY),
    (ProviderAuthError, ErrorCategory.DEPENDENCY),
    (ConfigurationError, ErrorCategory.CONFIGURATION),
    (UnsupportedProviderError, ErrorCategory.CONFIGURATION),
    (ConflictError, ErrorCategory.CONFLICT),
    (GitOperationError, ErrorCategory.GIT),
    (ProviderError, ErrorCategory.PROVIDER),
    (SQLAlchemyError, ErrorCategory.TRANSIENT),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorize an exception for reconcile failure events.

    Provider API errors without a status code, or with a 5xx status, are
    transient; other API errors are provider errors.

    Examples
    --------
    >>> categorize_error(ProviderAPIError("boom", status_code=503))
    <ErrorCategory.TRANSIENT: 'transient'>
    >>> categorize_error(ConflictError("Sync", "default/a", 3))
    <ErrorCategory.CONFLICT: 'conflict'>

    """
    if isinstance(exc, ProviderAPIError):
        if exc.status_code is None or exc.status_code >= _HTTP_SERVER_ERROR_THRESHOLD:
            return ErrorCategory.TRANSIENT
        return ErrorCategory.PROVIDER

    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category

    return ErrorCategory.UNKNOWN


__all__ = ["ConfigurationError", "ErrorCategory", "categorize_error"]
