"""Errors shared across gitsync packages."""

from __future__ import annotations

from gitsync.conditions import Reason


class ConfigurationError(ValueError):
    """Raised when an object's spec cannot be acted on as written.

    Configuration errors are terminal for the current generation: retrying
    without a spec change cannot succeed, so reconcilers mark the object
    Stalled with :attr:`reason`.
    """

    def __init__(
        self, message: str, *, reason: str = Reason.INVALID_CONFIGURATION
    ) -> None:
        """Initialise with a message and the condition reason to report."""
        self.reason = reason
        super().__init__(message)

    @classmethod
    def invalid_policy(cls, value: str) -> ConfigurationError:
        """Return an error for an unknown existing-repository policy."""
        return cls(
            f"unknown repository policy {value!r}; expected 'adopt' or 'fail'",
            reason=Reason.INVALID_REPOSITORY_POLICY,
        )

    @classmethod
    def invalid_visibility(cls, value: str) -> ConfigurationError:
        """Return an error for an unknown repository visibility."""
        return cls(
            f"unknown repository visibility {value!r}; "
            "expected 'public', 'private' or 'internal'",
        )

    @classmethod
    def target_branch_missing(cls) -> ConfigurationError:
        """Return an error for a sync with no branch to push to."""
        return cls(
            "targetBranch must be set when automatic pull request creation "
            "is disabled",
            reason=Reason.TARGET_BRANCH_MISSING,
        )

    @classmethod
    def pull_request_onto_base(cls, branch: str) -> ConfigurationError:
        """Return an error for a pull request whose head and base coincide."""
        return cls(
            f"target branch {branch!r} equals the base branch; a pull request "
            "needs distinct branches",
            reason=Reason.TARGET_BRANCH_MISSING,
        )
