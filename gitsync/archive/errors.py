"""Archive extraction errors."""

from __future__ import annotations


class ArchiveExtractionError(RuntimeError):
    """Raised when an artifact archive cannot be materialised on disk."""

    @classmethod
    def missing_destination(cls, destination: str) -> ArchiveExtractionError:
        """Return an error for a destination directory that does not exist."""
        return cls(f"extraction destination does not exist: {destination}")

    @classmethod
    def unsupported_compression(cls, kind: str) -> ArchiveExtractionError:
        """Return an error for a recognised but unsupported compression format."""
        return cls(f"unsupported artifact compression: {kind}")


class PathTraversalError(ArchiveExtractionError):
    """Raised when an archive entry would be written outside the destination."""

    def __init__(self, member: str) -> None:
        """Initialise with the offending archive member name."""
        self.member = member
        super().__init__(f"illegal file path in archive: {member}")
