"""Artifact archive handling: decompression and safe tar extraction."""

from __future__ import annotations

from .errors import ArchiveExtractionError, PathTraversalError
from .extract import ExtractionSummary, extract_tar, open_decompressed

__all__ = [
    "ArchiveExtractionError",
    "ExtractionSummary",
    "PathTraversalError",
    "extract_tar",
    "open_decompressed",
]
