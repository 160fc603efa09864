"""Stream tar archives into a directory without escaping it.

Snapshot blobs arrive as tar archives, optionally wrapped in a compression
envelope. :func:`open_decompressed` strips the envelope by sniffing magic
bytes, and :func:`extract_tar` writes directories and regular files beneath a
destination directory. Every entry is resolved against the real path of the
destination before anything is written, so neither ``..`` components nor
symlinks already present in the working tree can redirect a write elsewhere.

Regular files are streamed in full with no size cap: artifacts can be image
layers in the gigabyte range and there is no meaningful limit to pick.
"""

from __future__ import annotations

import bz2
import dataclasses
import gzip
import io
import lzma
import os
import shutil
import tarfile
import typing as typ
import zlib
from pathlib import Path

from gitsync.logging import get_logger, log_debug, log_warning

from .errors import ArchiveExtractionError, PathTraversalError

logger = get_logger(__name__)

_GZIP_MAGIC = b"\x1f\x8b"
_BZIP2_MAGIC = b"BZh"
_XZ_MAGIC = b"\xfd7zXZ\x00"
_ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"

_MODE_MASK = 0o7777
_COPY_BUFFER_SIZE = 1024 * 1024


@dataclasses.dataclass(frozen=True, slots=True)
class ExtractionSummary:
    """Counts of what an extraction wrote and what it skipped."""

    directories: int = 0
    files: int = 0
    skipped: tuple[str, ...] = ()


def open_decompressed(data: bytes) -> typ.BinaryIO:
    """Return a readable stream over ``data`` with any compression removed.

    gzip, bzip2 and xz envelopes are detected from their magic bytes and
    decoded lazily. Data without a recognised envelope is returned as-is.

    Raises
    ------
    ArchiveExtractionError
        If the data is zstd-compressed, which the standard library cannot
        decode.

    """
    raw = io.BytesIO(data)
    if data.startswith(_GZIP_MAGIC):
        return typ.cast("typ.BinaryIO", gzip.GzipFile(fileobj=raw, mode="rb"))
    if data.startswith(_BZIP2_MAGIC):
        return typ.cast("typ.BinaryIO", bz2.BZ2File(raw, mode="rb"))
    if data.startswith(_XZ_MAGIC):
        return typ.cast("typ.BinaryIO", lzma.LZMAFile(raw, mode="rb"))
    if data.startswith(_ZSTD_MAGIC):
        raise ArchiveExtractionError.unsupported_compression("zstd")
    return raw


def _resolve_member_path(root: str, member: str) -> str:
    """Join ``member`` onto ``root`` and refuse anything that lands outside it."""
    if os.path.isabs(member):
        raise PathTraversalError(member)
    candidate = os.path.realpath(os.path.join(root, member))
    if os.path.commonpath([root, candidate]) != root:
        raise PathTraversalError(member)
    return candidate


def _write_file(
    archive: tarfile.TarFile, member: tarfile.TarInfo, target: str
) -> None:
    source = archive.extractfile(member)
    if source is None:
        msg = f"unable to read archive member {member.name}"
        raise ArchiveExtractionError(msg)

    os.makedirs(os.path.dirname(target), exist_ok=True)
    flags = os.O_WRONLY | os.O_CREAT | os.O_TRUNC
    try:
        fd = os.open(target, flags, member.mode & _MODE_MASK)
    except OSError as exc:
        msg = f"unable to open file {member.name}: {exc}"
        raise ArchiveExtractionError(msg) from exc

    try:
        with os.fdopen(fd, "wb") as sink, source:
            shutil.copyfileobj(source, sink, _COPY_BUFFER_SIZE)
    except OSError as exc:
        msg = f"unable to copy {member.name} to filesystem: {exc}"
        raise ArchiveExtractionError(msg) from exc


def extract_tar(stream: typ.BinaryIO, destination: Path | str) -> ExtractionSummary:
    """Extract the tar archive in ``stream`` beneath ``destination``.

    Parameters
    ----------
    stream
        Readable, already-decompressed tar byte stream. It is consumed to EOF
        or to the first error; the call is not restartable.
    destination
        Existing directory that receives the archive contents.

    Returns
    -------
    ExtractionSummary
        Numbers of directories and files written plus the names of skipped
        entries. Symlinks, hardlinks, devices and FIFOs are never written.

    Raises
    ------
    PathTraversalError
        If an entry resolves outside ``destination``. Nothing further is
        written once this is raised.
    ArchiveExtractionError
        If the destination is missing, the archive is malformed, or a write
        fails.

    """
    root_path = Path(destination)
    if not root_path.is_dir():
        raise ArchiveExtractionError.missing_destination(str(root_path))
    root = os.path.realpath(root_path)

    directories = 0
    files = 0
    skipped: list[str] = []

    try:
        with tarfile.open(fileobj=stream, mode="r|") as archive:
            for member in archive:
                target = _resolve_member_path(root, member.name)
                if member.isdir():
                    try:
                        os.makedirs(
                            target, mode=member.mode & _MODE_MASK, exist_ok=True
                        )
                    except OSError as exc:
                        msg = f"unable to create directory {member.name}: {exc}"
                        raise ArchiveExtractionError(msg) from exc
                    directories += 1
                elif member.isreg():
                    _write_file(archive, member, target)
                    files += 1
                else:
                    log_warning(
                        logger,
                        "Skipping non-regular archive entry %s (type %r)",
                        member.name,
                        member.type,
                    )
                    skipped.append(member.name)
    except (
        tarfile.TarError, EOFError, OSError, lzma.LZMAError, zlib.error
    ) as exc:
        msg = f"malformed artifact archive: {exc}"
        raise ArchiveExtractionError(msg) from exc

    log_debug(
        logger,
        "Extracted archive into %s: directories=%d files=%d skipped=%d",
        root,
        directories,
        files,
        len(skipped),
    )
    return ExtractionSummary(
        directories=directories, files=files, skipped=tuple(skipped)
    )
