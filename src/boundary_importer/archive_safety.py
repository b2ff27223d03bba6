"""Bounded reading of boundary containers.

``BoundedZipReader`` exposes the entries of a zip container one at a time
and protects the importer against hostile archives:

- Too many entries (``max_entries``): fails on the first entry past the limit.
- Decompression bombs (``max_total_bytes``): the decompressed bytes read
  across the whole archive are counted, and a read fails as soon as it
  would push the running total over the limit.
- Path traversal: an entry whose path is absolute or leaves the archive
  root fails before any of its bytes are read.
"""

from __future__ import annotations

import io
import logging
import posixpath
import zipfile
import zlib
from collections.abc import Iterator
from typing import IO

from boundary_importer.exceptions import (
    ArchiveFormatError,
    PathTraversalError,
    ResourceLimitExceededError,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 100
DEFAULT_MAX_TOTAL_BYTES = 1_000_000_000

CHUNK_SIZE = 1024 * 1024  # 1 MB chunks


def is_path_safe(member_path: str) -> tuple[bool, str | None]:
    """Check that an archive entry path stays inside the archive's own namespace.

    Args:
        member_path: The path from the archive entry

    Returns:
        Tuple of (is_safe, error_reason)
    """
    if "\x00" in member_path:
        return False, f"null_byte:{member_path!r}"

    unified = member_path.replace("\\", "/")

    # Check for absolute paths (posix root or windows drive)
    if unified.startswith("/") or (len(unified) > 1 and unified[1] == ":"):
        return False, f"absolute_path:{member_path}"

    normalized = posixpath.normpath(unified)
    if normalized == ".." or normalized.startswith("../"):
        return False, f"path_traversal:{member_path}"

    return True, None


class _BoundedEntryStream(io.RawIOBase):
    """Readable stream over one entry, charging every read to the archive budget."""

    def __init__(self, reader: BoundedZipReader, name: str, raw: IO[bytes], declared_size: int) -> None:
        super().__init__()
        self._reader = reader
        self._name = name
        self._raw = raw
        self._declared_remaining = max(declared_size, 0)

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            return self.readall()
        if size == 0:
            return b""
        # A declared size lower than the real one is caught by the post-read check.
        expected = min(size, self._declared_remaining)
        self._reader._check_before_read(expected, self._name)
        try:
            chunk = self._raw.read(size)
        except (zipfile.BadZipFile, zlib.error, EOFError) as exc:
            raise ArchiveFormatError(
                f"Corrupt archive entry {self._name}: {exc}",
                context={"entry": self._name},
            ) from exc
        self._declared_remaining = max(self._declared_remaining - len(chunk), 0)
        self._reader._record_read(len(chunk), self._name)
        return chunk

    def readinto(self, buffer: bytearray | memoryview) -> int:
        chunk = self.read(len(buffer))
        buffer[: len(chunk)] = chunk
        return len(chunk)

    def readall(self) -> bytes:
        parts: list[bytes] = []
        while True:
            # Never ask for more than one byte past the remaining budget.
            size = min(CHUNK_SIZE, self._reader.remaining_bytes + 1)
            chunk = self.read(size)
            if not chunk:
                break
            parts.append(chunk)
        return b"".join(parts)

    def close(self) -> None:
        if not self.closed:
            self._raw.close()
        super().close()


class BoundedZipReader:
    """Forward-only, limit-enforcing view over a zip container.

    Usage::

        with BoundedZipReader(io.BytesIO(data)) as reader:
            for entry in reader:
                content = reader.read_entry(entry)

    The reader owns ``source``: closing the reader closes it exactly once,
    whether iteration completed, stopped early or failed.
    """

    def __init__(
        self,
        source: IO[bytes],
        *,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        max_total_bytes: int = DEFAULT_MAX_TOTAL_BYTES,
    ) -> None:
        self.max_entries = max_entries
        self.max_total_bytes = max_total_bytes
        self.entry_count = 0
        self.total_read_bytes = 0
        self._source = source
        self._closed = False
        self._entries: Iterator[zipfile.ZipInfo] | None = None
        try:
            self._zip = zipfile.ZipFile(source, "r")
        except (zipfile.BadZipFile, OSError, ValueError) as exc:
            self.close()
            raise ArchiveFormatError(f"Not a readable zip archive: {exc}") from exc

    @property
    def remaining_bytes(self) -> int:
        return max(self.max_total_bytes - self.total_read_bytes, 0)

    def __enter__(self) -> BoundedZipReader:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def __iter__(self) -> Iterator[zipfile.ZipInfo]:
        while True:
            entry = self.next_entry()
            if entry is None:
                return
            yield entry

    def next_entry(self) -> zipfile.ZipInfo | None:
        """Advance to the next entry, or return None at the end of the archive.

        Raises:
            ResourceLimitExceededError: The archive holds more than ``max_entries`` entries.
            PathTraversalError: The entry path leaves the archive namespace.
        """
        if self._closed:
            raise ValueError("reader is closed")
        if self._entries is None:
            self._entries = iter(self._zip.infolist())
        entry = next(self._entries, None)
        if entry is None:
            return None
        self.entry_count += 1
        if self.entry_count > self.max_entries:
            raise ResourceLimitExceededError(
                "Zip has too many entries.",
                context={"limit": self.max_entries, "observed": self.entry_count},
            )
        is_safe, reason = is_path_safe(entry.filename)
        if not is_safe:
            raise PathTraversalError(
                f"Entry is trying to leave the target dir: {entry.filename}",
                context={"entry": entry.filename, "reason": reason},
            )
        return entry

    def open_entry(self, entry: zipfile.ZipInfo) -> _BoundedEntryStream:
        try:
            raw = self._zip.open(entry, "r")
        except (zipfile.BadZipFile, NotImplementedError, RuntimeError) as exc:
            raise ArchiveFormatError(
                f"Cannot open archive entry {entry.filename}: {exc}",
                context={"entry": entry.filename},
            ) from exc
        return _BoundedEntryStream(self, entry.filename, raw, entry.file_size)

    def read_entry(self, entry: zipfile.ZipInfo) -> bytes:
        with self.open_entry(entry) as stream:
            return stream.readall()

    def _check_before_read(self, requested: int, name: str) -> None:
        if requested + self.total_read_bytes > self.max_total_bytes:
            raise ResourceLimitExceededError(
                "Zip size is too big.",
                context={
                    "entry": name,
                    "limit": self.max_total_bytes,
                    "observed": requested + self.total_read_bytes,
                },
            )

    def _record_read(self, count: int, name: str) -> None:
        self.total_read_bytes += count
        if self.total_read_bytes > self.max_total_bytes:
            raise ResourceLimitExceededError(
                "Zip size is too big.",
                context={
                    "entry": name,
                    "limit": self.max_total_bytes,
                    "observed": self.total_read_bytes,
                },
            )

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            zf = getattr(self, "_zip", None)
            if zf is not None:
                zf.close()
        finally:
            self._source.close()
        logger.debug(
            "Closed archive reader: entries=%d bytes=%d", self.entry_count, self.total_read_bytes
        )
