"""Zip archive writer.

Owns exactly one zip file for the lifetime of a run. Entries are appended
one at a time; nothing is visible to readers until ``close()`` seals the
file.
"""

import hashlib
import logging
import zipfile
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Callable, Iterator, Optional

from bundler.services.errors import (
    ArchiveStateError,
    AssemblyError,
    EntryConflictError,
    SealError,
)

from .config import ArchiveConfig
from .models import SealedArchive

logger = logging.getLogger(__name__)

# Zip timestamps cannot represent anything before 1980
ZIP_EPOCH = datetime(1980, 1, 1)

MAX_NAME_ATTEMPTS = 100


def _zip_timestamp(moment: datetime) -> tuple[int, int, int, int, int, int]:
    if moment.tzinfo is not None:
        moment = moment.astimezone().replace(tzinfo=None)
    moment = max(moment, ZIP_EPOCH)
    return (moment.year, moment.month, moment.day, moment.hour, moment.minute, moment.second)


def _file_sha256(path: Path) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(1024 * 1024), b""):
            digest.update(block)
    return digest.hexdigest()


def validate_entry_name(name: str) -> None:
    """Check that a key can be used as a zip entry name.

    Raises:
        EntryConflictError: If the name is empty, absolute, a directory,
            or escapes the archive root
    """
    if not name:
        raise EntryConflictError(name, "empty entry name")
    if "\x00" in name:
        raise EntryConflictError(name, "entry name contains NUL")
    if name.startswith("/") or name.endswith("/"):
        raise EntryConflictError(name, "entry name must be a relative file path")
    if ".." in name.replace("\\", "/").split("/"):
        raise EntryConflictError(name, "entry name must not contain '..' segments")


class EntrySink:
    """Write-only handle for a single archive entry."""

    def __init__(self, name: str, handle: BinaryIO):
        self.name = name
        self._handle = handle
        self.bytes_written = 0

    def write(self, data: bytes) -> int:
        written = self._handle.write(data)
        self.bytes_written += written
        return written


class ZipArchiveWriter:
    """Single-writer zip container.

    Lifecycle: ``open()`` → any number of ``begin_entry()`` blocks →
    ``close()``. Used as a context manager, the partial file is removed if
    the block raises before the archive is sealed.
    """

    def __init__(
        self,
        path: Path,
        handle: BinaryIO,
        compress_type: int = zipfile.ZIP_STORED,
        clock: Callable[[], datetime] = datetime.now,
        created_at: Optional[datetime] = None,
    ):
        self.path = path
        self.name = path.name
        self.created_at = created_at or clock()
        self._clock = clock
        self._compress_type = compress_type
        self._file = handle
        self._zip = zipfile.ZipFile(handle, mode="w", compression=compress_type)
        self._reserved: set[str] = set()
        self._written: list[str] = []
        self._entry_open = False
        self._sealed = False
        self._discarded = False

    @classmethod
    def open(
        cls,
        config: ArchiveConfig,
        clock: Callable[[], datetime] = datetime.now,
    ) -> "ZipArchiveWriter":
        """Create a new, empty archive in the configured work directory.

        The name is derived from the creation time. If that name is already
        taken, a numeric suffix is appended.

        Raises:
            AssemblyError: If the directory or file cannot be created
        """
        created_at = clock()
        stem = f"{config.name_prefix}{int(created_at.timestamp())}"
        try:
            config.work_dir.mkdir(parents=True, exist_ok=True)
            for attempt in range(MAX_NAME_ATTEMPTS):
                name = f"{stem}.zip" if attempt == 0 else f"{stem}_{attempt}.zip"
                path = config.work_dir / name
                try:
                    handle = open(path, "xb")
                except FileExistsError:
                    continue
                logger.debug(f"Opened archive {path}")
                return cls(
                    path,
                    handle,
                    compress_type=config.compress_type,
                    clock=clock,
                    created_at=created_at,
                )
        except OSError as e:
            raise AssemblyError(f"Cannot create archive in {config.work_dir}: {e}") from e

        raise AssemblyError(f"No free archive name for {stem} in {config.work_dir}")

    # =========================================================================
    # State
    # =========================================================================

    @property
    def is_sealed(self) -> bool:
        return self._sealed

    @property
    def entry_names(self) -> tuple[str, ...]:
        return tuple(self._written)

    def _require_open(self) -> None:
        if self._sealed or self._discarded:
            raise ArchiveStateError(f"Archive {self.name} no longer accepts entries")

    # =========================================================================
    # Entries
    # =========================================================================

    def reserve(self, name: str) -> None:
        """Claim an entry name without writing it yet.

        Raises:
            EntryConflictError: If the name is invalid or already claimed
            ArchiveStateError: If the archive is sealed
        """
        self._require_open()
        validate_entry_name(name)
        if name in self._reserved:
            raise EntryConflictError(name, f"entry already exists in {self.name}")
        self._reserved.add(name)

    def release(self, name: str) -> None:
        """Drop a reservation that was never written."""
        if name not in self._written:
            self._reserved.discard(name)

    @contextmanager
    def begin_entry(self, name: str, modified: Optional[datetime] = None) -> Iterator[EntrySink]:
        """Open an entry for writing.

        A name claimed with ``reserve()`` may be opened once. Unreserved
        names are reserved here. The entry is finalized when the block
        exits, even if it raises, so a failed write leaves whatever bytes
        made it in.

        Raises:
            EntryConflictError: If the name is invalid or already written
            ArchiveStateError: If sealed, or another entry is still open
            AssemblyError: If the local file cannot be written
        """
        self._require_open()
        if self._entry_open:
            raise ArchiveStateError(f"Another entry is still open in {self.name}")
        if name in self._written:
            raise EntryConflictError(name, f"entry already exists in {self.name}")
        if name not in self._reserved:
            self.reserve(name)

        info = zipfile.ZipInfo(name, date_time=_zip_timestamp(modified or self._clock()))
        info.compress_type = self._compress_type
        info.external_attr = 0o644 << 16
        try:
            handle = self._zip.open(info, mode="w", force_zip64=True)
        except OSError as e:
            self._reserved.discard(name)
            raise AssemblyError(f"Cannot open entry {name} in {self.name}: {e}") from e

        self._entry_open = True
        self._written.append(name)
        sink = EntrySink(name, handle)
        try:
            yield sink
        finally:
            self._entry_open = False
            try:
                handle.close()
            except OSError as e:
                raise AssemblyError(f"Cannot finish entry {name} in {self.name}: {e}") from e

    def write_entry(self, name: str, data: bytes, modified: Optional[datetime] = None) -> int:
        """Write a whole entry from memory.

        Returns:
            Number of bytes written
        """
        with self.begin_entry(name, modified) as sink:
            return sink.write(data)

    # =========================================================================
    # Sealing
    # =========================================================================

    def close(self) -> SealedArchive:
        """Seal the archive.

        Returns:
            SealedArchive describing the finished file

        Raises:
            ArchiveStateError: If already sealed or an entry is still open
            SealError: If the central directory cannot be written
        """
        self._require_open()
        if self._entry_open:
            raise ArchiveStateError(f"Cannot seal {self.name} while an entry is open")

        try:
            self._zip.close()
            self._file.close()
            size_bytes = self.path.stat().st_size
            sha256 = _file_sha256(self.path)
        except (OSError, ValueError) as e:
            raise SealError(f"Cannot seal archive {self.name}: {e}") from e

        self._sealed = True
        logger.debug(f"Sealed archive {self.path} ({len(self._written)} entries, {size_bytes} bytes)")
        return SealedArchive(
            name=self.name,
            path=self.path,
            size_bytes=size_bytes,
            sha256=sha256,
            entry_names=tuple(self._written),
            created_at=self.created_at,
        )

    def discard(self) -> None:
        """Abandon an unsealed archive and delete its file."""
        if self._sealed or self._discarded:
            return
        self._discarded = True
        try:
            self._zip.close()
        except (OSError, ValueError) as e:
            logger.warning(f"Error closing abandoned archive {self.name}: {e}")
        self._file.close()
        self.path.unlink(missing_ok=True)
        logger.info(f"Discarded unsealed archive {self.path}")

    def __enter__(self) -> "ZipArchiveWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None and not self._sealed:
            self.discard()
