"""Pipeline data models.

Defines the values a run produces:
- RunStage: Where the linear state machine is
- KeyResult: Outcome for one manifest key
- RunReport: Everything a caller needs to know about a run
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from bundler.services.publisher import AccessLink


class RunStage(str, Enum):
    """Stage of a bundle run."""

    INIT = "init"
    RESOLVE = "resolve"
    ASSEMBLE = "assemble"
    SEAL = "seal"
    PERSIST = "persist"
    PUBLISH = "publish"
    DONE = "done"
    FAILED = "failed"


class EntryStatus(str, Enum):
    """Outcome of adding one key to the archive."""

    WRITTEN = "written"
    SKIPPED = "skipped"
    FAILED = "failed"


class FetchFailurePolicy(str, Enum):
    """What to leave in the archive when a key's fetch fails."""

    KEEP_EMPTY = "keep_empty"
    OMIT = "omit"


class KeyResult(BaseModel):
    """Result of adding one manifest key to the archive.

    Attributes:
        key: Manifest key
        status: written, skipped (entry could not be opened, no fetch) or
            failed (fetch failed)
        entry_written: Whether an entry for the key exists in the archive
        bytes_written: Bytes in the entry
        error: Error message if skipped or failed
    """

    key: str
    status: EntryStatus
    entry_written: bool = False
    bytes_written: int = 0
    error: Optional[str] = None

    @classmethod
    def written(cls, key: str, bytes_written: int) -> "KeyResult":
        """Create a successful result."""
        return cls(key=key, status=EntryStatus.WRITTEN, entry_written=True, bytes_written=bytes_written)

    @classmethod
    def skipped(cls, key: str, error: str) -> "KeyResult":
        """Create a result for a key whose entry could not be opened."""
        return cls(key=key, status=EntryStatus.SKIPPED, error=error)

    @classmethod
    def failed(
        cls,
        key: str,
        error: str,
        entry_written: bool = False,
        bytes_written: int = 0,
    ) -> "KeyResult":
        """Create a result for a key whose fetch failed."""
        return cls(
            key=key,
            status=EntryStatus.FAILED,
            entry_written=entry_written,
            bytes_written=bytes_written,
            error=error,
        )


class RunReport(BaseModel):
    """Report for one bundle run."""

    run_id: str
    stage: RunStage = RunStage.INIT
    failed_stage: Optional[RunStage] = None
    started_at: datetime
    completed_at: Optional[datetime] = None
    manifest_source: Optional[str] = None
    manifest_keys: list[str] = []
    index_entry: Optional[str] = None
    archive_name: Optional[str] = None
    archive_path: Optional[Path] = None
    archive_size_bytes: int = 0
    archive_sha256: Optional[str] = None
    object_name: Optional[str] = None
    link: Optional[AccessLink] = None
    items: list[KeyResult] = []
    error: Optional[str] = None

    def _with_status(self, status: EntryStatus) -> list[KeyResult]:
        return [item for item in self.items if item.status == status]

    @property
    def written(self) -> list[KeyResult]:
        return self._with_status(EntryStatus.WRITTEN)

    @property
    def skipped(self) -> list[KeyResult]:
        return self._with_status(EntryStatus.SKIPPED)

    @property
    def failed(self) -> list[KeyResult]:
        return self._with_status(EntryStatus.FAILED)

    @property
    def succeeded(self) -> bool:
        return self.stage == RunStage.DONE

    def summary(self) -> str:
        """One-line summary for logs and the CLI."""
        return (
            f"{len(self.manifest_keys)} keys: {len(self.written)} written, "
            f"{len(self.skipped)} skipped, {len(self.failed)} failed"
        )
