"""Archive data models."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path


@dataclass(frozen=True)
class SealedArchive:
    """A finished archive file, safe to read and upload.

    Attributes:
        name: Generated file name (e.g. "out_1700000000.zip")
        path: Local path of the archive file
        size_bytes: File size after sealing
        sha256: Hex digest of the file contents
        entry_names: Entry names in the order they were written
        created_at: When the archive was opened
    """

    name: str
    path: Path
    size_bytes: int
    sha256: str
    entry_names: tuple[str, ...] = field(default_factory=tuple)
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def entry_count(self) -> int:
        return len(self.entry_names)
