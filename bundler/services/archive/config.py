"""Configuration for archive writing."""

import zipfile
from dataclasses import dataclass
from pathlib import Path

from bundler.services.errors import ConfigError

COMPRESSION_METHODS = {
    "stored": zipfile.ZIP_STORED,
    "deflated": zipfile.ZIP_DEFLATED,
}


@dataclass
class ArchiveConfig:
    """Configuration for local archive files.

    Attributes:
        work_dir: Directory the archive file is created in
        name_prefix: Prefix for generated archive names
        compression: "stored" (no compression) or "deflated"
    """

    work_dir: Path = Path("downloads")
    name_prefix: str = "out_"
    compression: str = "stored"

    def __post_init__(self):
        """Validate configuration."""
        self.work_dir = Path(self.work_dir)
        if self.compression not in COMPRESSION_METHODS:
            raise ConfigError(
                f"Invalid compression: {self.compression}. Must be 'stored' or 'deflated'"
            )
        if "/" in self.name_prefix or "\\" in self.name_prefix:
            raise ConfigError(f"Archive prefix must not contain path separators: {self.name_prefix}")

    @property
    def compress_type(self) -> int:
        return COMPRESSION_METHODS[self.compression]
