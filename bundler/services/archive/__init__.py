"""Archive service: a single-writer zip container per run.

Example usage:
    >>> from bundler.services.archive import ArchiveConfig, ZipArchiveWriter
    >>>
    >>> with ZipArchiveWriter.open(ArchiveConfig(work_dir=Path("downloads"))) as writer:
    ...     writer.write_entry("index.html", b"<html></html>")
    ...     with writer.begin_entry("a.png") as sink:
    ...         sink.write(png_bytes)
    ...     sealed = writer.close()
"""

from .config import ArchiveConfig
from .models import SealedArchive
from .zip_writer import EntrySink, ZipArchiveWriter, validate_entry_name

__all__ = [
    "ArchiveConfig",
    "SealedArchive",
    "EntrySink",
    "ZipArchiveWriter",
    "validate_entry_name",
]
