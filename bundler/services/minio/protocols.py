"""Protocol for the object store the bundler talks to.

Lets tests swap in an in-memory store and keeps the orchestrator free of
SDK types.
"""

from datetime import timedelta
from pathlib import Path
from typing import Iterator, Protocol


class ObjectStore(Protocol):
    """Operations the bundler needs from a bucket-bound store client."""

    bucket: str

    def iter_object(self, path: str, chunk_size: int = 64 * 1024) -> Iterator[bytes]:
        """Stream an object's bytes."""
        ...

    def put_file(
        self,
        path: str,
        file_path: Path,
        content_type: str = "application/octet-stream",
    ) -> str:
        """Upload a local file as one object."""
        ...

    def presign_get(self, path: str, expires: timedelta) -> str:
        """Issue a time-bounded GET URL."""
        ...

    def exists(self, path: str) -> bool:
        """Check if an object exists."""
        ...

    def list_keys(self, prefix: str = "") -> list[str]:
        """List object names under a prefix."""
        ...
