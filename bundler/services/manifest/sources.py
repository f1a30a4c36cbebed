"""Manifest sources.

Each source yields object keys in a stable order. Sources only read; they
never create directories, buckets or files.
"""

from pathlib import Path
from typing import Iterable, Protocol

from bundler.services.minio import ObjectStore


class ManifestSource(Protocol):
    """Anything that can enumerate object keys in order."""

    def list_keys(self) -> Iterable[str]:
        """Return keys in source order."""
        ...

    def describe(self) -> str:
        """Short description for logs and reports."""
        ...


class DirectoryManifestSource:
    """Keys are the names of regular files in a local directory, sorted."""

    def __init__(self, path: Path, include_hidden: bool = False):
        self.path = Path(path)
        self.include_hidden = include_hidden

    def list_keys(self) -> list[str]:
        # iterdir() on a missing path only fails once iterated
        names = [
            entry.name
            for entry in self.path.iterdir()
            if entry.is_file() and (self.include_hidden or not entry.name.startswith("."))
        ]
        return sorted(names)

    def describe(self) -> str:
        return f"directory:{self.path}"


class BucketManifestSource:
    """Keys are object names listed from a bucket, in listing order."""

    def __init__(self, store: ObjectStore, prefix: str = ""):
        self.store = store
        self.prefix = prefix

    def list_keys(self) -> list[str]:
        return self.store.list_keys(self.prefix)

    def describe(self) -> str:
        return f"bucket:{self.store.bucket}/{self.prefix}"


class KeysFileManifestSource:
    """Keys are read from a text file, one per line.

    Blank lines and lines starting with ``#`` are ignored. Surrounding
    whitespace is stripped.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def list_keys(self) -> list[str]:
        keys = []
        with open(self.path, encoding="utf-8") as f:
            for line in f:
                key = line.strip()
                if key and not key.startswith("#"):
                    keys.append(key)
        return keys

    def describe(self) -> str:
        return f"file:{self.path}"


class StaticManifestSource:
    """Keys supplied directly by the caller."""

    def __init__(self, keys: Iterable[str]):
        self.keys = list(keys)

    def list_keys(self) -> list[str]:
        return list(self.keys)

    def describe(self) -> str:
        return "explicit"
