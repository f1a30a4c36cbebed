"""Manifest data model."""

from dataclasses import dataclass
from typing import Iterator


@dataclass(frozen=True)
class Manifest:
    """Ordered, immutable list of object keys for one run.

    Duplicates are kept; order drives both the index page and the order
    entries are created in the archive.

    Attributes:
        keys: Object keys in source order
        source: Human-readable description of where the keys came from
    """

    keys: tuple[str, ...]
    source: str = "explicit"

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys)

    def __len__(self) -> int:
        return len(self.keys)
