"""Error taxonomy for bundler runs.

Two families matter to the orchestrator:

- ``FatalError``: aborts the run. Resolution, assembly, seal, persist and
  publish failures all land here.
- ``ItemError``: scoped to a single manifest key. Recorded in the run
  report and logged; the run moves on to the next key.
"""

from typing import Optional


class BundlerError(Exception):
    """Base class for all bundler errors."""


class ConfigError(BundlerError, ValueError):
    """Invalid configuration value."""


class TemplateError(BundlerError):
    """Index template could not be loaded or compiled."""


class ArchiveStateError(BundlerError):
    """Archive writer used in the wrong state (e.g. after sealing)."""


# =============================================================================
# Fatal errors
# =============================================================================


class FatalError(BundlerError):
    """Error that terminates a run.

    Attributes:
        stage: Pipeline stage that failed (set by the orchestrator)
        report: Partial run report (set by the orchestrator)
    """

    stage: Optional[str] = None
    report = None


class ResolutionError(FatalError):
    """Manifest source is unreadable or absent."""


class AssemblyError(FatalError):
    """Archive could not be created, or a local write into it failed."""


class SealError(FatalError):
    """Archive could not be finalized."""


class PersistError(FatalError):
    """Sealed archive could not be uploaded."""


class PublishError(FatalError):
    """Access link could not be issued."""


# =============================================================================
# Per-key errors
# =============================================================================


class ItemError(BundlerError):
    """Error scoped to one manifest key."""

    def __init__(self, key: str, message: str):
        super().__init__(f"{key}: {message}")
        self.key = key


class EntryConflictError(ItemError):
    """Entry name is invalid or already used in the archive."""


class FetchError(ItemError):
    """Object is missing from the source bucket or could not be read."""
