"""Collect-and-republish pipeline.

Resolves a manifest, streams each object into a zip archive behind a
generated index page, uploads the archive and issues a presigned link.

Usage:
    from bundler.lib.config_manager import ConfigManager
    from bundler.services.minio import MinIOConfig
    from bundler.services.pipeline import BundleConfig, create_pipeline

    manager = ConfigManager()
    pipeline = create_pipeline(
        BundleConfig.from_config(manager),
        MinIOConfig.from_config(manager),
        directory=Path("images"),
    )
    report = pipeline.run()
    print(report.link.url)
"""

from .models import (
    EntryStatus,
    FetchFailurePolicy,
    KeyResult,
    RunReport,
    RunStage,
)
from .config import BundleConfig
from .runner import BundlePipeline, run_bundle
from .factory import create_pipeline, create_publisher, select_manifest_source

__all__ = [
    # Models
    "EntryStatus",
    "FetchFailurePolicy",
    "KeyResult",
    "RunReport",
    "RunStage",
    # Configuration
    "BundleConfig",
    # Runner
    "BundlePipeline",
    "run_bundle",
    # Factories
    "create_pipeline",
    "create_publisher",
    "select_manifest_source",
]
