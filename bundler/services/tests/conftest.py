"""Shared pytest fixtures for bundler service tests."""

import tempfile
from pathlib import Path

import pytest

from bundler.services.archive import ArchiveConfig
from bundler.services.manifest import StaticManifestSource
from bundler.services.pipeline import BundleConfig, BundlePipeline
from bundler.services.publisher import AccessPublisher
from bundler.services.tests.fakes import FIXED_NOW, PNG_A, PNG_B, FakeObjectStore


@pytest.fixture
def temp_dir():
    """Temporary directory for tests.

    Automatically cleaned up after test completes.
    """
    with tempfile.TemporaryDirectory(ignore_cleanup_errors=True) as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fixed_clock():
    """Clock that always returns the same instant."""
    return lambda: FIXED_NOW


@pytest.fixture
def source_store():
    """Source bucket seeded with two images."""
    return FakeObjectStore("images", {"a.png": PNG_A, "b.png": PNG_B})


@pytest.fixture
def destination_store():
    """Empty destination bucket."""
    return FakeObjectStore("uploads")


@pytest.fixture
def bundle_config(temp_dir):
    """Bundle config writing archives under the temp dir."""
    return BundleConfig(
        source_bucket="images",
        destination_bucket="uploads",
        archive=ArchiveConfig(work_dir=temp_dir / "downloads"),
        chunk_size=128,
    )


@pytest.fixture
def make_pipeline(bundle_config, source_store, destination_store, fixed_clock):
    """Factory for pipelines over the fake stores.

    Usage:
        pipeline = make_pipeline(["a.png", "b.png"])
        pipeline = make_pipeline(source=custom_source, config=custom_config)
    """

    def _make(keys=None, source=None, config=None, manifest_source=None, renderer=None):
        config = config or bundle_config
        return BundlePipeline(
            config,
            source=source or source_store,
            publisher=AccessPublisher(destination_store, ttl=config.link_ttl),
            manifest_source=manifest_source or StaticManifestSource(keys or []),
            renderer=renderer,
            clock=fixed_clock,
        )

    return _make
