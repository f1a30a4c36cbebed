"""Fixtures for CLI tests.

Every command builds its own ConfigManager, so tests control it through
the environment. MinIO is replaced by the in-memory fakes.
"""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from bundler.lib.defaults import DEFAULTS
from bundler.lib.logging_config import RunIdFilter
from bundler.services.tests.fakes import PNG_A, PNG_B, FakeObjectStore


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Clean environment rooted in a temporary working directory."""
    for key in DEFAULTS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("WORK_DIR", str(tmp_path / "downloads"))
    monkeypatch.setattr("bundler.cli.main.setup_logging", lambda *args, **kwargs: RunIdFilter())
    return Path(tmp_path)


@pytest.fixture
def stores(workspace, monkeypatch):
    """Fake source and destination buckets wired into the CLI.

    Returns:
        (source, destination, calls) where calls records the bucket
        names each command asked for
    """
    source = FakeObjectStore("images", {"a.png": PNG_A, "b.png": PNG_B})
    destination = FakeObjectStore("uploads")
    calls = []

    def fake_bucket_pair(config, source_bucket, destination_bucket, ensure_destination=False):
        calls.append((source_bucket, destination_bucket))
        return source, destination

    monkeypatch.setattr("bundler.cli.main.create_bucket_pair", fake_bucket_pair)
    monkeypatch.setattr("bundler.services.pipeline.factory.create_bucket_pair", fake_bucket_pair)
    return source, destination, calls
