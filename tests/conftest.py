"""Shared fixtures: an isolated config and a fake streaming HTTP session."""

from __future__ import annotations

import pytest

from gh_patches.utils.config import IngestConfig
from helpers import FakeSession


@pytest.fixture
def config(tmp_path) -> IngestConfig:
    return IngestConfig(cache_root=tmp_path / "cache")


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()
