"""Pytest fixtures for notion_render tests."""

import pytest

from notion_render.assets import AssetCache
from notion_render.config import RenderConfig

from helpers import FakeSession


@pytest.fixture
def config(tmp_path):
    return RenderConfig(output_root=tmp_path)


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def cache(config, session):
    return AssetCache(config, session=session)
