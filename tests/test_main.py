"""Tests for application startup and shutdown."""

from unittest.mock import AsyncMock, MagicMock

import pytest

import app.main as main_module
from app.config import settings


@pytest.fixture
def lifecycle(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "PUBLIC_ROOT", str(tmp_path / "public"))
    mocks = {
        "setup_logging": MagicMock(),
        "init_db": AsyncMock(),
        "close_db": AsyncMock(),
    }
    for name, mock in mocks.items():
        monkeypatch.setattr(main_module, name, mock)
    return mocks


class TestLifespan:
    async def test_creates_tables_and_uploads_dir(self, lifecycle, monkeypatch):
        monkeypatch.setattr(settings, "DB_AUTO_CREATE", True)
        async with main_module.lifespan(main_module.app):
            assert settings.uploads_root.is_dir()
            lifecycle["init_db"].assert_awaited_once()
        lifecycle["close_db"].assert_awaited_once()
        lifecycle["setup_logging"].assert_called_once()

    async def test_table_creation_can_be_disabled(self, lifecycle, monkeypatch):
        monkeypatch.setattr(settings, "DB_AUTO_CREATE", False)
        async with main_module.lifespan(main_module.app):
            pass
        lifecycle["init_db"].assert_not_awaited()
        lifecycle["close_db"].assert_awaited_once()
