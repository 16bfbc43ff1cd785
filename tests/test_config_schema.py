"""Tests for the unified Pydantic config schema."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from bookmark_sync.config import load_config
from bookmark_sync.config_schema import (
    ServerConfig,
    SyncConfig,
    UnifiedConfig,
    apply_sync_overrides,
    build_config,
)


class TestDefaults:
    def test_zero_config_is_valid(self):
        config = UnifiedConfig()

        assert config.server.url is None
        assert config.sync.file_format == "org"
        assert config.sync.page_size == 100
        assert config.sync.update_existing_files is False
        assert config.logging.level == "INFO"

    def test_build_config_empty(self):
        assert build_config({}) == UnifiedConfig()

    def test_build_config_sections(self):
        config = build_config(
            {
                "server": {"url": "https://b.example.com", "token": "t"},
                "sync": {"file_format": "markdown", "exclude_archived": True},
            }
        )

        assert config.server.url == "https://b.example.com"
        assert config.sync.file_format == "markdown"
        assert config.sync.exclude_archived is True


class TestSyncConfig:
    def test_attachments_default_under_sync_root(self, tmp_path):
        settings = SyncConfig(sync_root=str(tmp_path))

        assert settings.sync_root_path == tmp_path
        assert settings.attachments_root_path == tmp_path / "attachments"

    def test_explicit_attachments_root(self, tmp_path):
        settings = SyncConfig(
            sync_root=str(tmp_path / "notes"),
            attachments_root=str(tmp_path / "img"),
        )

        assert settings.attachments_root_path == tmp_path / "img"

    def test_home_expanded(self):
        settings = SyncConfig(sync_root="~/bookmarks")

        assert settings.sync_root_path == Path.home() / "bookmarks"

    def test_unknown_format_rejected(self):
        with pytest.raises(ValidationError):
            SyncConfig(file_format="html")

    @pytest.mark.parametrize("size", [0, 101])
    def test_page_size_bounds(self, size):
        with pytest.raises(ValidationError):
            SyncConfig(page_size=size)

    def test_frozen(self):
        settings = SyncConfig()
        with pytest.raises(ValidationError):
            settings.sync_root = "/elsewhere"  # type: ignore[misc]


class TestApplySyncOverrides:
    def test_none_values_ignored(self):
        base = SyncConfig(file_format="markdown")

        result = apply_sync_overrides(
            base, {"file_format": None, "sync_root": None}
        )

        assert result is base

    def test_values_applied(self, tmp_path):
        base = SyncConfig(exclude_archived=True)

        result = apply_sync_overrides(
            base,
            {"sync_root": str(tmp_path), "update_existing_files": True},
        )

        assert result.sync_root == str(tmp_path)
        assert result.update_existing_files is True
        assert result.exclude_archived is True

    def test_invalid_override_rejected(self):
        with pytest.raises(ValidationError):
            apply_sync_overrides(SyncConfig(), {"file_format": "pdf"})


class TestServerConfig:
    def test_timeout_bounds(self):
        with pytest.raises(ValidationError):
            ServerConfig(timeout=0)

    def test_server_section_as_fallbacks(self):
        unified = build_config(
            {"server": {"url": "https://yaml.example.com", "token": "y", "timeout": 5}}
        )
        fallbacks = {
            k: v for k, v in unified.server.model_dump().items() if v is not None
        }

        config = load_config(token="cli", yaml_fallbacks=fallbacks)

        assert config.server_url == "https://yaml.example.com"
        assert config.api_token == "cli"
        assert config.timeout == 5
