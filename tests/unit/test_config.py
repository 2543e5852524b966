"""Tests for sketchy.core.config — configuration management.

Tests cover:
- Default values for configuration fields.
- Environment variable overrides via the SKETCHY_ prefix.
- Derived settings (prompt expansion, storage backend, S3 URL).
- Pydantic validation constraints.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from sketchy.core.config import SketchyConfig


@pytest.fixture
def clean_env(monkeypatch):
    for name in [
        "SKETCHY_USE_OPENAI_API",
        "SKETCHY_EXPAND_PROMPTS",
        "SKETCHY_ENVIRONMENT",
        "SKETCHY_STORAGE_BACKEND",
        "SKETCHY_SERVER_PORT",
        "SKETCHY_ADMIN_SECRET",
    ]:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestConfigDefaults:
    def test_mock_local_by_default(self, clean_env):
        cfg = SketchyConfig(_env_file=None)
        assert cfg.use_openai_api is False
        assert cfg.prompt_expansion_enabled is False
        assert cfg.resolved_storage_backend == "local"

    def test_default_port(self, clean_env):
        assert SketchyConfig(_env_file=None).server_port == 3001

    def test_default_gallery_cap(self, clean_env):
        assert SketchyConfig(_env_file=None).gallery_max_items == 20

    def test_thumbnail_defaults(self, clean_env):
        cfg = SketchyConfig(_env_file=None)
        assert cfg.generate_thumbnails is True
        assert cfg.thumbnail_size == 300


class TestEnvironmentOverrides:
    def test_live_mode_enables_expansion(self, clean_env):
        clean_env.setenv("SKETCHY_USE_OPENAI_API", "true")
        cfg = SketchyConfig(_env_file=None)
        assert cfg.use_openai_api is True
        assert cfg.prompt_expansion_enabled is True

    def test_expansion_can_be_disabled_in_live_mode(self, clean_env):
        clean_env.setenv("SKETCHY_USE_OPENAI_API", "true")
        clean_env.setenv("SKETCHY_EXPAND_PROMPTS", "false")
        assert SketchyConfig(_env_file=None).prompt_expansion_enabled is False

    def test_production_selects_s3(self, clean_env):
        clean_env.setenv("SKETCHY_ENVIRONMENT", "production")
        assert SketchyConfig(_env_file=None).resolved_storage_backend == "s3"

    def test_explicit_backend_wins(self, clean_env):
        clean_env.setenv("SKETCHY_ENVIRONMENT", "production")
        clean_env.setenv("SKETCHY_STORAGE_BACKEND", "local")
        assert SketchyConfig(_env_file=None).resolved_storage_backend == "local"


class TestDerivedValues:
    def test_s3_public_url_from_bucket(self):
        cfg = SketchyConfig(s3_bucket="art", s3_region="eu-west-1", _env_file=None)
        assert cfg.resolved_s3_public_base_url == "https://art.s3.eu-west-1.amazonaws.com"

    def test_s3_public_url_override(self):
        cfg = SketchyConfig(s3_public_base_url="https://cdn.example.com/", _env_file=None)
        assert cfg.resolved_s3_public_base_url == "https://cdn.example.com"


class TestValidation:
    def test_invalid_port(self):
        with pytest.raises(ValidationError):
            SketchyConfig(server_port=70000, _env_file=None)

    def test_invalid_mock_style(self):
        with pytest.raises(ValidationError):
            SketchyConfig(mock_style="watercolour", _env_file=None)

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            SketchyConfig(environment="staging", _env_file=None)
