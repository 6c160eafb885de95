"""
Pytest tests for environment configuration.
Run with: uv run pytest tests/test_config.py -v
"""

import logging

import pytest

from holiday_crm.utils.config import CRMConfig, configure_logging, get_config, load_config, reset_config

MISSING_ENV_FILE = "does-not-exist.env"


class TestLoadConfig:

    def test_defaults(self, clean_env):
        config = load_config(MISSING_ENV_FILE)

        assert config.app_name == "Yorke Holidays CRM"
        assert config.environment == "development"
        assert config.use_remote_storage is False
        assert config.api_timeout_ms == 10000
        assert config.max_retries == 3
        assert config.retry_initial_delay_ms == 1000
        assert config.retry_backoff_multiplier == 2.0
        assert config.log_level == "INFO"
        assert config.default_commission_rate == 5.0
        assert config.items_per_page == 10
        assert config.is_production is False

    def test_environment_overrides(self, clean_env):
        clean_env.setenv("APP_ENV", "Production")
        clean_env.setenv("MAX_RETRIES", "5")
        clean_env.setenv("LOG_LEVEL", "debug")
        clean_env.setenv("SENTRY_DSN", "https://key@sentry.example/1")

        config = load_config(MISSING_ENV_FILE)

        assert config.environment == "production"
        assert config.is_production is True
        assert config.max_retries == 5
        assert config.log_level == "DEBUG"
        assert config.sentry_dsn == "https://key@sentry.example/1"

    def test_remote_storage_follows_credentials(self, clean_env):
        clean_env.setenv("SUPABASE_URL", "https://project.supabase.co/")
        clean_env.setenv("SUPABASE_ANON_KEY", "anon-key")

        config = load_config(MISSING_ENV_FILE)

        assert config.use_remote_storage is True
        assert config.has_remote_credentials is True
        assert config.supabase_url == "https://project.supabase.co"

    def test_remote_storage_can_be_disabled(self, clean_env):
        clean_env.setenv("SUPABASE_URL", "https://project.supabase.co")
        clean_env.setenv("SUPABASE_ANON_KEY", "anon-key")
        clean_env.setenv("USE_REMOTE_STORAGE", "false")

        assert load_config(MISSING_ENV_FILE).use_remote_storage is False

    def test_env_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("APP_ENV=test\nITEMS_PER_PAGE=20\n")

        config = load_config(str(env_file))

        assert config.environment == "test"
        assert config.items_per_page == 20

    @pytest.mark.parametrize("name,value", [
        ("LOG_LEVEL", "LOUD"),
        ("APP_ENV", "staging"),
        ("MAX_RETRIES", "abc"),
        ("MAX_RETRIES", "0"),
        ("DEFAULT_COMMISSION_RATE", "30"),
    ])
    def test_invalid_values(self, clean_env, name, value):
        clean_env.setenv(name, value)
        with pytest.raises(ValueError, match="Configuration validation failed"):
            load_config(MISSING_ENV_FILE)


class TestGlobalConfig:

    def test_cached_until_reset(self, clean_env):
        first = get_config()
        assert get_config() is first

        reset_config()
        assert get_config() is not first


class TestCRMConfig:

    def test_masked_hides_secrets(self):
        config = CRMConfig(
            supabase_anon_key="eyJhbGciOiJIUzI1NiJ9.secret",
            supabase_service_role_key="short",
        )
        masked = config.masked()
        assert masked["supabase_anon_key"] == "eyJh...cret"
        assert masked["supabase_service_role_key"] == "****"
        assert masked["sentry_dsn"] is None

    def test_configure_logging(self, monkeypatch):
        calls = {}
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.update(kwargs))

        configure_logging("warning")

        assert calls["level"] == "WARNING"
        assert "%(name)s" in calls["format"]
