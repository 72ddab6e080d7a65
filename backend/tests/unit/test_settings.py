"""
Tests for environment-driven settings.
"""

import pytest

from infrastructure.config.settings import Settings, get_settings

GADS_ENV = [
    "GADS_CLIENT_ID",
    "GADS_CLIENT_SECRET",
    "GADS_DEVELOPER_TOKEN",
    "GADS_REFRESH_TOKEN",
    "GADS_CUSTOMER_ID",
    "GADS_LOGIN_CUSTOMER_ID",
    "GADS_USE_KEYWORD_PLANNING",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start every test without Google Ads variables in the environment."""
    for name in GADS_ENV:
        monkeypatch.delenv(name, raising=False)
        monkeypatch.delenv(name.replace("GADS_", "GOOGLE_ADS_"), raising=False)
    monkeypatch.delenv("ENVIRONMENT", raising=False)
    yield
    get_settings.cache_clear()


def _full_credentials(monkeypatch, prefix="GADS_"):
    monkeypatch.setenv(f"{prefix}CLIENT_ID", "client")
    monkeypatch.setenv(f"{prefix}CLIENT_SECRET", "secret")
    monkeypatch.setenv(f"{prefix}DEVELOPER_TOKEN", "dev")
    monkeypatch.setenv(f"{prefix}REFRESH_TOKEN", "refresh")
    monkeypatch.setenv(f"{prefix}LOGIN_CUSTOMER_ID", "987-654-3210")


class TestDefaults:
    def test_keyword_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.gads_use_keyword_planning is False
        assert settings.keyword_cache_ttl_days == 30
        assert settings.keyword_max_per_request == 50
        assert settings.keyword_seed_limit == 20
        assert settings.keyword_interactive_timeout < settings.keyword_background_timeout

    def test_credentials_missing_by_default(self):
        settings = Settings(_env_file=None)

        assert settings.has_google_ads_credentials is False
        assert "GADS_REFRESH_TOKEN" in settings.missing_google_ads_credentials


class TestGoogleAdsVariables:
    def test_reads_gads_variables(self, monkeypatch):
        _full_credentials(monkeypatch)
        monkeypatch.setenv("GADS_USE_KEYWORD_PLANNING", "true")

        settings = Settings(_env_file=None)

        assert settings.gads_use_keyword_planning is True
        assert settings.has_google_ads_credentials is True
        assert settings.gads_login_customer_id == "9876543210"

    def test_reads_legacy_google_ads_variables(self, monkeypatch):
        _full_credentials(monkeypatch, prefix="GOOGLE_ADS_")

        settings = Settings(_env_file=None)

        assert settings.gads_client_id == "client"
        assert settings.has_google_ads_credentials is True

    def test_gads_name_wins_over_legacy(self, monkeypatch):
        monkeypatch.setenv("GADS_CLIENT_ID", "new")
        monkeypatch.setenv("GOOGLE_ADS_CLIENT_ID", "old")

        assert Settings(_env_file=None).gads_client_id == "new"

    def test_customer_id_dashes_stripped(self, monkeypatch):
        monkeypatch.setenv("GADS_CUSTOMER_ID", "123-456-7890")
        assert Settings(_env_file=None).gads_customer_id == "1234567890"

    def test_blank_values_are_missing(self, monkeypatch):
        _full_credentials(monkeypatch)
        monkeypatch.setenv("GADS_REFRESH_TOKEN", "   ")

        settings = Settings(_env_file=None)

        assert settings.gads_refresh_token is None
        assert settings.missing_google_ads_credentials == ["GADS_REFRESH_TOKEN"]

    def test_postgres_url_uses_asyncpg(self):
        settings = Settings(_env_file=None, database_url="postgres://u:p@db:5432/kw")
        assert settings.database_url == "postgresql+asyncpg://u:p@db:5432/kw"


class TestProductionValidation:
    def test_enabled_without_credentials_rejected(self):
        settings = Settings(_env_file=None, environment="production", gads_use_keyword_planning=True)

        with pytest.raises(ValueError, match="GADS_CLIENT_ID"):
            settings.validate_production_secrets()

    def test_disabled_provider_allowed_without_credentials(self):
        Settings(_env_file=None, environment="production").validate_production_secrets()

    def test_development_allows_missing_credentials(self):
        Settings(_env_file=None, gads_use_keyword_planning=True).validate_production_secrets()

    def test_sql_echo_rejected_in_production(self):
        with pytest.raises(ValueError, match="DATABASE_ECHO"):
            Settings(_env_file=None, environment="production", database_echo=True).validate_production_secrets()

    def test_invalid_limits_rejected(self):
        with pytest.raises(ValueError, match="KEYWORD_SEED_LIMIT"):
            Settings(_env_file=None, keyword_seed_limit=0).validate_production_secrets()

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        assert get_settings() is get_settings()
