"""Tests for environment settings."""

import os

import pytest

from dropship_routing.config import Settings
from dropship_routing.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    # Keep a stray .env in the working directory out of the picture.
    monkeypatch.chdir(tmp_path)
    for key in (
        "TRACKING_BASE_URL",
        "TRACKING_COMPANY",
        "DISPATCH_TIMEOUT_SECONDS",
        "SUPPLIER_API_URL",
        "SUPPLIER_API_RETRIES",
        "LOG_LEVEL",
        "ENVIRONMENT",
    ):
        monkeypatch.delenv(key, raising=False)


class TestSettings:
    def test_defaults(self):
        settings = Settings.from_env()
        assert settings.tracking_base_url == "https://tracking.example.com"
        assert settings.tracking_company == "Dropship Service"
        assert settings.dispatch_timeout == 30.0

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("TRACKING_BASE_URL", "https://track.shop.test/")
        monkeypatch.setenv("DISPATCH_TIMEOUT_SECONDS", "2.5")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = Settings.from_env()
        assert settings.tracking_base_url == "https://track.shop.test"
        assert settings.dispatch_timeout == 2.5
        assert settings.log_level == "DEBUG"

    def test_dotenv_file_is_read(self, tmp_path):
        (tmp_path / ".env").write_text("TRACKING_COMPANY=Acme Ship\n")
        try:
            assert Settings.from_env().tracking_company == "Acme Ship"
        finally:
            os.environ.pop("TRACKING_COMPANY", None)

    def test_bad_number(self, monkeypatch):
        monkeypatch.setenv("DISPATCH_TIMEOUT_SECONDS", "soon")
        with pytest.raises(ConfigurationError):
            Settings.from_env()

    def test_non_positive_timeout(self, monkeypatch):
        monkeypatch.setenv("DISPATCH_TIMEOUT_SECONDS", "0")
        with pytest.raises(ConfigurationError):
            Settings.from_env()
