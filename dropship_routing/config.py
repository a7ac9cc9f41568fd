"""Runtime settings read from the environment or a .env file."""

import os
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

from dropship_routing.exceptions import ConfigurationError

DEFAULT_TRACKING_BASE_URL = "https://tracking.example.com"
DEFAULT_TRACKING_COMPANY = "Dropship Service"


def _float_env(key: str, default: float) -> float:
    val = os.getenv(key)
    if val is None or val == "":
        return default
    try:
        return float(val)
    except ValueError:
        raise ConfigurationError(f"{key} must be a number, got {val!r}") from None


def _int_env(key: str, default: int) -> int:
    val = os.getenv(key)
    if val is None or val == "":
        return default
    try:
        return int(val)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {val!r}") from None


@dataclass(frozen=True)
class Settings:
    tracking_base_url: str = DEFAULT_TRACKING_BASE_URL
    tracking_company: str = DEFAULT_TRACKING_COMPANY
    dispatch_timeout: float = 30.0
    supplier_api_url: str = ""
    supplier_api_key: str = ""
    supplier_api_retries: int = 3
    supplier_api_backoff: float = 0.5
    shopify_store_url: str = ""
    shopify_access_token: str = ""
    log_level: str = "INFO"
    environment: str = "development"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables.

        A .env file in the working directory is loaded first; variables
        already present in the environment take precedence over it.

        Raises:
            ConfigurationError: A numeric setting cannot be parsed or is
                out of range.
        """
        load_dotenv(find_dotenv(usecwd=True))
        settings = cls(
            tracking_base_url=os.getenv("TRACKING_BASE_URL", DEFAULT_TRACKING_BASE_URL).rstrip("/"),
            tracking_company=os.getenv("TRACKING_COMPANY", DEFAULT_TRACKING_COMPANY),
            dispatch_timeout=_float_env("DISPATCH_TIMEOUT_SECONDS", 30.0),
            supplier_api_url=os.getenv("SUPPLIER_API_URL", "").rstrip("/"),
            supplier_api_key=os.getenv("SUPPLIER_API_KEY", ""),
            supplier_api_retries=_int_env("SUPPLIER_API_RETRIES", 3),
            supplier_api_backoff=_float_env("SUPPLIER_API_BACKOFF", 0.5),
            shopify_store_url=os.getenv("SHOPIFY_STORE_URL", ""),
            shopify_access_token=os.getenv("SHOPIFY_ACCESS_TOKEN", ""),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            environment=os.getenv("ENVIRONMENT", "development").lower(),
        )
        if settings.dispatch_timeout <= 0:
            raise ConfigurationError("DISPATCH_TIMEOUT_SECONDS must be greater than zero")
        if settings.supplier_api_retries < 0:
            raise ConfigurationError("SUPPLIER_API_RETRIES cannot be negative")
        return settings
