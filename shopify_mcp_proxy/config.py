"""Configuration management for shopify-mcp-proxy."""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

import yaml

from . import utils
from .exceptions import ConfigError

logger = logging.getLogger(__name__)

TRUE_VALUES = {"true", "1"}


@dataclass
class Config:
    """Configuration for shopify-mcp-proxy."""

    store_domain: Optional[str] = None
    storefront_access_token: Optional[str] = None
    storefront_api_version: Optional[str] = None
    admin_enabled: bool = False
    admin_access_token: Optional[str] = None
    admin_api_version: Optional[str] = None
    schema_dir: str = "~/.shopify-mcp-proxy/schemas"
    http_host: str = "127.0.0.1"
    http_port: int = 3000
    request_timeout: Optional[float] = None
    log_level: str = "INFO"

    def __post_init__(self):
        """Expand paths after initialization."""
        self.schema_dir = utils.expand_path(self.schema_dir)

    @property
    def is_mock_shop(self) -> bool:
        """True when no store is configured and mock.shop is used instead."""
        return not self.store_domain


def get_default_config_path() -> str:
    """Get default config file path."""
    return utils.expand_path("~/.shopify-mcp-proxy/config.yaml")


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _flag(value) -> bool:
    if isinstance(value, bool):
        return value
    return (_clean(value) or "").lower() in TRUE_VALUES


def load(config_path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> Config:
    """
    Load configuration from an optional YAML file and the environment.

    Environment variables win over file values.

    Args:
        config_path: Path to config file. If None, uses default location.
        env: Environment mapping. If None, uses os.environ.

    Returns:
        Validated Config object.

    Raises:
        ConfigError: If the Admin API is enabled without a token or store, or
            a numeric setting does not parse.
    """
    if config_path is None:
        config_path = get_default_config_path()
    if env is None:
        env = os.environ

    data = {}
    if utils.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

    def pick(env_name: str, key: str):
        if _clean(env.get(env_name)) is not None:
            return env.get(env_name)
        return data.get(key)

    port = _clean(pick("MCP_HTTP_PORT", "http_port"))
    timeout = _clean(data.get("request_timeout"))
    try:
        http_port = int(port) if port else 3000
    except ValueError:
        raise ConfigError(f"MCP_HTTP_PORT must be an integer, got {port!r}.") from None
    try:
        request_timeout = float(timeout) if timeout else None
    except ValueError:
        raise ConfigError(f"request_timeout must be a number of seconds, got {timeout!r}.") from None

    cfg = Config(
        store_domain=_clean(pick("SHOPIFY_STORE", "store_domain")),
        storefront_access_token=_clean(pick("SHOPIFY_ACCESS_TOKEN", "storefront_access_token")),
        storefront_api_version=_clean(pick("SHOPIFY_VERSION", "storefront_api_version")),
        admin_enabled=_flag(pick("USE_ADMIN_API", "admin_enabled")),
        admin_access_token=_clean(pick("ADMIN_ACCESS_TOKEN", "admin_access_token")),
        admin_api_version=_clean(pick("ADMIN_VERSION", "admin_api_version")),
        schema_dir=_clean(pick("SCHEMA_DIR", "schema_dir")) or "~/.shopify-mcp-proxy/schemas",
        http_host=_clean(pick("MCP_HTTP_HOST", "http_host")) or "127.0.0.1",
        http_port=http_port,
        request_timeout=request_timeout,
        log_level=(_clean(pick("LOG_LEVEL", "log_level")) or "INFO").upper(),
    )
    validate(cfg)
    return cfg


def validate(cfg: Config) -> None:
    """
    Check a configuration for fatal inconsistencies.

    A real store without a storefront token is only warned about; the
    storefront proxy refuses those calls itself.
    """
    if not cfg.is_mock_shop and not cfg.storefront_access_token:
        logger.warning(
            "SHOPIFY_STORE is set, but SHOPIFY_ACCESS_TOKEN is missing. "
            "Storefront API calls to the real store will fail."
        )
    if cfg.admin_enabled and not cfg.admin_access_token:
        raise ConfigError("USE_ADMIN_API is true, but ADMIN_ACCESS_TOKEN is missing.")
    if cfg.admin_enabled and not cfg.store_domain:
        raise ConfigError(
            "USE_ADMIN_API is true, but SHOPIFY_STORE is not configured. Admin API requires a real store."
        )


def create_example_config(path: Optional[str] = None) -> str:
    """Create an example config file and return its path."""
    if path is None:
        path = get_default_config_path()

    utils.ensure_dir(utils.dirname(path))

    example = {
        "store_domain": "your-store.myshopify.com",
        "storefront_access_token": "",
        "storefront_api_version": "2025-01",
        "admin_enabled": False,
        "admin_access_token": "",
        "admin_api_version": None,
        "schema_dir": "~/.shopify-mcp-proxy/schemas",
        "http_host": "127.0.0.1",
        "http_port": 3000,
        "log_level": "INFO",
    }

    with open(path, "w") as f:
        yaml.dump(example, f, default_flow_style=False, sort_keys=False)
    return path
