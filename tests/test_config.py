"""Tests for configuration loading."""

import os

import pytest
import yaml

from shopify_mcp_proxy import config
from shopify_mcp_proxy.exceptions import ConfigError


@pytest.fixture
def missing_path(tmp_path):
    return str(tmp_path / "absent.yaml")


class TestLoad:
    def test_defaults(self, missing_path):
        cfg = config.load(missing_path, env={})
        assert cfg.is_mock_shop
        assert cfg.admin_enabled is False
        assert cfg.http_port == 3000
        assert cfg.log_level == "INFO"
        assert "~" not in cfg.schema_dir

    def test_environment(self, missing_path, tmp_path):
        env = {
            "SHOPIFY_STORE": "test-shop.myshopify.com",
            "SHOPIFY_ACCESS_TOKEN": "sf-token",
            "SHOPIFY_VERSION": "2025-01",
            "USE_ADMIN_API": "1",
            "ADMIN_ACCESS_TOKEN": "admin-token",
            "ADMIN_VERSION": "2024-10",
            "SCHEMA_DIR": str(tmp_path / "schemas"),
            "MCP_HTTP_PORT": "8080",
            "LOG_LEVEL": "debug",
        }
        cfg = config.load(missing_path, env=env)
        assert cfg.store_domain == "test-shop.myshopify.com"
        assert cfg.storefront_api_version == "2025-01"
        assert cfg.admin_enabled is True
        assert cfg.admin_api_version == "2024-10"
        assert cfg.schema_dir == str(tmp_path / "schemas")
        assert cfg.http_port == 8080
        assert cfg.log_level == "DEBUG"

    @pytest.mark.parametrize("value,expected", [("true", True), ("TRUE", True), ("1", True), ("yes", False), ("0", False)])
    def test_admin_flag(self, missing_path, value, expected):
        env = {
            "SHOPIFY_STORE": "test-shop.myshopify.com",
            "ADMIN_ACCESS_TOKEN": "admin-token",
            "USE_ADMIN_API": value,
        }
        assert config.load(missing_path, env=env).admin_enabled is expected

    def test_file_values_with_env_override(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            yaml.dump({"store_domain": "file-shop.myshopify.com", "storefront_access_token": "file-token", "http_port": 4000})
        )
        cfg = config.load(str(path), env={"SHOPIFY_STORE": "env-shop.myshopify.com"})
        assert cfg.store_domain == "env-shop.myshopify.com"
        assert cfg.storefront_access_token == "file-token"
        assert cfg.http_port == 4000

    def test_blank_values_are_unset(self, missing_path):
        cfg = config.load(missing_path, env={"SHOPIFY_STORE": "  ", "SHOPIFY_VERSION": ""})
        assert cfg.store_domain is None
        assert cfg.storefront_api_version is None


class TestValidate:
    def test_admin_without_token(self, missing_path):
        with pytest.raises(ConfigError, match="ADMIN_ACCESS_TOKEN"):
            config.load(missing_path, env={"SHOPIFY_STORE": "test-shop.myshopify.com", "USE_ADMIN_API": "true"})

    def test_admin_without_store(self, missing_path):
        with pytest.raises(ConfigError, match="SHOPIFY_STORE"):
            config.load(missing_path, env={"USE_ADMIN_API": "true", "ADMIN_ACCESS_TOKEN": "admin-token"})

    def test_store_without_storefront_token_only_warns(self, missing_path, caplog):
        cfg = config.load(missing_path, env={"SHOPIFY_STORE": "test-shop.myshopify.com"})
        assert not cfg.is_mock_shop
        assert "SHOPIFY_ACCESS_TOKEN is missing" in caplog.text


class TestExampleConfig:
    def test_create_example_config(self, tmp_path):
        path = config.create_example_config(str(tmp_path / "nested" / "config.yaml"))
        assert os.path.exists(path)
        with open(path) as f:
            data = yaml.safe_load(f)
        assert data["store_domain"] == "your-store.myshopify.com"
        assert data["admin_enabled"] is False

    def test_example_config_loads(self, tmp_path):
        path = config.create_example_config(str(tmp_path / "config.yaml"))
        cfg = config.load(path, env={})
        assert cfg.storefront_api_version == "2025-01"


class TestNumericSettings:
    def test_bad_port(self, missing_path):
        with pytest.raises(ConfigError, match="MCP_HTTP_PORT"):
            config.load(missing_path, env={"MCP_HTTP_PORT": "abc"})

    def test_bad_timeout(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"request_timeout": "soon"}))
        with pytest.raises(ConfigError, match="request_timeout"):
            config.load(str(path), env={})

    def test_timeout_from_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"request_timeout": 2.5}))
        assert config.load(str(path), env={}).request_timeout == 2.5
