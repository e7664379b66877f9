"""Tests for API version discovery and resolution."""

from dataclasses import replace

import pytest
import requests

from shopify_mcp_proxy.versions import (
    CACHE_TTL_SECONDS,
    FALLBACK_STOREFRONT_VERSION,
    ApiVersionInfo,
    VersionCache,
    VersionResolver,
    latest_supported,
)

from .conftest import make_response


@pytest.fixture
def resolver_for(upstream, clock):
    def factory(cfg):
        return VersionResolver(cfg, upstream.session, VersionCache(clock=clock))

    return factory


class TestLatestSupported:
    def test_picks_greatest_supported_handle(self):
        versions = [
            ApiVersionInfo("2024-10", "2024-10", True),
            ApiVersionInfo("2025-01", "2025-01", True),
            ApiVersionInfo("unstable", "unstable", False),
        ]
        assert latest_supported(versions) == "2025-01"

    def test_none_when_nothing_supported(self):
        assert latest_supported([ApiVersionInfo("2025-04", "2025-04", False)]) is None
        assert latest_supported(None) is None


class TestPinnedVersion:
    def test_pinned_supported_version_wins(self, resolver_for, mock_config):
        resolver = resolver_for(replace(mock_config, storefront_api_version="2024-10"))
        assert resolver.resolve("storefront") == "2024-10"

    def test_pinned_latest_version_is_returned(self, resolver_for, mock_config):
        resolver = resolver_for(replace(mock_config, storefront_api_version="2025-01"))
        assert resolver.resolve("storefront") == "2025-01"

    def test_unknown_pin_falls_back_to_latest_supported(self, resolver_for, mock_config):
        resolver = resolver_for(replace(mock_config, storefront_api_version="2099-01"))
        assert resolver.resolve("storefront") == "2025-01"

    def test_unsupported_pin_falls_back_to_latest_supported(self, resolver_for, mock_config):
        resolver = resolver_for(replace(mock_config, storefront_api_version="2025-04"))
        assert resolver.resolve("storefront") == "2025-01"

    def test_admin_pin(self, resolver_for, store_config):
        resolver = resolver_for(replace(store_config, admin_api_version="2024-10"))
        assert resolver.resolve("admin") == "2024-10"


class TestFallback:
    def test_network_failure_uses_storefront_fallback(self, upstream, resolver_for, mock_config):
        upstream.versions = requests.ConnectionError("connection refused")
        assert resolver_for(mock_config).resolve("storefront") == FALLBACK_STOREFRONT_VERSION

    def test_network_failure_gives_no_admin_version(self, upstream, resolver_for, store_config):
        upstream.versions = requests.ConnectionError("connection refused")
        assert resolver_for(store_config).resolve("admin") is None

    def test_http_error_uses_fallback(self, upstream, resolver_for, mock_config):
        upstream.versions = make_response(503, {"errors": "unavailable"})
        assert resolver_for(mock_config).resolve("storefront") == FALLBACK_STOREFRONT_VERSION

    def test_malformed_body_uses_fallback(self, upstream, resolver_for, mock_config):
        upstream.versions = make_response(200, {"data": {}})
        assert resolver_for(mock_config).resolve("storefront") == FALLBACK_STOREFRONT_VERSION

    def test_non_json_body_uses_fallback(self, upstream, resolver_for, mock_config):
        upstream.versions = make_response(200, text="<html>maintenance</html>")
        assert resolver_for(mock_config).resolve("storefront") == FALLBACK_STOREFRONT_VERSION

    def test_no_supported_versions_uses_fallback(self, upstream, resolver_for, mock_config):
        upstream.versions = make_response(
            200, {"data": {"publicApiVersions": [{"handle": "unstable", "displayName": "unstable", "supported": False}]}}
        )
        assert resolver_for(mock_config).resolve("storefront") == FALLBACK_STOREFRONT_VERSION

    def test_pin_is_not_trusted_without_a_list(self, upstream, resolver_for, mock_config):
        upstream.versions = requests.Timeout("timed out")
        resolver = resolver_for(replace(mock_config, storefront_api_version="2025-01"))
        assert resolver.resolve("storefront") == FALLBACK_STOREFRONT_VERSION


class TestAdminGuard:
    def test_admin_disabled_returns_none_without_network(self, upstream, resolver_for, mock_config):
        assert resolver_for(mock_config).resolve("admin") is None
        upstream.session.post.assert_not_called()

    def test_admin_without_token_has_no_version_list(self, upstream, resolver_for, store_config):
        resolver = resolver_for(replace(store_config, admin_access_token=None))
        assert resolver.fetch_versions("admin") is None
        upstream.session.post.assert_not_called()


class TestCacheTtl:
    def test_two_resolutions_within_ttl_fetch_once(self, upstream, resolver_for, mock_config, clock):
        resolver = resolver_for(mock_config)
        resolver.resolve("storefront")
        clock.advance(CACHE_TTL_SECONDS - 1)
        resolver.resolve("storefront")
        assert len(upstream.calls("versions")) == 1

    def test_resolution_after_ttl_fetches_again(self, upstream, resolver_for, mock_config, clock):
        resolver = resolver_for(mock_config)
        resolver.resolve("storefront")
        clock.advance(CACHE_TTL_SECONDS + 1)
        resolver.resolve("storefront")
        assert len(upstream.calls("versions")) == 2

    def test_failed_fetch_does_not_touch_cache(self, upstream, resolver_for, mock_config):
        resolver = resolver_for(mock_config)
        upstream.versions = requests.ConnectionError("down")
        resolver.resolve("storefront")
        assert resolver.cache.entry("storefront") is None

        upstream.versions = make_response(200, {"data": {"publicApiVersions": [
            {"handle": "2025-01", "displayName": "2025-01", "supported": True},
        ]}})
        assert resolver.resolve("storefront") == "2025-01"
        assert len(upstream.calls("versions")) == 2

    def test_failed_refresh_keeps_stale_entry(self, upstream, resolver_for, mock_config, clock):
        resolver = resolver_for(mock_config)
        resolver.resolve("storefront")
        stale = resolver.cache.entry("storefront")

        clock.advance(CACHE_TTL_SECONDS + 1)
        upstream.versions = requests.ConnectionError("down")
        assert resolver.resolve("storefront") == FALLBACK_STOREFRONT_VERSION
        assert resolver.cache.entry("storefront") is stale

    def test_surfaces_are_cached_separately(self, upstream, resolver_for, store_config):
        resolver = resolver_for(store_config)
        resolver.resolve("storefront")
        resolver.resolve("admin")
        assert len(upstream.calls("versions")) == 2


class TestDiscoveryEndpoint:
    def test_mock_shop_discovery(self, upstream, resolver_for, mock_config):
        resolver_for(mock_config).resolve("storefront")
        call = upstream.calls("versions")[0]
        assert call.args[0] == "https://mock.shop/api/unstable/graphql.json"
        assert "X-Shopify-Storefront-Access-Token" not in call.kwargs["headers"]

    def test_real_store_discovery_uses_token_and_pin(self, upstream, resolver_for, store_config):
        resolver_for(replace(store_config, storefront_api_version="2024-10")).resolve("storefront")
        call = upstream.calls("versions")[0]
        assert call.args[0] == "https://test-shop.myshopify.com/api/2024-10/graphql.json"
        assert call.kwargs["headers"]["X-Shopify-Storefront-Access-Token"] == "sf-token"
        assert call.kwargs["headers"]["Cache-Control"] == "no-store"

    def test_admin_discovery(self, upstream, resolver_for, store_config):
        resolver_for(store_config).resolve("admin")
        call = upstream.calls("versions")[0]
        assert call.args[0] == "https://test-shop.myshopify.com/admin/api/unstable/graphql.json"
        assert call.kwargs["headers"]["X-Shopify-Access-Token"] == "admin-token"

    def test_unknown_surface_rejected(self, resolver_for, mock_config):
        with pytest.raises(ValueError):
            resolver_for(mock_config).resolve("partner")


class TestSurfaceShortcuts:
    def test_resolve_storefront(self, resolver_for, mock_config):
        assert resolver_for(mock_config).resolve_storefront() == "2025-01"

    def test_resolve_admin(self, resolver_for, store_config):
        assert resolver_for(store_config).resolve_admin() == "2025-01"
