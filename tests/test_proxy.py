"""Tests for request forwarding."""

import logging
from dataclasses import replace
from unittest.mock import Mock

import pytest
import requests

from shopify_mcp_proxy.proxy import ProxyDispatcher, ProxyResult
from shopify_mcp_proxy.utils import operation_name
from shopify_mcp_proxy.versions import VersionResolver

from .conftest import make_response


@pytest.fixture
def dispatcher_for(upstream):
    def factory(cfg, version="2025-01"):
        resolver = Mock(spec=VersionResolver)
        resolver.resolve.return_value = version
        return ProxyDispatcher(cfg, resolver, upstream.session)

    return factory


class TestStorefrontProxy:
    def test_success(self, upstream, dispatcher_for, mock_config):
        result = dispatcher_for(mock_config).proxy("storefront", "query { shop { name } }")
        assert result == ProxyResult(True, 200, {"data": {"shop": {"name": "Mock Shop"}}})

    def test_graphql_errors_are_still_success(self, upstream, dispatcher_for, mock_config):
        body = {"errors": [{"message": "Field 'x' doesn't exist"}]}
        upstream.graphql = make_response(200, body)
        result = dispatcher_for(mock_config).proxy("storefront", "query { x }")
        assert result.success
        assert result.status_code == 200
        assert result.payload == body

    def test_upstream_error_status_is_passed_through(self, upstream, dispatcher_for, mock_config):
        body = {"errors": [{"message": "Internal error"}]}
        upstream.graphql = make_response(500, body)
        result = dispatcher_for(mock_config).proxy("storefront", "query { shop { name } }")
        assert not result.success
        assert result.status_code == 500
        assert result.payload == body
        assert result.error_message() == "Internal error"

    def test_network_error_is_502(self, upstream, dispatcher_for, mock_config):
        upstream.graphql = requests.ConnectionError("connection reset")
        result = dispatcher_for(mock_config).proxy("storefront", "query { shop { name } }")
        assert not result.success
        assert result.status_code == 502
        assert "connection reset" in result.error_message()

    def test_non_json_success_is_502(self, upstream, dispatcher_for, mock_config):
        upstream.graphql = make_response(200, text="<html>oops</html>")
        result = dispatcher_for(mock_config).proxy("storefront", "query { shop { name } }")
        assert not result.success
        assert result.status_code == 502

    def test_non_json_error_keeps_upstream_status(self, upstream, dispatcher_for, mock_config):
        upstream.graphql = make_response(503, text="Service Unavailable")
        result = dispatcher_for(mock_config).proxy("storefront", "query { shop { name } }")
        assert not result.success
        assert result.status_code == 503

    def test_mock_shop_request(self, upstream, dispatcher_for, mock_config):
        dispatcher_for(mock_config).proxy("storefront", "query { shop { name } }", {"a": 1})
        call = upstream.session.post.call_args
        assert call.args[0] == "https://mock.shop/api/2025-01/graphql.json"
        assert call.kwargs["json"] == {"query": "query { shop { name } }", "variables": {"a": 1}}
        assert "X-Shopify-Storefront-Access-Token" not in call.kwargs["headers"]

    def test_real_store_request(self, upstream, dispatcher_for, store_config):
        dispatcher_for(store_config).proxy("storefront", "query { shop { name } }")
        call = upstream.session.post.call_args
        assert call.args[0] == "https://test-shop.myshopify.com/api/2025-01/graphql.json"
        assert call.kwargs["headers"]["X-Shopify-Storefront-Access-Token"] == "sf-token"
        assert call.kwargs["headers"]["Content-Type"] == "application/json"

    def test_real_store_without_token_is_500(self, upstream, dispatcher_for, store_config):
        cfg = replace(store_config, storefront_access_token=None)
        result = dispatcher_for(cfg).proxy("storefront", "query { shop { name } }")
        assert result.status_code == 500
        assert result.error_message() == "Internal Server Configuration Error"
        upstream.session.post.assert_not_called()


class TestAdminProxy:
    def test_disabled_is_403_without_network(self, upstream, dispatcher_for, mock_config):
        result = dispatcher_for(mock_config).proxy("admin", "query { shop { name } }")
        assert result.status_code == 403
        assert not result.success
        assert result.error_message() == "Admin API access is disabled."
        upstream.session.post.assert_not_called()

    def test_missing_token_is_500(self, upstream, dispatcher_for, store_config):
        cfg = replace(store_config, admin_access_token=None)
        result = dispatcher_for(cfg).proxy("admin", "query { shop { name } }")
        assert result.status_code == 500
        upstream.session.post.assert_not_called()

    def test_unresolved_version_is_500(self, upstream, dispatcher_for, store_config):
        result = dispatcher_for(store_config, version=None).proxy("admin", "query { shop { name } }")
        assert result.status_code == 500
        assert "Could not resolve Admin API version" in result.error_message()
        upstream.session.post.assert_not_called()

    def test_dispatches_exactly_once(self, upstream, dispatcher_for, store_config):
        result = dispatcher_for(store_config).proxy("admin", "query GetCustomer { customer(id: 1) { id } }")
        assert result.success
        upstream.session.post.assert_called_once()
        call = upstream.session.post.call_args
        assert call.args[0] == "https://test-shop.myshopify.com/admin/api/2025-01/graphql.json"
        assert call.kwargs["headers"]["X-Shopify-Access-Token"] == "admin-token"

    def test_audit_line_names_operation_not_variables(self, dispatcher_for, store_config, caplog):
        with caplog.at_level(logging.INFO, logger="shopify_mcp_proxy.proxy.audit"):
            dispatcher_for(store_config).proxy(
                "admin", "mutation ProductCreate($input: ProductInput!) { x }", {"input": {"title": "secret-title"}}
            )
        audit = [r for r in caplog.records if r.name == "shopify_mcp_proxy.proxy.audit"]
        assert len(audit) == 1
        message = audit[0].getMessage()
        assert "ProductCreate" in message
        assert "admin/api/2025-01" in message
        assert "secret-title" not in message


class TestOperationName:
    @pytest.mark.parametrize(
        "query,expected",
        [
            ("query ShopInfo { shop { name } }", "ShopInfo"),
            ("mutation CartCreate($input: CartInput!) { x }", "CartCreate"),
            ("{ shop { name } }", "UnknownOperation"),
            ("", "UnknownOperation"),
        ],
    )
    def test_operation_name(self, query, expected):
        assert operation_name(query) == expected
