"""Shared fixtures: a fake upstream Shopify, configs and a test schema."""

import json as jsonlib
from unittest.mock import Mock

import pytest
import requests
from graphql import build_schema, introspection_from_schema

from shopify_mcp_proxy.config import Config
from shopify_mcp_proxy.context import create_context
from shopify_mcp_proxy.versions import VersionCache

TEST_SDL = """
type Query {
  shop: Shop!
  product(id: ID!): Product
  customer(id: ID!): Customer
}

type Shop {
  name: String!
  description: String
  paymentSettings: PaymentSettings!
}

type PaymentSettings {
  currencyCode: String!
}

type Product {
  id: ID!
  title: String!
  descriptionHtml: String!
  vendor: String!
}

type Customer {
  id: ID!
  email: String
  firstName: String
  lastName: String
  phone: String
}
"""

VERSION_LIST = [
    {"handle": "2024-10", "displayName": "2024-10", "supported": True},
    {"handle": "2025-01", "displayName": "2025-01 (Latest)", "supported": True},
    {"handle": "2025-04", "displayName": "2025-04 (Release candidate)", "supported": False},
    {"handle": "unstable", "displayName": "unstable", "supported": False},
]


def make_response(status_code=200, body=None, text=None, url="https://upstream.test/graphql.json"):
    """Build a real requests.Response with a canned body."""
    resp = requests.Response()
    resp.status_code = status_code
    resp._content = (text if text is not None else jsonlib.dumps(body)).encode("utf-8")
    resp.encoding = "utf-8"
    resp.url = url
    return resp


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class Upstream:
    """
    Stand-in for Shopify behind a mocked requests.Session.

    Each attribute holds the response (or exception) returned for one kind of
    request: version discovery, introspection, or anything else.
    """

    def __init__(self):
        self.versions = make_response(200, {"data": {"publicApiVersions": VERSION_LIST}})
        self.introspection = make_response(200, {"data": introspection_from_schema(build_schema(TEST_SDL))})
        self.graphql = make_response(200, {"data": {"shop": {"name": "Mock Shop"}}})
        self.session = Mock(spec=requests.Session)
        self.session.post.side_effect = self._route

    @staticmethod
    def kind_of(query):
        if "publicApiVersions" in query:
            return "versions"
        if "__schema" in query:
            return "introspection"
        return "graphql"

    def _route(self, url, json=None, headers=None, timeout=None):
        result = getattr(self, self.kind_of(json["query"]))
        if isinstance(result, Exception):
            raise result
        return result

    def calls(self, kind):
        """Recorded session.post calls of one kind."""
        return [c for c in self.session.post.call_args_list if self.kind_of(c.kwargs["json"]["query"]) == kind]


@pytest.fixture
def upstream():
    return Upstream()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def schema_dir(tmp_path):
    return str(tmp_path / "schemas")


@pytest.fixture
def mock_config(schema_dir):
    """No store configured: storefront goes to mock.shop, admin disabled."""
    return Config(schema_dir=schema_dir)


@pytest.fixture
def store_config(schema_dir):
    """Real store with storefront and admin access."""
    return Config(
        store_domain="test-shop.myshopify.com",
        storefront_access_token="sf-token",
        admin_enabled=True,
        admin_access_token="admin-token",
        schema_dir=schema_dir,
    )


@pytest.fixture
def make_context(upstream, clock):
    def factory(cfg, **kwargs):
        kwargs.setdefault("version_cache", VersionCache(clock=clock))
        return create_context(cfg, session=upstream.session, **kwargs)

    return factory
