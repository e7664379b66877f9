"""Upstream endpoint URLs, auth headers and the shared POST helper."""

from dataclasses import dataclass, field
from typing import Any, Literal, Optional

import requests

from .config import Config
from .exceptions import ConfigError

Surface = Literal["storefront", "admin"]
STOREFRONT: Surface = "storefront"
ADMIN: Surface = "admin"
SURFACES = (STOREFRONT, ADMIN)

MOCK_SHOP_API = "https://mock.shop/api"
DISCOVERY_VERSION = "unstable"

STOREFRONT_TOKEN_HEADER = "X-Shopify-Storefront-Access-Token"
# The only admin token header the Admin API documents
ADMIN_TOKEN_HEADER = "X-Shopify-Access-Token"


@dataclass(frozen=True)
class Endpoint:
    """A GraphQL endpoint and the headers it needs."""

    url: str
    headers: dict[str, str] = field(default_factory=dict)


def check_surface(surface: str) -> Surface:
    """Reject anything that is not a known API surface."""
    if surface not in SURFACES:
        raise ValueError(f"Unknown API surface: {surface!r}")
    return surface


def storefront_endpoint(cfg: Config, version: str) -> Endpoint:
    """
    Storefront endpoint for a resolved version.

    Raises:
        ConfigError: If a real store is configured without a storefront token.
    """
    if cfg.is_mock_shop:
        return Endpoint(f"{MOCK_SHOP_API}/{version}/graphql.json")
    if cfg.store_domain and cfg.storefront_access_token:
        return Endpoint(
            f"https://{cfg.store_domain}/api/{version}/graphql.json",
            {STOREFRONT_TOKEN_HEADER: cfg.storefront_access_token},
        )
    raise ConfigError("Real store configured but storefront domain or access token is missing.")


def admin_endpoint(cfg: Config, version: str) -> Endpoint:
    """
    Admin endpoint for a resolved version.

    Raises:
        ConfigError: If the Admin API is disabled or misses a token or store.
    """
    if not cfg.admin_enabled:
        raise ConfigError("Admin API access is disabled.")
    if not cfg.store_domain or not cfg.admin_access_token:
        raise ConfigError("Admin API configuration error: Missing token or store domain.")
    return Endpoint(
        f"https://{cfg.store_domain}/admin/api/{version}/graphql.json",
        {ADMIN_TOKEN_HEADER: cfg.admin_access_token},
    )


def endpoint_for(cfg: Config, surface: Surface, version: str) -> Endpoint:
    """Endpoint for ``surface`` at ``version``."""
    if check_surface(surface) == ADMIN:
        return admin_endpoint(cfg, version)
    return storefront_endpoint(cfg, version)


def discovery_endpoint(cfg: Config, surface: Surface) -> Optional[Endpoint]:
    """
    Version-agnostic endpoint used to list public API versions.

    Returns None when the surface cannot be queried (admin not configured).
    """
    if check_surface(surface) == ADMIN:
        if not cfg.admin_enabled or not cfg.store_domain or not cfg.admin_access_token:
            return None
        version = cfg.admin_api_version or DISCOVERY_VERSION
        return Endpoint(
            f"https://{cfg.store_domain}/admin/api/{version}/graphql.json",
            {ADMIN_TOKEN_HEADER: cfg.admin_access_token},
        )

    if cfg.store_domain and cfg.storefront_access_token:
        version = cfg.storefront_api_version or DISCOVERY_VERSION
        return Endpoint(
            f"https://{cfg.store_domain}/api/{version}/graphql.json",
            {STOREFRONT_TOKEN_HEADER: cfg.storefront_access_token},
        )
    return Endpoint(f"{MOCK_SHOP_API}/{DISCOVERY_VERSION}/graphql.json")


def post_graphql(
    session: requests.Session,
    endpoint: Endpoint,
    body: dict[str, Any],
    timeout: Optional[float] = None,
) -> requests.Response:
    """
    POST a GraphQL body as JSON, bypassing HTTP caches.

    Network errors propagate as requests.RequestException.
    """
    headers = {
        "Content-Type": "application/json",
        "Cache-Control": "no-store",
        **endpoint.headers,
    }
    return session.post(endpoint.url, json=body, headers=headers, timeout=timeout)
