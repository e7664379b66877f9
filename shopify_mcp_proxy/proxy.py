"""Request forwarding to the upstream GraphQL APIs."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests

from . import utils
from .config import Config
from .endpoints import (
    ADMIN,
    STOREFRONT,
    Endpoint,
    Surface,
    admin_endpoint,
    check_surface,
    post_graphql,
    storefront_endpoint,
)
from .exceptions import ConfigError
from .versions import VersionResolver

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger(__name__ + ".audit")


@dataclass(frozen=True)
class ProxyResult:
    """
    Normalized outcome of a proxied call.

    ``success`` is HTTP-level only: a 2xx body carrying GraphQL ``errors`` is
    still a success.
    """

    success: bool
    status_code: int
    payload: Any

    def error_message(self, default: str = "Tool execution failed") -> str:
        return utils.first_error_message(self.payload, default)


def failure(status_code: int, message: str) -> ProxyResult:
    return ProxyResult(False, status_code, utils.error_payload(message))


class ProxyDispatcher:
    """Sends GraphQL requests to the storefront or admin endpoint."""

    def __init__(self, cfg: Config, versions: VersionResolver, session: requests.Session):
        self.cfg = cfg
        self.versions = versions
        self.session = session

    def proxy(self, surface: Surface, query: str, variables: Optional[dict] = None) -> ProxyResult:
        if check_surface(surface) == ADMIN:
            return self.proxy_admin(query, variables)
        return self.proxy_storefront(query, variables)

    def proxy_storefront(self, query: str, variables: Optional[dict] = None) -> ProxyResult:
        """Forward a request to the storefront API (real store or mock.shop)."""
        version = self.versions.resolve(STOREFRONT)
        try:
            endpoint = storefront_endpoint(self.cfg, version)
        except ConfigError as e:
            logger.error("Storefront proxy configuration error: %s", e)
            return failure(500, "Internal Server Configuration Error")

        logger.info("Proxying storefront request to %s", endpoint.url)
        return self._dispatch(STOREFRONT, endpoint, query, variables)

    def proxy_admin(self, query: str, variables: Optional[dict] = None) -> ProxyResult:
        """Forward a request to the admin API, if enabled and configured."""
        if not self.cfg.admin_enabled:
            logger.error("Admin proxy request failed: Admin API access is disabled.")
            return failure(403, "Admin API access is disabled.")
        if not self.cfg.admin_access_token or not self.cfg.store_domain:
            logger.error("Admin proxy request failed: Admin API enabled but missing token or store domain.")
            return failure(500, "Admin API configuration error: Missing token or store domain.")

        version = self.versions.resolve(ADMIN)
        if not version:
            logger.error("Admin proxy request failed: Could not resolve Admin API version.")
            return failure(500, "Internal Server Error: Could not resolve Admin API version.")

        endpoint = admin_endpoint(self.cfg, version)
        # variables may hold customer data and are never logged
        audit_logger.info(
            "AUDIT: Proxying Admin request: Operation=%s, Target=%s", utils.operation_name(query), endpoint.url
        )
        return self._dispatch(ADMIN, endpoint, query, variables)

    def _dispatch(self, surface: Surface, endpoint: Endpoint, query: str, variables: Optional[dict]) -> ProxyResult:
        try:
            resp = post_graphql(
                self.session, endpoint, {"query": query, "variables": variables}, timeout=self.cfg.request_timeout
            )
        except requests.RequestException as e:
            message = f"Failed to proxy request to Shopify {surface.title()} API. {e}"
            logger.error("Error proxying %s request: %s", surface, message)
            return failure(502, message)

        payload = utils.json_body(resp)
        if payload is None:
            logger.error("Non-JSON %s response, HTTP status %s: %s", surface, resp.status_code, utils.body_preview(resp))
            status = 502 if resp.ok else resp.status_code
            return failure(status, f"Shopify {surface.title()} API returned a non-JSON response (HTTP {resp.status_code}).")

        if not resp.ok:
            logger.warning("%s API responded with HTTP status %s", surface, resp.status_code)
        return ProxyResult(resp.ok, resp.status_code, payload)
