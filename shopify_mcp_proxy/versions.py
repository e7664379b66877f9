"""API version discovery and resolution."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

import requests

from . import utils
from .config import Config
from .endpoints import ADMIN, STOREFRONT, Surface, check_surface, discovery_endpoint, post_graphql

logger = logging.getLogger(__name__)

PUBLIC_API_VERSIONS_QUERY = "query PublicApiVersions { publicApiVersions { handle displayName supported } }"
CACHE_TTL_SECONDS = 5 * 60
# Known stable release used when nothing can be discovered
FALLBACK_STOREFRONT_VERSION = "2024-07"


@dataclass(frozen=True)
class ApiVersionInfo:
    """One entry of ``publicApiVersions``."""

    handle: str
    display_name: str
    supported: bool

    @classmethod
    def from_json(cls, item: dict) -> "ApiVersionInfo":
        """
        Build from an upstream item.

        Raises:
            KeyError, TypeError: If the item lacks ``handle`` or ``supported``.
        """
        return cls(
            handle=str(item["handle"]),
            display_name=str(item.get("displayName") or item["handle"]),
            supported=bool(item["supported"]),
        )


@dataclass(frozen=True)
class VersionCacheEntry:
    """Discovered versions for one surface and when they were fetched."""

    versions: tuple[ApiVersionInfo, ...]
    fetched_at: float


class VersionCache:
    """Per-surface version lists with a fixed time-to-live."""

    def __init__(self, ttl: float = CACHE_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._entries: dict[str, VersionCacheEntry] = {}

    def entry(self, surface: Surface) -> Optional[VersionCacheEntry]:
        return self._entries.get(surface)

    def get(self, surface: Surface) -> Optional[tuple[ApiVersionInfo, ...]]:
        """Cached versions if younger than the TTL, else None."""
        entry = self._entries.get(surface)
        if entry and self.clock() - entry.fetched_at < self.ttl:
            return entry.versions
        return None

    def put(self, surface: Surface, versions: Iterable[ApiVersionInfo]) -> VersionCacheEntry:
        entry = VersionCacheEntry(tuple(versions), self.clock())
        self._entries[surface] = entry
        return entry


def latest_supported(versions: Optional[Iterable[ApiVersionInfo]]) -> Optional[str]:
    """
    Handle of the newest supported version.

    Handles follow ``YYYY-MM`` so string order is release order.
    """
    if not versions:
        return None
    handles = [v.handle for v in versions if v.supported]
    return max(handles) if handles else None


def is_supported(versions: Optional[Iterable[ApiVersionInfo]], handle: str) -> bool:
    return any(v.handle == handle and v.supported for v in versions or ())


class VersionResolver:
    """Picks the API version each surface should target."""

    def __init__(self, cfg: Config, session: requests.Session, cache: Optional[VersionCache] = None):
        self.cfg = cfg
        self.session = session
        self.cache = cache if cache is not None else VersionCache()

    def pinned(self, surface: Surface) -> Optional[str]:
        """Version pinned in configuration, if any."""
        if surface == ADMIN:
            return self.cfg.admin_api_version
        return self.cfg.storefront_api_version

    def fetch_versions(self, surface: Surface) -> Optional[tuple[ApiVersionInfo, ...]]:
        """
        Discovered versions for ``surface``, from cache or upstream.

        Returns None on any failure; the cache is only written on success.
        """
        cached = self.cache.get(surface)
        if cached is not None:
            logger.debug("Using cached %s API versions", surface)
            return cached

        endpoint = discovery_endpoint(self.cfg, surface)
        if endpoint is None:
            logger.info("Admin API not configured or enabled. Cannot fetch admin versions.")
            return None

        logger.info("Fetching %s publicApiVersions from %s", surface, endpoint.url)
        try:
            resp = post_graphql(
                self.session, endpoint, {"query": PUBLIC_API_VERSIONS_QUERY}, timeout=self.cfg.request_timeout
            )
        except requests.RequestException as e:
            logger.error("Error fetching %s publicApiVersions: %s", surface, e)
            return None

        if not resp.ok:
            logger.error(
                "Error fetching %s publicApiVersions: HTTP status %s %s",
                surface,
                resp.status_code,
                utils.body_preview(resp),
            )
            return None

        payload = utils.json_body(resp)
        try:
            items = payload["data"]["publicApiVersions"]
            versions = tuple(ApiVersionInfo.from_json(item) for item in items)
        except (KeyError, TypeError):
            logger.error("Error fetching %s publicApiVersions: invalid response structure", surface)
            return None

        self.cache.put(surface, versions)
        logger.info("Fetched and cached %d %s API versions", len(versions), surface)
        return versions

    def resolve(self, surface: Surface) -> Optional[str]:
        """
        Version handle to use for ``surface``.

        Storefront always yields a handle; admin yields None when disabled or
        when no supported version could be discovered.
        """
        check_surface(surface)
        if surface == ADMIN and not self.cfg.admin_enabled:
            return None

        configured = self.pinned(surface)
        versions = self.fetch_versions(surface)

        if configured and is_supported(versions, configured):
            logger.info("Using configured and supported %s API version: %s", surface, configured)
            return configured
        if configured:
            logger.warning('Configured %s API version "%s" is invalid or unsupported.', surface, configured)

        latest = latest_supported(versions)
        if latest:
            logger.info("Using latest stable %s API version: %s", surface, latest)
            return latest

        if surface == STOREFRONT:
            logger.warning(
                "Could not determine latest stable storefront API version. Using fallback: %s",
                FALLBACK_STOREFRONT_VERSION,
            )
            return FALLBACK_STOREFRONT_VERSION

        logger.warning("Could not determine latest stable admin API version.")
        return None

    def resolve_storefront(self) -> str:
        return self.resolve(STOREFRONT)

    def resolve_admin(self) -> Optional[str]:
        return self.resolve(ADMIN)
