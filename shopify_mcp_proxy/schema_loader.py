"""Schema loading and caching."""

import logging
from typing import Optional

import requests
from graphql import build_client_schema, print_schema

from . import utils
from .config import Config
from .endpoints import ADMIN, STOREFRONT, Surface, check_surface, endpoint_for, post_graphql
from .exceptions import ConfigError, SchemaUnavailableError
from .versions import VersionResolver

logger = logging.getLogger(__name__)


class SchemaCache:
    """In-memory schema text per surface."""

    def get(self, surface: Surface, version: str) -> Optional[str]:
        raise NotImplementedError

    def put(self, surface: Surface, version: str, text: str) -> None:
        raise NotImplementedError

    def invalidate(self, surface: Surface) -> None:
        raise NotImplementedError


class SingleSlotSchemaCache(SchemaCache):
    """
    One slot per surface holding whatever schema was loaded last.

    The version is ignored on lookup, so after the resolver moves to a newer
    version the previously loaded schema keeps being served until the slot
    is invalidated.
    """

    def __init__(self):
        self._slots: dict[str, str] = {}

    def get(self, surface: Surface, version: str) -> Optional[str]:
        return self._slots.get(surface)

    def put(self, surface: Surface, version: str, text: str) -> None:
        self._slots[surface] = text

    def invalidate(self, surface: Surface) -> None:
        self._slots.pop(surface, None)


class VersionKeyedSchemaCache(SchemaCache):
    """Schema text keyed by surface and version."""

    def __init__(self):
        self._entries: dict[tuple[str, str], str] = {}

    def get(self, surface: Surface, version: str) -> Optional[str]:
        return self._entries.get((surface, version))

    def put(self, surface: Surface, version: str, text: str) -> None:
        self._entries[(surface, version)] = text

    def invalidate(self, surface: Surface) -> None:
        self._entries = {k: v for k, v in self._entries.items() if k[0] != surface}


def schema_path_for(schema_dir: str, surface: Surface, version: str) -> str:
    """
    Get cache path for a schema.

    Args:
        schema_dir: Directory holding schema files
        surface: "storefront" or "admin"
        version: Resolved API version

    Returns:
        Path to the version-qualified schema file
    """
    return utils.join(schema_dir, f"schema-{surface}-{version}.graphql")


def introspect(
    session: requests.Session, cfg: Config, surface: Surface, version: str
) -> Optional[dict]:
    """
    Introspect a GraphQL schema via HTTP.

    Args:
        session: HTTP session
        cfg: Configuration object
        surface: API surface to introspect
        version: Resolved API version

    Returns:
        Introspection result (the ``data`` object holding ``__schema``), or
        None if the endpoint could not be built, the request failed, or the
        response carried errors.
    """
    try:
        endpoint = endpoint_for(cfg, surface, version)
    except ConfigError as e:
        logger.error("%s API configuration missing for introspection: %s", surface, e)
        return None

    logger.info("Introspecting %s schema from %s", surface, endpoint.url)
    try:
        resp = post_graphql(session, endpoint, {"query": utils.INTROSPECTION_QUERY}, timeout=cfg.request_timeout)
    except requests.RequestException as e:
        logger.error("Error during %s introspection: %s", surface, e)
        return None

    if not resp.ok:
        logger.error(
            "Error during %s introspection: HTTP status %s %s", surface, resp.status_code, utils.body_preview(resp)
        )
        return None

    payload = utils.json_body(resp)
    if not isinstance(payload, dict):
        logger.error("Error during %s introspection: non-JSON response", surface)
        return None

    if payload.get("errors"):
        logger.error("Error during %s introspection: GraphQL errors received %s", surface, payload["errors"])
        return None

    data = payload.get("data")
    if not isinstance(data, dict) or "__schema" not in data:
        logger.error("Error during %s introspection: invalid response structure", surface)
        return None

    logger.info("Successfully performed %s introspection", surface)
    return data


def render_schema(introspection: dict) -> str:
    """Print an introspection result as canonical SDL."""
    return print_schema(build_client_schema(introspection))


class SchemaManager:
    """Provides schema SDL per surface, generating files on demand."""

    def __init__(
        self,
        cfg: Config,
        versions: VersionResolver,
        session: requests.Session,
        cache: Optional[SchemaCache] = None,
    ):
        self.cfg = cfg
        self.versions = versions
        self.session = session
        self.cache = cache if cache is not None else SingleSlotSchemaCache()

    def schema_path(self, surface: Surface) -> Optional[str]:
        """Path of the schema file for the currently resolved version."""
        version = self.versions.resolve(surface)
        if version is None:
            return None
        return schema_path_for(self.cfg.schema_dir, surface, version)

    def introspect_and_save(self, surface: Surface, version: str, path: str) -> bool:
        """Introspect ``surface`` and write its SDL to ``path``."""
        result = introspect(self.session, self.cfg, surface, version)
        if result is None:
            logger.error("Introspection failed for %s API", surface)
            return False

        try:
            text = render_schema(result)
            utils.ensure_dir(utils.dirname(path))
            utils.write_text(path, text)
        except (OSError, TypeError, ValueError) as e:
            logger.error("Error building or saving %s schema to %s: %s", surface, path, e)
            return False

        logger.info("%s schema saved to %s", surface, path)
        return True

    def get_schema(self, surface: Surface) -> Optional[str]:
        """
        Schema SDL for ``surface``.

        Returns:
            Schema text, or None for admin when disabled or unavailable

        Raises:
            SchemaUnavailableError: If the storefront schema cannot be loaded.
        """
        check_surface(surface)
        if surface == ADMIN and not self.cfg.admin_enabled:
            return None

        version = self.versions.resolve(surface)
        if version is None:
            logger.warning("Could not resolve %s API version. Cannot load %s schema.", surface, surface)
            return None

        cached = self.cache.get(surface, version)
        if cached is not None:
            logger.debug("Returning cached %s schema", surface)
            return cached

        path = schema_path_for(self.cfg.schema_dir, surface, version)
        if not utils.exists(path):
            logger.info("%s schema file %s not found, introspecting %s", surface, path, version)
            if not self.introspect_and_save(surface, version, path):
                return self._unavailable(surface, f"Failed to generate {surface} schema version {version} via introspection.")
            self.cache.invalidate(surface)

        return self._load(surface, version, path)

    def refresh(self, surface: Surface) -> str:
        """
        Regenerate the schema file for the resolved version.

        Returns:
            Path of the written file

        Raises:
            SchemaUnavailableError: If the version cannot be resolved or
                introspection fails.
        """
        check_surface(surface)
        version = self.versions.resolve(surface)
        if version is None:
            raise SchemaUnavailableError(f"Could not resolve {surface} API version.")

        path = schema_path_for(self.cfg.schema_dir, surface, version)
        if not self.introspect_and_save(surface, version, path):
            raise SchemaUnavailableError(f"Failed to generate {surface} schema version {version} via introspection.")
        self.cache.invalidate(surface)
        self._load(surface, version, path)
        return path

    def get_storefront_schema(self) -> str:
        return self.get_schema(STOREFRONT)

    def get_admin_schema(self) -> Optional[str]:
        return self.get_schema(ADMIN)

    def _load(self, surface: Surface, version: str, path: str) -> Optional[str]:
        logger.info("Reading %s schema from %s", surface, path)
        try:
            text = utils.read_text(path)
        except OSError as e:
            logger.error("Error reading %s schema file %s: %s", surface, path, e)
            self.cache.invalidate(surface)
            return self._unavailable(surface, f"Failed to load {surface} schema version {version} from {path}.")
        self.cache.put(surface, version, text)
        return text

    def _unavailable(self, surface: Surface, message: str) -> Optional[str]:
        if surface == STOREFRONT:
            raise SchemaUnavailableError(message)
        logger.error(message)
        return None
