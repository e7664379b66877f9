"""Process-wide handle on configuration, caches and core services."""

from dataclasses import dataclass
from typing import Optional

import requests

from . import __version__
from .config import Config
from .parser import QueryValidator
from .proxy import ProxyDispatcher
from .schema_loader import SchemaCache, SchemaManager
from .versions import VersionCache, VersionResolver


@dataclass
class ProxyContext:
    """Everything a front-end needs to validate and forward requests."""

    config: Config
    session: requests.Session
    versions: VersionResolver
    schemas: SchemaManager
    validator: QueryValidator
    dispatcher: ProxyDispatcher

    def close(self) -> None:
        self.session.close()


def create_context(
    cfg: Config,
    session: Optional[requests.Session] = None,
    version_cache: Optional[VersionCache] = None,
    schema_cache: Optional[SchemaCache] = None,
) -> ProxyContext:
    """
    Wire the core services around one HTTP session.

    Pass fresh caches or a fake session to isolate tests.
    """
    if session is None:
        session = requests.Session()
        session.headers["User-Agent"] = f"shopify-mcp-proxy/{__version__}"

    versions = VersionResolver(cfg, session, version_cache)
    schemas = SchemaManager(cfg, versions, session, schema_cache)
    return ProxyContext(
        config=cfg,
        session=session,
        versions=versions,
        schemas=schemas,
        validator=QueryValidator(schemas),
        dispatcher=ProxyDispatcher(cfg, versions, session),
    )
