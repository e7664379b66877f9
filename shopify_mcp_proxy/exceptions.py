"""Exception types raised by shopify-mcp-proxy."""


class ProxyError(Exception):
    """Base class for all proxy errors."""


class ConfigError(ProxyError):
    """Configuration is missing or inconsistent."""


class SchemaUnavailableError(ProxyError):
    """A required GraphQL schema could not be loaded or generated."""


class ToolNotFoundError(ProxyError):
    """No tool is registered under the requested name."""


class ToolArgumentError(ProxyError):
    """Tool arguments failed type checks."""
