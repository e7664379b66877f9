"""GraphQL proxy exposing Shopify Storefront and Admin APIs as MCP tools."""

__version__ = "0.3.0"
