"""stdio front-end: the tool catalog served over MCP with FastMCP."""

import asyncio
import json
import logging
from typing import Annotated, Any, Literal, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from mcp.types import TextContent
from pydantic import BaseModel, Field

from . import tools
from .context import ProxyContext
from .exceptions import ToolArgumentError
from .proxy import ProxyResult

logger = logging.getLogger(__name__)

SERVER_NAME = "shopify-mcp-proxy"
THUMBNAIL_WIDTH = 75

ProductSortKey = Literal[
    "RELEVANCE", "TITLE", "PRICE", "CREATED_AT", "UPDATED_AT", "BEST_SELLING", "PRODUCT_TYPE", "VENDOR", "ID"
]
CollectionSortKey = Literal["RELEVANCE", "TITLE", "UPDATED_AT", "ID"]


class AttributeInput(BaseModel):
    """Custom key/value attribute on a cart or line."""

    key: str
    value: str


class CartLineInput(BaseModel):
    """A single cart line to add."""

    merchandiseId: str = Field(description="The GID of the product variant.")
    quantity: int = Field(gt=0, description="The quantity of the variant.")
    attributes: Optional[list[AttributeInput]] = Field(None, description="Custom attributes for the line item.")


class CartLineUpdateInput(BaseModel):
    """A single cart line to update."""

    id: str = Field(description="The GID of the cart line to update.")
    quantity: int = Field(ge=0, description="The new quantity (0 to remove).")
    merchandiseId: Optional[str] = Field(None, description="New variant GID if changing the variant.")
    attributes: Optional[list[AttributeInput]] = Field(None, description="New custom attributes.")


class BuyerIdentityInput(BaseModel):
    """Information about the buyer."""

    email: Optional[str] = None
    phone: Optional[str] = None
    countryCode: Optional[str] = Field(None, min_length=2, max_length=2, description="ISO 3166-1 alpha-2 country code.")


def _dump(models) -> Optional[list[dict]]:
    if models is None:
        return None
    return [m.model_dump(exclude_none=True) for m in models]


def tool_meta(name: str) -> dict:
    return {"name": name, "description": tools.TOOLS[name].description}


def json_result(data: Any) -> str:
    """Render data as a fenced JSON text block."""
    return f"```json\n{json.dumps(data, indent=2)}\n```"


def handle_proxy_result(result: ProxyResult) -> str:
    """Successful results become JSON text; failures become tool errors."""
    if result.success:
        return json_result(result.payload)
    raise ToolError(result.error_message("Tool execution failed via proxy."))


def product_with_thumbnail(result: ProxyResult) -> Optional[list[TextContent]]:
    """
    Split a product response into details and a resized first-image URL.

    Returns None when the response has no product image.
    """
    if not result.success or not isinstance(result.payload, dict):
        return None
    product = (result.payload.get("data") or {}).get("product")
    if not isinstance(product, dict):
        return None
    edges = (product.get("images") or {}).get("edges") or []
    if not edges:
        return None

    url = edges[0]["node"]["url"]
    details = {k: v for k, v in product.items() if k != "images"}
    separator = "&" if "?" in url else "?"
    return [
        TextContent(type="text", text=f"Product Details:\n{json_result(details)}"),
        TextContent(type="text", text=f"Image URL ({THUMBNAIL_WIDTH}px): {url}{separator}width={THUMBNAIL_WIDTH}"),
    ]


def create_server(ctx: ProxyContext) -> FastMCP:
    """
    Build the FastMCP server for ``ctx``.

    Queries are not validated against the schema on this path.
    """
    mcp = FastMCP(SERVER_NAME)

    async def call(name: str, arguments: dict[str, Any]) -> ProxyResult:
        spec = tools.get_tool(name)
        try:
            request = spec.build({k: v for k, v in arguments.items() if v is not None})
        except ToolArgumentError as e:
            raise ToolError(str(e)) from None
        logger.info("[tool:%s] Executing", name)
        return await asyncio.to_thread(ctx.dispatcher.proxy, spec.surface, request.query, request.variables)

    @mcp.tool(**tool_meta("getShopInfo"))
    async def get_shop_info() -> str:
        return handle_proxy_result(await call("getShopInfo", {}))

    @mcp.tool(**tool_meta("getProductById"))
    async def get_product_by_id(
        productId: Annotated[str, Field(description="The GID of the product (e.g., 'gid://shopify/Product/123').")],
        includeVariants: Annotated[bool, Field(description="Whether to include product variants.")] = False,
        variantCount: Annotated[int, Field(gt=0, description="Maximum number of variants to return.")] = 5,
        includeImages: Annotated[bool, Field(description="Return first image URL (75px)?")] = False,
    ):
        result = await call(
            "getProductById",
            {
                "productId": productId,
                "includeVariants": includeVariants,
                "variantCount": variantCount,
                "includeImages": includeImages,
                "imageCount": 1,
            },
        )
        if includeImages:
            blocks = product_with_thumbnail(result)
            if blocks:
                return blocks
        return handle_proxy_result(result)

    @mcp.tool(**tool_meta("findProducts"))
    async def find_products(
        query: Annotated[Optional[str], Field(description="The search query string.")] = None,
        first: Annotated[int, Field(gt=0, description="Number of products per page.")] = 10,
        after: Annotated[Optional[str], Field(description="Cursor for pagination (from previous pageInfo.endCursor).")] = None,
        sortKey: Annotated[ProductSortKey, Field(description="Sort key (e.g., TITLE, PRICE).")] = "RELEVANCE",
        reverse: Annotated[bool, Field(description="Reverse the sort order.")] = False,
    ) -> str:
        args = {"query": query, "first": first, "after": after, "sortKey": sortKey, "reverse": reverse}
        return handle_proxy_result(await call("findProducts", args))

    @mcp.tool(**tool_meta("getCollectionById"))
    async def get_collection_by_id(
        collectionId: Annotated[str, Field(description="The GID of the collection (e.g., 'gid://shopify/Collection/123').")],
        includeProducts: Annotated[bool, Field(description="Whether to include products in the collection.")] = False,
        productCount: Annotated[int, Field(gt=0, description="Maximum number of products to return.")] = 10,
    ) -> str:
        args = {"collectionId": collectionId, "includeProducts": includeProducts, "productCount": productCount}
        return handle_proxy_result(await call("getCollectionById", args))

    @mcp.tool(**tool_meta("findCollections"))
    async def find_collections(
        query: Annotated[Optional[str], Field(description="The search query string.")] = None,
        first: Annotated[int, Field(gt=0, description="Number of collections per page.")] = 10,
        after: Annotated[Optional[str], Field(description="Cursor for pagination (from previous pageInfo.endCursor).")] = None,
        sortKey: Annotated[CollectionSortKey, Field(description="Sort key (e.g., TITLE, UPDATED_AT).")] = "RELEVANCE",
        reverse: Annotated[bool, Field(description="Reverse the sort order.")] = False,
    ) -> str:
        args = {"query": query, "first": first, "after": after, "sortKey": sortKey, "reverse": reverse}
        return handle_proxy_result(await call("findCollections", args))

    @mcp.tool(**tool_meta("cartCreate"))
    async def cart_create(
        lines: Annotated[Optional[list[CartLineInput]], Field(description="Initial line items to add to the cart.")] = None,
        buyerIdentity: Annotated[Optional[BuyerIdentityInput], Field(description="Information about the buyer.")] = None,
        attributes: Annotated[Optional[list[AttributeInput]], Field(description="Custom attributes for the cart.")] = None,
    ) -> str:
        args = {
            "lines": _dump(lines),
            "buyerIdentity": buyerIdentity.model_dump(exclude_none=True) if buyerIdentity else None,
            "attributes": _dump(attributes),
        }
        return handle_proxy_result(await call("cartCreate", args))

    @mcp.tool(**tool_meta("cartLinesAdd"))
    async def cart_lines_add(
        cartId: Annotated[str, Field(description="The GID of the cart to modify.")],
        lines: Annotated[list[CartLineInput], Field(min_length=1, description="Line items to add.")],
    ) -> str:
        return handle_proxy_result(await call("cartLinesAdd", {"cartId": cartId, "lines": _dump(lines)}))

    @mcp.tool(**tool_meta("cartLinesUpdate"))
    async def cart_lines_update(
        cartId: Annotated[str, Field(description="The GID of the cart to modify.")],
        lines: Annotated[list[CartLineUpdateInput], Field(min_length=1, description="Line items to update.")],
    ) -> str:
        return handle_proxy_result(await call("cartLinesUpdate", {"cartId": cartId, "lines": _dump(lines)}))

    @mcp.tool(**tool_meta("cartLinesRemove"))
    async def cart_lines_remove(
        cartId: Annotated[str, Field(description="The GID of the cart to modify.")],
        lineIds: Annotated[list[str], Field(min_length=1, description="Array of cart line GIDs to remove.")],
    ) -> str:
        return handle_proxy_result(await call("cartLinesRemove", {"cartId": cartId, "lineIds": lineIds}))

    @mcp.tool(**tool_meta("getCart"))
    async def get_cart(
        cartId: Annotated[str, Field(description="The GID of the cart to fetch.")],
    ) -> str:
        return handle_proxy_result(await call("getCart", {"cartId": cartId}))

    if ctx.config.admin_enabled:
        register_admin_tools(mcp, call)

    return mcp


def register_admin_tools(mcp: FastMCP, call) -> None:
    """Admin tools, exposed only when the Admin API is enabled."""

    @mcp.tool(**tool_meta("getCustomerById"))
    async def get_customer_by_id(
        customerId: Annotated[str, Field(description="The GID of the customer (e.g., 'gid://shopify/Customer/123').")],
    ) -> str:
        return handle_proxy_result(await call("getCustomerById", {"customerId": customerId}))

    @mcp.tool(**tool_meta("createProduct"))
    async def create_product(
        input: Annotated[dict[str, Any], Field(description="ProductInput object (title, vendor, productType, ...).")],
    ) -> str:
        return handle_proxy_result(await call("createProduct", {"input": input}))

    @mcp.tool(**tool_meta("adminQuery"))
    async def admin_query(
        query: Annotated[str, Field(description="GraphQL query or mutation document.")],
        variables: Annotated[Optional[dict[str, Any]], Field(description="Variables for the operation.")] = None,
    ) -> str:
        return handle_proxy_result(await call("adminQuery", {"query": query, "variables": variables}))


def run(ctx: ProxyContext) -> None:
    """Serve over stdio until the client disconnects."""
    server = create_server(ctx)
    logger.info("Shopify MCP Proxy running on stdio")
    server.run(transport="stdio")
