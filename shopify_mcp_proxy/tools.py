"""Tool catalog: names, annotations and the GraphQL each tool sends."""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .endpoints import ADMIN, STOREFRONT, Surface
from .exceptions import ToolArgumentError, ToolNotFoundError

READ_ONLY = {"readonly": True}


@dataclass(frozen=True)
class GraphQLRequest:
    """Query text plus variables, ready for the dispatcher."""

    query: str
    variables: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class ToolSpec:
    """A named tool bound to one API surface."""

    name: str
    description: str
    surface: Surface
    build: Callable[[dict[str, Any]], GraphQLRequest]
    annotations: dict[str, bool] = field(default_factory=lambda: dict(READ_ONLY))

    def definition(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "annotations": dict(self.annotations)}


def writable(destructive: bool, idempotent: bool) -> dict[str, bool]:
    return {"readonly": False, "destructive": destructive, "idempotent": idempotent}


# Argument checks
def _required_str(args: dict, tool: str, key: str) -> str:
    value = args.get(key)
    if not isinstance(value, str):
        raise ToolArgumentError(f"Tool '{tool}' requires 'arguments.{key}' of type string.")
    return value


def _optional_str(args: dict, tool: str, key: str) -> Optional[str]:
    value = args.get(key)
    if value is not None and not isinstance(value, str):
        raise ToolArgumentError(f"Tool '{tool}' optional argument '{key}' must be a string.")
    return value


def _bool(args: dict, tool: str, key: str, default: bool) -> bool:
    value = args.get(key, default)
    if not isinstance(value, bool):
        raise ToolArgumentError(f"Tool '{tool}' argument '{key}' must be a boolean.")
    return value


def _positive_int(args: dict, tool: str, key: str, default: int) -> int:
    value = args.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ToolArgumentError(f"Tool '{tool}' argument '{key}' must be a positive integer.")
    return value


def _non_empty_list(args: dict, tool: str, key: str) -> list:
    value = args.get(key)
    if not isinstance(value, list) or not value:
        raise ToolArgumentError(f"Tool '{tool}' requires 'arguments.{key}' as a non-empty array.")
    return value


CART_FIELDS = (
    "cart { id checkoutUrl cost { totalAmount { amount currencyCode } } "
    "lines(first: 50) { edges { node { id quantity merchandise { ... on ProductVariant { id title product { title } } } } } } }\n"
    "    userErrors { field message }"
)

PRODUCT_SORT_KEYS = {
    "RELEVANCE",
    "TITLE",
    "PRICE",
    "CREATED_AT",
    "UPDATED_AT",
    "BEST_SELLING",
    "PRODUCT_TYPE",
    "VENDOR",
    "ID",
}
COLLECTION_SORT_KEYS = {"RELEVANCE", "TITLE", "UPDATED_AT", "ID"}


# Storefront tools
def build_get_shop_info(args: dict) -> GraphQLRequest:
    return GraphQLRequest("query ShopInfo { shop { name description paymentSettings { currencyCode } } }")


def build_get_product_by_id(args: dict) -> GraphQLRequest:
    tool = "getProductById"
    product_id = _required_str(args, tool, "productId")
    include_variants = _bool(args, tool, "includeVariants", False)
    variant_count = _positive_int(args, tool, "variantCount", 5)
    include_images = _bool(args, tool, "includeImages", False)
    image_count = _positive_int(args, tool, "imageCount", 1)

    # only declare variables the selection uses
    params = ["$productId: ID!"]
    variables: dict[str, Any] = {"productId": product_id}
    selections = ["id", "title", "descriptionHtml", "vendor"]
    if include_variants:
        params.append("$variantCount: Int!")
        variables["variantCount"] = variant_count
        selections.append(
            "variants(first: $variantCount) { edges { node { id title price { amount currencyCode } "
            "selectedOptions { name value } } } }"
        )
    if include_images:
        params.append("$imageCount: Int!")
        variables["imageCount"] = image_count
        selections.append("images(first: $imageCount) { edges { node { id url altText width height } } }")

    body = "\n    ".join(selections)
    signature = ", ".join(params)
    query = f"""query GetProduct({signature}) {{
  product(id: $productId) {{
    {body}
  }}
}}"""
    return GraphQLRequest(query, variables)


def _search_args(args: dict, tool: str, sort_keys: set[str]) -> dict:
    sort_key = args.get("sortKey", "RELEVANCE")
    if sort_key not in sort_keys:
        raise ToolArgumentError(f"Tool '{tool}' argument 'sortKey' must be one of {', '.join(sorted(sort_keys))}.")
    return {
        "first": _positive_int(args, tool, "first", 10),
        "after": _optional_str(args, tool, "after"),
        "query": _optional_str(args, tool, "query"),
        "sortKey": sort_key,
        "reverse": _bool(args, tool, "reverse", False),
    }


def build_find_products(args: dict) -> GraphQLRequest:
    query = """query FindProducts($first: Int!, $after: String, $query: String, $sortKey: ProductSortKeys, $reverse: Boolean) {
  products(first: $first, after: $after, query: $query, sortKey: $sortKey, reverse: $reverse) {
    pageInfo { hasNextPage hasPreviousPage startCursor endCursor }
    edges {
      cursor
      node {
        id
        title
        handle
        vendor
        priceRange { minVariantPrice { amount currencyCode } maxVariantPrice { amount currencyCode } }
      }
    }
  }
}"""
    return GraphQLRequest(query, _search_args(args, "findProducts", PRODUCT_SORT_KEYS))


def build_get_collection_by_id(args: dict) -> GraphQLRequest:
    tool = "getCollectionById"
    collection_id = _required_str(args, tool, "collectionId")
    include_products = _bool(args, tool, "includeProducts", False)
    product_count = _positive_int(args, tool, "productCount", 10)
    params = ["$collectionId: ID!"]
    variables: dict[str, Any] = {"collectionId": collection_id}
    selections = ["id", "title", "descriptionHtml", "handle"]
    if include_products:
        params.append("$productCount: Int!")
        variables["productCount"] = product_count
        selections.append("products(first: $productCount) { edges { node { id title handle vendor } } }")

    body = "\n    ".join(selections)
    signature = ", ".join(params)
    query = f"""query GetCollection({signature}) {{
  collection(id: $collectionId) {{
    {body}
  }}
}}"""
    return GraphQLRequest(query, variables)


def build_find_collections(args: dict) -> GraphQLRequest:
    query = """query FindCollections($first: Int!, $after: String, $query: String, $sortKey: CollectionSortKeys, $reverse: Boolean) {
  collections(first: $first, after: $after, query: $query, sortKey: $sortKey, reverse: $reverse) {
    pageInfo { hasNextPage hasPreviousPage startCursor endCursor }
    edges {
      cursor
      node {
        id
        title
        handle
        description
      }
    }
  }
}"""
    return GraphQLRequest(query, _search_args(args, "findCollections", COLLECTION_SORT_KEYS))


def build_cart_create(args: dict) -> GraphQLRequest:
    tool = "cartCreate"
    cart_input = {}
    lines = args.get("lines")
    if lines is not None:
        if not isinstance(lines, list):
            raise ToolArgumentError(f"Tool '{tool}' optional argument 'lines' must be an array.")
        cart_input["lines"] = lines
    buyer_identity = args.get("buyerIdentity")
    if buyer_identity is not None:
        if not isinstance(buyer_identity, dict):
            raise ToolArgumentError(f"Tool '{tool}' optional argument 'buyerIdentity' must be an object.")
        cart_input["buyerIdentity"] = buyer_identity
    attributes = args.get("attributes")
    if attributes is not None:
        if not isinstance(attributes, list):
            raise ToolArgumentError(f"Tool '{tool}' optional argument 'attributes' must be an array.")
        cart_input["attributes"] = attributes

    query = f"""mutation CartCreate($input: CartInput!) {{
  cartCreate(input: $input) {{
    {CART_FIELDS}
  }}
}}"""
    return GraphQLRequest(query, {"input": cart_input})


def build_cart_lines_add(args: dict) -> GraphQLRequest:
    tool = "cartLinesAdd"
    cart_id = _required_str(args, tool, "cartId")
    lines = _non_empty_list(args, tool, "lines")
    query = f"""mutation CartLinesAdd($cartId: ID!, $lines: [CartLineInput!]!) {{
  cartLinesAdd(cartId: $cartId, lines: $lines) {{
    {CART_FIELDS}
  }}
}}"""
    return GraphQLRequest(query, {"cartId": cart_id, "lines": lines})


def build_cart_lines_update(args: dict) -> GraphQLRequest:
    tool = "cartLinesUpdate"
    cart_id = _required_str(args, tool, "cartId")
    lines = _non_empty_list(args, tool, "lines")
    query = f"""mutation CartLinesUpdate($cartId: ID!, $lines: [CartLineUpdateInput!]!) {{
  cartLinesUpdate(cartId: $cartId, lines: $lines) {{
    {CART_FIELDS}
  }}
}}"""
    return GraphQLRequest(query, {"cartId": cart_id, "lines": lines})


def build_cart_lines_remove(args: dict) -> GraphQLRequest:
    tool = "cartLinesRemove"
    cart_id = _required_str(args, tool, "cartId")
    line_ids = _non_empty_list(args, tool, "lineIds")
    if not all(isinstance(i, str) for i in line_ids):
        raise ToolArgumentError(f"Tool '{tool}' requires 'arguments.lineIds' as a non-empty array of strings.")
    query = f"""mutation CartLinesRemove($cartId: ID!, $lineIds: [ID!]!) {{
  cartLinesRemove(cartId: $cartId, lineIds: $lineIds) {{
    {CART_FIELDS}
  }}
}}"""
    return GraphQLRequest(query, {"cartId": cart_id, "lineIds": line_ids})


def build_get_cart(args: dict) -> GraphQLRequest:
    cart_id = _required_str(args, "getCart", "cartId")
    query = """query GetCart($cartId: ID!) {
  cart(id: $cartId) {
    id
    createdAt
    updatedAt
    checkoutUrl
    cost { totalAmount { amount currencyCode } subtotalAmount { amount currencyCode } totalTaxAmount { amount currencyCode } totalDutyAmount { amount currencyCode } }
    lines(first: 50) {
      edges {
        node {
          id
          quantity
          cost { totalAmount { amount currencyCode } }
          merchandise {
            ... on ProductVariant {
              id
              title
              price { amount currencyCode }
              product { id title handle }
            }
          }
        }
      }
    }
    buyerIdentity { email phone countryCode customer { id } }
    attributes { key value }
  }
}"""
    return GraphQLRequest(query, {"cartId": cart_id})


# Admin tools
def build_get_customer_by_id(args: dict) -> GraphQLRequest:
    customer_id = _required_str(args, "getCustomerById", "customerId")
    query = "query GetCustomer($id: ID!) { customer(id: $id) { id email firstName lastName phone } }"
    return GraphQLRequest(query, {"id": customer_id})


def build_create_product(args: dict) -> GraphQLRequest:
    product_input = args.get("input")
    if not isinstance(product_input, dict):
        raise ToolArgumentError("Tool 'createProduct' requires 'arguments.input' parameter of type object (ProductInput).")
    query = """mutation ProductCreate($input: ProductInput!) {
  productCreate(input: $input) {
    product {
      id
      title
      handle
      vendor
      status
    }
    userErrors {
      field
      message
    }
  }
}"""
    return GraphQLRequest(query, {"input": product_input})


def build_admin_query(args: dict) -> GraphQLRequest:
    query = _required_str(args, "adminQuery", "query")
    variables = args.get("variables")
    if variables is not None and not isinstance(variables, dict):
        raise ToolArgumentError("Tool 'adminQuery' optional argument 'variables' must be an object.")
    return GraphQLRequest(query, variables)


STOREFRONT_TOOLS = [
    ToolSpec(
        "getShopInfo",
        "Fetches basic information about the configured Shopify shop (name, description, currency). Uses the Storefront API.",
        STOREFRONT,
        build_get_shop_info,
    ),
    ToolSpec(
        "getProductById",
        "Fetches a specific product by its ID, optionally including variants and images. Uses the Storefront API.",
        STOREFRONT,
        build_get_product_by_id,
    ),
    ToolSpec(
        "findProducts",
        "Searches or filters products with pagination and sorting. Uses the Storefront API.",
        STOREFRONT,
        build_find_products,
    ),
    ToolSpec(
        "getCollectionById",
        "Fetches a specific collection by its ID, optionally including products. Uses the Storefront API.",
        STOREFRONT,
        build_get_collection_by_id,
    ),
    ToolSpec(
        "findCollections",
        "Searches or filters collections with pagination and sorting. Uses the Storefront API.",
        STOREFRONT,
        build_find_collections,
    ),
    ToolSpec(
        "cartCreate",
        "Creates a new shopping cart. Uses the Storefront API.",
        STOREFRONT,
        build_cart_create,
        writable(destructive=False, idempotent=False),
    ),
    ToolSpec(
        "cartLinesAdd",
        "Adds line items to an existing shopping cart. Uses the Storefront API.",
        STOREFRONT,
        build_cart_lines_add,
        writable(destructive=False, idempotent=False),
    ),
    ToolSpec(
        "cartLinesUpdate",
        "Updates line items (e.g., quantity) in an existing shopping cart. Uses the Storefront API.",
        STOREFRONT,
        build_cart_lines_update,
        writable(destructive=False, idempotent=True),
    ),
    ToolSpec(
        "cartLinesRemove",
        "Removes line items from an existing shopping cart. Uses the Storefront API.",
        STOREFRONT,
        build_cart_lines_remove,
        writable(destructive=False, idempotent=True),
    ),
    ToolSpec(
        "getCart",
        "Fetches the details of an existing shopping cart by its ID. Uses the Storefront API.",
        STOREFRONT,
        build_get_cart,
    ),
]

ADMIN_TOOLS = [
    ToolSpec(
        "getCustomerById",
        "Retrieves a specific customer using the Admin API.",
        ADMIN,
        build_get_customer_by_id,
    ),
    ToolSpec(
        "createProduct",
        "Creates a new product using the Admin API.",
        ADMIN,
        build_create_product,
        writable(destructive=False, idempotent=False),
    ),
    ToolSpec(
        "adminQuery",
        "Runs a client-supplied GraphQL query or mutation against the Admin API.",
        ADMIN,
        build_admin_query,
        writable(destructive=True, idempotent=False),
    ),
]

TOOLS = {spec.name: spec for spec in STOREFRONT_TOOLS + ADMIN_TOOLS}


def available_tools(admin_enabled: bool) -> list[ToolSpec]:
    """Tools exposed for the current configuration."""
    if admin_enabled:
        return STOREFRONT_TOOLS + ADMIN_TOOLS
    return list(STOREFRONT_TOOLS)


def get_tool(name: str) -> ToolSpec:
    try:
        return TOOLS[name]
    except KeyError:
        raise ToolNotFoundError(f"Tool not found: {name}") from None
