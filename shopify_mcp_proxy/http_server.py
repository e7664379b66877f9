"""HTTP front-end: JSON-RPC tool endpoint and raw GraphQL pass-through."""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from . import __version__, tools, utils
from .context import ProxyContext
from .endpoints import ADMIN, STOREFRONT, Surface
from .exceptions import ToolArgumentError, ToolNotFoundError

logger = logging.getLogger(__name__)

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

SCHEMA_URI_PREFIX = "mcp://schemas/"


class JsonRpcError(Exception):
    """Error to be returned as a JSON-RPC error object."""

    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


def http_status_for(code: int) -> int:
    """HTTP status carrying a JSON-RPC error code."""
    if code in (PARSE_ERROR, INVALID_REQUEST, INVALID_PARAMS):
        return 400
    if code == METHOD_NOT_FOUND:
        return 404
    return 500


def rpc_error(request_id, code: int, message: str, data: Any = None) -> JSONResponse:
    error = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return JSONResponse({"jsonrpc": "2.0", "error": error, "id": request_id}, status_code=http_status_for(code))


def rpc_success(request_id, result: Any) -> JSONResponse:
    return JSONResponse({"jsonrpc": "2.0", "result": result, "id": request_id}, status_code=200)


class McpHandler:
    """Dispatches JSON-RPC methods against a ProxyContext."""

    def __init__(self, ctx: ProxyContext):
        self.ctx = ctx
        self.methods = {
            "initialize": self.initialize,
            "prompts": self.prompts,
            "resources": self.resources,
            "resource": self.resource,
            "tools": self.tools,
            "tool": self.tool,
        }

    def handle(self, method: str, params: Any) -> Any:
        handler = self.methods.get(method)
        if handler is None:
            raise JsonRpcError(METHOD_NOT_FOUND, f"Method not found: {method}")
        return handler(params)

    def initialize(self, params: Any) -> dict:
        cfg = self.ctx.config
        return {
            "serverInfo": {"name": "shopify-mcp-proxy", "version": __version__},
            "prompts": self.prompts(params),
            "resources": self.resources(params),
            "tools": self.tools(params),
            "versions": {
                "storefront": self.ctx.versions.resolve(STOREFRONT),
                "admin": self.ctx.versions.resolve(ADMIN),
            },
            "adminApiEnabled": cfg.admin_enabled,
        }

    def prompts(self, params: Any) -> list[dict]:
        return [
            {
                "name": "productLookup",
                "description": "Find a product by keyword and summarize price and availability.",
                "text": "Search the store for {keyword} and summarize the best matching products.",
            }
        ]

    def resources(self, params: Any) -> list[dict]:
        resources = [
            {
                "name": "storefrontSchema",
                "description": "The GraphQL schema for the Storefront API",
                "uri": f"{SCHEMA_URI_PREFIX}{STOREFRONT}",
            }
        ]
        if self.ctx.config.admin_enabled:
            resources.append(
                {
                    "name": "adminSchema",
                    "description": "The GraphQL schema for the Admin API",
                    "uri": f"{SCHEMA_URI_PREFIX}{ADMIN}",
                }
            )
        return resources

    def resource(self, params: Any) -> dict:
        uri = params.get("uri") if isinstance(params, dict) else None
        surface = uri[len(SCHEMA_URI_PREFIX):] if isinstance(uri, str) and uri.startswith(SCHEMA_URI_PREFIX) else None
        if surface not in (STOREFRONT, ADMIN):
            raise JsonRpcError(INVALID_PARAMS, "Invalid resource parameters. Expected { uri: 'mcp://schemas/<surface>' }")

        text = self.ctx.schemas.get_schema(surface)
        if text is None:
            raise JsonRpcError(INTERNAL_ERROR, f"The {surface} schema is not available.")
        return {"uri": uri, "mimeType": "application/graphql", "text": text}

    def tools(self, params: Any) -> list[dict]:
        return [spec.definition() for spec in tools.available_tools(self.ctx.config.admin_enabled)]

    def tool(self, params: Any) -> Any:
        if not isinstance(params, dict) or not isinstance(params.get("name"), str):
            raise JsonRpcError(INVALID_PARAMS, "Invalid tool parameters. Expected { name: string, arguments?: object }")

        name = params["name"]
        arguments = params.get("arguments")
        if not isinstance(arguments, dict):
            arguments = {}

        try:
            spec = tools.get_tool(name)
        except ToolNotFoundError as e:
            raise JsonRpcError(METHOD_NOT_FOUND, str(e)) from None
        if spec.surface == ADMIN and not self.ctx.config.admin_enabled:
            raise JsonRpcError(INTERNAL_ERROR, f"Tool '{name}' requires Admin API, which is disabled.")

        try:
            request = spec.build(arguments)
        except ToolArgumentError as e:
            raise JsonRpcError(INVALID_PARAMS, str(e)) from None

        validation = self.ctx.validator.validate(request.query, spec.surface)
        if not validation.valid:
            raise JsonRpcError(INVALID_PARAMS, "GraphQL query validation failed", validation.errors)

        logger.info("Executing tool %s", name)
        result = self.ctx.dispatcher.proxy(spec.surface, request.query, request.variables)
        if not result.success:
            raise JsonRpcError(INTERNAL_ERROR, result.error_message(), result.payload)
        return result.payload


async def _read_graphql_body(request: Request) -> tuple[Optional[dict], Optional[JSONResponse]]:
    try:
        body = await request.json()
    except ValueError:
        return None, JSONResponse(utils.error_payload("Invalid JSON body"), status_code=400)
    if not isinstance(body, dict) or not body.get("query"):
        return None, JSONResponse(utils.error_payload("Missing GraphQL query in request body"), status_code=400)
    return body, None


def create_app(ctx: ProxyContext) -> FastAPI:
    """Build the FastAPI application around ``ctx``."""
    app = FastAPI(title="Shopify MCP Proxy", version=__version__)
    handler = McpHandler(ctx)

    @app.post("/api/mcp")
    async def mcp_endpoint(request: Request):
        try:
            body = await request.json()
        except ValueError:
            logger.error("MCP endpoint: failed to parse JSON request body")
            return rpc_error(None, PARSE_ERROR, "Parse error")

        if (
            not isinstance(body, dict)
            or body.get("jsonrpc") != "2.0"
            or not isinstance(body.get("method"), str)
            or "id" not in body
        ):
            return rpc_error(None, INVALID_REQUEST, "Invalid Request")

        request_id = body["id"]
        method = body["method"]
        logger.info("MCP request received: method=%s id=%s", method, request_id)
        try:
            result = await run_in_threadpool(handler.handle, method, body.get("params"))
        except JsonRpcError as e:
            return rpc_error(request_id, e.code, e.message, e.data)
        except Exception as e:
            logger.exception("MCP endpoint: internal error processing method %s", method)
            return rpc_error(request_id, INTERNAL_ERROR, str(e) or "Internal error")
        return rpc_success(request_id, result)

    @app.get("/api/mcp")
    async def mcp_get():
        return JSONResponse({"message": "Method Not Allowed"}, status_code=405)

    async def passthrough(request: Request, surface: Surface) -> JSONResponse:
        body, error = await _read_graphql_body(request)
        if error is not None:
            return error
        result = await run_in_threadpool(ctx.dispatcher.proxy, surface, body["query"], body.get("variables"))
        return JSONResponse(result.payload, status_code=result.status_code)

    @app.post("/api/graphql")
    async def storefront_graphql(request: Request):
        return await passthrough(request, STOREFRONT)

    @app.post("/api/adminGraphql")
    async def admin_graphql(request: Request):
        if not ctx.config.admin_enabled:
            return JSONResponse(utils.error_payload("Admin API access is disabled."), status_code=403)
        return await passthrough(request, ADMIN)

    return app
