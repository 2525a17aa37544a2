#!/usr/bin/env python3
"""
MCP Server Entrypoint

HTTP API server that exposes the registered StudyOS tools, both as a
JSON-RPC endpoint (/mcp) and as plain REST routes.
"""

import json
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, Optional, Union

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel, Field

from .config import Settings, load_settings
from .dispatcher import Dispatcher
from .gateway import BackendGateway
from .protocol import PARSE_ERROR, ErrorKind, ToolFailure, ToolInvocation, rpc_error
from .registry import SERVER_NAME, SERVER_VERSION, build_registry

logger = logging.getLogger(__name__)

_HTTP_STATUS = {
    ErrorKind.UNKNOWN_TOOL: 404,
    ErrorKind.INVALID_ARGUMENTS: 422,
    ErrorKind.EXECUTION_FAILURE: 502,
}


class ToolRequest(BaseModel):
    """Request body for tool execution."""

    arguments: Any = Field(default_factory=dict)
    requestId: Union[str, int, None] = None


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the application. ``transport`` replaces the backend HTTP transport (tests)."""
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        gateway = BackendGateway(settings.backend_url, settings.backend_timeout, transport=transport)
        registry = build_registry(gateway)
        app.state.gateway = gateway
        app.state.registry = registry
        app.state.dispatcher = Dispatcher(registry)

        logger.info(f"MCP Server starting with {len(registry)} tools")
        for name in registry.names():
            logger.info(f"  - {name}")
        if not gateway.configured:
            logger.warning("STUDYOS_BACKEND_URL is not set; backend tools will fail")

        yield

        logger.info("MCP Server shutting down")

    app = FastAPI(
        title="StudyOS MCP Server",
        description="Model Context Protocol server for StudyOS backend tools",
        version=SERVER_VERSION,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ============== API Endpoints ==============

    @app.get("/", response_class=PlainTextResponse)
    async def root():
        return "StudyOS MCP server is running"

    @app.get("/health")
    async def health(request: Request):
        return {
            "status": "ok",
            "server": SERVER_NAME,
            "tools_loaded": len(request.app.state.registry),
            "backend_configured": request.app.state.gateway.configured,
        }

    @app.get("/.well-known/mcp.json")
    async def manifest(request: Request):
        return request.app.state.registry.manifest()

    @app.get("/tools")
    async def list_tools(request: Request):
        registry = request.app.state.registry
        return {
            "total": len(registry),
            "tools": [registry.describe(definition) for definition in registry],
        }

    @app.get("/tools/{tool_name}")
    async def get_tool_info(tool_name: str, request: Request):
        registry = request.app.state.registry
        definition = registry.get(tool_name)
        if definition is None:
            raise HTTPException(status_code=404, detail=f"Tool not found: {tool_name}")
        return registry.describe(definition)

    @app.post("/tools/{tool_name}/execute")
    async def execute_tool_endpoint(tool_name: str, body: ToolRequest, request: Request):
        invocation = ToolInvocation(
            toolName=tool_name,
            arguments=body.arguments,
            requestId=body.requestId if body.requestId is not None else uuid.uuid4().hex,
        )
        outcome = await request.app.state.dispatcher.dispatch(invocation)
        status = _HTTP_STATUS[outcome.error.kind] if isinstance(outcome, ToolFailure) else 200
        return JSONResponse(status_code=status, content=outcome.model_dump(mode="json"))

    # ============== JSON-RPC Endpoint ==============

    @app.post("/mcp")
    async def mcp_endpoint(request: Request):
        try:
            message = json.loads(await request.body())
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Rejected unparseable JSON-RPC body: {e}")
            return JSONResponse(rpc_error(None, PARSE_ERROR, "Parse error").to_wire())

        response = await request.app.state.dispatcher.handle_rpc(message)
        if response is None:
            return Response(status_code=202)
        return JSONResponse(response.to_wire())

    return app


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def main():
    """Run the MCP server."""
    import uvicorn

    settings = load_settings()
    configure_logging(settings.log_level)
    app = create_app(settings)
    logger.info(f"Starting StudyOS MCP server on {settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
