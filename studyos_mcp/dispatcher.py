"""
Tool Dispatcher

Runs one invocation through Lookup -> Validate -> Execute -> Assemble and
turns the outcome into exactly one success or error envelope. The
dispatcher keeps no state between invocations beyond the read-only
registry it was built with.
"""

import json
import logging
import time
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from .base import (
    ExecutionError,
    MCPToolError,
    ToolNotFoundError,
    ToolResult,
    ValidationError,
)
from .protocol import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    ErrorKind,
    JSONRPCRequest,
    JSONRPCResponse,
    ToolErrorBody,
    ToolFailure,
    ToolInvocation,
    ToolOutcome,
    ToolSuccess,
    rpc_error,
    rpc_result,
)
from .registry import SERVER_NAME, SERVER_VERSION, ToolRegistry
from .schema import validate_arguments

logger = logging.getLogger(__name__)

SUPPORTED_PROTOCOL_VERSIONS = ("2025-06-18", "2025-03-26", "2024-11-05")

_RPC_CODES = {
    ErrorKind.UNKNOWN_TOOL: INVALID_PARAMS,
    ErrorKind.INVALID_ARGUMENTS: INVALID_PARAMS,
}

MAX_SUMMARY_CHARS = 1000


def _as_tool_result(value: Any) -> ToolResult:
    """Wrap a handler return value; bare JSON values get a JSON text summary."""
    if isinstance(value, ToolResult):
        return value
    summary = json.dumps(value, ensure_ascii=False, default=str)
    return ToolResult.text(value, summary[:MAX_SUMMARY_CHARS])


class Dispatcher:
    """Routes tool invocations to registered handlers."""

    def __init__(self, registry: ToolRegistry):
        self.registry = registry

    async def dispatch(self, invocation: ToolInvocation) -> ToolOutcome:
        started = time.perf_counter()
        name = invocation.toolName
        request_id = invocation.requestId

        try:
            outcome = await self._run(name, invocation.arguments, request_id)
        except MCPToolError as e:
            outcome = self._failure(request_id, e)

        elapsed_ms = (time.perf_counter() - started) * 1000
        if isinstance(outcome, ToolSuccess):
            logger.info(f"Tool {name} [{request_id}] succeeded in {elapsed_ms:.1f}ms")
        else:
            logger.warning(
                f"Tool {name} [{request_id}] failed ({outcome.error.kind.value}) "
                f"in {elapsed_ms:.1f}ms: {outcome.error.message}"
            )
        return outcome

    async def call_tool(self, name: str, arguments: Any = None, request_id: Any = None) -> ToolOutcome:
        return await self.dispatch(
            ToolInvocation(
                toolName=name,
                arguments={} if arguments is None else arguments,
                requestId=request_id,
            )
        )

    async def _run(self, name: str, raw_arguments: Any, request_id: Any) -> ToolSuccess:
        definition = self.registry.get(name)
        if definition is None:
            raise ToolNotFoundError(name)

        arguments = validate_arguments(definition.parameters, raw_arguments, tool_name=name)

        try:
            value = await definition.handler(arguments)
        except MCPToolError as e:
            if e.tool_name is None:
                e.tool_name = name
            raise
        except Exception as e:
            logger.exception(f"Unexpected error in tool {name}")
            raise ExecutionError(
                str(e) or type(e).__name__,
                tool_name=name,
                details={"cause": "unexpected", "exception": type(e).__name__},
            ) from e

        try:
            result = _as_tool_result(value)
            if not result.content:
                raise ValueError("no display content")
            success = ToolSuccess.from_result(request_id, result)
            # the envelope must survive strict JSON encoding on the way out
            json.dumps(success.model_dump(mode="json"), allow_nan=False)
        except Exception as e:
            logger.error(f"Tool {name} returned an invalid result: {e}")
            raise ExecutionError(
                f"Tool {name} returned an invalid result: {e}",
                tool_name=name,
                details={"cause": "invalid_result", "exception": type(e).__name__},
            ) from e
        return success

    def _failure(self, request_id: Any, error: MCPToolError) -> ToolFailure:
        if isinstance(error, ToolNotFoundError):
            kind = ErrorKind.UNKNOWN_TOOL
        elif isinstance(error, ValidationError):
            kind = ErrorKind.INVALID_ARGUMENTS
        else:
            kind = ErrorKind.EXECUTION_FAILURE
        return ToolFailure(
            requestId=request_id,
            error=ToolErrorBody(kind=kind, message=error.message, details=error.details),
        )

    # ============== JSON-RPC binding ==============

    def list_tools(self) -> Dict[str, Any]:
        return {
            "tools": [
                self.registry.describe(definition, schema_key="inputSchema")
                for definition in self.registry
            ]
        }

    def initialize(self, params: Dict[str, Any]) -> Dict[str, Any]:
        requested = params.get("protocolVersion")
        version = requested if requested in SUPPORTED_PROTOCOL_VERSIONS else SUPPORTED_PROTOCOL_VERSIONS[0]
        return {
            "protocolVersion": version,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
        }

    async def handle_rpc(self, message: Any) -> Optional[JSONRPCResponse]:
        """
        Handle one JSON-RPC message. Returns None for notifications.
        """
        if not isinstance(message, dict):
            return rpc_error(None, INVALID_REQUEST, "Invalid Request: expected a single JSON object")

        try:
            request = JSONRPCRequest.model_validate(message)
        except PydanticValidationError as e:
            request_id = message.get("id")
            if not isinstance(request_id, (str, int)) or isinstance(request_id, bool):
                request_id = None
            return rpc_error(request_id, INVALID_REQUEST, f"Invalid Request: {e.errors()[0]['msg']}")

        if request.is_notification:
            logger.debug(f"Ignoring notification: {request.method}")
            return None

        params = request.params or {}
        method = request.method

        if method == "initialize":
            return rpc_result(request.id, self.initialize(params))
        if method == "ping":
            return rpc_result(request.id, {})
        if method == "tools/list":
            return rpc_result(request.id, self.list_tools())
        if method == "tools/call":
            return await self._rpc_call_tool(request.id, params)

        return rpc_error(request.id, METHOD_NOT_FOUND, f"Method not found: {method}")

    async def _rpc_call_tool(self, request_id: Any, params: Dict[str, Any]) -> JSONRPCResponse:
        name = params.get("name")
        if not isinstance(name, str) or not name:
            return rpc_error(request_id, INVALID_PARAMS, "Invalid params: tools/call requires non-empty string name")

        outcome = await self.call_tool(name, params.get("arguments"), request_id)
        if isinstance(outcome, ToolFailure):
            error = outcome.error
            if error.kind == ErrorKind.EXECUTION_FAILURE:
                # execution failures are tool results the calling model can read
                return rpc_result(request_id, {
                    "content": [{"type": "text", "text": error.message}],
                    "structuredContent": {"error": error.model_dump(mode="json")},
                    "isError": True,
                })
            return rpc_error(
                request_id,
                _RPC_CODES[error.kind],
                error.message,
                data={"kind": error.kind.value, "details": error.details},
            )

        result = outcome.model_dump(mode="json", exclude={"requestId"})
        result["isError"] = False
        return rpc_result(request_id, result)
