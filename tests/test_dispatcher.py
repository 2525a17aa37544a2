"""
Unit tests for the dispatcher: envelopes, error kinds and the JSON-RPC binding.
"""

import json
from typing import Any, Dict, List
from unittest.mock import AsyncMock

import httpx
import pytest

from studyos_mcp.base import TextContent, ToolDefinition, ToolParameter, ToolResult
from studyos_mcp.dispatcher import Dispatcher
from studyos_mcp.gateway import BackendGateway
from studyos_mcp.protocol import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    ErrorKind,
    ToolFailure,
    ToolInvocation,
    ToolSuccess,
)
from studyos_mcp.registry import ToolRegistry, build_registry

BASE_URL = "http://backend.test"


# ========== Fixtures ==========

@pytest.fixture
def backend_calls() -> List[httpx.Request]:
    return []


@pytest.fixture
def backend_response() -> Dict[str, Any]:
    """Mutable response spec the fake backend replies with."""
    return {"status": 200, "json": {"id": 42}}


@pytest.fixture
def gateway(backend_calls, backend_response):
    def handler(request: httpx.Request) -> httpx.Response:
        backend_calls.append(request)
        if "text" in backend_response:
            return httpx.Response(backend_response["status"], text=backend_response["text"])
        return httpx.Response(backend_response["status"], json=backend_response["json"])

    return BackendGateway(BASE_URL, transport=httpx.MockTransport(handler))


@pytest.fixture
def dispatcher(gateway):
    return Dispatcher(build_registry(gateway))


def _registry_with(name: str, handler) -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(ToolDefinition(
        name=name,
        description="test tool",
        parameters=(ToolParameter("value", "string", required=False),),
        handler=handler,
    ))
    return registry


# ========== Dispatch ==========

class TestDispatch:
    """Lookup -> Validate -> Execute -> Assemble."""

    @pytest.mark.asyncio
    async def test_ingest_content_success(self, dispatcher, backend_calls):
        outcome = await dispatcher.dispatch(ToolInvocation(
            toolName="ingest_content",
            arguments={"raw_text": "Newton's laws..."},
            requestId="req-1",
        ))

        assert isinstance(outcome, ToolSuccess)
        assert outcome.requestId == "req-1"
        assert outcome.structuredContent == {"id": 42}
        assert len(outcome.content) == 1
        assert outcome.content[0].type == "text"
        assert outcome.content[0].text

        assert len(backend_calls) == 1
        assert str(backend_calls[0].url) == f"{BASE_URL}/ingest_content"
        assert json.loads(backend_calls[0].content) == {"raw_text": "Newton's laws..."}

    @pytest.mark.asyncio
    async def test_search_forwards_defaults(self, dispatcher, backend_calls, backend_response):
        backend_response["json"] = {"chunks": []}

        outcome = await dispatcher.call_tool("search_content", {"query": "photosynthesis"}, 7)

        assert isinstance(outcome, ToolSuccess)
        assert outcome.requestId == 7
        assert json.loads(backend_calls[0].content) == {
            "query": "photosynthesis",
            "top_k": 8,
            "threshold": 0.3,
        }

    @pytest.mark.asyncio
    async def test_search_unconfigured_backend(self):
        requests = []
        transport = httpx.MockTransport(lambda request: requests.append(request) or httpx.Response(200))
        dispatcher = Dispatcher(build_registry(BackendGateway("", transport=transport)))

        outcome = await dispatcher.call_tool("search_content", {"query": "photosynthesis"})

        assert isinstance(outcome, ToolFailure)
        assert outcome.error.kind == ErrorKind.EXECUTION_FAILURE
        assert outcome.error.details["cause"] == "backend_unconfigured"
        assert requests == []

    @pytest.mark.asyncio
    async def test_invalid_outcome_never_reaches_backend(self, dispatcher, backend_calls):
        outcome = await dispatcher.call_tool("log_completion_result", {
            "original_prompt": "Explain photosynthesis",
            "model_answer": "Plants make food from light.",
            "outcome": "maybe",
        })

        assert isinstance(outcome, ToolFailure)
        assert outcome.error.kind == ErrorKind.INVALID_ARGUMENTS
        assert [d["field"] for d in outcome.error.details] == ["outcome"]
        assert backend_calls == []

    @pytest.mark.asyncio
    async def test_backend_rejection_reported(self, dispatcher, backend_response):
        backend_response.update(status=500, text="db error")

        outcome = await dispatcher.call_tool("ingest_content", {"raw_text": "x"}, "r")

        assert isinstance(outcome, ToolFailure)
        assert outcome.requestId == "r"
        assert outcome.error.kind == ErrorKind.EXECUTION_FAILURE
        assert outcome.error.details["status"] == 500
        assert outcome.error.details["body"] == "db error"

        # the dispatcher keeps working after a failure
        backend_response.clear()
        backend_response.update(status=200, json={"ok": 1})
        assert isinstance(await dispatcher.call_tool("ingest_content", {"raw_text": "y"}), ToolSuccess)

    @pytest.mark.asyncio
    async def test_unknown_tool_invokes_nothing(self):
        handler = AsyncMock()
        dispatcher = Dispatcher(_registry_with("known", handler))

        outcome = await dispatcher.call_tool("unknown", {"value": "x"})

        assert isinstance(outcome, ToolFailure)
        assert outcome.error.kind == ErrorKind.UNKNOWN_TOOL
        assert "unknown" in outcome.error.message
        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_arguments_invoke_nothing(self):
        handler = AsyncMock()
        dispatcher = Dispatcher(_registry_with("known", handler))

        outcome = await dispatcher.call_tool("known", {"value": 5})

        assert outcome.error.kind == ErrorKind.INVALID_ARGUMENTS
        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unexpected_exception_classified(self):
        handler = AsyncMock(side_effect=RuntimeError("boom"))
        dispatcher = Dispatcher(_registry_with("flaky", handler))

        outcome = await dispatcher.call_tool("flaky", {})

        assert outcome.error.kind == ErrorKind.EXECUTION_FAILURE
        assert outcome.error.message == "boom"
        assert outcome.error.details == {"cause": "unexpected", "exception": "RuntimeError"}

    @pytest.mark.asyncio
    async def test_local_tool_plain_value_wrapped(self):
        handler = AsyncMock(return_value={"count": 3})
        dispatcher = Dispatcher(_registry_with("local", handler))

        outcome = await dispatcher.call_tool("local", {"value": "x"})

        handler.assert_awaited_once_with({"value": "x"})
        assert outcome.structuredContent == {"count": 3}
        assert outcome.content[0].text == '{"count": 3}'

    @pytest.mark.asyncio
    async def test_empty_display_content_is_failure(self):
        handler = AsyncMock(return_value=ToolResult(structured_content={"a": 1}, content=[]))
        dispatcher = Dispatcher(_registry_with("quiet", handler))

        outcome = await dispatcher.call_tool("quiet", {})

        assert isinstance(outcome, ToolFailure)
        assert outcome.error.kind == ErrorKind.EXECUTION_FAILURE
        assert outcome.error.details["cause"] == "invalid_result"

    @pytest.mark.asyncio
    async def test_malformed_display_block_is_failure(self):
        handler = AsyncMock(return_value=ToolResult({"a": 1}, [TextContent(text=None)]))
        dispatcher = Dispatcher(_registry_with("broken", handler))

        outcome = await dispatcher.call_tool("broken", {})

        assert isinstance(outcome, ToolFailure)
        assert outcome.error.kind == ErrorKind.EXECUTION_FAILURE
        assert outcome.error.details["cause"] == "invalid_result"

    @pytest.mark.asyncio
    async def test_non_json_structured_content_is_failure(self):
        handler = AsyncMock(return_value=ToolResult.text({"score": float("nan")}, "done"))
        dispatcher = Dispatcher(_registry_with("nan", handler))

        outcome = await dispatcher.call_tool("nan", {})

        assert isinstance(outcome, ToolFailure)
        assert outcome.error.details["cause"] == "invalid_result"


# ========== JSON-RPC ==========

class TestJsonRpc:
    """JSON-RPC method routing."""

    @pytest.mark.asyncio
    async def test_initialize(self, dispatcher):
        response = await dispatcher.handle_rpc({
            "jsonrpc": "2.0", "id": 1, "method": "initialize",
            "params": {"protocolVersion": "2025-03-26"},
        })
        result = response.to_wire()["result"]
        assert result["protocolVersion"] == "2025-03-26"
        assert result["serverInfo"]["name"] == "studyos-mcp"

    @pytest.mark.asyncio
    async def test_notification_has_no_response(self, dispatcher):
        assert await dispatcher.handle_rpc({"jsonrpc": "2.0", "method": "notifications/initialized"}) is None

    @pytest.mark.asyncio
    async def test_ping(self, dispatcher):
        response = await dispatcher.handle_rpc({"jsonrpc": "2.0", "id": "p", "method": "ping"})
        assert response.to_wire() == {"jsonrpc": "2.0", "id": "p", "result": {}}

    @pytest.mark.asyncio
    async def test_tools_list_uses_registry_schemas(self, dispatcher):
        response = await dispatcher.handle_rpc({"jsonrpc": "2.0", "id": 2, "method": "tools/list"})
        tools = {tool["name"]: tool for tool in response.to_wire()["result"]["tools"]}
        for definition in dispatcher.registry:
            assert tools[definition.name]["inputSchema"] == definition.input_schema

    @pytest.mark.asyncio
    async def test_tools_call_success(self, dispatcher):
        response = await dispatcher.handle_rpc({
            "jsonrpc": "2.0", "id": 3, "method": "tools/call",
            "params": {"name": "ingest_content", "arguments": {"raw_text": "Newton's laws..."}},
        })
        wire = response.to_wire()
        assert "error" not in wire
        assert wire["result"]["structuredContent"] == {"id": 42}
        assert wire["result"]["content"][0]["type"] == "text"
        assert wire["result"]["isError"] is False

    @pytest.mark.asyncio
    async def test_tools_call_invalid_arguments(self, dispatcher):
        response = await dispatcher.handle_rpc({
            "jsonrpc": "2.0", "id": 4, "method": "tools/call",
            "params": {"name": "search_content", "arguments": {}},
        })
        error = response.to_wire()["error"]
        assert error["code"] == INVALID_PARAMS
        assert error["data"]["kind"] == "invalid-arguments"
        assert error["data"]["details"][0]["field"] == "query"

    @pytest.mark.asyncio
    async def test_tools_call_execution_failure(self, dispatcher, backend_response):
        backend_response.update(status=503, text="maintenance")
        response = await dispatcher.handle_rpc({
            "jsonrpc": "2.0", "id": 5, "method": "tools/call",
            "params": {"name": "ingest_content", "arguments": {"raw_text": "x"}},
        })
        wire = response.to_wire()
        assert "error" not in wire
        result = wire["result"]
        assert result["isError"] is True
        assert result["content"] == [{"type": "text", "text": "Backend /ingest_content failed: 503 maintenance"}]
        error = result["structuredContent"]["error"]
        assert error["kind"] == "execution-failure"
        assert error["details"]["status"] == 503
        assert error["details"]["body"] == "maintenance"

    @pytest.mark.asyncio
    async def test_tools_call_unknown_tool_is_protocol_error(self, dispatcher):
        response = await dispatcher.handle_rpc({
            "jsonrpc": "2.0", "id": 10, "method": "tools/call",
            "params": {"name": "nope", "arguments": {}},
        })
        error = response.to_wire()["error"]
        assert error["code"] == INVALID_PARAMS
        assert error["data"]["kind"] == "unknown-tool"

    @pytest.mark.asyncio
    async def test_wrong_jsonrpc_version_rejected(self, dispatcher):
        response = await dispatcher.handle_rpc({"jsonrpc": "1.0", "id": 9, "method": "ping"})
        wire = response.to_wire()
        assert wire["id"] == 9
        assert wire["error"]["code"] == INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_tools_call_requires_name(self, dispatcher):
        response = await dispatcher.handle_rpc({
            "jsonrpc": "2.0", "id": 6, "method": "tools/call", "params": {},
        })
        assert response.to_wire()["error"]["code"] == INVALID_PARAMS

    @pytest.mark.asyncio
    async def test_unknown_method(self, dispatcher):
        response = await dispatcher.handle_rpc({"jsonrpc": "2.0", "id": 7, "method": "resources/list"})
        assert response.to_wire()["error"]["code"] == METHOD_NOT_FOUND

    @pytest.mark.asyncio
    async def test_batch_rejected(self, dispatcher):
        response = await dispatcher.handle_rpc([{"jsonrpc": "2.0", "id": 1, "method": "ping"}])
        assert response.to_wire()["error"]["code"] == INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_missing_method_rejected(self, dispatcher):
        response = await dispatcher.handle_rpc({"jsonrpc": "2.0", "id": 8})
        wire = response.to_wire()
        assert wire["id"] == 8
        assert wire["error"]["code"] == INVALID_REQUEST
