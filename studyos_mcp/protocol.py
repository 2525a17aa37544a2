"""
Wire models for tool invocations and the JSON-RPC 2.0 binding.
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from .base import ToolResult

JSONRPC_VERSION = "2.0"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602


class ErrorKind(str, Enum):
    UNKNOWN_TOOL = "unknown-tool"
    INVALID_ARGUMENTS = "invalid-arguments"
    EXECUTION_FAILURE = "execution-failure"


RequestId = Union[str, int, None]


class ToolInvocation(BaseModel):
    """One inbound tool call."""

    toolName: str
    arguments: Any = Field(default_factory=dict)
    requestId: RequestId = None


class ContentBlock(BaseModel):
    type: str = "text"
    text: str


class ToolSuccess(BaseModel):
    requestId: RequestId = None
    structuredContent: Any = None
    content: List[ContentBlock]

    @classmethod
    def from_result(cls, request_id: RequestId, result: ToolResult) -> "ToolSuccess":
        return cls(
            requestId=request_id,
            structuredContent=result.structured_content,
            content=[ContentBlock(**block.to_dict()) for block in result.content],
        )


class ToolErrorBody(BaseModel):
    kind: ErrorKind
    message: str
    details: Any = None


class ToolFailure(BaseModel):
    requestId: RequestId = None
    error: ToolErrorBody


ToolOutcome = Union[ToolSuccess, ToolFailure]


class JSONRPCRequest(BaseModel):
    """JSON-RPC 2.0 request model."""

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    method: str
    params: Optional[Dict[str, Any]] = None
    id: RequestId = None

    @property
    def is_notification(self) -> bool:
        return "id" not in self.model_fields_set


class JSONRPCError(BaseModel):
    code: int
    message: str
    data: Optional[Any] = None


class JSONRPCResponse(BaseModel):
    jsonrpc: str = JSONRPC_VERSION
    result: Optional[Any] = None
    error: Optional[JSONRPCError] = None
    id: RequestId = None

    def to_wire(self) -> Dict[str, Any]:
        # exactly one of result / error goes on the wire
        body: Dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            body["error"] = self.error.model_dump(exclude_none=True)
        else:
            body["result"] = self.result if self.result is not None else {}
        return body


def rpc_result(request_id: RequestId, result: Any) -> JSONRPCResponse:
    return JSONRPCResponse(id=request_id, result=result)


def rpc_error(request_id: RequestId, code: int, message: str, data: Any = None) -> JSONRPCResponse:
    return JSONRPCResponse(id=request_id, error=JSONRPCError(code=code, message=message, data=data))
