"""
MCP Tool Base Classes

Declarative parameter specs, tool definitions, results and the error
hierarchy shared by the registry, the dispatcher and every tool.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence


# Returns an error message when the value breaks the constraint, else None.
Constraint = Callable[[Any], Optional[str]]

_MISSING = object()


@dataclass(frozen=True)
class ToolParameter:
    """Definition of a tool parameter."""
    name: str
    type: str
    description: str = ""
    required: bool = True
    nullable: bool = False
    default: Any = _MISSING
    enum: Optional[Sequence[str]] = None
    items_type: Optional[str] = None
    properties: Sequence["ToolParameter"] = ()
    constraints: Sequence[Constraint] = ()

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING


@dataclass(frozen=True)
class TextContent:
    """A human-readable content block."""
    text: str
    type: str = "text"

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.type, "text": self.text}


@dataclass
class ToolResult:
    """Dual-channel tool output: structured payload plus display blocks."""
    structured_content: Any
    content: List[TextContent] = field(default_factory=list)

    @classmethod
    def text(cls, structured_content: Any, text: str) -> "ToolResult":
        return cls(structured_content=structured_content, content=[TextContent(text)])


Handler = Callable[[Dict[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class ToolDefinition:
    """Complete definition of an MCP tool."""
    name: str
    description: str
    parameters: Sequence[ToolParameter] = ()
    handler: Optional[Handler] = None
    title: Optional[str] = None

    @property
    def input_schema(self) -> Dict[str, Any]:
        from .schema import to_json_schema

        return to_json_schema(self.parameters)


class MCPToolError(Exception):
    """Base exception for MCP tool errors."""
    def __init__(self, message: str, tool_name: str = None, details: Any = None):
        self.message = message
        self.tool_name = tool_name
        self.details = details
        super().__init__(self.message)


class ToolNotFoundError(MCPToolError):
    """Raised when a tool name is not registered."""

    def __init__(self, tool_name: str):
        super().__init__(f"Tool not found: {tool_name}", tool_name=tool_name)


class ValidationError(MCPToolError):
    """Raised when tool input validation fails.

    ``violations`` lists every offending field, not only the first one.
    """

    def __init__(self, violations: List[Any], tool_name: str = None):
        self.violations = list(violations)
        fields = ", ".join(v.field for v in self.violations)
        super().__init__(
            f"Invalid arguments: {fields}",
            tool_name=tool_name,
            details=[v.to_dict() for v in self.violations],
        )


class ExecutionError(MCPToolError):
    """Raised when tool execution fails."""
    cause = "execution_failed"

    def __init__(self, message: str, tool_name: str = None, details: Dict = None):
        details = dict(details or {})
        details.setdefault("cause", self.cause)
        super().__init__(message, tool_name=tool_name, details=details)


class DuplicateToolError(ValueError):
    """Raised when two tools are registered under the same name."""


class MCPTool(ABC):
    """
    Abstract base class for MCP tools.

    All tools must inherit from this class and implement:
    - name: Tool identifier
    - description: What the tool does
    - parameters: List of ToolParameter definitions
    - execute(): The actual tool logic, returning a ToolResult
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for the tool."""

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what the tool does."""

    @property
    def title(self) -> Optional[str]:
        return None

    @property
    def parameters(self) -> List[ToolParameter]:
        """List of parameters the tool accepts."""
        return []

    @abstractmethod
    async def execute(self, arguments: Dict[str, Any]) -> ToolResult:
        """
        Execute the tool with already-normalized arguments.
        This method should contain the actual tool logic.
        """

    def to_definition(self) -> ToolDefinition:
        """Convert tool to ToolDefinition for registry."""
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=tuple(self.parameters),
            handler=self.execute,
            title=self.title,
        )


class BackendTool(MCPTool):
    """
    A tool that forwards its normalized arguments to one collaborator
    operation and acknowledges the result with a fixed sentence.
    """

    acknowledgment: str = "Done."

    def __init__(self, gateway):
        self.gateway = gateway

    @property
    def path(self) -> str:
        """Collaborator operation path; defaults to the tool name."""
        return f"/{self.name}"

    async def execute(self, arguments: Dict[str, Any]) -> ToolResult:
        data = await self.gateway.call(self.path, arguments)
        return ToolResult.text(data, self.acknowledgment)
