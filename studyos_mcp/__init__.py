"""
StudyOS MCP Layer

Schema-validated tools that forward to the StudyOS backend.
Tools are auto-discovered from studyos_mcp/tools/ via registry.py.
"""

from .base import BackendTool, MCPTool, ToolDefinition, ToolParameter, ToolResult
from .dispatcher import Dispatcher
from .gateway import BackendGateway
from .registry import ToolRegistry, build_registry

__all__ = [
    "BackendGateway",
    "BackendTool",
    "Dispatcher",
    "MCPTool",
    "ToolDefinition",
    "ToolParameter",
    "ToolRegistry",
    "ToolResult",
    "build_registry",
]
