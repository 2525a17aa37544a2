"""
MCP Tool Registry

Single Source of Truth (SSOT) for tool discovery, dispatch and the
published manifest. A registry is filled once at startup and only read
afterwards, so it needs no locking.
"""

import importlib
import inspect
import logging
import pkgutil
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from .base import BackendTool, DuplicateToolError, MCPTool, ToolDefinition

logger = logging.getLogger(__name__)

SERVER_NAME = "studyos-mcp"
SERVER_VERSION = "1.0.0"
SERVER_DESCRIPTION = "MCP wrapper around StudyOS backend tools."

TOOLS_PACKAGE = "studyos_mcp.tools"


class ToolRegistry:
    """Name -> ToolDefinition mapping with manifest generation."""

    def __init__(self):
        self._tools: Dict[str, ToolDefinition] = {}

    def register(self, definition: ToolDefinition) -> ToolDefinition:
        if definition.name in self._tools:
            raise DuplicateToolError(f"Tool already registered: {definition.name}")
        if definition.handler is None:
            raise ValueError(f"Tool has no handler: {definition.name}")
        self._tools[definition.name] = definition
        logger.info(f"Registered tool: {definition.name}")
        return definition

    def register_tool(self, tool: MCPTool) -> ToolDefinition:
        return self.register(tool.to_definition())

    def get(self, name: str) -> Optional[ToolDefinition]:
        """Get a specific tool by name. Returns None if tool not found."""
        return self._tools.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    def names(self) -> List[str]:
        return list(self._tools)

    def describe(self, definition: ToolDefinition, schema_key: str = "input_schema") -> Dict[str, Any]:
        entry = {"name": definition.name}
        if definition.title:
            entry["title"] = definition.title
        entry["description"] = definition.description
        entry[schema_key] = definition.input_schema
        return entry

    def manifest(self) -> Dict[str, Any]:
        """Discovery document built from the live definitions."""
        return {
            "name": SERVER_NAME,
            "version": SERVER_VERSION,
            "description": SERVER_DESCRIPTION,
            "tools": [self.describe(definition) for definition in self],
        }


def _tool_classes(module) -> List[type]:
    return [
        obj
        for _, obj in inspect.getmembers(module, inspect.isclass)
        if issubclass(obj, MCPTool)
        and obj.__module__ == module.__name__
        and not inspect.isabstract(obj)
    ]


def discover_tools(registry: ToolRegistry, gateway, package: str = TOOLS_PACKAGE) -> ToolRegistry:
    """
    Import every module in ``package`` and register its concrete tools.
    Backend tools get ``gateway`` injected. Import failures and duplicate
    names abort startup.
    """
    module = importlib.import_module(package)
    tools_path = Path(module.__file__).parent

    for _, module_name, _ in sorted(pkgutil.iter_modules([str(tools_path)]), key=lambda m: m[1]):
        if module_name.startswith("_"):
            continue

        full_module_name = f"{package}.{module_name}"
        tool_module = importlib.import_module(full_module_name)
        logger.debug(f"Loaded tool module: {full_module_name}")

        for cls in _tool_classes(tool_module):
            tool = cls(gateway) if issubclass(cls, BackendTool) else cls()
            registry.register_tool(tool)

    logger.info(f"Tool discovery complete. Total tools: {len(registry)}")
    return registry


def build_registry(gateway) -> ToolRegistry:
    return discover_tools(ToolRegistry(), gateway)
