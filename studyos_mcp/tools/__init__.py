"""
MCP Tools Package

All tools in this directory are auto-discovered by registry.py.
Each tool module defines MCPTool subclasses; tools that talk to the
backend inherit from BackendTool and receive the gateway on construction.
"""

# Tools are auto-discovered, no explicit imports needed
