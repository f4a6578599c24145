"""
MCP connectivity for mcp-chat.

This package connects to tool servers, merges their catalogs into one
namespace and routes tool calls to the server that owns each tool.
"""

from .client_session import ChatClientSession
from .connection import ConnectionState, Operation, ServerConnection
from .registry import NamespacedTool, ToolRegistry
from .router import CallRouter, ToolResult
from .session_manager import SessionManager

__all__ = [
    "ChatClientSession",
    "ConnectionState",
    "Operation",
    "ServerConnection",
    "NamespacedTool",
    "ToolRegistry",
    "CallRouter",
    "ToolResult",
    "SessionManager",
]
