"""
mcp-chat - a chat front-end that routes model tool calls to multiple MCP servers.
"""

__version__ = "0.1.0"

from mcp_chat.errors import (
    ChatError,
    CleanupError,
    ConfigError,
    InvalidToolArgumentsError,
    InvocationError,
    ModelAPIError,
    ProtocolError,
    RemoteToolError,
    ServerConnectionError,
    ToolCallError,
    ToolCollisionError,
    ToolProtocolError,
    UnknownToolError,
)

from mcp_chat.mcp import (
    CallRouter,
    ConnectionState,
    ServerConnection,
    SessionManager,
    ToolRegistry,
    ToolResult,
)

from mcp_chat.agents import ChatAgent, LLMConfig, ScriptedProvider

from mcp_chat.config import Settings, load_config

from mcp_chat.app import ChatApp

__all__ = [
    "ChatError",
    "CleanupError",
    "ConfigError",
    "InvalidToolArgumentsError",
    "InvocationError",
    "ModelAPIError",
    "ProtocolError",
    "RemoteToolError",
    "ServerConnectionError",
    "ToolCallError",
    "ToolCollisionError",
    "ToolProtocolError",
    "UnknownToolError",
    "CallRouter",
    "ConnectionState",
    "ServerConnection",
    "SessionManager",
    "ToolRegistry",
    "ToolResult",
    "ChatAgent",
    "LLMConfig",
    "ScriptedProvider",
    "Settings",
    "load_config",
    "ChatApp",
]
