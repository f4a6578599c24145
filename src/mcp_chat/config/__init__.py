"""
Configuration management for mcp-chat.
"""

from .settings import (
    Settings,
    MCPSettings,
    MCPServerSettings,
    AnthropicSettings,
    ChatSettings,
    LoggingSettings,
    load_config,
    DEFAULT_CONFIG_FILES,
)

__all__ = [
    "Settings",
    "MCPSettings",
    "MCPServerSettings",
    "AnthropicSettings",
    "ChatSettings",
    "LoggingSettings",
    "load_config",
    "DEFAULT_CONFIG_FILES",
]
