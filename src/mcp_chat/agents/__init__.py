"""
Conversation driver for mcp-chat.
"""

from .chat_agent import ChatAgent, TurnState
from .conversation import ConversationState, Turn
from .llm import (
    AnthropicProvider,
    LLMConfig,
    LLMProvider,
    ModelResponse,
    OpaqueBlock,
    ScriptedProvider,
    TextBlock,
    ToolUseBlock,
)

__all__ = [
    "ChatAgent",
    "TurnState",
    "ConversationState",
    "Turn",
    "AnthropicProvider",
    "LLMConfig",
    "LLMProvider",
    "ModelResponse",
    "OpaqueBlock",
    "ScriptedProvider",
    "TextBlock",
    "ToolUseBlock",
]
