"""
Language-model boundary: request/response types and providers.
"""

import copy
import json
from collections import deque
from typing import Annotated, Any, Deque, Dict, Iterable, List, Literal, Optional, Union

import aiohttp
from mcp.types import Tool
from pydantic import BaseModel, Discriminator, Field, Tag, ValidationError

from mcp_chat.errors import ConfigError, ModelAPIError, ProtocolError
from mcp_chat.utils.logging import get_logger

logger = get_logger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


class TextBlock(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolUseBlock(BaseModel):
    """A request from the model to run one tool."""

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    # Left untyped so that malformed arguments reach the router's checks.
    input: Any = Field(default_factory=dict)


class OpaqueBlock(BaseModel):
    """
    Any other block type (e.g. ``thinking``). Kept as received so it can be
    sent back with the assistant turn, but otherwise ignored.
    """

    type: str

    model_config = {"extra": "allow"}


def _block_kind(block: Any) -> str:
    kind = block.get("type") if isinstance(block, dict) else getattr(block, "type", None)
    return kind if kind in ("text", "tool_use") else "other"


ContentBlock = Annotated[
    Union[
        Annotated[TextBlock, Tag("text")],
        Annotated[ToolUseBlock, Tag("tool_use")],
        Annotated[OpaqueBlock, Tag("other")],
    ],
    Discriminator(_block_kind),
]


class ModelResponse(BaseModel):
    """
    One model turn, as an ordered list of content blocks. Only text and
    tool-use blocks drive the conversation; other kinds pass through opaque.
    """

    content: List[ContentBlock] = Field(default_factory=list)
    stop_reason: Optional[str] = None

    model_config = {"extra": "ignore"}

    @classmethod
    def parse(cls, payload: Any) -> "ModelResponse":
        """
        Raises:
            ProtocolError: If the payload is not a valid model response.
        """
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise ProtocolError(f"Malformed model response: {e}") from e

    def texts(self) -> List[str]:
        return [block.text for block in self.content if isinstance(block, TextBlock)]

    def tool_uses(self) -> List[ToolUseBlock]:
        return [block for block in self.content if isinstance(block, ToolUseBlock)]

    def content_dicts(self) -> List[Dict[str, Any]]:
        return [block.model_dump() for block in self.content]


def to_anthropic_tools(catalog: Iterable[Tool]) -> List[Dict[str, Any]]:
    """Convert registry tools to the messages-API tool format."""
    return [
        {
            "name": tool.name,
            "description": tool.description or "",
            "input_schema": tool.inputSchema,
        }
        for tool in catalog
    ]


def to_anthropic_content(blocks: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Convert MCP content blocks to blocks accepted inside a ``tool_result``.

    Text and images map directly; anything else is sent as its JSON text.
    """
    converted = []
    for block in blocks:
        kind = block.get("type")
        if kind == "text":
            converted.append({"type": "text", "text": block.get("text", "")})
        elif kind == "image":
            converted.append({
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": block.get("mimeType"),
                    "data": block.get("data"),
                },
            })
        else:
            converted.append({"type": "text", "text": json.dumps(block)})
    return converted


class LLMProvider:
    """Base class for LLM providers."""

    async def create_message(
        self,
        messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
        model: str,
        max_tokens: int,
        system: Optional[str] = None,
    ) -> ModelResponse:
        """
        Request one model turn.

        Args:
            messages: Conversation so far, oldest first.
            tools: Tool catalog available to the model.
            model: Model identifier.
            max_tokens: Maximum output size.
            system: Optional system prompt.
        """
        raise NotImplementedError("Subclasses must implement create_message()")

    @classmethod
    def create(cls, provider_type: str, api_key: Optional[str], api_base: Optional[str] = None) -> "LLMProvider":
        provider_map = {
            "anthropic": AnthropicProvider,
        }

        provider_class = provider_map.get(provider_type.lower())
        if not provider_class:
            raise ValueError(f"Unsupported provider type: {provider_type}")

        return provider_class(api_key=api_key, api_base=api_base)


class AnthropicProvider(LLMProvider):
    """Anthropic messages API provider."""

    def __init__(self, api_key: Optional[str], api_base: Optional[str] = None):
        if not api_key:
            raise ConfigError("ANTHROPIC_API_KEY is not set")
        self.api_key = api_key
        self.api_base = (api_base or "https://api.anthropic.com/v1").rstrip("/")

    async def create_message(
        self,
        messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
        model: str,
        max_tokens: int,
        system: Optional[str] = None,
    ) -> ModelResponse:
        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

        payload: Dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": messages,
        }
        if tools:
            payload["tools"] = tools
        if system:
            payload["system"] = system

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    f"{self.api_base}/messages",
                    headers=headers,
                    json=payload,
                ) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise ModelAPIError(
                            f"Anthropic API error: {response.status} - {error_text}",
                            status=response.status,
                        )
                    try:
                        result = await response.json()
                    except (aiohttp.ContentTypeError, json.JSONDecodeError) as e:
                        raise ProtocolError(f"Anthropic API returned invalid JSON: {e}") from e
        except aiohttp.ClientError as e:
            raise ModelAPIError(f"Anthropic API request failed: {e}") from e

        return ModelResponse.parse(result)


class ScriptedProvider(LLMProvider):
    """
    Provider that replays a fixed list of responses, for tests and demos.

    Every request is kept in ``requests`` for inspection.
    """

    def __init__(self, responses: Iterable[Union[ModelResponse, Dict[str, Any]]] = ()):
        self._responses: Deque[ModelResponse] = deque(
            r if isinstance(r, ModelResponse) else ModelResponse.parse(r) for r in responses
        )
        self.requests: List[Dict[str, Any]] = []

    async def create_message(
        self,
        messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
        model: str,
        max_tokens: int,
        system: Optional[str] = None,
    ) -> ModelResponse:
        self.requests.append({
            "messages": copy.deepcopy(messages),
            "tools": list(tools),
            "model": model,
            "max_tokens": max_tokens,
            "system": system,
        })
        if not self._responses:
            raise ModelAPIError("No scripted responses left")
        return self._responses.popleft()


class LLMConfig:
    """Configuration for model requests."""

    def __init__(
        self,
        provider: str = "anthropic",
        model: str = "claude-3-5-sonnet-20241022",
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
        max_tokens: int = 1000,
        system_prompt: Optional[str] = None,
        max_tool_rounds: int = 10,
    ):
        """
        Args:
            provider: Provider name.
            model: Model name.
            api_key: API key, passed through unchanged.
            api_base: API base URL.
            max_tokens: Maximum tokens per model turn.
            system_prompt: Optional system prompt.
            max_tool_rounds: Tool batches allowed per query before giving up.
        """
        self.provider = provider
        self.model = model
        self.api_key = api_key
        self.api_base = api_base
        self.max_tokens = max_tokens
        self.system_prompt = system_prompt
        self.max_tool_rounds = max_tool_rounds

    def create_provider(self) -> LLMProvider:
        return LLMProvider.create(
            provider_type=self.provider,
            api_key=self.api_key,
            api_base=self.api_base,
        )

    @classmethod
    def from_settings(cls, settings) -> "LLMConfig":
        """Build from a ``Settings`` object."""
        return cls(
            provider="anthropic",
            model=settings.anthropic.model,
            api_key=settings.anthropic.api_key,
            api_base=settings.anthropic.api_base,
            max_tokens=settings.anthropic.max_tokens,
            system_prompt=settings.chat.system_prompt,
            max_tool_rounds=settings.chat.max_tool_rounds,
        )
