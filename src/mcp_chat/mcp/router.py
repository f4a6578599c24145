"""
Dispatches tool calls from the model to the server that owns the tool.
"""

import json
from typing import Any, Dict, List, Mapping, Optional

from mcp.types import CallToolResult
from pydantic import BaseModel, Field

from mcp_chat.errors import (
    InvalidToolArgumentsError,
    InvocationError,
    ToolCallError,
)
from mcp_chat.mcp.registry import ToolRegistry
from mcp_chat.utils.logging import get_logger

logger = get_logger(__name__)


class ToolResult(BaseModel):
    """
    Normalized outcome of one routed tool call.
    """

    public_name: str
    server_name: str
    operation_name: str
    content: List[Dict[str, Any]] = Field(default_factory=list)
    is_error: bool = False

    @classmethod
    def from_call_result(
        cls,
        result: CallToolResult,
        public_name: str,
        server_name: str,
        operation_name: str,
    ) -> "ToolResult":
        return cls(
            public_name=public_name,
            server_name=server_name,
            operation_name=operation_name,
            content=[block.model_dump(exclude_none=True) for block in result.content],
            is_error=bool(result.isError),
        )

    def text(self) -> str:
        """Text blocks joined by newlines; other blocks are rendered as JSON."""
        parts = []
        for block in self.content:
            if block.get("type") == "text":
                parts.append(block.get("text", ""))
            else:
                parts.append(json.dumps(block))
        return "\n".join(parts)


def _check_arguments(public_name: str, arguments: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    if arguments is None:
        return {}
    if not isinstance(arguments, Mapping):
        raise InvalidToolArgumentsError(
            f"arguments must be an object, got {type(arguments).__name__}",
            public_name=public_name,
        )
    arguments = dict(arguments)
    try:
        json.dumps(arguments)
    except (TypeError, ValueError) as e:
        raise InvalidToolArgumentsError(
            f"arguments are not JSON-serializable: {e}", public_name=public_name
        ) from e
    return arguments


class CallRouter:
    """
    The single path through which tool invocations reach a server.

    Args:
        registry: Registry used to resolve public tool names.
        connections: Read-only mapping of server name to open connection.
    """

    def __init__(self, registry: ToolRegistry, connections: Mapping[str, Any]):
        self.registry = registry
        self.connections = connections

    async def route(
        self, public_name: str, arguments: Optional[Mapping[str, Any]] = None
    ) -> ToolResult:
        """
        Call a tool by its public name.

        Raises:
            UnknownToolError: If no server owns ``public_name``.
            InvalidToolArgumentsError: If ``arguments`` cannot be sent.
            ToolCallError: Any other failure, with server and operation filled in.
        """
        entry = self.registry.resolve(public_name)
        server_name, operation_name = entry.server_name, entry.operation_name
        arguments = _check_arguments(public_name, arguments)

        connection = self.connections.get(server_name)
        if connection is None:
            raise InvocationError(
                "server is not connected",
                public_name=public_name,
                server_name=server_name,
                operation_name=operation_name,
            )

        logger.info(
            "Requesting tool call",
            data={"tool_name": operation_name, "server_name": server_name},
        )

        try:
            result = await connection.invoke(operation_name, arguments)
        except ToolCallError as e:
            e.public_name = public_name
            e.server_name = e.server_name or server_name
            e.operation_name = e.operation_name or operation_name
            logger.warning(f"Tool call '{public_name}' failed: {e}")
            raise
        except Exception as e:
            logger.error(f"Tool call '{public_name}' failed unexpectedly: {e!r}")
            raise InvocationError(
                str(e) or type(e).__name__,
                public_name=public_name,
                server_name=server_name,
                operation_name=operation_name,
            ) from e

        return ToolResult.from_call_result(result, public_name, server_name, operation_name)
