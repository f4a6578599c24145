"""Shared fakes for mcp-chat tests."""

from typing import Any, Dict, List, Optional, Sequence

import anyio
import pytest
from mcp.types import CallToolResult, TextContent, Tool

from mcp_chat.config import MCPServerSettings
from mcp_chat.errors import CleanupError, ServerConnectionError
from mcp_chat.mcp import SessionManager


def make_tool(name: str, description: Optional[str] = None, schema: Optional[Dict] = None) -> Tool:
    return Tool(
        name=name,
        description=description if description is not None else f"{name} tool",
        inputSchema=schema or {"type": "object", "properties": {}},
    )


def stdio(command: str = "server") -> MCPServerSettings:
    return MCPServerSettings(command=command, args=[])


class FakeConnection:
    """Stands in for ServerConnection without starting any process."""

    def __init__(
        self,
        server_name: str,
        settings: Optional[MCPServerSettings] = None,
        tools: Sequence[str] = (),
        fail_connect: bool = False,
        fail_close: bool = False,
        invoke_error: Optional[BaseException] = None,
        delay: float = 0.0,
        call_log: Optional[List] = None,
    ):
        self.server_name = server_name
        self.settings = settings
        self.tools = [make_tool(name) for name in tools]
        self.fail_connect = fail_connect
        self.fail_close = fail_close
        self.invoke_error = invoke_error
        self.delay = delay
        self.call_log = call_log if call_log is not None else []
        self.invocations: List = []
        self.connect_calls = 0
        self.close_calls = 0
        self.is_open = False

    async def connect(self, task_group=None) -> List[Tool]:
        self.connect_calls += 1
        if self.fail_connect:
            raise ServerConnectionError(self.server_name, "failed to connect: boom")
        self.is_open = True
        return list(self.tools)

    async def list_operations(self) -> List[Tool]:
        return list(self.tools)

    async def invoke(self, operation_name: str, arguments: Dict[str, Any]) -> CallToolResult:
        self.invocations.append((operation_name, arguments))
        if self.delay:
            await anyio.sleep(self.delay)
        self.call_log.append((self.server_name, operation_name))
        if self.invoke_error is not None:
            raise self.invoke_error
        return CallToolResult(
            content=[TextContent(type="text", text=f"{self.server_name}:{operation_name}")]
        )

    async def close(self) -> None:
        self.close_calls += 1
        if not self.is_open:
            return
        self.is_open = False
        if self.fail_close:
            raise CleanupError(f"{self.server_name}: error closing connection")


class FakeConnectionFactory:
    """
    Builds FakeConnections from per-server keyword arguments and remembers
    every connection it built, in order.
    """

    def __init__(self, **specs: Dict[str, Any]):
        self.specs = specs
        self.built: Dict[str, FakeConnection] = {}
        self.call_log: List = []

    def __call__(self, server_name: str, settings: MCPServerSettings) -> FakeConnection:
        spec = dict(self.specs.get(server_name, {}))
        connection = FakeConnection(server_name, settings, call_log=self.call_log, **spec)
        self.built[server_name] = connection
        return connection


@pytest.fixture
def two_servers():
    """Factory and manager for servers 'files' and 'web', both exposing 'fetch'."""
    factory = FakeConnectionFactory(
        files={"tools": ["fetch", "read"]},
        web={"tools": ["fetch", "search"]},
    )
    manager = SessionManager(connection_factory=factory)
    return factory, manager
