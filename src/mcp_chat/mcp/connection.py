"""
A single long-lived connection to one MCP tool server.
"""

from datetime import timedelta
from enum import Enum
from typing import Any, AsyncContextManager, Callable, Dict, List, Mapping, Optional, Tuple

import anyio
from anyio.abc import TaskGroup
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from mcp import ClientSession
from mcp.client.sse import sse_client
from mcp.client.stdio import StdioServerParameters, get_default_environment, stdio_client
from mcp.shared.exceptions import McpError
from mcp.types import CONNECTION_CLOSED, CallToolResult, Tool
from pydantic import ValidationError

from mcp_chat.config import MCPServerSettings
from mcp_chat.errors import (
    CleanupError,
    InvocationError,
    RemoteToolError,
    ServerConnectionError,
    ToolCallError,
    ToolProtocolError,
)
from mcp_chat.mcp.client_session import ChatClientSession
from mcp_chat.utils.logging import get_logger

logger = get_logger(__name__)

Operation = Tool
"""A tool descriptor as advertised by its owning server."""

TransportStreams = Tuple[MemoryObjectReceiveStream, MemoryObjectSendStream]
TransportFactory = Callable[[], AsyncContextManager[TransportStreams]]
ClientSessionFactory = Callable[
    [MemoryObjectReceiveStream, MemoryObjectSendStream, Optional[timedelta]],
    ClientSession,
]

# Failures of the underlying stream; the server is unreachable for this call.
TRANSPORT_ERRORS = (
    anyio.ClosedResourceError,
    anyio.BrokenResourceError,
    anyio.EndOfStream,
    OSError,
)


class ConnectionState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    CLOSING = "closing"


def default_transport_factory(settings: MCPServerSettings) -> TransportFactory:
    """
    Build the transport context factory for a server's launch specification.
    """

    def transport_context_factory():
        if settings.transport == "stdio":
            server_params = StdioServerParameters(
                command=settings.command,
                args=settings.args,
                env={**get_default_environment(), **(settings.env or {})},
            )
            return stdio_client(server_params)
        elif settings.transport == "sse":
            return sse_client(settings.url)
        else:
            raise ValueError(f"Unsupported transport: {settings.transport}")

    return transport_context_factory


def error_text(result: CallToolResult) -> str:
    """Join the text blocks of a failed tool result into one message."""
    texts = [block.text for block in result.content if getattr(block, "type", None) == "text"]
    return "\n".join(texts) or "Tool reported an error without details"


def unwrap_error(exc: BaseException) -> BaseException:
    """Return the only error inside (nested) task group exception groups."""
    inner = getattr(exc, "exceptions", None)
    while inner and len(inner) == 1:
        exc = inner[0]
        inner = getattr(exc, "exceptions", None)
    return exc


class ServerConnection:
    """
    Owns one session to one tool server.

    The transport and session live in a lifecycle task started in the task
    group handed to ``connect()``, so every connection enters and exits its
    own cancel scopes regardless of the order connections are closed in.

    The connection is either fully ``OPEN`` (session initialized, catalog
    discovered) or ``CLOSED``; ``CLOSING`` is only seen while ``close()`` runs.
    """

    def __init__(
        self,
        server_name: str,
        settings: MCPServerSettings,
        client_session_factory: ClientSessionFactory = ChatClientSession,
        transport_factory: Optional[TransportFactory] = None,
    ):
        self.server_name = server_name
        self.settings = settings
        self.session: Optional[ClientSession] = None
        self.operations: List[Operation] = []
        self.state = ConnectionState.CLOSED
        self._client_session_factory = client_session_factory
        self._transport_factory = transport_factory or default_transport_factory(settings)
        self._lock = anyio.Lock()

        # Signal that the session is up and its tools discovered (or startup failed)
        self._initialized_event = anyio.Event()
        # Signal we want to shut down
        self._shutdown_event = anyio.Event()
        # Signal the lifecycle task has exited
        self._stopped_event = anyio.Event()
        self._lifecycle_error: Optional[Exception] = None

    def __repr__(self) -> str:
        return f"ServerConnection({self.server_name!r}, state={self.state.value})"

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    def _read_timeout(self) -> Optional[timedelta]:
        if self.settings.read_timeout_seconds:
            return timedelta(seconds=self.settings.read_timeout_seconds)
        return None

    async def connect(self, task_group: TaskGroup) -> List[Operation]:
        """
        Start or reach the server, initialize the session and discover its tools.

        Args:
            task_group: Task group that hosts the connection's lifecycle task
                until ``close()`` is called.

        Returns:
            The operations advertised by the server, in server order.

        Raises:
            ServerConnectionError: If the session cannot be established.
            InvocationError: If the connection is not closed.
        """
        async with self._lock:
            if self.state is not ConnectionState.CLOSED:
                raise InvocationError(
                    f"connection is already {self.state.value}",
                    server_name=self.server_name,
                )

            logger.info(f"{self.server_name}: Connecting ({self.settings.transport})...")
            self._initialized_event = anyio.Event()
            self._shutdown_event = anyio.Event()
            self._stopped_event = anyio.Event()
            self._lifecycle_error = None

            task_group.start_soon(self._lifecycle_task, name=f"mcp-server-{self.server_name}")
            try:
                await self._initialized_event.wait()
            except BaseException:
                self._shutdown_event.set()
                raise

            if self.session is None:
                # Startup failed; wait for the transport to unwind
                await self._stopped_event.wait()
                error = self._lifecycle_error or RuntimeError("session ended during startup")
                self._lifecycle_error = None
                raise ServerConnectionError(
                    self.server_name, f"failed to connect: {error}"
                ) from error

            self.state = ConnectionState.OPEN
            tools = list(self.operations)

        logger.info(
            f"{self.server_name}: Connected.",
            data={"tools": [tool.name for tool in tools]},
        )
        return tools

    async def _lifecycle_task(self) -> None:
        """
        Hold the transport and session open until shutdown is requested.
        """
        try:
            async with self._transport_factory() as (read_stream, write_stream):
                session = self._client_session_factory(
                    read_stream, write_stream, self._read_timeout()
                )
                async with session:
                    if hasattr(session, "server_name"):
                        session.server_name = self.server_name
                    await session.initialize()
                    self.operations = await self._fetch_tools(session)
                    self.session = session
                    self._initialized_event.set()

                    await self._shutdown_event.wait()
        except Exception as e:
            e = unwrap_error(e)
            if self.session is None:
                logger.error(f"{self.server_name}: Failed to connect: {e!r}")
            else:
                logger.error(f"{self.server_name}: Error closing connection: {e!r}")
            self._lifecycle_error = e
        finally:
            self.session = None
            # Make sure connect() never hangs on a task that died early
            self._initialized_event.set()
            self._stopped_event.set()

    async def _fetch_tools(self, session: ClientSession) -> List[Operation]:
        result = await session.list_tools()
        return list(result.tools or [])

    def _open_session(self, **context: Any) -> ClientSession:
        session = self.session
        if not self.is_open or session is None:
            raise InvocationError(f"session is {self.state.value}", **context)
        return session

    def _translate_mcp_error(self, e: McpError, message: str, **context: Any) -> ToolCallError:
        if e.error.code == CONNECTION_CLOSED:
            logger.warning(f"{self.server_name}: Connection lost: {e.error.message}")
            return InvocationError(f"connection lost: {e.error.message}", **context)
        return RemoteToolError(message, **context)

    async def list_operations(self) -> List[Operation]:
        """
        Re-discover the server's operations over the open session.
        """
        session = self._open_session(server_name=self.server_name)
        try:
            tools = await self._fetch_tools(session)
        except McpError as e:
            raise self._translate_mcp_error(
                e, f"tool discovery failed: {e.error.message}", server_name=self.server_name
            ) from e
        except ValidationError as e:
            raise ToolProtocolError(
                f"malformed tool list: {e}", server_name=self.server_name
            ) from e
        except TRANSPORT_ERRORS as e:
            raise InvocationError(
                f"transport failure: {e!r}", server_name=self.server_name
            ) from e
        self.operations = tools
        return list(tools)

    async def invoke(
        self, operation_name: str, arguments: Optional[Mapping[str, Any]] = None
    ) -> CallToolResult:
        """
        Invoke one operation on the server.

        Raises:
            InvocationError: If the session is not open, the transport failed
                or the server went away.
            RemoteToolError: If the server reports a failure.
            ToolProtocolError: If the server's reply is malformed.
        """
        context: Dict[str, Any] = {
            "server_name": self.server_name,
            "operation_name": operation_name,
        }
        session = self._open_session(**context)

        try:
            result = await session.call_tool(
                name=operation_name, arguments=dict(arguments or {})
            )
        except McpError as e:
            raise self._translate_mcp_error(e, e.error.message, **context) from e
        except ValidationError as e:
            raise ToolProtocolError(f"malformed response: {e}", **context) from e
        except TRANSPORT_ERRORS as e:
            raise InvocationError(f"transport failure: {e!r}", **context) from e

        if not isinstance(result, CallToolResult):
            raise ToolProtocolError(
                f"unexpected response type {type(result).__name__}", **context
            )

        if result.isError:
            raise RemoteToolError(
                error_text(result),
                content=[block.model_dump(exclude_none=True) for block in result.content],
                **context,
            )
        return result

    async def close(self) -> None:
        """
        Close the session and its transport. Closing a closed connection is a no-op.

        Raises:
            CleanupError: If the transport failed to shut down cleanly. The
                connection is closed regardless.
        """
        async with self._lock:
            if self.state is not ConnectionState.OPEN:
                return

            self.state = ConnectionState.CLOSING
            logger.info(f"{self.server_name}: Closing connection...")
            try:
                self._shutdown_event.set()
                await self._stopped_event.wait()
                error, self._lifecycle_error = self._lifecycle_error, None
            finally:
                self.session = None
                self.operations = []
                self.state = ConnectionState.CLOSED

            if error is not None:
                raise CleanupError(
                    f"{self.server_name}: error closing connection: {error}", [error]
                ) from error
            logger.info(f"{self.server_name}: Closed.")
