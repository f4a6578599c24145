"""
Owns the set of server connections and the tool registry derived from them.
"""

from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional

from anyio import Lock, create_task_group
from anyio.abc import TaskGroup

from mcp_chat.config import MCPServerSettings
from mcp_chat.errors import (
    CleanupError,
    ConfigError,
    ServerConnectionError,
    ToolCollisionError,
)
from mcp_chat.mcp.connection import ServerConnection
from mcp_chat.mcp.registry import SEP, ToolRegistry
from mcp_chat.mcp.router import CallRouter
from mcp_chat.utils.logging import get_logger

logger = get_logger(__name__)

ConnectionFactory = Callable[[str, MCPServerSettings], ServerConnection]


class SessionManager:
    """
    Connects to every configured server, registers their tools and tears them
    down again. This is the only component that adds or removes connections.

    Each connection runs in a lifecycle task inside the manager's task group,
    so the manager must be entered (``async with``) before connecting.

    Example:
        async with SessionManager() as manager:
            await manager.connect_all(settings.mcp.servers)
            result = await manager.router.route("files-read", {"path": "a.txt"})
    """

    def __init__(
        self,
        tool_separator: str = SEP,
        connection_factory: ConnectionFactory = ServerConnection,
    ):
        self._connection_factory = connection_factory
        self._connections: Dict[str, ServerConnection] = {}
        self.registry = ToolRegistry(separator=tool_separator)
        self.router = CallRouter(self.registry, self.connections)
        self._lock = Lock()
        self._tg: Optional[TaskGroup] = None

    @property
    def connections(self) -> Mapping[str, ServerConnection]:
        """Read-only view of the open connections, in connect order."""
        return MappingProxyType(self._connections)

    async def __aenter__(self) -> "SessionManager":
        if self._tg is None:
            self._tg = create_task_group()
            await self._tg.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        logger.debug("SessionManager: shutting down all server tasks...")
        try:
            await self.close_all()
        finally:
            tg, self._tg = self._tg, None
            if tg is not None:
                # Lifecycle tasks are stopped by now; the caller's error
                # propagates as is instead of inside an exception group.
                await tg.__aexit__(None, None, None)

    async def connect_all(
        self,
        servers: Mapping[str, MCPServerSettings],
        best_effort: bool = False,
    ) -> None:
        """
        Connect to each server in the given order and register its tools.

        Args:
            servers: Launch specifications keyed by server name.
            best_effort: Log and skip servers that fail instead of aborting.

        Raises:
            ConfigError: If ``servers`` is empty.
            ServerConnectionError: If a server fails (fail-fast), or if no server
                could be connected (best effort). Connections opened before the
                failure are closed first.
            ToolCollisionError: If a server's tools collide with registered ones
                (fail-fast only).
        """
        if not servers:
            raise ConfigError("No MCP servers configured.")

        failures: List[Exception] = []
        for server_name, settings in servers.items():
            try:
                await self.connect_server(server_name, settings)
            except (ServerConnectionError, ToolCollisionError) as e:
                if not best_effort:
                    logger.error(f"Startup aborted: {e}")
                    await self._close_after_failure()
                    raise
                logger.warning(f"Skipping server '{server_name}': {e}")
                failures.append(e)

        if not self._connections:
            raise ServerConnectionError(
                ", ".join(servers), f"no server could be connected ({len(failures)} failed)"
            )

    async def _close_after_failure(self) -> None:
        try:
            await self.close_all()
        except CleanupError as cleanup_exc:
            logger.error(f"Cleanup after failed startup was incomplete: {cleanup_exc}")

    async def connect_server(self, server_name: str, settings: MCPServerSettings) -> ServerConnection:
        """
        Open one connection and publish its tools.

        Raises:
            ServerConnectionError: If the server is already connected or fails to connect.
            ToolCollisionError: If its tools collide; the connection is closed again.
            RuntimeError: If the manager has not been entered.
        """
        if self._tg is None:
            raise RuntimeError(
                "SessionManager must be used inside an async context (i.e. 'async with' or after __aenter__)."
            )

        async with self._lock:
            if server_name in self._connections:
                raise ServerConnectionError(server_name, "already connected")

            connection = self._connection_factory(server_name, settings)
            operations = await connection.connect(self._tg)
            try:
                self.registry.register(server_name, operations)
            except ToolCollisionError:
                await connection.close()
                raise
            self._connections[server_name] = connection
            return connection

    async def disconnect_server(self, server_name: str) -> None:
        """
        Remove a server's tools, then close its connection.

        Raises:
            CleanupError: If closing failed. The server is removed regardless.
        """
        async with self._lock:
            self.registry.unregister(server_name)
            connection = self._connections.pop(server_name, None)
        if connection is None:
            logger.info(f"{server_name}: No connection found. Skipping disconnect")
            return
        await connection.close()

    async def refresh(self, server_name: str) -> None:
        """
        Re-discover a connected server's tools and re-publish them.
        """
        async with self._lock:
            connection = self._connections.get(server_name)
            if connection is None:
                raise ServerConnectionError(server_name, "not connected")
            operations = await connection.list_operations()
            self.registry.register(server_name, operations)

    async def close_all(self) -> None:
        """
        Close every connection, newest first, even if some fail.

        Raises:
            CleanupError: Aggregating every failure, after all connections
                were attempted.
        """
        async with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()
            self.registry.clear()

        errors: List[BaseException] = []
        for connection in reversed(connections):
            try:
                await connection.close()
            except Exception as e:
                logger.error(f"{connection.server_name}: close failed: {e}")
                errors.append(e)

        if errors:
            raise CleanupError(
                f"{len(errors)} connection(s) failed to close cleanly", errors
            )
        if connections:
            logger.info("All server connections closed.")
