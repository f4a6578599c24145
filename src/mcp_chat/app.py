"""
Main application class for mcp-chat.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional, Union

from mcp_chat.agents import ChatAgent, LLMConfig, LLMProvider
from mcp_chat.agents.chat_agent import ToolCallCallback
from mcp_chat.config import Settings, load_config
from mcp_chat.mcp import SessionManager
from mcp_chat.utils.logging import configure_logging, get_logger


class ChatApp:
    """
    Wires configuration, server sessions and the chat agent together.

    Example usage:
        app = ChatApp(config_path="mcp_config.json")
        async with app.run() as running_app:
            answer = await running_app.agent.run("What files are in /tmp?")
    """

    def __init__(
        self,
        name: str = "mcp_chat",
        config_path: Optional[Union[str, Path]] = None,
        settings: Optional[Settings] = None,
        provider: Optional[LLMProvider] = None,
        sessions: Optional[SessionManager] = None,
        on_tool_call: Optional[ToolCallCallback] = None,
    ):
        """
        Args:
            name: Name of the application.
            config_path: Path to the configuration file. Ignored when
                ``settings`` is given.
            settings: Configuration object.
            provider: Model provider; built from the settings if omitted.
            sessions: Session manager; a new one is created if omitted.
            on_tool_call: Passed to the agent for displaying tool calls.
        """
        self.name = name
        self._config_path = config_path
        self._settings = settings
        self._provider = provider
        self._sessions = sessions
        self._on_tool_call = on_tool_call

        self.agent: Optional[ChatAgent] = None
        self._initialized = False
        self.logger = get_logger(f"mcp_chat.{name}")

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            raise RuntimeError("ChatApp not initialized. Use 'async with app.run()'.")
        return self._settings

    @property
    def sessions(self) -> SessionManager:
        if self._sessions is None:
            raise RuntimeError("ChatApp not initialized. Use 'async with app.run()'.")
        return self._sessions

    async def initialize(self) -> None:
        """
        Load configuration, connect every server and build the agent.

        Raises:
            ConfigError: If the configuration is missing or names no servers.
            ServerConnectionError: If a server fails to connect (fail-fast).
        """
        if self._initialized:
            return

        if self._settings is None:
            self._settings = load_config(self._config_path)
        settings = self._settings
        configure_logging(settings.logging.level, settings.logging.file_path)

        servers = settings.require_servers()
        llm_config = LLMConfig.from_settings(settings)
        provider = self._provider or llm_config.create_provider()

        if self._sessions is None:
            self._sessions = SessionManager(tool_separator=settings.chat.tool_separator)
        await self._sessions.__aenter__()
        await self._sessions.connect_all(
            servers, best_effort=settings.chat.best_effort_connect
        )

        self.agent = ChatAgent(
            provider=provider,
            router=self._sessions.router,
            registry=self._sessions.registry,
            llm_config=llm_config,
            on_tool_call=self._on_tool_call,
            name=self.name,
        )

        self._initialized = True
        self.logger.info(
            f"ChatApp initialized - servers: {', '.join(self._sessions.connections)}, "
            f"tools: {len(self._sessions.registry)}"
        )

    async def cleanup(self) -> None:
        """Close every server connection that was opened."""
        self.logger.info(f"ChatApp cleaning up - app_name: {self.name}")
        self.agent = None
        self._initialized = False
        if self._sessions is not None:
            await self._sessions.__aexit__(None, None, None)

    @asynccontextmanager
    async def run(self):
        """
        Run the application as an async context manager.

        Connections opened during a failed ``initialize()`` are closed before
        the error propagates.
        """
        try:
            await self.initialize()
            yield self
        finally:
            await self.cleanup()
