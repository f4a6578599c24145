"""Tests against the example FastMCP servers, started as real stdio processes."""

import sys
from pathlib import Path

import anyio
import pytest

from mcp_chat.config import MCPServerSettings
from mcp_chat.errors import UnknownToolError
from mcp_chat.mcp import SessionManager

SERVERS_DIR = Path(__file__).resolve().parents[1] / "examples" / "servers"


def example_server(filename: str) -> MCPServerSettings:
    return MCPServerSettings(
        command=sys.executable,
        args=[str(SERVERS_DIR / filename)],
        read_timeout_seconds=30,
    )


def example_servers():
    return {
        "notes": example_server("notes_server.py"),
        "docs": example_server("docs_server.py"),
    }


@pytest.mark.asyncio
async def test_disconnecting_the_oldest_server_leaves_the_others_working():
    async with SessionManager() as manager:
        await manager.connect_all(example_servers())
        names = sorted(tool.name for tool in manager.registry.catalog())
        assert names == ["docs-search", "notes-add_note", "notes-search"]

        await manager.disconnect_server("notes")

        assert list(manager.connections) == ["docs"]
        with pytest.raises(UnknownToolError):
            await manager.router.route("notes-search", {"query": "standup"})

        result = await manager.router.route("docs-search", {"query": "mcp"})
        assert "Model Context Protocol" in result.text()
        assert not result.is_error

    assert dict(manager.connections) == {}


@pytest.mark.asyncio
async def test_servers_can_be_disconnected_from_other_tasks():
    async with SessionManager() as manager:
        await manager.connect_all(example_servers())

        async with anyio.create_task_group() as tg:
            tg.start_soon(manager.disconnect_server, "docs")

        result = await manager.router.route("notes-search", {"query": "groceries"})
        assert "Eggs" in result.text()

        await manager.close_all()
        await manager.close_all()
