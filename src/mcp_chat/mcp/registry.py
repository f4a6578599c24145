"""
The flat, collision-free tool namespace shared by the model and the router.

Every tool is published under its server-qualified name
(``<server><separator><operation>``), whether or not another server
advertises the same operation name. Bare operation names never resolve.
"""

from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping

from mcp.types import Tool
from pydantic import BaseModel

from mcp_chat.errors import ToolCollisionError, UnknownToolError
from mcp_chat.utils.logging import get_logger

logger = get_logger(__name__)

SEP = "-"


class NamespacedTool(BaseModel):
    """
    A tool together with the server that owns it.
    """

    tool: Tool
    server_name: str
    public_name: str

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @property
    def operation_name(self) -> str:
        return self.tool.name

    def public_tool(self) -> Tool:
        """The tool as shown to the model: same description and schema, public name."""
        return self.tool.model_copy(update={"name": self.public_name})


class ToolRegistry:
    """
    Maps public tool names to their owning server and operation.

    Writers build a complete new mapping and swap it in, so readers always see
    either the old or the new snapshot.
    """

    def __init__(self, separator: str = SEP):
        if not separator:
            raise ValueError("Tool name separator must not be empty")
        self.separator = separator
        self._tools: Mapping[str, NamespacedTool] = MappingProxyType({})
        self._server_to_tools: Mapping[str, List[NamespacedTool]] = MappingProxyType({})

    def qualify(self, server_name: str, operation_name: str) -> str:
        return f"{server_name}{self.separator}{operation_name}"

    def register(self, server_name: str, operations: Iterable[Tool]) -> List[NamespacedTool]:
        """
        Publish one server's catalog, replacing anything it registered before.

        Raises:
            ToolCollisionError: If a resulting public name is already taken, by
                another server or by the same server advertising a name twice.
                The registry is left unchanged.
        """
        tools = {
            name: entry
            for name, entry in self._tools.items()
            if entry.server_name != server_name
        }
        added: List[NamespacedTool] = []
        for operation in operations:
            public_name = self.qualify(server_name, operation.name)
            existing = tools.get(public_name)
            if existing is not None:
                raise ToolCollisionError(public_name, server_name, existing.server_name)
            entry = NamespacedTool(tool=operation, server_name=server_name, public_name=public_name)
            tools[public_name] = entry
            added.append(entry)

        server_to_tools = dict(self._server_to_tools)
        server_to_tools[server_name] = added
        self._publish(tools, server_to_tools)

        logger.debug(
            "Server tools registered",
            data={"server_name": server_name, "tools_count": len(added)},
        )
        return list(added)

    def unregister(self, server_name: str) -> None:
        """Remove every tool owned by ``server_name``. Unknown servers are ignored."""
        if server_name not in self._server_to_tools:
            return
        tools = {
            name: entry
            for name, entry in self._tools.items()
            if entry.server_name != server_name
        }
        server_to_tools = {
            name: entries
            for name, entries in self._server_to_tools.items()
            if name != server_name
        }
        self._publish(tools, server_to_tools)
        logger.debug(f"{server_name}: tools unregistered")

    def clear(self) -> None:
        self._publish({}, {})

    def _publish(
        self,
        tools: Dict[str, NamespacedTool],
        server_to_tools: Dict[str, List[NamespacedTool]],
    ) -> None:
        self._tools = MappingProxyType(tools)
        self._server_to_tools = MappingProxyType(server_to_tools)

    def resolve(self, public_name: str) -> NamespacedTool:
        """
        Find the owner of a public tool name.

        Raises:
            UnknownToolError: If no registered server publishes that name.
        """
        entry = self._tools.get(public_name)
        if entry is None:
            raise UnknownToolError(public_name)
        return entry

    def catalog(self) -> List[Tool]:
        """Snapshot of every public tool, in registration order."""
        return [entry.public_tool() for entry in self._tools.values()]

    def entries(self) -> List[NamespacedTool]:
        return list(self._tools.values())

    def servers(self) -> List[str]:
        return list(self._server_to_tools)

    def tools_for(self, server_name: str) -> List[NamespacedTool]:
        return list(self._server_to_tools.get(server_name, []))

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, public_name: object) -> bool:
        return public_name in self._tools
