import pytest

from mcp_chat.errors import (
    InvalidToolArgumentsError,
    InvocationError,
    RemoteToolError,
    ToolCallError,
    UnknownToolError,
)
from mcp_chat.mcp import CallRouter, SessionManager, ToolRegistry, ToolResult

from tests.conftest import FakeConnectionFactory, make_tool, stdio


@pytest.mark.asyncio
async def test_qualified_names_route_to_their_own_server():
    factory = FakeConnectionFactory(files={"tools": ["fetch"]}, web={"tools": ["fetch"]})
    async with SessionManager(tool_separator=".", connection_factory=factory) as manager:
        await manager.connect_all({"files": stdio(), "web": stdio()})

        result = await manager.router.route("files.fetch", {"path": "/tmp/a"})
        assert factory.built["files"].invocations == [("fetch", {"path": "/tmp/a"})]
        assert factory.built["web"].invocations == []
        assert result.server_name == "files"
        assert result.text() == "files:fetch"

        await manager.router.route("web.fetch", {"url": "https://example.com"})
        assert factory.built["web"].invocations == [("fetch", {"url": "https://example.com"})]
        assert len(factory.built["files"].invocations) == 1

        with pytest.raises(UnknownToolError):
            await manager.router.route("fetch", {})


@pytest.mark.asyncio
async def test_unknown_tool_never_reaches_a_connection(two_servers):
    factory, manager = two_servers
    async with manager:
        await manager.connect_all({"files": stdio(), "web": stdio()})

        with pytest.raises(UnknownToolError) as exc_info:
            await manager.router.route("mail-send", {"to": "x"})

    assert exc_info.value.public_name == "mail-send"
    assert all(not conn.invocations for conn in factory.built.values())


@pytest.mark.asyncio
async def test_none_arguments_are_sent_as_empty_object(two_servers):
    factory, manager = two_servers
    async with manager:
        await manager.connect_all({"files": stdio(), "web": stdio()})

        await manager.router.route("web-search", None)

    assert factory.built["web"].invocations == [("search", {})]


@pytest.mark.asyncio
@pytest.mark.parametrize("arguments", ["not-an-object", ["a", "b"], {"when": object()}])
async def test_unsendable_arguments_fail_before_invoking(two_servers, arguments):
    factory, manager = two_servers
    async with manager:
        await manager.connect_all({"files": stdio(), "web": stdio()})

        with pytest.raises(InvalidToolArgumentsError) as exc_info:
            await manager.router.route("files-read", arguments)

    assert exc_info.value.recoverable is False
    assert factory.built["files"].invocations == []


@pytest.mark.asyncio
async def test_remote_errors_keep_their_type_and_gain_context():
    factory = FakeConnectionFactory(
        files={"tools": ["read"], "invoke_error": RemoteToolError("no such file")}
    )
    async with SessionManager(connection_factory=factory) as manager:
        await manager.connect_all({"files": stdio()})

        with pytest.raises(RemoteToolError) as exc_info:
            await manager.router.route("files-read", {"path": "missing"})

    error = exc_info.value
    assert error.public_name == "files-read"
    assert error.server_name == "files"
    assert error.operation_name == "read"
    assert "no such file" in str(error)


@pytest.mark.asyncio
async def test_unexpected_failures_become_invocation_errors():
    cause = RuntimeError("pipe exploded")
    factory = FakeConnectionFactory(web={"tools": ["fetch"], "invoke_error": cause})
    async with SessionManager(connection_factory=factory) as manager:
        await manager.connect_all({"web": stdio()})

        with pytest.raises(InvocationError) as exc_info:
            await manager.router.route("web-fetch", {})

    assert isinstance(exc_info.value, ToolCallError)
    assert exc_info.value.__cause__ is cause
    assert exc_info.value.server_name == "web"
    assert exc_info.value.operation_name == "fetch"


@pytest.mark.asyncio
async def test_registered_tool_without_connection_is_an_invocation_error():
    registry = ToolRegistry()
    registry.register("files", [make_tool("read")])
    router = CallRouter(registry, {})

    with pytest.raises(InvocationError) as exc_info:
        await router.route("files-read", {})

    assert exc_info.value.server_name == "files"


def test_tool_result_text_renders_non_text_blocks_as_json():
    result = ToolResult(
        public_name="files-read",
        server_name="files",
        operation_name="read",
        content=[
            {"type": "text", "text": "hello"},
            {"type": "image", "data": "AAAA", "mimeType": "image/png"},
        ],
    )

    lines = result.text().splitlines()
    assert lines[0] == "hello"
    assert '"mimeType": "image/png"' in lines[1]
