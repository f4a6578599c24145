"""
Error taxonomy for the mcp-chat front-end.

Errors that only affect a single tool call derive from ``ToolCallError`` and
carry enough context (public name, server, operation) to be reported back to
the model. Everything else affects the ability to converse at all.
"""

from typing import Any, List, Optional


class ChatError(Exception):
    """Base class for all mcp-chat errors."""


class ConfigError(ChatError):
    """The server list is missing, empty or malformed."""


class ServerConnectionError(ChatError, ConnectionError):
    """A tool server could not be started or reached."""

    def __init__(self, server_name: str, message: str):
        super().__init__(f"{server_name}: {message}")
        self.server_name = server_name


class ToolCollisionError(ChatError):
    """Two registered operations would share one public tool name."""

    def __init__(self, public_name: str, server_name: str, existing_server: str):
        super().__init__(
            f"Tool name '{public_name}' from server '{server_name}' "
            f"collides with a tool from server '{existing_server}'"
        )
        self.public_name = public_name
        self.server_name = server_name
        self.existing_server = existing_server


class CleanupError(ChatError):
    """
    One or more connections failed to close.

    ``errors`` holds every underlying failure, in the order they happened.
    """

    def __init__(self, message: str, errors: Optional[List[BaseException]] = None):
        super().__init__(message)
        self.errors: List[BaseException] = list(errors or [])


class ModelAPIError(ChatError):
    """The language-model endpoint rejected a request."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class ProtocolError(ChatError):
    """Malformed data was received from a tool server or the model."""


class ToolCallError(ChatError):
    """
    Uniform error for a failed tool invocation.

    ``recoverable`` tells the conversation driver whether the failure can be
    handed to the model as a failed tool result, or must end the query.
    """

    recoverable = True

    def __init__(
        self,
        message: str,
        public_name: Optional[str] = None,
        server_name: Optional[str] = None,
        operation_name: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.public_name = public_name
        self.server_name = server_name
        self.operation_name = operation_name

    def __str__(self) -> str:
        if self.server_name and self.operation_name:
            return (
                f"Tool '{self.operation_name}' on server '{self.server_name}': "
                f"{self.message}"
            )
        return self.message


class UnknownToolError(ToolCallError):
    """No connected server owns the requested tool name."""

    def __init__(self, public_name: str):
        super().__init__(f"Tool '{public_name}' not found", public_name=public_name)


class RemoteToolError(ToolCallError):
    """The tool server reported a failure executing the operation."""

    def __init__(self, message: str, content: Optional[List[Any]] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.content = list(content or [])


class InvocationError(ToolCallError):
    """The request could not be delivered over the session."""


class InvalidToolArgumentsError(ToolCallError):
    """The arguments cannot be sent to any server."""

    recoverable = False


class ToolProtocolError(ToolCallError, ProtocolError):
    """A tool server replied with data that does not match the protocol."""

    recoverable = False
