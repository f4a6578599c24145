"""
Client session used for every tool-server connection.

Adds request/response logging on top of the base MCP client session.
"""

from mcp import ClientSession
from mcp.shared.session import ReceiveResultT, SendRequestT
from mcp.types import ServerNotification

from mcp_chat.utils.logging import get_logger

logger = get_logger(__name__)


class ChatClientSession(ClientSession):
    """
    MCP client session with debug logging of all traffic.

    ``server_name`` is set by the owning connection so log lines can be
    attributed to a server.
    """

    server_name: str = "?"

    async def send_request(
        self,
        request: SendRequestT,
        result_type: type[ReceiveResultT],
        *args,
        **kwargs,
    ) -> ReceiveResultT:
        logger.debug(
            f"{self.server_name}: send_request", data=request.model_dump(exclude_none=True)
        )
        try:
            result = await super().send_request(request, result_type, *args, **kwargs)
        except Exception as e:
            logger.debug(f"{self.server_name}: send_request failed: {e!r}")
            raise
        logger.debug(f"{self.server_name}: response", data=result.model_dump(exclude_none=True))
        return result

    async def _received_notification(self, notification: ServerNotification) -> None:
        logger.info(
            f"{self.server_name}: notification",
            data=notification.model_dump(exclude_none=True),
        )
        return await super()._received_notification(notification)
