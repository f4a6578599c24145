"""
Chat agent: runs the exchange between the model and the connected tools.
"""

import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from mcp_chat.agents.conversation import ConversationState
from mcp_chat.agents.llm import (
    LLMConfig,
    LLMProvider,
    ModelResponse,
    ToolUseBlock,
    to_anthropic_content,
    to_anthropic_tools,
)
from mcp_chat.errors import ToolCallError
from mcp_chat.mcp.registry import ToolRegistry
from mcp_chat.mcp.router import CallRouter
from mcp_chat.utils.logging import get_logger

ToolCallCallback = Callable[[str, Any], Union[None, Awaitable[None]]]

MAX_ROUNDS_NOTE = "(Note: Reached maximum number of tool call iterations)"


class TurnState(Enum):
    AWAITING_MODEL = "awaiting_model"
    MODEL_RESPONDED = "model_responded"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"


class ChatAgent:
    """
    Answers one query at a time, calling tools whenever the model asks.

    Every tool-use block of a model turn is executed in the order the model
    emitted it; the results are appended as one turn and the model is then
    queried again. The loop ends when a model turn contains no tool use.
    """

    def __init__(
        self,
        provider: LLMProvider,
        router: CallRouter,
        registry: ToolRegistry,
        llm_config: Optional[LLMConfig] = None,
        on_tool_call: Optional[ToolCallCallback] = None,
        name: str = "chat",
    ):
        """
        Args:
            provider: Model provider.
            router: Router used for every tool call.
            registry: Registry whose catalog is offered to the model.
            llm_config: Model settings.
            on_tool_call: Called with (tool name, arguments) before each call.
            name: Agent name, used for the logger.
        """
        self.provider = provider
        self.router = router
        self.registry = registry
        self.llm_config = llm_config or LLMConfig()
        self.on_tool_call = on_tool_call
        self.logger = get_logger(f"agent.{name}")
        self.tool_call_history: List[Dict[str, Any]] = []

    async def run(self, query: str) -> str:
        """
        Resolve one user query.

        Returns:
            The text the model produced, in emission order.

        Raises:
            ProtocolError: If the model or a server sent malformed data.
            ModelAPIError: If the model endpoint failed.
            ToolCallError: If a tool call failed in a way the model cannot
                recover from, such as arguments that cannot be sent.
        """
        self.logger.info(f"Processing query: {query}")
        self.tool_call_history = []

        conversation = ConversationState.start(query)
        answer: List[str] = []
        response: Optional[ModelResponse] = None
        pending: List[ToolUseBlock] = []
        rounds = 0
        state = TurnState.AWAITING_MODEL

        while state is not TurnState.DONE:
            if state is TurnState.AWAITING_MODEL:
                response = await self._query_model(conversation)
                state = TurnState.MODEL_RESPONDED

            elif state is TurnState.MODEL_RESPONDED:
                answer.extend(response.texts())
                pending = response.tool_uses()
                if not pending:
                    state = TurnState.DONE
                elif rounds >= self.llm_config.max_tool_rounds:
                    self.logger.warning(
                        f"Hit maximum tool rounds ({rounds}) with {len(pending)} tool calls remaining"
                    )
                    answer.append(MAX_ROUNDS_NOTE)
                    state = TurnState.DONE
                else:
                    state = TurnState.EXECUTING_TOOLS

            elif state is TurnState.EXECUTING_TOOLS:
                conversation.add_assistant(response.content_dicts())
                results = []
                for call in pending:
                    results.append(await self._execute(call))
                conversation.add_tool_results(results)
                rounds += 1
                state = TurnState.AWAITING_MODEL

        return "\n".join(answer)

    async def _query_model(self, conversation: ConversationState) -> ModelResponse:
        tools = to_anthropic_tools(self.registry.catalog())
        self.logger.debug(
            "Querying model",
            data={"turns": len(conversation), "tools_count": len(tools)},
        )
        return await self.provider.create_message(
            messages=conversation.to_messages(),
            tools=tools,
            model=self.llm_config.model,
            max_tokens=self.llm_config.max_tokens,
            system=self.llm_config.system_prompt,
        )

    async def _execute(self, call: ToolUseBlock) -> Dict[str, Any]:
        """Run one tool call and return the matching ``tool_result`` block."""
        if self.on_tool_call is not None:
            maybe_awaitable = self.on_tool_call(call.name, call.input)
            if maybe_awaitable is not None:
                await maybe_awaitable

        start = time.monotonic()
        try:
            result = await self.router.route(call.name, call.input)
        except ToolCallError as e:
            if not e.recoverable:
                raise
            self.logger.error(f"Error calling tool {call.name}: {e}")
            self.tool_call_history.append({
                "tool": call.name,
                "parameters": call.input,
                "error": str(e),
            })
            return {
                "type": "tool_result",
                "tool_use_id": call.id,
                "content": [{"type": "text", "text": f"Error: {e}"}],
                "is_error": True,
            }

        self.tool_call_history.append({
            "tool": call.name,
            "parameters": call.input,
            "result": result.text(),
            "seconds": round(time.monotonic() - start, 3),
        })
        block: Dict[str, Any] = {
            "type": "tool_result",
            "tool_use_id": call.id,
            "content": to_anthropic_content(result.content),
        }
        if result.is_error:
            block["is_error"] = True
        return block
