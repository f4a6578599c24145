"""
Conversation state for one user query.
"""

from typing import Any, Dict, List, Literal, Union

from pydantic import BaseModel, Field


class Turn(BaseModel):
    role: Literal["user", "assistant"]
    content: Union[str, List[Dict[str, Any]]]


class ConversationState(BaseModel):
    """
    Append-only list of turns, seeded with the user's query.

    A new state is created for every query; nothing carries over between
    queries.
    """

    turns: List[Turn] = Field(default_factory=list)

    @classmethod
    def start(cls, query: str) -> "ConversationState":
        return cls(turns=[Turn(role="user", content=query)])

    def add_assistant(self, content: List[Dict[str, Any]]) -> None:
        self.turns.append(Turn(role="assistant", content=content))

    def add_tool_results(self, results: List[Dict[str, Any]]) -> None:
        """Append one user turn holding ``tool_result`` blocks, in request order."""
        self.turns.append(Turn(role="user", content=results))

    def to_messages(self) -> List[Dict[str, Any]]:
        return [turn.model_dump() for turn in self.turns]

    def __len__(self) -> int:
        return len(self.turns)
