"""
Execution results and the events effects emit.

Events are JSON-shaped dicts for the UI layer:
- hand_reveal:  {type, playerId, hand}
- round_score:  {type, playerId, score, round}
- card_reveal:  {type, playerId, cardIndex, card}
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from .state import GameState


class EventType(str, Enum):
    HAND_REVEAL = "hand_reveal"
    ROUND_SCORE = "round_score"
    CARD_REVEAL = "card_reveal"


def make_event(event_type: EventType, **payload: Any) -> dict[str, Any]:
    return {"type": event_type.value, **payload}


@dataclass
class ExecutionResult:
    """
    Result of executing an action or ability.

    `state` is the same object the caller passed in, mutated in place.
    """
    state: GameState
    events: list[dict[str, Any]] = field(default_factory=list)

    def events_of(self, event_type: EventType | str) -> list[dict[str, Any]]:
        wanted = event_type.value if isinstance(event_type, EventType) else event_type
        return [e for e in self.events if e.get("type") == wanted]
