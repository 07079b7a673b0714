"""
Game State - The mutable record the interpreter reads and writes.

Design principles:
- Mutable in place: effects change the caller-owned state directly
- Snapshot-friendly: to_dict()/from_dict() exchange camelCase JSON shapes
- Rule-addressable: rule documents name fields in camelCase
  ("turn.hasDrawn"), get_field()/set_field() map them onto attributes
- Card identity is the card code itself ("AH" = rank "A" + suit "H")
"""

from __future__ import annotations
from copy import deepcopy
from dataclasses import dataclass, field, fields
from functools import lru_cache
from typing import Any, Iterable, Mapping
import re


DEFAULT_PHASE_ID = "main_turn"
GAME_OVER_PHASE_ID = "game_over"

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def to_snake(name: str) -> str:
    """hasDrawn -> has_drawn"""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def to_camel(name: str) -> str:
    """has_drawn -> hasDrawn"""
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


@lru_cache(maxsize=None)
def _record_fields(cls: type) -> frozenset[str]:
    return frozenset(f.name for f in fields(cls) if f.name != "extras")


def read_field(record: Any, name: str) -> Any:
    """
    Read a camelCase name from any state record.

    Only declared dataclass fields (and a FieldAccess record's extras)
    are reachable; anything else reads as None.
    """
    attr = to_snake(name)
    if attr in _record_fields(type(record)):
        return getattr(record, attr)
    if isinstance(record, FieldAccess):
        return record.extras.get(name)
    return None


def card_rank(card_code: str) -> str:
    """Strip the trailing suit character: "10H" -> "10"."""
    return card_code[:-1]


def hand_score(hand: Iterable[str], card_values: Mapping[str, Any]) -> int | float:
    """Sum the configured value of every card by rank. Unknown ranks score 0."""
    return sum(card_values.get(card_rank(card), 0) for card in hand)


class FieldAccess:
    """
    camelCase access to a record's fields.

    Names that do not match a declared field are kept in `extras`, so
    setFlag effects can store arbitrary flags verbatim.
    """

    def get_field(self, name: str) -> Any:
        return read_field(self, name)

    def has_field(self, name: str) -> bool:
        return to_snake(name) in _record_fields(type(self)) or name in self.extras

    def set_field(self, name: str, value: Any) -> None:
        attr = to_snake(name)
        if attr in _record_fields(type(self)):
            setattr(self, attr, value)
        else:
            self.extras[name] = value

    def to_dict(self) -> dict[str, Any]:
        data = {to_camel(name): deepcopy(getattr(self, name)) for name in sorted(_record_fields(type(self)))}
        data.update(deepcopy(self.extras))
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]):
        known = _record_fields(cls)
        kwargs: dict[str, Any] = {}
        extras: dict[str, Any] = {}
        for key, value in data.items():
            attr = to_snake(key)
            if attr in known:
                kwargs[attr] = deepcopy(value)
            else:
                extras[key] = deepcopy(value)
        return cls(**kwargs, extras=extras)


@dataclass
class PlayerState(FieldAccess):
    """
    State for a single player.

    `known` is parallel to `hand`: known[i] records whether hand[i] has
    been revealed. Every hand mutation keeps the two the same length.
    """
    id: Any
    name: str
    hand: list[str] = field(default_factory=list)
    known: list[bool] = field(default_factory=list)
    declared_kabu: bool = False
    has_just_drawn: bool = False
    last_draw_source: str | None = None
    last_draw_card_code: str | None = None
    score: int | float = 0
    extras: dict[str, Any] = field(default_factory=dict)


@dataclass
class TurnState(FieldAccess):
    """Turn-scoped bookkeeping every action or ability may gate on."""
    phase_id: str = DEFAULT_PHASE_ID
    current_player_index: int = 0
    has_drawn: bool = False
    just_burned: bool = False
    has_used_ability: bool = False
    has_discarded: bool = False
    extras: dict[str, Any] = field(default_factory=dict)

    def reset_flags(self) -> None:
        self.has_drawn = False
        self.just_burned = False
        self.has_used_ability = False
        self.has_discarded = False


@dataclass
class RoundState(FieldAccess):
    number: int = 1
    extras: dict[str, Any] = field(default_factory=dict)


@dataclass
class MatchState(FieldAccess):
    has_winner: bool = False
    winner_id: Any = None
    extras: dict[str, Any] = field(default_factory=dict)


@dataclass
class GameState:
    """
    Complete game state of one match.

    Owned by the caller and passed by reference into every operation.
    `deck` is a stack: the top of the pile is the end of the list.
    """
    deck: list[str] = field(default_factory=list)
    discard: list[str] = field(default_factory=list)
    players: list[PlayerState] = field(default_factory=list)
    turn: TurnState = field(default_factory=TurnState)
    round: RoundState = field(default_factory=RoundState)
    match: MatchState = field(default_factory=MatchState)

    # Append-only audit trail
    log: list[str] = field(default_factory=list)

    # Reserved; events currently flow through per-call results
    events: list[Any] = field(default_factory=list)

    @property
    def num_players(self) -> int:
        return len(self.players)

    @property
    def current_player(self) -> PlayerState:
        return self.players[self.turn.current_player_index]

    @property
    def next_player(self) -> PlayerState:
        return self.players[(self.turn.current_player_index + 1) % len(self.players)]

    def get_player(self, player_id: Any) -> PlayerState | None:
        """Get player by ID."""
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def all_cards(self) -> list[str]:
        """Every card code across deck, discard and all hands."""
        cards = list(self.deck) + list(self.discard)
        for p in self.players:
            cards.extend(p.hand)
        return cards

    def clone(self) -> GameState:
        """Deep copy the state."""
        return deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        """Snapshot as a camelCase JSON-shaped mapping."""
        return {
            "deck": list(self.deck),
            "discard": list(self.discard),
            "players": [p.to_dict() for p in self.players],
            "turn": self.turn.to_dict(),
            "round": self.round.to_dict(),
            "match": self.match.to_dict(),
            "log": list(self.log),
            "events": deepcopy(self.events),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> GameState:
        """Rebuild a state from a snapshot produced by to_dict()."""
        return cls(
            deck=list(data.get("deck", [])),
            discard=list(data.get("discard", [])),
            players=[PlayerState.from_dict(p) for p in data.get("players", [])],
            turn=TurnState.from_dict(data.get("turn", {})),
            round=RoundState.from_dict(data.get("round", {})),
            match=MatchState.from_dict(data.get("match", {})),
            log=list(data.get("log", [])),
            events=deepcopy(list(data.get("events", []))),
        )
