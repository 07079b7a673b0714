"""
Resolvers - Map symbolic rule references onto live state.

- Players: "currentPlayer", "nextPlayer" or a player id
- Piles: "deck", "discard" or any reference ending in "hand"
- Targets: the records setFlag may write to
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping

from ..errors import PlayerNotFoundError, UnsupportedReferenceError, UnsupportedTargetError
from .state import FieldAccess, GameState, PlayerState


CURRENT_PLAYER = "currentPlayer"
NEXT_PLAYER = "nextPlayer"


def as_index(value: Any) -> Any:
    """
    Coerce a parameter value to a list index where that is unambiguous.

    Values that are not index-like are returned unchanged so callers can
    reject them.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value)
    return value


def is_valid_index(index: Any, size: int) -> bool:
    return isinstance(index, int) and not isinstance(index, bool) and 0 <= index < size


def ensure_known(player: PlayerState) -> list[bool]:
    """Bring `known` back in line with `hand` (missing slots are unknown)."""
    known = player.known
    if len(known) < len(player.hand):
        known.extend([False] * (len(player.hand) - len(known)))
    elif len(known) > len(player.hand):
        del known[len(player.hand):]
    return known


@dataclass
class PileRef:
    """
    A resolved pile and the index cards are taken from.

    `index` None means the top of the pile (end of the list). Hand piles
    carry their `known` list so both change together.
    """
    name: str
    cards: list[str]
    known: list[bool] | None = None
    index: Any = None

    def take(self) -> str | None:
        """Remove and return one card, or None if there is nothing to take."""
        if not self.cards:
            return None
        idx = len(self.cards) - 1 if self.index is None else self.index
        if not is_valid_index(idx, len(self.cards)):
            return None
        card = self.cards.pop(idx)
        if self.known is not None:
            self.known.pop(idx)
        return card

    def put(self, card: str) -> None:
        """Push a card on top; a card entering a hand starts unknown."""
        self.cards.append(card)
        if self.known is not None:
            self.known.append(False)


def _find_player(state: GameState, player_id: Any) -> PlayerState | None:
    player = state.get_player(player_id)
    if player is not None or player_id is None:
        return player
    for p in state.players:
        if str(p.id) == str(player_id):
            return p
    return None


def resolve_player(
    state: GameState,
    player_id: Any,
    ref: Any = None,
    strict: bool = False,
) -> PlayerState:
    """
    Resolve a player reference.

    A bare id (or no ref, meaning the acting `player_id`) that matches no
    player falls back to the first player unless `strict` is set.
    """
    if ref == CURRENT_PLAYER:
        return state.current_player
    if ref == NEXT_PLAYER:
        return state.next_player

    lookup = player_id if ref is None else ref
    player = _find_player(state, lookup)
    if player is None:
        if strict or not state.players:
            raise PlayerNotFoundError(lookup)
        return state.players[0]
    return player


def resolve_pile(
    state: GameState,
    player_id: Any,
    ref: Any,
    param_name: str | None = None,
    params: Mapping[str, Any] | None = None,
    forced_index: Any = None,
) -> PileRef:
    """
    Resolve a pile reference.

    The index is the forced index if given; hands may also read it from
    the named parameter. Raises UnsupportedReferenceError otherwise.
    """
    if ref == "deck":
        return PileRef("deck", state.deck, index=as_index(forced_index))
    if ref == "discard":
        return PileRef("discard", state.discard, index=as_index(forced_index))

    if isinstance(ref, str) and ref.endswith("hand"):
        player = resolve_player(state, player_id, NEXT_PLAYER if NEXT_PLAYER in ref else CURRENT_PLAYER)
        index = forced_index
        if index is None and param_name is not None and params:
            index = params.get(param_name)
        return PileRef(
            f"player:{player.id}.hand",
            player.hand,
            known=ensure_known(player),
            index=as_index(index),
        )

    raise UnsupportedReferenceError(ref)


def resolve_target(
    state: GameState,
    player_id: Any,
    ref: Any,
    strict: bool = False,
) -> FieldAccess:
    """Resolve the record a setFlag effect writes to."""
    if ref == "turn":
        return state.turn
    if ref == "round":
        return state.round
    if ref == "match":
        return state.match
    if ref in (CURRENT_PLAYER, "turn.currentPlayer"):
        return resolve_player(state, player_id, CURRENT_PLAYER, strict)
    if ref == NEXT_PLAYER:
        return resolve_player(state, player_id, NEXT_PLAYER, strict)
    raise UnsupportedTargetError(ref)
