"""
Game Setup - Creates the initial state of a match.

This module handles:
- Building the deck from configured ranks x suits
- Shuffling with the runtime's random source
- Dealing initial hands in player order
- Zeroing every per-player and per-turn field
"""

from __future__ import annotations
from typing import Any, Iterable, Mapping, Sequence, TYPE_CHECKING

from .rng import RandomSource, shuffle_in_place
from .state import (
    DEFAULT_PHASE_ID,
    GameState,
    MatchState,
    PlayerState,
    RoundState,
    TurnState,
)

if TYPE_CHECKING:
    from ..spec_schema import Metadata


def build_deck(ranks: Iterable[str], suits: Iterable[str]) -> list[str]:
    """Cartesian product of ranks x suits, rank outer, suit inner."""
    suits = list(suits)
    return [f"{rank}{suit}" for rank in ranks for suit in suits]


def _player_entry(entry: Mapping[str, Any] | str, idx: int) -> tuple[Any, str]:
    if isinstance(entry, str):
        return idx + 1, entry
    player_id = entry.get("id")
    if player_id is None:
        player_id = idx + 1
    return player_id, entry.get("name") or f"Player {idx + 1}"


def create_initial_state(
    metadata: Metadata,
    players: Sequence[Mapping[str, Any] | str],
    rng: RandomSource,
    deck: Sequence[str] | None = None,
    shuffle: bool | None = None,
) -> GameState:
    """
    Create the state for a new match.

    Args:
        metadata: Rule document metadata (deck and setup configuration)
        players: Player entries; mappings with optional id/name, or names
        rng: Random source for the shuffle
        deck: Card codes to use instead of the configured deck
        shuffle: Overrides setup.shuffle; both unset means shuffle

    Returns:
        The fully formed GameState. Empty ranks or suits yield an empty deck.
    """
    cards = list(deck) if deck is not None else build_deck(metadata.deck.ranks, metadata.deck.suits)

    should_shuffle = shuffle
    if should_shuffle is None:
        should_shuffle = metadata.setup.shuffle
    if should_shuffle is None:
        should_shuffle = True
    if should_shuffle:
        shuffle_in_place(cards, rng)

    hand_size = max(metadata.setup.initial_hand_size, 0)
    player_states = []
    for idx, entry in enumerate(players):
        player_id, name = _player_entry(entry, idx)
        hand = cards[:hand_size]
        del cards[:hand_size]
        player_states.append(PlayerState(
            id=player_id,
            name=name,
            hand=hand,
            known=[False] * len(hand),
        ))

    return GameState(
        deck=cards,
        discard=[],
        players=player_states,
        turn=TurnState(phase_id=metadata.setup.initial_phase_id or DEFAULT_PHASE_ID),
        round=RoundState(number=1),
        match=MatchState(),
    )
