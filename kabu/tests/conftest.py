"""
Pytest fixtures for kabu tests.
"""

import copy

import pytest

from ..engine_core.effect_resolver import EffectContext
from ..engine_core.runtime import RuleRuntime
from ..engine_core.state import GameState


KABU_RULES = {
    "metadata": {
        "deck": {"ranks": ["A", "K"], "suits": ["H", "S"]},
        "setup": {"initialHandSize": 1, "shuffle": False},
        "cardValues": {"A": 1, "K": 10},
        "cardAbilities": {"KH": "peek", "KS": "swap_next"},
        "kabuWinScore": 5,
    },
    "actions": {
        "draw": {
            "id": "draw",
            "allowedPhases": ["main_turn"],
            "conditions": ["turn.hasDrawn == false", "deck.size > 0"],
            "effects": [
                {"op": "moveCard", "from": "deck", "to": "currentPlayer.hand"},
                {"op": "setFlag", "target": "turn", "flag": "hasDrawn", "value": True},
            ],
        },
        "burn": {
            "id": "burn",
            "allowedPhases": ["main_turn"],
            "effects": [
                {"op": "moveCardByIndex", "from": "currentPlayer.hand", "to": "discard", "param": "handIndex"},
                {"op": "setFlag", "target": "turn", "flag": "justBurned", "value": True},
            ],
        },
        "use_card": {
            "id": "use_card",
            "allowedPhases": ["main_turn"],
            "conditions": ["!turn.hasUsedAbility"],
            "effects": [
                {"op": "runAbilityForCard", "handIndexParam": "handIndex"},
                {"op": "setFlag", "target": "turn", "flag": "hasUsedAbility", "value": True},
            ],
        },
        "end_turn": {
            "id": "end_turn",
            "allowedPhases": ["main_turn"],
            "conditions": ["turn.hasDrawn"],
            "effects": [
                {"op": "log", "template": "{player} ends the turn"},
                {"op": "advanceTurnOrder"},
            ],
        },
        "call_kabu": {
            "id": "call_kabu",
            "allowedPhases": ["main_turn"],
            "conditions": ["handScore(currentPlayer.hand) <= metadata.kabuWinScore"],
            "effects": [
                {"op": "setFlag", "target": "currentPlayer", "flag": "declaredKabu", "value": True},
                {"op": "revealAllHands"},
                {"op": "scoreRound"},
            ],
        },
    },
    "abilities": {
        "peek": {
            "id": "peek",
            "allowedPhases": ["main_turn"],
            "effects": [
                {"op": "revealCard", "target": "currentPlayer", "handIndexParam": "handIndex"},
            ],
        },
        "swap_next": {
            "id": "swap_next",
            "conditions": ["abilityContext.cardCode != null"],
            "effects": [
                {"op": "swapCards", "fromIndexParam": "handIndex", "toIndexParam": "handIndex", "reveal": False},
            ],
        },
    },
}

PLAYERS = [{"id": 1, "name": "Ana"}, {"id": 2, "name": "Luis"}]

SCENARIO_DECK = ["AH", "KH", "AS", "KS"]


@pytest.fixture
def rules() -> dict:
    """A fresh copy of the test rule document."""
    return copy.deepcopy(KABU_RULES)


@pytest.fixture
def runtime(rules) -> RuleRuntime:
    return RuleRuntime(rules, seed="test")


@pytest.fixture
def state(runtime) -> GameState:
    """
    Two players dealt from an unshuffled scenario deck:
    Ana holds AH, Luis holds KH, deck is [AS, KS] (KS on top).
    """
    return runtime.init_state(PLAYERS, deck=SCENARIO_DECK, shuffle=False)


def apply_effect(runtime, state, effect, player_id=1, params=None, ability_context=None) -> EffectContext:
    """Apply a single effect and return the context it ran in."""
    ctx = EffectContext(
        state=state,
        player_id=player_id,
        params=dict(params or {}),
        ability_context=ability_context,
    )
    runtime.apply_effect(effect, ctx)
    return ctx
