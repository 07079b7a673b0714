"""
Engine Core - The rules interpreter.

The engine is the runtime that:
1. Loads a RuleDocument
2. Creates and mutates a caller-owned GameState
3. Gates actions and abilities by phase and condition
4. Applies effects through a fixed operation vocabulary
"""

from .state import GameState, PlayerState, TurnState, RoundState, MatchState
from .action import ExecutionResult, EventType
from .effect_resolver import EffectResolver, EffectContext
from .action_generator import ActionGenerator
from .reducer import Reducer
from .runtime import RuleRuntime
from .rng import SeededRandom, create_rng

__all__ = [
    "GameState",
    "PlayerState",
    "TurnState",
    "RoundState",
    "MatchState",
    "ExecutionResult",
    "EventType",
    "EffectResolver",
    "EffectContext",
    "ActionGenerator",
    "Reducer",
    "RuleRuntime",
    "SeededRandom",
    "create_rng",
]
