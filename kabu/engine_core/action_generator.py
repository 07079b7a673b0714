"""
Action Generator - Phase and condition gating for actions and abilities.

Used by:
1. Hosts/UI to list the actions a player may take right now
2. The reducer, before running any effect list

Gating never mutates state.
"""

from __future__ import annotations
from typing import Any, Mapping, TYPE_CHECKING
import logging

from ..errors import (
    ActionNotAllowedError,
    ConditionNotSatisfiedError,
    PhaseNotAllowedError,
    RuleNotFoundError,
)

if TYPE_CHECKING:
    from ..spec_schema import RuleDefinition
    from .runtime import RuleRuntime
    from .state import GameState


logger = logging.getLogger(__name__)


class ActionGenerator:
    """
    Decides which actions and abilities may run.

    Actions: an absent `allowedPhases` disables the phase gate, a declared
    list (even an empty one) must contain the current phase.
    Abilities: an absent or empty list allows every phase.
    """

    def __init__(self, runtime: RuleRuntime):
        self.runtime = runtime

    def _failing_condition(
        self,
        rule: RuleDefinition,
        state: GameState,
        player_id: Any,
        ability_context: Mapping[str, Any] | None = None,
    ) -> str | None:
        """Return the first condition that does not hold, or None."""
        for expr in rule.conditions:
            if not self.runtime.evaluate_condition(expr, state, player_id, ability_context=ability_context):
                return expr
        return None

    def action_phase_allowed(self, action: RuleDefinition, phase_id: str | None) -> bool:
        return action.allowed_phases is None or phase_id in action.allowed_phases

    def ability_phase_allowed(self, ability: RuleDefinition, phase_id: str | None) -> bool:
        return not ability.allowed_phases or phase_id in ability.allowed_phases

    def is_action_allowed(self, state: GameState, player_id: Any, action: str | RuleDefinition) -> bool:
        """
        Check phase and conditions of an action (by id or definition).

        An id missing from the rule document is a caller error, not a
        closed gate: it raises RuleNotFoundError instead of returning False.
        """
        if isinstance(action, str):
            action = self.get_action(action)
        if not self.action_phase_allowed(action, state.turn.phase_id):
            return False
        return self._failing_condition(action, state, player_id) is None

    def available_actions(self, state: GameState, player_id: Any) -> list[str]:
        """Ids of every action whose phase and conditions pass for this player."""
        available = [
            action_id
            for action_id, action in self.runtime.rules.actions.items()
            if self.is_action_allowed(state, player_id, action)
        ]
        logger.debug("Available actions for player %s: %s", player_id, available)
        return available

    def get_action(self, action_id: str) -> RuleDefinition:
        action = self.runtime.rules.get_action(action_id)
        if action is None:
            raise RuleNotFoundError("action", action_id)
        return action

    def get_ability(self, ability_id: str) -> RuleDefinition:
        ability = self.runtime.rules.get_ability(ability_id)
        if ability is None:
            raise RuleNotFoundError("ability", ability_id)
        return ability

    def check_action(self, state: GameState, player_id: Any, action_id: str) -> RuleDefinition:
        """Return the action if it may run now, otherwise raise."""
        action = self.get_action(action_id)
        if not self.action_phase_allowed(action, state.turn.phase_id):
            raise PhaseNotAllowedError("action", action_id, state.turn.phase_id)
        failed = self._failing_condition(action, state, player_id)
        if failed is not None:
            raise ActionNotAllowedError(action_id, failed)
        return action

    def check_ability(
        self,
        state: GameState,
        player_id: Any,
        ability_id: str,
        params: Mapping[str, Any] | None = None,
    ) -> RuleDefinition:
        """Return the ability if it may run now, otherwise raise."""
        ability = self.get_ability(ability_id)
        if not self.ability_phase_allowed(ability, state.turn.phase_id):
            raise PhaseNotAllowedError("ability", ability_id, state.turn.phase_id)
        for expr in ability.conditions:
            if not self.runtime.evaluate_condition(expr, state, player_id, ability_context=params):
                raise ConditionNotSatisfiedError(ability_id, expr)
        return ability
