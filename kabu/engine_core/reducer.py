"""
Reducer - Executes actions and abilities against the game state.

Per call:
1. Look up the action/ability (RuleNotFoundError if absent)
2. Check the phase gate
3. Check every declared condition
4. Run the effect list in declared order through the EffectResolver
5. Return the mutated state and the accumulated events

The reducer is stateless between calls. Failures propagate immediately,
stamped with the id of the action/ability that was running.
"""

from __future__ import annotations
from typing import Any, Iterable, Mapping, TYPE_CHECKING
import logging

from ..errors import RuleError
from .action import ExecutionResult
from .effect_resolver import EffectContext

if TYPE_CHECKING:
    from .runtime import RuleRuntime
    from .state import GameState


logger = logging.getLogger(__name__)


class Reducer:
    def __init__(self, runtime: RuleRuntime):
        self.runtime = runtime

    def execute_action(
        self,
        state: GameState,
        player_id: Any,
        action_id: str,
        params: Mapping[str, Any] | None = None,
    ) -> ExecutionResult:
        action = self.runtime.action_generator.check_action(state, player_id, action_id)
        ctx = EffectContext(
            state=state,
            player_id=player_id,
            params=dict(params or {}),
            rule_id=action_id,
        )
        logger.info("Player %s executes action %s", player_id, action_id)
        self._run(action.effects, ctx)
        return ExecutionResult(state=state, events=ctx.events)

    def execute_ability(
        self,
        state: GameState,
        player_id: Any,
        ability_id: str,
        params: Mapping[str, Any] | None = None,
    ) -> ExecutionResult:
        events = self.run_ability(state, player_id, ability_id, params)
        return ExecutionResult(state=state, events=events)

    def run_ability(
        self,
        state: GameState,
        player_id: Any,
        ability_id: str,
        params: Mapping[str, Any] | None = None,
        events: list[dict[str, Any]] | None = None,
    ) -> list[dict[str, Any]]:
        """
        Gate and run an ability, appending to `events` when given.

        Card-triggered abilities pass the enclosing call's event list so
        their events reach the caller in order.
        """
        params = dict(params or {})
        ability = self.runtime.action_generator.check_ability(state, player_id, ability_id, params)
        ctx = EffectContext(
            state=state,
            player_id=player_id,
            params=params,
            events=events if events is not None else [],
            ability_context=params,
            rule_id=ability_id,
        )
        logger.info("Player %s runs ability %s", player_id, ability_id)
        self._run(ability.effects, ctx)
        return ctx.events

    def _run(self, effects: Iterable[Mapping[str, Any]], ctx: EffectContext) -> None:
        try:
            self.runtime.effect_resolver.apply_all(effects, ctx)
        except RuleError as e:
            if e.rule_id is None:
                e.rule_id = ctx.rule_id
            raise
