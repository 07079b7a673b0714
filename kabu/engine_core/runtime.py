"""
Rule Runtime - The public face of the interpreter.

A runtime is built once per rule document and then driven by the host:

    runtime = RuleRuntime(rules, seed="match-42", logger=print)
    state = runtime.init_state([{"id": 1, "name": "Ana"}, {"id": 2, "name": "Luis"}])
    runtime.get_available_actions(state, 1)
    result = runtime.execute_action(state, 1, "draw")

The runtime holds no game state. Everything it keeps (rules, random
source, log sink, handler registry) is fixed at construction. Calls
against the same GameState must be serialized by the host.
"""

from __future__ import annotations
from typing import Any, Callable, Mapping, Sequence
import logging

from ..spec_schema import RuleDefinition, RuleDocument
from .action import ExecutionResult
from .action_generator import ActionGenerator
from .effect_resolver import EffectContext, EffectResolver
from .expression import ExpressionEvaluator, build_condition_scope
from .reducer import Reducer
from .rng import RandomSource, create_rng, shuffle_in_place
from .setup import build_deck, create_initial_state
from .state import GameState, hand_score


logger = logging.getLogger(__name__)

LogSink = Callable[[str], Any]


def _discard_log(text: str) -> None:
    pass


class RuleRuntime:
    """
    Interprets a rule document against caller-owned game state.

    Args:
        rules: RuleDocument or a mapping in the authored JSON shape
        rng: Zero-argument random source; wins over `seed`
        seed: String or number for the deterministic generator
        logger: Receives the rendered text of every `log` effect
        strict_player_lookup: Raise PlayerNotFoundError for unknown
            player ids instead of falling back to the first player
    """

    def __init__(
        self,
        rules: RuleDocument | Mapping[str, Any] | None = None,
        rng: RandomSource | None = None,
        seed: str | int | float | None = None,
        logger: LogSink | None = None,
        strict_player_lookup: bool = False,
    ):
        if isinstance(rules, RuleDocument):
            self.rules = rules
        else:
            self.rules = RuleDocument.model_validate(rules or {})
        self.rng = create_rng(rng, seed)
        self.log_sink: LogSink = logger or _discard_log
        self.strict_player_lookup = strict_player_lookup

        # Authored (camelCase) view of metadata for condition scopes
        self.metadata: dict[str, Any] = self.rules.metadata.model_dump(by_alias=True)

        self.evaluator = ExpressionEvaluator()
        self.action_generator = ActionGenerator(self)
        self.effect_resolver = EffectResolver(self)
        self.reducer = Reducer(self)

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def init_state(
        self,
        players: Sequence[Mapping[str, Any] | str],
        deck: Sequence[str] | None = None,
        shuffle: bool | None = None,
    ) -> GameState:
        """Create the state for a new match: build, shuffle and deal."""
        state = create_initial_state(self.rules.metadata, players, self.rng, deck=deck, shuffle=shuffle)
        logger.info(
            "Initialized match with %d player(s), %d card(s) left in deck",
            len(state.players),
            len(state.deck),
        )
        return state

    def build_deck(self) -> list[str]:
        """The configured deck in unshuffled order."""
        return build_deck(self.rules.metadata.deck.ranks, self.rules.metadata.deck.suits)

    def shuffle(self, cards: list[str]) -> None:
        shuffle_in_place(cards, self.rng)

    # ------------------------------------------------------------------
    # Gating
    # ------------------------------------------------------------------

    def get_available_actions(self, state: GameState, player_id: Any) -> list[str]:
        return self.action_generator.available_actions(state, player_id)

    def is_action_allowed(self, state: GameState, player_id: Any, action: str | RuleDefinition) -> bool:
        return self.action_generator.is_action_allowed(state, player_id, action)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute_action(
        self,
        state: GameState,
        player_id: Any,
        action_id: str,
        params: Mapping[str, Any] | None = None,
    ) -> ExecutionResult:
        return self.reducer.execute_action(state, player_id, action_id, params)

    def execute_ability(
        self,
        state: GameState,
        player_id: Any,
        ability_id: str,
        params: Mapping[str, Any] | None = None,
    ) -> ExecutionResult:
        return self.reducer.execute_ability(state, player_id, ability_id, params)

    def apply_effect(self, effect: Mapping[str, Any], ctx: EffectContext) -> None:
        """Apply a single effect outside any action (tools and tests)."""
        self.effect_resolver.apply(effect, ctx)

    # ------------------------------------------------------------------
    # Conditions
    # ------------------------------------------------------------------

    def evaluate_condition(
        self,
        expression: str | None,
        state: GameState,
        player_id: Any,
        params: Mapping[str, Any] | None = None,
        ability_context: Mapping[str, Any] | None = None,
    ) -> bool:
        if expression is None or not str(expression).strip():
            return True
        scope = build_condition_scope(state, player_id, self.metadata, params, ability_context)
        return self.evaluator.evaluate_condition(expression, scope)

    def hand_score(self, hand: Sequence[str]) -> int | float:
        return hand_score(hand, self.rules.metadata.card_values)
