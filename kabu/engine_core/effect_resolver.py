"""
Effect Resolver - Dispatches effects to the built-in operations.

Each effect is parsed into its typed variant (see spec_schema.effect_dsl)
and routed to the handler registered for that variant. Handlers mutate
the shared GameState in place and append events to the execution
context. Nested effects (`if` branches, card-triggered abilities) run
depth-first before control returns to the enclosing list.

There is no rollback: an error raised by a later effect leaves earlier
effects applied.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, TYPE_CHECKING
import json
import logging

from ..errors import (
    InvalidIndexError,
    InvalidScoreError,
    MissingParameterError,
    RuleError,
    UnsupportedOperationError,
)
from ..spec_schema.effect_dsl import (
    EFFECT_MODELS,
    AdvanceTurnOrderEffect,
    EffectModel,
    IfEffect,
    LogEffect,
    MoveCardByIndexEffect,
    MoveCardEffect,
    ResetTurnFlagsEffect,
    RevealAllHandsEffect,
    RevealCardEffect,
    RunAbilityForCardEffect,
    ScoreRoundEffect,
    SetFlagEffect,
    SetPhaseEffect,
    SwapCardsEffect,
    SwapCardsWithPeekEffect,
    effect_op,
    parse_effect,
)
from .action import EventType, make_event
from .resolvers import (
    CURRENT_PLAYER,
    as_index,
    ensure_known,
    is_valid_index,
    resolve_pile,
    resolve_player,
    resolve_target,
)
from .state import GAME_OVER_PHASE_ID, GameState, PlayerState, hand_score

if TYPE_CHECKING:
    from .runtime import RuleRuntime


logger = logging.getLogger(__name__)


@dataclass
class EffectContext:
    """
    Everything one execution threads through its effect list.

    The state is shared by reference; `events` accumulates across nested
    effects and card-triggered abilities.
    """
    state: GameState
    player_id: Any
    params: dict[str, Any] = field(default_factory=dict)
    events: list[dict[str, Any]] = field(default_factory=list)
    ability_context: dict[str, Any] | None = None
    rule_id: str | None = None

    def param(self, name: str | None) -> Any:
        if name is None:
            return None
        return self.params.get(name)


class EffectResolver:
    """
    Routes typed effects to their handlers.

    Stateless between calls; the runtime supplies rules, the log sink and
    condition evaluation.
    """

    def __init__(self, runtime: RuleRuntime):
        self.runtime = runtime
        self._handlers: dict[type[EffectModel], Callable[[Any, EffectContext], None]] = {
            MoveCardEffect: self._op_move_card,
            MoveCardByIndexEffect: self._op_move_card_by_index,
            SetFlagEffect: self._op_set_flag,
            AdvanceTurnOrderEffect: self._op_advance_turn_order,
            ResetTurnFlagsEffect: self._op_reset_turn_flags,
            SetPhaseEffect: self._op_set_phase,
            LogEffect: self._op_log,
            RevealAllHandsEffect: self._op_reveal_all_hands,
            ScoreRoundEffect: self._op_score_round,
            IfEffect: self._op_if,
            RunAbilityForCardEffect: self._op_run_ability_for_card,
            SwapCardsEffect: self._op_swap_cards,
            SwapCardsWithPeekEffect: self._op_swap_cards_with_peek,
            RevealCardEffect: self._op_reveal_card,
        }
        missing = set(EFFECT_MODELS.values()) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for effect types: {sorted(m.__name__ for m in missing)}")

    def apply(self, raw_effect: Mapping[str, Any] | EffectModel, ctx: EffectContext) -> None:
        """Apply one effect. Errors are tagged with the failing op."""
        op = effect_op(raw_effect)
        try:
            effect = parse_effect(raw_effect)
            handler = self._handlers.get(type(effect))
            if handler is None:
                raise UnsupportedOperationError(op)
            logger.debug("Applying %s for player %s", effect.op, ctx.player_id)
            handler(effect, ctx)
        except RuleError as e:
            if e.op is None and isinstance(op, str):
                e.op = op
            raise

    def apply_all(self, effects: Iterable[Mapping[str, Any] | EffectModel], ctx: EffectContext) -> None:
        for effect in effects:
            self.apply(effect, ctx)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _player(self, ctx: EffectContext, ref: Any) -> PlayerState:
        return resolve_player(ctx.state, ctx.player_id, ref, strict=self.runtime.strict_player_lookup)

    def _required_index(self, ctx: EffectContext, op: str, param_name: str | None) -> Any:
        value = ctx.param(param_name)
        if value is None:
            raise MissingParameterError(op, param_name)
        return as_index(value)

    # ------------------------------------------------------------------
    # Card movement
    # ------------------------------------------------------------------

    def _op_move_card(self, effect: MoveCardEffect, ctx: EffectContext) -> None:
        """Move `count` cards; an empty source makes the iteration a no-op."""
        source = resolve_pile(ctx.state, ctx.player_id, effect.from_, effect.param, ctx.params)
        target = resolve_pile(ctx.state, ctx.player_id, effect.to)
        for _ in range(effect.count):
            card = source.take()
            if card is not None:
                target.put(card)

    def _op_move_card_by_index(self, effect: MoveCardByIndexEffect, ctx: EffectContext) -> None:
        index = ctx.param(effect.param)
        if index is None:
            raise MissingParameterError(effect.op, effect.param)
        source = resolve_pile(ctx.state, ctx.player_id, effect.from_, forced_index=index)
        target = resolve_pile(ctx.state, ctx.player_id, effect.to)
        card = source.take()
        if card is not None:
            target.put(card)

    def _op_swap_cards(self, effect: SwapCardsEffect, ctx: EffectContext) -> None:
        from_player = self._player(ctx, effect.from_player)
        to_player = self._player(ctx, effect.to_player)
        from_idx = self._required_index(ctx, effect.op, effect.from_index_param)
        to_idx = self._required_index(ctx, effect.op, effect.to_index_param)
        if not is_valid_index(from_idx, len(from_player.hand)):
            raise InvalidIndexError(effect.op, from_idx, len(from_player.hand))
        if not is_valid_index(to_idx, len(to_player.hand)):
            raise InvalidIndexError(effect.op, to_idx, len(to_player.hand))

        from_card = from_player.hand[from_idx]
        to_card = to_player.hand[to_idx]
        from_player.hand[from_idx] = to_card
        to_player.hand[to_idx] = from_card

        ensure_known(from_player)[from_idx] = effect.reveal
        ensure_known(to_player)[to_idx] = effect.reveal

        if effect.reveal:
            ctx.events.append(make_event(
                EventType.CARD_REVEAL, playerId=from_player.id, cardIndex=from_idx, card=to_card,
            ))
            ctx.events.append(make_event(
                EventType.CARD_REVEAL, playerId=to_player.id, cardIndex=to_idx, card=from_card,
            ))

    def _op_swap_cards_with_peek(self, effect: SwapCardsWithPeekEffect, ctx: EffectContext) -> None:
        """Both cards are shown before the swap and stay known afterwards."""
        my_player = self._player(ctx, effect.from_player)
        opp_player = self._player(ctx, effect.to_player)
        my_idx = self._required_index(ctx, effect.op, effect.my_index_param)
        opp_idx = self._required_index(ctx, effect.op, effect.opponent_index_param)
        if not is_valid_index(my_idx, len(my_player.hand)):
            raise InvalidIndexError(effect.op, my_idx, len(my_player.hand))
        if not is_valid_index(opp_idx, len(opp_player.hand)):
            raise InvalidIndexError(effect.op, opp_idx, len(opp_player.hand))

        my_card = my_player.hand[my_idx]
        opp_card = opp_player.hand[opp_idx]
        ctx.events.append(make_event(
            EventType.CARD_REVEAL, playerId=my_player.id, cardIndex=my_idx, card=my_card,
        ))
        ctx.events.append(make_event(
            EventType.CARD_REVEAL, playerId=opp_player.id, cardIndex=opp_idx, card=opp_card,
        ))

        my_player.hand[my_idx] = opp_card
        opp_player.hand[opp_idx] = my_card
        ensure_known(my_player)[my_idx] = True
        ensure_known(opp_player)[opp_idx] = True

    # ------------------------------------------------------------------
    # Visibility
    # ------------------------------------------------------------------

    def _op_reveal_card(self, effect: RevealCardEffect, ctx: EffectContext) -> None:
        target = self._player(ctx, effect.target)
        idx = as_index(ctx.param(effect.hand_index_param))
        if not is_valid_index(idx, len(target.hand)):
            raise InvalidIndexError(effect.op, idx, len(target.hand))
        ensure_known(target)[idx] = True
        ctx.events.append(make_event(
            EventType.CARD_REVEAL, playerId=target.id, cardIndex=idx, card=target.hand[idx],
        ))

    def _op_reveal_all_hands(self, effect: RevealAllHandsEffect, ctx: EffectContext) -> None:
        for p in ctx.state.players:
            p.known = [True] * len(p.hand)
            ctx.events.append(make_event(EventType.HAND_REVEAL, playerId=p.id, hand=list(p.hand)))

    # ------------------------------------------------------------------
    # Turn bookkeeping
    # ------------------------------------------------------------------

    def _op_set_flag(self, effect: SetFlagEffect, ctx: EffectContext) -> None:
        target = resolve_target(
            ctx.state, ctx.player_id, effect.target, strict=self.runtime.strict_player_lookup,
        )
        target.set_field(effect.flag, effect.value)

    def _op_advance_turn_order(self, effect: AdvanceTurnOrderEffect, ctx: EffectContext) -> None:
        turn = ctx.state.turn
        if ctx.state.players:
            turn.current_player_index = (turn.current_player_index + 1) % len(ctx.state.players)
        if effect.phase_id:
            turn.phase_id = effect.phase_id
        turn.reset_flags()

    def _op_reset_turn_flags(self, effect: ResetTurnFlagsEffect, ctx: EffectContext) -> None:
        ctx.state.turn.reset_flags()

    def _op_set_phase(self, effect: SetPhaseEffect, ctx: EffectContext) -> None:
        ctx.state.turn.phase_id = effect.phase_id

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def _op_score_round(self, effect: ScoreRoundEffect, ctx: EffectContext) -> None:
        """
        Add each hand's value to the player's score, then check the win
        threshold: the first player (in seat order) at or below it wins.
        """
        metadata = self.runtime.rules.metadata
        state = ctx.state
        for p in state.players:
            if p.score is not None and (isinstance(p.score, bool) or not isinstance(p.score, (int, float))):
                raise InvalidScoreError(p.id, p.score)
        for p in state.players:
            score = hand_score(p.hand, metadata.card_values)
            p.score = (p.score or 0) + score
            ctx.events.append(make_event(
                EventType.ROUND_SCORE, playerId=p.id, score=score, round=state.round.number,
            ))

        logger.info(
            "Round %s scored: %s",
            state.round.number,
            ", ".join(f"{p.name}={p.score}" for p in state.players),
        )

        win_score = metadata.kabu_win_score
        if win_score is None:
            return
        winner = next((p for p in state.players if p.score <= win_score), None)
        if winner is not None:
            state.match.has_winner = True
            state.match.winner_id = winner.id
            state.turn.phase_id = GAME_OVER_PHASE_ID
            logger.info("Player %s wins with score %s", winner.id, winner.score)

    # ------------------------------------------------------------------
    # Control flow
    # ------------------------------------------------------------------

    def _op_if(self, effect: IfEffect, ctx: EffectContext) -> None:
        passed = self.runtime.evaluate_condition(
            effect.condition,
            ctx.state,
            ctx.player_id,
            params=ctx.params,
            ability_context=ctx.ability_context,
        )
        self.apply_all(effect.then if passed else effect.else_, ctx)

    def _op_run_ability_for_card(self, effect: RunAbilityForCardEffect, ctx: EffectContext) -> None:
        hand_index = as_index(ctx.param(effect.hand_index_param))
        player = resolve_player(ctx.state, ctx.player_id, CURRENT_PLAYER)
        card = player.hand[hand_index] if is_valid_index(hand_index, len(player.hand)) else None

        ability_id = self.runtime.rules.ability_for_card(card)
        if not ability_id:
            logger.debug("Card %s at index %s has no bound ability", card, hand_index)
            return

        logger.debug("Card %s triggers ability %s", card, ability_id)
        self.runtime.reducer.run_ability(
            ctx.state,
            ctx.player_id,
            ability_id,
            params={"handIndex": hand_index, "cardCode": card},
            events=ctx.events,
        )

    # ------------------------------------------------------------------
    # Audit log
    # ------------------------------------------------------------------

    def _op_log(self, effect: LogEffect, ctx: EffectContext) -> None:
        player = resolve_player(ctx.state, ctx.player_id, CURRENT_PLAYER) if ctx.state.players else None
        name = player.name if player is not None and player.name else f"Player {ctx.player_id}"
        rendered_params = json.dumps(ctx.params, separators=(",", ":"), ensure_ascii=False, default=str)
        text = effect.template.replace("{player}", name).replace("{param}", rendered_params)

        ctx.state.log.append(text)
        logger.info("%s", text)
        self.runtime.log_sink(text)
