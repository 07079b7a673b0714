"""
Effect DSL - The fixed vocabulary of state-mutating operations.

Each operation is one variant of a tagged union discriminated on `op`.
Rule documents are authored in camelCase ("handIndexParam"); the
models also accept the snake_case field names.

Nested effect lists (the branches of `if`) stay as raw mappings and are
parsed only when the branch runs, so an unknown op inside a branch that
never executes does not fail the enclosing effect.
"""

from __future__ import annotations
from typing import Annotated, Any, Literal, Mapping, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from ..errors import MalformedEffectError, UnsupportedOperationError


class EffectModel(BaseModel):
    """Base for every effect variant."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        frozen=True,
    )


class MoveCardEffect(EffectModel):
    """Move `count` cards from the top of one pile onto another."""
    op: Literal["moveCard"] = "moveCard"
    from_: str = Field(alias="from")
    to: str
    count: int = 1
    param: str | None = None


class MoveCardByIndexEffect(EffectModel):
    """Move one card taken at the index held by the `param` parameter."""
    op: Literal["moveCardByIndex"] = "moveCardByIndex"
    from_: str = Field(alias="from")
    to: str
    param: str


class SetFlagEffect(EffectModel):
    op: Literal["setFlag"] = "setFlag"
    target: str
    flag: str
    value: Any = None


class AdvanceTurnOrderEffect(EffectModel):
    op: Literal["advanceTurnOrder"] = "advanceTurnOrder"
    phase_id: str | None = None


class ResetTurnFlagsEffect(EffectModel):
    op: Literal["resetTurnFlags"] = "resetTurnFlags"


class SetPhaseEffect(EffectModel):
    op: Literal["setPhase"] = "setPhase"
    phase_id: str | None = None


class LogEffect(EffectModel):
    op: Literal["log"] = "log"
    template: str = ""


class RevealAllHandsEffect(EffectModel):
    op: Literal["revealAllHands"] = "revealAllHands"


class ScoreRoundEffect(EffectModel):
    op: Literal["scoreRound"] = "scoreRound"


class IfEffect(EffectModel):
    op: Literal["if"] = "if"
    condition: str | None = None
    then: list[dict[str, Any]] = Field(default_factory=list)
    else_: list[dict[str, Any]] = Field(default_factory=list, alias="else")


class RunAbilityForCardEffect(EffectModel):
    op: Literal["runAbilityForCard"] = "runAbilityForCard"
    hand_index_param: str | None = None


class SwapCardsEffect(EffectModel):
    op: Literal["swapCards"] = "swapCards"
    from_player: str = "currentPlayer"
    to_player: str = "nextPlayer"
    from_index_param: str | None = None
    to_index_param: str | None = None
    reveal: bool = False


class SwapCardsWithPeekEffect(EffectModel):
    op: Literal["swapCardsWithPeek"] = "swapCardsWithPeek"
    from_player: str = "currentPlayer"
    to_player: str = "nextPlayer"
    my_index_param: str | None = None
    opponent_index_param: str | None = None


class RevealCardEffect(EffectModel):
    op: Literal["revealCard"] = "revealCard"
    target: str = "currentPlayer"
    hand_index_param: str | None = None


_EFFECT_VARIANTS = Union[
    MoveCardEffect,
    MoveCardByIndexEffect,
    SetFlagEffect,
    AdvanceTurnOrderEffect,
    ResetTurnFlagsEffect,
    SetPhaseEffect,
    LogEffect,
    RevealAllHandsEffect,
    ScoreRoundEffect,
    IfEffect,
    RunAbilityForCardEffect,
    SwapCardsEffect,
    SwapCardsWithPeekEffect,
    RevealCardEffect,
]

Effect = Annotated[_EFFECT_VARIANTS, Field(discriminator="op")]

EFFECT_MODELS: dict[str, type[EffectModel]] = {
    get_args(model.model_fields["op"].annotation)[0]: model
    for model in get_args(_EFFECT_VARIANTS)
}

_effect_adapter: TypeAdapter = TypeAdapter(Effect)


def effect_op(raw: Mapping[str, Any] | EffectModel) -> Any:
    """Operation name of a raw effect; `type` is accepted in place of `op`."""
    if isinstance(raw, EffectModel):
        return raw.op
    return raw.get("op") or raw.get("type")


def parse_effect(raw: Mapping[str, Any] | EffectModel) -> EffectModel:
    """
    Turn a raw effect mapping into its typed variant.

    Raises UnsupportedOperationError for ops outside the vocabulary and
    MalformedEffectError when a known op lacks a field it needs.
    """
    if isinstance(raw, EffectModel):
        return raw

    op = effect_op(raw)
    if not isinstance(op, str) or op not in EFFECT_MODELS:
        raise UnsupportedOperationError(op)

    data = {key: value for key, value in raw.items() if key != "type"}
    data["op"] = op
    try:
        return _effect_adapter.validate_python(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'][1:]) or op}: {err['msg']}"
            for err in e.errors()
        )
        raise MalformedEffectError(op, problems) from e
