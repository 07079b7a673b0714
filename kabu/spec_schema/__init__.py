"""Rule document schema - game-agnostic DSL definitions."""

from .rule_document import RuleDocument, RuleDefinition, Metadata, DeckConfig, SetupConfig
from .effect_dsl import (
    Effect,
    EffectModel,
    EFFECT_MODELS,
    parse_effect,
    effect_op,
)

__all__ = [
    "RuleDocument",
    "RuleDefinition",
    "Metadata",
    "DeckConfig",
    "SetupConfig",
    "Effect",
    "EffectModel",
    "EFFECT_MODELS",
    "parse_effect",
    "effect_op",
]
