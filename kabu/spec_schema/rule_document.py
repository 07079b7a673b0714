"""
Rule Document - The externally authored description of a card game.

The document carries:
- metadata: deck composition, setup, card values, card-bound abilities
- actions: player-initiated, phase-gated effect sequences
- abilities: condition-gated effect sequences triggered by name

Only the shape execution needs is checked here. Unknown keys are kept.
"""

from __future__ import annotations
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RuleModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class DeckConfig(RuleModel):
    ranks: list[str] = Field(default_factory=list)
    suits: list[str] = Field(default_factory=list)


class SetupConfig(RuleModel):
    initial_hand_size: int = 4
    shuffle: bool | None = None  # unset means shuffle
    initial_phase_id: str | None = None  # unset means "main_turn"


class Metadata(RuleModel):
    deck: DeckConfig = Field(default_factory=DeckConfig)
    setup: SetupConfig = Field(default_factory=SetupConfig)
    card_values: dict[str, int | float] = Field(default_factory=dict)
    card_abilities: dict[str, str] = Field(default_factory=dict)
    kabu_win_score: int | float | None = None


class RuleDefinition(RuleModel):
    """
    An action or an ability.

    `allowed_phases` is None when the document declares no phase list.
    Effects stay raw until dispatch, see effect_dsl.parse_effect().
    """
    id: str | None = None
    allowed_phases: list[str] | None = None
    conditions: list[str] = Field(default_factory=list)
    effects: list[dict[str, Any]] = Field(default_factory=list)


class RuleDocument(RuleModel):
    metadata: Metadata = Field(default_factory=Metadata)
    actions: dict[str, RuleDefinition] = Field(default_factory=dict)
    abilities: dict[str, RuleDefinition] = Field(default_factory=dict)

    def get_action(self, action_id: str) -> RuleDefinition | None:
        return self.actions.get(action_id)

    def get_ability(self, ability_id: str) -> RuleDefinition | None:
        return self.abilities.get(ability_id)

    def ability_for_card(self, card_code: str | None) -> str | None:
        """Ability id bound to a card code, if any."""
        if card_code is None:
            return None
        return self.metadata.card_abilities.get(card_code)
