"""
Property-based tests for the interpreter.

Uses Hypothesis to play random legal move sequences and verify:
1. Card conservation - no effect creates or destroys a card
2. Visibility parity - every hand has a `known` entry per card
3. Gating agreement - listed actions are exactly the allowed ones
4. Determinism - same seed and same moves give the same state
"""

import copy

from hypothesis import given, settings
from hypothesis import strategies as st

from ..engine_core.runtime import RuleRuntime
from ..errors import RuleError
from .conftest import KABU_RULES


def _rules() -> dict:
    rules = copy.deepcopy(KABU_RULES)
    rules["metadata"]["deck"]["ranks"] = ["A", "2", "3", "K"]
    rules["metadata"]["cardValues"] = {"A": 1, "2": 2, "3": 3, "K": 10}
    rules["metadata"]["setup"] = {"initialHandSize": 2}
    return rules


seeds = st.one_of(st.text(max_size=12), st.integers(min_value=0, max_value=2**31))
player_counts = st.integers(min_value=2, max_value=4)
moves = st.lists(st.tuples(st.integers(0, 10), st.integers(0, 5)), max_size=25)


def play(runtime, state, choices, on_step=None):
    """Play the chosen moves, skipping ones the rules reject."""
    for action_choice, index_choice in choices:
        player = state.current_player
        available = runtime.get_available_actions(state, player.id)
        if on_step is not None:
            on_step(state, player.id, available)
        if not available:
            break
        action_id = available[action_choice % len(available)]
        params = {"handIndex": index_choice % max(len(player.hand), 1)}
        try:
            runtime.execute_action(state, player.id, action_id, params)
        except RuleError:
            pass


class TestPlayoutInvariants:
    @settings(max_examples=50, deadline=None)
    @given(seed=seeds, num_players=player_counts, choices=moves)
    def test_cards_are_conserved(self, seed, num_players, choices):
        runtime = RuleRuntime(_rules(), seed=seed)
        state = runtime.init_state([f"P{i}" for i in range(num_players)])
        expected = sorted(runtime.build_deck())
        assert sorted(state.all_cards()) == expected

        play(runtime, state, choices)

        assert sorted(state.all_cards()) == expected

    @settings(max_examples=50, deadline=None)
    @given(seed=seeds, num_players=player_counts, choices=moves)
    def test_known_tracks_hand(self, seed, num_players, choices):
        runtime = RuleRuntime(_rules(), seed=seed)
        state = runtime.init_state([f"P{i}" for i in range(num_players)])

        def check(state, player_id, available):
            for p in state.players:
                assert len(p.known) == len(p.hand)

        play(runtime, state, choices, on_step=check)
        check(state, None, None)

    @settings(max_examples=30, deadline=None)
    @given(seed=seeds, num_players=player_counts, choices=moves)
    def test_listing_matches_single_checks(self, seed, num_players, choices):
        runtime = RuleRuntime(_rules(), seed=seed)
        state = runtime.init_state([f"P{i}" for i in range(num_players)])

        def check(state, player_id, available):
            allowed = [a for a in runtime.rules.actions if runtime.is_action_allowed(state, player_id, a)]
            assert available == allowed

        play(runtime, state, choices, on_step=check)

    @settings(max_examples=30, deadline=None)
    @given(seed=seeds, num_players=player_counts, choices=moves)
    def test_same_seed_same_match(self, seed, num_players, choices):
        names = [f"P{i}" for i in range(num_players)]
        first_runtime = RuleRuntime(_rules(), seed=seed)
        second_runtime = RuleRuntime(_rules(), seed=seed)
        first = first_runtime.init_state(names)
        second = second_runtime.init_state(names)

        play(first_runtime, first, choices)
        play(second_runtime, second, choices)

        assert first.to_dict() == second.to_dict()
