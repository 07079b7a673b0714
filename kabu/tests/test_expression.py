"""
Tests for the restricted condition language.

Covers parsing, JS-flavoured truthiness and equality, the scope a rule
condition sees, and rejection of anything outside the grammar.
"""

import pytest

from ..engine_core.expression import (
    ExpressionContext,
    ExpressionEvaluator,
    build_condition_scope,
    is_truthy,
    parse_expression,
    tokenize,
)
from ..engine_core.state import GameState, PlayerState, TurnState
from ..errors import ErrorCode, ExpressionError


@pytest.fixture
def evaluator() -> ExpressionEvaluator:
    return ExpressionEvaluator()


@pytest.fixture
def scope_state() -> GameState:
    return GameState(
        deck=["AS", "KS", "2S"],
        discard=["KH"],
        players=[
            PlayerState(id=1, name="Ana", hand=["AH", "2H"], known=[False, False]),
            PlayerState(id=2, name="Luis", hand=["KD"], known=[False]),
        ],
        turn=TurnState(has_drawn=True),
    )


@pytest.fixture
def scope(scope_state) -> ExpressionContext:
    metadata = {"cardValues": {"A": 1, "2": 2, "K": 10}, "kabuWinScore": 5}
    return build_condition_scope(scope_state, 1, metadata, params={"handIndex": 1})


def ctx(**variables) -> ExpressionContext:
    return ExpressionContext(variables=variables)


class TestTokenizer:
    def test_operator_aliases_fold(self):
        ops = [t.value for t in tokenize("a === b && c !== d || e") if t.kind == "op"]
        assert ops == ["==", "and", "!=", "or"]

    def test_constants(self):
        kinds = [(t.kind, t.value) for t in tokenize("true null undefined")[:-1]]
        assert kinds == [("const", True), ("const", None), ("const", None)]

    def test_string_escapes(self):
        token = tokenize(r"'it\'s'")[0]
        assert token.kind == "string"
        assert token.value == "it's"


class TestLiteralsAndArithmetic:
    """Tests for values and operators with no scope involved."""

    @pytest.mark.parametrize("expr, expected", [
        ("1 + 2 * 3", 7),
        ("(1 + 2) * 3", 9),
        ("10 / 4", 2.5),
        ("7 % 3", 1),
        ("-3 + 1", -2),
        ("'ab' + 'cd'", "abcd"),
        ("1.5 * 2", 3.0),
    ])
    def test_arithmetic(self, evaluator, expr, expected):
        assert evaluator.evaluate(expr, ctx()) == expected

    @pytest.mark.parametrize("expr, expected", [
        ("1 < 2", True),
        ("2 <= 2", True),
        ("3 > 4", False),
        ("'a' == 'a'", True),
        ("1 === 1", True),
        ("1 !== 2", True),
        ("0 == false", False),
        ("null == undefined", True),
        ("null < 1", False),
    ])
    def test_comparisons(self, evaluator, expr, expected):
        assert evaluator.evaluate(expr, ctx()) is expected

    def test_division_by_zero(self, evaluator):
        with pytest.raises(ExpressionError):
            evaluator.evaluate("1 / 0", ctx())

    def test_mixed_addition_rejected(self, evaluator):
        with pytest.raises(ExpressionError):
            evaluator.evaluate("'a' + 1", ctx())


class TestBooleanLogic:
    @pytest.mark.parametrize("expr, expected", [
        ("true && false", False),
        ("true || false", True),
        ("!false", True),
        ("not true", False),
        ("true and not false", True),
        ("not 1 == 2", True),
        ("!1 == false", True),
    ])
    def test_operators(self, evaluator, expr, expected):
        assert evaluator.evaluate_condition(expr, ctx()) is expected

    def test_short_circuit_skips_right_side(self, evaluator):
        """The right operand is never evaluated, so its unknown name is harmless."""
        assert evaluator.evaluate_condition("false && missing.thing", ctx()) is False
        assert evaluator.evaluate_condition("true || missing.thing", ctx()) is True

    @pytest.mark.parametrize("value, expected", [
        (None, False), (False, False), (0, False), (0.0, False), ("", False),
        (True, True), (1, True), ("x", True), ([], True), ({}, True),
    ])
    def test_truthiness(self, value, expected):
        assert is_truthy(value) is expected


class TestConditionScope:
    """Tests for the names a rule condition can read."""

    def test_turn_flags(self, evaluator, scope):
        assert evaluator.evaluate_condition("turn.hasDrawn", scope) is True
        assert evaluator.evaluate_condition("turn.hasDrawn == false", scope) is False

    def test_pile_sizes(self, evaluator, scope):
        assert evaluator.evaluate("deck.size", scope) == 3
        assert evaluator.evaluate("discard.size", scope) == 1

    def test_players(self, evaluator, scope):
        assert evaluator.evaluate("currentPlayer.name", scope) == "Ana"
        assert evaluator.evaluate("nextPlayer.hand[0]", scope) == "KD"
        assert evaluator.evaluate("currentPlayer.hand.length", scope) == 2

    def test_hand_score(self, evaluator, scope):
        assert evaluator.evaluate("handScore(currentPlayer.hand)", scope) == 3
        assert evaluator.evaluate_condition(
            "handScore(currentPlayer.hand) <= metadata.kabuWinScore", scope,
        ) is True
        assert evaluator.evaluate_condition(
            "handScore(nextPlayer.hand) <= metadata.kabuWinScore", scope,
        ) is False

    def test_params_and_player_id(self, evaluator, scope):
        assert evaluator.evaluate("params.handIndex", scope) == 1
        assert evaluator.evaluate("currentPlayer.hand[params.handIndex]", scope) == "2H"
        assert evaluator.evaluate("playerId", scope) == 1

    def test_missing_fields_read_as_null(self, evaluator, scope):
        assert evaluator.evaluate_condition("abilityContext.cardCode == null", scope) is True
        assert evaluator.evaluate("currentPlayer.hand[9]", scope) is None
        assert evaluator.evaluate("turn.notAFlag", scope) is None

    def test_state_path(self, evaluator, scope):
        assert evaluator.evaluate("state.players[1].name", scope) == "Luis"
        assert evaluator.evaluate("state.round.number", scope) == 1

    def test_python_attributes_are_unreachable(self, evaluator, scope):
        assert evaluator.evaluate("turn.__class__", scope) is None
        assert evaluator.evaluate("currentPlayer.extras", scope) is None
        assert evaluator.evaluate("state.clone", scope) is None

    def test_empty_condition_passes(self, evaluator, scope):
        assert evaluator.evaluate_condition("", scope) is True
        assert evaluator.evaluate_condition("   ", scope) is True
        assert evaluator.evaluate_condition(None, scope) is True

    def test_scope_without_players(self, evaluator):
        scope = build_condition_scope(GameState(), None, {})
        assert evaluator.evaluate("currentPlayer", scope) is None
        assert evaluator.evaluate("handScore(currentPlayer.hand)", scope) == 0


class TestRejection:
    """Tests for expressions outside the grammar."""

    @pytest.mark.parametrize("expr", [
        "1 +",
        "(1 + 2",
        "a.",
        "a.1",
        "turn.hasDrawn = true",
        "1 2",
        "a ; b",
        "x => x",
    ])
    def test_syntax_errors(self, expr):
        with pytest.raises(ExpressionError) as exc:
            parse_expression(expr)
        assert exc.value.code == ErrorCode.INVALID_EXPRESSION
        assert exc.value.expression == expr

    def test_unknown_name(self, evaluator):
        with pytest.raises(ExpressionError, match="unknown name"):
            evaluator.evaluate("os.system", ctx())

    def test_only_scope_functions_callable(self, evaluator, scope):
        with pytest.raises(ExpressionError):
            evaluator.evaluate("currentPlayer.hand.pop()", scope)
        with pytest.raises(ExpressionError):
            evaluator.evaluate("print(1)", scope)

    def test_function_needs_call(self, evaluator, scope):
        with pytest.raises(ExpressionError, match="must be called"):
            evaluator.evaluate("handScore", scope)

    def test_bad_function_arguments(self, evaluator, scope):
        with pytest.raises(ExpressionError):
            evaluator.evaluate("handScore(1, 2)", scope)

    def test_unhashable_mapping_key_reads_null(self, evaluator, scope):
        assert evaluator.evaluate("metadata.cardValues[currentPlayer.hand]", scope) is None
        assert evaluator.evaluate_condition("metadata.cardValues[currentPlayer.hand] == null", scope) is True

    def test_deep_nesting(self, evaluator):
        with pytest.raises(ExpressionError, match="nested too deeply"):
            parse_expression("(" * 2000 + "1" + ")" * 2000)

    def test_long_operator_chain(self, evaluator):
        with pytest.raises(ExpressionError, match="nested too deeply"):
            evaluator.evaluate(" + ".join(["1"] * 5000), ctx())
