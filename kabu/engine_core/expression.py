"""
Restricted Expression Evaluator for rule conditions.

Conditions in rule documents are short boolean/arithmetic expressions
written against a fixed, read-only scope:

    turn.hasDrawn == false && currentPlayer.hand.length > 0
    handScore(currentPlayer.hand) <= metadata.kabuWinScore
    not turn.hasUsedAbility and params.handIndex != null

Expressions are tokenized, parsed into a small AST and walked by an
interpreter that only knows the documented grammar:
- Literals: numbers, quoted strings, true/false/null/undefined
- Names bound in the scope, member access (a.b), indexing (a[i])
- Comparisons: == != === !== < <= > >=
- Boolean: && || ! and the keywords and/or/not
- Arithmetic: + - * / % and unary minus
- Calls to scope functions only (handScore)

Nothing outside the scope is reachable: member access reads declared
record fields, mapping keys and `length`, never Python attributes.
"""

from __future__ import annotations
from dataclasses import dataclass, field, is_dataclass
from functools import lru_cache
from typing import Any, Callable, Hashable, Mapping, TYPE_CHECKING
import math
import re

from ..errors import ExpressionError
from .state import hand_score, read_field

if TYPE_CHECKING:
    from .state import GameState


# ============================================================================
# Tokenizer
# ============================================================================

_TOKEN_RE = re.compile(
    r"""
    (?P<number>\d+(?:\.\d+)?)
    |(?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
    |(?P<name>[A-Za-z_$][A-Za-z0-9_$]*)
    |(?P<op>===|!==|==|!=|<=|>=|&&|\|\||[<>!+\-*/%().,\[\]])
    """,
    re.VERBOSE,
)

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r"}

_CONSTANTS = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
    "True": True,
    "False": False,
    "None": None,
}

# Spellings folded onto one operator
_OPERATOR_ALIASES = {
    "===": "==",
    "!==": "!=",
    "&&": "and",
    "||": "or",
}

_KEYWORDS = {"and", "or", "not"}


@dataclass(frozen=True)
class Token:
    kind: str  # "number", "string", "name", "op", "const", "end"
    value: Any
    pos: int


class _SyntaxFailure(Exception):
    pass


def _unescape(body: str) -> str:
    return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), m.group(1)), body)


def tokenize(text: str) -> list[Token]:
    tokens: list[Token] = []
    pos = 0
    while pos < len(text):
        if text[pos].isspace():
            pos += 1
            continue
        match = _TOKEN_RE.match(text, pos)
        if not match:
            raise _SyntaxFailure(f"unexpected character {text[pos]!r} at position {pos}")

        kind = match.lastgroup
        raw = match.group(kind)
        if kind == "number":
            value: Any = float(raw) if "." in raw else int(raw)
            tokens.append(Token("number", value, pos))
        elif kind == "string":
            tokens.append(Token("string", _unescape(raw[1:-1]), pos))
        elif kind == "name" and raw in _CONSTANTS:
            tokens.append(Token("const", _CONSTANTS[raw], pos))
        elif kind == "name" and raw in _KEYWORDS:
            tokens.append(Token("op", raw, pos))
        elif kind == "op":
            tokens.append(Token("op", _OPERATOR_ALIASES.get(raw, raw), pos))
        else:
            tokens.append(Token(kind, raw, pos))
        pos = match.end()

    tokens.append(Token("end", None, len(text)))
    return tokens


# ============================================================================
# AST
# ============================================================================

@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Name:
    name: str


@dataclass(frozen=True)
class Member:
    target: Any
    name: str


@dataclass(frozen=True)
class Index:
    target: Any
    index: Any


@dataclass(frozen=True)
class Call:
    function: str
    args: tuple


@dataclass(frozen=True)
class Unary:
    op: str  # "!", "not", "-", "+"
    operand: Any


@dataclass(frozen=True)
class Binary:
    op: str
    left: Any
    right: Any


@dataclass(frozen=True)
class Logical:
    op: str  # "and", "or"
    left: Any
    right: Any


# ============================================================================
# Parser
# ============================================================================

class _Parser:
    """
    Recursive-descent parser, lowest precedence first:

        or -> and -> not -> equality -> relational -> additive
           -> multiplicative -> unary -> postfix -> primary

    The `not` keyword binds looser than comparisons (Python reading),
    `!` binds tighter (JavaScript reading).
    """

    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.pos = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def _accept(self, *ops: str) -> str | None:
        tok = self.current
        if tok.kind == "op" and tok.value in ops:
            self.pos += 1
            return tok.value
        return None

    def _expect(self, op: str) -> None:
        if not self._accept(op):
            raise _SyntaxFailure(f"expected {op!r} at position {self.current.pos}")

    def parse(self) -> Any:
        node = self._or()
        if self.current.kind != "end":
            raise _SyntaxFailure(f"unexpected {self.current.value!r} at position {self.current.pos}")
        return node

    def _or(self) -> Any:
        node = self._and()
        while self._accept("or"):
            node = Logical("or", node, self._and())
        return node

    def _and(self) -> Any:
        node = self._not()
        while self._accept("and"):
            node = Logical("and", node, self._not())
        return node

    def _not(self) -> Any:
        if self._accept("not"):
            return Unary("not", self._not())
        return self._equality()

    def _equality(self) -> Any:
        node = self._relational()
        while True:
            op = self._accept("==", "!=")
            if not op:
                return node
            node = Binary(op, node, self._relational())

    def _relational(self) -> Any:
        node = self._additive()
        while True:
            op = self._accept("<", "<=", ">", ">=")
            if not op:
                return node
            node = Binary(op, node, self._additive())

    def _additive(self) -> Any:
        node = self._multiplicative()
        while True:
            op = self._accept("+", "-")
            if not op:
                return node
            node = Binary(op, node, self._multiplicative())

    def _multiplicative(self) -> Any:
        node = self._unary()
        while True:
            op = self._accept("*", "/", "%")
            if not op:
                return node
            node = Binary(op, node, self._unary())

    def _unary(self) -> Any:
        op = self._accept("!", "-", "+")
        if op:
            return Unary(op, self._unary())
        return self._postfix()

    def _postfix(self) -> Any:
        node = self._primary()
        while True:
            if self._accept("."):
                tok = self.current
                if tok.kind != "name":
                    raise _SyntaxFailure(f"expected a field name at position {tok.pos}")
                self.pos += 1
                node = Member(node, tok.value)
            elif self._accept("["):
                index = self._or()
                self._expect("]")
                node = Index(node, index)
            elif self._accept("("):
                if not isinstance(node, Name):
                    raise _SyntaxFailure("only scope functions can be called")
                args = []
                if not self._accept(")"):
                    args.append(self._or())
                    while self._accept(","):
                        args.append(self._or())
                    self._expect(")")
                node = Call(node.name, tuple(args))
            else:
                return node

    def _primary(self) -> Any:
        tok = self.current
        if tok.kind in ("number", "string", "const"):
            self.pos += 1
            return Literal(tok.value)
        if tok.kind == "name":
            self.pos += 1
            return Name(tok.value)
        if self._accept("("):
            node = self._or()
            self._expect(")")
            return node
        if tok.kind == "end":
            raise _SyntaxFailure("unexpected end of expression")
        raise _SyntaxFailure(f"unexpected {tok.value!r} at position {tok.pos}")


@lru_cache(maxsize=512)
def parse_expression(text: str) -> Any:
    """Parse an expression into an immutable AST. Raises ExpressionError."""
    try:
        return _Parser(tokenize(text)).parse()
    except _SyntaxFailure as e:
        raise ExpressionError(text, str(e)) from None
    except RecursionError:
        raise ExpressionError(text, "expression is nested too deeply") from None


# ============================================================================
# Evaluation
# ============================================================================

@dataclass
class ExpressionContext:
    """
    Read-only scope for evaluating expressions.

    `variables` are the names an expression may read, `functions` the
    only callables it may invoke.
    """
    variables: Mapping[str, Any]
    functions: Mapping[str, Callable[..., Any]] = field(default_factory=dict)


class _EvalFailure(Exception):
    pass


def is_truthy(value: Any) -> bool:
    """Truthiness as rule authors expect it: empty lists are still true."""
    if value is None or value is False:
        return False
    if value is True:
        return True
    if isinstance(value, (int, float)):
        return value != 0 and not math.isnan(value)
    if isinstance(value, str):
        return value != ""
    return True


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _equals(left: Any, right: Any) -> bool:
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def _get_member(target: Any, name: str) -> Any:
    if target is None:
        return None
    if isinstance(target, Mapping):
        return target.get(name)
    if isinstance(target, (list, tuple, str)):
        return len(target) if name == "length" else None
    if is_dataclass(target) and not isinstance(target, type):
        return read_field(target, name)
    return None


def _get_index(target: Any, index: Any) -> Any:
    if target is None:
        return None
    if isinstance(target, (list, tuple, str)):
        if index == "length":
            return len(target)
        if isinstance(index, float) and index.is_integer():
            index = int(index)
        if not isinstance(index, int) or isinstance(index, bool):
            return None
        if 0 <= index < len(target):
            return target[index]
        return None
    if isinstance(target, Mapping):
        if not isinstance(index, Hashable):
            return None
        if index in target:
            return target[index]
        return target.get(str(index))
    if isinstance(index, str):
        return _get_member(target, index)
    return None


class ExpressionEvaluator:
    """
    Tree-walking interpreter over parsed expressions.

    Holds no state between calls; everything an expression can see comes
    from the ExpressionContext passed in.
    """

    def evaluate(self, expression: str, context: ExpressionContext) -> Any:
        node = parse_expression(expression)
        try:
            return self._eval(node, context)
        except _EvalFailure as e:
            raise ExpressionError(expression, str(e)) from None
        except RecursionError:
            raise ExpressionError(expression, "expression is nested too deeply") from None

    def evaluate_condition(self, expression: str | None, context: ExpressionContext) -> bool:
        """An absent or blank expression is an open gate."""
        if expression is None or not str(expression).strip():
            return True
        return is_truthy(self.evaluate(str(expression), context))

    def _eval(self, node: Any, context: ExpressionContext) -> Any:
        if isinstance(node, Literal):
            return node.value

        if isinstance(node, Name):
            if node.name in context.variables:
                return context.variables[node.name]
            if node.name in context.functions:
                raise _EvalFailure(f"function '{node.name}' must be called")
            raise _EvalFailure(f"unknown name '{node.name}'")

        if isinstance(node, Member):
            return _get_member(self._eval(node.target, context), node.name)

        if isinstance(node, Index):
            return _get_index(self._eval(node.target, context), self._eval(node.index, context))

        if isinstance(node, Logical):
            left = self._eval(node.left, context)
            if node.op == "and":
                return self._eval(node.right, context) if is_truthy(left) else left
            return left if is_truthy(left) else self._eval(node.right, context)

        if isinstance(node, Unary):
            value = self._eval(node.operand, context)
            if node.op in ("!", "not"):
                return not is_truthy(value)
            if not _is_number(value):
                raise _EvalFailure(f"unary {node.op} needs a number, got {value!r}")
            return -value if node.op == "-" else value

        if isinstance(node, Binary):
            return self._binary(node.op, self._eval(node.left, context), self._eval(node.right, context))

        if isinstance(node, Call):
            func = context.functions.get(node.function)
            if func is None:
                raise _EvalFailure(f"unknown function '{node.function}'")
            args = [self._eval(arg, context) for arg in node.args]
            try:
                return func(*args)
            except (TypeError, ValueError) as e:
                raise _EvalFailure(f"{node.function}() failed: {e}") from e

        raise _EvalFailure(f"unsupported node {type(node).__name__}")

    def _binary(self, op: str, left: Any, right: Any) -> Any:
        if op == "==":
            return _equals(left, right)
        if op == "!=":
            return not _equals(left, right)

        if op in ("<", "<=", ">", ">="):
            try:
                if op == "<":
                    return left < right
                if op == "<=":
                    return left <= right
                if op == ">":
                    return left > right
                return left >= right
            except TypeError:
                return False

        if op == "+" and isinstance(left, str) and isinstance(right, str):
            return left + right

        if not (_is_number(left) and _is_number(right)):
            raise _EvalFailure(f"operator {op} needs numbers, got {left!r} and {right!r}")

        if op == "+":
            return left + right
        if op == "-":
            return left - right
        if op == "*":
            return left * right
        if right == 0:
            raise _EvalFailure(f"division by zero in {op}")
        if op == "/":
            return left / right
        return left % right


def build_condition_scope(
    state: GameState,
    player_id: Any,
    metadata: Mapping[str, Any],
    params: Mapping[str, Any] | None = None,
    ability_context: Mapping[str, Any] | None = None,
) -> ExpressionContext:
    """
    Build the read-only scope a condition sees.

    `metadata` is the rule document's metadata in its authored
    (camelCase) shape.
    """
    card_values = metadata.get("cardValues") or {}
    current_player = state.current_player if state.players else None
    next_player = state.next_player if state.players else None

    variables = {
        "state": state,
        "metadata": metadata,
        "currentPlayer": current_player,
        "nextPlayer": next_player,
        "deck": {"size": len(state.deck)},
        "discard": {"size": len(state.discard)},
        "turn": state.turn,
        "params": dict(params or {}),
        "abilityContext": dict(ability_context or {}),
        "playerId": player_id,
    }
    functions = {
        "handScore": lambda hand: hand_score(hand or [], card_values),
    }
    return ExpressionContext(variables=variables, functions=functions)
