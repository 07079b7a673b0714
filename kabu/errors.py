"""
Errors raised by the rules interpreter.

Every failure aborts the call in progress. Effects applied before the
failure stay applied; hosts that need atomicity clone the state first.
"""

from __future__ import annotations
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Structured error codes."""
    NOT_FOUND = "NOT_FOUND"
    PHASE_NOT_ALLOWED = "PHASE_NOT_ALLOWED"
    ACTION_NOT_ALLOWED = "ACTION_NOT_ALLOWED"
    CONDITION_NOT_SATISFIED = "CONDITION_NOT_SATISFIED"
    UNSUPPORTED_OPERATION = "UNSUPPORTED_OPERATION"
    UNSUPPORTED_REFERENCE = "UNSUPPORTED_REFERENCE"
    UNSUPPORTED_TARGET = "UNSUPPORTED_TARGET"
    MISSING_PARAMETER = "MISSING_PARAMETER"
    INVALID_INDEX = "INVALID_INDEX"
    INVALID_EXPRESSION = "INVALID_EXPRESSION"
    MALFORMED_EFFECT = "MALFORMED_EFFECT"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    INVALID_SCORE = "INVALID_SCORE"


class RuleError(Exception):
    """
    Base class for interpreter failures.

    `rule_id` names the action or ability that was running, `op` the
    effect operation, when known. The executor fills in `rule_id` for
    errors raised deep inside an effect list.
    """
    code: ErrorCode = ErrorCode.NOT_FOUND

    def __init__(self, message: str, *, rule_id: str | None = None, op: str | None = None):
        self.message = message
        self.rule_id = rule_id
        self.op = op
        super().__init__(message)

    def __str__(self) -> str:
        context = []
        if self.rule_id:
            context.append(f"rule={self.rule_id}")
        if self.op:
            context.append(f"op={self.op}")
        if context:
            return f"{self.message} ({', '.join(context)})"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "ruleId": self.rule_id,
            "op": self.op,
        }


class RuleNotFoundError(RuleError):
    """An action or ability id is absent from the rule document."""
    code = ErrorCode.NOT_FOUND

    def __init__(self, kind: str, rule_id: str):
        self.kind = kind
        super().__init__(f"{kind.capitalize()} not found: {rule_id}", rule_id=rule_id)


class PhaseNotAllowedError(RuleError):
    code = ErrorCode.PHASE_NOT_ALLOWED

    def __init__(self, kind: str, rule_id: str, phase_id: str | None):
        self.kind = kind
        self.phase_id = phase_id
        super().__init__(
            f"{kind.capitalize()} '{rule_id}' is not allowed in phase {phase_id}",
            rule_id=rule_id,
        )


class ActionNotAllowedError(RuleError):
    code = ErrorCode.ACTION_NOT_ALLOWED

    def __init__(self, action_id: str, expression: str):
        self.expression = expression
        super().__init__(
            f"Action '{action_id}' is not allowed: condition failed: {expression}",
            rule_id=action_id,
        )


class ConditionNotSatisfiedError(RuleError):
    code = ErrorCode.CONDITION_NOT_SATISFIED

    def __init__(self, ability_id: str, expression: str):
        self.expression = expression
        super().__init__(
            f"Condition not satisfied for ability '{ability_id}': {expression}",
            rule_id=ability_id,
        )


class UnsupportedOperationError(RuleError):
    code = ErrorCode.UNSUPPORTED_OPERATION

    def __init__(self, op: Any):
        super().__init__(f"Unsupported operation: {op}", op=str(op))


class UnsupportedReferenceError(RuleError):
    code = ErrorCode.UNSUPPORTED_REFERENCE

    def __init__(self, ref: Any, op: str | None = None):
        self.ref = ref
        super().__init__(f"Unsupported pile reference: {ref}", op=op)


class UnsupportedTargetError(RuleError):
    code = ErrorCode.UNSUPPORTED_TARGET

    def __init__(self, ref: Any, op: str | None = None):
        self.ref = ref
        super().__init__(f"Unsupported target: {ref}", op=op)


class MissingParameterError(RuleError):
    code = ErrorCode.MISSING_PARAMETER

    def __init__(self, op: str, param: str | None):
        self.param = param
        super().__init__(f"Missing required parameter '{param}'", op=op)


class InvalidIndexError(RuleError):
    code = ErrorCode.INVALID_INDEX

    def __init__(self, op: str, index: Any, size: int):
        self.index = index
        self.size = size
        super().__init__(f"Invalid hand index {index!r} for hand of {size} card(s)", op=op)


class ExpressionError(RuleError):
    """A condition expression could not be parsed or evaluated."""
    code = ErrorCode.INVALID_EXPRESSION

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"Invalid expression {expression!r}: {reason}")


class MalformedEffectError(RuleError):
    code = ErrorCode.MALFORMED_EFFECT

    def __init__(self, op: str, details: str):
        self.details = details
        super().__init__(f"Malformed effect: {details}", op=op)


class PlayerNotFoundError(RuleError):
    code = ErrorCode.PLAYER_NOT_FOUND

    def __init__(self, player_id: Any):
        self.player_id = player_id
        super().__init__(f"Player not found: {player_id}")


class InvalidScoreError(RuleError):
    """A player's running score is not a number (e.g. overwritten by setFlag)."""
    code = ErrorCode.INVALID_SCORE

    def __init__(self, player_id: Any, score: Any):
        self.player_id = player_id
        self.score = score
        super().__init__(f"Player {player_id} has a non-numeric score: {score!r}")
