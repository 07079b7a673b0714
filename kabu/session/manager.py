"""
Session Manager - Host-side helper around the interpreter.

The interpreter never locks and never rolls back. Hosts that let several
actors touch one match, or that need all-or-nothing moves, can hold the
match in a MatchSession:

- Calls on one session are serialized by a per-session lock
- atomic=True clones the state first and restores the clone when a
  RuleError escapes, so an illegal move leaves no trace

Sessions are in-memory only and are dropped when the match ends.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Sequence
import logging
import threading
import time
import uuid

from ..errors import RuleError
from ..engine_core.action import ExecutionResult
from ..engine_core.runtime import RuleRuntime
from ..engine_core.state import GameState
from ..spec_schema import RuleDocument


logger = logging.getLogger(__name__)


class SessionState(Enum):
    ACTIVE = "active"
    GAME_OVER = "game_over"
    ABANDONED = "abandoned"


@dataclass
class MatchSession:
    """
    One match: its runtime, its live state and the lock guarding both.
    """
    session_id: str
    runtime: RuleRuntime
    game_state: GameState
    created_at: float
    state: SessionState = SessionState.ACTIVE
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE

    def available_actions(self, player_id: Any) -> list[str]:
        with self._lock:
            return self.runtime.get_available_actions(self.game_state, player_id)

    def execute_action(
        self,
        player_id: Any,
        action_id: str,
        params: Mapping[str, Any] | None = None,
        atomic: bool = False,
    ) -> ExecutionResult:
        return self._execute(self.runtime.execute_action, player_id, action_id, params, atomic)

    def execute_ability(
        self,
        player_id: Any,
        ability_id: str,
        params: Mapping[str, Any] | None = None,
        atomic: bool = False,
    ) -> ExecutionResult:
        return self._execute(self.runtime.execute_ability, player_id, ability_id, params, atomic)

    def _execute(self, call, player_id: Any, rule_id: str, params, atomic: bool) -> ExecutionResult:
        with self._lock:
            snapshot = self.game_state.clone() if atomic else None
            try:
                result = call(self.game_state, player_id, rule_id, params)
            except RuleError:
                if snapshot is not None:
                    logger.debug("Restoring session %s after failed %s", self.session_id, rule_id)
                    self.game_state = snapshot
                raise
            if self.game_state.match.has_winner:
                self.state = SessionState.GAME_OVER
            return result


class SessionManager:
    """
    Tracks active match sessions.

    No persistence - sessions are in-memory only.
    """

    def __init__(self):
        self._sessions: dict[str, MatchSession] = {}
        self._lock = threading.Lock()

    def create_session(
        self,
        rules: RuleDocument | Mapping[str, Any],
        players: Sequence[Mapping[str, Any] | str],
        seed: str | int | None = None,
        deck: Sequence[str] | None = None,
        shuffle: bool | None = None,
        **runtime_options: Any,
    ) -> MatchSession:
        """Build a runtime, deal a new match and register it."""
        runtime = RuleRuntime(rules, seed=seed, **runtime_options)
        session = MatchSession(
            session_id=str(uuid.uuid4()),
            runtime=runtime,
            game_state=runtime.init_state(players, deck=deck, shuffle=shuffle),
            created_at=time.time(),
        )
        with self._lock:
            self._sessions[session.session_id] = session
        logger.info("Created session %s", session.session_id)
        return session

    def get_session(self, session_id: str) -> MatchSession | None:
        with self._lock:
            return self._sessions.get(session_id)

    def end_session(self, session_id: str) -> None:
        """Drop a session; an unfinished match counts as abandoned."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is not None and session.state == SessionState.ACTIVE:
            session.state = SessionState.ABANDONED

    def list_active_sessions(self) -> list[str]:
        with self._lock:
            return [sid for sid, s in self._sessions.items() if s.is_active()]
