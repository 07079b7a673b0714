"""
Session Module - In-memory match sessions for hosts.

A session serializes calls against one match and can make moves atomic
by snapshotting the state before each call.
"""

from .manager import SessionManager, MatchSession, SessionState

__all__ = [
    "SessionManager",
    "MatchSession",
    "SessionState",
]
