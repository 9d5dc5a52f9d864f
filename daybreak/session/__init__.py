"""
Session Module - Manages isolated runs.

A session represents one play-through:
- Created when a client starts a run
- Holds exactly one Orchestrator
- Destroyed when the run ends or goes stale

Sessions are EPHEMERAL: clients that want to keep a run export a
snapshot and create a new session from it later.
"""

from .manager import SessionManager, Session, SessionState

__all__ = [
    "SessionManager",
    "Session",
    "SessionState",
]
