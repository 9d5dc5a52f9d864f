"""
Session Manager - Creates and manages isolated runs.

LIFECYCLE:
1. Client creates a session -> fresh Orchestrator (or one restored from a snapshot)
2. During play:
   - Client submits commands
   - The session's orchestrator mutates its own run
   - Client polls the status report and drains notifications
3. Ending reached or client quits -> session ended and removed

ISOLATION RULES:
- One Orchestrator per session, never shared
- No cross-session state: each run has its own config, bus and RNG
- Sessions are in-memory only; persistence is the client's job via snapshots
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
import random
import time
import uuid

from ..config import EngineConfig
from ..engine_core.state import RunState
from ..engine_core.orchestrator import Orchestrator
from ..log import get_logger

logger = get_logger(__name__)


class SessionState(Enum):
    """State of a run session."""
    CREATED = "created"  # No command applied yet
    ACTIVE = "active"  # Run in progress
    ENDED = "ended"  # An ending was reached
    ABANDONED = "abandoned"  # Client quit or session went stale


@dataclass
class Session:
    """
    One isolated run.

    Contains:
    - The run's orchestrator and the config it was built with
    - The RNG seed, when the run is replayable
    - Session metadata
    """
    session_id: str
    orchestrator: Orchestrator
    created_at: float
    seed: int | None = None

    state: SessionState = SessionState.CREATED
    last_active_at: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.last_active_at:
            self.last_active_at = self.created_at

    @property
    def config(self) -> EngineConfig:
        return self.orchestrator.config

    def is_active(self) -> bool:
        """Check if the session still accepts commands."""
        return self.state in {SessionState.CREATED, SessionState.ACTIVE}

    def touch(self) -> None:
        """Record activity; moves CREATED to ACTIVE and ACTIVE to ENDED once an ending exists."""
        self.last_active_at = time.time()
        if self.state == SessionState.CREATED:
            self.state = SessionState.ACTIVE
        if self.orchestrator.ending is not None and self.state == SessionState.ACTIVE:
            self.state = SessionState.ENDED


class SessionManager:
    """
    Manages run sessions.

    Responsibilities:
    - Create sessions, fresh or from snapshots
    - Track active sessions
    - Clean up ended and idle sessions

    No persistence - sessions are in-memory only.
    """

    def __init__(self, default_config: EngineConfig | None = None):
        self.default_config = default_config or EngineConfig()
        self._sessions: dict[str, Session] = {}

    def create_session(
        self,
        config: EngineConfig | None = None,
        seed: int | None = None,
        snapshot: RunState | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Session:
        """
        Create a new session.

        Args:
            config: Policy constants for the run (defaults to the manager's)
            seed: RNG seed for replayable memory offers
            snapshot: Persisted state to restore into the new run

        Returns:
            New Session ready for commands
        """
        session_id = str(uuid.uuid4())
        run_config = config or self.default_config
        rng = random.Random(seed) if seed is not None else random.Random()

        orchestrator = Orchestrator(config=run_config, rng=rng)
        if snapshot is not None:
            orchestrator.restore(snapshot)

        session = Session(
            session_id=session_id,
            orchestrator=orchestrator,
            created_at=time.time(),
            seed=seed,
            metadata=dict(metadata or {}),
        )
        if snapshot is not None and snapshot.ending is not None:
            session.state = SessionState.ENDED

        self._sessions[session_id] = session
        logger.info(
            "Created session %s (seed=%s, restored=%s)",
            session_id, seed, snapshot is not None,
        )
        return session

    def get_session(self, session_id: str) -> Session | None:
        """Get a session by ID."""
        return self._sessions.get(session_id)

    def end_session(self, session_id: str, reason: str = "completed") -> Session | None:
        """
        End a session and remove it.

        Returns the removed session, or None when the id is unknown.
        """
        session = self._sessions.pop(session_id, None)
        if session:
            if reason == "completed":
                session.state = SessionState.ENDED
            else:
                session.state = SessionState.ABANDONED
            logger.info("Ended session %s (%s)", session_id, reason)
        return session

    def list_active_sessions(self) -> list[str]:
        """List IDs of sessions that still accept commands."""
        return [
            sid for sid, session in self._sessions.items()
            if session.is_active()
        ]

    def list_sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def cleanup_stale_sessions(self, max_age_seconds: int = 3600) -> list[str]:
        """
        Remove sessions idle for longer than max_age_seconds.

        Called periodically to free memory. Returns the removed ids.
        """
        current_time = time.time()
        to_remove = [
            session_id for session_id, session in self._sessions.items()
            if current_time - session.last_active_at > max_age_seconds
        ]

        for session_id in to_remove:
            self.end_session(session_id, reason="stale")
        return to_remove

    def __len__(self) -> int:
        return len(self._sessions)
