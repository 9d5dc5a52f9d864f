"""
API Module - Renderer client interface.

Exposes the engine via REST API. A client:
1. Creates a session (fresh or from a snapshot)
2. Submits commands and dialogue choices
3. Polls the status report and drains notifications
4. Exports a snapshot to save the run

All state is session-scoped. No persistent user accounts required.
"""

from .schemas import (
    # Requests
    CreateSessionRequest,
    CommandRequest,
    DialogueChoiceRequest,
    PresentChoicesRequest,
    CommitChoiceRequest,
    LintRequest,
    # Responses
    SessionResponse,
    CommandResponse,
    StatusReportInfo,
    ErrorResponse,
    # Enums
    ErrorCode,
    SessionStatus,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "CreateSessionRequest",
    "CommandRequest",
    "DialogueChoiceRequest",
    "PresentChoicesRequest",
    "CommitChoiceRequest",
    "LintRequest",
    # Responses
    "SessionResponse",
    "CommandResponse",
    "StatusReportInfo",
    "ErrorResponse",
    # Enums
    "ErrorCode",
    "SessionStatus",
    # Service
    "APIService",
    "create_app",
]
