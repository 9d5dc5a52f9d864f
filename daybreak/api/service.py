"""
API Service - Business logic layer between the HTTP API and the engine.

The service:
1. Translates API requests to orchestrator commands
2. Manages sessions
3. Formats responses for renderer clients

This layer is framework-agnostic (usable from FastAPI, the CLI, or tests).
Failures are returned as ErrorResponse values, never raised.
"""

from __future__ import annotations
from dataclasses import dataclass, field

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
    PresentChoicesResponse,
    EndingResponse,
    MemoryListResponse,
    NotificationsResponse,
    SnapshotResponse,
    LintResponse,
    ErrorResponse,
    # Shared
    StatusReportInfo,
    ChoiceInfo,
    MemoryInfo,
    # Enums
    ErrorCode,
    SessionStatus,
)
from ..config import EngineConfig
from ..session import SessionManager, Session
from ..engine_core.command import Command, CommandType, CommandResult
from ..engine_core.state import RunState, StatusReport, StateDecodeError
from ..dialogue.effect_dsl import parse_choice_markup
from ..dialogue.validation import validate_script
from ..log import get_logger

logger = get_logger(__name__)

# Orchestrator error codes -> API error codes
_COMMAND_ERROR_CODES = {
    "INVALID_COMMAND": ErrorCode.INVALID_COMMAND,
    "NO_HANDLER": ErrorCode.INVALID_COMMAND,
    "HANDLER_ERROR": ErrorCode.INTERNAL_ERROR,
}


def report_info(report: StatusReport) -> StatusReportInfo:
    return StatusReportInfo(**report.to_dict())


@dataclass
class APIService:
    """
    Main API service for renderer clients.

    Usage:
        service = APIService()

        # Create session
        session_response = service.create_session(CreateSessionRequest(random_seed=7))

        # Drive the run
        result = service.apply_command(session_id, CommandRequest(command="advance_day"))
    """
    session_manager: SessionManager = field(default_factory=SessionManager)
    default_config: EngineConfig = field(default_factory=EngineConfig)

    # =========================================================================
    # Sessions
    # =========================================================================

    def create_session(self, request: CreateSessionRequest) -> SessionResponse | ErrorResponse:
        """
        Create a run session, optionally restored from a snapshot.

        Returns INVALID_STATE when the snapshot is not the persisted shape.
        """
        config = self.default_config
        if request.config is not None:
            overrides = request.config.model_dump(exclude_none=True)
            config = config.with_overrides(**overrides)

        snapshot = None
        if request.snapshot is not None:
            try:
                snapshot = RunState.from_dict(request.snapshot)
            except StateDecodeError as e:
                return ErrorResponse(error=str(e), error_code=ErrorCode.INVALID_STATE)

        session = self.session_manager.create_session(
            config=config,
            seed=request.random_seed,
            snapshot=snapshot,
        )
        return self._session_response(session)

    def get_session(self, session_id: str) -> SessionResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return self._not_found(session_id)
        return self._session_response(session)

    def end_session(self, session_id: str, reason: str = "user_ended") -> bool:
        return self.session_manager.end_session(session_id, reason) is not None

    def list_sessions(self) -> list[str]:
        return self.session_manager.list_active_sessions()

    # =========================================================================
    # Commands
    # =========================================================================

    def apply_command(self, session_id: str, request: CommandRequest) -> CommandResponse | ErrorResponse:
        """Parse and apply a generic command."""
        try:
            command = Command(CommandType.parse(request.command), dict(request.params))
        except ValueError as e:
            return ErrorResponse(
                error=str(e),
                error_code=ErrorCode.INVALID_COMMAND,
                details={"valid_commands": [t.value for t in CommandType]},
            )
        return self._apply(session_id, command)

    def submit_dialogue_choice(
        self, session_id: str, request: DialogueChoiceRequest
    ) -> CommandResponse | ErrorResponse:
        return self._apply(session_id, Command.submit_dialogue_choice(request.effect_spec))

    def commit_choice(self, session_id: str, request: CommitChoiceRequest) -> CommandResponse | ErrorResponse:
        return self._apply(session_id, Command.commit_choice(request.markup))

    def _apply(self, session_id: str, command: Command) -> CommandResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return self._not_found(session_id)

        result: CommandResult = session.orchestrator.apply(command)
        if not result.success:
            logger.info(
                "Session %s rejected %s: %s",
                session_id, command.command_type.value, result.error,
            )
            return ErrorResponse(
                error=result.error or "Command failed",
                error_code=_COMMAND_ERROR_CODES.get(result.error_code or "", ErrorCode.INVALID_COMMAND),
                details={"command": command.command_type.value, "engine_error_code": result.error_code},
            )

        session.touch()
        return CommandResponse(
            success=True,
            command=command.command_type.value,
            events=result.events,
            notifications=result.notifications,
            value=result.value,
            ending=result.ending.value if result.ending else None,
            report=report_info(result.report),
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_status(self, session_id: str) -> StatusReportInfo | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return self._not_found(session_id)
        return report_info(session.orchestrator.get_status_report())

    def present_choices(
        self, session_id: str, request: PresentChoicesRequest
    ) -> PresentChoicesResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return self._not_found(session_id)

        available = session.orchestrator.present_choices(request.lines)
        total = sum(1 for line in request.lines if parse_choice_markup(line) is not None)
        return PresentChoicesResponse(
            session_id=session_id,
            choices=[
                ChoiceInfo(
                    text=choice.text,
                    label=choice.label(),
                    effect=choice.effect.to_dict(),
                    condition=choice.condition,
                )
                for choice in available
            ],
            hidden_count=total - len(available),
        )

    def evaluate_ending(self, session_id: str) -> EndingResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return self._not_found(session_id)

        run = session.orchestrator
        outcome = run.ending or run.evaluate_ending()
        return EndingResponse(
            session_id=session_id,
            outcome=outcome.value,
            label=outcome.label,
            triggered=run.ending is not None,
        )

    def list_memories(self, session_id: str) -> MemoryListResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return self._not_found(session_id)

        ledger = session.orchestrator.memories
        return MemoryListResponse(
            session_id=session_id,
            memories=[MemoryInfo(**memory.to_dict()) for memory in ledger.memories()],
            unlocked_count=ledger.unlocked_count,
            catalogue_size=ledger.catalogue_size,
        )

    def drain_notifications(self, session_id: str) -> NotificationsResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return self._not_found(session_id)
        return NotificationsResponse(
            session_id=session_id,
            notifications=session.orchestrator.drain_notifications(),
        )

    def export_snapshot(self, session_id: str) -> SnapshotResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return self._not_found(session_id)
        return SnapshotResponse(
            session_id=session_id,
            state=session.orchestrator.snapshot().to_dict(),
        )

    def lint(self, request: LintRequest) -> LintResponse:
        result = validate_script(request.lines)
        return LintResponse(valid=result.valid, errors=result.errors, warnings=result.warnings)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _session_response(self, session: Session) -> SessionResponse:
        return SessionResponse(
            session_id=session.session_id,
            status=SessionStatus(session.state.value),
            created_at=session.created_at,
            seed=session.seed,
            report=report_info(session.orchestrator.get_status_report()),
        )

    def _not_found(self, session_id: str) -> ErrorResponse:
        return ErrorResponse(
            error=f"Session {session_id} not found",
            error_code=ErrorCode.SESSION_NOT_FOUND,
            details={"session_id": session_id},
        )
