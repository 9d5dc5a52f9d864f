"""
FastAPI Application - REST API for renderer clients.

Endpoints:
    POST   /api/v1/sessions                           Create run session
    GET    /api/v1/sessions                           List active sessions
    GET    /api/v1/sessions/{id}                      Get session
    DELETE /api/v1/sessions/{id}                      End session
    GET    /api/v1/sessions/{id}/status               Status report
    POST   /api/v1/sessions/{id}/commands             Apply a command
    POST   /api/v1/sessions/{id}/dialogue/submit      Apply an effect spec
    POST   /api/v1/sessions/{id}/dialogue/present     Filter choice markup
    POST   /api/v1/sessions/{id}/dialogue/commit      Commit one choice
    GET    /api/v1/sessions/{id}/ending               Evaluate ending
    GET    /api/v1/sessions/{id}/memories             Memory records
    POST   /api/v1/sessions/{id}/notifications/drain  Drain notifications
    GET    /api/v1/sessions/{id}/snapshot             Export persisted state
    POST   /api/v1/lint                               Lint choice markup

Each session owns one isolated run. Snapshots exported here can be passed
back to POST /sessions to restore a run.
"""

from typing import Optional, Union
import os

from fastapi import FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import EngineConfig
from .service import APIService
from .schemas import (
    # Request models
    CreateSessionRequest,
    CommandRequest,
    DialogueChoiceRequest,
    PresentChoicesRequest,
    CommitChoiceRequest,
    LintRequest,
    # Response models
    SessionResponse,
    CommandResponse,
    PresentChoicesResponse,
    EndingResponse,
    MemoryListResponse,
    NotificationsResponse,
    SnapshotResponse,
    LintResponse,
    ErrorResponse,
    SessionListResponse,
    EndSessionResponse,
    HealthResponse,
    StatusReportInfo,
    # Enums
    ErrorCode,
)
from ..log import get_logger

logger = get_logger(__name__)

# Environment configuration
DAYBREAK_ENV = os.getenv("DAYBREAK_ENV", "development")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Session not found"}}


def create_app(service: Optional[APIService] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates one configured from
            DAYBREAK_* environment variables if not provided)

    Returns:
        FastAPI application instance
    """
    app = FastAPI(
        title="Daybreak Engine API",
        description="""
Narrative state engine - day/phase cycle, resources, memories and endings.

## Error Codes

| Code | Description |
|------|-------------|
| `SESSION_NOT_FOUND` | Session does not exist |
| `INVALID_COMMAND` | Unknown command, bad parameters or unavailable choice |
| `INVALID_STATE` | Snapshot is not the persisted-state shape |
| `VALIDATION_ERROR` | Request body failed validation |
| `INTERNAL_ERROR` | Unexpected engine failure |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_service = service or APIService(default_config=EngineConfig.from_env())

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(error: ErrorResponse) -> JSONResponse:
        """Create a standardized error response."""
        status_code = 404 if error.error_code == ErrorCode.SESSION_NOT_FOUND else 400
        if error.error_code == ErrorCode.INTERNAL_ERROR:
            status_code = 500
        return JSONResponse(status_code=status_code, content=error.model_dump(mode="json"))

    def respond(result):
        if isinstance(result, ErrorResponse):
            return make_error_response(result)
        return result

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request, exc: RequestValidationError) -> JSONResponse:
        return make_error_response(ErrorResponse(
            error="Request validation failed",
            error_code=ErrorCode.VALIDATION_ERROR,
            details={"errors": jsonable_encoder(exc.errors())},
        ))

    # =========================================================================
    # Session Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions",
        response_model=SessionResponse,
        responses={400: {"model": ErrorResponse, "description": "Invalid snapshot"}},
        tags=["Sessions"],
        summary="Create a new run session",
    )
    async def create_session(
        request: Optional[CreateSessionRequest] = None,
    ) -> Union[SessionResponse, JSONResponse]:
        """
        Create a run session.

        Pass `snapshot` (from GET /snapshot) to restore a saved run, and
        `random_seed` for reproducible memory offers.
        """
        return respond(api_service.create_session(request or CreateSessionRequest()))

    @app.get(
        "/api/v1/sessions",
        response_model=SessionListResponse,
        tags=["Sessions"],
        summary="List active sessions",
    )
    async def list_sessions() -> SessionListResponse:
        sessions = api_service.list_sessions()
        return SessionListResponse(sessions=sessions, count=len(sessions))

    @app.get(
        "/api/v1/sessions/{session_id}",
        response_model=SessionResponse,
        responses=_NOT_FOUND,
        tags=["Sessions"],
        summary="Get session",
    )
    async def get_session(session_id: str) -> Union[SessionResponse, JSONResponse]:
        return respond(api_service.get_session(session_id))

    @app.delete(
        "/api/v1/sessions/{session_id}",
        response_model=EndSessionResponse,
        tags=["Sessions"],
        summary="End a session",
    )
    async def end_session(
        session_id: str,
        reason: str = Query("user_ended", description="Reason for ending"),
    ) -> EndSessionResponse:
        """End a session and release its run."""
        success = api_service.end_session(session_id, reason)
        return EndSessionResponse(success=success, session_id=session_id)

    # =========================================================================
    # Run Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/sessions/{session_id}/status",
        response_model=StatusReportInfo,
        responses=_NOT_FOUND,
        tags=["Run"],
        summary="Status report",
    )
    async def get_status(session_id: str) -> Union[StatusReportInfo, JSONResponse]:
        return respond(api_service.get_status(session_id))

    @app.post(
        "/api/v1/sessions/{session_id}/commands",
        response_model=CommandResponse,
        responses={**_NOT_FOUND, 400: {"model": ErrorResponse, "description": "Invalid command"}},
        tags=["Run"],
        summary="Apply a command",
    )
    async def apply_command(
        session_id: str, request: CommandRequest
    ) -> Union[CommandResponse, JSONResponse]:
        """
        Apply one command, e.g. `{"command": "consume_time", "params": {"amount": 3}}`.

        The response lists the events published while the command ran, in
        dispatch order.
        """
        return respond(api_service.apply_command(session_id, request))

    @app.get(
        "/api/v1/sessions/{session_id}/ending",
        response_model=EndingResponse,
        responses=_NOT_FOUND,
        tags=["Run"],
        summary="Evaluate the ending",
    )
    async def evaluate_ending(session_id: str) -> Union[EndingResponse, JSONResponse]:
        return respond(api_service.evaluate_ending(session_id))

    @app.get(
        "/api/v1/sessions/{session_id}/memories",
        response_model=MemoryListResponse,
        responses=_NOT_FOUND,
        tags=["Run"],
        summary="List memory records",
    )
    async def list_memories(session_id: str) -> Union[MemoryListResponse, JSONResponse]:
        return respond(api_service.list_memories(session_id))

    @app.post(
        "/api/v1/sessions/{session_id}/notifications/drain",
        response_model=NotificationsResponse,
        responses=_NOT_FOUND,
        tags=["Run"],
        summary="Drain queued notifications",
    )
    async def drain_notifications(session_id: str) -> Union[NotificationsResponse, JSONResponse]:
        return respond(api_service.drain_notifications(session_id))

    @app.get(
        "/api/v1/sessions/{session_id}/snapshot",
        response_model=SnapshotResponse,
        responses=_NOT_FOUND,
        tags=["Run"],
        summary="Export persisted state",
    )
    async def export_snapshot(session_id: str) -> Union[SnapshotResponse, JSONResponse]:
        return respond(api_service.export_snapshot(session_id))

    # =========================================================================
    # Dialogue Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions/{session_id}/dialogue/submit",
        response_model=CommandResponse,
        responses=_NOT_FOUND,
        tags=["Dialogue"],
        summary="Apply an effect spec",
    )
    async def submit_dialogue_choice(
        session_id: str, request: DialogueChoiceRequest
    ) -> Union[CommandResponse, JSONResponse]:
        return respond(api_service.submit_dialogue_choice(session_id, request))

    @app.post(
        "/api/v1/sessions/{session_id}/dialogue/present",
        response_model=PresentChoicesResponse,
        responses=_NOT_FOUND,
        tags=["Dialogue"],
        summary="Filter choice markup against the current state",
    )
    async def present_choices(
        session_id: str, request: PresentChoicesRequest
    ) -> Union[PresentChoicesResponse, JSONResponse]:
        return respond(api_service.present_choices(session_id, request))

    @app.post(
        "/api/v1/sessions/{session_id}/dialogue/commit",
        response_model=CommandResponse,
        responses={**_NOT_FOUND, 400: {"model": ErrorResponse, "description": "Choice unavailable"}},
        tags=["Dialogue"],
        summary="Commit one choice",
    )
    async def commit_choice(
        session_id: str, request: CommitChoiceRequest
    ) -> Union[CommandResponse, JSONResponse]:
        return respond(api_service.commit_choice(session_id, request))

    @app.post(
        "/api/v1/lint",
        response_model=LintResponse,
        tags=["Dialogue"],
        summary="Lint choice markup",
    )
    async def lint(request: LintRequest) -> LintResponse:
        return api_service.lint(request)

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="daybreak-engine",
            version=__version__,
            environment=DAYBREAK_ENV,
            active_sessions=len(api_service.list_sessions()),
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Daybreak Engine API",
            "version": __version__,
            "docs": "/api/docs",
            "health": "/health",
        }

    logger.debug("API created (env=%s, origins=%s)", DAYBREAK_ENV, ALLOWED_ORIGINS)
    return app


# For running directly: uvicorn daybreak.api.app:app
app = create_app()
