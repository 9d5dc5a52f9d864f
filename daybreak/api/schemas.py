"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the contract between a renderer client and the engine.
All responses include explicit types for OpenAPI schema generation.

Error Codes:
- SESSION_NOT_FOUND: Session does not exist or has expired
- INVALID_COMMAND: Unknown command, bad parameters, or unavailable choice
- INVALID_STATE: Snapshot payload is not the persisted-state shape
- VALIDATION_ERROR: Request body failed validation
- INTERNAL_ERROR: Unexpected failure inside the engine
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class SessionStatus(str, Enum):
    """Session status values."""
    CREATED = "created"
    ACTIVE = "active"
    ENDED = "ended"
    ABANDONED = "abandoned"


class EndingName(str, Enum):
    """Ending outcomes."""
    TRUE = "true"
    GOOD = "good"
    BAD = "bad"


class ErrorCode(str, Enum):
    """Structured error codes."""
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    INVALID_COMMAND = "INVALID_COMMAND"
    INVALID_STATE = "INVALID_STATE"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Shared Models
# =============================================================================

class CountersInfo(BaseModel):
    """Running totals for a run."""
    total_actions: int = 0
    total_dialogues: int = 0
    total_memories: int = 0


class StatusReportInfo(BaseModel):
    """Everything a renderer needs to draw the status HUD."""
    day: int
    phase: int = Field(..., description="0 Morning, 1 Day, 2 Evening")
    phase_name: str
    time: int
    max_time: int
    fatigue: int
    corruption: int
    hope: int
    relationships: list[int] = Field(..., description="[sister, npc, tower]")
    unlocked_memory_ids: list[int] = Field(default_factory=list)
    active_memory_id: Optional[int] = None
    counters: CountersInfo = Field(default_factory=CountersInfo)
    ending: Optional[EndingName] = None

    model_config = {"from_attributes": True}


class ChoiceInfo(BaseModel):
    """A dialogue choice that passed its condition."""
    text: str
    label: str = Field(..., description="Text with the effect preview suffix")
    effect: dict[str, int] = Field(default_factory=dict)
    condition: str = ""


class MemoryInfo(BaseModel):
    """A memory record."""
    id: int
    title: str
    portrait: str = ""
    background: str = ""
    text_lines: list[str] = Field(default_factory=list)
    unlocked: bool = False


# =============================================================================
# Request Models
# =============================================================================

class ConfigOverrides(BaseModel):
    """Per-session policy overrides. Omitted fields keep server defaults."""
    max_days: Optional[int] = Field(None, ge=1)
    max_time_per_day: Optional[int] = Field(None, ge=1)
    time_warning_threshold: Optional[int] = Field(None, ge=0)
    initial_fatigue: Optional[int] = Field(None, ge=0, le=100)
    initial_corruption: Optional[int] = Field(None, ge=0, le=100)
    initial_hope: Optional[int] = Field(None, ge=0, le=100)
    initial_relationship: Optional[int] = Field(None, ge=0, le=100)
    memory_trigger_chance: Optional[float] = Field(None, ge=0.0, le=1.0)
    conditional_dialogue: Optional[bool] = None
    condition_fail_open: Optional[bool] = None
    notifications: Optional[bool] = None


class CreateSessionRequest(BaseModel):
    """Request to create a new run session."""
    config: Optional[ConfigOverrides] = Field(None, description="Policy overrides")
    random_seed: Optional[int] = Field(None, description="Seed for reproducible memory offers")
    snapshot: Optional[dict[str, Any]] = Field(
        None, description="Persisted state to restore (schema_version 1)"
    )


class CommandRequest(BaseModel):
    """A generic command, e.g. {"command": "consume_time", "params": {"amount": 3}}."""
    command: str = Field(..., description="Command name, snake_case or camelCase")
    params: dict[str, Any] = Field(default_factory=dict)


class DialogueChoiceRequest(BaseModel):
    """Apply an effect spec directly."""
    effect_spec: str = Field("", description="e.g. hope:+5,corruption:-2")


class PresentChoicesRequest(BaseModel):
    """Choice markup lines to filter against the current state."""
    lines: list[str] = Field(..., description="Lines of \\CHOICE[text|effects|condition] markup")


class CommitChoiceRequest(BaseModel):
    """Commit one choice given as markup."""
    markup: str


class LintRequest(BaseModel):
    """Dialogue script lines to validate."""
    lines: list[str]


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class SessionResponse(BaseModel):
    """Response containing session information."""
    session_id: str
    status: SessionStatus
    created_at: float = 0.0
    seed: Optional[int] = None
    report: StatusReportInfo
    api_version: str = "v1"


class CommandResponse(BaseModel):
    """Result of a command."""
    success: bool
    command: str
    events: list[str] = Field(default_factory=list, description="Events published, in order")
    notifications: list[str] = Field(default_factory=list)
    value: Optional[Any] = None
    ending: Optional[EndingName] = None
    report: StatusReportInfo
    api_version: str = "v1"


class PresentChoicesResponse(BaseModel):
    """Choices available in the current state."""
    session_id: str
    choices: list[ChoiceInfo] = Field(default_factory=list)
    hidden_count: int = 0


class EndingResponse(BaseModel):
    """Ending evaluation over the current state."""
    session_id: str
    outcome: EndingName
    label: str
    triggered: bool = Field(False, description="True once the day limit fixed the ending")


class MemoryListResponse(BaseModel):
    """Memory records of a run."""
    session_id: str
    memories: list[MemoryInfo] = Field(default_factory=list)
    unlocked_count: int = 0
    catalogue_size: int = 20


class NotificationsResponse(BaseModel):
    """Drained notifications."""
    session_id: str
    notifications: list[str] = Field(default_factory=list)


class SnapshotResponse(BaseModel):
    """Persisted state of a run."""
    session_id: str
    state: dict[str, Any]


class LintResponse(BaseModel):
    """Markup lint results."""
    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class SessionListResponse(BaseModel):
    """Response listing active sessions."""
    sessions: list[str]
    count: int


class EndSessionResponse(BaseModel):
    """Response after ending a session."""
    success: bool
    session_id: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
    environment: str = "development"
    active_sessions: int = 0
