"""
Tests for API schemas.

Tests:
- Pydantic models validate and serialize
- Error codes are complete
- The OpenAPI schema generates with every response model
"""

import pytest
from pydantic import ValidationError

from ..api.schemas import (
    CommandRequest,
    ConfigOverrides,
    CreateSessionRequest,
    ErrorCode,
    ErrorResponse,
    StatusReportInfo,
)
from ..api.service import report_info
from ..engine_core.orchestrator import Orchestrator


class TestPydanticSchemas:
    """Tests for request/response models."""

    def test_status_report_from_engine(self):
        """The engine's report converts to the API model unchanged."""
        info = report_info(Orchestrator().get_status_report())

        assert info.phase == 0
        assert info.phase_name == "Morning"
        assert info.counters.total_actions == 0
        assert info.model_dump()["ending"] is None

    def test_command_request_defaults(self):
        request = CommandRequest(command="advance_day")
        assert request.params == {}

    def test_config_overrides_validation(self):
        with pytest.raises(ValidationError):
            ConfigOverrides(max_days=0)
        with pytest.raises(ValidationError):
            ConfigOverrides(memory_trigger_chance=1.5)

    def test_config_overrides_drop_unset(self):
        overrides = ConfigOverrides(max_days=12)
        assert overrides.model_dump(exclude_none=True) == {"max_days": 12}

    def test_create_session_request_is_optional(self):
        request = CreateSessionRequest()
        assert request.config is None
        assert request.snapshot is None

    def test_error_response_schema(self):
        error = ErrorResponse(error="Session x not found", error_code=ErrorCode.SESSION_NOT_FOUND)

        data = error.model_dump(mode="json")

        assert data["error_code"] == "SESSION_NOT_FOUND"
        assert data["api_version"] == "v1"
        assert data["details"] is None

    def test_status_report_requires_fields(self):
        with pytest.raises(ValidationError):
            StatusReportInfo(day=1)


class TestErrorCodes:
    """Tests for error code definitions."""

    def test_all_error_codes_defined(self):
        expected = {
            "SESSION_NOT_FOUND",
            "INVALID_COMMAND",
            "INVALID_STATE",
            "VALIDATION_ERROR",
            "INTERNAL_ERROR",
        }
        assert {code.value for code in ErrorCode} == expected

    def test_error_code_values_are_strings(self):
        for code in ErrorCode:
            assert isinstance(code.value, str)
            assert code.value == code.value.upper()


class TestOpenAPISchema:
    """Tests for OpenAPI schema generation."""

    @pytest.fixture
    def schema(self):
        from daybreak.api.app import app
        from fastapi.openapi.utils import get_openapi

        return get_openapi(title=app.title, version=app.version, routes=app.routes)

    def test_openapi_schema_generates(self, schema):
        assert "paths" in schema
        assert "schemas" in schema["components"]

    def test_response_models_in_schema(self, schema):
        schemas = schema["components"]["schemas"]

        for name in [
            "SessionResponse",
            "CommandResponse",
            "StatusReportInfo",
            "PresentChoicesResponse",
            "EndingResponse",
            "SnapshotResponse",
            "LintResponse",
            "ErrorResponse",
        ]:
            assert name in schemas, f"Missing schema: {name}"

    def test_endpoints_have_response_models(self, schema):
        paths = schema["paths"]

        assert "200" in paths["/api/v1/sessions"]["post"]["responses"]
        status = paths["/api/v1/sessions/{session_id}/status"]["get"]["responses"]
        assert "StatusReportInfo" in str(status["200"])
        assert "404" in status
        assert "/api/v1/sessions/{session_id}/dialogue/commit" in paths
