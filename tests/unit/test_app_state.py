"""
Unit tests for the service container and validation error formatting.
"""

import pytest

from api.src.dependencies import AppState
from api.src.main import format_validation_errors


class TestAppState:

    def test_verify_reports_missing_services(self):
        state = AppState()
        state.settings = object()

        with pytest.raises(RuntimeError, match="hash_service"):
            state.verify()

        assert "settings" not in state.missing_services()

    def test_verify_passes_when_all_registered(self):
        state = AppState()
        for name in AppState.REQUIRED_SERVICES:
            setattr(state, name, object())

        state.verify()


class TestFormatValidationErrors:

    def test_missing_fields_get_required_message(self):
        errors = [
            {"type": "missing", "loc": ("body", "user"), "msg": "Field required"},
            {"type": "missing", "loc": ("body", "password"), "msg": "Field required"},
        ]

        assert format_validation_errors(errors) == {
            "user": ["The user field is required."],
            "password": ["The password field is required."],
        }

    def test_missing_body_is_reported_on_request(self):
        errors = [{"type": "missing", "loc": ("body",), "msg": "Field required"}]

        assert format_validation_errors(errors) == {"request": ["A non-empty request body is required."]}

    def test_other_errors_keep_message(self):
        errors = [{"type": "string_type", "loc": ("body", "user"), "msg": "Input should be a valid string"}]

        assert format_validation_errors(errors) == {"user": ["Input should be a valid string"]}
