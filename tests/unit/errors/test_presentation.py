"""Tests for severity-driven UI treatment."""

from unittest.mock import AsyncMock

import pytest

from voice_chat_resilience.errors.catalog import build_error
from voice_chat_resilience.errors.presentation import (
    UITreatment,
    present_error,
    treatment_for,
)
from voice_chat_resilience.types.errors import ErrorSeverity, ErrorType, RecoveryAction


def action(action_id, primary=False):
    return RecoveryAction(action_id, action_id, "", AsyncMock(), is_primary=primary)


class TestTreatmentFor:
    @pytest.mark.parametrize(
        "severity,treatment",
        [
            (ErrorSeverity.CRITICAL, UITreatment.BLOCKING_MODAL),
            (ErrorSeverity.HIGH, UITreatment.DISMISSIBLE_DIALOG),
            (ErrorSeverity.MEDIUM, UITreatment.NOTIFICATION),
            (ErrorSeverity.LOW, UITreatment.LOG_ONLY),
        ],
    )
    def test_mapping(self, severity, treatment):
        assert treatment_for(severity) is treatment


class TestPresentError:
    def test_critical_is_blocking_with_all_actions(self):
        actions = (action("update_key", primary=True), action("help"))
        error = build_error(ErrorType.API_INVALID_KEY).with_recovery_actions(actions)
        presentation = present_error(error)
        assert presentation.treatment is UITreatment.BLOCKING_MODAL
        assert presentation.dismissible is False
        assert presentation.auto_dismiss_ms is None
        assert presentation.actions == actions

    def test_high_offers_primary_action_only(self):
        actions = (action("retry"), action("check_connection", primary=True))
        error = build_error(ErrorType.NETWORK_OFFLINE).with_recovery_actions(actions)
        presentation = present_error(error, auto_dismiss_ms=3000)
        assert presentation.treatment is UITreatment.DISMISSIBLE_DIALOG
        assert [a.id for a in presentation.actions] == ["check_connection"]
        assert presentation.dismissible is True
        assert presentation.auto_dismiss_ms == 3000

    def test_medium_is_notification(self):
        presentation = present_error(build_error(ErrorType.API_MODEL_OVERLOADED))
        assert presentation.treatment is UITreatment.NOTIFICATION
        assert presentation.auto_dismiss_ms == 5000
        assert presentation.message == (
            "The AI model is currently overloaded. Please try again in a moment."
        )

    def test_low_is_not_visible(self):
        presentation = present_error(build_error(ErrorType.REQUEST_CANCELLED))
        assert presentation.treatment is UITreatment.LOG_ONLY
        assert presentation.visible is False
