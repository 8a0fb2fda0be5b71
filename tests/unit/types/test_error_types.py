"""Tests for the error taxonomy types."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from voice_chat_resilience.errors.catalog import build_error
from voice_chat_resilience.types.errors import (
    ErrorFamily,
    ErrorMetric,
    ErrorType,
    RecoveryAction,
)


async def noop():
    return None


class TestErrorType:
    @pytest.mark.parametrize(
        "error_type,family",
        [
            (ErrorType.NETWORK_TIMEOUT, ErrorFamily.NETWORK),
            (ErrorType.API_INVALID_KEY, ErrorFamily.API),
            (ErrorType.AUDIO_FORMAT_UNSUPPORTED, ErrorFamily.AUDIO),
            (ErrorType.STORAGE_FULL, ErrorFamily.STORAGE),
            (ErrorType.REQUEST_CANCELLED, ErrorFamily.REQUEST),
            (ErrorType.VALIDATION_ERROR, ErrorFamily.VALIDATION),
            (ErrorType.UNKNOWN_ERROR, ErrorFamily.UNKNOWN),
        ],
    )
    def test_family(self, error_type, family):
        assert error_type.family is family

    def test_codes_are_unique(self):
        codes = [t.value for t in ErrorType]
        assert len(codes) == len(set(codes))


class TestAppError:
    def test_with_recovery_actions_returns_copy(self):
        error = build_error(ErrorType.API_SERVER_ERROR)
        action = RecoveryAction("retry", "Retry", "Try again", noop, is_primary=True)

        updated = error.with_recovery_actions((action,))

        assert error.recovery_actions == ()
        assert updated.recovery_actions == (action,)
        assert updated.primary_action is action
        assert updated.code == "API.server-error"

    def test_primary_action_falls_back_to_first(self):
        first = RecoveryAction("a", "A", "", noop)
        second = RecoveryAction("b", "B", "", noop)
        error = build_error(ErrorType.UNKNOWN_ERROR).with_recovery_actions(
            (first, second)
        )
        assert error.primary_action is first
        assert build_error(ErrorType.UNKNOWN_ERROR).primary_action is None

    def test_log_entry(self):
        error = build_error(
            ErrorType.NETWORK_TIMEOUT,
            component="completion",
            operation="send_message",
            retry_after_ms=250,
        )
        entry = error.to_log_entry()

        assert entry["code"] == "Network.timeout"
        assert entry["severity"] == error.severity.value
        assert entry["context"]["component"] == "completion"
        assert entry["retry_after_ms"] == 250
        datetime.fromisoformat(entry["timestamp"])


class TestErrorMetric:
    def test_record_keeps_latest_occurrence(self):
        metric = ErrorMetric(error_code="Network.timeout")
        later = datetime.now(timezone.utc)
        earlier = later - timedelta(minutes=5)

        metric.record(later)
        metric.record(earlier)

        assert metric.count == 2
        assert metric.last_occurrence == later

    def test_dict_roundtrip(self):
        metric = ErrorMetric(error_code="API.rate-limited")
        metric.record(datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc))

        restored = ErrorMetric.from_dict(metric.to_dict())

        assert restored == metric

    def test_naive_timestamps_become_utc(self):
        metric = ErrorMetric.from_dict(
            {"error_code": "Unknown", "count": 1, "last_occurrence": "2026-01-02T03:04:05"}
        )
        assert metric.last_occurrence.tzinfo is timezone.utc

    def test_negative_count_rejected(self):
        with pytest.raises(ValidationError):
            ErrorMetric.from_dict({"error_code": "Unknown", "count": -1})
