"""Tests for request metadata types."""

from datetime import timezone

from voice_chat_resilience.types.request import RequestMetadata, RequestPriority


class TestRequestPriority:
    def test_ordering(self):
        assert (
            RequestPriority.LOW
            < RequestPriority.MEDIUM
            < RequestPriority.HIGH
            < RequestPriority.URGENT
        )
        assert int(RequestPriority.URGENT) == 3


class TestRequestMetadata:
    def test_defaults(self):
        meta = RequestMetadata(request_id="completion-1")
        assert meta.priority == RequestPriority.MEDIUM
        assert meta.max_retries == 3
        assert meta.estimated_tokens == 0
        assert meta.submitted_at.tzinfo is timezone.utc
