"""Tests for audio validation and the transcription service."""

import asyncio

import pytest

from voice_chat_resilience.config import OrchestratorConfig
from voice_chat_resilience.exceptions import AudioValidationError, RequestFailedError
from voice_chat_resilience.scheduler.request_queue import RequestQueue
from voice_chat_resilience.services.transcription import (
    MAX_AUDIO_BYTES,
    TranscriptionService,
    validate_audio,
)
from voice_chat_resilience.types.errors import ErrorType
from voice_chat_resilience.types.responses import TranscriptionResult


class FakeTranscriptionClient:
    def __init__(self, outcome=None):
        self.outcome = outcome or TranscriptionResult("hello world", language="en")
        self.calls = []

    async def send(self, audio_ref, options, cancel_token=None):
        self.calls.append((audio_ref, dict(options)))
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


async def instant_sleep(seconds):
    await asyncio.sleep(0)


@pytest.fixture
def queue():
    return RequestQueue(
        "transcription",
        config=OrchestratorConfig(max_retries=0),
        sleep=instant_sleep,
    )


class TestValidateAudio:
    @pytest.mark.parametrize(
        "ref,mime",
        [
            ("memo.m4a", "audio/m4a"),
            ("memo.MP3", "audio/mpeg"),
            ("/tmp/rec.wav", "audio/wav"),
            ("clip.webm", "audio/webm"),
            ("voice.ogg", "audio/ogg"),
        ],
    )
    def test_supported_formats(self, ref, mime):
        assert validate_audio(ref, size_bytes=1024) == mime

    def test_unsupported_format(self):
        with pytest.raises(AudioValidationError) as exc_info:
            validate_audio("notes.txt", size_bytes=10)
        assert exc_info.value.error_type is ErrorType.AUDIO_FORMAT_UNSUPPORTED
        assert "Unsupported audio format: .txt" in str(exc_info.value)

    def test_missing_extension(self):
        with pytest.raises(AudioValidationError, match=r"\(none\)"):
            validate_audio("recording", size_bytes=10)

    def test_oversized_file(self):
        with pytest.raises(AudioValidationError) as exc_info:
            validate_audio("memo.m4a", size_bytes=MAX_AUDIO_BYTES + 1)
        assert "exceeds maximum allowed size (25MB)" in str(exc_info.value)
        assert exc_info.value.metadata["size_bytes"] == MAX_AUDIO_BYTES + 1

    def test_size_limit_is_inclusive(self):
        assert validate_audio("memo.m4a", size_bytes=MAX_AUDIO_BYTES) == "audio/m4a"

    def test_size_read_from_disk(self, tmp_path):
        audio = tmp_path / "memo.wav"
        audio.write_bytes(b"\0" * 2048)
        assert validate_audio(str(audio)) == "audio/wav"


class TestTranscriptionService:
    @pytest.mark.asyncio
    async def test_transcribe(self, queue):
        client = FakeTranscriptionClient()
        service = TranscriptionService(client, queue)

        async with queue:
            result = await service.transcribe("memo.m4a", size_bytes=100, language="en")

        assert result.text == "hello world"
        audio_ref, options = client.calls[0]
        assert audio_ref == "memo.m4a"
        assert options == {"model": "whisper-1", "mime_type": "audio/m4a", "language": "en"}

    @pytest.mark.asyncio
    async def test_invalid_audio_never_enqueued(self, queue):
        client = FakeTranscriptionClient()
        service = TranscriptionService(client, queue)

        with pytest.raises(AudioValidationError):
            await service.transcribe("memo.flac", size_bytes=100)

        assert client.calls == []
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_collaborator_failure_rejects(self, queue):
        client = FakeTranscriptionClient(ConnectionResetError("socket closed"))
        service = TranscriptionService(client, queue)

        async with queue:
            with pytest.raises(RequestFailedError) as exc_info:
                await service.transcribe("memo.mp3", size_bytes=100)

        assert exc_info.value.error.context.operation == "transcribe"
