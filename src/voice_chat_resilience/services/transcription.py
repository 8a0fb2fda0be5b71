# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Speech-to-text service.

Audio files are validated locally before anything is queued, so an
unsupported or oversized recording fails fast without spending a request.
"""

from __future__ import annotations

import logging
import os
from pathlib import PurePath
from typing import Any

from ..config import OrchestratorConfig
from ..exceptions import AudioValidationError
from ..protocols.collaborators import TranscriptionCollaborator
from ..scheduler.cancellation import CancellationToken
from ..scheduler.outbound import with_deadline
from ..scheduler.request_queue import RequestQueue
from ..types.errors import ErrorType
from ..types.request import RequestPriority
from ..types.responses import TranscriptionResult

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS: dict[str, str] = {
    ".m4a": "audio/m4a",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".webm": "audio/webm",
    ".mp4": "audio/mp4",
    ".mpeg": "audio/mpeg",
    ".mpga": "audio/mpeg",
    ".oga": "audio/ogg",
    ".ogg": "audio/ogg",
}
"""Supported audio extensions and their MIME types."""

MAX_AUDIO_BYTES = 25 * 1024 * 1024

DEFAULT_TRANSCRIPTION_MODEL = "whisper-1"


def validate_audio(audio_ref: str, size_bytes: int | None = None) -> str:
    """
    Check an audio file's size and format.

    When ``size_bytes`` is not given and ``audio_ref`` is a local file, its
    size is read from disk.

    Returns:
        The MIME type of the audio file

    Raises:
        AudioValidationError: If the file is too large or its format is
            not supported
    """
    if size_bytes is None and os.path.isfile(audio_ref):
        size_bytes = os.path.getsize(audio_ref)
    if size_bytes is not None and size_bytes > MAX_AUDIO_BYTES:
        raise AudioValidationError(
            ErrorType.AUDIO_FORMAT_UNSUPPORTED,
            f"File size ({size_bytes / (1024 * 1024):.1f}MB) exceeds maximum "
            f"allowed size ({MAX_AUDIO_BYTES // (1024 * 1024)}MB)",
            {"audio_ref": audio_ref, "size_bytes": size_bytes},
        )

    extension = PurePath(audio_ref).suffix.lower()
    mime_type = SUPPORTED_FORMATS.get(extension)
    if mime_type is None:
        raise AudioValidationError(
            ErrorType.AUDIO_FORMAT_UNSUPPORTED,
            f"Unsupported audio format: {extension or '(none)'}. "
            f"Supported formats: {', '.join(SUPPORTED_FORMATS)}",
            {"audio_ref": audio_ref},
        )
    return mime_type


class TranscriptionService:
    """Transcribes recorded audio through its own request queue."""

    def __init__(
        self,
        client: TranscriptionCollaborator,
        queue: RequestQueue,
        config: OrchestratorConfig | None = None,
        model: str = DEFAULT_TRANSCRIPTION_MODEL,
    ) -> None:
        self.client = client
        self.queue = queue
        self.config = config or queue.config
        self.model = model

    async def transcribe(
        self,
        audio_ref: str,
        *,
        size_bytes: int | None = None,
        language: str | None = None,
        prompt: str | None = None,
        priority: int = RequestPriority.HIGH,
        cancel_token: CancellationToken | None = None,
    ) -> TranscriptionResult:
        """
        Validate and transcribe an audio file.

        Raises:
            AudioValidationError: Before enqueueing, if validation fails
            RequestFailedError: If the transcription request failed
        """
        mime_type = validate_audio(audio_ref, size_bytes)
        options: dict[str, Any] = {"model": self.model, "mime_type": mime_type}
        if language:
            options["language"] = language
        if prompt:
            options["prompt"] = prompt

        async def call() -> TranscriptionResult:
            return await self.client.send(audio_ref, options, cancel_token)

        result: TranscriptionResult = await self.queue.enqueue(
            with_deadline(call, self.config.request_timeout_ms),
            priority,
            cancel_token=cancel_token,
            component="transcription",
            operation="transcribe",
        )
        logger.debug(f"Transcribed {audio_ref} ({len(result.text)} chars)")
        return result


__all__ = [
    "DEFAULT_TRANSCRIPTION_MODEL",
    "MAX_AUDIO_BYTES",
    "SUPPORTED_FORMATS",
    "TranscriptionService",
    "validate_audio",
]
