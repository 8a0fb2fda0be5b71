# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Chat completion and transcription services built on the request queue."""

from .completion import CompletionService
from .transcription import (
    MAX_AUDIO_BYTES,
    SUPPORTED_FORMATS,
    TranscriptionService,
    validate_audio,
)

__all__ = [
    "MAX_AUDIO_BYTES",
    "SUPPORTED_FORMATS",
    "CompletionService",
    "TranscriptionService",
    "validate_audio",
]
