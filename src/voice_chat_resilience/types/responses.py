# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Results returned by completion and transcription collaborators."""

from dataclasses import dataclass, field


@dataclass
class CompletionResponse:
    """
    A whole (non-streamed) completion.

    Attributes:
        content: Assistant reply text
        model: Model that produced the reply
        prompt_tokens: Billed input tokens, if reported
        completion_tokens: Billed output tokens, if reported
        headers: Response headers, used to refine rate-limit accounting
        from_cache: Served from the offline response cache
    """

    content: str
    model: str | None = None
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    headers: dict[str, str] = field(default_factory=dict)
    from_cache: bool = False


@dataclass
class TranscriptionResult:
    """
    Text transcribed from an audio file.

    Attributes:
        text: Transcribed text
        language: Detected language, if reported
        duration_s: Audio duration in seconds, if reported
        headers: Response headers, used to refine rate-limit accounting
    """

    text: str
    language: str | None = None
    duration_s: float | None = None
    headers: dict[str, str] = field(default_factory=dict)


__all__ = ["CompletionResponse", "TranscriptionResult"]
