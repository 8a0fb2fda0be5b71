# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Protocols for the external collaborators the orchestration layer drives."""

from __future__ import annotations

from collections.abc import Awaitable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from ..types.errors import AppError
from ..types.responses import CompletionResponse, TranscriptionResult

if TYPE_CHECKING:
    from ..errors.presentation import UIPresentation
    from ..scheduler.cancellation import CancellationToken


@runtime_checkable
class CompletionCollaborator(Protocol):
    """
    Sends a whole-response completion request to a hosted model.

    Implementations own the vendor wire format. A non-success response
    should be raised as ``HttpFailure``; a lost connection as
    ``ConnectivityError``.
    """

    async def send(
        self,
        messages: Sequence[Mapping[str, Any]],
        options: Mapping[str, Any],
        cancel_token: CancellationToken | None = None,
    ) -> CompletionResponse:
        """
        Send a completion request.

        Args:
            messages: Role-tagged messages (``ChatMessage.to_dict`` shape)
            options: Model, max_tokens and temperature
            cancel_token: Token to check for best-effort abort

        Returns:
            The completion
        """
        ...


@runtime_checkable
class TranscriptionCollaborator(Protocol):
    """Sends an audio file to a hosted speech-to-text model."""

    async def send(
        self,
        audio_ref: str,
        options: Mapping[str, Any],
        cancel_token: CancellationToken | None = None,
    ) -> TranscriptionResult:
        ...


@runtime_checkable
class ConnectivityChecker(Protocol):
    """
    Reports whether the device currently has network connectivity.

    A checker that raises is treated as offline.
    """

    async def is_connected(self) -> bool:
        ...


@runtime_checkable
class Navigator(Protocol):
    """
    UI collaborator that performs navigation for recovery actions.

    Destinations are recovery action ids such as ``update_key`` or
    ``open_settings``.
    """

    async def navigate(self, destination: str) -> None:
        ...


@runtime_checkable
class Presenter(Protocol):
    """UI collaborator that renders the treatment chosen for an error."""

    def present(self, presentation: UIPresentation) -> None | Awaitable[None]:
        ...


@runtime_checkable
class ErrorListener(Protocol):
    """UI-facing callback notified of every handled error."""

    def __call__(self, error: AppError) -> None | Awaitable[None]:
        ...


__all__ = [
    "CompletionCollaborator",
    "ConnectivityChecker",
    "ErrorListener",
    "Navigator",
    "Presenter",
    "TranscriptionCollaborator",
]
