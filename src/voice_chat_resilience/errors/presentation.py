# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
UI treatment policy.

The treatment of an error depends on its severity alone, so the same
error produces the same experience on every screen:

    CRITICAL -> blocking modal, only closed by choosing an action
    HIGH     -> dismissible dialog offering the primary recovery action
    MEDIUM   -> transient notification
    LOW      -> logged only
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..types.errors import AppError, ErrorSeverity, RecoveryAction


class UITreatment(Enum):
    BLOCKING_MODAL = "blocking_modal"
    DISMISSIBLE_DIALOG = "dismissible_dialog"
    NOTIFICATION = "notification"
    LOG_ONLY = "log_only"


_TREATMENTS = {
    ErrorSeverity.CRITICAL: UITreatment.BLOCKING_MODAL,
    ErrorSeverity.HIGH: UITreatment.DISMISSIBLE_DIALOG,
    ErrorSeverity.MEDIUM: UITreatment.NOTIFICATION,
    ErrorSeverity.LOW: UITreatment.LOG_ONLY,
}


def treatment_for(severity: ErrorSeverity) -> UITreatment:
    return _TREATMENTS[severity]


@dataclass(frozen=True)
class UIPresentation:
    """
    What the UI should show for an error.

    Attributes:
        treatment: Kind of surface
        error: The error being presented
        title: Surface title
        message: User facing text
        actions: Buttons to offer
        dismissible: Whether the user may close it without choosing an action
        auto_dismiss_ms: Delay after which the surface expires, None if it never does
    """

    treatment: UITreatment
    error: AppError
    title: str
    message: str
    actions: tuple[RecoveryAction, ...] = ()
    dismissible: bool = True
    auto_dismiss_ms: int | None = None

    @property
    def visible(self) -> bool:
        return self.treatment is not UITreatment.LOG_ONLY


def present_error(error: AppError, auto_dismiss_ms: int = 5000) -> UIPresentation:
    """Decide the UI presentation of an error from its severity."""
    treatment = treatment_for(error.severity)

    if treatment is UITreatment.BLOCKING_MODAL:
        return UIPresentation(
            treatment,
            error,
            title="Critical Error",
            message=error.user_message,
            actions=error.recovery_actions,
            dismissible=False,
        )
    if treatment is UITreatment.DISMISSIBLE_DIALOG:
        primary = error.primary_action
        return UIPresentation(
            treatment,
            error,
            title="Error",
            message=error.user_message,
            actions=(primary,) if primary else (),
            auto_dismiss_ms=auto_dismiss_ms,
        )
    if treatment is UITreatment.NOTIFICATION:
        return UIPresentation(
            treatment,
            error,
            title="Notice",
            message=error.user_message,
            auto_dismiss_ms=auto_dismiss_ms,
        )
    return UIPresentation(treatment, error, title="", message=error.user_message)


__all__ = ["UIPresentation", "UITreatment", "present_error", "treatment_for"]
