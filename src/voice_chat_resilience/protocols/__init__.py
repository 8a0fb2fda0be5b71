# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Protocol definitions for pluggable components.

Available protocols:
- ClassifierProtocol: Turns raw failures into typed AppError values
- CompletionCollaborator: Sends completion requests to a hosted model
- TranscriptionCollaborator: Sends audio to a hosted speech model
- ConnectivityChecker: Reports whether the network is reachable
- Navigator: Performs UI navigation for recovery actions
- Presenter: Renders the UI treatment decided for an error
- ErrorListener: Callback notified of every handled error
"""

from .classifier import ClassifierProtocol
from .collaborators import (
    CompletionCollaborator,
    ConnectivityChecker,
    ErrorListener,
    Navigator,
    Presenter,
    TranscriptionCollaborator,
)

__all__ = [
    "ClassifierProtocol",
    "CompletionCollaborator",
    "ConnectivityChecker",
    "ErrorListener",
    "Navigator",
    "Presenter",
    "TranscriptionCollaborator",
]
