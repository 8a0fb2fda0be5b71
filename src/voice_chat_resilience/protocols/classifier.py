# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Protocol for failure classification."""

from typing import Protocol, runtime_checkable

from ..types.errors import AppError


@runtime_checkable
class ClassifierProtocol(Protocol):
    """
    Protocol for failure classification.

    The request queue and the error handling service depend on this
    protocol rather than on the default ``ErrorClassifier`` so that an
    application can plug in vendor specific mappings.
    """

    def classify(
        self,
        failure: object,
        component: str | None = None,
        operation: str | None = None,
    ) -> AppError:
        """
        Classify a failure into a fresh ``AppError``.

        Args:
            failure: Exception, HTTP failure, timeout or existing AppError
            component: Component to record in the error context
            operation: Operation to record in the error context

        Returns:
            The classified error occurrence
        """
        ...
