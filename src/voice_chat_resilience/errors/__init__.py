# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Error classification, recovery and handling.

Modules:
- catalog: Messages, severity and strategy for every error type
- classifier: ErrorClassifier mapping raw failures to AppError values
- recovery: RecoveryActionRegistry building remedy menus
- presentation: Severity-driven UI treatment
- service: ErrorHandlingService façade
"""

from .catalog import ERROR_CATALOG, CatalogEntry, build_error, catalog_entry
from .classifier import (
    STATUS_ERROR_TYPES,
    ErrorClassifier,
    extract_status_code,
    parse_retry_after,
)
from .presentation import UIPresentation, UITreatment, present_error, treatment_for
from .recovery import DEFAULT_WAIT_RETRY_MS, RecoveryActionRegistry
from .service import (
    ERROR_LOG_KEY,
    METRICS_STATE_KEY,
    ErrorHandlingService,
    Subscription,
)

__all__ = [
    "DEFAULT_WAIT_RETRY_MS",
    "ERROR_CATALOG",
    "ERROR_LOG_KEY",
    "METRICS_STATE_KEY",
    "STATUS_ERROR_TYPES",
    "CatalogEntry",
    "ErrorClassifier",
    "ErrorHandlingService",
    "RecoveryActionRegistry",
    "Subscription",
    "UIPresentation",
    "UITreatment",
    "build_error",
    "catalog_entry",
    "extract_status_code",
    "parse_retry_after",
    "present_error",
    "treatment_for",
]
