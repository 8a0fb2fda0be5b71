# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Request scheduling: the priority request queue, cooperative cancellation
and outbound deadline enforcement.
"""

from .cancellation import CancellationToken
from .outbound import call_with_deadline, with_deadline
from .request_queue import RequestQueue

__all__ = [
    "CancellationToken",
    "RequestQueue",
    "call_with_deadline",
    "with_deadline",
]
