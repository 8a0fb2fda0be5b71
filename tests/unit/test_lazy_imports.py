# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Tests for lazy import patterns in __init__.py modules.

These tests cover the __getattr__ lazy import mechanisms used for the
optional Redis storage.
"""

import pytest


class TestTopLevelLazyImports:
    """Test lazy imports from the top-level voice_chat_resilience module."""

    def test_lazy_redis_storage_import(self):
        """Cover __getattr__ lazy import of RedisStorage from top-level module."""
        from voice_chat_resilience import RedisStorage
        from voice_chat_resilience.storage.redis import RedisStorage as Direct

        assert RedisStorage is Direct

    def test_unknown_attribute_error_message_format(self):
        """Verify the error message format for unknown attributes."""
        import voice_chat_resilience

        with pytest.raises(
            AttributeError,
            match=r"module 'voice_chat_resilience' has no attribute 'FakeClass'",
        ):
            _ = voice_chat_resilience.FakeClass


class TestStorageLazyImports:
    """Test lazy imports from the storage submodule."""

    def test_lazy_redis_storage_import(self):
        from voice_chat_resilience.storage import BaseStorage, RedisStorage

        assert issubclass(RedisStorage, BaseStorage)

    def test_unknown_attribute_raises_attribute_error(self):
        import voice_chat_resilience.storage

        with pytest.raises(AttributeError, match=r"has no attribute"):
            _ = voice_chat_resilience.storage.NonExistentStorage
