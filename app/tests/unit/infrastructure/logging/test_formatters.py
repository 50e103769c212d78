"""Unit tests for infrastructure.logging.formatters module.

Tests cover:
- add_app_info processor
- mask_sensitive_data processor
- truncate_large_values processor
"""

import pytest

from infrastructure.logging.formatters import (
    SENSITIVE_PATTERNS,
    add_app_info,
    mask_sensitive_data,
    truncate_large_values,
)


@pytest.mark.unit
class TestAddAppInfo:
    def test_adds_name_and_version(self):
        processor = add_app_info("notification_bot", "abc123")

        result = processor(None, "info", {"event": "test_event"})

        assert result["app_name"] == "notification_bot"
        assert result["app_version"] == "abc123"
        assert result["event"] == "test_event"

    def test_unknown_version_by_default(self):
        result = add_app_info("notification_bot")(None, "info", {"event": "x"})

        assert result["app_version"] == "unknown"


@pytest.mark.unit
class TestMaskSensitiveData:
    def test_channel_credentials_are_masked(self):
        processor = mask_sensitive_data()
        event_dict = {
            "event": "senders_configured",
            "telegram_bot_token": "123:abc",
            "webhook_url": "https://hooks.example.com/secret",
            "SLACK_TOKEN": "xoxb-1",
            "notification_id": "n-1",
        }

        result = processor(None, "info", event_dict)

        assert result["telegram_bot_token"] == "***REDACTED***"
        assert result["webhook_url"] == "***REDACTED***"
        assert result["SLACK_TOKEN"] == "***REDACTED***"
        assert result["notification_id"] == "n-1"

    def test_none_values_are_kept(self):
        result = mask_sensitive_data()(None, "info", {"token": None})

        assert result["token"] is None

    def test_additional_patterns(self):
        processor = mask_sensitive_data(
            mask_value="[hidden]", additional_patterns=frozenset({"chat_id"})
        )

        result = processor(None, "info", {"chat_id": "42"})

        assert result["chat_id"] == "[hidden]"

    def test_nested_payload_values_are_masked(self):
        processor = mask_sensitive_data()

        result = processor(
            None,
            "info",
            {"payload": {"text": "deploy done", "auth": {"bot_token": "123:abc"}}},
        )

        assert result["payload"] == {"text": "deploy done", "auth": {"bot_token": "***REDACTED***"}}

    def test_patterns_cover_credentials(self):
        assert {"token", "secret", "webhook_url", "authorization"} <= SENSITIVE_PATTERNS


@pytest.mark.unit
class TestTruncateLargeValues:
    def test_long_strings_are_truncated(self):
        processor = truncate_large_values(max_length=10)

        result = processor(None, "info", {"text": "x" * 25})

        assert result["text"].startswith("x" * 10 + "...[truncated")
        assert "25 chars total" in result["text"]

    def test_short_and_non_string_values_untouched(self):
        processor = truncate_large_values(max_length=10)

        result = processor(None, "info", {"text": "short", "count": 12345678901})

        assert result == {"text": "short", "count": 12345678901}
