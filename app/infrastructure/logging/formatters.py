"""Structlog processors used by the logging setup."""

from typing import Any, Callable, Dict

EventDict = Dict[str, Any]
Processor = Callable[[Any, str, EventDict], EventDict]

REDACTED = "***REDACTED***"

# Key fragments whose values never reach the logs
SENSITIVE_PATTERNS = frozenset(
    {
        "password",
        "secret",
        "token",
        "api_key",
        "apikey",
        "authorization",
        "credential",
        "private_key",
        "webhook_url",
        "cookie",
        "bearer",
    }
)


def add_app_info(app_name: str, app_version: str = "unknown") -> Processor:
    """Stamp every entry with the application name and deployed version."""

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict["app_name"] = app_name
        event_dict["app_version"] = app_version
        return event_dict

    return processor


def mask_sensitive_data(
    mask_value: str = REDACTED,
    additional_patterns: frozenset[str] | None = None,
) -> Processor:
    """Replace values whose key looks like a credential.

    Keys are matched case-insensitively against ``SENSITIVE_PATTERNS``. Nested
    dictionaries are walked as well, since notification payloads and sender
    responses are logged as context and may carry tokens of their own.
    """
    patterns = SENSITIVE_PATTERNS | (additional_patterns or frozenset())

    def is_sensitive(key: Any) -> bool:
        key_lower = str(key).lower()
        return any(pattern in key_lower for pattern in patterns)

    def mask(values: Dict[Any, Any]) -> Dict[Any, Any]:
        masked = {}
        for key, value in values.items():
            if value is not None and is_sensitive(key):
                masked[key] = mask_value
            elif isinstance(value, dict):
                masked[key] = mask(value)
            else:
                masked[key] = value
        return masked

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        return mask(event_dict)

    return processor


def truncate_large_values(max_length: int = 500) -> Processor:
    """Cut long string values so one oversized payload or error body cannot flood the output."""

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        for key, value in event_dict.items():
            if isinstance(value, str) and len(value) > max_length:
                event_dict[key] = f"{value[:max_length]}...[truncated, {len(value)} chars total]"
        return event_dict

    return processor
