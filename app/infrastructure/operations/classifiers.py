"""Error classifiers for transport failures.

Converts transport-specific responses and exceptions (HTTP via requests,
Slack Web API) into standardized OperationResult objects. Centralizes the
transient/permanent decision so every channel sender retries the same way.

Key Functions:
- classify_http_response(): HTTP status codes → OperationResult
- classify_request_exception(): requests exceptions → OperationResult
- classify_slack_error(): SlackApiError → OperationResult

Usage:
    from infrastructure.operations.classifiers import (
        classify_http_response,
        classify_request_exception,
    )

    try:
        response = requests.post(url, json=body, timeout=10)
    except requests.RequestException as exc:
        return classify_request_exception(exc)
    return classify_http_response(response.status_code, response.headers)
"""

from typing import Any, Mapping, Optional

import requests
from slack_sdk.errors import SlackApiError

from infrastructure.operations.result import OperationResult

DEFAULT_RETRY_AFTER_SECONDS = 60

# Slack error codes that will never succeed on retry
PERMANENT_SLACK_ERRORS = frozenset(
    {
        "channel_not_found",
        "not_in_channel",
        "is_archived",
        "invalid_auth",
        "not_authed",
        "account_inactive",
        "token_revoked",
        "missing_scope",
        "user_not_found",
        "msg_too_long",
        "no_text",
    }
)


def parse_retry_after(value: Any) -> Optional[int]:
    """Parse a Retry-After value expressed in seconds.

    Args:
        value: Header or payload value (str/int/None)

    Returns:
        Seconds as int, or None if missing or malformed
    """
    if value is None:
        return None
    try:
        seconds = int(value)
    except (TypeError, ValueError):
        return None
    return max(seconds, 0)


def classify_http_response(
    status_code: int,
    headers: Optional[Mapping[str, str]] = None,
    body: Optional[str] = None,
    retry_after: Optional[int] = None,
) -> OperationResult:
    """Classify an HTTP response into OperationResult.

    Status Code Mapping:
    - 2xx: Delivered → SUCCESS
    - 429: Rate limiting → TRANSIENT_ERROR with retry_after
    - 408: Request timeout → TRANSIENT_ERROR
    - 5xx: Server error → TRANSIENT_ERROR
    - Other 4xx: Client error → PERMANENT_ERROR

    Args:
        status_code: HTTP status code
        headers: Optional response headers (for Retry-After)
        body: Optional response body excerpt for the message
        retry_after: Explicit retry delay (overrides the header)

    Returns:
        OperationResult with appropriate status and error_code
    """
    if 200 <= status_code < 300:
        return OperationResult.success(
            data={"status_code": status_code},
            message=f"HTTP {status_code}",
        )

    detail = f": {body[:200]}" if body else ""

    if status_code == 429:
        if retry_after is None and headers is not None:
            retry_after = parse_retry_after(headers.get("Retry-After"))
        return OperationResult.transient_error(
            f"Rate limited (429){detail}",
            error_code="RATE_LIMITED",
            retry_after=retry_after or DEFAULT_RETRY_AFTER_SECONDS,
        )

    if status_code == 408:
        return OperationResult.transient_error(
            f"Request timeout (408){detail}",
            error_code="REQUEST_TIMEOUT",
        )

    if 500 <= status_code < 600:
        return OperationResult.transient_error(
            f"Server error ({status_code}){detail}",
            error_code="SERVER_ERROR",
        )

    if 400 <= status_code < 500:
        return OperationResult.permanent_error(
            f"Client error ({status_code}){detail}",
            error_code="HTTP_ERROR",
        )

    # 1xx/3xx should never reach us with allow_redirects on
    return OperationResult.permanent_error(
        f"Unexpected HTTP status ({status_code}){detail}",
        error_code="UNEXPECTED_STATUS",
    )


def classify_request_exception(exc: Exception) -> OperationResult:
    """Classify a requests exception into OperationResult.

    Connection problems and timeouts are transient. Invalid URLs and schemas
    are configuration mistakes and therefore permanent.

    Args:
        exc: Exception raised by requests

    Returns:
        OperationResult with TRANSIENT_ERROR or PERMANENT_ERROR status
    """
    if isinstance(
        exc,
        (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema,
         requests.exceptions.InvalidSchema),
    ):
        return OperationResult.permanent_error(
            f"Invalid endpoint: {exc}",
            error_code="INVALID_ENDPOINT",
        )

    if isinstance(exc, requests.exceptions.Timeout):
        return OperationResult.transient_error(
            f"Request timed out: {exc}",
            error_code="TIMEOUT",
        )

    return OperationResult.transient_error(
        f"Connection error: {type(exc).__name__}: {exc}",
        error_code="CONNECTION_ERROR",
    )


def classify_slack_error(exc: Exception) -> OperationResult:
    """Classify Slack Web API errors into OperationResult.

    Args:
        exc: Exception raised by slack_sdk

    Returns:
        OperationResult with appropriate status and the Slack error code
    """
    if not isinstance(exc, SlackApiError):
        return OperationResult.transient_error(
            f"Slack connection error: {type(exc).__name__}: {exc}",
            error_code="CONNECTION_ERROR",
        )

    response = exc.response
    error_code = "unknown_error"
    if response is not None:
        error_code = response.get("error") or error_code

    if error_code == "ratelimited" or (
        response is not None and getattr(response, "status_code", None) == 429
    ):
        headers = getattr(response, "headers", None) or {}
        return OperationResult.transient_error(
            "Slack API rate limited",
            error_code="RATE_LIMITED",
            retry_after=parse_retry_after(headers.get("Retry-After"))
            or DEFAULT_RETRY_AFTER_SECONDS,
        )

    if error_code in PERMANENT_SLACK_ERRORS:
        return OperationResult.permanent_error(
            f"Slack API error: {error_code}",
            error_code=error_code,
        )

    return OperationResult.transient_error(
        f"Slack API error: {error_code}",
        error_code=error_code,
    )
