"""Operation result types and status enums.

This module contains the standardized result type returned by channel
senders, the status enum, and error classifiers that turn transport
failures (HTTP responses, Slack API errors) into results.
"""

from infrastructure.operations.classifiers import (
    classify_http_response,
    classify_request_exception,
    classify_slack_error,
)
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    "OperationResult",
    "OperationStatus",
    "classify_http_response",
    "classify_request_exception",
    "classify_slack_error",
]
