"""Delivery outcome classes shared by senders, classifiers and the worker."""

from enum import Enum


class OperationStatus(Enum):
    SUCCESS = "success"
    # may succeed later: network errors, timeouts, rate limits, 5xx
    TRANSIENT_ERROR = "transient_error"
    # will never succeed: bad credentials, unknown recipient, malformed payload
    PERMANENT_ERROR = "permanent_error"
