"""Typed errors raised by the reporting services.

The HTTP layer maps each class to a status code; messages are short and safe to
show to a client.
"""

from __future__ import annotations


class AnalyticsError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(AnalyticsError):
    status_code = 404


class InvalidArgumentError(AnalyticsError):
    status_code = 400


class UpstreamError(AnalyticsError):
    """Database or aggregation failure; the message is always generic."""

    status_code = 500
