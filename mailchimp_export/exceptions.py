"""mailchimp-export exception hierarchy.

Every error raised by the client derives from ExportError and carries a
correlation_id for tracing a failure across caller layers.

Usage:
    from mailchimp_export.exceptions import ExportError, ExportServiceError

    try:
        records = await client.list(id="abc123")
    except ExportServiceError as e:
        logger.error("Export rejected: %s (code %s)", e.message, e.code)
"""

import uuid
from typing import Any


class ExportError(Exception):
    """Base exception for all export client errors.

    Carries a correlation_id and, where known, the export operation name.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        correlation_id: str | None = None,
    ):
        self.operation = operation
        self.correlation_id = correlation_id or str(uuid.uuid4())
        super().__init__(message)


class ExportConnectionError(ExportError):
    """The transport could not complete the request.

    Raised for DNS failures, refused connections, timeouts and HTTP error
    statuses that do not carry a service error record.
    """

    def __init__(self, message: str, *, status_code: int | None = None, **kwargs: Any):
        self.status_code = status_code
        super().__init__(message, **kwargs)


class ExportParseError(ExportError):
    """A response body, or one of its lines, is not valid JSON.

    ``line`` is the zero-based index of the offending line from the start of
    the response body.
    """

    def __init__(self, message: str, *, line: int | None = None, **kwargs: Any):
        self.line = line
        super().__init__(message, **kwargs)

    def __str__(self) -> str:
        message = super().__str__()
        if self.line is None:
            return message
        return f"{message} (line {self.line})"


class ExportServiceError(ExportError):
    """The export service answered with an ``{"error": ..., "code": ...}`` record."""

    def __init__(self, message: str, code: Any = None, **kwargs: Any):
        self.message = message
        self.code = code
        super().__init__(message, **kwargs)

    def __str__(self) -> str:
        if self.code is None:
            return self.message
        return f"{self.message} (code {self.code})"


class ExportStreamError(ExportError):
    """A stream was used after it failed, was aborted, or was already consumed."""

    pass


class ExportConfigurationError(ExportError):
    """Errors from client configuration (API key format, unknown operations)."""

    pass
