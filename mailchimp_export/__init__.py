"""Async client for the MailChimp Export API.

Builds authenticated export requests, sends them with httpx, and decodes
the line-delimited JSON answers into records, either all at once or in
batches as they arrive.
"""

__version__ = "1.0.0"

from mailchimp_export.client import (  # noqa: E402
    ExportClientConfig,
    MailChimpExportClient,
    get_export_client,
    reset_export_client,
)
from mailchimp_export.exceptions import (  # noqa: E402
    ExportConfigurationError,
    ExportConnectionError,
    ExportError,
    ExportParseError,
    ExportServiceError,
    ExportStreamError,
)
from mailchimp_export.framing import Batch  # noqa: E402
from mailchimp_export.operations import OPERATIONS, OperationDescriptor  # noqa: E402
from mailchimp_export.stream import ExportStream  # noqa: E402

__all__ = [
    "OPERATIONS",
    "Batch",
    "ExportClientConfig",
    "ExportConfigurationError",
    "ExportConnectionError",
    "ExportError",
    "ExportParseError",
    "ExportServiceError",
    "ExportStream",
    "ExportStreamError",
    "MailChimpExportClient",
    "OperationDescriptor",
    "__version__",
    "get_export_client",
    "reset_export_client",
]
