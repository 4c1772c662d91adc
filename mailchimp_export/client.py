"""MailChimp Export API client.

Thin facade over BaseExportClient with one method per export operation,
plus a per-API-key client cache.
"""

from __future__ import annotations

import threading
from collections.abc import Awaitable, Mapping
from typing import Any

from mailchimp_export.base import BaseExportClient, ExportClientConfig
from mailchimp_export.operations import CAMPAIGN_SUBSCRIBER_ACTIVITY, LIST
from mailchimp_export.stream import ExportStream

__all__ = [
    "ExportClientConfig",
    "MailChimpExportClient",
    "get_export_client",
    "reset_export_client",
]


class MailChimpExportClient(BaseExportClient):
    """Client for the MailChimp Export API (version 1.0).

    Every operation accepts an optional params mapping and/or keyword
    arguments. Pass ``stream=True`` to get an ExportStream instead of an
    awaitable list.

    Usage:
        async with MailChimpExportClient(ExportClientConfig(api_key="...-us1")) as client:
            members = await client.list(id="abc123", status="subscribed")

            stream = client.campaign_subscriber_activity(id="c0ffee", stream=True)
            async for batch in stream:
                ...
    """

    def list(
        self,
        params: Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> Awaitable[list[Any]] | ExportStream:
        """Export the members of a list with all of their details.

        Params: ``id`` (list id), ``status`` (subscribed, unsubscribed,
        cleaned), ``segment`` (segmentation conditions), ``since``
        (``YYYY-MM-DD HH:mm:ss`` GMT). The first record is the header row.
        """
        return self.dispatch(LIST.name, {**(params or {}), **kwargs})

    def campaign_subscriber_activity(
        self,
        params: Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> Awaitable[list[Any]] | ExportStream:
        """Export all subscriber activity for a campaign.

        Params: ``id`` (campaign id), ``include_empty`` (also report
        subscribers without activity), ``since``. Each record maps an email
        address to its activity events; no activity yields an empty list.
        """
        return self.dispatch(CAMPAIGN_SUBSCRIBER_ACTIVITY.name, {**(params or {}), **kwargs})


# ─── Per-key client cache ────────────────────────────────────────────────────

_clients: dict[str, MailChimpExportClient] = {}
_client_lock = threading.Lock()
_DEFAULT_KEY = "__default__"


def get_export_client(api_key: str | None = None) -> MailChimpExportClient:
    """Get or create an export client for an API key.

    If api_key is None, the client is configured from settings.

    Thread-safe: Uses double-checked locking per key.
    """
    key = api_key or _DEFAULT_KEY
    if key not in _clients:
        with _client_lock:
            if key not in _clients:
                if api_key is None:
                    _clients[key] = MailChimpExportClient()
                else:
                    config = BaseExportClient._resolve_config().model_copy(update={"api_key": api_key})
                    _clients[key] = MailChimpExportClient(config=config)
    return _clients[key]


def reset_export_client(api_key: str | None = None) -> None:
    """Drop cached client(s).

    If api_key is provided, drops only that key's client; otherwise all.
    Dropped clients are not closed; callers that still hold one should
    close() it.
    """
    with _client_lock:
        if api_key is not None:
            _clients.pop(api_key, None)
        else:
            _clients.clear()
