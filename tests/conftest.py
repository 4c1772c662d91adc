"""Shared test fixtures for mailchimp-export.

Provides settings, client configuration and fake transports used across
the unit tests.
"""

from collections.abc import AsyncIterator, Callable, Iterable
from typing import Any

import httpx
import pytest
from pydantic import SecretStr

from mailchimp_export.base import ExportClientConfig
from mailchimp_export.client import MailChimpExportClient
from mailchimp_export.settings import Settings

API_KEY = "0123456789abcdef-us7"


# =============================================================================
# SETTINGS
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Provide test settings with safe defaults."""
    return Settings(
        _env_file=None,
        environment="testing",
        debug=True,
        mailchimp_api_key=SecretStr(API_KEY),
        mailchimp_secure=True,
        mailchimp_user_agent="test-suite/0.1",
    )


@pytest.fixture
def export_config() -> ExportClientConfig:
    return ExportClientConfig(api_key=API_KEY)


# =============================================================================
# TRANSPORT
# =============================================================================


def _chunked(chunks: Iterable[bytes | str], pulled: list[bytes] | None = None) -> AsyncIterator[bytes]:
    async def _gen() -> AsyncIterator[bytes]:
        for chunk in chunks:
            data = chunk.encode() if isinstance(chunk, str) else chunk
            if pulled is not None:
                pulled.append(data)
            yield data

    return _gen()


@pytest.fixture
def chunked() -> Callable[..., AsyncIterator[bytes]]:
    """Async byte stream factory yielding the given chunks one at a time.

    Appends each chunk to ``pulled`` as the transport reads it.
    """
    return _chunked


@pytest.fixture
def requests_seen() -> list[httpx.Request]:
    return []


@pytest.fixture
def make_client(
    export_config: ExportClientConfig,
    requests_seen: list[httpx.Request],
) -> Callable[..., MailChimpExportClient]:
    """Build a client whose transport answers with a canned response.

    ``respond`` is either an httpx.Response factory taking the request, or a
    body (str/bytes) returned with status 200.
    """

    def _make(respond: Any, *, config: ExportClientConfig | None = None) -> MailChimpExportClient:
        def handler(request: httpx.Request) -> httpx.Response:
            requests_seen.append(request)
            if callable(respond):
                return respond(request)
            return httpx.Response(200, content=respond)

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return MailChimpExportClient(config=config or export_config, http_client=http_client)

    return _make
