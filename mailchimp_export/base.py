"""Base export client with request building and HTTP handling.

Provides data-center routing, query construction from the operation
table, the shared httpx client, and the buffered and streaming request
paths.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Awaitable, Mapping
from typing import Any

import httpx
from pydantic import BaseModel, Field

from mailchimp_export import __version__
from mailchimp_export.exceptions import (
    ExportConfigurationError,
    ExportConnectionError,
    ExportError,
    ExportParseError,
)
from mailchimp_export.framing import frame_document, frame_lines
from mailchimp_export.operations import (
    OPERATIONS,
    OperationDescriptor,
    filter_params,
    get_operation,
)
from mailchimp_export.settings import get_settings
from mailchimp_export.stream import CONNECT_ERROR_MESSAGE, ExportStream

logger = logging.getLogger(__name__)

API_HOST_TEMPLATE = "{datacenter}.api.mailchimp.com"


class ExportClientConfig(BaseModel):
    """Configuration for the export client."""

    api_key: str = Field(..., description="MailChimp API key (<key>-<datacenter>)")
    secure: bool = Field(default=False, description="Use HTTPS on port 443")
    user_agent: str = Field(default="", description="User-Agent prefix")
    version: str = Field(default="1.0", description="Export API version")
    timeout: float = Field(default=300.0, description="Request timeout in seconds")

    @property
    def datacenter(self) -> str:
        """Data-center code embedded in the API key after the first '-'."""
        _, sep, datacenter = self.api_key.partition("-")
        if not sep or not datacenter:
            raise ExportConfigurationError(
                "MailChimp API key has no data-center suffix (expected <key>-<datacenter>)"
            )
        return datacenter


class BaseExportClient:
    """Base HTTP client for the MailChimp Export API.

    Turns (operation, params) pairs into requests and routes them through
    the buffered or streaming path. Operation-specific methods are added by
    subclasses.
    """

    def __init__(
        self,
        config: ExportClientConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        operations: Mapping[str, OperationDescriptor] = OPERATIONS,
    ):
        """Initialize base export client.

        Args:
            config: Optional configuration (uses settings if not provided)
            http_client: Optional httpx client to send requests through.
                Clients passed in are not closed by close().
            operations: Operation table to dispatch against
        """
        if config is None:
            config = self._resolve_config()
        self.config = config
        self.operations = operations
        self._http_client = http_client
        self._owns_http_client = http_client is None

    @staticmethod
    def _resolve_config() -> ExportClientConfig:
        """Resolve client config from environment settings."""
        settings = get_settings()
        return ExportClientConfig(
            api_key=settings.mailchimp_api_key.get_secret_value(),
            secure=settings.mailchimp_secure,
            user_agent=settings.mailchimp_user_agent,
            version=settings.export_api_version,
            timeout=settings.export_timeout,
        )

    # ─── Request building ──────────────────────────────────────────────────

    @property
    def base_url(self) -> str:
        """Scheme, data-center host and explicit port."""
        host = API_HOST_TEMPLATE.format(datacenter=self.config.datacenter)
        if self.config.secure:
            return f"https://{host}:443"
        return f"http://{host}:80"

    @property
    def headers(self) -> dict[str, str]:
        agent = f"mailchimp-export/{__version__}"
        if self.config.user_agent:
            agent = f"{self.config.user_agent} {agent}"
        return {"User-Agent": agent}

    def build_request(
        self,
        operation: str | OperationDescriptor,
        params: Mapping[str, Any] | None = None,
    ) -> httpx.Request:
        """Build the GET request for an export operation.

        Only parameters in the operation's allow-list are forwarded; the API
        key is always injected.
        """
        descriptor = self._descriptor(operation)
        query = filter_params(descriptor, params, self.config.api_key)
        url = f"{self.base_url}/export/{self.config.version}/{descriptor.name}/"
        return httpx.Request("GET", url, params=query, headers=self.headers)

    def _descriptor(self, operation: str | OperationDescriptor) -> OperationDescriptor:
        if isinstance(operation, OperationDescriptor):
            return operation
        return get_operation(operation, self.operations)

    # ─── HTTP client ───────────────────────────────────────────────────────

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create a shared httpx.AsyncClient with connection pooling.

        The client is created lazily on first use and reused across requests.
        """
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.config.timeout,
                limits=httpx.Limits(
                    max_keepalive_connections=20,
                    max_connections=100,
                ),
            )
        return self._http_client

    async def close(self) -> None:
        """Close the shared HTTP client and release connections."""
        if self._http_client is not None and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> BaseExportClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ─── Dispatch ──────────────────────────────────────────────────────────

    def dispatch(
        self,
        operation: str | OperationDescriptor,
        params: Mapping[str, Any] | None = None,
    ) -> Awaitable[Any] | ExportStream:
        """Route an operation call on the ``stream`` flag in params.

        Returns:
            An ExportStream (returned immediately, before any network
            activity) when ``params["stream"]`` is truthy, otherwise an
            awaitable resolving to the decoded records.
        """
        descriptor = self._descriptor(operation)
        if params and params.get("stream"):
            return self.open_stream(descriptor, params)
        return self.execute(descriptor, params)

    async def execute(
        self,
        operation: str | OperationDescriptor,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        """Run an export in buffered mode.

        Sends one request, waits for the complete body and decodes it with
        the operation's framer.

        Returns:
            List of records, or the decoded document for operations without
            a framer.

        Raises:
            ExportConnectionError: The transport failed or the service
                answered with an HTTP error status.
            ExportParseError: The body is not valid line-delimited JSON.
            ExportServiceError: The service returned an error record.
        """
        descriptor = self._descriptor(operation)
        request = self.build_request(descriptor, params)
        logger.debug("Dispatching buffered export %s", descriptor.name)

        try:
            response = await self._get_http_client().send(request)
        except httpx.HTTPError as e:
            raise ExportConnectionError(CONNECT_ERROR_MESSAGE, operation=descriptor.name) from e

        try:
            return self._decode_body(descriptor, response)
        except ExportError as e:
            if e.operation is None:
                e.operation = descriptor.name
            raise

    def _decode_body(self, descriptor: OperationDescriptor, response: httpx.Response) -> Any:
        body = response.text
        if response.is_error:
            self._raise_for_status(descriptor, response.status_code, body)

        if descriptor.framer is None:
            return frame_document(body)
        return descriptor.framer(body).records

    @staticmethod
    def _raise_for_status(descriptor: OperationDescriptor, status_code: int, body: str) -> None:
        """Raise for an HTTP error status.

        A service error record in the body takes precedence over the status.
        """
        with contextlib.suppress(ExportParseError):
            frame_lines(body)
        raise ExportConnectionError(
            f"MailChimp API endpoint answered HTTP {status_code}",
            status_code=status_code,
            operation=descriptor.name,
        )

    def open_stream(
        self,
        operation: str | OperationDescriptor,
        params: Mapping[str, Any] | None = None,
    ) -> ExportStream:
        """Prepare a streaming export.

        The request is only sent once the returned stream is consumed.
        """
        descriptor = self._descriptor(operation)
        request = self.build_request(descriptor, params)

        async def opener() -> httpx.Response:
            logger.debug("Dispatching streaming export %s", descriptor.name)
            try:
                response = await self._get_http_client().send(request, stream=True)
            except httpx.HTTPError as e:
                raise ExportConnectionError(CONNECT_ERROR_MESSAGE, operation=descriptor.name) from e
            if response.is_error:
                try:
                    await response.aread()
                finally:
                    await response.aclose()
                self._raise_for_status(descriptor, response.status_code, response.text)
            return response

        return ExportStream(opener, descriptor.framer or frame_lines, operation=descriptor.name)
