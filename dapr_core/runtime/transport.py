"""
HTTP transport to the Dapr sidecar.

HttpTransport sends requests through a shared ConnectionPool, attaches the
API token, applies the per-request deadline and normalizes connectivity
failures according to the fail-fast setting.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
from loguru import logger
from pydantic import TypeAdapter
from pydantic_core import to_jsonable_python

from .errors import BackendUnavailableError, ErrorCode
from .options import ClientOptions, validate_endpoint
from .pool import ConnectionPool, get_shared_pool

API_TOKEN_HEADER = "dapr-api-token"

REMEDIATION = (
    "Ensure the Dapr sidecar is running. "
    "For local development, run: dapr run --app-id <your-app-id>. "
    "To disable this check, set DAPR_REQUIRED=false."
)


def to_wire(value: Any) -> Any:
    """Convert a value (pydantic model, dataclass, primitives...) to JSON-ready data."""
    return to_jsonable_python(value, by_alias=True)


def decode(content: bytes | str, response_type: Any = Any) -> Any:
    """Decode a JSON body into ``response_type``.

    An empty or whitespace-only body decodes to None.
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8")
    if not content or not content.strip():
        return None
    return TypeAdapter(response_type).validate_json(content)


class HttpTransport:
    """Request/response execution against one sidecar endpoint.

    Example:
        transport = HttpTransport(ClientOptions(endpoint="http://localhost:3500"))
        response = await transport.get("/v1.0/state/store/key")
    """

    def __init__(self, options: ClientOptions, pool: ConnectionPool | None = None):
        """Initialize the transport.

        Args:
            options: Client options. The endpoint is validated immediately.
            pool: Connection pool to borrow clients from. Defaults to the
                process-wide shared pool.

        Raises:
            ConfigurationError: If the endpoint is not an absolute http(s) URI.
        """
        self.base_url = validate_endpoint(options.endpoint)
        self.options = options
        self.pool = pool or get_shared_pool()

    def _build_url(self, path: str) -> str:
        """Build full URL from path.

        Args:
            path: Request path (with or without leading slash).

        Returns:
            Full URL including base_url.
        """
        path = path.lstrip("/")
        return f"{self.base_url}/{path}"

    def _build_headers(self, headers: dict[str, str] | None) -> dict[str, str]:
        merged = dict(headers or {})
        token = self.options.api_token
        if token and token.strip():
            merged[API_TOKEN_HEADER] = token
        return merged

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Send one request and return the fully read response.

        Args:
            method: HTTP method.
            path: Request path relative to the endpoint.
            body: Request body; omitted entirely when None.
            params: Query parameters; None values are dropped.
            headers: Extra request headers.

        Returns:
            The response, body already read and connection released.

        Raises:
            BackendUnavailableError: Connectivity failure with fail-fast on.
            httpx.TransportError: Connectivity failure with fail-fast off.
            httpx.HTTPStatusError: The sidecar returned a non-2xx status.
        """
        url = self._build_url(path)
        query = {k: v for k, v in (params or {}).items() if v is not None}
        kwargs: dict[str, Any] = {}
        if body is not None:
            kwargs["json"] = to_wire(body)

        logger.debug(f"Dapr {method} {path}")

        async with self.pool.lease() as client:
            request = client.build_request(
                method,
                url,
                params=query or None,
                headers=self._build_headers(headers),
                timeout=self.options.request_timeout,
                **kwargs,
            )
            # httpx timeouts bound each phase; this bounds the whole exchange
            try:
                response = await asyncio.wait_for(
                    self._exchange(client, request), timeout=self.options.request_timeout
                )
            except asyncio.TimeoutError:
                error = httpx.ReadTimeout(
                    f"Request exceeded {self.options.request_timeout:g}s deadline",
                    request=request,
                )
                raise self._connectivity_failure(method, path, error)
            except httpx.TransportError as e:
                raise self._connectivity_failure(method, path, e)

        response.raise_for_status()
        return response

    @staticmethod
    async def _exchange(client: httpx.AsyncClient, request: httpx.Request) -> httpx.Response:
        """Send a request and buffer its body, releasing the stream either way."""
        response = await client.send(request, stream=True)
        try:
            await response.aread()
        finally:
            await response.aclose()
        return response

    def _connectivity_failure(
        self, method: str, path: str, error: httpx.TransportError
    ) -> Exception:
        """Map a connectivity failure to the error the caller should see.

        With fail-fast on this is a BackendUnavailableError chained to the
        original error; otherwise the original httpx error itself.
        """
        if not self.options.fail_fast:
            return error

        if isinstance(error, httpx.TimeoutException):
            code = ErrorCode.TIMEOUT
            message = (
                f"Request to Dapr at {self.base_url} timed out after "
                f"{self.options.request_timeout:g}s."
            )
        else:
            code = ErrorCode.CONNECTION_ERROR
            message = f"Failed to communicate with Dapr at {self.base_url}."

        logger.warning(f"Dapr unavailable for {method} {path}: {error!r}")
        unavailable = BackendUnavailableError(
            code=code,
            message=message,
            remediation=REMEDIATION,
            endpoint=self.base_url,
            cause=error,
        )
        unavailable.__cause__ = error
        return unavailable

    async def get(
        self,
        path: str,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make a GET request."""
        return await self.request("GET", path, params=params, headers=headers)

    async def post(
        self,
        path: str,
        body: Any = None,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make a POST request with an optional JSON body."""
        return await self.request("POST", path, body=body, params=params, headers=headers)

    async def delete(
        self,
        path: str,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Make a DELETE request. The response body is discarded."""
        await self.request("DELETE", path, params=params, headers=headers)
