"""HTTP client for the AIDE+ REST API using httpx."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import httpx

from aideplus.config import ApiConfig
from aideplus.core.session import AuthSession
from aideplus.errors import ApiError, NetworkError
from aideplus.log import get_logger

logger = get_logger(__name__)


class ApiClient:
    """Thin wrapper adding the base URL, JSON handling and the bearer header.

    JSON endpoints answer with the ``{success, data, meta?}`` envelope; the
    envelope is returned as-is and unwrapping is left to the caller.
    """

    def __init__(self, config: ApiConfig, session: AuthSession, http: httpx.AsyncClient):
        self._config = config
        self._session = session
        self._http = http

    def url(self, path: str) -> str:
        return f"{self._config.base_url}{self._config.prefix}{path}"

    def _headers(self, token: str | None = None) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if token is None and self._session.is_authenticated:
            token = self._session.get_access_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            ApiError: non-2xx status or a JSON body that does not parse.
            NetworkError: the request could not be completed.
        """
        url = self.url(path)
        logger.debug("api_request", method=method, path=path)
        try:
            response = await self._http.request(
                method, url, json=json, params=params, headers=self._headers()
            )
        except httpx.RequestError as e:
            logger.error("api_connection_failed", method=method, path=path, error=str(e))
            raise NetworkError(f"Failed to reach {url}: {e}") from e

        if "application/json" not in response.headers.get("content-type", ""):
            if not response.is_success:
                raise ApiError(f"HTTP error! status: {response.status_code}", status=response.status_code)
            return response.text

        try:
            data = response.json()
        except ValueError as e:
            logger.warning("api_invalid_json", method=method, path=path, status=response.status_code)
            raise ApiError(
                f"Invalid JSON response (status {response.status_code})", status=response.status_code
            ) from e
        if not response.is_success:
            message = "API request failed"
            if isinstance(data, dict):
                message = data.get("message") or data.get("error") or message
            logger.warning("api_error", method=method, path=path, status=response.status_code)
            raise ApiError(str(message), status=response.status_code, data=data)
        return data

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, body: Any) -> Any:
        return await self.request("POST", path, json=body)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    @asynccontextmanager
    async def stream_post(self, path: str, body: Any, token: str) -> AsyncIterator[httpx.Response]:
        """Open a streaming POST and yield the response once headers arrive.

        The read timeout is lifted so a long answer is not cut mid-stream.
        Transport failures while the body is being read also surface as
        NetworkError.
        """
        url = self.url(path)
        headers = self._headers(token)
        headers["Accept"] = "text/event-stream"
        timeout = httpx.Timeout(self._config.timeout, read=None)
        try:
            async with self._http.stream(
                "POST", url, json=body, headers=headers, timeout=timeout
            ) as response:
                if not response.is_success:
                    logger.warning("stream_rejected", path=path, status=response.status_code)
                    raise NetworkError(f"Chat stream failed with HTTP {response.status_code}")
                logger.debug("stream_opened", path=path)
                yield response
        except httpx.RequestError as e:
            logger.error("stream_connection_failed", path=path, error=str(e))
            raise NetworkError(f"Chat stream to {url} failed: {e}") from e
