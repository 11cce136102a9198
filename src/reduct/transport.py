"""HTTP transport for the Reduct Storage API."""

import logging
from typing import Dict, Optional, Union

import httpx

from .errors import ReductError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class Transport:
    """Issues HTTP requests against a single storage endpoint.

    The transport knows nothing about authentication or error statuses:
    non-success responses are returned as is and only network failures
    raise.

    Args:
        base_url: Base URL of the storage (e.g., 'http://localhost:8383')
        timeout: Per-request timeout in seconds
    """

    def __init__(self, base_url: str, timeout: Optional[float] = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            follow_redirects=True,
        )

    def build_request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Union[str, int, None]]] = None,
        content: Optional[bytes] = None,
        json: Optional[dict] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Request:
        """Build a request; query parameters set to None are omitted."""
        if params:
            params = {key: value for key, value in params.items() if value is not None}
        return self._http.build_request(
            method, path, params=params or None, content=content, json=json, headers=headers
        )

    async def send(self, request: httpx.Request, stream: bool = False) -> httpx.Response:
        """Send a request.

        Args:
            request: Request built with build_request()
            stream: If True, the body is left unread for incremental consumption

        Returns:
            HTTP response, whatever its status

        Raises:
            ReductError: If the request could not be completed
        """
        logger.debug(f'{request.method} {request.url}')
        try:
            return await self._http.send(request, stream=stream)
        except httpx.TransportError as e:
            raise ReductError(f'Request failed: {e}') from e

    async def close(self):
        """Close the underlying HTTP client."""
        await self._http.aclose()
