"""Access token handling for the Reduct Storage client.

The storage issues short-lived access tokens in exchange for a long-lived
API token. Requests carry the short-lived token; when the server rejects
it, the interceptor refreshes it once and replays the request once.
"""

import asyncio
import logging
import threading
from enum import Enum
from typing import Optional, Tuple

import httpx

from .errors import AuthRefreshError, ReductError, UnauthorizedError, error_from_response
from .models import RefreshTokenResponse
from .transport import Transport

logger = logging.getLogger(__name__)

REFRESH_PATH = '/auth/refresh'


class Credential:
    """Thread-safe holder of the current short-lived access token.

    Every successful install bumps a generation counter, which lets the
    interceptor detect that somebody else already refreshed the token.
    """

    def __init__(self, token: Optional[str] = None):
        self._lock = threading.Lock()
        self._token = token
        self._generation = 0

    @property
    def token(self) -> Optional[str]:
        with self._lock:
            return self._token

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def snapshot(self) -> Tuple[Optional[str], int]:
        """Return the token and its generation as one consistent pair."""
        with self._lock:
            return self._token, self._generation

    def set(self, token: str) -> None:
        """Install a new access token."""
        with self._lock:
            self._token = token
            self._generation += 1


class AuthState(Enum):
    """States of a single logical request going through the interceptor."""

    INITIAL = 'initial'
    REFRESHING = 'refreshing'
    RETRYING = 'retrying'
    DONE = 'done'
    FAILED = 'failed'


class AuthRetryInterceptor:
    """Sends requests through a transport, refreshing an expired token once.

    A request rejected with 401 while an API token is configured triggers a
    refresh call made directly on the transport (so it is never intercepted
    itself), after which the request is replayed exactly once. Any failure
    of the replay is final.

    Args:
        transport: Transport used for all calls
        credential: Shared access token cell, updated on refresh
        api_token: Long-lived API token used to obtain access tokens
    """

    def __init__(self, transport: Transport, credential: Credential, api_token: Optional[str] = None):
        self.transport = transport
        self.credential = credential
        self._api_token = api_token
        self._refresh_lock = asyncio.Lock()

    def build_request(self, *args, **kwargs) -> httpx.Request:
        return self.transport.build_request(*args, **kwargs)

    async def request(self, method: str, path: str, stream: bool = False, **kwargs) -> httpx.Response:
        """Build and send a request.

        Args:
            method: HTTP method
            path: API path (e.g., '/b/my-bucket')
            stream: If True, a successful response body is left unread
            **kwargs: Passed to Transport.build_request()

        Returns:
            Successful HTTP response

        Raises:
            ReductError: If the request ultimately fails
        """
        return await self.send(self.build_request(method, path, **kwargs), stream=stream)

    async def send(self, request: httpx.Request, stream: bool = False) -> httpx.Response:
        """Send a request, refreshing the access token at most once.

        Returns:
            Successful HTTP response

        Raises:
            UnauthorizedError: If the request is rejected and cannot be re-authorized
            AuthRefreshError: If the token refresh itself fails
            RequestError: For any other error status
            ReductError: If the request could not be completed
        """
        state = AuthState.INITIAL
        response = None
        error = None
        generation = 0

        while True:
            logger.debug(f'{request.method} {request.url.path}: {state.name}')

            if state is AuthState.INITIAL:
                generation = self._authorize(request)
                try:
                    response = await self.transport.send(request, stream=stream)
                except ReductError as e:
                    error = e
                    state = AuthState.FAILED
                    continue

                if response.is_success:
                    state = AuthState.DONE
                    continue

                error = await self._error(response)
                if isinstance(error, UnauthorizedError) and self._api_token:
                    state = AuthState.REFRESHING
                else:
                    state = AuthState.FAILED

            elif state is AuthState.REFRESHING:
                try:
                    await self._refresh(generation, error)
                except AuthRefreshError as e:
                    error = e
                    state = AuthState.FAILED
                    continue

                self._authorize(request)
                state = AuthState.RETRYING

            elif state is AuthState.RETRYING:
                try:
                    response = await self.transport.send(request, stream=stream)
                except ReductError as e:
                    error = e
                    state = AuthState.FAILED
                    continue

                if response.is_success:
                    state = AuthState.DONE
                else:
                    error = await self._error(response)
                    state = AuthState.FAILED

            elif state is AuthState.DONE:
                return response

            else:
                raise error

    def _authorize(self, request: httpx.Request) -> int:
        token, generation = self.credential.snapshot()
        if token:
            request.headers['Authorization'] = f'Bearer {token}'
        return generation

    async def _error(self, response: httpx.Response) -> ReductError:
        # Streamed error responses must be drained before they can be decoded
        try:
            await response.aread()
        except httpx.HTTPError as e:
            return ReductError(f'Failed to read error response: {e}', response.status_code)
        finally:
            await response.aclose()
        return error_from_response(response)

    async def _refresh(self, generation: int, original: ReductError) -> None:
        """Obtain a new access token with the API token and install it.

        Concurrent refreshes are serialized; a caller whose failed attempt
        predates the current token reuses it instead of refreshing again.

        Raises:
            AuthRefreshError: If the refresh call fails or returns no token
        """
        async with self._refresh_lock:
            if self.credential.generation != generation:
                logger.debug('Access token already refreshed by a concurrent request')
                return

            logger.warning(f'Access token rejected ({original.message}), refreshing')
            request = self.transport.build_request(
                'POST', REFRESH_PATH, headers={'Authorization': f'Bearer {self._api_token}'}
            )
            try:
                response = await self.transport.send(request)
            except ReductError as e:
                logger.warning(f'Token refresh failed: {e}')
                raise AuthRefreshError(f'Token refresh failed: {e.message}', original=original) from e

            if not response.is_success:
                cause = error_from_response(response)
                logger.warning(f'Token refresh failed: {cause}')
                raise AuthRefreshError(f'Token refresh failed: {cause}', original=original) from cause

            try:
                refreshed = RefreshTokenResponse.model_validate(response.json())
            except ValueError as e:
                logger.warning('Token refresh response has no access token')
                raise AuthRefreshError('No access token in refresh response', original=original) from e

            self.credential.set(refreshed.access_token)
            logger.info('Access token refreshed')
