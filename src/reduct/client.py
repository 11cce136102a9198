"""Async HTTP client for Reduct Storage.

This module provides the Client class, the entry point for server
information and bucket management.
"""

import logging
import os
from typing import List, Optional

from .auth import AuthRetryInterceptor, Credential
from .bucket import Bucket
from .errors import ConflictError
from .models import BucketInfo, BucketList, BucketSettings, ServerInfo
from .transport import DEFAULT_TIMEOUT, Transport

logger = logging.getLogger(__name__)

API_TOKEN_ENV = 'REDUCT_API_TOKEN'


class Client:
    """Async HTTP client for Reduct Storage.

    Args:
        url: URL of the storage (e.g., 'http://127.0.0.1:8383')
        api_token: Optional API token used to obtain access tokens (highest priority)
        timeout: Per-request timeout in seconds

    API Token Priority (highest to lowest):
        1. Explicit api_token parameter
        2. REDUCT_API_TOKEN environment variable

    Example:
        >>> async with Client('http://127.0.0.1:8383', api_token='my-token') as client:
        ...     bucket = await client.get_or_create_bucket('sensors')
        ...     await bucket.write('temp', b'21.5')
    """

    def __init__(self, url: str, api_token: Optional[str] = None, timeout: Optional[float] = DEFAULT_TIMEOUT):
        self.url = url.rstrip('/')

        # Resolve API token with priority: explicit param > env var
        if api_token is None:
            api_token = os.getenv(API_TOKEN_ENV) or None

        self.credential = Credential()
        self._transport = Transport(self.url, timeout=timeout)
        self._interceptor = AuthRetryInterceptor(self._transport, self.credential, api_token=api_token)

        logger.info(f'Initialized Reduct client for {self.url}')

    async def info(self) -> ServerInfo:
        """Get server information."""
        response = await self._interceptor.request('GET', '/info')
        return ServerInfo.model_validate(response.json())

    async def list(self) -> List[BucketInfo]:
        """Get statistics of every bucket."""
        response = await self._interceptor.request('GET', '/list')
        return BucketList.model_validate(response.json()).buckets

    async def create_bucket(self, name: str, settings: Optional[BucketSettings] = None) -> Bucket:
        """Create a new bucket.

        Args:
            name: Bucket name
            settings: Optional settings, server defaults for fields left unset

        Raises:
            ConflictError: If the bucket already exists
        """
        await self._interceptor.request('POST', f'/b/{name}', json=settings.serialize() if settings else None)
        logger.info(f'Created bucket {name}')
        return Bucket(name, self._interceptor)

    async def get_bucket(self, name: str) -> Bucket:
        """Get an existing bucket.

        Raises:
            NotFoundError: If the bucket does not exist
        """
        await self._interceptor.request('GET', f'/b/{name}')
        return Bucket(name, self._interceptor)

    async def get_or_create_bucket(self, name: str, settings: Optional[BucketSettings] = None) -> Bucket:
        """Create a bucket, or get it if it already exists."""
        try:
            return await self.create_bucket(name, settings)
        except ConflictError:
            logger.debug(f'Bucket {name} already exists')
            return await self.get_bucket(name)

    async def close(self):
        """Close the HTTP client and release resources."""
        await self._transport.close()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
