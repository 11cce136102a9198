"""Bucket operations."""

import logging
from typing import List, Optional, Union

from .auth import AuthRetryInterceptor
from .models import BucketInfo, BucketSettings, EntryInfo, FullBucketInfo
from .query import QueryIterator, open_query
from .util import Timestamp, now_microseconds, to_microseconds

logger = logging.getLogger(__name__)


class Bucket:
    """A bucket in Reduct Storage.

    Use Client.create_bucket(), Client.get_bucket() or
    Client.get_or_create_bucket() instead of creating it directly.

    Args:
        name: Bucket name
        interceptor: Interceptor shared with the owning client
    """

    def __init__(self, name: str, interceptor: AuthRetryInterceptor):
        self.name = name
        self._interceptor = interceptor

    @property
    def path(self) -> str:
        return f'/b/{self.name}'

    def _entry_path(self, entry: str) -> str:
        return f'{self.path}/{entry}'

    async def _full_info(self) -> FullBucketInfo:
        response = await self._interceptor.request('GET', self.path)
        return FullBucketInfo.model_validate(response.json())

    async def get_settings(self) -> BucketSettings:
        """Get bucket settings."""
        return (await self._full_info()).settings

    async def set_settings(self, settings: BucketSettings) -> None:
        """Update bucket settings.

        Args:
            settings: New settings; fields left as None are not changed
        """
        await self._interceptor.request('PUT', self.path, json=settings.serialize())

    async def info(self) -> BucketInfo:
        """Get bucket statistics."""
        return (await self._full_info()).info

    async def get_entry_list(self) -> List[EntryInfo]:
        """Get statistics of every entry in the bucket."""
        return (await self._full_info()).entries

    async def remove(self) -> None:
        """Remove the bucket with all its data."""
        await self._interceptor.request('DELETE', self.path)
        logger.info(f'Removed bucket {self.name}')

    async def write(self, entry: str, data: Union[bytes, str], timestamp: Optional[Timestamp] = None) -> None:
        """Write a record into an entry.

        Args:
            entry: Entry name
            data: Record body; str is encoded as UTF-8
            timestamp: Record time (microseconds or datetime), now if None
        """
        if isinstance(data, str):
            data = data.encode('utf-8')
        ts = to_microseconds(timestamp) if timestamp is not None else now_microseconds()
        await self._interceptor.request(
            'POST',
            self._entry_path(entry),
            params={'ts': ts},
            content=data,
            headers={'Content-Length': str(len(data))},
        )

    async def read(self, entry: str, timestamp: Optional[Timestamp] = None) -> bytes:
        """Read a record from an entry.

        Args:
            entry: Entry name
            timestamp: Record time (microseconds or datetime), latest record if None

        Returns:
            Record body
        """
        response = await self._interceptor.request(
            'GET', self._entry_path(entry), params={'ts': to_microseconds(timestamp)}
        )
        return response.content

    async def query(
        self,
        entry: str,
        start: Optional[Timestamp] = None,
        stop: Optional[Timestamp] = None,
        ttl: Optional[int] = None,
        continuous: bool = False,
        poll_interval: float = 1.0,
    ) -> QueryIterator:
        """Query the records of an entry in [start, stop).

        Args:
            entry: Entry name
            start: Lower bound (inclusive), unbounded if None
            stop: Upper bound (exclusive), unbounded if None
            ttl: Lifetime of the query on the server in seconds
            continuous: Keep polling when the server has no data yet
            poll_interval: Delay between polls in continuous mode, in seconds

        Returns:
            Async iterator over the records

        Example:
            >>> records = await bucket.query('temp', start=1000, stop=5000)
            >>> async for record in records:
            ...     print(record.timestamp, await record.read_all())
        """
        return await open_query(
            self._interceptor,
            self._entry_path(entry),
            start=to_microseconds(start),
            stop=to_microseconds(stop),
            ttl=ttl,
            continuous=continuous,
            poll_interval=poll_interval,
        )

    def __repr__(self) -> str:
        return f'Bucket(name={self.name!r})'

