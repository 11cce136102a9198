"""Record handle bound to a live response body."""

import logging
from datetime import datetime
from typing import AsyncIterator, Optional

import httpx

from .errors import StreamError
from .util import from_microseconds

logger = logging.getLogger(__name__)


class Record:
    """A record returned by a query.

    The metadata is fixed when the record is created; the body is read
    from the open response and can be consumed only once. Consume or
    discard it before asking the query for the next record.

    Args:
        timestamp: Record time in microseconds since the UNIX epoch
        size: Body size in bytes
        last: True if this is the final record of the query
        response: Response whose body is the record payload
    """

    __slots__ = ('_timestamp', '_size', '_last', '_response', '_consumed')

    def __init__(self, timestamp: int, size: int, last: bool = False, response: Optional[httpx.Response] = None):
        self._timestamp = timestamp
        self._size = size
        self._last = last
        self._response = response
        self._consumed = response is None

    @property
    def timestamp(self) -> int:
        return self._timestamp

    @property
    def size(self) -> int:
        return self._size

    @property
    def last(self) -> bool:
        return self._last

    @property
    def datetime(self) -> datetime:
        """Record time as a UTC datetime."""
        return from_microseconds(self._timestamp)

    @property
    def consumed(self) -> bool:
        """True once the body has been read or discarded."""
        return self._consumed

    async def read(self, chunk_size: Optional[int] = None) -> AsyncIterator[bytes]:
        """Iterate over the body chunk by chunk.

        Args:
            chunk_size: Chunk size in bytes, as received if None

        Raises:
            StreamError: If the body is already consumed or reading fails
        """
        if self._consumed:
            raise StreamError('Record body has already been consumed')
        self._consumed = True

        try:
            async for chunk in self._response.aiter_bytes(chunk_size):
                yield chunk
        except httpx.HTTPError as e:
            raise StreamError(f'Failed to read record body: {e}') from e
        finally:
            await self._response.aclose()

    async def read_all(self) -> bytes:
        """Read the whole body.

        Returns:
            Body of exactly `size` bytes

        Raises:
            StreamError: If reading fails or the body size differs from `size`.
                Nothing read so far is returned.
        """
        chunks = []
        async for chunk in self.read():
            chunks.append(chunk)

        data = b''.join(chunks)
        if len(data) != self._size:
            raise StreamError(f'Record body has {len(data)} bytes, expected {self._size}')
        return data

    async def discard(self) -> None:
        """Drop the unread body and release the connection.

        Also closes a body abandoned part-way through read().
        """
        self._consumed = True
        if self._response is not None and not self._response.is_closed:
            logger.debug(f'Discarding unread body of record {self._timestamp}')
            await self._response.aclose()

    def __repr__(self) -> str:
        return f'Record(timestamp={self._timestamp}, size={self._size}, last={self._last})'
