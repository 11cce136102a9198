"""Streaming of query results.

A query is opened once on the server and then polled record by record
with the returned query id. Each poll yields one record whose body is
still on the wire, so polls are strictly sequential.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Union

import httpx

from .auth import AuthRetryInterceptor
from .errors import ProtocolError, ReductError
from .models import QueryInfo
from .record import Record

logger = logging.getLogger(__name__)

TIME_HEADER = 'x-reduct-time'
LAST_HEADER = 'x-reduct-last'
NO_CONTENT_STATUS = 202


@dataclass
class QuerySession:
    """Server-side query cursor.

    Attributes:
        entry_path: API path of the entry (e.g., '/b/my-bucket/temp')
        query_id: Opaque id issued by the server
        exhausted: True once the server signalled there are no more records
    """

    entry_path: str
    query_id: Union[int, str]
    exhausted: bool = False


class QueryIterator:
    """Async iterator over the records of a query.

    Records come in server order (non-decreasing timestamps). The body of
    the previous record is discarded before the next poll if the caller
    has not consumed it. The iterator cannot be restarted.

    Args:
        interceptor: Interceptor used for polling
        session: Opened query session
        continuous: If True, a "no content" poll means no data yet and the
            query is polled again after poll_interval; otherwise it ends
            the iteration
        poll_interval: Delay between polls in continuous mode, in seconds

    Example:
        >>> async with await bucket.query('temp', start=1000, stop=5000) as records:
        ...     async for record in records:
        ...         data = await record.read_all()
    """

    def __init__(
        self,
        interceptor: AuthRetryInterceptor,
        session: QuerySession,
        continuous: bool = False,
        poll_interval: float = 1.0,
    ):
        self._interceptor = interceptor
        self.session = session
        self.continuous = continuous
        self.poll_interval = poll_interval
        self._current: Optional[Record] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        """True if no further polls will be made."""
        return self._closed or self.session.exhausted

    def __aiter__(self) -> 'QueryIterator':
        return self

    async def __anext__(self) -> Record:
        record = await self.next()
        if record is None:
            raise StopAsyncIteration
        return record

    async def next(self) -> Optional[Record]:
        """Poll the next record.

        Returns:
            Next record, or None when the query is exhausted or closed

        Raises:
            ProtocolError: If the response lacks the record headers
            ReductError: If the poll fails
        """
        await self._release_current()

        while not self.closed:
            try:
                response = await self._interceptor.request(
                    'GET', self.session.entry_path, params={'q': self.session.query_id}, stream=True
                )
            except ReductError:
                self._closed = True
                raise

            if response.status_code == NO_CONTENT_STATUS:
                await response.aclose()
                if not self.continuous:
                    logger.debug(f'Query {self.session.query_id} exhausted')
                    self.session.exhausted = True
                    return None

                logger.debug(f'Query {self.session.query_id} has no data yet, polling in {self.poll_interval}s')
                await asyncio.sleep(self.poll_interval)
                continue

            record = await self._parse_record(response)
            if record.last:
                logger.debug(f'Query {self.session.query_id} exhausted after record {record.timestamp}')
                self.session.exhausted = True
            self._current = record
            return record

        return None

    async def _parse_record(self, response: httpx.Response) -> Record:
        try:
            timestamp = int(response.headers[TIME_HEADER])
            size = int(response.headers['content-length'])
        except KeyError as e:
            await self._abort(response)
            raise ProtocolError(f'Record response is missing header {e}', response.status_code) from e
        except ValueError as e:
            await self._abort(response)
            raise ProtocolError(f'Record response has a malformed header: {e}', response.status_code) from e

        last = response.headers.get(LAST_HEADER) == '1'
        return Record(timestamp=timestamp, size=size, last=last, response=response)

    async def _abort(self, response: httpx.Response) -> None:
        self._closed = True
        await response.aclose()

    async def _release_current(self) -> None:
        if self._current is not None:
            await self._current.discard()
            self._current = None

    async def aclose(self) -> None:
        """Stop the iteration and release the body of the current record."""
        self._closed = True
        await self._release_current()

    async def __aenter__(self) -> 'QueryIterator':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


async def open_query(
    interceptor: AuthRetryInterceptor,
    entry_path: str,
    start: Optional[int] = None,
    stop: Optional[int] = None,
    ttl: Optional[int] = None,
    continuous: bool = False,
    poll_interval: float = 1.0,
) -> QueryIterator:
    """Open a query on an entry.

    Args:
        interceptor: Interceptor used for the open call and the polls
        entry_path: API path of the entry
        start: Lower bound in microseconds (inclusive), unbounded if None
        stop: Upper bound in microseconds (exclusive), unbounded if None
        ttl: Lifetime of the query on the server in seconds
        continuous: See QueryIterator
        poll_interval: See QueryIterator

    Returns:
        Iterator over the matching records

    Raises:
        RequestError: If the server rejects the query (e.g. 404 for a missing entry)
        ProtocolError: If the response carries no query id
    """
    response = await interceptor.request(
        'GET', f'{entry_path}/q', params={'start': start, 'stop': stop, 'ttl': ttl}
    )
    try:
        info = QueryInfo.model_validate(response.json())
    except ValueError as e:
        raise ProtocolError(f'Invalid query response: {e}', response.status_code) from e

    logger.debug(f'Opened query {info.id} on {entry_path} [{start}, {stop})')
    return QueryIterator(interceptor, QuerySession(entry_path, info.id), continuous, poll_interval)
