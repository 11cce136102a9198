"""
Unit tests for query polling.

Polls are answered by an in-memory transport scripted per test.
"""

import httpx
import pytest

from reduct.auth import AuthRetryInterceptor, Credential
from reduct.errors import ProtocolError, ReductError, StreamError
from reduct.query import QueryIterator, QuerySession

ENTRY = '/b/bucket/temp'


def record_response(timestamp, body, last=False, chunk_stream=None):
    headers = {'x-reduct-time': str(timestamp)}
    if last:
        headers['x-reduct-last'] = '1'
    if chunk_stream is None:
        return httpx.Response(200, headers=headers, content=body)
    headers['content-length'] = str(len(body))
    return httpx.Response(200, headers=headers, stream=chunk_stream([body]))


def scripted(responses):
    """Handler returning the given responses in order, failing if polled past them."""
    queue = list(responses)

    def handler(request):
        assert queue, f'Unexpected poll: {request.url}'
        return queue.pop(0)

    return handler


def make_iterator(transport, **kwargs):
    interceptor = AuthRetryInterceptor(transport, Credential())
    return QueryIterator(interceptor, QuerySession(ENTRY, 5), **kwargs)


@pytest.mark.unit
@pytest.mark.asyncio
class TestQueryIterator:
    async def test_yields_until_last(self, fake_transport):
        transport = fake_transport(
            scripted([record_response(1000, b'abc'), record_response(4000, b'xyz', last=True)])
        )
        records = make_iterator(transport)

        received = []
        async for record in records:
            received.append((record.timestamp, record.size, await record.read_all()))

        assert received == [(1000, 3, b'abc'), (4000, 3, b'xyz')]
        assert records.session.exhausted
        assert len(transport.calls) == 2
        assert transport.calls[0][1] == ENTRY

    async def test_no_content_ends_query(self, fake_transport):
        transport = fake_transport(scripted([httpx.Response(202)]))
        records = make_iterator(transport)

        assert await records.next() is None
        assert records.session.exhausted
        assert await records.next() is None
        assert len(transport.calls) == 1

    async def test_no_content_after_records(self, fake_transport):
        transport = fake_transport(scripted([record_response(1000, b'a'), httpx.Response(202)]))
        records = make_iterator(transport)

        timestamps = [record.timestamp async for record in records]

        assert timestamps == [1000]
        assert len(transport.calls) == 2

    async def test_continuous_polls_again_on_no_content(self, fake_transport):
        transport = fake_transport(
            scripted([httpx.Response(202), httpx.Response(202), record_response(2000, b'late', last=True)])
        )
        records = make_iterator(transport, continuous=True, poll_interval=0)

        record = await records.next()

        assert record.timestamp == 2000
        assert await record.read_all() == b'late'
        assert await records.next() is None
        assert len(transport.calls) == 3

    async def test_unread_body_discarded_before_next_poll(self, fake_transport, chunk_stream):
        transport = fake_transport(
            scripted(
                [
                    record_response(1000, b'abc', chunk_stream=chunk_stream),
                    record_response(2000, b'def', last=True, chunk_stream=chunk_stream),
                ]
            )
        )
        records = make_iterator(transport)

        first = await records.next()
        second = await records.next()

        assert first.consumed
        with pytest.raises(StreamError):
            await first.read_all()
        assert await second.read_all() == b'def'

    async def test_missing_time_header(self, fake_transport):
        transport = fake_transport(scripted([httpx.Response(200, content=b'abc')]))
        records = make_iterator(transport)

        with pytest.raises(ProtocolError, match='x-reduct-time'):
            await records.next()

        assert records.closed
        assert not records.session.exhausted
        assert await records.next() is None

    async def test_malformed_time_header(self, fake_transport):
        transport = fake_transport(scripted([httpx.Response(200, headers={'x-reduct-time': 'soon'}, content=b'a')]))
        records = make_iterator(transport)

        with pytest.raises(ProtocolError):
            await records.next()

    async def test_poll_error_is_not_exhaustion(self, fake_transport):
        transport = fake_transport(
            scripted([record_response(1000, b'a'), ReductError('Request failed: connection reset')])
        )
        records = make_iterator(transport)

        assert (await records.next()).timestamp == 1000
        with pytest.raises(ReductError, match='connection reset'):
            await records.next()

        assert not records.session.exhausted
        assert records.closed

    async def test_aclose_stops_polling(self, fake_transport, chunk_stream):
        transport = fake_transport(scripted([record_response(1000, b'abc', chunk_stream=chunk_stream)]))

        async with make_iterator(transport) as records:
            record = await records.next()

        assert record.consumed
        assert records.closed
        assert await records.next() is None
        assert len(transport.calls) == 1

    async def test_partially_read_body_closed_before_next_poll(self, fake_transport, chunk_stream):
        first_response = httpx.Response(
            200, headers={'x-reduct-time': '1000', 'content-length': '4'}, stream=chunk_stream([b'ab', b'cd'])
        )
        transport = fake_transport(
            scripted([first_response, record_response(2000, b'ef', last=True, chunk_stream=chunk_stream)])
        )
        records = make_iterator(transport)

        first = await records.next()
        assert await first.read().__anext__() == b'ab'
        second = await records.next()

        assert first_response.is_closed
        assert second.timestamp == 2000
        assert await second.read_all() == b'ef'

    async def test_aclose_after_partial_read(self, fake_transport, chunk_stream):
        response = httpx.Response(
            200, headers={'x-reduct-time': '1000', 'content-length': '4'}, stream=chunk_stream([b'ab', b'cd'])
        )
        transport = fake_transport(scripted([response]))

        async with make_iterator(transport) as records:
            record = await records.next()
            async for chunk in record.read():
                break

        assert response.is_closed
        assert records.closed
        assert len(transport.calls) == 1
