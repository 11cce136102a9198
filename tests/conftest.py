# tests/conftest.py
"""
Shared pytest configuration and fixtures for the Reduct client test suite.
"""

import asyncio
import logging
from typing import Callable, List, Optional

import httpx
import pytest
import respx

logging.basicConfig(level=logging.INFO)

BASE_URL = 'http://127.0.0.1:8383'


class FakeTransport:
    """In-memory transport answering requests with a handler function.

    Every send is recorded as (method, path, Authorization header) at the
    time of sending, since a replayed request is the same object.
    """

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.handler = handler
        self.calls: List[tuple] = []

    def build_request(self, method, path, params=None, content=None, json=None, headers=None) -> httpx.Request:
        return httpx.Request(
            method, f'{BASE_URL}{path}', params=params, content=content, json=json, headers=headers
        )

    async def send(self, request: httpx.Request, stream: bool = False) -> httpx.Response:
        self.calls.append((request.method, request.url.path, request.headers.get('Authorization')))
        # Yield to the loop so concurrent requests interleave
        await asyncio.sleep(0)
        result = self.handler(request)
        if isinstance(result, Exception):
            raise result
        return result

    def count(self, method: str, path: str) -> int:
        return sum(1 for call in self.calls if call[0] == method and call[1] == path)


class ChunkStream(httpx.AsyncByteStream):
    """Response body delivered in chunks, optionally failing after them."""

    def __init__(self, chunks: List[bytes], error: Optional[Exception] = None):
        self.chunks = chunks
        self.error = error

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error


@pytest.fixture
def fake_transport():
    """Factory for FakeTransport instances."""
    return FakeTransport


@pytest.fixture
def chunk_stream():
    """Factory for chunked response bodies."""
    return ChunkStream


@pytest.fixture
def storage():
    """respx router mocking the storage HTTP API."""
    with respx.mock(base_url=BASE_URL, assert_all_called=False) as router:
        yield router
