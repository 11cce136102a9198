"""Reduct - async client for Reduct time-series object storage."""

from reduct.auth import AuthRetryInterceptor, AuthState, Credential
from reduct.bucket import Bucket
from reduct.client import Client
from reduct.errors import (
    AuthRefreshError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ProtocolError,
    ReductError,
    RequestError,
    StreamError,
    UnauthorizedError,
)
from reduct.models import BucketInfo, BucketSettings, EntryInfo, QuotaType, ServerInfo
from reduct.query import QueryIterator, QuerySession
from reduct.record import Record

__all__ = [
    'AuthRefreshError',
    'AuthRetryInterceptor',
    'AuthState',
    'Bucket',
    'BucketInfo',
    'BucketSettings',
    'Client',
    'ConflictError',
    'Credential',
    'EntryInfo',
    'ForbiddenError',
    'NotFoundError',
    'ProtocolError',
    'QueryIterator',
    'QuerySession',
    'QuotaType',
    'Record',
    'ReductError',
    'RequestError',
    'ServerInfo',
    'StreamError',
    'UnauthorizedError',
]
