"""Data models for Reduct Storage API payloads."""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class QuotaType(str, Enum):
    """Bucket quota policy."""

    NONE = 'NONE'
    FIFO = 'FIFO'


class BucketSettings(BaseModel):
    """Bucket settings. Every field is optional so a partial update can be sent."""

    max_block_size: Optional[int] = Field(None, description='Maximum size of a data block in bytes')
    quota_type: Optional[QuotaType] = Field(None, description='Quota policy of the bucket')
    quota_size: Optional[int] = Field(None, description='Quota size in bytes')
    max_block_records: Optional[int] = Field(None, description='Maximum number of records in a block')

    def serialize(self) -> Dict[str, Any]:
        """Dump only the fields that are set, in wire format."""
        return self.model_dump(mode='json', exclude_none=True)


class BucketInfo(BaseModel):
    """Bucket statistics."""

    name: str = Field(..., description='Name of the bucket')
    entry_count: int = Field(0, description='Number of entries in the bucket')
    size: int = Field(0, description='Size of stored data in bytes')
    oldest_record: int = Field(0, description='Timestamp of the oldest record in microseconds')
    latest_record: int = Field(0, description='Timestamp of the latest record in microseconds')


class EntryInfo(BaseModel):
    """Entry statistics."""

    name: str = Field(..., description='Name of the entry')
    size: int = Field(0, description='Size of stored data in bytes')
    block_count: int = Field(0, description='Number of blocks')
    record_count: int = Field(0, description='Number of records')
    oldest_record: int = Field(0, description='Timestamp of the oldest record in microseconds')
    latest_record: int = Field(0, description='Timestamp of the latest record in microseconds')


class FullBucketInfo(BaseModel):
    """Response of GET /b/{name}."""

    info: BucketInfo
    settings: BucketSettings
    entries: List[EntryInfo] = Field(default_factory=list)


class Defaults(BaseModel):
    """Server-wide defaults."""

    bucket: BucketSettings = Field(default_factory=BucketSettings)


class ServerInfo(BaseModel):
    """Response of GET /info."""

    version: str = Field(..., description='Server version')
    bucket_count: int = Field(0, description='Number of buckets')
    usage: int = Field(0, description='Stored data in bytes')
    uptime: int = Field(0, description='Server uptime in seconds')
    oldest_record: int = Field(0, description='Timestamp of the oldest record in microseconds')
    latest_record: int = Field(0, description='Timestamp of the latest record in microseconds')
    defaults: Defaults = Field(default_factory=Defaults)


class BucketList(BaseModel):
    """Response of GET /list."""

    buckets: List[BucketInfo] = Field(default_factory=list)


class QueryInfo(BaseModel):
    """Response of the open-query call."""

    id: Union[int, str] = Field(..., description='Opaque query identifier')


class RefreshTokenResponse(BaseModel):
    """Response of POST /auth/refresh."""

    access_token: str = Field(..., description='New short-lived access token')
