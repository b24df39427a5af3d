# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3Recon Object Store - Bucket-scoped access to an S3-compatible store.

The reconciliation engine only depends on the ObjectStore protocol.
S3ObjectStore implements it with aiobotocore, creating a client per call
so no connection outlives the operation that needed it.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, AsyncIterator, List, Protocol

import structlog
from botocore.exceptions import ClientError

from s3recon.config import ReconConfig
from s3recon.exceptions import ObjectStoreError

logger = structlog.get_logger()

# Error codes S3 and MinIO return for a missing bucket on HEAD
_MISSING_BUCKET_CODES = {"404", "NoSuchBucket", "NotFound"}


@dataclass(frozen=True)
class ObjectRecord:
    """Listing view of a stored object."""

    name: str
    size: int
    last_modified: datetime | None


@dataclass(frozen=True)
class ObjectData:
    """Full content of a stored object."""

    name: str
    content: bytes
    content_type: str
    last_modified: datetime | None


class ObjectStore(Protocol):
    """Operations the engine and the HTTP layer need from the store."""

    bucket: str

    async def bucket_exists(self) -> bool: ...

    async def make_bucket(self) -> None: ...

    async def list_objects(self) -> List[ObjectRecord]: ...

    async def get_object(self, name: str) -> ObjectData: ...

    async def put_object(self, name: str, data: bytes, size: int, content_type: str) -> None: ...

    async def remove_object(self, name: str) -> None: ...


class S3ObjectStore:
    """
    ObjectStore backed by aiobotocore.

    Errors from botocore propagate unchanged so callers can classify them
    (connection failures, access denied, missing keys).
    """

    def __init__(self, config: ReconConfig, session: Any | None = None):
        from aiobotocore.session import get_session

        self.bucket = config.bucket
        self._config = config
        self._session = session or get_session()

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[Any]:
        async with self._session.create_client(
            "s3",
            region_name=self._config.region,
            endpoint_url=self._config.endpoint_url,
            aws_access_key_id=self._config.access_key,
            aws_secret_access_key=self._config.secret_key,
        ) as client:
            yield client

    async def bucket_exists(self) -> bool:
        async with self._client() as client:
            try:
                await client.head_bucket(Bucket=self.bucket)
                return True
            except ClientError as e:
                if e.response.get("Error", {}).get("Code") in _MISSING_BUCKET_CODES:
                    return False
                raise

    async def make_bucket(self) -> None:
        kwargs: dict = {"Bucket": self.bucket}
        if self._config.region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {
                "LocationConstraint": self._config.region
            }
        async with self._client() as client:
            await client.create_bucket(**kwargs)
        logger.info("bucket_created", bucket=self.bucket)

    async def list_objects(self) -> List[ObjectRecord]:
        """List every object in the bucket (recursive, all pages)."""
        records: List[ObjectRecord] = []
        async with self._client() as client:
            paginator = client.get_paginator("list_objects_v2")
            async for page in paginator.paginate(Bucket=self.bucket):
                for obj in page.get("Contents", []):
                    records.append(
                        ObjectRecord(
                            name=obj["Key"],
                            size=obj.get("Size", 0),
                            last_modified=obj.get("LastModified"),
                        )
                    )
        return records

    async def get_object(self, name: str) -> ObjectData:
        async with self._client() as client:
            response = await client.get_object(Bucket=self.bucket, Key=name)
            async with response["Body"] as stream:
                content = await stream.read()
        return ObjectData(
            name=name,
            content=content,
            content_type=response.get("ContentType") or "application/octet-stream",
            last_modified=response.get("LastModified"),
        )

    async def put_object(self, name: str, data: bytes, size: int, content_type: str) -> None:
        if size != len(data):
            raise ObjectStoreError(
                "Declared size does not match payload",
                details={"name": name, "size": size, "actual": len(data)},
            )
        async with self._client() as client:
            await client.put_object(
                Bucket=self.bucket,
                Key=name,
                Body=data,
                ContentLength=size,
                ContentType=content_type,
            )

    async def remove_object(self, name: str) -> None:
        async with self._client() as client:
            await client.delete_object(Bucket=self.bucket, Key=name)
