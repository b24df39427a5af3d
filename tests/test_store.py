# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3ObjectStore tests against a local moto S3 server.
"""

import pytest
from botocore.exceptions import ClientError

from s3recon.config import ReconConfig
from s3recon.exceptions import ObjectStoreError
from s3recon.store import S3ObjectStore

MOTO_PORT = 5381


@pytest.fixture(scope="module")
def moto_endpoint():
    """Run moto's S3 server for the module."""
    from moto.server import ThreadedMotoServer

    server = ThreadedMotoServer(ip_address="127.0.0.1", port=MOTO_PORT, verbose=False)
    server.start()
    yield f"http://127.0.0.1:{MOTO_PORT}"
    server.stop()


def _store(endpoint: str, bucket: str) -> S3ObjectStore:
    config = ReconConfig(
        bucket=bucket,
        endpoint_url=endpoint,
        access_key="testing",
        secret_key="testing",
        simulation_enabled=False,
    )
    return S3ObjectStore(config)


@pytest.mark.asyncio
async def test_bucket_lifecycle(moto_endpoint):
    store = _store(moto_endpoint, "lifecycle-bucket")

    assert await store.bucket_exists() is False
    await store.make_bucket()
    assert await store.bucket_exists() is True


@pytest.mark.asyncio
async def test_put_list_get_remove(moto_endpoint):
    store = _store(moto_endpoint, "objects-bucket")
    await store.make_bucket()

    await store.put_object("docs/a.txt", b"hello", 5, "text/plain")
    await store.put_object("b.bin", b"\x00\x01", 2, "application/octet-stream")

    records = sorted(await store.list_objects(), key=lambda r: r.name)
    assert [r.name for r in records] == ["b.bin", "docs/a.txt"]
    assert records[1].size == 5
    assert records[1].last_modified is not None

    data = await store.get_object("docs/a.txt")
    assert data.content == b"hello"
    assert data.content_type == "text/plain"

    await store.remove_object("docs/a.txt")
    assert [r.name for r in await store.list_objects()] == ["b.bin"]


@pytest.mark.asyncio
async def test_get_missing_object_raises_client_error(moto_endpoint):
    store = _store(moto_endpoint, "missing-bucket")
    await store.make_bucket()

    with pytest.raises(ClientError):
        await store.get_object("nope.txt")


@pytest.mark.asyncio
async def test_put_rejects_size_mismatch(moto_endpoint):
    store = _store(moto_endpoint, "mismatch-bucket")

    with pytest.raises(ObjectStoreError):
        await store.put_object("a.txt", b"hello", 3, "text/plain")


@pytest.mark.asyncio
async def test_backup_and_restore_through_s3(moto_endpoint):
    from s3recon.core import ReconciliationEngine
    from s3recon.metrics import MetricsRegistry
    from s3recon.snapshots import SnapshotRepository

    store = _store(moto_endpoint, "engine-bucket")
    await store.make_bucket()
    await store.put_object("a.txt", b"hello", 5, "text/plain")

    engine = ReconciliationEngine(store, SnapshotRepository(), MetricsRegistry())
    backup = await engine.backup()
    await store.remove_object("a.txt")
    restore = await engine.restore()

    assert backup.backup_files == ["a.txt"]
    assert restore.restored_names == ["a.txt"]
    assert (await store.get_object("a.txt")).content == b"hello"
