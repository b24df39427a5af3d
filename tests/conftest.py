# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Test fixtures for s3recon tests.

Provides an in-memory object store, a scripted random source, and
configuration/state helpers.
"""

import asyncio
from datetime import datetime, UTC
from typing import Dict, List, Sequence

import pytest
import pytest_asyncio

from s3recon.config import ReconConfig
from s3recon.store import ObjectData, ObjectRecord


class InMemoryObjectStore:
    """
    ObjectStore test double keeping objects in a dict.

    Failures can be injected per operation: ``list_error`` fails the
    enumeration, ``get_errors``/``put_errors`` fail individual names.
    Every call yields to the event loop once, like real I/O would.
    """

    def __init__(self, bucket: str = "testbucket"):
        self.bucket = bucket
        self.objects: Dict[str, ObjectData] = {}
        self.exists = True
        self.list_error: Exception | None = None
        self.get_errors: Dict[str, Exception] = {}
        self.put_errors: Dict[str, Exception] = {}
        self.put_calls: List[str] = []

    def add(self, name: str, content: bytes, content_type: str = "text/plain") -> None:
        self.objects[name] = ObjectData(
            name=name,
            content=content,
            content_type=content_type,
            last_modified=datetime.now(UTC),
        )

    async def bucket_exists(self) -> bool:
        await asyncio.sleep(0)
        return self.exists

    async def make_bucket(self) -> None:
        await asyncio.sleep(0)
        self.exists = True

    async def list_objects(self) -> List[ObjectRecord]:
        await asyncio.sleep(0)
        if self.list_error is not None:
            raise self.list_error
        return [
            ObjectRecord(name=name, size=len(data.content), last_modified=data.last_modified)
            for name, data in sorted(self.objects.items())
        ]

    async def get_object(self, name: str) -> ObjectData:
        await asyncio.sleep(0)
        if name in self.get_errors:
            raise self.get_errors[name]
        if name not in self.objects:
            raise KeyError(name)
        return self.objects[name]

    async def put_object(self, name: str, data: bytes, size: int, content_type: str) -> None:
        await asyncio.sleep(0)
        if name in self.put_errors:
            raise self.put_errors[name]
        self.put_calls.append(name)
        self.add(name, data, content_type)

    async def remove_object(self, name: str) -> None:
        await asyncio.sleep(0)
        self.objects.pop(name, None)


class ScriptedRandom:
    """
    Deterministic RandomSource.

    random() pops the scripted values (then returns 0.0), uniform() returns
    the midpoint, randint() the upper bound, choice() the first element.
    """

    def __init__(self, randoms: Sequence[float] = ()):
        self._randoms = list(randoms)

    def random(self) -> float:
        return self._randoms.pop(0) if self._randoms else 0.0

    def uniform(self, a: float, b: float) -> float:
        return (a + b) / 2

    def randint(self, a: int, b: int) -> int:
        return b

    def choice(self, seq):
        return seq[0]


@pytest.fixture
def scripted_random():
    """Factory for ScriptedRandom instances."""
    return ScriptedRandom


@pytest.fixture
def memory_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def test_config() -> ReconConfig:
    """Configuration with simulation off and immediate simulated resolutions."""
    return ReconConfig(
        bucket="testbucket",
        endpoint_url=None,
        access_key=None,
        secret_key=None,
        simulation_enabled=False,
        max_simulation_delay=0.0,
    )


@pytest.fixture
def test_state(test_config, memory_store):
    from s3recon.core import build_state

    return build_state(test_config, store=memory_store, random_source=ScriptedRandom())


@pytest.fixture
def engine(test_state):
    return test_state["engine"]


@pytest_asyncio.fixture
async def api_client(test_config, test_state):
    """httpx client bound to an app built over the in-memory store."""
    from httpx import ASGITransport, AsyncClient

    from s3recon.integrations.fastapi import create_app

    app = create_app(test_config, test_state)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
