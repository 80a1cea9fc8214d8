import asyncio

import pytest

from scopedstore import ConnectionManager, InMemoryStoreBackend

MEMORY_URI = "memory://test"


def run(coro):
    """Drive a coroutine to completion from a synchronous test."""
    return asyncio.run(coro)


@pytest.fixture
def backend():
    return InMemoryStoreBackend()


@pytest.fixture
def manager(backend):
    return ConnectionManager(backend_factory=lambda uri: backend)


@pytest.fixture
def root(manager):
    root = run(manager.initialize(MEMORY_URI))
    yield root
    run(manager.discard())
