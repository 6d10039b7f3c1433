import asyncio

import pytest

from parley.storage import MemoryStore
from parley.store import SessionStore


class FakeGateway:
    def __init__(self, reply: str = "ok", error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.calls: list[list[dict]] = []

    async def send(self, messages: list[dict]) -> str:
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return self.reply


class ControlledGateway:
    """Each call parks on a future the test resolves by hand."""

    def __init__(self):
        self.calls: list[tuple[list[dict], asyncio.Future]] = []

    async def send(self, messages: list[dict]) -> str:
        future = asyncio.get_running_loop().create_future()
        self.calls.append((messages, future))
        return await future

    def resolve(self, index: int, reply: str) -> None:
        self.calls[index][1].set_result(reply)

    def fail(self, index: int, error: Exception) -> None:
        self.calls[index][1].set_exception(error)


@pytest.fixture
def storage():
    return MemoryStore()


@pytest.fixture
def store(storage):
    return SessionStore(storage)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def controlled_gateway():
    return ControlledGateway()


@pytest.fixture
def make_gateway():
    return FakeGateway
