import asyncio
from typing import Callable, Optional

import pytest

from ui_conversation import ConversationStore
from ui_panel import RenderChannel
from ui_schemas import RenderCommand, SessionConfig


class MemoryStateStore:
    def __init__(self, data: Optional[dict] = None):
        self.data = dict(data or {})
        self.writes = 0

    def get(self, key, default=None):
        return self.data.get(key, default)

    async def update(self, key, value):
        await asyncio.sleep(0)
        self.writes += 1
        self.data[key] = value


class FailingStateStore(MemoryStateStore):
    async def update(self, key, value):
        raise OSError("disk full")


class FakeBackend:
    """
    Scripted backend. Each call to stream_chat consumes the next script: a list of
    fragments, optionally ending in an exception instance that is raised instead.
    """

    def __init__(self, *scripts, after_yield: Optional[Callable[[int], None]] = None):
        self.scripts = [list(s) for s in scripts]
        self.after_yield = after_yield
        self.requests = []
        self.closed = 0

    async def stream_chat(self, request):
        self.requests.append(request)
        script = self.scripts.pop(0) if self.scripts else []
        try:
            for i, item in enumerate(script):
                await asyncio.sleep(0)
                if isinstance(item, Exception):
                    raise item
                yield item
                if self.after_yield is not None:
                    self.after_yield(i)
        finally:
            self.closed += 1


class FakePicker:
    def __init__(self, choice: Optional[str]):
        self.choice = choice
        self.calls = []

    async def pick(self, models, current):
        self.calls.append((list(models), current))
        return self.choice


def commands(events) -> list[str]:
    return [e.command.value for e in events]


def stream_texts(events) -> list[str]:
    return [e.text for e in events if e.command == RenderCommand.STREAM_RESPONSE]


@pytest.fixture
def state_store():
    return MemoryStateStore()


@pytest.fixture
def conversation(state_store):
    return ConversationStore(state_store)


@pytest.fixture
def channel():
    return RenderChannel()


@pytest.fixture
def config():
    return SessionConfig(model="llama3.2", temperature=0.7)
