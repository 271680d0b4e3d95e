"""Shared fixtures: an in-memory Redis double and a scripted page writer."""

from __future__ import annotations

from collections import defaultdict, deque
from typing import Any

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from ebookgen.jobs.queue import DocumentJobQueue
from ebookgen.jobs.store import JobStore
from ebookgen.utils.logging import get_log_buffer


class InMemoryRedis:
    """Subset of the redis.asyncio.Redis API used by JobStore."""

    def __init__(self) -> None:
        self.values: dict[str, Any] = {}
        self.lists: dict[str, deque] = defaultdict(deque)
        self.down = False
        self.commands: list[str] = []

    def _check(self, command: str) -> None:
        self.commands.append(command)
        if self.down:
            raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")

    async def ping(self) -> bool:
        self._check("PING")
        return True

    async def get(self, key: str) -> Any:
        self._check("GET")
        return self.values.get(key)

    async def set(self, key: str, value: Any) -> bool:
        self._check("SET")
        self.values[key] = value
        return True

    async def mget(self, keys: list[str]) -> list[Any]:
        self._check("MGET")
        return [self.values.get(key) for key in keys]

    async def rpush(self, key: str, *values: Any) -> int:
        self._check("RPUSH")
        self.lists[key].extend(values)
        return len(self.lists[key])

    async def lpop(self, key: str) -> Any:
        self._check("LPOP")
        items = self.lists.get(key)
        if not items:
            return None
        return items.popleft()

    async def llen(self, key: str) -> int:
        self._check("LLEN")
        return len(self.lists.get(key, ()))

    async def aclose(self) -> None:
        return None

    def pipeline(self, transaction: bool = True) -> "InMemoryPipeline":
        return InMemoryPipeline(self)


class InMemoryPipeline:
    def __init__(self, redis: InMemoryRedis) -> None:
        self.redis = redis
        self.ops: list[tuple[str, tuple]] = []

    def set(self, key: str, value: Any) -> "InMemoryPipeline":
        self.ops.append(("set", (key, value)))
        return self

    def rpush(self, key: str, *values: Any) -> "InMemoryPipeline":
        self.ops.append(("rpush", (key, *values)))
        return self

    async def execute(self) -> list[Any]:
        results = []
        for name, args in self.ops:
            results.append(await getattr(self.redis, name)(*args))
        self.ops.clear()
        return results


class ScriptedWriter:
    """PageWriter double: returns or raises the scripted outcomes in order."""

    def __init__(self, *outcomes: Any, default: str = "Generated page text.") -> None:
        self.outcomes = deque(outcomes)
        self.default = default
        self.calls: list[dict[str, Any]] = []

    async def generate(self, **kwargs: Any) -> str:
        self.calls.append(kwargs)
        outcome = self.outcomes.popleft() if self.outcomes else self.default
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def clear_log_buffer():
    get_log_buffer().clear()
    yield
    get_log_buffer().clear()


@pytest.fixture
def redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def store(redis: InMemoryRedis) -> JobStore:
    return JobStore(redis)


@pytest.fixture
def queue(store: JobStore) -> DocumentJobQueue:
    return DocumentJobQueue(store)
