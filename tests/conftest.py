"""Pytest fixtures for live query tests."""
import asyncio
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

import pytest

from livequery import LiveQueryClient, LiveQuery, QueryBuilder
from livequery.transport import Transport


@dataclass
class Call:
    """A remote call recorded by FakeTransport."""
    method: str
    args: tuple
    future: asyncio.Future = field(repr=False)


class FakeTransport(Transport):
    """
    In-memory transport.

    Calls whose method has a canned response resolve immediately; all others
    stay pending until resolve() or fail() is called.
    """

    def __init__(self):
        self.calls: List[Call] = []
        self.responses: Dict[str, Any] = {}
        self.signal_handlers: Dict[str, List[Callable]] = defaultdict(list)
        self.exposed: Dict[str, Dict[str, Any]] = {}
        self.expose_count = 0

    def respond(self, method: str, result: Any) -> None:
        """Canned result, an exception instance, or a callable taking the call args."""
        self.responses[method] = result

    def call(self, method: str, *args: Any) -> asyncio.Future:
        future = asyncio.get_running_loop().create_future()
        self.calls.append(Call(method, args, future))
        if method in self.responses:
            result = self.responses[method]
            if callable(result):
                result = result(*args)
            if isinstance(result, BaseException):
                future.set_exception(result)
            else:
                future.set_result(result)
        return future

    def calls_to(self, method: str) -> List[Call]:
        return [c for c in self.calls if c.method == method]

    def pending(self, method: str) -> List[Call]:
        return [c for c in self.calls_to(method) if not c.future.done()]

    def resolve(self, method: str, result: Any) -> Call:
        call = self.pending(method)[0]
        call.future.set_result(result)
        return call

    def fail(self, method: str, exc: BaseException) -> Call:
        call = self.pending(method)[0]
        call.future.set_exception(exc)
        return call

    def on(self, signal: str, handler: Callable) -> None:
        self.signal_handlers[signal].append(handler)

    def off(self, signal: str, handler: Callable) -> None:
        handlers = self.signal_handlers.get(signal)
        if handlers and handler in handlers:
            handlers.remove(handler)
            if not handlers:
                del self.signal_handlers[signal]

    def fire(self, signal: str) -> list:
        return [handler() for handler in list(self.signal_handlers[signal])]

    def expose_handlers(self, mapping: Dict[str, Any]) -> None:
        self.expose_count += 1
        for namespace, models in mapping.items():
            self.exposed.setdefault(namespace, {}).update(models)

    def handler(self, model_name: str, kind: str, namespace: str = "MR") -> Callable:
        return self.exposed[namespace][model_name][kind]


async def settle() -> None:
    """Let scheduled tasks run until they block on pending futures."""
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.fixture
def transport() -> FakeTransport:
    """Fresh fake transport."""
    return FakeTransport()


@pytest.fixture
def client(transport: FakeTransport) -> LiveQueryClient:
    """Client over the fake transport with the default namespace."""
    return LiveQueryClient(transport, namespace="MR")


@pytest.fixture
def model(client: LiveQueryClient):
    """The 'todo' model."""
    return client.model("todo")


@pytest.fixture
def make_lq(model) -> Callable[..., LiveQuery]:
    """Factory for unexecuted live queries, used to drive the engine directly."""
    counter = iter(range(1, 1000))

    def _make(builder: QueryBuilder = None, docs=None, values=None, count=None) -> LiveQuery:
        descriptor, flags = (builder or QueryBuilder().find()).finalize()
        lq = LiveQuery(model, next(counter), descriptor, flags)
        if docs is not None:
            lq.docs.extend(docs)
            lq.count = len(lq.docs)
        if values is not None:
            lq.values.extend(values)
        if count is not None:
            lq.count = count
        return lq

    return _make


@pytest.fixture
def drain() -> Callable:
    """Awaitable helper that lets scheduled tasks run."""
    return settle
