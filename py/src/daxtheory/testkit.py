from __future__ import annotations

import datetime as dt
from collections import deque
from dataclasses import dataclass, replace
from typing import Any

from daxtheory.client import Dax
from daxtheory.config import Config, default_config
from daxtheory.context import ManualClock
from daxtheory.logger import NoOpLogger
from daxtheory.options import RequestOptions


@dataclass(slots=True)
class TransportCall:
    op: str
    params: dict[str, Any]
    options: RequestOptions


class StubTransport:
    """In-memory transport that replays queued outputs and records every call."""

    def __init__(self) -> None:
        self.calls: list[TransportCall] = []
        self.closed = False
        self._queues: dict[str, deque[dict[str, Any] | Exception]] = {}

    def push(self, op: str, *outputs: dict[str, Any] | Exception) -> StubTransport:
        self._queues.setdefault(op, deque()).extend(outputs)
        return self

    def requests(self, op: str) -> list[dict[str, Any]]:
        return [call.params for call in self.calls if call.op == op]

    def _handle(self, op: str, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]:
        self.calls.append(TransportCall(op=op, params=dict(params), options=options))
        queue = self._queues.get(op)
        if not queue:
            return {}
        out = queue.popleft()
        if isinstance(out, Exception):
            raise out
        return out

    def get_item(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]:
        return self._handle("get_item", params, options)

    def put_item(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]:
        return self._handle("put_item", params, options)

    def delete_item(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]:
        return self._handle("delete_item", params, options)

    def update_item(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]:
        return self._handle("update_item", params, options)

    def query(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]:
        return self._handle("query", params, options)

    def scan(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]:
        return self._handle("scan", params, options)

    def batch_get_item(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]:
        return self._handle("batch_get_item", params, options)

    def batch_write_item(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]:
        return self._handle("batch_write_item", params, options)

    def transact_get_items(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]:
        return self._handle("transact_get_items", params, options)

    def transact_write_items(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]:
        return self._handle("transact_write_items", params, options)

    def close(self) -> None:
        self.closed = True


@dataclass(slots=True)
class TestEnv:
    clock: ManualClock
    transport: StubTransport

    def __init__(self, *, now: dt.datetime | None = None) -> None:
        self.clock = ManualClock(now or dt.datetime.fromtimestamp(0, tz=dt.UTC))
        self.transport = StubTransport()

    def config(self, **changes: Any) -> Config:
        cfg = replace(default_config(), logger=NoOpLogger())
        return replace(cfg, **changes) if changes else cfg

    def client(self, config: Config | None = None) -> Dax:
        return Dax(config or self.config(), self.transport, clock=self.clock)


def create_test_env(*, now: dt.datetime | None = None) -> TestEnv:
    return TestEnv(now=now)


__all__ = [
    "StubTransport",
    "TestEnv",
    "TransportCall",
    "create_test_env",
]
