from __future__ import annotations

import datetime as dt
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

CancelFunc = Callable[[], None]


class Clock(Protocol):
    def now(self) -> dt.datetime: ...


@dataclass(slots=True)
class RealClock:
    def now(self) -> dt.datetime:
        return dt.datetime.now(tz=dt.UTC)


@dataclass(slots=True)
class ManualClock:
    _now: dt.datetime

    def __init__(self, now: dt.datetime | None = None) -> None:
        self._now = now or dt.datetime.fromtimestamp(0, tz=dt.UTC)

    def now(self) -> dt.datetime:
        return self._now

    def set(self, now: dt.datetime) -> None:
        self._now = now

    def advance(self, delta: dt.timedelta | float) -> dt.datetime:
        if not isinstance(delta, dt.timedelta):
            delta = dt.timedelta(seconds=float(delta))
        self._now = self._now + delta
        return self._now


@dataclass(slots=True)
class ContextError(Exception):
    code: str
    message: str

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


def _canceled() -> ContextError:
    return ContextError(code="context.canceled", message="context canceled")


def _deadline_exceeded() -> ContextError:
    return ContextError(code="context.deadline_exceeded", message="context deadline exceeded")


class Context:
    """Cancellation and deadline carrier threaded through a single call.

    A context is done once it (or any ancestor) is cancelled or once its
    deadline has passed according to its clock.
    """

    __slots__ = ("_parent", "_deadline", "_clock", "_cancelled")

    def __init__(
        self,
        *,
        parent: Context | None = None,
        deadline: dt.datetime | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._parent = parent
        self._clock = clock or (parent._clock if parent is not None else RealClock())
        parent_deadline = parent.deadline() if parent is not None else None
        if parent_deadline is not None and (deadline is None or parent_deadline < deadline):
            deadline = parent_deadline
        self._deadline = deadline
        self._cancelled = threading.Event()

    def deadline(self) -> dt.datetime | None:
        return self._deadline

    def remaining(self) -> dt.timedelta | None:
        if self._deadline is None:
            return None
        left = self._deadline - self._clock.now()
        return left if left > dt.timedelta(0) else dt.timedelta(0)

    def err(self) -> ContextError | None:
        if self._cancelled.is_set():
            return _canceled()
        if self._parent is not None:
            parent_err = self._parent.err()
            if parent_err is not None:
                return parent_err
        if self._deadline is not None and self._clock.now() >= self._deadline:
            return _deadline_exceeded()
        return None

    def done(self) -> bool:
        return self.err() is not None

    def _cancel(self) -> None:
        self._cancelled.set()


_BACKGROUND = Context()


def background() -> Context:
    return _BACKGROUND


def with_cancel(parent: Context | None) -> tuple[Context, CancelFunc]:
    ctx = Context(parent=parent or background())
    return ctx, ctx._cancel


def with_timeout(
    parent: Context | None,
    timeout: dt.timedelta,
    clock: Clock | None = None,
) -> tuple[Context, CancelFunc]:
    base = parent or background()
    clk = clock or base._clock
    ctx = Context(parent=base, deadline=clk.now() + timeout, clock=clk)
    return ctx, ctx._cancel


@dataclass(slots=True)
class CancellationScope:
    """A context paired with the release function that owns it, if any.

    ``release`` is None when the caller supplied the context. When present it
    must run on every exit path; ``close()`` and the context-manager protocol
    do that.
    """

    context: Context | None
    release: CancelFunc | None = None

    @property
    def owned(self) -> bool:
        return self.release is not None

    def close(self) -> None:
        if self.release is not None:
            self.release()

    def __enter__(self) -> CancellationScope:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def cancellation_scope(
    ctx: Context | None,
    timeout: dt.timedelta,
    clock: Clock | None = None,
) -> CancellationScope:
    if ctx is None and timeout > dt.timedelta(0):
        derived, release = with_timeout(background(), timeout, clock)
        return CancellationScope(context=derived, release=release)
    return CancellationScope(context=ctx)


__all__ = [
    "CancelFunc",
    "CancellationScope",
    "Clock",
    "Context",
    "ContextError",
    "ManualClock",
    "RealClock",
    "background",
    "cancellation_scope",
    "with_cancel",
    "with_timeout",
]
