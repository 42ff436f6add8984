from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from daxtheory.config import Config
from daxtheory.context import CancelFunc, Clock, Context, cancellation_scope
from daxtheory.errors import new_error, wrap_error
from daxtheory.logger import StructuredLogger


@dataclass(slots=True)
class RequestOptions:
    logger: StructuredLogger | None
    max_retries: int
    context: Context | None = None
    extra: dict[str, Any] = field(default_factory=dict)


OverrideFn = Callable[[RequestOptions], None]


def with_max_retries(max_retries: int) -> OverrideFn:
    def override(opts: RequestOptions) -> None:
        opts.max_retries = max_retries

    return override


def with_logger(logger: StructuredLogger | None) -> OverrideFn:
    def override(opts: RequestOptions) -> None:
        opts.logger = logger

    return override


def with_option(key: str, value: Any) -> OverrideFn:
    name = str(key or "").strip()

    def override(opts: RequestOptions) -> None:
        if not name:
            raise ValueError("option key is empty")
        opts.extra[name] = value

    return override


def _apply_overrides(opts: RequestOptions, overrides: tuple[OverrideFn, ...]) -> None:
    for override in overrides:
        try:
            override(opts)
        except Exception as exc:  # noqa: BLE001
            raise wrap_error(exc, "dax.request_options", "failed to apply request option") from exc

    retries = opts.max_retries
    if isinstance(retries, bool) or not isinstance(retries, int):
        raise new_error("dax.request_options", "max_retries must be an integer")
    if retries < 0:
        raise new_error("dax.request_options", "max_retries must not be negative")


def request_options(
    cfg: Config,
    read: bool,
    ctx: Context | None,
    *overrides: OverrideFn,
    clock: Clock | None = None,
) -> tuple[RequestOptions, CancelFunc | None]:
    """Resolve the options for one call.

    Returns the options and, when the context was derived here from the
    configured timeout, the release function the caller must invoke once the
    call finishes. A caller-supplied context is passed through untouched.
    """
    retries = cfg.read_retries if read else cfg.write_retries
    scope = cancellation_scope(ctx, cfg.request_timeout, clock)

    opts = RequestOptions(logger=cfg.logger, max_retries=retries, context=scope.context)
    try:
        _apply_overrides(opts, overrides)
    except Exception as exc:
        scope.close()
        if cfg.logger is not None:
            cfg.logger.debug("daxtheory: error merging request options", {"error": str(exc)})
        raise

    return opts, scope.release


__all__ = [
    "OverrideFn",
    "RequestOptions",
    "request_options",
    "with_logger",
    "with_max_retries",
    "with_option",
]
