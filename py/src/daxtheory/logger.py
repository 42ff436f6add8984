from __future__ import annotations

import json
import logging
from typing import IO, Any, Protocol, runtime_checkable


@runtime_checkable
class StructuredLogger(Protocol):
    def debug(self, message: str, *fields: dict[str, Any]) -> None: ...

    def info(self, message: str, *fields: dict[str, Any]) -> None: ...

    def warn(self, message: str, *fields: dict[str, Any]) -> None: ...

    def error(self, message: str, *fields: dict[str, Any]) -> None: ...

    def with_field(self, key: str, value: Any) -> StructuredLogger: ...

    def with_fields(self, fields: dict[str, Any]) -> StructuredLogger: ...


class NoOpLogger:
    def debug(self, _message: str, *fields: dict[str, Any]) -> None:
        return None

    def info(self, _message: str, *fields: dict[str, Any]) -> None:
        return None

    def warn(self, _message: str, *fields: dict[str, Any]) -> None:
        return None

    def error(self, _message: str, *fields: dict[str, Any]) -> None:
        return None

    def with_field(self, _key: str, _value: Any) -> StructuredLogger:
        return self

    def with_fields(self, _fields: dict[str, Any]) -> StructuredLogger:
        return self


def _has_stream_handler(logger: logging.Logger, stream: IO[str]) -> bool:
    return any(isinstance(h, logging.StreamHandler) and h.stream is stream for h in logger.handlers)


class StandardLogger:
    """Structured logger backed by the stdlib ``logging`` module.

    Bound fields and per-call fields are merged and rendered as a sorted JSON
    object after the message.
    """

    def __init__(
        self,
        *,
        name: str = "daxtheory",
        stream: IO[str] | None = None,
        level: int | None = None,
        logger: logging.Logger | None = None,
        fields: dict[str, Any] | None = None,
    ) -> None:
        """Wrap ``logger``, or the stdlib logger called ``name``.

        Handlers, level and propagation are left to the application's logging
        setup. ``stream`` attaches a handler for that stream once, and ``level``
        overrides the logger's level.
        """
        if logger is None:
            logger = logging.getLogger(name)
        if stream is not None and not _has_stream_handler(logger, stream):
            handler = logging.StreamHandler(stream)
            handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
            logger.addHandler(handler)
        if level is not None:
            logger.setLevel(level)
        self._logger = logger
        self._fields = dict(fields or {})

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def _log(self, level: int, message: str, fields: tuple[dict[str, Any], ...]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        merged = dict(self._fields)
        for f in fields:
            merged.update(f or {})
        if merged:
            self._logger.log(level, "%s %s", message, json.dumps(merged, sort_keys=True, default=str))
        else:
            self._logger.log(level, "%s", message)

    def debug(self, message: str, *fields: dict[str, Any]) -> None:
        self._log(logging.DEBUG, message, fields)

    def info(self, message: str, *fields: dict[str, Any]) -> None:
        self._log(logging.INFO, message, fields)

    def warn(self, message: str, *fields: dict[str, Any]) -> None:
        self._log(logging.WARNING, message, fields)

    def error(self, message: str, *fields: dict[str, Any]) -> None:
        self._log(logging.ERROR, message, fields)

    def with_field(self, key: str, value: Any) -> StructuredLogger:
        return self.with_fields({key: value})

    def with_fields(self, fields: dict[str, Any]) -> StructuredLogger:
        merged = dict(self._fields)
        merged.update(fields or {})
        return StandardLogger(logger=self._logger, fields=merged)


__all__ = [
    "NoOpLogger",
    "StandardLogger",
    "StructuredLogger",
]
