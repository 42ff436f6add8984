from __future__ import annotations

import datetime as dt
import sys
import unittest
from dataclasses import replace
from pathlib import Path
from typing import Any

REPO_ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(REPO_ROOT / "py" / "src"))

from daxtheory.config import Config, default_config  # noqa: E402
from daxtheory.context import ManualClock, background, with_cancel  # noqa: E402
from daxtheory.errors import DaxError, RequestOptionsError  # noqa: E402
from daxtheory.logger import NoOpLogger  # noqa: E402
from daxtheory.options import (  # noqa: E402
    RequestOptions,
    request_options,
    with_logger,
    with_max_retries,
    with_option,
)


class RecordingLogger(NoOpLogger):
    def __init__(self) -> None:
        self.entries: list[tuple[str, str, dict[str, Any]]] = []

    def debug(self, message: str, *fields: dict[str, Any]) -> None:
        self.entries.append(("debug", message, dict(fields[0]) if fields else {}))


def _config(**changes: Any) -> Config:
    return replace(default_config(), **{"logger": NoOpLogger(), **changes})


class TestRequestOptions(unittest.TestCase):
    def test_read_and_write_retry_selection(self) -> None:
        cfg = _config(read_retries=5, write_retries=1)
        ctx = background()

        read_opts, _ = request_options(cfg, True, ctx)
        write_opts, _ = request_options(cfg, False, ctx)

        self.assertEqual(read_opts.max_retries, 5)
        self.assertEqual(write_opts.max_retries, 1)
        self.assertIs(read_opts.logger, cfg.logger)

    def test_derived_context_has_release(self) -> None:
        clock = ManualClock()
        cfg = _config(request_timeout=dt.timedelta(seconds=30))

        opts, release = request_options(cfg, True, None, clock=clock)
        self.assertIsNotNone(release)
        self.assertIsNotNone(opts.context)
        self.assertEqual(opts.context.deadline(), clock.now() + dt.timedelta(seconds=30))

        release()
        self.assertTrue(opts.context.done())

    def test_caller_context_has_no_release(self) -> None:
        caller, _ = with_cancel(None)
        opts, release = request_options(_config(), False, caller)
        self.assertIsNone(release)
        self.assertIs(opts.context, caller)

    def test_zero_timeout_without_context(self) -> None:
        opts, release = request_options(_config(request_timeout=dt.timedelta(0)), True, None)
        self.assertIsNone(release)
        self.assertIsNone(opts.context)

    def test_overrides_apply_in_order(self) -> None:
        logger = NoOpLogger()
        seen: list[int] = []

        def record(opts: RequestOptions) -> None:
            seen.append(opts.max_retries)

        opts, _ = request_options(
            _config(),
            True,
            background(),
            with_max_retries(7),
            record,
            with_max_retries(0),
            with_logger(logger),
            with_option("consistent", True),
        )
        self.assertEqual(seen, [7])
        self.assertEqual(opts.max_retries, 0)
        self.assertIs(opts.logger, logger)
        self.assertEqual(opts.extra, {"consistent": True})

    def test_failing_override_wraps_error_and_releases_scope(self) -> None:
        logger = RecordingLogger()
        captured: list[RequestOptions] = []
        boom = ValueError("bad input")

        def failing(opts: RequestOptions) -> None:
            captured.append(opts)
            raise boom

        with self.assertRaises(RequestOptionsError) as cm:
            request_options(_config(logger=logger), False, None, failing, clock=ManualClock())

        self.assertIsInstance(cm.exception, DaxError)
        self.assertEqual(cm.exception.code, "dax.request_options")
        self.assertIs(cm.exception.cause, boom)
        self.assertTrue(captured[0].context.done())
        self.assertEqual(logger.entries[0][0], "debug")
        self.assertIn("bad input", logger.entries[0][2]["error"])

    def test_invalid_retry_override_rejected(self) -> None:
        with self.assertRaisesRegex(RequestOptionsError, "must not be negative"):
            request_options(_config(), True, background(), with_max_retries(-1))
        with self.assertRaisesRegex(RequestOptionsError, "must be an integer"):
            request_options(_config(), True, background(), with_max_retries("3"))  # type: ignore[arg-type]

    def test_empty_option_key_fails(self) -> None:
        with self.assertRaises(RequestOptionsError):
            request_options(_config(), True, background(), with_option(" ", 1))
