from __future__ import annotations

import sys
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(REPO_ROOT / "py" / "src"))

from daxtheory.errors import (  # noqa: E402
    ERR_CODE_NOT_IMPLEMENTED,
    DaxError,
    InvalidConfigError,
    MalformedEndpointError,
    RequestOptionsError,
    UnsupportedOperationError,
    new_error,
    unsupported,
    wrap_error,
)


class TestErrors(unittest.TestCase):
    def test_new_error_picks_type_by_code(self) -> None:
        self.assertIsInstance(new_error("dax.malformed_endpoint", "x"), MalformedEndpointError)
        self.assertIsInstance(new_error("dax.request_options", "x"), RequestOptionsError)
        self.assertIsInstance(new_error("dax.invalid_config", "x"), InvalidConfigError)
        self.assertIsInstance(new_error(ERR_CODE_NOT_IMPLEMENTED, "x"), UnsupportedOperationError)

    def test_wrap_error_keeps_cause(self) -> None:
        cause = ValueError("bad")
        err = wrap_error(cause, "dax.request_options", "failed")
        self.assertIsInstance(err, DaxError)
        self.assertIs(err.cause, cause)
        self.assertIs(err.__cause__, cause)
        self.assertEqual(str(err), "dax.request_options: failed: bad")

    def test_unsupported(self) -> None:
        err = unsupported("create_table")
        self.assertEqual(err.code, ERR_CODE_NOT_IMPLEMENTED)
        self.assertEqual(str(err), "NotImplementedException: create_table is not supported")
