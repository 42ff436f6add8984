from __future__ import annotations

import importlib.abc
import sys
import types
import unittest
from dataclasses import dataclass
from pathlib import Path
from typing import Any

REPO_ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(REPO_ROOT / "py" / "src"))

from daxtheory.config import ClientConfig, StaticEndpointResolver  # noqa: E402
from daxtheory.context import ContextError, with_cancel  # noqa: E402
from daxtheory.dialer import secure_dial_context  # noqa: E402
from daxtheory.errors import InvalidConfigError  # noqa: E402
from daxtheory.logger import NoOpLogger  # noqa: E402
from daxtheory.options import RequestOptions  # noqa: E402
from daxtheory.transport import Boto3Transport, _credential_kwargs, _normalize_endpoint  # noqa: E402

OPERATIONS = (
    "get_item",
    "put_item",
    "delete_item",
    "update_item",
    "query",
    "scan",
    "batch_get_item",
    "batch_write_item",
    "transact_get_items",
    "transact_write_items",
)


class _FakeBotoClient:
    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.closed = False

    def __getattr__(self, name: str):  # noqa: ANN204
        if name not in OPERATIONS:
            raise AttributeError(name)

        def call(**params: Any) -> dict[str, Any]:
            self.calls.append((name, dict(params)))
            return {"op": name}

        return call

    def close(self) -> None:
        self.closed = True


@dataclass
class _Creds:
    access_key: str
    secret_key: str
    token: str | None = None


class _RefreshableCreds:
    def get_frozen_credentials(self) -> _Creds:
        return _Creds("AKID", "SECRET", "TOKEN")


class RecordingLogger(NoOpLogger):
    def __init__(self) -> None:
        self.entries: list[tuple[str, dict[str, Any]]] = []

    def debug(self, message: str, *fields: dict[str, Any]) -> None:
        self.entries.append((message, dict(fields[0]) if fields else {}))


class TestEndpointResolution(unittest.TestCase):
    def test_normalize_endpoint(self) -> None:
        self.assertEqual(_normalize_endpoint(""), "")
        self.assertEqual(_normalize_endpoint("daxs://cluster.example.com"), "https://cluster.example.com")
        self.assertEqual(_normalize_endpoint("dax://cluster.example.com:8111"), "http://cluster.example.com:8111")
        self.assertEqual(_normalize_endpoint("http://localhost:8000"), "http://localhost:8000")
        self.assertEqual(_normalize_endpoint("cluster.example.com:8111"), "https://cluster.example.com:8111")

    def test_host_ports_win_over_resolvers(self) -> None:
        transport = Boto3Transport(
            ClientConfig(
                host_ports=("dax://node-1:8111",),
                endpoint_resolver=StaticEndpointResolver("http://legacy"),
            )
        )
        self.assertEqual(transport.endpoint_url, "http://node-1:8111")

    def test_resolver_with_options_preferred(self) -> None:
        transport = Boto3Transport(
            ClientConfig(
                endpoint_resolver=StaticEndpointResolver("http://legacy"),
                endpoint_resolver_with_options=StaticEndpointResolver("http://options"),
            )
        )
        self.assertEqual(transport.endpoint_url, "http://options")
        self.assertIsNone(Boto3Transport(ClientConfig()).endpoint_url)

    def test_credential_kwargs(self) -> None:
        self.assertEqual(_credential_kwargs(None), {})
        self.assertEqual(_credential_kwargs(object()), {})
        self.assertEqual(
            _credential_kwargs(_Creds("AKID", "SECRET")),
            {"aws_access_key_id": "AKID", "aws_secret_access_key": "SECRET"},
        )
        self.assertEqual(
            _credential_kwargs(_RefreshableCreds()),
            {"aws_access_key_id": "AKID", "aws_secret_access_key": "SECRET", "aws_session_token": "TOKEN"},
        )


class TestBoto3Transport(unittest.TestCase):
    def setUp(self) -> None:
        self.created: list[_FakeBotoClient] = []

        def client(service: str, **kwargs: Any) -> _FakeBotoClient:
            self.assertEqual(service, "dynamodb")
            c = _FakeBotoClient(**kwargs)
            self.created.append(c)
            return c

        fake_boto3 = types.ModuleType("boto3")
        fake_boto3.client = client  # type: ignore[attr-defined]
        self._prev = sys.modules.get("boto3")
        sys.modules["boto3"] = fake_boto3

    def tearDown(self) -> None:
        if self._prev is None:
            sys.modules.pop("boto3", None)
        else:
            sys.modules["boto3"] = self._prev

    def test_dispatches_every_operation(self) -> None:
        transport = Boto3Transport(ClientConfig(region="us-east-1", host_ports=("http://localhost:8000",)))
        opts = RequestOptions(logger=None, max_retries=2)
        for op in OPERATIONS:
            out = getattr(transport, op)({"TableName": "t"}, opts)
            self.assertEqual(out, {"op": op})

        self.assertEqual(len(self.created), 1)
        self.assertEqual([name for name, _ in self.created[0].calls], list(OPERATIONS))
        kwargs = self.created[0].kwargs
        self.assertEqual(kwargs["region_name"], "us-east-1")
        self.assertEqual(kwargs["endpoint_url"], "http://localhost:8000")
        self.assertTrue(kwargs["verify"])
        self.assertEqual(kwargs["config"].retries, {"total_max_attempts": 3, "mode": "standard"})

    def test_one_client_per_retry_count(self) -> None:
        transport = Boto3Transport(ClientConfig(skip_hostname_verification=True, credentials=_Creds("A", "B")))
        transport.get_item({}, RequestOptions(logger=None, max_retries=0))
        transport.get_item({}, RequestOptions(logger=None, max_retries=5))
        transport.get_item({}, RequestOptions(logger=None, max_retries=0))

        self.assertEqual(len(self.created), 2)
        self.assertFalse(self.created[0].kwargs["verify"])
        self.assertEqual(self.created[0].kwargs["aws_access_key_id"], "A")
        self.assertEqual(self.created[1].kwargs["config"].retries["total_max_attempts"], 6)

        transport.close()
        self.assertTrue(all(c.closed for c in self.created))

    def test_done_context_is_not_dispatched(self) -> None:
        transport = Boto3Transport(ClientConfig())
        ctx, cancel = with_cancel(None)
        cancel()
        with self.assertRaises(ContextError) as cm:
            transport.query({"TableName": "t"}, RequestOptions(logger=None, max_retries=1, context=ctx))
        self.assertEqual(cm.exception.code, "context.canceled")
        self.assertEqual(self.created, [])

    def test_logs_dispatch_through_request_logger(self) -> None:
        logger = RecordingLogger()
        transport = Boto3Transport(ClientConfig(host_ports=("daxs://cluster:9111",)))
        transport.scan({"TableName": "t"}, RequestOptions(logger=logger, max_retries=3))
        self.assertEqual(logger.entries[0][0], "daxtheory: dispatch")
        self.assertEqual(
            logger.entries[0][1],
            {"operation": "scan", "max_retries": 3, "endpoint": "https://cluster:9111"},
        )

    def test_botocore_errors_propagate(self) -> None:
        boom = RuntimeError("ProvisionedThroughputExceededException")

        def failing(**_params: Any) -> dict[str, Any]:
            raise boom

        transport = Boto3Transport(ClientConfig())
        transport.get_item({}, RequestOptions(logger=None, max_retries=1))
        self.created[0].put_item = failing  # type: ignore[method-assign]
        with self.assertRaises(RuntimeError) as cm:
            transport.put_item({}, RequestOptions(logger=None, max_retries=1))
        self.assertIs(cm.exception, boom)

    def test_dialer_tls_posture_reaches_botocore(self) -> None:
        dial = secure_dial_context("daxs://cluster:9111", True)
        transport = Boto3Transport(ClientConfig(host_ports=("daxs://cluster:9111",), dial_context=dial))
        transport.get_item({}, RequestOptions(logger=None, max_retries=1))
        self.assertFalse(self.created[0].kwargs["verify"])

        dial = secure_dial_context("daxs://cluster:9111", False)
        transport = Boto3Transport(ClientConfig(host_ports=("daxs://cluster:9111",), dial_context=dial))
        transport.get_item({}, RequestOptions(logger=None, max_retries=1))
        self.assertTrue(self.created[1].kwargs["verify"])

    def test_unusable_dial_context_is_rejected(self) -> None:
        def dial(_ctx: Any, _network: str, _address: str) -> Any:
            raise AssertionError("must not be called")

        with self.assertRaises(InvalidConfigError):
            Boto3Transport(ClientConfig(host_ports=("daxs://cluster:9111",), dial_context=dial))

        pinned = secure_dial_context("daxs://other-host:9111", False)
        with self.assertRaises(InvalidConfigError):
            Boto3Transport(ClientConfig(host_ports=("daxs://cluster:9111",), dial_context=pinned))

    def test_client_creation_logged_through_config_logger(self) -> None:
        logger = RecordingLogger()
        transport = Boto3Transport(ClientConfig(host_ports=("dax://cluster:8111",), logger=logger))
        transport.get_item({}, RequestOptions(logger=None, max_retries=4))
        self.assertEqual(
            logger.entries,
            [
                (
                    "daxtheory: created dynamodb client",
                    {"max_retries": 4, "endpoint": "http://cluster:8111", "verify": True},
                )
            ],
        )

    def test_client_cache_is_bounded(self) -> None:
        logger = RecordingLogger()
        transport = Boto3Transport(ClientConfig(logger=logger), max_clients=2)
        for retries in (0, 1, 0, 2, 3):
            transport.get_item({}, RequestOptions(logger=None, max_retries=retries))

        self.assertEqual(len(self.created), 4)
        self.assertEqual(list(transport._clients), [2, 3])
        # least recently used first
        self.assertTrue(self.created[1].closed)
        self.assertTrue(self.created[0].closed)
        self.assertFalse(self.created[2].closed)
        self.assertFalse(self.created[3].closed)
        evicted = [f["max_retries"] for m, f in logger.entries if m == "daxtheory: evicted dynamodb client"]
        self.assertEqual(evicted, [1, 0])


class TestMissingBoto3(unittest.TestCase):
    def test_missing_boto3_raises(self) -> None:
        class _BlockBoto3(importlib.abc.MetaPathFinder):
            def find_spec(self, fullname, _path, _target=None):  # noqa: ANN001
                if fullname == "boto3":
                    raise ModuleNotFoundError("blocked boto3")
                return None

        prev_mod = sys.modules.pop("boto3", None)
        finder = _BlockBoto3()
        sys.meta_path.insert(0, finder)
        try:
            transport = Boto3Transport(ClientConfig())
            with self.assertRaisesRegex(RuntimeError, "boto3 is required"):
                transport.get_item({}, RequestOptions(logger=None, max_retries=1))
        finally:
            sys.meta_path = [f for f in sys.meta_path if f is not finder]
            if prev_mod is not None:
                sys.modules["boto3"] = prev_mod
