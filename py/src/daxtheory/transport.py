from __future__ import annotations

import threading
import urllib.parse
from collections import OrderedDict
from typing import Any, Protocol, runtime_checkable

from daxtheory.config import ClientConfig
from daxtheory.dialer import ProxyDialer, TLSConfig
from daxtheory.errors import new_error
from daxtheory.options import RequestOptions

READ_OPERATIONS = ("get_item", "query", "scan", "batch_get_item", "transact_get_items")
WRITE_OPERATIONS = ("put_item", "delete_item", "update_item", "batch_write_item", "transact_write_items")

_MAX_CLIENTS = 8


class Transport(Protocol):
    def get_item(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]: ...

    def put_item(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]: ...

    def delete_item(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]: ...

    def update_item(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]: ...

    def query(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]: ...

    def scan(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]: ...

    def batch_get_item(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]: ...

    def batch_write_item(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]: ...

    def transact_get_items(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]: ...

    def transact_write_items(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]: ...


@runtime_checkable
class Closer(Protocol):
    def close(self) -> None: ...


def _normalize_endpoint(endpoint: str) -> str:
    value = str(endpoint or "").strip()
    if not value:
        return ""
    if value.startswith("daxs://"):
        return "https://" + value[len("daxs://") :]
    if value.startswith("dax://"):
        return "http://" + value[len("dax://") :]
    if value.startswith(("https://", "http://")):
        return value
    return "https://" + value


def _endpoint_url(config: ClientConfig) -> str | None:
    for host_port in config.host_ports:
        url = _normalize_endpoint(host_port)
        if url:
            return url
    if config.endpoint_resolver_with_options is not None:
        return _normalize_endpoint(config.endpoint_resolver_with_options.resolve_endpoint("dynamodb", config.region))
    if config.endpoint_resolver is not None:
        return _normalize_endpoint(config.endpoint_resolver.resolve_endpoint("dynamodb", config.region))
    return None


def _credential_kwargs(credentials: Any) -> dict[str, Any]:
    if credentials is None:
        return {}
    frozen = credentials.get_frozen_credentials() if hasattr(credentials, "get_frozen_credentials") else credentials
    access_key = getattr(frozen, "access_key", None)
    secret_key = getattr(frozen, "secret_key", None)
    if not access_key or not secret_key:
        return {}
    out: dict[str, Any] = {"aws_access_key_id": access_key, "aws_secret_access_key": secret_key}
    token = getattr(frozen, "token", None)
    if token:
        out["aws_session_token"] = token
    return out


def _verify_tls(config: ClientConfig, endpoint_url: str | None) -> bool:
    """Resolve the certificate verification flag handed to botocore.

    botocore owns its sockets, so a dial function only contributes its TLS
    posture. Only dialers built by ``secure_dial_context`` can be read that way.
    """

    verify = not config.skip_hostname_verification
    dial = config.dial_context
    if dial is None:
        return verify

    dialer = getattr(dial, "__self__", None)
    if not isinstance(dialer, ProxyDialer):
        raise new_error(
            "dax.invalid_config",
            "boto3 transport only accepts dial functions from secure_dial_context",
        )

    tls = dialer.config or TLSConfig()
    if tls.insecure_skip_verify:
        return False
    if tls.server_name:
        host = urllib.parse.urlsplit(endpoint_url).hostname if endpoint_url else None
        if host != tls.server_name:
            raise new_error(
                "dax.invalid_config",
                f"pinned server name {tls.server_name!r} does not match endpoint host {host!r}",
            )
    return verify


class Boto3Transport:
    """Transport that talks to a DynamoDB-compatible endpoint through botocore.

    botocore fixes retry behaviour per client, so one client is kept for each
    distinct ``max_retries`` value seen. The least recently used client is
    closed once more than ``max_clients`` are cached.
    """

    def __init__(self, config: ClientConfig, *, max_clients: int = _MAX_CLIENTS) -> None:
        self.config = config
        self.endpoint_url = _endpoint_url(config)
        self.verify = _verify_tls(config, self.endpoint_url)
        self.max_clients = max(1, int(max_clients))
        self._clients: OrderedDict[int, Any] = OrderedDict()
        self._lock = threading.Lock()

    def _client(self, max_retries: int):
        evicted: list[tuple[int, Any]] = []
        with self._lock:
            client = self._clients.get(max_retries)
            if client is not None:
                self._clients.move_to_end(max_retries)
                return client

            try:
                import boto3  # type: ignore
                from botocore.config import Config as BotoConfig  # type: ignore
            except ImportError as exc:
                raise RuntimeError("daxtheory: boto3 is required for the default transport") from exc

            cfg = self.config
            client = boto3.client(
                "dynamodb",
                region_name=cfg.region or None,
                endpoint_url=self.endpoint_url,
                verify=self.verify,
                config=BotoConfig(
                    connect_timeout=cfg.connect_timeout.total_seconds(),
                    read_timeout=cfg.read_timeout.total_seconds(),
                    max_pool_connections=max(1, int(cfg.max_pending_connections_per_host)),
                    retries={"total_max_attempts": int(max_retries) + 1, "mode": "standard"},
                ),
                **_credential_kwargs(cfg.credentials),
            )
            self._clients[max_retries] = client
            while len(self._clients) > self.max_clients:
                evicted.append(self._clients.popitem(last=False))

        logger = cfg.logger
        if logger is not None:
            logger.debug(
                "daxtheory: created dynamodb client",
                {"max_retries": max_retries, "endpoint": self.endpoint_url or "", "verify": self.verify},
            )
        for retries, old in evicted:
            if logger is not None:
                logger.debug("daxtheory: evicted dynamodb client", {"max_retries": retries})
            _close_client(old)
        return client

    def _invoke(self, operation: str, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]:
        ctx = options.context
        if ctx is not None:
            err = ctx.err()
            if err is not None:
                raise err

        if options.logger is not None:
            options.logger.debug(
                "daxtheory: dispatch",
                {"operation": operation, "max_retries": options.max_retries, "endpoint": self.endpoint_url or ""},
            )

        client = self._client(options.max_retries)
        return dict(getattr(client, operation)(**params) or {})

    def get_item(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]:
        return self._invoke("get_item", params, options)

    def put_item(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]:
        return self._invoke("put_item", params, options)

    def delete_item(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]:
        return self._invoke("delete_item", params, options)

    def update_item(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]:
        return self._invoke("update_item", params, options)

    def query(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]:
        return self._invoke("query", params, options)

    def scan(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]:
        return self._invoke("scan", params, options)

    def batch_get_item(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]:
        return self._invoke("batch_get_item", params, options)

    def batch_write_item(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]:
        return self._invoke("batch_write_item", params, options)

    def transact_get_items(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]:
        return self._invoke("transact_get_items", params, options)

    def transact_write_items(self, params: dict[str, Any], options: RequestOptions) -> dict[str, Any]:
        return self._invoke("transact_write_items", params, options)

    def close(self) -> None:
        with self._lock:
            clients = list(self._clients.values())
            self._clients.clear()
        for client in clients:
            _close_client(client)


def _close_client(client: Any) -> None:
    close = getattr(client, "close", None)
    if callable(close):
        close()


__all__ = [
    "Boto3Transport",
    "Closer",
    "READ_OPERATIONS",
    "Transport",
    "WRITE_OPERATIONS",
]
