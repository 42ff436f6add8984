from __future__ import annotations

import datetime as dt
import socket
import ssl
import urllib.parse
from collections.abc import Callable
from dataclasses import dataclass

from daxtheory.context import Context
from daxtheory.errors import new_error, wrap_error

DialContextFunc = Callable[[Context | None, str, str], socket.socket]

_TCP_NETWORKS = {"tcp": socket.AF_UNSPEC, "tcp4": socket.AF_INET, "tcp6": socket.AF_INET6}


@dataclass(slots=True)
class TLSConfig:
    server_name: str = ""
    insecure_skip_verify: bool = False

    def ssl_context(self) -> ssl.SSLContext:
        ctx = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
        if self.insecure_skip_verify:
            ctx.check_hostname = False
            ctx.verify_mode = ssl.CERT_NONE
        return ctx


def _split_host_port(address: str) -> tuple[str, int]:
    value = str(address or "").strip()
    if value.startswith("["):
        end = value.find("]")
        if end == -1 or not value[end + 1 :].startswith(":"):
            raise ValueError(f"daxtheory: invalid address {address!r}")
        host, port = value[1:end], value[end + 2 :]
    else:
        host, sep, port = value.rpartition(":")
        if not sep or ":" in host:
            raise ValueError(f"daxtheory: invalid address {address!r}")
    if not host or not port.isdigit():
        raise ValueError(f"daxtheory: invalid address {address!r}")
    return host, int(port)


@dataclass(slots=True)
class ProxyDialer:
    """Opens TLS connections for the transport's connection layer."""

    config: TLSConfig | None = None
    connect_timeout: dt.timedelta = dt.timedelta(seconds=5)

    def dial_context(self, ctx: Context | None, network: str, address: str) -> socket.socket:
        family = _TCP_NETWORKS.get(str(network or "").strip().lower())
        if family is None:
            raise ValueError(f"daxtheory: unsupported network {network!r}")
        host, port = _split_host_port(address)

        timeout = self.connect_timeout
        if ctx is not None:
            err = ctx.err()
            if err is not None:
                raise err
            remaining = ctx.remaining()
            if remaining is not None and remaining < timeout:
                timeout = remaining

        tls = self.config or TLSConfig()
        sock = _connect(host, port, family, timeout.total_seconds())
        try:
            return tls.ssl_context().wrap_socket(sock, server_hostname=tls.server_name or host)
        except Exception:
            sock.close()
            raise


def _connect(host: str, port: int, family: int, timeout: float) -> socket.socket:
    if family == socket.AF_UNSPEC:
        return socket.create_connection((host, port), timeout=timeout)
    last_exc: OSError | None = None
    for af, socktype, proto, _name, sockaddr in socket.getaddrinfo(host, port, family, socket.SOCK_STREAM):
        sock = socket.socket(af, socktype, proto)
        try:
            sock.settimeout(timeout)
            sock.connect(sockaddr)
            return sock
        except OSError as exc:
            sock.close()
            last_exc = exc
    raise last_exc or OSError(f"daxtheory: no addresses found for {host}")


def _parse_endpoint(endpoint: str) -> str:
    value = str(endpoint or "").strip()
    try:
        parts = urllib.parse.urlsplit(value)
        host = parts.hostname
        _ = parts.port
    except ValueError as exc:
        raise wrap_error(exc, "dax.malformed_endpoint", f"invalid endpoint {value!r}") from exc
    if not parts.scheme or not host:
        raise new_error("dax.malformed_endpoint", f"invalid endpoint {value!r}")
    return host


def secure_dial_context(endpoint: str, skip_hostname_verification: bool) -> DialContextFunc:
    """Build a dial function for an encrypted cluster.

    With ``skip_hostname_verification`` the certificate chain and host name are
    not checked at all, and the endpoint is not inspected.
    """
    if skip_hostname_verification:
        cfg = TLSConfig(insecure_skip_verify=True)
    else:
        cfg = TLSConfig(server_name=_parse_endpoint(endpoint))
    dialer = ProxyDialer(config=cfg)
    return dialer.dial_context


__all__ = [
    "DialContextFunc",
    "ProxyDialer",
    "TLSConfig",
    "secure_dial_context",
]
