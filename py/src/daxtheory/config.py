from __future__ import annotations

import datetime as dt
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Protocol

from daxtheory.errors import new_error, wrap_error
from daxtheory.logger import StandardLogger, StructuredLogger

DialFunc = Callable[[Any, str, str], Any]


class EndpointResolver(Protocol):
    def resolve_endpoint(self, service: str, region: str) -> str: ...


class EndpointResolverWithOptions(Protocol):
    def resolve_endpoint(self, service: str, region: str, **options: Any) -> str: ...


@dataclass(frozen=True, slots=True)
class StaticEndpointResolver:
    url: str

    def resolve_endpoint(self, service: str, region: str, **options: Any) -> str:
        _ = (service, region, options)
        return self.url


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Transport-level settings, carried verbatim to the transport."""

    region: str = ""
    host_ports: tuple[str, ...] = ()
    credentials: Any = None
    endpoint_resolver: EndpointResolver | None = None
    endpoint_resolver_with_options: EndpointResolverWithOptions | None = None
    logger: StructuredLogger | None = None
    dial_context: DialFunc | None = None
    skip_hostname_verification: bool = False
    connect_timeout: dt.timedelta = dt.timedelta(seconds=5)
    read_timeout: dt.timedelta = dt.timedelta(seconds=60)
    max_pending_connections_per_host: int = 10


def default_client_config() -> ClientConfig:
    return ClientConfig()


@dataclass(frozen=True, slots=True)
class Config:
    client: ClientConfig = field(default_factory=default_client_config)

    # Default request options
    request_timeout: dt.timedelta = dt.timedelta(minutes=1)
    write_retries: int = 2
    read_retries: int = 2

    logger: StructuredLogger | None = None

    @property
    def region(self) -> str:
        return self.client.region


def default_config() -> Config:
    """Return the default configuration.

    ``client.region`` and ``client.host_ports`` still need to be set before a
    client can reach a cluster.
    """
    return Config(
        client=default_client_config(),
        request_timeout=dt.timedelta(minutes=1),
        write_retries=2,
        read_retries=2,
        logger=StandardLogger(),
    )


@dataclass(frozen=True, slots=True)
class AmbientConfig:
    """Process-wide SDK settings that a client may inherit."""

    region: str = ""
    retryer: Any = None
    retry_max_attempts: int = 0
    logger: StructuredLogger | None = None
    endpoint_resolver: EndpointResolver | None = None
    endpoint_resolver_with_options: EndpointResolverWithOptions | None = None
    credentials: Any = None


def merge_from(base: Config, ambient: AmbientConfig) -> Config:
    write_retries = base.write_retries
    read_retries = base.read_retries
    # A single max-attempts value applies to reads and writes alike.
    if ambient.retryer is not None:
        write_retries = ambient.retry_max_attempts
        read_retries = ambient.retry_max_attempts

    logger = base.logger
    if ambient.logger is not None:
        logger = ambient.logger

    client = base.client
    if ambient.endpoint_resolver is not None:
        client = replace(client, endpoint_resolver=ambient.endpoint_resolver)
    if ambient.endpoint_resolver_with_options is not None:
        client = replace(client, endpoint_resolver_with_options=ambient.endpoint_resolver_with_options)
    if ambient.credentials is not None:
        client = replace(client, credentials=ambient.credentials)
    client = replace(client, region=ambient.region)

    return replace(
        base,
        client=client,
        write_retries=write_retries,
        read_retries=read_retries,
        logger=logger,
    )


def validate_config(cfg: Config) -> None:
    for name in ("write_retries", "read_retries"):
        value = getattr(cfg, name)
        if isinstance(value, bool) or not isinstance(value, int):
            raise new_error("dax.invalid_config", f"{name} must be an integer")
        if value < 0:
            raise new_error("dax.invalid_config", f"{name} must not be negative")
    if cfg.request_timeout < dt.timedelta(0):
        raise new_error("dax.invalid_config", "request_timeout must not be negative")


def load_ambient_config(
    *,
    environ: Mapping[str, str] | None = None,
    session: Any | None = None,
) -> AmbientConfig:
    """Build an ambient configuration from the environment and an optional boto3 session."""
    env = os.environ if environ is None else environ

    region = str(env.get("AWS_REGION") or env.get("AWS_DEFAULT_REGION") or "").strip()
    if not region and session is not None:
        region = str(getattr(session, "region_name", "") or "").strip()

    retryer: str | None = None
    max_attempts = 0
    raw_attempts = str(env.get("AWS_MAX_ATTEMPTS") or "").strip()
    if raw_attempts:
        try:
            max_attempts = int(raw_attempts)
        except ValueError as exc:
            raise wrap_error(exc, "dax.invalid_config", "AWS_MAX_ATTEMPTS must be an integer") from exc
        if max_attempts < 0:
            raise new_error("dax.invalid_config", "AWS_MAX_ATTEMPTS must not be negative")
        retryer = str(env.get("AWS_RETRY_MODE") or "").strip() or "standard"

    endpoint_url = str(env.get("AWS_ENDPOINT_URL_DYNAMODB") or env.get("AWS_ENDPOINT_URL") or "").strip()
    resolver = StaticEndpointResolver(endpoint_url) if endpoint_url else None

    credentials = session.get_credentials() if session is not None else None

    return AmbientConfig(
        region=region,
        retryer=retryer,
        retry_max_attempts=max_attempts,
        endpoint_resolver_with_options=resolver,
        credentials=credentials,
    )


__all__ = [
    "AmbientConfig",
    "ClientConfig",
    "Config",
    "DialFunc",
    "EndpointResolver",
    "EndpointResolverWithOptions",
    "StaticEndpointResolver",
    "default_client_config",
    "default_config",
    "load_ambient_config",
    "merge_from",
    "validate_config",
]
