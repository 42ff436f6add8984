"""DAX client access layer for DynamoDB-compatible clusters."""

from __future__ import annotations

from daxtheory.client import UNSUPPORTED_OPERATIONS, Dax, TransportFactory, new, new_with_config
from daxtheory.config import (
    AmbientConfig,
    ClientConfig,
    Config,
    StaticEndpointResolver,
    default_client_config,
    default_config,
    load_ambient_config,
    merge_from,
    validate_config,
)
from daxtheory.context import (
    CancellationScope,
    Clock,
    Context,
    ContextError,
    ManualClock,
    RealClock,
    background,
    cancellation_scope,
    with_cancel,
    with_timeout,
)
from daxtheory.dialer import ProxyDialer, TLSConfig, secure_dial_context
from daxtheory.errors import (
    ERR_CODE_NOT_IMPLEMENTED,
    DaxError,
    InvalidConfigError,
    MalformedEndpointError,
    RequestOptionsError,
    UnsupportedOperationError,
    is_not_implemented,
)
from daxtheory.logger import NoOpLogger, StandardLogger, StructuredLogger
from daxtheory.options import OverrideFn, RequestOptions, request_options, with_logger, with_max_retries, with_option
from daxtheory.paginator import QueryPaginator, ScanPaginator, paginate
from daxtheory.testkit import StubTransport, TestEnv, create_test_env
from daxtheory.transport import Boto3Transport, Transport

__all__ = [
    "AmbientConfig",
    "Boto3Transport",
    "CancellationScope",
    "ClientConfig",
    "Clock",
    "Config",
    "Context",
    "ContextError",
    "Dax",
    "DaxError",
    "ERR_CODE_NOT_IMPLEMENTED",
    "InvalidConfigError",
    "MalformedEndpointError",
    "ManualClock",
    "NoOpLogger",
    "OverrideFn",
    "ProxyDialer",
    "QueryPaginator",
    "RealClock",
    "RequestOptions",
    "RequestOptionsError",
    "ScanPaginator",
    "StandardLogger",
    "StaticEndpointResolver",
    "StructuredLogger",
    "StubTransport",
    "TLSConfig",
    "TestEnv",
    "Transport",
    "TransportFactory",
    "UNSUPPORTED_OPERATIONS",
    "UnsupportedOperationError",
    "background",
    "cancellation_scope",
    "create_test_env",
    "default_client_config",
    "default_config",
    "is_not_implemented",
    "load_ambient_config",
    "merge_from",
    "new",
    "new_with_config",
    "paginate",
    "request_options",
    "secure_dial_context",
    "validate_config",
    "with_cancel",
    "with_logger",
    "with_max_retries",
    "with_option",
    "with_timeout",
]
