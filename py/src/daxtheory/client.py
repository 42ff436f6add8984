from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from typing import Any

from daxtheory.config import AmbientConfig, ClientConfig, Config, default_config, merge_from, validate_config
from daxtheory.context import Clock, Context
from daxtheory.errors import unsupported
from daxtheory.options import OverrideFn, request_options
from daxtheory.paginator import PageFn, QueryPaginator, ScanPaginator, paginate
from daxtheory.transport import Boto3Transport, Closer, Transport

TransportFactory = Callable[[ClientConfig], Transport]

UNSUPPORTED_OPERATIONS = (
    "batch_execute_statement",
    "create_backup",
    "create_global_table",
    "create_table",
    "delete_backup",
    "delete_table",
    "describe_backup",
    "describe_continuous_backups",
    "describe_contributor_insights",
    "describe_endpoints",
    "describe_export",
    "describe_global_table",
    "describe_global_table_settings",
    "describe_kinesis_streaming_destination",
    "describe_limits",
    "describe_table",
    "describe_table_replica_auto_scaling",
    "describe_time_to_live",
    "disable_kinesis_streaming_destination",
    "enable_kinesis_streaming_destination",
    "execute_statement",
    "execute_transaction",
    "export_table_to_point_in_time",
    "list_backups",
    "list_contributor_insights",
    "list_contributor_insights_pages",
    "list_exports",
    "list_exports_pages",
    "list_global_tables",
    "list_tables",
    "list_tables_pages",
    "list_tags_of_resource",
    "restore_table_from_backup",
    "restore_table_to_point_in_time",
    "tag_resource",
    "untag_resource",
    "update_continuous_backups",
    "update_contributor_insights",
    "update_global_table",
    "update_global_table_settings",
    "update_table",
    "update_table_replica_auto_scaling",
    "update_time_to_live",
    "wait_until_table_exists",
)


def _unsupported_operation(name: str) -> Callable[..., Any]:
    def method(self: Dax, *_args: Any, **_kwargs: Any) -> Any:
        raise unsupported(name)

    method.__name__ = name
    method.__qualname__ = f"Dax.{name}"
    return method


class Dax:
    """Client for a DAX cluster speaking the DynamoDB item API.

    Safe for concurrent use: the configuration is immutable and every call
    builds its own options.
    """

    def __init__(self, config: Config, transport: Transport, *, clock: Clock | None = None) -> None:
        self._config = config
        self._transport = transport
        self._clock = clock

    @property
    def config(self) -> Config:
        return self._config

    def _invoke(
        self,
        read: bool,
        operation: str,
        params: dict[str, Any] | None,
        overrides: tuple[OverrideFn, ...],
        ctx: Context | None,
    ) -> dict[str, Any]:
        options, release = request_options(self._config, read, ctx, *overrides, clock=self._clock)
        try:
            return getattr(self._transport, operation)(dict(params or {}), options)
        finally:
            if release is not None:
                release()

    def put_item(self, params: dict[str, Any], *overrides: OverrideFn, ctx: Context | None = None) -> dict[str, Any]:
        return self._invoke(False, "put_item", params, overrides, ctx)

    def delete_item(self, params: dict[str, Any], *overrides: OverrideFn, ctx: Context | None = None) -> dict[str, Any]:
        return self._invoke(False, "delete_item", params, overrides, ctx)

    def update_item(self, params: dict[str, Any], *overrides: OverrideFn, ctx: Context | None = None) -> dict[str, Any]:
        return self._invoke(False, "update_item", params, overrides, ctx)

    def get_item(self, params: dict[str, Any], *overrides: OverrideFn, ctx: Context | None = None) -> dict[str, Any]:
        return self._invoke(True, "get_item", params, overrides, ctx)

    def scan(self, params: dict[str, Any], *overrides: OverrideFn, ctx: Context | None = None) -> dict[str, Any]:
        return self._invoke(True, "scan", params, overrides, ctx)

    def query(self, params: dict[str, Any], *overrides: OverrideFn, ctx: Context | None = None) -> dict[str, Any]:
        return self._invoke(True, "query", params, overrides, ctx)

    def batch_write_item(
        self, params: dict[str, Any], *overrides: OverrideFn, ctx: Context | None = None
    ) -> dict[str, Any]:
        return self._invoke(False, "batch_write_item", params, overrides, ctx)

    def batch_get_item(
        self, params: dict[str, Any], *overrides: OverrideFn, ctx: Context | None = None
    ) -> dict[str, Any]:
        return self._invoke(True, "batch_get_item", params, overrides, ctx)

    def transact_write_items(
        self, params: dict[str, Any], *overrides: OverrideFn, ctx: Context | None = None
    ) -> dict[str, Any]:
        return self._invoke(False, "transact_write_items", params, overrides, ctx)

    def transact_get_items(
        self, params: dict[str, Any], *overrides: OverrideFn, ctx: Context | None = None
    ) -> dict[str, Any]:
        return self._invoke(True, "transact_get_items", params, overrides, ctx)

    def query_paginator(self, params: dict[str, Any], *, stop_on_duplicate_token: bool = False) -> QueryPaginator:
        return QueryPaginator(self, params, stop_on_duplicate_token=stop_on_duplicate_token)

    def scan_paginator(self, params: dict[str, Any], *, stop_on_duplicate_token: bool = False) -> ScanPaginator:
        return ScanPaginator(self, params, stop_on_duplicate_token=stop_on_duplicate_token)

    def query_pages(
        self, params: dict[str, Any], fn: PageFn, *overrides: OverrideFn, ctx: Context | None = None
    ) -> None:
        paginate(self.query_paginator(params), fn, *overrides, ctx=ctx)

    def scan_pages(
        self, params: dict[str, Any], fn: PageFn, *overrides: OverrideFn, ctx: Context | None = None
    ) -> None:
        paginate(self.scan_paginator(params), fn, *overrides, ctx=ctx)

    def close(self) -> None:
        if isinstance(self._transport, Closer):
            self._transport.close()

    def __enter__(self) -> Dax:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # DynamoDB control-plane and PartiQL calls DAX does not serve.
    batch_execute_statement = _unsupported_operation("batch_execute_statement")
    create_backup = _unsupported_operation("create_backup")
    create_global_table = _unsupported_operation("create_global_table")
    create_table = _unsupported_operation("create_table")
    delete_backup = _unsupported_operation("delete_backup")
    delete_table = _unsupported_operation("delete_table")
    describe_backup = _unsupported_operation("describe_backup")
    describe_continuous_backups = _unsupported_operation("describe_continuous_backups")
    describe_contributor_insights = _unsupported_operation("describe_contributor_insights")
    describe_endpoints = _unsupported_operation("describe_endpoints")
    describe_export = _unsupported_operation("describe_export")
    describe_global_table = _unsupported_operation("describe_global_table")
    describe_global_table_settings = _unsupported_operation("describe_global_table_settings")
    describe_kinesis_streaming_destination = _unsupported_operation("describe_kinesis_streaming_destination")
    describe_limits = _unsupported_operation("describe_limits")
    describe_table = _unsupported_operation("describe_table")
    describe_table_replica_auto_scaling = _unsupported_operation("describe_table_replica_auto_scaling")
    describe_time_to_live = _unsupported_operation("describe_time_to_live")
    disable_kinesis_streaming_destination = _unsupported_operation("disable_kinesis_streaming_destination")
    enable_kinesis_streaming_destination = _unsupported_operation("enable_kinesis_streaming_destination")
    execute_statement = _unsupported_operation("execute_statement")
    execute_transaction = _unsupported_operation("execute_transaction")
    export_table_to_point_in_time = _unsupported_operation("export_table_to_point_in_time")
    list_backups = _unsupported_operation("list_backups")
    list_contributor_insights = _unsupported_operation("list_contributor_insights")
    list_contributor_insights_pages = _unsupported_operation("list_contributor_insights_pages")
    list_exports = _unsupported_operation("list_exports")
    list_exports_pages = _unsupported_operation("list_exports_pages")
    list_global_tables = _unsupported_operation("list_global_tables")
    list_tables = _unsupported_operation("list_tables")
    list_tables_pages = _unsupported_operation("list_tables_pages")
    list_tags_of_resource = _unsupported_operation("list_tags_of_resource")
    restore_table_from_backup = _unsupported_operation("restore_table_from_backup")
    restore_table_to_point_in_time = _unsupported_operation("restore_table_to_point_in_time")
    tag_resource = _unsupported_operation("tag_resource")
    untag_resource = _unsupported_operation("untag_resource")
    update_continuous_backups = _unsupported_operation("update_continuous_backups")
    update_contributor_insights = _unsupported_operation("update_contributor_insights")
    update_global_table = _unsupported_operation("update_global_table")
    update_global_table_settings = _unsupported_operation("update_global_table_settings")
    update_table = _unsupported_operation("update_table")
    update_table_replica_auto_scaling = _unsupported_operation("update_table_replica_auto_scaling")
    update_time_to_live = _unsupported_operation("update_time_to_live")
    wait_until_table_exists = _unsupported_operation("wait_until_table_exists")


def new(
    config: Config | None = None,
    *,
    transport_factory: TransportFactory | None = None,
    clock: Clock | None = None,
) -> Dax:
    """Create a client from a DAX configuration."""
    cfg = config if config is not None else default_config()
    validate_config(cfg)
    cfg = replace(cfg, client=replace(cfg.client, logger=cfg.logger))

    factory = transport_factory or Boto3Transport
    try:
        transport = factory(cfg.client)
    except Exception as exc:
        if cfg.logger is not None:
            cfg.logger.warn("daxtheory: failed to initialise client", {"error": str(exc)})
        raise
    return Dax(cfg, transport, clock=clock)


def new_with_config(
    ambient: AmbientConfig,
    *,
    transport_factory: TransportFactory | None = None,
    clock: Clock | None = None,
) -> Dax:
    """Create a client from ambient SDK settings layered over the defaults.

    Only the settings that apply to DAX are taken from ``ambient``.
    """
    return new(merge_from(default_config(), ambient), transport_factory=transport_factory, clock=clock)


__all__ = [
    "Dax",
    "TransportFactory",
    "UNSUPPORTED_OPERATIONS",
    "new",
    "new_with_config",
]
