from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any, Protocol

from daxtheory.context import Context
from daxtheory.options import OverrideFn

PageFn = Callable[[dict[str, Any]], bool]


class PageSource(Protocol):
    def query(self, params: dict[str, Any], *overrides: OverrideFn, ctx: Context | None = None) -> dict[str, Any]: ...

    def scan(self, params: dict[str, Any], *overrides: OverrideFn, ctx: Context | None = None) -> dict[str, Any]: ...


class _KeyPaginator:
    operation = ""

    def __init__(
        self,
        client: PageSource,
        params: dict[str, Any],
        *,
        stop_on_duplicate_token: bool = False,
    ) -> None:
        self._client = client
        self._params = dict(params or {})
        self._stop_on_duplicate_token = bool(stop_on_duplicate_token)
        self._first_page = True
        self._next_token: dict[str, Any] | None = self._params.get("ExclusiveStartKey") or None

    def has_more_pages(self) -> bool:
        return self._first_page or self._next_token is not None

    def next_page(self, *overrides: OverrideFn, ctx: Context | None = None) -> dict[str, Any]:
        if not self.has_more_pages():
            raise RuntimeError("daxtheory: no more pages available")

        params = dict(self._params)
        if not self._first_page:
            params["ExclusiveStartKey"] = self._next_token

        fetch = getattr(self._client, self.operation)
        output = fetch(params, *overrides, ctx=ctx)

        self._first_page = False
        prev_token = self._next_token
        self._next_token = output.get("LastEvaluatedKey") or None
        if (
            self._stop_on_duplicate_token
            and prev_token is not None
            and self._next_token is not None
            and prev_token == self._next_token
        ):
            self._next_token = None
        return output

    def __iter__(self) -> Iterator[dict[str, Any]]:
        while self.has_more_pages():
            yield self.next_page()


class QueryPaginator(_KeyPaginator):
    operation = "query"


class ScanPaginator(_KeyPaginator):
    operation = "scan"


def paginate(
    paginator: _KeyPaginator,
    fn: PageFn,
    *overrides: OverrideFn,
    ctx: Context | None = None,
) -> None:
    """Feed pages to ``fn`` until the cursor runs out or ``fn`` returns False.

    The first error from a page request propagates unchanged; ``fn`` never
    sees the page that failed.
    """
    while paginator.has_more_pages():
        output = paginator.next_page(*overrides, ctx=ctx)
        if not fn(output):
            break


__all__ = [
    "PageFn",
    "PageSource",
    "QueryPaginator",
    "ScanPaginator",
    "paginate",
]
