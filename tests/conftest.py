"""Shared fixtures: an in-memory stand-in for the Supabase query builder."""
import copy
import itertools
from typing import Any, Callable, Optional

import httpx
import pytest

from sentinel.probe.client import ProbeClient


class FakeResponse:
    def __init__(self, data: list[dict[str, Any]]):
        self.data = data


class FakeQuery:
    """Supports the subset of the postgrest builder the store modules use."""

    def __init__(self, store: "FakeStore", table: str):
        self.store = store
        self.table = table
        self.op: Optional[str] = None
        self.columns = "*"
        self.payload: list[dict[str, Any]] = []
        self.filters: list[Callable[[dict], bool]] = []
        self.order_by: Optional[tuple[str, bool]] = None
        self.max_rows: Optional[int] = None

    def select(self, columns: str = "*", **kwargs):
        self.op = "select"
        self.columns = columns
        return self

    def delete(self):
        self.op = "delete"
        return self

    def insert(self, rows):
        self.op = "insert"
        self.payload = rows if isinstance(rows, list) else [rows]
        return self

    def in_(self, column: str, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def eq(self, column: str, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def order(self, column: str, desc: bool = False):
        self.order_by = (column, desc)
        return self

    def limit(self, n: int):
        self.max_rows = n
        return self

    def _matches(self, row: dict) -> bool:
        return all(f(row) for f in self.filters)

    def execute(self) -> FakeResponse:
        self.store.calls.append((self.table, self.op, copy.deepcopy(self.payload)))
        self.store.maybe_fail(self.table, self.op)
        rows = self.store.tables.setdefault(self.table, [])

        if self.op == "insert":
            inserted = []
            for row in self.payload:
                new_row = {"id": next(self.store.ids), **row}
                rows.append(new_row)
                inserted.append(copy.deepcopy(new_row))
            return FakeResponse(inserted)

        if self.op == "delete":
            deleted = [row for row in rows if self._matches(row)]
            self.store.tables[self.table] = [row for row in rows if not self._matches(row)]
            return FakeResponse(deleted)

        selected = [copy.deepcopy(row) for row in rows if self._matches(row)]
        if self.order_by:
            column, desc = self.order_by
            selected.sort(key=lambda row: row.get(column), reverse=desc)
        if self.max_rows is not None:
            selected = selected[: self.max_rows]
        if self.columns.strip() != "*":
            wanted = [c.strip() for c in self.columns.split(",")]
            selected = [{c: row.get(c) for c in wanted} for row in selected]
        return FakeResponse(selected)


class FakeStore:
    """In-memory tables plus a log of executed calls and injectable failures."""

    def __init__(self):
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.calls: list[tuple[str, str, list]] = []
        self.ids = itertools.count(1)
        self._failures: dict[tuple[str, str], int] = {}

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def fail(self, table: str, op: str, times: int = 10_000) -> None:
        """Make the next ``times`` calls of ``op`` on ``table`` raise."""
        self._failures[(table, op)] = times

    def maybe_fail(self, table: str, op: str) -> None:
        remaining = self._failures.get((table, op), 0)
        if remaining > 0:
            self._failures[(table, op)] = remaining - 1
            raise RuntimeError(f"{op} on {table} rejected")

    def ops(self, table: str) -> list[str]:
        return [op for t, op, _ in self.calls if t == table]

    def add_site(self, site_id: int, owner: str, name: str, url: str) -> None:
        self.tables.setdefault("websites", []).append(
            {"id": site_id, "user_id": owner, "name": name, "url": url}
        )

    def checks_for(self, owner: str) -> list[dict[str, Any]]:
        return [row for row in self.tables.get("auto_checks", []) if row["user_id"] == owner]


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


def mock_probe_client(handler, timeout_ms: int = 12000, concurrency: int = 10) -> ProbeClient:
    """ProbeClient whose requests are answered by ``handler`` instead of the network."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True)
    return ProbeClient(timeout_ms=timeout_ms, concurrency=concurrency, client=client)


def status_by_host(statuses: dict[str, int]):
    """Handler answering each host with a fixed status; unknown hosts fail DNS."""

    def handler(request: httpx.Request) -> httpx.Response:
        host = request.url.host
        if host not in statuses:
            raise httpx.ConnectError("[Errno -2] Name or service not known", request=request)
        return httpx.Response(statuses[host])

    return handler


@pytest.fixture
def make_probe_client():
    return mock_probe_client


@pytest.fixture
def host_handler():
    return status_by_host
