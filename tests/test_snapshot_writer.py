"""Tests for snapshot replacement against the in-memory store."""
from datetime import datetime, timezone

import pytest

from sentinel.errors import InsertError, PurgeError, RegistryError
from sentinel.models import ErrorKind, ProbeOutcome, Site
from sentinel.store.registry import SiteRegistry
from sentinel.store.snapshot_writer import SnapshotWriter


def _outcome(site_id: int, owner: str, status: int | None = 200) -> ProbeOutcome:
    site = Site(id=site_id, owner_id=owner, name=f"site {site_id}", url=f"https://s{site_id}.example")
    if status is None:
        return ProbeOutcome(site=site, is_live=False, error_kind=ErrorKind.TIMEOUT)
    return ProbeOutcome(
        site=site,
        status_code=status,
        elapsed_ms=120,
        is_live=200 <= status < 400,
        error_kind=ErrorKind.OK if status < 400 else ErrorKind.HTTP,
    )


def _seed_checks(store, owner: str, count: int) -> None:
    store.tables.setdefault("auto_checks", []).extend(
        {"id": 1000 + i, "user_id": owner, "website_id": 900 + i, "error_type": "ok",
         "checked_at": "2024-01-01T00:00:00+00:00", "is_live": True}
        for i in range(count)
    )


@pytest.mark.asyncio
async def test_replace_writes_one_batch_per_owner(store):
    writer = SnapshotWriter(store, retries=1)
    outcomes = [_outcome(1, "a"), _outcome(2, "a"), _outcome(3, "a", None), _outcome(4, "b"), _outcome(5, "b", 404)]

    inserted = await writer.replace(outcomes)

    assert inserted == 5
    assert len(store.checks_for("a")) == 3
    assert len(store.checks_for("b")) == 2
    assert len({row["checked_at"] for row in store.tables["auto_checks"]}) == 1
    assert store.ops("auto_checks") == ["delete", "insert"]


@pytest.mark.asyncio
async def test_replace_row_contents(store):
    writer = SnapshotWriter(store, retries=1)
    checked_at = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    await writer.replace([_outcome(7, "a"), _outcome(8, "a", None)], checked_at=checked_at)

    rows = sorted(store.checks_for("a"), key=lambda row: row["website_id"])
    assert rows[0] == {
        "id": rows[0]["id"],
        "user_id": "a",
        "website_id": 7,
        "website_name": "site 7",
        "website_url": "https://s7.example",
        "status_code": 200,
        "error_type": "ok",
        "response_time_ms": 120,
        "checked_at": checked_at.isoformat(),
        "is_live": True,
    }
    assert rows[1]["status_code"] is None
    assert rows[1]["response_time_ms"] is None
    assert rows[1]["error_type"] == "timeout"
    assert rows[1]["is_live"] is False


@pytest.mark.asyncio
async def test_replace_leaves_other_owners_untouched(store):
    _seed_checks(store, "a", 4)
    _seed_checks(store, "b", 2)
    writer = SnapshotWriter(store, retries=1)

    inserted = await writer.replace([_outcome(1, "a")])

    assert inserted == 1
    assert len(store.checks_for("a")) == 1
    assert len(store.checks_for("b")) == 2


@pytest.mark.asyncio
async def test_replace_empty_is_noop(store):
    _seed_checks(store, "a", 3)
    writer = SnapshotWriter(store, retries=1)

    assert await writer.replace([]) == 0
    assert store.calls == []
    assert len(store.checks_for("a")) == 3


@pytest.mark.asyncio
async def test_purge_failure_skips_insert(store):
    _seed_checks(store, "a", 3)
    store.fail("auto_checks", "delete")
    writer = SnapshotWriter(store, retries=1)

    with pytest.raises(PurgeError, match="Failed to clear previous checks"):
        await writer.replace([_outcome(1, "a")])

    assert "insert" not in store.ops("auto_checks")
    assert len(store.checks_for("a")) == 3


@pytest.mark.asyncio
async def test_purge_is_retried(store):
    _seed_checks(store, "a", 3)
    store.fail("auto_checks", "delete", times=1)
    writer = SnapshotWriter(store, retries=2)

    assert await writer.replace([_outcome(1, "a")]) == 1
    assert store.ops("auto_checks") == ["delete", "delete", "insert"]


@pytest.mark.asyncio
async def test_insert_failure_leaves_owner_empty(store):
    _seed_checks(store, "a", 3)
    store.fail("auto_checks", "insert")
    writer = SnapshotWriter(store, retries=3)

    with pytest.raises(InsertError, match="Failed to insert checks"):
        await writer.replace([_outcome(1, "a")])

    assert store.checks_for("a") == []
    # inserts are not retried
    assert store.ops("auto_checks").count("insert") == 1


@pytest.mark.asyncio
async def test_replace_twice_yields_same_content(store):
    writer = SnapshotWriter(store, retries=1)
    outcomes = [_outcome(1, "a"), _outcome(2, "b", 500)]
    checked_at = datetime(2024, 5, 1, tzinfo=timezone.utc)

    await writer.replace(outcomes, checked_at=checked_at)
    first = store.tables["auto_checks"]
    await writer.replace(outcomes, checked_at=checked_at)
    second = store.tables["auto_checks"]

    def strip(rows):
        return sorted(({k: v for k, v in row.items() if k != "id"} for row in rows), key=lambda r: r["website_id"])

    assert strip(first) == strip(second)
    assert {row["id"] for row in first}.isdisjoint({row["id"] for row in second})


@pytest.mark.asyncio
async def test_latest_for_owner(store):
    writer = SnapshotWriter(store, retries=1)
    await writer.replace([_outcome(1, "a"), _outcome(2, "a", 403), _outcome(3, "b")])

    records = await writer.latest_for_owner("a")

    assert {r.site_id for r in records} == {1, 2}
    assert all(r.owner_id == "a" for r in records)
    assert all(r.id is not None for r in records)


@pytest.mark.asyncio
async def test_registry_lists_sites(store):
    store.add_site(1, "a", "Shop", "https://shop.example")
    store.add_site(2, "b", "Blog", "https://blog.example")

    sites = await SiteRegistry(store, retries=1).list_sites()

    assert sites == [
        Site(id=1, owner_id="a", name="Shop", url="https://shop.example"),
        Site(id=2, owner_id="b", name="Blog", url="https://blog.example"),
    ]


@pytest.mark.asyncio
async def test_registry_failure(store):
    store.fail("websites", "select")

    with pytest.raises(RegistryError, match="Failed to load websites"):
        await SiteRegistry(store, retries=1).list_sites()


@pytest.mark.asyncio
async def test_registry_malformed_row(store):
    store.tables["websites"] = [{"id": None, "user_id": "a", "name": "Broken", "url": "https://x.example"}]

    with pytest.raises(RegistryError, match="Failed to load websites"):
        await SiteRegistry(store, retries=1).list_sites()


@pytest.mark.asyncio
async def test_registry_row_without_owner(store):
    store.tables["websites"] = [{"id": 1, "user_id": None, "name": "Orphan", "url": "https://x.example"}]

    with pytest.raises(RegistryError):
        await SiteRegistry(store, retries=1).list_sites()
