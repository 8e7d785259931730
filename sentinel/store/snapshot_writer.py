"""Supabase writer that replaces each owner's auto-check snapshot."""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional
from supabase import Client

from sentinel.config import config
from sentinel.errors import InsertError, PurgeError
from sentinel.models import AutoCheckRecord, ProbeOutcome
from sentinel.store.retry import store_retrying

logger = logging.getLogger(__name__)


class SnapshotWriter:
    """Deletes the previous snapshot of every implicated owner, then inserts the new one.

    The two steps are separate PostgREST requests. If the insert fails after
    the purge succeeded, the owners have no auto-checks until the next run.
    """

    def __init__(
        self,
        client: Client,
        table: Optional[str] = None,
        retries: Optional[int] = None,
    ):
        self.client = client
        self.table = table or config.AUTO_CHECKS_TABLE
        self.retries = retries if retries is not None else config.STORE_RETRIES

    async def replace(
        self,
        outcomes: list[ProbeOutcome],
        checked_at: Optional[datetime] = None,
    ) -> int:
        """Replace the snapshot for the owners of ``outcomes``. Returns rows inserted."""
        if not outcomes:
            logger.info("No sites probed, snapshot left untouched")
            return 0

        owner_ids = sorted({outcome.site.owner_id for outcome in outcomes})
        checked_at = checked_at or datetime.now(timezone.utc)
        records = [AutoCheckRecord.from_outcome(o, checked_at) for o in outcomes]

        loop = asyncio.get_event_loop()
        try:
            await loop.run_in_executor(None, self._delete_sync, owner_ids)
        except Exception as e:
            logger.error(f"Failed to clear previous checks for {len(owner_ids)} owners: {e}")
            raise PurgeError(f"Failed to clear previous checks: {e}") from e
        logger.info(f"Cleared previous checks for {len(owner_ids)} owners")

        data = [record.to_row() for record in records]
        try:
            await loop.run_in_executor(None, self._insert_sync, data)
        except Exception as e:
            logger.error(
                f"Failed to insert {len(data)} checks after purge; "
                f"owners {owner_ids} have no auto-checks until the next run: {e}"
            )
            raise InsertError(f"Failed to insert checks: {e}") from e

        logger.info(f"Inserted {len(data)} checks at {checked_at.isoformat()}")
        return len(data)

    async def latest_for_owner(self, owner_id: str, limit: int = 200) -> list[AutoCheckRecord]:
        """Return an owner's current snapshot, newest first."""
        loop = asyncio.get_event_loop()
        rows = await loop.run_in_executor(None, self._select_owner_sync, owner_id, limit)
        return [AutoCheckRecord.from_row(row) for row in rows]

    def _delete_sync(self, owner_ids: list[str]) -> None:
        """Synchronous purge (called from thread pool). Safe to retry."""
        retrying = store_retrying(self.retries)
        retrying(
            lambda: self.client.table(self.table)
            .delete()
            .in_("user_id", owner_ids)
            .execute()
        )

    def _insert_sync(self, data: list[dict[str, Any]]) -> None:
        """Synchronous bulk insert (called from thread pool). Not retried."""
        self.client.table(self.table).insert(data).execute()

    def _select_owner_sync(self, owner_id: str, limit: int) -> list[dict[str, Any]]:
        retrying = store_retrying(self.retries)
        response = retrying(
            lambda: self.client.table(self.table)
            .select("*")
            .eq("user_id", owner_id)
            .order("checked_at", desc=True)
            .limit(limit)
            .execute()
        )
        return response.data or []
