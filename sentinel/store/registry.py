"""Read-only access to the websites table."""
import asyncio
import logging
from typing import Any, Optional
from supabase import Client

from sentinel.config import config
from sentinel.errors import RegistryError
from sentinel.models import Site
from sentinel.store.retry import store_retrying

logger = logging.getLogger(__name__)

SITE_COLUMNS = "id, user_id, name, url"


class SiteRegistry:
    """Lists every registered website across all owners."""

    def __init__(
        self,
        client: Client,
        table: Optional[str] = None,
        retries: Optional[int] = None,
    ):
        self.client = client
        self.table = table or config.WEBSITES_TABLE
        self.retries = retries if retries is not None else config.STORE_RETRIES

    async def list_sites(self) -> list[Site]:
        """Load all sites (runs in thread pool since Supabase is sync)."""
        loop = asyncio.get_event_loop()
        try:
            rows = await loop.run_in_executor(None, self._select_sync)
            sites = [Site.from_row(row) for row in rows]
        except Exception as e:
            logger.error(f"Failed to load websites from {self.table}: {e}")
            raise RegistryError(f"Failed to load websites: {e}") from e

        logger.info(f"Loaded {len(sites)} websites")
        return sites

    def _select_sync(self) -> list[dict[str, Any]]:
        """Synchronous select (called from thread pool)."""
        retrying = store_retrying(self.retries)
        response = retrying(
            lambda: self.client.table(self.table).select(SITE_COLUMNS).execute()
        )
        return response.data or []
