"""HTTP probe executor: one bounded GET per site."""
import asyncio
import logging
import time
from typing import Optional

import httpx

from sentinel.config import config
from sentinel.models import ProbeOutcome, Site
from sentinel.probe.classify import classify, failure_from_exception, is_live

logger = logging.getLogger(__name__)


class ProbeClient:
    """Probes websites with a hard per-request timeout and bounded parallelism.

    A probe is a single attempt: timeouts and network errors are classified
    into the outcome, never retried and never raised.
    """

    def __init__(
        self,
        timeout_ms: Optional[int] = None,
        concurrency: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.timeout_ms = timeout_ms if timeout_ms is not None else config.PROBE_TIMEOUT_MS
        self.concurrency = max(1, concurrency or config.CONCURRENCY)
        self._owns_client = client is None
        if client is None:
            # Configure connection pool
            limits = httpx.Limits(
                max_connections=self.concurrency * 2,
                max_keepalive_connections=self.concurrency,
            )
            client = httpx.AsyncClient(
                http2=True,
                timeout=self.timeout_ms / 1000,
                follow_redirects=True,
                limits=limits,
                headers={"User-Agent": config.USER_AGENT},
            )
        self.client = client

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _get_headers(self, url: str, started: float) -> tuple[int, int]:
        """GET url and return (status, elapsed_ms) once headers arrive."""
        async with self.client.stream("GET", url) as response:
            elapsed_ms = round((time.perf_counter() - started) * 1000)
            return response.status_code, elapsed_ms

    async def probe(self, site: Site) -> ProbeOutcome:
        """Probe one site."""
        started = time.perf_counter()
        try:
            status_code, elapsed_ms = await asyncio.wait_for(
                self._get_headers(site.url, started),
                timeout=self.timeout_ms / 1000,
            )
        except Exception as e:
            failure = failure_from_exception(e)
            logger.warning(
                f"Probe failed for site {site.id} ({site.url}): "
                f"{failure.value} {type(e).__name__}: {e}"
            )
            return ProbeOutcome(
                site=site,
                status_code=None,
                elapsed_ms=None,
                is_live=False,
                error_kind=classify(None, failure),
            )

        outcome = ProbeOutcome(
            site=site,
            status_code=status_code,
            elapsed_ms=elapsed_ms,
            is_live=is_live(status_code),
            error_kind=classify(status_code, None),
        )
        logger.debug(
            f"Probed site {site.id} ({site.url}): status={status_code} "
            f"elapsed={elapsed_ms}ms kind={outcome.error_kind.value}"
        )
        return outcome

    async def probe_all(self, sites: list[Site]) -> list[ProbeOutcome]:
        """Probe every site concurrently; returns outcomes in input order."""
        if not sites:
            return []

        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(site: Site) -> ProbeOutcome:
            async with semaphore:
                return await self.probe(site)

        return list(await asyncio.gather(*(bounded(site) for site in sites)))
