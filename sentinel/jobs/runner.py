"""Probe run orchestration: load sites, probe them, replace snapshots."""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from sentinel.jobs.metrics import RunMetrics
from sentinel.jobs.metrics_exporter import MetricsExporter
from sentinel.models import ProbeOutcome
from sentinel.probe.client import ProbeClient
from sentinel.store.registry import SiteRegistry
from sentinel.store.snapshot_writer import SnapshotWriter

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """What one probe run produced."""

    run_id: str
    inserted: int
    outcomes: list[ProbeOutcome] = field(default_factory=list)
    summary: dict[str, Any] = field(default_factory=dict)


class ProbeRunner:
    """Runs one probe cycle across every registered site."""

    def __init__(
        self,
        registry: SiteRegistry,
        writer: SnapshotWriter,
        probe_client_factory: Callable[[], ProbeClient] = ProbeClient,
        exporter: Optional[MetricsExporter] = None,
        dry_run: bool = False,
    ):
        self.registry = registry
        self.writer = writer
        self.probe_client_factory = probe_client_factory
        self.exporter = exporter
        self.dry_run = dry_run

    async def run(self) -> RunResult:
        """Run one cycle.

        RegistryError, PurgeError and InsertError propagate to the caller.
        """
        run_id = str(uuid.uuid4())
        logger.info(f"Run ID: {run_id}")

        sites = await self.registry.list_sites()
        metrics = RunMetrics(len(sites))

        # Every probe completes before the purge, whose scope is the full site set.
        async with self.probe_client_factory() as probe_client:
            outcomes = await probe_client.probe_all(sites)
        for outcome in outcomes:
            metrics.record(outcome)

        checked_at = datetime.now(timezone.utc)
        if self.dry_run:
            logger.info(f"DRY-RUN: skipping snapshot write of {len(outcomes)} checks")
            inserted = 0
        else:
            inserted = await self.writer.replace(outcomes, checked_at=checked_at)

        metrics.report()
        summary = metrics.get_summary()
        if self.exporter:
            await self.exporter.export_run(run_id, inserted, summary)

        return RunResult(run_id=run_id, inserted=inserted, outcomes=outcomes, summary=summary)
