"""Run summary exporter for observability."""
import logging
import time
from pathlib import Path
from typing import Any, Optional
import aiofiles
import orjson

from sentinel.config import config

logger = logging.getLogger(__name__)


class MetricsExporter:
    """Appends one JSON line per probe run."""

    def __init__(self, metrics_file: Optional[Path] = None):
        self.metrics_file = Path(metrics_file or config.METRICS_FILE)

    async def export_run(self, run_id: str, inserted: int, summary: dict[str, Any]) -> None:
        """Export a run summary. Failures are logged, never raised."""
        metrics = {
            "ts": time.time(),
            "run_id": run_id,
            "inserted": inserted,
            **summary,
        }
        try:
            self.metrics_file.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(self.metrics_file, "ab") as f:
                await f.write(orjson.dumps(metrics) + b"\n")
        except OSError as e:
            logger.warning(f"Could not export metrics to {self.metrics_file}: {e}")

    async def read_recent(self, limit: int = 100) -> list[dict[str, Any]]:
        """Return the last ``limit`` exported summaries."""
        if not self.metrics_file.exists():
            return []

        lines = []
        async with aiofiles.open(self.metrics_file, "rb") as f:
            async for line in f:
                try:
                    lines.append(orjson.loads(line))
                except orjson.JSONDecodeError as e:
                    logger.warning(f"Error reading metrics line: {e}")
                    continue
        return lines[-limit:]
