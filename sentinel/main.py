"""Main entry point with CLI."""
import argparse
import asyncio
import logging
import sys
from functools import partial

from sentinel.config import config
from sentinel.errors import SentinelError
from sentinel.jobs.metrics_exporter import MetricsExporter
from sentinel.jobs.runner import ProbeRunner
from sentinel.logging_conf import setup_logging
from sentinel.probe.client import ProbeClient
from sentinel.store.client import create_store_client
from sentinel.store.registry import SiteRegistry
from sentinel.store.snapshot_writer import SnapshotWriter

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Site Sentinel automated checks")

    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help=f"Maximum probes in flight (default: {config.CONCURRENCY})",
    )
    parser.add_argument(
        "--timeout-ms",
        type=int,
        default=None,
        help=f"Per-probe timeout in milliseconds (default: {config.PROBE_TIMEOUT_MS})",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Probe and report, but do not replace stored snapshots",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help=f"Log level (default: {config.LOG_LEVEL})",
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Start the HTTP trigger API instead of running one cycle",
    )
    parser.add_argument("--host", default="0.0.0.0", help="API bind host")
    parser.add_argument("--port", type=int, default=8000, help="API bind port")

    return parser.parse_args(argv)


def build_runner(args: argparse.Namespace) -> ProbeRunner:
    """Wire a runner from CLI arguments."""
    client = create_store_client(config)
    return ProbeRunner(
        registry=SiteRegistry(client),
        writer=SnapshotWriter(client),
        probe_client_factory=partial(
            ProbeClient,
            timeout_ms=args.timeout_ms,
            concurrency=args.concurrency,
        ),
        exporter=MetricsExporter() if config.METRICS_FILE else None,
        dry_run=args.dry_run,
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    if args.serve:
        import uvicorn
        from sentinel.api.main import app

        uvicorn.run(app, host=args.host, port=args.port)
        return 0

    logger.info("=" * 60)
    logger.info("Site Sentinel auto-checks starting")
    logger.info(f"Concurrency: {args.concurrency or config.CONCURRENCY}")
    logger.info(f"Timeout: {args.timeout_ms or config.PROBE_TIMEOUT_MS}ms")
    logger.info(f"Dry-run: {args.dry_run}")
    logger.info("=" * 60)

    try:
        runner = build_runner(args)
        result = asyncio.run(runner.run())
    except SentinelError as e:
        logger.error(f"Run failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 1
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1

    logger.info(f"FINAL REPORT: run {result.run_id} inserted {result.inserted} checks")
    return 0


if __name__ == "__main__":
    sys.exit(main())
