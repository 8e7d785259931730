"""FastAPI application exposing the auto-check trigger."""
import hmac
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from sentinel.config import VERSION, config
from sentinel.errors import SentinelError
from sentinel.jobs.metrics_exporter import MetricsExporter
from sentinel.jobs.runner import ProbeRunner
from sentinel.store.client import create_store_client
from sentinel.store.registry import SiteRegistry
from sentinel.store.snapshot_writer import SnapshotWriter

logger = logging.getLogger(__name__)

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type", "x-api-key"]

# Credential is accepted either as X-API-KEY or as a bearer token
API_KEY_HEADER = APIKeyHeader(name="X-API-KEY", auto_error=False)
BEARER = HTTPBearer(auto_error=False)


def verify_credential(
    api_key: Optional[str] = Depends(API_KEY_HEADER),
    bearer: Optional[HTTPAuthorizationCredentials] = Depends(BEARER),
) -> bool:
    """Verify the trigger credential if one is configured."""
    expected_key = config.API_KEY
    if expected_key:
        supplied = api_key or (bearer.credentials if bearer else None)
        if not supplied or not hmac.compare_digest(supplied, expected_key):
            raise HTTPException(status_code=401, detail="Invalid credential")
    return True


def require_credential(
    api_key: Optional[str] = Depends(API_KEY_HEADER),
    bearer: Optional[HTTPAuthorizationCredentials] = Depends(BEARER),
) -> bool:
    """Like verify_credential, but refuse access when no API_KEY is configured."""
    if not config.API_KEY:
        raise HTTPException(status_code=503, detail="Snapshot reads require API_KEY to be configured")
    return verify_credential(api_key, bearer)


class TriggerResponse(BaseModel):
    """Response model for a probe run."""
    inserted: int


def build_runner(exporter: Optional[MetricsExporter] = None) -> ProbeRunner:
    """Wire a runner around one Supabase client."""
    client = create_store_client(config)
    return ProbeRunner(
        registry=SiteRegistry(client),
        writer=SnapshotWriter(client),
        exporter=exporter,
    )


def create_app(
    runner_factory: Optional[Callable[[], ProbeRunner]] = None,
    exporter: Optional[MetricsExporter] = None,
) -> FastAPI:
    """Build the API. The runner is created on first use and reused for the process."""
    app = FastAPI(title="Site Sentinel Auto-Checks API", version=VERSION)
    origins = config.allowed_origins() or ["*"]
    bare_options_origin = "*" if "*" in origins else origins[0]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    if exporter is None and config.METRICS_FILE:
        exporter = MetricsExporter()
    app.state.exporter = exporter
    app.state.runner_factory = runner_factory or (lambda: build_runner(app.state.exporter))
    app.state.runner = None

    def get_runner(request: Request) -> ProbeRunner:
        state = request.app.state
        if state.runner is None:
            state.runner = state.runner_factory()
        return state.runner

    @app.exception_handler(SentinelError)
    async def sentinel_error_handler(request: Request, exc: SentinelError):
        logger.error(f"Probe run failed: {exc}")
        return PlainTextResponse(str(exc), status_code=500)

    @app.get("/health")
    async def health():
        """Health check endpoint (no auth required)."""
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.options("/auto-checks")
    async def auto_checks_preflight():
        """Answer bare OPTIONS requests that are not CORS preflights."""
        return PlainTextResponse(
            "ok",
            headers={
                "Access-Control-Allow-Origin": bare_options_origin,
                "Access-Control-Allow-Headers": ", ".join(CORS_ALLOW_HEADERS),
            },
        )

    @app.post("/auto-checks", response_model=TriggerResponse)
    async def run_auto_checks(
        _: bool = Depends(verify_credential),
        runner: ProbeRunner = Depends(get_runner),
    ):
        """Probe every registered site and replace the owners' snapshots."""
        result = await runner.run()
        return TriggerResponse(inserted=result.inserted)

    @app.get("/auto-checks", response_model=TriggerResponse)
    async def run_auto_checks_get(
        _: bool = Depends(verify_credential),
        runner: ProbeRunner = Depends(get_runner),
    ):
        """Run a probe cycle (GET version, for schedulers that only issue GETs)."""
        result = await runner.run()
        return TriggerResponse(inserted=result.inserted)

    @app.get("/auto-checks/{owner_id}")
    async def latest_auto_checks(
        owner_id: str,
        limit: int = 200,
        _: bool = Depends(require_credential),
        runner: ProbeRunner = Depends(get_runner),
    ):
        """Current snapshot for one owner, newest first."""
        try:
            records = await runner.writer.latest_for_owner(owner_id, limit=limit)
        except Exception as e:
            logger.error(f"Failed to load auto-checks for {owner_id}: {e}", exc_info=True)
            return PlainTextResponse(f"Failed to load checks: {e}", status_code=500)
        return [record.model_dump(mode="json") for record in records]

    @app.get("/metrics")
    async def get_metrics(
        request: Request,
        _: bool = Depends(verify_credential),
    ):
        """Last 100 run summaries (requires credential if configured)."""
        exporter = request.app.state.exporter
        if exporter is None:
            return {"metrics": []}
        return {"metrics": await exporter.read_recent(100)}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    from sentinel.logging_conf import setup_logging

    setup_logging()
    uvicorn.run(app, host="0.0.0.0", port=8000)
