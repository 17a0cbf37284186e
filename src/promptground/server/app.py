"""FastAPI application for the promptground server."""

from contextlib import aclosing
from pathlib import Path
from typing import AsyncGenerator, AsyncIterator, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse, StreamingResponse
from loguru import logger

from .. import __version__
from ..clients import BaseLLMClient, LLMClient
from ..config import Settings, UserConfigLoader, get_settings
from ..core.engine.optimizer import GEPAOptimizer, stream_optimization
from ..core.events import EventSink
from ..core.state.data_store import DataStore
from ..core.state.run_store import RunStore
from ..models import OptimizationRun, ProgressEvent
from .models import (
    HealthResponse,
    OptimizeRequest,
    RunSavedResponse,
    RunsResponse,
    SuccessResponse,
)


async def sse_stream(events: AsyncGenerator[ProgressEvent, None]) -> AsyncIterator[str]:
    """Format events as server-sent events; closing this stream closes ``events`` too."""
    async with aclosing(events):
        async for event in events:
            yield f"data: {event.to_json()}\n\n"


def create_app(
    settings: Optional[Settings] = None,
    llm_client: Optional[BaseLLMClient] = None,
    data_dir: Optional[Path] = None,
    meta_llm_client: Optional[BaseLLMClient] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Connection and storage settings (environment when omitted)
        llm_client: Completion client for generation (built from settings when omitted)
        data_dir: Directory holding samples, prompt and runs.json
        meta_llm_client: Completion client for judging and reflection

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    app_data_dir = Path(data_dir) if data_dir else settings.resolve_data_dir()

    app = FastAPI(
        title="promptground server",
        description="Reflective prompt optimization over labeled conversations",
        version=__version__,
    )
    app.state.data_dir = app_data_dir
    app.state.run_store = RunStore(app_data_dir)
    app.state.data_store = DataStore(app_data_dir)
    app.state.user_config = UserConfigLoader(settings.resolve_config_path())
    app.state.llm_client = llm_client

    def get_llm_client() -> BaseLLMClient:
        if app.state.llm_client is None:
            app.state.llm_client = LLMClient(settings)
        return app.state.llm_client

    def build_optimizer(sink: EventSink) -> GEPAOptimizer:
        return GEPAOptimizer(
            llm_client=get_llm_client(),
            data_store=app.state.data_store,
            run_store=app.state.run_store,
            user_config=app.state.user_config,
            sink=sink,
            meta_llm_client=meta_llm_client,
        )

    # --- Optimization ---

    @app.post("/api/optimize")
    async def optimize(request: OptimizeRequest):
        """Run an optimization and stream its progress as server-sent events."""
        config = request.to_config()
        logger.info(
            f"Optimization requested: {config.num_rollouts} rollouts, batch {config.batch_size}"
        )

        events = stream_optimization(build_optimizer, config, resume_run_id=request.resume_run_id)
        return StreamingResponse(
            sse_stream(events),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    # --- Runs ---

    @app.get("/api/runs", response_model=RunsResponse, response_model_by_alias=True)
    def list_runs():
        """List all runs, newest first."""
        return RunsResponse(runs=app.state.run_store.list_runs())

    @app.get("/api/runs/{run_id}", response_model=OptimizationRun, response_model_by_alias=True)
    def get_run(run_id: str):
        """Get a single run."""
        run = app.state.run_store.get(run_id)
        if run is None:
            raise HTTPException(status_code=404, detail=f"Run {run_id} not found")
        return run

    @app.post("/api/runs", response_model=RunSavedResponse, response_model_by_alias=True)
    def save_run(run: OptimizationRun):
        """Create or update a run."""
        app.state.run_store.save(run)
        return RunSavedResponse(run=run)

    @app.delete("/api/runs", response_model=SuccessResponse)
    def delete_run(run_id: Optional[str] = Query(None, alias="id")):
        """Delete a run by id."""
        if not run_id:
            return JSONResponse(status_code=400, content={"error": "Run ID required"})
        app.state.run_store.delete(run_id)
        return SuccessResponse()

    # --- Health ---

    @app.get("/health", response_model=HealthResponse)
    def health():
        """Health check endpoint."""
        return HealthResponse(version=__version__)

    return app
