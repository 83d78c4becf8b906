"""FastAPI application entry point for the edge redirect node.

Application Lifecycle Diagram
===========================
::
    ┌──────────────┐
    │  uvicorn     │
    │  startup     │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ create_app() │
    │ ServiceManager│
    └──────┬───────┘
           ▼
    ┌──────────────┐   store down
    │ lifespan()   │──────────────► startup aborts, nothing is served
    │ ping store   │
    │ probe origin │── origin down ─► warning, continue
    │ sync_paths() │
    │ start ticker │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ Serve HTTP   │
    │ requests     │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ lifespan()   │
    │ shutdown:    │
    │ stop ticker, │
    │ close clients│
    └──────────────┘

How to Use
===========
**Step 1 — Run with uvicorn**::
    uvicorn edge.main:app --host 0.0.0.0 --port 4000

**Step 2 — Or through the console script**::
    edge-node          # honours EDGE_HOST / EDGE_PORT

**Step 3 — Make requests**::
    curl -i http://localhost:4000/abc
    curl http://localhost:4000/health
    curl http://localhost:4000/internal/status

Configuration:
    See edge/config.py for all available settings.
"""

__all__ = ["app", "create_app", "run"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from edge.config import Settings, get_settings
from edge.dependencies import ServiceManager
from edge.routes import router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    manager: ServiceManager = app.state.service_manager
    # Startup
    await manager.startup()
    yield
    # Shutdown
    await manager.cleanup()


def create_app(settings: Settings | None = None, manager: ServiceManager | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version="1.0.0",
        description="Edge node serving short-link redirects from a locally synced cache",
        lifespan=lifespan,
    )
    app.state.service_manager = manager or ServiceManager.from_settings(settings)

    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=False,
        should_respect_env_var=False,
    ).instrument(app).expose(app)

    app.include_router(router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    # One worker: log buffer drains are serialized by a process-local lock
    uvicorn.run(app, host=settings.EDGE_HOST, port=settings.EDGE_PORT, workers=1)


if __name__ == "__main__":
    run()
