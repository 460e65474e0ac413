"""FastAPI application entry point for the shortlinks service.

Application Lifecycle Diagram
=============================
::
    ┌──────────────┐
    │  uvicorn     │
    │  startup     │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ create_app() │  CORS, /metrics, routes,
    │              │  domain error handler
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ lifespan()   │
    │ startup:     │
    │ container =  │
    │ ServiceCont- │
    │ ainer.create │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ Serve HTTP   │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ lifespan()   │
    │ shutdown:    │
    │ container.   │
    │ close()      │
    └──────────────┘

How to Use
===========
**Run with uvicorn**::
    uvicorn shortlinks.main:app --host 0.0.0.0 --port 8080

**Shorten a URL**::
    curl -X POST http://localhost:8080/api/urls \
         -H "Content-Type: application/json" \
         -d '{"destination": "https://example.com"}'

Key Behaviours
===============
- The database schema is created on startup.
- Shared resources live on ``app.state.container``, never in module globals.
- ShortlinkError subclasses are rendered as ``{"detail": message}`` with
  the status code the exception class declares.
"""

__all__ = ["app", "create_app"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from shortlinks.config import Settings, get_settings
from shortlinks.dependencies import ServiceContainer
from shortlinks.exceptions import ShortlinkError
from shortlinks.routes import router


async def shortlink_error_handler(request: Request, exc: ShortlinkError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # Startup
        container = await ServiceContainer.create(settings)
        app.state.container = container
        yield
        # Shutdown
        await container.close()

    app = FastAPI(
        title=settings.APP_NAME,
        version="1.0.0",
        description="URL shortener with metadata support and cache-aside lookups",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=False,
        should_respect_env_var=False,
    ).instrument(app).expose(app)

    app.add_exception_handler(ShortlinkError, shortlink_error_handler)
    app.include_router(router)
    return app


app = create_app()
