"""FastAPI application entry point for the dynamic link service.

Application Lifecycle Diagram
===========================
::
    ┌──────────────┐
    │  uvicorn     │
    │  startup     │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ lifespan()   │
    │ init_db()    │
    │ service mgr  │  settings, logger, redis client
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ Serve HTTP   │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ lifespan()   │
    │ drain tasks  │  pending cache writes
    │ close redis  │
    │ close_db()   │
    └──────────────┘

How to Use
===========
**Run with uvicorn**::
    uvicorn dynalink.main:app --host 0.0.0.0 --port 8080

**Create a link**::
    curl -X POST http://localhost:8080/api/links \
         -H "Content-Type: application/json" \
         -d '{"webFallbackUrl": "https://example.com", "androidPackageName": "com.example.app"}'

Key Behaviours
===============
- Request validation errors are answered with 400 and per-field detail.
- Prometheus metrics are exposed on /metrics.
"""

__all__ = ["app"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from dynalink import background
from dynalink.config import get_settings
from dynalink.database import close_db, init_db
from dynalink.dependencies import _service_manager
from dynalink.routes import router

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    await init_db()
    await _service_manager.initialize()
    yield
    # Shutdown
    await background.drain(timeout=settings.BACKGROUND_DRAIN_TIMEOUT_SECONDS)
    await _service_manager.cleanup()
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="Short links that open native apps, fall back to the stores and unfurl for crawlers",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"detail": "Validation Error", "errors": errors})


Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=False,
    should_respect_env_var=False,
).instrument(app).expose(app)

app.include_router(router)
