from __future__ import annotations

import logging
import os
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Callable, Awaitable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy import text

from client_crud.core.config import settings
from client_crud.core.database import engine, init_db
from client_crud.core.logging import setup_logging, access_log_middleware
from client_crud.api.routes import router as client_router

setup_logging()
logger = logging.getLogger("client-crud")

# Prometheus
REQUEST_COUNT = Counter("http_requests_total", "Total des requêtes HTTP", ["method", "path", "status"])
REQUEST_LATENCY = Histogram("http_request_duration_seconds", "Latence des requêtes HTTP", ["method", "path"])


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # --- DB connectivity + schema ---
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("database connection OK")
    except Exception:
        logger.exception("database connectivity check failed")

    try:
        init_db()
    except Exception:
        logger.exception("database init failed")

    yield
    logger.info("shutting down")


app = FastAPI(
    title=settings.APP_TITLE,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    root_path=os.getenv("ROOT_PATH", ""),
    docs_url="/docs" if settings.ENV != "prod" else None,
    redoc_url="/redoc" if settings.ENV != "prod" else None,
    openapi_url="/openapi.json" if settings.ENV != "prod" else None,
)

# Access log
app.middleware("http")(access_log_middleware)


def _metrics_path(path: str) -> str:
    # Regroupe /api/clients/<id> sous un seul label
    parts = [p for p in path.split("/") if p]
    if "clients" in parts:
        idx = parts.index("clients")
        return "/api/clients/{id}" if len(parts) > idx + 1 else "/api/clients"
    return path


# Metrics middleware
@app.middleware("http")
async def metrics_middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    start = time.time()
    response: Response = await call_next(request)
    duration = time.time() - start

    path = _metrics_path(request.url.path)
    REQUEST_COUNT.labels(request.method, path, str(response.status_code)).inc()
    REQUEST_LATENCY.labels(request.method, path).observe(duration)
    return response


# CORS
allow_methods = ["*"] if settings.CORS_ALLOW_METHODS == "*" else [
    m.strip() for m in settings.CORS_ALLOW_METHODS.split(",") if m.strip()
]
allow_headers = ["*"] if settings.CORS_ALLOW_HEADERS == "*" else [
    h.strip() for h in settings.CORS_ALLOW_HEADERS.split(",") if h.strip()
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=allow_methods,
    allow_headers=allow_headers,
)


@app.get("/metrics")
def metrics() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(client_router)
