"""FastAPI 애플리케이션 엔트리포인트 — 미들웨어, 라우터, 스케줄러 등록.

FastAPI application entry point — Middleware, routers and the polling
schedulers, which run inside the application lifespan.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from timekeeper.config import settings
from timekeeper.database import Base, engine
from timekeeper.middleware.axiom_logging import AxiomLoggingMiddleware
from timekeeper.services.scheduler import PollingJob, build_jobs
from timekeeper.utils.exceptions import TimekeeperError
from timekeeper.utils.logging import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """앱 수명주기 — Create the schema (optional) and run the polling jobs."""
    if settings.AUTO_CREATE_SCHEMA:
        import timekeeper.models  # noqa: F401  모델 등록 (register models on Base.metadata)

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    jobs: list[PollingJob] = build_jobs() if settings.SCHEDULER_ENABLED else []
    for job in jobs:
        job.start()
    try:
        yield
    finally:
        for job in jobs:
            await job.stop()
        await engine.dispose()


app: FastAPI = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


@app.exception_handler(TimekeeperError)
async def timekeeper_error_handler(request: Request, exc: TimekeeperError) -> JSONResponse:
    """근태 엔진 예외 → HTTP 응답 — Map domain errors to their status codes."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": type(exc).__name__},
    )


# Axiom API 로깅 미들웨어: CORS보다 먼저 등록하여 모든 요청을 캡처
app.add_middleware(AxiomLoggingMiddleware)

# CORS 미들웨어: Cross-Origin Resource Sharing middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """서버 상태 확인 엔드포인트.

    Health check endpoint for load balancers and monitoring.
    """
    return {"status": "ok"}


from timekeeper.api import api_router  # noqa: E402

app.include_router(api_router, prefix="/api/v1")
