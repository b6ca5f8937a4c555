from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from aggregation.connectors.factory import build_connectors
from aggregation.query import ValidationError
from aggregation.services.aggregator import AggregationError, NewsAggregator
from aggregation.services.cache import InMemoryCacheStore, build_cache_store
from aggregation.settings import Settings, get_settings
from aggregation.utils.logging import configure_logging, get_logger

from .database import init_db
from .routes import router

# project-root .env, for `uvicorn api.main:app`
_ENV_PATH = Path(__file__).parent.parent / ".env"
if _ENV_PATH.exists():
    load_dotenv(_ENV_PATH)

logger = get_logger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        config = settings or get_settings()
        configure_logging(config.log_level, json_enabled=config.log_json)
        init_db(config)

        cache = build_cache_store(config)
        if isinstance(cache, InMemoryCacheStore):
            cache.start_sweeper(config.cache_sweep_interval_seconds)
        aggregator = NewsAggregator(
            build_connectors(config, cache),
            timeout_seconds=float(config.provider_timeout_seconds),
        )

        app.state.settings = config
        app.state.cache = cache
        app.state.aggregator = aggregator
        logger.info("app.startup", extra={"providers": aggregator.provider_names, "cache": type(cache).__name__})
        try:
            yield
        finally:
            if isinstance(cache, InMemoryCacheStore):
                cache.stop_sweeper()
            logger.info("app.shutdown")

    app = FastAPI(title="News Aggregation API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )

    @app.exception_handler(ValidationError)
    async def _validation_error_handler(_: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": "Validation failed", "details": [exc.to_dict()]},
        )

    @app.exception_handler(AggregationError)
    async def _aggregation_error_handler(_: Request, exc: AggregationError) -> JSONResponse:
        return JSONResponse(
            status_code=502,
            content={"error": "Failed to fetch news", "message": str(exc), "causes": exc.causes},
        )

    app.include_router(router)

    @app.get("/healthz", tags=["system"])
    async def healthcheck(request: Request) -> dict[str, Any]:
        payload: dict[str, Any] = {"status": "ok"}
        cache = getattr(request.app.state, "cache", None)
        if isinstance(cache, InMemoryCacheStore):
            payload["cache"] = cache.stats()
        return payload

    return app


app = create_app()
