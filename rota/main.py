# rota/main.py
"""
FastAPI application with slot store and live sync lifecycle management.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from rota.config import Settings
from rota.infrastructure.observability.logging import get_logger, log_request, setup_logging
from rota.middleware import RequestContextMiddleware
from rota.routes import health, rota
from rota.services.identity.name_store import InMemoryDisplayNameStore, RedisDisplayNameStore
from rota.services.infrastructure.redis_client import FastRedisClient
from rota.services.rota_service import RotaService
from rota.services.store import RedisSlotStore, build_slot_store

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown with proper resource management."""
    settings: Settings = app.state.settings
    config = settings.to_rota_config()

    logger.info(
        "Application starting",
        environment=settings.environment,
        debug=settings.debug,
        backend=config.store_backend,
        app_id=config.app_id,
        collection=config.collection_key,
    )

    redis_client = None
    if config.store_backend == "redis" and config.redis_url:
        redis_client = FastRedisClient(config.redis_url, settings.get_redis_pool_config())

    # Never raises for an unreachable store; degrades to offline mode instead
    store = await build_slot_store(config, redis_client)

    if isinstance(store, RedisSlotStore):
        names = RedisDisplayNameStore(redis_client)
    else:
        names = InMemoryDisplayNameStore()

    rota_service = RotaService(config, store, names)
    app.state.rota = rota_service
    await rota_service.start()

    logger.info("All services initialized", mode=rota_service.mode, backend=store.backend)

    yield

    logger.info("Application shutting down")
    try:
        await rota_service.stop()
        logger.info("All services closed successfully")
    except Exception as e:
        logger.error("Error during shutdown", error=str(e))


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()

    application = FastAPI(
        title="Family Care Rota",
        description="Shared weekly rota with live slot claims",
        version="2.1.0",
        lifespan=lifespan,
    )
    application.state.settings = settings

    # Include routers
    application.include_router(health.router)
    application.include_router(rota.router)

    @application.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log HTTP requests with timing."""
        start_time = time.time()
        response = await call_next(request)
        process_time = (time.time() - start_time) * 1000

        log_request(
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(process_time, 2),
        )
        return response

    # Added last so it wraps everything, including request logging
    application.add_middleware(RequestContextMiddleware)

    return application


_settings = Settings()

# Setup logging before creating the app
setup_logging(log_level=_settings.LOG_LEVEL, json_output=not _settings.debug)

app = create_app(_settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
