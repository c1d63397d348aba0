"""Main application entry point."""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
import redis

from config import API_VERSION, OTEL_ENABLED, REDIS_URL, WRITE_REQUESTS_PER_MINUTE
from database import init_db, engine
from errors import register_exception_handlers
from logging_config import setup_logging
from rate_limiter import WriteRateLimiter
from routers import orders, products, reports, users

# Setup structured logging
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    logger.info("Starting application...")

    init_db()

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application...")
    engine.dispose()
    if redis_client is not None:
        redis_client.close()
    logger.info("Application shutdown complete")


app = FastAPI(
    title="Shop Service",
    version=API_VERSION,
    lifespan=lifespan
)

register_exception_handlers(app)

# Write throttling is shared through Redis, so it is only enabled with one
redis_client = None
if REDIS_URL:
    redis_client = redis.from_url(REDIS_URL, decode_responses=True)
    app.add_middleware(
        WriteRateLimiter,
        redis_client=redis_client,
        requests_per_minute=WRITE_REQUESTS_PER_MINUTE
    )

if OTEL_ENABLED:
    from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
    from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
    from opentelemetry.instrumentation.redis import RedisInstrumentor

    FastAPIInstrumentor.instrument_app(app)
    SQLAlchemyInstrumentor().instrument(engine=engine)
    if redis_client is not None:
        RedisInstrumentor().instrument()


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


app.include_router(users.router)
app.include_router(products.router)
app.include_router(orders.router)
app.include_router(reports.router)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
