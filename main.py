import logging

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from openmd.core.config import settings
from openmd.core.database import get_db
from openmd.core.logging_config import setup_logging
from openmd.core.redis_client import close_redis, get_redis, init_redis
from openmd.api.v1.api import api_router

logger = logging.getLogger("openmd")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    # Note: Database tables are managed by Alembic migrations
    setup_logging()
    if await get_redis() is None:
        await init_redis()
    logger.info("%s %s started", settings.PROJECT_NAME, settings.VERSION)
    yield
    # Shutdown
    await close_redis()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Markdown notes with visibility rules and password protected, expiring share links",
    version=settings.VERSION,
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/")
async def root():
    return {"message": settings.PROJECT_NAME, "version": settings.VERSION}


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Report database and Redis reachability"""
    checks = {}
    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except SQLAlchemyError as exc:
        logger.error("Database health check failed: %s", exc)
        checks["database"] = "unhealthy"

    redis_client = await get_redis()
    checks["redis"] = "unhealthy"
    if redis_client is not None:
        try:
            await redis_client.ping()
            checks["redis"] = "healthy"
        except RedisError as exc:
            logger.error("Redis health check failed: %s", exc)

    healthy = all(value == "healthy" for value in checks.values())
    return {"status": "healthy" if healthy else "unhealthy", **checks}


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        proxy_headers=True,  # Enable proxy headers support
        forwarded_allow_ips="*"  # Allow forwarded headers from any IP
    )
