"""
FastAPI backend for the deal discovery bot and admin dashboard.

Wraps third-party commerce APIs behind a shared file cache.
"""

import logging
from datetime import datetime
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, ORJSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.container import container
from core.logging import configure_logging, get_logger
from routers import cache, maps

# Initialize settings and logging
settings = container.settings()
configure_logging(settings)
logger = get_logger(__name__)

# Suppress noisy loggers
logging.getLogger("uvicorn").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    logger.info("Starting deal aggregator services")

    await container.cache().startup()

    cleanup_service = container.cleanup_service()
    if settings.cleanup_enabled:
        await cleanup_service.start()

    logger.info("Services started successfully")
    yield

    await cleanup_service.stop()
    logger.info("Services shutdown complete")


app = FastAPI(
    title="Deal Aggregator Services",
    version="1.0.0",
    description="Maps, food and product API glue with a shared TTL cache",
    lifespan=lifespan,
    default_response_class=ORJSONResponse
)


class CatchAllExceptionsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Unhandled exception: {type(e).__name__}: {str(e)}", exc_info=True)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "success": False,
                    "error": f"{type(e).__name__}: {str(e)}",
                    "detail": "Internal server error"
                }
            )


app.add_middleware(CatchAllExceptionsMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(cache.router)
app.include_router(maps.router)


@app.get("/health")
async def health_check():
    """Health check with cache summary."""
    stats = await container.cache().get_stats()
    return {
        "status": "OK" if stats is not None else "DEGRADED",
        "service": "python",
        "version": "1.0.0",
        "environment": "development" if settings.debug else "production",
        "cache": stats.to_dict() if stats is not None else None,
        "cleanup_running": container.cleanup_service().running,
        "timestamp": datetime.now().isoformat()
    }


if __name__ == "__main__":
    import uvicorn
    logger.info("Starting deal aggregator services",
                host=settings.host, port=settings.port, debug=settings.debug)
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.workers
    )
