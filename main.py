import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.cache.connection import close_redis, connection
from src.core.config import app_settings, cache_settings
from src.core.logging_config import setup_logging
from src.routers import profile as profile_router
from src.routers import refinement as refinement_router

setup_logging(app_settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Trait Profile Engine starting up...")
    yield
    logger.info("Trait Profile Engine shutting down...")
    await close_redis()


app = FastAPI(title="Trait Profile Engine - Main API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Include Routers ---
app.include_router(profile_router.router, prefix="/api/v1", tags=["profiles"])
app.include_router(refinement_router.router, prefix="/api/v1", tags=["refinement"])


@app.get("/health", tags=["Health Check"])
async def health_check():
    logger.debug("Health check endpoint accessed")
    status = {"status": "ok", "cache_backend": cache_settings.backend}
    if cache_settings.backend == "redis":
        status["redis"] = "ok" if await connection.healthy() else "unavailable"
    return status


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
