from fastapi import FastAPI
from fastapi.concurrency import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from assetgate.api.routes import api_router
from assetgate.api.v1.deps.errors import service_exception_handler
from assetgate.core.config import Environment, settings
from assetgate.core.exceptions.base import CustomException
from assetgate.core.logger import configure_uvicorn_logging, setup_logger, shutdown_logger
from assetgate.middleware.access_policy import AccessPolicyMiddleware
from assetgate.middleware.logging import LoggingMiddleware
from assetgate.middleware.rate_limit import RateLimitHeaderMiddleware
from assetgate.services.cache.manager import cache_manager


def _check_secrets():
    if settings.current_environment == Environment.PRD and settings.uses_default_secrets:
        logger.warning(
            "SECRET_KEY or SIGNATURE_SECRET still holds its development default in production."
        )


async def _check_dependencies():
    """Check essential dependencies before starting the app"""
    if not settings.redis_enabled:
        logger.info("Redis is disabled for this environment, skipping health check.")
        return

    is_healthy = await cache_manager.health_check()

    if not is_healthy:
        logger.error("CacheManager health check failed. Exiting application.")
        raise RuntimeError("CacheManager is not healthy.")

    logger.success("CacheManager is healthy.")


async def _shutdown_dependencies():
    """Shutdown essential dependencies gracefully"""

    await cache_manager.close()
    logger.success("CacheManager connection closed.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""

    setup_logger()
    configure_uvicorn_logging()

    logger.info("Initializing resources...")
    _check_secrets()
    await _check_dependencies()
    logger.success("Resources initialized.")

    yield  # Application runs here

    logger.info("Cleaning up resources...")
    await _shutdown_dependencies()
    logger.success("Resources cleaned up.")
    shutdown_logger()


ALLOWED_ENVIRONMENTS = {Environment.LOCAL, Environment.DEV, Environment.STG}

app = FastAPI(
    title=settings.app_title,
    version=settings.app_version,
    description=settings.app_description,
    openapi_url=("/openapi.json" if settings.current_environment in ALLOWED_ENVIRONMENTS else None),
    docs_url="/docs" if settings.current_environment in ALLOWED_ENVIRONMENTS else None,
    redoc_url="/redoc" if settings.current_environment in ALLOWED_ENVIRONMENTS else None,
    lifespan=lifespan,
    generate_unique_id_function=lambda route: f"{route.tags[0]}-{route.name}",
)

app.add_exception_handler(CustomException, service_exception_handler)

# Middleware runs in reverse order of registration: logging, CORS, access policy, headers
app.add_middleware(RateLimitHeaderMiddleware)
app.add_middleware(AccessPolicyMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)

app.include_router(api_router)
