import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from storefront.auth.hashing import PasswordHasher
from storefront.auth.jwt import TokenService
from storefront.auth.router import router as auth_router
from storefront.auth.service import AuthService
from storefront.base_service import BaseService, configure_logging
from storefront.cache.redis_cache import CacheService
from storefront.config import Settings
from storefront.database.repositories import ProductRepository, UserRepository
from storefront.database.store import Database
from storefront.errors import register_exception_handlers
from storefront.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from storefront.products.router import router as products_router
from storefront.products.service import CatalogService
from storefront.rate_limit import RateLimiter, RateLimitMiddleware

API_NAME = "E-commerce API"
API_DESCRIPTION = "E-commerce REST API: accounts, authentication and product catalog"

base_service = BaseService("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI.
    Configures logging, prepares the schema and checks the cache on startup.
    Releases the database and cache on shutdown.
    """
    state = app.state
    configure_logging(state.settings)
    if not state.settings.jwt_secret:
        base_service.logger.warning("JWT_SECRET is not set; using the development signing secret")
    base_service.log_event("service.startup", {
        "environment": state.settings.environment,
        "version": state.settings.version,
    })
    await state.database.create_all()
    if not await state.cache.ping():
        base_service.logger.warning("Cache unreachable at startup; serving from the database only")

    yield

    base_service.log_event("service.shutdown", {})
    await state.database.dispose()
    await state.cache.close()


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    cache: Optional[CacheService] = None,
) -> FastAPI:
    """
    Build the FastAPI application with explicitly constructed handles.

    Args:
        settings: Runtime settings, read from the environment when omitted
        database: Database handle, built from ``settings.database_url`` when omitted
        cache: Cache handle, built from ``settings.redis_url`` when omitted

    Returns:
        Configured FastAPI app; every shared handle is reachable on ``app.state``
    """
    settings = settings or Settings.from_env()
    settings.validate()

    database = database or Database(settings.database_url)
    cache = cache or CacheService.from_url(settings.redis_url)
    hasher = PasswordHasher(settings.bcrypt_rounds)
    tokens = TokenService(
        settings.signing_secret,
        expires_in=settings.jwt_expires_in,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
    )

    app = FastAPI(
        title=API_NAME,
        description=API_DESCRIPTION,
        version=settings.version,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.started_at = time.monotonic()
    app.state.database = database
    app.state.cache = cache
    app.state.hasher = hasher
    app.state.tokens = tokens
    app.state.auth_service = AuthService(
        UserRepository(database),
        hasher,
        tokens,
        cache,
        allow_admin_self_registration=settings.allow_admin_self_registration,
        token_revocation_enabled=settings.token_revocation_enabled,
    )
    app.state.catalog_service = CatalogService(ProductRepository(database), cache)
    app.state.rate_limiter = RateLimiter(
        cache, settings.rate_limit_max, settings.rate_limit_window, prefix="ratelimit"
    )
    app.state.auth_rate_limiter = RateLimiter(
        cache, settings.auth_rate_limit_max, settings.auth_rate_limit_window, prefix="ratelimit:auth"
    )

    register_exception_handlers(app)

    # Last added is outermost; CORS must see preflights first.
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    prefix = settings.api_prefix
    app.include_router(auth_router, prefix=f"{prefix}/auth", tags=["auth"])
    app.include_router(products_router, prefix=f"{prefix}/products", tags=["products"])

    @app.get("/", tags=["root"])
    async def root():
        """Root endpoint returning API information."""
        return {
            "name": API_NAME,
            "version": settings.version,
            "description": API_DESCRIPTION,
            "documentation": "/docs",
            "health": f"{prefix}/health",
            "endpoints": {
                "auth": f"{prefix}/auth",
                "products": f"{prefix}/products",
            },
        }

    @app.get(f"{prefix}/health", tags=["health"])
    async def health_check(request: Request):
        """Liveness information for the API process."""
        state = request.app.state
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - state.started_at, 3),
            "version": state.settings.version,
            "environment": state.settings.environment,
        }

    return app


app = create_app()

# For running directly with uvicorn
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("storefront.main:app", host=app.state.settings.host, port=app.state.settings.port, reload=True)
