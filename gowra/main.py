from fastapi import FastAPI, Request, APIRouter
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from gowra.api.routes import (
    auth as auth_router, events as events_router, registrations as registrations_router,
    admin as admin_router, health as health_router,
)
from gowra.db.session import engine, Base, AsyncSessionLocal
from gowra.cache.redis_client import cache
from gowra.core.config import settings
from gowra.core.errors import AppError, RateLimitError, ValidationError
from gowra.core.logging import logger
from gowra.core.rate_limit import limiter
from gowra.services.admin_service import ensure_admin_account
from fastapi.middleware.cors import CORSMiddleware
from gowra.middleware.security_headers import SecurityHeadersMiddleware
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

app = FastAPI(title="Gowra Events API")

# Add rate limiter to app state
app.state.limiter = limiter

# Add security headers middleware
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _validation_message(exc: RequestValidationError) -> str:
    """First schema error as ``field: message``."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    return f"{field}: {first.get('msg')}" if field else str(first.get("msg"))


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    error = ValidationError(_validation_message(exc))
    logger.info(f"{request.method} {request.url.path} -> 400 {error.message}")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    error = RateLimitError(f"Rate limit exceeded: {exc.detail}")
    logger.warning(f"Rate limit hit on {request.url.path} by {request.client.host if request.client else 'unknown'}")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"Database error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error", "code": "INTERNAL_ERROR"},
    )


api_router = APIRouter(prefix="/api")
api_router.include_router(auth_router.router)
api_router.include_router(events_router.router)
api_router.include_router(registrations_router.router)
api_router.include_router(admin_router.router)
api_router.include_router(health_router.router)

app.include_router(api_router)

@app.on_event("startup")
async def on_startup():
    # create tables (no migrations)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    if settings.ADMIN_EMAIL and settings.ADMIN_PASSWORD:
        async with AsyncSessionLocal() as session:
            await ensure_admin_account(session, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)
    logger.info(f"Gowra Events API started ({settings.ENVIRONMENT})")

@app.on_event("shutdown")
async def on_shutdown():
    cache.close()
    await engine.dispose()
