"""
Event Registration API - Main Application Entry Point

Capacity-limited event registration demonstrating:
- Hard capacity ceiling under concurrent signups (per-event lock + row lock)
- One active registration per event and email, enforced in the store
- Read-through caching of event views with explicit invalidation on writes
- Fixed-window rate limiting per IP and per email
- Fire-and-forget email notifications that never gate a response
- Structured logging with request correlation
"""

from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.deps import get_context
from app.api.middleware import RequestLoggingMiddleware
from app.api.router import api_router
from app.core.config import get_settings
from app.core.errors import DomainError
from app.core.logging import setup_logging, get_logger
from app.core.metrics import metrics_endpoint
from app.db.seed import seed_default_events
from app.db.session import SessionLocal, close_db, init_db
from app.services.context import ServiceContext
from app.services.factory import build_context

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    if settings.DB_AUTO_CREATE:
        await init_db()
    if settings.SEED_DEFAULT_EVENTS:
        async with SessionLocal() as session:
            await seed_default_events(session)

    context = await build_context(settings)
    context.start()
    app.state.context = context

    yield

    await context.close()
    await close_db()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Capacity-limited event registration with cached read views",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Custom middleware
app.add_middleware(RequestLoggingMiddleware)

# Routes
app.include_router(api_router)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if exc.status_code >= 500:
        get_logger(__name__).error("request_failed_internal", code=exc.code.value, path=request.url.path)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/health", tags=["Health"])
async def health_check(ctx: ServiceContext = Depends(get_context)):
    """Health check endpoint for Docker and load balancers."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": await ctx.cache.stats(),
    }


@app.get("/metrics", tags=["Health"])
def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
