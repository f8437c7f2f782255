"""
Application factory for the meal plan API.

``create_app`` wires the record store, the process-wide reference caches and
the PlanService onto ``app.state`` and registers the routers. Tests pass
their own store (an in-memory SQL store); production builds the one selected
by RECORD_STORE_BACKEND.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from . import config
from .caches import IngredientClassifierCache, VariantCatalogCache
from .exceptions import PlanError
from .routes import admin_router, limiter, plan_router
from .schemas.admin import HealthResponse
from .services.plan import PlanService
from .store import RecordStore, build_record_store

logger = logging.getLogger(__name__)


async def plan_error_handler(request: Request, exc: PlanError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected (%d): %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "details": exc.details},
    )


def create_app(
    store: Optional[RecordStore] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        store: Record store to use. If None, the backend configured by
               RECORD_STORE_BACKEND is built.
        clock: Optional time source for audit entries (tests pin it)

    Returns:
        Configured FastAPI application
    """
    if store is None:
        store = build_record_store()

    logger.info("Creating meal plan API with %s record store", store.backend_name)

    app = FastAPI(
        title="Meal Plan API",
        description="Weekly meal plan customization and quantity management",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Configure rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(PlanError, plan_error_handler)

    # Shared state: one cache pair per process
    app.state.store = store
    app.state.ingredient_cache = IngredientClassifierCache(store)
    app.state.variant_cache = VariantCatalogCache(store)
    app.state.plan_service = PlanService(
        store,
        app.state.ingredient_cache,
        app.state.variant_cache,
        clock=clock,
    )

    # Versioned API plus the /api paths the plan viewer already calls
    for prefix in ("/api/v1", "/api"):
        api = APIRouter(prefix=prefix)
        api.include_router(plan_router)
        api.include_router(admin_router)
        app.include_router(api)

    @app.get("/health", response_model=HealthResponse)
    def health_check():
        return HealthResponse(status="healthy", store_backend=store.backend_name)

    logger.info("Application created successfully")
    return app
