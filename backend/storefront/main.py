import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront.api.health import router as health_router
from storefront.api.routes_admin import router as admin_router
from storefront.api.routes_cart import router as cart_router
from storefront.api.routes_catalogue import categories_router
from storefront.api.routes_catalogue import router as catalogue_router
from storefront.api.routes_checkout import router as checkout_router
from storefront.api.routes_order import router as order_router
from storefront.api.routes_profile import router as profile_router
from storefront.api.routes_wishlist import router as wishlist_router
from storefront.config import settings
from storefront.db import init_db
from storefront.errors import StoreError
from storefront.services.housekeeping import purge_expired_sessions
from storefront.utils.logging import configure_logging

configure_logging()
log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    init_db()

    scheduler = None
    if settings.SCHEDULER_ENABLED:
        # scheduler for purging stale anonymous carts and checkout sessions
        scheduler = BackgroundScheduler()
        scheduler.add_job(
            purge_expired_sessions,
            "interval",
            seconds=settings.PURGE_INTERVAL_SECONDS,
            id="purge_expired_sessions",
        )
        scheduler.start()

    try:
        yield
    finally:
        if scheduler:
            scheduler.shutdown(wait=False)


app = FastAPI(title="Storefront - Backend", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    log.info("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, type(exc).__name__)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
    )


app.include_router(health_router, prefix="/api", tags=["health"])

app.include_router(catalogue_router, prefix="/api/products", tags=["catalogue"])
app.include_router(categories_router, prefix="/api/categories", tags=["catalogue"])

app.include_router(cart_router, tags=["cart"])

app.include_router(checkout_router, tags=["checkout"])

app.include_router(order_router, prefix="/api/orders", tags=["orders"])

app.include_router(profile_router, tags=["profile"])

app.include_router(wishlist_router, tags=["wishlist"])

app.include_router(admin_router, tags=["admin"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.APP_HOST, port=settings.APP_PORT)
