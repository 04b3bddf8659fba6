"""
Storefront API - Backend
Catalog, cart, checkout, promotions and admin dashboard
"""
import logging
import time
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables before settings are read
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import (
    addresses, auth, blog, campaigns, cart, catalog, checkout, coupons, dashboard,
    gift_cards, orders, products, returns, stock, system_logs,
)
from app.core.config import settings
from app.core.database import CONNECTION_TIMEOUT, get_db_connection_with_retry, init_db
from app.core.exceptions import AppError
from app.core.rate_limit import RateLimitMiddleware

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

ALLOWED_ORIGINS = settings.get_allowed_origins()

# Crear aplicación FastAPI
app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    description=settings.API_DESCRIPTION,
    debug=settings.API_DEBUG,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset", "Retry-After"],
)
app.add_middleware(RateLimitMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Render domain errors as {"detail": message[, "details": ...]}"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Include API routers
MODULES = [
    (auth.router, "/api/v1/auth", "Auth"),
    (addresses.router, "/api/v1/addresses", "Addresses"),
    (products.router, "/api/v1/products", "Products"),
    (catalog.router, "/api/v1", "Catalog"),
    (cart.router, "/api/v1/cart", "Cart"),
    (checkout.router, "/api/v1/checkout", "Checkout"),
    (orders.router, "/api/v1/orders", "Orders"),
    (stock.router, "/api/v1/stock", "Stock"),
    (coupons.router, "/api/v1/coupons", "Coupons"),
    (gift_cards.router, "/api/v1/gift-cards", "Gift Cards"),
    (campaigns.router, "/api/v1/campaigns", "Campaigns"),
    (blog.router, "/api/v1/blog", "Blog"),
    (returns.router, "/api/v1/returns", "Returns"),
    (system_logs.router, "/api/v1/system-logs", "System Logs"),
    (dashboard.router, "/api/v1/dashboard", "Dashboard"),
]

for router, prefix, tag in MODULES:
    app.include_router(router, prefix=prefix, tags=[tag])


@app.on_event("startup")
async def startup():
    if settings.AUTO_CREATE_TABLES:
        init_db()


@app.get("/")
async def root():
    """API info"""
    return {
        "message": settings.API_TITLE,
        "status": "online",
        "version": settings.API_VERSION,
        "description": settings.API_DESCRIPTION,
    }


@app.get("/health")
async def health():
    """Health check endpoint for monitoring - tests database connectivity"""
    start_time = time.time()

    db_status = "unknown"
    db_latency_ms = None
    db_error = None

    try:
        # Single retry keeps the check fast
        conn = get_db_connection_with_retry(max_retries=1, retry_delay=0.5)
        cursor = conn.cursor()

        db_start = time.time()
        cursor.execute("SELECT 1")
        cursor.fetchone()
        db_latency_ms = round((time.time() - db_start) * 1000, 2)

        cursor.close()
        conn.close()
        db_status = "connected"
    except Exception as e:
        logger.warning(f"Health check database failure: {e}")
        db_status = "disconnected"
        db_error = str(e)

    return {
        "status": "healthy" if db_status == "connected" else "unhealthy",
        "service": "storefront-api",
        "version": settings.API_VERSION,
        "database": {
            "status": db_status,
            "latency_ms": db_latency_ms,
            "error": db_error,
            "connection_timeout_s": CONNECTION_TIMEOUT,
        },
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
    }


@app.get("/api/v1/status")
async def api_status():
    """Mounted modules"""
    return {
        "status": "online",
        "version": settings.API_VERSION,
        "rate_limit_enabled": settings.RATE_LIMIT_ENABLED,
        "modules": [{"name": tag, "prefix": prefix} for _, prefix, tag in MODULES],
    }
