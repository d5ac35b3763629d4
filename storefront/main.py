"""
Top-up Storefront - Backend API
Catalog, checkout and back-office API for the in-game currency storefront
"""
import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables before settings are read
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.core.config import settings
from storefront.core.database import get_db_connection_with_retry
from storefront.core.rate_limit import RateLimitMiddleware
from storefront.api import catalog, checkout, orders, members, admin_members, payment_methods, site_settings
from storefront.services.order_feed import OrderChangeListener, order_feed, feed_broadcaster

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    listener = None
    if settings.ORDER_FEED_LISTEN:
        listener = OrderChangeListener(order_feed)
        listener.start()

    yield

    feed_broadcaster.shutdown()
    if listener is not None:
        listener.stop()


app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    description=settings.API_DESCRIPTION,
    lifespan=lifespan,
)

app.add_middleware(RateLimitMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["*"],
)

# Customer side
app.include_router(catalog.router, prefix="/api/v1/catalog", tags=["Catalog"])
app.include_router(checkout.router, prefix="/api/v1/checkout", tags=["Checkout"])
app.include_router(members.router, prefix="/api/v1/members", tags=["Members"])
app.include_router(site_settings.router, prefix="/api/v1/site-settings", tags=["Site Settings"])

# Shared customer/admin
app.include_router(orders.router, prefix="/api/v1/orders", tags=["Orders"])
app.include_router(payment_methods.router, prefix="/api/v1/payment-methods", tags=["Payment Methods"])

# Back office
app.include_router(admin_members.router, prefix="/api/v1/admin", tags=["Admin Members"])


@app.get("/")
async def root():
    return {
        "message": "Top-up Storefront API",
        "status": "online",
        "version": settings.API_VERSION,
    }


@app.get("/health")
async def health():
    """Health check endpoint - tests database connectivity"""
    start_time = time.time()

    db_status = "unknown"
    db_latency_ms = None
    db_error = None

    try:
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
        db_status = "disconnected"
        db_error = str(e)

    total_latency_ms = round((time.time() - start_time) * 1000, 2)

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "service": "storefront-api",
        "version": settings.API_VERSION,
        "database": {
            "status": db_status,
            "latency_ms": db_latency_ms,
            "error": db_error
        },
        "order_feed": {
            "streams": feed_broadcaster.connection_count
        },
        "total_latency_ms": total_latency_ms
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("storefront.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.API_DEBUG)
