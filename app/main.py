# app/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI

from app.core.config import get_settings
from app.core.errors import register_exception_handlers
from app.core.request_log import register_request_logging
from app.database import create_db_and_tables

# Import models so SQLModel metadata is populated before create_all()
from app.models import user as _user_models  # noqa: F401
from app.models import product as _product_models  # noqa: F401
from app.models import cart as _cart_models  # noqa: F401
from app.models import order as _order_models  # noqa: F401
from app.models import address as _address_models  # noqa: F401
from app.models import payment_method as _payment_method_models  # noqa: F401
from app.models import wishlist as _wishlist_models  # noqa: F401
from app.models import category as _category_models  # noqa: F401
from app.models import review as _review_models  # noqa: F401


# Routers
from app.routers.users import router as users_router
from app.routers.products import router as products_router
from app.routers.categories import router as categories_router
from app.routers.cart import router as cart_router
from app.routers.checkout import router as checkout_router
from app.routers.orders import router as orders_router
from app.routers.addresses import router as addresses_router
from app.routers.payment_methods import router as payment_methods_router
from app.routers.wishlist import router as wishlist_router
from app.routers.admin_stats import router as admin_stats_router

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.

    Shutdown:
      - No special cleanup needed for sync engine.
    """
    logger.info("🔄 Startup: connecting to database...")
    try:
        create_db_and_tables()
        logger.info("✅ Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error(f"❌ Startup: DB connection FAILED: {e}")
        raise
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)

register_exception_handlers(app)
register_request_logging(app, verbose=settings.is_development)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Versioned API prefix, e.g. /api/v1
for router in (
    users_router,
    products_router,
    categories_router,
    cart_router,
    checkout_router,
    orders_router,
    addresses_router,
    payment_methods_router,
    wishlist_router,
    admin_stats_router,
):
    app.include_router(router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "storefront-api", "environment": settings.ENVIRONMENT}
