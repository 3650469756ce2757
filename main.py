"""
Garden Shop - Application Entry Point
=======================================
FastAPI app initialization, error rendering, middleware, and router registration.
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from config.database import Base, engine
from common.exceptions import ShopError
from common.responses import success_response, error_response

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("garden.app")


# ==========================================
# Import ALL models so Alembic/Base can see them
# ==========================================
from modules.user.models import User, WishlistItem  # noqa: F401
from modules.catalog.models import Product  # noqa: F401
from modules.review.models import Review  # noqa: F401
from modules.cart.models import Cart, CartItem  # noqa: F401
from modules.order.models import Order, OrderItem, OrderStatusLog  # noqa: F401

# ==========================================
# Import routers
# ==========================================
from modules.catalog.routes import router as product_router
from modules.cart.routes import router as cart_router
from modules.order.routes import router as order_router
from modules.order.admin_routes import router as order_admin_router
from modules.admin.routes import router as admin_router
from modules.user.routes import router as user_router


@asynccontextmanager
async def lifespan(app):
    # Auto-create any missing tables (safe for existing tables)
    Base.metadata.create_all(bind=engine)
    logger.info("Garden Shop API started (debug=%s)", settings.DEBUG)
    yield
    logger.info("Garden Shop API stopped")


# ==========================================
# Create App
# ==========================================
app = FastAPI(
    title="Garden Shop",
    description="Garden shop e-commerce backend",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ==========================================
# Exception handlers: everything renders {success: false, message}
# ==========================================

@app.exception_handler(ShopError)
async def shop_error_handler(request: Request, exc: ShopError):
    return error_response(exc.message, exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(str(exc.detail), exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    parts = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{field}: {err.get('msg')}" if field else err.get("msg", ""))
    return error_response("Invalid request: " + "; ".join(parts), 400)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    # The request session is rolled back when get_db closes it
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return error_response("Internal server error", 500)


# ==========================================
# Middleware: Request Timing Log
# ==========================================
_SKIP_PATHS = (f"{settings.API_PREFIX}/health", "/favicon.ico")


@app.middleware("http")
async def request_logger(request: Request, call_next):
    """Log every API request with status and elapsed time."""
    path = request.url.path
    if path.startswith(_SKIP_PATHS):
        return await call_next(request)

    start = time.time()
    response = await call_next(request)
    elapsed_ms = int((time.time() - start) * 1000)
    logger.info("%s %s -> %s (%dms)", request.method, path, response.status_code, elapsed_ms)
    return response


# ==========================================
# Register Routers
# ==========================================
app.include_router(product_router, prefix=settings.API_PREFIX)
app.include_router(cart_router, prefix=settings.API_PREFIX)
app.include_router(order_admin_router, prefix=settings.API_PREFIX)
app.include_router(order_router, prefix=settings.API_PREFIX)
app.include_router(admin_router, prefix=settings.API_PREFIX)
app.include_router(user_router, prefix=settings.API_PREFIX)


@app.get(f"{settings.API_PREFIX}/health")
async def health():
    return success_response("Server is healthy", {"status": "ok", "version": "1.0.0"})
