# app/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI

from app.core.config import get_settings
from app.database import create_db_and_tables, engine
from app.services.cart_persistence import CartRegistry, build_storage_factory

# Import models so SQLModel metadata is populated before create_all()
from app.models import cart as _cart_models  # noqa: F401

# Routers
from app.routers.cart import router as cart_router

settings = get_settings()

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Create the cart_slots table (sql backend only).
      - Create the cart registry.

    Shutdown:
      - Close every open cart.
    """
    if settings.CART_STORAGE_BACKEND == "sql":
        logger.info("Startup: preparing cart storage at %s", engine.url.render_as_string())
        try:
            create_db_and_tables()
            logger.info("Startup: cart storage ready.")
        except Exception as e:
            logger.error(f"Startup: cart storage FAILED: {e}")
            raise
    else:
        logger.info("Startup: using in-memory cart storage.")

    app.state.cart_registry = CartRegistry(
        build_storage_factory(settings, engine),
        storage_name=settings.CART_STORAGE_NAME,
        max_size=settings.CART_REGISTRY_MAX_SIZE,
    )
    yield
    app.state.cart_registry.close()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


# --- CORS configuration ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Versioned API prefix, e.g. /api/v1
app.include_router(cart_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "storefront-cart"}
