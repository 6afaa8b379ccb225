from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from .api.routes import api_router
from .config import configure_logging, settings
from .models.node_registry import get_default_registry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan: startup and shutdown events.
    """
    # Startup
    configure_logging()
    registry = get_default_registry()
    logger.info("Starting dappforge with %d plugins: %s", len(registry), ", ".join(registry.ids()))

    yield

    # Shutdown
    logger.info("Shutting down dappforge")

app = FastAPI(
    title="dappforge",
    description="dappforge compiles a graph of typed blueprint nodes into the source tree of a generated Web3 application.",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[],  # Empty list - use regex instead
    allow_origin_regex=settings.CORS_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["*"],
)

app.include_router(api_router)
