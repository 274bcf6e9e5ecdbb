"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from . import config
from .api import routes
from .services.auth import build_login_validator
from .services.catalog import Catalog
from .services.eligibility import EligibilityService
from .services.registry import SessionRegistry
from .services.scheduler import SweepScheduler

# Setup logging
logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
logger = logging.getLogger(__name__)


def build_services(catalog: Optional[Catalog] = None) -> routes.Services:
    """Compose the single registry and its collaborators for this process."""
    catalog = catalog if catalog is not None else Catalog.load(config.DATA_FILE)
    registry = SessionRegistry()
    return routes.Services(
        registry=registry,
        catalog=catalog,
        validator=build_login_validator(catalog, config.AUTH_URL, config.AUTH_TIMEOUT_SECONDS),
        eligibility=EligibilityService(catalog),
        scheduler=SweepScheduler(registry, config.SWEEP_INTERVAL_SECONDS),
        timeout=config.SESSION_TIMEOUT_SECONDS,
        psid_length=config.PSID_LENGTH,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tests may install their own services before startup
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services()
    app.state.services.scheduler.start()
    yield
    await app.state.services.scheduler.stop()


# Create FastAPI app
app = FastAPI(title=config.API_TITLE, version=config.API_VERSION, lifespan=lifespan)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=config.CORS_METHODS,
    allow_headers=config.CORS_HEADERS,
)


# Register WebSocket route
@app.websocket("/ws/mps")
async def websocket_route(websocket: WebSocket):
    """WebSocket endpoint for proctoring sessions."""
    await routes.websocket_endpoint(websocket, websocket.app.state.services)


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": config.API_TITLE, "version": config.API_VERSION}


@app.get("/health")
async def health(request: Request):
    """Health check endpoint."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return {"status": "healthy", "sessions": len(services.registry)}
