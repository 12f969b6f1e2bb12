import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from .core.config import settings
from .api.routes import router as api_router
from .api.websocket import router as ws_router, scanner_callback
from .scanner.gateway_scanner import GatewayScanner

logger = logging.getLogger(__name__)

# Global scanner instance
scanner = GatewayScanner(config=settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    scanner.register_callback(scanner_callback)

    yield

    logger.info("Shutting down...")
    scanner.unregister_callback(scanner_callback)


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Gateway discovery on the local network",
    debug=settings.DEBUG,
    lifespan=lifespan
)
app.state.scanner = scanner

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(api_router, prefix="/api", tags=["API"])
app.include_router(ws_router, tags=["WebSocket"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running"
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "scan_running": app.state.scanner.is_running
    }
