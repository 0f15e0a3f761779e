"""
Kommon Agent Executor Service - agent lifecycle management
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
import uvicorn

from core.config import get_settings
from core.executor_setup import setup_executor, cleanup_executor, get_executor
from api import agents

# Get settings
settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""

    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    await setup_executor(settings)

    yield

    # Shutdown
    logger.info("Shutting down executor service")
    await cleanup_executor()

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)

# Mount Prometheus metrics
if settings.enable_metrics:
    metrics_app = make_asgi_app()
    app.mount("/metrics", metrics_app)

# Include routers
app.include_router(agents.router)

# Exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "type": type(exc).__name__,
        }
    )

# Root endpoint
@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "status": "running",
        "executor": settings.executor_type,
        "endpoints": {
            "agents": "/api/v1/agents",
            "status": "/api/v1/executor/status",
            "health": "/health",
            "metrics": "/metrics" if settings.enable_metrics else None,
            "docs": "/docs" if settings.debug else None,
        }
    }

# Health check
@app.get("/health")
async def health():
    """Health check endpoint"""

    executor_ready = False
    active_agents = 0

    try:
        status = await get_executor().get_status()
        executor_ready = status.is_ready
        active_agents = status.active_agents
    except Exception as e:
        logger.warning(f"Executor status unavailable: {e}")

    return {
        "status": "healthy" if executor_ready else "degraded",
        "service": "kommon-executor",
        "version": settings.app_version,
        "checks": {
            "executor": executor_ready,
        },
        "active_agents": active_agents,
    }

def main():
    """Main entry point"""
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=settings.workers if not settings.debug else 1,
        log_level="info" if not settings.debug else "debug",
    )

if __name__ == "__main__":
    main()
