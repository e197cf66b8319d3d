"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from groupspace import __version__
from groupspace.api.v1.api import api_router
from groupspace.components.workspace.storage_provider import get_storage_type
from groupspace.settings import settings
from groupspace.utils import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings.validate_configuration()
    setup_logging("server")
    logger.info(f"GroupSpace API starting: env={settings.environment}, storage={get_storage_type()}")
    yield


app = FastAPI(
    title="GroupSpace API",
    description="Shared workspace state service for reading groups",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(api_router, prefix=settings.api_prefix)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "GroupSpace API",
        "version": __version__,
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "storage": get_storage_type()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "groupspace.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
