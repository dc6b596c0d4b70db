"""Edge dispatcher web application."""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from eventalarm.core.config import settings
from eventalarm.core.database import create_edge_tables
from eventalarm.core.scheduler import shutdown_scheduler, start_scheduler
from eventalarm.routes import sync

# Configure logging
log_dir = Path.home() / ".logs" / "eventalarm"
log_dir.mkdir(parents=True, exist_ok=True)
log_file = log_dir / "latest.log"

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    filename=str(log_file),
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    # Startup
    logger.info("Starting edge dispatcher")
    create_edge_tables()
    start_scheduler()
    yield
    # Shutdown
    shutdown_scheduler()
    logger.info("Edge dispatcher shut down")


app = FastAPI(
    title=settings.app_name,
    description="Holds synced alarm state and sends push reminders when the device cannot",
    version="0.1.0",
    lifespan=lifespan,
)

# Devices sync from a browser context, so allow cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sync.router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "app": settings.app_name}
