# app/main.py

import logging
import subprocess
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.core.logging_config import configure_logging
from app.routes import bol, health, integrations
from app.scheduler import get_sync_scheduler

configure_logging()
logger = logging.getLogger(__name__)

settings = get_settings()


def run_migrations():
    logger.info("Running database migrations...")
    result = subprocess.run(['alembic', 'upgrade', 'head'], capture_output=True, text=True)
    if result.returncode == 0:
        logger.info("Migrations completed successfully")
    else:
        logger.error(f"Migration failed: {result.stderr}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.RUN_MIGRATIONS:
        try:
            run_migrations()
        except OSError as e:
            logger.error(f"Migration error: {e}")

    scheduler = get_sync_scheduler()
    if settings.BOL_SYNC_ENABLED:
        scheduler.start()
    else:
        logger.info("Bol.com order sync is disabled. Set BOL_SYNC_ENABLED=true to enable")

    try:
        yield  # This is where the app runs
    finally:
        scheduler.stop()


app = FastAPI(
    title="Fulfilment Back-office API",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Auth is enforced per route; health stays public
app.include_router(bol.router)
app.include_router(integrations.router)
app.include_router(health.router)
