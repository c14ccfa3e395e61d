# app/cli/sync_bol.py
"""
Run a Bol.com order sync from the command line.

    python -m app.cli.sync_bol                      # one full cycle
    python -m app.cli.sync_bol --installation-id 42 # one installation
"""
import asyncio
import json
import logging
from typing import Optional

import click

from app.core.config import get_settings
from app.core.logging_config import configure_logging
from app.database import async_session, engine
from app.scheduler import BolSyncScheduler
from app.services.bol.client import BolClient
from app.services.bol.sync import BolOrderSyncService

logger = logging.getLogger(__name__)


async def _sync(installation_id: Optional[int]) -> dict:
    client = BolClient.from_settings(get_settings())
    try:
        if installation_id is not None:
            async with async_session() as db:
                result = await BolOrderSyncService(db, client).reconcile(installation_id)
            return result.to_dict()

        scheduler = BolSyncScheduler(session_factory=async_session, client_factory=lambda: client)
        summary = await scheduler.run_cycle()
        return summary.to_dict()
    finally:
        await engine.dispose()


@click.command()
@click.option("--installation-id", type=int, default=None, help="Sync only this installation")
def sync_bol(installation_id):
    """Import open Bol.com orders once"""
    configure_logging()
    result = asyncio.run(_sync(installation_id))
    click.echo(json.dumps(result, indent=2))


if __name__ == "__main__":
    sync_bol()
