# app/cli/create_tables.py
import asyncio
import click

from app.database import Base, engine

# Import the models so they are registered with the Base
from app.models import Installation, User, UserInstallation, Integration, Order, OrderItem


@click.command()
def create_tables():
    """Create all database tables directly using SQLAlchemy"""

    async def _create_tables():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await engine.dispose()
        click.echo("All tables created successfully!")

    asyncio.run(_create_tables())


if __name__ == "__main__":
    create_tables()
