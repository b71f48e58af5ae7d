"""Procrastinate worker configuration."""

import asyncio

import procrastinate

from ..config import settings
from ..utils.logging import setup_logging

# Create procrastinate app with async connector
app = procrastinate.App(
    connector=procrastinate.PsycopgConnector(
        conninfo=settings.procrastinate_database_url,
        kwargs={},
    ),
    import_paths=["cardtally.tasks.report_tasks"],
)


async def run_worker() -> None:
    """Run a worker processing card usage and scheduled dispatch jobs."""
    setup_logging()
    async with app.open_async():
        await app.run_worker_async()


def main() -> None:
    asyncio.run(run_worker())
