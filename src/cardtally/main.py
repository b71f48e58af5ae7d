"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api.router import router
from .config import settings
from .database import init_db
from .tasks.worker import app as procrastinate_app
from .utils.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    setup_logging()
    await init_db()
    await procrastinate_app.open_async()
    yield
    # Shutdown
    await procrastinate_app.close_async()


app = FastAPI(
    title="Cardtally",
    description="Card usage aggregation into daily, weekly and monthly reports",
    version="0.1.0",
    lifespan=lifespan,
)

# Include routes
app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "cardtally.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
    )
