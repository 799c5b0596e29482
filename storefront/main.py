import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from storefront.api.revisions import router as revisions_router
from storefront.config.settings import settings
from storefront.core.logger import setup_logger
from storefront.db.models import Base
from storefront.db.session import get_engine

setup_logger(
    level=settings.log_level,
    log_file=settings.log_file or None,
    revision_log_file=settings.revision_log_file or None,
)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Ensure database tables exist before serving requests.

    Note: FastAPI requires async for lifespan context manager,
    even if no await operations are used.
    """
    logger.info("Ensuring database tables exist")
    Base.metadata.create_all(bind=get_engine())
    logger.info("Database tables verified")

    await asyncio.sleep(0)
    yield


app = FastAPI(title="Storefront API", lifespan=lifespan)
app.include_router(revisions_router)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
