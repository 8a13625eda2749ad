import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.config import settings
from app.core.logging import configure_logging
from app.api.diagnose import router as api_router
from app.dependencies import get_engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    engine = get_engine()
    logger.info(f"{settings.service_name} ready with signatures: {', '.join(engine.library.ids())}")
    yield


app = FastAPI(
    title=settings.service_name,
    lifespan=lifespan
)

app.include_router(api_router, prefix="/v1")


@app.get("/health")
async def health():
    return {"status": "ok", "service": settings.service_name}
