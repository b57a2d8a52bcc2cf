import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from medfile.database import close_db, init_db
from medfile.routers import doctors, patients, views

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting medfile...")
    await init_db()
    logger.info("Database initialized")
    yield
    await close_db()
    logger.info("medfile shut down")


app = FastAPI(
    title="medfile",
    description="Clinical record viewer - patient history correlation and export",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(patients.router)
app.include_router(doctors.router)
app.include_router(views.router)


@app.get("/health")
async def health():
    return {"status": "ok"}
