from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from liftcoach.api.analytics import router as analytics_router
from liftcoach.api.coach import router as coach_router
from liftcoach.api.voice import router as voice_router
from liftcoach.api.workouts import router as workouts_router
from liftcoach.config.settings import settings
from liftcoach.core.logger import setup_logger
from liftcoach.db.session import create_tables

setup_logger(level=settings.log_level, log_file=settings.log_file, json_logs=settings.log_json)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Ensure database tables exist before serving requests."""
    logger.info("Ensuring database tables exist")
    create_tables()
    yield
    logger.info("Shutting down")


app = FastAPI(title="LiftCoach", lifespan=lifespan)

app.include_router(workouts_router)
app.include_router(coach_router)
app.include_router(voice_router)
app.include_router(analytics_router)


@app.get("/health")
def health():
    return {"status": "ok"}
