"""FastAPI application entry point and configuration."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy import text

from dutch_drill.api.drill_router import router as drill_router
from dutch_drill.api.learner_router import router as learner_router
from dutch_drill.api.stats_router import router as stats_router
from dutch_drill.config import settings
from dutch_drill.database import async_session, engine
from dutch_drill.models import Base
from dutch_drill.srs.fsrs import FSRS
from dutch_drill.srs.session import DrillService, SessionStore


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialize database on startup and cleanup on shutdown."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Spaced repetition vocabulary drills for Dutch",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.session_store = SessionStore()
app.state.drill_service = DrillService(fsrs=FSRS(target_retention=settings.target_retention))

app.include_router(learner_router)
app.include_router(drill_router)
app.include_router(stats_router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Check database connectivity and return status."""
    async with async_session() as session:
        await session.execute(text("SELECT 1"))
    return {"status": "ok"}
