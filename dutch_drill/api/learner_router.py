"""API routes for learners and their preferences."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dutch_drill.api.schemas import LearnerCreateRequest, PreferencesResponse, PreferencesUpdate
from dutch_drill.database import get_session
from dutch_drill.models.learner import Learner

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/learners", tags=["learners"])


def _preferences(learner: Learner) -> PreferencesResponse:
    return PreferencesResponse(
        learner_id=learner.id,
        grammar_tips_enabled=learner.grammar_tips_enabled,
        smart_reminders_enabled=learner.smart_reminders_enabled,
    )


@router.post("", response_model=PreferencesResponse)
async def create_learner(
    request: LearnerCreateRequest,
    db: AsyncSession = Depends(get_session),
) -> PreferencesResponse:
    """Register a learner, or return the existing one for the same external id."""
    if request.external_id is not None:
        stmt = select(Learner).where(Learner.external_id == request.external_id)
        existing = (await db.execute(stmt)).scalar_one_or_none()
        if existing:
            return _preferences(existing)

    learner = Learner(
        name=request.name,
        external_id=request.external_id,
        language_code=request.language_code,
    )
    db.add(learner)
    await db.commit()
    await db.refresh(learner)
    logger.info("Registered learner %d (%s)", learner.id, learner.name)
    return _preferences(learner)


@router.get("/{learner_id}/preferences", response_model=PreferencesResponse)
async def get_preferences(
    learner_id: int,
    db: AsyncSession = Depends(get_session),
) -> PreferencesResponse:
    """Get a learner's preferences."""
    learner = await db.get(Learner, learner_id)
    if learner is None:
        raise HTTPException(status_code=404, detail="Learner not found")
    return _preferences(learner)


@router.patch("/{learner_id}/preferences", response_model=PreferencesResponse)
async def update_preferences(
    learner_id: int,
    update: PreferencesUpdate,
    db: AsyncSession = Depends(get_session),
) -> PreferencesResponse:
    """Change a learner's preferences."""
    learner = await db.get(Learner, learner_id)
    if learner is None:
        raise HTTPException(status_code=404, detail="Learner not found")

    if update.grammar_tips_enabled is not None:
        learner.grammar_tips_enabled = update.grammar_tips_enabled
    if update.smart_reminders_enabled is not None:
        learner.smart_reminders_enabled = update.smart_reminders_enabled
    await db.commit()
    return _preferences(learner)
