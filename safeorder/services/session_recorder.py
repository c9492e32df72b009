"""
SessionRecorder — archives finished sessions (assessment plus transcript).
Runs as a background task after scoring; never raises.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from safeorder.schemas.assessment import AssessmentResult
from safeorder.schemas.conversation import ConversationTurn
from safeorder.models.training_session import TrainingSessionRecord

logger = logging.getLogger(__name__)


class SessionRecorder:
    """Writes one training_sessions row per finished session."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def record(
        self,
        session_id: str,
        scenario_id: str,
        player_name: str,
        status: str,
        assessment: AssessmentResult,
        turns: list[ConversationTurn],
        started_at: datetime,
    ) -> bool:
        """Persist the session. Returns False (and logs) on any failure."""
        try:
            async with self._session_factory() as db:
                db.add(
                    TrainingSessionRecord(
                        id=session_id,
                        scenario_id=scenario_id,
                        level=assessment.level.value,
                        player_name=player_name,
                        status=status,
                        total_score=assessment.total_score,
                        max_possible_score=assessment.max_possible_score,
                        passed=assessment.passed,
                        critical_failure=assessment.critical_failure,
                        assessment=assessment.model_dump(mode="json"),
                        turns=[t.model_dump(mode="json") for t in turns],
                        started_at=started_at,
                    )
                )
                await db.commit()
            logger.info("Recorded session %s (%s)", session_id, scenario_id)
            return True
        except Exception as exc:
            logger.error("Failed to record session %s: %s", session_id, exc)
            return False
