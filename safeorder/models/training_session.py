"""TrainingSessionRecord ORM model — archive of every finished training session."""

from sqlalchemy import Column, Text, Boolean, Integer, JSON, TIMESTAMP, func

from safeorder.database import Base


class TrainingSessionRecord(Base):
    """
    One row per completed session: the final assessment and the full
    transcript, kept for progress tracking.
    """

    __tablename__ = "training_sessions"

    id = Column(Text, primary_key=True)
    scenario_id = Column(Text, nullable=False, index=True)
    level = Column(Text, nullable=False)
    player_name = Column(Text, nullable=False)
    status = Column(Text, nullable=False)

    total_score = Column(Integer, nullable=False)
    max_possible_score = Column(Integer, nullable=False)
    passed = Column(Boolean, nullable=False)
    critical_failure = Column(Boolean, nullable=False, default=False)

    assessment = Column(JSON, nullable=False)
    turns = Column(JSON, nullable=False)

    started_at = Column(TIMESTAMP(timezone=True), nullable=False)
    completed_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=func.now()
    )
