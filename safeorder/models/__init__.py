"""SQLAlchemy ORM models package."""

from safeorder.database import Base
from safeorder.models.training_session import TrainingSessionRecord

__all__ = ["Base", "TrainingSessionRecord"]
