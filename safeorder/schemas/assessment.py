"""Pydantic schemas for the end-of-session assessment and feedback."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from safeorder.schemas.conversation import ConversationTurn
from safeorder.schemas.scenario import DifficultyLevel


class FeedbackTone(str, Enum):
    ENCOURAGING = "encouraging"
    BALANCED = "balanced"
    CHALLENGING = "challenging"


class AssessmentResult(BaseModel):
    """
    Terminal product of a session. Built once by the scoring engine; the only
    later change is attaching the feedback paragraph via model_copy.
    """

    model_config = ConfigDict(frozen=True)

    level: DifficultyLevel

    # Per-criterion points (0 where a level does not score a criterion)
    allergy_disclosure_score: int = 0
    risk_assessment_score: int = 0          # safe food choice
    order_decision_score: int = 0
    ingredient_inquiry_score: int = 0
    cross_contamination_score: int = 0
    hidden_allergen_score: int = 0
    preparation_method_score: int = 0
    safety_reaction_score: int = 0
    assertiveness_score: int = 0
    confidence_score: int = 0
    politeness_score: int = 0
    bonus_points: int = 0

    total_score: int
    max_possible_score: int
    passing_score: int
    passed: bool
    overall_grade: Literal["PASS", "FAIL"]
    critical_failure: bool = False

    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    missed_actions: list[str] = Field(default_factory=list)
    earned_bonuses: list[str] = Field(default_factory=list)
    detailed_scores: dict[str, int] = Field(default_factory=dict)
    detailed_feedback: str = ""
    assessed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class FeedbackResult(BaseModel):
    """Prose feedback for one assessment."""

    paragraph: str
    strengths: list[str]
    improvements: list[str]
    tone: FeedbackTone


class SessionReport(BaseModel):
    """Response for POST /sessions/{session_id}/finish."""

    session_id: str
    scenario_id: str
    assessment: AssessmentResult
    feedback: FeedbackResult
    turns: list[ConversationTurn]
