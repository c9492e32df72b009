"""Pydantic schemas for conversation state, classified turns and the session API."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from safeorder.schemas.scenario import DifficultyLevel, PlayerProfile

IntentLabel = Literal[
    "food_ordering", "allergy_disclosure", "question", "general_response", "greeting"
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    FAILED = "failed"


class ChatMessage(BaseModel):
    """A single line of the transcript as handed to the reply generator."""

    role: Literal["user", "assistant"]
    content: str


class ConversationContext(BaseModel):
    """
    Belief state after each turn. Frozen: every update returns a new value via
    model_copy(update=...), and list fields are always replaced, never appended to.
    """

    model_config = ConfigDict(frozen=True)

    messages: list[ChatMessage] = Field(default_factory=list)
    allergies_disclosed: bool = False
    disclosed_allergies: list[str] = Field(default_factory=list)
    selected_dish: Optional[str] = None
    confirmed_dish: bool = False
    turn_count: int = 0
    topics_covered: dict[str, bool] = Field(default_factory=dict)

    # Order decisions after a safety warning
    safety_warning_given: bool = False
    warned_dish: Optional[str] = None          # selected dish at the time of the last warning
    cancelled_orders_after_warning: list[str] = Field(default_factory=list)
    kept_unsafe_orders_after_warning: list[str] = Field(default_factory=list)
    reordered_items_after_cancellation: list[str] = Field(default_factory=list)

    @property
    def recent_messages(self) -> list[ChatMessage]:
        """Last three exchanges."""
        return self.messages[-6:]


class ClassifiedIntent(BaseModel):
    """Classifier output for one utterance, from either the pattern or the semantic path."""

    intent: IntentLabel = "general_response"
    is_disclosure: bool = False
    disclosed_allergens: list[str] = Field(default_factory=list)
    is_ordering: bool = False
    ordered_dish: Optional[str] = None
    is_question: bool = False
    asking_about_menu: bool = False
    conversation_should_end: bool = False
    source: Literal["pattern", "semantic"] = "pattern"


class SemanticAnalysis(BaseModel):
    """JSON returned by the semantic intent collaborator. Validated before use."""

    intent: IntentLabel
    mentioned_allergies: list[str] = Field(default_factory=list)
    ordered_food: Optional[str] = None
    is_asking_question: bool = False
    conversation_should_end: bool = False
    confidence: float = Field(0.5, ge=0.0, le=1.0)


class TurnAssessment(BaseModel):
    """Lightweight per-turn ratings recorded alongside each turn."""

    allergy_mention_score: int = 0
    clarity_score: int = 0
    proactiveness_score: int = 0
    mentioned_allergies: list[str] = Field(default_factory=list)
    asked_questions: bool = False


class ConversationTurn(BaseModel):
    """One exchange. Turns are append-only and numbered from 1."""

    turn_number: int = Field(..., ge=1)
    user_input: str
    ai_response: str
    detected_allergies: list[str] = Field(default_factory=list)
    assessment: TurnAssessment = Field(default_factory=TurnAssessment)
    timestamp: datetime = Field(default_factory=_utcnow)


# ── API bodies ───────────────────────────────────────────────────────────────

class StartSessionRequest(BaseModel):
    """Body for POST /sessions."""

    scenario_id: str = Field(..., min_length=1)
    profile: Optional[PlayerProfile] = None


class StartSessionResponse(BaseModel):
    session_id: str
    scenario_id: str
    level: DifficultyLevel
    restaurant_name: str
    greeting: str


class TurnRequest(BaseModel):
    """Body for POST /sessions/{session_id}/turns."""

    message: str = Field(..., min_length=1, max_length=2000)


class TurnResponse(BaseModel):
    session_id: str
    turn_number: int
    reply: str
    context: ConversationContext
    should_end: bool
