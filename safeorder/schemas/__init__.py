"""Pydantic schemas package."""

from safeorder.schemas.assessment import (
    AssessmentResult,
    FeedbackResult,
    FeedbackTone,
    SessionReport,
)
from safeorder.schemas.conversation import (
    ChatMessage,
    ClassifiedIntent,
    ConversationContext,
    ConversationTurn,
    SemanticAnalysis,
    SessionStatus,
    StartSessionRequest,
    StartSessionResponse,
    TurnAssessment,
    TurnRequest,
    TurnResponse,
)
from safeorder.schemas.menu import MenuItem, MenuSafetyResponse, MenuSection, RestaurantMenu
from safeorder.schemas.scenario import (
    DifficultyLevel,
    PlayerProfile,
    ScenarioConfig,
    ScenarioManifest,
    ScenarioSummary,
    ScoringRules,
)

__all__ = [
    "AssessmentResult",
    "ChatMessage",
    "ClassifiedIntent",
    "ConversationContext",
    "ConversationTurn",
    "DifficultyLevel",
    "FeedbackResult",
    "FeedbackTone",
    "MenuItem",
    "MenuSafetyResponse",
    "MenuSection",
    "PlayerProfile",
    "RestaurantMenu",
    "ScenarioConfig",
    "ScenarioManifest",
    "ScenarioSummary",
    "ScoringRules",
    "SemanticAnalysis",
    "SessionReport",
    "SessionStatus",
    "StartSessionRequest",
    "StartSessionResponse",
    "TurnAssessment",
    "TurnRequest",
    "TurnResponse",
]
