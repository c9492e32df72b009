"""Pydantic schemas for training scenarios and the player taking part."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DifficultyLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class PlayerProfile(BaseModel):
    """The trainee. Allergies are free text exactly as the player declared them."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, max_length=100)
    age: int = Field(..., ge=0, le=120)
    allergies: list[str]


class ScoringRules(BaseModel):
    """
    Optional per-scenario requirements. When present and violated, the level
    total is scaled down (x0.2 without disclosure, x0.6 without safety questions).
    """

    require_allergy_disclosure: bool = True
    require_safety_questions: bool = False
    required_actions: list[str] = Field(default_factory=list)


class ScenarioConfig(BaseModel):
    """A single training scenario from the manifest."""

    id: str
    name: str
    level: DifficultyLevel
    description: str = ""
    npc_role: str = "waiter"
    restaurant_context: str = ""
    initial_dialogue: Optional[str] = None
    menu_file: str
    scoring_rules: Optional[ScoringRules] = None
    max_turns: int = Field(20, ge=1)
    min_turns: Optional[int] = None


class ScenarioManifest(BaseModel):
    scenarios: list[ScenarioConfig] = Field(default_factory=list)


class ScenarioSummary(BaseModel):
    """Scenario as listed by GET /scenarios."""

    id: str
    name: str
    level: DifficultyLevel
    description: str
