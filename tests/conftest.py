"""Shared fixtures: bundled menus, player profiles and an offline session manager."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from safeorder.schemas.conversation import ConversationTurn
from safeorder.schemas.menu import RestaurantMenu
from safeorder.schemas.scenario import PlayerProfile
from safeorder.services.llm_client import LLMError
from safeorder.services.menu_safety import MenuSafetyIndex
from safeorder.services.scenario_loader import ScenarioLoader
from safeorder.services.session_manager import TrainingSessionManager

DATA_DIR = Path(__file__).resolve().parent.parent / "safeorder" / "data"


def _load_menu(name: str) -> RestaurantMenu:
    with (DATA_DIR / "menus" / name).open(encoding="utf-8") as fh:
        return RestaurantMenu.model_validate(json.load(fh))


@pytest.fixture(autouse=True)
def offline_llm():
    """No test talks to a real model: both LLM entry points raise LLMError."""
    with patch(
        "safeorder.services.waiter_dialogue.call_llm",
        new=AsyncMock(side_effect=LLMError("offline")),
    ), patch(
        "safeorder.services.semantic_classifier.call_llm_json",
        new=AsyncMock(side_effect=LLMError("offline")),
    ):
        yield


@pytest.fixture
def golden_fork() -> MenuSafetyIndex:
    return MenuSafetyIndex(_load_menu("golden_fork.json"))


@pytest.fixture
def harbour_kitchen() -> MenuSafetyIndex:
    return MenuSafetyIndex(_load_menu("harbour_kitchen.json"))


@pytest.fixture
def fish_profile() -> PlayerProfile:
    return PlayerProfile(name="Sam", age=12, allergies=["Fish"])


@pytest.fixture
def peanut_profile() -> PlayerProfile:
    return PlayerProfile(name="Alex", age=16, allergies=["peanuts"])


@pytest.fixture
def loader() -> ScenarioLoader:
    return ScenarioLoader(DATA_DIR / "scenarios.json")


@pytest.fixture
def manager(loader) -> TrainingSessionManager:
    return TrainingSessionManager(loader, use_semantic_classifier=False)


def _make_turns(*exchanges: tuple[str, str]) -> list[ConversationTurn]:
    return [
        ConversationTurn(turn_number=i, user_input=user, ai_response=reply)
        for i, (user, reply) in enumerate(exchanges, start=1)
    ]


@pytest.fixture
def make_turns():
    """(user, waiter) pairs → numbered turns."""
    return _make_turns
