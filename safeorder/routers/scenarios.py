"""Scenario catalogue and menu safety endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from safeorder.schemas.menu import MenuSafetyResponse
from safeorder.schemas.scenario import ScenarioSummary
from safeorder.services.scenario_loader import ScenarioNotFoundError
from safeorder.services.session_manager import TrainingSessionManager, get_session_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scenarios", tags=["scenarios"])


@router.get("", response_model=list[ScenarioSummary])
async def list_scenarios(
    manager: TrainingSessionManager = Depends(get_session_manager),
) -> list[ScenarioSummary]:
    """All scenarios in the manifest."""
    scenarios = await manager.loader.list_scenarios()
    return [
        ScenarioSummary(id=s.id, name=s.name, level=s.level, description=s.description)
        for s in scenarios
    ]


@router.get("/{scenario_id}/menu", response_model=MenuSafetyResponse)
async def scenario_menu(
    scenario_id: str,
    allergies: str = Query("", description="Comma-separated allergy names"),
    manager: TrainingSessionManager = Depends(get_session_manager),
) -> MenuSafetyResponse:
    """
    The scenario's menu, with item ids split into safe and unsafe for the
    given allergies. An empty allergy list marks every item safe.
    """
    try:
        scenario = await manager.loader.get_scenario(scenario_id)
    except ScenarioNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))

    index = await manager.loader.load_menu(scenario)
    allergy_list = [a.strip() for a in allergies.split(",") if a.strip()]
    return MenuSafetyResponse(
        scenario_id=scenario.id,
        menu=index.menu,
        allergies=allergy_list,
        safe_item_ids=[i.id for i in index.get_safe_items(allergy_list)],
        unsafe_item_ids=[i.id for i in index.get_unsafe_items(allergy_list)],
    )
