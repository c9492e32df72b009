"""
ScenarioLoader — reads the scenario manifest and each scenario's menu.

Menus are loaded on first request and memoized per scenario, so every session
of the same scenario shares one read-only MenuSafetyIndex. A menu that cannot
be loaded is replaced with a single-item fallback menu; the fallback is not
memoized so the next session retries the real file.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from safeorder.schemas.menu import MenuItem, MenuSection, RestaurantMenu
from safeorder.schemas.scenario import ScenarioConfig, ScenarioManifest
from safeorder.services.menu_safety import MenuSafetyIndex

logger = logging.getLogger(__name__)


class ScenarioNotFoundError(Exception):
    """Raised when a scenario id is not in the manifest."""


def build_fallback_menu() -> RestaurantMenu:
    """Minimal menu with one safe item so safety checks never run on an absent menu."""
    return RestaurantMenu(
        restaurant_name="Fallback Restaurant",
        menu_sections=[
            MenuSection(
                section="mains",
                items=[
                    MenuItem(
                        id="safe1",
                        name="Plain Rice",
                        description="Simple steamed rice",
                        price=5.0,
                        allergens=[],
                        hidden_allergens=[],
                        modifiable_to_safe=True,
                    )
                ],
            )
        ],
    )


def _read_json(path: Path) -> dict:
    with path.open(encoding="utf-8") as fh:
        return json.load(fh)


class ScenarioLoader:
    """Scenario catalogue plus per-scenario menu cache."""

    def __init__(self, manifest_path: str | Path) -> None:
        self._manifest_path = Path(manifest_path)
        self._scenarios: Optional[dict[str, ScenarioConfig]] = None
        self._menus: dict[str, MenuSafetyIndex] = {}
        self._lock = asyncio.Lock()

    async def _load_manifest(self) -> dict[str, ScenarioConfig]:
        if self._scenarios is None:
            raw = await asyncio.to_thread(_read_json, self._manifest_path)
            manifest = ScenarioManifest.model_validate(raw)
            self._scenarios = {s.id: s for s in manifest.scenarios}
            logger.info(
                "Loaded %d scenarios from %s", len(self._scenarios), self._manifest_path
            )
        return self._scenarios

    async def list_scenarios(self) -> list[ScenarioConfig]:
        scenarios = await self._load_manifest()
        return list(scenarios.values())

    async def get_scenario(self, scenario_id: str) -> ScenarioConfig:
        scenarios = await self._load_manifest()
        scenario = scenarios.get(scenario_id)
        if scenario is None:
            raise ScenarioNotFoundError(f"Unknown scenario '{scenario_id}'")
        return scenario

    async def load_menu(self, scenario: ScenarioConfig) -> MenuSafetyIndex:
        """Return the scenario's menu index, loading it on first use."""
        cached = self._menus.get(scenario.id)
        if cached is not None:
            logger.debug("Menu cache HIT (scenario=%s)", scenario.id)
            return cached

        async with self._lock:
            cached = self._menus.get(scenario.id)
            if cached is not None:
                return cached

            menu_path = self._manifest_path.parent / scenario.menu_file
            try:
                raw = await asyncio.to_thread(_read_json, menu_path)
                menu = RestaurantMenu.model_validate(raw)
            except (OSError, json.JSONDecodeError, ValidationError) as exc:
                logger.error(
                    "Failed to load menu %s for scenario %s: %s — using fallback menu",
                    menu_path,
                    scenario.id,
                    exc,
                )
                return MenuSafetyIndex(build_fallback_menu())

            index = MenuSafetyIndex(menu)
            self._menus[scenario.id] = index
            logger.info(
                "Loaded menu '%s' (%d items) for scenario %s",
                menu.restaurant_name,
                len(index.get_all_items()),
                scenario.id,
            )
            return index
