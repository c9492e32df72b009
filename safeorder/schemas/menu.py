"""Pydantic schemas for restaurant menus, parsed from scenario menu JSON."""

from __future__ import annotations

from typing import Union

from pydantic import BaseModel, Field


class MenuItem(BaseModel):
    """A single dish with declared and hidden allergens."""

    id: str
    name: str
    description: str = ""
    price: float = 0.0
    allergens: list[str] = Field(default_factory=list)
    hidden_allergens: list[str] = Field(default_factory=list)   # sauces, stocks, dressings
    modifiable_to_safe: Union[bool, str] = False                 # true | false | "sometimes"
    suggested_questions: list[str] = Field(default_factory=list)

    @property
    def all_allergens(self) -> list[str]:
        """Declared allergens followed by hidden ones."""
        return [*self.allergens, *self.hidden_allergens]

    @property
    def can_be_modified_to_safe(self) -> bool:
        if isinstance(self.modifiable_to_safe, bool):
            return self.modifiable_to_safe
        return self.modifiable_to_safe.strip().lower() in ("true", "sometimes")


class MenuSection(BaseModel):
    """An ordered group of items, e.g. "starters"."""

    section: str
    items: list[MenuItem] = Field(default_factory=list)


class RestaurantMenu(BaseModel):
    """Full menu for one scenario. Immutable once loaded."""

    restaurant_name: str
    menu_sections: list[MenuSection] = Field(default_factory=list)

    def get_all_items(self) -> list[MenuItem]:
        """Flatten sections into a single list, preserving menu order."""
        return [item for section in self.menu_sections for item in section.items]


class MenuSafetyResponse(BaseModel):
    """Response for GET /scenarios/{scenario_id}/menu."""

    scenario_id: str
    menu: RestaurantMenu
    allergies: list[str]
    safe_item_ids: list[str]
    unsafe_item_ids: list[str]
