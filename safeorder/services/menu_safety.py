"""
MenuSafetyIndex — read-only view over one loaded restaurant menu that answers
"is this dish safe for these allergies?".

An index without a menu degrades to "no information": lookups return None,
partitions return empty lists. Nothing here raises on missing data.
"""

from __future__ import annotations

import logging
from typing import Optional

from safeorder.schemas.menu import MenuItem, RestaurantMenu
from safeorder.services.allergen_matcher import matches, matching_allergies
from safeorder.utils.text import title_case

logger = logging.getLogger(__name__)


def _name_key(name: str) -> str:
    """Case-insensitive key that treats "&" and "and" alike."""
    return " ".join(name.lower().replace("&", " and ").split())


class MenuSafetyIndex:
    """Safety queries over a single immutable menu. Safe to share across sessions."""

    def __init__(self, menu: Optional[RestaurantMenu]) -> None:
        self._menu = menu
        self._items: list[MenuItem] = menu.get_all_items() if menu else []

    @property
    def menu(self) -> Optional[RestaurantMenu]:
        return self._menu

    @property
    def restaurant_name(self) -> str:
        return self._menu.restaurant_name if self._menu else ""

    def get_all_items(self) -> list[MenuItem]:
        return list(self._items)

    # ── Safety ────────────────────────────────────────────────────────────────

    def is_safe(self, item: MenuItem, allergies: list[str]) -> bool:
        """False if any allergy matches a declared or hidden allergen of the item."""
        return not any(
            matches(allergy, allergen)
            for allergy in allergies
            for allergen in item.all_allergens
        )

    def unsafe_allergens(self, item: MenuItem, allergies: list[str]) -> list[str]:
        """Declared and hidden allergens of the item that the allergies hit."""
        return matching_allergies(allergies, item.all_allergens)

    def get_safe_items(self, allergies: list[str]) -> list[MenuItem]:
        return [i for i in self._items if self.is_safe(i, allergies)]

    def get_unsafe_items(self, allergies: list[str]) -> list[MenuItem]:
        return [i for i in self._items if not self.is_safe(i, allergies)]

    def is_dish_safe(self, name: Optional[str], allergies: list[str]) -> Optional[bool]:
        """Safety of a dish named in conversation, or None when it cannot be resolved."""
        item = self.find_by_name(name) if name else None
        if item is None:
            return None
        return self.is_safe(item, allergies)

    # ── Lookup ────────────────────────────────────────────────────────────────

    def find_by_name(self, name: str) -> Optional[MenuItem]:
        """
        Exact case-insensitive match first, then the first item (menu order)
        whose name contains the query or is contained in it.
        """
        query = name.lower().strip() if name else ""
        if not query or not self._items:
            return None

        for item in self._items:
            if item.name.lower() == query:
                return item

        for item in self._items:
            item_name = item.name.lower()
            if item_name in query or query in item_name:
                return item

        # Speech transcripts say "and" where menus print "&"
        query_key = _name_key(query)
        for item in self._items:
            item_key = _name_key(item.name)
            if item_key in query_key or query_key in item_key:
                return item
        return None

    def find_mentioned_item(self, utterance: str) -> Optional[MenuItem]:
        """The menu item whose full name appears in the utterance, longest name first."""
        text = _name_key(utterance)
        if not text:
            return None
        candidates = sorted(self._items, key=lambda i: len(i.name), reverse=True)
        for item in candidates:
            if _name_key(item.name) in text:
                return item
        return None

    def resolve_dish_name(self, raw: Optional[str]) -> Optional[str]:
        """Canonical menu name for a free-text dish, else the raw text title-cased."""
        if raw is None or not raw.strip():
            return None
        item = self.find_by_name(raw)
        if item is not None:
            return item.name
        return title_case(raw.strip())

    # ── Prompt rendering ──────────────────────────────────────────────────────

    def format_for_prompt(self, allergies: list[str]) -> str:
        """Plain-text menu with per-item safety markers for the LLM collaborators."""
        if self._menu is None:
            return "No menu available."

        lines = ["=== RESTAURANT MENU ===", f"Restaurant: {self._menu.restaurant_name}", ""]
        for section in self._menu.menu_sections:
            lines.append(f"{section.section.upper()}:")
            for item in section.items:
                lines.append(f"• {item.name} - £{item.price:.2f}")
                if item.description:
                    lines.append(f"  {item.description}")
                if item.allergens:
                    lines.append(f"  Allergens: {', '.join(item.allergens)}")
                if item.hidden_allergens:
                    lines.append(f"  Hidden allergens: {', '.join(item.hidden_allergens)}")
                if self.is_safe(item, allergies):
                    lines.append("  Safety: SAFE for this customer")
                else:
                    hits = ", ".join(self.unsafe_allergens(item, allergies))
                    lines.append(f"  Safety: CONTAINS CUSTOMER ALLERGENS ({hits})")
            lines.append("")
        return "\n".join(lines).rstrip()
