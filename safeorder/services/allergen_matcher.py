"""
Allergen name matching between a player's free-text allergy and a menu's
declared allergen. Pure functions, no state.
"""

from __future__ import annotations

import re

from safeorder.utils.allergy_data import ALLERGEN_SYNONYMS

_PARENTHETICAL = re.compile(r"\s*\([^)]*\)")
_NON_LETTER = re.compile(r"[^a-z\s]")


def normalize_allergen(name: str) -> str:
    """Lowercase, drop "(may contain traces)" style asides and anything not a letter or space."""
    cleaned = _PARENTHETICAL.sub("", name.lower())
    cleaned = _NON_LETTER.sub("", cleaned)
    return cleaned.strip()


def _synonym_match(term: str, other: str) -> bool:
    """term is a table key whose synonym occurs in other, or a synonym whose key occurs in other."""
    for key, synonyms in ALLERGEN_SYNONYMS.items():
        if term == key and any(s in other for s in synonyms):
            return True
        if term in synonyms and key in other:
            return True
    return False


def matches(user_allergy: str, item_allergen: str) -> bool:
    """
    Return True if a player's allergy refers to a menu allergen.

    Order of checks: exact match after normalisation, substring either way
    ("nuts" ~ "tree nuts"), then the synonym table in both directions.
    """
    user = normalize_allergen(user_allergy)
    item = normalize_allergen(item_allergen)
    if not user or not item:
        return False

    if user == item:
        return True
    if user in item or item in user:
        return True
    return _synonym_match(user, item) or _synonym_match(item, user)


def matching_allergies(allergies: list[str], item_allergens: list[str]) -> list[str]:
    """Item allergens hit by any of the given allergies, in item order."""
    return [a for a in item_allergens if any(matches(u, a) for u in allergies)]
