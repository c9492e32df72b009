"""Small text helpers shared by the classifier, context tracker and scorer."""

from __future__ import annotations

import re

_CURLY = str.maketrans({"’": "'", "‘": "'", "“": '"', "”": '"'})


def fold(text: str | None) -> str:
    """Lowercase, straighten curly quotes and trim."""
    if not text:
        return ""
    return text.translate(_CURLY).lower().strip()


def contains_any(text: str, phrases: list[str] | set[str]) -> bool:
    """Return True if any phrase occurs in the already folded text."""
    return any(p in text for p in phrases)


def has_word(text: str, word: str) -> bool:
    """Whole-word match, so 'no' does not fire on 'know' or 'not'."""
    return re.search(rf"\b{re.escape(word)}\b", text) is not None


def title_case(name: str) -> str:
    """Title-case a dish name without mangling apostrophes ("Shepherd's")."""
    return " ".join(w[:1].upper() + w[1:] for w in name.split())
