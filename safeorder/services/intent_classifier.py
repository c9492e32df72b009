"""
Pattern-based intent classifier — deterministic, no external calls.

Every rule is an explicit pattern object in PATTERN_RULES, evaluated in the
listed order: disclosure patterns, then order patterns, then question patterns.
Precedence between the matched kinds is applied in classify():

  1. A disclosure pattern always counts, even inside filler ("ok, no allergies").
  2. Filler ("ok", "thanks", "hi there") is never an order.
  3. An order pattern counts unless the utterance opens with "what"/"so what".
     Ordering and disclosure may both hold; the intent label is then
     food_ordering and the disclosed allergens are still extracted.
  4. Questions are detected independently of 1-3.

The semantic classifier reuses the helpers below to validate LLM output.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Union

from safeorder.schemas.conversation import ClassifiedIntent, ConversationContext
from safeorder.services.allergen_matcher import matches, normalize_allergen
from safeorder.services.menu_safety import MenuSafetyIndex
from safeorder.utils.allergy_data import (
    ALLERGEN_SYNONYMS,
    ALLERGEN_TRIGGER_PHRASES,
    CLAUSE_BREAK_PATTERN,
    COMPOUND_DISHES,
    CONFIRMATION_PHRASES,
    FILLER_PHRASES,
    FOOD_WORDS,
    GREETING_WORDS,
    HAVE_ALLERGY_PATTERN,
    MENU_INQUIRY_PHRASES,
    NEGATIVE_DISCLOSURE_PHRASES,
    NON_ALLERGEN_WORDS,
    ORDER_PHRASES,
    POSITIVE_DISCLOSURE_PHRASES,
    QUESTION_OPENERS,
    QUESTION_PATTERN,
    QUESTION_PHRASES,
    SIDE_ITEMS,
    USER_END_PHRASES,
)
from safeorder.utils.text import contains_any, fold, has_word, title_case

_CLAUSE_BREAK = re.compile(CLAUSE_BREAK_PATTERN)
_LIST_SPLIT = re.compile(r",|&|\band\b|\bor\b|\bnor\b")
_HAVE_ALLERGY = re.compile(HAVE_ALLERGY_PATTERN)
_PUNCTUATION = re.compile(r"[^\w\s']")
# A negative phrase and the rest of its clause ("i'm not allergic to dairy")
_NEGATIVE_CLAUSE = re.compile(
    "(?:" + "|".join(re.escape(p) for p in NEGATIVE_DISCLOSURE_PHRASES) + ")"
    + r".*?(?=" + CLAUSE_BREAK_PATTERN + "|$)"
)


# ── Pattern rules ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class DisclosurePattern:
    """Allergy disclosure trigger. Negative patterns disclose having no allergies."""

    phrase: str
    negative: bool = False
    regex: bool = False

    def matches(self, text: str) -> bool:
        if self.regex:
            return re.search(self.phrase, text) is not None
        return self.phrase in text


@dataclass(frozen=True)
class OrderPattern:
    """Ordering phrase. Confirmations only count at the start of the utterance."""

    phrase: str
    confirmation: bool = False

    def matches(self, text: str) -> bool:
        if self.confirmation:
            return text == self.phrase or text.startswith(self.phrase + " ")
        return self.phrase in text


@dataclass(frozen=True)
class QuestionPattern:
    phrase: str
    regex: bool = False

    def matches(self, text: str) -> bool:
        if self.regex:
            return re.search(self.phrase, text) is not None
        return self.phrase in text


PatternRule = Union[DisclosurePattern, OrderPattern, QuestionPattern]

PATTERN_RULES: tuple[PatternRule, ...] = (
    *(DisclosurePattern(p, negative=True) for p in NEGATIVE_DISCLOSURE_PHRASES),
    *(DisclosurePattern(p) for p in POSITIVE_DISCLOSURE_PHRASES),
    DisclosurePattern(HAVE_ALLERGY_PATTERN, regex=True),
    *(OrderPattern(p) for p in ORDER_PHRASES),
    *(OrderPattern(p, confirmation=True) for p in CONFIRMATION_PHRASES),
    QuestionPattern("?"),
    QuestionPattern(QUESTION_PATTERN, regex=True),
    *(QuestionPattern(p) for p in QUESTION_PHRASES),
)


def first_match(text: str, kind: type) -> Optional[PatternRule]:
    """First rule of the given pattern class that matches, in PATTERN_RULES order."""
    for rule in PATTERN_RULES:
        if isinstance(rule, kind) and rule.matches(text):
            return rule
    return None


# ── Individual checks ────────────────────────────────────────────────────────

def _allergy_variants(allergy: str) -> set[str]:
    base = normalize_allergen(allergy)
    if not base:
        return set()
    variants = {base, base + "s"}
    if base.endswith("s"):
        variants.add(base[:-1])
    for key, synonyms in ALLERGEN_SYNONYMS.items():
        if base == key:
            variants.update(synonyms)
        elif base in synonyms:
            variants.add(key)
    return variants


def mentions_allergy(text: str, allergy: str) -> bool:
    """Whole-word mention of a declared allergy, its plural/singular or a synonym."""
    return any(has_word(text, v) for v in _allergy_variants(allergy))


def has_declared_allergy_construction(text: str, known_allergies: list[str]) -> bool:
    """ "I have <allergy>" for one of the player's own allergies."""
    for allergy in known_allergies:
        for variant in _allergy_variants(allergy):
            if re.search(rf"\bi(?:'ve| have)(?: got)? (?:a |an )?{re.escape(variant)}\b", text):
                return True
    return False


def is_disclosure(text: str, known_allergies: list[str]) -> bool:
    return (
        first_match(text, DisclosurePattern) is not None
        or has_declared_allergy_construction(text, known_allergies)
    )


def strip_negative_clauses(text: str) -> str:
    return _NEGATIVE_CLAUSE.sub(" ", text)


def has_positive_disclosure(text: str, known_allergies: list[str]) -> bool:
    """A positive disclosure outside any negative clause."""
    rest = strip_negative_clauses(text)
    return any(
        isinstance(rule, DisclosurePattern) and not rule.negative and rule.matches(rest)
        for rule in PATTERN_RULES
    ) or has_declared_allergy_construction(rest, known_allergies)


def is_negative_disclosure(text: str, known_allergies: list[str]) -> bool:
    """Only "no allergies" style phrases; "not allergic to X but allergic to Y" is positive."""
    rule = first_match(text, DisclosurePattern)
    if not isinstance(rule, DisclosurePattern) or not rule.negative:
        return False
    return not has_positive_disclosure(text, known_allergies)


def is_filler(text: str) -> bool:
    """Exactly a filler phrase, or opened and closed by one ("ok thanks")."""
    bare = " ".join(_PUNCTUATION.sub(" ", text).split())
    if bare in FILLER_PHRASES:
        return True
    opens = any(bare.startswith(f + " ") for f in FILLER_PHRASES)
    closes = any(bare.endswith(" " + f) for f in FILLER_PHRASES)
    return opens and closes


def opens_with_question(text: str) -> bool:
    return any(text == q or text.startswith(q + " ") or text.startswith(q + "'") for q in QUESTION_OPENERS)


def is_ordering(text: str) -> bool:
    if opens_with_question(text) or is_filler(text):
        return False
    return first_match(text, OrderPattern) is not None


def is_question(text: str) -> bool:
    return first_match(text, QuestionPattern) is not None


def is_menu_inquiry(text: str) -> bool:
    """The user is asking what they could have rather than choosing a dish."""
    return contains_any(text, MENU_INQUIRY_PHRASES)


# ── Extraction ───────────────────────────────────────────────────────────────

def _split_allergen_list(tail: str) -> list[str]:
    clause = _CLAUSE_BREAK.split(tail, maxsplit=1)[0]
    terms: list[str] = []
    for part in _LIST_SPLIT.split(clause):
        words = [w for w in part.split() if w not in NON_ALLERGEN_WORDS]
        if not words or len(words) > 3:
            continue
        term = normalize_allergen(" ".join(words))
        if term:
            terms.append(term)
    return terms


def extract_disclosed_allergens(text: str, known_allergies: list[str]) -> list[str]:
    """
    Allergens named in a disclosure: the player's declared allergies that are
    mentioned, then whatever follows a trigger phrase ("allergic to X and Y")
    or precedes "allergy" ("a sesame allergy"). Deduplicated with the matcher.
    Anything named inside a negative clause is ignored.
    """
    text = strip_negative_clauses(text)
    found: list[str] = [a for a in known_allergies if mentions_allergy(text, a)]

    candidates: list[str] = []
    for trigger in ALLERGEN_TRIGGER_PHRASES:
        start = text.find(trigger)
        if start >= 0:
            candidates.extend(_split_allergen_list(text[start + len(trigger):]))
    for match in _HAVE_ALLERGY.finditer(text):
        candidates.extend(_split_allergen_list(match.group(1)))

    for term in candidates:
        if not any(matches(term, existing) for existing in found):
            found.append(term)
    return found


def _is_side_item(name: str) -> bool:
    lowered = name.lower().strip()
    return len(lowered) <= 3 or lowered in SIDE_ITEMS


def extract_dish(text: str, menu: Optional[MenuSafetyIndex] = None) -> Optional[str]:
    """
    Dish named in an order. A full menu item name wins; otherwise the compound
    rules, then the first food word, resolved against the menu when possible.
    """
    if menu is not None:
        item = menu.find_mentioned_item(text)
        if item is not None:
            return item.name

    dish: Optional[str] = None
    for words, name in COMPOUND_DISHES:
        if all(has_word(text, w) for w in words):
            dish = name
            break

    if dish is None:
        for word in FOOD_WORDS:
            if word in SIDE_ITEMS:
                continue
            if has_word(text, word) or has_word(text, word + "s") or has_word(text, word + "es"):
                dish = title_case(word)
                break

    if dish is None or _is_side_item(dish):
        return None
    if menu is not None:
        return menu.resolve_dish_name(dish)
    return dish


# ── Classifier ───────────────────────────────────────────────────────────────

def _accepted_suggestion(
    text: str, context: ConversationContext, menu: MenuSafetyIndex
) -> Optional[str]:
    """For "sounds good" style replies, the dish the waiter just suggested."""
    rule = first_match(text, OrderPattern)
    if not isinstance(rule, OrderPattern) or not rule.confirmation:
        return None
    last_reply = next(
        (m.content for m in reversed(context.messages) if m.role == "assistant"), ""
    )
    item = menu.find_mentioned_item(last_reply)
    return item.name if item is not None else None


def classify(
    utterance: str,
    known_allergies: list[str],
    context: Optional[ConversationContext] = None,
    menu: Optional[MenuSafetyIndex] = None,
) -> ClassifiedIntent:
    """Classify one user utterance with the pattern rules."""
    text = fold(utterance)
    if not text:
        return ClassifiedIntent()

    disclosure = is_disclosure(text, known_allergies)
    ordering = is_ordering(text)
    question = is_question(text)
    menu_inquiry = is_menu_inquiry(text)

    allergens: list[str] = []
    if disclosure and not is_negative_disclosure(text, known_allergies):
        allergens = extract_disclosed_allergens(text, known_allergies)

    dish = extract_dish(text, menu) if ordering else None
    if ordering and dish is None and menu is not None and context is not None:
        dish = _accepted_suggestion(text, context, menu)

    if ordering:
        intent = "food_ordering"
    elif disclosure:
        intent = "allergy_disclosure"
    elif question:
        intent = "question"
    elif any(text == g or text.startswith(g + " ") or text.startswith(g + ",") for g in GREETING_WORDS):
        intent = "greeting"
    else:
        intent = "general_response"

    return ClassifiedIntent(
        intent=intent,
        is_disclosure=disclosure,
        disclosed_allergens=allergens,
        is_ordering=ordering,
        ordered_dish=dish,
        is_question=question,
        asking_about_menu=menu_inquiry,
        conversation_should_end=any(has_word(text, p) for p in USER_END_PHRASES),
        source="pattern",
    )
