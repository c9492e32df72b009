"""
Semantic intent classifier — asks the LLM for a structured reading of the
utterance, then validates it against the local pattern rules before it is
allowed to touch the conversation context.

Validation rules:
  - A disclosure trigger with no mentioned_allergies triggers a local
    re-extraction of the allergens.
  - food_ordering on a menu inquiry, or on a question without any ordering
    phrase, is overridden to question with no dish.
  - ordered_food is dropped when it is a placeholder ("null", "none") or a side
    item, and otherwise resolved to the menu's own spelling.

Any LLM failure or schema mismatch falls back to the pattern classifier, so a
turn always produces a ClassifiedIntent.
"""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError

from safeorder.schemas.conversation import (
    ClassifiedIntent,
    ConversationContext,
    SemanticAnalysis,
)
from safeorder.services.intent_classifier import (
    classify,
    extract_disclosed_allergens,
    is_disclosure,
    is_menu_inquiry,
    is_negative_disclosure,
    is_ordering,
    is_question,
    opens_with_question,
)
from safeorder.services.llm_client import LLMError, call_llm_json
from safeorder.services.menu_safety import MenuSafetyIndex
from safeorder.utils.allergy_data import SIDE_ITEMS
from safeorder.utils.prompts import build_intent_prompt
from safeorder.utils.text import fold, title_case

logger = logging.getLogger(__name__)

_PLACEHOLDER_DISHES = {"", "null", "none", "n/a", "nothing", "unknown"}


def _clean_dish(raw: Optional[str], menu: Optional[MenuSafetyIndex]) -> Optional[str]:
    if raw is None:
        return None
    name = raw.strip()
    lowered = name.lower()
    if lowered in _PLACEHOLDER_DISHES or lowered in SIDE_ITEMS or len(lowered) <= 3:
        return None
    if menu is not None:
        return menu.resolve_dish_name(name)
    return title_case(name)


def _dedupe(values: list[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        cleaned = value.strip()
        if cleaned and cleaned.lower() not in seen:
            seen.add(cleaned.lower())
            result.append(cleaned)
    return result


def validate_analysis(
    analysis: SemanticAnalysis,
    utterance: str,
    known_allergies: list[str],
    menu: Optional[MenuSafetyIndex] = None,
) -> ClassifiedIntent:
    """Turn a raw LLM analysis into a ClassifiedIntent, overriding it where local signals disagree."""
    text = fold(utterance)

    allergens = _dedupe(analysis.mentioned_allergies)
    local_disclosure = is_disclosure(text, known_allergies)
    negative = is_negative_disclosure(text, known_allergies)
    if local_disclosure and not allergens and not negative:
        allergens = extract_disclosed_allergens(text, known_allergies)
        logger.warning(
            "Intent analysis missed a disclosure; re-extracted allergens locally: %s",
            allergens,
        )

    intent = analysis.intent
    dish = _clean_dish(analysis.ordered_food, menu)
    local_order = is_ordering(text)
    local_question = is_question(text)
    menu_inquiry = is_menu_inquiry(text)

    if intent == "food_ordering" and (
        menu_inquiry or opens_with_question(text) or (local_question and not local_order)
    ):
        logger.info("Overriding food_ordering -> question for %r", utterance)
        intent = "question"
        dish = None

    # Ordering stays the primary intent when the model saw a dish and the phrasing agrees
    if intent != "food_ordering" and dish is not None and local_order and not menu_inquiry:
        intent = "food_ordering"

    ordering = intent == "food_ordering"
    if not ordering:
        dish = None

    disclosure = bool(allergens) or local_disclosure or intent == "allergy_disclosure"

    return ClassifiedIntent(
        intent=intent,
        is_disclosure=disclosure,
        disclosed_allergens=allergens,
        is_ordering=ordering,
        ordered_dish=dish,
        is_question=analysis.is_asking_question or local_question,
        asking_about_menu=menu_inquiry,
        conversation_should_end=analysis.conversation_should_end,
        source="semantic",
    )


async def analyze_intent(
    utterance: str,
    known_allergies: list[str],
    context: ConversationContext,
    menu: Optional[MenuSafetyIndex] = None,
) -> ClassifiedIntent:
    """Classify with the LLM; fall back to the pattern rules on any failure."""
    try:
        raw = await call_llm_json(build_intent_prompt(utterance, context))
        analysis = SemanticAnalysis.model_validate(raw)
    except LLMError as exc:
        logger.warning("Intent analysis unavailable (%s) — using pattern classifier", exc)
        return classify(utterance, known_allergies, context, menu)
    except ValidationError as exc:
        logger.warning(
            "Intent analysis returned an unexpected shape (%d errors) — using pattern classifier",
            exc.error_count(),
        )
        return classify(utterance, known_allergies, context, menu)

    return validate_analysis(analysis, utterance, known_allergies, menu)
