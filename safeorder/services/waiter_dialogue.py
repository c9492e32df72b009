"""
Waiter dialogue — the in-character reply for each user turn.

The LLM is asked for {"npc_dialogue": ..., "detected_allergies": [...]} but may
return plain text, fenced JSON, or half-broken JSON; extract_dialogue() handles
all of these. When the LLM is unavailable, or invents dishes that are not on the
menu, a templated reply built from the MenuSafetyIndex is used instead, so a
turn always gets an answer.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from safeorder.schemas.conversation import ConversationContext
from safeorder.schemas.scenario import PlayerProfile, ScenarioConfig
from safeorder.services.llm_client import LLMError, call_llm, strip_fences
from safeorder.services.menu_safety import MenuSafetyIndex
from safeorder.utils.allergy_data import (
    CONVERSATION_END_PHRASES,
    FORBIDDEN_REPLY_TERMS,
    INGREDIENT_KEYWORDS,
)
from safeorder.utils.prompts import build_waiter_prompt
from safeorder.utils.text import contains_any, fold

logger = logging.getLogger(__name__)

DEFAULT_DIALOGUE = "Sorry, I didn't catch that."
ERROR_DIALOGUE = "I apologize, but I'm having trouble understanding. Could you please repeat that?"

_DIALOGUE_FIELD = re.compile(r'"npc_dialogue"\s*:\s*"([^"]*)"')
_SENTENCE = re.compile(r"^(.+?[.!?])(\s|$)")

_LEVEL_GREETINGS: dict[str, list[str]] = {
    "beginner": [
        "Hi there, welcome! Take your time with the menu. What can I get you today?",
        "Hello and welcome! Is there anything I should know before you order?",
    ],
    "intermediate": [
        "Evening! We're pretty busy tonight, so what can I get you?",
        "Hi, welcome in. Are you ready to order?",
    ],
    "advanced": [
        "Hi. The specials are on the board. What'll it be?",
        "Welcome. I'd recommend the curry tonight, it's very popular. Ready to order?",
    ],
}


@dataclass
class WaiterReply:
    text: str
    detected_allergies: list[str] = field(default_factory=list)
    used_fallback: bool = False


def greeting_for(scenario: ScenarioConfig, seed: int = 0) -> str:
    """The waiter's opening line: the scenario's own, else a level greeting."""
    if scenario.initial_dialogue:
        return scenario.initial_dialogue
    options = _LEVEL_GREETINGS[scenario.level.value]
    return options[seed % len(options)]


# ── Extraction ────────────────────────────────────────────────────────────────

def extract_dialogue(raw: str) -> tuple[str, list[str]]:
    """
    Pull the spoken line out of a model response.

    Order: JSON envelope, regex on a broken envelope, first non-JSON line over
    ten characters, first sentence, then a stock apology.
    """
    cleaned = strip_fences(raw or "")
    if not cleaned:
        return DEFAULT_DIALOGUE, []

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError:
        payload = None

    if isinstance(payload, dict):
        dialogue = payload.get("npc_dialogue")
        allergies = payload.get("detected_allergies") or []
        if not isinstance(allergies, list):
            allergies = []
        allergies = [str(a) for a in allergies if isinstance(a, str) and a.strip()]
        if isinstance(dialogue, str) and dialogue.strip():
            return dialogue.strip(), allergies
    elif isinstance(payload, str) and payload.strip():
        return payload.strip(), []

    match = _DIALOGUE_FIELD.search(cleaned)
    if match and match.group(1).strip():
        return match.group(1).strip(), []

    for line in cleaned.splitlines():
        line = line.strip()
        if len(line) > 10 and not line.startswith(("{", "}", "[", "]", '"')):
            return line, []

    sentence = _SENTENCE.match(cleaned)
    if sentence:
        return sentence.group(1).strip(), []
    return DEFAULT_DIALOGUE, []


def mentions_forbidden_dish(reply: str) -> bool:
    return contains_any(fold(reply), FORBIDDEN_REPLY_TERMS)


def should_end_conversation(reply: str) -> bool:
    """The waiter is wrapping up ("enjoy your meal")."""
    return contains_any(fold(reply), CONVERSATION_END_PHRASES)


# ── Fallback ──────────────────────────────────────────────────────────────────

def _join_names(names: list[str]) -> str:
    if len(names) <= 1:
        return "".join(names)
    return ", ".join(names[:-1]) + " or " + names[-1]


def fallback_reply(
    utterance: str,
    context: ConversationContext,
    menu: MenuSafetyIndex,
    allergies: list[str],
    ordered_dish: Optional[str] = None,
) -> str:
    """
    Deterministic reply keyed on what the user just said.
    Warns about an ordered dish only for allergies the user has disclosed,
    earlier or in this utterance.
    """
    text = fold(utterance)
    disclosed = list(context.disclosed_allergies)
    if not disclosed and (context.allergies_disclosed or "allerg" in text):
        disclosed = list(allergies)
    safe_names = [i.name for i in menu.get_safe_items(disclosed)][:3] if disclosed else []

    dish_name = ordered_dish or context.selected_dish
    item = menu.find_by_name(dish_name) if dish_name else None

    if ordered_dish and item is not None:
        hits = menu.unsafe_allergens(item, disclosed) if disclosed else []
        if hits:
            return (
                f"I'm sorry, you said you're allergic to {disclosed[0]}, and the "
                f"{item.name} contains {', '.join(hits)}. Would you like something else?"
            )
        return f"Great choice, one {item.name}. I'll put that order through for you."

    if "allerg" in text:
        if safe_names:
            return (
                "Thanks for letting me know, I'll make a note of that. Dishes that "
                f"should be safe for you are the {_join_names(safe_names)}."
            )
        return "Thanks for telling me. I'll make sure the kitchen knows."

    if contains_any(text, INGREDIENT_KEYWORDS) and item is not None:
        listed = item.allergens or ["none of the major allergens"]
        return (
            f"The {item.name} lists {', '.join(listed)}. I can double-check "
            "anything else with the kitchen."
        )

    if "recommend" in text or "suggest" in text or "safe" in text:
        if safe_names:
            return f"I'd suggest the {_join_names(safe_names)}."
        return "Everything is freshly made. Is there anything I should know about first?"

    if "order" in text or "have" in text:
        return "Of course. Which dish would you like?"

    return "No problem. Let me know when you're ready to order."


async def generate_reply(
    utterance: str,
    context: ConversationContext,
    profile: PlayerProfile,
    scenario: ScenarioConfig,
    menu: MenuSafetyIndex,
    ordered_dish: Optional[str] = None,
) -> WaiterReply:
    """Ask the LLM for the waiter's line; fall back to a templated reply on any failure."""
    prompt = build_waiter_prompt(
        utterance=utterance,
        context=context,
        profile=profile,
        scenario=scenario,
        menu_text=menu.format_for_prompt(profile.allergies),
    )
    try:
        raw = await call_llm(prompt, temperature=0.7)
    except LLMError as exc:
        logger.warning("Waiter reply unavailable (%s) — using templated reply", exc)
        return WaiterReply(
            text=fallback_reply(utterance, context, menu, profile.allergies, ordered_dish),
            used_fallback=True,
        )

    dialogue, detected = extract_dialogue(raw)
    if dialogue == DEFAULT_DIALOGUE or mentions_forbidden_dish(dialogue):
        logger.info("Discarding unusable waiter reply: %r", dialogue)
        return WaiterReply(
            text=fallback_reply(utterance, context, menu, profile.allergies, ordered_dish),
            detected_allergies=detected,
            used_fallback=True,
        )
    return WaiterReply(text=dialogue, detected_allergies=detected)
