"""
Conversation context tracker — folds one classified turn and the waiter's
reply into a new ConversationContext.

update_context() is pure: it reads the previous context and returns a new
frozen value via model_copy. No I/O, no globals beyond the keyword defaults
taken from settings when the caller does not pass its own lists.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from safeorder.config import settings
from safeorder.schemas.conversation import ChatMessage, ClassifiedIntent, ConversationContext
from safeorder.services.menu_safety import MenuSafetyIndex
from safeorder.utils.allergy_data import CHANGE_ORDER_PHRASES, KEEP_ORDER_PHRASES
from safeorder.utils.text import contains_any, fold

logger = logging.getLogger(__name__)


@dataclass
class OrderDecision:
    """What the user did this turn with a dish the waiter had warned about."""

    cancelled: Optional[str] = None
    kept: Optional[str] = None


def is_safety_warning(reply: str, phrases: Optional[list[str]] = None) -> bool:
    """True if the waiter's reply flags a risk ("contains", "shared fryer", ...)."""
    text = fold(reply)
    phrases = settings.safety_warning_phrase_list if phrases is None else phrases
    if contains_any(text, phrases):
        return True
    return "allergic to" in text and "contains" in text


def is_order_objection(reply: str, keywords: Optional[list[str]] = None) -> bool:
    """A question or warning keyword in the reply stops it from confirming the order."""
    text = fold(reply)
    keywords = settings.order_warning_keyword_list if keywords is None else keywords
    return "?" in text or contains_any(text, keywords)


def track_order_decision(
    context: ConversationContext,
    text: str,
    new_dish: Optional[str],
) -> OrderDecision:
    """
    Decide whether this turn cancels or keeps a warned-about order.
    Only applies while the warned dish is still the selected one.
    """
    warned = context.warned_dish
    if not warned or context.selected_dish != warned:
        return OrderDecision()

    ordered_other = new_dish is not None and new_dish != warned
    if contains_any(text, CHANGE_ORDER_PHRASES) or ordered_other:
        return OrderDecision(cancelled=warned)

    keeps = (
        contains_any(text, KEEP_ORDER_PHRASES)
        or ("keep" in text and "order" in text)
        or new_dish == warned
    )
    if keeps:
        return OrderDecision(kept=warned)
    return OrderDecision()


def _append_once(values: list[str], value: Optional[str]) -> list[str]:
    if value is None or value in values:
        return list(values)
    return [*values, value]


def update_context(
    context: ConversationContext,
    intent: ClassifiedIntent,
    utterance: str,
    ai_reply: str,
    *,
    warning_keywords: Optional[list[str]] = None,
    safety_phrases: Optional[list[str]] = None,
    menu: Optional[MenuSafetyIndex] = None,
    allergies: Optional[list[str]] = None,
) -> ConversationContext:
    """
    Return the context after one user utterance and the waiter's reply to it.

    With a menu and the player's allergies, a warning-sounding reply about a
    dish the menu knows to be safe is not treated as a safety warning.
    """
    text = fold(utterance)

    # Disclosure
    disclosed = list(context.disclosed_allergies)
    for allergen in intent.disclosed_allergens:
        if allergen not in disclosed:
            disclosed.append(allergen)
    allergies_disclosed = (
        context.allergies_disclosed or intent.is_disclosure or bool(intent.disclosed_allergens)
    )

    # Order
    new_dish = intent.ordered_dish if not intent.asking_about_menu else None
    decision = track_order_decision(context, text, new_dish)

    selected = context.selected_dish
    confirmed = context.confirmed_dish
    warned = context.warned_dish
    if decision.cancelled:
        logger.debug("Order '%s' cancelled after warning", decision.cancelled)
        selected = new_dish if new_dish != decision.cancelled else None
        confirmed = False
        warned = None
    elif new_dish and new_dish != selected:
        selected = new_dish
        confirmed = False
    if decision.kept:
        warned = None

    if selected and not confirmed:
        if not is_order_objection(ai_reply, warning_keywords) and len(ai_reply.strip()) > 10:
            confirmed = True

    # Order decisions after a warning
    cancelled = _append_once(context.cancelled_orders_after_warning, decision.cancelled)
    kept = _append_once(context.kept_unsafe_orders_after_warning, decision.kept)
    reordered = list(context.reordered_items_after_cancellation)
    if selected and cancelled and selected not in cancelled:
        reordered = _append_once(reordered, selected)

    warning_now = selected is not None and is_safety_warning(ai_reply, safety_phrases)
    if warning_now and menu is not None and allergies is not None:
        warning_now = menu.is_dish_safe(selected, allergies) is not True
    if warning_now:
        warned = selected

    # Topics only ever gain flags
    topics = dict(context.topics_covered)
    if allergies_disclosed:
        topics["allergies_disclosed"] = True
    if selected:
        topics["dish_selected"] = True
    if "ingredient" in text or "contain" in text:
        topics["ingredients_asked"] = True
    if intent.is_question:
        topics["asked_questions"] = True
    if warning_now:
        topics["safety_warning_received"] = True

    return context.model_copy(
        update={
            "messages": [
                *context.messages,
                ChatMessage(role="user", content=utterance),
                ChatMessage(role="assistant", content=ai_reply),
            ],
            "allergies_disclosed": allergies_disclosed,
            "disclosed_allergies": disclosed,
            "selected_dish": selected,
            "confirmed_dish": confirmed,
            "turn_count": context.turn_count + 1,
            "topics_covered": topics,
            "safety_warning_given": context.safety_warning_given or warning_now,
            "warned_dish": warned,
            "cancelled_orders_after_warning": cancelled,
            "kept_unsafe_orders_after_warning": kept,
            "reordered_items_after_cancellation": reordered,
        }
    )
