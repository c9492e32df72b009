"""
Prompt template builders for all LLM calls.
All prompt strings live here — no hardcoded prompts elsewhere in the codebase.
"""

from __future__ import annotations

from safeorder.schemas.conversation import ChatMessage, ConversationContext
from safeorder.schemas.scenario import DifficultyLevel, PlayerProfile, ScenarioConfig

# Waiter behaviour per difficulty level
_LEVEL_BEHAVIOUR: dict[DifficultyLevel, str] = {
    DifficultyLevel.BEGINNER: (
        "Be patient and friendly. If the customer mentions an allergy, check the "
        "menu carefully and clearly point out which dishes are safe."
    ),
    DifficultyLevel.INTERMEDIATE: (
        "You are busy and a little rushed. Answer questions accurately but do not "
        "volunteer cross-contact information unless the customer asks."
    ),
    DifficultyLevel.ADVANCED: (
        "You are distracted. You sometimes recommend a dish without checking "
        "allergens. If the customer orders a dish containing one of their "
        "allergens, warn them that it contains the allergen. Only mention "
        "hidden ingredients or shared fryers when asked directly."
    ),
}


# ── Context builders ─────────────────────────────────────────────────────────


def build_history(messages: list[ChatMessage]) -> str:
    """Format recent messages as a transcript."""
    if not messages:
        return "(conversation just started)"
    lines = []
    for message in messages:
        speaker = "Customer" if message.role == "user" else "Waiter"
        lines.append(f"{speaker}: {message.content}")
    return "\n".join(lines)


def build_context_summary(context: ConversationContext) -> str:
    """Compact belief-state summary handed to the intent analyser."""
    allergies = ", ".join(context.disclosed_allergies) or "none"
    topics = ", ".join(k for k, v in context.topics_covered.items() if v) or "none"
    return (
        f"Allergies disclosed so far: {'yes' if context.allergies_disclosed else 'no'} ({allergies})\n"
        f"Dish currently ordered: {context.selected_dish or 'none'}"
        f"{' (confirmed)' if context.confirmed_dish else ''}\n"
        f"Safety warning already given: {'yes' if context.safety_warning_given else 'no'}\n"
        f"Topics covered: {topics}\n"
        f"Turns so far: {context.turn_count}"
    )


# ── Intent analysis ──────────────────────────────────────────────────────────


def build_intent_prompt(utterance: str, context: ConversationContext) -> str:
    """
    Build the prompt for the intent analyser.

    Ordering takes precedence as the intent, but allergies mentioned in the
    same sentence must always be listed.
    """
    return f"""You analyse one customer utterance in a restaurant conversation.

## CONVERSATION SO FAR
{build_history(context.recent_messages)}

## CURRENT STATE
{build_context_summary(context)}

## CUSTOMER UTTERANCE
{utterance}

## RULES
- intent is "food_ordering" only when the customer chooses a dish, even if they
  also mention an allergy in the same sentence.
- Questions about the menu, ingredients or safety are "question", not "food_ordering".
- ALWAYS list every allergy the customer mentions in mentioned_allergies,
  whatever the intent.
- ordered_food is the dish name exactly as on the menu, or null.
- conversation_should_end is true only when the customer is saying goodbye
  or has nothing more to order.

## OUTPUT FORMAT
Output only valid JSON. No markdown fences. No preamble. No explanation.

{{
  "intent": "food_ordering" | "allergy_disclosure" | "question" | "general_response" | "greeting",
  "mentioned_allergies": ["peanuts"],
  "ordered_food": "Tomato & Basil Soup" | null,
  "is_asking_question": false,
  "conversation_should_end": false,
  "confidence": 0.9
}}"""


# ── Waiter reply ─────────────────────────────────────────────────────────────


def build_waiter_prompt(
    utterance: str,
    context: ConversationContext,
    profile: PlayerProfile,
    scenario: ScenarioConfig,
    menu_text: str,
) -> str:
    """
    Build the prompt for the waiter's next line.

    The menu is the only source of dishes; the waiter must not invent any.
    """
    return f"""You are a {scenario.npc_role} at a restaurant. {scenario.restaurant_context}
Stay in character and reply with one or two short spoken sentences.

## BEHAVIOUR
{_LEVEL_BEHAVIOUR[scenario.level]}

## MENU (the ONLY dishes that exist)
{menu_text}

## CUSTOMER
Name: {profile.name}, age {profile.age}
The customer's real allergies are not known to you unless they said them.

## CONVERSATION SO FAR
{build_history(context.recent_messages)}

## CURRENT STATE
{build_context_summary(context)}

## CUSTOMER JUST SAID
{utterance}

## OUTPUT FORMAT
Output only valid JSON. No markdown fences. No preamble. No explanation.

{{"npc_dialogue": "what you say out loud", "detected_allergies": ["allergies the customer just mentioned"]}}"""
