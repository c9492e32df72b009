from unittest.mock import AsyncMock, patch

from safeorder.schemas.conversation import ConversationContext
from safeorder.schemas.scenario import DifficultyLevel, ScenarioConfig
from safeorder.services.context_tracker import is_safety_warning
from safeorder.services.waiter_dialogue import (
    DEFAULT_DIALOGUE,
    extract_dialogue,
    fallback_reply,
    generate_reply,
    greeting_for,
    mentions_forbidden_dish,
    should_end_conversation,
)


def _scenario(**overrides) -> ScenarioConfig:
    fields = {
        "id": "test",
        "name": "Test",
        "level": DifficultyLevel.BEGINNER,
        "menu_file": "menus/golden_fork.json",
    }
    fields.update(overrides)
    return ScenarioConfig(**fields)


def test_extract_dialogue_from_json():
    text, allergies = extract_dialogue('{"npc_dialogue": "Hello!", "detected_allergies": ["fish"]}')
    assert text == "Hello!"
    assert allergies == ["fish"]


def test_extract_dialogue_from_fenced_json():
    raw = '```json\n{"npc_dialogue": "Hi there", "detected_allergies": []}\n```'
    assert extract_dialogue(raw) == ("Hi there", [])


def test_extract_dialogue_from_broken_json():
    raw = '{"npc_dialogue": "We have soup today", "detected_allergies": ['
    assert extract_dialogue(raw)[0] == "We have soup today"


def test_extract_dialogue_from_plain_text():
    assert extract_dialogue("Certainly, the soup is vegan.\nAnything else?")[0] == (
        "Certainly, the soup is vegan."
    )
    assert extract_dialogue('"Sure thing"')[0] == "Sure thing"
    assert extract_dialogue("Hi.")[0] == "Hi."


def test_extract_dialogue_defaults_when_empty():
    assert extract_dialogue("") == (DEFAULT_DIALOGUE, [])
    assert extract_dialogue('{"detected_allergies": "fish"}') == (DEFAULT_DIALOGUE, [])


def test_reply_checks():
    assert mentions_forbidden_dish("Try our Soup of the Day!")
    assert not mentions_forbidden_dish("Try the Tomato & Basil Soup.")
    assert should_end_conversation("Enjoy your meal!")
    assert not should_end_conversation("Anything else?")


def test_fallback_warns_about_disclosed_allergen(golden_fork):
    context = ConversationContext(allergies_disclosed=True, disclosed_allergies=["fish"])
    reply = fallback_reply("I'll have the Fish & Chips", context, golden_fork, ["fish"], "Fish & Chips")
    assert reply == (
        "I'm sorry, you said you're allergic to fish, and the Fish & Chips contains fish. "
        "Would you like something else?"
    )
    assert is_safety_warning(reply)


def test_fallback_does_not_warn_without_disclosure(golden_fork):
    reply = fallback_reply(
        "I'll have the Fish & Chips", ConversationContext(), golden_fork, ["fish"], "Fish & Chips"
    )
    assert reply.startswith("Great choice, one Fish & Chips")
    assert not is_safety_warning(reply)


def test_fallback_lists_safe_dishes_on_disclosure(golden_fork):
    reply = fallback_reply("I'm allergic to fish", ConversationContext(), golden_fork, ["fish"])
    assert "Tomato & Basil Soup" in reply
    assert "Fish & Chips" not in reply


def test_fallback_answers_ingredient_questions(golden_fork):
    context = ConversationContext(selected_dish="Butter Chicken")
    reply = fallback_reply("What ingredients are in it?", context, golden_fork, ["dairy"])
    assert reply.startswith("The Butter Chicken lists dairy")


def test_greeting_prefers_scenario_dialogue():
    assert greeting_for(_scenario(initial_dialogue="Welcome in!")) == "Welcome in!"
    assert greeting_for(_scenario(), seed=0) != greeting_for(_scenario(), seed=1)
    assert greeting_for(_scenario(level=DifficultyLevel.ADVANCED), seed=0).startswith("Hi.")


async def test_generate_reply_uses_model_dialogue(golden_fork, fish_profile):
    raw = '{"npc_dialogue": "Of course, I will tell the kitchen.", "detected_allergies": ["fish"]}'
    with patch("safeorder.services.waiter_dialogue.call_llm", new=AsyncMock(return_value=raw)):
        reply = await generate_reply(
            "I'm allergic to fish", ConversationContext(), fish_profile, _scenario(), golden_fork
        )
    assert reply.text == "Of course, I will tell the kitchen."
    assert reply.detected_allergies == ["fish"]
    assert reply.used_fallback is False


async def test_generate_reply_discards_invented_dishes(golden_fork, fish_profile):
    raw = '{"npc_dialogue": "Try the soup of the day!", "detected_allergies": []}'
    with patch("safeorder.services.waiter_dialogue.call_llm", new=AsyncMock(return_value=raw)):
        reply = await generate_reply(
            "What do you recommend?", ConversationContext(), fish_profile, _scenario(), golden_fork
        )
    assert reply.used_fallback is True
    assert "soup of the day" not in reply.text.lower()


async def test_generate_reply_falls_back_offline(golden_fork, fish_profile):
    reply = await generate_reply(
        "I'll have the Fish & Chips",
        ConversationContext(allergies_disclosed=True, disclosed_allergies=["fish"]),
        fish_profile,
        _scenario(),
        golden_fork,
        ordered_dish="Fish & Chips",
    )
    assert reply.used_fallback is True
    assert "contains fish" in reply.text
