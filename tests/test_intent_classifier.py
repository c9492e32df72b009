from safeorder.schemas.conversation import ChatMessage, ConversationContext
from safeorder.services.intent_classifier import (
    DisclosurePattern,
    classify,
    extract_dish,
    first_match,
    is_filler,
)


def test_ingredient_question_is_not_an_order():
    result = classify("What ingredients are in the soup, does it contain dairy?", ["dairy"])
    assert result.is_question is True
    assert result.is_ordering is False
    assert result.intent == "question"
    assert result.ordered_dish is None


def test_disclosure_extracts_declared_allergy():
    result = classify("I'm allergic to peanuts", ["peanuts"])
    assert result.intent == "allergy_disclosure"
    assert result.is_disclosure
    assert result.disclosed_allergens == ["peanuts"]


def test_disclosure_extracts_allergen_list():
    result = classify("I'm allergic to sesame and eggs", [])
    assert result.disclosed_allergens == ["sesame", "eggs"]


def test_have_allergy_construction():
    result = classify("I have a peanut allergy", [])
    assert result.is_disclosure
    assert result.disclosed_allergens == ["peanut"]


def test_negative_disclosure_has_no_allergens():
    result = classify("No allergies, thanks", ["fish"])
    assert result.is_disclosure
    assert result.disclosed_allergens == []
    assert result.is_ordering is False


def test_negative_patterns_take_precedence():
    rule = first_match("i'm not allergic to anything", DisclosurePattern)
    assert rule is not None and rule.negative


def test_negated_allergy_does_not_hide_a_real_one():
    result = classify("I'm not allergic to dairy but I'm allergic to peanuts", ["peanuts"])
    assert result.intent == "allergy_disclosure"
    assert result.is_disclosure
    assert result.disclosed_allergens == ["peanuts"]

    result = classify("I'm not allergic to dairy but I'm allergic to peanuts", ["dairy", "peanuts"])
    assert result.disclosed_allergens == ["peanuts"]


def test_plain_negative_disclosure_still_extracts_nothing():
    result = classify("I'm not allergic to anything", ["fish"])
    assert result.is_disclosure
    assert result.disclosed_allergens == []


def test_disclosure_and_order_in_one_utterance(golden_fork):
    result = classify(
        "I'm allergic to fish, I'll have the Tomato & Basil Soup",
        ["fish"],
        ConversationContext(),
        golden_fork,
    )
    assert result.intent == "food_ordering"
    assert result.is_ordering and result.is_disclosure
    assert result.disclosed_allergens == ["fish"]
    assert result.ordered_dish == "Tomato & Basil Soup"


def test_filler_is_never_an_order():
    assert is_filler("ok thanks")
    assert is_filler("hi")
    assert not is_filler("sounds good")
    assert classify("Sure", []).is_ordering is False
    assert classify("ok, thank you", []).is_ordering is False


def test_greeting():
    assert classify("Hi there", []).intent == "greeting"


def test_menu_inquiry_with_order_phrase_is_a_question():
    result = classify("What can I have?", ["fish"])
    assert result.is_ordering is False
    assert result.is_question
    assert result.asking_about_menu


def test_confirmation_accepts_the_waiters_suggestion(golden_fork):
    context = ConversationContext(
        messages=[
            ChatMessage(role="user", content="What do you recommend?"),
            ChatMessage(role="assistant", content="I'd suggest the Vegan Lentil Shepherd's Pie."),
        ]
    )
    result = classify("Sounds good", ["fish"], context, golden_fork)
    assert result.is_ordering
    assert result.ordered_dish == "Vegan Lentil Shepherd's Pie"


def test_user_ending_the_conversation():
    assert classify("That's all, thank you", []).conversation_should_end
    assert not classify("I'll have the soup", []).conversation_should_end


def test_extract_dish_without_menu():
    assert extract_dish("i'll have the pasta") == "Pasta"
    assert extract_dish("i'd like the vegetarian pasta") == "Vegetarian Pasta"
    assert extract_dish("can i get some bread") is None


def test_extract_dish_resolves_against_menu(golden_fork):
    assert extract_dish("i'll have the fish and chips", golden_fork) == "Fish & Chips"
    assert extract_dish("can i get the brownies", golden_fork) == "Chocolate Brownies"


def test_empty_utterance():
    result = classify("   ", ["fish"])
    assert result.intent == "general_response"
    assert not result.is_ordering
