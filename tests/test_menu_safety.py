from safeorder.schemas.menu import MenuItem
from safeorder.services.menu_safety import MenuSafetyIndex


def test_find_by_name_ambiguous_query_returns_first_in_menu_order(golden_fork):
    item = golden_fork.find_by_name("chicken")
    assert item is not None
    assert item.name == "Butter Chicken"
    # Deterministic for a fixed menu
    assert golden_fork.find_by_name("chicken").id == item.id


def test_find_by_name_prefers_exact_match(golden_fork):
    assert golden_fork.find_by_name("satay chicken skewers").id == "mn2"
    assert golden_fork.find_by_name("FISH & CHIPS").id == "mn3"


def test_find_by_name_treats_and_like_ampersand(golden_fork):
    assert golden_fork.find_by_name("fish and chips").id == "mn3"


def test_find_by_name_unknown_or_empty(golden_fork):
    assert golden_fork.find_by_name("lobster thermidor") is None
    assert golden_fork.find_by_name("") is None


def test_hidden_allergens_make_an_item_unsafe(golden_fork):
    butter_chicken = golden_fork.find_by_name("Butter Chicken")
    assert not golden_fork.is_safe(butter_chicken, ["nuts"])
    assert golden_fork.unsafe_allergens(butter_chicken, ["nuts"]) == [
        "tree nuts (cashew paste in sauce)"
    ]


def test_safe_and_unsafe_partition_the_menu(golden_fork):
    allergies = ["fish"]
    safe = golden_fork.get_safe_items(allergies)
    unsafe = golden_fork.get_unsafe_items(allergies)
    assert len(safe) + len(unsafe) == len(golden_fork.get_all_items())
    # "fish" also hits "shellfish" by substring
    assert {i.id for i in unsafe} == {"st3", "mn2", "mn3", "mn5"}
    assert not {i.id for i in safe} & {i.id for i in unsafe}


def test_no_allergies_means_everything_is_safe(golden_fork):
    assert golden_fork.get_unsafe_items([]) == []


def test_is_dish_safe_is_none_for_unknown_dish(golden_fork):
    assert golden_fork.is_dish_safe("Tomato & Basil Soup", ["peanuts"]) is True
    assert golden_fork.is_dish_safe("Fish & Chips", ["fish"]) is False
    assert golden_fork.is_dish_safe("Unicorn Steak", ["fish"]) is None
    assert golden_fork.is_dish_safe(None, ["fish"]) is None


def test_find_mentioned_item_prefers_longest_name(golden_fork):
    item = golden_fork.find_mentioned_item("I'd like the satay chicken skewers please")
    assert item.id == "mn2"
    assert golden_fork.find_mentioned_item("just some water") is None


def test_resolve_dish_name(golden_fork):
    assert golden_fork.resolve_dish_name("soup") == "Tomato & Basil Soup"
    assert golden_fork.resolve_dish_name("veggie burger") == "Veggie Burger"
    assert golden_fork.resolve_dish_name("  ") is None


def test_index_without_menu_has_no_information():
    index = MenuSafetyIndex(None)
    assert index.get_all_items() == []
    assert index.find_by_name("soup") is None
    assert index.is_dish_safe("soup", ["fish"]) is None
    assert index.format_for_prompt(["fish"]) == "No menu available."


def test_format_for_prompt_marks_item_safety(golden_fork):
    text = golden_fork.format_for_prompt(["fish"])
    assert text.startswith("=== RESTAURANT MENU ===")
    assert "• Fish & Chips - £" in text
    assert "CONTAINS CUSTOMER ALLERGENS (fish)" in text
    assert "Safety: SAFE for this customer" in text


def test_modifiable_to_safe_accepts_sometimes():
    item = MenuItem(id="x", name="Salad", modifiable_to_safe="sometimes")
    assert item.can_be_modified_to_safe
    assert not MenuItem(id="y", name="Stew").can_be_modified_to_safe
