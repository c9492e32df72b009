"""
Allergen synonyms and conversation phrase tables — single source of truth for
every keyword the classifier, context tracker and scoring engine look for.
"""

# Each key matches any of its values in either direction.
ALLERGEN_SYNONYMS: dict[str, list[str]] = {
    "dairy": ["milk"],
    "nuts": ["tree nuts", "tree nut"],
    "shellfish": ["crustaceans", "molluscs"],
    "wheat": ["gluten"],
}

# ── Disclosure ───────────────────────────────────────────────────────────────

POSITIVE_DISCLOSURE_PHRASES: list[str] = [
    "i'm allergic to", "i am allergic to", "im allergic to",
    "i have an allergy to", "i have allergies to", "i've got an allergy to",
    "i have a food allergy", "i have food allergies",
    "i can't eat", "i cannot eat", "i can't have", "i cannot have",
    "allergic to", "allergy to", "allergies to",
    "intolerant to", "i avoid", "i'm sensitive to",
]

NEGATIVE_DISCLOSURE_PHRASES: list[str] = [
    "no allergies", "no food allergies",
    "i don't have any allergies", "i do not have any allergies",
    "i don't have allergies", "i'm not allergic", "i am not allergic",
]

# "I have a peanut allergy", "I've got a severe shellfish allergy"
HAVE_ALLERGY_PATTERN = (
    r"\bi(?:'ve| have)(?: got)? (?:a |an )?(?:severe |serious |bad |mild )?"
    r"([a-z][a-z ]*?) (?:allergy|allergies)\b"
)

# Trigger phrases whose following words name the allergens themselves.
ALLERGEN_TRIGGER_PHRASES: list[str] = [
    "allergic to", "allergy to", "allergies to", "intolerant to",
    "i can't eat", "i cannot eat", "i can't have", "i cannot have",
    "i avoid", "sensitive to",
]

# Ends the allergen list that follows a trigger phrase.
CLAUSE_BREAK_PATTERN = (
    r"[.!?;]|\b(?:i|so|but|which|what|is|are|can|could|do|does|please|because|though|when|if|with)\b"
)

# Words after a trigger phrase that never name an allergen.
NON_ALLERGEN_WORDS: set[str] = {
    "a", "an", "the", "any", "all", "some", "it", "that", "this", "them",
    "those", "anything", "much", "food", "foods", "really", "very",
    "severely", "seriously", "mildly", "also", "too", "things",
}

# ── Ordering ─────────────────────────────────────────────────────────────────

ORDER_PHRASES: list[str] = [
    "i'll have", "i will have", "i want", "i'd like", "i would like",
    "i choose", "i'll take", "i will take", "i'll get", "i'll go with",
    "i'll try", "can i have", "can i get", "could i have", "could i get",
    "give me", "i'll order", "let me have", "let's go with", "bring me",
]

# Short confirmations that accept the waiter's suggestion.
CONFIRMATION_PHRASES: list[str] = [
    "sounds good", "that one", "perfect", "sure", "yes please",
    "that works", "go for it", "let's do that",
]

QUESTION_OPENERS: list[str] = ["what", "so what"]

MENU_INQUIRY_PHRASES: list[str] = [
    "what can i have", "what can i eat", "what's on the menu",
    "what is on the menu", "what do you have", "what's available",
    "what is available", "what do you recommend", "recommend", "suggest",
    "options", "choices", "safe for me", "safe to eat", "what's safe",
    "what is safe", "what about", "how about", "tell me about",
]

CHANGE_ORDER_PHRASES: list[str] = [
    "don't want", "do not want", "cancel", "change my order",
    "something else", "different", "instead",
]

KEEP_ORDER_PHRASES: list[str] = ["still want", "anyway", "that's fine", "i'll risk it"]

USER_END_PHRASES: list[str] = [
    "that's all", "that is all", "that's everything", "goodbye", "bye",
]

# ── Dish vocabulary ──────────────────────────────────────────────────────────

FOOD_WORDS: list[str] = [
    "pasta", "pizza", "salad", "soup", "chicken", "fish", "beef", "pork",
    "vegetarian", "veggie", "burger", "sandwich", "rice", "noodles", "curry",
    "steak", "salmon", "tuna", "caesar", "tomato", "mushroom", "cheese",
    "bread", "fries", "chips", "brownie", "cake", "ice cream", "linguine",
    "sushi", "tempura", "pudding", "pie", "hummus",
]

# (required words, dish name)
COMPOUND_DISHES: list[tuple[tuple[str, ...], str]] = [
    (("vegetarian", "pasta"), "Vegetarian Pasta"),
    (("caesar", "salad"), "Caesar Salad"),
    (("fish", "chips"), "Fish & Chips"),
]

SIDE_ITEMS: set[str] = {"bread", "water", "drink", "soda", "juice", "roll", "croutons"}

# ── Questions and filler ─────────────────────────────────────────────────────

QUESTION_PATTERN = r"\b(what|how|which|why)\b"

QUESTION_PHRASES: list[str] = [
    "does it contain", "does it have", "is there", "are there",
    "can you tell me", "could you tell me", "do you know",
]

FILLER_PHRASES: set[str] = {
    "no", "no thanks", "no thank you", "nope", "not really", "nothing",
    "hello", "hi", "hey", "hi there", "hello there", "ok", "okay", "sure",
    "yes", "yeah", "yep", "thanks", "thank you", "cheers", "great",
    "cool", "nice", "alright", "fine", "good",
}

GREETING_WORDS: set[str] = {"hello", "hi", "hey", "good morning", "good evening"}

# ── Scoring keyword sets ─────────────────────────────────────────────────────

INGREDIENT_KEYWORDS: list[str] = [
    "ingredient", "contain", "what's in", "what is in", "does it have", "made with",
]
CROSS_CONTACT_KEYWORDS: list[str] = [
    "cross", "contamination", "shared", "separate", "fryer", "equipment",
]
PREPARATION_KEYWORDS: list[str] = ["prepare", "cook", "made", "how is it"]
HIDDEN_ALLERGEN_KEYWORDS: list[str] = ["hidden", "sauce", "dressing", "stock", "broth"]
ASSERTIVENESS_KEYWORDS: list[str] = ["need to", "must", "important", "serious", "cannot"]
POLITENESS_KEYWORDS: list[str] = ["please", "thank"]
KITCHEN_KEYWORDS: list[str] = ["kitchen", "chef"]
REJECTION_KEYWORDS: list[str] = ["different", "alternative", "not safe"]
UNSAFE_SUGGESTION_KEYWORDS: list[str] = ["contains", "has"]

# ── Waiter replies ───────────────────────────────────────────────────────────

CONVERSATION_END_PHRASES: list[str] = [
    "enjoy your meal", "have a great day", "have a wonderful day",
    "take care", "see you later",
]

# Generic dishes the waiter must never invent.
FORBIDDEN_REPLY_TERMS: list[str] = [
    "chef's special", "daily special", "soup of the day", "catch of the day",
    "house special",
]
