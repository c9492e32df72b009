"""
FeedbackBuilder — turns an AssessmentResult into level-styled prose.

Each level has a tone, a score-banded opening sentence and an ordered table of
(keywords, sentence) rewrites. A raw improvement is rewritten by the first row
whose keywords all appear in it; unmatched improvements pass through as-is.
"""

from __future__ import annotations

from dataclasses import dataclass

from safeorder.schemas.assessment import AssessmentResult, FeedbackResult, FeedbackTone
from safeorder.schemas.scenario import DifficultyLevel

_ADVANCED_GAP_LIMIT = 6


@dataclass(frozen=True)
class LevelFeedback:
    tone: FeedbackTone
    critical_opening: str
    # (minimum score, opening) from highest band down; the last band is the catch-all
    bands: tuple[tuple[int, str], ...]
    rewrites: tuple[tuple[tuple[str, ...], str], ...]
    closing_pass: str
    closing_fail: str


_BEGINNER = LevelFeedback(
    tone=FeedbackTone.ENCOURAGING,
    critical_opening=(
        "This time you ordered food that could make you ill without telling the "
        "waiter about your allergies. That's okay, it's why we practise!"
    ),
    bands=(
        (85, "Amazing job! You handled that conversation like a pro."),
        (70, "Well done, you passed! You're building really good habits."),
        (50, "Good effort! You're getting there, keep practising."),
        (0, "Nice try! Every practice run makes the real thing easier."),
    ),
    rewrites=(
        (("critical",), "Start every order by saying \"I have a food allergy\" before anything else."),
        (("kept", "warning"), "When the waiter warns you about a dish, it's okay to say \"I'll choose something else, please.\""),
        (("reordered",), "After changing your order, double-check the new dish is safe too."),
        (("warning",), "If the waiter says a dish isn't safe, pick a different one."),
        (("not safe",), "Check that the dish you choose doesn't contain your allergens."),
        (("allerg",), "Try saying \"I'm allergic to...\" as soon as the waiter greets you."),
        (("ingredient",), "Ask \"What's in this dish?\" before you decide."),
        (("safe",), "Check that the dish you choose doesn't contain your allergens."),
        (("please",), "A please and thank you helps the waiter want to help you."),
        (("ordering",), "Have a go at choosing a dish before the conversation ends."),
    ),
    closing_pass="Keep it up and try the next level when you feel ready!",
    closing_fail="Give it another go, you've got this!",
)

_INTERMEDIATE = LevelFeedback(
    tone=FeedbackTone.BALANCED,
    critical_opening=(
        "You ordered a dish containing your allergens without disclosing them. "
        "In a real restaurant this could have caused a reaction."
    ),
    bands=(
        (100, "Excellent work. You managed a busy waiter confidently and safely."),
        (85, "Good job, you passed. Your safety habits are solid."),
        (65, "A reasonable attempt, but some important safety steps were missed."),
        (0, "This conversation left too many safety gaps. Review the points below."),
    ),
    rewrites=(
        (("critical",), "Disclose your allergies before ordering, every time, even when the waiter is rushed."),
        (("kept", "warning"), "Treat a waiter's warning as final and change your order straight away."),
        (("reordered",), "When you reorder, confirm the replacement is free of your allergens."),
        (("warning",), "Act on safety warnings instead of letting the conversation move on."),
        (("cross",), "Ask whether shared fryers, boards or utensils are used for your dish."),
        (("contamination",), "Ask whether shared fryers, boards or utensils are used for your dish."),
        (("containing",), "Check the dish against your allergens before you commit to it."),
        (("allerg",), "State your allergies clearly at the start, before the waiter starts suggesting dishes."),
        (("ingredient",), "Ask what the dish is made with, including sauces and garnishes."),
        (("preparation",), "Ask how the dish is prepared and cooked."),
    ),
    closing_pass="Next time, aim to cover cross-contact before you order.",
    closing_fail="Run the scenario again and work through each missed step.",
)

_ADVANCED = LevelFeedback(
    tone=FeedbackTone.CHALLENGING,
    critical_opening=(
        "Critical failure. You ordered a dish containing your allergen and never "
        "disclosed your allergies. In real life this could be life-threatening."
    ),
    bands=(
        (135, "Outstanding. You controlled the conversation and left nothing to chance."),
        (120, "Pass. You handled a difficult waiter safely, with room to sharpen up."),
        (90, "Not yet a pass. You were partly safe but left risks unexamined."),
        (0, "Fail. Too many risks went unchallenged for a real-world meal."),
    ),
    rewrites=(
        (("allerg", "critical"), "Disclosure is non-negotiable: name every allergy before you discuss the menu."),
        (("critical failure",), "Disclosure is non-negotiable: name every allergy before you discuss the menu."),
        (("kept", "warning"), "A warned-about dish is off the table. Cancel it and choose again."),
        (("reordered",), "Verify the safety of any replacement dish before accepting it."),
        (("warning",), "Respond to every warning with a decision, never silence."),
        (("containing",), "Never commit to a dish until you have confirmed it is free of your allergens."),
        (("hidden",), "Probe for hidden allergens in sauces, dressings, stocks and marinades."),
        (("cross",), "Ask about shared fryers, grills and prep surfaces."),
        (("preparation",), "Ask exactly how the dish is prepared and what it is cooked in."),
        (("assertive",), "Be firm: say your allergy is serious and that the kitchen must take it seriously."),
        (("reject",), "Refuse unsafe suggestions directly and ask for an alternative."),
        (("ingredients",), "Ask for the full ingredient list of anything you consider ordering."),
        (("allerg",), "Disclose every allergy before you order, without being asked."),
    ),
    closing_pass="Keep challenging yourself: ask the kitchen to confirm, every time.",
    closing_fail="Replay the scenario and close every gap listed above before you move on.",
)

_LEVELS: dict[DifficultyLevel, LevelFeedback] = {
    DifficultyLevel.BEGINNER: _BEGINNER,
    DifficultyLevel.INTERMEDIATE: _INTERMEDIATE,
    DifficultyLevel.ADVANCED: _ADVANCED,
}


def _opening(config: LevelFeedback, assessment: AssessmentResult) -> str:
    if assessment.critical_failure:
        return config.critical_opening
    for minimum, sentence in config.bands:
        if assessment.total_score >= minimum:
            return sentence
    return config.bands[-1][1]


def rewrite_improvement(raw: str, level: DifficultyLevel) -> str:
    """Level-styled actionable sentence for one raw improvement tag."""
    lowered = raw.lower()
    for keywords, sentence in _LEVELS[DifficultyLevel(level)].rewrites:
        if all(k in lowered for k in keywords):
            return sentence
    return raw


def build_feedback(assessment: AssessmentResult, level: DifficultyLevel) -> FeedbackResult:
    """Opening, rewritten improvements and closing for the assessment."""
    level = DifficultyLevel(level)
    config = _LEVELS[level]

    gaps = list(assessment.improvements)
    if level is DifficultyLevel.ADVANCED:
        gaps = (gaps + list(assessment.missed_actions))[:_ADVANCED_GAP_LIMIT]

    improvements: list[str] = []
    for raw in gaps:
        sentence = rewrite_improvement(raw, level)
        if sentence not in improvements:
            improvements.append(sentence)

    parts = [_opening(config, assessment)]
    if assessment.strengths:
        parts.append("What went well: " + "; ".join(assessment.strengths) + ".")
    if improvements:
        parts.append("Work on: " + " ".join(improvements))
    if assessment.earned_bonuses:
        parts.append("Bonus: " + "; ".join(assessment.earned_bonuses) + ".")
    parts.append(config.closing_pass if assessment.passed else config.closing_fail)

    return FeedbackResult(
        paragraph=" ".join(parts),
        strengths=list(assessment.strengths),
        improvements=improvements,
        tone=config.tone,
    )
