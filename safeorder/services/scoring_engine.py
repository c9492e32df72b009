"""
Scoring engine — pure, level-banded assessment of a finished session.
No LLM calls. No DB calls. Scores the full transcript plus final context.

Each level is a ScoringStrategy with its own criteria, maximum and pass mark:

  Beginner      max 100  pass 70
    disclosure 50 · safe food 30/-30 · order decision 20 (+10/-10, kept -20)
    ingredient questions 10 · politeness 10
  Intermediate  max 120  pass 85
    disclosure 40 · safe food 30/-35 · order decision 25 (+10/-20, kept -25)
    ingredient questions 15 · cross-contact questions 15
  Advanced      max 150  pass 120
    disclosure 30 · safe food 30/-50 · order decision 30 (+20/-30, kept -40)
    ingredient 20 · cross-contact 20 · preparation 15 · hidden allergens 20
    reaction to unsafe suggestion 20 (10 if none) · assertiveness 10
    bonuses are recorded by name only (kitchen verification, four or more turns)

Criteria are summed, critical-failure and scenario-rule multipliers applied,
then the total is clamped to [0, max].
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from safeorder.schemas.assessment import AssessmentResult
from safeorder.schemas.conversation import ConversationContext, ConversationTurn
from safeorder.schemas.menu import MenuItem
from safeorder.schemas.scenario import DifficultyLevel, PlayerProfile, ScoringRules
from safeorder.services.intent_classifier import mentions_allergy
from safeorder.services.menu_safety import MenuSafetyIndex
from safeorder.utils.allergy_data import (
    ASSERTIVENESS_KEYWORDS,
    CROSS_CONTACT_KEYWORDS,
    HIDDEN_ALLERGEN_KEYWORDS,
    INGREDIENT_KEYWORDS,
    KITCHEN_KEYWORDS,
    POLITENESS_KEYWORDS,
    PREPARATION_KEYWORDS,
    REJECTION_KEYWORDS,
    UNSAFE_SUGGESTION_KEYWORDS,
)
from safeorder.utils.text import contains_any, fold, has_word

logger = logging.getLogger(__name__)

NO_DISCLOSURE_MULTIPLIER = 0.2
NO_SAFETY_QUESTIONS_MULTIPLIER = 0.6
CRITICAL_FAILURE_MULTIPLIER = 0.1


@dataclass
class SessionTrace:
    """Everything a criterion may look at, precomputed once per assessment."""

    turns: list[ConversationTurn]
    profile: PlayerProfile
    context: ConversationContext
    menu: MenuSafetyIndex
    user_inputs: list[str] = field(default_factory=list)
    ai_replies: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.user_inputs = [fold(t.user_input) for t in self.turns]
        self.ai_replies = [fold(t.ai_response) for t in self.turns]

    def user_said_any(self, keywords: list[str]) -> bool:
        return any(contains_any(text, keywords) for text in self.user_inputs)

    @property
    def selected_item(self) -> Optional[MenuItem]:
        dish = self.context.selected_dish
        return self.menu.find_by_name(dish) if dish else None

    def dish_safety(self, name: Optional[str]) -> Optional[bool]:
        return self.menu.is_dish_safe(name, self.profile.allergies)

    @property
    def ordered_unsafe(self) -> bool:
        item = self.selected_item
        return item is not None and not self.menu.is_safe(item, self.profile.allergies)


@dataclass
class CriterionOutcome:
    """Points for one criterion plus the single list entry it contributes, if any."""

    key: str
    points: int
    field_name: Optional[str] = None
    strength: Optional[str] = None
    improvement: Optional[str] = None
    missed_action: Optional[str] = None


@dataclass
class OrderDecisionWeights:
    cancelled: int
    safe_reorder: int
    unsafe_reorder: int
    kept_unsafe: int


class ScoringStrategy(ABC):
    """One difficulty level's rule set."""

    level: DifficultyLevel
    max_score: int
    passing_score: int
    critical_message: str = "CRITICAL: Ordered unsafe food without disclosing allergies"

    def score(
        self,
        turns: list[ConversationTurn],
        profile: PlayerProfile,
        context: ConversationContext,
        menu: MenuSafetyIndex,
        rules: Optional[ScoringRules] = None,
    ) -> AssessmentResult:
        """Score a finished session. Returns an immutable AssessmentResult."""
        trace = SessionTrace(turns=turns, profile=profile, context=context, menu=menu)
        outcomes = self._criteria(trace)

        strengths: list[str] = []
        improvements: list[str] = []
        missed: list[str] = []
        detailed: dict[str, int] = {}
        field_scores: dict[str, int] = {}
        for outcome in outcomes:
            detailed[outcome.key] = outcome.points
            if outcome.field_name:
                field_scores[outcome.field_name] = (
                    field_scores.get(outcome.field_name, 0) + outcome.points
                )
            if outcome.strength:
                strengths.append(outcome.strength)
            if outcome.improvement:
                improvements.append(outcome.improvement)
            if outcome.missed_action:
                missed.append(outcome.missed_action)

        total = sum(detailed.values())
        earned_bonuses = self._bonuses(trace)

        critical = trace.ordered_unsafe and not context.allergies_disclosed
        if critical:
            total = self._apply_critical_failure(total, improvements)

        if rules is not None:
            total = self._apply_scenario_rules(total, trace, rules, detailed)

        total = max(0, min(self.max_score, total))
        detailed["total"] = total
        passed = total >= self.passing_score

        logger.info(
            "Scored %s session: %d/%d (%s%s)",
            self.level.value,
            total,
            self.max_score,
            "PASS" if passed else "FAIL",
            ", critical failure" if critical else "",
        )

        return AssessmentResult(
            level=self.level,
            **field_scores,
            total_score=total,
            max_possible_score=self.max_score,
            passing_score=self.passing_score,
            passed=passed,
            overall_grade="PASS" if passed else "FAIL",
            critical_failure=critical,
            strengths=strengths,
            improvements=improvements,
            missed_actions=missed,
            earned_bonuses=earned_bonuses,
            detailed_scores=detailed,
        )

    @abstractmethod
    def _criteria(self, trace: SessionTrace) -> list[CriterionOutcome]:
        """Evaluate every criterion of the level, in display order."""

    def _bonuses(self, trace: SessionTrace) -> list[str]:
        return []

    def _apply_critical_failure(self, total: int, improvements: list[str]) -> int:
        improvements.insert(0, self.critical_message)
        return total

    def _apply_scenario_rules(
        self,
        total: int,
        trace: SessionTrace,
        rules: ScoringRules,
        detailed: dict[str, int],
    ) -> int:
        """Heavy multipliers for scenarios that require disclosure or safety questions."""
        if rules.require_allergy_disclosure and not trace.context.allergies_disclosed:
            reduced = math.floor(total * NO_DISCLOSURE_MULTIPLIER)
            detailed["required_disclosure_penalty"] = reduced - total
            total = reduced
        if rules.require_safety_questions and not trace.user_said_any(
            INGREDIENT_KEYWORDS + CROSS_CONTACT_KEYWORDS
        ):
            reduced = math.floor(total * NO_SAFETY_QUESTIONS_MULTIPLIER)
            detailed["required_questions_penalty"] = reduced - total
            total = reduced
        return total

    # ── Shared criteria ────────────────────────────────────────────────────────

    def _score_disclosure(
        self, trace: SessionTrace, points: int, strength: str, improvement: str
    ) -> CriterionOutcome:
        if trace.context.allergies_disclosed:
            return CriterionOutcome("allergy_disclosure", points, "allergy_disclosure_score", strength=strength)
        return CriterionOutcome("allergy_disclosure", 0, "allergy_disclosure_score", improvement=improvement)

    def _score_safe_food(
        self, trace: SessionTrace, points: int, penalty: int, strength: str, improvement: str
    ) -> CriterionOutcome:
        """Skipped (0, no entry) when the ordered dish is not on the menu."""
        key, field_name = "safe_food_choice", "risk_assessment_score"
        if not trace.context.selected_dish:
            return CriterionOutcome(
                key, 0, field_name,
                improvement="Practice ordering a dish during the conversation",
            )
        item = trace.selected_item
        if item is None:
            logger.warning(
                "Ordered dish '%s' not found on menu — skipping safe food criterion",
                trace.context.selected_dish,
            )
            return CriterionOutcome(key, 0, field_name)
        if trace.menu.is_safe(item, trace.profile.allergies):
            return CriterionOutcome(key, points, field_name, strength=strength)
        return CriterionOutcome(key, -penalty, field_name, improvement=improvement)

    def _score_order_decision(
        self, trace: SessionTrace, weights: OrderDecisionWeights
    ) -> CriterionOutcome:
        """Only applies once the waiter has given a safety warning."""
        key, field_name = "order_decision_after_warning", "order_decision_score"
        ctx = trace.context
        if not ctx.safety_warning_given:
            return CriterionOutcome(key, 0, field_name)

        if ctx.cancelled_orders_after_warning:
            points = weights.cancelled
            if ctx.reordered_items_after_cancellation:
                reorder = (
                    ctx.selected_dish
                    if ctx.selected_dish in ctx.reordered_items_after_cancellation
                    else ctx.reordered_items_after_cancellation[-1]
                )
                safe = trace.dish_safety(reorder)
                if safe is True:
                    return CriterionOutcome(
                        key, points + weights.safe_reorder, field_name,
                        strength="Changed your order after the safety warning and chose a safe dish",
                    )
                if safe is False:
                    return CriterionOutcome(
                        key, points - weights.unsafe_reorder, field_name,
                        improvement="Reordered a dish that is still not safe after cancelling",
                    )
            return CriterionOutcome(
                key, points, field_name,
                strength="Changed your order after the safety warning",
            )

        if ctx.kept_unsafe_orders_after_warning:
            return CriterionOutcome(
                key, -weights.kept_unsafe, field_name,
                improvement="Kept an unsafe order even after the waiter's warning",
            )
        return CriterionOutcome(
            key, 0, field_name,
            improvement="Respond to a safety warning by changing your order",
        )

    def _score_keywords(
        self,
        trace: SessionTrace,
        key: str,
        field_name: str,
        keywords: list[str],
        points: int,
        strength: str,
        improvement: Optional[str] = None,
        missed_action: Optional[str] = None,
    ) -> CriterionOutcome:
        if trace.user_said_any(keywords):
            return CriterionOutcome(key, points, field_name, strength=strength)
        return CriterionOutcome(
            key, 0, field_name, improvement=improvement, missed_action=missed_action
        )


# ── Levels ─────────────────────────────────────────────────────────────────────

class BeginnerStrategy(ScoringStrategy):
    level = DifficultyLevel.BEGINNER
    max_score = 100
    passing_score = 70

    def _criteria(self, trace: SessionTrace) -> list[CriterionOutcome]:
        return [
            self._score_disclosure(
                trace, 50,
                "Clearly told the waiter about your allergies",
                "Always tell the waiter about your allergies first",
            ),
            self._score_safe_food(
                trace, 30, 30,
                "Chose a dish that is safe for your allergies",
                "Ordered a dish that is not safe for your allergies",
            ),
            self._score_order_decision(trace, OrderDecisionWeights(20, 10, 10, 20)),
            self._score_keywords(
                trace, "ingredient_questions", "ingredient_inquiry_score",
                INGREDIENT_KEYWORDS, 10,
                "Asked about the ingredients in your food",
                improvement="Ask what ingredients are in a dish before ordering",
            ),
            self._score_keywords(
                trace, "politeness_bonus", "politeness_score",
                POLITENESS_KEYWORDS, 10,
                "Stayed polite throughout the conversation",
                improvement="Remember to say please and thank you",
            ),
        ]


class IntermediateStrategy(ScoringStrategy):
    level = DifficultyLevel.INTERMEDIATE
    max_score = 120
    passing_score = 85

    def _criteria(self, trace: SessionTrace) -> list[CriterionOutcome]:
        return [
            self._score_disclosure(
                trace, 40,
                "Disclosed your allergies to the waiter",
                "Disclose your allergies before you order",
            ),
            self._score_safe_food(
                trace, 30, 35,
                "Ordered a dish that is safe for you",
                "Ordered a dish containing your allergens",
            ),
            self._score_order_decision(trace, OrderDecisionWeights(25, 10, 20, 25)),
            self._score_keywords(
                trace, "ingredient_questions", "ingredient_inquiry_score",
                INGREDIENT_KEYWORDS, 15,
                "Asked detailed questions about ingredients",
                improvement="Ask about the ingredients of the dish you order",
            ),
            self._score_keywords(
                trace, "cross_contact_questions", "cross_contamination_score",
                CROSS_CONTACT_KEYWORDS, 15,
                "Asked about cross-contact and shared equipment",
                improvement="Ask about cross-contamination from shared equipment",
            ),
        ]


class AdvancedStrategy(ScoringStrategy):
    level = DifficultyLevel.ADVANCED
    max_score = 150
    passing_score = 120
    critical_message = "CRITICAL FAILURE: This would be life-threatening in real life"

    def _criteria(self, trace: SessionTrace) -> list[CriterionOutcome]:
        return [
            self._score_disclosure(
                trace, 30,
                "Disclosed your allergies clearly",
                "Disclose every allergy before ordering",
            ),
            self._score_safe_food(
                trace, 30, 50,
                "Made a safe final dish choice",
                "Ordered a dish containing your allergens",
            ),
            self._score_order_decision(trace, OrderDecisionWeights(30, 20, 30, 40)),
            self._score_keywords(
                trace, "ingredient_inquiry", "ingredient_inquiry_score",
                INGREDIENT_KEYWORDS, 20,
                "Asked about ingredients",
                missed_action="Did not ask about ingredients",
            ),
            self._score_keywords(
                trace, "cross_contact_awareness", "cross_contamination_score",
                CROSS_CONTACT_KEYWORDS, 20,
                "Showed awareness of cross-contamination",
                missed_action="Did not ask about cross-contamination risks",
            ),
            self._score_keywords(
                trace, "preparation_method_check", "preparation_method_score",
                PREPARATION_KEYWORDS, 15,
                "Checked how the dish is prepared",
                missed_action="Did not check the preparation method",
            ),
            self._score_keywords(
                trace, "hidden_allergen_questions", "hidden_allergen_score",
                HIDDEN_ALLERGEN_KEYWORDS, 20,
                "Asked about hidden allergens in sauces and stocks",
                missed_action="Did not ask about hidden allergens in sauces, dressings or stock",
            ),
            self._score_reaction(trace),
            self._score_keywords(
                trace, "assertiveness", "assertiveness_score",
                ASSERTIVENESS_KEYWORDS, 10,
                "Was assertive about how serious your allergies are",
                missed_action="Was not assertive about how serious your allergies are",
            ),
        ]

    def _score_reaction(self, trace: SessionTrace) -> CriterionOutcome:
        """20 for rejecting an unsafe suggestion, 10 if none was made."""
        key, field_name = "reaction_to_unsafe_dish", "safety_reaction_score"
        suggested_unsafe = any(
            any(mentions_allergy(reply, a) for a in trace.profile.allergies)
            and any(has_word(reply, k) for k in UNSAFE_SUGGESTION_KEYWORDS)
            for reply in trace.ai_replies
        )
        if not suggested_unsafe:
            return CriterionOutcome(
                key, 10, field_name, strength="No unsafe dish was suggested to you"
            )
        rejected = any(
            has_word(text, "no") or contains_any(text, REJECTION_KEYWORDS)
            for text in trace.user_inputs
        )
        if rejected:
            return CriterionOutcome(
                key, 20, field_name, strength="Rejected a dish that contained your allergen"
            )
        return CriterionOutcome(
            key, 0, field_name,
            missed_action="Did not reject a suggested dish that contains your allergen",
        )

    def _bonuses(self, trace: SessionTrace) -> list[str]:
        bonuses: list[str] = []
        if trace.user_said_any(KITCHEN_KEYWORDS):
            bonuses.append("Asked to verify with kitchen/chef")
        if len(trace.turns) >= 4:
            bonuses.append("Thorough questioning approach")
        return bonuses

    def _apply_critical_failure(self, total: int, improvements: list[str]) -> int:
        improvements.insert(0, self.critical_message)
        return math.floor(total * CRITICAL_FAILURE_MULTIPLIER)


# ── Engine ─────────────────────────────────────────────────────────────────────

_STRATEGIES: dict[DifficultyLevel, ScoringStrategy] = {
    DifficultyLevel.BEGINNER: BeginnerStrategy(),
    DifficultyLevel.INTERMEDIATE: IntermediateStrategy(),
    DifficultyLevel.ADVANCED: AdvancedStrategy(),
}


def get_strategy(level: DifficultyLevel) -> ScoringStrategy:
    return _STRATEGIES[DifficultyLevel(level)]


def score_session(
    turns: list[ConversationTurn],
    profile: PlayerProfile,
    context: ConversationContext,
    level: DifficultyLevel,
    menu: MenuSafetyIndex,
    rules: Optional[ScoringRules] = None,
) -> AssessmentResult:
    """Score a finished session with the rule set for its level."""
    return get_strategy(level).score(turns, profile, context, menu, rules)
