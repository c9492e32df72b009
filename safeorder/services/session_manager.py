"""
TrainingSessionManager — runs a training conversation from greeting to score.

Each turn is processed strictly in sequence under the session's lock:

  classify utterance   → semantic analysis, pattern rules as fallback
  waiter reply         → LLM, templated reply as fallback
  update context       → pure update_context()
  append turn          → only if the session is still in progress

finish_session() scores exactly once, builds feedback, and hands the result to
the SessionRecorder as a background task. Abandoned sessions are never scored.

Active sessions live in a cachetools TTLCache; an idle session expires after
SESSION_TTL_SECONDS.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional

from cachetools import TTLCache

from safeorder.config import settings
from safeorder.database import AsyncSessionLocal
from safeorder.schemas.assessment import AssessmentResult, FeedbackResult, SessionReport
from safeorder.schemas.conversation import (
    ChatMessage,
    ClassifiedIntent,
    ConversationContext,
    ConversationTurn,
    SessionStatus,
    TurnAssessment,
)
from safeorder.schemas.scenario import DifficultyLevel, PlayerProfile, ScenarioConfig
from safeorder.services.context_tracker import update_context
from safeorder.services.feedback_builder import build_feedback
from safeorder.services.intent_classifier import classify
from safeorder.services.menu_safety import MenuSafetyIndex
from safeorder.services.scenario_loader import ScenarioLoader
from safeorder.services.scoring_engine import score_session
from safeorder.services.semantic_classifier import analyze_intent
from safeorder.services.session_recorder import SessionRecorder
from safeorder.services.waiter_dialogue import (
    ERROR_DIALOGUE,
    WaiterReply,
    generate_reply,
    greeting_for,
    should_end_conversation,
)

logger = logging.getLogger(__name__)

_DEFAULT_MIN_TURNS: dict[DifficultyLevel, int] = {
    DifficultyLevel.BEGINNER: 3,
    DifficultyLevel.INTERMEDIATE: 4,
    DifficultyLevel.ADVANCED: 5,
}


class SessionInitError(Exception):
    """Raised when a session cannot start, e.g. without a player profile."""


class SessionNotFoundError(Exception):
    """Raised for an unknown or expired session id."""


class SessionClosedError(Exception):
    """Raised when a completed or abandoned session receives a turn."""


@dataclass
class TrainingSession:
    """Mutable container for one session; the context inside it is immutable."""

    session_id: str
    scenario: ScenarioConfig
    profile: PlayerProfile
    menu: MenuSafetyIndex
    greeting: str
    context: ConversationContext
    turns: list[ConversationTurn] = field(default_factory=list)
    status: SessionStatus = SessionStatus.IN_PROGRESS
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    assessment: Optional[AssessmentResult] = None
    feedback: Optional[FeedbackResult] = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def min_turns(self) -> int:
        return self.scenario.min_turns or _DEFAULT_MIN_TURNS[self.scenario.level]


@dataclass
class TurnOutcome:
    turn: ConversationTurn
    context: ConversationContext
    should_end: bool


def assess_turn(
    user_input: str, detected_allergies: list[str], turn_number: int
) -> TurnAssessment:
    """Quick per-turn ratings stored with the transcript."""
    mentioned = bool(detected_allergies)
    return TurnAssessment(
        allergy_mention_score=10 if mentioned else 0,
        clarity_score=8 if len(user_input.strip()) > 10 else 5,
        proactiveness_score=10 if mentioned and turn_number <= 2 else 0,
        mentioned_allergies=list(detected_allergies),
        asked_questions="?" in user_input,
    )


def _merge(first: list[str], second: list[str]) -> list[str]:
    merged: list[str] = []
    for value in [*first, *second]:
        if value.lower() not in (m.lower() for m in merged):
            merged.append(value)
    return merged


class TrainingSessionManager:
    """Owns active sessions and drives them turn by turn."""

    def __init__(
        self,
        loader: ScenarioLoader,
        recorder: Optional[SessionRecorder] = None,
        *,
        use_semantic_classifier: Optional[bool] = None,
        ttl_seconds: Optional[int] = None,
        max_sessions: Optional[int] = None,
    ) -> None:
        self.loader = loader
        self._recorder = recorder
        self._use_semantic = (
            settings.use_semantic_classifier
            if use_semantic_classifier is None
            else use_semantic_classifier
        )
        self._sessions: TTLCache = TTLCache(
            maxsize=max_sessions or settings.max_active_sessions,
            ttl=ttl_seconds or settings.session_ttl_seconds,
        )
        self._background: set[asyncio.Task] = set()

    # ── Lifecycle ──────────────────────────────────────────────────────────────

    async def start_session(
        self, scenario_id: str, profile: Optional[PlayerProfile]
    ) -> TrainingSession:
        """Create a session. ScenarioNotFoundError propagates for unknown scenarios."""
        if profile is None:
            raise SessionInitError("A player profile is required to start a session")

        scenario = await self.loader.get_scenario(scenario_id)
        menu = await self.loader.load_menu(scenario)

        session_id = uuid.uuid4().hex
        greeting = greeting_for(scenario, seed=len(self._sessions))
        session = TrainingSession(
            session_id=session_id,
            scenario=scenario,
            profile=profile,
            menu=menu,
            greeting=greeting,
            context=ConversationContext(
                messages=[ChatMessage(role="assistant", content=greeting)]
            ),
        )
        self._sessions[session_id] = session
        logger.info(
            "Started session %s (scenario=%s, level=%s)",
            session_id,
            scenario.id,
            scenario.level.value,
        )
        return session

    def get_session(self, session_id: str) -> TrainingSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session '{session_id}' not found or expired")
        return session

    async def process_turn(self, session_id: str, utterance: str) -> TurnOutcome:
        """Classify, reply, update context and record the turn."""
        session = self.get_session(session_id)
        async with session.lock:
            self._ensure_open(session)
            allergies = session.profile.allergies

            intent = await self._classify(session, utterance)
            reply = await self._reply(session, utterance, intent)

            # The session may have been abandoned while the external calls ran
            self._ensure_open(session)

            context = update_context(
                session.context,
                intent,
                utterance,
                reply.text,
                warning_keywords=settings.order_warning_keyword_list,
                safety_phrases=settings.safety_warning_phrase_list,
                menu=session.menu,
                allergies=allergies,
            )
            turn_number = len(session.turns) + 1
            detected = _merge(intent.disclosed_allergens, reply.detected_allergies)
            turn = ConversationTurn(
                turn_number=turn_number,
                user_input=utterance,
                ai_response=reply.text,
                detected_allergies=detected,
                assessment=assess_turn(utterance, detected, turn_number),
            )
            session.context = context
            session.turns.append(turn)
            # Touch the cache entry so an active session does not expire
            self._sessions[session_id] = session

            wants_end = intent.conversation_should_end or should_end_conversation(reply.text)
            should_end = (
                (wants_end and turn_number >= session.min_turns)
                or turn_number >= session.scenario.max_turns
            )
            return TurnOutcome(turn=turn, context=context, should_end=should_end)

    async def finish_session(self, session_id: str) -> SessionReport:
        """Score the session once; later calls return the same report."""
        session = self.get_session(session_id)
        async with session.lock:
            if session.assessment is None:
                if session.status is not SessionStatus.IN_PROGRESS:
                    raise SessionClosedError(
                        f"Session '{session_id}' is {session.status.value} and cannot be scored"
                    )
                self._score(session)
            return self._report(session)

    def abandon_session(self, session_id: str) -> TrainingSession:
        """Stop a session without scoring it. No-op for finished sessions."""
        session = self.get_session(session_id)
        if session.status is SessionStatus.IN_PROGRESS:
            session.status = SessionStatus.ABANDONED
            logger.info("Session %s abandoned after %d turns", session_id, len(session.turns))
        return session

    # ── Steps ──────────────────────────────────────────────────────────────────

    def _ensure_open(self, session: TrainingSession) -> None:
        if session.status is not SessionStatus.IN_PROGRESS:
            raise SessionClosedError(
                f"Session '{session.session_id}' is {session.status.value}"
            )

    async def _classify(self, session: TrainingSession, utterance: str) -> ClassifiedIntent:
        allergies = session.profile.allergies
        if self._use_semantic:
            return await analyze_intent(utterance, allergies, session.context, session.menu)
        return classify(utterance, allergies, session.context, session.menu)

    async def _reply(
        self, session: TrainingSession, utterance: str, intent: ClassifiedIntent
    ) -> WaiterReply:
        try:
            return await generate_reply(
                utterance=utterance,
                context=session.context,
                profile=session.profile,
                scenario=session.scenario,
                menu=session.menu,
                ordered_dish=intent.ordered_dish,
            )
        except Exception as exc:
            logger.error("Waiter reply failed for session %s: %s", session.session_id, exc)
            return WaiterReply(text=ERROR_DIALOGUE, used_fallback=True)

    def _score(self, session: TrainingSession) -> None:
        scenario = session.scenario
        assessment = score_session(
            turns=list(session.turns),
            profile=session.profile,
            context=session.context,
            level=scenario.level,
            menu=session.menu,
            rules=scenario.scoring_rules,
        )
        feedback = build_feedback(assessment, scenario.level)
        session.assessment = assessment.model_copy(
            update={"detailed_feedback": feedback.paragraph}
        )
        session.feedback = feedback
        session.status = SessionStatus.COMPLETED

        if self._recorder is not None:
            task = asyncio.create_task(
                self._recorder.record(
                    session_id=session.session_id,
                    scenario_id=scenario.id,
                    player_name=session.profile.name,
                    status=session.status.value,
                    assessment=session.assessment,
                    turns=list(session.turns),
                    started_at=session.started_at,
                )
            )
            self._background.add(task)
            task.add_done_callback(self._background.discard)

    def _report(self, session: TrainingSession) -> SessionReport:
        return SessionReport(
            session_id=session.session_id,
            scenario_id=session.scenario.id,
            assessment=session.assessment,
            feedback=session.feedback,
            turns=list(session.turns),
        )


@lru_cache(maxsize=1)
def get_session_manager() -> TrainingSessionManager:
    """FastAPI dependency: the process-wide session manager."""
    return TrainingSessionManager(
        loader=ScenarioLoader(settings.scenario_manifest_path),
        recorder=SessionRecorder(AsyncSessionLocal),
    )
