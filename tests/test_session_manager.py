import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from safeorder.schemas.conversation import SessionStatus
from safeorder.services.scenario_loader import ScenarioNotFoundError
from safeorder.services.session_manager import (
    SessionClosedError,
    SessionInitError,
    SessionNotFoundError,
    TrainingSessionManager,
    assess_turn,
)


async def test_start_session_greets_with_scenario_dialogue(manager, peanut_profile):
    session = await manager.start_session("cafe_first_order", peanut_profile)
    assert session.greeting.startswith("Hi there, welcome to The Golden Fork!")
    assert session.context.messages[0].role == "assistant"
    assert session.status is SessionStatus.IN_PROGRESS
    assert manager.get_session(session.session_id) is session


async def test_start_session_requires_profile(manager):
    with pytest.raises(SessionInitError):
        await manager.start_session("cafe_first_order", None)


async def test_start_session_unknown_scenario(manager, peanut_profile):
    with pytest.raises(ScenarioNotFoundError):
        await manager.start_session("nope", peanut_profile)


async def test_unknown_session(manager):
    with pytest.raises(SessionNotFoundError):
        await manager.process_turn("missing", "Hello")


async def test_safe_conversation_passes(manager, peanut_profile):
    session = await manager.start_session("cafe_first_order", peanut_profile)
    sid = session.session_id

    first = await manager.process_turn(sid, "I'm allergic to peanuts")
    assert first.turn.turn_number == 1
    assert first.context.allergies_disclosed
    assert first.turn.detected_allergies == ["peanuts"]

    second = await manager.process_turn(sid, "I'll have the Tomato & Basil Soup please")
    assert second.context.selected_dish == "Tomato & Basil Soup"
    assert second.context.confirmed_dish

    report = await manager.finish_session(sid)
    assert report.assessment.total_score == 90
    assert report.assessment.passed
    assert report.assessment.detailed_feedback == report.feedback.paragraph
    assert [t.turn_number for t in report.turns] == [1, 2]
    assert session.status is SessionStatus.COMPLETED


async def test_unsafe_order_without_disclosure_fails(manager, fish_profile):
    session = await manager.start_session("cafe_first_order", fish_profile)
    await manager.process_turn(session.session_id, "I'll have the Fish & Chips")
    report = await manager.finish_session(session.session_id)
    assert report.assessment.critical_failure
    assert report.assessment.total_score == 0


async def test_warning_and_reorder_flow(manager, fish_profile):
    session = await manager.start_session("cafe_first_order", fish_profile)
    sid = session.session_id
    await manager.process_turn(sid, "I'm allergic to fish")
    warned = await manager.process_turn(sid, "I'll have the Fish & Chips")
    assert warned.context.safety_warning_given
    assert "contains fish" in warned.turn.ai_response

    await manager.process_turn(sid, "I'll have the Tomato & Basil Soup instead")
    report = await manager.finish_session(sid)
    assert report.assessment.detailed_scores["order_decision_after_warning"] == 30
    assert report.assessment.total_score == 100


async def test_should_end_respects_minimum_turns(manager, peanut_profile):
    session = await manager.start_session("cafe_first_order", peanut_profile)
    sid = session.session_id
    early = await manager.process_turn(sid, "That's all, goodbye")
    assert early.should_end is False
    await manager.process_turn(sid, "Hello")
    late = await manager.process_turn(sid, "That's all, goodbye")
    assert late.should_end is True


async def test_finish_is_idempotent_and_records_once(loader, peanut_profile):
    recorder = MagicMock()
    recorder.record = AsyncMock(return_value=True)
    manager = TrainingSessionManager(loader, recorder, use_semantic_classifier=False)

    session = await manager.start_session("cafe_first_order", peanut_profile)
    await manager.process_turn(session.session_id, "I'm allergic to peanuts")
    first = await manager.finish_session(session.session_id)
    second = await manager.finish_session(session.session_id)
    await asyncio.sleep(0)

    assert first.assessment == second.assessment
    recorder.record.assert_awaited_once()
    assert recorder.record.await_args.kwargs["status"] == "completed"


async def test_finished_session_rejects_turns(manager, peanut_profile):
    session = await manager.start_session("cafe_first_order", peanut_profile)
    await manager.finish_session(session.session_id)
    with pytest.raises(SessionClosedError):
        await manager.process_turn(session.session_id, "Hello")


async def test_abandoned_session_is_never_scored(loader, peanut_profile):
    recorder = MagicMock()
    recorder.record = AsyncMock(return_value=True)
    manager = TrainingSessionManager(loader, recorder, use_semantic_classifier=False)

    session = await manager.start_session("busy_bistro", peanut_profile)
    await manager.process_turn(session.session_id, "Hello")
    manager.abandon_session(session.session_id)

    assert session.status is SessionStatus.ABANDONED
    with pytest.raises(SessionClosedError):
        await manager.process_turn(session.session_id, "I'll have the soup")
    with pytest.raises(SessionClosedError):
        await manager.finish_session(session.session_id)
    assert session.assessment is None
    recorder.record.assert_not_called()


async def test_semantic_path_falls_back_offline(loader, fish_profile):
    manager = TrainingSessionManager(loader, use_semantic_classifier=True)
    session = await manager.start_session("harbour_tasting", fish_profile)
    outcome = await manager.process_turn(session.session_id, "I'm allergic to fish")
    assert outcome.context.disclosed_allergies == ["fish"]


def test_assess_turn():
    early = assess_turn("I'm allergic to fish, is the curry safe?", ["fish"], 1)
    assert early.allergy_mention_score == 10
    assert early.proactiveness_score == 10
    assert early.asked_questions is True

    late = assess_turn("ok", [], 5)
    assert late.allergy_mention_score == 0
    assert late.clarity_score == 5
    assert late.asked_questions is False
