"""
Training session endpoints — start a session, send turns, finish or abandon.
Errors from the session manager map to 404 (unknown), 409 (closed) and 422
(cannot start).
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from safeorder.schemas.assessment import SessionReport
from safeorder.schemas.conversation import (
    StartSessionRequest,
    StartSessionResponse,
    TurnRequest,
    TurnResponse,
)
from safeorder.services.scenario_loader import ScenarioNotFoundError
from safeorder.services.session_manager import (
    SessionClosedError,
    SessionInitError,
    SessionNotFoundError,
    TrainingSessionManager,
    get_session_manager,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("", response_model=StartSessionResponse, status_code=status.HTTP_201_CREATED)
async def start_session(
    body: StartSessionRequest,
    manager: TrainingSessionManager = Depends(get_session_manager),
) -> StartSessionResponse:
    """Start a session for the given scenario and player profile."""
    try:
        session = await manager.start_session(body.scenario_id, body.profile)
    except ScenarioNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except SessionInitError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    return StartSessionResponse(
        session_id=session.session_id,
        scenario_id=session.scenario.id,
        level=session.scenario.level,
        restaurant_name=session.menu.restaurant_name,
        greeting=session.greeting,
    )


@router.post("/{session_id}/turns", response_model=TurnResponse)
async def send_turn(
    session_id: str,
    body: TurnRequest,
    manager: TrainingSessionManager = Depends(get_session_manager),
) -> TurnResponse:
    """Process one user utterance and return the waiter's reply."""
    try:
        outcome = await manager.process_turn(session_id, body.message)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except SessionClosedError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    return TurnResponse(
        session_id=session_id,
        turn_number=outcome.turn.turn_number,
        reply=outcome.turn.ai_response,
        context=outcome.context,
        should_end=outcome.should_end,
    )


@router.post("/{session_id}/finish", response_model=SessionReport)
async def finish_session(
    session_id: str,
    manager: TrainingSessionManager = Depends(get_session_manager),
) -> SessionReport:
    """Score the session and return the assessment with feedback."""
    try:
        return await manager.finish_session(session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except SessionClosedError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


@router.delete("/{session_id}")
async def abandon_session(
    session_id: str,
    manager: TrainingSessionManager = Depends(get_session_manager),
) -> dict:
    """Abandon the session. Abandoned sessions are never scored."""
    try:
        session = manager.abandon_session(session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return {"session_id": session_id, "status": session.status.value}
