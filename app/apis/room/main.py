from __future__ import annotations

from typing import Annotated, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.core.config import settings
from app.apis.room.schemas import (
    CodeEditRequest,
    LanguageRequest,
    LeaveResponse,
    RunResponse,
    SessionStateResponse,
    SubmitResponse,
)
from app.modules.room.errors import (
    ConnectivityError,
    GuardViolation,
    RoomError,
    SessionClosed,
    SessionNotReady,
    UnsupportedLanguage,
)
from app.modules.room.session import RoomSession, SessionManager


router = APIRouter()

SESSION_PATH = f"/{settings.app.version}/rooms/{{room_id}}/sessions/{{username}}"


def get_manager(request: Request) -> SessionManager:
    return request.app.state.sessions


Manager = Annotated[SessionManager, Depends(get_manager)]


def get_session(room_id: str, username: str, manager: Manager) -> RoomSession:
    session = manager.get(room_id, username)
    if not session or session.closed:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


Session = Annotated[RoomSession, Depends(get_session)]


def _raise_http(e: RoomError) -> NoReturn:
    if isinstance(e, ConnectivityError):
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)
    if isinstance(e, UnsupportedLanguage):
        raise HTTPException(status_code=422, detail=e.message)
    if isinstance(e, SessionClosed):
        raise HTTPException(status_code=404, detail=e.message)
    if isinstance(e, (GuardViolation, SessionNotReady)):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    raise HTTPException(status_code=400, detail=e.message)


@router.post(SESSION_PATH, response_model=SessionStateResponse, tags=["room"])
async def join_room(room_id: str, username: str, manager: Manager) -> SessionStateResponse:
    try:
        session = await manager.open(room_id, username)
    except RoomError as e:
        _raise_http(e)
    return SessionStateResponse(state=session.snapshot())


@router.get(SESSION_PATH, response_model=SessionStateResponse, tags=["room"])
async def get_state(session: Session) -> SessionStateResponse:
    return SessionStateResponse(state=session.snapshot())


@router.delete(SESSION_PATH, response_model=LeaveResponse, tags=["room"])
async def leave_room(room_id: str, username: str, manager: Manager) -> LeaveResponse:
    closed = await manager.close(room_id, username)
    if not closed:
        raise HTTPException(status_code=404, detail="Session not found")
    return LeaveResponse(ok=True)


@router.post(f"{SESSION_PATH}/next", response_model=SessionStateResponse, tags=["room"])
async def next_question(session: Session) -> SessionStateResponse:
    try:
        session.handle_next()
    except RoomError as e:
        _raise_http(e)
    return SessionStateResponse(state=session.snapshot())


@router.post(f"{SESSION_PATH}/previous", response_model=SessionStateResponse, tags=["room"])
async def previous_question(session: Session) -> SessionStateResponse:
    try:
        session.handle_previous()
    except RoomError as e:
        _raise_http(e)
    return SessionStateResponse(state=session.snapshot())


@router.put(f"{SESSION_PATH}/code", response_model=SessionStateResponse, tags=["room"])
async def edit_code(req: CodeEditRequest, session: Session) -> SessionStateResponse:
    try:
        session.edit_code(req.code)
    except RoomError as e:
        _raise_http(e)
    return SessionStateResponse(state=session.snapshot())


@router.post(f"{SESSION_PATH}/activity", status_code=204, tags=["room"])
async def record_activity(session: Session) -> None:
    try:
        session.record_activity()
    except RoomError as e:
        _raise_http(e)


@router.put(f"{SESSION_PATH}/language", response_model=SessionStateResponse, tags=["room"])
async def select_language(req: LanguageRequest, session: Session) -> SessionStateResponse:
    try:
        session.select_language(req.language)
    except RoomError as e:
        _raise_http(e)
    return SessionStateResponse(state=session.snapshot())


@router.post(f"{SESSION_PATH}/run", response_model=RunResponse, tags=["room"])
async def run_code(session: Session) -> RunResponse:
    try:
        result = await session.run_code()
    except RoomError as e:
        _raise_http(e)
    return RunResponse(result=result, state=session.snapshot())


@router.post(f"{SESSION_PATH}/submit", response_model=SubmitResponse, tags=["room"])
async def submit_code(session: Session) -> SubmitResponse:
    try:
        receipt = await session.submit_code()
    except RoomError as e:
        _raise_http(e)
    return SubmitResponse(receipt=receipt, state=session.snapshot())
