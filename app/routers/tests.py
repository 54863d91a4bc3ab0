from fastapi import APIRouter, Depends, HTTPException, Request

from app.middleware.rate_limit import ai_generation_limit
from app.models import TEST_CONFIG, Subject
from app.notifications import notify_clock
from app.providers import get_question_supply
from app.services.errors import InvalidAnswer, SessionError
from app.services.sessions import SessionRegistry, ScoreBoard, get_registry, get_scoreboard
from app.services.supply import QuestionSupply
from app.services.test_session import TestSession


router = APIRouter(prefix="/tests", tags=["tests"])


def _get_test(session_id: str, registry: SessionRegistry) -> TestSession:
    session = registry.get_test(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Test session not found")
    return session


@router.get("/configs")
def list_configs():
    return [
        {**cfg.model_dump(mode="json"), "time_limit_seconds": cfg.time_limit_seconds}
        for cfg in TEST_CONFIG.values()
    ]


@router.post("/start")
@ai_generation_limit()
async def start_test(
    request: Request,
    subject: Subject,
    registry: SessionRegistry = Depends(get_registry),
    scoreboard: ScoreBoard = Depends(get_scoreboard),
    supply: QuestionSupply = Depends(get_question_supply),
):
    session = TestSession(subject, TEST_CONFIG[subject], supply, on_complete=scoreboard.record)
    registry.add_test(session)
    registry.start_clock(session, on_tick=notify_clock)
    await session.start()
    return session.to_dict()


@router.get("/{session_id}")
def get_test(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    return _get_test(session_id, registry).to_dict()


@router.post("/{session_id}/select")
def select_answer(session_id: str, option: str, registry: SessionRegistry = Depends(get_registry)):
    session = _get_test(session_id, registry)
    try:
        session.select(option)
    except InvalidAnswer as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SessionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return session.to_dict()


@router.post("/{session_id}/check")
def check_answer(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    session = _get_test(session_id, registry)
    try:
        session.check()
    except SessionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return session.to_dict()


@router.post("/{session_id}/skip")
async def skip_question(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    session = _get_test(session_id, registry)
    try:
        await session.skip()
    except SessionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return session.to_dict()


@router.post("/{session_id}/next")
async def next_question(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    session = _get_test(session_id, registry)
    try:
        await session.advance()
    except SessionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return session.to_dict()


@router.get("/{session_id}/summary")
def test_summary(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    session = _get_test(session_id, registry)
    try:
        answered = session.review()
    except SessionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"score": session.score.model_dump(mode="json"), "answered": answered}


@router.post("/{session_id}/exit")
def exit_test(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    session = _get_test(session_id, registry)
    session.exit()
    registry.remove_test(session_id)
    return {"id": session_id, "state": session.to_dict()["state"]}
