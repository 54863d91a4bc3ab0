from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from app.config import get_settings
from app.middleware.rate_limit import ai_generation_limit
from app.models import Subject
from app.providers import get_flashcard_supply
from app.services.errors import SessionError
from app.services.flashcard_session import FlashcardSession
from app.services.sessions import SessionRegistry, get_registry
from app.services.supply import FlashcardSupply


router = APIRouter(prefix="/flashcards", tags=["flashcards"])


def _get_deck(session_id: str, registry: SessionRegistry) -> FlashcardSession:
    deck = registry.get_deck(session_id)
    if not deck:
        raise HTTPException(status_code=404, detail="Flashcard session not found")
    return deck


@router.get("/decks")
def list_decks():
    deck_size = get_settings().flashcard_deck_size
    return [{"subject": s.value, "cards": deck_size} for s in Subject]


@router.post("/start")
@ai_generation_limit()
async def start_deck(
    request: Request,
    subject: Subject,
    deck_size: Optional[int] = Query(None, ge=1),
    registry: SessionRegistry = Depends(get_registry),
    supply: FlashcardSupply = Depends(get_flashcard_supply),
):
    settings = get_settings()
    deck = FlashcardSession(
        supply,
        batch_size=settings.flashcard_batch_size,
        deck_size=settings.flashcard_deck_size,
    )
    registry.add_deck(deck)
    await deck.start(subject, deck_size=deck_size)
    return deck.to_dict()


@router.get("/{session_id}")
def get_deck(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    return _get_deck(session_id, registry).to_dict()


@router.post("/{session_id}/flip")
def flip_card(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    deck = _get_deck(session_id, registry)
    try:
        deck.flip()
    except SessionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return deck.to_dict()


@router.post("/{session_id}/next")
async def next_card(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    deck = _get_deck(session_id, registry)
    try:
        await deck.advance()
    except SessionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return deck.to_dict()


@router.post("/{session_id}/previous")
def previous_card(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    deck = _get_deck(session_id, registry)
    try:
        deck.retreat()
    except SessionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return deck.to_dict()


@router.post("/{session_id}/reset")
def reset_deck(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    deck = _get_deck(session_id, registry)
    deck.reset()
    registry.remove_deck(session_id)
    return deck.to_dict()
