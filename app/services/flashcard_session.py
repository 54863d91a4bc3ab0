from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from typing import List, Optional, Union

import structlog

from app.models import Flashcard, Subject
from app.services.errors import InvalidTransition
from app.services.picker import UsedContent

logger = structlog.get_logger()

BATCH_SIZE = 5
DECK_SIZE = 100


@dataclass(frozen=True)
class Selecting:
    pass


@dataclass(frozen=True, eq=False)
class LoadingBatch:
    pass


@dataclass(frozen=True)
class Viewing:
    index: int
    flipped: bool = False


@dataclass(frozen=True)
class DeckCompleted:
    pass


DeckState = Union[Selecting, LoadingBatch, Viewing, DeckCompleted]


def deck_state_name(state: DeckState) -> str:
    if isinstance(state, Selecting):
        return "selecting"
    if isinstance(state, LoadingBatch):
        return "loading"
    if isinstance(state, Viewing):
        return "back" if state.flipped else "front"
    if isinstance(state, DeckCompleted):
        return "completed"
    raise TypeError(f"unknown deck state: {state!r}")


class FlashcardSession:
    def __init__(
        self,
        supply,
        batch_size: int = BATCH_SIZE,
        deck_size: int = DECK_SIZE,
        session_id: Optional[str] = None,
    ) -> None:
        self.id = session_id or uuid.uuid4().hex
        self.supply = supply
        self.batch_size = batch_size
        self.deck_size = deck_size
        self.subject: Optional[Subject] = None
        self.cards: List[Flashcard] = []
        self.used = UsedContent()
        self.state: DeckState = Selecting()
        self.last_active = time.monotonic()

    @property
    def current_card(self) -> Optional[Flashcard]:
        if isinstance(self.state, Viewing):
            return self.cards[self.state.index]
        return None

    async def start(self, subject: Subject, deck_size: Optional[int] = None) -> None:
        if not isinstance(self.state, Selecting):
            raise InvalidTransition("reset the deck before choosing another subject")
        self.subject = subject
        if deck_size is not None:
            self.deck_size = deck_size
        self.cards = []
        self.used = UsedContent()
        if not await self._load_batch():
            return
        self.state = Viewing(index=0)
        logger.info("deck_started", session_id=self.id, subject=subject.value, deck_size=self.deck_size)

    async def _load_batch(self) -> bool:
        """Fetch the next batch; False if the deck was reset while it loaded."""
        loading = LoadingBatch()
        self.state = loading
        batch = await self.supply.next_batch(self.subject, self.batch_size, self.used)
        if self.state is not loading:
            logger.info("late_batch_discarded", session_id=self.id, state=deck_state_name(self.state))
            return False
        self.cards.extend(batch)
        return True

    def flip(self) -> None:
        state = self.state
        if not isinstance(state, Viewing):
            raise InvalidTransition(f"cannot flip while {deck_state_name(state)}")
        self.state = Viewing(index=state.index, flipped=not state.flipped)

    async def advance(self) -> None:
        state = self.state
        if not isinstance(state, Viewing):
            raise InvalidTransition(f"cannot advance while {deck_state_name(state)}")
        if state.index < min(len(self.cards), self.deck_size) - 1:
            self.state = Viewing(index=state.index + 1)
        elif state.index < self.deck_size - 1:
            if await self._load_batch():
                self.state = Viewing(index=state.index + 1)
        else:
            self.state = DeckCompleted()
            logger.info("deck_completed", session_id=self.id, subject=self.subject.value, shown=len(self.cards))

    def retreat(self) -> None:
        state = self.state
        if not isinstance(state, Viewing):
            raise InvalidTransition(f"cannot go back while {deck_state_name(state)}")
        if state.index > 0:
            self.state = Viewing(index=state.index - 1)

    def reset(self) -> None:
        self.subject = None
        self.cards = []
        self.used = UsedContent()
        self.state = Selecting()

    def to_dict(self) -> dict:
        state = self.state
        card = self.current_card
        view = {
            "id": self.id,
            "subject": self.subject.value if self.subject else None,
            "state": deck_state_name(state),
            "index": state.index if isinstance(state, Viewing) else None,
            "loaded": len(self.cards),
            "deck_size": self.deck_size,
            "card": None,
        }
        if card is not None:
            view["card"] = {"question": card.question}
            if state.flipped:
                view["card"]["answer"] = card.answer
        return view
