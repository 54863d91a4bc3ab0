"""
In-memory registry of live practice sessions and the latest score per subject
"""
import asyncio
import time
from typing import Awaitable, Callable, Dict, List, Optional

import structlog

from app.config import get_settings
from app.models import Score, Subject
from app.services.flashcard_session import FlashcardSession
from app.services.test_session import TestSession

logger = structlog.get_logger()


class SessionRegistry:
    """Finished tests are kept for ``retention`` seconds so the summary can be
    read, then dropped. Decks untouched for ``deck_idle`` seconds are dropped."""

    def __init__(self, retention: float = 600.0, deck_idle: float = 3600.0):
        self.retention = retention
        self.deck_idle = deck_idle
        self.tests: Dict[str, TestSession] = {}
        self.decks: Dict[str, FlashcardSession] = {}
        self._clocks: Dict[str, asyncio.Task] = {}

    def add_test(self, session: TestSession) -> TestSession:
        self.prune()
        self.tests[session.id] = session
        return session

    def get_test(self, session_id: str) -> Optional[TestSession]:
        return self.tests.get(session_id)

    def remove_test(self, session_id: str) -> bool:
        """Drop a test session and stop its clock"""
        task = self._clocks.pop(session_id, None)
        if task is not None:
            task.cancel()
        return self.tests.pop(session_id, None) is not None

    def live_tests(self) -> int:
        return sum(1 for s in self.tests.values() if not s.is_finished)

    def start_clock(
        self,
        session: TestSession,
        on_tick: Optional[Callable[[TestSession], Awaitable[None]]] = None,
        interval: float = 1.0,
    ) -> asyncio.Task:
        """Run the session's one-second clock in the background"""
        task = asyncio.create_task(session.run_clock(interval=interval, on_tick=on_tick))
        self._clocks[session.id] = task
        task.add_done_callback(lambda t, s=session: self._clock_done(s, t))
        return task

    def _clock_done(self, session: TestSession, task: asyncio.Task) -> None:
        if self._clocks.get(session.id) is task:
            self._clocks.pop(session.id, None)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("session_clock_failed", session_id=session.id, error=str(error))
            return
        if self.tests.get(session.id) is session:
            asyncio.get_running_loop().call_later(self.retention, self._evict_test, session)

    def _evict_test(self, session: TestSession) -> None:
        if self.tests.get(session.id) is session:
            self.remove_test(session.id)
            logger.info("finished_session_evicted", session_id=session.id, state=session.to_dict()["state"])

    def add_deck(self, deck: FlashcardSession) -> FlashcardSession:
        self.prune()
        self.decks[deck.id] = deck
        return deck

    def get_deck(self, session_id: str) -> Optional[FlashcardSession]:
        deck = self.decks.get(session_id)
        if deck is not None:
            deck.last_active = time.monotonic()
        return deck

    def remove_deck(self, session_id: str) -> bool:
        return self.decks.pop(session_id, None) is not None

    def prune(self, now: Optional[float] = None) -> int:
        """Drop expired finished tests and idle decks; returns how many went"""
        now = time.monotonic() if now is None else now
        stale_tests = [
            sid for sid, s in self.tests.items()
            if s.finished_at is not None and now - s.finished_at >= self.retention
        ]
        stale_decks = [sid for sid, d in self.decks.items() if now - d.last_active >= self.deck_idle]
        for sid in stale_tests:
            self.remove_test(sid)
        for sid in stale_decks:
            self.remove_deck(sid)
        if stale_tests or stale_decks:
            logger.info("sessions_pruned", tests=len(stale_tests), decks=len(stale_decks))
        return len(stale_tests) + len(stale_decks)

    async def shutdown(self) -> None:
        tasks = list(self._clocks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._clocks.clear()


class ScoreBoard:
    """Latest score per subject; a new score replaces the previous one"""

    def __init__(self):
        self._scores: Dict[Subject, Score] = {}

    def record(self, score: Score) -> None:
        self._scores[score.subject] = score
        logger.info("score_recorded", subject=score.subject.value, score=score.score, status=score.status.value)

    def get(self, subject: Subject) -> Optional[Score]:
        return self._scores.get(subject)

    def all(self) -> List[Score]:
        return [self._scores[s] for s in Subject if s in self._scores]

    def clear(self) -> None:
        self._scores.clear()


# Global instances
_settings = get_settings()
registry = SessionRegistry(retention=_settings.session_retention_seconds, deck_idle=_settings.deck_idle_seconds)
scoreboard = ScoreBoard()


def get_registry() -> SessionRegistry:
    return registry


def get_scoreboard() -> ScoreBoard:
    return scoreboard
