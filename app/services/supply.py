from __future__ import annotations

import random
import uuid
from typing import Callable, List, Optional, Set

import structlog

from app.models import Flashcard, Question, Subject
from app.services.fallback import fallback
from app.services.llm import GenerationFailure
from app.services.monitoring import FALLBACK_FLASHCARDS_SERVED, PLACEHOLDER_QUESTIONS
from app.services.picker import UsedContent, pick_unique

logger = structlog.get_logger()

MAX_QUESTION_ATTEMPTS = 5


def placeholder_question(subject: Subject, non_calculator: bool = False) -> Question:
    return Question(
        id=uuid.uuid4().hex[:12],
        subject=subject,
        is_non_calculator=subject == Subject.MATH and non_calculator,
        question="What is 2 + 2?",
        options=["3", "4", "5", "6"],
        correct_answer="4",
        explanation="Basic addition: 2 + 2 = 4",
    )


class QuestionSupply:
    """Produces one fresh question at a time; never raises a generation failure."""

    def __init__(self, generator, max_attempts: int = MAX_QUESTION_ATTEMPTS) -> None:
        self.generator = generator
        self.max_attempts = max_attempts

    async def next_question(
        self,
        subject: Subject,
        non_calculator: bool,
        used_ids: Set[str],
        on_attempt: Optional[Callable[[int], None]] = None,
    ) -> Question:
        question: Optional[Question] = None
        for attempt in range(1, self.max_attempts + 1):
            if on_attempt:
                on_attempt(attempt)
            try:
                generated = await self.generator.generate_question(subject, non_calculator)
            except GenerationFailure as e:
                logger.warning(
                    "question_generation_failed",
                    subject=subject.value,
                    attempt=attempt,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                continue
            if generated.id in used_ids:
                logger.info("duplicate_question_discarded", subject=subject.value, attempt=attempt)
                continue
            question = generated
            break

        if question is None:
            logger.warning("placeholder_question_used", subject=subject.value, attempts=self.max_attempts)
            PLACEHOLDER_QUESTIONS.labels(subject=subject.value).inc()
            question = placeholder_question(subject, non_calculator)

        used_ids.add(question.id)
        return question


class FlashcardSupply:
    """Generator first, fallback bank on failure, deck-scoped text dedup on top."""

    def __init__(self, generator, rng: Optional[random.Random] = None) -> None:
        self.generator = generator
        self.rng = rng

    async def _pool(self, subject: Subject, count: int) -> List[Flashcard]:
        try:
            cards = await self.generator.generate_flashcards(subject, count)
            if cards:
                return cards
            logger.warning("flashcard_generation_empty", subject=subject.value)
        except GenerationFailure as e:
            logger.warning(
                "flashcard_generation_failed",
                subject=subject.value,
                error_type=type(e).__name__,
                error=str(e),
            )
        FALLBACK_FLASHCARDS_SERVED.labels(subject=subject.value).inc()
        return fallback(subject, "flashcard")

    async def next_batch(self, subject: Subject, count: int, used: UsedContent) -> List[Flashcard]:
        pool = await self._pool(subject, count)
        return [pick_unique(pool, used, rng=self.rng) for _ in range(count)]
