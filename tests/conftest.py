"""
Shared fixtures and fakes
"""
from typing import List, Optional

import pytest

from app.models import Flashcard, Question, Subject
from app.services.llm import TransportFailure


def make_question(subject: Subject = Subject.SCIENCE, qid: str = "q1", non_calculator: bool = False) -> Question:
    return Question(
        id=qid,
        subject=subject,
        is_non_calculator=non_calculator,
        question=f"Sample question {qid}?",
        options=["A", "B", "C", "D"],
        correct_answer="B",
        explanation="B is correct.",
    )


class FakeGenerator:
    """Scripted stand-in for the Gemini client.

    Script items are returned (questions) or raised (exceptions) in order;
    once the script runs out fresh questions are produced.
    """

    def __init__(self, script: Optional[list] = None, always_fail: bool = False,
                 flashcards: Optional[List[Flashcard]] = None, fail_flashcards: bool = False):
        self.script = list(script or [])
        self.always_fail = always_fail
        self.flashcards = flashcards
        self.fail_flashcards = fail_flashcards
        self.calls = []
        self.flashcard_calls = []
        self._counter = 0

    async def generate_question(self, subject, non_calculator=False):
        self.calls.append((subject, non_calculator))
        if self.always_fail:
            raise TransportFailure(503, "service unavailable")
        if self.script:
            item = self.script.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        self._counter += 1
        return make_question(subject, f"gen-{self._counter}", non_calculator)

    async def generate_flashcards(self, subject, count):
        self.flashcard_calls.append((subject, count))
        if self.fail_flashcards:
            raise TransportFailure(500, "boom")
        if self.flashcards is not None:
            return list(self.flashcards)
        return [Flashcard(question=f"{subject.value} card {i}", answer=f"answer {i}") for i in range(count)]

    async def aclose(self):
        return None


@pytest.fixture
def fake_generator():
    return FakeGenerator()
