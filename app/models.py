from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import model_validator
from sqlmodel import Field, SQLModel


class Subject(str, Enum):
    MATH = "Mathematical Reasoning"
    SCIENCE = "Science"
    LANGUAGE_ARTS = "Language Arts"
    SOCIAL_STUDIES = "Social Studies"


class ScoreStatus(str, Enum):
    PASS = "Pass"
    NOT_PASSED = "Not Passed"


class TestConfig(SQLModel):
    subject: Subject
    total_questions: int
    time_limit: int = Field(description="minutes")
    passing_score: int = 145
    with_calculator: bool = False

    @property
    def time_limit_seconds(self) -> int:
        return self.time_limit * 60


TEST_CONFIG: Dict[Subject, TestConfig] = {
    Subject.MATH: TestConfig(
        subject=Subject.MATH, total_questions=45, time_limit=115, passing_score=145, with_calculator=True
    ),
    Subject.SCIENCE: TestConfig(subject=Subject.SCIENCE, total_questions=40, time_limit=90, passing_score=145),
    Subject.LANGUAGE_ARTS: TestConfig(
        subject=Subject.LANGUAGE_ARTS, total_questions=53, time_limit=150, passing_score=145
    ),
    Subject.SOCIAL_STUDIES: TestConfig(
        subject=Subject.SOCIAL_STUDIES, total_questions=35, time_limit=70, passing_score=145
    ),
}


class Question(SQLModel):
    id: str
    subject: Subject
    is_non_calculator: bool = False
    question: str
    options: List[str] = Field(description="display order")
    correct_answer: str
    explanation: str

    @model_validator(mode="after")
    def check_correct_answer(self) -> "Question":
        if self.correct_answer not in self.options:
            raise ValueError("correct_answer must be one of the options")
        return self

    def public_dict(self) -> dict:
        """Question as shown while unanswered (no answer or explanation)."""
        return {
            "id": self.id,
            "subject": self.subject.value,
            "is_non_calculator": self.is_non_calculator,
            "question": self.question,
            "options": list(self.options),
        }


class AnsweredQuestion(SQLModel):
    question: Question
    user_answer: Optional[str] = None
    is_correct: bool = False


class Score(SQLModel):
    subject: Subject
    score: int = Field(ge=100, le=200)
    status: ScoreStatus
    questions_correct: int
    total_questions: int = Field(description="questions attempted")
    time_spent: int = Field(description="seconds")


class Flashcard(SQLModel):
    question: str
    answer: str
