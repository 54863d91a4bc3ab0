from __future__ import annotations

import json
import uuid
from typing import Any, List, Optional

import httpx
import structlog

from app.models import Flashcard, Question, Subject
from app.services.logging import log_performance
from app.services.monitoring import AI_GENERATION_REQUESTS

logger = structlog.get_logger()


class GenerationFailure(Exception):
    """Content could not be produced by the generator."""


class TransportFailure(GenerationFailure):
    def __init__(self, status_code: int, body: str):
        super().__init__(f"generation request failed: status={status_code}, body={body[:200]}")
        self.status_code = status_code
        self.body = body


class EmptyGenerationFailure(GenerationFailure):
    pass


class MalformedContentFailure(GenerationFailure):
    pass


def _clean_json_like(content: str) -> str:
    # Strip common code fences ```json ... ``` or ``` ... ```
    text = content.strip()
    if text.startswith("```"):
        first_nl = text.find("\n")
        text = text[first_nl + 1 :] if first_nl != -1 else text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def _new_question_id() -> str:
    return uuid.uuid4().hex[:12]


def build_question_prompt(subject: Subject, non_calculator: bool = False) -> str:
    section = "non-calculator section " if subject == Subject.MATH and non_calculator else ""
    return (
        f"Generate a challenging GED {subject.value} {section}practice question. "
        "The question should be at a high difficulty level, requiring critical thinking "
        "and advanced knowledge of the subject. Return only a JSON object with the following format:\n"
        "{\n"
        '  "question": "the challenging question text",\n'
        '  "options": ["option1", "option2", "option3", "option4"],\n'
        '  "correctAnswer": "the correct option",\n'
        '  "explanation": "detailed explanation of the answer"\n'
        "}"
    )


def build_flashcard_prompt(subject: Subject, count: int) -> str:
    return (
        f"Generate {count} unique and challenging GED {subject.value} flashcards. "
        "The flashcards should cover advanced concepts and require critical thinking. "
        'Return a JSON array of objects, each with "question" and "answer" fields. '
        "Ensure all questions are distinct and of high difficulty."
    )


def _load_json(text: str) -> Any:
    try:
        return json.loads(_clean_json_like(text))
    except json.JSONDecodeError as e:
        raise MalformedContentFailure(f"payload is not valid JSON: {e}") from e


def parse_question_payload(text: str, subject: Subject, non_calculator: bool = False) -> Question:
    data = _load_json(text)
    if not isinstance(data, dict):
        raise MalformedContentFailure("expected a JSON object for a question")
    question = data.get("question")
    options = data.get("options")
    correct = data.get("correctAnswer")
    explanation = data.get("explanation")
    if not isinstance(question, str) or not question.strip():
        raise MalformedContentFailure("question text missing")
    if not isinstance(options, list) or len(options) < 2 or not all(isinstance(o, str) for o in options):
        raise MalformedContentFailure("options must be a list of at least two strings")
    if not isinstance(correct, str) or correct not in options:
        raise MalformedContentFailure("correctAnswer must be one of the options")
    if not isinstance(explanation, str):
        raise MalformedContentFailure("explanation missing")
    return Question(
        id=_new_question_id(),
        subject=subject,
        is_non_calculator=subject == Subject.MATH and non_calculator,
        question=question.strip(),
        options=options,
        correct_answer=correct,
        explanation=explanation.strip(),
    )


def parse_flashcard_payload(text: str) -> List[Flashcard]:
    data = _load_json(text)
    if not isinstance(data, list) or not data:
        raise MalformedContentFailure("expected a non-empty JSON array of flashcards")
    cards: List[Flashcard] = []
    for item in data:
        if not isinstance(item, dict):
            raise MalformedContentFailure("flashcard entries must be objects")
        q = item.get("question")
        a = item.get("answer")
        if not isinstance(q, str) or not isinstance(a, str) or not q.strip() or not a.strip():
            raise MalformedContentFailure("flashcard entries need question and answer text")
        cards.append(Flashcard(question=q.strip(), answer=a.strip()))
    return cards


class GeminiGenerator:
    """Client for the Gemini generateContent endpoint.

    Each call issues exactly one request; retry policy belongs to the caller.
    """

    def __init__(
        self,
        api_key: Optional[str],
        api_url: str,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key
        self.api_url = api_url
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _generate_text(self, prompt: str) -> str:
        if not self.api_key:
            raise GenerationFailure("GEMINI_API_KEY not set")
        body = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            response = await self.client.post(
                self.api_url,
                params={"key": self.api_key},
                json=body,
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            raise TransportFailure(0, str(e)) from e

        if not response.is_success:
            raise TransportFailure(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as e:
            raise EmptyGenerationFailure("response body is not JSON") from e
        candidates = data.get("candidates") if isinstance(data, dict) else None
        if not candidates:
            raise EmptyGenerationFailure("No content generated")
        try:
            text = candidates[0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise EmptyGenerationFailure("first candidate has no text part") from e
        if not isinstance(text, str) or not text.strip():
            raise EmptyGenerationFailure("first candidate text is empty")
        return text

    @log_performance("generate_question")
    async def generate_question(self, subject: Subject, non_calculator: bool = False) -> Question:
        try:
            text = await self._generate_text(build_question_prompt(subject, non_calculator))
            question = parse_question_payload(text, subject, non_calculator)
        except GenerationFailure:
            AI_GENERATION_REQUESTS.labels(type="question", status="error").inc()
            raise
        AI_GENERATION_REQUESTS.labels(type="question", status="success").inc()
        return question

    @log_performance("generate_flashcards")
    async def generate_flashcards(self, subject: Subject, count: int) -> List[Flashcard]:
        try:
            text = await self._generate_text(build_flashcard_prompt(subject, count))
            cards = parse_flashcard_payload(text)
        except GenerationFailure:
            AI_GENERATION_REQUESTS.labels(type="flashcards", status="error").inc()
            raise
        AI_GENERATION_REQUESTS.labels(type="flashcards", status="success").inc()
        logger.info("flashcards_generated", subject=subject.value, count=len(cards))
        return cards
