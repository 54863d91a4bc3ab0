from __future__ import annotations

from typing import Optional, Union

import structlog

from app.config import get_settings
from app.services.fallback import FallbackGenerator
from app.services.llm import GeminiGenerator
from app.services.supply import FlashcardSupply, QuestionSupply

logger = structlog.get_logger()

_generator: Optional[Union[GeminiGenerator, FallbackGenerator]] = None


def get_generator() -> Union[GeminiGenerator, FallbackGenerator]:
    global _generator
    if _generator is None:
        settings = get_settings()
        if settings.gemini_api_key:
            _generator = GeminiGenerator(
                api_key=settings.gemini_api_key,
                api_url=settings.gemini_api_url,
                timeout=settings.generation_timeout,
            )
        else:
            logger.warning("gemini_not_configured", detail="serving fallback content only")
            _generator = FallbackGenerator()
    return _generator


async def close_generator() -> None:
    global _generator
    if _generator is not None:
        await _generator.aclose()
        _generator = None


def get_question_supply() -> QuestionSupply:
    return QuestionSupply(get_generator(), max_attempts=get_settings().max_question_attempts)


def get_flashcard_supply() -> FlashcardSupply:
    return FlashcardSupply(get_generator())
