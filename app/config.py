from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


DEFAULT_GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models/gemini-pro:generateContent"


@dataclass(frozen=True)
class Settings:
    gemini_api_key: Optional[str]
    gemini_api_url: str = DEFAULT_GEMINI_API_URL
    generation_timeout: float = 30.0
    max_question_attempts: int = 5
    flashcard_batch_size: int = 5
    flashcard_deck_size: int = 100
    rate_limit_enabled: bool = True
    session_retention_seconds: float = 600.0
    deck_idle_seconds: float = 3600.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # The API key is only ever taken from the environment
    return Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
        gemini_api_url=os.getenv("GEMINI_API_URL", DEFAULT_GEMINI_API_URL),
        generation_timeout=float(os.getenv("GENERATION_TIMEOUT", "30")),
        max_question_attempts=int(os.getenv("MAX_QUESTION_ATTEMPTS", "5")),
        flashcard_batch_size=int(os.getenv("FLASHCARD_BATCH_SIZE", "5")),
        flashcard_deck_size=int(os.getenv("FLASHCARD_DECK_SIZE", "100")),
        rate_limit_enabled=os.getenv("RATE_LIMIT_ENABLED", "1") not in ("0", "false", "False"),
        session_retention_seconds=float(os.getenv("SESSION_RETENTION_SECONDS", "600")),
        deck_idle_seconds=float(os.getenv("DECK_IDLE_SECONDS", "3600")),
    )
