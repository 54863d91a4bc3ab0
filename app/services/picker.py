from __future__ import annotations

import random
from typing import Callable, Iterable, Optional, Sequence, Set, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")


def _question_text(item) -> str:
    return item.question


class UsedContent:
    """Keys of content already shown within one session or deck."""

    def __init__(self, keys: Optional[Iterable[str]] = None) -> None:
        self._keys: Set[str] = set(keys or ())

    def __contains__(self, key: str) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def add(self, key: str) -> None:
        self._keys.add(key)

    def clear(self) -> None:
        self._keys.clear()


def pick_unique(
    pool: Sequence[T],
    used: UsedContent,
    key: Callable[[T], str] = _question_text,
    rng: Optional[random.Random] = None,
) -> T:
    """Pick a random item from pool whose key has not been used yet.

    When every item has been used the record is cleared and any item of the
    pool may come back; that pick is not recorded.
    """
    if not pool:
        raise ValueError("cannot pick from an empty pool")
    rng = rng or random
    candidates = [item for item in pool if key(item) not in used]
    if not candidates:
        logger.info("content_pool_exhausted", pool_size=len(pool))
        used.clear()
        return rng.choice(pool)
    selected = rng.choice(candidates)
    used.add(key(selected))
    return selected
