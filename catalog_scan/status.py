"""Transient status messages that fall back to an idle prompt."""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass
from typing import Callable, Optional


class StatusLevel(str, enum.Enum):
    info = "info"
    success = "success"
    warning = "warning"
    error = "error"


@dataclass(frozen=True)
class StatusMessage:
    text: str
    level: StatusLevel
    generation: int
    expires_at: Optional[float] = None

    def to_dict(self) -> dict:
        return {"text": self.text, "level": self.level.value, "generation": self.generation}


class StatusBoard:
    """
    Holds the latest status. Every show() bumps a generation counter; an
    expiry only reverts the board when it belongs to the current generation,
    so an older deadline never clobbers a newer message.
    """

    def __init__(self, idle_text: str = "", clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._idle_text = idle_text
        self._generation = 0
        self._current = StatusMessage(idle_text, StatusLevel.info, 0)

    def show(
        self,
        text: str,
        level: StatusLevel = StatusLevel.info,
        ttl: Optional[float] = None,
    ) -> int:
        """Display text; with a ttl it reverts to the idle prompt afterwards."""
        self._generation += 1
        expires_at = self._clock() + ttl if ttl is not None else None
        self._current = StatusMessage(text, level, self._generation, expires_at)
        return self._generation

    def expire(self, generation: int) -> bool:
        """Revert to idle if generation is still the one on display."""
        if generation != self._current.generation:
            return False
        self._generation += 1
        self._current = StatusMessage(self._idle_text, StatusLevel.info, self._generation)
        return True

    def reset(self) -> None:
        self.expire(self._current.generation)

    def current(self) -> StatusMessage:
        expires_at = self._current.expires_at
        if expires_at is not None and self._clock() >= expires_at:
            self.expire(self._current.generation)
        return self._current
