"""Time-bounded memory of processed now-playing events."""

import time
from typing import Callable, Dict

from prefetcharr.models import NowPlaying

RETAIN_SECONDS = 60 * 60 * 24 * 7


class Seen:
    """Remembers events for a week so they are only processed once.

    A repeat does not refresh the stored timestamp, so an event that keeps
    playing is reconsidered once its first sighting has expired.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """Initialize an empty cache."""
        self._clock = clock
        self._entries: Dict[NowPlaying, float] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def once(self, event: NowPlaying) -> bool:
        """Return True the first time an event is seen within the window."""
        self._prune()
        if event in self._entries:
            return False
        self._entries[event] = self._clock()
        return True

    def _prune(self) -> None:
        now = self._clock()
        self._entries = {
            event: touched
            for event, touched in self._entries.items()
            if now - touched <= RETAIN_SECONDS
        }
