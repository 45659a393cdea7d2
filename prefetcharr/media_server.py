"""Common interface of media servers reporting playback sessions."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator, Callable, Generic, List, Sequence, TypeVar

from prefetcharr.models import NowPlaying

logger = logging.getLogger(__name__)

S = TypeVar("S")


class MediaServerError(Exception):
    """Media server API error."""

    pass


class MediaServer(ABC, Generic[S]):
    """A media server that can tell which episodes are playing."""

    name = "media server"

    @abstractmethod
    def sessions(self) -> List[S]:
        """Fetch the current playback sessions that look like episodes."""

    @abstractmethod
    def extract(self, session: S) -> NowPlaying:
        """Turn one session into a now-playing event."""

    @abstractmethod
    def probe(self) -> None:
        """Check connectivity, raising MediaServerError on failure."""

    def now_playing(self) -> List[NowPlaying]:
        """Poll once for everything currently playing.

        Sessions that cannot be resolved are skipped.
        """
        events = []
        for session in self.sessions():
            try:
                events.append(self.extract(session))
            except MediaServerError as e:
                logger.debug("Skipping session %r: %s", session, e)
        return events

    async def now_playing_updates(
        self,
        interval: float,
    ) -> AsyncIterator[NowPlaying]:
        """Yield now-playing events forever, polling every ``interval`` seconds.

        The first poll happens right away. A failed poll is logged and
        produces no events.
        """
        while True:
            try:
                events = await asyncio.to_thread(self.now_playing)
            except MediaServerError as e:
                logger.error("Cannot fetch sessions from %s: %s", self.name, e)
                events = []
            except Exception:
                logger.exception("Unexpected error polling %s", self.name)
                events = []

            for event in events:
                yield event

            await asyncio.sleep(interval)


def filter_users(users: Sequence[str]) -> Callable[[NowPlaying], bool]:
    """Accept events of the listed user ids or names (all if empty)."""

    def accept(event: NowPlaying) -> bool:
        ok = not users or event.user.id in users or event.user.name in users
        if not ok:
            logger.debug("Ignoring session from unwanted user: %r", event)
        return ok

    return accept


def filter_libraries(libraries: Sequence[str]) -> Callable[[NowPlaying], bool]:
    """Accept events from the listed libraries (all if empty)."""

    def accept(event: NowPlaying) -> bool:
        ok = not libraries or (
            event.library is not None and event.library in libraries
        )
        if not ok:
            logger.debug("Ignoring session from unwanted library: %r", event)
        return ok

    return accept
