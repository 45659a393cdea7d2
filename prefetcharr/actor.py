"""Decision engine turning now-playing events into Sonarr searches."""

import asyncio
import logging
from typing import Optional

from prefetcharr.models import (
    NewItemMonitorTypes,
    NowPlaying,
    SeriesResource,
    TagLabel,
    TvdbId,
)
from prefetcharr.seen import Seen
from prefetcharr.sonarr_client import SonarrClient, SonarrError

logger = logging.getLogger(__name__)


class Actor:
    """Consumes now-playing events one at a time and prefetches episodes."""

    def __init__(
        self,
        queue: "asyncio.Queue[Optional[NowPlaying]]",
        sonarr: SonarrClient,
        seen: Seen,
        prefetch_num: int,
        request_seasons: bool,
        exclude_tag: Optional[str] = None,
    ):
        """Initialize actor.

        Args:
            queue: Source of events; a ``None`` item closes it
            sonarr: Client for the Sonarr instance to drive
            seen: Cache of events already handled
            prefetch_num: Number of upcoming episodes to make available
            request_seasons: Search whole seasons instead of single episodes
            exclude_tag: Label of a Sonarr tag marking series to leave alone
        """
        self.queue = queue
        self.sonarr = sonarr
        self.seen = seen
        self.prefetch_num = prefetch_num
        self.request_seasons = request_seasons
        self.exclude_tag = TagLabel(exclude_tag) if exclude_tag else None

    async def process(self) -> None:
        """Handle events until the source is closed."""
        while True:
            event = await self.queue.get()
            if event is None:
                break
            try:
                await asyncio.to_thread(self.handle, event)
            except SonarrError as e:
                logger.error("Failed to process %r: %s", event, e)
            except Exception:
                logger.exception("Unexpected error processing %r", event)

    def handle(self, event: NowPlaying) -> None:
        """Run one decision cycle for an event.

        Raises SonarrError when Sonarr cannot be queried or updated.
        """
        if not self.seen.once(event):
            logger.debug("Skip previously processed item: %r", event)
            return

        series = next(
            (s for s in self.sonarr.series() if self._is_playing(s, event)),
            None,
        )
        if series is None:
            logger.warning("Series not found in Sonarr: %r", event)
            return

        logger.info("%s is playing %r", series.title or "?", event)

        if self.exclude_tag is not None:
            self.exclude_tag = self.sonarr.update_tag(self.exclude_tag)
            if series.is_tagged_with(self.exclude_tag):
                logger.info("Ignoring excluded series %s", series.title)
                return

        episodes = self.sonarr.episodes(
            series, event.season, event.episode, self.prefetch_num
        )

        changed = not series.monitored
        series.monitored = True

        if len(episodes) < self.prefetch_num:
            logger.info(
                "Insufficient episode data, monitor the last season and new items"
            )
            last_season = series.last_season()
            if last_season is not None and not last_season.monitored:
                last_season.monitored = True
                changed = True
            if series.monitor_new_items is not NewItemMonitorTypes.ALL:
                series.monitor_new_items = NewItemMonitorTypes.ALL
                changed = True

        missing = [e for e in episodes if not e.has_file]

        if self.request_seasons:
            seasons = sorted({e.season_number for e in missing})
            changed |= series.monitor_seasons(seasons)
            if changed:
                self.sonarr.put_series(series)

            for season_num in seasons:
                try:
                    self.sonarr.search_season(series, season_num)
                except SonarrError as e:
                    logger.error("Failed to search season %s: %s", season_num, e)
        else:
            if changed:
                self.sonarr.put_series(series)

            if not missing:
                logger.debug("Upcoming episodes are already downloaded")
                return

            self.sonarr.monitor_episodes(missing)
            self.sonarr.search_episodes(missing)

    @staticmethod
    def _is_playing(series: SeriesResource, event: NowPlaying) -> bool:
        if isinstance(event.series, TvdbId):
            return series.tvdb_id == event.series.id
        return series.title is not None and series.title == event.series.name
