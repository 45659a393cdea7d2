"""Wiring of media server, actor and Sonarr."""

import asyncio
import logging
from typing import AsyncIterator, Callable, Optional, Sequence

from prefetcharr import __version__
from prefetcharr.actor import Actor
from prefetcharr.config import Config
from prefetcharr.emby_client import EmbyClient, Fork
from prefetcharr.media_server import MediaServer, filter_libraries, filter_users
from prefetcharr.models import NowPlaying
from prefetcharr.retry import retry
from prefetcharr.seen import Seen
from prefetcharr.sonarr_client import SonarrClient

logger = logging.getLogger(__name__)


def build_media_server(config: Config) -> MediaServer:
    """Create the media server client described by a config."""
    return EmbyClient(
        server_url=config.media_server_url,
        api_key=config.media_server_api_key,
        fork=Fork(config.media_server_type),
    )


def build_sonarr(config: Config) -> SonarrClient:
    """Create the Sonarr client described by a config."""
    return SonarrClient(base_url=config.sonarr_url, api_key=config.sonarr_api_key)


async def forward(
    updates: AsyncIterator[NowPlaying],
    queue: "asyncio.Queue[Optional[NowPlaying]]",
    filters: Sequence[Callable[[NowPlaying], bool]] = (),
) -> None:
    """Move accepted events into the queue, closing it when updates end."""
    async for event in updates:
        if all(accept(event) for accept in filters):
            await queue.put(event)
    await queue.put(None)


async def run(
    config: Config,
    media_server: Optional[MediaServer] = None,
    sonarr: Optional[SonarrClient] = None,
) -> None:
    """Probe both servers, then prefetch episodes until cancelled.

    Raises the probe error if a server stays unreachable.
    """
    logger.info("prefetcharr %s", __version__)

    sonarr = sonarr or build_sonarr(config)
    await retry(config.connection_retries, lambda: asyncio.to_thread(sonarr.probe))

    media_server = media_server or build_media_server(config)
    await retry(
        config.connection_retries, lambda: asyncio.to_thread(media_server.probe)
    )

    logger.info("Start watching %s sessions", media_server.name)

    queue: "asyncio.Queue[Optional[NowPlaying]]" = asyncio.Queue(maxsize=1)
    actor = Actor(
        queue,
        sonarr,
        Seen(),
        prefetch_num=config.prefetch_num,
        request_seasons=config.request_seasons,
        exclude_tag=config.exclude_tag,
    )
    filters = [filter_users(config.users), filter_libraries(config.libraries)]

    await asyncio.gather(
        forward(media_server.now_playing_updates(config.interval), queue, filters),
        actor.process(),
    )
