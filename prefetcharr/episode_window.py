"""Selection of the upcoming, gap-free run of episodes."""

import logging
from typing import List, Sequence, TypeVar

logger = logging.getLogger(__name__)

E = TypeVar("E")


def episode_window(
    season_start: int,
    episode_start: int,
    episodes: Sequence[E],
    num: int,
) -> List[E]:
    """Pick up to ``num`` episodes following the given one.

    Episodes need ``season_number`` and ``episode_number`` attributes. The walk
    stops at the first gap in the listing, so a short result means the
    catalogue is incomplete rather than that the series has ended.

    Args:
        season_start: Season of the episode currently playing
        episode_start: Number of the episode currently playing
        episodes: Every known episode of the series, in any order
        num: Maximum number of episodes to return

    Returns:
        Episodes after the start episode in (season, episode) order
    """
    # Specials have no reliable order.
    if season_start == 0:
        return []

    ordered = sorted(episodes, key=lambda e: (e.season_number, e.episode_number))

    start = next(
        (
            i
            for i, ep in enumerate(ordered)
            if ep.season_number == season_start and ep.episode_number == episode_start
        ),
        None,
    )
    if start is None:
        return []

    window = []
    prev_season, prev_episode = season_start, episode_start
    for ep in ordered[start + 1:]:
        if len(window) >= num:
            break

        season_delta = ep.season_number - prev_season
        episode_delta = ep.episode_number - prev_episode
        prev_season, prev_episode = ep.season_number, ep.episode_number

        if (season_delta == 0 and episode_delta == 1) or (
            season_delta == 1 and ep.episode_number == 1
        ):
            window.append(ep)
        elif season_delta == 0 and episode_delta == 0:
            logger.warning("Duplicated episode listing: %r", ep)
            window.append(ep)
        else:
            logger.error("Gap in the episode listing before %r", ep)
            break

    return window
