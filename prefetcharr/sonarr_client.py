"""Sonarr API client for monitoring and searching episodes."""

import copy
import logging
from typing import Any, List, Optional

import requests

from prefetcharr.episode_window import episode_window
from prefetcharr.models import (
    EpisodeResource,
    SeriesResource,
    Tag,
    TagId,
    TagLabel,
)

logger = logging.getLogger(__name__)


class SonarrError(Exception):
    """Sonarr API error."""

    pass


class SonarrClient:
    """Client for the Sonarr v3 REST API."""

    def __init__(self, base_url: str, api_key: str):
        """Initialize Sonarr client."""
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key

    def _get_headers(self) -> dict:
        """Build request headers."""
        return {
            "X-Api-Key": self.api_key,
            "Accept": "application/json",
        }

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict] = None,
        json: Any = None,
        timeout: int = 60,
    ) -> Any:
        """Send a request below /api/v3 and decode the JSON response."""
        url = f"{self.base_url}/api/v3/{path}"

        try:
            response = requests.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._get_headers(),
                timeout=timeout,
            )
        except requests.RequestException as e:
            raise SonarrError(f"Network error: {e}")

        if response.status_code not in (200, 201, 202):
            raise SonarrError(
                f"{method} {path} failed: {response.status_code}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise SonarrError(f"Invalid JSON from {path}: {e}")

    def _get_list(self, path: str, params: Optional[dict] = None) -> list:
        data = self._request("GET", path, params=params)
        if not isinstance(data, list):
            raise SonarrError(f"Expected a list from {path}")
        return data

    def probe(self) -> None:
        """Check that Sonarr is reachable.

        Raises SonarrError otherwise.
        """
        url = f"{self.base_url}/api"

        try:
            response = requests.get(url, headers=self._get_headers(), timeout=10)
        except requests.RequestException as e:
            raise SonarrError(f"Cannot connect to Sonarr: {e}")

        if response.status_code != 200:
            raise SonarrError(f"Sonarr probe failed: {response.status_code}")

    def series(self) -> List[SeriesResource]:
        """Get all series, skipping entries that cannot be parsed."""
        series = []
        for raw in self._get_list("series"):
            try:
                series.append(SeriesResource.from_dict(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Ignoring malformed series entry %r: %s", raw, e)
        return series

    def put_series(self, series: SeriesResource) -> dict:
        """Replace a series record in Sonarr."""
        return self._request("PUT", f"series/{series.id}", json=series.to_dict())

    def tags(self) -> List[dict]:
        """Get all tags as raw ``{"id", "label"}`` entries."""
        tags = []
        for raw in self._get_list("tag"):
            if isinstance(raw, dict) and isinstance(raw.get("id"), int):
                tags.append(raw)
            else:
                logger.debug("Ignoring malformed tag entry %r", raw)
        return tags

    def resolve_tag(self, label: str) -> int:
        """Look up the id of a tag by its label."""
        for tag in self.tags():
            if tag.get("label") == label:
                return tag["id"]
        raise SonarrError(f"Tag not known: {label}")

    def update_tag(self, tag: Tag) -> Tag:
        """Resolve a tag label to its id.

        Resolution failures are not fatal since the tag may be created in
        Sonarr later on; the label is returned unchanged in that case.
        """
        if not isinstance(tag, TagLabel):
            return tag
        try:
            return TagId(self.resolve_tag(tag.label))
        except SonarrError as e:
            logger.warning("Cannot resolve tag ID of %r: %s", tag.label, e)
            return tag

    def all_episodes(self, series_id: int) -> List[EpisodeResource]:
        """Get every episode of a series."""
        try:
            return [
                EpisodeResource.from_dict(raw)
                for raw in self._get_list("episode", params={"seriesId": series_id})
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise SonarrError(f"Malformed episode listing: {e}")

    def episodes(
        self,
        series: SeriesResource,
        season_start: int,
        episode_start: int,
        num: int,
    ) -> List[EpisodeResource]:
        """Get up to ``num`` episodes following the given one."""
        if season_start == 0:
            return []

        episodes = self.all_episodes(series.id)
        return episode_window(season_start, episode_start, episodes, num)

    def monitor_episodes(self, episodes: List[EpisodeResource]) -> Any:
        """Mark episodes as monitored."""
        payload = {
            "episodeIds": [e.id for e in episodes],
            "monitored": True,
        }
        return self._request("PUT", "episode/monitor", json=payload)

    def search_episodes(self, episodes: List[EpisodeResource]) -> Any:
        """Queue a search for the given episodes."""
        episode_ids = [e.id for e in episodes]
        logger.info("Searching episodes %s", episode_ids)
        return self._command({"name": "EpisodeSearch", "episodeIds": episode_ids})

    def search_season(self, series: SeriesResource, season_num: int) -> Any:
        """Queue a search for a whole season.

        Sonarr ignores searches for unmonitored seasons, so the season and
        the series are monitored first.
        """
        logger.info("Searching season %s", season_num)

        series = copy.deepcopy(series)
        season = series.season(season_num)
        if season is None:
            raise SonarrError(f"There is no season {season_num}")

        if season.monitored:
            season_episodes = [
                e for e in self.all_episodes(series.id)
                if e.season_number == season_num
            ]
            if season_episodes:
                self.monitor_episodes(season_episodes)

        if not season.monitored or not series.monitored:
            season.monitored = True
            series.monitored = True
            self.put_series(series)

        return self._command({
            "name": "SeasonSearch",
            "seriesId": series.id,
            "seasonNumber": season_num,
        })

    def _command(self, command: dict) -> Any:
        return self._request("POST", "command", json=command)
