"""Data models for now-playing events and Sonarr resources."""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Union


@dataclass(frozen=True)
class TvdbId:
    """Series identified by its TVDB id."""

    id: int


@dataclass(frozen=True)
class Title:
    """Series identified by its exact title."""

    name: str


SeriesIdentity = Union[TvdbId, Title]


@dataclass(frozen=True)
class User:
    """Media server user owning a playback session."""

    id: str
    name: str


@dataclass(frozen=True)
class NowPlaying:
    """An episode a user is currently watching.

    Instances are hashable and compare by value, so an event doubles as its
    own deduplication key.
    """

    series: SeriesIdentity
    season: int
    episode: int
    user: User
    library: Optional[str] = None


@dataclass(frozen=True)
class TagLabel:
    """Sonarr tag known only by its label."""

    label: str


@dataclass(frozen=True)
class TagId:
    """Sonarr tag resolved to its numeric id."""

    id: int


Tag = Union[TagLabel, TagId]


class NewItemMonitorTypes(Enum):
    """Sonarr policy for seasons added to a series later on."""

    ALL = "all"
    NONE = "none"


def _require(raw: dict, key: str, kind: type):
    """Fetch a mandatory field of a given JSON type."""
    value = raw[key]
    # bool is a subclass of int, so it must not pass for an id
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise TypeError(f"{key} must be {kind.__name__}, got {value!r}")
    return value


def _object(raw, name: str) -> dict:
    """Check that a JSON value is an object."""
    if not isinstance(raw, dict):
        raise TypeError(f"{name} must be an object, got {raw!r}")
    return raw


def _extra(raw: dict, known: Iterable[str]) -> dict:
    """Collect the fields a model does not interpret."""
    return {k: copy.deepcopy(v) for k, v in raw.items() if k not in known}


@dataclass
class SeasonStatistics:
    """Download statistics of one season."""

    episode_count: int = 0
    episode_file_count: int = 0
    total_episode_count: int = 0
    size_on_disk: int = 0
    other: dict = field(default_factory=dict)

    KEYS = ("episodeCount", "episodeFileCount", "totalEpisodeCount", "sizeOnDisk")

    def to_dict(self) -> dict:
        data = dict(self.other)
        data.update({
            "episodeCount": self.episode_count,
            "episodeFileCount": self.episode_file_count,
            "totalEpisodeCount": self.total_episode_count,
            "sizeOnDisk": self.size_on_disk,
        })
        return data

    @classmethod
    def from_dict(cls, raw: dict) -> "SeasonStatistics":
        _object(raw, "statistics")
        return cls(
            episode_count=int(raw.get("episodeCount", 0)),
            episode_file_count=int(raw.get("episodeFileCount", 0)),
            total_episode_count=int(raw.get("totalEpisodeCount", 0)),
            size_on_disk=int(raw.get("sizeOnDisk", 0)),
            other=_extra(raw, cls.KEYS),
        )


@dataclass
class SeasonResource:
    """A season as listed inside a Sonarr series."""

    season_number: int
    monitored: bool
    statistics: Optional[SeasonStatistics] = None
    other: dict = field(default_factory=dict)

    KEYS = ("seasonNumber", "monitored", "statistics")

    def to_dict(self) -> dict:
        data = dict(self.other)
        data["seasonNumber"] = self.season_number
        data["monitored"] = self.monitored
        if self.statistics is not None:
            data["statistics"] = self.statistics.to_dict()
        return data

    @classmethod
    def from_dict(cls, raw: dict) -> "SeasonResource":
        _object(raw, "season")
        statistics = raw.get("statistics")
        return cls(
            season_number=_require(raw, "seasonNumber", int),
            monitored=_require(raw, "monitored", bool),
            statistics=(
                SeasonStatistics.from_dict(statistics) if statistics else None
            ),
            other=_extra(raw, cls.KEYS),
        )


@dataclass
class SeriesResource:
    """A Sonarr series.

    Fields Sonarr sends that are not modelled here are kept in ``other`` and
    written back unchanged, since updates replace the whole record.
    """

    id: int
    title: Optional[str]
    tvdb_id: int
    monitored: bool
    seasons: List[SeasonResource] = field(default_factory=list)
    # Absent on Sonarr v3
    monitor_new_items: Optional[NewItemMonitorTypes] = None
    tags: Optional[List[int]] = None
    other: dict = field(default_factory=dict)

    KEYS = ("id", "title", "tvdbId", "monitored", "monitorNewItems", "seasons", "tags")

    def to_dict(self) -> dict:
        """Convert to the JSON shape Sonarr expects."""
        data = dict(self.other)
        data.update({
            "id": self.id,
            "title": self.title,
            "tvdbId": self.tvdb_id,
            "monitored": self.monitored,
            "monitorNewItems": (
                self.monitor_new_items.value if self.monitor_new_items else None
            ),
            "seasons": [season.to_dict() for season in self.seasons],
        })
        if self.tags is not None:
            data["tags"] = list(self.tags)
        return data

    @classmethod
    def from_dict(cls, raw: dict) -> "SeriesResource":
        """Parse a series listing entry.

        Raises KeyError, TypeError or ValueError for malformed entries.
        """
        _object(raw, "series")
        title = raw.get("title")
        if title is not None and not isinstance(title, str):
            raise TypeError(f"title must be str, got {title!r}")
        monitor_new_items = raw.get("monitorNewItems")
        tags = raw.get("tags")
        return cls(
            id=_require(raw, "id", int),
            title=title,
            tvdb_id=_require(raw, "tvdbId", int),
            monitored=_require(raw, "monitored", bool),
            seasons=[
                SeasonResource.from_dict(s) for s in _require(raw, "seasons", list)
            ],
            monitor_new_items=(
                NewItemMonitorTypes(monitor_new_items) if monitor_new_items else None
            ),
            tags=[int(t) for t in tags] if tags is not None else None,
            other=_extra(raw, cls.KEYS),
        )

    def season(self, num: int) -> Optional[SeasonResource]:
        """Find a season by number."""
        return next((s for s in self.seasons if s.season_number == num), None)

    def last_season(self) -> Optional[SeasonResource]:
        """Return the season with the highest number."""
        if not self.seasons:
            return None
        return max(self.seasons, key=lambda s: s.season_number)

    def monitor_seasons(self, nums: Iterable[int]) -> bool:
        """Mark seasons monitored.

        Returns True if any season was not monitored before.
        """
        changed = False
        for num in nums:
            season = self.season(num)
            if season is not None:
                changed |= not season.monitored
                season.monitored = True
        return changed

    def is_tagged_with(self, tag: Tag) -> Optional[bool]:
        """Check for a tag, or None if that cannot be decided."""
        if not isinstance(tag, TagId) or self.tags is None:
            return None
        return tag.id in self.tags


@dataclass
class EpisodeResource:
    """A Sonarr episode."""

    id: int
    season_number: int
    episode_number: int
    has_file: bool
    monitored: bool
    other: dict = field(default_factory=dict)

    KEYS = ("id", "seasonNumber", "episodeNumber", "hasFile", "monitored")

    def to_dict(self) -> dict:
        data = dict(self.other)
        data.update({
            "id": self.id,
            "seasonNumber": self.season_number,
            "episodeNumber": self.episode_number,
            "hasFile": self.has_file,
            "monitored": self.monitored,
        })
        return data

    @classmethod
    def from_dict(cls, raw: dict) -> "EpisodeResource":
        _object(raw, "episode")
        return cls(
            id=_require(raw, "id", int),
            season_number=_require(raw, "seasonNumber", int),
            episode_number=_require(raw, "episodeNumber", int),
            has_file=_require(raw, "hasFile", bool),
            monitored=_require(raw, "monitored", bool),
            other=_extra(raw, cls.KEYS),
        )
