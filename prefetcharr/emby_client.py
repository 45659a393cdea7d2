"""Emby and Jellyfin API client."""

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

import requests

from prefetcharr import __version__
from prefetcharr.media_server import MediaServer, MediaServerError
from prefetcharr.models import NowPlaying, Title, TvdbId, User


class Fork(Enum):
    """Flavour of the MediaBrowser API."""

    JELLYFIN = "jellyfin"
    EMBY = "emby"


@dataclass(frozen=True)
class Session:
    """The parts of a playback session needed to resolve an episode."""

    user_id: str
    user_name: str
    series_id: str
    season_id: str
    episode: int
    path: str


class EmbyClient(MediaServer[Session]):
    """Client for Emby and Jellyfin REST APIs."""

    CLIENT_NAME = "prefetcharr"
    CLIENT_VERSION = __version__

    def __init__(
        self,
        server_url: str,
        api_key: str,
        fork: Fork = Fork.JELLYFIN,
        device_id: Optional[str] = None,
    ):
        """Initialize Emby client."""
        if not server_url.startswith(("http://", "https://")):
            raise MediaServerError(f"Invalid server URL: {server_url}")
        self.server_url = server_url.rstrip("/")
        self.api_key = api_key
        self.fork = fork
        self.device_id = device_id or str(uuid.uuid4())

    @property
    def name(self) -> str:
        return "Jellyfin" if self.fork is Fork.JELLYFIN else "Emby"

    def _get_headers(self) -> dict:
        """Build request headers."""
        headers = {"Accept": "application/json"}
        if self.fork is Fork.EMBY:
            headers["X-Emby-Token"] = self.api_key
            return headers

        # Build authorization header in MediaBrowser format
        auth_parts = [
            f'Client="{self.CLIENT_NAME}"',
            f'Device="{self.CLIENT_NAME}"',
            f'DeviceId="{self.device_id}"',
            f'Version="{self.CLIENT_VERSION}"',
            f'Token="{self.api_key}"',
        ]
        headers["Authorization"] = f"MediaBrowser {', '.join(auth_parts)}"
        return headers

    def _get(self, path: str, timeout: int = 30):
        url = f"{self.server_url}/{path}"

        try:
            response = requests.get(url, headers=self._get_headers(), timeout=timeout)
        except requests.RequestException as e:
            raise MediaServerError(f"Cannot connect to {self.name} server: {e}")

        if response.status_code == 401:
            raise MediaServerError("API key invalid")
        if response.status_code != 200:
            raise MediaServerError(
                f"{self.name} server error: {response.status_code}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise MediaServerError(f"Invalid JSON from {path}: {e}")

    def probe(self) -> None:
        """Check that the server is reachable and accepts the API key."""
        self._get("System/Endpoint", timeout=10)

    def sessions(self) -> List[Session]:
        """Fetch sessions that are playing an episode."""
        data = self._get("Sessions")
        if not isinstance(data, list):
            raise MediaServerError("Expected a list of sessions")

        sessions = []
        for raw in data:
            session = self._parse_session(raw)
            if session:
                sessions.append(session)
        return sessions

    def _parse_session(self, raw) -> Optional[Session]:
        """Parse a session, or None if nothing usable is playing."""
        if not isinstance(raw, dict):
            return None
        item = raw.get("NowPlayingItem")
        if not isinstance(item, dict):
            return None

        try:
            return Session(
                user_id=str(raw["UserId"]),
                user_name=str(raw["UserName"]),
                series_id=str(item["SeriesId"]),
                season_id=str(item["SeasonId"]),
                episode=int(item["IndexNumber"]),
                path=str(item["Path"]),
            )
        except (KeyError, TypeError, ValueError):
            return None

    def extract(self, session: Session) -> NowPlaying:
        """Resolve series, season and library of a session."""
        series = self._get(f"Users/{session.user_id}/Items/{session.series_id}")
        season = self._get(f"Users/{session.user_id}/Items/{session.season_id}")

        try:
            tvdb_id = (series.get("ProviderIds") or {}).get("Tvdb")
            if tvdb_id:
                identity = TvdbId(int(tvdb_id))
            else:
                identity = Title(series["Name"])
            season_num = int(season["IndexNumber"])
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise MediaServerError(f"Cannot resolve episode: {e}")

        return NowPlaying(
            series=identity,
            season=season_num,
            episode=session.episode,
            user=User(id=session.user_id, name=session.user_name),
            library=self._library(session.path),
        )

    def _library(self, path: str) -> Optional[str]:
        """Find the name of the library containing a file."""
        folders = self._get("Library/VirtualFolders")
        if not isinstance(folders, list):
            raise MediaServerError("Expected a list of libraries")

        for folder in folders:
            if not isinstance(folder, dict):
                continue
            locations = folder.get("Locations") or []
            if not isinstance(locations, list):
                raise MediaServerError(f"Invalid library locations: {locations!r}")
            if any(
                isinstance(location, str) and path.startswith(location)
                for location in locations
            ):
                return folder.get("Name")
        return None
