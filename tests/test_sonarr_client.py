"""Tests for Sonarr API client."""

import json

import pytest
import requests
import responses

from prefetcharr.models import EpisodeResource, SeriesResource, TagId, TagLabel
from prefetcharr.sonarr_client import SonarrClient, SonarrError

BASE = "https://sonarr.example.com/pathprefix"
API = f"{BASE}/api/v3"


def series_json(**overrides):
    data = {
        "id": 1234,
        "title": "TestShow",
        "tvdbId": 5678,
        "monitored": True,
        "monitorNewItems": "all",
        "seasons": [
            {"seasonNumber": 1, "monitored": True},
            {"seasonNumber": 2, "monitored": False},
        ],
    }
    data.update(overrides)
    return data


def episode_json(id, season, episode, has_file=False, monitored=False):
    return {
        "id": id,
        "seriesId": 1234,
        "seasonNumber": season,
        "episodeNumber": episode,
        "hasFile": has_file,
        "monitored": monitored,
    }


def body(call):
    return json.loads(call.request.body)


@pytest.fixture
def client():
    return SonarrClient(base_url=BASE + "/", api_key="secret")


class TestSonarrConnection:
    """Tests for probing and authentication."""

    @responses.activate
    def test_probe_success(self, client):
        """Probe hits the API root."""
        responses.add(responses.GET, f"{BASE}/api", json={}, status=200)
        client.probe()
        assert responses.calls[0].request.headers["X-Api-Key"] == "secret"

    @responses.activate
    def test_probe_unauthorized(self, client):
        """Probe fails on a bad API key."""
        responses.add(responses.GET, f"{BASE}/api", status=401)
        with pytest.raises(SonarrError, match="401"):
            client.probe()

    @responses.activate
    def test_probe_network_error(self, client):
        """Probe fails when Sonarr is unreachable."""
        responses.add(
            responses.GET,
            f"{BASE}/api",
            body=requests.exceptions.ConnectionError("refused"),
        )
        with pytest.raises(SonarrError, match="Cannot connect"):
            client.probe()

    @responses.activate
    def test_api_key_header(self, client):
        """Every request carries the API key."""
        responses.add(responses.GET, f"{API}/series", json=[], status=200)
        client.series()
        assert responses.calls[0].request.headers["X-Api-Key"] == "secret"


class TestSeries:
    """Tests for listing and updating series."""

    @responses.activate
    def test_series_v3(self, client):
        """Series without monitorNewItems parse."""
        raw = series_json()
        del raw["monitorNewItems"]
        responses.add(responses.GET, f"{API}/series", json=[raw], status=200)

        series = client.series()

        assert series[0].id == 1234
        assert series[0].monitor_new_items is None

    @responses.activate
    def test_series_multiple(self, client):
        """All entries are returned."""
        responses.add(
            responses.GET,
            f"{API}/series",
            json=[series_json(), series_json(id=99)],
            status=200,
        )
        assert [s.id for s in client.series()] == [1234, 99]

    @responses.activate
    def test_series_skips_malformed(self, client):
        """A broken entry does not fail the listing."""
        responses.add(
            responses.GET,
            f"{API}/series",
            json=[{"id": "broken"}, series_json()],
            status=200,
        )
        series = client.series()
        assert len(series) == 1
        assert series[0].title == "TestShow"

    @responses.activate
    def test_series_skips_non_object_entries(self, client):
        """Entries that are not JSON objects are skipped."""
        responses.add(
            responses.GET,
            f"{API}/series",
            json=["garbage", None, series_json()],
            status=200,
        )
        assert [s.id for s in client.series()] == [1234]

    @responses.activate
    def test_series_skips_malformed_statistics(self, client):
        """A season with non-object statistics skips only its series."""
        broken = series_json(
            id=1,
            seasons=[{"seasonNumber": 1, "monitored": True, "statistics": [1]}],
        )
        responses.add(
            responses.GET,
            f"{API}/series",
            json=[broken, series_json()],
            status=200,
        )
        assert [s.id for s in client.series()] == [1234]

    @responses.activate
    def test_series_missing_statistics(self, client):
        """Seasons without statistics parse."""
        responses.add(
            responses.GET,
            f"{API}/series",
            json=[series_json(seasons=[{"seasonNumber": 0, "monitored": False}])],
            status=200,
        )
        assert client.series()[0].seasons[0].statistics is None

    @responses.activate
    def test_series_server_error(self, client):
        """HTTP errors surface as SonarrError."""
        responses.add(responses.GET, f"{API}/series", status=500)
        with pytest.raises(SonarrError, match="500"):
            client.series()

    @responses.activate
    def test_series_not_a_list(self, client):
        """Unexpected payloads surface as SonarrError."""
        responses.add(responses.GET, f"{API}/series", json={}, status=200)
        with pytest.raises(SonarrError):
            client.series()

    @responses.activate
    def test_put_series(self, client):
        """The whole record is written back."""
        responses.add(responses.PUT, f"{API}/series/1234", json={}, status=202)
        series = SeriesResource.from_dict(series_json(qualityProfileId=1))
        series.monitored = False

        client.put_series(series)

        sent = body(responses.calls[0])
        assert sent["monitored"] is False
        assert sent["qualityProfileId"] == 1
        assert sent["seasons"][1] == {"seasonNumber": 2, "monitored": False}


class TestTags:
    """Tests for tag resolution."""

    @responses.activate
    def test_resolve_tag(self, client):
        """Labels resolve to ids."""
        responses.add(
            responses.GET,
            f"{API}/tag",
            json=[{"id": 1, "label": "keep"}, {"id": 2, "label": "exclude"}],
            status=200,
        )
        assert client.resolve_tag("exclude") == 2

    @responses.activate
    def test_resolve_unknown_tag(self, client):
        """Unknown labels raise."""
        responses.add(responses.GET, f"{API}/tag", json=[], status=200)
        with pytest.raises(SonarrError, match="not known"):
            client.resolve_tag("exclude")

    @responses.activate
    def test_update_tag(self, client):
        """A label is replaced by its id."""
        responses.add(
            responses.GET,
            f"{API}/tag",
            json=[{"label": "broken"}, {"id": 2, "label": "exclude"}],
            status=200,
        )
        assert client.update_tag(TagLabel("exclude")) == TagId(2)

    @responses.activate
    def test_update_tag_failure_keeps_label(self, client):
        """Resolution errors leave the label in place."""
        responses.add(responses.GET, f"{API}/tag", status=500)
        assert client.update_tag(TagLabel("exclude")) == TagLabel("exclude")

    def test_update_resolved_tag(self, client):
        """Resolved tags are not looked up again."""
        assert client.update_tag(TagId(5)) == TagId(5)


class TestEpisodes:
    """Tests for episode listing and monitoring."""

    @responses.activate
    def test_episodes_window(self, client):
        """Episodes are fetched for the series and windowed."""
        responses.add(
            responses.GET,
            f"{API}/episode",
            json=[
                episode_json(1, 1, 1),
                episode_json(2, 1, 2),
                episode_json(3, 1, 3),
            ],
            status=200,
        )
        series = SeriesResource.from_dict(series_json())

        episodes = client.episodes(series, 1, 1, 1)

        assert [e.id for e in episodes] == [2]
        assert "seriesId=1234" in responses.calls[0].request.url

    def test_episodes_specials(self, client):
        """Season 0 does not hit the API."""
        series = SeriesResource.from_dict(series_json())
        assert client.episodes(series, 0, 1, 2) == []

    @responses.activate
    def test_episodes_malformed(self, client):
        """Broken episode listings raise."""
        responses.add(
            responses.GET, f"{API}/episode", json=[{"id": 1}], status=200
        )
        with pytest.raises(SonarrError, match="Malformed"):
            client.all_episodes(1234)

    @responses.activate
    def test_episodes_non_object_entry(self, client):
        """A non-object episode entry is reported as a malformed listing."""
        responses.add(
            responses.GET, f"{API}/episode", json=["garbage"], status=200
        )
        with pytest.raises(SonarrError, match="Malformed"):
            client.all_episodes(1234)

    @responses.activate
    def test_monitor_episodes(self, client):
        """Episodes are monitored in one request."""
        responses.add(responses.PUT, f"{API}/episode/monitor", json=[], status=202)
        episodes = [
            EpisodeResource.from_dict(episode_json(7, 1, 1)),
            EpisodeResource.from_dict(episode_json(8, 1, 2)),
        ]

        client.monitor_episodes(episodes)

        assert body(responses.calls[0]) == {"episodeIds": [7, 8], "monitored": True}

    @responses.activate
    def test_search_episodes(self, client):
        """Episode searches are batched into one command."""
        responses.add(responses.POST, f"{API}/command", json={}, status=201)
        episodes = [EpisodeResource.from_dict(episode_json(7, 1, 1))]

        client.search_episodes(episodes)

        assert body(responses.calls[0]) == {
            "name": "EpisodeSearch",
            "episodeIds": [7],
        }


class TestSearchSeason:
    """Tests for season searches."""

    @responses.activate
    def test_unmonitored_season(self, client):
        """An unmonitored season is monitored before searching."""
        responses.add(responses.PUT, f"{API}/series/1234", json={}, status=202)
        responses.add(responses.POST, f"{API}/command", json={}, status=201)
        series = SeriesResource.from_dict(series_json())

        client.search_season(series, 2)

        assert len(responses.calls) == 2
        put = body(responses.calls[0])
        assert put["seasons"][1]["monitored"] is True
        assert put["monitored"] is True
        assert body(responses.calls[1]) == {
            "name": "SeasonSearch",
            "seriesId": 1234,
            "seasonNumber": 2,
        }
        # the caller's record is left alone
        assert series.season(2).monitored is False

    @responses.activate
    def test_monitored_season(self, client):
        """All episodes of a monitored season get monitored."""
        responses.add(
            responses.GET,
            f"{API}/episode",
            json=[
                episode_json(1, 1, 1, monitored=True),
                episode_json(2, 1, 2),
                episode_json(3, 2, 1),
            ],
            status=200,
        )
        responses.add(responses.PUT, f"{API}/episode/monitor", json=[], status=202)
        responses.add(responses.POST, f"{API}/command", json={}, status=201)
        series = SeriesResource.from_dict(series_json())

        client.search_season(series, 1)

        methods = [c.request.method for c in responses.calls]
        assert methods == ["GET", "PUT", "POST"]
        assert body(responses.calls[1])["episodeIds"] == [1, 2]

    @responses.activate
    def test_unmonitored_series(self, client):
        """A monitored season of an unmonitored series still updates the series."""
        responses.add(responses.GET, f"{API}/episode", json=[], status=200)
        responses.add(responses.PUT, f"{API}/series/1234", json={}, status=202)
        responses.add(responses.POST, f"{API}/command", json={}, status=201)
        series = SeriesResource.from_dict(series_json(monitored=False))

        client.search_season(series, 1)

        assert body(responses.calls[1])["monitored"] is True
        assert responses.calls[2].request.url == f"{API}/command"

    def test_unknown_season(self, client):
        """Searching a season Sonarr does not list fails."""
        series = SeriesResource.from_dict(series_json())
        with pytest.raises(SonarrError, match="no season 5"):
            client.search_season(series, 5)
