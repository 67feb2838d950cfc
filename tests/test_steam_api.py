from __future__ import annotations

import asyncio
import json

import aiohttp
import pytest

from gamedice import steam_api
from gamedice.errors import SteamApiError


class FakeResponse:
    def __init__(self, body: str):
        self.body = body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def raise_for_status(self):
        return None

    async def text(self):
        return self.body


class FakeSession:
    def __init__(self, routes=None, error=None):
        self.routes = routes or {}
        self.error = error
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        if self.error is not None:
            raise self.error
        for prefix, body in self.routes.items():
            if url.startswith(prefix):
                return FakeResponse(body)
        raise aiohttp.ClientConnectionError(f"no route for {url}")


def test_parse_owned_games():
    payload = {"response": {"games": [
        {"appid": 440, "playtime_forever": 90},
        {"appid": 570},
        {"playtime_forever": 10},
        "junk",
    ]}}
    assert steam_api.parse_owned_games(payload) == {"440": 1.5}
    assert steam_api.parse_owned_games({"response": {}}) == {}
    assert steam_api.parse_owned_games([]) == {}


def test_fetch_playtime_hours_reads_response():
    body = json.dumps({"response": {"games": [{"appid": 10, "playtime_forever": 120}]}})
    session = FakeSession({steam_api.OWNED_GAMES_URL: body})
    hours = asyncio.run(steam_api.fetch_playtime_hours("KEY", "76561198000000001", session=session))
    assert hours == {"10": 2.0}
    url, params = session.calls[0]
    assert params["steamid"] == "76561198000000001"
    assert params["include_played_free_games"] == "1"


def test_fetch_playtime_hours_without_credentials():
    assert asyncio.run(steam_api.fetch_playtime_hours(" ", "123")) == {}


def test_fetch_playtime_network_error_raises():
    session = FakeSession(error=aiohttp.ClientConnectionError("offline"))
    with pytest.raises(SteamApiError):
        asyncio.run(steam_api.fetch_playtime_hours("KEY", "1", session=session))


def test_fetch_playtime_bad_json_raises():
    session = FakeSession({steam_api.OWNED_GAMES_URL: "<html>"})
    with pytest.raises(SteamApiError):
        asyncio.run(steam_api.fetch_playtime_hours("KEY", "1", session=session))


def test_tag_shapes():
    assert steam_api.tag_strings(["RPG", {"name": "Indie"}, {"x": 1}, 5]) == ["RPG", "Indie"]
    assert steam_api.tag_strings({"Roguelike": 10, "Cards": 3}) == ["Roguelike", "Cards"]
    assert steam_api.tag_strings(None) == []
    assert steam_api.tags_from_hover({"success": 1, "tags": ["Co-op"]}) == ["Co-op"]
    assert steam_api.tags_from_hover({"success": 0, "tags": ["Co-op"]}) == []


def test_genres_from_details():
    payload = {"620": {"success": True, "data": {"genres": [{"description": "Action"}, {"id": "2"}]}}}
    assert steam_api.genres_from_details(payload, "620") == ["Action"]
    assert steam_api.genres_from_details({"620": {"success": False}}, "620") == []


def test_clean_store_tags_drops_platform_features():
    raw = ["Action", "Steam Cloud", "  ", "Co-op", "Remote Play Together", "action"]
    assert steam_api.clean_store_tags(raw) == ["action", "co-op"]


def test_fetch_store_tags_merges_both_sources():
    session = FakeSession({
        steam_api.APP_DETAILS_URL: json.dumps({"620": {"success": True, "data": {"genres": [{"description": "Puzzle"}]}}}),
        "https://store.steampowered.com/apphoverpublic/620": json.dumps(
            {"success": 1, "tags": [{"name": "Co-op"}, {"name": "Steam Workshop"}]}
        ),
    })
    assert asyncio.run(steam_api.fetch_store_tags("620", session)) == ["co-op", "puzzle"]


def test_fetch_store_tags_survives_one_failed_source():
    session = FakeSession({
        "https://store.steampowered.com/apphoverpublic/620": json.dumps({"success": 1, "tags": ["Indie"]}),
    })
    assert asyncio.run(steam_api.fetch_store_tags("620", session)) == ["indie"]


def test_fetch_store_tags_ignores_non_numeric_ids():
    session = FakeSession()
    assert asyncio.run(steam_api.fetch_store_tags("abc", session)) == []
    assert session.calls == []


def test_import_store_tags_bounds_concurrency_and_reports_progress():
    in_flight = 0
    peak = 0

    async def fetch(appid, session):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        if appid == "13":
            raise aiohttp.ClientConnectionError("offline")
        if appid == "14":
            return []
        return [f"tag{appid}"]

    progress = []
    appids = [str(i) for i in range(25)]
    result = asyncio.run(
        steam_api.import_store_tags(appids, progress=lambda d, t: progress.append((d, t)), session=object(), fetch=fetch)
    )

    assert peak <= steam_api.IMPORT_CONCURRENCY
    assert peak > 1
    assert progress == [(10, 25), (20, 25), (25, 25)]
    assert set(result) == set(appids) - {"13", "14"}
    assert result["3"] == ["tag3"]


def test_import_store_tags_progress_not_repeated_on_round_total():
    async def fetch(appid, session):
        return ["x"]

    progress = []
    asyncio.run(
        steam_api.import_store_tags(
            [str(i) for i in range(10)], progress=lambda d, t: progress.append(d), session=object(), fetch=fetch
        )
    )
    assert progress == [10]
