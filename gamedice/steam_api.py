"""Steam Web API and store clients: owned-game hours and store tag import."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

import aiohttp

from .errors import SteamApiError
from .tags import normalize_tags

_LOGGER = logging.getLogger(__name__)

OWNED_GAMES_URL = "https://api.steampowered.com/IPlayerService/GetOwnedGames/v0001/"
APP_DETAILS_URL = "https://store.steampowered.com/api/appdetails"
APP_HOVER_URL = "https://store.steampowered.com/apphoverpublic/{appid}"

STORE_TIMEOUT = aiohttp.ClientTimeout(total=12)
API_TIMEOUT = aiohttp.ClientTimeout(total=30)

IMPORT_CONCURRENCY = 6
PROGRESS_EVERY = 10

IGNORED_TAGS = {
    tag.casefold()
    for tag in (
        "Steam Achievements",
        "Steam Cloud",
        "Steam Leaderboards",
        "Steam Trading Cards",
        "Steam Workshop",
        "Steam Turn Notifications",
        "Remote Play on Phone",
        "Remote Play on Tablet",
        "Remote Play on TV",
        "Remote Play Together",
        "Family Sharing",
    )
}

ProgressCallback = Callable[[int, int], None]


# ----- Owned games ------------------------------------------------------
def parse_owned_games(payload: Any) -> Dict[str, float]:
    """``{appid: hours}`` from a GetOwnedGames response."""
    hours: Dict[str, float] = {}
    if not isinstance(payload, dict):
        return hours
    response = payload.get("response")
    games = response.get("games") if isinstance(response, dict) else None
    if not isinstance(games, list):
        return hours
    for game in games:
        if not isinstance(game, dict):
            continue
        appid = game.get("appid")
        minutes = game.get("playtime_forever")
        if appid is None or not isinstance(minutes, (int, float)):
            continue
        hours[str(appid)] = minutes / 60.0
    return hours


async def fetch_playtime_hours(
    api_key: str,
    steam_id64: str,
    session: Optional[aiohttp.ClientSession] = None,
) -> Dict[str, float]:
    """Hours per owned app id. Network and payload errors raise ``SteamApiError``."""
    if not api_key.strip() or not steam_id64.strip():
        return {}
    params = {
        "key": api_key,
        "steamid": steam_id64,
        "include_appinfo": "0",
        "include_played_free_games": "1",
        "format": "json",
    }
    owns_session = session is None
    session = session or aiohttp.ClientSession(timeout=API_TIMEOUT)
    try:
        async with session.get(OWNED_GAMES_URL, params=params) as response:
            response.raise_for_status()
            text = await response.text()
        payload = json.loads(text)
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        raise SteamApiError(f"Steam playtime request failed: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise SteamApiError(f"Steam playtime response was not JSON: {exc}") from exc
    finally:
        if owns_session:
            await session.close()
    result = parse_owned_games(payload)
    _LOGGER.info("Fetched playtime for %d owned Steam apps", len(result))
    return result


# ----- Store tags -------------------------------------------------------
def tag_strings(value: Any) -> List[str]:
    """Tags from the shapes apphoverpublic has used: list of str, list of
    ``{"name": ...}``, or an object keyed by tag name."""
    if isinstance(value, list):
        found: List[str] = []
        for item in value:
            if isinstance(item, str):
                found.append(item)
            elif isinstance(item, dict) and isinstance(item.get("name"), str):
                found.append(item["name"])
        return found
    if isinstance(value, dict):
        return [str(name) for name in value.keys()]
    return []


def genres_from_details(payload: Any, appid: str) -> List[str]:
    if not isinstance(payload, dict):
        return []
    root = payload.get(appid)
    if not isinstance(root, dict) or root.get("success") is not True:
        return []
    data = root.get("data")
    genres = data.get("genres") if isinstance(data, dict) else None
    if not isinstance(genres, list):
        return []
    return [g["description"] for g in genres if isinstance(g, dict) and isinstance(g.get("description"), str)]


def tags_from_hover(payload: Any) -> List[str]:
    if not isinstance(payload, dict) or payload.get("success") != 1:
        return []
    return tag_strings(payload.get("tags"))


def clean_store_tags(raw: Iterable[str]) -> List[str]:
    kept = [t.strip() for t in raw if t and t.strip() and t.strip().casefold() not in IGNORED_TAGS]
    return normalize_tags(kept)


async def _get_json(session: aiohttp.ClientSession, url: str, params: Optional[Dict[str, str]] = None) -> Any:
    async with session.get(url, params=params, timeout=STORE_TIMEOUT) as response:
        response.raise_for_status()
        text = await response.text()
    return json.loads(text)


async def fetch_store_tags(appid: str, session: aiohttp.ClientSession) -> List[str]:
    """Genres plus user tags for one app. Each half is best effort."""
    if not appid.strip().isdigit():
        return []
    found: List[str] = []
    try:
        details = await _get_json(session, APP_DETAILS_URL, {"appids": appid, "l": "english"})
        found.extend(genres_from_details(details, appid))
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
        _LOGGER.debug("appdetails failed for %s: %s", appid, exc)
    try:
        hover = await _get_json(session, APP_HOVER_URL.format(appid=appid), {"l": "english"})
        found.extend(tags_from_hover(hover))
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
        _LOGGER.debug("apphoverpublic failed for %s: %s", appid, exc)
    return clean_store_tags(found)


async def import_store_tags(
    appids: Sequence[str],
    progress: Optional[ProgressCallback] = None,
    session: Optional[aiohttp.ClientSession] = None,
    fetch: Optional[Callable[[str, aiohttp.ClientSession], Awaitable[List[str]]]] = None,
    concurrency: int = IMPORT_CONCURRENCY,
) -> Dict[str, List[str]]:
    """Store tags for many apps, at most ``concurrency`` requests in flight.

    Failures for a single app are logged and skipped. ``progress(done, total)``
    fires every ``PROGRESS_EVERY`` completions and once at the end.
    """
    fetch = fetch or fetch_store_tags
    total = len(appids)
    results: Dict[str, List[str]] = {}
    semaphore = asyncio.Semaphore(concurrency)
    done = 0

    owns_session = session is None
    session = session or aiohttp.ClientSession(timeout=STORE_TIMEOUT)

    async def one(appid: str) -> None:
        nonlocal done
        async with semaphore:
            try:
                tags = await fetch(appid, session)
                if tags:
                    results[appid] = tags
            except Exception as exc:  # pragma: no cover - per-item best effort
                _LOGGER.warning("Tag import failed for %s: %s", appid, exc)
            finally:
                done += 1
                if progress and done % PROGRESS_EVERY == 0:
                    progress(done, total)

    try:
        await asyncio.gather(*(one(appid) for appid in appids))
    finally:
        if owns_session:
            await session.close()
    if progress and total % PROGRESS_EVERY != 0:
        progress(total, total)
    _LOGGER.info("Imported store tags for %d of %d apps", len(results), total)
    return results


__all__ = [
    "IMPORT_CONCURRENCY",
    "clean_store_tags",
    "fetch_playtime_hours",
    "fetch_store_tags",
    "genres_from_details",
    "import_store_tags",
    "parse_owned_games",
    "tag_strings",
    "tags_from_hover",
]
