"""Tag normalisation and the library filter model."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, Union

from .models import Config, GameEntry

_SPLIT_RE = re.compile(r"[,;\t\r\n]")

TagSource = Union[str, Iterable[str], None]


def normalize_tags(raw: TagSource) -> List[str]:
    """Split, trim, strip ``#``, lowercase, dedupe and sort tag text.

    Manual entry and imported store tags both pass through here so the two
    sources merge without duplicates.
    """
    if raw is None:
        return []
    if not isinstance(raw, str):
        raw = ",".join(str(part) for part in raw if part is not None)
    if not raw.strip():
        return []

    seen = set()
    result: List[str] = []
    for part in _SPLIT_RE.split(raw):
        tag = part.strip().lstrip("#").strip().lower()
        if not tag or tag in seen:
            continue
        seen.add(tag)
        result.append(tag)
    return sorted(result)


def effective_tags(entry: GameEntry) -> List[str]:
    return normalize_tags(list(entry.tags) + list(entry.auto_tags))


def get_tags(config: Config, entry: GameEntry) -> List[str]:
    return normalize_tags(config.tags_by_game_key.get(entry.lookup_key))


def get_auto_tags(config: Config, entry: GameEntry) -> List[str]:
    return normalize_tags(config.auto_tags_by_game_key.get(entry.lookup_key))


def _clean(tags: Iterable[str]) -> List[str]:
    return [t.strip() for t in tags if t and t.strip()]


def set_tags(config: Config, entry: GameEntry, tags: Sequence[str]) -> List[str]:
    """Store manual tags for ``entry``; an empty list drops the key."""
    cleaned = _clean(tags)
    if not cleaned:
        config.tags_by_game_key.pop(entry.lookup_key, None)
    else:
        config.tags_by_game_key[entry.lookup_key] = cleaned
    entry.tags = cleaned
    return cleaned


def set_auto_tags(config: Config, entry: GameEntry, tags: Sequence[str]) -> List[str]:
    cleaned = _clean(tags)
    if not cleaned:
        config.auto_tags_by_game_key.pop(entry.lookup_key, None)
    else:
        config.auto_tags_by_game_key[entry.lookup_key] = cleaned
    entry.auto_tags = cleaned
    return cleaned


def known_tags(entries: Iterable[GameEntry]) -> List[str]:
    tags = {tag for entry in entries for tag in effective_tags(entry)}
    return sorted(tags)


@dataclass
class GameFilter:
    """What the random pick is allowed to choose from."""

    favorites_only: bool = False
    search_text: str = ""
    tags: List[str] = field(default_factory=list)
    match_all: bool = False

    @classmethod
    def from_config(cls, config: Config, search_text: str = "") -> "GameFilter":
        return cls(
            favorites_only=config.favorites_only,
            search_text=search_text,
            tags=normalize_tags(config.filter_tags),
            match_all=config.match_all_tags,
        )

    def matches(self, entry: GameEntry) -> bool:
        if self.favorites_only and not entry.favorite:
            return False
        query = self.search_text.strip().lower()
        if query and query not in entry.name.lower():
            return False
        wanted = normalize_tags(self.tags)
        if wanted:
            have = set(effective_tags(entry))
            if self.match_all:
                return all(tag in have for tag in wanted)
            return any(tag in have for tag in wanted)
        return True

    def pick_pool(self, entries: Iterable[GameEntry]) -> List[GameEntry]:
        return [e for e in entries if e.included and self.matches(e)]

    def tags_csv(self) -> str:
        return ",".join(normalize_tags(self.tags))


__all__ = [
    "GameFilter",
    "effective_tags",
    "get_auto_tags",
    "get_tags",
    "known_tags",
    "normalize_tags",
    "set_auto_tags",
    "set_tags",
]
