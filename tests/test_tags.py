from __future__ import annotations

from conftest import make_game

from gamedice.models import Config
from gamedice.tags import GameFilter, effective_tags, known_tags, normalize_tags, set_auto_tags, set_tags


def test_normalize_splits_trims_and_sorts():
    assert normalize_tags(" #RPG; co-op,\tIndie\n#rpg ,, ") == ["co-op", "indie", "rpg"]
    assert normalize_tags(["Action", " action ", "#Puzzle"]) == ["action", "puzzle"]
    assert normalize_tags(None) == []
    assert normalize_tags("   ") == []


def test_normalize_is_idempotent_and_order_insensitive():
    once = normalize_tags("b, A, #c")
    assert normalize_tags(once) == once
    assert normalize_tags("#c,a,B") == once


def test_set_tags_empty_removes_key():
    config = Config()
    game = make_game("steam", "10", "Ten")
    set_tags(config, game, ["co-op", " "])
    assert config.tags_by_game_key == {"steam:10": ["co-op"]}
    assert game.tags == ["co-op"]

    set_tags(config, game, [])
    assert "steam:10" not in config.tags_by_game_key
    assert game.tags == []


def test_set_auto_tags_uses_casefolded_key():
    config = Config()
    game = make_game("epic", "Fortnite", "Fortnite")
    set_auto_tags(config, game, ["shooter"])
    assert config.auto_tags_by_game_key == {"epic:fortnite": ["shooter"]}


def test_effective_and_known_tags_merge_sources():
    a = make_game("steam", "1", "A", tags=["co-op"], auto_tags=["Action", "co-op"])
    b = make_game("gog", "2", "B", tags=["retro"])
    assert effective_tags(a) == ["action", "co-op"]
    assert known_tags([a, b]) == ["action", "co-op", "retro"]


def test_filter_any_and_all():
    a = make_game("steam", "1", "A", tags=["co-op", "rpg"])
    b = make_game("steam", "2", "B", auto_tags=["rpg"])
    c = make_game("steam", "3", "C")
    games = [a, b, c]

    assert GameFilter(tags=["co-op", "rpg"]).pick_pool(games) == [a, b]
    assert GameFilter(tags=["co-op", "rpg"], match_all=True).pick_pool(games) == [a]
    assert GameFilter().pick_pool(games) == games


def test_filter_respects_included_favorites_and_search():
    a = make_game("steam", "1", "Portal", favorite=True)
    b = make_game("steam", "2", "Portal 2", included=False, favorite=True)
    c = make_game("steam", "3", "Half-Life")

    assert GameFilter(favorites_only=True).pick_pool([a, b, c]) == [a]
    assert GameFilter(search_text="portal").pick_pool([a, b, c]) == [a]
    assert GameFilter(search_text="half").matches(c)


def test_filter_from_config():
    config = Config(filter_tags=["RPG", "#Indie"], match_all_tags=True, favorites_only=True)
    game_filter = GameFilter.from_config(config)
    assert game_filter.tags == ["indie", "rpg"]
    assert game_filter.match_all is True
    assert game_filter.tags_csv() == "indie,rpg"


def test_order_and_duplicates_do_not_matter():
    assert normalize_tags("B,a,a") == normalize_tags("a, B") == ["a", "b"]
