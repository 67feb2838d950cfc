from __future__ import annotations

import json
import sys

import pytest

from conftest import make_game

from gamedice import protect
from gamedice.models import Config, ConfigStore, default_config_dir, key_of


def test_keys_are_case_insensitive():
    game = make_game("epic", "Fortnite", "Fortnite")
    assert game.key == "epic:Fortnite"
    assert game.lookup_key == "epic:fortnite"
    assert key_of("EPIC", "FORTNITE") == game.lookup_key


def test_display_playtime_prefers_steam_hours():
    game = make_game("steam", "1", "One", tracked_playtime_hours=2.0)
    assert game.display_playtime_hours == 2.0
    game.playtime_hours = 5.0
    assert game.display_playtime_hours == 5.0


def test_missing_config_gives_defaults(tmp_path):
    store = ConfigStore(tmp_path)
    assert store.config == Config()
    assert store.config.include_steam is True
    assert store.config.enabled_platforms() == ["steam", "epic", "gog", "riot", "amazon", "xbox", "ubisoft"]


def test_corrupt_config_falls_back_to_defaults(tmp_path):
    (tmp_path / "config.json").write_text("{ not json", encoding="utf-8")
    assert ConfigStore(tmp_path).config == Config()


def test_wrongly_typed_config_falls_back_to_defaults(tmp_path):
    (tmp_path / "config.json").write_text(json.dumps({"launch_history": "nope"}), encoding="utf-8")
    assert ConfigStore(tmp_path).config == Config()


def test_loaded_maps_are_casefolded(tmp_path):
    payload = {
        "excluded": ["Steam:10", "steam:10"],
        "favorites": ["EPIC:Hades"],
        "tracked_playtime_seconds": {"Epic:Hades": 60},
        "tags_by_game_key": {"GOG:1": ["rpg"]},
        "include_xbox": False,
    }
    (tmp_path / "config.json").write_text(json.dumps(payload), encoding="utf-8")
    config = ConfigStore(tmp_path).config

    assert config.excluded == ["steam:10"]
    assert config.favorites == ["epic:hades"]
    assert config.tracked_playtime_seconds == {"epic:hades": 60}
    assert config.tags_by_game_key == {"gog:1": ["rpg"]}
    assert "xbox" not in config.enabled_platforms()


def test_save_and_reload(tmp_path):
    store = ConfigStore(tmp_path / "nested" / "dir")
    store.config.use_playtime_weighting = True
    store.config.filter_tags = ["rpg"]
    store.save()

    again = ConfigStore(tmp_path / "nested" / "dir")
    assert again.config.use_playtime_weighting is True
    assert again.config.filter_tags == ["rpg"]


@pytest.mark.skipif(sys.platform.startswith("win"), reason="DPAPI path")
def test_api_key_is_not_stored_in_clear(tmp_path):
    store = ConfigStore(tmp_path)
    store.set_steam_api_key("ABCDEF123456")
    raw = (tmp_path / "config.json").read_text(encoding="utf-8")
    assert "ABCDEF123456" not in raw
    assert ConfigStore(tmp_path).steam_api_key() == "ABCDEF123456"


def test_unprotect_garbage_is_empty():
    assert protect.unprotect("not-a-token") == ""
    assert protect.unprotect("") == ""
    assert protect.protect("   ") == ""


@pytest.mark.skipif(sys.platform.startswith("win"), reason="XDG layout")
def test_default_config_dir_uses_xdg(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    assert default_config_dir() == tmp_path / "RandomGameLauncher"
