from __future__ import annotations

import json
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from gamedice.scanners import EpicScanner, SteamScanner
from gamedice.scanners.steam import steam_id_from_login_users
from gamedice.scanners.vdf import find_key, parse_vdf


def _write_manifest(steamapps: Path, appid: str, name: str, installdir: str) -> None:
    steamapps.mkdir(parents=True, exist_ok=True)
    content = (
        '"AppState"\n'
        '{\n'
        f'    "appid" "{appid}"\n'
        f'    "name" "{name}"\n'
        f'    "installdir" "{installdir}"\n'
        '}\n'
    )
    (steamapps / f"appmanifest_{appid}.acf").write_text(content, encoding="utf-8")


def test_parse_vdf_nested_and_comments():
    data = parse_vdf(
        '// header\n'
        '"AppState"\n{\n  "appid"  "10"\n  "UserConfig" { "name" "Counter-Strike" }\n}\n'
    )
    state = find_key(data, "appstate")
    assert state["appid"] == "10"
    assert find_key(state, "userconfig")["name"] == "Counter-Strike"


def test_parse_vdf_unbalanced_keeps_partial():
    data = parse_vdf('"a" { "b" "1"')
    assert data == {"a": {"b": "1"}}


def test_scan_steam_extracts_appid(tmp_path, registry):
    steam_root = tmp_path / "Steam"
    steamapps = steam_root / "steamapps"
    (steamapps / "common" / "ExampleGame").mkdir(parents=True)
    _write_manifest(steamapps, "12345", "Example Game", "ExampleGame")

    library_content = (
        '"libraryfolders"\n'
        '{\n'
        '    "0"\n'
        '    {\n'
        f'        "path" "{steam_root.as_posix()}"\n'
        '    }\n'
        '}\n'
    )
    (steamapps / "libraryfolders.vdf").write_text(library_content, encoding="utf-8")

    scanner = SteamScanner(roots=[steam_root], registry=registry)
    results = scanner.scan()
    assert len(results) == 1
    game = results[0]
    assert game.id == "12345"
    assert game.name == "Example Game"
    assert game.supports_playtime is True
    assert Path(game.install_path) == steamapps / "common" / "ExampleGame"
    assert scanner.resolve_launch_target(game.id).command == "steam://rungameid/12345"


def test_scan_steam_dedupes_across_libraries(tmp_path, registry):
    steam_root = tmp_path / "Steam"
    second = tmp_path / "Library2"
    _write_manifest(steam_root / "steamapps", "440", "Team Fortress 2", "Team Fortress 2")
    _write_manifest(second / "steamapps", "440", "Team Fortress 2", "Team Fortress 2")
    _write_manifest(second / "steamapps", "570", "Dota 2", "dota 2 beta")
    (steam_root / "steamapps" / "libraryfolders.vdf").write_text(
        '"libraryfolders"\n{\n "1"\n {\n  "path" "%s"\n }\n}\n' % second.as_posix(),
        encoding="utf-8",
    )

    results = SteamScanner(roots=[steam_root], registry=registry).scan()
    assert [g.key for g in results] == ["steam:570", "steam:440"]


def test_scan_steam_skips_manifest_without_name(tmp_path, registry):
    steamapps = tmp_path / "Steam" / "steamapps"
    steamapps.mkdir(parents=True)
    (steamapps / "appmanifest_1.acf").write_text('"AppState" { "appid" "1" }', encoding="utf-8")
    assert SteamScanner(roots=[tmp_path / "Steam"], registry=registry).scan() == []


def test_steam_scanner_without_roots_is_empty(tmp_path, registry):
    assert SteamScanner(roots=[tmp_path / "missing"], registry=registry).scan() == []


def test_login_users_prefers_most_recent(tmp_path):
    path = tmp_path / "loginusers.vdf"
    path.write_text(
        '"users"\n{\n'
        ' "76561198000000001" { "MostRecent" "0" "Timestamp" "200" }\n'
        ' "76561198000000002" { "MostRecent" "1" "Timestamp" "100" }\n'
        ' "12345" { "MostRecent" "1" "Timestamp" "999" }\n'
        '}\n',
        encoding="utf-8",
    )
    assert steam_id_from_login_users(path) == "76561198000000002"


def test_login_users_falls_back_to_timestamp(tmp_path):
    path = tmp_path / "loginusers.vdf"
    path.write_text(
        '"users"\n{\n'
        ' "76561198000000001" { "Timestamp" "200" }\n'
        ' "76561198000000002" { "Timestamp" "100" }\n'
        '}\n',
        encoding="utf-8",
    )
    assert steam_id_from_login_users(path) == "76561198000000001"


def test_scan_epic_extracts_app_name(tmp_path, registry):
    payload = {
        "AppName": "ExampleApp",
        "DisplayName": "Example App",
        "InstallLocation": str((tmp_path / "ExampleApp").as_posix()),
    }
    (tmp_path / "Sample.item").write_text(json.dumps(payload), encoding="utf-8")
    (tmp_path / "Removed.item").write_text(
        json.dumps({"AppName": "Gone", "DisplayName": "Gone", "bIsInstalled": False}), encoding="utf-8"
    )
    (tmp_path / "Broken.item").write_text("{not json", encoding="utf-8")

    scanner = EpicScanner(manifest_dir=tmp_path, registry=registry)
    results = scanner.scan()
    assert [g.key for g in results] == ["epic:ExampleApp"]
    app = results[0]
    assert app.name == "Example App"
    assert app.supports_playtime is False
    target = scanner.resolve_launch_target(app.id)
    assert target.is_uri
    assert target.command == "com.epicgames.launcher://apps/ExampleApp?action=launch&silent=true"


def test_unreadable_library_does_not_hide_other_libraries(tmp_path, registry, monkeypatch):
    steam_root = tmp_path / "Steam"
    locked = tmp_path / "Lib2"
    _write_manifest(steam_root / "steamapps", "440", "Team Fortress 2", "Team Fortress 2")
    _write_manifest(locked / "steamapps", "570", "Dota 2", "dota 2 beta")
    (steam_root / "steamapps" / "libraryfolders.vdf").write_text(
        '"libraryfolders"\n{\n "1"\n {\n  "path" "%s"\n }\n}\n' % locked.as_posix(),
        encoding="utf-8",
    )

    original_is_dir = Path.is_dir
    blocked = locked / "steamapps"

    def is_dir(self, *args, **kwargs):
        if self == blocked:
            raise PermissionError(13, "denied", str(self))
        return original_is_dir(self, *args, **kwargs)

    monkeypatch.setattr(Path, "is_dir", is_dir)
    results = SteamScanner(roots=[steam_root], registry=registry).scan()
    assert [g.key for g in results] == ["steam:440"]


def test_scan_steam_results_are_sorted_by_name(tmp_path, registry):
    steamapps = tmp_path / "Steam" / "steamapps"
    _write_manifest(steamapps, "1", "zeta", "zeta")
    _write_manifest(steamapps, "2", "Alpha", "alpha")
    results = SteamScanner(roots=[tmp_path / "Steam"], registry=registry).scan()
    assert [g.name for g in results] == ["Alpha", "zeta"]
