"""Amazon Games: JSON manifests, with the newer sqlite catalog as fallback."""
from __future__ import annotations

import json
import logging
import re
import sqlite3
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from ..errors import LaunchError
from ..launching import LaunchTarget
from ..models import GameEntry
from .base import Scanner, first_bool, first_string, is_dir, local_app_data, program_data

_LOGGER = logging.getLogger(__name__)

URI_TEMPLATE = "amazon-games://play/{id}"

INSTALL_ROW_LIMIT = 1200
NAME_ROW_LIMIT = 4000

_ID_COLUMNS = ("productid", "product_id", "asin", "gameid", "id", "product")
_NAME_COLUMNS = ("title", "name", "displayname", "producttitle")
_INSTALL_COLUMNS = ("installlocation", "installpath", "install_dir", "path", "location")
_INSTALLED_COLUMNS = ("installed", "isinstalled", "bisinstalled", "is_installed", "installationstate")

_ASIN_RE = re.compile(r"^[A-Za-z0-9]{10}$")


def default_manifest_dirs() -> List[Path]:
    lad = local_app_data()
    return [
        lad / "Amazon Games" / "Data" / "Manifests",
        lad / "Amazon Games" / "GameLibrary" / "Manifests",
        program_data() / "Amazon" / "Amazon Games" / "Data" / "Manifests",
    ]


def default_sql_dir() -> Path:
    return local_app_data() / "Amazon Games" / "Data" / "Games" / "Sql"


def is_plausible_id(value: Optional[str]) -> bool:
    if not value or not value.strip():
        return False
    if value.lower().startswith("amzn1."):
        return True
    try:
        uuid.UUID(value)
        return True
    except ValueError:
        pass
    return bool(_ASIN_RE.match(value))


def pick_column(columns: Sequence[str], wants: Sequence[str]) -> Optional[str]:
    """Exact case-insensitive match first, then substring match."""
    for want in wants:
        for column in columns:
            if column.lower() == want:
                return column
    for want in wants:
        for column in columns:
            if want in column.lower():
                return column
    return None


def _quote(ident: str) -> str:
    return '"' + ident.replace('"', '""') + '"'


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    text = str(value).strip()
    return text or None


def _as_boolish(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, (bool, int)):
        return bool(value)
    text = _as_text(value)
    if not text:
        return None
    lowered = text.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    try:
        return int(lowered) != 0
    except ValueError:
        pass
    if "installed" in lowered:
        return True
    return None


class _SqlCatalog:
    """What the sqlite files say about installs and titles."""

    def __init__(self) -> None:
        self.installs: Dict[str, str] = {}
        self.names: Dict[str, str] = {}
        self.installed_flags: Dict[str, str] = {}

    def read(self, db_path: Path) -> None:
        uri = f"{db_path.resolve().as_uri()}?mode=ro"
        con = sqlite3.connect(uri, uri=True)
        try:
            tables = [
                row[0]
                for row in con.execute(
                    "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
                )
            ]
            for table in tables:
                try:
                    self._read_table(con, table)
                except sqlite3.Error as exc:
                    _LOGGER.debug("Skipping table %s in %s: %s", table, db_path, exc)
        finally:
            con.close()

    def _read_table(self, con: sqlite3.Connection, table: str) -> None:
        columns = [row[1] for row in con.execute(f"PRAGMA table_info({_quote(table)})") if row[1]]
        if not columns:
            return
        id_col = pick_column(columns, _ID_COLUMNS)
        if id_col is None:
            return
        name_col = pick_column(columns, _NAME_COLUMNS)
        install_col = pick_column(columns, _INSTALL_COLUMNS)
        installed_col = pick_column(columns, _INSTALLED_COLUMNS)

        if install_col or installed_col:
            sql = "SELECT {}, {}, {} FROM {}".format(
                _quote(id_col),
                _quote(install_col) if install_col else "NULL",
                _quote(installed_col) if installed_col else "NULL",
                _quote(table),
            )
            for raw_id, raw_install, raw_installed in con.execute(sql).fetchmany(INSTALL_ROW_LIMIT):
                game_id = _as_text(raw_id)
                if not game_id or not is_plausible_id(game_id):
                    continue
                install = _as_text(raw_install)
                if install and is_dir(install):
                    self.installs.setdefault(game_id.casefold(), install)
                    self.installed_flags.setdefault(game_id.casefold(), game_id)
                elif _as_boolish(raw_installed) is True:
                    self.installed_flags.setdefault(game_id.casefold(), game_id)

        if name_col:
            sql = f"SELECT {_quote(id_col)}, {_quote(name_col)} FROM {_quote(table)}"
            for raw_id, raw_name in con.execute(sql).fetchmany(NAME_ROW_LIMIT):
                game_id = _as_text(raw_id)
                name = _as_text(raw_name)
                if game_id and name and is_plausible_id(game_id):
                    self.names[game_id.casefold()] = name


class AmazonScanner(Scanner):
    platform = "amazon"

    def __init__(
        self,
        manifest_dirs: Optional[Sequence[Path]] = None,
        sql_dir: Optional[Path] = None,
        registry=None,
    ):
        super().__init__(registry)
        self.manifest_dirs = list(manifest_dirs) if manifest_dirs is not None else default_manifest_dirs()
        self.sql_dir = sql_dir or default_sql_dir()

    def parse_manifest(self, path: Path) -> Optional[GameEntry]:
        try:
            data = json.loads(path.read_text(encoding="utf-8", errors="ignore"))
        except (OSError, json.JSONDecodeError) as exc:
            _LOGGER.warning("Failed to parse Amazon manifest %s: %s", path, exc)
            return None
        if not isinstance(data, dict):
            return None
        if not first_bool(data, "installed", "isInstalled", default=True):
            return None
        game_id = first_string(data, "id", "productId", "asin", "gameId") or path.stem
        name = first_string(data, "title", "name", "productTitle", "displayName") or game_id
        install_path = first_string(data, "installPath", "installLocation", "path") or ""
        if not game_id or not name:
            return None
        return self.entry(game_id, name, install_path)

    def scan_manifests(self) -> List[GameEntry]:
        games: List[GameEntry] = []
        for directory in self.manifest_dirs:
            if not is_dir(str(directory)):
                continue
            try:
                files = sorted(directory.glob("*.json"))
            except OSError as exc:
                _LOGGER.warning("Cannot list %s: %s", directory, exc)
                continue
            for path in files:
                entry = self.parse_manifest(path)
                if entry is not None:
                    games.append(entry)
        return games

    def scan_sqlite(self) -> List[GameEntry]:
        if not is_dir(str(self.sql_dir)):
            return []
        try:
            db_paths = sorted(self.sql_dir.glob("*.sqlite"))
        except OSError as exc:
            _LOGGER.warning("Cannot list %s: %s", self.sql_dir, exc)
            return []
        catalog = _SqlCatalog()
        for db_path in db_paths:
            try:
                catalog.read(db_path)
            except (sqlite3.Error, OSError) as exc:
                _LOGGER.warning("Failed to read Amazon catalog %s: %s", db_path, exc)

        games: List[GameEntry] = []
        seen: Set[str] = set()
        for folded, game_id in catalog.installed_flags.items():
            if folded in seen:
                continue
            seen.add(folded)
            name = catalog.names.get(folded) or game_id
            games.append(self.entry(game_id, name, catalog.installs.get(folded, "")))
        return games

    def _scan(self) -> Iterable[GameEntry]:
        games = self.scan_manifests()
        if not games:
            games = self.scan_sqlite()
        return games

    def resolve_launch_target(self, game_id: str) -> LaunchTarget:
        if not game_id or not game_id.strip():
            raise LaunchError("Amazon game id is empty")
        return LaunchTarget.uri(URI_TEMPLATE.format(id=game_id))


__all__ = ["AmazonScanner", "is_plausible_id", "pick_column"]
