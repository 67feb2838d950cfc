"""Application entry point: scan, pick a random game, launch it and track the session."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from PySide6 import QtCore

from gamedice.history import format_local
from gamedice.library import LibraryService
from gamedice.models import APP_TITLE, ConfigStore
from gamedice.tags import GameFilter, normalize_tags
from gamedice.tracker import TrackerState

LOG_DIR = Path(__file__).resolve().parent / "logs"
LOG_DIR.mkdir(exist_ok=True)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.FileHandler(LOG_DIR / "app.log", encoding="utf-8"),
        logging.StreamHandler(),
    ],
)

LOGGER = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="gamedice", description=APP_TITLE)
    parser.add_argument("--config-dir", type=Path, default=None, help="where config.json lives")
    parser.add_argument("--list", action="store_true", help="list the library and exit")
    parser.add_argument("--history", action="store_true", help="print launch history statistics and exit")
    parser.add_argument("--tags", default=None, help="comma separated tag filter")
    parser.add_argument("--match-all", action="store_true", help="require every filter tag")
    parser.add_argument("--favorites-only", action="store_true", help="only pick favorites (saved)")
    parser.add_argument("--weighted", action="store_true", help="weight the pick by Steam playtime (saved)")
    parser.add_argument("--fetch-playtime", action="store_true", help="refresh Steam hours before picking")
    parser.add_argument("--import-tags", action="store_true", help="import Steam store tags before picking")
    parser.add_argument("--no-track", action="store_true", help="launch without tracking the session")
    return parser.parse_args(argv)


def print_library(service: LibraryService) -> None:
    for game in service.games:
        hours = game.display_playtime_hours
        flags = ("*" if game.favorite else " ") + (" " if game.included else "x")
        line = f"{flags} {game.key:<40} {game.name}"
        if hours is not None:
            line += f"  [{hours:.1f} h]"
        print(line)


def print_history(service: LibraryService) -> None:
    for entry in reversed(service.config.launch_history[-20:]):
        state = "ok" if entry.launched else f"failed: {entry.error}"
        print(f"{format_local(entry.timestamp)}  {entry.name} ({entry.platform})  {state}")
    print()
    print(service.history_stats_text())


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    app = QtCore.QCoreApplication(sys.argv[:1])

    store = ConfigStore(args.config_dir)
    service = LibraryService(store)
    if args.weighted:
        store.config.use_playtime_weighting = True
    if args.favorites_only:
        store.config.favorites_only = True
    if args.tags is not None:
        service.set_filter(normalize_tags(args.tags), args.match_all)
    elif args.match_all:
        service.set_filter(store.config.filter_tags, True)

    if args.history:
        print_history(service)
        return 0

    service.refresh_library()
    if args.fetch_playtime:
        asyncio.run(service.fetch_playtime())
    if args.import_tags:
        asyncio.run(service.import_store_tags())
    if args.list:
        print_library(service)
        return 0

    record = service.launch_random(GameFilter.from_config(store.config))
    print(service.status_text)
    if record is None or not record.launched or args.no_track:
        service.shutdown()
        return 0 if record is not None and record.launched else 1

    def quit_when_idle() -> None:
        if service.tracker.state is TrackerState.IDLE:
            app.quit()

    watcher = QtCore.QTimer()
    watcher.setInterval(1000)
    watcher.timeout.connect(quit_when_idle)
    watcher.start()
    try:
        app.exec()
    except KeyboardInterrupt:
        LOGGER.info("Interrupted; flushing session")
    finally:
        service.shutdown()
    print(service.status_text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
