"""Live process inspection for playtime tracking."""
from __future__ import annotations

import logging
import os
from typing import Iterable, List

import psutil

_LOGGER = logging.getLogger(__name__)


def list_process_paths() -> List[str]:
    """Executable paths of running processes; unreadable ones are skipped."""
    paths: List[str] = []
    for proc in psutil.process_iter(["exe"]):
        try:
            exe = proc.info.get("exe")
        except (psutil.AccessDenied, psutil.NoSuchProcess, psutil.ZombieProcess):
            continue
        if exe:
            paths.append(exe)
    return paths


def normalize_root(install_path: str) -> str:
    """Absolute, case-folded, separator-terminated form of an install folder."""
    root = os.path.normcase(os.path.abspath(install_path)).casefold()
    if not root.endswith((os.sep, "/")):
        root += os.sep
    return root


def is_under(path: str, root: str) -> bool:
    try:
        full = os.path.normcase(os.path.abspath(path)).casefold()
    except (TypeError, ValueError):
        return False
    return full.startswith(root)


def any_process_under(install_path: str, process_paths: Iterable[str]) -> bool:
    root = normalize_root(install_path)
    return any(is_under(path, root) for path in process_paths)


__all__ = ["any_process_under", "is_under", "list_process_paths", "normalize_root"]
