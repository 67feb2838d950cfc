"""Start a resolved launch target: a store URI or an executable with arguments."""
from __future__ import annotations

import logging
import os
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from .errors import LaunchError

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class LaunchTarget:
    """Either a URI handed to the shell or a command started directly."""

    command: str
    args: List[str] = field(default_factory=list)
    is_uri: bool = False
    working_dir: Optional[str] = None

    @classmethod
    def uri(cls, value: str) -> "LaunchTarget":
        return cls(command=value, is_uri=True)

    @classmethod
    def process(cls, command: str, args: Sequence[str] = (), working_dir: Optional[str] = None) -> "LaunchTarget":
        return cls(command=command, args=list(args), working_dir=working_dir)

    def describe(self) -> str:
        if self.is_uri or not self.args:
            return self.command
        return " ".join([self.command, *self.args])


def _open_uri(uri: str) -> None:
    if sys.platform.startswith("win"):
        os.startfile(uri)  # type: ignore[attr-defined]
    elif sys.platform == "darwin":
        subprocess.Popen(["open", uri])
    else:
        subprocess.Popen(["xdg-open", uri])


def _spawn(command: str, args: Sequence[str], cwd: Optional[str]) -> None:
    if not cwd:
        parent = Path(command).parent
        cwd = str(parent) if str(parent) not in ("", ".") and parent.is_dir() else None
    subprocess.Popen([command, *args], cwd=cwd)


def launch(target: LaunchTarget) -> None:
    """Fire and forget. Raises ``LaunchError`` when the OS refuses."""
    try:
        if target.is_uri:
            _open_uri(target.command)
        else:
            _spawn(target.command, target.args, target.working_dir)
    except OSError as exc:
        _LOGGER.error("Failed to launch %s: %s", target.describe(), exc)
        raise LaunchError(f"Failed to launch {target.describe()}: {exc}") from exc
    _LOGGER.info("Launched %s", target.describe())


__all__ = ["LaunchTarget", "launch"]
