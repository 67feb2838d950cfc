"""Per-platform library scanners."""
from __future__ import annotations

from typing import Dict, Optional

from .amazon import AmazonScanner
from .base import Scanner
from .epic import EpicScanner
from .gog import GogScanner
from .registry import RegistryReader
from .riot import RiotScanner
from .steam import SteamScanner
from .ubisoft import UbisoftScanner
from .xbox import XboxScanner

SCANNER_TYPES = (
    SteamScanner,
    EpicScanner,
    GogScanner,
    RiotScanner,
    AmazonScanner,
    XboxScanner,
    UbisoftScanner,
)


def default_scanners(registry: Optional[RegistryReader] = None) -> Dict[str, Scanner]:
    """One scanner per platform, keyed by platform name."""
    return {cls.platform: cls(registry=registry) for cls in SCANNER_TYPES}


__all__ = [
    "AmazonScanner",
    "EpicScanner",
    "GogScanner",
    "RiotScanner",
    "SCANNER_TYPES",
    "Scanner",
    "SteamScanner",
    "UbisoftScanner",
    "XboxScanner",
    "default_scanners",
]
