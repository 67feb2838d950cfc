"""Exception types raised by the launcher core."""
from __future__ import annotations


class GameDiceError(Exception):
    """Base class for launcher errors."""


class LaunchError(GameDiceError):
    """A launch target could not be resolved or started."""


class SteamApiError(GameDiceError):
    """The Steam Web API request failed or returned an unusable payload."""


__all__ = ["GameDiceError", "LaunchError", "SteamApiError"]
