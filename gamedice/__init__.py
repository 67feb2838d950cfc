"""Pick a random installed game across PC storefronts, launch it, track the session."""

__version__ = "0.1.0"
