"""bggproxy: rate-limited, cached access to the board game database XML API."""

__version__ = "1.0.0"
