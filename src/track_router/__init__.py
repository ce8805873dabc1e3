"""Land-avoidance rerouting for predicted animal movement tracks."""

__all__ = [
    "core",
    "barrier",
    "routing",
    "data",
    "api",
    "cli",
]
