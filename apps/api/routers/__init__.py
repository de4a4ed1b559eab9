"""Routers package."""

from . import (
    health,
    users,
    tweets,
    videos,
    playlists,
)
