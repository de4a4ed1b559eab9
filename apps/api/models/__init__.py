"""Models package."""

from .user import User
from .video import Video
from .tweet import Tweet
from .playlist import Playlist, PlaylistVideo
