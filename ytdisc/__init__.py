"""Download YouTube playlists and videos as MP3 folders sized for audio CDs."""

__version__ = "0.1.0"