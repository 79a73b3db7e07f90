"""Recognise YouTube video, playlist and shorts URLs."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from urllib.parse import parse_qs, unquote, urlsplit

MAX_ID_LEN = 128
"""Longest video or playlist ID accepted (real ones are 11 or about 34 chars)."""

_YOUTUBE_HOSTS = frozenset(
    {"youtube.com", "www.youtube.com", "m.youtube.com", "music.youtube.com"}
)
_HTTP_SCHEME = re.compile(r"https?:", re.IGNORECASE)


class URLType(enum.IntEnum):
    """The kind of YouTube URL."""

    INVALID = 0
    SINGLE = 1
    PLAYLIST = 2
    AMBIGUOUS = 3  # a video inside a playlist: both v= and list=

    def __str__(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class ParsedURL:
    """The parsed components of a YouTube URL."""

    type: URLType = URLType.INVALID
    video_id: str = ""
    playlist_id: str = ""


def _is_control(char: str) -> bool:
    code = ord(char)
    return code < 0x20 or 0x7F <= code <= 0x9F


def _clean_id(value: str) -> str:
    value = value.strip()
    if len(value.encode("utf-8")) > MAX_ID_LEN:
        return ""
    return value


def parse_youtube_url(raw: str) -> ParsedURL:
    """Detect whether a URL points to a single video, a playlist, or both."""
    invalid = ParsedURL()

    if any(_is_control(char) for char in raw):
        return invalid
    if not _HTTP_SCHEME.match(raw):
        return invalid

    try:
        parts = urlsplit(raw)
        host = (parts.hostname or "").lower()
    except ValueError:
        return invalid
    if parts.scheme not in ("http", "https"):
        return invalid

    query = parse_qs(parts.query, keep_blank_values=True)

    def first(key: str) -> str:
        values = query.get(key)
        return values[0] if values else ""

    path = unquote(parts.path)
    video_id = ""
    playlist_id = ""

    if host == "youtu.be":
        video_id = path.removeprefix("/")
        playlist_id = first("list")
    elif host in _YOUTUBE_HOSTS:
        if path.startswith("/watch"):
            video_id = first("v")
            playlist_id = first("list")
        elif path.startswith("/playlist"):
            playlist_id = first("list")
        elif path.startswith("/shorts/"):
            video_id = path.removeprefix("/shorts/")
    else:
        return invalid

    video_id = _clean_id(video_id)
    playlist_id = _clean_id(playlist_id)

    if video_id and playlist_id:
        kind = URLType.AMBIGUOUS
    elif playlist_id:
        kind = URLType.PLAYLIST
    elif video_id:
        kind = URLType.SINGLE
    else:
        kind = URLType.INVALID

    return ParsedURL(type=kind, video_id=video_id, playlist_id=playlist_id)