"""Fetch YouTube metadata and download audio through yt-dlp."""

from __future__ import annotations

import json
import os
import subprocess
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

YTDLP = "yt-dlp"
WATCH_URL = "https://www.youtube.com/watch?v={}"
FETCH_TIMEOUT = 5 * 60.0
DOWNLOAD_TIMEOUT = 10 * 60.0
_MAX_ERROR_OUTPUT = 512


class YouTubeError(Exception):
    """Raised when yt-dlp fails or returns something unusable."""


@dataclass(frozen=True)
class VideoMeta:
    """Metadata for a single YouTube video."""

    id: str
    title: str
    duration: timedelta
    url: str


def _seconds(value: Any) -> timedelta:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return timedelta(seconds=value)
        except (ValueError, OverflowError):
            return timedelta(0)
    return timedelta(0)


def _dump_json(url: str, playlist_flag: str, what: str, timeout: float | None) -> dict:
    args = [YTDLP, "--dump-single-json", "--no-warnings", playlist_flag, url]
    try:
        result = subprocess.run(args, capture_output=True, timeout=timeout, check=False)
    except subprocess.TimeoutExpired as err:
        raise YouTubeError(f"fetching {what}: timed out after {timeout}s") from err
    except OSError as err:
        raise YouTubeError(f"fetching {what}: {err}") from err

    if result.returncode != 0:
        detail = (result.stderr or b"").decode("utf-8", "replace").strip()
        raise YouTubeError(
            f"fetching {what}: yt-dlp exit status {result.returncode}: {detail}"
        )
    try:
        info = json.loads(result.stdout)
    except ValueError as err:
        raise YouTubeError(f"fetching {what}: bad metadata: {err}") from err
    if not isinstance(info, dict):
        raise YouTubeError(f"fetching {what}: bad metadata")
    return info


def fetch_playlist_meta(
    playlist_url: str, timeout: float | None = FETCH_TIMEOUT
) -> tuple[str, list[VideoMeta]]:
    """Return the playlist title and the metadata of each video in it."""
    info = _dump_json(playlist_url, "--yes-playlist", "playlist", timeout)
    videos = []
    for entry in info.get("entries") or []:
        if not isinstance(entry, dict):
            continue
        video_id = str(entry.get("id") or "")
        videos.append(
            VideoMeta(
                id=video_id,
                title=str(entry.get("title") or ""),
                duration=_seconds(entry.get("duration")),
                url=WATCH_URL.format(video_id),
            )
        )
    return str(info.get("title") or ""), videos


def fetch_video_meta(video_url: str, timeout: float | None = FETCH_TIMEOUT) -> VideoMeta:
    """Return the metadata of a single video."""
    info = _dump_json(video_url, "--no-playlist", "video", timeout)
    return VideoMeta(
        id=str(info.get("id") or ""),
        title=str(info.get("title") or ""),
        duration=_seconds(info.get("duration")),
        url=video_url,
    )


def download_audio(
    video_url: str,
    dest_path: str | os.PathLike,
    bitrate: int,
    normalize: bool,
    timeout: float | None = DOWNLOAD_TIMEOUT,
) -> None:
    """Download a video as mp3 at ``dest_path``.

    With ``normalize`` the FFmpeg loudnorm filter evens out volume across tracks.
    """
    base = str(dest_path).removesuffix(".mp3")
    args = [
        YTDLP,
        "--extract-audio",
        "--audio-format", "mp3",
        "--audio-quality", f"{bitrate}k",
        "--output", base + ".%(ext)s",
        "--no-playlist",
        "--quiet",
        "--no-warnings",
    ]
    if normalize:
        args += ["--postprocessor-args", "ffmpeg:-af loudnorm"]
    args.append(video_url)

    try:
        result = subprocess.run(
            args,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as err:
        raise YouTubeError(f"yt-dlp: timed out after {timeout}s") from err
    except OSError as err:
        raise YouTubeError(f"yt-dlp: {err}") from err

    if result.returncode != 0:
        message = (result.stdout or b"").decode("utf-8", "replace").strip()
        if len(message.encode("utf-8")) > _MAX_ERROR_OUTPUT:
            message = message[:_MAX_ERROR_OUTPUT] + "…"
        raise YouTubeError(f"yt-dlp: exit status {result.returncode}\n{message}")