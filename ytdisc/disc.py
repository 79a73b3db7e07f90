"""Disc folders on disk and the mp3 tracks inside them."""

from __future__ import annotations

import os
import re
import subprocess
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Iterable

AUDIO_CD_CAPACITY = timedelta(minutes=80)
DISCARDED_DIR = "discarded"

_TRACK_PREFIX = re.compile(r"[+-]?[0-9]+")


@dataclass
class Song:
    """An audio file on a disc."""

    path: Path
    name: str
    track_num: int = 0
    duration: timedelta = timedelta(0)


@dataclass
class Disc:
    """A folder of songs."""

    name: str
    path: Path
    songs: list[Song] = field(default_factory=list)


def create_disc(base_dir: str | os.PathLike, name: str) -> Path:
    """Create a disc folder under ``base_dir`` and return its path."""
    if not name:
        raise ValueError("disc name cannot be empty")
    if "/" in name or "\\" in name or ".." in name:
        raise ValueError(f"invalid disc name: {name!r}")
    path = Path(base_dir) / name
    path.mkdir(parents=True, exist_ok=True)
    return path


def list_discs(base_dir: str | os.PathLike) -> list[Disc]:
    """Return every disc folder under ``base_dir``; none if it does not exist."""
    try:
        with os.scandir(base_dir) as it:
            entries = sorted(it, key=lambda entry: entry.name)
    except FileNotFoundError:
        return []

    discs = []
    for entry in entries:
        if not entry.is_dir(follow_symlinks=False):
            continue
        disc = Disc(name=entry.name, path=Path(base_dir) / entry.name)
        try:
            disc.songs = list_songs(disc.path)
        except OSError:
            pass  # the disc is still listed when its songs cannot be read
        discs.append(disc)
    return discs


def list_songs(disc_path: str | os.PathLike) -> list[Song]:
    """Return the mp3 files of a disc folder sorted by track number."""
    with os.scandir(disc_path) as it:
        entries = sorted(it, key=lambda entry: entry.name)

    songs = [
        Song(
            path=Path(disc_path) / entry.name,
            name=entry.name,
            track_num=parse_track_num(entry.name),
        )
        for entry in entries
        if not entry.is_dir(follow_symlinks=False)
        and not entry.name.startswith(".")
        and entry.name.lower().endswith(".mp3")
    ]
    songs.sort(key=lambda song: song.track_num)
    return songs


def discard_song(song_path: str | os.PathLike) -> Path:
    """Move a song into the disc's ``discarded/`` folder; return its new path."""
    song_path = Path(song_path)
    discard_dir = song_path.parent / DISCARDED_DIR
    discard_dir.mkdir(parents=True, exist_ok=True)
    target = discard_dir / song_path.name
    os.rename(song_path, target)
    return target


def next_track_num(disc_path: str | os.PathLike) -> int:
    """Return the next free track number for a disc folder."""
    songs = list_songs(disc_path)
    if not songs:
        return 1
    return songs[-1].track_num + 1


def probe_duration(path: str | os.PathLike) -> timedelta:
    """Read the duration of an audio file with ffprobe."""
    name = os.path.basename(path)
    args = [
        "ffprobe", "-v", "quiet",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(path),
    ]
    try:
        result = subprocess.run(args, capture_output=True, check=False)
    except OSError as err:
        raise RuntimeError(f"probing {name}: {err}") from err
    if result.returncode != 0:
        raise RuntimeError(f"probing {name}: exit status {result.returncode}")

    text = result.stdout.decode("utf-8", "replace").strip()
    try:
        return timedelta(seconds=float(text))
    except (ValueError, OverflowError) as err:
        raise ValueError(f"parsing duration: {text!r}") from err


def total_duration(songs: Iterable[Song]) -> timedelta:
    """Sum the durations of songs."""
    return sum((song.duration for song in songs), timedelta(0))


def parse_track_num(name: str) -> int:
    """Read the track number before the first underscore; 0 if there is none."""
    prefix, sep, _ = name.partition("_")
    if not sep or not _TRACK_PREFIX.fullmatch(prefix):
        return 0
    return int(prefix)