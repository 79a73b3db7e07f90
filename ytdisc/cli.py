"""Command line entry point."""

from __future__ import annotations

import argparse
import re
import shutil
import sys
from datetime import timedelta
from pathlib import Path

from .app import run
from .disc import AUDIO_CD_CAPACITY
from .model import DEFAULT_BITRATE, AppConfig, Model
from .urlparse import URLType, parse_youtube_url

MIN_BITRATE = 64
MAX_BITRATE = 320
DEPENDENCIES = ("yt-dlp", "ffprobe")

_MICROSECONDS = {
    "ns": 0.001,
    "us": 1.0,
    "µs": 1.0,
    "μs": 1.0,
    "ms": 1_000.0,
    "s": 1_000_000.0,
    "m": 60_000_000.0,
    "h": 3_600_000_000.0,
}
_TERM = re.compile(r"([0-9]+(?:\.[0-9]*)?|\.[0-9]+)(ns|us|µs|μs|ms|s|m|h)")


def parse_margin(text: str) -> timedelta:
    """Parse a duration such as ``30s``, ``1m`` or ``2m30s``."""
    invalid = ValueError(f'invalid duration "{text}"')
    body = text
    sign = 1
    if body[:1] in ("+", "-") and body:
        sign = -1 if body[0] == "-" else 1
        body = body[1:]
    if body == "0":
        return timedelta(0)
    if not body:
        raise invalid

    total = 0.0
    pos = 0
    while pos < len(body):
        match = _TERM.match(body, pos)
        if match is None:
            raise invalid
        total += float(match[1]) * _MICROSECONDS[match[2]]
        pos = match.end()
    try:
        return timedelta(microseconds=sign * total)
    except OverflowError:
        raise invalid from None


def _describe(d: timedelta) -> str:
    hours, rest = divmod(int(d.total_seconds()), 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{minutes}m{seconds}s"
    return f"{seconds}s"


def check_deps() -> None:
    """Raise RuntimeError when a required external tool is missing."""
    for dep in DEPENDENCIES:
        if shutil.which(dep) is None:
            raise RuntimeError(f"{dep} not found in PATH; install with: brew install {dep}")


def _parser(default_out: Path) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="yt-disc", description="Build audio CD folders from YouTube playlists."
    )
    parser.add_argument(
        "-o", "--output-dir", default=str(default_out),
        help="output directory for disc folders",
    )
    parser.add_argument(
        "-b", "--bitrate", type=int, default=DEFAULT_BITRATE,
        help="mp3 bitrate in kbps (64-320)",
    )
    parser.add_argument(
        "-m", "--margin", default="30s",
        help="safety margin subtracted from 80-min disc capacity (e.g. 30s, 1m, 2m30s)",
    )
    parser.add_argument(
        "-n", "--normalize", action=argparse.BooleanOptionalAction, default=True,
        help="normalize audio levels via FFmpeg loudnorm filter",
    )
    parser.add_argument("args", nargs="*", help="a playlist or video URL, or 'list'")
    return parser


def _fail(message: str) -> int:
    print(message, file=sys.stderr)
    return 1


def main(argv: list[str] | None = None) -> int:
    """Run the program and return its exit status."""
    try:
        home = Path.home()
    except RuntimeError as err:
        return _fail(f"resolving home directory: {err}")

    opts = _parser(home / "CDs").parse_args(argv)

    try:
        margin = parse_margin(opts.margin)
    except ValueError as err:
        return _fail(f'invalid margin "{opts.margin}": {err}')
    if margin < timedelta(0):
        return _fail("margin must not be negative")
    if margin >= AUDIO_CD_CAPACITY:
        return _fail(f"margin must be less than {_describe(AUDIO_CD_CAPACITY)}")

    if not MIN_BITRATE <= opts.bitrate <= MAX_BITRATE:
        return _fail("bitrate must be between 64 and 320 kbps")

    output_dir = Path(opts.output_dir).expanduser()
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as err:
        return _fail(f'output directory "{output_dir}": {err}')

    try:
        check_deps()
    except RuntimeError as err:
        return _fail(str(err))

    if not opts.args:
        return _fail(
            "Usage: yt-disc <playlist-or-video-url>\n"
            "       yt-disc list\n"
            "       yt-disc -o ~/MyDiscs <url>"
        )

    cfg = AppConfig(output_dir, opts.bitrate, margin, opts.normalize)
    target = opts.args[0]
    if target == "list":
        model = Model.for_list(cfg)
    else:
        parsed = parse_youtube_url(target)
        if parsed.type is URLType.INVALID:
            return _fail("Invalid YouTube URL.")
        model = Model.for_fetch(target, parsed, cfg)

    try:
        run(model)
    except Exception as err:
        return _fail(f"Error: {err}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())