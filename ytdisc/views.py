"""Render the interface state as styled terminal text."""

from __future__ import annotations

import time
from datetime import timedelta
from typing import Callable

from .disc import total_duration
from .model import Model, ViewState
from .naming import sanitize_folder_name
from .urlparse import URLType

MAX_URL_DISPLAY = 60
PICKER_TITLE_WIDTH = 55
DL_TITLE_WIDTH = 50
DISC_NAME_WIDTH = 28
SONG_NAME_WIDTH = 48
URL_PLACEHOLDER = "Paste YouTube URL..."

_SPINNER_FRAMES = ("⣾ ", "⣽ ", "⣻ ", "⢿ ", "⡿ ", "⣟ ", "⣯ ", "⣷ ")
_RESET = "\x1b[0m"


def _style(color: int, bold: bool = False) -> Callable[[str], str]:
    prefix = ("\x1b[1m" if bold else "") + f"\x1b[38;5;{color}m"
    return lambda text: f"{prefix}{text}{_RESET}"


_title = _style(99, bold=True)
_cursor = _style(86)
_check = _style(42)
_dim = _style(241)
_warn = _style(196, bold=True)
_ok = _style(42)
_err = _style(196)
_spin = _style(205)


def fmt_duration(d: timedelta) -> str:
    """Format a duration as ``M:SS``; an unknown (zero) duration as ``?:??``."""
    if d == timedelta(0):
        return "?:??"
    minutes, seconds = divmod(int(d.total_seconds()), 60)
    return f"{minutes}:{seconds:02d}"


def truncate(s: str, max_len: int) -> str:
    """Shorten ``s`` to ``max_len`` characters, ending in ``...`` when cut."""
    if len(s) <= max_len:
        return s
    if max_len <= 3:
        return s[:max_len]
    return s[: max_len - 3] + "..."


def _elapsed(seconds: int) -> str:
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{minutes}m{secs}s"
    return f"{secs}s"


def _spinner(model: Model) -> str:
    return _spin(_SPINNER_FRAMES[model.spinner_frame % len(_SPINNER_FRAMES)])


def render_settings(model: Model) -> str:
    """The settings panel, with a cursor when it has focus."""
    lines = [_dim("  ── Settings ──") + "\n"]
    for i, item in enumerate(model.settings()):
        prefix = "  "
        if model.settings_focused and i == model.settings_cursor:
            prefix = _cursor("▸ ")
        check = _check("[✓]") if item.value else "[ ]"
        lines.append(f"{prefix}{check} {item.label}\n")
    return "".join(lines)


def _settings_help(model: Model, normal: str) -> str:
    if model.settings_focused:
        return "\n" + _dim("  j/k: navigate  space: toggle  N/esc: back")
    return "\n" + _dim(normal)


def _view_loading(model: Model) -> str:
    out = [_title("♫ yt-disc") + "\n\n"]
    if model.error is not None:
        return "".join(out)

    elapsed = _elapsed(int(max(time.monotonic() - model.loading_start, 0.0)))
    url_hint = model.fetch_url
    if len(url_hint) > MAX_URL_DISPLAY:
        url_hint = url_hint[: MAX_URL_DISPLAY - 3] + "..."

    out.append(f"  {_spinner(model)} Fetching metadata...  {_dim(elapsed)}\n")
    out.append(_dim("  " + url_hint) + "\n")
    kinds = {
        URLType.PLAYLIST: "  Type: playlist",
        URLType.AMBIGUOUS: "  Type: video+playlist (trying playlist first)",
        URLType.SINGLE: "  Type: single video",
    }
    if model.fetch_type.type in kinds:
        out.append(_dim(kinds[model.fetch_type.type]) + "\n")
    out.append("\n" + _dim("  This can take a while for large playlists."))
    out.append("\n" + _dim("  Press q or Ctrl+C to cancel"))
    return "".join(out)


def _view_picker(model: Model) -> str:
    out = [_title("♫ " + model.playlist_name) + "\n"]

    selected_duration = sum(
        (video.duration for i, video in enumerate(model.videos) if i in model.selected),
        timedelta(0),
    )
    capacity = model.cfg.capacity()
    stats = (
        f"  {len(model.selected)} selected  "
        f"{fmt_duration(selected_duration)} / {fmt_duration(capacity)}"
    )
    if model.cfg.margin > timedelta(0):
        stats += _dim(f"  (-{fmt_duration(model.cfg.margin)} margin)")
    if selected_duration > capacity:
        stats += _warn("  ⚠ OVER CAPACITY")
    out.append(_dim(stats) + "\n\n")

    end = min(model.scroll + model.visible_lines(), len(model.videos))
    for i in range(model.scroll, end):
        video = model.videos[i]
        prefix = _cursor("▸ ") if i == model.cursor else "  "
        check = _check("[✓] ") if i in model.selected else "[ ] "
        title = truncate(video.title, PICKER_TITLE_WIDTH)
        duration = _dim(fmt_duration(video.duration))
        out.append(f"{prefix}{check}{title:<{PICKER_TITLE_WIDTH}} {duration}\n")

    out.append("\n" + render_settings(model))
    out.append(
        _settings_help(
            model,
            "  j/k: navigate  space: toggle  a: all  n: none  N: settings  s: save  q: quit",
        )
    )
    return "".join(out)


def _view_download(model: Model) -> str:
    target = model.target_disc
    if target is None:
        target = model.cfg.output_dir / sanitize_folder_name(model.playlist_name)
    out = [_title(f"⬇ Downloading to {target}") + "\n", render_settings(model) + "\n"]

    finished = model.dl_pos >= len(model.dl_indices)
    if finished:
        out.append(_ok("  ✓ All downloads complete!") + "\n\n")
    else:
        video = model.videos[model.dl_indices[model.dl_pos]]
        out.append(
            f"  {_spinner(model)} {truncate(video.title, DL_TITLE_WIDTH)} "
            f"({model.dl_pos + 1}/{len(model.dl_indices)})\n\n"
        )

    for entry in model.dl_log:
        title = model.videos[entry.idx].title
        if entry.error is not None:
            line = _err("✗ ") + f"{title}: {entry.error}"
        else:
            line = _ok("✓ ") + title
        out.append("  " + line + "\n")

    if finished:
        hint = "  Press q to quit"
        if model.target_disc is not None:
            hint = "  Press b to go back, q to quit"
        out.append("\n" + _dim(hint))
    else:
        out.append("\n" + _dim("  Ctrl+C to cancel"))
    return "".join(out)


def _view_disc_list(model: Model) -> str:
    out = [_title("💿 Your Discs") + "  " + _dim(str(model.cfg.output_dir)) + "\n\n"]
    if not model.discs:
        out.append(_dim("  No discs found.") + "\n")
    for i, disc in enumerate(model.discs):
        prefix = _cursor("▸ ") if i == model.disc_cursor else "  "
        name = truncate(disc.name, DISC_NAME_WIDTH)
        out.append(f"{prefix}{name:<30}  {len(disc.songs)} songs\n")
    out.append("\n" + _dim("  j/k: navigate  enter: open  q: quit"))
    return "".join(out)


def _view_disc_detail(model: Model) -> str:
    disc = model.disc
    if disc is None:
        return ""

    total = total_duration(disc.songs)
    capacity = model.cfg.capacity()
    header = (
        f"💿 {disc.name}  {len(disc.songs)} songs  "
        f"{fmt_duration(total)} / {fmt_duration(capacity)}"
    )
    if model.cfg.margin > timedelta(0):
        header += f"  (-{fmt_duration(model.cfg.margin)} margin)"
    out = [_title(header) + "\n"]
    if total > capacity:
        out.append(_warn("  ⚠ OVER CAPACITY") + "\n")
    out.append("\n")

    if not disc.songs:
        out.append(_dim("  No songs.") + "\n")
    for i, song in enumerate(disc.songs):
        prefix = _cursor("▸ ") if i == model.song_cursor else "  "
        name = truncate(song.name, SONG_NAME_WIDTH)
        out.append(f"{prefix}{name:<50} {_dim(fmt_duration(song.duration))}\n")

    out.append("\n" + render_settings(model))
    out.append(
        _settings_help(
            model,
            "  j/k: navigate  x: discard  u: add URL  N: settings  b: back  q: quit",
        )
    )
    return "".join(out)


_VIEWS = {
    ViewState.LOADING: _view_loading,
    ViewState.PICKER: _view_picker,
    ViewState.DOWNLOAD: _view_download,
    ViewState.DISC_LIST: _view_disc_list,
    ViewState.DISC_DETAIL: _view_disc_detail,
}


def _url_input(model: Model) -> str:
    if model.url_input:
        return "> " + model.url_input + "█"
    return "> " + _dim(URL_PLACEHOLDER)


def render(model: Model) -> str:
    """The whole screen for the current state."""
    if model.quitting:
        return ""

    content = _VIEWS[model.view](model)

    if model.error is not None:
        content += "\n" + _err(f"  Error: {model.error}")
        if model.view is ViewState.LOADING:
            content += "\n" + _dim("  Press q to quit")
        else:
            content += "\n" + _dim("  Press any key to dismiss")

    if model.loading:
        content += f"\n\n  {_spinner(model)} Fetching metadata..."

    if model.input_mode:
        content += "\n\n  " + _url_input(model)

    return content