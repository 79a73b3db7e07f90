"""State and update logic of the interactive disc manager."""

from __future__ import annotations

import dataclasses
import enum
import time
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Callable, Optional, Union

from .disc import (
    AUDIO_CD_CAPACITY,
    Disc,
    Song,
    create_disc,
    discard_song,
    list_discs,
    list_songs,
    next_track_num,
    probe_duration,
)
from .naming import sanitize_filename, sanitize_folder_name
from .urlparse import ParsedURL, URLType, parse_youtube_url
from .youtube import (
    DOWNLOAD_TIMEOUT,
    FETCH_TIMEOUT,
    VideoMeta,
    YouTubeError,
    download_audio,
    fetch_playlist_meta,
    fetch_video_meta,
)

DEFAULT_BITRATE = 192
DEFAULT_MARGIN = timedelta(seconds=30)
HEADER_LINES = 7
URL_CHAR_LIMIT = 256
TICK_INTERVAL = 0.5
SINGLE_VIDEO_NAME = "Single Video"


@dataclass(frozen=True)
class AppConfig:
    """Settings chosen on the command line."""

    output_dir: Path
    bitrate: int = DEFAULT_BITRATE
    margin: timedelta = DEFAULT_MARGIN
    normalize: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "output_dir", Path(self.output_dir))

    def capacity(self) -> timedelta:
        """The disc capacity left after subtracting the safety margin."""
        return max(AUDIO_CD_CAPACITY - self.margin, timedelta(0))


class ViewState(enum.Enum):
    """The screen currently shown."""

    LOADING = "loading"
    PICKER = "picker"
    DOWNLOAD = "download"
    DISC_LIST = "disc-list"
    DISC_DETAIL = "disc-detail"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class KeyPress:
    """A key pressed; ``text`` holds the characters it types, if any."""

    key: str
    text: str = ""


@dataclass(frozen=True)
class WindowSize:
    """The terminal was resized."""

    width: int
    height: int


@dataclass(frozen=True)
class Downloaded:
    """One download finished, successfully when ``error`` is None."""

    idx: int
    error: Optional[Exception] = None


@dataclass(frozen=True)
class DiscsLoaded:
    """The disc folders were read."""

    discs: list[Disc]


@dataclass(frozen=True)
class SongDiscarded:
    """A song was moved aside, successfully when ``error`` is None."""

    error: Optional[Exception] = None


@dataclass(frozen=True)
class SongsProbed:
    """Songs with their durations filled in."""

    songs: list[Song]


@dataclass(frozen=True)
class ErrorMessage:
    """A background task failed."""

    error: Exception


@dataclass(frozen=True)
class Tick:
    """Drives the spinner and the elapsed-time display."""

    at: float


@dataclass(frozen=True)
class FetchDone:
    """The result of a metadata fetch."""

    name: str = ""
    videos: list[VideoMeta] = field(default_factory=list)
    single: bool = False
    error: Optional[Exception] = None


@dataclass(frozen=True)
class Quit:
    """Ends the program; the class itself serves as the quit command."""


Message = Union[
    KeyPress,
    WindowSize,
    Downloaded,
    DiscsLoaded,
    SongDiscarded,
    SongsProbed,
    ErrorMessage,
    Tick,
    FetchDone,
    Quit,
]
Command = Callable[[], Optional[Message]]


@dataclass(frozen=True)
class Setting:
    """A toggleable option shown in the settings panel."""

    label: str
    attribute: str
    value: bool


def _timer_tick() -> Tick:
    time.sleep(TICK_INTERVAL)
    return Tick(time.monotonic())


def load_discs_cmd(directory: str | Path) -> Command:
    """A command that reads the disc folders under ``directory``."""

    def command() -> Message:
        try:
            return DiscsLoaded(list_discs(directory))
        except OSError as err:
            return ErrorMessage(err)

    return command


def probe_songs_cmd(songs: list[Song]) -> Command:
    """A command that probes the duration of every song, leaving failures at zero."""
    pending = [dataclasses.replace(song) for song in songs]

    def command() -> Message:
        probed = []
        for song in pending:
            duration = song.duration
            try:
                duration = probe_duration(song.path)
            except (RuntimeError, ValueError):
                pass
            probed.append(dataclasses.replace(song, duration=duration))
        return SongsProbed(probed)

    return command


def _fetch_single(raw_url: str) -> FetchDone:
    try:
        video = fetch_video_meta(raw_url, FETCH_TIMEOUT)
    except YouTubeError as err:
        return FetchDone(error=err)
    return FetchDone(name=SINGLE_VIDEO_NAME, videos=[video], single=True)


def fetch_meta_cmd(raw_url: str, parsed: ParsedURL) -> Command:
    """A command that fetches playlist or video metadata."""

    def command() -> Message:
        match parsed.type:
            case URLType.PLAYLIST:
                try:
                    name, videos = fetch_playlist_meta(raw_url, FETCH_TIMEOUT)
                except YouTubeError as err:
                    return FetchDone(error=err)
                return FetchDone(name=name, videos=videos)
            case URLType.AMBIGUOUS:
                try:
                    name, videos = fetch_playlist_meta(raw_url, FETCH_TIMEOUT)
                except YouTubeError:
                    return _fetch_single(raw_url)
                return FetchDone(name=name, videos=videos)
            case URLType.SINGLE:
                return _fetch_single(raw_url)
            case _:
                return FetchDone(error=ValueError("invalid URL"))

    return command


@dataclass
class Model:
    """Everything the interface shows, changed only through :meth:`update`."""

    cfg: AppConfig
    view: ViewState = ViewState.DISC_LIST

    playlist_name: str = ""
    videos: list[VideoMeta] = field(default_factory=list)
    selected: set[int] = field(default_factory=set)
    cursor: int = 0
    scroll: int = 0

    dl_indices: list[int] = field(default_factory=list)
    dl_pos: int = 0
    dl_log: list[Downloaded] = field(default_factory=list)
    dl_start_track: int = 1
    spinner_frame: int = 0

    discs: list[Disc] = field(default_factory=list)
    disc_cursor: int = 0

    disc: Optional[Disc] = None
    song_cursor: int = 0

    url_input: str = ""
    input_mode: bool = False
    target_disc: Optional[Path] = None

    normalize: Optional[bool] = None
    settings_focused: bool = False
    settings_cursor: int = 0

    fetch_url: str = ""
    fetch_type: ParsedURL = field(default_factory=ParsedURL)
    loading_start: float = 0.0

    width: int = 0
    height: int = 0

    loading: bool = False
    error: Optional[Exception] = None
    quitting: bool = False

    _ticking: bool = field(default=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.normalize is None:
            self.normalize = self.cfg.normalize

    @classmethod
    def for_fetch(cls, raw_url: str, parsed: ParsedURL, cfg: AppConfig) -> Model:
        """A model that fetches metadata for ``raw_url`` when started."""
        return cls(
            cfg,
            view=ViewState.LOADING,
            fetch_url=raw_url,
            fetch_type=parsed,
            loading_start=time.monotonic(),
        )

    @classmethod
    def for_list(cls, cfg: AppConfig) -> Model:
        """A model that opens on the list of discs."""
        return cls(cfg, view=ViewState.DISC_LIST)

    def init(self) -> list[Command]:
        """The commands to run when the program starts."""
        if self.view is ViewState.LOADING:
            return [*self._start_ticking(), fetch_meta_cmd(self.fetch_url, self.fetch_type)]
        if self.view is ViewState.DISC_LIST:
            return [load_discs_cmd(self.cfg.output_dir)]
        return []

    def settings(self) -> list[Setting]:
        """The toggleable settings with their current values."""
        return [Setting("Normalize audio (loudnorm)", "normalize", bool(self.normalize))]

    def visible_lines(self) -> int:
        """How many picker rows fit in the window."""
        lines = self.height - HEADER_LINES
        return 20 if lines < 5 else lines

    def update(self, msg: Message) -> list[Command]:
        """Apply a message and return the commands to run next."""
        match msg:
            case WindowSize():
                self.width = msg.width
                self.height = msg.height
                return []
            case KeyPress():
                return self._handle_key(msg)
            case Downloaded():
                return self._handle_downloaded(msg)
            case DiscsLoaded():
                self.discs = list(msg.discs)
                self.disc_cursor = min(self.disc_cursor, max(len(self.discs) - 1, 0))
                return []
            case SongDiscarded():
                return self._handle_discarded(msg)
            case SongsProbed():
                if self.disc is not None:
                    self.disc.songs = list(msg.songs)
                self.loading = False
                return []
            case FetchDone():
                return self._handle_fetched(msg)
            case ErrorMessage():
                self.loading = False
                self.error = msg.error
                return []
            case Tick():
                self.spinner_frame += 1
                if self._wants_tick():
                    return [_timer_tick]
                self._ticking = False
                return []
        return []

    # --- internals ---

    def _wants_tick(self) -> bool:
        return self.view is ViewState.LOADING or self.loading or self._download_active()

    def _start_ticking(self) -> list[Command]:
        if self._ticking:
            return []
        self._ticking = True
        return [_timer_tick]

    def _download_active(self) -> bool:
        return self.view is ViewState.DOWNLOAD and self.dl_pos < len(self.dl_indices)

    def _quit(self) -> list[Command]:
        self.quitting = True
        return [Quit]

    def _handle_fetched(self, msg: FetchDone) -> list[Command]:
        self.loading = False
        if msg.error is not None:
            self.error = msg.error
            return []
        if not msg.videos:
            self.error = ValueError("no videos found in playlist")
            return []
        self.playlist_name = msg.name
        self.videos = list(msg.videos)
        if msg.single and len(msg.videos) == 1:
            self.selected = {0}
            return self._begin_download()
        self.selected = set()
        self.cursor = 0
        self.scroll = 0
        self.view = ViewState.PICKER
        return []

    def _handle_discarded(self, msg: SongDiscarded) -> list[Command]:
        if msg.error is not None:
            self.error = msg.error
        elif self.disc is not None:
            try:
                songs = list_songs(self.disc.path)
            except OSError as err:
                self.error = err
                return []
            self.disc.songs = songs
            if self.song_cursor >= len(songs) and self.song_cursor > 0:
                self.song_cursor -= 1
        return []

    def _handle_key(self, key: KeyPress) -> list[Command]:
        if self.input_mode:
            return self._handle_input_key(key)
        if self.settings_focused:
            return self._update_settings(key)

        if self.loading or self.view is ViewState.LOADING:
            if key.key in ("ctrl+c", "q"):
                return self._quit()
            return []

        if self._download_active():
            if key.key == "ctrl+c":
                return self._quit()
            return []

        if self.view is ViewState.DOWNLOAD:
            if key.key in ("q", "ctrl+c"):
                return self._quit()
            if key.key == "b" and self.target_disc is not None and self.disc is not None:
                self.view = ViewState.DISC_DETAIL
                try:
                    songs = list_songs(self.disc.path)
                except OSError as err:
                    self.error = err
                    return []
                self.disc.songs = songs
                self.target_disc = None
                self.loading = True
                return [*self._start_ticking(), probe_songs_cmd(songs)]
            return []

        if self.error is not None:
            self.error = None
            return []

        if self.view is ViewState.PICKER:
            return self._update_picker(key)
        if self.view is ViewState.DISC_LIST:
            return self._update_disc_list(key)
        if self.view is ViewState.DISC_DETAIL:
            return self._update_disc_detail(key)
        return []

    def _handle_input_key(self, key: KeyPress) -> list[Command]:
        match key.key:
            case "esc":
                self.input_mode = False
                self.url_input = ""
            case "enter":
                raw = self.url_input.strip()
                self.input_mode = False
                self.url_input = ""
                if not raw:
                    return []
                parsed = parse_youtube_url(raw)
                if parsed.type is URLType.INVALID:
                    self.error = ValueError("invalid YouTube URL")
                    return []
                if self.disc is not None:
                    self.target_disc = self.disc.path
                    try:
                        self.dl_start_track = next_track_num(self.disc.path)
                    except OSError as err:
                        self.error = OSError(f"reading track numbers: {err}")
                        return []
                self.loading = True
                return [*self._start_ticking(), fetch_meta_cmd(raw, parsed)]
            case "backspace":
                self.url_input = self.url_input[:-1]
            case _:
                if key.text:
                    self.url_input = (self.url_input + key.text)[:URL_CHAR_LIMIT]
        return []

    def _update_picker(self, key: KeyPress) -> list[Command]:
        match key.key:
            case "q" | "ctrl+c":
                return self._quit()
            case "j" | "down":
                if self.cursor < len(self.videos) - 1:
                    self.cursor += 1
                    self._fix_scroll()
            case "k" | "up":
                if self.cursor > 0:
                    self.cursor -= 1
                    self._fix_scroll()
            case " ":
                self.selected ^= {self.cursor}
            case "a":
                self.selected = set(range(len(self.videos)))
            case "n":
                self.selected = set()
            case "s" | "enter":
                if self.selected:
                    return self._begin_download()
            case "N":
                self.settings_focused = True
                self.settings_cursor = 0
        return []

    def _fix_scroll(self) -> None:
        visible = self.visible_lines()
        if self.cursor < self.scroll:
            self.scroll = self.cursor
        if self.cursor >= self.scroll + visible:
            self.scroll = self.cursor - visible + 1

    def _begin_download(self) -> list[Command]:
        indices = [i for i in range(len(self.videos)) if i in self.selected]
        disc_path = self.target_disc
        if disc_path is None:
            try:
                disc_path = create_disc(
                    self.cfg.output_dir, sanitize_folder_name(self.playlist_name)
                )
            except (ValueError, OSError) as err:
                self.error = err
                return []

        self.dl_indices = indices
        self.dl_pos = 0
        self.dl_log = []
        self.view = ViewState.DOWNLOAD
        self.target_disc = Path(disc_path)
        commands = self._start_ticking()
        download = self._download_cmd()
        if download is not None:
            commands.append(download)
        return commands

    def _download_cmd(self) -> Optional[Command]:
        if self.dl_pos >= len(self.dl_indices) or self.target_disc is None:
            return None
        idx = self.dl_indices[self.dl_pos]
        video = self.videos[idx]
        dest = self.target_disc / sanitize_filename(
            video.title, self.dl_start_track + self.dl_pos
        )
        bitrate = self.cfg.bitrate
        normalize = bool(self.normalize)

        def command() -> Message:
            try:
                download_audio(video.url, dest, bitrate, normalize, DOWNLOAD_TIMEOUT)
            except YouTubeError as err:
                return Downloaded(idx, err)
            return Downloaded(idx)

        return command

    def _handle_downloaded(self, msg: Downloaded) -> list[Command]:
        self.dl_log.append(msg)
        self.dl_pos += 1
        download = self._download_cmd()
        return [download] if download is not None else []

    def _update_disc_list(self, key: KeyPress) -> list[Command]:
        match key.key:
            case "q" | "ctrl+c":
                return self._quit()
            case "j" | "down":
                if self.disc_cursor < len(self.discs) - 1:
                    self.disc_cursor += 1
            case "k" | "up":
                if self.disc_cursor > 0:
                    self.disc_cursor -= 1
            case "enter":
                if self.discs:
                    chosen = self.discs[self.disc_cursor]
                    self.disc = dataclasses.replace(chosen, songs=list(chosen.songs))
                    self.song_cursor = 0
                    self.view = ViewState.DISC_DETAIL
                    self.loading = True
                    return [*self._start_ticking(), probe_songs_cmd(self.disc.songs)]
        return []

    def _update_disc_detail(self, key: KeyPress) -> list[Command]:
        match key.key:
            case "q" | "ctrl+c":
                return self._quit()
            case "b" | "esc":
                self.disc = None
                self.view = ViewState.DISC_LIST
                return [load_discs_cmd(self.cfg.output_dir)]
            case "j" | "down":
                if self.disc is not None and self.song_cursor < len(self.disc.songs) - 1:
                    self.song_cursor += 1
            case "k" | "up":
                if self.song_cursor > 0:
                    self.song_cursor -= 1
            case "x":
                if self.disc is not None and self.disc.songs:
                    path = self.disc.songs[self.song_cursor].path

                    def command() -> Message:
                        try:
                            discard_song(path)
                        except OSError as err:
                            return SongDiscarded(err)
                        return SongDiscarded()

                    return [command]
            case "u":
                self.input_mode = True
            case "N":
                self.settings_focused = True
                self.settings_cursor = 0
        return []

    def _update_settings(self, key: KeyPress) -> list[Command]:
        items = self.settings()
        match key.key:
            case "N" | "esc":
                self.settings_focused = False
            case "j" | "down":
                if self.settings_cursor < len(items) - 1:
                    self.settings_cursor += 1
            case "k" | "up":
                if self.settings_cursor > 0:
                    self.settings_cursor -= 1
            case " " | "enter":
                if self.settings_cursor < len(items):
                    item = items[self.settings_cursor]
                    setattr(self, item.attribute, not item.value)
            case "q" | "ctrl+c":
                return self._quit()
        return []