import json
import subprocess
from datetime import timedelta
from unittest.mock import patch

import pytest

from ytdisc.disc import AUDIO_CD_CAPACITY, Disc, list_discs, list_songs
from ytdisc.model import (
    AppConfig,
    DiscsLoaded,
    Downloaded,
    ErrorMessage,
    FetchDone,
    KeyPress,
    Model,
    Quit,
    SongDiscarded,
    SongsProbed,
    Tick,
    ViewState,
    WindowSize,
    fetch_meta_cmd,
    load_discs_cmd,
    probe_songs_cmd,
)
from ytdisc.naming import sanitize_filename
from ytdisc.urlparse import ParsedURL, parse_youtube_url
from ytdisc.youtube import VideoMeta, YouTubeError


def press(key, text=""):
    return KeyPress(key, text)


def make_videos(count=3):
    return [
        VideoMeta(
            id=f"v{i}",
            title=f"Song {i}",
            duration=timedelta(minutes=3),
            url=f"https://www.youtube.com/watch?v=v{i}",
        )
        for i in range(count)
    ]


@pytest.fixture
def cfg(tmp_path):
    return AppConfig(output_dir=tmp_path)


def make_disc(path, names):
    path.mkdir(parents=True, exist_ok=True)
    for name in names:
        (path / name).write_bytes(b"fake mp3")
    return Disc(name=path.name, path=path, songs=list_songs(path))


def test_capacity_subtracts_margin(cfg):
    assert cfg.capacity() + cfg.margin == AUDIO_CD_CAPACITY
    assert cfg.capacity() < AUDIO_CD_CAPACITY


def test_capacity_never_negative(tmp_path):
    cfg = AppConfig(output_dir=tmp_path, margin=AUDIO_CD_CAPACITY * 2)
    assert cfg.capacity() == timedelta(0)


def test_view_state_labels(cfg):
    url = "https://youtu.be/abc"
    assert str(Model.for_list(cfg).view) == "disc-list"
    assert str(Model.for_fetch(url, parse_youtube_url(url), cfg).view) == "loading"


def test_normalize_defaults_from_config(tmp_path):
    model = Model.for_list(AppConfig(output_dir=tmp_path, normalize=False))
    assert model.normalize is False
    assert model.settings()[0].value is False


def test_list_init_loads_discs(tmp_path, cfg):
    (tmp_path / "disc1").mkdir()
    (tmp_path / "disc2").mkdir()
    (tmp_path / "not-a-disc.txt").write_text("hi")
    model = Model.for_list(cfg)
    commands = model.init()
    assert len(commands) == 1
    msg = commands[0]()
    assert isinstance(msg, DiscsLoaded)
    model.update(msg)
    assert [d.name for d in model.discs] == ["disc1", "disc2"]


def test_load_discs_missing_dir(tmp_path):
    msg = load_discs_cmd(tmp_path / "missing")()
    assert msg == DiscsLoaded([])


def test_load_discs_on_file_reports_error(tmp_path, cfg):
    target = tmp_path / "file.txt"
    target.write_text("x")
    msg = load_discs_cmd(target)()
    assert isinstance(msg, ErrorMessage)
    model = Model(cfg, loading=True)
    assert model.update(msg) == []
    assert model.error is msg.error
    assert model.loading is False


def test_visible_lines_small_window(cfg):
    model = Model(cfg)
    model.update(WindowSize(80, 8))
    assert model.width == 80
    assert model.visible_lines() == 20


def test_picker_scroll_keeps_cursor_visible(cfg):
    model = Model(cfg, view=ViewState.PICKER, videos=make_videos(10))
    model.update(WindowSize(80, 12))
    for _ in range(9):
        model.update(press("j"))
    assert model.cursor == 9
    assert model.scroll <= model.cursor < model.scroll + model.visible_lines()
    model.update(press("j"))
    assert model.cursor == 9
    for _ in range(9):
        model.update(press("k"))
    assert model.cursor == 0
    assert model.scroll == 0


def test_picker_selection_keys(cfg):
    model = Model(cfg, view=ViewState.PICKER, videos=make_videos(3))
    model.update(press(" ", " "))
    assert model.selected == {0}
    model.update(press(" ", " "))
    assert model.selected == set()
    model.update(press("a", "a"))
    assert model.selected == {0, 1, 2}
    model.update(press("n", "n"))
    assert model.selected == set()


def test_picker_save_without_selection_does_nothing(cfg):
    model = Model(cfg, view=ViewState.PICKER, videos=make_videos(2))
    assert model.update(press("s", "s")) == []
    assert model.view is ViewState.PICKER


def test_picker_quit(cfg):
    model = Model(cfg, view=ViewState.PICKER, videos=make_videos(2))
    commands = model.update(press("q", "q"))
    assert model.quitting is True
    assert commands == [Quit]
    assert commands[0]() == Quit()


def test_error_cleared_by_any_key(cfg):
    model = Model(cfg, view=ViewState.PICKER, videos=make_videos(2))
    model.error = ValueError("boom")
    model.update(press("j", "j"))
    assert model.error is None
    assert model.cursor == 0


def test_fetch_error_is_kept(cfg):
    model = Model.for_fetch("https://youtu.be/abc", parse_youtube_url("https://youtu.be/abc"), cfg)
    model.loading = True
    model.update(FetchDone(error=YouTubeError("nope")))
    assert model.loading is False
    assert str(model.error) == "nope"


def test_fetch_without_videos(cfg):
    model = Model(cfg, view=ViewState.LOADING)
    model.update(FetchDone(name="List", videos=[]))
    assert str(model.error) == "no videos found in playlist"


def test_fetch_playlist_opens_picker(cfg):
    model = Model(cfg, view=ViewState.LOADING)
    videos = make_videos(3)
    model.update(FetchDone(name="My Playlist", videos=videos))
    assert model.view is ViewState.PICKER
    assert model.videos == videos
    assert model.playlist_name == "My Playlist"
    assert model.selected == set()


def test_fetch_single_starts_download(tmp_path, cfg):
    url = "https://www.youtube.com/watch?v=v0"
    model = Model.for_fetch(url, parse_youtube_url(url), cfg)
    assert len(model.init()) == 2
    video = make_videos(1)
    commands = model.update(FetchDone(name="Single Video", videos=video, single=True))
    assert len(commands) == 1
    assert model.view is ViewState.DOWNLOAD
    assert model.target_disc == tmp_path / "Single Video"
    assert model.target_disc.is_dir()
    assert model.dl_indices == [0]

    done = subprocess.CompletedProcess([], 0, b"")
    with patch("subprocess.run", return_value=done) as run:
        msg = commands[-1]()
    assert msg == Downloaded(0)
    args = run.call_args.args[0]
    assert args[args.index("--audio-quality") + 1] == "192k"
    assert "ffmpeg:-af loudnorm" in args
    expected = str(model.target_disc / sanitize_filename("Song 0", 1)).removesuffix(".mp3")
    assert args[args.index("--output") + 1] == expected + ".%(ext)s"
    assert args[-1] == video[0].url


def test_download_progress_and_log(cfg):
    model = Model(cfg, view=ViewState.PICKER, videos=make_videos(2), playlist_name="Mix")
    model.update(press("a", "a"))
    commands = model.update(press("s", "s"))
    assert model.view is ViewState.DOWNLOAD
    assert model.dl_indices == [0, 1]
    assert commands

    follow = model.update(Downloaded(0))
    assert model.dl_pos == 1
    assert len(follow) == 1

    failure = YouTubeError("broken")
    assert model.update(Downloaded(1, failure)) == []
    assert model.dl_pos == 2
    assert model.dl_log == [Downloaded(0), Downloaded(1, failure)]


def test_active_download_only_ctrl_c_quits(cfg):
    model = Model(cfg, view=ViewState.DOWNLOAD, videos=make_videos(1), dl_indices=[0])
    assert model.update(press("q", "q")) == []
    assert model.quitting is False
    assert model.update(press("ctrl+c")) == [Quit]
    assert model.quitting is True


def test_loading_view_ignores_keys_but_quits(cfg):
    url = "https://youtu.be/abc"
    model = Model.for_fetch(url, parse_youtube_url(url), cfg)
    assert model.update(press("j", "j")) == []
    assert model.quitting is False
    assert model.update(press("q", "q")) == [Quit]


def test_tick_reschedules_only_while_busy(cfg):
    url = "https://youtu.be/abc"
    model = Model.for_fetch(url, parse_youtube_url(url), cfg)
    model.init()
    assert len(model.update(Tick(0.0))) == 1
    assert model.spinner_frame == 1
    model.update(FetchDone(name="P", videos=make_videos(2)))
    assert model.update(Tick(1.0)) == []
    assert model.spinner_frame == 2


def test_disc_list_open_and_back(tmp_path, cfg):
    make_disc(tmp_path / "disc1", ["01_a.mp3"])
    model = Model.for_list(cfg)
    model.update(DiscsLoaded(list_discs(tmp_path)))
    commands = model.update(press("enter"))
    assert model.view is ViewState.DISC_DETAIL
    assert model.loading is True
    assert model.disc.name == "disc1"

    probed = subprocess.CompletedProcess([], 0, b"185.5\n")
    with patch("subprocess.run", return_value=probed):
        msg = commands[-1]()
    model.update(msg)
    assert model.loading is False
    assert model.disc.songs[0].duration == timedelta(seconds=185.5)

    back = model.update(press("b", "b"))
    assert model.view is ViewState.DISC_LIST
    assert model.disc is None
    assert isinstance(back[0](), DiscsLoaded)


def test_probe_failure_leaves_zero(tmp_path):
    disc = make_disc(tmp_path / "d", ["01_a.mp3"])
    with patch("subprocess.run", side_effect=FileNotFoundError("ffprobe")):
        msg = probe_songs_cmd(disc.songs)()
    assert isinstance(msg, SongsProbed)
    assert [s.duration for s in msg.songs] == [timedelta(0)]
    assert [s.name for s in msg.songs] == ["01_a.mp3"]


def test_discard_moves_song_and_adjusts_cursor(tmp_path, cfg):
    disc = make_disc(tmp_path / "d", ["01_a.mp3", "02_b.mp3"])
    model = Model(cfg, view=ViewState.DISC_DETAIL, disc=disc, song_cursor=1)
    commands = model.update(press("x", "x"))
    assert len(commands) == 1
    msg = commands[0]()
    assert msg == SongDiscarded()
    model.update(msg)
    assert [s.name for s in model.disc.songs] == ["01_a.mp3"]
    assert model.song_cursor == 0
    assert (tmp_path / "d" / "discarded" / "02_b.mp3").exists()


def test_settings_toggle(cfg):
    model = Model(cfg, view=ViewState.PICKER, videos=make_videos(1))
    model.update(press("N", "N"))
    assert model.settings_focused is True
    model.update(press(" ", " "))
    assert model.normalize is False
    model.update(press("enter"))
    assert model.normalize is True
    model.update(press("esc"))
    assert model.settings_focused is False


def test_url_input_typing_and_escape(tmp_path, cfg):
    disc = make_disc(tmp_path / "d", [])
    model = Model(cfg, view=ViewState.DISC_DETAIL, disc=disc)
    model.update(press("u", "u"))
    assert model.input_mode is True
    for char in "abc":
        model.update(press(char, char))
    model.update(press("backspace"))
    assert model.url_input == "ab"
    model.update(press("esc"))
    assert model.input_mode is False
    assert model.url_input == ""


def test_url_input_char_limit(cfg):
    model = Model(cfg, view=ViewState.DISC_DETAIL, input_mode=True)
    for _ in range(300):
        model.update(press("x", "x"))
    assert len(model.url_input) == 256


def test_url_input_rejects_invalid_url(cfg):
    model = Model(cfg, view=ViewState.DISC_DETAIL, input_mode=True, url_input="not-a-url")
    assert model.update(press("enter")) == []
    assert model.input_mode is False
    assert str(model.error) == "invalid YouTube URL"


def test_url_input_targets_disc_with_next_track(tmp_path, cfg):
    disc = make_disc(tmp_path / "d", ["01_first.mp3", "03_third.mp3"])
    model = Model(
        cfg,
        view=ViewState.DISC_DETAIL,
        disc=disc,
        input_mode=True,
        url_input="https://www.youtube.com/watch?v=dQw4w9WgXcQ",
    )
    commands = model.update(press("enter"))
    assert model.loading is True
    assert model.target_disc == disc.path
    assert model.dl_start_track == 4
    assert commands


def test_download_complete_back_to_disc(tmp_path, cfg):
    disc = make_disc(tmp_path / "d", ["01_a.mp3"])
    model = Model(
        cfg,
        view=ViewState.DOWNLOAD,
        disc=Disc(disc.name, disc.path, []),
        target_disc=disc.path,
    )
    commands = model.update(press("b", "b"))
    assert model.view is ViewState.DISC_DETAIL
    assert model.target_disc is None
    assert model.loading is True
    assert [s.name for s in model.disc.songs] == ["01_a.mp3"]
    assert commands


def test_fetch_meta_invalid_url():
    msg = fetch_meta_cmd("x", ParsedURL())()
    assert isinstance(msg, FetchDone)
    assert str(msg.error) == "invalid URL"


def test_fetch_meta_ambiguous_falls_back_to_single():
    url = "https://www.youtube.com/watch?v=dQw4w9WgXcQ&list=PLxyz"
    info = {"id": "dQw4w9WgXcQ", "title": "Tune", "duration": 200}
    results = [
        subprocess.CompletedProcess([], 1, b"", b"no playlist"),
        subprocess.CompletedProcess([], 0, json.dumps(info).encode(), b""),
    ]
    with patch("subprocess.run", side_effect=results):
        msg = fetch_meta_cmd(url, parse_youtube_url(url))()
    assert msg.single is True
    assert msg.name == "Single Video"
    assert msg.error is None
    assert [v.title for v in msg.videos] == ["Tune"]
    assert msg.videos[0].url == url
    assert msg.videos[0].duration == timedelta(seconds=200)


def test_error_message_stops_loading(cfg):
    model = Model(cfg, loading=True)
    model.update(ErrorMessage(OSError("disk")))
    assert model.loading is False
    assert str(model.error) == "disk"