# ytdisc

`yt-disc` turns a YouTube playlist or video into a folder of MP3 files sized
for an audio CD. It runs as a full-screen terminal interface: you pick the
tracks you want while watching their total running time against the
80-minute capacity of a CD (minus a safety margin), and it then downloads
each track as a numbered, CD-safe MP3.

## Requirements

- Python 3.10 or newer
- `yt-dlp` and `ffprobe` (from FFmpeg) on your `PATH`; the program checks for
  both at start-up and exits if either is missing

## Installation

```
pip install .
```

## Usage

Fetch a playlist, a single video, or a video inside a playlist:

```
yt-disc https://www.youtube.com/playlist?list=PLxyz
yt-disc https://youtu.be/abc123
```

Accepted addresses are `http`/`https` links on `youtube.com`,
`www.youtube.com`, `m.youtube.com`, `music.youtube.com` (`/watch`,
`/playlist` and `/shorts/` pages) and `youtu.be`. A link that carries both a
video and a playlist is tried as a playlist first and falls back to the single
video. A single video skips the track picker and is downloaded straight away
into a folder named `Single Video`.

Browse the discs you have already made:

```
yt-disc list
```

### Options

| Option | Default | Meaning |
| --- | --- | --- |
| `-o`, `--output-dir` | `~/CDs` | Folder that holds the disc folders; created if missing |
| `-b`, `--bitrate` | `192` | MP3 bitrate in kbps (64–320) |
| `-m`, `--margin` | `30s` | Safety margin taken off the 80-minute capacity, written like `30s`, `1m` or `2m30s`; must be at least zero and below 80 minutes |
| `-n`, `--normalize` / `--no-normalize` | on | Even out loudness with FFmpeg's `loudnorm` filter |

For example:

```
yt-disc -o ~/MyDiscs -b 256 -m 1m https://www.youtube.com/playlist?list=PLxyz
```

The exit status is 0 on success and 1 on any error.

### Keys

Arrow keys work wherever `j`/`k` do.

- Loading: `q` or `Ctrl+C` cancels.
- Track picker: `j`/`k` move, `space` toggles a track, `a` selects all, `n`
  selects none, `N` opens settings, `s` or `enter` starts the download, `q`
  quits. The header warns when the selection is over capacity.
- Downloading: `Ctrl+C` cancels. When all downloads are done, `q` quits, and
  `b` returns to the disc the songs were added to.
- Disc browser: `j`/`k` move, `enter` opens a disc, `q` quits.
- Inside a disc: `x` moves the selected song into the disc's `discarded/`
  folder, `u` asks for another URL whose songs are numbered after the last
  track, `N` opens settings, `b` or `esc` goes back, `q` quits.
- Settings: `j`/`k` move, `space` or `enter` toggles, `N` or `esc` closes.
  Loudness normalisation can be switched here for the current session.

Any key dismisses an error message.

## File naming

Titles are transliterated (including Bulgarian and Russian Cyrillic), stripped
of diacritics and of tags such as `[Official Video]` or `(Lyrics)`,
lower-cased, joined with underscores and cut to 60 characters. For example,
`Beyoncé — Crazy in Love [Official Video]` becomes
`01_beyonce_crazy_in_love.mp3`. Playlist titles become folder names with
characters such as `/`, `\` and `:` replaced by `_`.

The same rules are available from Python:

```python
from ytdisc.naming import sanitize_filename, sanitize_folder_name
from ytdisc.urlparse import parse_youtube_url

sanitize_filename("Song Title (Official Music Video) [HD]", 3)  # "03_song_title.mp3"
sanitize_folder_name("Playlist: Best of 2024")                  # "Playlist_ Best of 2024"
parse_youtube_url("https://youtu.be/dQw4w9WgXcQ").type          # URLType.SINGLE
```

`ytdisc.disc` offers `create_disc`, `list_discs`, `list_songs`,
`discard_song`, `next_track_num`, `probe_duration` and `total_duration` for
working with disc folders directly.

## What it does not do

`yt-disc` prepares folders of MP3 files; it does not burn them to a CD. Use
your usual burning software on the finished folder.