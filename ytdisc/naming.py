"""Turn video and playlist titles into CD-safe file and folder names."""

from __future__ import annotations

import re
import unicodedata

MAX_FILENAME_LEN = 60
MAX_FOLDER_NAME_LEN = 80

_S = r"[\t\n\f\r ]"
_NOISE = (
    rf"official{_S}*(?:video|audio|music{_S}*video|visualizer|lyric{_S}*video)?"
    rf"|lyrics?|lyric{_S}*video|hd|hq|4k|1080p|720p|audio|music{_S}*video"
    rf"|visualizer|video{_S}*oficial|videoclip|clip{_S}*officiel"
)
_BRACKET_NOISE = re.compile(
    rf"\[{_S}*(?:{_NOISE}|remastered(?:{_S}*[0-9]{{4}})?){_S}*\]", re.IGNORECASE
)
_PAREN_NOISE = re.compile(rf"\({_S}*(?:{_NOISE}){_S}*\)", re.IGNORECASE)
_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_MULTI_UNDER = re.compile(r"_+")
_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*]+')

# Bulgarian (and common Russian) Cyrillic to Latin.
_CYRILLIC = str.maketrans(
    {
        "Щ": "Sht", "щ": "sht",
        "Ж": "Zh", "ж": "zh",
        "Ц": "Ts", "ц": "ts",
        "Ч": "Ch", "ч": "ch",
        "Ш": "Sh", "ш": "sh",
        "Ю": "Yu", "ю": "yu",
        "Я": "Ya", "я": "ya",
        "Ё": "Yo", "ё": "yo",
        "А": "A", "а": "a",
        "Б": "B", "б": "b",
        "В": "V", "в": "v",
        "Г": "G", "г": "g",
        "Д": "D", "д": "d",
        "Е": "E", "е": "e",
        "З": "Z", "з": "z",
        "И": "I", "и": "i",
        "Й": "Y", "й": "y",
        "К": "K", "к": "k",
        "Л": "L", "л": "l",
        "М": "M", "м": "m",
        "Н": "N", "н": "n",
        "О": "O", "о": "o",
        "П": "P", "п": "p",
        "Р": "R", "р": "r",
        "С": "S", "с": "s",
        "Т": "T", "т": "t",
        "У": "U", "у": "u",
        "Ф": "F", "ф": "f",
        "Х": "H", "х": "h",
        "Ъ": "A", "ъ": "a",
        "Ь": "Y", "ь": "y",
        "Э": "E", "э": "e",
        "Ы": "Y", "ы": "y",
    }
)


def strip_control(s: str) -> str:
    """Remove control characters (null bytes, tabs, newlines and the like)."""
    return "".join(
        char for char in s if not (ord(char) < 0x20 or 0x7F <= ord(char) <= 0x9F)
    )


def transliterate(s: str) -> str:
    """Map Cyrillic to Latin and strip diacritics."""
    s = s.translate(_CYRILLIC)
    decomposed = unicodedata.normalize("NFD", s)
    stripped = "".join(c for c in decomposed if unicodedata.category(c) != "Mn")
    return unicodedata.normalize("NFC", stripped)


def _truncate_bytes(s: str, limit: int) -> str:
    encoded = s.encode("utf-8")
    if len(encoded) <= limit:
        return s
    return encoded[:limit].decode("utf-8", "ignore")


def sanitize_filename(title: str, track_num: int) -> str:
    """Build a CD-safe ``NN_title.mp3`` name from a video title."""
    track_num = max(track_num, 0)
    s = transliterate(strip_control(title))
    s = _BRACKET_NOISE.sub("", s)
    s = _PAREN_NOISE.sub("", s)
    s = _NON_ALNUM.sub("_", s.lower())
    s = _MULTI_UNDER.sub("_", s).strip("_")

    if len(s) > MAX_FILENAME_LEN:
        s = s[:MAX_FILENAME_LEN].rstrip("_")
    if not s:
        s = "untitled"
    return f"{track_num:02d}_{s}.mp3"


def sanitize_folder_name(title: str) -> str:
    """Build a filesystem-safe folder name from a playlist title."""
    s = transliterate(strip_control(title))
    s = _BRACKET_NOISE.sub("", s).strip()
    if not s:
        return "Untitled"
    s = _UNSAFE_CHARS.sub("_", s)
    s = _MULTI_UNDER.sub("_", s).strip("_. ")

    if len(s.encode("utf-8")) > MAX_FOLDER_NAME_LEN:
        s = _truncate_bytes(s, MAX_FOLDER_NAME_LEN).rstrip("_. ")
    return s or "Untitled"