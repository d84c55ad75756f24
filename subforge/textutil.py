"""Small string, path and file helpers shared across the package."""

from __future__ import annotations

import math
import os
import random
import re
import struct
import unicodedata
import uuid
import zipfile
from pathlib import Path
from urllib.parse import parse_qs, urlparse

_RAND_ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ123456789"
_BILIBILI_RE = re.compile(
    r"https://(?:www\.)?bilibili\.com/(?:video/|video/av\d+/)(BV[a-zA-Z0-9]+)"
)
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

# Letter ranges treated as alphabetic scripts (Latin, extended Latin, Greek, Cyrillic).
_ALPHABETIC_RANGES = (
    ("A", "Z"),
    ("a", "z"),
    ("\u00c0", "\u024f"),
    ("\u0370", "\u03ff"),
    ("\u0400", "\u04ff"),
)


def generate_rand_string(n: int) -> str:
    """Return a random string of ``n`` letters and digits 1-9."""
    return "".join(random.choice(_RAND_ALPHABET) for _ in range(n))


def get_youtube_id(url: str) -> str:
    """Extract the video id from a YouTube URL.

    Raises ValueError when a ``watch`` URL has no ``v`` parameter.
    """
    parsed = urlparse(url)
    if "watch" in parsed.path:
        values = parse_qs(parsed.query, keep_blank_values=True).get("v")
        if values:
            return values[0]
        raise ValueError("no video ID found")
    return parsed.path.split("/")[-1]


def get_bilibili_video_id(url: str) -> str:
    """Return the BV id in a bilibili video URL, or an empty string."""
    match = _BILIBILI_RE.search(url)
    return match.group(1) if match else ""


def _f32(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


def format_time(seconds: float) -> str:
    """Format seconds as an SRT timestamp ``HH:MM:SS,mmm`` (single precision)."""
    secs32 = _f32(seconds)
    total = int(math.floor(secs32))
    millis = int(_f32(_f32(secs32 - _f32(float(total))) * 1000))
    hours = total // 3600
    minutes = (total % 3600) // 60
    secs = total % 60
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def is_number(s: str) -> bool:
    """Tell whether ``s`` is a plain 64-bit decimal integer (a subtitle index)."""
    if not _INTEGER_RE.fullmatch(s):
        return False
    return _INT64_MIN <= int(s) <= _INT64_MAX


def unzip(zip_file: str | os.PathLike, dest_dir: str | os.PathLike) -> None:
    """Extract every entry of ``zip_file`` under ``dest_dir``."""
    dest = Path(dest_dir)
    with zipfile.ZipFile(zip_file) as archive:
        dest.mkdir(parents=True, exist_ok=True)
        for info in archive.infolist():
            target = dest / info.filename
            if info.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            with archive.open(info) as src, open(target, "wb") as out:
                while chunk := src.read(1 << 16):
                    out.write(chunk)


def generate_id() -> str:
    """Return a random UUID as 32 hex characters."""
    return uuid.uuid4().hex


def _extension(path: str) -> str:
    for index in range(len(path) - 1, -1, -1):
        char = path[index]
        if char in ("/", os.sep):
            break
        if char == ".":
            return path[index:]
    return ""


def change_file_extension(path: str, new_ext: str) -> str:
    """Replace the extension of ``path`` (the part from its last dot) with ``new_ext``."""
    ext = _extension(path)
    return path[: len(path) - len(ext)] + new_ext


def _is_punct(char: str) -> bool:
    return unicodedata.category(char).startswith("P")


def clean_punctuation(word: str) -> str:
    """Strip leading and trailing punctuation characters."""
    start, end = 0, len(word)
    while start < end and _is_punct(word[start]):
        start += 1
    while end > start and _is_punct(word[end - 1]):
        end -= 1
    return word[start:end]


def is_alphabetic(char: str) -> bool:
    """Tell whether ``char`` is a Latin, Greek or Cyrillic letter."""
    if not unicodedata.category(char).startswith("L"):
        return False
    return any(low <= char <= high for low, high in _ALPHABETIC_RANGES)


def contains_alphabetic(text: str) -> bool:
    """Tell whether ``text`` holds any alphabetic-script letter."""
    return any(is_alphabetic(char) for char in text)


def copy_file(src: str | os.PathLike, dst: str | os.PathLike) -> None:
    """Copy ``src`` to ``dst`` and flush it to disk."""
    with open(src, "rb") as source, open(dst, "wb") as dest:
        while chunk := source.read(1 << 16):
            dest.write(chunk)
        dest.flush()
        os.fsync(dest.fileno())