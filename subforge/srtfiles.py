"""Reading, writing, merging and splitting SRT subtitle files."""

from __future__ import annotations

import os
import re
import subprocess
from dataclasses import dataclass
from typing import Iterator, Mapping, TextIO

import regex

from subforge.textutil import is_number

_TIME_PATTERN = re.compile(r"\d{2}:\d{2}:\d{2},\d{3} --> \d{2}:\d{2}:\d{2},\d{3}")
_NON_WORD_RE = regex.compile(r"[^\p{L}\p{N}\s']+")
_LATIN_OR_NUMBER_RE = regex.compile(r"[\p{Script=Latin}\p{N}]")
_HAN_RE = regex.compile(r"\p{Script=Han}")
_HANGUL_RE = regex.compile(r"\p{Script=Hangul}")
_KANA_RE = regex.compile(r"[\p{Script=Hiragana}\p{Script=Katakana}]")


@dataclass
class SrtBlock:
    """One subtitle entry with both language lines."""

    index: int = 0
    timestamp: str = ""
    target_language_sentence: str = ""
    origin_language_sentence: str = ""


def _scan_lines(path: str | os.PathLike) -> Iterator[str]:
    """Yield the lines of a text file without line endings."""
    with open(path, encoding="utf-8", newline="") as handle:
        content = handle.read()
    if not content:
        return
    lines = content.split("\n")
    if lines[-1] == "":
        lines.pop()
    for line in lines:
        yield line[:-1] if line.endswith("\r") else line


def process_block(
    block: list[str],
    target_srt: TextIO,
    target_text: TextIO,
    origin_srt: TextIO,
    origin_text: TextIO,
    is_target_on_top: bool,
) -> None:
    """Split one bilingual block into the target and origin SRT and text outputs."""
    target_lines: list[str] = []
    origin_lines: list[str] = []
    for line in block:
        if _TIME_PATTERN.search(line) or is_number(line):
            target_lines.append(line)
            origin_lines.append(line)
            continue
        top_line = len(target_lines) == 2 and len(origin_lines) == 2
        goes_to_target = is_target_on_top if top_line else not is_target_on_top
        if goes_to_target:
            target_lines.append(line)
            target_text.write(line)
        else:
            origin_lines.append(line)
            origin_text.write(line)

    for lines, out in ((target_lines, target_srt), (origin_lines, origin_srt)):
        if len(lines) > 2:
            out.write("".join(line + "\n" for line in lines))
            out.write("\n")


def is_subtitle_text(line: str) -> bool:
    """Tell whether a line of an SRT file is subtitle text (not index or time)."""
    if line == "" or is_number(line):
        return False
    return not _TIME_PATTERN.search(line)


def trim_string(s: str) -> str:
    """Remove placeholder labels, surrounding brackets and spaces; normalise quotes."""
    s = s.replace("[中文翻译]", "").replace("[英文句子]", "")
    s = s.lstrip(" [").rstrip(" ]")
    return s.replace("’", "'")


def split_sentence(sentence: str) -> list[str]:
    """Split a sentence into words, dropping punctuation except apostrophes."""
    return _NON_WORD_RE.sub(" ", sentence).split()


def merge_file(final_file: str | os.PathLike, *args: str | os.PathLike) -> None:
    """Concatenate the lines of every file in ``args`` into ``final_file``."""
    with open(final_file, "w", encoding="utf-8", newline="") as final:
        for path in args:
            for line in _scan_lines(path):
                final.write(line + "\n")


def merge_srt_files(final_file: str | os.PathLike, *args: str | os.PathLike) -> None:
    """Merge SRT files, renumbering entries and skipping missing files and fences."""
    line_number = 0
    with open(final_file, "w", encoding="utf-8", newline="") as output:
        for path in args:
            if not os.path.exists(path):
                continue
            for line in _scan_lines(path):
                if "```" in line:
                    continue
                if is_number(line):
                    line_number += 1
                    line = str(line_number)
                output.write(line + "\n")


def replace_file_content(
    src_file: str | os.PathLike,
    dst_file: str | os.PathLike,
    replacements: Mapping[str, str],
) -> None:
    """Write ``src_file`` to ``dst_file`` with every key replaced by its value."""
    lines = list(_scan_lines(src_file))
    with open(dst_file, "w", encoding="utf-8", newline="") as out:
        for line in lines:
            for before, after in replacements.items():
                line = line.replace(before, after)
            out.write(line + "\n")


def _split_ext(name: str) -> tuple[str, str]:
    dot = name.rfind(".")
    if dot == -1:
        return name, ""
    return name[:dot], name[dot:]


def add_suffix_to_file_name(file_path: str, suffix: str) -> str:
    """Insert ``suffix`` before the extension: ``a/b.srt`` becomes ``a/b_x.srt``."""
    directory, base = os.path.split(file_path)
    stem, ext = _split_ext(base)
    return os.path.join(directory, f"{stem}{suffix}{ext}")


def get_recognizable_string(s: str) -> str:
    """Keep only Latin letters, numbers, Han, Hangul and kana characters."""
    result = []
    for char in s:
        count = sum(
            1
            for pattern in (_LATIN_OR_NUMBER_RE, _HAN_RE, _HANGUL_RE, _KANA_RE)
            if pattern.fullmatch(char)
        )
        result.append(char * count)
    return "".join(result)


def get_audio_duration(input_file: str, ffprobe_path: str = "ffprobe") -> float:
    """Return the duration in seconds of a media file, as reported by ffprobe."""
    cmd = [
        ffprobe_path,
        "-i", input_file,
        "-show_entries", "format=duration",
        "-v", "quiet",
        "-of", "csv=p=0",
    ]
    try:
        completed = subprocess.run(cmd, capture_output=True, check=True)
    except (OSError, subprocess.CalledProcessError) as exc:
        raise RuntimeError(f"failed to get audio duration: {exc}") from exc
    text = completed.stdout.decode("utf-8", errors="replace").strip()
    try:
        return float(text)
    except ValueError as exc:
        raise ValueError(f"failed to parse audio duration: {text!r}") from exc