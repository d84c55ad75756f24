"""Burning subtitles into videos: SRT to ASS conversion and ffmpeg rendering."""

from __future__ import annotations

import logging
import os
import re
import subprocess
import sys
from datetime import timedelta
from typing import Iterator

from subforge.languages import LanguageCode
from subforge.models import (
    ASS_HEADER_HORIZONTAL,
    ASS_HEADER_VERTICAL,
    HORIZONTAL_EMBED_VIDEO_FILE_NAME,
    TRANSFERRED_VERTICAL_VIDEO_FILE_NAME,
    VERTICAL_EMBED_VIDEO_FILE_NAME,
    SubtitleResultType,
    SubtitleTaskStepParam,
    ToolPaths,
)
from subforge.textutil import clean_punctuation, contains_alphabetic

logger = logging.getLogger(__name__)

# Languages written without spaces between words; they are split per character.
_CHARACTER_LANGUAGES = frozenset(
    {
        LanguageCode.SIMPLIFIED_CHINESE.value,
        LanguageCode.TRADITIONAL_CHINESE.value,
        LanguageCode.JAPANESE.value,
        LanguageCode.KOREAN.value,
        LanguageCode.THAI.value,
    }
)
_INT_RE = re.compile(r"[+-]?[0-9]+")
_RESOLUTION_RE = re.compile(r"^([0-9]+)x([0-9]+)$")
_MAJOR_LINE_SEPARATOR = "      \\N"
_VERTICAL_CHARS_PER_LINE = 10
_ASS_FILE_NAME = "formatted_subtitles.ass"

_FONT_PATHS = {
    # ffmpeg filter arguments need the drive colon escaped on Windows.
    "windows": ("C\\:/Windows/Fonts/msyhbd.ttc", "C\\:/Windows/Fonts/msyh.ttc"),
    "darwin": (
        "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
        "/System/Library/Fonts/Supplemental/Arial.ttf",
    ),
    "linux": (
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    ),
}


def _language_key(language: str | LanguageCode) -> str:
    return language.value if isinstance(language, LanguageCode) else language


def embed_subtitles(step: SubtitleTaskStepParam, tools: ToolPaths) -> None:
    """Render horizontal and/or vertical videos with burnt-in subtitles as requested."""
    video_type = step.embed_subtitle_video_type
    if video_type not in ("horizontal", "vertical", "all"):
        logger.info("subtitle embedding not requested")
        return

    width, height = get_resolution(step.input_video_path, tools.ffprobe_path)

    # A horizontal video can become a vertical one, but not the other way round.
    if video_type in ("horizontal", "all"):
        if width < height:
            logger.info("input video is vertical; skipping horizontal rendering")
            return
        logger.info("rendering horizontal video with subtitles")
        render_subtitled_video(step, True, tools)

    if video_type in ("vertical", "all"):
        if width > height:
            vertical_path = os.path.join(step.task_base_path, TRANSFERRED_VERTICAL_VIDEO_FILE_NAME)
            convert_to_vertical(
                step.input_video_path,
                vertical_path,
                step.vertical_video_major_title,
                step.vertical_video_minor_title,
                tools,
            )
            step.input_video_path = vertical_path
        logger.info("rendering vertical video with subtitles")
        render_subtitled_video(step, False, tools)
    logger.info("subtitles embedded into video")


def split_major_text_in_horizontal(
    text: str, language: str | LanguageCode, max_word_one_line: int
) -> list[str]:
    """Split a long major subtitle line into two lines at about two fifths of its width."""
    if _language_key(language) in _CHARACTER_LANGUAGES:
        segments = re.findall(r".", text)
        sep = ""
    else:
        segments = text.split(" ")
        sep = " "

    total_width = len(segments)
    if total_width <= max_word_one_line:
        return [text]

    line1_max_width = int(total_width * 2 / 5)
    split_index = max(line1_max_width, 1) if segments else 0

    line1 = clean_punctuation(sep.join(segments[:split_index]))
    line2 = clean_punctuation(sep.join(segments[split_index:]))
    return [line1, line2]


def split_chinese_text(text: str, max_word_line: int) -> list[str]:
    """Cut ``text`` into chunks of at most ``max_word_line`` characters."""
    return [text[i : i + max_word_line] for i in range(0, len(text), max_word_line)]


def _parse_int(value: str) -> int:
    if not _INT_RE.fullmatch(value):
        raise ValueError(f"invalid number: {value!r}")
    return int(value)


def parse_srt_time(time_str: str) -> timedelta:
    """Parse an SRT time ``HH:MM:SS,mmm`` into a timedelta."""
    time_str = time_str.replace(",", ".", 1)
    parts = time_str.split(":")
    if len(parts) != 3:
        raise ValueError(f"invalid time format: {time_str}")
    hours = _parse_int(parts[0])
    minutes = _parse_int(parts[1])
    sec_parts = parts[2].split(".")
    if len(sec_parts) != 2:
        raise ValueError(f"invalid time format: {time_str}")
    seconds = _parse_int(sec_parts[0])
    milliseconds = _parse_int(sec_parts[1])
    return timedelta(hours=hours, minutes=minutes, seconds=seconds, milliseconds=milliseconds)


def _trunc_div(a: int, b: int) -> int:
    quotient = abs(a) // b
    return quotient if a >= 0 else -quotient


def _trunc_mod(a: int, b: int) -> int:
    return a - b * _trunc_div(a, b)


def format_timestamp(t: timedelta) -> str:
    """Format a timedelta as an ASS time ``HH:MM:SS.cc``."""
    micros = t // timedelta(microseconds=1)
    hours = _trunc_div(micros, 3_600_000_000)
    minutes = _trunc_mod(_trunc_div(micros, 60_000_000), 60)
    seconds = _trunc_mod(_trunc_div(micros, 1_000_000), 60)
    centis = _trunc_div(_trunc_mod(_trunc_div(micros, 1000), 1000), 10)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{centis:02d}"


def _scan_lines(path: str | os.PathLike) -> Iterator[str]:
    with open(path, encoding="utf-8", newline="") as handle:
        content = handle.read()
    if not content:
        return
    lines = content.split("\n")
    if lines[-1] == "":
        lines.pop()
    for line in lines:
        yield line[:-1] if line.endswith("\r") else line


def _dialogue(start: timedelta, end: timedelta, style: str, text: str) -> str:
    return (
        f"Dialogue: 0,{format_timestamp(start)},{format_timestamp(end)},"
        f"{style},,0,0,0,,{text}\n"
    )


def _read_times(timestamp_line: str) -> tuple[timedelta, timedelta] | None:
    parts = timestamp_line.split(" --> ")
    if len(parts) != 2:
        return None
    return parse_srt_time(parts[0].strip()), parse_srt_time(parts[1].strip())


def srt_to_ass(
    input_srt: str | os.PathLike,
    output_ass: str | os.PathLike,
    is_horizontal: bool,
    step: SubtitleTaskStepParam,
) -> None:
    """Convert a bilingual SRT file into a styled ASS file for burning in."""
    lines = _scan_lines(input_srt)
    with open(output_ass, "w", encoding="utf-8", newline="") as ass:
        if is_horizontal:
            ass.write(ASS_HEADER_HORIZONTAL)
            _write_horizontal(lines, ass, step)
        else:
            ass.write(ASS_HEADER_VERTICAL)
            _write_vertical(lines, ass)


def _write_horizontal(lines: Iterator[str], ass, step: SubtitleTaskStepParam) -> None:
    if step.subtitle_result_type == SubtitleResultType.BILINGUAL_TRANSLATION_ON_TOP:
        major_language = step.target_language
    else:
        major_language = step.origin_language

    for line in lines:
        if line == "":
            continue
        timestamp_line = next(lines, None)
        if timestamp_line is None:
            break
        times = _read_times(timestamp_line)
        if times is None:
            continue
        start, end = times

        subtitle_lines: list[str] = []
        for text_line in lines:
            if text_line == "":
                break
            subtitle_lines.append(text_line)
        if len(subtitle_lines) < 2:
            continue

        major = _MAJOR_LINE_SEPARATOR.join(
            split_major_text_in_horizontal(
                subtitle_lines[0], major_language, step.max_word_one_line
            )
        )
        minor = clean_punctuation(subtitle_lines[1])
        text = f"{{\\an2}}{{\\rMajor}}{major}\\N{{\\rMinor}}{minor}"
        ass.write(_dialogue(start, end, "Major", text))


def _write_vertical(lines: Iterator[str], ass) -> None:
    for line in lines:
        if line == "":
            continue
        timestamp_line = next(lines, None)
        if timestamp_line is None:
            break
        times = _read_times(timestamp_line)
        if times is None:
            continue
        start, end = times

        content = next(lines, "")
        if content == "":
            continue

        if contains_alphabetic(content):
            text = f"{{\\an2}}{{\\rMinor}}{clean_punctuation(content)}"
            ass.write(_dialogue(start, end, "Minor", text))
            continue

        chunks = split_chinese_text(content, _VERTICAL_CHARS_PER_LINE)
        total_us = (end - start) // timedelta(microseconds=1)
        count = len(chunks)
        for i, chunk in enumerate(chunks):
            chunk_start = start + timedelta(microseconds=int(i * total_us / count))
            chunk_end = min(start + timedelta(microseconds=int((i + 1) * total_us / count)), end)
            text = f"{{\\an2}}{{\\rMajor}}{clean_punctuation(chunk)}"
            ass.write(_dialogue(chunk_start, chunk_end, "Major", text))


def _run(cmd: list[str], what: str) -> bytes:
    try:
        completed = subprocess.run(cmd, capture_output=True, check=True)
    except subprocess.CalledProcessError as exc:
        output = (exc.stdout or b"") + (exc.stderr or b"")
        raise RuntimeError(
            f"{what} failed: {exc}: {output.decode('utf-8', errors='replace')}"
        ) from exc
    except OSError as exc:
        raise RuntimeError(f"{what} failed: {exc}") from exc
    return completed.stdout


def render_subtitled_video(
    step: SubtitleTaskStepParam, is_horizontal: bool, tools: ToolPaths
) -> None:
    """Write the ASS file and burn it into the task video with ffmpeg."""
    output_name = HORIZONTAL_EMBED_VIDEO_FILE_NAME if is_horizontal else VERTICAL_EMBED_VIDEO_FILE_NAME
    ass_path = os.path.join(step.task_base_path, _ASS_FILE_NAME)
    srt_to_ass(step.bilingual_srt_file_path, ass_path, is_horizontal, step)

    cmd = [
        tools.ffmpeg_path,
        "-y",
        "-i", step.input_video_path,
        "-vf", "ass=" + ass_path.replace("\\", "/"),
        "-c:a", "aac",
        "-b:a", "192k",
        os.path.join(step.task_base_path, "output", output_name),
    ]
    _run(cmd, "embedding subtitles into video")


def get_font_paths(platform: str | None = None) -> tuple[str, str]:
    """Return the bold and regular font files for ``platform`` (windows, darwin, linux)."""
    if platform is None:
        if sys.platform == "win32":
            platform = "windows"
        elif sys.platform.startswith("linux"):
            platform = "linux"
        else:
            platform = sys.platform
    try:
        return _FONT_PATHS[platform]
    except KeyError:
        raise ValueError(f"unsupported OS: {platform}") from None


def get_resolution(input_video: str, ffprobe_path: str = "ffprobe") -> tuple[int, int]:
    """Return ``(width, height)`` of the first video stream, as reported by ffprobe."""
    cmd = [
        ffprobe_path,
        "-v", "error",
        "-select_streams", "v:0",
        "-show_entries", "stream=width,height",
        "-of", "csv=s=x:p=0",
        input_video,
    ]
    try:
        completed = subprocess.run(
            cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, check=True
        )
    except (OSError, subprocess.CalledProcessError) as exc:
        raise RuntimeError(f"getting video resolution failed: {exc}") from exc

    output = completed.stdout.decode("utf-8", errors="replace").strip()
    output = output.removesuffix("x")  # ffprobe may print e.g. 1920x1080x
    match = _RESOLUTION_RE.match(output)
    if not match:
        raise ValueError(f"invalid resolution format: {output}")
    return int(match.group(1)), int(match.group(2))


def convert_to_vertical(
    input_video: str,
    output_video: str,
    major_title: str,
    minor_title: str,
    tools: ToolPaths,
) -> None:
    """Pad a horizontal video into a 720x1280 frame with titles on top."""
    if os.path.exists(output_video):
        logger.info("vertical video already exists: %s", output_video)
        return

    font_bold, font_regular = get_font_paths()
    video_filter = (
        "scale=720:1280:force_original_aspect_ratio=decrease,"
        "pad=720:1280:(ow-iw)/2:(oh-ih)*2/5,"
        "drawbox=y=0:h=100:c=black@1:t=fill,"
        f"drawtext=text='{major_title}':x=(w-text_w)/2:y=210:fontsize=55:fontcolor=yellow:"
        f"box=1:boxcolor=black@0.5:fontfile='{font_bold}',"
        f"drawtext=text='{minor_title}':x=(w-text_w)/2:y=280:fontsize=40:fontcolor=yellow:"
        f"box=1:boxcolor=black@0.5:fontfile='{font_regular}'"
    )
    cmd = [
        tools.ffmpeg_path,
        "-i", input_video,
        "-vf", video_filter,
        "-r", "30",
        "-b:v", "7587k",
        "-c:a", "aac",
        "-b:a", "192k",
        "-c:v", "libx264",
        "-preset", "fast",
        "-y",
        output_video,
    ]
    _run(cmd, "converting video to vertical")
    logger.info("vertical video saved to %s", output_video)