"""Fetching a task's source audio (and video) from a link or a local file."""

from __future__ import annotations

import logging
import subprocess

from subforge.models import AUDIO_FILE_NAME, VIDEO_FILE_NAME, SubtitleTaskStepParam, ToolPaths
from subforge.textutil import get_bilibili_video_id, get_youtube_id

logger = logging.getLogger(__name__)

_LOCAL_PREFIX = "local:"
_VIDEO_FORMAT = (
    "bestvideo[height<=1080][ext=mp4]+bestaudio[ext=m4a]/"
    "bestvideo[height<=720][ext=mp4]+bestaudio[ext=m4a]/"
    "bestvideo[height<=480][ext=mp4]+bestaudio[ext=m4a]"
)


def _run(cmd: list[str], what: str) -> None:
    try:
        subprocess.run(cmd, capture_output=True, check=True)
    except subprocess.CalledProcessError as exc:
        output = (exc.stdout or b"") + (exc.stderr or b"")
        raise RuntimeError(
            f"{what} failed: {exc}: {output.decode('utf-8', errors='replace')}"
        ) from exc
    except OSError as exc:
        raise RuntimeError(f"{what} failed: {exc}") from exc


def _optional_args(tools: ToolPaths, proxy: str) -> list[str]:
    args: list[str] = []
    if proxy:
        args += ["--proxy", proxy]
    return args


def _ffmpeg_location(tools: ToolPaths) -> list[str]:
    if tools.ffmpeg_path != "ffmpeg":
        return ["--ffmpeg-location", tools.ffmpeg_path]
    return []


def link_to_file(step: SubtitleTaskStepParam, tools: ToolPaths, proxy: str = "") -> None:
    """Obtain the task audio as mp3 and, when subtitles get embedded, the source video.

    Supports ``local:`` paths, YouTube and bilibili links. Raises ValueError for
    unsupported or invalid links and RuntimeError when a tool fails.
    """
    link = step.link
    audio_path = f"{step.task_base_path}/{AUDIO_FILE_NAME}"
    video_path = f"{step.task_base_path}/{VIDEO_FILE_NAME}"
    step.task.process_pct = 3

    if _LOCAL_PREFIX in link:
        video_path = link.replace(_LOCAL_PREFIX, "")
        step.input_video_path = video_path
        cmd = [
            tools.ffmpeg_path,
            "-i", video_path,
            "-vn",
            "-ar", "44100",
            "-ac", "2",
            "-ab", "192k",
            "-f", "mp3",
            audio_path,
        ]
        _run(cmd, "extracting audio with ffmpeg")
    elif "youtube.com" in link:
        try:
            video_id = get_youtube_id(link)
        except ValueError as exc:
            raise ValueError(f"invalid YouTube link: {exc}") from exc
        step.link = "https://www.youtube.com/watch?v=" + video_id
        cmd = [
            tools.ytdlp_path,
            "-f", "bestaudio",
            "--extract-audio",
            "--audio-format", "mp3",
            "--audio-quality", "192K",
            "-o", audio_path,
            step.link,
        ]
        cmd += _optional_args(tools, proxy)
        cmd += ["--cookies", "./cookies.txt"]
        cmd += _ffmpeg_location(tools)
        _run(cmd, "downloading audio with yt-dlp")
    elif "bilibili.com" in link:
        video_id = get_bilibili_video_id(link)
        if video_id == "":
            raise ValueError("invalid link")
        step.link = "https://www.bilibili.com/video/" + video_id
        cmd = [
            tools.ytdlp_path,
            "-f", "bestaudio[ext=m4a]",
            "-x",
            "--audio-format", "mp3",
            "-o", audio_path,
            step.link,
        ]
        cmd += _optional_args(tools, proxy)
        cmd += _ffmpeg_location(tools)
        _run(cmd, "downloading audio with yt-dlp")
    else:
        logger.info("unsupported link type: %s", link)
        raise ValueError("unsupported link, only youtube, bilibili and local files are supported")

    step.task.process_pct = 6
    step.audio_file_path = audio_path

    if not link.startswith(_LOCAL_PREFIX) and step.embed_subtitle_video_type != "none":
        cmd = [tools.ytdlp_path, "-f", _VIDEO_FORMAT, "-o", video_path, step.link]
        cmd += _optional_args(tools, proxy)
        cmd += _ffmpeg_location(tools)
        _run(cmd, "downloading video with yt-dlp")
        step.input_video_path = video_path

    step.task.process_pct = 10