"""Data types, constants, tool paths and the task store of a subtitle job."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Protocol, runtime_checkable


class SubtitleResultType(IntEnum):
    """Which subtitle files a task produces."""

    ORIGIN_ONLY = 1
    TARGET_ONLY = 2
    BILINGUAL_TRANSLATION_ON_TOP = 3
    BILINGUAL_TRANSLATION_ON_BOTTOM = 4


class TaskStatus(IntEnum):
    """Lifecycle state of a subtitle task."""

    PROCESSING = 1
    SUCCESS = 2
    FAILED = 3


# Request option values.
BILINGUAL_YES = 1
BILINGUAL_NO = 2
TRANSLATION_SUBTITLE_POS_TOP = 1
TRANSLATION_SUBTITLE_POS_BELOW = 2
MODAL_FILTER_YES = 1
MODAL_FILTER_NO = 2
TTS_YES = 1
TTS_NO = 2
TTS_VOICE_CODE_LONGYU = 1
TTS_VOICE_CODE_LONGCHEN = 2

DEFAULT_MAX_WORD_ONE_LINE = 12

# File names used inside a task directory.
AUDIO_FILE_NAME = "origin_audio.mp3"
VIDEO_FILE_NAME = "origin_video.mp4"
SPLIT_AUDIO_FILE_NAME_PREFIX = "split_audio"
SPLIT_AUDIO_FILE_NAME_PATTERN = SPLIT_AUDIO_FILE_NAME_PREFIX + "_%03d.mp3"
SPLIT_AUDIO_TXT_FILE_NAME_PATTERN = "split_audio_txt_%d.txt"
SPLIT_AUDIO_WORDS_FILE_NAME_PATTERN = "split_audio_words_%d.txt"
SPLIT_SRT_NO_TIMESTAMP_FILE_NAME_PATTERN = "srt_no_ts_%d.srt"
SRT_NO_TIMESTAMP_FILE_NAME = "srt_no_ts.srt"
SPLIT_BILINGUAL_SRT_FILE_NAME_PATTERN = "split_bilingual_srt_%d.srt"
SPLIT_SHORT_ORIGIN_MIXED_SRT_FILE_NAME_PATTERN = "split_short_origin_mixed_srt_%d.srt"
SPLIT_SHORT_ORIGIN_SRT_FILE_NAME_PATTERN = "split_short_origin_srt_%d.srt"
BILINGUAL_SRT_FILE_NAME = "bilingual_srt.srt"
SHORT_ORIGIN_MIXED_SRT_FILE_NAME = "short_origin_mixed_srt.srt"
SHORT_ORIGIN_SRT_FILE_NAME = "short_origin_srt.srt"
ORIGIN_LANGUAGE_SRT_FILE_NAME = "origin_language_srt.srt"
ORIGIN_LANGUAGE_TEXT_FILE_NAME = "origin_language.txt"
TARGET_LANGUAGE_SRT_FILE_NAME = "target_language_srt.srt"
TARGET_LANGUAGE_TEXT_FILE_NAME = "target_language.txt"
STEP_PARAM_PERSISTENCE_FILE_NAME = "step_param.gob"
TRANSFERRED_VERTICAL_VIDEO_FILE_NAME = "transferred_vertical_video.mp4"
HORIZONTAL_EMBED_VIDEO_FILE_NAME = "horizontal_embed.mp4"
VERTICAL_EMBED_VIDEO_FILE_NAME = "vertical_embed.mp4"

TTS_AUDIO_DURATION_DETAILS_FILE_NAME = "audio_duration_details.txt"
TTS_RESULT_AUDIO_FILE_NAME = "tts_final_audio.wav"
ASR_MONO_16K_AUDIO_FILE_NAME = "mono_16k_audio.mp3"

NO_TEXT_MARKER = "[无文本]"

_SPLIT_RULES = (
    "Task: translate the text given at the end into %s and split it into short sentences.\n"
    "\n"
    "1. The translation must read fluently and naturally, at a professional level.\n"
    "2. Split strictly at punctuation (commas, full stops, question marks and the like). "
    "Keep every sentence as short as its meaning allows, ideally no more than 15 words; "
    "conjunctions such as \"and\", \"but\", \"which\", \"when\", \"so\" may also be used as split points.\n"
    "3. Translate each split sentence on its own, without dropping or altering any word.\n"
    "4. Number every pair of translated and source sentence, and wrap each in square brackets [].\n"
    "5. Keep the pairs in the order of the source text; the source sentence should be quoted as it stands.\n"
)

_SPLIT_FORMAT = (
    "\n"
    "Output format, each block three lines, blocks separated by a blank line:\n"
    "1\n"
    "[translated sentence 1]\n"
    "[source sentence 1]\n"
    "\n"
    "2\n"
    "[translated sentence 2]\n"
    "[source sentence 2]\n"
    "\n"
    "If there is no text to translate, output only:\n"
    + NO_TEXT_MARKER
    + "\n"
    "\n"
    "The text follows:\n"
)

SPLIT_TEXT_PROMPT = (
    _SPLIT_RULES
    + "6. Translate the content whether it is formal or informal.\n"
    + _SPLIT_FORMAT
)

SPLIT_TEXT_PROMPT_WITH_MODAL_FILTER = (
    _SPLIT_RULES
    + "6. Leave out interjections and filler words such as \"Oh\", \"Ah\" or \"Wow\".\n"
    + "7. Translate the content whether it is formal or informal.\n"
    + _SPLIT_FORMAT
)

TRANSLATE_VIDEO_TITLE_AND_DESCRIPTION_PROMPT = (
    "Translate the title and description below, which are separated by ####:\n"
    " - translate the content into %s\n"
    " - keep #### as the separator between title and description in the result\n"
    " Everything below is source content; translate all of it:\n"
    "%s\n"
)

_ASS_STYLES_FORMAT = (
    "Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, OutlineColour, "
    "BackColour, Bold, Italic, Underline, StrikeOut, ScaleX, ScaleY, Spacing, Angle, "
    "BorderStyle, Outline, Shadow, Alignment, MarginL, MarginR, MarginV, Encoding\n"
)
_ASS_SCRIPT_INFO = (
    "[Script Info]\n"
    "Title: Example\n"
    "Original Script: \n"
    "ScriptType: v4.00+\n"
    "PlayDepth: 0\n"
    "\n"
    "[V4+ Styles]\n"
)
_ASS_EVENTS = (
    "\n\n[Events]\n"
    "Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text\n"
)

ASS_HEADER_HORIZONTAL = (
    _ASS_SCRIPT_INFO
    + _ASS_STYLES_FORMAT
    + "Style: Major,Arial,18,&H00BFFF,&H000000FF,&H00000000,&H64000000,-1,0,0,0,100,100,0,0,1,2.5,1.5,2,10,10,20,1\n"
    + "Style: Minor,Arial,12,&H00BFFF,&H000000FF,&H00000000,&H64000000,-1,0,0,0,100,100,0,0,1,2.5,1.5,2,10,10,30,1\n"
    + _ASS_EVENTS
)

ASS_HEADER_VERTICAL = (
    _ASS_SCRIPT_INFO
    + _ASS_STYLES_FORMAT
    + "Style: Major,Arial,15,&H00BFFF,&H000000FF,&H00000000,&H64000000,-1,0,0,0,100,100,-10,0,1,2.5,1.5,2,10,10,80,1\n"
    + "Style: Minor,Arial,8,&H00BFFF,&H000000FF,&H00000000,&H64000000,-1,0,0,0,100,100,-10,0,1,2.5,1.5,2,10,10,100,1\n"
    + _ASS_EVENTS
)


@dataclass
class Word:
    """A recognised word with its position and time span in seconds."""

    num: int = 0
    text: str = ""
    start: float = 0.0
    end: float = 0.0


@dataclass
class TranscriptionData:
    """Result of transcribing one audio file."""

    language: str = ""
    text: str = ""
    words: list[Word] = field(default_factory=list)


@dataclass
class SmallAudio:
    """One segment of the split source audio."""

    audio_file: str
    transcription_data: TranscriptionData | None = None
    srt_no_ts_file: str = ""


@dataclass
class SubtitleFileInfo:
    """A subtitle file produced locally by a task."""

    name: str = ""
    path: str = ""
    language_identifier: str = ""


@dataclass
class SubtitleInfo:
    """A downloadable subtitle result of a task."""

    id: int = 0
    task_id: str = ""
    uid: int = 0
    name: str = ""
    download_url: str = ""
    create_time: int = 0


@dataclass
class SubtitleTask:
    """Status record of a subtitle task, as reported to clients."""

    task_id: str = ""
    id: int = 0
    title: str = ""
    description: str = ""
    translated_title: str = ""
    translated_description: str = ""
    origin_language: str = ""
    target_language: str = ""
    video_src: str = ""
    status: TaskStatus = TaskStatus.PROCESSING
    last_success_step_num: int = 0
    fail_reason: str = ""
    process_pct: int = 0
    duration: int = 0
    srt_num: int = 0
    subtitle_infos: list[SubtitleInfo] = field(default_factory=list)
    cover: str = ""
    speech_download_url: str = ""
    create_time: int = 0
    update_time: int = 0


@dataclass
class SubtitleTaskStepParam:
    """Working state passed between the steps of a subtitle task."""

    task_id: str = ""
    task: SubtitleTask = field(default_factory=SubtitleTask)
    task_base_path: str = ""
    link: str = ""
    audio_file_path: str = ""
    small_audios: list[SmallAudio] = field(default_factory=list)
    subtitle_result_type: SubtitleResultType = SubtitleResultType.ORIGIN_ONLY
    enable_modal_filter: bool = False
    enable_tts: bool = False
    tts_voice_code: str = ""
    voice_clone_audio_url: str = ""
    replace_words_map: dict[str, str] = field(default_factory=dict)
    origin_language: str = ""
    target_language: str = ""
    user_ui_language: str = ""
    bilingual_srt_file_path: str = ""
    short_origin_mixed_srt_file_path: str = ""
    subtitle_infos: list[SubtitleFileInfo] = field(default_factory=list)
    tts_source_file_path: str = ""
    tts_result_file_path: str = ""
    input_video_path: str = ""
    embed_subtitle_video_type: str = ""
    vertical_video_major_title: str = ""
    vertical_video_minor_title: str = ""
    max_word_one_line: int = DEFAULT_MAX_WORD_ONE_LINE


@dataclass
class SrtSentence:
    """A sentence with start and end times in seconds."""

    text: str = ""
    start: float = 0.0
    end: float = 0.0


@dataclass
class SrtSentenceWithStrTime:
    """A sentence with SRT-formatted start and end times."""

    text: str = ""
    start: str = ""
    end: str = ""


@runtime_checkable
class ChatCompleter(Protocol):
    """Something that answers a prompt with text."""

    def chat_completion(self, query: str) -> str:
        ...


@runtime_checkable
class Transcriber(Protocol):
    """Something that turns an audio file into text with word timings."""

    def transcription(self, audio_file: str, language: str, work_dir: str) -> TranscriptionData:
        ...


@dataclass
class ToolPaths:
    """Locations of the external programs the pipeline runs."""

    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    ytdlp_path: str = "yt-dlp"
    fasterwhisper_path: str = ""
    whisperkit_path: str = ""
    whispercpp_path: str = ""


class TaskStore:
    """Thread-safe map of task id to task, used for status queries."""

    def __init__(self) -> None:
        self._tasks: dict[str, SubtitleTask] = {}
        self._lock = threading.Lock()

    def store(self, task: SubtitleTask) -> None:
        """Insert or replace a task under its id."""
        with self._lock:
            self._tasks[task.task_id] = task

    def load(self, task_id: str) -> SubtitleTask | None:
        """Return the task with ``task_id``, or None."""
        with self._lock:
            return self._tasks.get(task_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        with self._lock:
            return task_id in self._tasks


subtitle_tasks = TaskStore()