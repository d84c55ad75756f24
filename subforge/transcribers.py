"""Speech recognition through locally installed whisper command-line tools."""

from __future__ import annotations

import json
import logging
import re
import subprocess
from dataclasses import dataclass
from typing import Any, Mapping

from subforge.models import TranscriptionData, Word
from subforge.textutil import change_file_extension, clean_punctuation

logger = logging.getLogger(__name__)

_DASH = "—"
_SPECIAL_TOKEN_RE = re.compile(r"\[.*\]")
_FASTER_WHISPER_DONE_MARK = "Subtitles are written to"
_WHISPERCPP_DONE_MARK = "output_json: saving output to"


def _atoi(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return 0


def parse_timestamp_to_seconds(time_str: str) -> float:
    """Convert a ``HH:MM:SS,mmm`` timestamp into seconds."""
    parts = time_str.split(",")
    if len(parts) != 2:
        raise ValueError(f"invalid timestamp format: {time_str}")
    clock = parts[0].split(":")
    if len(clock) != 3:
        raise ValueError(f"invalid time format: {parts[0]}")
    hours, minutes, seconds = (_atoi(item) for item in clock)
    milliseconds = _atoi(parts[1])
    return float(hours * 3600 + minutes * 60 + seconds) + milliseconds / 1000


def _clean(text: str) -> str:
    return clean_punctuation(text.strip())


def _words_from(text: str, start: float, end: float, num: int) -> list[Word]:
    """Build one word, or two halves when the model glued words with a dash."""
    if _DASH in text:
        mid = (start + end) / 2
        parts = text.split(_DASH)
        return [
            Word(num=num, text=_clean(parts[0]), start=start, end=mid),
            Word(num=num + 1, text=_clean(parts[1]), start=mid, end=end),
        ]
    return [Word(num=num, text=_clean(text), start=start, end=end)]


def _segments_to_transcription(segments: list[Mapping[str, Any]]) -> TranscriptionData:
    text = ""
    words: list[Word] = []
    for segment in segments:
        text += segment.get("text", "").replace(_DASH, " ")
        for word in segment.get("words") or []:
            words.extend(
                _words_from(
                    word.get("word", ""),
                    float(word.get("start", 0.0)),
                    float(word.get("end", 0.0)),
                    len(words),
                )
            )
    return TranscriptionData(text=text, words=words)


def parse_faster_whisper_output(data: Mapping[str, Any]) -> TranscriptionData:
    """Turn faster-whisper JSON output into transcription data."""
    return _segments_to_transcription(data.get("segments") or [])


def parse_whisperkit_output(data: Mapping[str, Any]) -> TranscriptionData:
    """Turn WhisperKit JSON report output into transcription data."""
    return _segments_to_transcription(data.get("segments") or [])


def parse_whispercpp_output(data: Mapping[str, Any]) -> TranscriptionData:
    """Turn whisper.cpp full JSON output into transcription data.

    Special tokens such as ``[_BEG_]`` are skipped.
    """
    text = ""
    words: list[Word] = []
    for segment in data.get("transcription") or []:
        text += segment.get("text", "").replace(_DASH, " ")
        for token in segment.get("tokens") or []:
            stamps = token.get("timestamps") or {}
            start = parse_timestamp_to_seconds(stamps.get("from", ""))
            end = parse_timestamp_to_seconds(stamps.get("to", ""))
            token_text = token.get("text", "")
            if _SPECIAL_TOKEN_RE.fullmatch(token_text):
                continue
            words.extend(_words_from(token_text, start, end, len(words)))
    return TranscriptionData(text=text, words=words)


def _run_combined(cmd: list[str]) -> tuple[int, str]:
    logger.info("transcription start: %s", " ".join(cmd))
    try:
        completed = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT)
    except OSError as exc:
        raise RuntimeError(f"could not start {cmd[0]}: {exc}") from exc
    output = (completed.stdout or b"").decode("utf-8", errors="replace")
    return completed.returncode, output


def _load_json_beside(audio_file: str) -> Mapping[str, Any]:
    with open(change_file_extension(audio_file, ".json"), encoding="utf-8") as handle:
        return json.load(handle)


@dataclass
class FasterWhisperProcessor:
    """Transcribes with the faster-whisper command-line tool."""

    model: str
    executable: str
    work_dir: str = ""

    def transcription(self, audio_file: str, language: str, work_dir: str) -> TranscriptionData:
        """Transcribe ``audio_file``; the tool writes its JSON next to the audio."""
        cmd = [
            self.executable,
            "--model_dir", "./models/",
            "--model", self.model,
            "--one_word", "2",
            "--output_format", "json",
            "--language", language,
            "--output_dir", work_dir,
            audio_file,
        ]
        code, output = _run_combined(cmd)
        if code != 0 and _FASTER_WHISPER_DONE_MARK not in output:
            raise RuntimeError(f"faster-whisper failed with exit code {code}: {output}")
        return parse_faster_whisper_output(_load_json_beside(audio_file))


@dataclass
class WhisperCppProcessor:
    """Transcribes with the whisper.cpp command-line tool."""

    model: str
    executable: str
    work_dir: str = ""

    def transcription(self, audio_file: str, language: str, work_dir: str) -> TranscriptionData:
        """Transcribe ``audio_file``; the tool writes its JSON next to the audio."""
        cmd = [
            self.executable,
            "-m", f"./models/whispercpp/ggml-{self.model}.bin",
            "--output-json-full",
            "--flash-attn",
            "--split-on-word",
            "--language", language,
            "--output-file", change_file_extension(audio_file, ""),
            "--file", audio_file,
        ]
        code, output = _run_combined(cmd)
        if code != 0 and _WHISPERCPP_DONE_MARK not in output:
            raise RuntimeError(f"whisper.cpp failed with exit code {code}: {output}")
        return parse_whispercpp_output(_load_json_beside(audio_file))


@dataclass
class WhisperKitProcessor:
    """Transcribes with the WhisperKit command-line tool."""

    model: str
    executable: str
    work_dir: str = ""

    def transcription(self, audio_file: str, language: str, work_dir: str) -> TranscriptionData:
        """Transcribe ``audio_file``; the tool writes its JSON report next to the audio."""
        cmd = [
            self.executable,
            "transcribe",
            "--model-path", "./models/whisperkit/openai_whisper-large-v2",
            "--audio-encoder-compute-units", "all",
            "--text-decoder-compute-units", "all",
            "--language", language,
            "--report",
            "--report-path", work_dir,
            "--word-timestamps",
            "--skip-special-tokens",
            "--audio-path", audio_file,
        ]
        code, output = _run_combined(cmd)
        if code != 0:
            raise RuntimeError(f"whisperkit failed with exit code {code}: {output}")
        return parse_whisperkit_output(_load_json_beside(audio_file))