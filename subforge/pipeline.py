"""Turning a task's audio into timed, translated subtitle files."""

from __future__ import annotations

import glob
import logging
import os
import re
import subprocess
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field

from subforge.alignment import generate_srt_with_timestamps
from subforge.languages import LanguageCode, get_standard_language_name
from subforge.models import (
    BILINGUAL_SRT_FILE_NAME,
    ORIGIN_LANGUAGE_SRT_FILE_NAME,
    ORIGIN_LANGUAGE_TEXT_FILE_NAME,
    SHORT_ORIGIN_MIXED_SRT_FILE_NAME,
    SHORT_ORIGIN_SRT_FILE_NAME,
    SPLIT_AUDIO_FILE_NAME_PATTERN,
    SPLIT_AUDIO_FILE_NAME_PREFIX,
    SPLIT_BILINGUAL_SRT_FILE_NAME_PATTERN,
    SPLIT_SHORT_ORIGIN_MIXED_SRT_FILE_NAME_PATTERN,
    SPLIT_SHORT_ORIGIN_SRT_FILE_NAME_PATTERN,
    SPLIT_SRT_NO_TIMESTAMP_FILE_NAME_PATTERN,
    SPLIT_TEXT_PROMPT,
    SPLIT_TEXT_PROMPT_WITH_MODAL_FILTER,
    SRT_NO_TIMESTAMP_FILE_NAME,
    TARGET_LANGUAGE_SRT_FILE_NAME,
    TARGET_LANGUAGE_TEXT_FILE_NAME,
    ChatCompleter,
    SmallAudio,
    SubtitleFileInfo,
    SubtitleInfo,
    SubtitleResultType,
    SubtitleTaskStepParam,
    TaskStatus,
    ToolPaths,
    Transcriber,
    TranscriptionData,
)
from subforge.srtfiles import (
    SrtBlock,
    add_suffix_to_file_name,
    merge_file,
    merge_srt_files,
    process_block,
    replace_file_content,
)
from subforge.textutil import is_number

logger = logging.getLogger(__name__)

_THINK_RE = re.compile(r"^\s*<think>.*?</think>")
_NO_TEXT_MARK = "[无文本]"
_DOWNLOAD_PREFIX = "/api/file/"


@dataclass
class PipelineSettings:
    """Tuning of the subtitle pipeline; ``segment_duration`` is in minutes."""

    segment_duration: int = 5
    translate_parallel_num: int = 5
    translate_max_attempts: int = 3
    transcribe_parallel_num: int = 1
    transcribe_max_attempts: int = 3


@dataclass
class TranslatedItem:
    """An original sentence and its translation."""

    origin_text: str = ""
    translated_text: str = ""


def _byte_len(text: str) -> int:
    return len(text.encode("utf-8"))


def _strip_brackets(line: str) -> str:
    return line.strip().removeprefix("[").removesuffix("]")


def parse_and_check_content(split_content: str, original_text: str) -> list[TranslatedItem]:
    """Parse numbered ``[translation]`` / ``[original]`` blocks returned by the model.

    Raises ValueError when the content does not have the expected shape.
    """
    if split_content == "" or original_text == "":
        if split_content == original_text:
            return []
        if split_content == "":
            raise ValueError("splitContent is empty but originalText is not")
        raise ValueError("originalText is empty but splitContent is not")

    if _NO_TEXT_MARK in split_content:
        if _byte_len(original_text.strip()) < 10:
            return []
        raise ValueError("originalText is not empty but splitContent contains [无文本]")

    lines = split_content.split("\n")
    if len(lines) < 3:
        raise ValueError("invalid format, not enough lines")

    result: list[TranslatedItem] = []
    line_iter = iter(lines)
    for raw in line_iter:
        line = raw.strip()
        if line == "" or not is_number(line):
            continue
        translated = next(line_iter, None)
        original = next(line_iter, None)
        if translated is None or original is None:
            raise ValueError("invalid format, block is not complete")
        result.append(
            TranslatedItem(
                origin_text=_strip_brackets(original),
                translated_text=_strip_brackets(translated),
            )
        )

    combined = sum(_byte_len(item.origin_text.strip()) for item in result)
    if abs(_byte_len(original_text.strip()) - combined) > _byte_len(original_text) // 10:
        logger.warning("original text and split content length do not match")
    return result


def _read_lines(path: str) -> list[str]:
    with open(path, encoding="utf-8", newline="") as handle:
        content = handle.read()
    if not content:
        return []
    lines = content.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def _subtitle_name(ui_language: str, prefix: str) -> str:
    if ui_language == LanguageCode.ENGLISH.value:
        return prefix + " Subtitle"
    if ui_language == LanguageCode.SIMPLIFIED_CHINESE.value:
        return prefix + " 单语字幕"
    return ""


def split_srt(step: SubtitleTaskStepParam) -> None:
    """Split the bilingual SRT into single-language SRT and text files and record them."""
    base = step.task_base_path
    output_dir = os.path.join(base, "output")
    os.makedirs(output_dir, exist_ok=True)
    origin_srt_path = os.path.join(base, ORIGIN_LANGUAGE_SRT_FILE_NAME)
    origin_text_path = os.path.join(output_dir, ORIGIN_LANGUAGE_TEXT_FILE_NAME)
    target_srt_path = os.path.join(base, TARGET_LANGUAGE_SRT_FILE_NAME)
    target_text_path = os.path.join(output_dir, TARGET_LANGUAGE_TEXT_FILE_NAME)

    lines = _read_lines(step.bilingual_srt_file_path)
    is_target_on_top = (
        step.subtitle_result_type == SubtitleResultType.BILINGUAL_TRANSLATION_ON_TOP
    )

    def open_out(path: str):
        return open(path, "w", encoding="utf-8", newline="")

    with open_out(origin_srt_path) as origin_srt, open_out(origin_text_path) as origin_text, \
            open_out(target_srt_path) as target_srt, open_out(target_text_path) as target_text:
        block: list[str] = []
        for line in lines:
            if line == "":
                if block:
                    process_block(block, target_srt, target_text, origin_srt, origin_text,
                                  is_target_on_top)
                    block = []
            else:
                block.append(line)
        if block:
            process_block(block, target_srt, target_text, origin_srt, origin_text,
                          is_target_on_top)

    ui = step.user_ui_language
    step.subtitle_infos.append(
        SubtitleFileInfo(
            name=_subtitle_name(ui, get_standard_language_name(step.origin_language)),
            path=origin_srt_path,
            language_identifier=step.origin_language,
        )
    )
    result_type = step.subtitle_result_type
    bilingual_types = (
        SubtitleResultType.BILINGUAL_TRANSLATION_ON_TOP,
        SubtitleResultType.BILINGUAL_TRANSLATION_ON_BOTTOM,
    )
    if result_type == SubtitleResultType.TARGET_ONLY or result_type in bilingual_types:
        step.subtitle_infos.append(
            SubtitleFileInfo(
                name=_subtitle_name(ui, get_standard_language_name(step.target_language)),
                path=target_srt_path,
                language_identifier=step.target_language,
            )
        )
    if result_type in bilingual_types:
        if ui == LanguageCode.ENGLISH.value:
            name = "Bilingual Subtitle"
        elif ui == LanguageCode.SIMPLIFIED_CHINESE.value:
            name = "双语字幕"
        else:
            name = ""
        step.subtitle_infos.append(
            SubtitleFileInfo(
                name=name,
                path=step.bilingual_srt_file_path,
                language_identifier="bilingual",
            )
        )
        step.tts_source_file_path = step.bilingual_srt_file_path


def upload_subtitles(step: SubtitleTaskStepParam) -> None:
    """Apply word replacements, publish download links and mark the task successful."""
    infos: list[SubtitleInfo] = []
    for info in step.subtitle_infos:
        result_path = info.path
        if step.replace_words_map:
            replaced = add_suffix_to_file_name(result_path, "_replaced")
            replace_file_content(result_path, replaced, step.replace_words_map)
            result_path = replaced
        infos.append(
            SubtitleInfo(
                task_id=step.task_id,
                name=info.name,
                download_url=_DOWNLOAD_PREFIX + result_path,
            )
        )
    task = step.task
    task.subtitle_infos = infos
    task.status = TaskStatus.SUCCESS
    task.process_pct = 100
    if step.tts_result_file_path:
        task.speech_download_url = _DOWNLOAD_PREFIX + step.tts_result_file_path


class SubtitlePipeline:
    """Transcribes, translates and times the audio of a subtitle task."""

    def __init__(
        self,
        transcriber: Transcriber,
        chat_completer: ChatCompleter,
        settings: PipelineSettings | None = None,
        tools: ToolPaths | None = None,
    ) -> None:
        self.transcriber = transcriber
        self.chat_completer = chat_completer
        self.settings = settings or PipelineSettings()
        self.tools = tools or ToolPaths()

    def audio_to_subtitle(self, step: SubtitleTaskStepParam) -> None:
        """Run splitting, transcription, translation and SRT splitting for a task."""
        self.split_audio(step)
        self.audio_to_srt(step)
        split_srt(step)
        step.task.process_pct = 95

    def split_audio(self, step: SubtitleTaskStepParam) -> None:
        """Cut the task audio into fixed-length segments with ffmpeg."""
        logger.info("split audio start, task %s", step.task_id)
        output_pattern = os.path.join(step.task_base_path, SPLIT_AUDIO_FILE_NAME_PATTERN)
        cmd = [
            self.tools.ffmpeg_path,
            "-i", step.audio_file_path,
            "-f", "segment",
            "-segment_time", str(self.settings.segment_duration * 60),
            "-reset_timestamps", "1",
            "-y",
            output_pattern,
        ]
        try:
            subprocess.run(cmd, check=True, capture_output=True)
        except (OSError, subprocess.CalledProcessError) as exc:
            raise RuntimeError(f"split audio ffmpeg error: {exc}") from exc

        audio_files = sorted(
            glob.glob(os.path.join(step.task_base_path, f"{SPLIT_AUDIO_FILE_NAME_PREFIX}_*.mp3"))
        )
        if not audio_files:
            raise RuntimeError("split audio: no audio files found")
        step.small_audios.extend(SmallAudio(audio_file=path) for path in audio_files)
        step.task.process_pct = 20

    def transcribe_audio(
        self, audio_file_path: str, language: str, task_base_path: str
    ) -> TranscriptionData:
        """Transcribe one audio file; ``zh_cn`` is passed on as ``zh``."""
        if language == LanguageCode.SIMPLIFIED_CHINESE.value:
            language = "zh"
        try:
            data = self.transcriber.transcription(audio_file_path, language, task_base_path)
        except Exception as exc:
            raise RuntimeError(f"transcription error: {exc}") from exc
        if data.text == "":
            logger.info("transcription of %s is empty", audio_file_path)
        return data

    def split_text_and_translate(
        self, input_text: str, target_language: str, enable_modal_filter: bool
    ) -> list[TranslatedItem]:
        """Ask the model to split ``input_text`` into sentences and translate each."""
        template = SPLIT_TEXT_PROMPT_WITH_MODAL_FILTER if enable_modal_filter else SPLIT_TEXT_PROMPT
        if input_text == "":
            return []
        prompt = template % target_language
        try:
            answer = self.chat_completer.chat_completion(prompt + input_text)
        except Exception as exc:
            raise RuntimeError(f"chat completion error: {exc}") from exc
        answer = _THINK_RE.sub("", answer).strip()
        return parse_and_check_content(answer, input_text)

    def _transcribe_with_retry(self, audio_file: str, step: SubtitleTaskStepParam) -> TranscriptionData:
        error: Exception | None = None
        for _ in range(max(1, self.settings.transcribe_max_attempts)):
            try:
                return self.transcribe_audio(audio_file, step.origin_language, step.task_base_path)
            except Exception as exc:
                error = exc
        raise RuntimeError(f"audio to srt transcription error: {error}") from error

    def _translate_with_retry(self, text: str, target_name: str, modal_filter: bool) -> list[TranslatedItem]:
        error: Exception | None = None
        for _ in range(max(1, self.settings.translate_max_attempts)):
            try:
                return self.split_text_and_translate(text, target_name, modal_filter)
            except Exception as exc:
                error = exc
        raise RuntimeError(f"audio to srt translation error: {error}") from error

    def _save_segment(self, step: SubtitleTaskStepParam, index: int, items: list[TranslatedItem]) -> None:
        no_ts_path = os.path.join(step.task_base_path, SPLIT_SRT_NO_TIMESTAMP_FILE_NAME_PATTERN % index)
        with open(no_ts_path, "w", encoding="utf-8", newline="") as out:
            for number, item in enumerate(items, start=1):
                out.write(f"{number}\n[{item.translated_text}]\n[{item.origin_text}]\n\n")
        audio = step.small_audios[index]
        audio.srt_no_ts_file = no_ts_path
        blocks = [
            SrtBlock(
                index=number,
                origin_language_sentence=item.origin_text,
                target_language_sentence=item.translated_text,
            )
            for number, item in enumerate(items, start=1)
        ]
        words = audio.transcription_data.words if audio.transcription_data else []
        generate_srt_with_timestamps(
            blocks,
            step.task_base_path,
            index,
            step.origin_language,
            words,
            step.subtitle_result_type,
            step.max_word_one_line,
            self.settings.segment_duration,
        )

    def _process_segments(self, step: SubtitleTaskStepParam) -> None:
        audios = step.small_audios
        total = len(audios)
        target_name = get_standard_language_name(step.target_language)
        with ThreadPoolExecutor(max(1, self.settings.transcribe_parallel_num)) as transcribe_pool, \
                ThreadPoolExecutor(max(1, self.settings.translate_parallel_num)) as translate_pool:
            pending: dict[Future, tuple[str, int]] = {
                transcribe_pool.submit(self._transcribe_with_retry, audio.audio_file, step):
                    ("transcribe", index)
                for index, audio in enumerate(audios)
            }
            step_num = 0
            try:
                while pending:
                    done, _ = wait(pending, return_when=FIRST_COMPLETED)
                    for future in done:
                        kind, index = pending.pop(future)
                        result = future.result()
                        step_num += 1
                        step.task.process_pct = 20 + 70 * step_num // total // 2
                        if kind == "transcribe":
                            audios[index].transcription_data = result
                            job = translate_pool.submit(
                                self._translate_with_retry, result.text, target_name,
                                step.enable_modal_filter,
                            )
                            pending[job] = ("translate", index)
                        else:
                            self._save_segment(step, index, result)
            except BaseException:
                for future in pending:
                    future.cancel()
                raise

    def audio_to_srt(self, step: SubtitleTaskStepParam) -> None:
        """Transcribe and translate every segment, then merge the per-segment SRT files."""
        logger.info("audio to srt start, task %s", step.task_id)
        self._process_segments(step)

        base = step.task_base_path
        count = len(step.small_audios)

        def paths(pattern: str) -> list[str]:
            return [os.path.join(base, pattern % index) for index in range(count)]

        merge_file(os.path.join(base, SRT_NO_TIMESTAMP_FILE_NAME),
                   *paths(SPLIT_SRT_NO_TIMESTAMP_FILE_NAME_PATTERN))

        bilingual = os.path.join(base, BILINGUAL_SRT_FILE_NAME)
        merge_srt_files(bilingual, *paths(SPLIT_BILINGUAL_SRT_FILE_NAME_PATTERN))

        short_mixed = os.path.join(base, SHORT_ORIGIN_MIXED_SRT_FILE_NAME)
        merge_srt_files(short_mixed, *paths(SPLIT_SHORT_ORIGIN_MIXED_SRT_FILE_NAME_PATTERN))
        step.short_origin_mixed_srt_file_path = short_mixed

        merge_srt_files(os.path.join(base, SHORT_ORIGIN_SRT_FILE_NAME),
                        *paths(SPLIT_SHORT_ORIGIN_SRT_FILE_NAME_PATTERN))

        step.bilingual_srt_file_path = bilingual
        step.task.process_pct = 90
        logger.info("audio to srt end, task %s", step.task_id)