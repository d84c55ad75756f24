import os
import threading

import pytest

from subforge.models import (
    SmallAudio,
    SubtitleFileInfo,
    SubtitleResultType,
    SubtitleTaskStepParam,
    TaskStatus,
    ToolPaths,
    TranscriptionData,
    Word,
)
from subforge.pipeline import (
    PipelineSettings,
    SubtitlePipeline,
    TranslatedItem,
    parse_and_check_content,
    split_srt,
    upload_subtitles,
)


class FakeChat:
    def __init__(self, answer):
        self.answer = answer
        self.queries = []
        self._lock = threading.Lock()

    def chat_completion(self, query):
        with self._lock:
            self.queries.append(query)
        return self.answer


class FakeTranscriber:
    def __init__(self, data=None, error=None):
        self.data = data
        self.error = error
        self.calls = []
        self._lock = threading.Lock()

    def transcription(self, audio_file, language, work_dir):
        with self._lock:
            self.calls.append((audio_file, language, work_dir))
        if self.error:
            raise self.error
        return self.data


def test_parse_valid_split_content():
    content = "1\n[你好]\n[Hello]\n\n2\n[世界]\n[World]"
    result = parse_and_check_content(content, "Hello World")
    assert result == [
        TranslatedItem(origin_text="Hello", translated_text="你好"),
        TranslatedItem(origin_text="World", translated_text="世界"),
    ]


def test_parse_both_empty():
    assert parse_and_check_content("", "") == []


def test_parse_empty_split_content_raises():
    with pytest.raises(ValueError):
        parse_and_check_content("", "Hello")


def test_parse_empty_original_raises():
    with pytest.raises(ValueError):
        parse_and_check_content("1\n[a]\n[b]", "")


def test_parse_no_text_mark_short_original():
    assert parse_and_check_content("[无文本]", "uh") == []


def test_parse_no_text_mark_long_original_raises():
    with pytest.raises(ValueError):
        parse_and_check_content("[无文本]", "this is a long sentence")


def test_parse_not_enough_lines():
    with pytest.raises(ValueError):
        parse_and_check_content("1\n[x]", "x")


def test_parse_incomplete_block():
    with pytest.raises(ValueError):
        parse_and_check_content("1\n[a]\n[b]\n2\n[c]", "b c")


def test_split_text_and_translate_strips_think():
    chat = FakeChat("<think>pondering</think>\n1\n[你好]\n[Hello]")
    pipeline = SubtitlePipeline(FakeTranscriber(), chat)
    result = pipeline.split_text_and_translate("Hello", "简体中文", False)
    assert result == [TranslatedItem(origin_text="Hello", translated_text="你好")]
    assert "简体中文" in chat.queries[0]
    assert chat.queries[0].endswith("Hello")


def test_split_text_and_translate_empty_input_skips_model():
    chat = FakeChat("anything")
    pipeline = SubtitlePipeline(FakeTranscriber(), chat)
    assert pipeline.split_text_and_translate("", "English", True) == []
    assert chat.queries == []


def test_transcribe_audio_maps_chinese_code():
    data = TranscriptionData(text="你好")
    transcriber = FakeTranscriber(data=data)
    pipeline = SubtitlePipeline(transcriber, FakeChat(""))
    assert pipeline.transcribe_audio("a.mp3", "zh_cn", "/tmp") is data
    assert transcriber.calls == [("a.mp3", "zh", "/tmp")]


def test_transcribe_audio_wraps_error():
    pipeline = SubtitlePipeline(FakeTranscriber(error=OSError("boom")), FakeChat(""))
    with pytest.raises(RuntimeError):
        pipeline.transcribe_audio("a.mp3", "en", "/tmp")


def _step(tmp_path, result_type=SubtitleResultType.BILINGUAL_TRANSLATION_ON_BOTTOM):
    return SubtitleTaskStepParam(
        task_id="t1",
        task_base_path=str(tmp_path),
        subtitle_result_type=result_type,
        origin_language="en",
        target_language="zh_cn",
        user_ui_language="en",
    )


def test_audio_to_srt_writes_merged_files(tmp_path):
    words = [Word(0, "Hello", 0.0, 0.5), Word(1, "world", 0.5, 1.0)]
    transcriber = FakeTranscriber(data=TranscriptionData(text="Hello world", words=words))
    chat = FakeChat("1\n[你好世界]\n[Hello world]")
    pipeline = SubtitlePipeline(transcriber, chat, PipelineSettings(translate_max_attempts=1))
    step = _step(tmp_path)
    step.small_audios.append(SmallAudio(audio_file=str(tmp_path / "split_audio_000.mp3")))

    pipeline.audio_to_srt(step)

    bilingual = (tmp_path / "bilingual_srt.srt").read_text(encoding="utf-8")
    assert bilingual == "1\n00:00:00,000 --> 00:00:01,000\nHello world\n你好世界\n\n"
    short = (tmp_path / "short_origin_srt.srt").read_text(encoding="utf-8")
    assert short == "1\n00:00:00,000 --> 00:00:01,000\nHello world\n\n"
    no_ts = (tmp_path / "srt_no_ts.srt").read_text(encoding="utf-8")
    assert no_ts == "1\n[你好世界]\n[Hello world]\n\n"
    assert step.bilingual_srt_file_path == os.path.join(str(tmp_path), "bilingual_srt.srt")
    assert step.task.process_pct == 90
    assert step.small_audios[0].transcription_data.text == "Hello world"


def test_audio_to_srt_transcription_failure(tmp_path):
    transcriber = FakeTranscriber(error=OSError("down"))
    pipeline = SubtitlePipeline(transcriber, FakeChat(""), PipelineSettings(transcribe_max_attempts=2))
    step = _step(tmp_path)
    step.small_audios.append(SmallAudio(audio_file="x.mp3"))
    with pytest.raises(RuntimeError):
        pipeline.audio_to_srt(step)
    assert len(transcriber.calls) == 2


def test_split_audio_missing_ffmpeg(tmp_path):
    tools = ToolPaths(ffmpeg_path=str(tmp_path / "no-such-ffmpeg"))
    pipeline = SubtitlePipeline(FakeTranscriber(), FakeChat(""), tools=tools)
    step = _step(tmp_path)
    step.audio_file_path = str(tmp_path / "a.mp3")
    with pytest.raises(RuntimeError):
        pipeline.split_audio(step)


def test_split_srt_bottom(tmp_path):
    bilingual = tmp_path / "bilingual_srt.srt"
    bilingual.write_text(
        "1\n00:00:00,000 --> 00:00:01,000\nHello\n你好\n\n"
        "2\n00:00:01,000 --> 00:00:02,000\nWorld\n世界\n",
        encoding="utf-8",
    )
    step = _step(tmp_path)
    step.bilingual_srt_file_path = str(bilingual)
    split_srt(step)

    origin = (tmp_path / "origin_language_srt.srt").read_text(encoding="utf-8")
    assert origin == (
        "1\n00:00:00,000 --> 00:00:01,000\nHello\n\n"
        "2\n00:00:01,000 --> 00:00:02,000\nWorld\n\n"
    )
    target = (tmp_path / "target_language_srt.srt").read_text(encoding="utf-8")
    assert target == (
        "1\n00:00:00,000 --> 00:00:01,000\n你好\n\n"
        "2\n00:00:01,000 --> 00:00:02,000\n世界\n\n"
    )
    assert (tmp_path / "output" / "origin_language.txt").read_text(encoding="utf-8") == "HelloWorld"
    assert (tmp_path / "output" / "target_language.txt").read_text(encoding="utf-8") == "你好世界"
    assert [info.name for info in step.subtitle_infos] == [
        "English Subtitle",
        "简体中文 Subtitle",
        "Bilingual Subtitle",
    ]
    assert [info.language_identifier for info in step.subtitle_infos] == ["en", "zh_cn", "bilingual"]
    assert step.tts_source_file_path == str(bilingual)


def test_split_srt_origin_only_has_one_info(tmp_path):
    bilingual = tmp_path / "bilingual_srt.srt"
    bilingual.write_text("1\n00:00:00,000 --> 00:00:01,000\nHello\n\n", encoding="utf-8")
    step = _step(tmp_path, SubtitleResultType.ORIGIN_ONLY)
    step.user_ui_language = "zh_cn"
    step.bilingual_srt_file_path = str(bilingual)
    split_srt(step)
    assert [info.name for info in step.subtitle_infos] == ["English 单语字幕"]
    assert step.tts_source_file_path == ""


def test_upload_subtitles_with_replacements(tmp_path):
    source = tmp_path / "origin.srt"
    source.write_text("Hello world\n", encoding="utf-8")
    step = _step(tmp_path)
    step.replace_words_map = {"world": "there"}
    step.subtitle_infos.append(SubtitleFileInfo(name="English Subtitle", path=str(source)))
    step.tts_result_file_path = "tasks/t1/tts_final_audio.wav"

    upload_subtitles(step)

    replaced = os.path.join(str(tmp_path), "origin_replaced.srt")
    assert (tmp_path / "origin_replaced.srt").read_text(encoding="utf-8") == "Hello there\n"
    assert step.task.subtitle_infos[0].download_url == "/api/file/" + replaced
    assert step.task.subtitle_infos[0].task_id == "t1"
    assert step.task.status == TaskStatus.SUCCESS
    assert step.task.process_pct == 100
    assert step.task.speech_download_url == "/api/file/tasks/t1/tts_final_audio.wav"


def test_upload_subtitles_without_replacements(tmp_path):
    step = _step(tmp_path)
    step.subtitle_infos.append(SubtitleFileInfo(name="n", path="a/b.srt"))
    upload_subtitles(step)
    assert step.task.subtitle_infos[0].download_url == "/api/file/a/b.srt"
    assert step.task.speech_download_url == ""