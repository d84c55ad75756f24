import json
import subprocess
from unittest import mock

import pytest

from subforge.transcribers import (
    FasterWhisperProcessor,
    WhisperCppProcessor,
    WhisperKitProcessor,
    parse_faster_whisper_output,
    parse_timestamp_to_seconds,
    parse_whispercpp_output,
    parse_whisperkit_output,
)


def _segments():
    return {
        "segments": [
            {
                "text": " Hello world—again",
                "words": [
                    {"word": " Hello,", "start": 0.0, "end": 0.5},
                    {"word": " world—again", "start": 0.5, "end": 1.5},
                ],
            },
            {"text": " Bye.", "words": [{"word": " Bye.", "start": 2.0, "end": 2.4}]},
        ]
    }


def test_parse_timestamp_to_seconds_value():
    assert parse_timestamp_to_seconds("00:01:02,500") == 62.5


@pytest.mark.parametrize("bad", ["00:00:01", "00:01,000", "a,b,c"])
def test_parse_timestamp_to_seconds_rejects_bad_format(bad):
    with pytest.raises(ValueError):
        parse_timestamp_to_seconds(bad)


def test_parse_timestamp_ignores_non_numeric_parts():
    assert parse_timestamp_to_seconds("xx:00:03,000") == parse_timestamp_to_seconds("00:00:03,000")


@pytest.mark.parametrize("parser", [parse_faster_whisper_output, parse_whisperkit_output])
def test_segment_parsers_split_dashed_words(parser):
    data = parser(_segments())
    assert [w.text for w in data.words] == ["Hello", "world", "again", "Bye"]
    assert [w.num for w in data.words] == [0, 1, 2, 3]
    assert data.words[1].end == data.words[2].start
    assert data.words[1].start == 0.5
    assert data.words[2].end == 1.5
    assert "—" not in data.text
    assert data.text == " Hello world again Bye."


def test_parse_whispercpp_skips_special_tokens():
    raw = {
        "transcription": [
            {
                "text": " Hi there",
                "tokens": [
                    {"text": "[_BEG_]", "timestamps": {"from": "00:00:00,000", "to": "00:00:00,000"}},
                    {"text": " Hi", "timestamps": {"from": "00:00:00,000", "to": "00:00:00,400"}},
                    {"text": " there!", "timestamps": {"from": "00:00:00,400", "to": "00:00:01,000"}},
                ],
            }
        ]
    }
    data = parse_whispercpp_output(raw)
    assert [w.text for w in data.words] == ["Hi", "there"]
    assert [w.num for w in data.words] == [0, 1]
    assert data.words[1].start == data.words[0].end
    assert data.text == " Hi there"


def test_parse_whispercpp_bad_timestamp_raises():
    raw = {"transcription": [{"text": "x", "tokens": [{"text": "x", "timestamps": {"from": "bad", "to": "bad"}}]}]}
    with pytest.raises(ValueError):
        parse_whispercpp_output(raw)


def _write_json(tmp_path, name, payload):
    audio = tmp_path / f"{name}.mp3"
    audio.write_bytes(b"")
    (tmp_path / f"{name}.json").write_text(json.dumps(payload), encoding="utf-8")
    return str(audio)


def _completed(code, output=b""):
    return subprocess.CompletedProcess(args=[], returncode=code, stdout=output)


def test_faster_whisper_processor_reads_json(tmp_path):
    audio = _write_json(tmp_path, "part", _segments())
    processor = FasterWhisperProcessor(model="large-v2", executable="fw")
    with mock.patch("subforge.transcribers.subprocess.run", return_value=_completed(0)) as run:
        data = processor.transcription(audio, "en", str(tmp_path))
    cmd = run.call_args.args[0]
    assert cmd[0] == "fw"
    assert cmd[-1] == audio
    assert cmd[cmd.index("--model") + 1] == "large-v2"
    assert cmd[cmd.index("--output_dir") + 1] == str(tmp_path)
    assert [w.text for w in data.words] == ["Hello", "world", "again", "Bye"]


def test_faster_whisper_processor_tolerates_failure_with_marker(tmp_path):
    audio = _write_json(tmp_path, "part", _segments())
    processor = FasterWhisperProcessor(model="m", executable="fw")
    result = _completed(1, b"Subtitles are written to somewhere")
    with mock.patch("subforge.transcribers.subprocess.run", return_value=result):
        data = processor.transcription(audio, "en", str(tmp_path))
    assert len(data.words) == 4


def test_faster_whisper_processor_failure_raises(tmp_path):
    audio = _write_json(tmp_path, "part", _segments())
    processor = FasterWhisperProcessor(model="m", executable="fw")
    with mock.patch("subforge.transcribers.subprocess.run", return_value=_completed(2, b"boom")):
        with pytest.raises(RuntimeError):
            processor.transcription(audio, "en", str(tmp_path))


def test_whispercpp_processor_command(tmp_path):
    raw = {"transcription": [{"text": "Yo", "tokens": [{"text": "Yo", "timestamps": {"from": "00:00:00,000", "to": "00:00:00,300"}}]}]}
    audio = _write_json(tmp_path, "clip", raw)
    processor = WhisperCppProcessor(model="base", executable="wcpp")
    with mock.patch("subforge.transcribers.subprocess.run", return_value=_completed(0)) as run:
        data = processor.transcription(audio, "en", str(tmp_path))
    cmd = run.call_args.args[0]
    assert cmd[cmd.index("-m") + 1] == "./models/whispercpp/ggml-base.bin"
    assert cmd[cmd.index("--output-file") + 1] == str(tmp_path / "clip")
    assert [w.text for w in data.words] == ["Yo"]


def test_whisperkit_processor_any_failure_raises(tmp_path):
    audio = _write_json(tmp_path, "clip", _segments())
    processor = WhisperKitProcessor(model="large", executable="wk")
    with mock.patch("subforge.transcribers.subprocess.run", return_value=_completed(1, b"Subtitles are written to")):
        with pytest.raises(RuntimeError):
            processor.transcription(audio, "en", str(tmp_path))


def test_whisperkit_processor_reads_report(tmp_path):
    audio = _write_json(tmp_path, "clip", _segments())
    processor = WhisperKitProcessor(model="large", executable="wk")
    with mock.patch("subforge.transcribers.subprocess.run", return_value=_completed(0)) as run:
        data = processor.transcription(audio, "ja", str(tmp_path))
    cmd = run.call_args.args[0]
    assert cmd[1] == "transcribe"
    assert cmd[cmd.index("--language") + 1] == "ja"
    assert cmd[cmd.index("--audio-path") + 1] == audio
    assert len(data.words) == 4


def test_missing_executable_raises(tmp_path):
    audio = _write_json(tmp_path, "clip", _segments())
    processor = WhisperKitProcessor(model="large", executable=str(tmp_path / "no-such-tool"))
    with pytest.raises(RuntimeError):
        processor.transcription(audio, "en", str(tmp_path))