import io

import pytest

from subforge.srtfiles import (
    SrtBlock,
    add_suffix_to_file_name,
    get_audio_duration,
    get_recognizable_string,
    is_subtitle_text,
    merge_file,
    merge_srt_files,
    process_block,
    replace_file_content,
    split_sentence,
    trim_string,
)

TS = "00:00:01,000 --> 00:00:02,500"


def _run_block(block, on_top):
    outs = [io.StringIO() for _ in range(4)]
    process_block(block, *outs, on_top)
    return [o.getvalue() for o in outs]


def test_process_block_origin_on_top():
    target_srt, target_text, origin_srt, origin_text = _run_block(
        ["1", TS, "Hello", "你好"], False
    )
    assert origin_srt == f"1\n{TS}\nHello\n\n"
    assert target_srt == f"1\n{TS}\n你好\n\n"
    assert origin_text == "Hello"
    assert target_text == "你好"


def test_process_block_target_on_top():
    target_srt, target_text, origin_srt, origin_text = _run_block(
        ["3", TS, "你好", "Hello"], True
    )
    assert target_srt == f"3\n{TS}\n你好\n\n"
    assert origin_srt == f"3\n{TS}\nHello\n\n"
    assert target_text == "你好"
    assert origin_text == "Hello"


def test_process_block_without_text_writes_nothing():
    outs = _run_block(["1", TS], False)
    assert outs == ["", "", "", ""]


@pytest.mark.parametrize(
    "line, expected",
    [("", False), ("12", False), (TS, False), ("hello world", True)],
)
def test_is_subtitle_text(line, expected):
    assert is_subtitle_text(line) is expected


def test_trim_string():
    assert trim_string("[中文翻译] [Hello]") == "Hello"
    assert trim_string("it’s") == "it's"


def test_split_sentence():
    assert split_sentence("Hello, world! It's fine.") == ["Hello", "world", "It's", "fine"]
    assert split_sentence("...!!") == []


def test_merge_file(tmp_path):
    a = tmp_path / "a.srt"
    b = tmp_path / "b.srt"
    a.write_text("one\r\ntwo", encoding="utf-8")
    b.write_text("three\n", encoding="utf-8")
    final = tmp_path / "final.srt"
    merge_file(final, a, b)
    assert final.read_text(encoding="utf-8") == "one\ntwo\nthree\n"


def test_merge_file_missing_input(tmp_path):
    with pytest.raises(FileNotFoundError):
        merge_file(tmp_path / "final.srt", tmp_path / "missing.srt")


def test_merge_srt_files_renumbers(tmp_path):
    a = tmp_path / "a.srt"
    b = tmp_path / "b.srt"
    a.write_text(f"1\n{TS}\nHello\n\n", encoding="utf-8")
    b.write_text(f"```\n1\n{TS}\nWorld\n\n", encoding="utf-8")
    final = tmp_path / "final.srt"
    merge_srt_files(final, a, tmp_path / "missing.srt", b)
    assert final.read_text(encoding="utf-8") == (
        f"1\n{TS}\nHello\n\n2\n{TS}\nWorld\n\n"
    )


def test_replace_file_content(tmp_path):
    src = tmp_path / "src.srt"
    dst = tmp_path / "dst.srt"
    src.write_text("foo bar\nbar baz\n", encoding="utf-8")
    replace_file_content(src, dst, {"bar": "qux"})
    assert dst.read_text(encoding="utf-8") == "foo qux\nqux baz\n"


def test_add_suffix_to_file_name():
    assert add_suffix_to_file_name("/home/ubuntu/abc.srt", "_tmp") == "/home/ubuntu/abc_tmp.srt"
    assert add_suffix_to_file_name("abc.srt", "_replaced") == "abc_replaced.srt"


def test_get_recognizable_string():
    assert get_recognizable_string("Hello, 世界! 123") == "Hello世界123"
    assert get_recognizable_string("안녕 こんにちは カタカナ") == "안녕こんにちはカタカナ"


def test_recognizable_string_is_idempotent_on_clean_text():
    cleaned = get_recognizable_string("Ça va? 你好。")
    assert get_recognizable_string(cleaned) == cleaned


def test_srt_block_defaults():
    block = SrtBlock(index=2, origin_language_sentence="Hi")
    assert (block.index, block.timestamp, block.origin_language_sentence) == (2, "", "Hi")


def test_get_audio_duration_missing_tool(tmp_path):
    with pytest.raises(RuntimeError):
        get_audio_duration(str(tmp_path / "in.mp3"), str(tmp_path / "no-such-ffprobe"))