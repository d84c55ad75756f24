import json

import httpx
import pytest

from subforge.openai_client import (
    DEFAULT_CHAT_MODEL,
    OpenAIChatClient,
    WhisperClient,
    build_transcription,
)


def _sse(*chunks):
    body = "".join(f"data: {json.dumps(c)}\n\n" for c in chunks) + "data: [DONE]\n\n"
    return body.encode("utf-8")


def test_chat_completion_concatenates_stream():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            content=_sse(
                {"choices": [{"delta": {"content": "Hel"}}]},
                {"choices": []},
                {"choices": [{"delta": {"content": "lo"}}]},
            ),
        )

    client = httpx.Client(transport=httpx.MockTransport(handler))
    chat = OpenAIChatClient(base_url="http://localhost/v1/", api_key="placeholder", client=client)
    assert chat.chat_completion("translate me") == "Hello"
    assert seen["url"] == "http://localhost/v1/chat/completions"
    assert seen["auth"] == "Bearer placeholder"
    assert seen["body"]["model"] == DEFAULT_CHAT_MODEL
    assert seen["body"]["stream"] is True
    assert seen["body"]["messages"][-1] == {"role": "user", "content": "translate me"}


def test_chat_completion_model_override():
    seen = {}

    def handler(request):
        seen["model"] = json.loads(request.content)["model"]
        return httpx.Response(200, content=_sse({"choices": [{"delta": {"content": "ok"}}]}))

    client = httpx.Client(transport=httpx.MockTransport(handler))
    chat = OpenAIChatClient(api_key="placeholder", model="my-model", client=client)
    assert chat.chat_completion("q") == "ok"
    assert seen["model"] == "my-model"


def test_chat_completion_error_status_raises():
    client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(500, text="down")))
    chat = OpenAIChatClient(api_key="placeholder", client=client)
    with pytest.raises(RuntimeError):
        chat.chat_completion("q")


def test_build_transcription_splits_dashed_words():
    data = build_transcription(
        "a well-known fact",
        "english",
        [
            {"word": "well—known", "start": 1.0, "end": 2.0},
            {"word": "fact", "start": 2.0, "end": 2.5},
        ],
    )
    assert data.text == "a well known fact"
    assert data.language == "english"
    assert [w.text for w in data.words] == ["well", "known", "fact"]
    assert [w.num for w in data.words] == [0, 1, 2]
    assert data.words[0].end == data.words[1].start
    assert data.words[1].end == 2.0


def test_whisper_transcription_uploads_and_parses(tmp_path):
    audio = tmp_path / "seg.mp3"
    audio.write_bytes(b"ID3fake")
    seen = {}

    def handler(request):
        request.read()
        seen["url"] = str(request.url)
        seen["content"] = request.content
        return httpx.Response(
            200,
            json={
                "text": "hi-there",
                "language": "english",
                "words": [{"word": "hi", "start": 0.0, "end": 0.3}],
            },
        )

    client = httpx.Client(transport=httpx.MockTransport(handler))
    whisper = WhisperClient(base_url="http://localhost/v1", api_key="placeholder", client=client)
    data = whisper.transcription(str(audio), "en", str(tmp_path))
    assert seen["url"] == "http://localhost/v1/audio/transcriptions"
    assert b"whisper-1" in seen["content"]
    assert b"verbose_json" in seen["content"]
    assert b"ID3fake" in seen["content"]
    assert data.text == "hi there"
    assert [w.text for w in data.words] == ["hi"]


def test_whisper_transcription_error_raises(tmp_path):
    audio = tmp_path / "seg.mp3"
    audio.write_bytes(b"x")
    client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(401, text="no")))
    whisper = WhisperClient(api_key="placeholder", client=client)
    with pytest.raises(RuntimeError):
        whisper.transcription(str(audio), "en", str(tmp_path))