"""Chat completion and transcription through an OpenAI-compatible HTTP API."""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Mapping

import httpx

from subforge.models import TranscriptionData, Word

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_CHAT_MODEL = "gpt-4o-mini-2024-07-18"
WHISPER_MODEL = "whisper-1"
SYSTEM_PROMPT = "You are an assistant that helps with subtitle translation."
MAX_TOKENS = 8192
_DASH = "—"
_TIMEOUT = 600.0


def _make_client(proxy: str, client: httpx.Client | None) -> httpx.Client:
    if client is not None:
        return client
    return httpx.Client(proxy=proxy or None, timeout=_TIMEOUT)


class _ApiClient:
    def __init__(
        self,
        base_url: str = "",
        api_key: str = "",
        proxy: str = "",
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.api_key = api_key
        self._client = _make_client(proxy, client)

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class OpenAIChatClient(_ApiClient):
    """Streams chat completions and returns the whole answer."""

    def __init__(
        self,
        base_url: str = "",
        api_key: str = "",
        proxy: str = "",
        model: str = "",
        client: httpx.Client | None = None,
    ) -> None:
        super().__init__(base_url, api_key, proxy, client)
        self.model = model or DEFAULT_CHAT_MODEL

    def chat_completion(self, query: str) -> str:
        """Send ``query`` as the user message and return the concatenated reply."""
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": query},
            ],
            "stream": True,
            "max_tokens": MAX_TOKENS,
        }
        url = f"{self.base_url}/chat/completions"
        content = ""
        with self._client.stream("POST", url, json=body, headers=self._headers) as response:
            if response.status_code >= 400:
                response.read()
                raise RuntimeError(
                    f"chat completion failed with status {response.status_code}: {response.text}"
                )
            for line in response.iter_lines():
                if not line.startswith("data:"):
                    continue
                payload = line[len("data:"):].strip()
                if payload == "[DONE]":
                    break
                chunk = json.loads(payload)
                choices = chunk.get("choices") or []
                if not choices:
                    logger.info("stream chunk without choices")
                    continue
                delta = choices[0].get("delta") or {}
                content += delta.get("content") or ""
        return content


def build_transcription(
    text: str, language: str, words: Iterable[Mapping[str, Any]]
) -> TranscriptionData:
    """Build transcription data from a verbose JSON transcription response.

    Hyphens in the text become spaces; words glued by a dash are split in half.
    """
    result: list[Word] = []
    for item in words:
        word = item.get("word", "")
        start = float(item.get("start", 0.0))
        end = float(item.get("end", 0.0))
        num = len(result)
        if _DASH in word:
            mid = (start + end) / 2
            parts = word.split(_DASH)
            result.append(Word(num=num, text=parts[0], start=start, end=mid))
            result.append(Word(num=num + 1, text=parts[1], start=mid, end=end))
        else:
            result.append(Word(num=num, text=word, start=start, end=end))
    return TranscriptionData(language=language, text=text.replace("-", " "), words=result)


class WhisperClient(_ApiClient):
    """Transcribes audio files with word timestamps through the whisper API."""

    def transcription(self, audio_file: str, language: str, work_dir: str) -> TranscriptionData:
        """Upload ``audio_file`` and return its text and timed words."""
        data = {
            "model": WHISPER_MODEL,
            "response_format": "verbose_json",
            "timestamp_granularities[]": "word",
            "language": language,
        }
        url = f"{self.base_url}/audio/transcriptions"
        with open(audio_file, "rb") as handle:
            files = {"file": (audio_file.replace("\\", "/").rsplit("/", 1)[-1], handle)}
            response = self._client.post(url, data=data, files=files, headers=self._headers)
        if response.status_code >= 400:
            raise RuntimeError(
                f"transcription failed with status {response.status_code}: {response.text}"
            )
        body = response.json()
        return build_transcription(
            body.get("text", ""), body.get("language", ""), body.get("words") or []
        )