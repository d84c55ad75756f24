# subforge

A Python library that turns a video into translated, timed subtitle files.

You give it a link: a YouTube URL, a bilibili video URL, or a local file
written as `local:/path/to/video.mp4`. The library then works through these
steps:

1. It extracts the audio as mp3 and cuts it into segments of fixed length.
2. It transcribes each segment with word-level timestamps.
3. It asks a chat model to split the text into short sentences and translate
   each one.
4. It lines every sentence up with the recognised words and writes SRT files.
5. It can also burn the subtitles into a horizontal or vertical video as ASS.

External programs run as subprocesses: `ffmpeg`, `ffprobe`, `yt-dlp` and
the local Whisper executables. You give their locations in
`subforge.models.ToolPaths`. The defaults are `ffmpeg`, `ffprobe` and `yt-dlp`.

## Installation

```
pip install subforge
```

The runtime dependencies are `httpx` and `regex`.

## Modules

- `subforge.models` holds the data of a subtitle task:
  - `SubtitleTask`, `SubtitleTaskStepParam`, `SmallAudio`, `Word`,
    `TranscriptionData`, `SubtitleFileInfo` and `SubtitleInfo`;
  - the enums `SubtitleResultType` and `TaskStatus`;
  - the `Transcriber` and `ChatCompleter` protocols;
  - `ToolPaths`;
  - `TaskStore`, a thread-safe in-memory map from task id to task;
  - file-name constants, prompt templates and ASS headers.
- `subforge.downloader.link_to_file(step, tools, proxy="")` gets the task
  audio. It also downloads the source video unless
  `step.embed_subtitle_video_type` is `"none"`. Unsupported or invalid links
  raise `ValueError`. Failing tools raise `RuntimeError`.
- `subforge.pipeline` provides the following:
  - `SubtitlePipeline(transcriber, chat_completer, settings=None, tools=None)`.
    Its `audio_to_subtitle(step)` splits the audio and then transcribes and
    translates the segments in parallel threads. It times and merges the
    per-segment SRT files, then splits the bilingual SRT into one file per
    language.
  - `PipelineSettings`, which sets the segment length in minutes, the number
    of parallel workers and the retry counts.
  - `split_srt(step)`.
  - `upload_subtitles(step)`. It applies `step.replace_words_map`, sets
    `/api/file/...` download paths on the task and marks it successful.
  - `parse_and_check_content(split_content, original_text)`, which parses the
    numbered `[translation]` / `[original]` blocks the model returns.
- `subforge.alignment` matches sentences against word timestamps with
  `get_sentence_timestamps` and `generate_srt_with_timestamps`. A sentence that
  cannot be matched raises `AlignmentError`.
- `subforge.embed` provides the following:
  - `embed_subtitles(step, tools)` renders the horizontal and/or vertical
    video;
  - `srt_to_ass` converts SRT to ASS;
  - `convert_to_vertical` pads a horizontal video into a 720x1280 frame with
    titles;
  - `get_resolution`, `parse_srt_time` and `format_timestamp` are helpers.
- `subforge.transcribers` has three speech back ends that call command-line
  tools:
  - `FasterWhisperProcessor(model, executable)`;
  - `WhisperCppProcessor(model, executable)`;
  - `WhisperKitProcessor(model, executable)`.

  It also has parsers for the JSON output of each tool.
- `subforge.openai_client` talks to an OpenAI-compatible HTTP API through
  `httpx`:
  - `OpenAIChatClient` streams a chat completion;
  - `WhisperClient` uploads audio for transcription with word timestamps.
- `subforge.srtfiles`, `subforge.textutil` and `subforge.languages` hold SRT
  file helpers, text and path helpers, and the table of language names
  (`get_standard_language_name`).

## Example

```python
from subforge.languages import get_standard_language_name
from subforge.textutil import format_time, get_youtube_id

print(format_time(3725.5))                  # 01:02:05,500
print(get_youtube_id("https://www.youtube.com/watch?v=abc123"))  # abc123
print(get_standard_language_name("en"))     # English
```

The example below runs a whole task. It assumes the task directory exists, its
`output` subdirectory can be created, and `ffmpeg` and `yt-dlp` are on the
path:

```python
from subforge.downloader import link_to_file
from subforge.models import SubtitleResultType, SubtitleTask, SubtitleTaskStepParam, ToolPaths
from subforge.openai_client import OpenAIChatClient, WhisperClient
from subforge.pipeline import SubtitlePipeline, upload_subtitles

tools = ToolPaths()
step = SubtitleTaskStepParam(
    task_id="demo",
    task=SubtitleTask(task_id="demo"),
    task_base_path="./tasks/demo",
    link="local:/path/to/video.mp4",
    subtitle_result_type=SubtitleResultType.BILINGUAL_TRANSLATION_ON_BOTTOM,
    origin_language="en",
    target_language="zh_cn",
    user_ui_language="en",
    embed_subtitle_video_type="none",
)

link_to_file(step, tools)
pipeline = SubtitlePipeline(
    WhisperClient(api_key="placeholder"),
    OpenAIChatClient(api_key="placeholder"),
    tools=tools,
)
pipeline.audio_to_subtitle(step)
upload_subtitles(step)
print([info.download_url for info in step.task.subtitle_infos])
```

## What this package does not do

- It has no command-line program and no web server. The `/api/file/...`
  download paths that `upload_subtitles` sets are only strings, and nothing
  here serves them.
- Nothing starts a whole task in the background from a request. You call the
  steps yourself, as in the example above.
- It does not produce dubbed speech audio (text-to-speech).
- It has no configuration file loader. Settings go in through
  `PipelineSettings`, `ToolPaths` and constructor arguments.
- It keeps tasks only in memory (`TaskStore`) and has no persistent storage.

## Running the tests

```
pip install "subforge[test]"
pytest
```