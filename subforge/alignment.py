"""Aligning translated sentences with word timings and writing timed SRT files."""

from __future__ import annotations

import os
from dataclasses import replace
from typing import Sequence

from subforge.languages import LanguageCode
from subforge.models import (
    SPLIT_BILINGUAL_SRT_FILE_NAME_PATTERN,
    SPLIT_SHORT_ORIGIN_MIXED_SRT_FILE_NAME_PATTERN,
    SPLIT_SHORT_ORIGIN_SRT_FILE_NAME_PATTERN,
    SrtSentence,
    SubtitleResultType,
    Word,
)
from subforge.srtfiles import SrtBlock, get_recognizable_string, split_sentence
from subforge.textutil import format_time

# Languages whose sentences are aligned word by word rather than character by character.
_WORD_BASED_LANGUAGES = frozenset(
    {
        LanguageCode.ENGLISH.value,
        LanguageCode.GERMAN.value,
        LanguageCode.TURKISH.value,
        LanguageCode.RUSSIAN.value,
    }
)
_NEAR_WORD_DISTANCE = 10


class AlignmentError(ValueError):
    """A sentence could not be matched against the recognised words."""


def _equal_fold(a: str, b: str) -> bool:
    if a == b:
        return True
    if len(a) != len(b):
        return False
    return all(
        x == y or x.lower() == y.lower() or x.upper() == y.upper()
        for x, y in zip(a, b)
    )


def _language_key(language: str | LanguageCode) -> str:
    return language.value if isinstance(language, LanguageCode) else language


def get_sentence_timestamps(
    words: Sequence[Word],
    sentence: str,
    last_ts: float,
    language: str | LanguageCode,
) -> tuple[SrtSentence, list[Word], float]:
    """Find the time span of ``sentence`` among ``words``.

    Returns the timed sentence, the words matched for it and the new latest
    timestamp. Raises AlignmentError when no usable match is found.
    """
    if _language_key(language) in _WORD_BASED_LANGUAGES:
        return _word_based_timestamps(words, sentence, last_ts)
    return _char_based_timestamps(words, sentence, last_ts)


def _word_based_timestamps(
    words: Sequence[Word], sentence: str, last_ts: float
) -> tuple[SrtSentence, list[Word], float]:
    sentence_word_list = split_sentence(sentence)
    if not sentence_word_list:
        raise AlignmentError("sentence is empty")
    if not words:
        raise AlignmentError("no recognised words")

    this_last_ts = last_ts
    sentence_words: list[Word] = []
    word_now = words[0]
    for sentence_word in sentence_word_list:
        index = 0
        while index < len(words):
            while index < len(words) and not _equal_fold(words[index].text, sentence_word):
                index += 1
            if index >= len(words):
                break
            word_now = words[index]
            if word_now.start < this_last_ts:
                index += 1
                continue
            break
        if index >= len(words):
            sentence_words.append(Word(text=sentence_word))
            continue
        sentence_words.append(replace(word_now))

    begin_index, end_index = find_max_increasing_sub_array(sentence_words)
    if end_index - begin_index == 0:
        raise AlignmentError("no valid sentence")

    begin_word = sentence_words[begin_index]
    end_word = sentence_words[end_index - 1]
    if end_index - begin_index == len(sentence_words):
        srt = SrtSentence(start=begin_word.start, end=end_word.end)
        return srt, sentence_words, end_word.end

    if begin_index > 0:
        i, j = begin_index - 1, begin_word.num - 1
        while i >= 0 and 0 <= j < len(words):
            if words[j].text == "":
                j -= 1
                continue
            if not _equal_fold(words[j].text, sentence_words[i].text):
                break
            begin_word = words[j]
            sentence_words[i] = begin_word
            i -= 1
            j -= 1

    if end_index < len(sentence_words):
        i, j = end_index, end_word.num + 1
        while i < len(sentence_words) and 0 <= j < len(words):
            if words[j].text == "":
                j += 1
                continue
            if not _equal_fold(words[j].text, sentence_words[i].text):
                break
            end_word = words[j]
            sentence_words[i] = end_word
            i += 1
            j += 1

    first, last = sentence_words[0], sentence_words[-1]
    if begin_word.num > first.num and begin_word.num - first.num < _NEAR_WORD_DISTANCE:
        begin_word = first
    if last.num > end_word.num and last.num - end_word.num < _NEAR_WORD_DISTANCE:
        end_word = last

    srt = SrtSentence(start=max(begin_word.start, this_last_ts), end=end_word.end)
    if begin_word.num != end_word.num and end_word.end > this_last_ts:
        this_last_ts = end_word.end
    return srt, sentence_words, this_last_ts


def _char_based_timestamps(
    words: Sequence[Word], sentence: str, last_ts: float
) -> tuple[SrtSentence, list[Word], float]:
    characters = list(get_recognizable_string(sentence))
    if not characters:
        raise AlignmentError("sentence is empty")
    if not words:
        raise AlignmentError("no recognised words")

    this_last_ts = last_ts
    # Candidates are not contiguous and may repeat; the readable list comes later.
    sentence_words = [
        replace(word)
        for character in characters
        for word in words
        if (_equal_fold(word.text, character) or word.text.startswith(character))
        and word.start >= this_last_ts
    ]

    begin_index, end_index, readable = jump_find_max_increasing_sub_array(sentence_words)
    if end_index - begin_index == 0:
        raise AlignmentError("no valid sentence")

    begin_word = sentence_words[begin_index]
    end_word = sentence_words[end_index]
    srt = SrtSentence(start=max(begin_word.start, this_last_ts), end=end_word.end)
    if begin_word.num != end_word.num and end_word.end > this_last_ts:
        this_last_ts = end_word.end
    return srt, readable, this_last_ts


def find_max_increasing_sub_array(words: Sequence[Word]) -> tuple[int, int]:
    """Return ``(start, end)`` of the longest run whose ``num`` values rise by one."""
    if not words:
        return 0, 0
    max_start, max_len = 0, 1
    curr_start, curr_len = 0, 1
    for i, (prev, word) in enumerate(zip(words, words[1:]), start=1):
        if word.num == prev.num + 1:
            curr_len += 1
        else:
            if curr_len > max_len:
                max_start, max_len = curr_start, curr_len
            curr_start, curr_len = i, 1
    if curr_len > max_len:
        max_start, max_len = curr_start, curr_len
    return max_start, max_start + max_len


def jump_find_max_increasing_sub_array(
    words: Sequence[Word],
) -> tuple[int, int, list[Word]]:
    """Find the longest non-contiguous chain whose ``num`` values rise by one.

    Returns the start and end indices of the chain and the words at its start.
    ``(-1, -1, [])`` means no chain was found.
    """
    if not words:
        return -1, -1, []
    lengths = [1] * len(words)
    previous = [-1] * len(words)
    max_len = 0
    end_idx = -1
    for i in range(1, len(words)):
        for j in range(i):
            if words[i].num == words[j].num + 1 and lengths[i] < lengths[j] + 1:
                lengths[i] = lengths[j] + 1
                previous[i] = j
        if lengths[i] > max_len:
            max_len = lengths[i]
            end_idx = i
    if end_idx == -1:
        return -1, -1, []

    start_idx = end_idx
    while previous[start_idx] != -1:
        start_idx = previous[start_idx]

    result: list[Word] = []
    index = start_idx
    while index != -1:
        result.append(words[index])
        index = previous[index]
    result.reverse()
    return start_idx, end_idx, result


def _timestamp(start: float, end: float) -> str:
    return f"{format_time(start)} --> {format_time(end)}"


def _lines_per_row(word_count: int, max_word_one_line: int) -> int:
    for parts in range(2, 6):
        if (parts - 1) * max_word_one_line < word_count <= parts * max_word_one_line:
            return word_count // parts + 1
    return max_word_one_line


def _short_blocks(
    block: SrtBlock,
    sentence_ts: SrtSentence,
    sentence_words: list[Word],
    last_ts: float,
    ts_offset: float,
    max_word_one_line: int,
) -> list[SrtBlock]:
    if len(sentence_words) <= max_word_one_line:
        return [
            SrtBlock(
                index=block.index,
                timestamp=_timestamp(sentence_ts.start + ts_offset, sentence_ts.end + ts_offset),
                origin_language_sentence=block.origin_language_sentence,
            )
        ]

    per_line = _lines_per_row(len(sentence_words), max_word_one_line)
    result: list[SrtBlock] = []
    start_word = Word()
    end_word = Word()
    origin_sentence = ""
    counter = 1
    next_start = True

    def emit() -> None:
        result.append(
            SrtBlock(
                index=block.index,
                timestamp=_timestamp(start_word.start + ts_offset, end_word.end + ts_offset),
                origin_language_sentence=origin_sentence,
            )
        )

    for word in sentence_words:
        if next_start:
            start_word = replace(word)
            start_word.start = max(start_word.start, last_ts, end_word.end, sentence_ts.start)
            origin_sentence += word.text + " "
            # A first word ending after the sentence was matched wrongly; skip it.
            if start_word.end > sentence_ts.end:
                continue
            end_word = replace(start_word)
            counter += 1
            next_start = False
            continue

        origin_sentence += word.text + " "
        if end_word.end < word.end:
            end_word = replace(word)
        if end_word.end > sentence_ts.end:
            end_word.end = sentence_ts.end
        if counter % per_line == 0 and counter > 1:
            emit()
            origin_sentence = ""
            next_start = True
        counter += 1

    if origin_sentence:
        emit()
    return result


def generate_srt_with_timestamps(
    srt_blocks: list[SrtBlock],
    base_path: str,
    segment_idx: int,
    origin_language: str | LanguageCode,
    words: Sequence[Word],
    result_type: SubtitleResultType,
    max_word_one_line: int,
    segment_duration: int,
) -> None:
    """Time the blocks of one audio segment and write its bilingual and short SRT files.

    ``segment_duration`` is the length of an audio segment in minutes.
    """
    if not srt_blocks:
        return

    last_ts = 0.0
    short_origin: dict[int, list[SrtBlock]] = {}
    ts_offset = float(segment_duration) * 60 * float(segment_idx)
    for block in srt_blocks:
        if block.origin_language_sentence == "":
            continue
        try:
            sentence_ts, sentence_words, ts = get_sentence_timestamps(
                words, block.origin_language_sentence, last_ts, origin_language
            )
        except AlignmentError:
            continue
        if ts < last_ts:
            continue
        block.timestamp = _timestamp(sentence_ts.start + ts_offset, sentence_ts.end + ts_offset)
        short_origin.setdefault(block.index, []).extend(
            _short_blocks(block, sentence_ts, sentence_words, last_ts, ts_offset, max_word_one_line)
        )
        last_ts = ts

    bilingual_path = os.path.join(base_path, SPLIT_BILINGUAL_SRT_FILE_NAME_PATTERN % segment_idx)
    with open(bilingual_path, "w", encoding="utf-8", newline="") as bilingual:
        for block in srt_blocks:
            if result_type == SubtitleResultType.BILINGUAL_TRANSLATION_ON_TOP:
                first, second = block.target_language_sentence, block.origin_language_sentence
            else:
                first, second = block.origin_language_sentence, block.target_language_sentence
            bilingual.write(f"{block.index}\n{block.timestamp}\n{first}\n{second}\n\n")

    mixed_path = os.path.join(
        base_path, SPLIT_SHORT_ORIGIN_MIXED_SRT_FILE_NAME_PATTERN % segment_idx
    )
    short_path = os.path.join(base_path, SPLIT_SHORT_ORIGIN_SRT_FILE_NAME_PATTERN % segment_idx)
    with open(mixed_path, "w", encoding="utf-8", newline="") as mixed, open(
        short_path, "w", encoding="utf-8", newline=""
    ) as short:
        mixed_num = 1
        short_num = 1
        for block in srt_blocks:
            mixed.write(f"{mixed_num}\n{block.timestamp}\n{block.target_language_sentence}\n\n")
            mixed_num += 1
            for short_block in short_origin.get(block.index, []):
                entry = f"{short_block.timestamp}\n{short_block.origin_language_sentence}\n\n"
                mixed.write(f"{mixed_num}\n{entry}")
                mixed_num += 1
                short.write(f"{short_num}\n{entry}")
                short_num += 1