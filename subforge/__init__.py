"""Library for turning videos into translated, timed subtitles.

It fetches audio, transcribes it, translates the text with a chat model, aligns
the sentences with word timings, writes SRT files and burns ASS subtitles into
videos.
"""

__version__ = "0.1.0"