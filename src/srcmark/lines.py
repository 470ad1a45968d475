# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Split source files into lines and candidate marker bodies."""

import logging
from collections.abc import Iterator

from srcmark.model import Line, SourceFile

logger = logging.getLogger(__name__)

DEFAULT_DELIMITER = b"//@"


def split_segments(content: bytes) -> list[bytes]:
    """Split content after every newline, keeping the terminators.

    A trailing empty segment is not returned, so joining the result gives
    back ``content`` exactly.

    Args:
        content: Raw file bytes.

    Returns:
        Newline-terminated segments, the last one possibly unterminated.
    """
    segments = content.split(b"\n")
    result = [segment + b"\n" for segment in segments[:-1]]
    if segments[-1]:
        result.append(segments[-1])
    return result


def index_lines(
    source: SourceFile, delimiter: bytes = DEFAULT_DELIMITER
) -> Iterator[tuple[Line, list[bytes]]]:
    """Yield each line of a file with its candidate marker bodies.

    The stored line value is the text before the first delimiter, so marker
    text is never matched by patterns resolved against that line.

    Args:
        source: File to index.
        delimiter: Marker comment prefix.

    Yields:
        Tuples of line and raw marker bodies in left-to-right order.
    """
    offset = 0
    for number, segment in enumerate(split_segments(source.content), start=1):
        parts = segment.split(delimiter)
        line = Line(
            file=source,
            offset=offset,
            number=number,
            value=parts[0],
            length=len(segment),
        )
        offset += len(segment)
        yield line, parts[1:]
