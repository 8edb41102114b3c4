"""Render JSON payloads back into HTML('...') keyword lines."""

from __future__ import annotations

from typing import Callable, List, Optional

from .errors import PayloadSerializationError
from .json_tools import QUOTE, dump_payload, escape_quotes
from .lines import CONTENT_END, CONTINUATION_CHAR, LOCATION_END, LOCATION_START, TAG_CLOSE, TAG_OPEN

DEFAULT_CHUNK_SIZE = 2500
LOCATION_WIDTH = LOCATION_END - LOCATION_START

SPEC_PREFIX = "     A"
TAG_PREFIX = SPEC_PREFIX.ljust(LOCATION_START)
KEYWORD_PREFIX = SPEC_PREFIX.ljust(LOCATION_END)

FIRST_LINE_WIDTH = CONTENT_END - (LOCATION_END + len(TAG_OPEN))
CONTINUATION_WIDTH = CONTENT_END - len(KEYWORD_PREFIX)


def _fix_leading_quotes(chunks: List[str]) -> None:
    """Move quotes that start the last chunk onto the previous one.

    A leading quote is the second half of a doubled quote cut in two.
    """
    if len(chunks) < 2:
        return
    while chunks[-1].startswith(QUOTE):
        chunks[-1] = chunks[-1][1:]
        chunks[-2] += QUOTE
    if not chunks[-1]:
        chunks.pop()


def chunk_text(data: str, size: int = DEFAULT_CHUNK_SIZE) -> List[str]:
    """Split escaped text into slices of at most ``size`` characters.

    Cuts back off trailing spaces (unless the whole slice is spaces) and never
    leave a later slice starting with a quote.
    """
    if size <= 0:
        raise ValueError("chunk size must be positive")
    chunks: List[str] = []
    while len(data) > size:
        cut = size
        while cut > 0 and data[cut - 1] == " ":
            cut -= 1
        if cut == 0:
            cut = size
        chunks.append(data[:cut])
        _fix_leading_quotes(chunks)
        data = data[cut:]
    if data:
        chunks.append(data)
        _fix_leading_quotes(chunks)
    return chunks


def _normalize_location(location: str) -> str:
    return location[:LOCATION_WIDTH].rjust(LOCATION_WIDTH)


def layout_chunk(chunk: str, location: str) -> List[str]:
    """Lay one chunk out as an opening line plus continuation lines."""
    open_prefix = TAG_PREFIX + _normalize_location(location) + TAG_OPEN
    if len(chunk) + len(TAG_CLOSE) <= FIRST_LINE_WIDTH + 1:
        return [open_prefix + chunk + TAG_CLOSE]

    out = [open_prefix + chunk[:FIRST_LINE_WIDTH] + CONTINUATION_CHAR]
    closed = False
    for pos in range(FIRST_LINE_WIDTH, len(chunk), CONTINUATION_WIDTH):
        piece = chunk[pos:pos + CONTINUATION_WIDTH]
        if len(piece) == CONTINUATION_WIDTH:
            out.append(KEYWORD_PREFIX + piece + CONTINUATION_CHAR)
        else:
            out.append(KEYWORD_PREFIX + piece + TAG_CLOSE)
            closed = True
    if not closed:
        # Exact width fit: the tag still needs its own closing line.
        out.append(KEYWORD_PREFIX + TAG_CLOSE)
    return out


def render_payload(
    payload: dict,
    location: str,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    record_format: str = "",
    log: Optional[Callable[[str], None]] = None,
) -> List[str]:
    """Serialize, escape, chunk and lay out one payload as DDS lines."""
    try:
        text = escape_quotes(dump_payload(payload))
    except (TypeError, ValueError) as e:
        raise PayloadSerializationError(f"cannot serialize payload: {e}", subject=record_format or None) from e

    out: List[str] = []
    chunks = chunk_text(text, chunk_size)
    for chunk in chunks:
        out.extend(layout_chunk(chunk, location))
    if log is not None:
        log(f"[RENDER] format={record_format or '-'} chars={len(text)} chunks={len(chunks)} lines={len(out)}")
    return out
