"""Fixed-column line classification for DDS display-file source."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

CRLF = "\r\n"
LINE_WIDTH = 80
PREFIX_WIDTH = 12

# 0-based slices of the 1-based columns used by DDS source.
FORM_COL = 5
NAME_START, NAME_END = 18, 28
HIDDEN_COL = 37
LOCATION_START, LOCATION_END = 38, 44
KEYWORD_START, KEYWORD_END = 44, 80
CONTENT_END = 79
CONTINUATION_COL = 79
CONTINUATION_CHAR = "-"

SPEC_FORM = "A "
COMMENT_FORM = "A*"
CONTROL_ANNOTATION = "A*PUI"
GENERATED_ANNOTATION = "A*%%"
RECORD_FORMAT_FORM = "A          R"

TAG_OPEN = "HTML('"
PAYLOAD_OPEN = TAG_OPEN + "{"
CONTROL_OPEN = TAG_OPEN + "QPUI"
TAG_CLOSE = "')"
SELECTION_LIST_KEYWORD = "SFL"

_NUMERIC_PREFIX_RE = re.compile(r"^\s*[+-]?\d")


class LineRole(str, Enum):
    RECORD_FORMAT_HEADER = "RecordFormatHeader"
    COMMENT = "Comment"
    CONTROL_TAG_OPEN = "ControlTagOpen"
    CONTROL_TAG_CONTINUATION = "ControlTagContinuation"
    PAYLOAD_TAG_OPEN = "PayloadTagOpen"
    PAYLOAD_TAG_CONTINUATION = "PayloadTagContinuation"
    FIELD_DEFINITION = "FieldDefinition"
    BLANK = "Blank"
    OTHER = "Other"


@dataclass(frozen=True)
class LineInfo:
    """Structural view of one physical line."""
    role: LineRole
    text: str
    name: str = ""
    keyword: str = ""
    hidden: bool = False
    continues: bool = False

    @property
    def is_active(self) -> bool:
        return _cols(self.text, FORM_COL, FORM_COL + 2) == SPEC_FORM

    @property
    def location(self) -> str:
        """Line/position columns in front of the keyword area (cols 39-44)."""
        return _cols(self.text, LOCATION_START, LOCATION_END)

    @property
    def opens_tag(self) -> bool:
        """True when the keyword area starts any HTML(' value."""
        return self.keyword.startswith(TAG_OPEN)

    @property
    def opens_tag_chunk(self) -> bool:
        """True for a non-control HTML(' value, i.e. a payload or a later payload chunk."""
        return self.opens_tag and not self.keyword.startswith(CONTROL_OPEN)

    @property
    def selection_list(self) -> bool:
        return self.keyword.strip() == SELECTION_LIST_KEYWORD

    @property
    def generated_annotation(self) -> bool:
        return _cols(self.text, FORM_COL, FORM_COL + 4) == GENERATED_ANNOTATION

    @property
    def control_annotation(self) -> bool:
        return _cols(self.text, FORM_COL, FORM_COL + 5) == CONTROL_ANNOTATION


def _cols(line: str, start: int, end: int) -> str:
    """Slice a line as if it were blank-padded to the full width."""
    return line[start:end].ljust(end - start)


def classify_line(line: str, continuing: Optional[LineRole] = None) -> LineInfo:
    """Classify one prefix-stripped line by its fixed columns.

    ``continuing`` is the role of the tag the previous line left open, if any.
    Lines never fail to classify; anything unmatched is ``OTHER``.
    """
    form = _cols(line, FORM_COL, FORM_COL + 2)
    name = _cols(line, NAME_START, NAME_END).rstrip()
    keyword = line[KEYWORD_START:KEYWORD_END]
    hidden = _cols(line, HIDDEN_COL, HIDDEN_COL + 1) == "H"
    continues = _cols(line, CONTINUATION_COL, CONTINUATION_COL + 1) == CONTINUATION_CHAR

    def info(role: LineRole) -> LineInfo:
        return LineInfo(role=role, text=line, name=name, keyword=keyword, hidden=hidden, continues=continues)

    if not line.strip():
        return info(LineRole.BLANK)
    if continuing in (LineRole.PAYLOAD_TAG_OPEN, LineRole.PAYLOAD_TAG_CONTINUATION):
        return info(LineRole.PAYLOAD_TAG_CONTINUATION)
    if continuing in (LineRole.CONTROL_TAG_OPEN, LineRole.CONTROL_TAG_CONTINUATION):
        return info(LineRole.CONTROL_TAG_CONTINUATION)
    if form == COMMENT_FORM:
        return info(LineRole.COMMENT)
    if form != SPEC_FORM:
        return info(LineRole.OTHER)
    if _cols(line, FORM_COL, FORM_COL + len(RECORD_FORMAT_FORM)) == RECORD_FORMAT_FORM:
        return info(LineRole.RECORD_FORMAT_HEADER)
    if keyword.startswith(CONTROL_OPEN):
        return info(LineRole.CONTROL_TAG_OPEN)
    if keyword.startswith(PAYLOAD_OPEN):
        return info(LineRole.PAYLOAD_TAG_OPEN)
    if name:
        return info(LineRole.FIELD_DEFINITION)
    return info(LineRole.OTHER)


def classify_document(lines: List[str]) -> List[LineInfo]:
    """Classify every line, tracking which tag a continued line belongs to."""
    out: List[LineInfo] = []
    open_role: Optional[LineRole] = None
    for line in lines:
        item = classify_line(line, open_role)
        if item.role in (
            LineRole.PAYLOAD_TAG_OPEN,
            LineRole.PAYLOAD_TAG_CONTINUATION,
            LineRole.CONTROL_TAG_OPEN,
            LineRole.CONTROL_TAG_CONTINUATION,
        ) and item.continues:
            open_role = item.role
        else:
            open_role = None
        out.append(item)
    return out


def split_document(text: str) -> List[str]:
    """Split raw source into physical lines on CRLF."""
    return text.split(CRLF)


def join_document(lines: List[str]) -> str:
    return CRLF.join(lines)


def has_sequence_prefix(lines: List[str]) -> bool:
    """Detect the 12-character sequence/date prefix from the first line only."""
    if not lines:
        return False
    return bool(_NUMERIC_PREFIX_RE.match(lines[0][:PREFIX_WIDTH]))


def strip_sequence_prefix(lines: List[str]) -> List[str]:
    """Drop the sequence/date prefix from every line when the document carries one."""
    if not has_sequence_prefix(lines):
        return list(lines)
    return [line[PREFIX_WIDTH:] for line in lines]


def is_rich_display(lines: List[str]) -> bool:
    """True when any line carries an HTML( keyword."""
    return any(line[KEYWORD_START:KEYWORD_START + 5] == "HTML(" for line in lines)


def find_region_end(lines: List[str], start: int) -> int:
    """Index of the last line of the payload region opened at ``start``.

    The region ends on the first specification line that does not continue
    and is not followed by another payload chunk; otherwise at end of input.
    """
    for idx in range(start, len(lines)):
        info = classify_line(lines[idx])
        if not info.is_active or info.continues:
            continue
        if idx == len(lines) - 1:
            return idx
        if not classify_line(lines[idx + 1]).opens_tag_chunk:
            return idx
    return len(lines) - 1
