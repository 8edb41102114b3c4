"""Extract file-level keywords and embedded JSON payloads from DDS lines."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from functools import reduce
from typing import Any, Callable, List, Optional, Tuple

from .json_tools import Balance, ParseStatus, attempt_parse, track_balance
from .lines import (
    CONTENT_END,
    KEYWORD_START,
    LineRole,
    TAG_CLOSE,
    TAG_OPEN,
    classify_line,
)

PAYLOAD_TEXT_START = KEYWORD_START + len(TAG_OPEN)

# Newest-first linked pieces, so appending a line never copies the buffer.
Pieces = Optional[Tuple[Any, str]]


@dataclass(frozen=True)
class ScannedPayload:
    """A parsed payload and the record format whose region held it."""
    record_format: str
    value: dict
    line_index: int


@dataclass(frozen=True)
class DroppedRegion:
    record_format: str
    line_index: int
    reason: str


@dataclass(frozen=True)
class ScanState:
    """Fold state threaded through the line sequence."""
    record_format: str = ""
    accumulating: bool = False
    pieces: Pieces = None
    balance: Balance = field(default_factory=Balance)
    start_index: int = -1
    last_status: Optional[ParseStatus] = None
    payloads: Tuple[ScannedPayload, ...] = ()
    dropped: Tuple[DroppedRegion, ...] = ()


@dataclass(frozen=True)
class ScanResult:
    keywords: Tuple[str, ...]
    payloads: Tuple[ScannedPayload, ...]
    dropped: Tuple[DroppedRegion, ...] = ()

    @property
    def formats(self) -> List[dict]:
        return [p.value for p in self.payloads]

    def payload_for(self, record_format: str) -> Optional[dict]:
        """First payload found inside the given record format, if any."""
        name = record_format.upper()
        for p in self.payloads:
            if p.record_format == name:
                return p.value
        return None


def scan_keywords(lines: List[str]) -> List[str]:
    """Collect keyword-area text from file-level lines before the first record format."""
    keywords: List[str] = []
    for line in lines:
        info = classify_line(line)
        if info.role is LineRole.RECORD_FORMAT_HEADER:
            break
        if info.is_active or info.control_annotation:
            text = info.keyword.rstrip()
            if text:
                keywords.append(text)
    return keywords


def _joined(pieces: Pieces) -> str:
    out: List[str] = []
    while pieces is not None:
        pieces, text = pieces
        out.append(text)
    return "".join(reversed(out))


def _closing_text(line: str, start: int) -> str:
    """Text from ``start`` up to the last closing marker on the line."""
    end = line.rfind(TAG_CLOSE)
    if end < start:
        return ""
    return line[start:end]


def _append(state: ScanState, text: str) -> ScanState:
    return replace(
        state,
        accumulating=True,
        pieces=(state.pieces, text),
        balance=track_balance(state.balance, text),
    )


def _reset(state: ScanState, **changes) -> ScanState:
    return replace(
        state,
        accumulating=False,
        pieces=None,
        balance=Balance(),
        start_index=-1,
        **changes,
    )


def _abandon(state: ScanState, reason: str) -> ScanState:
    dropped = DroppedRegion(state.record_format, state.start_index, reason)
    return _reset(state, last_status=None, dropped=state.dropped + (dropped,))


def _settle(state: ScanState, text: str, *, continued: bool) -> ScanState:
    """Close a chunk and try to complete the payload.

    Unbalanced text keeps accumulating. Balanced text that does not parse
    keeps accumulating only when it spans several lines; a self-contained
    one-line tag is dropped at once.
    """
    state = _append(state, text)
    if not state.balance.balanced:
        return replace(state, last_status=ParseStatus.INCOMPLETE)
    attempt = attempt_parse(_joined(state.pieces), state.balance)
    if attempt.ok and isinstance(attempt.value, dict):
        found = ScannedPayload(state.record_format, attempt.value, state.start_index)
        return _reset(state, last_status=attempt.status, payloads=state.payloads + (found,))
    if not continued:
        return _abandon(state, f"single-line payload does not parse ({attempt.error or 'not an object'})")
    return replace(state, last_status=ParseStatus.MALFORMED)


def _step(state: ScanState, item: Tuple[int, str]) -> ScanState:
    idx, line = item
    info = classify_line(line)

    if state.accumulating:
        if info.role is LineRole.RECORD_FORMAT_HEADER:
            state = _abandon(state, "region still open at next record format")
        else:
            # A later chunk restarts with its own HTML(' prefix.
            start = PAYLOAD_TEXT_START if line[KEYWORD_START:PAYLOAD_TEXT_START] == TAG_OPEN else KEYWORD_START
            if info.continues:
                return _append(state, line[start:CONTENT_END])
            return _settle(state, _closing_text(line, start), continued=True)

    if info.role is LineRole.RECORD_FORMAT_HEADER:
        return replace(state, record_format=info.name.upper())
    if info.role is not LineRole.PAYLOAD_TAG_OPEN:
        return state

    state = replace(state, start_index=idx)
    if info.continues:
        return _append(state, line[PAYLOAD_TEXT_START:CONTENT_END])
    return _settle(state, _closing_text(line, PAYLOAD_TEXT_START), continued=False)


def scan_payloads(lines: List[str], *, log: Optional[Callable[[str], None]] = None) -> ScanResult:
    """Reconstruct every embedded JSON payload, dropping regions that never parse."""
    state = reduce(_step, enumerate(lines), ScanState())
    if state.accumulating:
        state = _abandon(state, f"no valid JSON by end of document ({state.last_status.value if state.last_status else 'empty'})")
    if log is not None:
        for d in state.dropped:
            log(f"[SCAN] dropped payload region at line {d.line_index + 1} (format={d.record_format or '-'}): {d.reason}")
        log(f"[SCAN] payloads={len(state.payloads)} dropped={len(state.dropped)}")
    return ScanResult(keywords=(), payloads=state.payloads, dropped=state.dropped)


def scan_document(lines: List[str], *, log: Optional[Callable[[str], None]] = None) -> ScanResult:
    """Scan prefix-stripped lines for keywords and payloads."""
    result = scan_payloads(lines, log=log)
    return replace(result, keywords=tuple(scan_keywords(lines)))
