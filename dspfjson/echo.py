"""Build the verbatim DDS echo stored alongside the JSON formats."""

from __future__ import annotations

import re
from typing import Callable, FrozenSet, List, Optional

from .lines import LineRole, classify_document, find_region_end
from .payloads import bound_fields
from .scanner import ScanResult

CONTROL_CHARS_RE = re.compile(r"[\x00-\x09\x0B-\x1F\x7F-\x9F]")


def clean_line(line: str) -> str:
    """Blank out control characters and drop trailing whitespace."""
    return CONTROL_CHARS_RE.sub(" ", line).rstrip()


def assemble_echo(
    lines: List[str],
    scan: ScanResult,
    *,
    log: Optional[Callable[[str], None]] = None,
) -> List[str]:
    """Return the cleaned source lines that the JSON formats do not already carry."""
    out: List[str] = []
    record_format = ""
    selection_list = False
    bound: FrozenSet[str] = frozenset()
    skipped = 0

    infos = classify_document(lines)
    idx = 0
    while idx < len(lines):
        info = infos[idx]

        if info.role is LineRole.RECORD_FORMAT_HEADER:
            record_format = info.name.upper()
            selection_list = info.selection_list
            bound = frozenset()

        if info.role in (LineRole.CONTROL_TAG_OPEN, LineRole.CONTROL_TAG_CONTINUATION):
            if info.role is LineRole.CONTROL_TAG_OPEN:
                skipped += 1
            idx += 1
            continue

        # Subfile formats keep their payload lines in the echo.
        if info.role is LineRole.PAYLOAD_TAG_OPEN and not selection_list:
            idx = find_region_end(lines, idx) + 1
            payload = scan.payload_for(record_format)
            bound = bound_fields(payload) if payload is not None else frozenset()
            skipped += 1
            if log is not None:
                log(f"[ECHO] format={record_format} bound_fields={len(bound)}")
            continue

        idx += 1
        if info.role is LineRole.BLANK or info.generated_annotation:
            continue
        if info.role is LineRole.FIELD_DEFINITION and info.hidden and info.name.upper() in bound:
            continue
        out.append(clean_line(info.text))

    if log is not None:
        log(f"[ECHO] kept={len(out)} skipped_regions={skipped}")
    return out
