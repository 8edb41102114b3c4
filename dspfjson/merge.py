"""Regenerate payload regions of an existing DDS document from new JSON formats."""

from __future__ import annotations

from typing import Callable, List, Optional

from .dds_render import DEFAULT_CHUNK_SIZE, render_payload
from .lines import LineRole, classify_line, find_region_end
from .payloads import PayloadSet


def merge_document(
    payloads: PayloadSet,
    original: List[str],
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    log: Optional[Callable[[str], None]] = None,
) -> List[str]:
    """Copy ``original`` line by line, replacing each payload region with fresh output.

    Record formats and bound fields come from the original document, so they
    cannot be added or removed here. Raises ``MissingPayloadError`` when a
    region's record format has no payload in ``payloads``.
    """
    out: List[str] = []
    record_format = ""
    regions = 0

    idx = 0
    while idx < len(original):
        line = original[idx]
        info = classify_line(line)

        if info.role is LineRole.RECORD_FORMAT_HEADER:
            record_format = info.name.upper()
        elif info.role is LineRole.PAYLOAD_TAG_OPEN:
            end = find_region_end(original, idx)
            payload = payloads.require(record_format)
            rendered = render_payload(
                payload,
                info.location,
                chunk_size=chunk_size,
                record_format=record_format,
                log=log,
            )
            if log is not None:
                log(f"[MERGE] format={record_format} lines {idx + 1}-{end + 1} -> {len(rendered)} lines")
            out.extend(rendered)
            regions += 1
            idx = end + 1
            continue

        out.append(line)
        idx += 1

    if log is not None:
        log(f"[MERGE] regions={regions} lines_in={len(original)} lines_out={len(out)}")
    return out
