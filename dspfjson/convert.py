"""DDS <-> JSON conversions over in-memory source text."""

from __future__ import annotations

import json
from typing import Callable, Optional

from .config import METHOD_ENV_VAR, get_codec_config, get_conversion_config
from .echo import assemble_echo
from .errors import InvalidModelError, NotRichDisplayError, UnsupportedMethodError
from .lines import is_rich_display, join_document, split_document, strip_sequence_prefix
from .merge import merge_document
from .payloads import PayloadSet
from .scanner import scan_document

SUPPORTED_METHODS = ("1",)


def source_lines(text: str) -> list[str]:
    """Split source text and drop the sequence/date prefix if the document has one."""
    return strip_sequence_prefix(split_document(text))


def dds_to_json(
    text: str,
    *,
    member_text: str = "",
    full_echo_keyword: Optional[str] = None,
    log: Optional[Callable[[str], None]] = None,
) -> dict:
    """Convert rich-display DDS source into the structured JSON document."""
    if full_echo_keyword is None:
        full_echo_keyword = get_codec_config()["full_echo_keyword"]

    lines = source_lines(text)
    if not is_rich_display(lines):
        raise NotRichDisplayError("the input source file is not a Rich Display File")

    scan = scan_document(lines, log=log)
    dspf = {
        "text": member_text,
        "formats": scan.formats,
        "keywords": list(scan.keywords),
    }
    if full_echo_keyword in dspf["keywords"]:
        if log is not None:
            log(f"[CONVERT] {full_echo_keyword} keyword present, adding DDS echo")
        dspf["dds"] = assemble_echo(lines, scan, log=log)
    return dspf


def load_model(text: str) -> dict:
    """Parse a JSON document and check it has a formats list."""
    try:
        model = json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidModelError(f"not a valid JSON document: {e}") from e
    if not isinstance(model, dict) or not isinstance(model.get("formats"), list):
        raise InvalidModelError('JSON document must be an object with a "formats" list')
    return model


def dump_model(model: dict) -> str:
    return json.dumps(model, indent=2, ensure_ascii=False)


def json_to_dds(
    model: dict,
    original_text: str,
    *,
    method: Optional[str] = None,
    chunk_size: Optional[int] = None,
    log: Optional[Callable[[str], None]] = None,
) -> str:
    """Merge the model's formats into the original DDS and return the new source."""
    if method is None:
        method = get_conversion_config()["method"]
    if method not in SUPPORTED_METHODS:
        raise UnsupportedMethodError(f"{METHOD_ENV_VAR} has an unexpected value '{method}'", subject=method)
    if chunk_size is None:
        chunk_size = get_codec_config()["chunk_size"]
    if not isinstance(model.get("formats"), list):
        raise InvalidModelError('JSON document must have a "formats" list')

    payloads = PayloadSet(model["formats"])
    lines = source_lines(original_text)
    if log is not None:
        log(f"[CONVERT] method={method} formats={len(payloads)} original_lines={len(lines)}")
    return join_document(merge_document(payloads, lines, chunk_size=chunk_size, log=log))
