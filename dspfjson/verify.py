"""Round-trip verification: DDS -> JSON -> DDS, compared with the original."""

from __future__ import annotations

import difflib
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple

from .convert import dds_to_json, dump_model, json_to_dds, load_model, source_lines
from .errors import ConversionError
from .lines import join_document, split_document


@dataclass
class VerifyFailure:
    name: str
    error: str
    diff: str = ""


@dataclass
class VerifySummary:
    """Counts and failure details across one verification run."""
    inputs: int = 0
    successes: int = 0
    failures: List[VerifyFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def round_trip(text: str, *, log: Optional[Callable[[str], None]] = None) -> Tuple[str, str]:
    """Return the prefix-stripped original and its twice-converted copy."""
    original = join_document(source_lines(text))
    model = load_model(dump_model(dds_to_json(text, log=log)))
    regenerated = json_to_dds(model, original, log=log)
    return original, regenerated


def diff_documents(original: str, regenerated: str, name: str) -> str:
    diff = difflib.unified_diff(
        split_document(original),
        split_document(regenerated),
        fromfile=name,
        tofile=f"{name} (converted)",
        lineterm="",
    )
    return "\n".join(diff)


def verify_text(
    name: str,
    text: str,
    summary: VerifySummary,
    *,
    log: Optional[Callable[[str], None]] = None,
) -> bool:
    """Verify one document and record the outcome in ``summary``."""
    try:
        original, regenerated = round_trip(text, log=log)
    except ConversionError as e:
        summary.failures.append(VerifyFailure(name=name, error=str(e)))
        return False
    if original != regenerated:
        summary.failures.append(
            VerifyFailure(name=name, error="converted DDS differs from original", diff=diff_documents(original, regenerated, name))
        )
        return False
    summary.successes += 1
    return True


def verify_documents(
    sources: Iterable[Tuple[str, Callable[[], str]]],
    *,
    log: Optional[Callable[[str], None]] = None,
    detail: Optional[Callable[[str], None]] = None,
) -> VerifySummary:
    """Verify each ``(name, read)`` pair; ``read`` is only called when it is that document's turn.

    ``log`` receives one line per document, ``detail`` the conversion tracing.
    """
    summary = VerifySummary()
    for name, read in sources:
        summary.inputs += 1
        try:
            text = read()
        except ConversionError as e:
            summary.failures.append(VerifyFailure(name=name, error=str(e)))
            if log is not None:
                log(f"[VERIFY] {name} FAILED")
            continue
        ok = verify_text(name, text, summary, log=detail)
        if log is not None:
            log(f"[VERIFY] {name} {'SUCCESS' if ok else 'FAILED'}")
    return summary


def format_summary(summary: VerifySummary) -> List[str]:
    """Render the closing report as lines."""
    lines = [
        "Conversion Summary",
        f"{summary.inputs} Input Source files.",
        f"{summary.successes} verification SUCCESS.",
        f"{len(summary.failures)} verification FAILED.",
    ]
    for count, fail in enumerate(summary.failures, start=1):
        lines.append(f"Fail #{count} : {fail.name}")
        lines.append(f"  {fail.error}")
        if fail.diff:
            lines.append(fail.diff)
    return lines
