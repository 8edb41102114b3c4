"""Helpers for the JSON text carried inside HTML('...') keywords."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

QUOTE = "'"
ESCAPED_QUOTE = "''"

STRUCTURE_RE = re.compile(r'[{}\[\]"\\]')


class ParseStatus(str, Enum):
    SUCCESS = "success"
    INCOMPLETE = "incomplete"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class ParseAttempt:
    """Outcome of trying to parse accumulated payload text."""
    status: ParseStatus
    value: Any = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.status is ParseStatus.SUCCESS


def escape_quotes(text: str) -> str:
    """Double every single quote, as DDS keyword literals require."""
    return text.replace(QUOTE, ESCAPED_QUOTE)


def unescape_quotes(text: str) -> str:
    """Collapse doubled single quotes back to one."""
    return text.replace(ESCAPED_QUOTE, QUOTE)


def dump_payload(payload: Any) -> str:
    """Serialize a payload compactly, keeping non-ASCII text as-is."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, allow_nan=False)


@dataclass(frozen=True)
class Balance:
    """Running bracket depth of JSON text fed in pieces."""
    depth: int = 0
    in_str: bool = False
    esc: bool = False
    started: bool = False

    @property
    def balanced(self) -> bool:
        return self.started and self.depth <= 0 and not self.in_str


def track_balance(state: Balance, text: str) -> Balance:
    """Advance ``state`` over the next piece of text, respecting quoted strings."""
    depth, in_str, started = state.depth, state.in_str, state.started
    # Characters before ``skip`` were consumed by a backslash escape.
    skip = 1 if state.esc else 0
    for m in STRUCTURE_RE.finditer(text):
        pos = m.start()
        if pos < skip:
            continue
        ch = m.group()
        if in_str:
            if ch == "\\":
                skip = pos + 2
            elif ch == '"':
                in_str = False
            continue
        if ch == '"':
            in_str = True
        elif ch in "{[":
            depth += 1
            started = True
        elif ch in "}]":
            depth -= 1
    return Balance(depth=depth, in_str=in_str, esc=skip > len(text), started=started)


def attempt_parse(escaped: str, balance: Optional[Balance] = None) -> ParseAttempt:
    """Un-escape and parse payload text without raising.

    Text whose outer object never balances is ``INCOMPLETE`` (more lines may
    follow) and is not handed to the JSON parser; balanced text that still
    fails to load is ``MALFORMED``. Pass ``balance`` when the caller already
    tracked it piece by piece.
    """
    if balance is None:
        balance = track_balance(Balance(), escaped)
    if not balance.balanced:
        return ParseAttempt(ParseStatus.INCOMPLETE, error="unbalanced JSON text")
    try:
        return ParseAttempt(ParseStatus.SUCCESS, value=json.loads(unescape_quotes(escaped)))
    except json.JSONDecodeError as e:
        return ParseAttempt(ParseStatus.MALFORMED, error=str(e))
