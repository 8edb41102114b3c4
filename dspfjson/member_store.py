"""Read and write DDS documents from local files or a remote source-member service."""

from __future__ import annotations

import fnmatch
from pathlib import Path
from typing import Callable, List, Optional

import httpx

from .config import get_store_config
from .errors import StoreError

DSPF_SRCTYPE = "DSPF"


def read_document(path: Path) -> str:
    """Read a source file as UTF-8 without newline translation."""
    try:
        return path.read_bytes().decode("utf-8")
    except OSError as e:
        raise StoreError(f'cannot read "{path}": {e}', subject=str(path)) from e
    except UnicodeDecodeError as e:
        raise StoreError(f'"{path}" is not UTF-8 text: {e}', subject=str(path)) from e


def write_document(path: Path, text: str) -> None:
    """Write text as UTF-8, keeping CRLF line ends exactly as given."""
    try:
        path.write_bytes(text.encode("utf-8"))
    except OSError as e:
        raise StoreError(f'cannot write "{path}": {e}', subject=str(path)) from e


def json_output_path(out_dir: Path, src: str, member: Optional[str] = None) -> Path:
    """Name the JSON output after the member, or after the source file stem."""
    if member:
        return out_dir / f"{member.upper()}.json"
    return out_dir / f"{Path(src).stem}.json"


def is_generic_name(name: Optional[str]) -> bool:
    return bool(name) and "*" in name


def list_generic_files(pattern: str) -> List[Path]:
    """Expand ``dir/NAME*.ext`` to the matching files, sorted by name."""
    p = Path(pattern).expanduser()
    folder = p.parent if str(p.parent) else Path(".")
    if not folder.is_dir():
        raise StoreError(f'directory not found: "{folder}"', subject=str(folder))
    return sorted(
        (f for f in folder.iterdir() if f.is_file() and fnmatch.fnmatch(f.name, p.name)),
        key=lambda f: f.name,
    )


class RemoteMemberStore:
    """Client for an HTTP service exposing IBM i source members as JSON."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = 60,
        transport: Optional[httpx.BaseTransport] = None,
        log: Optional[Callable[[str], None]] = None,
    ) -> None:
        if not base_url:
            raise StoreError("remote member store base_url is not configured")
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._transport = transport
        self._log = log

    @classmethod
    def from_config(cls, *, log: Optional[Callable[[str], None]] = None) -> "RemoteMemberStore":
        store = get_store_config()
        return cls(
            str(store.get("base_url") or ""),
            timeout_s=float(store.get("timeout_s") or 60),
            log=log,
        )

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        if self._log is not None:
            self._log(f"[STORE] {method} {path}")
        try:
            with httpx.Client(base_url=self.base_url, timeout=self.timeout_s, transport=self._transport) as client:
                r = client.request(method, path, **kwargs)
                r.raise_for_status()
                return r
        except httpx.HTTPStatusError as e:
            raise StoreError(f"{method} {path} failed with HTTP {e.response.status_code}", subject=path) from e
        except httpx.HTTPError as e:
            raise StoreError(f"{method} {path} failed: {e}", subject=path) from e

    @staticmethod
    def _member_path(lib: str, fil: str, mbr: str) -> str:
        return f"/members/{lib.upper()}/{fil.upper()}/{mbr.upper()}"

    def _member(self, lib: str, fil: str, mbr: str) -> dict:
        data = self._request("GET", self._member_path(lib, fil, mbr)).json()
        if not isinstance(data, dict):
            raise StoreError(f"unexpected member response for {lib}/{fil}.{mbr}", subject=mbr)
        return data

    def read_member(self, lib: str, fil: str, mbr: str) -> str:
        """Return a member's source as CRLF-separated text."""
        source = self._member(lib, fil, mbr).get("source")
        if not isinstance(source, str):
            raise StoreError(f"member {lib.upper()}/{fil.upper()}.{mbr.upper()} has no source", subject=mbr)
        return source

    def member_text(self, lib: str, fil: str, mbr: str) -> str:
        return str(self._member(lib, fil, mbr).get("text") or "")

    def member_exists(self, lib: str, fil: str, mbr: str) -> bool:
        try:
            self._member(lib, fil, mbr)
        except StoreError as e:
            cause = e.__cause__
            if isinstance(cause, httpx.HTTPStatusError) and cause.response.status_code == 404:
                return False
            raise
        return True

    def write_member(self, lib: str, fil: str, mbr: str, source: str, text: str = "") -> None:
        """Create a new DSPF member; existing members are never overwritten."""
        if self.member_exists(lib, fil, mbr):
            raise StoreError(
                f"source member '{mbr.upper()}' exists in file {lib.upper()}/{fil.upper()}, and cannot be over-written",
                subject=mbr,
            )
        self._request(
            "PUT",
            self._member_path(lib, fil, mbr),
            json={"source": source, "text": text, "srctype": DSPF_SRCTYPE},
        )

    def list_members(self, lib: str, fil: str, pattern: str) -> List[str]:
        """List member names matching a generic ``NAME*`` pattern."""
        data = self._request(
            "GET",
            f"/members/{lib.upper()}/{fil.upper()}",
            params={"pattern": pattern.upper()},
        ).json()
        members = data.get("members") if isinstance(data, dict) else None
        if not isinstance(members, list):
            raise StoreError(f"unexpected member list response for {lib}/{fil}", subject=fil)
        return sorted(str(m).strip() for m in members if str(m).strip())
