"""CLI for converting rich-display DDS to JSON and back."""

from __future__ import annotations

import argparse
import os
import sys
import time
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .config import get_config_path, get_conversion_config
from .convert import dds_to_json, dump_model, json_to_dds, load_model
from .errors import ConversionError
from .member_store import (
    RemoteMemberStore,
    is_generic_name,
    json_output_path,
    list_generic_files,
    read_document,
    write_document,
)
from .verify import format_summary, verify_documents

Log = Callable[[str], None]


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="dspfjson",
        description="Convert rich-display DDS source to JSON and merge edited JSON back into DDS",
    )
    ap.add_argument("--verbose", action="store_true", help="Log scan/render/merge details")
    ap.add_argument("--log-file", default=None, help="Also append log lines to this file")
    sub = ap.add_subparsers(dest="command", required=True)

    d2j = sub.add_parser("dds-to-json", help="Convert a DDS display file into JSON")
    d2j.add_argument("out_dir", help="Directory to write <name>.json into")
    d2j.add_argument("src", help="DDS file path, or source file name when --lib/--mbr are given")
    d2j.add_argument("--lib", default=None, help="Library of the source file (remote member)")
    d2j.add_argument("--mbr", default=None, help="Source member name (remote member)")

    j2d = sub.add_parser("json-to-dds", help="Merge a JSON display file back into its original DDS")
    j2d.add_argument("in_json", help="Input JSON file")
    j2d.add_argument("out", help="Output DDS path, or source file name when --lib/--mbr are given")
    j2d.add_argument("--lib", default=None, help="Output library (remote member)")
    j2d.add_argument("--mbr", default=None, help="Output member (remote member)")
    j2d.add_argument("--orig", default=None, help="Original DDS file (defaults to the configured env var)")
    j2d.add_argument("--orig-file", default=None, help="Original source file name (remote member)")
    j2d.add_argument("--orig-lib", default=None, help="Original library (remote member)")
    j2d.add_argument("--orig-mbr", default=None, help="Original member (remote member)")

    ver = sub.add_parser("verify", help="Round-trip DDS -> JSON -> DDS and diff against the original")
    ver.add_argument("src", help="DDS file path (NAME* allowed), or source file name with --lib/--mbr")
    ver.add_argument("--lib", default=None, help="Library (remote members)")
    ver.add_argument("--mbr", default=None, help="Member name, NAME* allowed (remote members)")
    return ap


def _remote_pair(lib: Optional[str], mbr: Optional[str], what: str) -> Optional[str]:
    """Return an error message when only one of lib/mbr is given."""
    if bool(lib) != bool(mbr):
        return f"{what}: --lib and --mbr must be given together"
    return None


def _dds_to_json(args: argparse.Namespace, log: Log, detail: Optional[Log]) -> int:
    problem = _remote_pair(args.lib, args.mbr, "dds-to-json")
    if problem:
        log(f"[ERROR] {problem}")
        return 2
    out_dir = Path(args.out_dir).expanduser().resolve()
    if not out_dir.is_dir():
        log(f'[ERROR] Output directory does not exist or is not a directory: "{out_dir}"')
        return 2

    if args.lib:
        store = RemoteMemberStore.from_config(log=detail)
        text = store.read_member(args.lib, args.src, args.mbr)
        member_text = store.member_text(args.lib, args.src, args.mbr)
        label = f"{args.lib.upper()}/{args.src.upper()}.{args.mbr.upper()}"
    else:
        src = Path(args.src).expanduser()
        if not src.is_file():
            log(f'[ERROR] Input file does not exist or is not a file: "{src}"')
            return 2
        text = read_document(src)
        member_text = ""
        label = str(src)

    log(f"[CONVERT] DDS -> JSON {label}")
    dspf = dds_to_json(text, member_text=member_text, log=detail)
    out_path = json_output_path(out_dir, args.src, args.mbr)
    write_document(out_path, dump_model(dspf))
    log(f"[OK] {label} -> {out_path} (formats={len(dspf['formats'])})")
    return 0


def _read_original(args: argparse.Namespace, log: Log, detail: Optional[Log]) -> Optional[str]:
    if args.orig_file or args.orig_lib or args.orig_mbr:
        if not (args.orig_file and args.orig_lib and args.orig_mbr):
            log("[ERROR] --orig-file, --orig-lib and --orig-mbr must be given together")
            return None
        store = RemoteMemberStore.from_config(log=detail)
        return store.read_member(args.orig_lib, args.orig_file, args.orig_mbr)

    orig = args.orig
    if not orig:
        env_name = str(get_conversion_config().get("original_dds_env") or "")
        orig = os.environ.get(env_name) if env_name else None
        if not orig:
            log(f"[ERROR] Pass --orig or set {env_name} to the location of the original DDS file")
            return None
    path = Path(orig).expanduser()
    if not path.is_file():
        log(f'[ERROR] Original DDS file not found: "{path}"')
        return None
    return read_document(path)


def _json_to_dds(args: argparse.Namespace, log: Log, detail: Optional[Log]) -> int:
    problem = _remote_pair(args.lib, args.mbr, "json-to-dds")
    if problem:
        log(f"[ERROR] {problem}")
        return 2
    in_json = Path(args.in_json).expanduser()
    if not in_json.is_file():
        log(f'[ERROR] Input JSON file not found: "{in_json}"')
        return 2
    model = load_model(read_document(in_json))

    original = _read_original(args, log, detail)
    if original is None:
        return 2

    log(f"[CONVERT] JSON -> DDS {in_json}")
    new_text = json_to_dds(model, original, log=detail)

    if args.lib:
        store = RemoteMemberStore.from_config(log=detail)
        store.write_member(args.lib, args.out, args.mbr, new_text, str(model.get("text") or ""))
        log(f"[OK] {in_json} -> {args.lib.upper()}/{args.out.upper()}.{args.mbr.upper()}")
        return 0

    out = Path(args.out).expanduser()
    if not out.parent.is_dir():
        log(f'[ERROR] Output directory does not exist: "{out.parent}"')
        return 2
    write_document(out, new_text)
    log(f"[OK] {in_json} -> {out}")
    return 0


def _verify_sources(args: argparse.Namespace, detail: Optional[Log]) -> List[Tuple[str, Callable[[], str]]]:
    if args.lib:
        store = RemoteMemberStore.from_config(log=detail)
        members = store.list_members(args.lib, args.src, args.mbr) if is_generic_name(args.mbr) else [args.mbr.upper()]
        return [
            (f"{args.lib.upper()}/{args.src.upper()}.{m}", lambda m=m: store.read_member(args.lib, args.src, m))
            for m in members
        ]
    if is_generic_name(args.src):
        files = list_generic_files(args.src)
    else:
        files = [Path(args.src).expanduser()]
    return [(str(p), lambda p=p: read_document(p)) for p in files]


def _verify(args: argparse.Namespace, log: Log, detail: Optional[Log], err: Log) -> int:
    problem = _remote_pair(args.lib, args.mbr, "verify")
    if problem:
        err(f"[ERROR] {problem}")
        return 2
    summary = verify_documents(_verify_sources(args, detail), log=log, detail=detail)
    for line in format_summary(summary):
        (log if summary.ok else err)(line)
    return 0 if summary.ok else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Run the CLI and dispatch to the sub-command."""
    args = _build_parser().parse_args(argv)

    run_log_path: Optional[Path] = Path(args.log_file).expanduser() if args.log_file else None

    def _append_log(line: str) -> None:
        if run_log_path is None:
            return
        run_log_path.parent.mkdir(parents=True, exist_ok=True)
        with run_log_path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")

    def _log(msg: str, *, stderr: bool = False) -> None:
        stream = sys.stderr if stderr else sys.stdout
        print(msg, file=stream)
        _append_log(msg)

    def _err(msg: str) -> None:
        _log(msg, stderr=True)

    detail: Optional[Log] = _log if args.verbose else None
    _append_log(f"[RUN] start {time.strftime('%Y-%m-%d %H:%M:%S')} command={args.command}")
    if args.verbose:
        _log(f"[CONFIG] {get_config_path()}")

    try:
        if args.command == "dds-to-json":
            return _run(_dds_to_json, args, _log, _err, detail)
        if args.command == "json-to-dds":
            return _run(_json_to_dds, args, _log, _err, detail)
        return _verify(args, _log, detail, _err)
    except ConversionError as e:
        _err(f"[ERROR] {e}")
        return 1


def _run(
    handler: Callable[[argparse.Namespace, Log, Optional[Log]], int],
    args: argparse.Namespace,
    log: Log,
    err: Log,
    detail: Optional[Log],
) -> int:
    """Run a conversion handler, sending [ERROR] lines to stderr."""

    def _route(msg: str) -> None:
        (err if msg.startswith("[ERROR]") else log)(msg)

    return handler(args, _route, detail)


if __name__ == "__main__":
    raise SystemExit(main())
