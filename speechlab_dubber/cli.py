"""Command-line interface for the SpeechLab dubbing client.

WHY: Operators need a quick way to dub a hosted audio file, or to check
that their SpeechLab credentials work, without writing a host app. The
CLI wires settings loading, logging, and the orchestrator behind two
subcommands.

HOW: Uses argparse with `dub` and `check` subcommands. Settings come from
.env / environment (DubbingSettings.from_env) with command-line flags
layered on top. Runs the async flow via asyncio.run(). Status messages
and logs go to stderr; the dubbing result is printed to stdout as JSON.

RULES:
- `dub AUDIO_URL --target CODE` runs the full submit → poll → link flow
- `check` validates credentials and performs one lookup
- Exit 0 on success, 1 on any SpeechLabError, 2 on usage errors (argparse)
- Logging defaults to INFO; --debug (or SPEECHLAB_DEBUG=true) selects DEBUG
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from speechlab_dubber import __version__
from speechlab_dubber.config import DubbingSettings
from speechlab_dubber.core.dubbing import check_connection, dub_audio
from speechlab_dubber.errors import SpeechLabError


def _status(msg: str) -> None:
    """Print a status message to stderr.

    WHY: Status output must not pollute stdout so the JSON result can be piped.
    """
    print(msg, file=sys.stderr, flush=True)


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="speechlab-dubber",
        description="Dub hosted audio with the SpeechLab API.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")

    sub = parser.add_subparsers(dest="command", required=True)

    dub = sub.add_parser("dub", help="Dub an audio file and print the sharing link.")
    dub.add_argument("audio_url", help="Publicly reachable URL of the source audio.")
    dub.add_argument("--target", "-t", required=True, help="Target language code, e.g. es.")
    dub.add_argument("--name", "-n", default=None, help="Project name (max 100 chars).")
    dub.add_argument("--source", "-s", default=None, help="Source language code.")
    dub.add_argument("--third-party-id", default=None, help="Correlation id for the project.")
    dub.add_argument(
        "--max-wait", type=int, default=None, metavar="MIN",
        help="Maximum minutes to wait for completion.",
    )
    dub.add_argument(
        "--interval", type=int, default=None, metavar="SEC",
        help="Seconds between status checks.",
    )

    sub.add_parser("check", help="Validate credentials and API connectivity.")
    return parser


def _settings_overrides(args: argparse.Namespace) -> dict[str, str]:
    overrides: dict[str, str] = {}
    if getattr(args, "source", None):
        overrides["SPEECHLAB_SOURCE_LANGUAGE"] = args.source
    if getattr(args, "max_wait", None) is not None:
        overrides["SPEECHLAB_MAX_WAIT_TIME_MINUTES"] = str(args.max_wait)
    if getattr(args, "interval", None) is not None:
        overrides["SPEECHLAB_CHECK_INTERVAL_SECONDS"] = str(args.interval)
    if args.debug:
        overrides["SPEECHLAB_DEBUG"] = "true"
    return overrides


def _run_dub(args: argparse.Namespace, settings: DubbingSettings) -> int:
    options = {
        "audio_url": args.audio_url,
        "target_language": args.target,
        "project_name": args.name,
        "third_party_id": args.third_party_id,
    }
    _status(f"Dubbing {args.audio_url} into {args.target}...")
    result = asyncio.run(dub_audio(options, settings))
    _status(f"Done. Sharing link: {result.sharing_link}")
    print(json.dumps(result.to_dict(), indent=2))
    return 0


def _run_check(settings: DubbingSettings) -> int:
    _status("Checking SpeechLab credentials and connectivity...")
    asyncio.run(check_connection(settings))
    _status("SpeechLab API connection OK.")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``speechlab-dubber`` and ``python -m speechlab_dubber``."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = DubbingSettings.from_env(_settings_overrides(args))
        _configure_logging(settings.debug)
        if args.command == "dub":
            return _run_dub(args, settings)
        return _run_check(settings)
    except SpeechLabError as exc:
        _status(f"Error: {exc}")
        return 1
