"""Command-line interface for sending requests to Wit.ai.

WHY: Developers need a quick way to check credentials, try utterances,
and replay recorded audio against an app without writing code.

HOW: argparse subcommands build a RequestSession through the factory
helpers, start it, stream a raw PCM file for speech requests, wait for
completion, and print the parsed JSON to stdout.

RULES:
- Subcommands: message, speech, entities, apps
- Credentials come from the environment / .env (WitConfiguration.from_env)
- Status and log output go to stderr; only JSON goes to stdout
- Exit codes: 0 on success, 1 on any failed request, 2 on configuration errors
- Speech files must be raw 16 kHz signed 16-bit little-endian PCM
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from pathlib import Path
from typing import List, Optional

import httpx

from wit_session.api.factory import (
    apps_request,
    entities_request,
    message_request,
    speech_request,
)
from wit_session.api.models import Success
from wit_session.api.session import (
    ConfigurationError,
    RequestSession,
    RequestStreamClosedError,
)
from wit_session.config import AUDIO_CONTENT_TYPE, WitConfiguration

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 3200  # 100 ms of 16 kHz s16le audio
_INPUT_READY_POLL_S = 0.05


def _status(msg: str) -> None:
    """Print a status message to stderr."""
    print(msg, file=sys.stderr, flush=True)


def _stream_file(session: RequestSession, audio_path: Path, chunk_size: int) -> None:
    """Write a raw PCM file into a started speech session.

    WHY: Mirrors live capture: the body is written from the caller's
    thread after the input side opens, then closed.

    RULES:
    - Waits for on_input_ready, giving up if the session completes first
    - Stops writing when the session closes the body first (early
      response or transport failure); the result reports why
    - Always closes the request stream once the file is written
    """
    ready = threading.Event()
    session.on_input_ready = lambda _session: ready.set()
    session.start()

    while not ready.wait(_INPUT_READY_POLL_S):
        if session.wait(0):
            return

    _status("Streaming {} ({})...".format(audio_path.name, AUDIO_CONTENT_TYPE))
    chunks = 0
    with open(audio_path, "rb") as f:
        while True:
            data = f.read(chunk_size)
            if not data:
                break
            try:
                session.write(data)
            except RequestStreamClosedError:
                logger.info("Request body closed after %d chunks; stopping upload", chunks)
                break
            chunks += 1
    session.close_request_stream()
    logger.debug("Wrote %d chunks from %s", chunks, audio_path)


def _run(args: argparse.Namespace, transport: Optional[httpx.AsyncBaseTransport]) -> int:
    try:
        config = WitConfiguration.from_env()
    except ValueError as exc:
        _status("Error: {}".format(exc))
        return 2

    session_kwargs = {"transport": transport} if transport is not None else {}
    if args.command == "message":
        session = message_request(config, args.text, n=args.n, **session_kwargs)
    elif args.command == "speech":
        audio_path = Path(args.audio_file)
        if not audio_path.is_file():
            _status("Error: File not found: {}".format(audio_path))
            return 2
        session = speech_request(config, **session_kwargs)
    elif args.command == "entities":
        session = entities_request(config, **session_kwargs)
    else:
        session = apps_request(config, limit=args.limit, offset=args.offset, **session_kwargs)

    if args.raw:
        session.on_raw_response = lambda text: print(text, flush=True)

    _status("Sending {} request...".format(session.kind.name.lower()))
    try:
        if args.command == "speech":
            _stream_file(session, audio_path, args.chunk_size)
        else:
            session.start()
    except ConfigurationError as exc:
        _status("Error: {}".format(exc))
        return 2

    session.wait()
    result = session.result
    if isinstance(result, Success):
        if not args.raw:
            print(json.dumps(result.payload, indent=2, ensure_ascii=False))
        return 0

    _status("Request failed: {} {}".format(result.status_code, result.description))
    return 1


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="wit-session",
        description="Send text, audio, and introspection requests to the Wit.ai API.",
    )
    parser.add_argument(
        "--raw",
        action="store_true",
        help="Print the unparsed response body instead of formatted JSON.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging on stderr.",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    message = sub.add_parser("message", help="Classify a text utterance.")
    message.add_argument("text", help="The utterance to classify.")
    message.add_argument("--n", type=int, default=None, help="Maximum number of intents to return.")

    speech = sub.add_parser("speech", help="Classify a raw 16 kHz s16le PCM audio file.")
    speech.add_argument("audio_file", help="Path to the raw PCM file.")
    speech.add_argument(
        "--chunk-size",
        type=int,
        default=DEFAULT_CHUNK_SIZE,
        help="Bytes per streamed chunk (default: %(default)s).",
    )

    sub.add_parser("entities", help="List the app's entities (needs the server token).")

    apps = sub.add_parser("apps", help="List apps (needs the server token).")
    apps.add_argument("--limit", type=int, default=10, help="Number of apps (default: %(default)s).")
    apps.add_argument("--offset", type=int, default=0, help="Offset into the app list.")

    return parser


def main(
    argv: Optional[List[str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> int:
    """Entry point for the CLI.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv and transport are for testing
    - Returns the process exit code
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    return _run(args, transport)


if __name__ == "__main__":
    sys.exit(main())
