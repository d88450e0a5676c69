"""
Command-Line Interface for cartesia-gateway.

Synthesizes speech through the same validator and retrying executor as
the HTTP API, without running the server; or starts the server.

Usage Examples:
    # Synthesize to a file
    cartesia-gateway "Привет, мир" --voice a0e99841-438c-4a64-b679-ae501e7d6091 --out hello.mp3

    # Show the exact provider request body, no network
    cartesia-gateway "Test" --voice <uuid> --dry-run --json

    # Override defaults
    cartesia-gateway "Hello" --voice <uuid> --language en --container wav --speed fast

    # Run the HTTP server
    cartesia-gateway --serve --port 3000

Environment Variables:
    CARTESIA_API_KEY: API key used when --token is not given
    CARTESIA_GW_SETTINGS: Settings file (default config/settings.yaml)
"""
from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

import httpx

from cartesia_gateway.core.config import load_settings
from cartesia_gateway.core.errors import GatewayError
from cartesia_gateway.core.logging import configure_logging, get_logger, info, set_request_id
from cartesia_gateway.services.tts_service import TTSService

OUTPUT_EXTENSIONS = {"mp3": ".mp3", "wav": ".wav", "raw": ".raw"}


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="cartesia-gateway CLI (serverless synth)")

    parser.add_argument("text_pos", nargs="?", help="Text to synthesize (positional)")
    parser.add_argument("--text", help="Text to synthesize")
    parser.add_argument("--voice", help="Voice id (UUID)")
    parser.add_argument("--token", help="Cartesia API key (default: $CARTESIA_API_KEY)")
    parser.add_argument("--out", help="Output file (default: out.<container>)")

    parser.add_argument("--language", help="Language override")
    parser.add_argument("--speed", help="slow, normal or fast")
    parser.add_argument("--container", help="mp3, wav or raw")
    parser.add_argument("--model", help="Model id override")

    parser.add_argument("--dry-run", action="store_true",
                        help="Validate and print the provider request without sending it")
    parser.add_argument("--json", action="store_true", help="Print JSON summary")

    parser.add_argument("--serve", action="store_true", help="Run the HTTP server")
    parser.add_argument("--host", help="Bind address for --serve")
    parser.add_argument("--port", type=int, help="Port for --serve")
    parser.add_argument("--settings", help="Settings file")

    return parser.parse_args(argv)


def _build_body(args: argparse.Namespace) -> Dict[str, Any]:
    """Synthesis request body from the arguments; unset options keep defaults."""
    body: Dict[str, Any] = {
        "transcript": args.text or args.text_pos,
        "voice": {"mode": "id", "id": args.voice},
    }
    if args.language:
        body["language"] = args.language
    if args.speed:
        body["speed"] = args.speed
    if args.model:
        body["model_id"] = args.model
    if args.container:
        body["output_format"] = {"container": args.container}
    return body


def _print(payload: Dict[str, Any], as_json: bool, stream=None) -> None:
    stream = stream or sys.stdout
    if as_json:
        print(json.dumps(payload, ensure_ascii=False), file=stream)
    else:
        print(payload, file=stream)


def _serve(args: argparse.Namespace, settings_path: str) -> int:
    import uvicorn

    config = load_settings(settings_path).get_gateway_config()
    uvicorn.run(
        "cartesia_gateway.main:app",
        host=args.host or config.server.host,
        port=args.port or config.server.port,
        log_config=None,
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code: 0 success, 1 provider/credential error, 2 invalid input.
    """
    args = _parse_args(argv)
    settings_path = args.settings or os.getenv("CARTESIA_GW_SETTINGS", "config/settings.yaml")
    if args.settings:
        os.environ["CARTESIA_GW_SETTINGS"] = args.settings

    if args.serve:
        return _serve(args, settings_path)

    configure_logging()
    log = get_logger("cartesia-gateway.cli")
    set_request_id(uuid4().hex[:12])

    if not (args.text or args.text_pos):
        raise SystemExit("Provide --text or a positional text.")

    config = load_settings(settings_path).get_gateway_config()
    body = _build_body(args)

    with httpx.Client(timeout=config.upstream.timeout_s, follow_redirects=True) as client:
        service = TTSService(config, client)

        try:
            request = service.prepare(body)
        except GatewayError as e:
            _print(e.to_dict(), args.json, stream=sys.stderr)
            return 2

        if args.dry_run:
            info(log, "dry_run", voice_id=args.voice, container=request["output_format"]["container"])
            _print({"ok": True, "dry_run": True, "request": request}, args.json)
            print("DRY_RUN_OK")
            return 0

        token = args.token or os.getenv("CARTESIA_API_KEY")
        try:
            result = service.synthesize(request, f"Bearer {token}" if token else None)
        except GatewayError as e:
            _print(e.to_dict(), args.json, stream=sys.stderr)
            return 1

    container = request["output_format"]["container"]
    out_path = Path(args.out or f"out{OUTPUT_EXTENSIONS.get(container, '.bin')}")
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(result.audio_bytes)

    _print(
        {
            "ok": True,
            "dry_run": False,
            "out": str(out_path),
            "bytes": len(result.audio_bytes),
            "content_type": result.content_type,
            "file_id": result.file_id,
            "attempts": result.attempts,
        },
        args.json,
    )
    print("CLI_OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
