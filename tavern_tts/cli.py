"""Tavern TTS command line: test narration, check the API key, serve the API."""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from tavern_tts.controller import NarrationController, NarrationState
from tavern_tts.playback import WavFileSink
from tavern_tts.settings import SettingsStore
from tavern_tts.voices import resolve_voice_profile

DEFAULT_TEST_TEXT = "Hello, this is a test of the Gemini TTS Plus extension."


def _store(data_dir: Path) -> SettingsStore:
    return SettingsStore(data_dir / "settings.json")


def cmd_say(args: argparse.Namespace) -> int:
    text = " ".join(args.text) or DEFAULT_TEST_TEXT
    store = _store(args.data_dir)
    sink = WavFileSink(args.out or args.data_dir / "audio")
    controller = NarrationController(store.get, sink)

    voice = resolve_voice_profile(args.character, store.get()).voice_id
    print(f"Testing with voice: {voice}")
    state = asyncio.run(controller.narrate(text, args.character))
    if state is NarrationState.DONE and sink.written:
        print(f"TTS test played successfully: {sink.written[-1]}")
        return 0
    print("TTS test failed", file=sys.stderr)
    return 1


def cmd_check(args: argparse.Namespace) -> int:
    controller = NarrationController(_store(args.data_dir).get, WavFileSink(args.data_dir / "audio"))
    status = asyncio.run(controller.check_connection())
    print(("✓ " if status.ok else "✗ ") + status.message)
    return 0 if status.ok else 1


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    os.environ["DATA_DIR"] = str(args.data_dir.resolve())
    uvicorn.run("tavern_tts.api:create_app", factory=True, host=args.host, port=args.port)
    return 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv(Path.cwd() / ".env")

    parser = argparse.ArgumentParser(prog="tavern-tts", description="Gemini narration for chat characters")
    parser.add_argument("--data-dir", type=Path,
                        default=Path(os.getenv("DATA_DIR", "data")),
                        help="Settings and audio directory (default: ./data)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    say = sub.add_parser("say", help="Narrate text with a character's voice")
    say.add_argument("text", nargs="*", help="Text to narrate")
    say.add_argument("--character", default="narrator",
                     help="Character id whose voice to use (default: narrator)")
    say.add_argument("--out", type=Path, default=None, help="Directory for the audio file")
    say.set_defaults(func=cmd_say)

    check = sub.add_parser("check", help="Test the configured API key")
    check.set_defaults(func=cmd_check)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=os.getenv("HOST", "127.0.0.1"))
    serve.add_argument("--port", type=int, default=int(os.getenv("PORT", "13015")))
    serve.set_defaults(func=cmd_serve)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
