#!/usr/bin/env python3
"""
Speak — CLI entry point.

Provisions a local piper text-to-speech engine and voice, then speaks
messages through the system audio player.

Usage::

    python speak.py setup
    python speak.py setup --voice amy
    python speak.py say "The build finished without errors."
    python speak.py list-voices
    python speak.py change-voice lessac-high
    python speak.py change-voice 3 -v 2

Verbosity levels::

    -v 0   Quiet — warnings and errors only.
    -v 1   Normal — provisioning steps and download progress (default).
    -v 2   Debug — redirects, subprocess commands, all internal decisions.
"""

import argparse
import asyncio
import logging
import sys
from typing import Callable, List

from speech.errors import SpeakError, error_kind_of
from speech.pipeline import SpeakConfig, SpeakService
from speech.voices.resolver import resolve_voice

logger = logging.getLogger("speech")

# Mapping from --verbose integer to logging level
_VERBOSITY_MAP = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}

_FAILURE_PREFIX = "Failed"


# ------------------------------------------------------------------
# Argument parsing
# ------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Construct the argument parser with all sub-commands."""
    p = argparse.ArgumentParser(
        description="Speak messages aloud with a locally provisioned piper TTS engine.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  python speak.py setup --voice amy\n"
            '  python speak.py say "Tests are green."\n'
            "  python speak.py list-voices\n"
            "  python speak.py change-voice 3\n"
        ),
    )

    # -- Shared options ------------------------------------------------
    p.add_argument(
        "--config-dir",
        default=None,
        metavar="DIR",
        help="Config root (default: $SPEAK_CONFIG_DIR or ~/.config/speak-mcp)",
    )
    p.add_argument(
        "-v",
        "--verbose",
        type=int,
        choices=[0, 1, 2],
        default=1,
        help="Verbosity: 0=quiet, 1=normal (default), 2=debug",
    )
    p.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable tqdm download progress bars",
    )

    sub = p.add_subparsers(dest="command", required=True)

    # -- setup ---------------------------------------------------------
    setup = sub.add_parser("setup", help="Install piper and select a voice")
    setup.add_argument(
        "--voice",
        default=None,
        help="Voice to select instead of prompting; switches the saved voice "
        "if one exists (key, short name, fragment, or catalog number)",
    )

    # -- say -----------------------------------------------------------
    say = sub.add_parser("say", help="Speak a message")
    say.add_argument("message", help="Text to speak")
    say.add_argument(
        "--type",
        dest="message_type",
        default="info",
        choices=["question", "update", "info", "warning"],
        help="Message type (reserved for future prosody control)",
    )

    # -- list-voices ---------------------------------------------------
    sub.add_parser("list-voices", help="List available and downloaded voices")

    # -- change-voice --------------------------------------------------
    change = sub.add_parser("change-voice", help="Switch to another voice")
    change.add_argument(
        "voice",
        help="Voice key (en_US-amy-high), short name (amy-high), "
        "fragment (amy), or 1-based position in the full catalog. "
        "list-voices numbers only voices not yet downloaded, so its "
        "numbers can differ once some voices are cached",
    )

    return p


# ------------------------------------------------------------------
# Logging setup
# ------------------------------------------------------------------


def _configure_logging(verbosity: int) -> None:
    """
    Set up the root ``speech`` logger on stderr.

    stdout is reserved for command results, so every log line and
    progress bar goes to stderr.
    """
    level = _VERBOSITY_MAP.get(verbosity, logging.INFO)

    if level <= logging.DEBUG:
        fmt = "%(asctime)s %(name)s %(levelname)s: %(message)s"
        datefmt = "%H:%M:%S"
    elif level <= logging.INFO:
        fmt = "%(message)s"
        datefmt = None
    else:
        fmt = "%(levelname)s: %(message)s"
        datefmt = None

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger("speech")
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # Suppress noisy third-party loggers regardless of verbosity
    for name in ("aiohttp", "asyncio"):
        logging.getLogger(name).setLevel(logging.WARNING)


# ------------------------------------------------------------------
# Sub-commands
# ------------------------------------------------------------------


async def _run(
    args: argparse.Namespace,
    service_factory: Callable[..., SpeakService] = SpeakService,
) -> str:
    """Provision, then run the selected sub-command; returns its output."""
    config = SpeakConfig.from_env(
        config_dir=args.config_dir,
        disable_tqdm=args.no_progress or args.verbose == 0,
    )

    setup_voice = args.voice if args.command == "setup" else None
    chosen: List[str] = []

    def select(voices):
        voice = resolve_voice(setup_voice, voices, locale=config.locale)
        chosen.append(voice.key)
        return voice

    async with service_factory(config, select=select if setup_voice else None) as service:
        await service.provision()

        if args.command == "setup":
            # A saved voice skips selection; apply --voice as a switch instead
            if setup_voice and not chosen:
                return await service.select_voice(setup_voice)
            voice = service.state.selected_voice
            return f"Ready: {voice.name} ({voice.quality} quality)"
        if args.command == "say":
            logger.debug("Message type: %s", args.message_type)
            return await service.synthesize_and_play(args.message)
        if args.command == "list-voices":
            return await service.list_catalog_report()
        if args.command == "change-voice":
            return await service.select_voice(args.voice)

    raise ValueError(f"Unknown command: {args.command}")


# ------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------


def main():
    """Parse arguments, configure logging, and run the command."""
    parser = _build_parser()
    args = parser.parse_args()

    # Logging must be configured before any logger calls
    _configure_logging(args.verbose)

    try:
        output = asyncio.run(_run(args))
    except SpeakError as e:
        logger.error("Setup failed [%s]: %s", error_kind_of(e), e)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(130)

    print(output.rstrip("\n"))
    if output.startswith(_FAILURE_PREFIX):
        sys.exit(1)


if __name__ == "__main__":
    main()
