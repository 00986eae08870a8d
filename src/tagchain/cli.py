"""Tag Chain command line.

Usage:
    tagchain serve --port 3000 --static-dir public
    tagchain play --difficulty 2000
    tagchain best

Logs are written to ~/.tagchain/debug.log.
"""

# Load .env file before anything else
def _load_dotenv():
    """Load environment variables from .env file if it exists."""
    import os
    from pathlib import Path

    env_path = Path(".env")
    if env_path.exists():
        with open(env_path) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, _, value = line.partition("=")
                    os.environ.setdefault(key.strip(), value.strip())

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from tagchain.game import DIFFICULTIES, difficulty_label
from tagchain.log_utils import LOG_FILE, configure_logging, tail
from tagchain.scores import BestScores
from tagchain.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    """Run the proxy (and optionally the static front end) locally."""
    from tagchain.proxy import create_app

    host = args.host or settings.get("host")
    port = args.port or int(settings.get("port"))
    static_dir = Path(args.static_dir) if args.static_dir else None
    if static_dir is not None and not static_dir.is_dir():
        print(f"Static directory not found: {static_dir}", file=sys.stderr)
        return 1

    app = create_app(settings=settings, static_dir=static_dir)
    logger.info(f"Tag Chain proxy running at http://{host}:{port}")
    app.run(host=host, port=port, debug=args.debug)
    return 0


def cmd_play(args: argparse.Namespace, settings: Settings) -> int:
    """Play in the terminal against a running proxy."""
    from tagchain.tui import run_tui

    api_url = args.api_url or settings.get("api_url")
    threshold = args.difficulty or int(settings.get("difficulty"))
    if threshold not in DIFFICULTIES:
        logger.warning(f"Unknown difficulty {threshold} in settings, using Normal")
        threshold = 500
    run_tui(settings, api_url, threshold, starter=args.starter)
    return 0


def cmd_best(args: argparse.Namespace, settings: Settings) -> int:
    """Print personal bests per difficulty."""
    bests = BestScores().all()
    for threshold in DIFFICULTIES:
        best = bests.get(threshold)
        print(f"{difficulty_label(threshold):<10} {threshold:>5}+  {best if best else '-'}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tagchain",
        description="Tag Chain - chain AO3 freeform tags that co-occur",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tagchain serve
  tagchain serve --port 8080 --static-dir public
  tagchain play --difficulty 2000
  tagchain play --api-url https://tagchain.example.com --starter "Slow Burn"

Environment variables:
  TAGCHAIN_API_URL   Proxy the game talks to
  TAGCHAIN_HOST      Address `serve` binds to
  TAGCHAIN_PORT      Port `serve` listens on
  TAGCHAIN_AO3_URL   AO3 base URL the proxy forwards to

Debug logs are written to ~/.tagchain/debug.log
        """
    )
    parser.add_argument(
        "--show-log",
        action="store_true",
        help="Show the debug log file path and exit"
    )

    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the AO3 proxy locally")
    serve.add_argument("--host", help="Bind address (default from settings)")
    serve.add_argument("--port", "-p", type=int, help="Port (default from settings)")
    serve.add_argument("--static-dir", help="Directory with a front end to serve at /")
    serve.add_argument("--debug", action="store_true", help="Enable Flask debug mode")
    serve.set_defaults(func=cmd_serve)

    play = sub.add_parser("play", help="Play in the terminal")
    play.add_argument("--api-url", help="Proxy URL (default from settings)")
    play.add_argument(
        "--difficulty", "-d",
        type=int,
        choices=list(DIFFICULTIES),
        help="Minimum co-occurrence count per link"
    )
    play.add_argument("--starter", "-s", help="Skip the start screen and begin with this tag")
    play.set_defaults(func=cmd_play)

    best = sub.add_parser("best", help="Show personal bests")
    best.set_defaults(func=cmd_best)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the tagchain command."""
    _load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.show_log:
        print(f"Debug log: {LOG_FILE}")
        if LOG_FILE.exists():
            print(f"Size: {LOG_FILE.stat().st_size:,} bytes")
            print("\nLast 20 lines:")
            for line in tail(LOG_FILE):
                print(line)
        return 0

    if not args.command:
        parser.print_help()
        return 1

    # The TUI owns the terminal, so keep log lines off it
    configure_logging(console=args.command != "play")
    return args.func(args, get_settings())


if __name__ == "__main__":
    sys.exit(main())
