"""Command-line entry point that starts the control server."""

from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence

from .app import App
from .detector import ImageDetector
from .server import DEFAULT_PORT, Server

logger = logging.getLogger("autoaccept")


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autoaccept",
        description="Watch the screen for the match-found dialog and click accept.",
    )
    parser.add_argument("--host", default=None, help="address to listen on (default: all)")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="port to listen on")
    parser.add_argument(
        "--resources", default="resources", help="directory holding the template images"
    )
    parser.add_argument(
        "--no-browser", action="store_true", help="do not open the control page in a browser"
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the application; return the process exit status."""
    args = _parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    application = App(detector=ImageDetector(args.resources))
    server = Server(application, host=args.host, port=args.port, resource_dir=args.resources)
    server.launch_browser = not args.no_browser

    logger.info("LoL Auto Accept アプリを起動中...")
    logger.info("サーバー起動: %s", server.url)
    logger.info("最適化済み: 高速検出アルゴリズム搭載")

    try:
        server.run()
    except OSError as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())