from __future__ import annotations

import argparse
import curses
import logging
import sys
from typing import Any, Dict, List, Optional, Tuple

from peer.config import PEER_CONFIG, ConfigError, load_config
from peer.core import ConnectionSession, Role
from peer.ui import ChatTUI
from shared.protocol import TransportError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="peerchat", description="A simple two-party chat over TCP.")
    parser.add_argument("-a", "--address", help="Address to connect to (client role)")
    parser.add_argument("-p", "--port", type=int, help="Port to listen on or connect to (required)")
    parser.add_argument("-s", "--server", action="store_const", const=True, help="Run as server")
    parser.add_argument("-n", "--name", help="Display name sent to the peer")
    parser.add_argument("--log-level", help="Logging level (default WARNING)")
    parser.add_argument("--log-file", help="Write logs to this file instead of stderr")
    parser.add_argument("--env-file", default=".env", help="dotenv file with PEERCHAT_* settings")
    return parser


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "address": args.address,
        "port": args.port,
        "server": args.server,
        "name": args.name,
        "log_level": args.log_level,
        "log_file": args.log_file,
    }


def _run_session(stdscr: "curses.window", config: Dict[str, Any]) -> Tuple[int, str]:
    tui = ChatTUI(stdscr)
    role = Role.SERVER if config["server"] else Role.CLIENT
    session = ConnectionSession(name=config["name"], role=role, on_render=tui.render)
    tui.render(session.snapshot())
    try:
        session.connect(config["address"], config["port"], bind_host=config["bind_host"])
    except TransportError as exc:
        logger.error("Connection setup failed: %s", exc)
        session.close(exc)
        return 1, f"Failed to connect: {exc.message}"
    session.start()
    try:
        return tui.run(session)
    finally:
        session.close()


def configure_logging(level: str, log_file: str) -> None:
    """curses owns the terminal, so records go to `log_file` or nowhere."""
    handler = logging.FileHandler(log_file) if log_file else logging.NullHandler()
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=[handler])


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = load_config(args.env_file, _overrides(args))
    except ConfigError as exc:
        print(exc, file=sys.stderr)
        return 1

    configure_logging(PEER_CONFIG["log_level"], PEER_CONFIG["log_file"])
    logger.info("Starting as %s (%s)", config["name"], "server" if config["server"] else "client")

    try:
        status, message = curses.wrapper(_run_session, config)
    except KeyboardInterrupt:
        return 130
    if message:
        print(message, file=sys.stderr)
    return status


if __name__ == "__main__":
    sys.exit(main())
