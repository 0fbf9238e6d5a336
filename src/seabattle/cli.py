"""Console front end: host or join a match and play it from the terminal."""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from typing import List, Optional

from . import config as _cfg
from .attacks import SpecialAttack
from .coord_utils import CoordinateError, coord_to_xy
from .discovery import Broadcaster, DiscoveryListener, PeerDirectory
from .events import GameListener
from .fleet import PlacementRules
from .protocol import MessageProtocol
from .session import PeerSession, split_address
from .state import GamePhase

logger = logging.getLogger(__name__)

SPECIAL_ALIASES = {
    "hline": SpecialAttack.LINE_HORIZONTAL,
    "vline": SpecialAttack.LINE_VERTICAL,
    "area": SpecialAttack.AREA_3X3,
}

HELP = """Commands:
  place <coord>                 place the next ship (e.g. place B2)
  rotate                        toggle orientation of the next ship
  auto                          place remaining ships randomly
  ready                         finish placement
  fire <coord>                  normal shot, or the armed special attack
  special <hline|vline|area>    arm a special attack (special none to disarm)
  board                         show both boards
  quit                          leave the match"""


def _print_two_grids(
    left_rows: list[str],
    right_rows: list[str],
    *,
    header_left: str,
    header_right: str,
) -> None:
    """Helper to print two 10×10 boards side-by-side with custom headers."""

    if not left_rows or not right_rows:
        return

    columns = len(left_rows[0].split())
    numeric_header = "   " + " ".join(f"{i:>2}" for i in range(1, columns + 1))
    board_width = len(numeric_header)

    print(f"\n{f'[{header_left}]'.center(board_width)}   {f'[{header_right}]'.center(board_width)}")
    print(f"{numeric_header}   {numeric_header}")

    for idx in range(len(left_rows)):
        label = chr(ord("A") + idx)
        left = " ".join(f"{c:>2}" for c in left_rows[idx].split())
        right = " ".join(f"{c:>2}" for c in right_rows[idx].split())
        print(f"{label:2} {left}   {label:2} {right}")


class ConsoleListener(GameListener):
    """Print game notifications to stdout."""

    def __init__(self) -> None:
        self.protocol: Optional[MessageProtocol] = None

    def show_boards(self) -> None:
        if self.protocol is None:
            return
        s = self.protocol.state
        _print_two_grids(
            s.own_board.rows(reveal=True),
            s.tracking_board.rows(),
            header_left="Your fleet",
            header_right="Enemy waters",
        )

    def on_board_changed(self) -> None:
        self.show_boards()

    def on_phase_changed(self, phase) -> None:
        print(f"[PHASE] {phase.value}")

    def on_special_inventory_changed(self, inventory) -> None:
        names = ", ".join(kind.value for kind in inventory.remaining()) or "none"
        print(f"[SPECIALS] available: {names}")

    def on_game_over(self, won: bool) -> None:
        print("*** VICTORY ***" if won else "*** DEFEAT ***")

    def on_status(self, text: str) -> None:
        print(f"[INFO] {text}")

    def on_disconnected(self) -> None:
        print("[INFO] Disconnected from peer")


def execute(protocol: MessageProtocol, line: str) -> str:
    """Run one console command against *protocol*; returns the reply to show."""
    parts = line.strip().split()
    if not parts:
        return ""
    verb, args = parts[0].lower(), parts[1:]
    try:
        if verb == "place" and len(args) == 1:
            x, y = coord_to_xy(args[0])
            ok = protocol.place_ship(x, y)
            return "Ship placed" if ok else "ERR Cannot place ship there"
        if verb == "rotate" and not args:
            ok = protocol.rotate_ship()
            return f"Orientation: {protocol.state.fleet.orientation.name.lower()}" if ok else "ERR Cannot rotate now"
        if verb == "auto" and not args:
            return "Ships placed" if protocol.place_remaining_randomly() else "ERR Cannot place ships now"
        if verb == "ready" and not args:
            return "Waiting for opponent…" if protocol.set_ready() else "ERR Place all ships first"
        if verb == "fire" and len(args) == 1:
            x, y = coord_to_xy(args[0])
            if protocol.state.selected_special is not None:
                ok = protocol.fire_special_attack(x, y)
            else:
                ok = protocol.fire_normal_shot(x, y)
            return "Fired" if ok else "ERR Not your turn or cell already shot"
        if verb == "special" and len(args) == 1:
            choice = args[0].lower()
            if choice == "none":
                protocol.select_special_attack(None)
                return "Special attack disarmed"
            kind = SPECIAL_ALIASES.get(choice)
            if kind is None:
                return f"ERR Unknown special attack: {args[0]}"
            ok = protocol.select_special_attack(kind)
            return f"{kind.value} armed" if ok else "ERR Special attack unavailable"
    except CoordinateError as exc:
        return f"ERR {exc}"
    return "ERR Unknown command (type help)"


def _interactive(session: PeerSession, listener: ConsoleListener) -> None:  # pragma: no cover – terminal loop
    listener.show_boards()
    print(HELP)
    for raw in sys.stdin:
        line = raw.strip()
        if not session.connected and session.machine.phase is GamePhase.PLACEMENT:
            print("Peer is gone. Exiting.")
            break
        if line.lower() in {"quit", "exit"}:
            break
        if line.lower() == "help":
            print(HELP)
        elif line.lower() == "board":
            listener.show_boards()
        elif line:
            print(execute(session.protocol, line))
    session.shutdown()


def _discover(seconds: float, port: int) -> List:
    directory = PeerDirectory()
    listener = DiscoveryListener(lambda addr, name: directory.seen(addr, name), port=port)
    listener.start()
    time.sleep(seconds)
    listener.stop()
    found = directory.entries()
    logger.info("Discovery heard %d peer(s) in %.1fs", len(found), seconds)
    return found


def main(argv: Optional[List[str]] = None) -> int:  # pragma: no cover – CLI entry
    parser = argparse.ArgumentParser(description="SeaBattle – two-player LAN naval combat")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity.")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress log output.")
    parser.add_argument("--no-touch", action="store_true", help="Forbid ships touching each other.")
    sub = parser.add_subparsers(dest="mode", required=True)

    host_p = sub.add_parser("host", help="Wait for a peer to connect")
    host_p.add_argument("--bind", default=_cfg.DEFAULT_BIND)
    host_p.add_argument("--port", type=int, default=_cfg.DEFAULT_PORT)
    host_p.add_argument("--name", default=_cfg.PLAYER_NAME, help="Name announced on the LAN")
    host_p.add_argument("--no-broadcast", action="store_true", help="Do not announce presence")

    join_p = sub.add_parser("join", help="Connect to a hosting peer")
    join_p.add_argument("address", nargs="?", help="host[:port]; discovered automatically if omitted")
    join_p.add_argument("--port", type=int, default=_cfg.DEFAULT_PORT)
    join_p.add_argument("--wait", type=float, default=_cfg.BROADCAST_INTERVAL * 2, help="Discovery time in seconds")

    disc_p = sub.add_parser("discover", help="List peers announcing on the LAN")
    disc_p.add_argument("--wait", type=float, default=_cfg.BROADCAST_INTERVAL * 2)

    args = parser.parse_args(argv)

    if args.debug:
        os.environ["SEABATTLE_DEBUG"] = "1"
    if args.quiet:
        level = logging.ERROR
    elif args.debug or _cfg.DEBUG:
        level = logging.DEBUG
    elif args.verbose >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    if args.mode == "discover":
        found = _discover(args.wait, _cfg.DISCOVERY_PORT)
        if not found:
            print("No peers found.")
        for entry in found:
            print(f"{entry.address}\t{entry.name}")
        return 0

    rules = PlacementRules(no_touching=True) if args.no_touch else PlacementRules.from_config()
    listener = ConsoleListener()
    session = PeerSession(listener, rules=rules)
    listener.protocol = session.protocol

    if args.mode == "host":
        if session.listen(args.bind, args.port) is None:
            print(f"Cannot listen on port {args.port}.")
            return 1
        broadcaster = None
        if not args.no_broadcast:
            broadcaster = Broadcaster(args.name)
            broadcaster.start()
        print(f"Waiting for a peer on port {args.port}… (Ctrl-C to stop)")
        try:
            ok = session.accept()
        except KeyboardInterrupt:
            ok = False
        finally:
            if broadcaster is not None:
                broadcaster.stop()
        if not ok:
            session.shutdown()
            return 1
    else:
        address = args.address
        if not address:
            found = _discover(args.wait, _cfg.DISCOVERY_PORT)
            if not found:
                print("No peers found; start one with `seabattle host`.")
                return 1
            address = found[0].address
            print(f"Found {found[0].name} at {address}")
        host, port = split_address(address, args.port)
        if not session.connect(host, port):
            print(f"Could not connect to {host}:{port}.")
            return 1

    try:
        _interactive(session, listener)
    except KeyboardInterrupt:
        session.shutdown()
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
