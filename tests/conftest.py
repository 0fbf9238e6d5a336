import logging
from collections import deque
from typing import Callable, Deque, List, Tuple

import pytest

from seabattle.events import EventRouter, GameListener
from seabattle.fleet import PlacementRules
from seabattle.protocol import MessageProtocol
from seabattle.state import TurnStateMachine

# Suppress INFO & DEBUG logs from dispatcher threads during tests
logging.basicConfig(level=logging.WARNING)

# Fleet layout used throughout the tests: all ships horizontal, one per even row.
#   FourDecker   (0,0)-(3,0)
#   ThreeDecker  (0,2)-(2,2)
#   ThreeDecker2 (0,4)-(2,4)
LAYOUT: List[Tuple[int, int]] = [(0, 0), (0, 2), (0, 4)]
SHIP_CELLS: List[Tuple[int, int]] = (
    [(x, 0) for x in range(4)] + [(x, 2) for x in range(3)] + [(x, 4) for x in range(3)]
)


class Recorder(GameListener):
    """Listener that records every notification for later assertions."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []

    def on_board_changed(self) -> None:
        self.calls.append(("board",))

    def on_phase_changed(self, phase) -> None:
        self.calls.append(("phase", phase))

    def on_special_inventory_changed(self, inventory) -> None:
        self.calls.append(("inventory", tuple(inventory.remaining())))

    def on_game_over(self, won: bool) -> None:
        self.calls.append(("over", won))

    def on_status(self, text: str) -> None:
        self.calls.append(("status", text))

    def on_disconnected(self) -> None:
        self.calls.append(("disconnected",))

    def of(self, kind: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == kind]


def place_layout(protocol: MessageProtocol, layout: List[Tuple[int, int]] = LAYOUT) -> None:
    """Place *layout* (ship origins, all horizontal) on *protocol*'s own board."""
    assert protocol.rotate_ship()  # fleet starts vertical
    for x, y in layout:
        assert protocol.place_ship(x, y)


class Peer:
    """A MessageProtocol whose outgoing lines are collected in an outbox."""

    def __init__(self, *, moves_first: bool, rules: PlacementRules = PlacementRules()) -> None:
        self.recorder = Recorder()
        router = EventRouter()
        router.add_listener(self.recorder)
        self.machine = TurnStateMachine(router, rules=rules, moves_first=moves_first)
        self.outbox: Deque[str] = deque()
        self.sent: List[str] = []
        self.link_up = True
        self.protocol = MessageProtocol(self.machine, self._send)

    def _send(self, line: str) -> bool:
        if not self.link_up:
            return False
        self.outbox.append(line)
        self.sent.append(line)
        return True

    @property
    def state(self):
        return self.protocol.state


class PeerPair:
    """Host and guest wired back to back; pump() delivers lines in order."""

    def __init__(self) -> None:
        self.host = Peer(moves_first=True)
        self.guest = Peer(moves_first=False)

    def pump(self) -> None:
        while self.host.outbox or self.guest.outbox:
            while self.host.outbox:
                self.guest.protocol.handle_line(self.host.outbox.popleft())
            while self.guest.outbox:
                self.host.protocol.handle_line(self.guest.outbox.popleft())

    def start(self, host_layout=LAYOUT, guest_layout=LAYOUT) -> "PeerPair":
        """Place the layouts on both sides and complete the READY handshake."""
        place_layout(self.host.protocol, host_layout)
        place_layout(self.guest.protocol, guest_layout)
        assert self.host.protocol.set_ready()
        assert self.guest.protocol.set_ready()
        self.pump()
        return self


@pytest.fixture
def pair_factory() -> Callable[[], PeerPair]:
    """Factory that returns a fresh, not yet started PeerPair."""

    def _factory() -> PeerPair:
        return PeerPair()

    return _factory


@pytest.fixture
def started_pair(pair_factory) -> PeerPair:
    return pair_factory().start()
