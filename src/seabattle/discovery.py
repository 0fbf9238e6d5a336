"""LAN peer discovery over UDP broadcast.

A hosting peer announces ``SERVER:<name>`` every ``BROADCAST_INTERVAL``
seconds on the discovery port. Idle peers listen on that port and turn
each announcement into a ``ServerFound(address, name)`` callback. The
``PeerDirectory`` keeps what was heard and forgets peers that have been
silent for longer than ``DISCOVERY_STALE_AFTER``.
"""

from __future__ import annotations

import contextlib
import logging
import socket
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from . import config as _cfg

logger = logging.getLogger(__name__)

ANNOUNCE_PREFIX = "SERVER"


def format_announcement(name: str) -> bytes:
    return f"{ANNOUNCE_PREFIX}:{name}".encode("utf-8")


def parse_announcement(data: bytes) -> Optional[str]:
    """Return the announced name, 'unknown' if none was given, or None if *data* is not an announcement."""
    try:
        text = data.decode("utf-8").strip()
    except UnicodeDecodeError:
        return None
    if not text.startswith(ANNOUNCE_PREFIX):
        return None
    _, sep, name = text.partition(":")
    return name if sep and name else "unknown"


@dataclass
class ServerFound:
    address: str
    name: str
    last_seen: float


class PeerDirectory:
    """Hosts heard on the LAN, keyed by address."""

    def __init__(self, stale_after: float = _cfg.DISCOVERY_STALE_AFTER):
        self.stale_after = stale_after
        self._lock = threading.Lock()
        self._entries: Dict[str, ServerFound] = {}

    def seen(self, address: str, name: str, now: Optional[float] = None) -> ServerFound:
        now = time.monotonic() if now is None else now
        with self._lock:
            entry = ServerFound(address, name, now)
            self._entries[address] = entry
            return entry

    def prune(self, now: Optional[float] = None) -> List[ServerFound]:
        """Drop entries silent for longer than ``stale_after``; returns the dropped ones."""
        now = time.monotonic() if now is None else now
        with self._lock:
            stale = [e for e in self._entries.values() if now - e.last_seen > self.stale_after]
            for entry in stale:
                del self._entries[entry.address]
        return stale

    def entries(self, now: Optional[float] = None) -> List[ServerFound]:
        self.prune(now)
        with self._lock:
            return sorted(self._entries.values(), key=lambda e: e.address)


class Broadcaster(threading.Thread):
    """Periodically announce this peer while it waits for an opponent."""

    def __init__(
        self,
        name: str = _cfg.PLAYER_NAME,
        *,
        port: int = _cfg.DISCOVERY_PORT,
        interval: float = _cfg.BROADCAST_INTERVAL,
        targets: Optional[Iterable[str]] = None,
    ):
        super().__init__(daemon=True)
        self.payload = format_announcement(name)
        self.port = port
        self.interval = interval
        self.targets = list(targets) if targets is not None else list(_cfg.BROADCAST_ADDRS)
        self._stop_evt = threading.Event()

    def announce(self) -> int:
        """Send one announcement to every target; returns how many sends succeeded."""
        sent = 0
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            for target in self.targets:
                try:
                    sock.sendto(self.payload, (target, self.port))
                    sent += 1
                except OSError as exc:
                    logger.debug("announce to %s failed – %s", target, exc)
        return sent

    def run(self) -> None:
        logger.debug("Broadcasting presence every %.1fs on port %d", self.interval, self.port)
        while not self._stop_evt.is_set():
            self.announce()
            self._stop_evt.wait(self.interval)

    def stop(self) -> None:
        self._stop_evt.set()


class DiscoveryListener(threading.Thread):
    """Listen for announcements and report each as ServerFound(address, name)."""

    def __init__(
        self,
        on_found: Callable[[str, str], None],
        *,
        port: int = _cfg.DISCOVERY_PORT,
        bind: str = "",
        poll: float = 0.5,
    ):
        super().__init__(daemon=True)
        self.on_found = on_found
        self.port = port
        self.bind_addr = bind
        self.poll = poll
        self._stop_evt = threading.Event()
        self._sock: Optional[socket.socket] = None
        self.ready = threading.Event()

    def open(self) -> int:
        """Bind the discovery socket; returns the bound port."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((self.bind_addr, self.port))
        sock.settimeout(self.poll)
        self._sock = sock
        self.port = sock.getsockname()[1]
        return self.port

    def run(self) -> None:
        try:
            if self._sock is None:
                self.open()
        except OSError as exc:
            logger.warning("Cannot listen for peers on UDP %d – %s", self.port, exc)
            return
        finally:
            self.ready.set()
        sock = self._sock
        try:
            while not self._stop_evt.is_set():
                try:
                    data, (address, _port) = sock.recvfrom(1024)
                except socket.timeout:
                    continue
                except OSError as exc:
                    if not self._stop_evt.is_set():
                        logger.debug("discovery recv failed – %s", exc)
                    break
                name = parse_announcement(data)
                if name is None:
                    continue
                try:
                    self.on_found(address, name)
                except Exception:  # noqa: BLE001
                    logger.exception("ServerFound handler failed for %s", address)
        finally:
            with contextlib.suppress(OSError):
                sock.close()

    def stop(self) -> None:
        self._stop_evt.set()
