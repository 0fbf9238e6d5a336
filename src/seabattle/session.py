"""Peer-to-peer match channel over a single TCP connection.

Either peer can host (listen and accept one connection) or join (connect
to a host). Once connected the roles are symmetric, except that the
accepting peer moves first.

Threads per connection:
  - a reader thread performs blocking ``readline()`` calls and queues each
    line tagged with the state-machine generation it was read under;
  - a single dispatcher thread drains the queue strictly in arrival order
    and feeds the protocol.

Resetting the state machine bumps its generation, so lines that were
still in flight for a torn-down connection are dropped instead of
mutating the next match.
"""

from __future__ import annotations

import contextlib
import logging
import queue
import socket
import threading
from typing import Optional, Tuple

from . import config as _cfg
from .events import Category, EventRouter, GameListener
from .fleet import PlacementRules
from .protocol import MessageProtocol
from .state import TurnStateMachine

logger = logging.getLogger(__name__)

_STOP = object()


class PeerSession:
    """Own the socket, the reader/dispatcher threads and the game core of one peer."""

    def __init__(self, listener: Optional[GameListener] = None, *, rules: Optional[PlacementRules] = None):
        self.router = EventRouter()
        if listener is not None:
            self.router.add_listener(listener)
        self.machine = TurnStateMachine(self.router, rules=rules)
        self.protocol = MessageProtocol(self.machine, self.send_line)

        self._srv: Optional[socket.socket] = None
        self._sock: Optional[socket.socket] = None
        self._wfile = None
        self._send_lock = threading.Lock()
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._dispatcher: Optional[threading.Thread] = None
        self.peer_address: Optional[str] = None

    @property
    def connected(self) -> bool:
        return self._sock is not None

    # -------------------- connection setup --------------------
    def listen(self, bind: str = _cfg.DEFAULT_BIND, port: int = _cfg.DEFAULT_PORT) -> Optional[int]:
        """Bind the match port; returns the bound port or None on failure."""
        try:
            srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            srv.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            srv.bind((bind, port))
            srv.listen(1)
        except OSError as exc:
            logger.warning("Cannot listen on %s:%d – %s", bind, port, exc)
            return None
        self._srv = srv
        bound = srv.getsockname()[1]
        logger.info("Waiting for a peer on %s:%d", bind, bound)
        return bound

    def accept(self, timeout: Optional[float] = None) -> bool:
        """Accept one peer on the listening socket; the accepting side moves first."""
        srv = self._srv
        if srv is None:
            return False
        try:
            srv.settimeout(timeout)
            conn, addr = srv.accept()
        except OSError as exc:
            logger.warning("No peer accepted – %s", exc)
            return False
        finally:
            self._srv = None
            with contextlib.suppress(OSError):
                srv.close()
        self.attach(conn, moves_first=True, address=addr[0])
        return True

    def host(
        self,
        bind: str = _cfg.DEFAULT_BIND,
        port: int = _cfg.DEFAULT_PORT,
        *,
        timeout: Optional[float] = None,
    ) -> bool:
        return self.listen(bind, port) is not None and self.accept(timeout)

    def connect(self, address: str, port: int = _cfg.DEFAULT_PORT, *, timeout: float = _cfg.CONNECT_TIMEOUT) -> bool:
        """Connect to a hosting peer; returns False if the connection failed."""
        address = address.strip()
        if not address:
            return False
        try:
            sock = socket.create_connection((address, port), timeout=timeout)
        except OSError as exc:
            logger.warning("Cannot connect to %s:%d – %s", address, port, exc)
            return False
        self.attach(sock, moves_first=False, address=address)
        return True

    def attach(self, sock: socket.socket, *, moves_first: bool, address: Optional[str] = None) -> None:
        """Start a fresh match over an already-connected socket."""
        with self.machine.lock:
            self._close_socket()
            sock.settimeout(None)
            with contextlib.suppress(OSError):
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
            self._sock = sock
            self._wfile = sock.makefile("w", encoding="utf-8", newline="\n")
            self.peer_address = address
            self.machine.reset(moves_first=moves_first)
            generation = self.machine.generation
            rfile = sock.makefile("r", encoding="utf-8", errors="replace", newline="\n")
        threading.Thread(target=self._read_loop, args=(rfile, generation), daemon=True).start()
        self._ensure_dispatcher()
        self.router.emit(Category.SYSTEM, "connected", address=address, moves_first=moves_first)
        logger.info("Connected to %s (%s)", address or "peer", "you move first" if moves_first else "peer moves first")

    # -------------------- I/O --------------------
    def send_line(self, line: str) -> bool:
        """Write one frame; returns False if there is no live connection."""
        with self._send_lock:
            if self._wfile is None:
                return False
            try:
                self._wfile.write(line + "\n")
                self._wfile.flush()
                return True
            except (OSError, ValueError) as exc:
                logger.debug("send_line() failed – %s", exc)
                # Let the reader see EOF so the dispatcher tears the match down in order.
                if self._sock is not None:
                    with contextlib.suppress(OSError):
                        self._sock.shutdown(socket.SHUT_RDWR)
                return False

    def _read_loop(self, rfile, generation: int) -> None:
        try:
            for line in rfile:
                self._queue.put((generation, line.rstrip("\r\n")))
        except (OSError, ValueError) as exc:
            logger.debug("reader stopped – %s", exc)
        finally:
            with contextlib.suppress(OSError):
                rfile.close()
            self._queue.put((generation, None))

    def _ensure_dispatcher(self) -> None:
        if self._dispatcher is None or not self._dispatcher.is_alive():
            self._dispatcher = threading.Thread(target=self._dispatch_loop, daemon=True)
            self._dispatcher.start()

    def _dispatch_loop(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            if isinstance(item, threading.Event):
                item.set()
                continue
            generation, line = item  # type: ignore[misc]
            with self.machine.lock:
                if generation != self.machine.generation:
                    logger.debug("Dropping stale message %r (generation %d)", line, generation)
                    continue
                if line is None:
                    self._on_connection_lost()
                    continue
                try:
                    self.protocol.handle_line(line)
                except Exception:  # noqa: BLE001
                    logger.exception("Failed to handle %r", line)

    def drain(self, timeout: float = 2.0) -> bool:
        """Block until every queued line so far has been dispatched (test helper)."""
        done = threading.Event()
        self._queue.put(done)
        return done.wait(timeout)

    # -------------------- teardown --------------------
    def _on_connection_lost(self) -> None:
        logger.info("Connection to %s lost", self.peer_address or "peer")
        self.close()

    def _close_socket(self) -> bool:
        sock, self._sock = self._sock, None
        with self._send_lock:
            wfile, self._wfile = self._wfile, None
        if sock is None:
            return False
        if wfile is not None:
            with contextlib.suppress(OSError, ValueError):
                wfile.close()
        with contextlib.suppress(OSError):
            sock.shutdown(socket.SHUT_RDWR)
        with contextlib.suppress(OSError):
            sock.close()
        return True

    def close(self) -> None:
        """Disconnect and reset the match; in-flight lines become stale."""
        with self.machine.lock:
            had_connection = self._close_socket()
            if self._srv is not None:
                with contextlib.suppress(OSError):
                    self._srv.close()
                self._srv = None
            self.machine.reset()
        if had_connection:
            self.router.emit(Category.SYSTEM, "disconnected")

    def shutdown(self) -> None:
        """Close the connection and stop the dispatcher thread."""
        self.close()
        self._queue.put(_STOP)
        if self._dispatcher is not None and self._dispatcher is not threading.current_thread():
            self._dispatcher.join(timeout=2.0)


def split_address(text: str, default_port: int = _cfg.DEFAULT_PORT) -> Tuple[str, int]:
    """'host[:port]' -> (host, port)."""
    host, _, port = text.strip().partition(":")
    return host, int(port) if port else default_port
