"""Lightweight event model used to decouple the game core from any UI.

The state machine and protocol emit strongly-typed events; the router
translates them into calls on registered ``GameListener`` objects and
forwards the raw ``Event`` to plain callable subscribers (handy for
logging and tests).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


class Category(Enum):
    """High-level event categories."""

    BOARD = auto()  # own or tracking board mutated
    PHASE = auto()  # phase transition
    INVENTORY = auto()  # special attack spent or selected
    OVER = auto()  # match concluded
    STATUS = auto()  # human-readable status line
    SYSTEM = auto()  # connect / disconnect


@dataclass(slots=True)
class Event:
    """Immutable event emitted by the game core."""

    category: Category
    type: str  # finer-grained identifier, e.g. "own", "tracking", "changed"
    payload: Dict[str, Any]


class GameListener:
    """Observer interface for a UI layer. Override what you need."""

    def on_board_changed(self) -> None:
        pass

    def on_phase_changed(self, phase) -> None:
        pass

    def on_special_inventory_changed(self, inventory) -> None:
        pass

    def on_game_over(self, won: bool) -> None:
        pass

    def on_status(self, text: str) -> None:
        pass

    def on_disconnected(self) -> None:
        pass


class EventRouter:
    """Fan events out to listeners and subscribers; never lets them break the caller."""

    def __init__(self) -> None:
        self._listeners: List[GameListener] = []
        self._subs: List[Callable[[Event], None]] = []

    def add_listener(self, listener: GameListener) -> None:
        self._listeners.append(listener)

    def subscribe(self, fn: Callable[[Event], None]) -> None:
        self._subs.append(fn)

    def emit(self, category: Category, type: str, **payload: Any) -> None:
        self(Event(category, type, payload))

    def __call__(self, ev: Event) -> None:
        for fn in list(self._subs):
            try:
                fn(ev)
            except Exception:  # noqa: BLE001
                logger.exception("Event subscriber failed for %s", ev)
        for listener in list(self._listeners):
            try:
                self.dispatch(listener, ev)
            except Exception:  # noqa: BLE001
                logger.exception("Event routing failed for %s", ev)

    # ------------------------------------------------------------------
    # Internal dispatch
    # ------------------------------------------------------------------
    @staticmethod
    def dispatch(listener: GameListener, ev: Event) -> None:
        cat = ev.category
        if cat is Category.BOARD:
            listener.on_board_changed()
        elif cat is Category.PHASE:
            listener.on_phase_changed(ev.payload["phase"])
        elif cat is Category.INVENTORY:
            listener.on_special_inventory_changed(ev.payload["inventory"])
        elif cat is Category.OVER:
            listener.on_game_over(ev.payload["won"])
        elif cat is Category.STATUS:
            listener.on_status(ev.payload["text"])
        elif cat is Category.SYSTEM and ev.type == "disconnected":
            listener.on_disconnected()
        else:  # pragma: no cover – unknown category
            logger.debug("Ignoring event %s", ev)
