"""Receive-side dispatch and send-side actions of the peer protocol.

``MessageProtocol`` sits between the transport and the state machine.
Inbound lines are decoded and applied to the boards and the turn-state
machine; local UI actions are validated against the current phase and
serialized into outbound messages.

Termination is asymmetric: only the peer whose fleet was destroyed sends
``WIN``. The winning peer concludes from its own tracking board (or from
receiving ``WIN``) and sends nothing further.

Both peers self-report the outcome of shots on their own board. The
protocol assumes honesty and does not try to detect cheating.
"""

from __future__ import annotations

import logging
import random
from typing import Callable, Optional

from .attacks import SpecialAttack, count_hits, resolve_shot, resolve_special
from .board import MarkResult, ShotOutcome, in_bounds
from .events import Category
from .messages import (
    Message,
    MessageParseError,
    ReadyMessage,
    ResultMessage,
    ShotMessage,
    SpecialMessage,
    SpecialResultMessage,
    WinMessage,
    decode,
    encode,
)
from .state import GamePhase, GameState, TurnStateMachine

logger = logging.getLogger(__name__)

SendFn = Callable[[str], bool]


class MessageProtocol:
    """Drive one peer's TurnStateMachine from inbound messages and local actions."""

    def __init__(self, machine: TurnStateMachine, send: SendFn) -> None:
        self.machine = machine
        self._send = send

    @property
    def state(self) -> GameState:
        return self.machine.state

    def send(self, msg: Message) -> bool:
        line = encode(msg)
        ok = self._send(line)
        if ok:
            logger.debug("sent %s", line)
        else:
            logger.warning("send failed for %s", line)
        return ok

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------
    def handle_line(self, line: str) -> None:
        """Decode one wire line and apply it; malformed lines are dropped."""
        try:
            msg = decode(line)
        except MessageParseError as exc:
            logger.debug("Dropping malformed message %r: %s", line, exc)
            return
        self.handle(msg)

    def handle(self, msg: Message) -> None:
        with self.machine.lock:
            if self.machine.is_over:
                logger.debug("Game over – discarding %r", msg)
                return
            logger.debug("recv %r in phase %s", msg, self.machine.phase.value)
            if isinstance(msg, ShotMessage):
                self._on_shot(msg)
            elif isinstance(msg, ResultMessage):
                self._on_result(msg)
            elif isinstance(msg, ReadyMessage):
                self._on_ready()
            elif isinstance(msg, WinMessage):
                self._on_win()
            elif isinstance(msg, SpecialMessage):
                self._on_special(msg)
            elif isinstance(msg, SpecialResultMessage):
                self._on_special_result(msg)

    def _on_shot(self, msg: ShotMessage) -> None:
        if not self.machine.in_play:
            logger.debug("SHOT outside play – ignored")
            return
        hits = count_hits(resolve_shot(self.state.own_board, msg.x, msg.y))
        self.send(ResultMessage(msg.x, msg.y, ShotOutcome.HIT if hits else ShotOutcome.MISS))
        self.machine.board_changed("own")
        self.machine.status("Enemy hit your ship! Their turn continues..." if hits else "Your turn – enemy missed!")
        self._after_incoming_attack(hits)

    def _on_special(self, msg: SpecialMessage) -> None:
        if not self.machine.in_play:
            logger.debug("SPECIAL outside play – ignored")
            return
        resolved = resolve_special(self.state.own_board, msg.kind, msg.x, msg.y, self.state.opponent_inventory)
        hits = count_hits(resolved)
        outcome = ShotOutcome.HIT if hits else ShotOutcome.MISS
        self.send(SpecialResultMessage(outcome, tuple(resolved)))
        self.machine.board_changed("own")
        self.machine.status(f"Enemy used {msg.kind.value} and {'hit' if hits else 'missed'}")
        self._after_incoming_attack(hits)

    def _after_incoming_attack(self, hits: int) -> None:
        self.machine.apply_turn_rule(firer_is_self=False, hits=hits)
        if self.machine.check_defeat():
            self.machine.conclude(won=False)
            self.send(WinMessage())

    def _on_result(self, msg: ResultMessage) -> None:
        if not self.machine.in_play:
            logger.debug("RESULT outside play – ignored")
            return
        if not self.state.result_pending:
            logger.debug("RESULT with no shot pending – ignored")
            return
        if self.state.tracking_board.mark_shot(msg.x, msg.y, msg.outcome) is MarkResult.ALREADY_RESOLVED:
            logger.debug("RESULT for resolved cell (%d, %d) – ignored", msg.x, msg.y)
            return
        self.machine.board_changed("tracking")
        hit = msg.outcome is ShotOutcome.HIT
        self.machine.status("You hit an enemy ship! Your turn continues..." if hit else "You missed! Enemy's turn...")
        self._after_outgoing_attack(1 if hit else 0)

    def _on_special_result(self, msg: SpecialResultMessage) -> None:
        if not self.machine.in_play:
            logger.debug("SPECIAL_RESULT outside play – ignored")
            return
        if not self.state.result_pending:
            logger.debug("SPECIAL_RESULT with no attack pending – ignored")
            return
        for x, y, outcome in msg.cells:
            self.state.tracking_board.mark_shot(x, y, outcome)
        self.machine.board_changed("tracking")
        hit = msg.outcome is ShotOutcome.HIT
        self.machine.status("Your special attack hit!" if hit else "Your special attack missed! Enemy's turn!")
        self._after_outgoing_attack(1 if hit else 0)

    def _after_outgoing_attack(self, hits: int) -> None:
        self.state.result_pending = False
        self.machine.apply_turn_rule(firer_is_self=True, hits=hits)
        if self.machine.check_victory():
            self.machine.conclude(won=True)

    def _on_ready(self) -> None:
        if self.machine.phase is not GamePhase.PLACEMENT:
            logger.debug("READY outside placement – ignored")
            return
        self.machine.status("Opponent is ready")
        self.machine.set_opponent_ready()

    def _on_win(self) -> None:
        self.machine.conclude(won=True)

    # ------------------------------------------------------------------
    # Outbound (local UI actions)
    # ------------------------------------------------------------------
    def place_ship(self, x: int, y: int) -> bool:
        with self.machine.lock:
            s = self.state
            if s.phase is not GamePhase.PLACEMENT or s.ready:
                return False
            if not s.fleet.place(s.own_board, x, y):
                return False
            self.machine.board_changed("own")
            return True

    def rotate_ship(self) -> bool:
        with self.machine.lock:
            if self.machine.phase is not GamePhase.PLACEMENT or self.state.ready:
                return False
            self.state.fleet.rotate()
            return True

    def place_remaining_randomly(self, rng: Optional[random.Random] = None) -> bool:
        with self.machine.lock:
            s = self.state
            if s.phase is not GamePhase.PLACEMENT or s.ready:
                return False
            s.fleet.place_remaining_randomly(s.own_board, rng)
            self.machine.board_changed("own")
            return True

    def set_ready(self) -> bool:
        """Announce READY once the fleet is placed; may start the game."""
        with self.machine.lock:
            s = self.state
            if s.phase is not GamePhase.PLACEMENT or s.ready or not s.fleet.all_placed():
                return False
            if not self.send(ReadyMessage()):
                return False
            return self.machine.set_ready()

    def _can_fire(self, x: int, y: int) -> bool:
        s = self.state
        if s.phase is not GamePhase.MY_TURN or s.result_pending:
            return False
        return in_bounds(x, y, s.tracking_board.size)

    def fire_normal_shot(self, x: int, y: int) -> bool:
        with self.machine.lock:
            s = self.state
            if not self._can_fire(x, y) or s.selected_special is not None:
                return False
            if s.tracking_board.cell_state(x, y).resolved:
                return False
            if not self.send(ShotMessage(x, y)):
                return False
            s.result_pending = True
            return True

    def select_special_attack(self, kind: Optional[SpecialAttack]) -> bool:
        """Arm *kind* for the next fire_special_attack(); None clears the selection."""
        with self.machine.lock:
            s = self.state
            if kind is None:
                s.selected_special = None
                self.machine.inventory_changed()
                return True
            if s.phase is not GamePhase.MY_TURN or s.result_pending or not s.inventory.has(kind):
                return False
            s.selected_special = kind
            self.machine.inventory_changed()
            return True

    def fire_special_attack(self, x: int, y: int) -> bool:
        with self.machine.lock:
            s = self.state
            kind = s.selected_special
            if kind is None or not self._can_fire(x, y) or not s.inventory.has(kind):
                return False
            if not self.send(SpecialMessage(kind, x, y)):
                return False
            s.inventory.consume(kind)
            s.selected_special = None
            s.result_pending = True
            self.machine.router.emit(Category.INVENTORY, "spent", inventory=s.inventory)
            return True
