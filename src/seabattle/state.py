"""Turn-state machine local to one peer.

The two peers never share a phase variable: each derives its own phase
from the messages it receives plus its own actions. ``TurnStateMachine``
owns the explicit ``GameState`` and is the only place that changes phase.

    PLACEMENT --(both ready)--> MY_TURN <--> OPPONENT_TURN --(fleet gone)--> OVER

Who moves first once both peers are ready is fixed by ``moves_first``:
the peer that accepted the connection starts, the connecting peer waits.
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass, field
from typing import Optional

from . import config as _cfg
from .attacks import SpecialAttack, SpecialInventory
from .board import Board
from .events import Category, EventRouter
from .fleet import Fleet, PlacementRules

logger = logging.getLogger(__name__)


class GamePhase(enum.Enum):
    PLACEMENT = "placement"
    MY_TURN = "my_turn"
    OPPONENT_TURN = "opponent_turn"
    OVER = "over"


@dataclass
class GameState:
    """Everything one peer knows about the current match."""

    fleet: Fleet
    own_board: Board = field(default_factory=Board)
    tracking_board: Board = field(default_factory=Board)
    inventory: SpecialInventory = field(default_factory=SpecialInventory)
    # Mirror of the opponent's specials so an inbound repeat resolves to nothing.
    opponent_inventory: SpecialInventory = field(default_factory=SpecialInventory)
    phase: GamePhase = GamePhase.PLACEMENT
    ready: bool = False
    opponent_ready: bool = False
    moves_first: bool = False
    selected_special: Optional[SpecialAttack] = None
    result_pending: bool = False
    won: Optional[bool] = None
    generation: int = 0


class TurnStateMachine:
    """Sequencing authority for one peer; all mutation happens under ``lock``."""

    def __init__(
        self,
        router: Optional[EventRouter] = None,
        *,
        rules: Optional[PlacementRules] = None,
        moves_first: bool = False,
    ) -> None:
        self.router = router if router is not None else EventRouter()
        self.rules = rules if rules is not None else PlacementRules.from_config()
        self.lock = threading.RLock()
        self.state = GameState(fleet=Fleet(self.rules), moves_first=moves_first)

    # -------------------- queries --------------------
    @property
    def phase(self) -> GamePhase:
        return self.state.phase

    @property
    def generation(self) -> int:
        return self.state.generation

    @property
    def is_over(self) -> bool:
        return self.state.phase is GamePhase.OVER

    @property
    def in_play(self) -> bool:
        return self.state.phase in (GamePhase.MY_TURN, GamePhase.OPPONENT_TURN)

    def check_defeat(self) -> bool:
        """True once no Ship cell is left on the own board."""
        return self.state.fleet.all_placed() and self.state.own_board.ship_cell_count() == 0

    def check_victory(self) -> bool:
        """True once every opponent ship cell is recorded as Hit on the tracking board."""
        return self.state.tracking_board.hit_count() >= _cfg.FLEET_CELLS

    # -------------------- notifications --------------------
    def board_changed(self, which: str) -> None:
        self.router.emit(Category.BOARD, which)

    def inventory_changed(self) -> None:
        self.router.emit(Category.INVENTORY, "changed", inventory=self.state.inventory)

    def status(self, text: str) -> None:
        logger.info(text)
        self.router.emit(Category.STATUS, "line", text=text)

    # -------------------- lifecycle --------------------
    def reset(self, *, moves_first: Optional[bool] = None) -> None:
        """Discard the match and start over in PLACEMENT with a new generation."""
        with self.lock:
            old = self.state
            self.state = GameState(
                fleet=Fleet(self.rules),
                moves_first=old.moves_first if moves_first is None else moves_first,
                generation=old.generation + 1,
            )
            logger.debug("reset – generation %d -> %d", old.generation, self.state.generation)
            self.board_changed("reset")
            self.inventory_changed()
            self.router.emit(Category.PHASE, "changed", phase=self.state.phase)

    def set_moves_first(self, moves_first: bool) -> None:
        with self.lock:
            self.state.moves_first = moves_first

    def _set_phase(self, phase: GamePhase) -> None:
        if self.state.phase is phase:
            return
        logger.debug("phase %s -> %s", self.state.phase.value, phase.value)
        self.state.phase = phase
        self.router.emit(Category.PHASE, "changed", phase=phase)

    # -------------------- readiness handshake --------------------
    def set_ready(self) -> bool:
        """Record local readiness; only legal in PLACEMENT with the fleet complete."""
        with self.lock:
            s = self.state
            if s.phase is not GamePhase.PLACEMENT or s.ready or not s.fleet.all_placed():
                return False
            s.ready = True
            self._maybe_start()
            return True

    def set_opponent_ready(self) -> bool:
        """Record the opponent's readiness; returns True if this started the game."""
        with self.lock:
            s = self.state
            if s.phase is not GamePhase.PLACEMENT:
                return False
            s.opponent_ready = True
            return self._maybe_start()

    def _maybe_start(self) -> bool:
        s = self.state
        if not (s.ready and s.opponent_ready):
            return False
        self.start()
        return True

    def start(self) -> None:
        with self.lock:
            first = GamePhase.MY_TURN if self.state.moves_first else GamePhase.OPPONENT_TURN
            self._set_phase(first)
            self.status("Game started – your turn" if self.state.moves_first else "Game started – opponent moves first")

    # -------------------- turn rule --------------------
    def apply_turn_rule(self, firer_is_self: bool, hits: int) -> None:
        """Hit-continues / miss-passes: the firer keeps the turn iff *hits* > 0."""
        with self.lock:
            if not self.in_play:
                return
            self_has_turn = firer_is_self if hits > 0 else not firer_is_self
            self._set_phase(GamePhase.MY_TURN if self_has_turn else GamePhase.OPPONENT_TURN)

    def conclude(self, won: bool) -> None:
        """Enter the terminal OVER phase; later calls are ignored."""
        with self.lock:
            if self.is_over:
                return
            self.state.won = won
            self.state.selected_special = None
            self.state.result_pending = False
            self._set_phase(GamePhase.OVER)
            self.status("You won!" if won else "You lost.")
            self.router.emit(Category.OVER, "concluded", won=won)
