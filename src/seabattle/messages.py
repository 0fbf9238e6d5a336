"""Wire messages exchanged between the two peers.

One message per line, UTF-8, fields separated by ``:``::

    SHOT:x:y                    sender fires a normal shot at (x, y)
    RESULT:x:y:HIT|MISS         outcome of a previously received SHOT
    READY                       sender has finished placing ships
    WIN                         sender announces its own defeat
    SPECIAL:type:x:y            type in HorizontalLine, VerticalLine, Area3x3
    SPECIAL_RESULT:HIT|MISS     whether the special attack landed a hit,
        [:x,y,H;x,y,M;...]      optionally followed by the cells it resolved

Coordinates are single digits 0-9. ``decode`` raises MessageParseError for
anything else; the caller drops such lines.

The cell list on SPECIAL_RESULT is only compatible one way: a bare
``SPECIAL_RESULT:HIT|MISS`` from the other peer is accepted, but this side
sends the cell list whenever the attack resolved any cell, so a peer that
only understands the bare form would drop it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Tuple, Union

from .attacks import Resolved, SpecialAttack
from .board import ShotOutcome

_DIGIT_RE = re.compile(r"^[0-9]$")
_CELL_FLAGS = {"H": ShotOutcome.HIT, "M": ShotOutcome.MISS}


class MessageParseError(Exception):
    """Raised when a line cannot be parsed as a valid message."""


@dataclass(frozen=True)
class ShotMessage:
    x: int
    y: int


@dataclass(frozen=True)
class ResultMessage:
    x: int
    y: int
    outcome: ShotOutcome


@dataclass(frozen=True)
class ReadyMessage:
    pass


@dataclass(frozen=True)
class WinMessage:
    pass


@dataclass(frozen=True)
class SpecialMessage:
    kind: SpecialAttack
    x: int
    y: int


@dataclass(frozen=True)
class SpecialResultMessage:
    outcome: ShotOutcome
    cells: Tuple[Resolved, ...] = ()


Message = Union[ShotMessage, ResultMessage, ReadyMessage, WinMessage, SpecialMessage, SpecialResultMessage]


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def _encode_cells(cells: Tuple[Resolved, ...]) -> str:
    return ";".join(f"{x},{y},{outcome.value[0]}" for x, y, outcome in cells)


def encode(msg: Message) -> str:
    """Serialize *msg* to a single line (without the trailing newline)."""
    if isinstance(msg, ShotMessage):
        return f"SHOT:{msg.x}:{msg.y}"
    if isinstance(msg, ResultMessage):
        return f"RESULT:{msg.x}:{msg.y}:{msg.outcome.value}"
    if isinstance(msg, ReadyMessage):
        return "READY"
    if isinstance(msg, WinMessage):
        return "WIN"
    if isinstance(msg, SpecialMessage):
        return f"SPECIAL:{msg.kind.value}:{msg.x}:{msg.y}"
    if isinstance(msg, SpecialResultMessage):
        if msg.cells:
            return f"SPECIAL_RESULT:{msg.outcome.value}:{_encode_cells(msg.cells)}"
        return f"SPECIAL_RESULT:{msg.outcome.value}"
    raise TypeError(f"Cannot encode {msg!r}")


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def _coord(text: str) -> int:
    if not _DIGIT_RE.match(text):
        raise MessageParseError(f"Invalid coordinate: {text!r}")
    return int(text)


def _outcome(text: str) -> ShotOutcome:
    try:
        return ShotOutcome(text)
    except ValueError:
        raise MessageParseError(f"Invalid outcome: {text!r}") from None


def _decode_cells(text: str) -> Tuple[Resolved, ...]:
    cells = []
    for item in text.split(";"):
        parts = item.split(",")
        if len(parts) != 3 or parts[2] not in _CELL_FLAGS:
            raise MessageParseError(f"Invalid cell entry: {item!r}")
        cells.append((_coord(parts[0]), _coord(parts[1]), _CELL_FLAGS[parts[2]]))
    return tuple(cells)


def decode(line: str) -> Message:
    if line is None:
        raise MessageParseError("No message to parse")
    raw = line.strip()
    if not raw:
        raise MessageParseError("Empty message")
    parts = raw.split(":")
    verb = parts[0]
    if verb == "SHOT" and len(parts) == 3:
        return ShotMessage(_coord(parts[1]), _coord(parts[2]))
    elif verb == "RESULT" and len(parts) == 4:
        return ResultMessage(_coord(parts[1]), _coord(parts[2]), _outcome(parts[3]))
    elif verb == "READY" and len(parts) == 1:
        return ReadyMessage()
    elif verb == "WIN" and len(parts) == 1:
        return WinMessage()
    elif verb == "SPECIAL" and len(parts) == 4:
        try:
            kind = SpecialAttack(parts[1])
        except ValueError:
            raise MessageParseError(f"Unknown special attack: {parts[1]!r}") from None
        return SpecialMessage(kind, _coord(parts[2]), _coord(parts[3]))
    elif verb == "SPECIAL_RESULT" and len(parts) in (2, 3):
        cells = _decode_cells(parts[2]) if len(parts) == 3 else ()
        return SpecialResultMessage(_outcome(parts[1]), cells)
    else:
        raise MessageParseError(f"Unknown message: {raw}")
