import pytest

from seabattle.attacks import SpecialAttack
from seabattle.cli import execute
from seabattle.coord_utils import CoordinateError, coord_to_xy, format_coord
from seabattle.state import GamePhase

from conftest import Peer


@pytest.mark.parametrize(
    "coord, expected",
    [("A1", (0, 0)), ("a1", (0, 0)), ("B7", (6, 1)), ("J10", (9, 9)), (" C3 ", (2, 2))],
)
def test_coord_to_xy(coord, expected):
    assert coord_to_xy(coord) == expected


@pytest.mark.parametrize("coord", ["", "K1", "A0", "A11", "1A", "AA1"])
def test_coord_to_xy_rejects(coord):
    with pytest.raises(CoordinateError):
        coord_to_xy(coord)


def test_format_coord_inverts_parse():
    assert format_coord(6, 1) == "B7"
    assert coord_to_xy(format_coord(9, 4)) == (9, 4)


def _peer_in_play():
    """A host peer whose opponent readiness is injected directly."""
    peer = Peer(moves_first=True)
    assert execute(peer.protocol, "auto") == "Ships placed"
    assert execute(peer.protocol, "ready") == "Waiting for opponent…"
    peer.protocol.handle_line("READY")
    assert peer.state.phase is GamePhase.MY_TURN
    return peer


def test_placement_commands():
    peer = Peer(moves_first=True)
    assert execute(peer.protocol, "rotate") == "Orientation: horizontal"
    assert execute(peer.protocol, "place A1") == "Ship placed"
    assert execute(peer.protocol, "place A1").startswith("ERR")
    assert execute(peer.protocol, "place Z9").startswith("ERR Invalid coordinate")
    assert execute(peer.protocol, "ready") == "ERR Place all ships first"
    assert peer.sent == []


def test_fire_sends_shot():
    peer = _peer_in_play()
    assert execute(peer.protocol, "fire B7") == "Fired"
    assert peer.sent[-1] == "SHOT:6:1"
    assert execute(peer.protocol, "fire C1").startswith("ERR")


def test_special_command_arms_and_fires():
    peer = _peer_in_play()
    assert execute(peer.protocol, "special area") == "Area3x3 armed"
    assert execute(peer.protocol, "fire E5") == "Fired"
    assert peer.sent[-1] == "SPECIAL:Area3x3:4:4"
    assert not peer.state.inventory.has(SpecialAttack.AREA_3X3)


def test_special_command_disarm_and_unknown():
    peer = _peer_in_play()
    assert execute(peer.protocol, "special hline") == "HorizontalLine armed"
    assert execute(peer.protocol, "special none") == "Special attack disarmed"
    assert peer.state.selected_special is None
    assert execute(peer.protocol, "special laser") == "ERR Unknown special attack: laser"


def test_unknown_and_empty_commands():
    peer = Peer(moves_first=True)
    assert execute(peer.protocol, "") == ""
    assert execute(peer.protocol, "dance") == "ERR Unknown command (type help)"
    assert execute(peer.protocol, "fire") == "ERR Unknown command (type help)"
