"""UDP announcement format, the peer directory and a loopback discovery round."""

from __future__ import annotations

import threading

import pytest

from seabattle.discovery import (
    Broadcaster,
    DiscoveryListener,
    PeerDirectory,
    format_announcement,
    parse_announcement,
)


def test_announcement_format() -> None:
    assert format_announcement("alice") == b"SERVER:alice"


@pytest.mark.parametrize(
    "data, expected",
    [
        (b"SERVER:alice", "alice"),
        (b"SERVER:alice\n", "alice"),
        (b"SERVER:", "unknown"),
        (b"SERVER", "unknown"),
        (b"CLIENT:bob", None),
        (b"\xff\xfe", None),
        (b"", None),
    ],
)
def test_parse_announcement(data: bytes, expected) -> None:
    assert parse_announcement(data) == expected


def test_directory_updates_and_prunes_stale_hosts() -> None:
    directory = PeerDirectory(stale_after=5)
    directory.seen("10.0.0.2", "alice", now=100.0)
    directory.seen("10.0.0.3", "bob", now=102.0)
    assert [e.name for e in directory.entries(now=104.0)] == ["alice", "bob"]

    # alice announces again and is kept fresh
    directory.seen("10.0.0.2", "alice", now=106.0)
    assert [e.name for e in directory.entries(now=107.5)] == ["alice"]

    dropped = directory.prune(now=120.0)
    assert [e.address for e in dropped] == ["10.0.0.2"]
    assert directory.entries(now=120.0) == []


def test_directory_keeps_latest_name_per_address() -> None:
    directory = PeerDirectory(stale_after=5)
    directory.seen("10.0.0.2", "alice", now=1.0)
    directory.seen("10.0.0.2", "alice-renamed", now=2.0)
    (entry,) = directory.entries(now=2.0)
    assert (entry.name, entry.last_seen) == ("alice-renamed", 2.0)


@pytest.mark.timeout(10)  # type: ignore[arg-type]
def test_loopback_broadcast_is_discovered() -> None:
    found = []
    seen = threading.Event()

    def on_found(address: str, name: str) -> None:
        found.append((address, name))
        seen.set()

    listener = DiscoveryListener(on_found, port=0, bind="127.0.0.1", poll=0.1)
    port = listener.open()
    listener.start()
    assert listener.ready.wait(2)
    try:
        broadcaster = Broadcaster("alice", port=port, targets=["127.0.0.1"])
        assert broadcaster.announce() == 1
        assert seen.wait(3)
    finally:
        listener.stop()
        listener.join(2)
    assert found[0] == ("127.0.0.1", "alice")


@pytest.mark.timeout(10)  # type: ignore[arg-type]
def test_broadcaster_thread_stops() -> None:
    broadcaster = Broadcaster("alice", port=9, interval=0.05, targets=["127.0.0.1"])
    broadcaster.start()
    broadcaster.stop()
    broadcaster.join(2)
    assert not broadcaster.is_alive()
