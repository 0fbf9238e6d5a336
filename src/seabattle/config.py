"""Central configuration for runtime-tunable parameters.

All constants can be overridden via environment variables so that two
peers on the same machine (or the automated test-suite) can pick
non-default ports and timings without touching code.
"""

from __future__ import annotations

import os

# ===========================================================================
# Network Defaults
# ===========================================================================
# SEABATTLE_BIND: Address the hosting peer listens on.
#   Defaults to "0.0.0.0" (all interfaces) so LAN peers can connect.
DEFAULT_BIND: str = os.getenv("SEABATTLE_BIND", "0.0.0.0")

# SEABATTLE_PORT: TCP port carrying the match channel.
#   Defaults to 8080.
#   Example: export SEABATTLE_PORT=9080
DEFAULT_PORT: int = int(os.getenv("SEABATTLE_PORT", "8080"))

# SEABATTLE_CONNECT_TIMEOUT: Seconds to wait for a TCP connect before giving up.
#   Defaults to 5 seconds.
CONNECT_TIMEOUT: float = float(os.getenv("SEABATTLE_CONNECT_TIMEOUT", "5"))


# ===========================================================================
# Peer Discovery
# ===========================================================================
# SEABATTLE_DISCOVERY_PORT: UDP port used for presence broadcasts.
#   Defaults to 8081.
DISCOVERY_PORT: int = int(os.getenv("SEABATTLE_DISCOVERY_PORT", "8081"))

# SEABATTLE_BROADCAST_INTERVAL: Seconds between two presence announcements.
#   Defaults to 2 seconds.
BROADCAST_INTERVAL: float = float(os.getenv("SEABATTLE_BROADCAST_INTERVAL", "2"))

# SEABATTLE_DISCOVERY_STALE: Seconds of silence after which a discovered peer is pruned.
#   Defaults to 5 seconds.
DISCOVERY_STALE_AFTER: float = float(os.getenv("SEABATTLE_DISCOVERY_STALE", "5"))

# SEABATTLE_BROADCAST_ADDRS: Comma-separated list of destinations for announcements.
#   Defaults to the limited broadcast address only.
#   Example: export SEABATTLE_BROADCAST_ADDRS="192.168.1.255,255.255.255.255"
BROADCAST_ADDRS: list[str] = [
    addr.strip() for addr in os.getenv("SEABATTLE_BROADCAST_ADDRS", "255.255.255.255").split(",") if addr.strip()
]

# SEABATTLE_NAME: Name announced to other peers while hosting.
#   Defaults to "user".
PLAYER_NAME: str = os.getenv("SEABATTLE_NAME", "user")


# ===========================================================================
# Game Constants
# ===========================================================================
# The board and fleet are part of the protocol contract and are not overridable.
BOARD_SIZE: int = 10

# Fleet in placement order: list of (name, size) tuples.
SHIPS = [
    ("FourDecker", 4),
    ("ThreeDecker", 3),
    ("ThreeDecker2", 3),
]

# Number of ship cells; also the number of hits that wins the match.
FLEET_CELLS: int = sum(size for _, size in SHIPS)

# SEABATTLE_NO_TOUCH: If "1", ships may not be placed in the 8-neighbourhood of another ship.
#   Defaults to "0" (ships may touch).
NO_TOUCH: bool = os.getenv("SEABATTLE_NO_TOUCH", "0") == "1"


# ===========================================================================
# Debugging and Logging
# ===========================================================================
# SEABATTLE_DEBUG: If "1", enables detailed debug logging across modules.
#   Defaults to "0" (disabled).
DEBUG: bool = os.getenv("SEABATTLE_DEBUG", "0") == "1"
