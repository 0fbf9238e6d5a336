"""SeaBattle: serverless two-peer naval combat over a line-based TCP protocol."""

from __future__ import annotations

__version__ = "0.1.0"
