"""Outbound flood control."""

from .flood_preventer import FloodPreventer
from .send_queue import SendQueue

__all__ = ["FloodPreventer", "SendQueue"]
