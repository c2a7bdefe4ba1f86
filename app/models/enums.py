#app/models/enums.py
from __future__ import annotations
from enum import Enum


class PollStatus(str, Enum):
    # structural lifecycle
    open = "open"
    closed = "closed"
