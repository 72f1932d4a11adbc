from __future__ import annotations

from collections import deque
from enum import Enum


class Command(Enum):
    RANDOMIZE_POSITIONS = "randomize_positions"
    RANDOMIZE_COLORS = "randomize_colors"


class CommandQueue:
    """Commands requested by the UI, consumed once per frame by the simulation."""

    def __init__(self) -> None:
        self._pending: deque[Command] = deque()

    def push(self, command: Command) -> None:
        if not isinstance(command, Command):
            raise TypeError(f"Expected Command, got {type(command).__name__}")
        self._pending.append(command)

    def drain(self) -> set[Command]:
        # Duplicates within one frame collapse into a single request.
        drained: set[Command] = set()
        while self._pending:
            drained.add(self._pending.popleft())
        return drained

    def __len__(self) -> int:
        return len(self._pending)
