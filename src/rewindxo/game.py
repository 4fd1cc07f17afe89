"""Core rules and move history for RewindXO (tic-tac-toe with time travel)."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)


class Mark(str, Enum):
    X = "X"
    O = "O"
    EMPTY = ""

    @property
    def opponent(self) -> "Mark":
        if self is Mark.X:
            return Mark.O
        if self is Mark.O:
            return Mark.X
        raise ValueError("Empty cells have no opponent")


class GameMode(str, Enum):
    PVP = "pvp"
    PVC = "pvc"


Board = Tuple[Mark, ...]
Line = Tuple[int, int, int]

EMPTY_BOARD: Board = (Mark.EMPTY,) * 9

WINNING_LINES: Tuple[Line, ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)


# ---------- Outcome ----------


@dataclass(frozen=True)
class Outcome:
    """Classification of a board: a win (with its line), a draw, or in progress."""

    winner: Optional[Mark] = None
    line: Optional[Line] = None
    drawn: bool = False

    @classmethod
    def win(cls, mark: Mark, line: Line) -> "Outcome":
        return cls(winner=mark, line=line)

    @classmethod
    def draw(cls) -> "Outcome":
        return cls(drawn=True)

    @classmethod
    def in_progress(cls) -> "Outcome":
        return cls()

    @property
    def finished(self) -> bool:
        return self.winner is not None or self.drawn


def evaluate(board: Board) -> Outcome:
    """Return the outcome of ``board``; the first complete line in order wins."""
    if len(board) != 9:
        raise ValueError(f"Board must have 9 cells, got {len(board)}")
    for a, b, c in WINNING_LINES:
        v = board[a]
        if v != Mark.EMPTY and v == board[b] == board[c]:
            return Outcome.win(Mark(v), (a, b, c))
    if all(cell != Mark.EMPTY for cell in board):
        return Outcome.draw()
    return Outcome.in_progress()


# ---------- History ----------


@dataclass
class MoveHistory:
    snapshots: List[Board] = field(default_factory=lambda: [EMPTY_BOARD])
    cursor: int = 0
    mode: GameMode = GameMode.PVC
    # Bumped by every mutation; deferred machine moves carry the value they saw.
    generation: int = 0

    machine_mark: Mark = field(default=Mark.O, init=False)

    # ---- derived state ----

    @property
    def current(self) -> Board:
        return self.snapshots[self.cursor]

    @property
    def current_player(self) -> Mark:
        return Mark.X if self.cursor % 2 == 0 else Mark.O

    @property
    def move_count(self) -> int:
        return len(self.snapshots)

    def outcome(self) -> Outcome:
        return evaluate(self.current)

    def is_machine_turn(self) -> bool:
        return (
            self.mode == GameMode.PVC
            and not self.outcome().finished
            and self.current_player == self.machine_mark
        )

    # ---- mutations ----

    def play(self, index: int) -> bool:
        """Place the current player's mark at ``index``.

        Returns False without touching the history when the cell is taken or
        the game is already won.
        """
        if not 0 <= index <= 8:
            raise ValueError(f"Cell index {index} out of range")
        board = self.current
        if board[index] != Mark.EMPTY or self.outcome().winner is not None:
            logger.debug("Ignoring move at %d (cursor=%d)", index, self.cursor)
            return False

        cells = list(board)
        cells[index] = self.current_player
        del self.snapshots[self.cursor + 1 :]
        self.snapshots.append(tuple(cells))
        self.cursor = len(self.snapshots) - 1
        self.generation += 1
        logger.debug("%s played %d -> move #%d", cells[index].value, index, self.cursor)
        return True

    def play_if_current(self, generation: int, index: int) -> bool:
        """Apply a deferred move only if nothing changed since it was scheduled."""
        if generation != self.generation:
            logger.info(
                "Discarding stale move at %d (generation %d != %d)",
                index,
                generation,
                self.generation,
            )
            return False
        return self.play(index)

    def jump_to(self, move: int) -> None:
        if not 0 <= move < len(self.snapshots):
            raise ValueError(
                f"Move {move} out of range (history has {len(self.snapshots)} entries)"
            )
        self.cursor = move
        self.generation += 1

    def reset(self, mode: Optional[GameMode] = None) -> None:
        self.snapshots = [EMPTY_BOARD]
        self.cursor = 0
        if mode is not None:
            self.mode = GameMode(mode)
        self.generation += 1
        logger.info("Game reset (mode=%s)", self.mode.value)

    # ---- presentation helpers ----

    def status_message(self) -> str:
        result = self.outcome()
        vs_machine = self.mode == GameMode.PVC
        if result.winner is not None:
            if vs_machine:
                who = "the CPU" if result.winner == self.machine_mark else "the player"
            else:
                who = result.winner.value
            return f"Winner: {who}!"
        if result.drawn:
            return "It's a draw!"
        if vs_machine:
            return "Your turn (X)" if self.current_player == Mark.X else "Thinking..."
        return f"Next player: {self.current_player.value}"

    def move_labels(self) -> List[str]:
        return [
            "Game start" if move == 0 else f"Go to move #{move}"
            for move in range(len(self.snapshots))
        ]
