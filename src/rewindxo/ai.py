"""Fixed-priority heuristic opponent for RewindXO."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence
import logging
import random

from .game import Board, Mark, WINNING_LINES

logger = logging.getLogger(__name__)

CENTER = 4
CORNERS = (0, 2, 6, 8)
SIDES = (1, 3, 5, 7)

_default_rng = random.Random()


def find_critical_move(board: Board, mark: Mark) -> Optional[int]:
    """Empty cell completing the first line holding two ``mark`` and one gap."""
    for a, b, c in WINNING_LINES:
        trio = [board[a], board[b], board[c]]
        if trio.count(mark) == 2 and trio.count(Mark.EMPTY) == 1:
            for idx in (a, b, c):
                if board[idx] == Mark.EMPTY:
                    return idx
    return None


def _pick_free(
    board: Board, candidates: Sequence[int], rng: random.Random
) -> Optional[int]:
    free = [i for i in candidates if board[i] == Mark.EMPTY]
    if not free:
        return None
    return free[rng.randrange(len(free))]


def select_move(
    board: Board, machine_mark: Mark, rng: Optional[random.Random] = None
) -> Optional[int]:
    """Pick a cell for ``machine_mark``: win, block, center, corner, side.

    Returns None when no cell is free. Only the corner and side tiers draw
    from ``rng``.
    """
    source = rng if rng is not None else _default_rng

    move = find_critical_move(board, machine_mark)
    if move is not None:
        logger.debug("Winning move at %d", move)
        return move

    move = find_critical_move(board, machine_mark.opponent)
    if move is not None:
        logger.debug("Blocking move at %d", move)
        return move

    if board[CENTER] == Mark.EMPTY:
        return CENTER

    move = _pick_free(board, CORNERS, source)
    if move is None:
        move = _pick_free(board, SIDES, source)
    return move


@dataclass
class HeuristicAI:
    """AI player wrapping :func:`select_move` with its own random source."""

    player: Mark = Mark.O
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def choose(self, board: Board) -> Optional[int]:
        return select_move(board, self.player, self.rng)
