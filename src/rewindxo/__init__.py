"""RewindXO package exposing game logic, the heuristic CPU, and the web application."""

from .ai import HeuristicAI, select_move
from .game import GameMode, Mark, MoveHistory, Outcome, evaluate
from .ui import app

__all__ = [
    "GameMode",
    "HeuristicAI",
    "Mark",
    "MoveHistory",
    "Outcome",
    "app",
    "evaluate",
    "select_move",
]
