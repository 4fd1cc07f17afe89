"""FastAPI-powered web UI for playing RewindXO in the browser."""

from __future__ import annotations

import logging
import os
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import threading

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field

from .ai import HeuristicAI
from .game import GameMode, MoveHistory

logger = logging.getLogger(__name__)


@dataclass
class GameSession:
    """Container for a game's move history and its machine opponent."""

    history: MoveHistory
    ai: HeuristicAI
    ai_pending: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


SESSIONS: Dict[str, GameSession] = {}
app = FastAPI(
    title="RewindXO", description="Tic-tac-toe with time travel, played in the browser"
)


# Seconds the machine "thinks" before answering.
AI_THINK_DELAY: float = float(os.environ.get("REWINDXO_THINK_DELAY", "0.6"))


class NewGameRequest(BaseModel):
    """Request payload for starting a new game."""

    mode: GameMode = Field(
        default=GameMode.PVC,
        description="'pvp' for two local players, 'pvc' to play against the CPU",
    )


class MoveRequest(BaseModel):
    """Request payload for placing a mark on the current board."""

    index: int = Field(ge=0, le=8)


class JumpRequest(BaseModel):
    """Request payload for moving the cursor to an earlier or later snapshot."""

    move: int = Field(ge=0)


class ResetRequest(BaseModel):
    """Request payload for restarting, optionally switching mode."""

    mode: Optional[GameMode] = None


def _create_session(mode: GameMode) -> Tuple[str, GameSession]:
    """Create a new game session and register it for later access."""

    history = MoveHistory(mode=mode)
    session = GameSession(history=history, ai=HeuristicAI(player=history.machine_mark))
    session_id = uuid.uuid4().hex
    SESSIONS[session_id] = session
    logger.info("Created game %s (mode=%s)", session_id, mode.value)
    return session_id, session


def _get_session(game_id: str) -> GameSession:
    try:
        return SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc


def _run_ai_turn(game_id: str, generation: int) -> None:
    session = SESSIONS.get(game_id)
    if not session:
        return

    time.sleep(max(0.0, AI_THINK_DELAY))

    with session.lock:
        history = session.history
        if history.generation != generation:
            # A jump, reset, or newer schedule superseded this turn.
            logger.info("Dropping stale machine turn for game %s", game_id)
            return
        try:
            if not history.is_machine_turn():
                return
            index = session.ai.choose(history.current)
            if index is not None:
                history.play_if_current(generation, index)
        finally:
            session.ai_pending = False


def _schedule_ai_if_needed(
    game_id: str,
    session: GameSession,
    background_tasks: Optional[BackgroundTasks],
) -> None:
    """Mark the session pending and queue a machine turn; caller holds the lock."""

    session.ai_pending = session.history.is_machine_turn()
    if session.ai_pending and background_tasks is not None:
        background_tasks.add_task(_run_ai_turn, game_id, session.history.generation)


def _serialize_session(game_id: str, session: GameSession) -> Dict[str, object]:
    with session.lock:
        history = session.history
        outcome = history.outcome()
        return {
            "id": game_id,
            "mode": history.mode.value,
            "cells": [cell.value for cell in history.current],
            "cursor": history.cursor,
            "moves": history.move_labels(),
            "currentPlayer": history.current_player.value,
            "winner": outcome.winner.value if outcome.winner else None,
            "winningLine": list(outcome.line) if outcome.line else None,
            "drawn": outcome.drawn,
            "status": history.status_message(),
            "aiPending": session.ai_pending,
            "inputLocked": outcome.finished or history.is_machine_turn(),
        }


def _apply_player_move(
    game_id: str,
    session: GameSession,
    index: int,
    background_tasks: Optional[BackgroundTasks] = None,
) -> None:
    with session.lock:
        history = session.history
        if history.outcome().finished:
            raise HTTPException(status_code=400, detail="Game already finished")

        if session.ai_pending:
            raise HTTPException(status_code=400, detail="CPU is completing its move")

        if history.is_machine_turn():
            raise HTTPException(status_code=400, detail="It is the CPU's turn")

        if not history.play(index):
            raise HTTPException(status_code=400, detail="Cell is already taken")

        _schedule_ai_if_needed(game_id, session, background_tasks)


@app.post("/api/game")
def create_game(request: NewGameRequest) -> Dict[str, object]:
    game_id, session = _create_session(request.mode)
    return _serialize_session(game_id, session)


@app.get("/api/game/{game_id}")
def get_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/move")
def make_move(
    game_id: str, request: MoveRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    session = _get_session(game_id)
    _apply_player_move(game_id, session, request.index, background_tasks)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/jump")
def jump_to_move(
    game_id: str, request: JumpRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    session = _get_session(game_id)
    with session.lock:
        try:
            session.history.jump_to(request.move)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        _schedule_ai_if_needed(game_id, session, background_tasks)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/reset")
def reset_game(game_id: str, request: ResetRequest) -> Dict[str, object]:
    session = _get_session(game_id)
    with session.lock:
        session.history.reset(request.mode)
        session.ai_pending = False
    return _serialize_session(game_id, session)


@app.get("/", response_class=HTMLResponse)
def index() -> str:
    return HTML_PAGE


HTML_PAGE = """<!DOCTYPE html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <title>RewindXO</title>
    <link rel=\"preconnect\" href=\"https://fonts.googleapis.com\" />
    <link rel=\"preconnect\" href=\"https://fonts.gstatic.com\" crossorigin />
    <link
      href=\"https://fonts.googleapis.com/css2?family=Poppins:wght@400;500;600;700&display=swap\"
      rel=\"stylesheet\"
    />
    <style>
      :root {
        color-scheme: dark;
        font-family: 'Poppins', system-ui, -apple-system, BlinkMacSystemFont, \"Segoe UI\", sans-serif;
      }
      * {
        box-sizing: border-box;
      }
      body {
        margin: 0;
        min-height: 100vh;
        background: #0f172a;
        color: #f8fafc;
        display: flex;
        flex-direction: column;
        align-items: center;
        padding: 2.5rem 1rem;
      }
      h1 {
        margin: 0;
        font-size: clamp(2rem, 3vw + 1rem, 3rem);
        font-weight: 800;
        background: linear-gradient(90deg, #22d3ee, #ec4899);
        -webkit-background-clip: text;
        background-clip: text;
        color: transparent;
      }
      .tagline {
        color: #94a3b8;
        margin: 0.5rem 0 1.5rem;
      }
      .mode-picker {
        display: inline-flex;
        gap: 0.25rem;
        padding: 0.25rem;
        border-radius: 12px;
        background: rgba(30, 41, 59, 0.6);
        border: 1px solid rgba(255, 255, 255, 0.1);
        margin-bottom: 2rem;
      }
      button {
        font: inherit;
        cursor: pointer;
        color: inherit;
        border: 1px solid rgba(255, 255, 255, 0.1);
        background: rgba(255, 255, 255, 0.05);
        border-radius: 10px;
        padding: 0.55rem 1rem;
      }
      button:disabled {
        cursor: default;
        opacity: 0.5;
      }
      .mode-picker button.active {
        background: #4f46e5;
      }
      main {
        display: flex;
        flex-wrap: wrap;
        gap: 2rem;
        justify-content: center;
        align-items: flex-start;
      }
      .play-column {
        display: flex;
        flex-direction: column;
        align-items: center;
        gap: 1.25rem;
      }
      #status {
        min-width: 200px;
        text-align: center;
        font-weight: 700;
        padding: 0.75rem 1.5rem;
        border-radius: 999px;
        border: 1px solid rgba(255, 255, 255, 0.1);
      }
      #status.won {
        color: #4ade80;
        border-color: rgba(34, 197, 94, 0.5);
      }
      #status.drawn {
        color: #facc15;
        border-color: rgba(234, 179, 8, 0.5);
      }
      #message {
        min-height: 1.2rem;
        color: #f87171;
        font-size: 0.9rem;
      }
      .board-grid {
        display: grid;
        grid-template-columns: repeat(3, 6.5rem);
        gap: 0.6rem;
        padding: 0.75rem;
        border-radius: 16px;
        background: rgba(255, 255, 255, 0.05);
      }
      .cell {
        height: 6.5rem;
        font-size: 3.2rem;
        font-weight: 700;
      }
      .cell.x {
        color: #22d3ee;
      }
      .cell.o {
        color: #ec4899;
      }
      .cell.winning {
        background: rgba(34, 197, 94, 0.2);
        border-color: #22c55e;
      }
      .history {
        width: 16rem;
        padding: 1rem;
        border-radius: 16px;
        background: rgba(255, 255, 255, 0.05);
        max-height: 30rem;
        overflow-y: auto;
      }
      .history h2 {
        margin: 0 0 1rem;
        font-size: 1.2rem;
      }
      .history button {
        display: block;
        width: 100%;
        text-align: left;
        margin-bottom: 0.5rem;
      }
      .history button.current {
        background: #4f46e5;
        font-weight: 700;
      }
    </style>
  </head>
  <body>
    <h1>RewindXO</h1>
    <p class=\"tagline\">Classic tic-tac-toe. Rewind to any move and play it differently.</p>
    <div class=\"mode-picker\">
      <button id=\"mode-pvp\" data-mode=\"pvp\">Local (1v1)</button>
      <button id=\"mode-pvc\" data-mode=\"pvc\">Versus CPU</button>
    </div>
    <main>
      <section class=\"play-column\">
        <div id=\"status\">Setting up your game…</div>
        <div id=\"message\" role=\"status\"></div>
        <div id=\"board\" class=\"board-grid\"></div>
        <button id=\"reset\">Restart game</button>
      </section>
      <section class=\"history\">
        <h2>History</h2>
        <div id=\"moves\"></div>
      </section>
    </main>
    <script>
      const boardEl = document.getElementById('board');
      const movesEl = document.getElementById('moves');
      const statusEl = document.getElementById('status');
      const messageEl = document.getElementById('message');
      const resetButton = document.getElementById('reset');
      const modeButtons = document.querySelectorAll('.mode-picker button');

      let gameId = null;
      let gameState = null;
      let isRequestPending = false;
      let aiPollHandle = null;

      function renderBoard() {
        boardEl.innerHTML = '';
        const cells = gameState ? gameState.cells : Array(9).fill('');
        const line = gameState?.winningLine || [];
        cells.forEach((value, index) => {
          const cell = document.createElement('button');
          cell.className = 'cell';
          if (value) cell.classList.add(value.toLowerCase());
          if (line.includes(index)) cell.classList.add('winning');
          cell.textContent = value;
          cell.disabled = !gameState || Boolean(value) || gameState.inputLocked;
          cell.addEventListener('click', () => sendMove(index));
          boardEl.appendChild(cell);
        });
      }

      function renderHistory() {
        movesEl.innerHTML = '';
        if (!gameState) return;
        gameState.moves.forEach((label, move) => {
          const button = document.createElement('button');
          button.textContent = label;
          if (move === gameState.cursor) button.classList.add('current');
          button.disabled = gameState.aiPending;
          button.addEventListener('click', () => jumpTo(move));
          movesEl.appendChild(button);
        });
      }

      function setState(data) {
        gameState = data;
        gameId = data.id;
        statusEl.textContent = data.status;
        statusEl.classList.toggle('won', Boolean(data.winner));
        statusEl.classList.toggle('drawn', data.drawn);
        modeButtons.forEach((button) => {
          button.classList.toggle('active', button.dataset.mode === data.mode);
        });
        renderBoard();
        renderHistory();
        if (data.aiPending) {
          ensureAiPolling();
        }
      }

      function ensureAiPolling() {
        if (aiPollHandle === null) {
          aiPollHandle = setTimeout(pollAiState, 250);
        }
      }

      async function pollAiState() {
        aiPollHandle = null;
        if (!gameId) return;
        try {
          const response = await fetch(`/api/game/${gameId}`);
          if (response.ok) {
            setState(await response.json());
          }
        } catch (error) {
          console.error('Polling failed', error);
        }
      }

      async function post(url, body) {
        if (isRequestPending) return;
        isRequestPending = true;
        messageEl.textContent = '';
        try {
          const response = await fetch(url, {
            method: 'POST',
            headers: { 'Content-Type': 'application/json' },
            body: JSON.stringify(body),
          });
          const payload = await response.json().catch(() => ({}));
          if (!response.ok) {
            messageEl.textContent = payload?.detail || 'Request failed';
            return;
          }
          setState(payload);
        } catch (error) {
          messageEl.textContent = 'Network error. Please try again.';
        } finally {
          isRequestPending = false;
        }
      }

      function startGame(mode) {
        return post('/api/game', { mode });
      }

      function sendMove(index) {
        if (!gameId || gameState.inputLocked) return;
        return post(`/api/game/${gameId}/move`, { index });
      }

      function jumpTo(move) {
        if (!gameId) return;
        return post(`/api/game/${gameId}/jump`, { move });
      }

      function resetGame(mode) {
        if (!gameId) return startGame(mode || 'pvc');
        return post(`/api/game/${gameId}/reset`, mode ? { mode } : {});
      }

      modeButtons.forEach((button) => {
        button.addEventListener('click', () => {
          if (gameState && gameState.mode !== button.dataset.mode) {
            resetGame(button.dataset.mode);
          }
        });
      });
      resetButton.addEventListener('click', () => resetGame());

      renderBoard();
      startGame('pvc');
    </script>
  </body>
</html>
"""
