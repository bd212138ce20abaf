"""
cube_solver.py — Layer-by-layer solver driver
===========================================================================

This module sequences the five phase solvers of `phases` over a live
`CubeStatus` and feeds the cube one move at a time.

### Core Classes

* **CubeSolver**: a step-driven state machine
  `IDLE -> SOLVING -> {WCCOMPLETE | FAILED}` holding the current phase (a
  tagged union, see `phases.Phase`), its own move queue and the anti-stall
  bookkeeping. `next_move()` releases one move only when the cube has no move
  in flight.

### Key Features & Robustness

1.  **Self-verification**: before every phase query the driver checks that the
    phases already passed still hold; if one was disturbed it drops back to it.

2.  **Anti-stall**: every proposal is keyed by (phase, target, position,
    orientation). A key seen more than `STALL_THRESHOLD` times means the case
    tables are oscillating: the proposal is discarded, the fallback move is
    issued and the table is cleared.

3.  **Move ceiling**: after `max_moves` moves the driver reports FAILED. The
    cube is left valid; nothing is raised.

4.  **Step-through**: `pause()` / `step_once()` / `resume()` gate the release
    of moves for debugging.

5.  **Center restoration**: slice moves displace the center pieces. Before any
    phase query the driver queues the shortest slice sequence bringing them
    home, and WCCOMPLETE is only reported when the cube equals the solved
    reference.

--------------------------------------------------------------------------

Copyright (c) 2025 Facundo Gauna & Ulises Carnevale. Licensed under MIT License.
"""

from __future__ import annotations

import logging
from collections import Counter, deque
from typing import Deque, List, Optional, Tuple

from app_types import SolverState
from config import FALLBACK_MOVE, MAX_SOLVER_MOVES, STALL_THRESHOLD
from cube_status import CubeStatus
from phases import PHASES, CubeView, Phase, center_turns, phase_index

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

# phase queries allowed per refill before the driver gives up
MAX_REFILL_QUERIES = 64


class CubeSolver:
    def __init__(self, cube: CubeStatus,
                 max_moves: int = MAX_SOLVER_MOVES,
                 stall_threshold: int = STALL_THRESHOLD,
                 fallback_move: str = FALLBACK_MOVE) -> None:
        self.cube = cube
        self.max_moves = int(max_moves)
        self.stall_threshold = int(stall_threshold)
        self.fallback_move = fallback_move
        self._reset()
        self.state = SolverState.IDLE

    def _reset(self) -> None:
        self.phase: Optional[Phase] = None
        self.queue: Deque[str] = deque()
        self.history: List[str] = []
        self.stall_counts: Counter = Counter()
        self.stall_recoveries = 0
        self.failure_reason = ''
        self.paused = False
        self._step_granted = False

    # ---------------- state ----------------

    @property
    def phase_index(self) -> int:
        return phase_index(self.phase)

    @property
    def phase_name(self) -> str:
        i = self.phase_index
        return PHASES[i].name if i >= 0 else ''

    @property
    def moves_emitted(self) -> int:
        return len(self.history)

    def is_done(self) -> bool:
        return self.state in (SolverState.WCCOMPLETE, SolverState.FAILED)

    # ---------------- control ----------------

    def solve(self) -> SolverState:
        """Start a solve from the cube's current state."""
        self._reset()
        if self.cube.is_solved():
            self.state = SolverState.WCCOMPLETE
            logger.info("cube already solved, nothing to do")
            return self.state
        self.state = SolverState.SOLVING
        self.phase = PHASES[0].initial()
        logger.info("solving started (ceiling %d moves)", self.max_moves)
        return self.state

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False
        self._step_granted = False

    def abort(self, reason: str) -> None:
        """End an ongoing solve as FAILED."""
        if self.state is SolverState.SOLVING:
            self._fail(reason)

    def step_once(self) -> None:
        """While paused, allow exactly one more move to be released."""
        self._step_granted = True

    def next_move(self) -> Optional[str]:
        """
        Issue the next move to the cube and return its token.
        None while a move is in flight, while paused, or once the solve ended.
        """
        if self.state is not SolverState.SOLVING:
            return None
        if self.cube.is_move_active():
            return None
        if self.paused and not self._step_granted:
            return None
        if not self.queue:
            self._refill()
            if self.state is not SolverState.SOLVING or not self.queue:
                return None
        if self.moves_emitted >= self.max_moves:
            self._fail(f"move ceiling of {self.max_moves} reached")
            return None
        token = self.queue.popleft()
        if not self.cube.execute_move(token):
            self.queue.appendleft(token)
            return None
        self.history.append(token)
        self._step_granted = False
        return token

    def tick(self, dt: float) -> Optional[str]:
        """Animated loop body: advance the cube by dt seconds, then release a move if possible."""
        self.cube.advance(dt)
        return self.next_move()

    def run(self) -> SolverState:
        """Headless solve: every move is committed immediately."""
        if self.state is not SolverState.SOLVING:
            self.solve()
        while self.state is SolverState.SOLVING:
            if self.cube.is_move_active():
                self.cube.apply_now()
                continue
            if self.paused and not self._step_granted:
                break
            self.next_move()
        return self.state

    # ---------------- internals ----------------

    def _complete(self) -> None:
        self.state = SolverState.WCCOMPLETE
        self.queue.clear()
        logger.info("cube solved in %d moves (%d stall recoveries)",
                    self.moves_emitted, self.stall_recoveries)

    def _fail(self, reason: str) -> None:
        self.state = SolverState.FAILED
        self.failure_reason = reason
        self.queue.clear()
        logger.warning("solver failed in phase %s after %d moves: %s",
                       self.phase_name, self.moves_emitted, reason)

    def _regress_if_disturbed(self, view: CubeView) -> None:
        for i in range(self.phase_index):
            if not PHASES[i].done(view):
                logger.info("phase %s disturbed while in %s, re-solving", PHASES[i].name, self.phase_name)
                self.phase = PHASES[i].initial()
                return

    def _stall_key(self, target: Optional[Tuple]) -> Tuple:
        return (self.phase_name,) + tuple(target or ())

    def _refill(self) -> None:
        view = CubeView(self.cube)
        turns = center_turns(view)
        if turns:
            # centers first
            logger.info("center pieces displaced, restoring with %s", ' '.join(turns))
            self.phase = PHASES[0].initial()
            self.queue.extend(turns)
            return
        for _ in range(MAX_REFILL_QUERIES):
            self._regress_if_disturbed(view)
            idx = self.phase_index
            spec = PHASES[idx]
            step = spec.step(view, self.phase)
            self.phase = step.state
            if step.complete:
                if idx == len(PHASES) - 1:
                    if self.cube.is_solved():
                        self._complete()
                    else:
                        self._fail("faces match their centers but pieces differ from the solved reference")
                    return
                logger.info("phase %s complete after %d moves", spec.name, self.moves_emitted)
                self.phase = PHASES[idx + 1].initial()
                continue
            if not step.moves:
                continue
            key = self._stall_key(step.target)
            self.stall_counts[key] += 1
            if self.stall_counts[key] > self.stall_threshold:
                logger.warning("stall in %s (%s), issuing fallback %s",
                               spec.name, step.reason, self.fallback_move)
                self.stall_counts.clear()
                self.stall_recoveries += 1
                self.queue.append(self.fallback_move)
                return
            logger.debug("%s: %s -> %s", spec.name, step.reason, ' '.join(step.moves))
            self.queue.extend(step.moves)
            return
        self._fail("no phase produced a move")
