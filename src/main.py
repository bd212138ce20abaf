"""
main.py — Command line entry point for the layer-by-layer cube solver
=================================================================

Scrambles a fresh cube, runs the solver driver to completion and reports
the result.

Features & behavior:
 - `--scramble "R U R' ..."` applies a given sequence; `--random N` draws a
   random scramble instead (`--seed` makes it reproducible).
 - `--animate DT` drives the engine through its animation path with a fixed
   time step instead of committing moves instantly.
 - `--verify` checks the scrambled state with kociemba (needs the `verify`
   extra).
 - `--show` prints the color net before and after solving.
 - Exit codes: 0 solved, 1 solver failed, 2 bad input.

------------------------------------------------------------------

Copyright (c) 2025 Facundo Gauna & Ulises Carnevale. MIT License.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from app_types import SolverState
from config import LOG_FORMAT, MAX_SOLVER_MOVES, SCRAMBLE_LENGTH
from cube_solver import CubeSolver
from cube_status import CubeStatus, build_color_net_text
from notation import format_sequence, parse_sequence, random_scramble

logger = logging.getLogger("main")

EXIT_SOLVED = 0
EXIT_FAILED = 1
EXIT_BAD_INPUT = 2

# safety bound for the animated loop, in ticks per allowed move
_TICKS_PER_MOVE = 1000


def create_arg_parser() -> argparse.ArgumentParser:
    """
    Build and return the CLI argument parser.
    """
    p = argparse.ArgumentParser(
        description="Layer-by-layer 3x3x3 cube solver",
        allow_abbrev=False,
    )
    src = p.add_mutually_exclusive_group()
    src.add_argument("--scramble", type=str, default=None, help="Move sequence to scramble with, e.g. \"R U R' U'\".")
    src.add_argument("--random", type=int, nargs="?", const=SCRAMBLE_LENGTH, default=None, metavar="N",
                     help=f"Random scramble of N moves (default {SCRAMBLE_LENGTH}).")
    p.add_argument("--seed", type=int, default=None, help="Seed for --random.")
    p.add_argument("--max-moves", type=int, default=MAX_SOLVER_MOVES, help="Solver move ceiling.")
    p.add_argument("--animate", type=float, default=None, metavar="DT",
                   help="Run through the animation path with a fixed time step in seconds.")
    p.add_argument("--verify", action="store_true", help="Validate the scrambled state with kociemba.")
    p.add_argument("--show", action="store_true", help="Print the color net before and after solving.")
    p.add_argument("--debug", action="store_true", help="Enable debug logging.")
    return p


def run_animated(solver: CubeSolver, dt: float) -> SolverState:
    solver.solve()
    budget = (solver.max_moves + 1) * _TICKS_PER_MOVE
    while solver.state is SolverState.SOLVING and budget > 0:
        solver.tick(dt)
        budget -= 1
    if solver.state is SolverState.SOLVING:
        solver.abort("animation tick budget exhausted")
    return solver.state


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = create_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO, format=LOG_FORMAT, force=True)

    if args.max_moves <= 0:
        logger.error("--max-moves must be positive")
        return EXIT_BAD_INPUT
    if args.animate is not None and args.animate <= 0:
        logger.error("--animate needs a positive time step")
        return EXIT_BAD_INPUT

    cube = CubeStatus()
    try:
        if args.scramble is not None:
            scramble = parse_sequence(args.scramble)
        elif args.random is not None:
            scramble = parse_sequence(random_scramble(args.random, seed=args.seed))
        else:
            scramble = []
    except ValueError as e:
        logger.error("Bad scramble: %s", e)
        return EXIT_BAD_INPUT

    cube.apply_sequence(scramble)
    logger.info("Scramble (%d quarter turns): %s", len(scramble), format_sequence(scramble) or "-")
    if args.show:
        print(build_color_net_text(cube.to_color_string()))

    if args.verify:
        try:
            ok, msg = cube.validate_facelet()
        except RuntimeError as e:
            logger.error("%s", e)
            return EXIT_BAD_INPUT
        logger.info("kociemba check: %s (%s)", "valid" if ok else "invalid", msg)
        if not ok:
            return EXIT_BAD_INPUT

    solver = CubeSolver(cube, max_moves=args.max_moves)
    if args.animate is not None:
        state = run_animated(solver, args.animate)
    else:
        state = solver.run()

    cube.verify()
    if args.show:
        print(build_color_net_text(cube.to_color_string()))

    if state is SolverState.WCCOMPLETE:
        print(f"Solved in {solver.moves_emitted} moves: {format_sequence(solver.history) or '-'}")
        return EXIT_SOLVED
    print(f"Failed after {solver.moves_emitted} moves: {solver.failure_reason}")
    return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
