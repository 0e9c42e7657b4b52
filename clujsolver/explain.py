from __future__ import annotations

from typing import Iterable, Mapping

from cluj.Board import Board
from clujsolver.moves import Transfer

BOARD_INDENT = " " * 10


def reconstruct(edges: Mapping[int, tuple[int, Transfer]], goal_id: int) -> list[Transfer]:
    """Follow back-pointers from ``goal_id`` to the root; steps come out in play order."""
    steps: list[Transfer] = []
    board_id = goal_id
    while board_id in edges:
        prev_id, step = edges[board_id]
        steps.append(step)
        board_id = prev_id
    steps.reverse()
    return steps


def replay(initial: Board, steps: Iterable[Transfer]) -> Board:
    board = initial
    for step in steps:
        board = step.apply(board)
    return board


def explain_steps(initial: Board, steps: Iterable[Transfer], verbose: bool = False) -> list[str]:
    """
    Replay ``steps`` on the board as it was dealt to recover the real column
    numbers, and describe each of them.
    """
    lines: list[str] = []
    board = initial
    for i, step in enumerate(steps):
        lines.append(f"Step {i + 1:>3}. {step.explain(board)}")
        board = step.apply(board)
        if verbose:
            lines.append(f"{BOARD_INDENT}Board: {board} (Score: {board.score()})")
    return lines
