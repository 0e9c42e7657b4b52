from __future__ import annotations

import argparse
import configparser
import heapq
import json
import os
import sys
import time
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

from cluj.Board import Board, DealError
from clujsolver.explain import explain_steps, reconstruct
from clujsolver.moves import Transfer, iter_moves

# (negated score, step count, negated move tag, negated board id)
QueueEntry = tuple[int, int, int, int]


@dataclass(frozen=True, slots=True)
class SearchConfig:
    # Add the full board and its score after every explained step.
    verbose: bool = False
    # Trace every expansion and every improved back-pointer on stderr.
    debug: bool = False
    # Print a progress line every `progress_interval` registered boards.
    report_progress: bool = False
    progress_interval: int = 1_000_000


DEFAULT_CONFIG = SearchConfig()


@dataclass(slots=True)
class SolveResult:
    status: str
    steps: tuple[Transfer, ...]
    explanation: tuple[str, ...]
    unique_states: int
    expanded_nodes: int
    generated_nodes: int
    improved_edges: int
    best_score: int
    elapsed_ms: float

    @property
    def solved(self) -> bool:
        return self.status == "solved"

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "solution_len": len(self.steps),
            "solution": list(self.explanation),
            "metrics": {
                "unique_states": self.unique_states,
                "expanded_nodes": self.expanded_nodes,
                "generated_nodes": self.generated_nodes,
                "improved_edges": self.improved_edges,
                "best_score": self.best_score,
                "elapsed_ms": round(self.elapsed_ms, 3),
            },
        }


class Searcher:
    """
    Best-first search over canonical boards.

    Every distinct canonical board gets a small integer id on first sight.
    ``edges`` maps an id to the id it was reached from and the transfer used,
    which is all that is needed to walk back from the goal.
    """

    def __init__(self, config: SearchConfig = DEFAULT_CONFIG):
        self.config = config
        self._reset()

    def _reset(self) -> None:
        self.ids: dict[Board, int] = {}
        self.boards: list[Board] = []
        self.step_counts: list[int] = []
        self.edges: dict[int, tuple[int, Transfer]] = {}
        self.visited: set[int] = set()
        self.best_score = 0
        self.best_id = 0
        self.expanded = 0
        self.generated = 0
        self.improved = 0

    def _log(self, message: str) -> None:
        print(message, file=sys.stderr)

    def _debug(self, message: str, *args) -> None:
        # Arguments are only formatted when debugging.
        if self.config.debug:
            self._log(message.format(*args))

    def relax(self, frontier: list[QueueEntry], board_id: int, next_board: Board, step: Transfer) -> int:
        """
        Record that canonical ``next_board`` is one step past ``board_id``.

        A new board is registered and queued. A known board reached in fewer
        steps gets its step count and back-pointer replaced; it is queued again
        only if it has not been expanded yet, so an expanded board keeps the
        successors it already produced. Returns the id of ``next_board``.
        """
        next_step_count = self.step_counts[board_id] + 1
        next_id = self.ids.get(next_board)
        if next_id is None:
            next_id = self.to_id(next_board, next_step_count)
            self.edges[next_id] = (board_id, step)
            self._debug(" Next: {}", next_board)
            heapq.heappush(frontier, (-next_board.score(), next_step_count, -step.tag, -next_id))
        elif next_step_count < self.step_counts[next_id]:
            self._debug("  Optimize step count {} -> {}", self.step_counts[next_id], next_step_count)
            self.step_counts[next_id] = next_step_count
            self.edges[next_id] = (board_id, step)
            self.improved += 1
            if next_id not in self.visited:
                heapq.heappush(frontier, (-next_board.score(), next_step_count, -step.tag, -next_id))
        return next_id

    def to_id(self, board: Board, step_count: int) -> int:
        """Id of ``board``, registering it with ``step_count`` if it is new."""
        board_id = self.ids.get(board)
        if board_id is not None:
            return board_id
        board_id = len(self.boards)
        self.boards.append(board)
        self.step_counts.append(step_count)
        self.ids[board] = board_id

        interval = self.config.progress_interval
        if self.config.report_progress and interval > 0 and (board_id + 1) % interval == 0:
            self._log(
                f"State count: {(board_id + 1) / 1_000_000:g}M. "
                f"Best score: {self.best_score} {self.boards[self.best_id]}"
            )
        return board_id

    def search(self, initial: Board) -> SolveResult:
        """Search from ``initial``; the explanation refers to its column numbers."""
        self._reset()
        start = time.perf_counter()

        root = initial.canonical()
        root_id = self.to_id(root, 0)
        frontier: list[QueueEntry] = [(-root.score(), 0, 0, -root_id)]
        goal_id: Optional[int] = None

        while frontier:
            neg_score, _, _, neg_id = heapq.heappop(frontier)
            board_id = -neg_id
            if board_id in self.visited:
                continue
            self.visited.add(board_id)
            self.expanded += 1

            board = self.boards[board_id]
            score = -neg_score
            self._debug("Considering {} Score {}", board, score)
            if score > self.best_score:
                self.best_score = score
                self.best_id = board_id

            if board.is_success():
                goal_id = board_id
                break

            for next_board, step in iter_moves(board):
                self.generated += 1
                self.relax(frontier, board_id, next_board.canonical(), step)

        if self.config.report_progress:
            if goal_id is not None:
                self._log("Found solution!")
            self._log(f"State count: {len(self.boards)}")

        steps: tuple[Transfer, ...] = ()
        explanation: tuple[str, ...] = ()
        status = "unsolvable"
        if goal_id is not None:
            status = "solved"
            steps = tuple(reconstruct(self.edges, goal_id))
            explanation = tuple(explain_steps(initial, steps, verbose=self.config.verbose))

        return SolveResult(
            status=status,
            steps=steps,
            explanation=explanation,
            unique_states=len(self.boards),
            expanded_nodes=self.expanded,
            generated_nodes=self.generated,
            improved_edges=self.improved,
            best_score=self.best_score,
            elapsed_ms=(time.perf_counter() - start) * 1000.0,
        )


def solve_board(board: Board, config: SearchConfig = DEFAULT_CONFIG) -> SolveResult:
    return Searcher(config).search(board)


def solve_text(text: str, config: SearchConfig = DEFAULT_CONFIG) -> SolveResult:
    return solve_board(Board.parse(text), config)


def config_from_env(environ: Optional[Mapping[str, str]] = None, base: SearchConfig = DEFAULT_CONFIG) -> SearchConfig:
    """Honour the ``V`` (verbose) and ``D`` (debug) environment switches."""
    env = os.environ if environ is None else environ
    return replace(base, verbose=base.verbose or "V" in env, debug=base.debug or "D" in env)


def load_config(path, base: SearchConfig = DEFAULT_CONFIG) -> SearchConfig:
    """Read the ``[search]`` section of an ini file on top of ``base``."""
    parser = configparser.ConfigParser()
    if not parser.read(path, encoding="utf-8"):
        raise OSError(f"cannot read config file {path}")
    if not parser.has_section("search"):
        return base
    section = parser["search"]
    return SearchConfig(
        verbose=section.getboolean("verbose", fallback=base.verbose),
        debug=section.getboolean("debug", fallback=base.debug),
        report_progress=section.getboolean("report_progress", fallback=base.report_progress),
        progress_interval=section.getint("progress_interval", fallback=base.progress_interval),
    )


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Solve a Cluj solitaire deal.")
    parser.add_argument("path", nargs="?", default="", help="Deal file; stdin is read when omitted.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show the board after every step.")
    parser.add_argument("--debug", action="store_true", help="Trace the search on stderr.")
    parser.add_argument("--quiet", action="store_true", help="No progress output on stderr.")
    parser.add_argument("--progress-interval", type=int, default=None, help="Boards between progress lines.")
    parser.add_argument("--config", type=str, default="", help="Optional ini file with a [search] section.")
    parser.add_argument("--json", action="store_true", help="Print the result as json.")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print json output.")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace, environ: Optional[Mapping[str, str]] = None) -> SearchConfig:
    config = config_from_env(environ, base=SearchConfig(report_progress=True))
    if args.config:
        config = load_config(args.config, config)
    overrides = {}
    if args.verbose:
        overrides["verbose"] = True
    if args.debug:
        overrides["debug"] = True
    if args.quiet:
        overrides["report_progress"] = False
    if args.progress_interval is not None:
        overrides["progress_interval"] = args.progress_interval
    return replace(config, **overrides)


def main(argv=None) -> int:
    args = _parse_args(argv)
    try:
        config = build_config(args)
        text = Path(args.path).read_text(encoding="utf-8") if args.path else sys.stdin.read()
    except (OSError, ValueError, configparser.Error) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    try:
        board = Board.parse(text)
    except DealError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    result = solve_board(board, config)
    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2 if args.pretty else None))
    elif result.solved:
        for line in result.explanation:
            print(line)
    else:
        print("No solution found.", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
