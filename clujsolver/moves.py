from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from cluj.Board import COLUMN_COUNT, Board, Column

# Tie-break tags, higher is tried first among equally scored boards.
TAG_ONTO_SPAN = 1
TAG_INTO_SLOT = 2
TAG_ONTO_EMPTY = 3


@dataclass(frozen=True, slots=True)
class Transfer:
    """A single move, recorded by the contents of the two columns involved.

    Column positions change whenever a board is put in canonical order, so the
    positions are looked up again on the board the transfer is applied to.
    """

    source: Column
    destination: Column
    count: int
    to_slot: bool
    tag: int = 0

    def locate(self, board: Board) -> tuple[int, int]:
        src = board.find_column(self.source)
        dest = board.find_column(self.destination, exclude=src)
        return src, dest

    def apply(self, board: Board) -> Board:
        src, dest = self.locate(board)
        return board.transfer(src, dest, self.count, self.to_slot)

    def explain(self, board: Board) -> str:
        src, dest = self.locate(board)
        cards = board.columns[src].explain_last_n_cards(self.count)
        return f"Move {cards} from {src + 1} -> {dest + 1}. {self.source} to {self.destination}."


def _make(board: Board, src: int, dest: int, count: int, to_slot: bool, tag: int) -> tuple[Board, Transfer]:
    step = Transfer(
        source=board.columns[src],
        destination=board.columns[dest],
        count=count,
        to_slot=to_slot,
        tag=tag,
    )
    return board.transfer(src, dest, count, to_slot), step


def _moves_between(board: Board, src: int, dest: int) -> Iterator[tuple[Board, Transfer]]:
    source = board.columns[src]
    target = board.columns[dest]
    if src == dest or source.is_dead() or target.is_dead() or target.slot is not None:
        return
    moving = source.movable_span()
    if moving is None:
        return

    landing = target.movable_span()
    if landing is not None:
        n = landing.accept_span_size(moving)
        if n > 0:
            yield _make(board, src, dest, n, False, TAG_ONTO_SPAN)
        # Parking one card in the slot is a different move unless the direct
        # move already takes exactly that card.
        if n != 1 and source.slot is None:
            yield _make(board, src, dest, 1, True, TAG_INTO_SLOT)
    else:
        for n in range(1, moving.length + 1):
            yield _make(board, src, dest, n, False, TAG_ONTO_EMPTY)


def iter_moves(board: Board) -> Iterator[tuple[Board, Transfer]]:
    """Every legal transfer on ``board`` together with the board it leads to."""
    for src in range(COLUMN_COUNT):
        for dest in range(COLUMN_COUNT):
            yield from _moves_between(board, src, dest)
