from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from cluj.Cards import COPIES_PER_RANK, DECK_SIZE, RANK_COUNT, RANK_NAMES, Span, rank_from_token, rank_name, shift_rank

COLUMN_COUNT = 6
# A column starts with 6 cards and no move adds a span to a non-empty column.
MAX_SPANS = 6
FULL_RANK_COUNTS = (COPIES_PER_RANK,) * RANK_COUNT


class DealError(ValueError):
    """Raised when a deal cannot be turned into a board."""


class InvariantError(RuntimeError):
    """Raised when a board or a transfer breaks the rules of the game."""


@dataclass(frozen=True, slots=True)
class Column:
    """Spans from the column base upwards, plus the single-card slot."""

    spans: tuple[Span, ...] = ()
    slot: Optional[int] = None

    def __post_init__(self):
        if len(self.spans) > MAX_SPANS:
            raise InvariantError(f"column holds {len(self.spans)} spans, at most {MAX_SPANS} allowed")

    def is_dead(self) -> bool:
        return len(self.spans) == 1 and self.spans[0].length == RANK_COUNT

    def is_empty(self) -> bool:
        return not self.spans and self.slot is None

    def top_span(self) -> Optional[Span]:
        return self.spans[-1] if self.spans else None

    def movable_span(self) -> Optional[Span]:
        if self.is_dead():
            return None
        if self.slot is not None:
            return Span.from_card(self.slot)
        return self.top_span()

    def cards(self) -> tuple[int, ...]:
        """All ranks in the order they lie, base first and the slot card last."""
        out: list[int] = []
        for span in self.spans:
            out.extend(span.ranks())
        if self.slot is not None:
            out.append(self.slot)
        return tuple(out)

    def sort_key(self) -> tuple:
        return tuple((span.top, span.length) for span in self.spans), -1 if self.slot is None else self.slot

    def explain_last_n_cards(self, n: int) -> str:
        """Names of the last ``n`` cards taken from this column, slot card first."""
        cards: list[str] = []
        if self.slot is not None and n > 0:
            n -= 1
            cards.append(rank_name(self.slot))
        if n > 0:
            span = self.spans[-1]
            for rank in range(span.bottom, span.top + 1)[:n]:
                cards.append(rank_name(rank))
        cards.reverse()
        return "[" + " ".join(cards) + "]"

    def __str__(self) -> str:
        if self.is_dead():
            return "[..]"
        return "[" + " ".join(RANK_NAMES[rank] for rank in self.cards()) + "]"


@dataclass(frozen=True, slots=True)
class Board:
    """A full playing position. Boards are values: every transfer builds a new one."""

    columns: tuple[Column, ...]

    def __post_init__(self):
        if len(self.columns) != COLUMN_COUNT:
            raise InvariantError(f"board needs {COLUMN_COUNT} columns, got {len(self.columns)}")

    @classmethod
    def parse(cls, text: str) -> Board:
        """
        Parse a deal laid out as 6 rows of 6 cards, e.g.

            7  v 8  k 6  k
            10 t 7  7 7  8
            ...

        Whitespace and the character ``1`` are ignored, so ``10`` reads as ``0``.
        """
        rows: list[list[int]] = []
        counts = [0] * RANK_COUNT
        total = 0
        for line in text.splitlines():
            tokens = [ch for ch in line if not ch.isspace() and ch != "1"]
            if not tokens:
                continue
            if len(rows) >= COLUMN_COUNT:
                break
            row = []
            for token in tokens[:COLUMN_COUNT]:
                try:
                    rank = rank_from_token(token)
                except ValueError as e:
                    raise DealError(str(e)) from None
                counts[rank] += 1
                if counts[rank] > COPIES_PER_RANK:
                    raise DealError(f"too many {rank_name(rank)} cards")
                total += 1
                row.append(rank)
            rows.append(row)
        if total != DECK_SIZE:
            raise DealError(f"wrong number of cards {total} (expect {DECK_SIZE})")
        return cls.from_grid(rows)

    @classmethod
    def from_grid(cls, rows: Sequence[Sequence[int]]) -> Board:
        """Build a board from rows of ranks; column ``j`` reads ``rows[0][j]`` upwards."""
        if len(rows) != COLUMN_COUNT or any(len(row) != COLUMN_COUNT for row in rows):
            raise DealError(f"deal must be a {COLUMN_COUNT}x{COLUMN_COUNT} grid")
        columns = []
        for col in range(COLUMN_COUNT):
            spans: list[Span] = []
            for row in rows:
                card = row[col]
                if spans and spans[-1].can_accept_card(card):
                    spans[-1] = spans[-1].extended(1)
                else:
                    spans.append(Span.from_card(card))
            columns.append(Column(tuple(spans)))
        board = cls(tuple(columns))
        if board.rank_counts() != FULL_RANK_COUNTS:
            raise DealError(f"deal must hold {COPIES_PER_RANK} cards of each rank")
        return board

    @classmethod
    def of(cls, columns: Iterable[Column]) -> Board:
        return cls(tuple(columns))

    def rank_counts(self) -> tuple[int, ...]:
        counts = [0] * RANK_COUNT
        for column in self.columns:
            for rank in column.cards():
                counts[rank] += 1
        return tuple(counts)

    def validate(self) -> None:
        if self.rank_counts() != FULL_RANK_COUNTS:
            raise InvariantError(f"{self!r} does not pass validation")

    def canonical(self) -> Board:
        """Columns in a fixed order, so column permutations compare equal."""
        board = Board(tuple(sorted(self.columns, key=Column.sort_key)))
        board.validate()
        return board

    def is_success(self) -> bool:
        return all(column.is_dead() or column.is_empty() for column in self.columns)

    def score(self) -> int:
        """How close (approx) this board is to a solution. Higher is better."""
        max_span_len = 0
        free_slots = 0
        score = 0
        for column in self.columns:
            if not column.is_dead():
                if len(column.spans) > 1:
                    max_span_len = max(max_span_len, column.spans[-1].length)
                if column.slot is None:
                    free_slots += 1
            tidy = MAX_SPANS - len(column.spans)
            free = 1 if column.slot is None else 0
            score += tidy + free
        if max_span_len > free_slots:
            # Long blocked runs with too few free slots to unpack them.
            penalty = (max_span_len - free_slots) * 10
            score -= min(score, penalty)
        return score

    def transfer(self, src: int, dest: int, count: int, to_slot: bool) -> Board:
        """Move ``count`` cards from column ``src`` to column ``dest``."""
        if src == dest:
            raise InvariantError("cannot move a column onto itself")
        columns = list(self.columns)
        source = columns[src]
        target = columns[dest]
        if source.is_dead() or target.is_dead() or target.slot is not None:
            raise InvariantError(f"illegal transfer {src} -> {dest} on {self!r}")

        if source.slot is not None:
            if count != 1:
                raise InvariantError("a slot card moves alone")
            moving = Span.from_card(source.slot)
            columns[src] = Column(source.spans)
        else:
            moving = source.top_span()
            if moving is None or count > moving.length:
                raise InvariantError(f"column {src} has fewer than {count} movable cards")
            rest = source.spans[:-1]
            if count < moving.length:
                rest = rest + (moving.shrunk(count),)
            columns[src] = Column(rest)

        moved = Span(shift_rank(moving.bottom, count - 1), count)
        if to_slot:
            if count != 1:
                raise InvariantError("the slot holds a single card")
            columns[dest] = Column(target.spans, moved.bottom)
        elif target.spans:
            below = target.spans[-1]
            if below.bottom != moved.top + 1:
                raise InvariantError(f"{moved} does not continue {below}")
            columns[dest] = Column(target.spans[:-1] + (below.extended(count),))
        else:
            columns[dest] = Column((moved,))
        return Board(tuple(columns))

    def find_column(self, column: Column, exclude: Optional[int] = None) -> int:
        for idx, candidate in enumerate(self.columns):
            if candidate == column and idx != exclude:
                return idx
        raise InvariantError(f"cannot find column {column!r} in {self!r}")

    def __str__(self) -> str:
        return "[" + " ".join(str(column) for column in self.columns) + "]"
