from __future__ import annotations

from dataclasses import dataclass

RANK_COUNT = 9
COPIES_PER_RANK = 4
DECK_SIZE = RANK_COUNT * COPIES_PER_RANK

# Lowest rank first.
RANK_NAMES = ("6", "7", "8", "9", "10", "V", "D", "K", "T")

_TOKEN_TO_RANK = {
    "6": 0,
    "7": 1,
    "8": 2,
    "9": 3,
    "10": 4,
    "0": 4,
    "1": 4,
    "V": 5,
    "D": 6,
    "K": 7,
    "T": 8,
}


def rank_from_token(token: str) -> int:
    try:
        return _TOKEN_TO_RANK[token.strip().upper()]
    except KeyError:
        raise ValueError(f"unknown card token: {token!r}") from None


def rank_name(rank: int) -> str:
    return RANK_NAMES[rank]


def shift_rank(rank: int, offset: int) -> int:
    """Rank arithmetic that refuses to leave the 6..T range."""

    out = rank + offset
    if out < 0 or out >= RANK_COUNT:
        raise ValueError(f"rank {rank} + {offset} is out of range")
    return out


@dataclass(frozen=True, slots=True, order=True)
class Span:
    """A strictly descending run of consecutive ranks that moves as one unit.

    ``top`` is the highest rank (nearest the column base), ``bottom`` the lowest
    one, which is also the exposed card of the run.
    """

    top: int
    length: int

    def __post_init__(self):
        if self.length < 1 or self.top >= RANK_COUNT or self.top - self.length + 1 < 0:
            raise ValueError(f"invalid span top={self.top} length={self.length}")

    @property
    def bottom(self) -> int:
        return self.top - self.length + 1

    @staticmethod
    def from_card(rank: int) -> Span:
        return Span(rank, 1)

    def ranks(self) -> tuple[int, ...]:
        """Ranks from top to bottom, i.e. in the order they lie in the column."""
        return tuple(range(self.top, self.bottom - 1, -1))

    def can_accept_card(self, card: int) -> bool:
        return card + 1 == self.bottom

    def accept_span_size(self, moving: Span) -> int:
        """How many of the lowest cards of ``moving`` continue this run downwards."""
        b = self.bottom
        if b > moving.bottom and moving.top + 1 >= b:
            return b - moving.bottom
        return 0

    def extended(self, count: int) -> Span:
        return Span(self.top, self.length + count)

    def shrunk(self, count: int) -> Span:
        return Span(self.top, self.length - count)

    def __str__(self) -> str:
        if self.length == 1:
            return rank_name(self.top)
        return f"{rank_name(self.top)}-{rank_name(self.bottom)}"
