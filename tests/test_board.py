import unittest

from cluj.Board import FULL_RANK_COUNTS, Board, Column, DealError, InvariantError
from cluj.Cards import Span

SAMPLE_DEAL = """
7  v 8  k 6  k
10 t 7  7 7  8
d  9 v  9 k  8
d  d 9 10 9  t
6  v t 10 10 6
t  d k  8 6  v
"""


def dead():
    return Column((Span(8, 9),))


def empty():
    return Column()


def stuck_board():
    # Every live column has its slot taken, so there is nowhere to move to.
    return Board.of(
        [
            dead(),
            dead(),
            dead(),
            Column((Span(8, 3),), 0),
            Column((Span(5, 3),), 1),
            Column((), 2),
        ]
    )


class ParseTestCase(unittest.TestCase):
    def test_parse_sample_deal(self):
        board = Board.parse(SAMPLE_DEAL)
        self.assertEqual(FULL_RANK_COUNTS, board.rank_counts())
        self.assertEqual((Span(2, 2), Span(5, 1), Span(3, 1), Span(8, 2)), board.columns[2].spans)
        self.assertEqual("[8 7 V 9 T K]", str(board.columns[2]))
        self.assertEqual("[V T 9 D V D]", str(board.columns[1]))
        self.assertEqual(6, len(board.columns[0].spans))
        self.assertTrue(all(column.slot is None for column in board.columns))

    def test_parse_joins_descending_runs(self):
        text = "T T V T T V\nK K 10 K K 10\nD D 9 D D 9\nV 8 8 V 8 8\n10 7 7 10 7 7\n9 6 6 9 6 6\n"
        board = Board.parse(text)
        self.assertEqual((Span(8, 6),), board.columns[0].spans)
        self.assertEqual((Span(8, 3), Span(2, 3)), board.columns[1].spans)
        self.assertEqual((Span(5, 6),), board.columns[2].spans)

    def test_parse_rejects_unknown_token(self):
        with self.assertRaises(DealError):
            Board.parse(SAMPLE_DEAL.replace("t  d k", "x  d k"))

    def test_parse_rejects_too_many_copies(self):
        with self.assertRaises(DealError) as ctx:
            Board.parse(SAMPLE_DEAL.replace("7  v 8", "k  v 8"))
        self.assertIn("too many K", str(ctx.exception))

    def test_parse_rejects_short_deal(self):
        lines = [line for line in SAMPLE_DEAL.splitlines() if line.strip()]
        with self.assertRaises(DealError) as ctx:
            Board.parse("\n".join(lines[:5]))
        self.assertIn("wrong number of cards 30", str(ctx.exception))

    def test_deal_error_is_a_value_error(self):
        self.assertTrue(issubclass(DealError, ValueError))

    def test_from_grid_rejects_bad_shape(self):
        with self.assertRaises(DealError):
            Board.from_grid([[0] * 6] * 5)


class ColumnTestCase(unittest.TestCase):
    def test_dead_and_empty(self):
        self.assertTrue(dead().is_dead())
        self.assertFalse(dead().is_empty())
        self.assertTrue(empty().is_empty())
        self.assertFalse(Column((), 3).is_empty())
        self.assertFalse(Column((Span(8, 8),)).is_dead())

    def test_movable_span_prefers_slot(self):
        column = Column((Span(8, 3),), 1)
        self.assertEqual(Span(1, 1), column.movable_span())
        self.assertEqual(Span(8, 3), Column((Span(8, 3),)).movable_span())
        self.assertIsNone(dead().movable_span())
        self.assertIsNone(empty().movable_span())

    def test_explain_last_n_cards(self):
        self.assertEqual("[K D]", Column((Span(8, 3),)).explain_last_n_cards(2))
        self.assertEqual("[7]", Column((Span(5, 3),), 1).explain_last_n_cards(1))

    def test_str(self):
        self.assertEqual("[..]", str(dead()))
        self.assertEqual("[]", str(empty()))
        self.assertEqual("[T K D 6]", str(Column((Span(8, 3),), 0)))

    def test_span_capacity_is_enforced(self):
        with self.assertRaises(InvariantError):
            Column(tuple(Span(0, 1) for _ in range(7)))


class BoardTestCase(unittest.TestCase):
    def test_board_needs_six_columns(self):
        with self.assertRaises(InvariantError):
            Board.of([dead()] * 5)

    def test_success_when_all_dead_or_empty(self):
        board = Board.of([dead(), dead(), empty(), dead(), empty(), dead()])
        self.assertTrue(board.is_success())
        self.assertFalse(stuck_board().is_success())

    def test_canonical_is_idempotent(self):
        board = Board.parse(SAMPLE_DEAL).canonical()
        self.assertEqual(board, board.canonical())

    def test_canonical_collapses_column_permutations(self):
        board = Board.parse(SAMPLE_DEAL)
        shuffled = Board.of(reversed(board.columns))
        self.assertNotEqual(board, shuffled)
        self.assertEqual(board.canonical(), shuffled.canonical())
        self.assertEqual(hash(board.canonical()), hash(shuffled.canonical()))

    def test_canonical_validates_rank_counts(self):
        broken = Board.of([dead(), dead(), dead(), dead(), Column((Span(0, 1),)), empty()])
        with self.assertRaises(InvariantError):
            broken.canonical()

    def test_score_without_penalty(self):
        # 3 dead columns score 6 each, the others 5 + 5 + 6.
        self.assertEqual(34, stuck_board().score())

    def test_score_penalises_long_blocked_run(self):
        board = Board.of([dead(), dead(), dead(), Column((Span(3, 4), Span(8, 5))), empty(), empty()])
        # 37 before the penalty; top run of 5 with 3 free slots costs 20.
        self.assertEqual(17, board.score())

    def test_score_never_negative(self):
        board = Board.of([dead(), dead(), dead(), Column((Span(8, 1), Span(7, 8))), empty(), empty()])
        self.assertEqual(0, board.score())

    def test_transfer_onto_span(self):
        board = Board.of([dead(), dead(), dead(), Column((Span(8, 7),)), Column((Span(1, 2),)), empty()])
        out = board.transfer(4, 3, 2, False)
        self.assertTrue(out.columns[3].is_dead())
        self.assertTrue(out.columns[4].is_empty())
        self.assertEqual(FULL_RANK_COUNTS, out.rank_counts())
        # The original board is untouched.
        self.assertEqual(Column((Span(1, 2),)), board.columns[4])

    def test_transfer_into_slot_and_onto_empty(self):
        board = Board.of([dead(), dead(), dead(), Column((Span(8, 7),)), Column((Span(1, 2),)), empty()])
        slotted = board.transfer(4, 3, 1, True)
        self.assertEqual(Column((Span(8, 7),), 0), slotted.columns[3])
        self.assertEqual(Column((Span(1, 1),)), slotted.columns[4])
        split = board.transfer(4, 5, 1, False)
        self.assertEqual(Column((Span(0, 1),)), split.columns[5])
        self.assertEqual(Column((Span(1, 1),)), split.columns[4])

    def test_transfer_rejects_illegal_moves(self):
        board = Board.of([dead(), dead(), dead(), Column((Span(8, 7),)), Column((Span(1, 2),)), empty()])
        with self.assertRaises(InvariantError):
            board.transfer(3, 3, 1, False)
        with self.assertRaises(InvariantError):
            board.transfer(0, 5, 1, False)
        with self.assertRaises(InvariantError):
            board.transfer(3, 4, 1, False)
        with self.assertRaises(InvariantError):
            stuck_board().transfer(5, 3, 1, False)

    def test_find_column(self):
        board = stuck_board()
        self.assertEqual(0, board.find_column(dead()))
        self.assertEqual(1, board.find_column(dead(), exclude=0))
        with self.assertRaises(InvariantError):
            board.find_column(empty())


if __name__ == "__main__":
    unittest.main()
