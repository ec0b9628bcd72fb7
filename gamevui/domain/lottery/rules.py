# gamevui/domain/lottery/rules.py
from __future__ import annotations

import random
from typing import Iterable, List, Optional, Sequence, Tuple

from gamevui.domain.common.models import Board, Cell, Claim
from gamevui.util.timeutil import now_ts

# Lottery Constants
TOTAL_NUMBERS = 60
ROWS_PER_BOARD = 3
COLS_PER_BOARD = 6
NUMS_PER_ROW = 4
BOARDS_PER_PLAYER = 5
MAX_DUPLICATE_RETRIES = 100

# Column decades: 1-9, 10-19, ... 40-49, 50-60
_COL_RANGES = [(1, 9), (10, 19), (20, 29), (30, 39), (40, 49), (50, 60)]


def col_range(col: int) -> Tuple[int, int]:
    """Inclusive (start, end) of the numbers allowed in a column."""
    if 0 <= col < len(_COL_RANGES):
        return _COL_RANGES[col]
    return 1, TOTAL_NUMBERS


def generate_board(board_id: str, rng: random.Random = random) -> Board:
    """
    3 rows x 6 columns, 4 numbers per row in 4 distinct columns.
    A number already on the board is re-drawn (bounded retries, so a duplicate
    can survive in the worst case).
    """
    used: set[int] = set()
    rows: List[List[Cell]] = []

    for _ in range(ROWS_PER_BOARD):
        row = [Cell() for _ in range(COLS_PER_BOARD)]
        for col in rng.sample(range(COLS_PER_BOARD), NUMS_PER_ROW):
            start, end = col_range(col)
            num = rng.randint(start, end)
            attempts = 0
            while num in used and attempts < MAX_DUPLICATE_RETRIES:
                num = rng.randint(start, end)
                attempts += 1
            used.add(num)
            row[col] = Cell(value=num)
        rows.append(row)

    return Board(id=board_id, rows=rows)


def generate_player_boards(rng: random.Random = random) -> List[Board]:
    ts = now_ts()
    return [generate_board(f"board-{ts}-{i}", rng) for i in range(BOARDS_PER_PLAYER)]


def check_row_win(row: Sequence[Cell]) -> bool:
    # a row is won when every numbered cell is marked; an empty row never wins
    numbers = [c for c in row if c.value is not None]
    if not numbers:
        return False
    return all(c.marked for c in numbers)


def check_board_win(board: Board) -> int:
    """Index of the first winning row, or -1."""
    for i, row in enumerate(board.rows):
        if check_row_win(row):
            return i
    return -1


def draw_number(called: Iterable[int], rng: random.Random = random) -> Optional[int]:
    """Uniform pick among the numbers not called yet; None once all 60 are out."""
    seen = set(called)
    remaining = [n for n in range(1, TOTAL_NUMBERS + 1) if n not in seen]
    if not remaining:
        return None
    return rng.choice(remaining)


def toggle_cell(board: Board, row: int, col: int) -> Board:
    """Local mark/unmark. Blocked cells stay untouched."""
    cell = board.rows[row][col]
    if cell.value is None:
        return board
    rows = [list(r) for r in board.rows]
    rows[row][col] = Cell(value=cell.value, marked=not cell.marked)
    return Board(id=board.id, rows=rows)


def verify_claim(claim: Claim, called: Iterable[int]) -> bool:
    """
    Host-side check of a claimed board.
    The row-win predicate must hold, and every number on the winning row must
    actually have been called (marks alone are the player's word).
    """
    seen = set(called)
    for row in claim.board.rows:
        if not check_row_win(row):
            continue
        if all(c.value in seen for c in row if c.value is not None):
            return True
    return False
