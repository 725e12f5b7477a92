"""
maps.py - tile map for the tank battle simulation

provides:
    - the tile kinds (TileType) and their numeric codes
    - the mutable 26x26 grid (TileMap), backed by a numpy array
    - built-in layouts ("Classic", "Empty", "Dynamic")
    - construction with repair: a missing or malformed layout never
      stops a session from starting; the grid falls back to empty and
      the base fortress and player spawn are always carved in
"""

import logging
from collections.abc import Mapping, Sequence
from enum import IntEnum

import numpy as np

from .constants import (
    BASE_COL,
    BASE_ROW,
    MAP_COLS,
    MAP_ROWS,
    PLAYER_START_X,
    PLAYER_START_Y,
    TILE_SIZE,
)

logger = logging.getLogger(__name__)


class TileType(IntEnum):
    EMPTY = 0
    BRICK = 1
    STEEL = 2
    WATER = 3
    TREE = 4
    BASE = 9


# one character per tile in the text layouts below
LEGEND = {
    ".": TileType.EMPTY,
    "#": TileType.BRICK,
    "@": TileType.STEEL,
    "~": TileType.WATER,
    "%": TileType.TREE,
    "E": TileType.BASE,
}

_VALID_CODES = frozenset(int(tile) for tile in TileType)

MAP_STYLES = ("Classic", "Empty", "Dynamic")


# =============================================================================
# layouts
# =============================================================================

CLASSIC_LAYOUT = (
    "..........................",
    "..........................",
    ".##..##..##...##..##..##..",
    ".##..##..##...##..##..##..",
    ".##..##..##.@@##..##..##..",
    ".##..##..##.@@##..##..##..",
    ".##..##..##...##..##..##..",
    ".##..##...........##..##..",
    ".........##...##..........",
    ".##..##..##...##..##..##..",
    ".@@..##...........##..@@..",
    ".....##...........##......",
    ".....##..##~~~##..##......",
    ".........##~~~##..........",
    ".##..##...........##..##..",
    ".@@..##..##...##..##..@@..",
    ".##..##..##...##..##..##..",
    ".##..##..##...##..##..##..",
    ".##..##..##...##..........",
    ".##..##..##...##..##..##..",
    ".##..##..##...##..##..##..",
    ".##...............##..##..",
    ".##..##..##...##..##..##..",
    ".##..##..##...##..##..##..",
    "...........###............",
    "...........#E#............",
)

# tile kinds scattered by the dynamic generator, with their weights
DYNAMIC_TILES = (TileType.BRICK, TileType.STEEL, TileType.WATER, TileType.TREE)
DYNAMIC_WEIGHTS = (0.6, 0.15, 0.1, 0.15)


def generate_dynamic_layout(rng):
    """
    scatter random rectangular clusters of tiles.

    the top two rows (enemy spawns) and the bottom four rows (base and
    player spawn) stay clear, and every cluster keeps a one tile gap to
    its neighbours so tanks can always drive between them.

    args:
        rng: numpy Generator

    returns:
        numpy int8 array of shape (MAP_ROWS, MAP_COLS)
    """
    grid = np.zeros((MAP_ROWS, MAP_COLS), dtype=np.int8)
    top, bottom = 2, MAP_ROWS - 4

    num_clusters = int(rng.integers(18, 30))
    placed = 0
    attempts = 0

    while placed < num_clusters and attempts < 200:
        attempts += 1
        h = int(rng.integers(1, 4))
        w = int(rng.integers(1, 4))
        row = int(rng.integers(top, bottom - h + 1))
        col = int(rng.integers(0, MAP_COLS - w + 1))

        # inflate by one tile so clusters never touch
        margin = grid[max(row - 1, 0):row + h + 1, max(col - 1, 0):col + w + 1]
        if margin.any():
            continue

        kind = DYNAMIC_TILES[int(rng.choice(len(DYNAMIC_TILES), p=DYNAMIC_WEIGHTS))]
        grid[row:row + h, col:col + w] = kind
        placed += 1

    return grid


# =============================================================================
# parsing and repair
# =============================================================================

def parse_layout(layout):
    """
    turn a layout into a numpy grid.

    accepts a sequence of strings written with LEGEND characters, a
    sequence of integer rows, or a 2d array of tile codes.

    raises:
        ValueError: wrong dimensions or unknown tile codes
        TypeError: the layout is not a sequence of rows
    """
    if layout is None:
        raise ValueError("layout is empty")
    if isinstance(layout, (str, bytes, Mapping)) or not isinstance(layout, (Sequence, np.ndarray)):
        raise TypeError(f"layout must be a sequence of rows, got {type(layout).__name__}")
    if len(layout) == 0:
        raise ValueError("layout is empty")

    if isinstance(layout[0], str):
        rows = []
        for line in layout:
            try:
                rows.append([int(LEGEND[ch]) for ch in line])
            except KeyError as err:
                raise ValueError(f"unknown tile character {err.args[0]!r}") from None
    else:
        rows = [[int(code) for code in row] for row in layout]

    if len(rows) != MAP_ROWS or any(len(row) != MAP_COLS for row in rows):
        raise ValueError(f"layout must be {MAP_ROWS}x{MAP_COLS} tiles")

    grid = np.array(rows, dtype=np.int64)
    unknown = set(np.unique(grid).tolist()) - _VALID_CODES
    if unknown:
        raise ValueError(f"unknown tile codes: {sorted(unknown)}")
    return grid.astype(np.int8)


def repair_grid(grid):
    """
    carve the mandatory features into a grid, in place.

    - any base tile other than the real one is cleared
    - the player spawn tile and its neighbours are cleared
    - the base is placed at (BASE_ROW, BASE_COL)
    - the base gets its brick fortress (sides only where empty, top always)

    returns:
        True if the grid was changed
    """
    before = grid.copy()

    grid[grid == TileType.BASE] = TileType.EMPTY

    player_row = PLAYER_START_Y // TILE_SIZE
    player_col = PLAYER_START_X // TILE_SIZE
    grid[player_row, player_col] = TileType.EMPTY
    if player_col + 1 < MAP_COLS:
        grid[player_row, player_col + 1] = TileType.EMPTY
    if player_row + 1 < MAP_ROWS:
        grid[player_row + 1, player_col] = TileType.EMPTY

    grid[BASE_ROW, BASE_COL] = TileType.BASE
    for col in (BASE_COL - 1, BASE_COL + 1):
        if grid[BASE_ROW, col] == TileType.EMPTY:
            grid[BASE_ROW, col] = TileType.BRICK
    grid[BASE_ROW - 1, BASE_COL - 1:BASE_COL + 2] = TileType.BRICK

    return not np.array_equal(before, grid)


def build_grid(layout, strict=True):
    """
    parse a layout and make it playable.

    args:
        layout: anything parse_layout accepts, or None
        strict: log a warning when the layout needed repairs

    returns:
        numpy int8 array of shape (MAP_ROWS, MAP_COLS)
    """
    try:
        grid = parse_layout(layout)
    except (TypeError, ValueError) as err:
        logger.warning("unusable map layout (%s); falling back to an empty grid", err)
        grid = np.zeros((MAP_ROWS, MAP_COLS), dtype=np.int8)

    if repair_grid(grid) and strict:
        logger.warning("map layout repaired: base fortress and player spawn carved in")
    return grid


# =============================================================================
# tile map
# =============================================================================

class TileMap:
    """
    the mutable tile grid of one session.

    cells are addressed as (row, col). reads outside the grid return
    None, which every caller treats as blocked.
    """

    def __init__(self, grid):
        self.grid = np.array(grid, dtype=np.int8)

    @property
    def rows(self):
        return self.grid.shape[0]

    @property
    def cols(self):
        return self.grid.shape[1] if self.grid.ndim == 2 else 0

    @property
    def width(self):
        return self.cols * TILE_SIZE

    @property
    def height(self):
        return self.rows * TILE_SIZE

    def in_bounds(self, row, col):
        return 0 <= row < self.rows and 0 <= col < self.cols

    def get(self, row, col):
        if not self.in_bounds(row, col):
            return None
        code = int(self.grid[row, col])
        if code not in _VALID_CODES:
            return None
        return TileType(code)

    def set(self, row, col, tile):
        if not self.in_bounds(row, col):
            raise IndexError(f"tile ({row}, {col}) is outside the map")
        self.grid[row, col] = int(tile)

    def count(self, tile):
        return int(np.count_nonzero(self.grid == int(tile)))

    def find(self, tile):
        return [(int(r), int(c)) for r, c in np.argwhere(self.grid == int(tile))]

    def copy(self):
        return TileMap(self.grid)


def create_map(style="Classic", layout=None, rng=None):
    """
    build a fresh tile map for a new session.

    args:
        style: one of MAP_STYLES; ignored when layout is given
        layout: optional custom layout (see parse_layout)
        rng: numpy Generator, used by the "Dynamic" style

    returns:
        TileMap with exactly one base tile
    """
    if layout is not None:
        return TileMap(build_grid(layout))

    if style == "Classic":
        return TileMap(build_grid(CLASSIC_LAYOUT))
    if style == "Empty":
        return TileMap(build_grid(np.zeros((MAP_ROWS, MAP_COLS), dtype=np.int8), strict=False))
    if style == "Dynamic":
        if rng is None:
            rng = np.random.default_rng()
        return TileMap(build_grid(generate_dynamic_layout(rng), strict=False))

    raise ValueError(f"map style must be one of {MAP_STYLES}, got {style!r}")
