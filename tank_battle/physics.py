"""
physics.py - collision resolver for tanks and bullets

every test here is a pure function of its inputs: the entity box, the
tile map and a candidate position. nothing in this module moves an
entity or writes to the map.
"""

import math
from typing import NamedTuple

from .constants import CORNER_INSET, TILE_SIZE
from .maps import TileType


class Rect(NamedTuple):
    left: float
    top: float
    right: float
    bottom: float


def is_blocking(tile, is_projectile=False):
    """
    does a tile stop movement?

    brick, steel and base stop everything. water stops tanks but lets
    bullets fly over. trees and empty ground never block.
    """
    if tile in (TileType.BRICK, TileType.STEEL, TileType.BASE):
        return True
    if tile == TileType.WATER:
        return not is_projectile
    return False


def corner_points(x, y, width, height):
    """corners of a box, each pulled in by CORNER_INSET."""
    return (
        (x + CORNER_INSET, y + CORNER_INSET),
        (x + width - CORNER_INSET, y + CORNER_INSET),
        (x + CORNER_INSET, y + height - CORNER_INSET),
        (x + width - CORNER_INSET, y + height - CORNER_INSET),
    )


def resolve_move(entity, tile_map, next_x, next_y, is_projectile=False):
    """
    would the entity be blocked at (next_x, next_y)?

    fails closed: a missing map, a non-finite coordinate, a position
    outside the map or a corner on a missing cell all count as blocked.
    there is no clamping or sliding; the caller either commits the whole
    step or keeps the old position.

    args:
        entity: anything with width and height
        tile_map: TileMap
        next_x, next_y: candidate top-left corner
        is_projectile: bullets pass over water

    returns:
        True if the move is blocked
    """
    if tile_map is None or tile_map.rows == 0 or tile_map.cols == 0:
        return True
    if not (math.isfinite(next_x) and math.isfinite(next_y)):
        return True

    if (next_x < 0 or next_x + entity.width > tile_map.width
            or next_y < 0 or next_y + entity.height > tile_map.height):
        return True

    for px, py in corner_points(next_x, next_y, entity.width, entity.height):
        col = px / TILE_SIZE
        row = py / TILE_SIZE
        if not (math.isfinite(col) and math.isfinite(row)):
            return True

        tile = tile_map.get(math.floor(row), math.floor(col))
        if tile is None or is_blocking(tile, is_projectile):
            return True

    return False


def get_rect(entity):
    """hit rectangle: the bounding box shrunk by the entity's hitbox inset on every side."""
    inset = entity.hitbox_inset
    return Rect(
        entity.x + inset,
        entity.y + inset,
        entity.x + entity.width - inset,
        entity.y + entity.height - inset,
    )


def rects_overlap(a, b):
    return a.left < b.right and a.right > b.left and a.top < b.bottom and a.bottom > b.top


def entities_collide(a, b):
    return rects_overlap(get_rect(a), get_rect(b))


def hit_tile(bullet):
    """
    the tile a bullet has just run into, as (row, col).

    looks half a tile ahead of the bullet centre in its direction of
    travel. returns None when that point lies above or left of the map.
    """
    center_x = bullet.x + bullet.width / 2
    center_y = bullet.y + bullet.height / 2

    dx, dy = bullet.direction.delta
    check_x = center_x + dx * TILE_SIZE / 2
    check_y = center_y + dy * TILE_SIZE / 2
    if not (math.isfinite(check_x) and math.isfinite(check_y)):
        return None

    col = math.floor(check_x / TILE_SIZE)
    row = math.floor(check_y / TILE_SIZE)
    if row >= 0 and col >= 0:
        return row, col
    return None


def snap_to_half_tile(value):
    half = TILE_SIZE / 2
    return math.floor(value / half + 0.5) * half


def step_position(entity, direction=None):
    """top-left corner after one step of entity.speed in a direction."""
    dx, dy = (direction or entity.direction).delta
    return entity.x + dx * entity.speed, entity.y + dy * entity.speed
