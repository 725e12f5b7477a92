"""
renderer.py - pygame drawing of a game snapshot

draw order: ground tiles, tanks, bullets, then trees on top as a
translucent overlay. the renderer only reads the snapshot.
"""

import numpy as np
import pygame

from .constants import CANVAS_HEIGHT, CANVAS_WIDTH, COLORS, TILE_SIZE, TREE_ALPHA
from .entities import TANK_STATS, Direction
from .maps import TileType


class Renderer:
    def __init__(self, tile_size=TILE_SIZE):
        self.tile_size = tile_size
        self._tree_tile = None

    def create_surface(self):
        return pygame.Surface((CANVAS_WIDTH, CANVAS_HEIGHT))

    def draw(self, surface, snapshot):
        surface.fill(COLORS["background"])

        tiles = snapshot.tiles
        for row in range(tiles.shape[0]):
            for col in range(tiles.shape[1]):
                tile = int(tiles[row, col])
                if tile in (TileType.EMPTY, TileType.TREE):
                    continue
                self._draw_tile(surface, tile, col * self.tile_size, row * self.tile_size)

        if not snapshot.player.destroyed:
            self._draw_tank(surface, snapshot.player)
        for enemy in snapshot.enemies:
            self._draw_tank(surface, enemy)

        for bullet in snapshot.bullets:
            center = (int(bullet.x + bullet.width / 2), int(bullet.y + bullet.height / 2))
            pygame.draw.circle(surface, COLORS["bullet"], center, 3)

        for row, col in np.argwhere(tiles == TileType.TREE):
            surface.blit(self._tree_overlay(), (int(col) * self.tile_size, int(row) * self.tile_size))

        return surface

    # --- tiles ---

    def _draw_tile(self, surface, tile, x, y):
        size = self.tile_size

        if tile == TileType.BRICK:
            pygame.draw.rect(surface, COLORS["brick"], (x, y, size, size))
            bw = size // 8
            bh = size // 2
            pygame.draw.rect(surface, COLORS["brick_mortar"], (x + bw, y, bw, bh))
            pygame.draw.rect(surface, COLORS["brick_mortar"], (x + bw * 5, y, bw, bh))
            pygame.draw.rect(surface, COLORS["brick_mortar"], (x, y + bh - 1, size, 2))

        elif tile == TileType.STEEL:
            pygame.draw.rect(surface, COLORS["steel"], (x + 2, y + 2, size - 4, size - 4))
            pygame.draw.rect(surface, COLORS["steel_edge"], (x + 4, y + 4, size - 8, size - 8), 1)

        elif tile == TileType.WATER:
            pygame.draw.rect(surface, COLORS["water"], (x, y, size, size))

        elif tile == TileType.BASE:
            head = [(x + size // 2, y + 2), (x + size - 4, y + size // 2), (x + 4, y + size // 2)]
            pygame.draw.polygon(surface, COLORS["base_head"], head)
            pygame.draw.rect(surface, COLORS["base_body"], (x + 4, y + size // 2, size - 8, size // 2 - 2))
            pygame.draw.rect(surface, COLORS["base_eye"], (x + size // 2 + 2, y + size // 4 + 1, 2, 2))

    def _tree_overlay(self):
        if self._tree_tile is None:
            self._tree_tile = pygame.Surface((self.tile_size, self.tile_size), pygame.SRCALPHA)
            self._tree_tile.fill((*COLORS["tree"], TREE_ALPHA))
        return self._tree_tile

    # --- tanks ---

    def _draw_tank(self, surface, tank):
        x, y = int(tank.x), int(tank.y)
        w, h = int(tank.width), int(tank.height)
        color = TANK_STATS[tank.kind].color

        # tracks and body
        pygame.draw.rect(surface, color, (x, y, 6, h))
        pygame.draw.rect(surface, color, (x + w - 6, y, 6, h))
        pygame.draw.rect(surface, color, (x + 6, y + 4, w - 12, h - 8))

        hub = COLORS["player_hub"] if tank.is_player else COLORS["enemy_hub"]
        cx, cy = x + w // 2, y + h // 2
        pygame.draw.rect(surface, hub, (cx - 5, cy - 5, 10, 10))

        barrel_len, barrel_w = 14, 4
        if tank.direction is Direction.UP:
            barrel = (cx - 2, y - 2, barrel_w, barrel_len)
        elif tank.direction is Direction.DOWN:
            barrel = (cx - 2, cy, barrel_w, barrel_len)
        elif tank.direction is Direction.LEFT:
            barrel = (x - 2, cy - 2, barrel_len, barrel_w)
        else:
            barrel = (cx, cy - 2, barrel_len, barrel_w)
        pygame.draw.rect(surface, COLORS["barrel"], barrel)

        # damage state for multi-hit tanks
        if tank.health > 1:
            bar = int(w * tank.health / max(tank.max_health, 1))
            pygame.draw.rect(surface, COLORS["health"], (x, y - 4, bar, 2))


def frame_array(surface):
    """pixels of a surface as an (height, width, 3) uint8 array."""
    return np.transpose(np.array(pygame.surfarray.pixels3d(surface)), axes=(1, 0, 2))
