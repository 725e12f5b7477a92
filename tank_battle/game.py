"""
game.py - simulation core of one tank battle session

one call to Game.step() is one frame, always in this order:
    1. player update (from the sampled actions)
    2. enemy updates (heuristic opponent)
    3. bullet updates (advance, collide, prune)
    4. spawn timer (spawn an enemy when due)
rendering reads Game.snapshot() afterwards and never feeds back.

the session is Active until the base is destroyed or the player runs
out of lives; it then ends in a loss, on_game_over fires exactly once,
and further steps change nothing. there is no win condition.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Optional, Tuple

import numpy as np

from .constants import (
    ENEMY_SPAWN_INTERVAL,
    ENEMY_SPAWN_POINTS,
    MAX_ENEMIES_ALIVE,
    MAX_ENEMY_BULLETS,
    MAX_PLAYER_BULLETS,
    PLAYER_FIRE_COOLDOWN,
    PLAYER_START_X,
    PLAYER_START_Y,
    STARTING_LIVES,
    TILE_SIZE,
)
from .controls import Action, movement_direction
from .entities import (
    ENEMY_KINDS,
    AiControlled,
    Direction,
    PlayerControlled,
    create_bullet,
    create_enemy,
    create_player,
)
from .maps import MAP_STYLES, TileType, create_map
from .opponent import HeuristicOpponent
from .physics import (
    entities_collide,
    hit_tile,
    resolve_move,
    snap_to_half_tile,
    step_position,
)

logger = logging.getLogger(__name__)


class Outcome(Enum):
    WIN = "win"
    LOSS = "loss"


def _ignore(*args):
    pass


@dataclass
class GameCallbacks:
    """signals towards whatever owns the session (score widget, menus, ...)."""
    on_score_changed: Callable[[int], None] = _ignore
    on_lives_changed: Callable[[int], None] = _ignore
    on_game_over: Callable[[int, Outcome], None] = _ignore


@dataclass
class GameConfig:
    map_style: str = "Classic"
    layout: Any = None
    spawn_interval: int = ENEMY_SPAWN_INTERVAL
    max_enemies: int = MAX_ENEMIES_ALIVE
    starting_lives: int = STARTING_LIVES
    seed: Optional[int] = None

    def __post_init__(self):
        if self.map_style not in MAP_STYLES:
            raise ValueError(f"map_style must be one of {list(MAP_STYLES)}, got {self.map_style}")

        if not 1 <= self.max_enemies <= MAX_ENEMIES_ALIVE:
            raise ValueError(f"max_enemies must be between 1-{MAX_ENEMIES_ALIVE}, got {self.max_enemies}")

        if self.starting_lives < 1:
            raise ValueError(f"starting_lives must be at least 1, got {self.starting_lives}")

        if self.spawn_interval < 1:
            raise ValueError(f"spawn_interval must be at least 1, got {self.spawn_interval}")


def get_game_defaults():
    """
    return a dictionary of default session parameters.
    useful for interactive mode to display defaults.
    """
    return {
        "map_style": "Classic",
        "spawn_interval": ENEMY_SPAWN_INTERVAL,
        "max_enemies": MAX_ENEMIES_ALIVE,
        "starting_lives": STARTING_LIVES,
        "seed": None,
    }


def get_game_options():
    """
    return a dictionary describing valid options for each session parameter.
    """
    return {
        "map_style": {
            "type": "str",
            "choices": list(MAP_STYLES),
            "descriptions": {
                "Classic": "the level 1 battlefield",
                "Empty": "open field, only the base fortress",
                "Dynamic": "random clusters of brick, steel, water and trees"
            }
        },
        "spawn_interval": {
            "type": "int",
            "range": [30, 1200],
            "description": "frames between enemy spawn attempts"
        },
        "max_enemies": {
            "type": "int",
            "range": [1, MAX_ENEMIES_ALIVE],
            "description": "enemy tanks allowed on the field at once"
        },
        "starting_lives": {
            "type": "int",
            "range": [1, 9],
            "description": "hits the player can take before the game is lost"
        },
    }


@dataclass(frozen=True)
class GameSnapshot:
    """read-only copy of everything the renderer needs for one frame."""
    tiles: np.ndarray
    player: Any
    enemies: Tuple[Any, ...]
    bullets: Tuple[Any, ...]
    score: int
    lives: int
    frame: int
    outcome: Optional[Outcome]


class Game:
    """
    the full mutable state of one session plus its per-frame update.

    callbacks are passed in at construction and invoked directly, only
    when the value they report actually changes.
    """

    def __init__(self, config=None, callbacks=None, rng=None):
        """
        args:
            config: GameConfig (defaults used when None)
            callbacks: GameCallbacks (no-ops when None)
            rng: numpy Generator; seeded from config.seed when None
        """
        self.config = config if config is not None else GameConfig()
        self.callbacks = callbacks if callbacks is not None else GameCallbacks()
        self.np_random = rng if rng is not None else np.random.default_rng(self.config.seed)

        self.tile_map = create_map(self.config.map_style, layout=self.config.layout, rng=self.np_random)
        self.player = create_player()
        self.enemies = []
        self.bullets = []
        self.opponent = HeuristicOpponent(self.np_random)

        self.score = 0
        self.lives = self.config.starting_lives
        self.frame = 0
        self.spawn_timer = 0
        self.outcome = None
        self._enemy_serial = 0

        logger.info("session started (map=%s, lives=%d)", self.config.map_style, self.lives)

    @property
    def active(self):
        return self.outcome is None

    # =========================================================================
    # frame
    # =========================================================================

    def step(self, actions=frozenset()):
        """
        advance the session by one frame.

        args:
            actions: set of controls.Action held this frame

        returns:
            bool: True while the session is still active
        """
        if not self.active:
            return False

        self.frame += 1

        self.update_player(actions)
        if self.active:
            self.update_enemies()
        if self.active:
            self.update_bullets()
        if self.active:
            self.update_spawner()

        return self.active

    def end(self, outcome):
        """finish the session; only the first call has any effect."""
        if self.outcome is not None:
            return
        self.outcome = outcome
        logger.info("game over: %s (score=%d, frame=%d)", outcome.value, self.score, self.frame)
        self.callbacks.on_game_over(self.score, outcome)

    # =========================================================================
    # tanks
    # =========================================================================

    def update_player(self, actions):
        player = self.player
        if player.destroyed or not isinstance(player.control, PlayerControlled):
            return

        direction = movement_direction(actions)
        if direction is not None:
            if direction is not player.direction:
                player.direction = direction
                # keep the tank in its lane when turning
                if direction.is_vertical:
                    player.x = snap_to_half_tile(player.x)
                else:
                    player.y = snap_to_half_tile(player.y)

            next_x, next_y = step_position(player)
            if not resolve_move(player, self.tile_map, next_x, next_y):
                player.x, player.y = next_x, next_y

        if player.cooldown > 0:
            player.cooldown -= 1
        if Action.FIRE in actions and player.cooldown <= 0:
            self.fire_bullet(player)
            player.cooldown = PLAYER_FIRE_COOLDOWN

    def update_enemies(self):
        for enemy in self.enemies:
            if enemy.destroyed or not isinstance(enemy.control, AiControlled):
                continue
            if self.opponent.update(enemy, self.tile_map):
                self.fire_bullet(enemy)

    def fire_bullet(self, tank):
        """
        spawn a bullet for a tank unless it already has its quota in flight.

        returns:
            the new Bullet, or None when the tank is at its limit
        """
        limit = MAX_PLAYER_BULLETS if tank.is_player else MAX_ENEMY_BULLETS
        in_flight = sum(1 for b in self.bullets if b.owner_id == tank.tank_id and not b.destroyed)
        if in_flight >= limit:
            return None

        bullet = create_bullet(tank)
        self.bullets.append(bullet)
        return bullet

    # =========================================================================
    # bullets
    # =========================================================================

    def update_bullets(self):
        """
        advance every live bullet and resolve what it hits.

        per bullet, in order: tile, player, enemies, opposing bullets.
        a bullet stops being checked the moment it is destroyed. destroyed
        bullets and enemies are pruned at the end of the phase.
        """
        for bullet in list(self.bullets):
            if bullet.destroyed:
                continue

            bullet.x, bullet.y = step_position(bullet)

            if resolve_move(bullet, self.tile_map, bullet.x, bullet.y, is_projectile=True):
                bullet.destroyed = True
                self._impact_tile(bullet)
                if not self.active:
                    break
                continue

            if not bullet.is_player_bullet and not self.player.destroyed:
                if entities_collide(bullet, self.player):
                    bullet.destroyed = True
                    self._player_hit()
                    if not self.active:
                        break
                    continue

            if bullet.is_player_bullet:
                for enemy in self.enemies:
                    if not enemy.destroyed and entities_collide(bullet, enemy):
                        bullet.destroyed = True
                        self._damage_enemy(enemy, bullet.damage)
                        break
                if bullet.destroyed:
                    continue

            for other in self.bullets:
                if other is bullet or other.destroyed or other.is_player_bullet == bullet.is_player_bullet:
                    continue
                if entities_collide(bullet, other):
                    bullet.destroyed = True
                    other.destroyed = True
                    break

        self.bullets = [b for b in self.bullets if not b.destroyed]
        self.enemies = [e for e in self.enemies if not e.destroyed]

    def _impact_tile(self, bullet):
        hit = hit_tile(bullet)
        if hit is None:
            return
        row, col = hit
        tile = self.tile_map.get(row, col)

        if tile == TileType.BRICK:
            self.tile_map.set(row, col, TileType.EMPTY)
        elif tile == TileType.BASE:
            self.tile_map.set(row, col, TileType.EMPTY)
            self.end(Outcome.LOSS)

    def _player_hit(self):
        self.lives = max(0, self.lives - 1)
        self.callbacks.on_lives_changed(self.lives)

        player = self.player
        player.x, player.y = PLAYER_START_X, PLAYER_START_Y
        player.direction = Direction.UP

        if self.lives <= 0:
            player.destroyed = True
            self.end(Outcome.LOSS)

    def _damage_enemy(self, enemy, damage):
        enemy.health = max(0, enemy.health - damage)
        if enemy.health <= 0:
            enemy.destroyed = True
            self.score += enemy.score_value
            self.callbacks.on_score_changed(self.score)

    # =========================================================================
    # spawner
    # =========================================================================

    def update_spawner(self):
        self.spawn_timer += 1
        if self.spawn_timer > self.config.spawn_interval:
            self.spawn_timer = 0
            self.spawn_enemy()

    def spawn_enemy(self):
        """
        try to add one enemy at a random spawn point.

        silently does nothing when the population cap is reached or the
        chosen point is within a tile of a live enemy or the live player.

        returns:
            the new Tank, or None
        """
        live = [e for e in self.enemies if not e.destroyed]
        if len(live) >= self.config.max_enemies:
            return None

        x, y = ENEMY_SPAWN_POINTS[int(self.np_random.integers(len(ENEMY_SPAWN_POINTS)))]

        def too_close(tank):
            return abs(tank.x - x) < TILE_SIZE and abs(tank.y - y) < TILE_SIZE

        if any(too_close(e) for e in live):
            return None
        if not self.player.destroyed and too_close(self.player):
            return None

        kind = ENEMY_KINDS[int(self.np_random.integers(len(ENEMY_KINDS)))]
        self._enemy_serial += 1
        enemy = create_enemy(kind, x, y, f"enemy_{self._enemy_serial}")
        self.enemies.append(enemy)
        logger.debug("spawned %s at (%d, %d)", kind.value, x, y)
        return enemy

    # =========================================================================
    # rendering hand-off
    # =========================================================================

    def snapshot(self):
        tiles = self.tile_map.grid.copy()
        tiles.setflags(write=False)
        return GameSnapshot(
            tiles=tiles,
            player=replace(self.player),
            enemies=tuple(replace(e) for e in self.enemies if not e.destroyed),
            bullets=tuple(replace(b) for b in self.bullets if not b.destroyed),
            score=self.score,
            lives=self.lives,
            frame=self.frame,
            outcome=self.outcome,
        )
