"""
entities.py - tanks and bullets

one Tank record serves the player and all three enemy variants. kinds
differ only by the TANK_STATS table and by their control source, which
is a tagged value (PlayerControlled or AiControlled) rather than a
subclass.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple, Tuple, Union

from .constants import (
    BULLET_DAMAGE,
    BULLET_HITBOX_INSET,
    BULLET_SIZE,
    COLORS,
    ENEMY_BULLET_SPEED,
    ENEMY_INITIAL_COOLDOWN,
    HITBOX_INSET,
    PLAYER_BULLET_SPEED,
    PLAYER_SPEED,
    PLAYER_START_X,
    PLAYER_START_Y,
    TANK_SIZE,
)


class Direction(Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

    @property
    def delta(self) -> Tuple[int, int]:
        return _DELTAS[self]

    @property
    def is_vertical(self) -> bool:
        return self in (Direction.UP, Direction.DOWN)


_DELTAS = {
    Direction.UP: (0, -1),
    Direction.DOWN: (0, 1),
    Direction.LEFT: (-1, 0),
    Direction.RIGHT: (1, 0),
}

DIRECTIONS = (Direction.UP, Direction.DOWN, Direction.LEFT, Direction.RIGHT)


class TankKind(Enum):
    PLAYER = "player"
    ENEMY_BASIC = "enemy_basic"
    ENEMY_FAST = "enemy_fast"
    ENEMY_HEAVY = "enemy_heavy"


class TankStats(NamedTuple):
    speed: float
    health: int
    score_value: int
    color: Tuple[int, int, int]


TANK_STATS = {
    TankKind.PLAYER: TankStats(PLAYER_SPEED, 1, 0, COLORS["player"]),
    TankKind.ENEMY_BASIC: TankStats(1.0, 1, 100, COLORS["enemy_basic"]),
    TankKind.ENEMY_FAST: TankStats(1.8, 1, 200, COLORS["enemy_fast"]),
    TankKind.ENEMY_HEAVY: TankStats(0.8, 3, 400, COLORS["enemy_heavy"]),
}

ENEMY_KINDS = (TankKind.ENEMY_BASIC, TankKind.ENEMY_FAST, TankKind.ENEMY_HEAVY)


# =============================================================================
# control source
# =============================================================================

@dataclass
class PlayerControlled:
    """driven by the sampled keyboard actions."""


@dataclass
class AiControlled:
    """driven by the heuristic opponent; move_timer counts frames to the next rethink."""
    move_timer: int = 0


Control = Union[PlayerControlled, AiControlled]


# =============================================================================
# entities
# =============================================================================

@dataclass
class Entity:
    x: float
    y: float
    width: float
    height: float
    direction: Direction
    speed: float


@dataclass
class Tank(Entity):
    tank_id: str
    kind: TankKind
    health: int
    control: Control = field(default_factory=PlayerControlled)
    cooldown: int = 0
    score_value: int = 0
    destroyed: bool = False

    hitbox_inset = HITBOX_INSET

    @property
    def is_player(self):
        return self.kind is TankKind.PLAYER

    @property
    def max_health(self):
        return TANK_STATS[self.kind].health


@dataclass
class Bullet(Entity):
    owner_id: str
    is_player_bullet: bool
    damage: int = BULLET_DAMAGE
    destroyed: bool = False

    hitbox_inset = BULLET_HITBOX_INSET


def create_player(tank_id="p1"):
    stats = TANK_STATS[TankKind.PLAYER]
    return Tank(
        x=PLAYER_START_X,
        y=PLAYER_START_Y,
        width=TANK_SIZE,
        height=TANK_SIZE,
        direction=Direction.UP,
        speed=stats.speed,
        tank_id=tank_id,
        kind=TankKind.PLAYER,
        health=stats.health,
        control=PlayerControlled(),
        score_value=stats.score_value,
    )


def create_enemy(kind, x, y, tank_id):
    """new enemy facing down, with a short cooldown so it cannot fire at once."""
    if kind not in ENEMY_KINDS:
        raise ValueError(f"not an enemy kind: {kind}")
    stats = TANK_STATS[kind]
    return Tank(
        x=x,
        y=y,
        width=TANK_SIZE,
        height=TANK_SIZE,
        direction=Direction.DOWN,
        speed=stats.speed,
        tank_id=tank_id,
        kind=kind,
        health=stats.health,
        control=AiControlled(move_timer=0),
        cooldown=ENEMY_INITIAL_COOLDOWN,
        score_value=stats.score_value,
    )


def create_bullet(tank):
    """
    a bullet leaving the tank's barrel.

    the bullet is placed just outside the firer's box so it cannot hit
    its own tank on the first frame.
    """
    bx = tank.x + tank.width / 2 - BULLET_SIZE / 2
    by = tank.y + tank.height / 2 - BULLET_SIZE / 2

    if tank.direction is Direction.UP:
        by = tank.y - 6
    elif tank.direction is Direction.DOWN:
        by = tank.y + tank.height + 2
    elif tank.direction is Direction.LEFT:
        bx = tank.x - 6
    elif tank.direction is Direction.RIGHT:
        bx = tank.x + tank.width + 2

    return Bullet(
        x=bx,
        y=by,
        width=BULLET_SIZE,
        height=BULLET_SIZE,
        direction=tank.direction,
        speed=PLAYER_BULLET_SPEED if tank.is_player else ENEMY_BULLET_SPEED,
        owner_id=tank.tank_id,
        is_player_bullet=tank.is_player,
    )
