"""
opponent.py - heuristic controller for enemy tanks

behaviour per frame:
    - random walk: while the move timer runs it counts down; once it is
      out there is a small chance per frame to pick a fresh direction
      and a fresh timer
    - obstacle redirect: a blocked step turns the tank to some other
      direction and zeroes the timer so it rethinks next frame
    - fire: once the cooldown is spent there is a small chance per frame
      to shoot, which restarts a random cooldown
"""

import numpy as np

from .constants import (
    AI_FIRE_CHANCE,
    AI_FIRE_COOLDOWN_RANGE,
    AI_MOVE_TIMER_RANGE,
    AI_TURN_CHANCE,
)
from .entities import DIRECTIONS, AiControlled
from .physics import resolve_move, step_position


class HeuristicOpponent:
    """
    rule-based brain shared by every enemy tank of a session.

    all per-tank state (facing, move timer, cooldown) lives on the tank
    itself, so one instance can drive any number of tanks.
    """

    def __init__(self, rng=None, turn_chance=AI_TURN_CHANCE, fire_chance=AI_FIRE_CHANCE):
        """
        args:
            rng: numpy Generator (or anything with random/integers)
            turn_chance: per-frame chance of a new heading once the timer is out
            fire_chance: per-frame chance of shooting once the cooldown is spent
        """
        self.rng = rng if rng is not None else np.random.default_rng()
        self.turn_chance = turn_chance
        self.fire_chance = fire_chance

    def random_direction(self, exclude=None):
        choices = [d for d in DIRECTIONS if d is not exclude]
        return choices[int(self.rng.integers(len(choices)))]

    def update(self, tank, tile_map):
        """
        move one enemy tank for this frame.

        args:
            tank: Tank with AiControlled control
            tile_map: TileMap

        returns:
            bool: True if the tank wants to fire this frame
        """
        control = tank.control
        if not isinstance(control, AiControlled):
            raise TypeError(f"tank {tank.tank_id} is not ai controlled")

        # 1. random walk
        if control.move_timer > 0:
            control.move_timer -= 1
        elif self.rng.random() < self.turn_chance:
            tank.direction = self.random_direction()
            low, high = AI_MOVE_TIMER_RANGE
            control.move_timer = int(self.rng.integers(low, high + 1))

        # 2. step, or turn away from whatever is in the way
        next_x, next_y = step_position(tank)
        if resolve_move(tank, tile_map, next_x, next_y):
            tank.direction = self.random_direction(exclude=tank.direction)
            control.move_timer = 0
        else:
            tank.x, tank.y = next_x, next_y

        # 3. fire
        if tank.cooldown > 0:
            tank.cooldown -= 1
            return False

        if self.rng.random() < self.fire_chance:
            low, high = AI_FIRE_COOLDOWN_RANGE
            tank.cooldown = int(self.rng.integers(low, high + 1))
            return True
        return False
