"""
controls.py - keyboard to logical action mapping

key events arrive whenever pygame delivers them and only ever edit the
pressed-key set. the simulation samples that set once per frame through
actions(); there is no queueing and no debounce.
"""

from enum import Enum

import pygame

from .constants import KEY_BINDINGS
from .entities import Direction


class Action(Enum):
    MOVE_UP = "move_up"
    MOVE_DOWN = "move_down"
    MOVE_LEFT = "move_left"
    MOVE_RIGHT = "move_right"
    FIRE = "fire"


# checked in this order; only the first held direction acts in a frame
MOVEMENT_PRIORITY = (
    (Action.MOVE_UP, Direction.UP),
    (Action.MOVE_DOWN, Direction.DOWN),
    (Action.MOVE_LEFT, Direction.LEFT),
    (Action.MOVE_RIGHT, Direction.RIGHT),
)


def movement_direction(actions):
    for action, direction in MOVEMENT_PRIORITY:
        if action in actions:
            return direction
    return None


def default_bindings():
    return {Action(name): tuple(keys) for name, keys in KEY_BINDINGS.items()}


class PressedKeys:
    """the set of raw keys currently held down."""

    def __init__(self, bindings=None):
        self.bindings = bindings if bindings is not None else default_bindings()
        self.bound_keys = {key for keys in self.bindings.values() for key in keys}
        self.pressed = set()

    def press(self, key):
        if key in self.bound_keys:
            self.pressed.add(key)

    def release(self, key):
        self.pressed.discard(key)

    def clear(self):
        self.pressed.clear()

    def handle_event(self, event):
        """
        feed one pygame event.

        returns:
            bool: False if the event asks to quit, True otherwise
        """
        if event.type == pygame.QUIT:
            return False
        if event.type == pygame.KEYDOWN:
            self.press(event.key)
        elif event.type == pygame.KEYUP:
            self.release(event.key)
        return True

    def actions(self):
        """logical actions held right now."""
        return frozenset(
            action for action, keys in self.bindings.items()
            if any(key in self.pressed for key in keys)
        )
