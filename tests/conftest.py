"""Shared fixtures for the tank battle tests.

pygame runs on the dummy video driver so nothing opens a window.
"""

import os

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

import pygame
import pytest

from tank_battle.entities import Bullet
from tank_battle.game import Game, GameCallbacks, GameConfig


class ScriptedRng:
    """Stand-in for a numpy Generator that replays queued values.

    random() falls back to 0.99 (no chance roll ever succeeds) and
    integers() to the low end of the range once the queues run dry.
    """

    def __init__(self, randoms=(), integers=()):
        self.randoms = list(randoms)
        self.ints = list(integers)

    def random(self):
        if self.randoms:
            return self.randoms.pop(0)
        return 0.99

    def integers(self, low, high=None, size=None):
        if self.ints:
            return self.ints.pop(0)
        return 0 if high is None else low


class RecordingCallbacks:
    """Collects every callback invocation in order."""

    def __init__(self):
        self.scores = []
        self.lives = []
        self.game_overs = []

    def as_callbacks(self):
        return GameCallbacks(
            on_score_changed=self.scores.append,
            on_lives_changed=self.lives.append,
            on_game_over=lambda score, outcome: self.game_overs.append((score, outcome)),
        )


def make_game(map_style="Empty", rng=None, callbacks=None, **config):
    """Game on a given map with scripted randomness unless told otherwise."""
    return Game(
        config=GameConfig(map_style=map_style, **config),
        callbacks=callbacks,
        rng=rng if rng is not None else ScriptedRng(),
    )


def make_bullet(x, y, direction, speed=4.0, player=True, owner_id=None):
    return Bullet(
        x=x,
        y=y,
        width=4,
        height=4,
        direction=direction,
        speed=speed,
        owner_id=owner_id or ("p1" if player else "enemy_99"),
        is_player_bullet=player,
    )


@pytest.fixture
def recorder():
    return RecordingCallbacks()


@pytest.fixture
def game(recorder):
    return make_game(callbacks=recorder.as_callbacks())


@pytest.fixture
def headless_pygame():
    pygame.init()
    yield
    pygame.quit()

