"""
runner.py - frame scheduling for a session

a tick runs to completion before the next one starts, paced by the
pygame clock at the display rate. simulation speed is tied to the frame
rate; there is no fixed-timestep catch-up.

an exception inside one tick is logged and the session carries on with
the next tick. stopping a handle cancels every later tick, so a handle
left over from a replaced session can never touch state again.
"""

import logging

import pygame

from .constants import FPS
from .controls import PressedKeys
from .game import Game

logger = logging.getLogger(__name__)


class FrameRunner:
    """drives one Game: sample input, step, hand the snapshot to the renderer."""

    def __init__(self, game, keys=None, renderer=None, surface=None):
        self.game = game
        self.keys = keys if keys is not None else PressedKeys()
        self.renderer = renderer
        self.surface = surface
        self.cancelled = False
        self.failed_ticks = 0

    @property
    def running(self):
        return not self.cancelled and self.game.active

    def tick(self):
        """
        run one frame if the session is still running.

        returns:
            bool: True if another tick should be scheduled
        """
        if not self.running:
            return False

        try:
            actions = self.keys.actions()
            self.game.step(actions)
            if self.renderer is not None and self.surface is not None:
                self.renderer.draw(self.surface, self.game.snapshot())
        except Exception:
            self.failed_ticks += 1
            logger.exception("frame %d failed; continuing with the next frame", self.game.frame)

        return self.running

    def stop(self):
        self.cancelled = True


class SimulationHandle:
    """what start_session() gives back to the owner of a session."""

    def __init__(self, game, runner):
        self.game = game
        self.runner = runner

    @property
    def running(self):
        return self.runner.running

    @property
    def score(self):
        return self.game.score

    @property
    def lives(self):
        return self.game.lives

    @property
    def outcome(self):
        return self.game.outcome

    def tick(self):
        return self.runner.tick()

    def stop(self):
        self.runner.stop()

    def pump_events(self):
        """
        move pending pygame events into the pressed-key set.

        a quit event stops the session.
        """
        for event in pygame.event.get():
            if not self.runner.keys.handle_event(event):
                self.stop()
            elif event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                self.stop()

    def run(self, fps=FPS, clock=None, on_frame=None):
        """
        blocking frame loop for an interactive window.

        args:
            fps: frames per second the clock is capped at
            clock: pygame.time.Clock (created when None)
            on_frame: optional callable run after every tick, e.g. display flip

        returns:
            the session Outcome, or None if the loop was stopped first
        """
        if clock is None:
            clock = pygame.time.Clock()

        while self.running:
            self.pump_events()
            self.tick()
            if on_frame is not None:
                on_frame()
            clock.tick(fps)

        return self.game.outcome


def start_session(callbacks=None, config=None, keys=None, renderer=None, surface=None, replacing=None, rng=None):
    """
    begin a fresh session: score 0, full lives, fresh map, no enemies.

    args:
        callbacks: game.GameCallbacks for score, lives and game over
        config: game.GameConfig
        keys: controls.PressedKeys shared with the event source
        renderer: renderer.Renderer (optional)
        surface: pygame surface to draw into (optional)
        replacing: a previous SimulationHandle to cancel first
        rng: numpy Generator for the session

    returns:
        SimulationHandle
    """
    if replacing is not None:
        replacing.stop()

    if keys is not None:
        keys.clear()

    game = Game(config=config, callbacks=callbacks, rng=rng)
    runner = FrameRunner(game, keys=keys, renderer=renderer, surface=surface)
    return SimulationHandle(game, runner)
