"""
environment.py - tank battle gymnasium environment

wraps one simulation session per episode so that agents can play the
player tank. includes:
    - the environment (TankBattleEnv)
    - factory function with argument validation (create_environment)
    - defaults/options tables for the interactive driver
"""

import numpy as np
import pygame
import gymnasium as gym
from gymnasium import spaces

from .constants import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    FPS,
    MAX_ENEMIES_ALIVE,
    PLAYER_FIRE_COOLDOWN,
    STARTING_LIVES,
)
from .controls import Action
from .game import Game, GameConfig, Outcome
from .maps import MAP_STYLES, TileType
from .renderer import Renderer, frame_array


# move index -> held action (0 = stand still)
MOVE_ACTIONS = (None, Action.MOVE_UP, Action.MOVE_DOWN, Action.MOVE_LEFT, Action.MOVE_RIGHT)

PLAYER_FEATURES = 6
ENEMY_FEATURES = 6
OBS_SIZE = PLAYER_FEATURES + ENEMY_FEATURES * MAX_ENEMIES_ALIVE + 1


def actions_from_index(move, fire):
    """translate a MultiDiscrete action into the logical action set."""
    actions = set()
    held = MOVE_ACTIONS[int(move)]
    if held is not None:
        actions.add(held)
    if int(fire) == 1:
        actions.add(Action.FIRE)
    return frozenset(actions)


class TankBattleEnv(gym.Env):
    """
    the player's side of a tank battle session.

    action space (MultiDiscrete([5, 2])):
        [0] move: 0=none, 1=up, 2=down, 3=left, 4=right
        [1] fire: 0=no, 1=yes

    observation space (Box, OBS_SIZE values in [-1, 1]):
        player position, facing, lives and cooldown,
        then per enemy slot: present flag, position, facing, health,
        then 1.0 while the base stands

    rewards:
        +score/100 for every kill (1 for basic, 2 fast, 4 heavy)
        -1.0 for every life lost
        -5.0 when the session is lost
        -0.001 per frame
    """

    metadata = {"render_modes": ["human", "rgb_array"], "render_fps": FPS}

    def __init__(self, render_mode=None, map_style="Classic", max_steps=5000, frame_skip=None):
        """
        args:
            render_mode: None, "human", or "rgb_array"
            map_style: one of maps.MAP_STYLES
            max_steps: int, agent steps before the episode is truncated
            frame_skip: frames simulated per agent step; defaults to 1
                when rendering (smooth motion) and 4 otherwise (fast training)
        """
        super().__init__()

        self.render_mode = render_mode
        self.map_style = map_style
        self.max_steps = max_steps
        if frame_skip is None:
            frame_skip = 1 if render_mode in ("human", "rgb_array") else 4
        self.frame_skip = frame_skip

        self.action_space = spaces.MultiDiscrete([len(MOVE_ACTIONS), 2])
        self.observation_space = spaces.Box(low=-1.0, high=1.0, shape=(OBS_SIZE,), dtype=np.float32)

        self.game = None
        self.step_count = 0

        # created on the first render()
        self.window = None
        self.clock = None
        self.canvas = None
        self.renderer = Renderer()
        self._owns_pygame = False

    def reset(self, seed=None, options=None):
        super().reset(seed=seed)

        config = GameConfig(map_style=self.map_style)
        self.game = Game(config=config, rng=self.np_random)
        self.step_count = 0

        if self.render_mode == "human":
            self.render()
        return self._get_obs(), self._get_info()

    def step(self, action):
        game = self.game
        actions = actions_from_index(action[0], action[1])

        reward = 0.0
        for _ in range(self.frame_skip):
            score_before, lives_before = game.score, game.lives
            game.step(actions)

            reward -= 0.001
            reward += (game.score - score_before) / 100.0
            reward -= float(lives_before - game.lives)

            if not game.active:
                break

        terminated = not game.active
        if game.outcome is Outcome.LOSS:
            reward -= 5.0

        self.step_count += 1
        truncated = not terminated and self.step_count >= self.max_steps

        if self.render_mode == "human":
            self.render()
        return self._get_obs(), reward, terminated, truncated, self._get_info()

    def _get_obs(self):
        game = self.game
        player = game.player
        width, height = float(CANVAS_WIDTH), float(CANVAS_HEIGHT)

        px, py = player.direction.delta
        obs = [
            player.x / width,
            player.y / height,
            float(px),
            float(py),
            game.lives / float(STARTING_LIVES),
            player.cooldown / float(PLAYER_FIRE_COOLDOWN),
        ]

        live = [e for e in game.enemies if not e.destroyed][:MAX_ENEMIES_ALIVE]
        for enemy in live:
            dx, dy = enemy.direction.delta
            obs.extend([
                1.0,
                enemy.x / width,
                enemy.y / height,
                float(dx),
                float(dy),
                enemy.health / float(enemy.max_health),
            ])
        obs.extend([0.0] * ENEMY_FEATURES * (MAX_ENEMIES_ALIVE - len(live)))

        obs.append(1.0 if game.tile_map.count(TileType.BASE) > 0 else 0.0)
        return np.clip(np.array(obs, dtype=np.float32), -1.0, 1.0)

    def _get_info(self):
        game = self.game
        return {
            "score": game.score,
            "lives": game.lives,
            "frame": game.frame,
            "enemies": len(game.enemies),
            "outcome": game.outcome.value if game.outcome is not None else None,
        }

    def render(self):
        if self.render_mode is None or self.game is None:
            return None
        if self.canvas is None:
            if not pygame.get_init():
                pygame.init()
                self._owns_pygame = True
            if self.render_mode == "human":
                self.window = pygame.display.set_mode((CANVAS_WIDTH, CANVAS_HEIGHT))
                pygame.display.set_caption("Tank Battle")
            self.clock = pygame.time.Clock()
            self.canvas = self.renderer.create_surface()

        self.renderer.draw(self.canvas, self.game.snapshot())

        if self.render_mode == "human":
            pygame.event.pump()
            self.window.blit(self.canvas, (0, 0))
            pygame.display.flip()
            self.clock.tick(self.metadata["render_fps"])
            return None

        return frame_array(self.canvas)

    def close(self):
        """drop the render surfaces; shut pygame down only if render() started it."""
        if self._owns_pygame:
            pygame.quit()
            self._owns_pygame = False
        self.window = None
        self.clock = None
        self.canvas = None


# =============================================================================
# factory function and utilities
# =============================================================================

def create_environment(render_mode=None, map_style="Classic", max_steps=5000, frame_skip=None):
    """
    create and return a configured tank battle environment.

    args:
        render_mode: None, "human" or "rgb_array"
        map_style: "Classic", "Empty" or "Dynamic"
        max_steps: maximum agent steps before the episode is truncated
        frame_skip: frames per agent step (None picks from render_mode)

    returns:
        configured TankBattleEnv instance
    """
    valid_render_modes = [None, "human", "rgb_array"]
    if render_mode not in valid_render_modes:
        raise ValueError(f"render_mode must be one of {valid_render_modes}, got {render_mode}")

    if map_style not in MAP_STYLES:
        raise ValueError(f"map_style must be one of {list(MAP_STYLES)}, got {map_style}")

    if max_steps < 100:
        raise ValueError(f"max_steps must be at least 100, got {max_steps}")

    if frame_skip is not None and not 1 <= frame_skip <= 16:
        raise ValueError(f"frame_skip must be between 1-16, got {frame_skip}")

    return TankBattleEnv(
        render_mode=render_mode,
        map_style=map_style,
        max_steps=max_steps,
        frame_skip=frame_skip,
    )


def get_environment_defaults():
    """
    return a dictionary of default environment parameters.
    useful for interactive mode to display defaults.
    """
    return {
        "render_mode": None,
        "map_style": "Classic",
        "max_steps": 5000,
        "frame_skip": None,
    }


def get_environment_options():
    """
    return a dictionary describing valid options for each parameter.
    useful for interactive mode to display choices.
    """
    return {
        "render_mode": {
            "type": "str",
            "choices": ["none", "human", "rgb_array"],
            "descriptions": {
                "none": "headless, 4 frames per step",
                "human": "pygame window at 60 fps",
                "rgb_array": "render() returns (624, 624, 3) frames"
            }
        },
        "map_style": {
            "type": "str",
            "choices": list(MAP_STYLES),
            "descriptions": {
                "Classic": "the level 1 battlefield",
                "Empty": "open field, only the base fortress",
                "Dynamic": "random clusters of brick, steel, water and trees"
            }
        },
        "max_steps": {
            "type": "int",
            "range": [100, 100000],
            "description": "agent steps before the episode is truncated"
        },
        "frame_skip": {
            "type": "int",
            "range": [1, 16],
            "description": "frames simulated per agent step"
        }
    }
