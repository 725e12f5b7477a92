"""
constants.py - fixed tuning values for the tank battle simulation

every number the simulation, the renderer and the controls agree on
lives here, grouped by concern. per-kind tank stats live next to the
tank kinds in entities.py.
"""

import pygame


# =============================================================================
# grid
# =============================================================================
TILE_SIZE = 24
MAP_COLS = 26
MAP_ROWS = 26
CANVAS_WIDTH = MAP_COLS * TILE_SIZE
CANVAS_HEIGHT = MAP_ROWS * TILE_SIZE

# base (eagle) position as (row, col)
BASE_ROW = 25
BASE_COL = 12

# =============================================================================
# entities
# =============================================================================
TANK_SIZE = TILE_SIZE - 2
BULLET_SIZE = 4
BULLET_DAMAGE = 1

PLAYER_SPEED = 2.0
PLAYER_BULLET_SPEED = 4.0
ENEMY_BULLET_SPEED = 2.0

# corner points used for tile tests are inset by this much
CORNER_INSET = 1
# hit rectangles are inset by this much on every side; a bullet is only
# 4 units wide, so it keeps a smaller inset to stay a real rectangle
HITBOX_INSET = 2
BULLET_HITBOX_INSET = 1

MAX_PLAYER_BULLETS = 2
MAX_ENEMY_BULLETS = 1

PLAYER_FIRE_COOLDOWN = 15
ENEMY_INITIAL_COOLDOWN = 50

# =============================================================================
# enemy ai
# =============================================================================
AI_TURN_CHANCE = 0.05
AI_MOVE_TIMER_RANGE = (30, 60)
AI_FIRE_CHANCE = 0.03
AI_FIRE_COOLDOWN_RANGE = (60, 120)

# =============================================================================
# session
# =============================================================================
STARTING_LIVES = 3
ENEMY_SPAWN_INTERVAL = 180
MAX_ENEMIES_ALIVE = 4
FPS = 60

PLAYER_START_X = 8 * TILE_SIZE
PLAYER_START_Y = 24 * TILE_SIZE

ENEMY_SPAWN_POINTS = (
    (0, 0),
    (12 * TILE_SIZE, 0),
    (24 * TILE_SIZE, 0),
)

# =============================================================================
# colours
# =============================================================================
COLORS = {
    "background": (0, 0, 0),
    "brick": (165, 42, 42),
    "brick_mortar": (139, 69, 19),
    "steel": (192, 192, 192),
    "steel_edge": (255, 255, 255),
    "water": (65, 105, 225),
    "tree": (34, 139, 34),
    "base_head": (255, 255, 0),
    "base_body": (128, 128, 128),
    "base_eye": (255, 0, 0),
    "player": (255, 215, 0),
    "player_hub": (218, 165, 32),
    "enemy_basic": (192, 192, 192),
    "enemy_fast": (255, 105, 180),
    "enemy_heavy": (0, 128, 128),
    "enemy_hub": (128, 128, 128),
    "barrel": (255, 255, 255),
    "health": (255, 0, 0),
    "bullet": (255, 255, 255),
}

TREE_ALPHA = 178

# =============================================================================
# controls
# =============================================================================
# logical action name -> raw pygame key codes
KEY_BINDINGS = {
    "move_up": (pygame.K_UP, pygame.K_w),
    "move_down": (pygame.K_DOWN, pygame.K_s),
    "move_left": (pygame.K_LEFT, pygame.K_a),
    "move_right": (pygame.K_RIGHT, pygame.K_d),
    "fire": (pygame.K_SPACE, pygame.K_RETURN, pygame.K_j),
}
