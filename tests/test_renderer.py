"""Tests for drawing snapshots onto a pygame surface."""

import pytest

from tank_battle.constants import COLORS
from tank_battle.entities import Direction
from tank_battle.maps import TileType
from tank_battle.renderer import Renderer, frame_array
from tank_battle.runner import start_session
from tank_battle.game import GameConfig

from conftest import ScriptedRng, make_bullet, make_game


@pytest.fixture
def renderer(headless_pygame):
    return Renderer()


@pytest.fixture
def surface(renderer):
    return renderer.create_surface()


def _pixel(surface, x, y):
    return tuple(surface.get_at((x, y)))[:3]


def test_surface_covers_the_map(surface):
    assert surface.get_size() == (624, 624)


def test_empty_ground_is_background(renderer, surface):
    renderer.draw(surface, make_game().snapshot())
    assert _pixel(surface, 100, 100) == COLORS["background"]


def test_tiles_are_drawn(renderer, surface):
    game = make_game()
    game.tile_map.set(5, 5, TileType.WATER)
    renderer.draw(surface, game.snapshot())

    assert _pixel(surface, 130, 130) == COLORS["water"]
    assert _pixel(surface, 11 * 24 + 1, 24 * 24 + 1) == COLORS["brick"]
    assert _pixel(surface, 12 * 24 + 12, 25 * 24 + 15) == COLORS["base_body"]


def test_player_is_drawn_until_destroyed(renderer, surface):
    game = make_game()
    renderer.draw(surface, game.snapshot())
    assert _pixel(surface, 193, 590) == COLORS["player"]

    game.player.destroyed = True
    renderer.draw(surface, game.snapshot())
    assert _pixel(surface, 193, 590) == COLORS["background"]


def test_bullets_are_drawn(renderer, surface):
    game = make_game()
    game.bullets.append(make_bullet(98, 98, Direction.UP))
    renderer.draw(surface, game.snapshot())
    assert _pixel(surface, 100, 100) == COLORS["bullet"]


def test_trees_cover_tanks(renderer, surface):
    game = make_game()
    game.tile_map.set(24, 8, TileType.TREE)
    renderer.draw(surface, game.snapshot())

    shaded = _pixel(surface, 193, 590)
    assert shaded != COLORS["player"]
    assert shaded != COLORS["tree"]
    assert shaded != COLORS["background"]


def test_drawing_leaves_the_game_alone(renderer, surface):
    game = make_game()
    before = game.tile_map.grid.copy()
    renderer.draw(surface, game.snapshot())
    assert (game.tile_map.grid == before).all()
    assert (game.player.x, game.player.y) == (192, 576)


def test_frame_array_shape(renderer, surface):
    renderer.draw(surface, make_game().snapshot())
    pixels = frame_array(surface)
    assert pixels.shape == (624, 624, 3)
    assert tuple(pixels[25 * 24 + 15, 12 * 24 + 12]) == COLORS["base_body"]


def test_runner_draws_every_tick(renderer, surface):
    handle = start_session(
        config=GameConfig(map_style="Empty"),
        renderer=renderer,
        surface=surface,
        rng=ScriptedRng(),
    )
    handle.tick()
    assert _pixel(surface, 12 * 24 + 12, 25 * 24 + 15) == COLORS["base_body"]
