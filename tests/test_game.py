"""Tests for the per-frame simulation: player, bullets, spawner, game over."""

import numpy as np
import pytest

from tank_battle.constants import ENEMY_SPAWN_INTERVAL
from tank_battle.controls import Action
from tank_battle.entities import DIRECTIONS, Direction, TankKind, create_enemy
from tank_battle.game import Game, GameConfig, Outcome
from tank_battle.maps import TileType

from conftest import ScriptedRng, make_bullet, make_game


def _add_enemy(game, kind=TankKind.ENEMY_BASIC, x=240, y=240, tank_id="enemy_1"):
    enemy = create_enemy(kind, x, y, tank_id)
    game.enemies.append(enemy)
    return enemy


class TestNewSession:
    def test_initial_state(self, game):
        assert game.score == 0
        assert game.lives == 3
        assert game.enemies == []
        assert game.bullets == []
        assert game.frame == 0
        assert game.active
        assert game.outcome is None
        assert game.tile_map.count(TileType.BASE) == 1

    def test_step_advances_the_frame(self, game):
        assert game.step()
        assert game.frame == 1

    def test_seeded_sessions_match(self):
        a = Game(GameConfig(map_style="Dynamic", seed=5))
        b = Game(GameConfig(map_style="Dynamic", seed=5))
        assert np.array_equal(a.tile_map.grid, b.tile_map.grid)


class TestGameConfig:
    @pytest.mark.parametrize("kwargs", [
        {"map_style": "Maze"},
        {"max_enemies": 0},
        {"max_enemies": 5},
        {"starting_lives": 0},
        {"spawn_interval": 0},
    ])
    def test_bad_settings_are_rejected(self, kwargs):
        with pytest.raises(ValueError):
            GameConfig(**kwargs)

    def test_population_never_exceeds_the_configured_cap(self):
        game = Game(GameConfig(map_style="Empty", max_enemies=4, spawn_interval=1), rng=np.random.default_rng(0))
        peak = 0
        for _ in range(3000):
            if not game.step():
                break
            peak = max(peak, len(game.enemies))
        assert 0 < peak <= 4

    def test_one_life_session_starts_active(self):
        game = make_game(starting_lives=1)
        assert game.lives == 1
        assert game.active


class TestPlayer:
    def test_moves_with_the_held_direction(self, game):
        game.step({Action.MOVE_UP})
        assert (game.player.x, game.player.y) == (192, 574)

    def test_only_the_first_direction_in_priority_acts(self, game):
        game.step({Action.MOVE_LEFT, Action.MOVE_UP})
        assert (game.player.x, game.player.y) == (192, 574)
        assert game.player.direction is Direction.UP

    def test_turning_snaps_to_the_half_tile_lane(self, game):
        game.player.y = 580
        game.step({Action.MOVE_LEFT})
        assert game.player.direction is Direction.LEFT
        assert (game.player.x, game.player.y) == (190, 576)

    def test_keeping_direction_does_not_snap(self, game):
        game.player.x = 195
        game.step({Action.MOVE_UP})
        assert game.player.x == 195

    def test_blocked_move_keeps_position(self, game):
        game.tile_map.set(23, 8, TileType.WATER)
        game.step({Action.MOVE_UP})
        assert (game.player.x, game.player.y) == (192, 576)

    def test_map_edge_blocks(self, game):
        game.player.x, game.player.y = 0, 300
        game.step({Action.MOVE_LEFT})
        assert game.player.x == 0
        assert game.player.direction is Direction.LEFT

    def test_fire_spawns_bullet_and_starts_cooldown(self, game):
        game.step({Action.FIRE})
        assert len(game.bullets) == 1
        bullet = game.bullets[0]
        assert bullet.is_player_bullet
        assert bullet.direction is Direction.UP
        # spawned at y=570 and advanced once in the same frame
        assert (bullet.x, bullet.y) == (201, 566)
        assert game.player.cooldown == 15

    def test_cooldown_spaces_shots(self, game):
        for _ in range(15):
            game.step({Action.FIRE})
        assert len(game.bullets) == 1
        game.step({Action.FIRE})
        assert len(game.bullets) == 2

    def test_at_most_two_player_bullets(self, game):
        for _ in range(31):
            game.step({Action.FIRE})
        assert len(game.bullets) == 2
        assert game.player.cooldown == 15

    def test_fire_bullet_reports_the_cap(self, game):
        assert game.fire_bullet(game.player) is not None
        assert game.fire_bullet(game.player) is not None
        assert game.fire_bullet(game.player) is None

    def test_enemy_limited_to_one_bullet(self, game):
        enemy = _add_enemy(game)
        assert game.fire_bullet(enemy) is not None
        assert game.fire_bullet(enemy) is None


class TestBulletsAndTiles:
    def test_brick_is_destroyed_with_the_bullet(self, game):
        game.tile_map.set(10, 5, TileType.BRICK)
        game.bullets.append(make_bullet(130, 266, Direction.UP))

        game.update_bullets()

        assert game.tile_map.get(10, 5) == TileType.EMPTY
        assert game.bullets == []

    def test_next_bullet_passes_the_cleared_tile(self, game):
        game.tile_map.set(10, 5, TileType.BRICK)
        game.bullets.append(make_bullet(130, 266, Direction.UP))
        game.update_bullets()

        game.bullets.append(make_bullet(130, 266, Direction.UP))
        game.update_bullets()

        assert len(game.bullets) == 1
        assert game.bullets[0].y == 262

    def test_steel_stops_bullets_and_survives(self, game):
        game.tile_map.set(10, 5, TileType.STEEL)
        game.bullets.append(make_bullet(130, 266, Direction.UP))
        game.update_bullets()
        assert game.tile_map.get(10, 5) == TileType.STEEL
        assert game.bullets == []

    def test_bullets_fly_over_water_and_trees(self, game):
        game.tile_map.set(10, 5, TileType.WATER)
        game.tile_map.set(9, 5, TileType.TREE)
        game.bullets.append(make_bullet(130, 266, Direction.UP))
        for _ in range(10):
            game.update_bullets()
        assert len(game.bullets) == 1
        assert game.tile_map.get(10, 5) == TileType.WATER

    def test_bullet_leaving_the_map_is_removed(self, game):
        game.bullets.append(make_bullet(300, 2, Direction.UP))
        game.update_bullets()
        assert game.bullets == []
        assert game.tile_map.count(TileType.BASE) == 1

    def test_hitting_the_base_loses_the_game(self, game, recorder):
        game.tile_map.set(24, 12, TileType.EMPTY)
        game.bullets.append(make_bullet(298, 596, Direction.DOWN, speed=2.0, player=False))

        assert not game.step()

        assert game.tile_map.count(TileType.BASE) == 0
        assert game.outcome is Outcome.LOSS
        assert recorder.game_overs == [(0, Outcome.LOSS)]


class TestBulletsAndTanks:
    def test_enemy_bullet_costs_a_life_and_respawns_player(self, game, recorder):
        game.player.x, game.player.y = 300, 300
        game.player.direction = Direction.LEFT
        game.bullets.append(make_bullet(309, 298, Direction.DOWN, speed=2.0, player=False))

        game.update_bullets()

        assert game.lives == 2
        assert recorder.lives == [2]
        assert (game.player.x, game.player.y) == (192, 576)
        assert game.player.direction is Direction.UP
        assert game.bullets == []
        assert game.active

    def test_last_life_ends_the_game_once(self, recorder):
        game = make_game(callbacks=recorder.as_callbacks(), starting_lives=1)
        game.bullets.append(make_bullet(200, 576, Direction.DOWN, speed=2.0, player=False))

        assert not game.step()
        game.step()
        game.end(Outcome.LOSS)

        assert game.lives == 0
        assert game.player.destroyed
        assert recorder.lives == [0]
        assert recorder.game_overs == [(0, Outcome.LOSS)]

    def test_player_bullets_pass_through_the_player(self, game):
        game.bullets.append(make_bullet(200, 590, Direction.UP))
        game.update_bullets()
        assert game.lives == 3
        assert len(game.bullets) == 1

    def test_player_bullet_destroys_basic_enemy(self, game, recorder):
        _add_enemy(game)
        game.bullets.append(make_bullet(248, 258, Direction.UP))

        game.update_bullets()

        assert game.score == 100
        assert recorder.scores == [100]
        assert game.enemies == []
        assert game.bullets == []

    def test_heavy_enemy_takes_three_hits(self, game, recorder):
        enemy = _add_enemy(game, kind=TankKind.ENEMY_HEAVY)

        for expected_health in (2, 1):
            game.bullets.append(make_bullet(248, 258, Direction.UP))
            game.update_bullets()
            assert enemy.health == expected_health
            assert game.enemies == [enemy]
            assert game.score == 0

        game.bullets.append(make_bullet(248, 258, Direction.UP))
        game.update_bullets()

        assert game.enemies == []
        assert game.score == 400
        assert recorder.scores == [400]

    def test_one_bullet_damages_only_one_enemy(self, game):
        first = _add_enemy(game, tank_id="enemy_1")
        second = _add_enemy(game, tank_id="enemy_2")
        game.bullets.append(make_bullet(248, 258, Direction.UP))

        game.update_bullets()

        assert first.destroyed
        assert not second.destroyed
        assert game.enemies == [second]

    def test_enemy_bullets_do_not_hurt_enemies(self, game):
        enemy = _add_enemy(game)
        game.bullets.append(make_bullet(248, 258, Direction.UP, speed=2.0, player=False))
        game.update_bullets()
        assert enemy.health == 1
        assert game.enemies == [enemy]

    def test_opposing_bullets_annihilate(self, game):
        game.bullets.append(make_bullet(100, 100, Direction.UP))
        game.bullets.append(make_bullet(100, 95, Direction.DOWN, speed=2.0, player=False))

        game.update_bullets()

        assert game.bullets == []

    def test_annihilated_bullets_spare_the_tanks_in_their_path(self, game, recorder):
        enemy = _add_enemy(game, x=96, y=60)
        game.player.x, game.player.y = 90, 96
        game.bullets.append(make_bullet(100, 100, Direction.UP))
        game.bullets.append(make_bullet(100, 95, Direction.DOWN, speed=2.0, player=False))

        game.update_bullets()

        assert game.bullets == []
        assert enemy.health == 1
        assert game.enemies == [enemy]
        assert game.score == 0
        assert game.lives == 3
        assert recorder.scores == []
        assert recorder.lives == []

    def test_enemy_bullet_alone_reaches_the_player_in_that_path(self, game, recorder):
        game.player.x, game.player.y = 90, 96
        game.bullets.append(make_bullet(100, 95, Direction.DOWN, speed=2.0, player=False))

        game.update_bullets()

        assert game.lives == 2
        assert recorder.lives == [2]

    def test_same_side_bullets_ignore_each_other(self, game):
        game.bullets.append(make_bullet(100, 100, Direction.UP))
        game.bullets.append(make_bullet(100, 100, Direction.UP, owner_id="p2"))
        game.update_bullets()
        assert len(game.bullets) == 2

    def test_game_over_stops_the_bullet_phase(self, game):
        game.tile_map.set(24, 12, TileType.EMPTY)
        game.tile_map.set(10, 5, TileType.BRICK)
        game.bullets.append(make_bullet(298, 596, Direction.DOWN, speed=2.0, player=False))
        game.bullets.append(make_bullet(130, 266, Direction.UP))

        game.update_bullets()

        assert game.outcome is Outcome.LOSS
        assert game.tile_map.get(10, 5) == TileType.BRICK
        assert all(not b.destroyed for b in game.bullets)


class TestSpawner:
    def test_first_enemy_after_the_interval(self, game):
        for _ in range(ENEMY_SPAWN_INTERVAL):
            game.step()
        assert game.enemies == []

        game.step()

        assert len(game.enemies) == 1
        enemy = game.enemies[0]
        assert (enemy.x, enemy.y) == (0, 0)
        assert enemy.kind is TankKind.ENEMY_BASIC
        assert enemy.tank_id == "enemy_1"
        assert enemy.direction is Direction.DOWN
        assert game.spawn_timer == 0

    def test_spawn_kind_and_point_are_random(self):
        game = make_game(rng=ScriptedRng(integers=[2, 2]))
        enemy = game.spawn_enemy()
        assert (enemy.x, enemy.y) == (576, 0)
        assert enemy.kind is TankKind.ENEMY_HEAVY
        assert enemy.health == 3

    def test_population_cap(self):
        game = make_game(rng=ScriptedRng(integers=[0, 0, 1, 0, 2, 0]), max_enemies=2)
        assert game.spawn_enemy() is not None
        assert game.spawn_enemy() is not None
        assert game.spawn_enemy() is None
        assert len(game.enemies) == 2

    def test_occupied_spawn_point_is_skipped(self, game):
        _add_enemy(game, x=10, y=10)
        assert game.spawn_enemy() is None
        assert len(game.enemies) == 1

    def test_player_blocks_a_spawn_point(self, game):
        game.player.x, game.player.y = 5, 20
        assert game.spawn_enemy() is None

    def test_destroyed_player_does_not_block(self, game):
        game.player.x, game.player.y = 5, 20
        game.player.destroyed = True
        assert game.spawn_enemy() is not None

    def test_ids_are_unique(self):
        game = make_game(rng=ScriptedRng(integers=[0, 0, 2, 0]))
        first = game.spawn_enemy()
        second = game.spawn_enemy()
        assert (first.tank_id, second.tank_id) == ("enemy_1", "enemy_2")


class TestGameOver:
    def test_no_updates_after_the_end(self, game, recorder):
        game.end(Outcome.LOSS)
        frame, timer = game.frame, game.spawn_timer

        assert not game.step({Action.MOVE_UP, Action.FIRE})

        assert game.frame == frame
        assert game.spawn_timer == timer
        assert game.bullets == []
        assert game.player.y == 576
        assert recorder.game_overs == [(0, Outcome.LOSS)]

    def test_end_only_counts_once(self, game, recorder):
        game.end(Outcome.LOSS)
        game.end(Outcome.WIN)
        assert game.outcome is Outcome.LOSS
        assert len(recorder.game_overs) == 1


class TestSnapshot:
    def test_tiles_are_read_only(self, game):
        snap = game.snapshot()
        with pytest.raises(ValueError):
            snap.tiles[0, 0] = TileType.STEEL

    def test_snapshot_is_detached_from_the_game(self, game):
        _add_enemy(game)
        snap = game.snapshot()
        snap.player.x = 0
        snap.enemies[0].health = 0
        assert game.player.x == 192
        assert game.enemies[0].health == 1

    def test_destroyed_entities_are_left_out(self, game):
        enemy = _add_enemy(game)
        enemy.destroyed = True
        assert game.snapshot().enemies == ()


def test_long_session_keeps_its_invariants():
    rng = np.random.default_rng(2024)
    game = Game(GameConfig(map_style="Classic"), rng=np.random.default_rng(1))
    moves = [None, Action.MOVE_UP, Action.MOVE_DOWN, Action.MOVE_LEFT, Action.MOVE_RIGHT]

    for _ in range(3000):
        held = set()
        move = moves[int(rng.integers(len(moves)))]
        if move is not None:
            held.add(move)
        if rng.random() < 0.3:
            held.add(Action.FIRE)

        active = game.step(held)

        assert len(game.enemies) <= 4
        assert sum(b.is_player_bullet for b in game.bullets) <= 2
        for enemy in game.enemies:
            assert sum(b.owner_id == enemy.tank_id for b in game.bullets) <= 1
        assert game.tile_map.count(TileType.BASE) <= 1
        assert game.lives >= 0
        for tank in [game.player, *game.enemies]:
            assert 0 <= tank.x <= 602 and 0 <= tank.y <= 602
            assert tank.direction in DIRECTIONS
        if not active:
            assert game.outcome is Outcome.LOSS
            break
