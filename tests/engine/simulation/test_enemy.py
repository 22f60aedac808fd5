"""Unit tests for Enemy — profiles, path following, damage and death."""

from __future__ import annotations

import pytest

from cozy_engine.simulation.enemy import (
    DEATH_GRACE,
    ENEMY_PROFILES,
    Enemy,
    EnemyKind,
    EnemyState,
    resolve_enemy_kind,
)

pytestmark = pytest.mark.unit

# 120-unit legs; a basic enemy (60 u/s) covers half a leg per second
L_PATH = [(0.0, 0.0), (120.0, 0.0), (120.0, 120.0)]


def _basic(path=L_PATH, **kwargs) -> Enemy:
    return Enemy.spawn("enemy-1", "basic", path, **kwargs)


class TestProfiles:
    def test_every_kind_has_a_profile(self):
        for kind in EnemyKind:
            assert kind in ENEMY_PROFILES

    def test_unknown_kind_falls_back_to_basic(self):
        assert resolve_enemy_kind("kraken") == EnemyKind.BASIC

    def test_spawn_applies_profile(self):
        enemy = Enemy.spawn("e", "tank", L_PATH)
        profile = ENEMY_PROFILES[EnemyKind.TANK]
        assert enemy.hp == profile.hp
        assert enemy.speed == profile.speed
        assert enemy.reward == profile.reward
        assert enemy.base_damage == profile.base_damage

    def test_spawn_applies_multipliers(self):
        enemy = _basic(speed_mult=1.5, health_mult=2.0)
        assert enemy.speed == pytest.approx(90.0)
        assert enemy.hp == pytest.approx(200.0)
        assert enemy.max_hp == pytest.approx(200.0)


class TestSpawn:
    def test_starts_at_first_waypoint(self):
        enemy = _basic()
        assert enemy.position == (0.0, 0.0)
        assert enemy.state == EnemyState.WALKING
        assert enemy.is_active

    def test_invalid_path_spawns_inactive(self):
        enemy = _basic(path=[(5.0, 5.0)])
        assert not enemy.is_active
        assert enemy.state == EnemyState.DEAD
        assert enemy.tick(1.0) is False

    def test_start_offset_mid_segment(self):
        enemy = _basic(start_offset=30.0)
        assert enemy.position == pytest.approx((30.0, 0.0))
        assert enemy.waypoint_index == 0
        assert enemy.segment_progress == pytest.approx(0.25)

    def test_start_offset_on_waypoint(self):
        enemy = _basic(start_offset=120.0)
        assert enemy.position == pytest.approx((120.0, 0.0))
        assert enemy.waypoint_index == 1
        assert enemy.segment_progress == 0.0


class TestMovement:
    def test_moves_along_segment(self):
        enemy = _basic()
        enemy.tick(1.0)
        assert enemy.position == pytest.approx((60.0, 0.0))
        assert enemy.segment_progress == pytest.approx(0.5)

    def test_snaps_to_waypoint_and_resets_progress(self):
        enemy = _basic()
        enemy.tick(1.0)
        enemy.tick(1.0)
        assert enemy.position == (120.0, 0.0)
        assert enemy.waypoint_index == 1
        assert enemy.segment_progress == 0.0

    def test_distance_travelled_follows_the_path(self):
        enemy = _basic()
        for _ in range(3):
            enemy.tick(1.0)
        assert enemy.position == pytest.approx((120.0, 60.0))
        assert enemy.distance_travelled == pytest.approx(180.0)
        assert enemy.to_dict()["distance_travelled"] == pytest.approx(180.0)

    def test_overshoot_still_snaps(self):
        enemy = _basic()
        enemy.tick(5.0)
        assert enemy.position == (120.0, 0.0)
        assert enemy.waypoint_index == 1

    def test_arrival_deactivates_once(self):
        enemy = _basic()
        arrivals = [enemy.tick(1.0) for _ in range(6)]
        assert arrivals.count(True) == 1
        assert enemy.state == EnemyState.ARRIVED
        assert not enemy.is_active
        assert enemy.position == (120.0, 120.0)

    def test_zero_length_segment_is_skipped(self):
        enemy = _basic(path=[(0.0, 0.0), (0.0, 0.0), (60.0, 0.0)])
        enemy.tick(0.1)
        assert enemy.waypoint_index == 1
        enemy.tick(1.0)
        assert enemy.state == EnemyState.ARRIVED


class TestDamage:
    def test_damage_reduces_hp(self):
        enemy = _basic()
        assert enemy.apply_damage(30) is False
        assert enemy.hp == pytest.approx(70.0)
        assert enemy.health_fraction == pytest.approx(0.7)

    def test_kill_reported_exactly_once(self):
        enemy = _basic()
        assert enemy.apply_damage(100) is True
        assert enemy.apply_damage(100) is False
        assert enemy.state == EnemyState.DYING
        assert enemy.hp == 0.0

    def test_overkill_clamps_at_zero(self):
        enemy = _basic()
        enemy.apply_damage(500)
        assert enemy.hp == 0.0

    def test_negative_damage_never_heals(self):
        enemy = _basic()
        enemy.apply_damage(-50)
        assert enemy.hp == pytest.approx(100.0)

    def test_dying_is_not_targetable(self):
        enemy = _basic()
        assert enemy.is_targetable
        enemy.apply_damage(100)
        assert not enemy.is_targetable
        assert enemy.is_active

    def test_death_grace_then_dead(self):
        enemy = _basic()
        enemy.apply_damage(100)
        enemy.tick(DEATH_GRACE / 2)
        assert enemy.state == EnemyState.DYING
        enemy.tick(DEATH_GRACE / 2)
        assert enemy.state == EnemyState.DEAD
        assert not enemy.is_active

    def test_arrived_enemy_ignores_damage(self):
        enemy = _basic(path=[(0.0, 0.0), (6.0, 0.0)])
        enemy.tick(1.0)
        assert enemy.state == EnemyState.ARRIVED
        assert enemy.apply_damage(100) is False
        assert enemy.hp == pytest.approx(100.0)


class TestInvariants:
    def test_hp_monotonic_and_position_frozen_outside_walking(self):
        enemy = _basic()
        history_hp = [enemy.hp]
        enemy.tick(0.5)
        enemy.apply_damage(40)
        history_hp.append(enemy.hp)
        enemy.tick(0.5)
        enemy.apply_damage(80)
        history_hp.append(enemy.hp)
        frozen_at = enemy.position
        for _ in range(5):
            enemy.tick(0.3)
            enemy.apply_damage(10)
            history_hp.append(enemy.hp)
            assert enemy.position == frozen_at
        assert history_hp == sorted(history_hp, reverse=True)

    def test_to_dict_is_render_view(self):
        data = _basic().to_dict()
        assert data["kind"] == "basic"
        assert data["state"] == "walking"
        assert data["position"] == {"x": 0.0, "y": 0.0}
