"""Unit tests for difficulty tiers."""

from __future__ import annotations

import pytest

from cozy_engine.simulation.difficulty import DIFFICULTY_TIERS, get_difficulty
from cozy_engine.simulation.enemy import EnemyKind

pytestmark = pytest.mark.unit


class TestDifficultyTiers:
    def test_three_levels(self):
        assert sorted(DIFFICULTY_TIERS) == ["1", "2", "3"]

    def test_level_one_defaults(self):
        tier = get_difficulty("1")
        assert tier.spawn_interval == 6.0
        assert tier.starting_gold == 200
        assert tier.starting_health == 20

    def test_levels_get_harder(self):
        tiers = [get_difficulty(level) for level in ("1", "2", "3")]
        assert [t.spawn_interval for t in tiers] == sorted((t.spawn_interval for t in tiers), reverse=True)
        assert [t.health_mult for t in tiers] == sorted(t.health_mult for t in tiers)
        assert [len(t.waves) for t in tiers] == sorted(len(t.waves) for t in tiers)

    def test_int_level_accepted(self):
        assert get_difficulty(3).name == "Volcano"

    def test_unknown_level_falls_back(self):
        assert get_difficulty("9").level == "1"
        assert get_difficulty(None).level == "1"

    def test_wave_tables_use_known_kinds(self):
        known = {k.value for k in EnemyKind}
        for tier in DIFFICULTY_TIERS.values():
            for wave in tier.waves:
                assert wave.count > 0
                assert {e.enemy_kind for e in wave.entries} <= known

    def test_final_wave_name(self):
        assert get_difficulty("3").waves[-1].name == "FINAL STAND"
