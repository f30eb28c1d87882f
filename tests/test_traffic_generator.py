"""
Tests para la generación de vehículos.
"""

import itertools
import json
from dataclasses import replace
import pytest
import sys
from pathlib import Path

# Agregar src al path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.simulator.intersection import Lane
from src.simulator.traffic_generator import LaneSpawner, SpawnScenario, TrafficGenerator
from src.simulator.vehicle import create_vehicle
from src.utils.config import DEFAULT_SCENARIO_FILE, RUSH_HOUR_SCENARIO_FILE, SpawnConfig


class TestSpawnScenario:
    """Tests para la clase SpawnScenario."""

    def test_default_intervals(self):
        """Test de intervalos por defecto."""
        scenario = SpawnScenario()

        assert scenario.spawn_intervals == SpawnConfig.SPAWN_INTERVALS
        assert scenario.distribution == "fixed"

    def test_partial_override(self):
        """Test de intervalos parciales."""
        scenario = SpawnScenario({"main_left": 3.0})

        assert scenario.spawn_intervals["main_left"] == 3.0
        assert scenario.spawn_intervals["main_straight"] == 1.0

    def test_validation(self):
        """Test de validación de parámetros."""
        with pytest.raises(ValueError):
            SpawnScenario({"main_straight": 0})
        with pytest.raises(ValueError):
            SpawnScenario({"bus_lane": 1.0})
        with pytest.raises(ValueError):
            SpawnScenario(distribution="uniform")

    def test_scenario_loading(self):
        """Test de carga de escenario desde archivo."""
        scenario = SpawnScenario.from_file(str(DEFAULT_SCENARIO_FILE))
        assert scenario.distribution == "fixed"
        assert scenario.spawn_intervals["side_left"] == 7.0

        rush = SpawnScenario.from_file(str(RUSH_HOUR_SCENARIO_FILE))
        assert rush.distribution == "poisson"
        assert rush.random_seed == 42

    def test_scenario_from_tmp_file(self, tmp_path):
        """Test de carga desde un archivo propio."""
        path = tmp_path / "custom.json"
        path.write_text(json.dumps({
            "scenario_name": "custom",
            "spawn_intervals_s": {"side_straight": 4.0}
        }), encoding="utf-8")

        scenario = SpawnScenario.from_file(str(path))
        assert scenario.name == "custom"
        assert scenario.spawn_intervals["side_straight"] == 4.0

    def test_missing_file(self, tmp_path):
        """Test de archivo inexistente."""
        with pytest.raises(FileNotFoundError):
            SpawnScenario.from_file(str(tmp_path / "missing.json"))


class TestLaneSpawner:
    """Tests para los temporizadores repetitivos."""

    def test_fires_after_interval(self):
        """Test de primer disparo tras un intervalo."""
        spawner = LaneSpawner("main_straight", 1.0)
        spawner.start()

        assert spawner.update(0.5) == 0
        assert spawner.update(0.5) == 1
        assert spawner.update(0.5) == 0
        assert spawner.update(0.5) == 1
        assert spawner.fired == 2

    def test_multiple_firings_in_one_step(self):
        """Test de varios disparos vencidos en un paso largo."""
        spawner = LaneSpawner("side_left", 2.0)
        spawner.start()

        assert spawner.update(5.0) == 2

    def test_inactive_never_fires(self):
        """Test de temporizador cancelado."""
        spawner = LaneSpawner("main_left", 1.0)
        assert spawner.update(10.0) == 0

        spawner.start()
        spawner.cancel()
        assert spawner.update(10.0) == 0


class TestTrafficGenerator:
    """Tests para la clase TrafficGenerator."""

    def test_generator_creation(self):
        """Test de creación del generador."""
        generator = TrafficGenerator()

        assert len(generator.spawners) == 4
        assert generator.total_vehicles_generated == 0
        assert not generator.active

    def test_vehicle_generation(self):
        """Test de un vehículo por acceso del grupo que dispara."""
        generator = TrafficGenerator()
        generator.start()
        ids = itertools.count()

        spawned = generator.update(1.0, 0.0, [], lambda: next(ids))

        assert {v.lane for v in spawned} == {Lane.MAIN_SB_STRAIGHT, Lane.MAIN_NB_STRAIGHT}
        assert [v.id for v in spawned] == [0, 1]
        assert generator.total_vehicles_generated == 2

        spawned = generator.update(1.0, 1.0, spawned, lambda: next(ids))
        lanes = {v.lane for v in spawned}
        assert Lane.SIDE_EB_STRAIGHT in lanes and Lane.SIDE_WB_STRAIGHT in lanes

    def test_blocked_entry_skips_spawn(self):
        """Test de que una entrada ocupada no genera vehículo."""
        generator = TrafficGenerator()
        generator.start()
        blocker = create_vehicle(99, Lane.MAIN_SB_STRAIGHT, 0.0)

        spawned = generator.update(1.0, 1.0, [blocker], lambda: 100)

        assert [v.lane for v in spawned] == [Lane.MAIN_NB_STRAIGHT]
        assert generator.skipped_spawns == 1

    def test_entry_clear_once_vehicle_moves_away(self):
        """Test de entrada libre cuando el anterior avanzó lo suficiente."""
        generator = TrafficGenerator()
        near = create_vehicle(1, Lane.MAIN_SB_STRAIGHT, 0.0)
        far = replace(near, y=near.y + 40)

        assert not generator.is_entry_clear(Lane.MAIN_SB_STRAIGHT, [near])
        assert generator.is_entry_clear(Lane.MAIN_SB_STRAIGHT, [far])
        assert generator.is_entry_clear(Lane.MAIN_NB_STRAIGHT, [near])

    def test_random_seed(self):
        """Test de reproducibilidad con semilla en modo Poisson."""
        scenario = SpawnScenario(distribution="poisson", random_seed=7)

        gen1 = TrafficGenerator(scenario)
        gen2 = TrafficGenerator(scenario)
        gen1.start()
        gen2.start()

        times1 = [s.time_until_spawn for s in gen1.spawners]
        times2 = [s.time_until_spawn for s in gen2.spawners]
        assert times1 == times2
        assert times1 != [s.interval for s in gen1.spawners]

    def test_cancel(self):
        """Test de cancelación de los generadores."""
        generator = TrafficGenerator()
        generator.start()
        assert generator.active

        generator.cancel()
        assert not generator.active
        assert generator.update(10.0, 0.0, [], lambda: 0) == []

    def test_spawn_statistics(self):
        """Test de estadísticas de generación."""
        generator = TrafficGenerator()
        generator.start()
        ids = itertools.count()
        generator.update(1.0, 0.0, [], lambda: next(ids))

        stats = generator.get_spawn_statistics()
        assert stats['total_generated'] == 2
        assert stats['fired_by_group']['main_straight'] == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
