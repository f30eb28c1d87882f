"""
Tests para el motor de simulación de la intersección.
"""

import pytest
import sys
from dataclasses import replace
from pathlib import Path

# Agregar src al path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.simulator import (
    IntersectionSimulator, Lane, SignalPhase, SimulationStatus, SpawnScenario, VehicleState,
)
from src.simulator.vehicle import create_vehicle
from src.utils.config import SpawnConfig


def quiet_scenario():
    """Escenario sin generación automática en la ventana de los tests."""
    return SpawnScenario({group: 1000.0 for group in SpawnConfig.SPAWN_INTERVALS},
                         name="quiet")


class TestSimulatorControl:
    """Tests para la superficie de control del simulador."""

    def test_simulator_creation(self):
        """Test de creación del simulador."""
        simulator = IntersectionSimulator()

        assert simulator.status == SimulationStatus.IDLE
        assert simulator.current_phase == SignalPhase.MAIN_GO
        assert simulator.vehicles == []
        assert simulator.current_time == 0.0

    def test_invalid_parameters(self):
        """Test de validación de parámetros."""
        with pytest.raises(ValueError):
            IntersectionSimulator(session_duration=0)
        with pytest.raises(ValueError):
            IntersectionSimulator(cruise_speed=-1)
        with pytest.raises(ValueError):
            IntersectionSimulator(detection_window=0)

    def test_speed_larger_than_detection_window_rejected(self):
        """Test de que el avance por tick no puede saltar la ventana de detección."""
        with pytest.raises(ValueError):
            IntersectionSimulator(quiet_scenario(), cruise_speed=7.0)

        simulator = IntersectionSimulator(quiet_scenario(), cruise_speed=3.0)
        simulator.start()
        simulator.spawn_vehicle(Lane.SIDE_EB_STRAIGHT)
        for _ in range(200):
            simulator.step()

        vehicle = simulator.vehicles[0]
        assert vehicle.is_stopped
        assert vehicle.state == VehicleState.APPROACHING

    def test_request_ignored_when_idle(self):
        """Test de solicitud de fase sin sesión activa."""
        simulator = IntersectionSimulator()

        assert not simulator.request_phase_change(SignalPhase.SIDE_GO)
        assert simulator.current_phase == SignalPhase.MAIN_GO

    def test_step_ignored_when_idle(self):
        """Test de que step no hace nada antes de iniciar."""
        simulator = IntersectionSimulator()
        simulator.step(1.0)

        assert simulator.current_time == 0.0
        assert simulator.vehicles == []

    def test_start_and_spawn(self):
        """Test de generación tras el primer intervalo."""
        simulator = IntersectionSimulator()
        simulator.start()

        simulator.step(0.5)
        assert simulator.vehicles == []

        simulator.step(0.5)
        assert {v.lane for v in simulator.vehicles} == {
            Lane.MAIN_SB_STRAIGHT, Lane.MAIN_NB_STRAIGHT
        }
        assert [v.id for v in simulator.vehicles] == [0, 1]
        assert simulator.current_time == 1.0

    def test_phase_sequence(self):
        """Test de secuencia de fases a través del simulador."""
        simulator = IntersectionSimulator(quiet_scenario())
        simulator.start()

        assert simulator.request_phase_change(SignalPhase.SIDE_GO)
        assert simulator.current_phase == SignalPhase.MAIN_YELLOW

        for _ in range(3):
            simulator.step(1.0)
        assert simulator.current_phase == SignalPhase.ALL_RED

        simulator.step(1.0)
        assert simulator.current_phase == SignalPhase.SIDE_GO

    def test_stop(self):
        """Test de detención con temporizadores cancelados."""
        simulator = IntersectionSimulator()
        simulator.start()
        simulator.step(1.0)
        simulator.request_phase_change(SignalPhase.SIDE_GO)

        simulator.stop()

        assert simulator.status == SimulationStatus.STOPPED
        assert not simulator.traffic_generator.active
        assert not simulator.phase_controller.in_transition

        positions = [(v.x, v.y) for v in simulator.vehicles]
        simulator.step(1.0)
        assert [(v.x, v.y) for v in simulator.vehicles] == positions
        assert simulator.current_time == 1.0
        assert not simulator.request_phase_change(SignalPhase.MAIN_LEFT)

    def test_reset(self):
        """Test de reinicio del simulador."""
        simulator = IntersectionSimulator()
        simulator.start()
        for _ in range(5):
            simulator.step(0.5)
        simulator.request_phase_change(SignalPhase.SIDE_LEFT)

        simulator.reset()

        assert simulator.status == SimulationStatus.IDLE
        assert simulator.vehicles == []
        assert simulator.current_time == 0.0
        assert simulator.current_phase == SignalPhase.MAIN_GO
        assert simulator.metrics.throughput == 0
        assert simulator.traffic_generator.total_vehicles_generated == 0

    def test_ids_unique_across_reset(self):
        """Test de que los identificadores no se reutilizan."""
        simulator = IntersectionSimulator(quiet_scenario())
        simulator.start()
        first = simulator.spawn_vehicle(Lane.MAIN_SB_STRAIGHT)
        second = simulator.spawn_vehicle(Lane.SIDE_EB_LEFT)

        simulator.reset()
        simulator.start()
        third = simulator.spawn_vehicle(Lane.MAIN_SB_STRAIGHT)

        assert [first.id, second.id, third.id] == [0, 1, 2]

    def test_session_end_freezes_vehicles(self):
        """Test de fin de sesión con vehículos congelados."""
        simulator = IntersectionSimulator(session_duration=2.0)
        simulator.start()

        for _ in range(3):
            simulator.step(0.5)
        assert simulator.is_running
        assert len(simulator.vehicles) == 2

        simulator.step(0.5)
        assert simulator.status == SimulationStatus.FINISHED
        assert not simulator.traffic_generator.active

        positions = [(v.x, v.y) for v in simulator.vehicles]
        for _ in range(10):
            simulator.step(0.5)
        assert [(v.x, v.y) for v in simulator.vehicles] == positions
        assert simulator.get_render_state()['time_remaining'] == 0.0


class TestSimulationStep:
    """Tests para el paso de simulación."""

    def test_red_light_queue_and_release(self):
        """Escenario: detención en rojo y salida tras el cambio a verde."""
        simulator = IntersectionSimulator(quiet_scenario())
        simulator.start()
        simulator.spawn_vehicle(Lane.SIDE_EB_STRAIGHT)

        for _ in range(300):
            simulator.step()

        vehicle = simulator.vehicles[0]
        assert vehicle.x == 335.0
        assert vehicle.is_stopped
        assert vehicle.state == VehicleState.APPROACHING
        assert vehicle.wait_time > 0

        assert simulator.request_phase_change(SignalPhase.SIDE_GO)
        for _ in range(300):
            simulator.step()

        vehicle = simulator.vehicles[0]
        assert simulator.current_phase == SignalPhase.SIDE_GO
        assert vehicle.x > 335.0
        assert vehicle.state == VehicleState.IN_INTERSECTION_STRAIGHT

    def test_snapshot_lead_lookup(self):
        """Test de que el seguidor ve la posición del líder al inicio del tick."""
        simulator = IntersectionSimulator(quiet_scenario())
        simulator.start()

        base = create_vehicle(100, Lane.MAIN_SB_STRAIGHT, 0.0)
        leader = replace(base, y=100.0)
        follower = replace(base, id=101, y=64.0)
        simulator.vehicles.extend([leader, follower])

        simulator.step()

        leader, follower = simulator.vehicles
        assert leader.y == 102.0
        assert follower.y == 64.0
        assert follower.is_stopped

    def test_throughput_and_trip_recorded_once(self):
        """Test de throughput al salir de la caja y viaje al salir de pantalla."""
        simulator = IntersectionSimulator(quiet_scenario())
        simulator.start()
        simulator.spawn_vehicle(Lane.MAIN_SB_STRAIGHT)

        for _ in range(250):
            simulator.step(0.01)
        assert simulator.metrics.throughput == 1
        assert simulator.vehicles[0].counted
        assert simulator.metrics.completed_trips == 0

        for _ in range(150):
            simulator.step(0.01)
        assert simulator.vehicles == []
        assert simulator.metrics.throughput == 1
        assert simulator.metrics.completed_trips == 1
        assert simulator.metrics.average_trip_time() == pytest.approx(3.37)

    def test_invariants_during_run(self):
        """Test de invariantes de los vehículos durante una corrida."""
        simulator = IntersectionSimulator()
        simulator.start()
        requests = {300: SignalPhase.MAIN_LEFT, 600: SignalPhase.SIDE_GO,
                    900: SignalPhase.SIDE_LEFT}

        lanes = {}
        directions = {}
        states = {}
        for tick in range(1200):
            if tick in requests:
                simulator.request_phase_change(requests[tick])
            simulator.step()

            for vehicle in simulator.vehicles:
                assert vehicle.speed in (0.0, simulator.cruise_speed)
                assert lanes.setdefault(vehicle.id, vehicle.lane) == vehicle.lane
                directions.setdefault(vehicle.id, set()).add(vehicle.direction)
                previous = states.get(vehicle.id, VehicleState.APPROACHING)
                if previous != VehicleState.APPROACHING:
                    assert vehicle.state == previous
                states[vehicle.id] = vehicle.state
                if vehicle.has_turned:
                    assert vehicle.lane.is_left_turn

        for vehicle_id, seen in directions.items():
            assert len(seen) <= (2 if lanes[vehicle_id].is_left_turn else 1)

        generated = simulator.traffic_generator.total_vehicles_generated
        assert simulator.metrics.throughput <= generated
        assert simulator.metrics.completed_trips <= simulator.metrics.throughput


class TestSimulatorOutputs:
    """Tests para el estado de lectura y las métricas finales."""

    def test_render_state(self):
        """Test del estado consumido por el renderizador."""
        simulator = IntersectionSimulator(quiet_scenario())
        simulator.start()
        simulator.spawn_vehicle(Lane.SIDE_WB_LEFT)

        state = simulator.get_render_state()

        assert state['status'] == "running"
        assert state['phase'] == "main_go"
        assert state['phase_display'] == "Main Street Straight"
        assert len(state['lane_states']) == 8
        assert state['lane_states']['main_sb_straight'] == "green"
        assert state['lane_states']['side_wb_left'] == "red"

        vehicle = state['vehicles'][0]
        assert vehicle['lane'] == "side_wb_left"
        assert vehicle['color'] == "red"
        assert (vehicle['width'], vehicle['height']) == (25, 15)
        assert set(state['metrics']) == {'avg_trip_time', 'avg_wait_time',
                                         'completed_trips', 'throughput'}

    def test_run_with_phase_plan(self):
        """Test de corrida completa con plan de fases."""
        simulator = IntersectionSimulator(session_duration=10.0)

        metrics = simulator.run(dt=0.1, phase_plan=[(2.0, SignalPhase.SIDE_GO)])

        assert metrics['final_phase'] == "side_go"
        assert metrics['phase_changes'] == 3
        assert metrics['vehicles_generated'] > 0
        assert metrics['throughput'] >= metrics['completed_trips']

    def test_run_shorter_than_session_finishes(self):
        """Test de que run deja la sesión terminada aunque dure menos."""
        simulator = IntersectionSimulator(quiet_scenario())

        simulator.run(duration=1.0, dt=0.1)

        assert simulator.status == SimulationStatus.FINISHED
        assert not simulator.traffic_generator.active
        assert not simulator.request_phase_change(SignalPhase.SIDE_GO)

    def test_repr(self):
        """Test de representación del simulador."""
        simulator = IntersectionSimulator()
        assert "idle" in repr(simulator)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
