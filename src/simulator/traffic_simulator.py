"""
Motor principal de simulación de la intersección.

Este módulo implementa el simulador que coordina todos los componentes:
controlador de fases, generadores de vehículos, vehículos y métricas.
Ofrece además la superficie de control (iniciar, detener, reiniciar,
solicitar fase) y el estado de lectura que consume el renderizador.
"""

import itertools
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from src.utils.config import SimulatorConfig, TrafficLightConfig
from src.utils.metrics import MetricsAggregator
from src.visualization.intersection_plot import plot_intersection
from .intersection import Lane
from .traffic_generator import SpawnScenario, TrafficGenerator
from .traffic_light import PhaseController, SignalPhase
from .vehicle import (
    Vehicle, create_vehicle, is_off_screen, is_past_intersection, update_vehicle,
)

logger = logging.getLogger(__name__)


class SimulationStatus(Enum):
    """Estados de la sesión de simulación."""
    IDLE = "idle"          # Listo para iniciar
    RUNNING = "running"    # Corriendo
    STOPPED = "stopped"    # Detenido manualmente
    FINISHED = "finished"  # Terminó la duración de la sesión


@dataclass
class SimulationState:
    """Estado mutable completo de una sesión, propiedad del simulador."""
    phase_controller: PhaseController
    metrics: MetricsAggregator = field(default_factory=MetricsAggregator)
    vehicles: List[Vehicle] = field(default_factory=list)
    current_time: float = 0.0
    time_remaining: float = 0.0
    status: SimulationStatus = SimulationStatus.IDLE


class IntersectionSimulator:
    """
    Motor principal de simulación de la intersección.

    Cada llamada a step() es un tick: avanza el reloj de sesión, el
    controlador de fases y los generadores; actualiza cada vehículo una vez
    contra una foto de las posiciones tomada al inicio del tick; y reporta
    a las métricas los vehículos que salieron de la caja o de la pantalla.
    """

    def __init__(self, scenario: Optional[SpawnScenario] = None,
                 session_duration: float = SimulatorConfig.SESSION_DURATION,
                 initial_phase: SignalPhase = SignalPhase(TrafficLightConfig.INITIAL_PHASE),
                 yellow_duration: float = TrafficLightConfig.YELLOW_DURATION,
                 all_red_duration: float = TrafficLightConfig.ALL_RED_DURATION,
                 cruise_speed: float = SimulatorConfig.CRUISE_SPEED,
                 safe_gap: float = SimulatorConfig.SAFE_GAP,
                 detection_window: float = SimulatorConfig.DETECTION_WINDOW):
        """
        Inicializa el simulador.

        Args:
            scenario: Escenario de generación de vehículos
            session_duration: Duración de la sesión en segundos
            initial_phase: Fase con la que arranca el semáforo
            yellow_duration: Duración del amarillo en segundos
            all_red_duration: Duración del todo-rojo en segundos
            cruise_speed: Velocidad de crucero en px por tick
            safe_gap: Distancia de seguridad parachoques a parachoques
            detection_window: Ancho de la ventana previa a la línea

        Raises:
            ValueError: Si algún parámetro no es válido
        """
        if session_duration <= 0:
            raise ValueError(f"Duración de sesión inválida: {session_duration}s")
        if cruise_speed <= 0:
            raise ValueError(f"Velocidad de crucero inválida: {cruise_speed}")
        if detection_window <= 0:
            raise ValueError(f"Ventana de detección inválida: {detection_window}")
        # Con un avance mayor que la ventana, el frente puede saltarla en rojo
        if cruise_speed > detection_window:
            raise ValueError(f"Velocidad de crucero {cruise_speed} mayor que la "
                             f"ventana de detección {detection_window}")

        self.session_duration = session_duration
        self.cruise_speed = cruise_speed
        self.safe_gap = safe_gap
        self.detection_window = detection_window

        self.traffic_generator = TrafficGenerator(scenario, cruise_speed=cruise_speed,
                                                  safe_gap=safe_gap)
        self.state = SimulationState(
            phase_controller=PhaseController(initial_phase, yellow_duration,
                                             all_red_duration),
            time_remaining=session_duration
        )

        # Los identificadores nunca se reutilizan, ni siquiera tras reiniciar
        self._id_counter = itertools.count()

        logger.info("Simulador inicializado (escenario: %s, sesión: %.0fs)",
                    self.traffic_generator.scenario.name, session_duration)

    # Accesos de lectura

    @property
    def phase_controller(self) -> PhaseController:
        return self.state.phase_controller

    @property
    def metrics(self) -> MetricsAggregator:
        return self.state.metrics

    @property
    def vehicles(self) -> List[Vehicle]:
        return self.state.vehicles

    @property
    def current_phase(self) -> SignalPhase:
        return self.state.phase_controller.current_phase

    @property
    def current_time(self) -> float:
        return self.state.current_time

    @property
    def status(self) -> SimulationStatus:
        return self.state.status

    @property
    def is_running(self) -> bool:
        return self.state.status == SimulationStatus.RUNNING

    # Superficie de control

    def start(self):
        """Reinicia todo el estado y arranca generadores y reloj de sesión."""
        self._clear()
        self.traffic_generator.start()
        self.state.status = SimulationStatus.RUNNING
        logger.info("Simulación iniciada (%.0fs)", self.session_duration)

    def stop(self):
        """Detiene la sesión y cancela todos los temporizadores pendientes."""
        if self.state.status != SimulationStatus.RUNNING:
            return
        self._cancel_timers()
        self.state.status = SimulationStatus.STOPPED
        logger.info("Simulación detenida en t=%.2fs", self.state.current_time)

    def reset(self):
        """Borra vehículos, métricas, fase y temporizadores; vuelve a IDLE."""
        self._clear()
        self.state.status = SimulationStatus.IDLE
        logger.info("Simulación reiniciada")

    def request_phase_change(self, phase: SignalPhase) -> bool:
        """
        Solicita un cambio de fase.

        Args:
            phase: Fase estable deseada

        Returns:
            bool: True si se inició la transición; False si la simulación no
                  está corriendo, ya hay una transición en curso o la fase
                  ya está activa
        """
        if not self.is_running:
            logger.debug("Solicitud %s ignorada: simulación no activa", phase.value)
            return False
        return self.state.phase_controller.request_phase(phase)

    def _cancel_timers(self):
        self.traffic_generator.cancel()
        self.state.phase_controller.cancel()

    def _clear(self):
        self._cancel_timers()
        self.traffic_generator.reset()
        self.state.phase_controller.reset()
        self.state.metrics.reset()
        self.state.vehicles.clear()
        self.state.current_time = 0.0
        self.state.time_remaining = self.session_duration

    def _next_id(self) -> int:
        return next(self._id_counter)

    # Paso de simulación

    def spawn_vehicle(self, lane: Lane) -> Vehicle:
        """
        Crea un vehículo en la entrada de un carril y lo agrega a la colección.

        Es el punto de entrada de los generadores externos; no comprueba
        la ocupación de la entrada.

        Args:
            lane: Carril de entrada

        Returns:
            Vehicle: El vehículo creado
        """
        vehicle = create_vehicle(self._next_id(), lane, self.state.current_time,
                                 speed=self.cruise_speed)
        self.state.vehicles.append(vehicle)
        return vehicle

    def step(self, dt: float = SimulatorConfig.TIME_STEP):
        """
        Ejecuta un tick de simulación.

        Este es el método central que coordina todas las actualizaciones.
        Fuera del estado RUNNING no hace nada: al terminar la sesión los
        vehículos quedan congelados para su visualización.

        Args:
            dt: Duración del tick en segundos
        """
        if not self.is_running:
            return

        state = self.state

        # 1. Reloj de sesión
        state.time_remaining -= dt
        if state.time_remaining <= 1e-9:
            self._finish()
            return

        # 2. Temporizadores del semáforo
        state.phase_controller.update(dt)

        # 3. Generar nuevos vehículos
        state.vehicles.extend(self.traffic_generator.update(
            dt, state.current_time, state.vehicles, self._next_id))

        # 4. Actualizar vehículos contra la foto del inicio del tick
        self._update_vehicles(dt)

        # 5. Throughput y limpieza fuera de pantalla
        self._collect_metrics()

        # 6. Avanzar tiempo
        state.current_time += dt

    def _update_vehicles(self, dt: float):
        snapshot: Tuple[Vehicle, ...] = tuple(self.state.vehicles)
        controller = self.state.phase_controller

        updated = []
        for vehicle in snapshot:
            next_vehicle = update_vehicle(
                vehicle, controller.get_lane_state(vehicle.lane), snapshot,
                cruise_speed=self.cruise_speed, safe_gap=self.safe_gap,
                detection_window=self.detection_window
            )
            if next_vehicle.is_stopped:
                next_vehicle = _with_wait(next_vehicle, dt)
            updated.append(next_vehicle)

        self.state.vehicles[:] = updated

    def _collect_metrics(self):
        state = self.state
        remaining = []

        for vehicle in state.vehicles:
            if not vehicle.counted and is_past_intersection(vehicle):
                state.metrics.record_throughput(vehicle)
                vehicle = _mark_counted(vehicle)

            if is_off_screen(vehicle):
                state.metrics.record_trip(vehicle, state.current_time)
                logger.debug("Vehículo #%d eliminado (viaje %.2fs)", vehicle.id,
                             state.current_time - vehicle.spawn_time)
                continue

            remaining.append(vehicle)

        state.vehicles[:] = remaining

    def _finish(self):
        self._cancel_timers()
        self.state.time_remaining = 0.0
        self.state.status = SimulationStatus.FINISHED
        logger.info("Sesión finalizada: %d viajes, throughput %d, viaje promedio %.2fs",
                    self.metrics.completed_trips, self.metrics.throughput,
                    self.metrics.average_trip_time())

    def run(self, duration: Optional[float] = None,
            dt: float = SimulatorConfig.TIME_STEP,
            phase_plan: Optional[Iterable[Tuple[float, SignalPhase]]] = None) -> Dict:
        """
        Ejecuta una sesión completa sin interfaz gráfica.

        Al retornar, la sesión queda en estado FINISHED aunque `duration`
        sea menor que la duración de sesión.

        Args:
            duration: Segundos a simular (default: la duración de sesión)
            dt: Duración del tick en segundos
            phase_plan: Pares (tiempo, fase) con las solicitudes de cambio
                        a emitir durante la corrida

        Returns:
            dict: Métricas finales de la simulación
        """
        self.start()
        plan = sorted(phase_plan or [], key=lambda item: item[0])
        duration = self.session_duration if duration is None else duration

        num_steps = int(round(duration / dt))
        for _ in range(num_steps):
            while plan and plan[0][0] <= self.state.current_time:
                _, phase = plan.pop(0)
                self.request_phase_change(phase)
            self.step(dt)
            if not self.is_running:
                break

        if self.is_running:
            self._finish()

        return self.calculate_final_metrics()

    def calculate_final_metrics(self) -> Dict:
        """
        Calcula métricas finales de la simulación.

        Returns:
            dict: Diccionario con todas las métricas
        """
        metrics = self.metrics.to_dict()
        metrics.update({
            'vehicles_active': len(self.state.vehicles),
            'vehicles_generated': self.traffic_generator.total_vehicles_generated,
            'simulation_time': self.state.current_time,
            'final_phase': self.current_phase.value,
            'phase_changes': len(self.phase_controller.phase_change_history)
        })
        return metrics

    def get_render_state(self) -> Dict:
        """
        Retorna el estado de lectura para el renderizador.

        Returns:
            dict: Fase, luces por carril, vehículos, métricas y reloj
        """
        controller = self.state.phase_controller
        return {
            'status': self.state.status.value,
            'time': self.state.current_time,
            'time_remaining': max(0.0, self.state.time_remaining),
            'phase': controller.current_phase.value,
            'phase_display': controller.current_phase.display_name,
            'in_transition': controller.in_transition,
            'lane_states': {lane.value: light.value
                            for lane, light in controller.get_lane_states().items()},
            'vehicles': [
                {
                    'id': v.id,
                    'x': v.x,
                    'y': v.y,
                    'width': v.width,
                    'height': v.height,
                    'color': v.color,
                    'lane': v.lane.value,
                    'direction': v.direction.value,
                    'state': v.state.value,
                    'speed': v.speed
                }
                for v in self.state.vehicles
            ],
            'metrics': self.metrics.to_dict()
        }

    def visualize_current_state(self, figsize=None):
        """
        Dibuja el estado actual con matplotlib.

        Returns:
            plt.Figure: Figura de matplotlib
        """
        return plot_intersection(self.get_render_state(), figsize=figsize)

    def __repr__(self) -> str:
        return (f"IntersectionSimulator(status={self.state.status.value}, "
                f"t={self.state.current_time:.2f}s, "
                f"vehicles={len(self.state.vehicles)}, "
                f"phase={self.current_phase.value})")


def _with_wait(vehicle: Vehicle, dt: float) -> Vehicle:
    return replace(vehicle, wait_time=vehicle.wait_time + dt)


def _mark_counted(vehicle: Vehicle) -> Vehicle:
    return replace(vehicle, counted=True)
