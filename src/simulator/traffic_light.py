"""
Controlador de fases del semáforo con intervalos de despeje.

Este módulo implementa el semáforo de la intersección como una máquina
de estados explícita: cuatro fases estables (solicitables) y tres fases
transitorias (amarillo principal, amarillo secundario y todo-rojo).
Todo cambio entre verdes pasa obligatoriamente por amarillo y todo-rojo.
El tiempo restante de cada fase transitoria lo avanza el propio tick de
la simulación, sin temporizadores de reloj.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional, Tuple

from src.utils.config import TrafficLightConfig
from .intersection import Approach, Lane, Movement

logger = logging.getLogger(__name__)

# Tolerancia para acumulación de dt en coma flotante
_EPSILON = 1e-9


class LightState(Enum):
    """Estado de la luz para un carril."""
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


class SignalPhase(Enum):
    """Fases del controlador."""
    MAIN_GO = "main_go"
    MAIN_LEFT = "main_left"
    SIDE_GO = "side_go"
    SIDE_LEFT = "side_left"
    MAIN_YELLOW = "main_yellow"
    SIDE_YELLOW = "side_yellow"
    ALL_RED = "all_red"

    @property
    def is_stable(self) -> bool:
        """True para las fases de verde que pueden solicitarse."""
        return self in STABLE_PHASES

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


STABLE_PHASES = (
    SignalPhase.MAIN_GO,
    SignalPhase.MAIN_LEFT,
    SignalPhase.SIDE_GO,
    SignalPhase.SIDE_LEFT,
)

_DISPLAY_NAMES = {
    SignalPhase.MAIN_GO: "Main Street Straight",
    SignalPhase.MAIN_LEFT: "Main Street Left",
    SignalPhase.SIDE_GO: "Side Street Straight",
    SignalPhase.SIDE_LEFT: "Side Street Left",
    SignalPhase.MAIN_YELLOW: "Main Street Yellow",
    SignalPhase.SIDE_YELLOW: "Side Street Yellow",
    SignalPhase.ALL_RED: "All Red",
}

# Acceso y maniobra habilitados por cada fase estable
_PHASE_MOVEMENTS: Dict[SignalPhase, Tuple[Approach, Movement]] = {
    SignalPhase.MAIN_GO: (Approach.MAIN, Movement.STRAIGHT),
    SignalPhase.MAIN_LEFT: (Approach.MAIN, Movement.LEFT),
    SignalPhase.SIDE_GO: (Approach.SIDE, Movement.STRAIGHT),
    SignalPhase.SIDE_LEFT: (Approach.SIDE, Movement.LEFT),
}


def phase_lanes(phase: SignalPhase) -> Tuple[Lane, ...]:
    """
    Carriles habilitados por una fase estable.

    Args:
        phase: Fase a consultar

    Returns:
        tuple: Los dos carriles (uno por sentido) de la fase, o vacío si
               la fase es transitoria
    """
    if phase not in _PHASE_MOVEMENTS:
        return ()
    approach, movement = _PHASE_MOVEMENTS[phase]
    return tuple(lane for lane in Lane
                 if lane.approach == approach and lane.movement == movement)


def yellow_for(phase: SignalPhase) -> SignalPhase:
    """Fase de amarillo correspondiente al acceso que se abandona."""
    if phase in (SignalPhase.MAIN_GO, SignalPhase.MAIN_LEFT):
        return SignalPhase.MAIN_YELLOW
    if phase in (SignalPhase.SIDE_GO, SignalPhase.SIDE_LEFT):
        return SignalPhase.SIDE_YELLOW
    return SignalPhase.ALL_RED


def lane_light_state(phase: SignalPhase, lane: Lane,
                     vacating_phase: Optional[SignalPhase] = None) -> LightState:
    """
    Deriva el estado de la luz de un carril a partir de la fase actual.

    Durante una fase estable sus dos carriles están en verde; durante un
    amarillo, los dos carriles de la fase que se abandona están en amarillo;
    en todo-rojo todos están en rojo.

    Args:
        phase: Fase actual del controlador
        lane: Carril a consultar
        vacating_phase: Fase estable que se está abandonando (solo relevante
                        durante los amarillos)

    Returns:
        LightState: Estado de la luz para ese carril
    """
    if phase.is_stable:
        return LightState.GREEN if lane in phase_lanes(phase) else LightState.RED

    if phase in (SignalPhase.MAIN_YELLOW, SignalPhase.SIDE_YELLOW):
        if vacating_phase is not None and lane in phase_lanes(vacating_phase):
            return LightState.YELLOW

    return LightState.RED


class PhaseController:
    """
    Controlador de fases del semáforo de la intersección.

    Protocolo de cambio: una solicitud de fase estable pasa primero al
    amarillo del acceso activo, luego a todo-rojo, y finalmente a la fase
    solicitada. Las solicitudes que llegan durante una transición se
    descartan, no se encolan.
    """

    def __init__(self, initial_phase: SignalPhase = SignalPhase(TrafficLightConfig.INITIAL_PHASE),
                 yellow_duration: float = TrafficLightConfig.YELLOW_DURATION,
                 all_red_duration: float = TrafficLightConfig.ALL_RED_DURATION):
        """
        Inicializa el controlador.

        Args:
            initial_phase: Fase estable con la que arranca el semáforo
            yellow_duration: Duración del amarillo en segundos
            all_red_duration: Duración del todo-rojo en segundos

        Raises:
            ValueError: Si la fase inicial no es estable o las duraciones
                        no son positivas
        """
        if not initial_phase.is_stable:
            raise ValueError(f"La fase inicial debe ser estable: {initial_phase.value}")
        if yellow_duration <= 0:
            raise ValueError(f"Duración de amarillo inválida: {yellow_duration}s")
        if all_red_duration <= 0:
            raise ValueError(f"Duración de todo-rojo inválida: {all_red_duration}s")

        self.initial_phase = initial_phase
        self.yellow_duration = yellow_duration
        self.all_red_duration = all_red_duration

        self.current_phase = initial_phase
        self.target_phase: Optional[SignalPhase] = None
        self.vacating_phase: Optional[SignalPhase] = None
        self.time_remaining = 0.0
        self.elapsed_time = 0.0

        self.phase_change_history: List[Dict] = []

    @property
    def in_transition(self) -> bool:
        """True mientras hay un cambio de fase en curso."""
        return self.target_phase is not None

    def request_phase(self, target: SignalPhase) -> bool:
        """
        Solicita un cambio a una fase estable.

        Args:
            target: Fase estable deseada

        Returns:
            bool: True si se inició la transición, False si se ignoró
                  (transición en curso o fase ya activa)

        Raises:
            ValueError: Si se solicita una fase transitoria
        """
        if not target.is_stable:
            raise ValueError(f"Solo pueden solicitarse fases estables: {target.value}")

        if self.in_transition:
            logger.debug("Solicitud %s ignorada: transición en curso hacia %s",
                         target.value, self.target_phase.value)
            return False
        if target == self.current_phase:
            logger.debug("Solicitud %s ignorada: fase ya activa", target.value)
            return False

        self.target_phase = target
        if self.current_phase.is_stable:
            self.vacating_phase = self.current_phase
            self._set_phase(yellow_for(self.current_phase), self.yellow_duration)
        else:
            self.vacating_phase = None
            self._set_phase(SignalPhase.ALL_RED, self.all_red_duration)

        logger.info("Cambio de fase solicitado: %s -> %s",
                    self.vacating_phase.value if self.vacating_phase else "-",
                    target.value)
        return True

    def update(self, dt: float):
        """
        Avanza el reloj del controlador y ejecuta las transiciones vencidas.

        Args:
            dt: Paso de tiempo (segundos)
        """
        self.elapsed_time += dt

        if not self.in_transition:
            return

        self.time_remaining -= dt
        while self.in_transition and self.time_remaining <= _EPSILON:
            overshoot = self.time_remaining
            if self.current_phase in (SignalPhase.MAIN_YELLOW, SignalPhase.SIDE_YELLOW):
                self._set_phase(SignalPhase.ALL_RED, self.all_red_duration + overshoot)
            else:
                target = self.target_phase
                self.target_phase = None
                self.vacating_phase = None
                self._set_phase(target, 0.0)

    def get_lane_state(self, lane: Lane) -> LightState:
        """Estado de la luz para un carril en la fase actual."""
        return lane_light_state(self.current_phase, lane, self.vacating_phase)

    def get_lane_states(self) -> Dict[Lane, LightState]:
        """Estado de la luz de los ocho carriles."""
        return {lane: self.get_lane_state(lane) for lane in Lane}

    def cancel(self):
        """
        Cancela la transición en curso, si la hay.

        La fase actual queda como está; solo se descartan los temporizadores
        pendientes para que no muten un estado ya detenido.
        """
        if self.in_transition:
            logger.debug("Transición hacia %s cancelada", self.target_phase.value)
        self.target_phase = None
        self.time_remaining = 0.0

    def reset(self):
        """Reinicia el controlador a la fase inicial."""
        self.current_phase = self.initial_phase
        self.target_phase = None
        self.vacating_phase = None
        self.time_remaining = 0.0
        self.elapsed_time = 0.0
        self.phase_change_history.clear()

    def _set_phase(self, phase: SignalPhase, duration: float):
        self.current_phase = phase
        self.time_remaining = duration
        self.phase_change_history.append({
            'time': self.elapsed_time,
            'phase': phase.value
        })
        logger.debug("Fase actual: %s (t=%.2fs)", phase.value, self.elapsed_time)

    def get_status_string(self) -> str:
        """
        Retorna una representación del estado actual.

        Returns:
            str: String con estado formateado
        """
        status = f"Fase: {self.current_phase.display_name}"
        if self.in_transition:
            status += (f" | Hacia: {self.target_phase.display_name}"
                       f" | Restante: {self.time_remaining:.1f}s")
        return status

    def __str__(self) -> str:
        return f"PhaseController({self.current_phase.value})"

    def __repr__(self) -> str:
        return (f"PhaseController(phase={self.current_phase.value}, "
                f"target={self.target_phase.value if self.target_phase else None}, "
                f"yellow={self.yellow_duration}s, all_red={self.all_red_duration}s)")
