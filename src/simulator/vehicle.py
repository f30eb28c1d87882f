"""
Modelo de vehículo: registro inmutable y funciones de actualización.

Este módulo implementa el comportamiento de un vehículo individual:
búsqueda del vehículo líder, distancia parachoques a parachoques,
respuesta al semáforo en la línea de detención, y giro a la izquierda
dentro de la intersección. Cada función recibe el registro y una vista
de solo lectura del resto de vehículos, y retorna el registro siguiente.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional, Tuple

from src.utils.config import IntersectionConfig, SimulatorConfig, VisualizationConfig
from .intersection import (
    INTERSECTION, LEFT_TURN, TURN_POINTS, Direction, IntersectionBox, Lane,
    spawn_position, vehicle_dimensions,
)
from .traffic_light import LightState


class VehicleState(Enum):
    """Estados cinemáticos de un vehículo."""
    APPROACHING = "approaching"                            # Antes de la línea de detención
    IN_INTERSECTION_STRAIGHT = "in_intersection_straight"  # Cruzó, sigue recto
    IN_INTERSECTION_TURNING = "in_intersection_turning"    # Cruzó, carril de giro


@dataclass(frozen=True)
class Vehicle:
    """
    Representa un vehículo individual en la simulación.

    La posición (x, y) es el centro del vehículo. El carril no cambia nunca;
    la dirección cambia como máximo una vez, en el punto de giro de los
    carriles de giro a la izquierda. Las dimensiones y el color se derivan
    de la dirección actual.
    """

    id: int
    x: float
    y: float
    lane: Lane
    direction: Direction
    spawn_time: float
    state: VehicleState = VehicleState.APPROACHING
    speed: float = SimulatorConfig.CRUISE_SPEED
    counted: bool = False
    has_turned: bool = False
    wait_time: float = 0.0

    @property
    def width(self) -> float:
        return vehicle_dimensions(self.direction)[0]

    @property
    def height(self) -> float:
        return vehicle_dimensions(self.direction)[1]

    @property
    def color(self) -> str:
        orientation = "vertical" if self.direction.is_vertical else "horizontal"
        return VisualizationConfig.VEHICLE_COLORS[orientation]

    @property
    def half_extent(self) -> float:
        """Media longitud del vehículo en su sentido de marcha."""
        return (self.height if self.direction.is_vertical else self.width) / 2

    @property
    def axis_position(self) -> float:
        """Coordenada del centro sobre el eje de marcha."""
        return self.y if self.direction.is_vertical else self.x

    @property
    def front(self) -> float:
        """Coordenada del parachoques delantero."""
        return self.axis_position + self.direction.sign * self.half_extent

    @property
    def rear(self) -> float:
        """Coordenada del parachoques trasero."""
        return self.axis_position - self.direction.sign * self.half_extent

    @property
    def is_stopped(self) -> bool:
        return self.speed == 0

    def __str__(self) -> str:
        return f"Vehicle(#{self.id}, {self.lane.value}, {self.direction.value})"


def create_vehicle(vehicle_id: int, lane: Lane, spawn_time: float,
                   speed: float = SimulatorConfig.CRUISE_SPEED) -> Vehicle:
    """
    Crea un vehículo en el punto de aparición de su carril.

    Args:
        vehicle_id: Identificador único
        lane: Carril de entrada
        spawn_time: Tiempo de generación (segundos de simulación)
        speed: Velocidad de crucero en px por tick

    Returns:
        Vehicle: Nuevo vehículo en estado APPROACHING
    """
    x, y = spawn_position(lane)
    return Vehicle(id=vehicle_id, x=x, y=y, lane=lane, direction=lane.direction,
                   spawn_time=spawn_time, speed=speed)


def find_lead_vehicle(vehicle: Vehicle, vehicles: Iterable[Vehicle]) -> Optional[Vehicle]:
    """
    Busca el vehículo inmediatamente delante en el mismo carril y sentido.

    Args:
        vehicle: Vehículo de referencia
        vehicles: Todos los vehículos activos (puede incluir al propio)

    Returns:
        Vehicle: El más cercano por delante, o None si no hay ninguno
    """
    sign = vehicle.direction.sign
    own = vehicle.axis_position

    lead = None
    lead_distance = float('inf')
    for other in vehicles:
        if other.id == vehicle.id or other.lane != vehicle.lane \
                or other.direction != vehicle.direction:
            continue

        distance = (other.axis_position - own) * sign
        if 0 < distance < lead_distance:
            lead = other
            lead_distance = distance

    return lead


def calculate_distance_to(vehicle: Vehicle, lead: Vehicle) -> float:
    """
    Distancia parachoques a parachoques hasta el vehículo líder.

    Es positiva si hay espacio libre entre ambos en el sentido de marcha
    y negativa si se superponen. Quien compara contra la distancia de
    seguridad usa el valor absoluto.
    """
    return (lead.rear - vehicle.front) * vehicle.direction.sign


def distance_to_stop_line(vehicle: Vehicle,
                          box: IntersectionBox = INTERSECTION) -> float:
    """Distancia del parachoques delantero a la línea de detención (negativa si la pasó)."""
    return (box.stop_line(vehicle.direction) - vehicle.front) * vehicle.direction.sign


def is_in_detection_window(vehicle: Vehicle,
                           window: float = SimulatorConfig.DETECTION_WINDOW,
                           box: IntersectionBox = INTERSECTION) -> bool:
    """
    True si el parachoques delantero está en la ventana previa a la línea.

    La ventana va desde la línea de detención hasta `window` píxeles
    antes, ambos extremos incluidos. Un vehículo que ya pasó la línea no
    está en la ventana.
    """
    return 0 <= distance_to_stop_line(vehicle, box) <= window


def has_crossed_stop_line(vehicle: Vehicle,
                          window: float = SimulatorConfig.DETECTION_WINDOW,
                          box: IntersectionBox = INTERSECTION) -> bool:
    """
    True si el vehículo llegó al comienzo de la ventana o más allá.

    Es más permisiva que is_in_detection_window: incluye cualquier posición
    pasada la línea, de modo que un vehículo que rodó sobre ella antes de un
    cambio de fase no queda atrapado.
    """
    return distance_to_stop_line(vehicle, box) <= window


def has_reached_turn_point(vehicle: Vehicle) -> bool:
    """True si un vehículo de giro alcanzó la coordenada de giro de su carril."""
    turn_point = TURN_POINTS.get(vehicle.lane)
    if turn_point is None:
        return False
    return (vehicle.axis_position - turn_point) * vehicle.direction.sign >= 0


def is_past_intersection(vehicle: Vehicle, box: IntersectionBox = INTERSECTION) -> bool:
    """True si el parachoques trasero ya salió por el borde opuesto de la caja."""
    return (vehicle.rear - box.far_edge(vehicle.direction)) * vehicle.direction.sign > 0


def is_off_screen(vehicle: Vehicle,
                  margin: float = SimulatorConfig.OFF_SCREEN_MARGIN,
                  world_width: float = IntersectionConfig.WORLD_WIDTH,
                  world_height: float = IntersectionConfig.WORLD_HEIGHT) -> bool:
    """True si el centro del vehículo salió de los límites visibles."""
    return (vehicle.x < -margin or vehicle.x > world_width + margin or
            vehicle.y < -margin or vehicle.y > world_height + margin)


def move(vehicle: Vehicle, distance: float) -> Tuple[float, float]:
    """Posición tras avanzar `distance` píxeles en la dirección actual."""
    step = distance * vehicle.direction.sign
    if vehicle.direction.is_vertical:
        return vehicle.x, vehicle.y + step
    return vehicle.x + step, vehicle.y


def update_vehicle(vehicle: Vehicle, light_state: LightState,
                   vehicles: Iterable[Vehicle],
                   cruise_speed: float = SimulatorConfig.CRUISE_SPEED,
                   safe_gap: float = SimulatorConfig.SAFE_GAP,
                   detection_window: float = SimulatorConfig.DETECTION_WINDOW,
                   box: IntersectionBox = INTERSECTION) -> Vehicle:
    """
    Calcula el estado del vehículo en el siguiente tick.

    Este es el método principal que se llama en cada paso de simulación.

    Dentro (o más allá) de la línea solo importa el líder; si el vehículo
    gira y alcanzó su punto de giro, rota su dirección una única vez.
    Antes de la línea, se detiene si el líder está demasiado cerca, si está
    en la ventana con luz roja, o si está en la ventana con amarillo y ya
    estaba detenido. Si avanza y cruzó la línea, entra a la intersección.

    Args:
        vehicle: Registro actual
        light_state: Luz vigente para el carril del vehículo
        vehicles: Vista de solo lectura de los vehículos activos
        cruise_speed: Velocidad de crucero en px por tick
        safe_gap: Distancia mínima parachoques a parachoques
        detection_window: Ancho de la ventana previa a la línea
        box: Caja de la intersección

    Returns:
        Vehicle: Registro actualizado
    """
    lead = find_lead_vehicle(vehicle, vehicles)
    too_close = lead is not None and abs(calculate_distance_to(vehicle, lead)) < safe_gap

    state = vehicle.state
    direction = vehicle.direction
    has_turned = vehicle.has_turned

    if state != VehicleState.APPROACHING:
        speed = 0.0 if too_close else cruise_speed

        if (state == VehicleState.IN_INTERSECTION_TURNING and not has_turned
                and has_reached_turn_point(vehicle)):
            direction = LEFT_TURN[direction]
            has_turned = True
    else:
        at_line = is_in_detection_window(vehicle, detection_window, box)

        if too_close:
            speed = 0.0
        elif at_line and light_state == LightState.RED:
            speed = 0.0
        elif at_line and light_state == LightState.YELLOW and vehicle.is_stopped:
            speed = 0.0
        else:
            speed = cruise_speed

        if speed > 0 and has_crossed_stop_line(vehicle, detection_window, box):
            state = (VehicleState.IN_INTERSECTION_TURNING if vehicle.lane.is_left_turn
                     else VehicleState.IN_INTERSECTION_STRAIGHT)

    updated = replace(vehicle, speed=speed, state=state,
                      direction=direction, has_turned=has_turned)

    if speed > 0:
        x, y = move(updated, speed)
        updated = replace(updated, x=x, y=y)

    return updated
