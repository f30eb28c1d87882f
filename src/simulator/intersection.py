"""
Geometría de la intersección y tabla de carriles.

Este módulo define la caja de la intersección y los ocho carriles
(cuatro accesos, cada uno con carril recto y carril de giro a la izquierda),
junto con sus ejes, líneas de detención, puntos de generación y
puntos de giro. Todo es estático: se define una vez y no cambia.
"""

from enum import Enum
from typing import Dict, Tuple

from src.utils.config import IntersectionConfig, SimulatorConfig, SpawnConfig


class Direction(Enum):
    """Sentido de circulación de un vehículo."""
    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"

    @property
    def is_vertical(self) -> bool:
        """True si el vehículo se mueve sobre el eje y."""
        return self in (Direction.NORTH, Direction.SOUTH)

    @property
    def sign(self) -> int:
        """Signo del avance sobre su eje (+1 si la coordenada crece)."""
        return 1 if self in (Direction.SOUTH, Direction.EAST) else -1


# Giro a la izquierda: rotación fija de 90°
LEFT_TURN = {
    Direction.SOUTH: Direction.EAST,
    Direction.NORTH: Direction.WEST,
    Direction.EAST: Direction.NORTH,
    Direction.WEST: Direction.SOUTH,
}


class Approach(Enum):
    """Calle a la que pertenece un carril."""
    MAIN = "main"
    SIDE = "side"


class Movement(Enum):
    """Maniobra que realiza un carril."""
    STRAIGHT = "straight"
    LEFT = "left"


class Lane(Enum):
    """
    Los ocho carriles de la intersección.

    Cada valor es la clave del carril en IntersectionConfig.LANE_CENTERLINES.
    """
    MAIN_SB_LEFT = "main_sb_left"
    MAIN_SB_STRAIGHT = "main_sb_straight"
    MAIN_NB_STRAIGHT = "main_nb_straight"
    MAIN_NB_LEFT = "main_nb_left"
    SIDE_WB_LEFT = "side_wb_left"
    SIDE_WB_STRAIGHT = "side_wb_straight"
    SIDE_EB_STRAIGHT = "side_eb_straight"
    SIDE_EB_LEFT = "side_eb_left"

    @property
    def approach(self) -> Approach:
        return Approach.MAIN if self.value.startswith("main") else Approach.SIDE

    @property
    def movement(self) -> Movement:
        return Movement.LEFT if self.value.endswith("left") else Movement.STRAIGHT

    @property
    def is_left_turn(self) -> bool:
        return self.movement == Movement.LEFT

    @property
    def direction(self) -> Direction:
        """Sentido de circulación al entrar por este carril."""
        return _LANE_DIRECTIONS[self]

    @property
    def centerline(self) -> float:
        """Coordenada fija del eje (x en la principal, y en la secundaria)."""
        return IntersectionConfig.LANE_CENTERLINES[self.value]

    @property
    def group(self) -> str:
        """Grupo de generación ("main_straight", "side_left", ...)."""
        return f"{self.approach.value}_{self.movement.value}"


_LANE_DIRECTIONS = {
    Lane.MAIN_SB_LEFT: Direction.SOUTH,
    Lane.MAIN_SB_STRAIGHT: Direction.SOUTH,
    Lane.MAIN_NB_STRAIGHT: Direction.NORTH,
    Lane.MAIN_NB_LEFT: Direction.NORTH,
    Lane.SIDE_WB_LEFT: Direction.WEST,
    Lane.SIDE_WB_STRAIGHT: Direction.WEST,
    Lane.SIDE_EB_STRAIGHT: Direction.EAST,
    Lane.SIDE_EB_LEFT: Direction.EAST,
}

# Coordenada de giro: eje del carril interior de la calle de destino
TURN_POINTS: Dict[Lane, float] = {
    Lane.MAIN_SB_LEFT: IntersectionConfig.LANE_CENTERLINES["side_eb_straight"],
    Lane.MAIN_NB_LEFT: IntersectionConfig.LANE_CENTERLINES["side_wb_straight"],
    Lane.SIDE_EB_LEFT: IntersectionConfig.LANE_CENTERLINES["main_nb_straight"],
    Lane.SIDE_WB_LEFT: IntersectionConfig.LANE_CENTERLINES["main_sb_straight"],
}


def lanes_in_group(group: str) -> Tuple[Lane, ...]:
    """Carriles (uno por acceso) que pertenecen a un grupo de generación."""
    return tuple(lane for lane in Lane if lane.group == group)


class IntersectionBox:
    """
    Caja rectangular de la intersección.

    Los bordes de la caja son también las líneas de detención de cada
    acceso: el borde superior para los vehículos hacia el sur, el inferior
    para los que van al norte, etc.
    """

    def __init__(self, x_start: float = IntersectionConfig.X_START,
                 x_end: float = IntersectionConfig.X_END,
                 y_start: float = IntersectionConfig.Y_START,
                 y_end: float = IntersectionConfig.Y_END):
        if x_end <= x_start or y_end <= y_start:
            raise ValueError("La caja de la intersección debe tener área positiva")

        self.x_start = x_start
        self.x_end = x_end
        self.y_start = y_start
        self.y_end = y_end

    def stop_line(self, direction: Direction) -> float:
        """Coordenada de la línea de detención para un sentido de entrada."""
        return {
            Direction.SOUTH: self.y_start,
            Direction.NORTH: self.y_end,
            Direction.EAST: self.x_start,
            Direction.WEST: self.x_end,
        }[direction]

    def far_edge(self, direction: Direction) -> float:
        """Borde de salida de la caja para un sentido de circulación."""
        return {
            Direction.SOUTH: self.y_end,
            Direction.NORTH: self.y_start,
            Direction.EAST: self.x_end,
            Direction.WEST: self.x_start,
        }[direction]

    def __repr__(self) -> str:
        return (f"IntersectionBox(x={self.x_start}-{self.x_end}, "
                f"y={self.y_start}-{self.y_end})")


INTERSECTION = IntersectionBox()


def spawn_position(lane: Lane,
                   world_width: float = IntersectionConfig.WORLD_WIDTH,
                   world_height: float = IntersectionConfig.WORLD_HEIGHT,
                   offset: float = SpawnConfig.SPAWN_OFFSET) -> Tuple[float, float]:
    """
    Punto de aparición de un vehículo justo fuera del borde de la pantalla.

    Args:
        lane: Carril de entrada
        world_width: Ancho del mundo en píxeles
        world_height: Alto del mundo en píxeles
        offset: Distancia del centro del vehículo al borde

    Returns:
        tuple: (x, y) del centro del vehículo
    """
    direction = lane.direction
    if direction == Direction.SOUTH:
        return lane.centerline, -offset
    if direction == Direction.NORTH:
        return lane.centerline, world_height + offset
    if direction == Direction.EAST:
        return -offset, lane.centerline
    return world_width + offset, lane.centerline


def vehicle_dimensions(direction: Direction) -> Tuple[float, float]:
    """(ancho, alto) de un vehículo según su orientación."""
    if direction.is_vertical:
        return SimulatorConfig.VEHICLE_WIDTH, SimulatorConfig.VEHICLE_LENGTH
    return SimulatorConfig.VEHICLE_LENGTH, SimulatorConfig.VEHICLE_WIDTH
