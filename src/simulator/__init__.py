"""
Simulador de tráfico en una intersección semaforizada.

Este módulo contiene el motor de simulación que modela:
- Geometría de la intersección y tabla de carriles
- Movimiento de vehículos, seguimiento y giros
- Fases del semáforo con amarillo y todo-rojo
- Generación periódica de vehículos
"""

from .intersection import Direction, Lane, IntersectionBox, INTERSECTION
from .traffic_light import PhaseController, SignalPhase, LightState
from .vehicle import Vehicle, VehicleState, update_vehicle
from .traffic_generator import TrafficGenerator, SpawnScenario
from .traffic_simulator import IntersectionSimulator, SimulationStatus

__all__ = [
    'Direction',
    'Lane',
    'IntersectionBox',
    'INTERSECTION',
    'PhaseController',
    'SignalPhase',
    'LightState',
    'Vehicle',
    'VehicleState',
    'update_vehicle',
    'TrafficGenerator',
    'SpawnScenario',
    'IntersectionSimulator',
    'SimulationStatus'
]
