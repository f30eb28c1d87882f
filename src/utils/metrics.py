"""
Sistema de métricas de la intersección.

Este módulo proporciona el agregador en línea que alimenta la pantalla
(tiempo de viaje promedio histórico, tiempo de espera y throughput) y
funciones de análisis sobre los viajes completados.
"""

from dataclasses import dataclass
from typing import Dict, List, Set

import numpy as np
import pandas as pd


@dataclass(frozen=True)
class TripRecord:
    """Muestra de un viaje completado."""
    vehicle_id: int
    lane: str
    spawn_time: float
    exit_time: float
    wait_time: float

    @property
    def trip_time(self) -> float:
        return self.exit_time - self.spawn_time


class MetricsAggregator:
    """
    Agregador de métricas de la simulación.

    Lleva la suma y el conteo de tiempos de viaje completados (promedio
    histórico) y un contador de throughput que se incrementa una única vez
    por vehículo al salir de la caja de la intersección. Es solo de lectura
    para el resto del sistema: nada de lo que acumula influye en vehículos
    ni semáforo.
    """

    def __init__(self):
        self.total_trip_time = 0.0
        self.total_wait_time = 0.0
        self.completed_trips = 0
        self.throughput = 0

        self.trips: List[TripRecord] = []
        self._counted_ids: Set[int] = set()
        self._recorded_ids: Set[int] = set()

    def record_throughput(self, vehicle) -> bool:
        """
        Cuenta un vehículo que salió de la intersección.

        Args:
            vehicle: Vehículo detectado más allá del borde de salida

        Returns:
            bool: True si se contó, False si ya había sido contado
        """
        if vehicle.counted or vehicle.id in self._counted_ids:
            return False

        self._counted_ids.add(vehicle.id)
        self.throughput += 1
        return True

    def record_trip(self, vehicle, exit_time: float) -> bool:
        """
        Registra el tiempo de viaje de un vehículo al eliminarlo.

        Args:
            vehicle: Vehículo que abandona la simulación
            exit_time: Tiempo de simulación al eliminarlo

        Returns:
            bool: True si se registró, False si ya tenía muestra
        """
        if vehicle.id in self._recorded_ids:
            return False

        record = TripRecord(
            vehicle_id=vehicle.id,
            lane=vehicle.lane.value,
            spawn_time=vehicle.spawn_time,
            exit_time=exit_time,
            wait_time=vehicle.wait_time
        )

        self._recorded_ids.add(vehicle.id)
        self.trips.append(record)
        self.total_trip_time += record.trip_time
        self.total_wait_time += record.wait_time
        self.completed_trips += 1
        return True

    def average_trip_time(self) -> float:
        """
        Tiempo de viaje promedio histórico.

        Returns:
            float: Promedio en segundos con dos decimales, 0.0 sin datos
        """
        if self.completed_trips == 0:
            return 0.0
        return round(self.total_trip_time / self.completed_trips, 2)

    def average_wait_time(self) -> float:
        """
        Tiempo detenido promedio por viaje completado.

        Returns:
            float: Promedio en segundos con dos decimales, 0.0 sin datos
        """
        if self.completed_trips == 0:
            return 0.0
        return round(self.total_wait_time / self.completed_trips, 2)

    def to_dict(self) -> Dict:
        """Métricas actuales para la capa de presentación."""
        return {
            'avg_trip_time': self.average_trip_time(),
            'avg_wait_time': self.average_wait_time(),
            'completed_trips': self.completed_trips,
            'throughput': self.throughput
        }

    def to_dataframe(self) -> pd.DataFrame:
        """
        Viajes completados como DataFrame.

        Returns:
            pd.DataFrame: Una fila por viaje, con columna trip_time
        """
        columns = ['vehicle_id', 'lane', 'spawn_time', 'exit_time',
                   'wait_time', 'trip_time']
        rows = [
            {
                'vehicle_id': trip.vehicle_id,
                'lane': trip.lane,
                'spawn_time': trip.spawn_time,
                'exit_time': trip.exit_time,
                'wait_time': trip.wait_time,
                'trip_time': trip.trip_time
            }
            for trip in self.trips
        ]
        return pd.DataFrame(rows, columns=columns)

    def reset(self):
        """Borra todas las métricas."""
        self.total_trip_time = 0.0
        self.total_wait_time = 0.0
        self.completed_trips = 0
        self.throughput = 0
        self.trips.clear()
        self._counted_ids.clear()
        self._recorded_ids.clear()

    def __repr__(self) -> str:
        return (f"MetricsAggregator(trips={self.completed_trips}, "
                f"avg_trip={self.average_trip_time():.2f}s, "
                f"throughput={self.throughput})")


class MetricsCalculator:
    """
    Calculadora de métricas de evaluación sobre viajes completados.

    Proporciona métodos estáticos para el análisis posterior a la simulación.
    """

    @staticmethod
    def median_trip_time(trips: List[TripRecord]) -> float:
        """
        Calcula el tiempo de viaje mediano.

        Args:
            trips: Viajes completados

        Returns:
            float: Mediana en segundos
        """
        if not trips:
            return 0.0

        return float(np.median([t.trip_time for t in trips]))

    @staticmethod
    def percentile_trip_time(trips: List[TripRecord], percentile: float = 95) -> float:
        """
        Calcula el percentil del tiempo de viaje.

        Args:
            trips: Viajes completados
            percentile: Percentil a calcular (0-100)

        Returns:
            float: Tiempo de viaje en el percentil dado
        """
        if not trips:
            return 0.0

        return float(np.percentile([t.trip_time for t in trips], percentile))

    @staticmethod
    def throughput_per_hour(throughput: int, simulation_time: float) -> float:
        """
        Calcula el throughput (vehículos por hora).

        Args:
            throughput: Vehículos que cruzaron la intersección
            simulation_time: Tiempo total de simulación en segundos

        Returns:
            float: Vehículos por hora
        """
        if simulation_time <= 0:
            return 0.0

        return (throughput / simulation_time) * 3600

    @staticmethod
    def summary_by_lane(trips: List[TripRecord]) -> pd.DataFrame:
        """
        Resumen de viajes agrupado por carril.

        Args:
            trips: Viajes completados

        Returns:
            pd.DataFrame: Promedios de viaje y espera, y conteo, por carril
        """
        df = pd.DataFrame(
            [{'lane': t.lane, 'trip_time': t.trip_time, 'wait_time': t.wait_time}
             for t in trips],
            columns=['lane', 'trip_time', 'wait_time']
        )

        summary = df.groupby('lane').agg(
            avg_trip_time=('trip_time', 'mean'),
            avg_wait_time=('wait_time', 'mean'),
            trips=('trip_time', 'count')
        )

        # Ordenar por tiempo de viaje (mayor demora primero)
        return summary.sort_values('avg_trip_time', ascending=False)
