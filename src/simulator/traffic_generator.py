"""
Generación periódica de vehículos en los carriles de entrada.

Este módulo implementa los generadores de cada grupo de carriles
(recto/giro de la calle principal y de la secundaria). Cada generador
dispara a intervalos fijos o, opcionalmente, con llegadas de Poisson;
cada disparo crea un vehículo por acceso del grupo. Los temporizadores
los avanza el tick de la simulación.
"""

import json
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional

import numpy as np

from src.utils.config import SimulatorConfig, SpawnConfig
from .intersection import Lane, lanes_in_group
from .vehicle import Vehicle, calculate_distance_to, create_vehicle

logger = logging.getLogger(__name__)


class SpawnScenario:
    """
    Escenario de generación: intervalos por grupo de carriles.

    Puede construirse directamente o cargarse desde un archivo JSON con
    el formato:

        {
            "scenario_name": "...",
            "distribution": "fixed" | "poisson",
            "spawn_intervals_s": {"main_straight": 1.0, ...},
            "random_seed": 42
        }
    """

    def __init__(self, spawn_intervals: Optional[Dict[str, float]] = None,
                 distribution: str = SpawnConfig.DEFAULT_DISTRIBUTION,
                 name: str = "default", random_seed: Optional[int] = None):
        """
        Inicializa un escenario.

        Args:
            spawn_intervals: {grupo: segundos entre disparos}; los grupos
                             omitidos usan SpawnConfig.SPAWN_INTERVALS
            distribution: "fixed" (intervalo exacto) o "poisson"
                          (intervalo medio, llegadas exponenciales)
            name: Nombre del escenario
            random_seed: Semilla para reproducibilidad con "poisson"

        Raises:
            ValueError: Si la distribución o algún intervalo no son válidos
        """
        intervals = dict(SpawnConfig.SPAWN_INTERVALS)
        intervals.update(spawn_intervals or {})

        for group, interval in intervals.items():
            if group not in SpawnConfig.SPAWN_INTERVALS:
                raise ValueError(f"Grupo de carriles desconocido: {group}")
            if interval <= 0:
                raise ValueError(f"Intervalo de generación inválido para {group}: {interval}s")

        if distribution not in SpawnConfig.DISTRIBUTIONS:
            raise ValueError(f"Distribución desconocida: {distribution}")

        self.name = name
        self.spawn_intervals = intervals
        self.distribution = distribution
        self.random_seed = random_seed

    @classmethod
    def from_file(cls, scenario_file: str) -> "SpawnScenario":
        """
        Carga un escenario desde archivo JSON.

        Args:
            scenario_file: Ruta al archivo JSON con datos del escenario

        Returns:
            SpawnScenario: Escenario cargado

        Raises:
            FileNotFoundError: Si el archivo no existe
        """
        path = Path(scenario_file)
        if not path.exists():
            raise FileNotFoundError(f"Escenario no encontrado: {scenario_file}")

        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        scenario = cls(
            spawn_intervals=data.get('spawn_intervals_s', {}),
            distribution=data.get('distribution', SpawnConfig.DEFAULT_DISTRIBUTION),
            name=data.get('scenario_name', path.stem),
            random_seed=data.get('random_seed')
        )
        logger.info("Escenario cargado: %s (%s)", scenario.name, scenario.distribution)
        return scenario

    def __repr__(self) -> str:
        return (f"SpawnScenario(name='{self.name}', distribution={self.distribution}, "
                f"intervals={self.spawn_intervals})")


class LaneSpawner:
    """
    Temporizador repetitivo de un grupo de carriles.

    El primer disparo ocurre un intervalo después de arrancar, igual que
    un temporizador periódico del navegador.
    """

    def __init__(self, group: str, interval: float,
                 draw_interval: Optional[Callable[[float], float]] = None):
        self.group = group
        self.lanes = lanes_in_group(group)
        self.interval = interval
        self._draw_interval = draw_interval or (lambda mean: mean)

        self.active = False
        self.time_until_spawn = 0.0
        self.fired = 0

    def start(self):
        self.active = True
        self.fired = 0
        self.time_until_spawn = self._draw_interval(self.interval)

    def cancel(self):
        self.active = False
        self.time_until_spawn = 0.0

    def update(self, dt: float) -> int:
        """
        Avanza el temporizador.

        Args:
            dt: Paso de tiempo (segundos)

        Returns:
            int: Número de disparos vencidos en este paso
        """
        if not self.active:
            return 0

        self.time_until_spawn -= dt
        fired = 0
        while self.time_until_spawn <= 1e-9:
            fired += 1
            self.time_until_spawn += self._draw_interval(self.interval)

        self.fired += fired
        return fired

    def __repr__(self) -> str:
        return (f"LaneSpawner(group={self.group}, interval={self.interval}s, "
                f"active={self.active})")


class TrafficGenerator:
    """
    Genera vehículos en los ocho carriles según un escenario.

    Agrupa un LaneSpawner por grupo de carriles y crea los vehículos
    cuando vencen sus temporizadores. Un vehículo no se genera si la
    entrada de su carril sigue ocupada por el anterior.
    """

    def __init__(self, scenario: Optional[SpawnScenario] = None,
                 cruise_speed: float = SimulatorConfig.CRUISE_SPEED,
                 safe_gap: float = SimulatorConfig.SAFE_GAP):
        """
        Inicializa el generador de tráfico.

        Args:
            scenario: Escenario de generación (default: intervalos fijos)
            cruise_speed: Velocidad de los vehículos generados
            safe_gap: Distancia libre mínima requerida en la entrada
        """
        self.scenario = scenario or SpawnScenario()
        self.cruise_speed = cruise_speed
        self.safe_gap = safe_gap

        self.rng = np.random.default_rng(self.scenario.random_seed)
        self.spawners = [
            LaneSpawner(group, interval, self._draw_interval)
            for group, interval in self.scenario.spawn_intervals.items()
        ]

        self.total_vehicles_generated = 0
        self.skipped_spawns = 0

    def _draw_interval(self, mean: float) -> float:
        if self.scenario.distribution == "poisson":
            # Tiempo entre llegadas ~ Exp(1/media)
            return float(self.rng.exponential(mean))
        return mean

    def set_random_seed(self, seed: int):
        """
        Establece semilla para reproducibilidad.

        Args:
            seed: Semilla para generador aleatorio
        """
        self.rng = np.random.default_rng(seed)

    @property
    def active(self) -> bool:
        return any(spawner.active for spawner in self.spawners)

    def start(self):
        """Arranca todos los temporizadores."""
        for spawner in self.spawners:
            spawner.start()

    def cancel(self):
        """Cancela todos los temporizadores pendientes."""
        for spawner in self.spawners:
            spawner.cancel()

    def update(self, dt: float, current_time: float, vehicles: List[Vehicle],
               next_id: Callable[[], int]) -> List[Vehicle]:
        """
        Avanza los temporizadores y genera los vehículos que correspondan.

        Args:
            dt: Paso de tiempo (segundos)
            current_time: Tiempo actual de simulación
            vehicles: Vehículos activos (para comprobar la entrada)
            next_id: Fuente de identificadores únicos

        Returns:
            list: Vehículos nuevos, aún no agregados a la colección activa
        """
        spawned: List[Vehicle] = []

        for spawner in self.spawners:
            for _ in range(spawner.update(dt)):
                for lane in spawner.lanes:
                    if not self.is_entry_clear(lane, vehicles + spawned):
                        self.skipped_spawns += 1
                        logger.debug("Entrada de %s ocupada, generación omitida", lane.value)
                        continue

                    vehicle = create_vehicle(next_id(), lane, current_time,
                                             speed=self.cruise_speed)
                    spawned.append(vehicle)

        self.total_vehicles_generated += len(spawned)
        return spawned

    def is_entry_clear(self, lane: Lane, vehicles: List[Vehicle]) -> bool:
        """
        True si un vehículo nuevo cabe en la entrada del carril.

        Args:
            lane: Carril de entrada
            vehicles: Vehículos activos

        Returns:
            bool: False si algún vehículo del carril está a menos de la
                  distancia de seguridad del punto de aparición
        """
        probe = create_vehicle(-1, lane, 0.0)
        for other in vehicles:
            if other.lane != lane or other.direction != probe.direction:
                continue
            if calculate_distance_to(probe, other) < self.safe_gap:
                return False
        return True

    def get_spawn_statistics(self) -> Dict:
        """
        Retorna estadísticas de generación de vehículos.

        Returns:
            dict: Estadísticas de spawn
        """
        return {
            'total_generated': self.total_vehicles_generated,
            'skipped_spawns': self.skipped_spawns,
            'scenario_name': self.scenario.name,
            'distribution': self.scenario.distribution,
            'fired_by_group': {s.group: s.fired for s in self.spawners}
        }

    def reset(self):
        """Reinicia el generador."""
        self.cancel()
        self.rng = np.random.default_rng(self.scenario.random_seed)
        self.total_vehicles_generated = 0
        self.skipped_spawns = 0
        for spawner in self.spawners:
            spawner.fired = 0
