"""
Script de ejemplo: Simulación completa de la intersección

Este script demuestra cómo usar el simulador sin interfaz gráfica:
ejecuta una sesión con un plan de cambios de fase, imprime las métricas
y guarda el último cuadro como imagen.
"""

import sys
from pathlib import Path

# Agregar src al path
sys.path.insert(0, str(Path(__file__).parent.parent))

import matplotlib
matplotlib.use("Agg")

from src.simulator import IntersectionSimulator, SignalPhase, SpawnScenario
from src.utils.config import (
    DEFAULT_SCENARIO_FILE, RUSH_HOUR_SCENARIO_FILE, RESULTS_DIR, VisualizationConfig,
    ensure_directories, setup_logging,
)
from src.utils.metrics import MetricsCalculator
from src.visualization import save_frame

# Ciclo manual: cada fase estable durante 15 s
PHASE_PLAN = [
    (15.0, SignalPhase.MAIN_LEFT),
    (30.0, SignalPhase.SIDE_GO),
    (45.0, SignalPhase.SIDE_LEFT),
    (60.0, SignalPhase.MAIN_GO),
    (75.0, SignalPhase.MAIN_LEFT),
    (90.0, SignalPhase.SIDE_GO),
    (105.0, SignalPhase.SIDE_LEFT),
]


def run_scenario(scenario_file: Path) -> dict:
    """
    Ejecuta una sesión completa con el plan de fases.

    Returns:
        dict: Métricas de la simulación
    """
    print("\n" + "="*70)
    print(f"SIMULACIÓN - {scenario_file.stem}")
    print("="*70)

    scenario = SpawnScenario.from_file(str(scenario_file))
    simulator = IntersectionSimulator(scenario)

    metrics = simulator.run(phase_plan=PHASE_PLAN)

    trips = simulator.metrics.trips
    metrics['median_trip_time'] = MetricsCalculator.median_trip_time(trips)
    metrics['p95_trip_time'] = MetricsCalculator.percentile_trip_time(trips, 95)
    metrics['throughput_per_hour'] = MetricsCalculator.throughput_per_hour(
        metrics['throughput'], metrics['simulation_time'])

    frame = save_frame(simulator.get_render_state(),
                       RESULTS_DIR / f"{scenario_file.stem}_final.{VisualizationConfig.SAVE_FORMAT}")
    print(f"Último cuadro guardado en {frame}")

    if trips:
        print("\nResumen por carril:")
        print(MetricsCalculator.summary_by_lane(trips).round(2).to_string())

    return metrics


def print_metrics(name: str, metrics: dict):
    print(f"\n{name}:")
    for key, value in metrics.items():
        if isinstance(value, float):
            print(f"  {key:25s}: {value:.2f}")
        else:
            print(f"  {key:25s}: {value}")


def main():
    """Función principal."""
    setup_logging()
    ensure_directories()

    print("\n" + "="*70)
    print("SIMULADOR DE INTERSECCIÓN SEMAFORIZADA")
    print("="*70)

    for scenario_file in (DEFAULT_SCENARIO_FILE, RUSH_HOUR_SCENARIO_FILE):
        metrics = run_scenario(scenario_file)
        print_metrics(scenario_file.stem, metrics)


if __name__ == "__main__":
    main()
