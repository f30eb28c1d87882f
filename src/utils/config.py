"""
Configuración global del simulador de intersección semaforizada.

Este módulo contiene todas las constantes y parámetros de configuración
utilizados en el proyecto: geometría, velocidades, tiempos de despeje,
generación de vehículos, visualización y logging.
"""

import logging
from pathlib import Path

# Rutas del proyecto
PROJECT_ROOT = Path(__file__).parent.parent.parent
DATA_DIR = PROJECT_ROOT / "data"
SCENARIOS_DIR = DATA_DIR / "scenarios"
RESULTS_DIR = PROJECT_ROOT / "experiments" / "results"

# Archivos de datos
DEFAULT_SCENARIO_FILE = SCENARIOS_DIR / "default.json"
RUSH_HOUR_SCENARIO_FILE = SCENARIOS_DIR / "rush_hour.json"


# Geometría de la intersección
class IntersectionConfig:
    """Geometría del mundo y de la intersección (en píxeles)."""

    WORLD_WIDTH = 800
    WORLD_HEIGHT = 600

    # Caja de la intersección
    X_START = 350.0
    X_END = 450.0
    Y_START = 250.0
    Y_END = 350.0

    # Ejes de carril: x para la calle principal, y para la secundaria
    LANE_CENTERLINES = {
        "main_sb_left": 362.5,
        "main_sb_straight": 387.5,
        "main_nb_straight": 412.5,
        "main_nb_left": 437.5,
        "side_wb_left": 262.5,
        "side_wb_straight": 287.5,
        "side_eb_straight": 312.5,
        "side_eb_left": 337.5,
    }

    LANE_WIDTH = 15.0  # ancho dibujado de la barra de detención


# Parámetros del simulador
class SimulatorConfig:
    """Configuración del simulador de tráfico."""

    # Tiempo
    TIME_STEP = 1.0 / 60.0  # un tick por refresco de pantalla (segundos)
    SESSION_DURATION = 120.0  # segundos

    # Vehículos (5 px por metro)
    PIXELS_PER_METER = 5
    VEHICLE_LENGTH_METERS = 5
    VEHICLE_WIDTH_METERS = 3
    VEHICLE_LENGTH = VEHICLE_LENGTH_METERS * PIXELS_PER_METER  # 25 px
    VEHICLE_WIDTH = VEHICLE_WIDTH_METERS * PIXELS_PER_METER    # 15 px
    SAFE_GAP_METERS = 2.5
    SAFE_GAP = SAFE_GAP_METERS * PIXELS_PER_METER  # 12.5 px

    # Velocidad de crucero (px por tick)
    CRUISE_SPEED = 2.0

    # Ventana de detección antes de la línea de detención (px)
    DETECTION_WINDOW = 3.0

    # Margen fuera de pantalla antes de eliminar un vehículo (px)
    OFF_SCREEN_MARGIN = 50.0


# Parámetros de semáforos
class TrafficLightConfig:
    """Configuración del controlador de fases."""

    YELLOW_DURATION = 3.0   # segundos
    ALL_RED_DURATION = 1.0  # segundos (despeje)

    INITIAL_PHASE = "main_go"


# Generación de vehículos
class SpawnConfig:
    """Configuración de los generadores periódicos de vehículos."""

    # Intervalo entre disparos por grupo de carriles (segundos)
    SPAWN_INTERVALS = {
        "main_straight": 1.0,
        "side_straight": 2.0,
        "main_left": 5.0,
        "side_left": 7.0,
    }

    DISTRIBUTIONS = ["fixed", "poisson"]
    DEFAULT_DISTRIBUTION = "fixed"

    # Distancia desde el borde del mundo al centro del vehículo generado
    SPAWN_OFFSET = 25.0


# Visualización
class VisualizationConfig:
    """Configuración de visualización."""

    FIGURE_SIZE = (10, 7.5)
    DPI = 100
    SAVE_FORMAT = "png"

    ROAD_COLOR = "#666666"
    BACKGROUND_COLOR = "#3a7d44"

    # Colores de semáforos
    LIGHT_COLORS = {
        "green": "#00FF00",
        "yellow": "#FFFF00",
        "red": "#FF0000",
    }

    # Colores de vehículos según orientación
    VEHICLE_COLORS = {
        "vertical": "blue",
        "horizontal": "red",
    }


# Logging
class LoggingConfig:
    """Configuración de logging."""

    LOG_LEVEL = "INFO"
    LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = None, log_file: Path = None) -> logging.Logger:
    """
    Configura el logger raíz según LoggingConfig.

    Args:
        level: Nivel de logging (default: LoggingConfig.LOG_LEVEL)
        log_file: Archivo opcional donde duplicar la salida

    Returns:
        logging.Logger: Logger raíz del paquete de simulación
    """
    handlers = [logging.StreamHandler()]
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=(level or LoggingConfig.LOG_LEVEL).upper(),
        format=LoggingConfig.LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
    return logging.getLogger("src")


# Crear directorios si no existen
def ensure_directories():
    """Crea los directorios necesarios si no existen."""
    for directory in [DATA_DIR, SCENARIOS_DIR, RESULTS_DIR]:
        directory.mkdir(parents=True, exist_ok=True)


if __name__ == "__main__":
    print(f"Directorio del proyecto: {PROJECT_ROOT}")
    print(f"Directorio de escenarios: {SCENARIOS_DIR}")
    print(f"Escenario por defecto: {DEFAULT_SCENARIO_FILE}")
    ensure_directories()
    print("Directorios verificados/creados correctamente")
