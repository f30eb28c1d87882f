"""
Dibujo de un cuadro de la simulación con matplotlib.

Solo lee el diccionario que retorna IntersectionSimulator.get_render_state();
no modifica ningún estado.
"""

from pathlib import Path
from typing import Dict, Optional, Tuple

import matplotlib.pyplot as plt
import matplotlib.patches as patches

from src.utils.config import IntersectionConfig, VisualizationConfig

# (carril, borde de la caja, orientación de la barra)
_STOP_BARS = [
    ("main_sb_left", "y_start", "horizontal"),
    ("main_sb_straight", "y_start", "horizontal"),
    ("main_nb_straight", "y_end", "horizontal"),
    ("main_nb_left", "y_end", "horizontal"),
    ("side_wb_left", "x_end", "vertical"),
    ("side_wb_straight", "x_end", "vertical"),
    ("side_eb_straight", "x_start", "vertical"),
    ("side_eb_left", "x_start", "vertical"),
]

_BOX_EDGES = {
    "x_start": IntersectionConfig.X_START,
    "x_end": IntersectionConfig.X_END,
    "y_start": IntersectionConfig.Y_START,
    "y_end": IntersectionConfig.Y_END,
}


def _draw_roads(ax):
    width = IntersectionConfig.WORLD_WIDTH
    height = IntersectionConfig.WORLD_HEIGHT
    x0, x1 = IntersectionConfig.X_START, IntersectionConfig.X_END
    y0, y1 = IntersectionConfig.Y_START, IntersectionConfig.Y_END
    road = VisualizationConfig.ROAD_COLOR

    ax.add_patch(patches.Rectangle((x0, 0), x1 - x0, height, color=road, zorder=1))
    ax.add_patch(patches.Rectangle((0, y0), width, y1 - y0, color=road, zorder=1))

    # Línea central amarilla, interrumpida en la caja
    mid_x, mid_y = (x0 + x1) / 2, (y0 + y1) / 2
    for xs, ys in [((mid_x, mid_x), (0, y0)), ((mid_x, mid_x), (y1, height)),
                   ((0, x0), (mid_y, mid_y)), ((x1, width), (mid_y, mid_y))]:
        ax.plot(xs, ys, color="yellow", linewidth=2, zorder=2)

    # Separadores de carril discontinuos
    quarter_x, quarter_y = (x1 - x0) / 4, (y1 - y0) / 4
    for x in (x0 + quarter_x, x1 - quarter_x):
        ax.plot((x, x), (0, y0), color="white", linestyle="--", linewidth=1, zorder=2)
        ax.plot((x, x), (y1, height), color="white", linestyle="--", linewidth=1, zorder=2)
    for y in (y0 + quarter_y, y1 - quarter_y):
        ax.plot((0, x0), (y, y), color="white", linestyle="--", linewidth=1, zorder=2)
        ax.plot((x1, width), (y, y), color="white", linestyle="--", linewidth=1, zorder=2)


def _draw_stop_bars(ax, lane_states: Dict[str, str]):
    half = IntersectionConfig.LANE_WIDTH / 2
    for lane, edge, orientation in _STOP_BARS:
        center = IntersectionConfig.LANE_CENTERLINES[lane]
        line = _BOX_EDGES[edge]
        color = VisualizationConfig.LIGHT_COLORS[lane_states.get(lane, "red")]

        if orientation == "horizontal":
            xs, ys = (center - half, center + half), (line, line)
        else:
            xs, ys = (line, line), (center - half, center + half)
        ax.plot(xs, ys, color=color, linewidth=4, solid_capstyle="butt", zorder=3)


def _draw_vehicles(ax, vehicles):
    for v in vehicles:
        ax.add_patch(patches.Rectangle(
            (v['x'] - v['width'] / 2, v['y'] - v['height'] / 2),
            v['width'], v['height'],
            facecolor=v['color'], edgecolor="black", linewidth=0.5, zorder=4
        ))


def plot_intersection(render_state: Dict,
                      figsize: Optional[Tuple[float, float]] = None) -> plt.Figure:
    """
    Crea una visualización del estado actual de la intersección.

    Args:
        render_state: Estado de lectura del simulador
        figsize: Tamaño de la figura

    Returns:
        plt.Figure: Figura de matplotlib
    """
    fig, ax = plt.subplots(figsize=figsize or VisualizationConfig.FIGURE_SIZE)
    ax.set_facecolor(VisualizationConfig.BACKGROUND_COLOR)

    _draw_roads(ax)
    _draw_stop_bars(ax, render_state.get('lane_states', {}))
    _draw_vehicles(ax, render_state.get('vehicles', []))

    # Coordenadas de pantalla: y crece hacia abajo
    ax.set_xlim(0, IntersectionConfig.WORLD_WIDTH)
    ax.set_ylim(IntersectionConfig.WORLD_HEIGHT, 0)
    ax.set_aspect("equal")
    ax.set_xticks([])
    ax.set_yticks([])

    metrics = render_state.get('metrics', {})
    ax.set_title(f"{render_state.get('phase_display', '')} | "
                 f"t={render_state.get('time', 0.0):.1f}s "
                 f"(restante {render_state.get('time_remaining', 0.0):.0f}s)",
                 fontsize=12, fontweight='bold')
    ax.set_xlabel(f"Viaje promedio: {metrics.get('avg_trip_time', 0.0):.2f}s | "
                  f"Espera promedio: {metrics.get('avg_wait_time', 0.0):.2f}s | "
                  f"Throughput: {metrics.get('throughput', 0)}")

    plt.tight_layout()
    return fig


def save_frame(render_state: Dict, filepath: str,
               figsize: Optional[Tuple[float, float]] = None) -> Path:
    """
    Dibuja un cuadro y lo guarda en disco.

    Args:
        render_state: Estado de lectura del simulador
        filepath: Ruta de salida
        figsize: Tamaño de la figura

    Returns:
        Path: Ruta del archivo guardado
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)

    fig = plot_intersection(render_state, figsize=figsize)
    fig.savefig(path, dpi=VisualizationConfig.DPI)
    plt.close(fig)
    return path
