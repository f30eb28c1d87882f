"""
Visualización del estado de la intersección.

Este módulo dibuja con matplotlib el estado de lectura que expone el
simulador: calles, barras de detención coloreadas por carril, vehículos
y métricas.
"""

from .intersection_plot import plot_intersection, save_frame

__all__ = [
    'plot_intersection',
    'save_frame'
]
