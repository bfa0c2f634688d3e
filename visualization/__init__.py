"""
Visualization package - Plots of parameter sweep results.
"""

from .heatmap import RetransmissionHeatmap

__all__ = [
    'RetransmissionHeatmap'
]
