"""
Simulation package - Simulation engine and runners.

Contains:
- Event-driven simulator playing channel, timer and application
- Batch runner for parameter sweeps
"""

from .simulator import Simulator, SimulatorConfig
from .runner import BatchRunner

__all__ = [
    'Simulator',
    'SimulatorConfig',
    'BatchRunner'
]
