"""
Simulation backend: process queues, memory manager, schedulers and the tick loop.
"""

from .core import MemoryPolicy, Process, SchedulingPolicy
from .simulator import Simulation, SimulationConfig, SimulationResult, simulate

__all__ = [
    'MemoryPolicy',
    'Process',
    'SchedulingPolicy',
    'Simulation',
    'SimulationConfig',
    'SimulationResult',
    'simulate',
]
