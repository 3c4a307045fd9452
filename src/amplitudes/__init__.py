"""
Processes, diagrams and amplitudes.

This package lives inside `src/`, which is added to `sys.path` by `main.py`
and tests, so it is importable as a top-level module:

    from amplitudes import incoming, outgoing, compute_amplitude, Order
"""

from __future__ import annotations

from .defaults import EXTERNAL_INDICES, MAX_LEGS, N_JOBS, momentum_name
from .process import Leg, Order, incoming, leg_flow, leg_sign, outgoing, validate_process
from .kinematics import Kinematics
from .diagrams import Diagram, Edge, generate_diagrams
from .builder import Amplitude, compute_amplitude, external_indices, loop_integrand
from .squared import compute_squared_amplitude

__all__ = [
    # defaults
    "EXTERNAL_INDICES",
    "MAX_LEGS",
    "N_JOBS",
    "momentum_name",
    # processes
    "Leg",
    "Order",
    "incoming",
    "outgoing",
    "leg_flow",
    "leg_sign",
    "validate_process",
    "Kinematics",
    # diagrams
    "Diagram",
    "Edge",
    "generate_diagrams",
    # amplitudes
    "Amplitude",
    "compute_amplitude",
    "external_indices",
    "loop_integrand",
    "compute_squared_amplitude",
]
