"""
Defaults for amplitude generation.

Keeping these in one place lets scripts and tests share the same worker
count and index names.
"""

from __future__ import annotations

# joblib workers for per-diagram reduction (1 = run in the calling process).
N_JOBS = 1

# Lorentz indices given to external vector legs, in leg order.
EXTERNAL_INDICES = ("mu", "nu", "rho", "sigma")

# Largest number of external legs the kinematics layer handles.
MAX_LEGS = 4


def momentum_name(leg: int) -> str:
    """Name of the momentum of leg `leg` (0-based): p1, p2, ..."""
    return f"p{leg + 1}"


__all__ = ["N_JOBS", "EXTERNAL_INDICES", "MAX_LEGS", "momentum_name"]
