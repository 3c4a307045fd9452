"""
Numerical backends for Feynman-parameter integrals (nquad, QMC, Vegas).

Generated libraries call `integrate(integrand, bounds, params, method)`.
`bounds` is listed innermost variable first; the bound of variable j is a
callable of the outer variables (j+1, ...) followed by the parameters, as
`scipy.integrate.nquad` expects.  Integrands may be complex: real and
imaginary parts are integrated separately.
"""

from __future__ import annotations

import warnings

import numpy as np
import scipy.integrate as integrate
from numba import njit

NQUAD_OPTS = {"epsabs": 1e-10, "epsrel": 1e-8, "limit": 100}


def log_minus_i0(x):
    """log(x - i0): log|x| - i*pi on the negative axis."""
    if x < 0:
        return complex(np.log(-x), -np.pi)
    return complex(np.log(x), 0.0)


log_minus_i0_jit = njit(cache=False)(log_minus_i0)


def jit(func):
    return njit(cache=False)(func)


def _map_point(u, bounds, params):
    """Map a point of the unit hypercube onto the integration region; returns (x, jacobian)."""
    d = len(bounds)
    x = [0.0] * d
    jacobian = 1.0
    for j in range(d - 1, -1, -1):
        lo, hi = bounds[j](*x[j + 1:], *params)
        x[j] = lo + u[d - 1 - j] * (hi - lo)
        jacobian *= hi - lo
    return x, jacobian


def _integrate_nquad(integrand, bounds, params, opts=None):
    opts = NQUAD_OPTS if opts is None else opts
    result_real, _ = integrate.nquad(
        lambda *a: complex(integrand(*a)).real,
        list(bounds),
        args=tuple(params),
        opts=opts,
    )
    result_imag, _ = integrate.nquad(
        lambda *a: complex(integrand(*a)).imag,
        list(bounds),
        args=tuple(params),
        opts=opts,
    )
    return result_real + 1j * result_imag


def _integrate_qmc(integrand, bounds, params, m=13, seed=None):
    from scipy.stats import qmc

    n_samples = 2**m
    sampler = qmc.Sobol(d=len(bounds), scramble=True, seed=seed)
    samples = sampler.random_base2(m)

    integral_sum = 0.0 + 0.0j
    for u in samples:
        x, jacobian = _map_point(u, bounds, params)
        if jacobian <= 0:
            continue
        integral_sum += complex(integrand(*x, *params)) * jacobian
    return integral_sum / n_samples


def _vegas_part(integ, batch, nitn1, nitn2, neval, label):
    integ(batch, nitn=nitn1, neval=neval)
    result = integ(batch, nitn=nitn2, neval=neval)
    iters = nitn1 + nitn2
    while result.Q <= 0.1 and iters <= 20:
        result = integ(batch, nitn=nitn2, neval=neval)
        iters += nitn2
    if result.Q <= 0.1:
        warnings.warn(
            f"VEGAS {label}-part Q stayed <= 0.1 after {iters} iterations (Q={result.Q}).",
            RuntimeWarning,
        )
    return result.mean


def _integrate_vegas(integrand, bounds, params, nitn1=5, nitn2=10, neval=2e4):
    import vegas

    d = len(bounds)

    def values(xbatch):
        out = np.zeros(len(xbatch), dtype=complex)
        for i, u in enumerate(xbatch):
            x, jacobian = _map_point(u, bounds, params)
            if jacobian > 0:
                out[i] = complex(integrand(*x, *params)) * jacobian
        return out

    # vegas needs C-contiguous batches, not strided views of the complex array
    @vegas.lbatchintegrand
    def vegas_integrand_real(xbatch):
        return np.ascontiguousarray(values(xbatch).real)

    @vegas.lbatchintegrand
    def vegas_integrand_imag(xbatch):
        return np.ascontiguousarray(values(xbatch).imag)

    result_real = _vegas_part(vegas.Integrator([[0, 1]] * d), vegas_integrand_real, nitn1, nitn2, neval, "real")
    result_imag = _vegas_part(vegas.Integrator([[0, 1]] * d), vegas_integrand_imag, nitn1, nitn2, neval, "imag")
    return result_real + 1j * result_imag


BACKENDS = {
    "nquad": _integrate_nquad,
    "qmc": _integrate_qmc,
    "vegas": _integrate_vegas,
}


def integrate_simplex(integrand, bounds, params=(), method="nquad", **opts):
    """Integrate `integrand(*x, *params)` over the region given by `bounds`."""
    try:
        backend = BACKENDS[method]
    except KeyError:
        raise ValueError(f"Unknown integration method {method!r}; expected one of {sorted(BACKENDS)}") from None
    return backend(integrand, bounds, params, **opts)


__all__ = [
    "BACKENDS",
    "NQUAD_OPTS",
    "integrate_simplex",
    "jit",
    "log_minus_i0",
    "log_minus_i0_jit",
]
