"""Spin- and polarisation-summed squared amplitudes."""

from __future__ import annotations

import logging

import sympy as sp

from dirac import DiracExpr, dirac_bar, trace

logger = logging.getLogger(__name__)


def _spin_sum(kin, leg: int) -> DiracExpr:
    """pslash + m for particles, pslash - m for antiparticles."""
    mass = kin.particles[leg].mass
    if kin.legs[leg].antiparticle:
        mass = -mass
    return DiracExpr.slash(kin.momentum(leg)) + DiracExpr.scalar(mass)


def compute_squared_amplitude(amplitude):
    """
    Sum over spins and polarisations of |M|^2, traced in four dimensions.

    Fermion lines give Tr[(pslash_out + m) M (pslash_in + m) Mbar]; every
    external vector contributes -g_{mu nu}, i.e. a sign times the contraction
    of M with its conjugate over the same index name.
    """
    kin = amplitude.kinematics
    m = amplitude.expr
    if amplitude.has_fermion_line:
        exit_leg, entry_leg = kin.fermion_ends()
        product = _spin_sum(kin, exit_leg) * m * _spin_sum(kin, entry_leg) * dirac_bar(m)
    else:
        product = m * m.map_coefficients(sp.conjugate)

    vectors = sum(1 for p in kin.particles if not p.is_fermion)
    traced = trace(product, kin.dot, dim=4)
    if any(chain or tensors for chain, tensors in traced.keys()):
        raise ValueError(f"Squared amplitude has uncontracted structure: {traced}")
    result = sp.expand((-1) ** vectors * traced.coefficient())
    logger.info("Squared amplitude with %d term(s)", len(sp.Add.make_args(result)))
    return result


__all__ = ["compute_squared_amplitude"]
