"""Generalized symmetric eigensolver for room modes.

Finds the lowest eigenpairs of ``K u = λ M u`` where K is the singular
stiffness matrix of a closed rigid-walled room (constant pressure is always
a solution with λ = 0) and M is the positive definite mass matrix.

Small systems are solved densely with LAPACK. Larger ones use ARPACK in
shift-invert mode around a small negative shift σ: ``K - σM`` is then
positive definite and can be factorized, and the eigenvalues nearest σ are
exactly the lowest ones.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Literal

import numpy as np
import scipy.linalg
from numpy.typing import NDArray
from scipy import sparse
from scipy.sparse.linalg import ArpackError, ArpackNoConvergence, eigsh

SolverMethod = Literal["auto", "dense", "sparse"]


class EigenSolverError(RuntimeError):
    """Raised when the eigensolver fails to converge."""

    pass


@dataclass
class EigenPair:
    """One room mode.

    Attributes:
        index: 1-based mode number in ascending eigenvalue order
        eigenvalue: λ = k² in rad²/length²
        eigenfunction: Pressure at each mesh vertex, mass-normalized
    """

    index: int
    eigenvalue: float
    eigenfunction: NDArray[np.float64]

    @property
    def wavenumber(self) -> float:
        """k = √λ in rad/length."""
        return float(np.sqrt(max(self.eigenvalue, 0.0)))

    def scaled(self) -> NDArray[np.float64]:
        """Eigenfunction scaled to a peak magnitude of 1, for plotting."""
        peak = np.max(np.abs(self.eigenfunction))
        if peak == 0:
            return self.eigenfunction.copy()
        return self.eigenfunction / peak


def _default_shift(stiffness: sparse.spmatrix, mass: sparse.spmatrix) -> float:
    # Any negative shift keeps the ordering; closer to zero converges faster
    # but must stay large enough to keep K - σM well conditioned
    ratio = stiffness.diagonal() / mass.diagonal()
    return 1e-4 * float(np.min(ratio[ratio > 0])) if np.any(ratio > 0) else 1.0


def _spectrum_scale(
    stiffness: sparse.spmatrix, mass: sparse.spmatrix, eigenvalues: NDArray[np.float64]
) -> float:
    # Largest K_ii / M_ii bounds the top of the spectrum in the room's own units
    ratio = stiffness.diagonal() / mass.diagonal()
    scale = float(np.max(ratio)) if ratio.size else 0.0
    if scale <= 0:
        scale = float(np.max(np.abs(eigenvalues)))
    return scale if scale > 0 else np.finfo(float).tiny


def _normalize(vectors: NDArray[np.float64], mass: sparse.spmatrix) -> NDArray[np.float64]:
    """Mass-normalize columns and make each one's largest entry positive."""
    norms = np.sqrt(np.einsum("ij,ij->j", vectors, mass @ vectors))
    vectors = vectors / norms
    peak = np.argmax(np.abs(vectors), axis=0)
    signs = np.sign(vectors[peak, np.arange(vectors.shape[1])])
    signs[signs == 0] = 1.0
    return vectors * signs


def solve_eigenmodes(
    stiffness: sparse.spmatrix,
    mass: sparse.spmatrix,
    n_modes: int,
    accuracy_goal: int = 8,
    shift: float | None = None,
    method: SolverMethod = "auto",
    dense_threshold: int = 400,
) -> list[EigenPair]:
    """Lowest eigenpairs of ``K u = λ M u``.

    Args:
        stiffness: Symmetric positive semi-definite matrix K
        mass: Symmetric positive definite matrix M
        n_modes: Number of modes to compute
        accuracy_goal: Requested relative accuracy in decimal digits
        shift: Shift-invert point -σ (positive number). Defaults to
            1e-4 times the smallest diagonal ratio K_ii / M_ii.
        method: "dense", "sparse" or "auto" (dense below
            ``dense_threshold`` unknowns)
        dense_threshold: Size limit for the automatic dense path

    Returns:
        List of EigenPair in ascending eigenvalue order, eigenvalues
        clamped to be non-negative

    Raises:
        ValueError: If n_modes is out of range or the matrices disagree
        EigenSolverError: If ARPACK does not converge
    """
    n = stiffness.shape[0]
    if stiffness.shape != (n, n) or mass.shape != (n, n):
        raise ValueError(
            f"stiffness {stiffness.shape} and mass {mass.shape} must be square and equal"
        )
    if n_modes < 1:
        raise ValueError(f"n_modes must be positive, got {n_modes}")
    if n_modes > n:
        raise ValueError(f"Cannot compute {n_modes} modes from a system with {n} unknowns")
    if accuracy_goal < 1:
        raise ValueError(f"accuracy_goal must be at least 1 digit, got {accuracy_goal}")
    if method not in ("auto", "dense", "sparse"):
        raise ValueError(f"Unknown solver method: {method}")

    # ARPACK needs k < n
    use_dense = method == "dense" or (method == "auto" and (n <= dense_threshold or n_modes >= n - 1))
    if method == "sparse" and n_modes >= n - 1:
        raise ValueError(f"Sparse solver needs n_modes < {n - 1}, got {n_modes}")

    if use_dense:
        eigenvalues, eigenvectors = scipy.linalg.eigh(
            sparse.csr_matrix(stiffness).toarray(),
            sparse.csr_matrix(mass).toarray(),
            subset_by_index=[0, n_modes - 1],
        )
    else:
        sigma = -(shift if shift is not None else _default_shift(stiffness, mass))
        try:
            eigenvalues, eigenvectors = eigsh(
                sparse.csc_matrix(stiffness),
                k=n_modes,
                M=sparse.csc_matrix(mass),
                sigma=sigma,
                which="LM",
                tol=10.0**-accuracy_goal,
            )
        except ArpackNoConvergence as e:
            raise EigenSolverError(
                f"Eigensolver did not converge: {len(e.eigenvalues)} of {n_modes} modes found. "
                "Try a lower accuracy_goal or fewer modes."
            ) from e
        except ArpackError as e:
            raise EigenSolverError(f"Eigensolver failed: {e}") from e

    order = np.argsort(eigenvalues)
    eigenvalues = eigenvalues[order]
    eigenvectors = eigenvectors[:, order]

    # Round-off puts the constant mode slightly below zero
    scale = _spectrum_scale(stiffness, mass, eigenvalues)
    significant = eigenvalues < -10.0 ** -(accuracy_goal // 2) * scale
    if np.any(significant):
        warnings.warn(
            f"{np.count_nonzero(significant)} clearly negative eigenvalues clamped to zero "
            f"(min {eigenvalues.min():.3e}); check the mesh for inverted elements.",
            UserWarning,
            stacklevel=2,
        )
    eigenvalues = np.maximum(eigenvalues, 0.0)

    eigenvectors = _normalize(eigenvectors, mass)

    return [
        EigenPair(index=i + 1, eigenvalue=float(lam), eigenfunction=eigenvectors[:, i].copy())
        for i, lam in enumerate(eigenvalues)
    ]
