"""Linear (P1) finite-element matrices for the Helmholtz eigenproblem.

Pressure modes of a room with rigid walls solve

    -∇²p = λ p   in the room,    ∂p/∂n = 0   on the walls,

with λ = k² = (2πf/c)². Multiplying by a test function and integrating by
parts turns the wall condition into a natural one: the boundary integral
vanishes, so the discrete problem ``K u = λ M u`` needs no boundary rows
at all.

On a linear tetrahedron with volume V and constant barycentric gradients G
(4 x 3), the element matrices are

    K_e = V · G Gᵀ
    M_e = V / 20 · (1 + δ_ij)          (consistent)
    M_e = V / 4 · δ_ij                 (lumped)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray
from scipy import sparse

if TYPE_CHECKING:
    from room_modes.mesh.tetra import TetMesh

_CONSISTENT_MASS = (np.ones((4, 4)) + np.eye(4)) / 20.0


def shape_gradients(mesh: TetMesh) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Barycentric shape function gradients of every element.

    Args:
        mesh: Tetrahedral mesh

    Returns:
        Tuple (gradients, volumes) with gradients of shape (E, 4, 3) and
        element volumes of shape (E,)
    """
    p = mesh.vertices[mesh.tetrahedra]
    edges = p[:, 1:] - p[:, :1]  # rows are p_i - p_0

    # x = p_0 + edgesᵀ λ', so ∇λ_i (i = 1..3) are the columns of edges⁻¹
    grads = np.empty((len(p), 4, 3))
    grads[:, 1:] = np.linalg.inv(edges).transpose(0, 2, 1)
    grads[:, 0] = -grads[:, 1:].sum(axis=1)

    volumes = np.abs(np.linalg.det(edges)) / 6.0
    return grads, volumes


def _scatter(mesh: TetMesh, local: NDArray[np.float64]) -> sparse.csr_matrix:
    """Sum (E, 4, 4) element matrices into a global sparse matrix."""
    tets = mesh.tetrahedra
    rows = np.broadcast_to(tets[:, :, np.newaxis], local.shape)
    cols = np.broadcast_to(tets[:, np.newaxis, :], local.shape)
    n = mesh.num_vertices
    matrix = sparse.coo_matrix(
        (local.ravel(), (rows.ravel(), cols.ravel())), shape=(n, n)
    )
    return matrix.tocsr()


def assemble_stiffness(mesh: TetMesh) -> sparse.csr_matrix:
    """Global stiffness (discrete Laplacian) matrix K."""
    grads, volumes = shape_gradients(mesh)
    local = volumes[:, np.newaxis, np.newaxis] * np.einsum("eik,ejk->eij", grads, grads)
    return _scatter(mesh, local)


def assemble_mass(mesh: TetMesh, lumped: bool = False) -> sparse.csr_matrix:
    """Global mass matrix M.

    Args:
        mesh: Tetrahedral mesh
        lumped: Use the row-sum lumped (diagonal) mass matrix. Lumping
            lowers computed frequencies slightly, while the consistent matrix
            raises them, so the two bracket the converged values.
    """
    _, volumes = shape_gradients(mesh)
    if lumped:
        diagonal = np.bincount(
            mesh.tetrahedra.ravel(),
            weights=np.repeat(volumes / 4.0, 4),
            minlength=mesh.num_vertices,
        )
        return sparse.diags(diagonal, format="csr")

    local = volumes[:, np.newaxis, np.newaxis] * _CONSISTENT_MASS
    return _scatter(mesh, local)


def assemble_system(
    mesh: TetMesh, lumped_mass: bool = False
) -> tuple[sparse.csr_matrix, sparse.csr_matrix]:
    """Stiffness and mass matrices for ``K u = λ M u`` with rigid walls.

    Example:
        >>> K, M = assemble_system(mesh)
        >>> ones = np.ones(mesh.num_vertices)
        >>> np.allclose(K @ ones, 0)    # constant pressure has no energy
        True
        >>> np.isclose(ones @ M @ ones, mesh.volume)
        True
    """
    if mesh.num_elements == 0:
        raise ValueError("Cannot assemble matrices for an empty mesh")
    return assemble_stiffness(mesh), assemble_mass(mesh, lumped=lumped_mass)
