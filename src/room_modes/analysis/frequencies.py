"""
Eigenvalue to frequency conversion and analytic room modes.

The Helmholtz eigenvalue λ = k² relates to frequency through

    f = c · √λ / (2π)

with c the speed of sound. With lengths in meters and c in m/s, λ is in
rad²/m² and f in Hz.

For a rectangular room with rigid walls the modes are known in closed form,

    f(nx, ny, nz) = c/2 · √((nx/Lx)² + (ny/Ly)² + (nz/Lz)²)

and are classified by how many indices are nonzero: axial (one), tangential
(two) and oblique (three). They serve as a reference for meshes of cuboid
rooms.

Typical usage:
    >>> modes = ModalAnalysis(room).run()
    >>> for number, freq in modes.mode_table():
    ...     print(f"{number:3d}  {freq:7.2f} Hz")
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

import numpy as np
from numpy.typing import ArrayLike, NDArray

if TYPE_CHECKING:
    from room_modes.fem.eigensolver import EigenPair
    from room_modes.mesh.tetra import TetMesh

#: Speed of sound in air at 20 °C (m/s)
SPEED_OF_SOUND = 343.0

ModeKind = Literal["constant", "axial", "tangential", "oblique"]


def eigenvalue_to_frequency(
    eigenvalue: float | ArrayLike, speed_of_sound: float = SPEED_OF_SOUND
) -> float | NDArray[np.float64]:
    """Convert Helmholtz eigenvalues λ = k² to frequencies in Hz.

    Args:
        eigenvalue: λ in rad²/length² (scalar or array)
        speed_of_sound: c in length/s

    Returns:
        f = c·√λ/(2π), same shape as the input

    Raises:
        ValueError: For negative eigenvalues or non-positive c
    """
    if speed_of_sound <= 0:
        raise ValueError(f"speed_of_sound must be positive, got {speed_of_sound}")
    lam = np.asarray(eigenvalue, dtype=np.float64)
    if np.any(lam < 0):
        raise ValueError(f"Eigenvalues must be non-negative, got min {lam.min()}")
    freq = speed_of_sound * np.sqrt(lam) / (2 * np.pi)
    return float(freq) if freq.ndim == 0 else freq


def frequency_to_eigenvalue(
    frequency: float | ArrayLike, speed_of_sound: float = SPEED_OF_SOUND
) -> float | NDArray[np.float64]:
    """Inverse of ``eigenvalue_to_frequency``: λ = (2πf/c)²."""
    if speed_of_sound <= 0:
        raise ValueError(f"speed_of_sound must be positive, got {speed_of_sound}")
    freq = np.asarray(frequency, dtype=np.float64)
    if np.any(freq < 0):
        raise ValueError(f"Frequencies must be non-negative, got min {freq.min()}")
    lam = (2 * np.pi * freq / speed_of_sound) ** 2
    return float(lam) if lam.ndim == 0 else lam


@dataclass(frozen=True)
class AnalyticMode:
    """Closed-form mode of a rectangular room.

    Attributes:
        indices: Half-wavelength counts (nx, ny, nz)
        frequency: Mode frequency in Hz
    """

    indices: tuple[int, int, int]
    frequency: float

    @property
    def kind(self) -> ModeKind:
        nonzero = sum(1 for n in self.indices if n > 0)
        return ("constant", "axial", "tangential", "oblique")[nonzero]


def rectangular_room_modes(
    dimensions: tuple[float, float, float],
    n_modes: int | None = None,
    max_frequency: float | None = None,
    speed_of_sound: float = SPEED_OF_SOUND,
) -> list[AnalyticMode]:
    """Analytic modes of a rigid rectangular room, lowest first.

    Includes the constant (0, 0, 0) mode so that the list lines up with
    numerically computed modes.

    Args:
        dimensions: Room size (Lx, Ly, Lz)
        n_modes: Return this many modes
        max_frequency: Return all modes up to this frequency
        speed_of_sound: c in length/s

    Returns:
        List of AnalyticMode sorted by frequency (ties by indices)

    Example:
        >>> modes = rectangular_room_modes((5.0, 4.0, 2.5), n_modes=4)
        >>> [(m.indices, round(m.frequency, 1)) for m in modes]
        [((0, 0, 0), 0.0), ((1, 0, 0), 34.3), ((0, 1, 0), 42.9), ((1, 1, 0), 54.9)]
    """
    if (n_modes is None) == (max_frequency is None):
        raise ValueError("Specify exactly one of n_modes or max_frequency")
    dims = np.asarray(dimensions, dtype=np.float64)
    if dims.shape != (3,) or np.any(dims <= 0):
        raise ValueError(f"dimensions must be three positive lengths, got {dimensions}")
    if speed_of_sound <= 0:
        raise ValueError(f"speed_of_sound must be positive, got {speed_of_sound}")

    if max_frequency is not None:
        if max_frequency < 0:
            raise ValueError(f"max_frequency must be non-negative, got {max_frequency}")
        limit = max_frequency
    else:
        if n_modes < 1:
            raise ValueError(f"n_modes must be positive, got {n_modes}")
        # Every mode below the n-th lowest axial frequency along the
        # longest side is found by searching up to that frequency
        limit = speed_of_sound / 2 * n_modes / dims.max()

    n_max = np.floor(2 * limit * dims / speed_of_sound).astype(int)
    modes = []
    for idx in itertools.product(*(range(n + 1) for n in n_max)):
        freq = speed_of_sound / 2 * float(np.sqrt(np.sum((np.array(idx) / dims) ** 2)))
        if freq <= limit * (1 + 1e-12):
            modes.append(AnalyticMode(indices=tuple(int(i) for i in idx), frequency=freq))

    modes.sort(key=lambda m: (m.frequency, m.indices))
    if n_modes is not None:
        modes = modes[:n_modes]
    return modes


@dataclass
class RoomModes:
    """Computed modes of a room.

    Attributes:
        mesh: Mesh the eigenfunctions live on
        eigenpairs: Modes in ascending order
        speed_of_sound: c used for frequency conversion
        timings: Seconds spent in each pipeline stage
    """

    mesh: TetMesh
    eigenpairs: list[EigenPair]
    speed_of_sound: float = SPEED_OF_SOUND
    timings: dict[str, float] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.eigenpairs)

    @property
    def eigenvalues(self) -> NDArray[np.float64]:
        return np.array([pair.eigenvalue for pair in self.eigenpairs])

    @property
    def frequencies(self) -> NDArray[np.float64]:
        """Mode frequencies in Hz, ascending."""
        return eigenvalue_to_frequency(self.eigenvalues, self.speed_of_sound)

    @property
    def eigenfunctions(self) -> NDArray[np.float64]:
        """(V, N) matrix with one mode per column."""
        return np.stack([pair.eigenfunction for pair in self.eigenpairs], axis=1)

    def mode(self, number: int) -> EigenPair:
        """Mode by its 1-based number."""
        if not 1 <= number <= len(self.eigenpairs):
            raise IndexError(f"Mode {number} out of range 1..{len(self.eigenpairs)}")
        return self.eigenpairs[number - 1]

    def mode_table(self) -> list[tuple[int, float]]:
        """Rows of (mode number, frequency in Hz)."""
        return [(pair.index, float(f)) for pair, f in zip(self.eigenpairs, self.frequencies)]
