"""HDF5 output format for modal analysis results.

File layout:

    /metadata          attrs: script_hash, script_content, created_at,
                              version, total_runtime_seconds, ...
    /mesh/vertices     (V, 3) float64
    /mesh/tetrahedra   (E, 4) int64
    /mesh/boundary_faces  (F, 3) int64
    /mesh/boundary_tets   (F,) int64
    /modes/eigenvalues    (N,) float64, rad²/m²
    /modes/frequencies    (N,) float64, Hz
    /modes/eigenfunctions (V, N) float64, one mass-normalized mode per column
    /analysis          attrs: analysis parameters and timings

Everything needed to plot modes again is in the file, so post-processing
does not have to re-run the mesher or the eigensolver.
"""

import hashlib
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import h5py
import numpy as np
from numpy.typing import NDArray

from room_modes.analysis.frequencies import RoomModes
from room_modes.config import ModalAnalysisConfig
from room_modes.fem.eigensolver import EigenPair
from room_modes.mesh.tetra import TetMesh


def _attr_value(value: Any) -> Any:
    """Convert numpy scalars read from attributes to Python values."""
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, bytes):
        return value.decode()
    return value


class ModalResultWriter:
    """Writer for modal analysis results.

    Example:
        >>> modes = ModalAnalysis(room, config).run()
        >>> writer = ModalResultWriter("modes.h5", modes, script_content, config)
        >>> writer.finalize(runtime=12.3)
    """

    def __init__(
        self,
        filename: str | Path,
        room_modes: RoomModes,
        script_content: str | None = None,
        config: ModalAnalysisConfig | None = None,
        compression: str | None = "gzip",
        compression_level: int = 4,
    ):
        """Initialize HDF5 writer and write all results.

        Args:
            filename: Output file path
            room_modes: Computed modes
            script_content: Source script for reproducibility
            config: Analysis parameters to record
            compression: Compression algorithm ('gzip', 'lzf', None)
            compression_level: Compression level (0-9 for gzip)
        """
        if len(room_modes) == 0:
            raise ValueError("No modes to write")

        self.filename = Path(filename)
        self.room_modes = room_modes
        self.compression = compression
        self.compression_opts = compression_level if compression == "gzip" else None
        self.file = h5py.File(filename, "w")

        self._write_metadata(script_content)
        self._write_mesh()
        self._write_modes()
        self._write_analysis(config)

    def _dataset(self, group: h5py.Group, name: str, data: NDArray) -> h5py.Dataset:
        # h5py refuses compression filters on empty datasets
        compress = self.compression if data.size else None
        return group.create_dataset(
            name,
            data=data,
            compression=compress,
            compression_opts=self.compression_opts if compress else None,
        )

    def _write_metadata(self, script_content: str | None):
        """Write provenance metadata to HDF5 attributes."""
        from room_modes import __version__

        meta = self.file.create_group("metadata")
        if script_content:
            script_hash = hashlib.sha256(script_content.encode()).hexdigest()
            meta.attrs["script_hash"] = script_hash
            meta.attrs["script_content"] = script_content
        meta.attrs["created_at"] = datetime.now(timezone.utc).isoformat()
        meta.attrs["version"] = __version__

    def _write_mesh(self):
        mesh = self.room_modes.mesh
        group = self.file.create_group("mesh")
        self._dataset(group, "vertices", mesh.vertices)
        self._dataset(group, "tetrahedra", mesh.tetrahedra)
        self._dataset(group, "boundary_faces", mesh.boundary_faces)
        self._dataset(group, "boundary_tets", mesh.boundary_tets)
        group.attrs["volume"] = mesh.volume
        group.attrs["boundary_area"] = mesh.boundary_area
        for key, value in mesh.info.items():
            group.attrs[key] = value

    def _write_modes(self):
        modes = self.room_modes
        group = self.file.create_group("modes")
        eigenvalues = self._dataset(group, "eigenvalues", modes.eigenvalues)
        eigenvalues.attrs["units"] = "rad^2/m^2"
        frequencies = self._dataset(group, "frequencies", modes.frequencies)
        frequencies.attrs["units"] = "Hz"
        functions = self._dataset(group, "eigenfunctions", modes.eigenfunctions)
        functions.attrs["normalization"] = "mass"
        group.attrs["speed_of_sound"] = modes.speed_of_sound
        group.attrs["num_modes"] = len(modes)

    def _write_analysis(self, config: ModalAnalysisConfig | None):
        group = self.file.create_group("analysis")
        if config is not None:
            for key, value in config.to_dict().items():
                # HDF5 attributes cannot hold None
                if value is not None:
                    group.attrs[key] = value
        for stage, seconds in self.room_modes.timings.items():
            group.attrs[f"time_{stage}"] = seconds

    def finalize(self, runtime: float | None = None, **extra_metadata):
        """Write final metadata and close file.

        Args:
            runtime: Total analysis runtime in seconds
            **extra_metadata: Additional metadata to store
        """
        if not self.file:
            return

        if runtime is not None:
            self.file["metadata"].attrs["total_runtime_seconds"] = runtime

        for key, value in extra_metadata.items():
            self.file["metadata"].attrs[key] = value

        self.file.flush()
        self.file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.finalize()


class ModalResultReader:
    """Reader for modal analysis results from HDF5 files.

    Example:
        >>> with ModalResultReader("modes.h5") as reader:
        ...     freqs = reader.load_frequencies()
        ...     modes = reader.load_room_modes()
    """

    def __init__(self, filename: str | Path):
        """Initialize reader.

        Args:
            filename: Path to HDF5 results file
        """
        self.filename = Path(filename)
        self.file = h5py.File(filename, "r")

    def get_metadata(self) -> dict[str, Any]:
        """Extract all metadata.

        Returns:
            Dict with metadata, mesh, modes and analysis attributes
        """
        metadata = {}
        for group in ("metadata", "mesh", "modes", "analysis"):
            if group in self.file:
                metadata[group] = {
                    key: _attr_value(value) for key, value in self.file[group].attrs.items()
                }
        return metadata

    @property
    def num_modes(self) -> int:
        if "modes/eigenvalues" not in self.file:
            return 0
        return self.file["modes/eigenvalues"].shape[0]

    def load_mesh(self) -> TetMesh:
        if "mesh" not in self.file:
            raise ValueError("No mesh data in file")
        group = self.file["mesh"]
        info = {
            key: _attr_value(value)
            for key, value in group.attrs.items()
            if key not in ("volume", "boundary_area")
        }
        return TetMesh(
            vertices=group["vertices"][:],
            tetrahedra=group["tetrahedra"][:],
            boundary_faces=group["boundary_faces"][:],
            boundary_tets=group["boundary_tets"][:],
            info=info,
        )

    def load_eigenvalues(self) -> NDArray[np.float64]:
        return self._modes_dataset("eigenvalues")

    def load_frequencies(self) -> NDArray[np.float64]:
        return self._modes_dataset("frequencies")

    def load_eigenfunctions(self) -> NDArray[np.float64]:
        """(V, N) matrix with one mode per column."""
        return self._modes_dataset("eigenfunctions")

    def load_mode(self, number: int) -> NDArray[np.float64]:
        """Eigenfunction of the 1-based mode ``number``."""
        n = self.num_modes
        if not 1 <= number <= n:
            raise IndexError(f"Mode {number} out of range 1..{n}")
        return self.file["modes/eigenfunctions"][:, number - 1]

    def _modes_dataset(self, name: str) -> NDArray[np.float64]:
        if f"modes/{name}" not in self.file:
            raise ValueError(f"No '{name}' data in file")
        return self.file[f"modes/{name}"][:]

    def load_config(self) -> ModalAnalysisConfig | None:
        """Analysis parameters, or None if the file does not record them."""
        if "analysis" not in self.file:
            return None
        names = ModalAnalysisConfig.field_names()
        attrs = {
            key: _attr_value(value)
            for key, value in self.file["analysis"].attrs.items()
            if key in names
        }
        if not attrs:
            return None
        return ModalAnalysisConfig(**attrs)

    def load_room_modes(self) -> RoomModes:
        """Rebuild the RoomModes written to this file."""
        eigenvalues = self.load_eigenvalues()
        functions = self.load_eigenfunctions()
        pairs = [
            EigenPair(index=i + 1, eigenvalue=float(lam), eigenfunction=functions[:, i])
            for i, lam in enumerate(eigenvalues)
        ]
        timings = {
            key[len("time_"):]: float(value)
            for key, value in self.file["analysis"].attrs.items()
            if key.startswith("time_")
        } if "analysis" in self.file else {}
        return RoomModes(
            mesh=self.load_mesh(),
            eigenpairs=pairs,
            speed_of_sound=float(self.file["modes"].attrs["speed_of_sound"]),
            timings=timings,
        )

    def close(self):
        """Close the HDF5 file."""
        if self.file:
            self.file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
