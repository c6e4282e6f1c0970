"""Tests for HDF5 output format."""

import tempfile
from pathlib import Path

import h5py
import numpy as np
import pytest

from room_modes import ModalAnalysis, ModalAnalysisConfig
from room_modes.io.hdf5 import ModalResultReader, ModalResultWriter


@pytest.fixture
def config():
    return ModalAnalysisConfig(n_modes=4, max_cell_volume=0.002, speed_of_sound=340.0)


@pytest.fixture
def room_modes(box, config):
    return ModalAnalysis(box, config).run()


@pytest.fixture
def output_path():
    with tempfile.NamedTemporaryFile(suffix=".h5", delete=False) as f:
        path = Path(f.name)
    yield path
    if path.exists():
        path.unlink()


def test_hdf5_writer_basic(room_modes, config, output_path):
    """Test basic HDF5 writer functionality."""
    script_content = "# Test script"

    writer = ModalResultWriter(output_path, room_modes, script_content, config)
    writer.finalize(runtime=1.5)

    assert output_path.exists()

    with h5py.File(output_path, "r") as f:
        for group in ("metadata", "mesh", "modes", "analysis"):
            assert group in f

        assert f["metadata"].attrs["script_content"] == script_content
        assert len(f["metadata"].attrs["script_hash"]) == 64
        assert f["metadata"].attrs["total_runtime_seconds"] == 1.5

        assert f["mesh/vertices"].shape == (room_modes.mesh.num_vertices, 3)
        assert f["mesh/tetrahedra"].shape == (room_modes.mesh.num_elements, 4)
        assert f["modes/eigenfunctions"].shape == (room_modes.mesh.num_vertices, 4)
        assert f["modes"].attrs["num_modes"] == 4
        assert f["modes/frequencies"].attrs["units"] == "Hz"

        # max_cell_volume is set, so every config field is stored
        assert f["analysis"].attrs["solver"] == "auto"
        assert "time_solve" in f["analysis"].attrs


def test_hdf5_reader(room_modes, config, output_path):
    """Test HDF5 reader functionality."""
    ModalResultWriter(output_path, room_modes, config=config).finalize()

    with ModalResultReader(output_path) as reader:
        metadata = reader.get_metadata()
        assert "version" in metadata["metadata"]
        assert "script_hash" not in metadata["metadata"]
        assert metadata["modes"]["speed_of_sound"] == 340.0
        assert metadata["mesh"]["components"] == 1

        assert reader.num_modes == 4
        np.testing.assert_allclose(reader.load_frequencies(), room_modes.frequencies)
        np.testing.assert_allclose(reader.load_eigenvalues(), room_modes.eigenvalues)
        np.testing.assert_allclose(reader.load_mode(2), room_modes.mode(2).eigenfunction)

        with pytest.raises(IndexError):
            reader.load_mode(5)


def test_hdf5_mesh_round_trip(room_modes, output_path):
    ModalResultWriter(output_path, room_modes).finalize()

    with ModalResultReader(output_path) as reader:
        mesh = reader.load_mesh()

    np.testing.assert_array_equal(mesh.tetrahedra, room_modes.mesh.tetrahedra)
    np.testing.assert_array_equal(mesh.boundary_faces, room_modes.mesh.boundary_faces)
    assert mesh.volume == pytest.approx(room_modes.mesh.volume)
    assert mesh.info["lattice_cells"] == room_modes.mesh.info["lattice_cells"]


def test_hdf5_load_room_modes(room_modes, config, output_path):
    """Files hold everything needed to rebuild the result."""
    ModalResultWriter(output_path, room_modes, config=config).finalize()

    with ModalResultReader(output_path) as reader:
        loaded = reader.load_room_modes()
        loaded_config = reader.load_config()

    assert len(loaded) == 4
    assert loaded.speed_of_sound == 340.0
    np.testing.assert_allclose(loaded.frequencies, room_modes.frequencies)
    assert set(loaded.timings) == {"mesh", "assemble", "solve"}
    assert loaded_config == config


def test_hdf5_config_without_cell_volume(room_modes, output_path):
    """None-valued parameters are skipped and restored as defaults."""
    config = ModalAnalysisConfig(n_modes=4, solver="dense")
    ModalResultWriter(output_path, room_modes, config=config).finalize()

    with ModalResultReader(output_path) as reader:
        assert "max_cell_volume" not in reader.get_metadata()["analysis"]
        assert reader.load_config() == config


def test_hdf5_no_config(room_modes, output_path):
    ModalResultWriter(output_path, room_modes).finalize()

    with ModalResultReader(output_path) as reader:
        assert reader.load_config() is None


def test_hdf5_compression(room_modes, output_path):
    """Test that HDF5 compression is working."""
    ModalResultWriter(output_path, room_modes, compression="gzip", compression_level=4).finalize()

    with h5py.File(output_path, "r") as f:
        dset = f["modes/eigenfunctions"]
        assert dset.compression == "gzip"
        assert dset.compression_opts == 4


def test_hdf5_context_manager_closes(room_modes, output_path):
    with ModalResultWriter(output_path, room_modes) as writer:
        pass

    assert not writer.file
    with ModalResultReader(output_path) as reader:
        assert reader.num_modes == 4


def test_hdf5_rejects_empty_result(room_modes, output_path):
    room_modes.eigenpairs = []
    with pytest.raises(ValueError, match="No modes"):
        ModalResultWriter(output_path, room_modes)
