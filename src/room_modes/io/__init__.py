"""I/O for modal analysis results."""

# HDF5 I/O
from room_modes.io.hdf5 import (
    ModalResultReader,
    ModalResultWriter,
)

__all__ = [
    "ModalResultWriter",
    "ModalResultReader",
]
