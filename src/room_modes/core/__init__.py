"""Modal analysis pipeline."""

from room_modes.core.modal import STAGES, ModalAnalysis

__all__ = [
    "ModalAnalysis",
    "STAGES",
]
