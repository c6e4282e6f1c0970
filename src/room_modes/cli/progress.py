"""Progress display for modal analyses.

Provides rich terminal UI for the analysis pipeline including:
- Stage progress bar (mesh, assemble, solve)
- Per-stage timings
- Memory usage
- Parameter, mesh and mode tables
"""

import time
from typing import TYPE_CHECKING

import psutil
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from room_modes.core.modal import STAGES

if TYPE_CHECKING:
    from room_modes.analysis.frequencies import AnalyticMode, RoomModes
    from room_modes.config import ModalAnalysisConfig
    from room_modes.geometry.solids import SDFPrimitive
    from room_modes.mesh.tetra import TetMesh

_STAGE_LABELS = {
    "mesh": "Meshing",
    "assemble": "Assembling matrices",
    "solve": "Solving eigenproblem",
}


def format_time(seconds: float) -> str:
    """Format time duration for display.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string like "0.25s", "1m 23s" or "2h 15m"
    """
    if seconds < 10:
        return f"{seconds:.2f}s"
    elif seconds < 60:
        return f"{seconds:.0f}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        secs = int(seconds % 60)
        return f"{minutes}m {secs:02d}s"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        return f"{hours}h {minutes:02d}m"


def format_bytes(num_bytes: float) -> str:
    """Format byte count for display.

    Args:
        num_bytes: Number of bytes

    Returns:
        Formatted string like "1.5 GB" or "256.0 MB"
    """
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if abs(num_bytes) < 1024.0:
            return f"{num_bytes:.1f} {unit}"
        num_bytes /= 1024.0
    return f"{num_bytes:.1f} PB"


class StageProgress:
    """Progress display for the modal analysis pipeline.

    Shows a progress bar over the pipeline stages and prints one line per
    finished stage with its duration and the current memory usage.

    Example:
        >>> with StageProgress(console) as progress:
        ...     modes = analysis.run(callback=progress.update)
    """

    def __init__(self, console: Console, stages: tuple[str, ...] = STAGES):
        """Initialize progress display.

        Args:
            console: Rich console instance
            stages: Stage names in execution order
        """
        self.console = console
        self.stages = stages
        self.completed = 0
        self.peak_memory = 0
        self.start_time = time.time()
        self._finished = False

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
        )
        self.task = self.progress.add_task(self._label(0), total=len(stages))
        self.progress.start()

    def _label(self, index: int) -> str:
        if index >= len(self.stages):
            return "Done"
        stage = self.stages[index]
        return _STAGE_LABELS.get(stage, stage.capitalize()) + "..."

    def update(self, stage: str, elapsed: float):
        """Record a finished stage.

        Called by ``ModalAnalysis.run`` after each stage.

        Args:
            stage: Name of the stage that finished
            elapsed: Seconds the stage took
        """
        self.completed += 1
        self.progress.update(
            self.task, completed=self.completed, description=self._label(self.completed)
        )

        current_memory = psutil.Process().memory_info().rss
        self.peak_memory = max(self.peak_memory, current_memory)

        label = _STAGE_LABELS.get(stage, stage)
        self.progress.console.print(
            f"  ✓ {label}: {format_time(elapsed)} "
            f"[dim](memory {format_bytes(current_memory)}, "
            f"peak {format_bytes(self.peak_memory)})[/dim]"
        )

    def finish(self):
        """Stop the progress display. Safe to call more than once."""
        if self._finished:
            return
        self._finished = True
        self.progress.stop()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.finish()


def print_analysis_info(
    console: Console,
    room: "SDFPrimitive",
    config: "ModalAnalysisConfig",
    output_path,
):
    """Print analysis parameters before running.

    Args:
        console: Rich console instance
        room: Room solid
        config: Analysis parameters
        output_path: Path to output file
    """
    lo, hi = room.bounding_box
    extent = hi - lo

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Parameter", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Room", type(room).__name__)
    table.add_row(
        "Bounding box",
        f"{extent[0]:.3g} × {extent[1]:.3g} × {extent[2]:.3g} m",
    )
    table.add_row("Max element volume", f"{config.resolve_cell_volume(room):.3e} m³")
    table.add_row("Modes", str(config.n_modes))
    table.add_row("Speed of sound", f"{config.speed_of_sound:g} m/s")

    mass = "lumped" if config.lumped_mass else "consistent"
    table.add_row("Solver", f"{config.solver} ({mass} mass, {config.accuracy_goal} digits)")

    table.add_row("Output", str(output_path))

    console.print(table)
    console.print()


def print_mesh_info(console: Console, mesh: "TetMesh"):
    """Print mesh statistics."""
    summary = mesh.summary()

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Parameter", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Vertices", f"{summary['vertices']:,}")
    table.add_row("Tetrahedra", f"{summary['elements']:,}")
    table.add_row("Boundary faces", f"{summary['boundary_faces']:,}")
    table.add_row("Mesh volume", f"{summary['volume']:.4g} m³")
    table.add_row(
        "Element quality",
        f"min {summary['min_quality']:.3f}, mean {summary['mean_quality']:.3f}",
    )
    if "snapped_vertices" in summary:
        table.add_row(
            "Boundary snapping",
            f"{summary['snapped_vertices']} moved, {summary['reverted_vertices']} kept on lattice",
        )

    console.print(table)
    console.print()


def print_mode_table(
    console: Console,
    room_modes: "RoomModes",
    analytic: "list[AnalyticMode] | None" = None,
):
    """Print the computed modes, optionally next to analytic ones.

    Args:
        console: Rich console instance
        room_modes: Computed modes
        analytic: Reference modes of the same count (rectangular rooms)
    """
    table = Table(title="Room modes")
    table.add_column("Mode", justify="right", style="cyan")
    table.add_column("Frequency (Hz)", justify="right")
    table.add_column("Eigenvalue", justify="right", style="dim")
    if analytic is not None:
        table.add_column("Analytic (Hz)", justify="right")
        table.add_column("(nx, ny, nz)", justify="center", style="dim")
        table.add_column("Error", justify="right")

    for row, (number, freq) in enumerate(room_modes.mode_table()):
        cells = [str(number), f"{freq:.2f}", f"{room_modes.eigenpairs[row].eigenvalue:.5g}"]
        if analytic is not None and row < len(analytic):
            ref = analytic[row]
            if ref.frequency > 0:
                error = f"{100 * (freq - ref.frequency) / ref.frequency:+.2f}%"
            else:
                error = "-"
            cells += [f"{ref.frequency:.2f}", str(ref.indices), error]
        elif analytic is not None:
            cells += ["", "", ""]
        table.add_row(*cells)

    console.print(table)
