"""Command-line tool for computing room modes from room scripts.

The room-modes CLI tool executes a room script, meshes the room, solves the
eigenproblem with progress tracking, prints the mode table and writes the
results to HDF5 (and optionally PNG plots).
"""

import hashlib
import sys
import time
import warnings
from pathlib import Path

import click
from rich.console import Console

from room_modes.analysis.frequencies import rectangular_room_modes
from room_modes.config import ModalAnalysisConfig
from room_modes.core.modal import ModalAnalysis
from room_modes.geometry.solids import Cuboid
from room_modes.io.hdf5 import ModalResultWriter

from .executor import ALLOWED_MODULES, RestrictedImportError, execute_room_script, validate_room_object
from .progress import StageProgress, format_time, print_analysis_info, print_mesh_info, print_mode_table

console = Console()


def _report_warnings(caught: list[warnings.WarningMessage]):
    for warning in caught:
        console.print(f"[yellow]Warning:[/yellow] {warning.message}")


def save_plots(room_modes, room, config: ModalAnalysisConfig, directory: Path) -> list[Path]:
    """Write geometry, mesh and mode figures as PNG files.

    Returns:
        Paths of the written files
    """
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    from room_modes.viz import plot_mesh, plot_mode_gallery, plot_mode_slices, plot_wireframe

    directory.mkdir(parents=True, exist_ok=True)
    written = []

    def save(fig, name: str):
        path = directory / name
        fig.savefig(path, dpi=120)
        plt.close(fig)
        written.append(path)

    save(plot_wireframe(room, view=config.view), "geometry.png")
    save(plot_mesh(room_modes.mesh, view=config.view), "mesh.png")
    save(plot_mode_gallery(room_modes), "modes.png")
    frequencies = room_modes.frequencies
    for pair in room_modes.eigenpairs:
        fig = plot_mode_slices(
            room_modes.mesh,
            pair.scaled(),
            view=config.view,
            title=f"Mode {pair.index}: {frequencies[pair.index - 1]:.1f} Hz",
        )
        save(fig, f"mode_{pair.index:02d}.png")
    return written


def run_analysis(
    script: Path,
    output: Path | None = None,
    modes: int | None = None,
    max_cell_volume: float | None = None,
    speed_of_sound: float | None = None,
    solver: str | None = None,
    lumped_mass: bool = False,
    plots: Path | None = None,
    dry_run: bool = False,
    verbose: bool = False,
) -> int:
    """Run a room script end to end.

    Returns:
        Process exit code (0 on success, 1 on error, 130 on interrupt)
    """
    try:
        # Read and hash script
        console.print(f"\n[bold]Room Modes:[/bold] {script.name}", style="blue")
        console.print("─" * 60)

        script_content = script.read_text()
        script_hash = hashlib.sha256(script_content.encode()).hexdigest()

        if verbose:
            console.print(f"Script hash: {script_hash}")

        # Determine output path
        if output is None:
            output = Path(f"modes_{script_hash[:8]}.h5")

        # Execute script to get the room
        console.print("Loading room...", style="dim")
        try:
            namespace = execute_room_script(script, script_content, verbose=verbose)
        except RestrictedImportError as e:
            console.print(f"\n[bold red]Security Error:[/bold red] {e}")
            console.print(
                "\n[yellow]Room scripts can only import:[/yellow] "
                f"{', '.join(sorted(ALLOWED_MODULES))}"
            )
            return 1
        except SyntaxError as e:
            console.print("\n[bold red]Syntax Error in script:[/bold red]")
            console.print(f"  {e}")
            return 1

        # Validate room and collect parameters
        try:
            room = validate_room_object(namespace)
            config = ModalAnalysisConfig.from_namespace(namespace).replace(
                n_modes=modes,
                max_cell_volume=max_cell_volume,
                speed_of_sound=speed_of_sound,
                solver=solver,
                lumped_mass=lumped_mass or None,
            )
        except ValueError as e:
            console.print(f"\n[bold red]Error:[/bold red] {e}")
            return 1

        print_analysis_info(console, room, config, output)

        if dry_run:
            console.print("[yellow]Dry run - analysis not executed[/yellow]")
            return 0

        # Run the pipeline with progress tracking
        start_time = time.time()
        analysis = ModalAnalysis(room, config)

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            progress = StageProgress(console)
            try:
                room_modes = analysis.run(callback=progress.update)
            except KeyboardInterrupt:
                progress.finish()
                console.print("\n[yellow]Interrupted by user[/yellow]")
                return 130  # Standard exit code for SIGINT
            except Exception as e:
                progress.finish()
                console.print(f"\n[bold red]Analysis Error:[/bold red] {e}")
                if verbose:
                    console.print_exception()
                return 1
            finally:
                progress.finish()
                _report_warnings(caught)

        runtime = time.time() - start_time

        console.print()
        print_mesh_info(console, room_modes.mesh)

        analytic = None
        if isinstance(room, Cuboid):
            analytic = rectangular_room_modes(
                room.dimensions, n_modes=len(room_modes), speed_of_sound=config.speed_of_sound
            )
        print_mode_table(console, room_modes, analytic)

        # Save results
        writer = ModalResultWriter(output, room_modes, script_content, config)
        writer.finalize(runtime=runtime)

        written_plots = []
        if plots is not None:
            console.print("Rendering plots...", style="dim")
            written_plots = save_plots(room_modes, room, config, plots)

        # Success summary
        console.print("─" * 60)
        console.print("✓ [bold green]Analysis complete![/bold green]")

        if output.exists():
            file_size = output.stat().st_size
            console.print(f"  Output: {output} ({file_size / 1e6:.1f} MB)")
        else:
            console.print(f"  Output: {output}")
        if written_plots:
            console.print(f"  Plots: {len(written_plots)} files in {plots}")

        console.print(f"  Runtime: {format_time(runtime)}")

        if verbose:
            console.print("\n[dim]Results can be analyzed with HDF5 tools (h5py, HDFView)[/dim]")

        return 0

    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            console.print_exception()
        return 1


@click.command()
@click.argument("script", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output file path (default: modes_{hash}.h5)",
)
@click.option("--modes", "-n", type=click.IntRange(min=1), help="Number of modes to compute")
@click.option(
    "--max-cell-volume",
    type=click.FloatRange(min=0, min_open=True),
    help="Maximum tetrahedron volume in m³ (default: bounding box / 4000)",
)
@click.option(
    "--speed-of-sound",
    "-c",
    type=click.FloatRange(min=0, min_open=True),
    help="Speed of sound in m/s (default: 343)",
)
@click.option(
    "--solver",
    type=click.Choice(["auto", "dense", "sparse"]),
    help="Eigensolver (default: auto-select by problem size)",
)
@click.option("--lumped-mass", is_flag=True, help="Use a diagonal (lumped) mass matrix")
@click.option(
    "--plots",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory to write PNG plots of geometry, mesh and modes",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output with debug info")
@click.option("--dry-run", is_flag=True, help="Validate script without running the analysis")
@click.version_option(version="0.1.0", prog_name="room-modes")
def main(
    script: Path,
    output: Path | None,
    modes: int | None,
    max_cell_volume: float | None,
    speed_of_sound: float | None,
    solver: str | None,
    lumped_mass: bool,
    plots: Path | None,
    verbose: bool,
    dry_run: bool,
):
    """Compute acoustic room modes from a Python script.

    SCRIPT is the path to a Python file that defines a 'room' variable
    holding a solid. Variables named like analysis parameters (n_modes,
    max_cell_volume, speed_of_sound, ...) override the defaults; command
    line options override both.

    Example script:

    \b
        from room_modes import Cuboid, Prism, Union
        room = Union(
            Cuboid(min_corner=(0, 0, 0), max_corner=(4, 3, 2.5)),
            Prism([(4, 0, 0), (5, 0, 0), (4, 3, 0),
                   (4, 0, 2.5), (5, 0, 2.5), (4, 3, 2.5)]),
        )
        n_modes = 12

    The tool will:
    - Execute the script to create the room
    - Display analysis parameters
    - Mesh the room and solve for the lowest modes with progress tracking
    - Print the mode frequencies
    - Save results to HDF5 with the source script embedded
    """
    sys.exit(
        run_analysis(
            script,
            output=output,
            modes=modes,
            max_cell_volume=max_cell_volume,
            speed_of_sound=speed_of_sound,
            solver=solver,
            lumped_mass=lumped_mass,
            plots=plots,
            dry_run=dry_run,
            verbose=verbose,
        )
    )


if __name__ == "__main__":
    main()
