"""
Command-line interface for varlayer.

Provides commands to inspect presets, derive slicing parameters and compute
layer height profiles, layers and the layer height texture of a slicing job.
"""

from dataclasses import fields
from pathlib import Path
from typing import Optional

import click
import numpy as np
from rich.console import Console
from rich.table import Table

from varlayer import __version__
from varlayer.core.config import ConfigManager, SlicingJobConfig, load_job_config
from varlayer.core.exceptions import VarLayerError
from varlayer.core.geometry import MeshLoader, mesh_height, place_on_bed
from varlayer.core.logging import configure_logging
from varlayer.slicing.adaptive import ModelVolume, layer_height_profile_adaptive
from varlayer.slicing.layers import LayerBoundary, generate_object_layers
from varlayer.slicing.parameters import SlicingParameters
from varlayer.slicing.profile import LayerHeightProfile, LayerHeightRange, validate
from varlayer.slicing.ranges import layer_height_profile_from_ranges
from varlayer.slicing.texture import TextureBuffer, generate_layer_height_texture

console = Console()


def _fail(what: str, error: Exception) -> None:
    console.print(f"[red]✗[/red] {what}: {error}")
    raise SystemExit(1)


def _presets(ctx: click.Context) -> Optional[ConfigManager]:
    config_dir = ctx.obj.get("config_dir")
    return ConfigManager(config_dir) if config_dir else None


def _load_job(ctx: click.Context, job_path: Path) -> SlicingJobConfig:
    return load_job_config(job_path, presets=_presets(ctx))


def _slicing_parameters(
    job: SlicingJobConfig, object_height: Optional[float] = None
) -> SlicingParameters:
    return SlicingParameters.create_from_config(
        job.printer,
        job.print_config,
        object_height if object_height is not None else job.object_height,
        job.extruders,
    )


def _job_ranges(job: SlicingJobConfig) -> list[LayerHeightRange]:
    return [LayerHeightRange(r.z_low, r.z_high, r.height) for r in job.ranges]


def _print_layers(
    params: SlicingParameters,
    profile: LayerHeightProfile,
    layers: list[LayerBoundary],
    show: int,
) -> None:
    validation = validate(profile, params)
    validation.raise_for_errors()

    heights = [layer.height for layer in layers]
    summary = Table(title="Layers")
    summary.add_column("Property", style="cyan")
    summary.add_column("Value")
    summary.add_row("Profile samples", str(len(profile)))
    summary.add_row("Layers", str(len(layers)))
    if layers:
        summary.add_row("Thinnest layer", f"{min(heights):.4f}")
        summary.add_row("Thickest layer", f"{max(heights):.4f}")
        summary.add_row("Top Z", f"{layers[-1].high:.4f}")
    summary.add_row("Object height", f"{params.object_print_z_height():.4f}")
    console.print(summary)

    if show > 0 and layers:
        table = Table(title=f"First {min(show, len(layers))} layers")
        table.add_column("#", justify="right")
        table.add_column("Low", justify="right")
        table.add_column("High", justify="right")
        table.add_column("Height", justify="right")
        for index, layer in enumerate(layers[:show]):
            table.add_row(
                str(index), f"{layer.low:.4f}", f"{layer.high:.4f}", f"{layer.height:.4f}"
            )
        console.print(table)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Preset directory with printers/ and prints/ subdirectories",
)
@click.option("--log-level", default="WARNING", help="Log level")
@click.option("--json-logs", is_flag=True, help="Emit JSON log lines")
@click.pass_context
def main(
    ctx: click.Context, config_dir: Optional[Path], log_level: str, json_logs: bool
) -> None:
    """varlayer - Variable layer height engine for FFF slicing."""
    configure_logging(level=log_level, json_output=json_logs)
    ctx.ensure_object(dict)
    ctx.obj["config_dir"] = config_dir


# =============================================================================
# Preset Commands
# =============================================================================


@main.group()
def config() -> None:
    """Preset inspection commands."""
    pass


@config.command("list-printers")
@click.pass_context
def config_list_printers(ctx: click.Context) -> None:
    """List available printer presets."""
    try:
        presets = _presets(ctx)
        if presets is None:
            raise click.UsageError("--config-dir is required")
        names = presets.list_printers()

        if not names:
            console.print("[yellow]No printer presets found.[/yellow]")
            return

        table = Table(title="Available Printers")
        table.add_column("Name", style="cyan")
        table.add_column("Extruders", justify="right")
        table.add_column("Nozzles")

        for name in names:
            printer = presets.get_printer(name)
            table.add_row(
                name,
                str(len(printer.nozzle_diameter)),
                ", ".join(f"{d:g}" for d in printer.nozzle_diameter),
            )

        console.print(table)

    except VarLayerError as e:
        _fail("Failed to list printers", e)


@config.command("list-prints")
@click.pass_context
def config_list_prints(ctx: click.Context) -> None:
    """List available print presets."""
    try:
        presets = _presets(ctx)
        if presets is None:
            raise click.UsageError("--config-dir is required")
        names = presets.list_prints()

        if not names:
            console.print("[yellow]No print presets found.[/yellow]")
            return

        table = Table(title="Available Prints")
        table.add_column("Name", style="cyan")
        table.add_column("Layer height", justify="right")
        table.add_column("First layer", justify="right")
        table.add_column("Raft layers", justify="right")

        for name in names:
            print_cfg = presets.get_print(name)
            table.add_row(
                name,
                f"{print_cfg.layer_height:g}",
                str(print_cfg.first_layer_height),
                str(print_cfg.raft_layers),
            )

        console.print(table)

    except VarLayerError as e:
        _fail("Failed to list prints", e)


# =============================================================================
# Layer Commands
# =============================================================================


@main.group()
def layers() -> None:
    """Layer height computation commands."""
    pass


@layers.command("params")
@click.argument("job_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def layers_params(ctx: click.Context, job_path: Path) -> None:
    """Show the slicing parameters derived for a job."""
    try:
        params = _slicing_parameters(_load_job(ctx, job_path))

        table = Table(title=f"Slicing parameters: {job_path.name}")
        table.add_column("Parameter", style="cyan")
        table.add_column("Value", justify="right")
        for f in fields(SlicingParameters):
            value = getattr(params, f.name)
            table.add_row(f.name, f"{value:.4f}" if isinstance(value, float) else str(value))
        console.print(table)

        if not params.valid():
            console.print("[yellow]⚠[/yellow] Parameters violate the layering invariants")

    except VarLayerError as e:
        _fail("Failed to derive slicing parameters", e)


@layers.command("generate")
@click.argument("job_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--show", "-n", default=10, show_default=True, help="Layers to list")
@click.pass_context
def layers_generate(ctx: click.Context, job_path: Path, show: int) -> None:
    """Generate layers from the layer height ranges of a job."""
    try:
        job = _load_job(ctx, job_path)
        params = _slicing_parameters(job)
        profile = layer_height_profile_from_ranges(params, _job_ranges(job))
        _print_layers(params, profile, generate_object_layers(params, profile), show)

    except VarLayerError as e:
        _fail("Failed to generate layers", e)


@layers.command("adaptive")
@click.argument("job_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("mesh_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--cusp", type=float, default=None, help="Override the job cusp value (mm)")
@click.option("--show", "-n", default=10, show_default=True, help="Layers to list")
@click.pass_context
def layers_adaptive(
    ctx: click.Context, job_path: Path, mesh_path: Path, cusp: Optional[float], show: int
) -> None:
    """Generate adaptive layers for a mesh. The mesh height replaces the job's."""
    try:
        job = _load_job(ctx, job_path)
        mesh = place_on_bed(MeshLoader.load(mesh_path))
        params = _slicing_parameters(job, object_height=mesh_height(mesh))
        profile = layer_height_profile_adaptive(
            params,
            _job_ranges(job),
            [ModelVolume(mesh, name=mesh_path.stem)],
            cusp_value=cusp if cusp is not None else job.cusp_value,
        )
        _print_layers(params, profile, generate_object_layers(params, profile), show)

    except VarLayerError as e:
        _fail("Failed to generate adaptive layers", e)


@layers.command("texture")
@click.argument("job_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--rows", default=64, show_default=True, help="Texture rows")
@click.option("--cols", default=256, show_default=True, help="Texture columns")
@click.option("--lod/--no-lod", default=True, help="Render the half resolution level")
@click.pass_context
def layers_texture(
    ctx: click.Context, job_path: Path, output: Path, rows: int, cols: int, lod: bool
) -> None:
    """Render the layer height texture of a job into a .npy file."""
    try:
        job = _load_job(ctx, job_path)
        params = _slicing_parameters(job)
        profile = layer_height_profile_from_ranges(params, _job_ranges(job))
        object_layers = generate_object_layers(params, profile)

        texture = TextureBuffer(rows, cols, second_level=lod)
        ncells = generate_layer_height_texture(params, object_layers, texture, lod)
        np.save(output, texture.level(0))
        console.print(
            f"[green]✓[/green] Wrote {rows}x{cols} texture ({ncells} cells) to {output}"
        )

    except VarLayerError as e:
        _fail("Failed to render texture", e)


if __name__ == "__main__":
    main()
