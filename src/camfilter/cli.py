"""
Command-line interface for camera calibration and filter selection.
"""

import sys
from pathlib import Path
from typing import Optional, Tuple
import logging

import click
import yaml

from .codec import load_or_default
from .config import Config
from .exceptions import CalibrationSolveFailed, StorageUnavailable
from .filters import FilterMode
from .render import derive
from .solver import ChessboardSolver, ChessboardTarget
from .store import CalibrationStore


# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def _load_config(config: Optional[Path], verbose: bool = False) -> Config:
    cfg = Config.from_yaml(config) if config else Config()
    if verbose or cfg.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    return cfg


def _parse_size(ctx, param, value: Optional[str]) -> Optional[Tuple[int, int]]:
    if value is None:
        return None
    try:
        width, height = (int(v) for v in value.lower().split("x"))
    except ValueError:
        raise click.BadParameter("expected WIDTHxHEIGHT, e.g. 1280x720")
    if width <= 0 or height <= 0:
        raise click.BadParameter("width and height must be positive")
    return width, height


config_option = click.option(
    "-c", "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Configuration YAML file"
)


@click.group()
@click.version_option(version="0.1.0")
def main():
    """Camera filter calibration - lens calibration storage and filter selection."""
    pass


@main.command()
@click.argument("output_path", type=click.Path(path_type=Path))
def init_config(output_path: Path):
    """
    Create a default configuration file.
    """
    cfg = Config()
    cfg.to_yaml(output_path)
    click.echo(f"Created configuration file: {output_path}")


@main.command()
@config_option
@click.option("--yaml", "as_yaml", is_flag=True, help="Print the model as YAML")
def show(config: Optional[Path], as_yaml: bool):
    """
    Show the stored calibration (or the defaults if none is stored).
    """
    cfg = _load_config(config)
    path = cfg.storage.calibration_path
    model = load_or_default(path)

    if as_yaml:
        click.echo(yaml.dump(model.to_dict(), default_flow_style=False, sort_keys=False), nl=False)
        return

    render = derive(model)
    click.echo(f"Calibration: {path}")
    click.echo(f"  Image size: {model.width}x{model.height}")
    click.echo(f"  fx = {model.fx:.4f} px, fy = {model.fy:.4f} px")
    click.echo(f"  cx = {model.cx:.4f} px, cy = {model.cy:.4f} px")
    click.echo(f"  skew = {model.skew:.6f}")
    click.echo(f"  radial = [{', '.join(f'{k:.6f}' for k in model.radial)}]")
    click.echo(f"  flip_y = {model.flip_y}")
    click.echo()
    click.echo("Render calibration (float32):")
    for name, value in render.uniforms().items():
        click.echo(f"  {name}: {value}")


@main.command()
@click.argument("images", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@config_option
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def calibrate(images: Tuple[Path, ...], config: Optional[Path], verbose: bool):
    """
    Calibrate from chessboard images and store the result.

    IMAGES: Image files showing the chessboard target
    """
    import cv2

    cfg = _load_config(config, verbose)

    solver = ChessboardSolver(
        target=ChessboardTarget(
            columns=cfg.target.columns,
            rows=cfg.target.rows,
            square_size=cfg.target.square_size_mm,
        ),
        max_images=cfg.solver.max_images,
        min_images=cfg.solver.min_images,
        radial_terms=cfg.solver.radial_terms,
        flip_y=cfg.solver.flip_y,
        show_progress=cfg.solver.show_progress or verbose,
    )

    for image_path in images[:cfg.solver.max_images]:
        image = cv2.imread(str(image_path))
        if image is None:
            click.echo(click.style(f"Could not read image: {image_path}", fg="red"))
            sys.exit(1)
        try:
            solver.add_image(image)
        except ValueError as e:
            click.echo(click.style(f"✗ {image_path}: {e}", fg="red"))
            sys.exit(1)
    if len(images) > cfg.solver.max_images:
        click.echo(f"Using the first {cfg.solver.max_images} of {len(images)} images")

    store = CalibrationStore(cfg.storage.calibration_path, cfg.storage.preferences_path)
    store.load()

    try:
        result = solver.solve()
    except CalibrationSolveFailed as e:
        click.echo(click.style(f"✗ Calibration failed: {e}", fg="red"))
        sys.exit(1)

    try:
        store.on_calibration_completed(result)
    except StorageUnavailable as e:
        click.echo(click.style(f"✗ {e}", fg="red"))
        sys.exit(1)

    click.echo(click.style("✓ Calibration complete!", fg="green"))
    click.echo(f"  Images loaded: {solver.image_count}")
    click.echo(f"  RMS error: {solver.rms_error:.4f} px")
    click.echo(f"  fx = {result.fx:.2f} px, fy = {result.fy:.2f} px")
    click.echo(f"  cx = {result.cx:.2f} px, cy = {result.cy:.2f} px")
    click.echo(f"  radial = [{', '.join(f'{k:.6f}' for k in result.radial)}]")
    click.echo(f"  Saved to: {cfg.storage.calibration_path}")


@main.command()
@click.argument("index", type=int)
@config_option
@click.option("--view", callback=_parse_size, default="1280x720", help="Output surface size WxH")
@click.option("--preview", callback=_parse_size, default=None, help="Camera preview size WxH (default: view size)")
def select(index: int, config: Optional[Path], view: Tuple[int, int], preview: Optional[Tuple[int, int]]):
    """
    Choose a filter and print the uniforms it binds.

    INDEX: Position in the filter list (0 = default ... 10 = undistort)
    """
    cfg = _load_config(config)
    store = CalibrationStore(cfg.storage.calibration_path, cfg.storage.preferences_path)
    store.load()

    try:
        store.set_filter(index)
    except StorageUnavailable as e:
        click.echo(click.style(f"✗ {e}", fg="red"))
        sys.exit(1)

    selection, uniforms = store.frame_uniforms(view, preview or view)
    if selection.mode != index:
        try:
            requested = FilterMode(index).name
        except ValueError:
            requested = str(index)
        click.echo(click.style(f"Filter {requested} not available, using {selection.mode.name}", fg="yellow"))

    click.echo(f"Filter: {selection.mode.name} ({int(selection.mode)})")
    for name in sorted(uniforms):
        click.echo(f"  {name}: {uniforms[name]}")


@main.command()
@click.argument("output_path", type=click.Path(path_type=Path))
@config_option
def export(output_path: Path, config: Optional[Path]):
    """
    Export the stored calibration as YAML.
    """
    cfg = _load_config(config)
    model = load_or_default(cfg.storage.calibration_path)
    try:
        with open(output_path, "w") as f:
            yaml.dump(model.to_dict(), f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        click.echo(click.style(f"✗ Error: {e}", fg="red"))
        sys.exit(1)
    click.echo(f"Exported calibration to: {output_path}")


if __name__ == "__main__":
    main()
