#!/usr/bin/env python3
"""
MODIS State Explorer CLI

Loads the observations CSV and state boundaries named in config.yaml and
drives the map explorer from the command line: summarize the data, render a
single frame, step the autoplay driver through frames, or export an
interactive HTML map.

Usage:
    python -m ops.run_explorer summary
    python -m ops.run_explorer render --variable NDVI --period 2024-05 --pin Texas
    python -m ops.run_explorer animate --variable LST_Day --ticks 12
    python -m ops.run_explorer export-html --variable ET --period 2024-07

    # Override config values:
    python -m ops.run_explorer --set data.duplicates=error summary

    # Verbose logging:
    python -m ops.run_explorer --verbose render
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click
from loguru import logger

from analysis.interactive_map import InteractiveMapExporter
from analysis.map_frames import FrameRenderer
from explorer.autoplay import ManualTicker
from explorer.errors import ExplorerError
from explorer.session import MapExplorer
from explorer.time_axis import period_label
from ops.config_loader import Config
from processing.load_observations import build_explorer_inputs, load_dataset


class ConfigOverride(click.ParamType):
    """Custom parameter type for config overrides."""

    name = "config_override"

    def convert(self, value, param, ctx) -> Tuple[str, Any]:
        if "=" not in value:
            self.fail(f"Invalid format: {value}. Use KEY=VALUE", param, ctx)

        key, val = value.split("=", 1)

        if val.lower() in ("true", "false"):
            parsed_val: Any = val.lower() == "true"
        elif val.isdigit():
            parsed_val = int(val)
        elif "." in val and val.replace(".", "", 1).isdigit():
            parsed_val = float(val)
        else:
            parsed_val = val

        return key, parsed_val


def apply_override(data: Dict[str, Any], key: str, value: Any) -> None:
    """Set a dot-notation key in a nested config mapping."""
    keys = key.split(".")
    current = data
    for k in keys[:-1]:
        if not isinstance(current.get(k), dict):
            current[k] = {}
        current = current[k]
    current[keys[-1]] = value
    logger.debug(f"Added override: {key} = {value}")


def setup_logging(verbose: bool = False, enable_trace: bool = False) -> None:
    """
    Configure loguru logging with appropriate levels.

    Args:
        verbose: If True, set log level to DEBUG
        enable_trace: If True, enable TRACE level logging for deep debugging
    """
    logger.remove()

    if enable_trace:
        log_level = "TRACE"
        log_format = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
    elif verbose:
        log_level = "DEBUG"
        log_format = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
    else:
        log_level = "INFO"
        log_format = (
            "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"
        )

    logger.add(
        sys.stderr,
        format=log_format,
        level=log_level,
        colorize=True,
        backtrace=enable_trace,
        diagnose=enable_trace,
    )

    os.environ["LOGURU_LEVEL"] = log_level

    if verbose:
        logger.debug("🔧 Verbose logging enabled (DEBUG level)")
    if enable_trace:
        logger.trace("🔍 Trace logging enabled - maximum detail mode")


def handle_critical_error(error: Exception, context: str = "") -> None:
    """
    Handle critical errors with optional trace logging.

    Args:
        error: The exception that occurred
        context: Additional context about where the error occurred
    """
    enable_trace = os.environ.get("LOGURU_LEVEL", "INFO") == "TRACE"

    if enable_trace:
        logger.opt(exception=error).trace(f"💥 Full context for: {context}")

    logger.critical(f"💥 CRITICAL ERROR: {context}")
    logger.critical(f"Exception: {type(error).__name__}: {error}")

    if not enable_trace:
        logger.info("💡 For detailed debugging, run with --trace flag")


class ExplorerContext:
    """Click context object: config plus lazily loaded explorer inputs."""

    def __init__(self, config: Config):
        self.config = config
        self._dataset = None
        self._inputs = None

    @property
    def dataset(self):
        if self._dataset is None:
            self._dataset = load_dataset(self.config)
        return self._dataset

    @property
    def inputs(self):
        if self._inputs is None:
            self._inputs = build_explorer_inputs(self.dataset, self.config)
        return self._inputs

    def frame_renderer(self, output_dir: Optional[Path] = None) -> FrameRenderer:
        dataset = self.dataset
        if dataset.boundaries is None:
            raise click.UsageError("Rendering needs input_files.boundaries_geojson in config")
        return FrameRenderer(
            dataset.boundaries,
            dataset.region_field,
            output_dir or self.config.get_output_dir("frames"),
            dpi=self.config.get_visualization_setting("map_dpi"),
            figure_max_width=self.config.get_visualization_setting("figure_max_width"),
            no_data_color=self.config.get_visualization_setting("no_data_color"),
        )

    def explorer(self, projection=None, **kwargs) -> MapExplorer:
        store, registry, regions = self.inputs
        explorer = MapExplorer(
            projection=projection,
            interval=float(self.config.get_visualization_setting("autoplay_interval")),
            **kwargs,
        )
        explorer.load(store, registry, regions)
        return explorer


def _position(
    explorer: MapExplorer, variable: Optional[str], period: Optional[str], pin: Optional[str]
) -> None:
    if variable:
        if variable not in explorer.registry:
            raise click.BadParameter(
                f"Unknown variable {variable!r}; choose from {explorer.registry.ids()}",
                param_hint="--variable",
            )
        explorer.select_variable(variable)
    if period:
        try:
            explorer.scrub(explorer.axis.index_of(period))
        except KeyError:
            raise click.BadParameter(
                f"Unknown period {period!r}; data covers {list(explorer.axis.all_periods())}",
                param_hint="--period",
            ) from None
    if pin:
        explorer.click(pin)


@click.group()
@click.option("--config", "config_file", type=click.Path(exists=True), help="Path to config.yaml")
@click.option(
    "--set",
    "config_overrides",
    multiple=True,
    type=ConfigOverride(),
    help="Set config values using dot notation (e.g., data.duplicates=error)",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable DEBUG level logging")
@click.option(
    "--trace", is_flag=True, help="Enable TRACE level logging for deep debugging (maximum detail)"
)
@click.option("--log-file", type=str, help="Also log to specified file")
@click.pass_context
def cli(ctx, config_file, config_overrides, verbose, trace, log_file):
    """MODIS State Explorer: choropleth frames of satellite variables by state."""
    setup_logging(verbose=verbose, enable_trace=trace)

    if log_file:
        log_level = "TRACE" if trace else ("DEBUG" if verbose else "INFO")
        logger.add(
            log_file,
            level=log_level,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}",
            rotation="10 MB",
            retention="7 days",
        )
        logger.info(f"📄 Also logging to file: {log_file}")

    try:
        config = Config(config_file)
    except (FileNotFoundError, OSError, ValueError) as e:
        handle_critical_error(e, "loading configuration")
        ctx.exit(1)

    for key, value in config_overrides:
        apply_override(config.data, key, value)
    config.print_config_summary()

    ctx.obj = ExplorerContext(config)


@cli.command()
@click.pass_obj
def summary(obj: ExplorerContext):
    """Show variables, periods and regions in the dataset."""
    try:
        store, registry, regions = obj.inputs
    except (ExplorerError, FileNotFoundError) as e:
        handle_critical_error(e, "loading dataset")
        sys.exit(1)

    click.echo(f"Observations: {len(store):,}")
    click.echo(f"Regions:      {len(regions)}")
    periods = store.periods
    if periods:
        click.echo(
            f"Periods:      {len(periods)} ({period_label(periods[0])} to {period_label(periods[-1])})"
        )
    else:
        click.echo("Periods:      0")
    click.echo("Variables:")
    for variable_id in registry.ids():
        spec = registry.resolve(variable_id)
        unit = f" [{spec.unit}]" if spec.unit else ""
        legend = ", ".join(bucket.label for bucket in spec.legend())
        click.echo(f"  {variable_id}{unit}: {spec.label} ({legend})")


@cli.command()
@click.option("--variable", help="Variable id (defaults to the first registered)")
@click.option("--period", help="Time period key, e.g. 2024-05")
@click.option("--pin", help="Region to show as a line chart")
@click.option("--out", type=click.Path(), help="Output PNG path")
@click.pass_obj
def render(obj: ExplorerContext, variable, period, pin, out):
    """Render one frame to PNG."""
    try:
        renderer = obj.frame_renderer()
        explorer = obj.explorer()
        _position(explorer, variable, period, pin)
        path = renderer.draw(explorer.current_frame(), out)
    except (ExplorerError, FileNotFoundError) as e:
        handle_critical_error(e, "rendering frame")
        sys.exit(1)

    if path is None:
        click.echo("Nothing to render (empty dataset)")
    else:
        logger.success(f"✅ Frame saved: {path}")


@cli.command()
@click.option("--variable", help="Variable id (defaults to the first registered)")
@click.option("--pin", help="Region to show as a line chart")
@click.option("--ticks", type=int, default=None, help="Number of autoplay ticks (default: one loop)")
@click.option("--out-dir", type=click.Path(file_okay=False), help="Directory for PNG frames")
@click.pass_obj
def animate(obj: ExplorerContext, variable, pin, ticks, out_dir):
    """Step the autoplay driver and write one PNG per frame."""
    tickers = []

    def ticker_factory(interval, callback):
        ticker = ManualTicker(interval, callback)
        tickers.append(ticker)
        return ticker

    try:
        renderer = obj.frame_renderer(Path(out_dir) if out_dir else None)
        explorer = obj.explorer(ticker_factory=ticker_factory)
        _position(explorer, variable, None, pin)
        explorer.projection = renderer
        renderer.draw(explorer.current_frame())

        if ticks is None:
            ticks = max(len(explorer.axis) - 1, 0)
        explorer.play()
        fired = tickers[-1].fire(ticks) if tickers else 0
        explorer.pause()
    except (ExplorerError, FileNotFoundError) as e:
        handle_critical_error(e, "animating frames")
        sys.exit(1)

    logger.success(f"✅ Wrote {fired + 1} frame(s) to {renderer.output_dir}")


@cli.command("export-html")
@click.option("--variable", help="Variable id (defaults to the first registered)")
@click.option("--period", help="Time period key, e.g. 2024-05")
@click.option("--out", type=click.Path(), help="Output HTML path")
@click.pass_obj
def export_html(obj: ExplorerContext, variable, period, out):
    """Export an interactive HTML map of one frame."""
    try:
        dataset = obj.dataset
        if dataset.boundaries is None:
            raise click.UsageError("Export needs input_files.boundaries_geojson in config")
        explorer = obj.explorer()
        _position(explorer, variable, period, None)
        frame = explorer.current_frame()
        out_path = Path(out) if out else (
            obj.config.get_output_dir("html") / f"{frame.variable_id}_{frame.time_period}.html"
        )
        exporter = InteractiveMapExporter(
            dataset.boundaries,
            dataset.region_field,
            out_path,
            no_data_color=obj.config.get_visualization_setting("no_data_color"),
        )
        path = exporter.draw(frame)
    except (ExplorerError, FileNotFoundError) as e:
        handle_critical_error(e, "exporting interactive map")
        sys.exit(1)

    if path is None:
        click.echo("Nothing to export (empty dataset)")


if __name__ == "__main__":
    cli()
