"""
Command-line interface for bead PSF extraction.

    beadpsf extract beads.tif out/ --config psf.toml --scaling-factor 2
    beadpsf config-template psf.toml
"""

from pathlib import Path
from typing import Optional

import rich_click as click
from loguru import logger
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from beadpsf.config import Interpolation, PSFConfig, generate_config_template, load_config
from beadpsf.errors import InputError, NoBeadsError, PSFError, StorageError
from beadpsf.io.stack import load_stack
from beadpsf.io.writer import PSFOutputWriter
from beadpsf.psf.pipeline import PSFExtractionPipeline, PSFResult
from beadpsf.utils.logging import configure_cli_logging

click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.USE_MARKDOWN = True
click.rich_click.STYLE_HELPTEXT = ""


def display_config_summary(config: PSFConfig, console: Console | None = None) -> None:
    console = console or Console(stderr=True)

    table = Table(title="PSF Extraction Configuration")
    table.add_column("Parameter", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")
    for name, value in config.model_dump(mode="json").items():
        table.add_row(name, str(value))
    table.add_row("scaled window", str(config.scaled_window))

    console.print(table)


def display_result_summary(result: PSFResult, console: Console | None = None) -> None:
    console = console or Console(stderr=True)

    table = Table(title="PSF Extraction Result")
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")
    table.add_row("Focal plane", str(result.focal_index + 1))
    table.add_row("Background", f"{result.background:.3f}")
    table.add_row("Beads", str(result.n_beads))
    table.add_row("PSF shape (Z, Y, X)", str(tuple(result.avg_psf.shape)))
    for name, path in result.outputs.items():
        table.add_row(f"Output: {name}", str(path))

    console.print(table)


@click.group()
def main() -> None:
    """Averaged point-spread functions from fluorescent bead z-stacks."""


# fmt: off
@main.command()
@click.argument("input_path", metavar="INPUT", type=click.Path(exists=True, dir_okay=False, file_okay=True, path_type=Path))
@click.argument("output_dir", metavar="OUT", type=click.Path(file_okay=False, dir_okay=True, path_type=Path))
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, dir_okay=False, file_okay=True, path_type=Path), help="TOML configuration file")
@click.option("--scaling-factor", "-s", type=float, help="Lateral upsampling factor")
@click.option("--interpolation", "-i", type=click.Choice([m.value for m in Interpolation], case_sensitive=False), help="Upsampling interpolation")
@click.option("--window", "-w", "psf_window_size", type=int, help="PSF window size in original pixels")
@click.option("--prominence", "-p", "peak_prominence", type=float, help="Minimum bead peak height above background")
@click.option("--subtract-background/--no-subtract-background", default=None, help="Subtract background from the average PSF")
@click.option("--save-std/--no-save-std", default=None, help="Also write the standard deviation volume")
@click.option("--channel", type=int, help="Channel to use for multi-channel stacks")
@click.option("--localizer", type=click.Choice(["centroid", "daofind"]), help="Bead localizer")
@click.option("--fwhm", type=float, help="Expected bead FWHM for the daofind localizer")
@click.option("--debug", is_flag=True, help="Verbose console logging")
@click.option("--quiet", "-q", is_flag=True, help="Only print errors")
# fmt: on
def extract(
    input_path: Path,
    output_dir: Path,
    config_path: Optional[Path] = None,
    debug: bool = False,
    quiet: bool = False,
    **overrides,
) -> None:
    """
    Extract an averaged PSF from a bead z-stack.

    Writes `detected_peaks.png`, `Single_PSFs/PSF_<i>.tif`, `avg_PSF.tif` and,
    with `--save-std`, `std_PSF.tif` under **OUT**. Command-line options
    override values from `--config`.
    """
    console_level = "ERROR" if quiet else ("DEBUG" if debug else "INFO")
    log_file = configure_cli_logging(output_dir, "psf", console_level=console_level, file=input_path.name)
    console = Console(stderr=True, quiet=quiet)

    try:
        config = load_config(config_path, **overrides)
    except FileNotFoundError as e:
        raise click.ClickException(str(e))
    except (ValidationError, ValueError) as e:
        raise click.ClickException(f"Invalid configuration: {e}")

    display_config_summary(config, console)

    try:
        stack = load_stack(input_path, channel=config.channel)
        pipeline = PSFExtractionPipeline(config, writer=PSFOutputWriter(output_dir))
        result = pipeline.run(stack)
    except NoBeadsError as e:
        logger.warning(f"{e}. Nothing to average; see {output_dir / 'detected_peaks.png'}.")
        return
    except InputError as e:
        logger.error(f"Input error: {e}")
        raise click.ClickException(str(e))
    except StorageError as e:
        logger.error(f"I/O error: {e}")
        raise click.ClickException(str(e))
    except PSFError as e:
        logger.error(f"Processing error: {e}")
        raise click.ClickException(str(e))

    display_result_summary(result, console)
    if log_file is not None:
        logger.debug(f"Log written to {log_file}")


@main.command("config-template")
@click.argument("path", type=click.Path(dir_okay=False, file_okay=True, path_type=Path))
def config_template(path: Path) -> None:
    """Write a TOML configuration file with default parameters."""
    generate_config_template(path)


if __name__ == "__main__":
    main()
