"""
ardsim - Arduino Sketch Simulator Command-Line Interface
========================================================

Runs sketches against the simulated board from the terminal, shows the
Python a sketch translates to, and gives access to the built-in sketches.

Usage Examples
--------------
Run a sketch for 5 seconds:
    $ ardsim run blink.ino

Run a built-in sketch for 10 seconds with a fixed random seed:
    $ ardsim run --template complex --duration 10 --seed 42

Show the generated Python:
    $ ardsim transpile blink.ino
    $ ardsim transpile blink.ino -o blink.py

List or print the built-in sketches:
    $ ardsim templates
    $ ardsim templates fade

Verbose mode (DEBUG logging, including the generated code):
    $ ardsim -v run blink.ino

Exit Codes
----------
0 - Success
1 - Malformed sketch, or errors logged during the run
2 - Invalid arguments, missing files, unknown template
3 - Internal error
"""

import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import click

from arduino_sim import __version__
from arduino_sim.cli.errors import ExitCode, handle_cli_exception
from arduino_sim.config import SimulatorConfig
from arduino_sim.dialect.transformer import translate
from arduino_sim.runtime.log import LogEntry, LogKind
from arduino_sim.runtime.pins import PinLabel
from arduino_sim.runtime.simulator import Simulator
from arduino_sim.sketches import TEMPLATES, get_template

logger = logging.getLogger(__name__)


# =============================================================================
# CLI Context and Utilities
# =============================================================================

class Context:
    """Shared options of the ardsim commands."""

    def __init__(self) -> None:
        self.verbose: bool = False

    def setup_logging(self) -> None:
        """Configure logging based on verbosity."""
        level = logging.DEBUG if self.verbose else logging.WARNING
        logging.basicConfig(
            level=level,
            format="%(levelname)s: %(name)s: %(message)s" if self.verbose else "%(levelname)s: %(message)s",
        )


pass_context = click.make_pass_decorator(Context, ensure=True)


def print_log_entry(entry: LogEntry) -> None:
    """Echo an event log entry; errors go to stderr."""
    click.echo(entry.format(), err=entry.kind is LogKind.ERROR)


def pin_printer():
    """
    Build an on_pin_change callback that prints only actual changes.

    Lines read 'pin 13 -> HIGH', 'pin 13 -> LOW' or 'pin 9 -> PWM 128'.
    """
    last: dict[PinLabel, tuple[int, int]] = {}

    def on_pin_change(pin: PinLabel, digital: int, pwm: int) -> None:
        state = (digital, pwm)
        if last.get(pin, (0, 0)) == state:
            return
        last[pin] = state
        if pwm > 0:
            click.echo(f"pin {pin} -> PWM {pwm}")
        else:
            click.echo(f"pin {pin} -> {'HIGH' if digital else 'LOW'}")

    return on_pin_change


async def run_for(sim: Simulator, source: str, duration: float) -> None:
    """Run ``source`` until it stops by itself or ``duration`` seconds pass."""
    task = asyncio.create_task(sim.run(source))
    done, _ = await asyncio.wait({task}, timeout=duration)
    if not done:
        sim.stop()
    await task


# =============================================================================
# Main CLI Group
# =============================================================================

@click.group()
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Enable DEBUG logging (shows the generated Python)",
)
@click.version_option(version=__version__, prog_name="ardsim")
@pass_context
def main(ctx: Context, verbose: bool) -> None:
    """
    Simulate Arduino sketches on a virtual board.

    Sketches are translated to Python coroutines and run against simulated
    digital pins 0-13 and analog pins A0-A5.
    """
    ctx.verbose = verbose
    ctx.setup_logging()


# =============================================================================
# Run Command
# =============================================================================

@main.command()
@click.argument(
    "sketch",
    required=False,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-t", "--template",
    type=click.Choice(sorted(TEMPLATES)),
    default=None,
    help="Run a built-in sketch instead of a file",
)
@click.option(
    "-d", "--duration",
    type=click.FloatRange(min=0),
    default=5.0,
    show_default=True,
    help="Seconds to run before stopping",
)
@click.option(
    "--seed",
    type=int,
    default=None,
    help="Seed for random() (default: ARDSIM_RANDOM_SEED or system entropy)",
)
@click.option(
    "--pins/--no-pins",
    default=True,
    show_default=True,
    help="Print pin changes",
)
@pass_context
def run(
    ctx: Context,
    sketch: Optional[Path],
    template: Optional[str],
    duration: float,
    seed: Optional[int],
    pins: bool,
) -> None:
    """
    Run a sketch for a fixed time.

    SKETCH is the sketch file (.ino). Use --template instead to run one of
    the built-in sketches.

    \b
    Examples:
        ardsim run blink.ino
        ardsim run --template fade --duration 3
        ardsim run --template complex --seed 1 --no-pins
    """
    if (sketch is None) == (template is None):
        raise click.UsageError("give either SKETCH or --template")

    try:
        if sketch is not None:
            source, name = sketch.read_text(), sketch.name
        else:
            source, name = get_template(template), f"{template}.ino"

        config = replace(SimulatorConfig.from_env(), sketch_name=name)
        logger.debug("running %s for %.1fs", name, duration)
        if seed is not None:
            config = replace(config, random_seed=seed)

        sim = Simulator(
            config,
            on_pin_change=pin_printer() if pins else None,
            on_log=print_log_entry,
        )
        asyncio.run(run_for(sim, source, duration))
    except Exception as e:
        handle_cli_exception(e, ctx.verbose)

    sys.exit(ExitCode.BUILD_ERROR if sim.log.has_errors() else ExitCode.SUCCESS)


# =============================================================================
# Transpile Command
# =============================================================================

@main.command()
@click.argument(
    "sketch",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the generated Python to a file instead of stdout",
)
@pass_context
def transpile(ctx: Context, sketch: Path, output: Optional[Path]) -> None:
    """
    Print the Python generated for a sketch.

    \b
    Examples:
        ardsim transpile blink.ino
        ardsim transpile blink.ino -o blink.py
    """
    try:
        translation = translate(sketch.read_text(), sketch.name)
        if output is None:
            click.echo(translation.python_source, nl=False)
        else:
            output.write_text(translation.python_source)
            click.echo(f"Transpiled {sketch} -> {output}")
    except Exception as e:
        handle_cli_exception(e, ctx.verbose)


# =============================================================================
# Templates Command
# =============================================================================

@main.command()
@click.argument("name", required=False)
@pass_context
def templates(ctx: Context, name: Optional[str]) -> None:
    """
    List the built-in sketches, or print one.

    \b
    Examples:
        ardsim templates
        ardsim templates knight_rider
    """
    if name is None:
        for template_name in TEMPLATES:
            click.echo(template_name)
        return

    try:
        click.echo(get_template(name), nl=False)
    except KeyError as e:
        handle_cli_exception(e, ctx.verbose)


if __name__ == "__main__":
    main()
