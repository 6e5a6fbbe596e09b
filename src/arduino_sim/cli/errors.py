"""
Unified CLI Error Handling
==========================

Consistent error reporting and exit codes for the ardsim commands.
"""

import sys
import traceback
from enum import IntEnum
from typing import NoReturn

import click


class ExitCode(IntEnum):
    """Standard exit codes for ardsim."""
    SUCCESS = 0
    BUILD_ERROR = 1      # Malformed sketch, or errors logged during a run
    INVALID_ARGS = 2     # Invalid arguments, missing files, unknown template
    INTERNAL_ERROR = 3   # Unexpected internal error


def handle_cli_exception(error: Exception, verbose: bool = False) -> NoReturn:
    """
    Report an exception and exit with the matching exit code.

    Args:
        error: The exception that was raised
        verbose: If True, print the traceback of internal errors

    Raises:
        SystemExit: Always
    """
    from arduino_sim.errors import MalformedSourceError, SimulatorError

    if isinstance(error, MalformedSourceError):
        # Already formatted with location and "error:" prefix
        click.echo(str(error), err=True)
        sys.exit(ExitCode.BUILD_ERROR)

    elif isinstance(error, SimulatorError):
        click.echo(f"Error: {error}", err=True)
        sys.exit(ExitCode.BUILD_ERROR)

    elif isinstance(error, KeyError):
        # Unknown template; args[0] holds the readable message
        click.echo(f"Error: {error.args[0] if error.args else error}", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    elif isinstance(error, (click.BadParameter, FileNotFoundError, PermissionError, ValueError)):
        # ValueError: bad ARDSIM_* environment value
        click.echo(f"Error: {error}", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    else:
        click.echo(f"Internal error: {error}", err=True)
        if verbose:
            traceback.print_exception(type(error), error, error.__traceback__)
        sys.exit(ExitCode.INTERNAL_ERROR)
