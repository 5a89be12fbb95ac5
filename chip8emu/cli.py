"""
Command line front end.

    chip8emu run ROM         play a ROM in a pyglet window
    chip8emu record ROM      run a ROM headlessly and save the frames as a GIF
"""

import logging
import sys
import traceback
from enum import IntEnum
from typing import NoReturn

import click

from . import config
from .chip8 import Chip8
from .config import Quirks
from .errors import Chip8Error
from .gif import GifRecorder


class ExitCode(IntEnum):
    SUCCESS = 0
    EMULATION_ERROR = 1  # ROM too large, bad instruction, stack misuse
    INVALID_ARGS = 2     # Invalid arguments or missing files
    INTERNAL_ERROR = 3   # Unexpected internal error


def handle_cli_exception(error: Exception, verbose: bool = False) -> NoReturn:
    """Report ``error`` on stderr and exit with the matching code."""
    if isinstance(error, Chip8Error):
        click.echo(f"Error: {error}", err=True)
        sys.exit(ExitCode.EMULATION_ERROR)
    elif isinstance(error, (FileNotFoundError, PermissionError)):
        click.echo(f"Error: {error}", err=True)
        sys.exit(ExitCode.INVALID_ARGS)
    else:
        click.echo(f"Internal error: {error}", err=True)
        if verbose:
            traceback.print_exc()
        sys.exit(ExitCode.INTERNAL_ERROR)


def setup_logging(verbose):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@click.group()
@click.version_option(package_name="chip8emu")
def main():
    """CHIP-8 emulator."""


@main.command()
@click.argument("rom", type=click.Path(exists=True, dir_okay=False))
@click.option("--scale", default=config.scale, show_default=True, type=click.IntRange(1, 40),
              help="Window pixels per CHIP-8 pixel.")
@click.option("--hz", "cpu_hz", default=config.CPU_HZ, show_default=True, type=click.IntRange(1),
              help="Instructions per second.")
@click.option("--legacy-load-store", is_flag=True,
              help="Fx55/Fx65 advance I past the copied registers (COSMAC VIP behaviour).")
@click.option("--no-index-overflow", is_flag=True,
              help="Fx1E leaves VF untouched.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging.")
def run(rom, scale, cpu_hz, legacy_load_store, no_index_overflow, verbose):
    """Play ROM in a window."""
    setup_logging(verbose)
    quirks = Quirks(load_store_increments_index=legacy_load_store,
                    index_overflow_flag=not no_index_overflow)
    try:
        # pyglet needs a display as soon as the window module is imported
        import pyglet
        from .window import Chip8Window

        window = Chip8Window(rom, quirks=quirks, scale=scale, cpu_hz=cpu_hz)
        pyglet.app.run()
        if window.error is not None:
            raise window.error
    except Exception as e:
        handle_cli_exception(e, verbose)


@main.command()
@click.argument("rom", type=click.Path(exists=True, dir_okay=False))
@click.option("-n", "--cycles", default=1000, show_default=True, type=click.IntRange(1),
              help="Number of cycles to run.")
@click.option("-o", "--out", default="out.gif", show_default=True,
              type=click.Path(dir_okay=False, writable=True), help="GIF file to write.")
@click.option("--scale", default=4, show_default=True, type=click.IntRange(1, 40))
@click.option("--legacy-load-store", is_flag=True)
@click.option("--no-index-overflow", is_flag=True)
@click.option("-v", "--verbose", is_flag=True)
def record(rom, cycles, out, scale, legacy_load_store, no_index_overflow, verbose):
    """Run ROM without a window and save every frame to a GIF."""
    setup_logging(verbose)
    quirks = Quirks(load_store_increments_index=legacy_load_store,
                    index_overflow_flag=not no_index_overflow)
    recorder = GifRecorder(scale=scale)
    # Nothing can press a key here; give up on Fx0A instead of waiting forever
    chip8 = Chip8(display=recorder, quirks=quirks, key_wait_timeout=0)
    try:
        chip8.load_rom(rom)
        chip8.run_cycles(cycles)
        if not recorder.frames:
            click.echo(f"Error: nothing was drawn in {cycles} cycles", err=True)
            sys.exit(ExitCode.EMULATION_ERROR)
        recorder.save(out)
        click.echo(f"{len(recorder.frames)} frames written to {out}")
    except Exception as e:
        handle_cli_exception(e, verbose)


if __name__ == "__main__":
    main()
