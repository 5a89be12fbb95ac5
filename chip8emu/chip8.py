"""Host driver: one Machine wired to a display, a keyboard and a speaker."""

import logging
import os
from typing import Optional

from .devices import Display, Keyboard, Speaker
from .machine import Machine

logger = logging.getLogger(__name__)


class Chip8:
    """Runs a Machine and forwards its outputs to the attached devices.

    The display is required; keyboard and speaker are optional. Extra keyword
    arguments (quirks, rng, poll_interval, key_wait_timeout) go to the Machine.
    """

    def __init__(self, display: Display, keyboard: Optional[Keyboard] = None,
                 speaker: Optional[Speaker] = None, **machine_options):
        if display is None:
            raise ValueError("chip8: need a display")
        self.display = display
        self.keyboard = keyboard
        self.speaker = speaker
        self.machine = Machine(keyboard=keyboard, **machine_options)
        self._playing = False

    def load_rom(self, source):
        """Load a ROM from bytes, a path or an open binary file."""
        if isinstance(source, (bytes, bytearray, memoryview)):
            data = bytes(source)
        elif isinstance(source, (str, os.PathLike)):
            logger.info("Loading ROM: %s", source)
            with open(source, "rb") as f:
                data = f.read()
        else:
            data = source.read()
        self.machine.load(data)

    def run_once(self):
        self.machine.step()
        if self.machine.display_changed:
            self.display.draw_frame(self.machine.framebuffer)
        self._update_speaker()

    def run_cycles(self, limit):
        """Run a fixed number of cycles; handy for rendering simple ROMs headlessly."""
        for _ in range(limit):
            self.run_once()

    def _update_speaker(self):
        if self.speaker is None:
            return
        beep = self.machine.beep
        if beep and not self._playing:
            self.speaker.beep()
        elif not beep and self._playing:
            self.speaker.pause()
        self._playing = beep
