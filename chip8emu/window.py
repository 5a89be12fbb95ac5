# pyglet front end: one window that is the display, the keyboard and the speaker.
# We're subclassing pyglet.window.Window (graphics, sound output and keyboard handling)
# and overriding the handlers we need from there.

import logging

import numpy as np
import pyglet
from pyglet.media import synthesis
from pyglet.window import key

from . import config
from .chip8 import Chip8
from .errors import Chip8Error

logger = logging.getLogger(__name__)

#map binding keys
KEYMAP = {
    key._1: 0x1, key._2: 0x2, key._3: 0x3, key._4: 0xC,
    key.Q: 0x4, key.W: 0x5, key.E: 0x6, key.R: 0xD,
    key.A: 0x7, key.S: 0x8, key.D: 0x9, key.F: 0xE,
    key.Z: 0xA, key.X: 0x0, key.C: 0xB, key.V: 0xF,
}


class Chip8Window(pyglet.window.Window):

    def __init__(self, rom, quirks=None, scale=config.scale, cpu_hz=config.CPU_HZ):
        self.pixel_scale = scale
        super().__init__(
            width=config.width * scale,
            height=config.height * scale,
            caption="CHIP-8 Emulator",
            vsync=False
        )

        self._pressed = set()
        self.beep_player = None
        self.error = None

        # Wait-for-key must not block the pyglet event loop, so it is retried every tick instead
        self.chip8 = Chip8(display=self, keyboard=self, speaker=self,
                           quirks=quirks, key_wait_timeout=0)
        self.chip8.load_rom(rom)

        # Pre-allocated small framebuffer (64x32 RGBA). We'll upscale on CPU using numpy.repeat
        self._small_framebuf = np.zeros((config.height, config.width, 4), dtype=np.uint8)
        self._small_framebuf[..., 3] = 255
        self.image = pyglet.image.ImageData(
            self.width,
            self.height,
            'RGBA',
            self._upscaled().tobytes()
        )

        # Performance tracking
        self._fps_counter = 0
        self._cps_counter = 0
        self.fps_label = pyglet.text.Label(
            "FPS: 0", font_size=12, x=5, y=self.height - 15,
            anchor_x='left', anchor_y='center', color=(255, 255, 255, 255)
        )
        self.cps_label = pyglet.text.Label(
            "Cycles/s: 0", font_size=12, x=5, y=self.height - 30,
            anchor_x='left', anchor_y='center', color=(255, 255, 255, 255)
        )

        pyglet.clock.schedule_interval(self.tick, 1 / cpu_hz)
        pyglet.clock.schedule_interval(self._update_bench, 1.0)

    # ---- CPU ----
    def tick(self, dt):
        try:
            self.chip8.run_once()
        except Chip8Error as e:
            self.error = e
            logger.error("Emulation error: %s", e)
            self.on_close()
            return
        self._cps_counter += 1

    def _update_bench(self, dt):
        self.fps_label.text = f"FPS: {self._fps_counter / dt:.1f}"
        self.cps_label.text = f"Cycles/s: {self._cps_counter}"
        self._fps_counter = 0
        self._cps_counter = 0

    # ---- Display ----
    def draw_frame(self, rows):
        # pyglet's origin is bottom-left, the framebuffer's is top-left
        pixels = self.chip8.machine.framebuffer_array()[::-1] * 255
        self._small_framebuf[..., :3] = pixels[..., None]
        self.image.set_data('RGBA', self.width * 4, self._upscaled().tobytes())

    def _upscaled(self):
        if self.pixel_scale == 1:
            return self._small_framebuf
        return np.repeat(np.repeat(self._small_framebuf, self.pixel_scale, axis=0), self.pixel_scale, axis=1)

    def on_draw(self):
        self.clear()
        self.image.blit(0, 0)
        self.fps_label.draw()
        self.cps_label.draw()
        self._fps_counter += 1

    # ---- Keyboard ----
    def pressed_keys(self):
        return set(self._pressed)

    def on_key_press(self, symbol, modifiers):
        if symbol == key.ESCAPE:
            self.on_close()
        elif symbol == key.F1:
            package_logger = logging.getLogger("chip8emu")
            debug = package_logger.getEffectiveLevel() > logging.DEBUG
            package_logger.setLevel(logging.DEBUG if debug else logging.WARNING)
            logger.warning("debug logging %s", "on" if debug else "off")
        elif symbol in KEYMAP:
            self._pressed.add(KEYMAP[symbol])

    def on_key_release(self, symbol, modifiers):
        if symbol in KEYMAP:
            self._pressed.discard(KEYMAP[symbol])

    # ---- Speaker ----
    def beep(self, frequency=440, duration=1.0):
        wave = synthesis.Sine(duration=duration, frequency=frequency, sample_rate=44100)
        self.beep_player = pyglet.media.Player()
        self.beep_player.queue(wave)
        self.beep_player.play()

    def pause(self):
        if self.beep_player is not None:
            self.beep_player.pause()
            self.beep_player.delete()
            self.beep_player = None

    def on_close(self):
        self.pause()
        pyglet.clock.unschedule(self.tick)
        pyglet.clock.unschedule(self._update_bench)
        super().on_close()
