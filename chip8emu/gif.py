"""
GIF recorder display.

Captures one frame per draw_frame() call and encodes them all as an animated
GIF at the end of a run. Useful for rendering simple ROMs (logos, test
pictures) without a window.
"""

import logging

from PIL import Image

from . import config

logger = logging.getLogger(__name__)

BLACK = 0
WHITE = 255


class GifRecorder:
    def __init__(self, scale=1):
        self.scale = scale
        self.frames = []

    def draw_frame(self, rows):
        img = Image.new("L", (config.width, config.height), color=BLACK)
        pixels = img.load()
        for y, row in enumerate(rows):
            for x in range(config.width):
                if row & (1 << (config.width - 1 - x)):
                    pixels[x, y] = WHITE
        if self.scale != 1:
            img = img.resize(
                (config.width * self.scale, config.height * self.scale),
                resample=Image.NEAREST,
            )
        self.frames.append(img)

    def save(self, path, duration=20):
        """Write the captured frames to ``path``; duration is ms per frame."""
        if not self.frames:
            raise ValueError("no frames were drawn")
        first, *rest = self.frames
        first.save(
            path,
            format="GIF",
            save_all=True,
            append_images=rest,
            duration=duration,
            loop=0,
        )
        logger.info("wrote %d frames to %s", len(self.frames), path)
