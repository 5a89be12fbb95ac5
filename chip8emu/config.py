# Machine geometry, pacing and compatibility settings.
# CPU - Cowgod's CHIP-8 Technical reference http://devernay.free.fr/hacks/chip8/C8TECH10.HTM
# Memory - 4096 bytes: interpreter area (fonts live here), then the ROM from 0x200.

from dataclasses import dataclass

# ---- Configuration ----
scale = 10
width, height = 64, 32
CPU_HZ = 500

MEMORY_SIZE = 4096
PROGRAM_START = 0x200
MAX_PROGRAM_SIZE = MEMORY_SIZE - PROGRAM_START  # 3584 bytes
REGISTER_COUNT = 16
STACK_DEPTH = 16
KEY_COUNT = 16

# Fx0A re-polls the keyboard this often (seconds)
KEY_POLL_INTERVAL = 0.005

# set fonts (binary pixel patterns)
FONT_START = 0x000
BYTES_PER_GLYPH = 5
fontset = [
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80   # F
] #notice 80 bytes


@dataclass(frozen=True)
class Quirks:
    """Behaviours that differ between CHIP-8 interpreters.

    load_store_increments_index: Fx55/Fx65 leave I at I + x + 1 afterwards
        (original COSMAC VIP). Off by default, matching modern interpreters.
    index_overflow_flag: Fx1E sets VF when I + Vx runs past 0xFFF, and clears
        it otherwise. On by default; off leaves VF alone.
    """
    load_store_increments_index: bool = False
    index_overflow_flag: bool = True


DEFAULT_QUIRKS = Quirks()
