# CHIP8 Virtual Machine:
# Input - key states are refreshed at the start of every cycle (and polled while Fx0A waits).
# Output - 64x32 monochrome framebuffer plus a beep flag that follows the sound timer.
# CPU - Cowgod's CHIP8 Technical reference http://devernay.free.fr/hacks/chip8/C8TECH10.HTM
# Memory - 4096 bytes which hold the fonts (from 0x000) and the loaded ROM (from 0x200).
#----------------------------------------------------------------------------------------------
# Registers are 16 bytes, the two timers count down once per cycle and the stack holds
# 16 return addresses with a separate stack pointer.
#----------------------------------------------------------------------------------------------
# The framebuffer is 32 row words, one bit per column, bit 63 is the leftmost pixel.

import logging
import random
import time

import numpy as np

from . import config
from .config import DEFAULT_QUIRKS
from .errors import (
    ExecutionError,
    LoadError,
    MachineHaltedError,
    StackOverflowError,
    StackUnderflowError,
    UnimplementedInstructionError,
)

logger = logging.getLogger(__name__)

LEFTMOST = 1 << (config.width - 1)


class Machine:
    """The CHIP-8 interpreter core.

    Construct it, load() a ROM once, then call step() for every cycle. After
    each step the caller can read ``display_changed``, ``changed_pixels`` and
    ``beep``.

    keyboard: optional object with ``pressed_keys()``. When given, the key
        states are refreshed from it at the start of each step and on every
        poll of the wait-for-key instruction.
    key_wait_timeout: seconds Fx0A may block. None blocks until a key is
        pressed; 0 checks once and leaves the instruction pending so the next
        step() retries it (for hosts that run inside an event loop).
    """

    def __init__(self, keyboard=None, quirks=None, rng=None,
                 poll_interval=config.KEY_POLL_INTERVAL, key_wait_timeout=None):
        self.keyboard = keyboard
        self.quirks = quirks or DEFAULT_QUIRKS
        self.rng = rng or random.Random()
        self.poll_interval = poll_interval
        self.key_wait_timeout = key_wait_timeout
        self._program = None

        # dispatch table, first match wins
        self.opcodes = [
            (0xFFFF, 0x00E0, self.op_CLS),
            (0xFFFF, 0x00EE, self.op_RET),

            (0xF000, 0x1000, self.op_JP),
            (0xF000, 0x2000, self.op_CALL),
            (0xF000, 0x3000, self.op_SE_Vx_kk),
            (0xF000, 0x4000, self.op_SNE_Vx_kk),
            (0xF00F, 0x5000, self.op_SE_Vx_Vy),
            (0xF000, 0x6000, self.op_LD_Vx_kk),
            (0xF000, 0x7000, self.op_ADD_Vx_kk),

            (0xF00F, 0x8000, self.op_LD_Vx_Vy),
            (0xF00F, 0x8001, self.op_OR),
            (0xF00F, 0x8002, self.op_AND),
            (0xF00F, 0x8003, self.op_XOR),
            (0xF00F, 0x8004, self.op_ADD),
            (0xF00F, 0x8005, self.op_SUB),
            (0xF00F, 0x8006, self.op_SHR),
            (0xF00F, 0x8007, self.op_SUBN),
            (0xF00F, 0x800E, self.op_SHL),

            (0xF00F, 0x9000, self.op_SNE_Vx_Vy),
            (0xF000, 0xA000, self.op_LD_I),
            (0xF000, 0xB000, self.op_JP_V0),
            (0xF000, 0xC000, self.op_RND),
            (0xF000, 0xD000, self.op_DRW),

            (0xF0FF, 0xE09E, self.op_SKP),
            (0xF0FF, 0xE0A1, self.op_SKNP),

            (0xF0FF, 0xF007, self.op_LD_Vx_DT),
            (0xF0FF, 0xF00A, self.op_WAITKEY),
            (0xF0FF, 0xF015, self.op_LD_DT_Vx),
            (0xF0FF, 0xF018, self.op_LD_ST_Vx),
            (0xF0FF, 0xF01E, self.op_ADD_I_Vx),
            (0xF0FF, 0xF029, self.op_FONT),
            (0xF0FF, 0xF033, self.op_BCD),
            (0xF0FF, 0xF055, self.op_STORE),
            (0xF0FF, 0xF065, self.op_LOAD),
        ]

        self._power_on()

    def _power_on(self):
        self.memory = bytearray(config.MEMORY_SIZE)
        self.V = [0] * config.REGISTER_COUNT
        self.I = 0
        self.pc = config.PROGRAM_START
        self.stack = np.zeros(config.STACK_DEPTH, dtype=np.uint16)
        self.sp = 0
        self.keys = np.zeros(config.KEY_COUNT, dtype=np.uint8)
        self.delay_timer = 0
        self.sound_timer = 0
        self.rows = [0] * config.height

        self.beep = False
        self.display_changed = False
        self.changed_pixels = []
        self.halted = None
        self._stalled = False

        # Load fontset into memory
        self.memory[config.FONT_START:config.FONT_START + len(config.fontset)] = bytes(config.fontset)

    # ---- Program ----
    def load(self, rom):
        rom = bytes(rom)
        if len(rom) > config.MAX_PROGRAM_SIZE:
            raise LoadError(len(rom), config.MAX_PROGRAM_SIZE)
        self.memory[config.PROGRAM_START:config.PROGRAM_START + len(rom)] = rom
        self._program = rom
        logger.info("loaded %d bytes of rom into memory", len(rom))

    def reset(self):
        """Back to power-on state, reloading the last program."""
        self._power_on()
        if self._program is not None:
            self.load(self._program)

    # ---- Keys ----
    def press_key(self, key):
        self.keys[key & 0xF] = 1

    def release_key(self, key):
        self.keys[key & 0xF] = 0

    def set_keys(self, pressed):
        self.keys[:] = 0
        for key in pressed:
            self.keys[key & 0xF] = 1

    def _refresh_keys(self):
        if self.keyboard is not None:
            self.set_keys(self.keyboard.pressed_keys())

    def _first_pressed_key(self):
        self._refresh_keys()
        for i in range(config.KEY_COUNT):
            if self.keys[i]:
                return i
        return None

    # ---- Framebuffer views ----
    @property
    def framebuffer(self):
        return tuple(self.rows)

    def pixel(self, x, y):
        return bool(self.rows[y % config.height] & (LEFTMOST >> (x % config.width)))

    def framebuffer_array(self):
        """The framebuffer as a (height, width) uint8 array of 0/1."""
        rows = np.array(self.rows, dtype=np.uint64)[:, None]
        shifts = np.arange(config.width - 1, -1, -1, dtype=np.uint64)
        return ((rows >> shifts) & np.uint64(1)).astype(np.uint8)

    # ---- Cycle ----
    def step(self):
        """Execute one instruction, then tick the timers."""
        if self.halted is not None:
            raise MachineHaltedError(self.halted)

        self.display_changed = False
        self.changed_pixels = []
        self._stalled = False
        self._refresh_keys()

        address = self.pc
        opcode = (self.memory[address] << 8) | self.memory[(address + 1) & 0xFFF]
        self.pc = (self.pc + 2) & 0xFFF
        logger.debug("%03X: %04X", address, opcode)

        try:
            for mask, pattern, handler in self.opcodes:
                if (opcode & mask) == pattern:
                    handler(opcode)
                    break
            else:
                raise UnimplementedInstructionError(opcode, address)
        except ExecutionError as e:
            self.pc = address
            self.halted = e
            logger.error("halted: %s", e)
            raise

        if self._stalled:
            return

        self._tick_timers()

    def _tick_timers(self):
        if self.delay_timer > 0:
            self.delay_timer -= 1
        if self.sound_timer > 0:
            self.sound_timer -= 1
        self.beep = self.sound_timer > 0

    def _skip(self):
        self.pc = (self.pc + 2) & 0xFFF

    # ---- Opcode handlers ----
    def op_CLS(self, opcode):
        for y, row in enumerate(self.rows):
            for x in range(config.width):
                if row & (LEFTMOST >> x):
                    self.changed_pixels.append((x, y, False))
        self.rows = [0] * config.height
        self.display_changed = True

    def op_RET(self, opcode):
        if self.sp == 0:
            raise StackUnderflowError(opcode, (self.pc - 2) & 0xFFF)
        self.sp -= 1
        self.pc = int(self.stack[self.sp])
        logger.debug("return to %03X", self.pc)

    def op_JP(self, opcode):
        self.pc = opcode & 0x0FFF

    def op_CALL(self, opcode):
        if self.sp >= config.STACK_DEPTH:
            raise StackOverflowError(opcode, (self.pc - 2) & 0xFFF)
        self.stack[self.sp] = self.pc
        self.sp += 1
        self.pc = opcode & 0x0FFF
        logger.debug("call subroutine at %03X", self.pc)

    def op_SE_Vx_kk(self, opcode):
        x = (opcode >> 8) & 0xF
        if self.V[x] == opcode & 0xFF:
            self._skip()

    def op_SNE_Vx_kk(self, opcode):
        x = (opcode >> 8) & 0xF
        if self.V[x] != opcode & 0xFF:
            self._skip()

    def op_SE_Vx_Vy(self, opcode):
        x = (opcode >> 8) & 0xF
        y = (opcode >> 4) & 0xF
        if self.V[x] == self.V[y]:
            self._skip()

    def op_LD_Vx_kk(self, opcode):
        x = (opcode >> 8) & 0xF
        self.V[x] = opcode & 0xFF

    def op_ADD_Vx_kk(self, opcode):
        x = (opcode >> 8) & 0xF
        self.V[x] = (self.V[x] + (opcode & 0xFF)) & 0xFF

    def op_LD_Vx_Vy(self, opcode):
        x = (opcode >> 8) & 0xF
        y = (opcode >> 4) & 0xF
        self.V[x] = self.V[y]

    def op_OR(self, opcode):
        x = (opcode >> 8) & 0xF
        y = (opcode >> 4) & 0xF
        self.V[x] |= self.V[y]

    def op_AND(self, opcode):
        x = (opcode >> 8) & 0xF
        y = (opcode >> 4) & 0xF
        self.V[x] &= self.V[y]

    def op_XOR(self, opcode):
        x = (opcode >> 8) & 0xF
        y = (opcode >> 4) & 0xF
        self.V[x] ^= self.V[y]

    # The flag goes in after the result so VF keeps the flag when x is F.
    def op_ADD(self, opcode):
        x = (opcode >> 8) & 0xF
        y = (opcode >> 4) & 0xF
        total = self.V[x] + self.V[y]
        self.V[x] = total & 0xFF
        self.V[0xF] = 1 if total > 0xFF else 0

    def op_SUB(self, opcode):
        x = (opcode >> 8) & 0xF
        y = (opcode >> 4) & 0xF
        not_borrow = 1 if self.V[x] > self.V[y] else 0
        self.V[x] = (self.V[x] - self.V[y]) & 0xFF
        self.V[0xF] = not_borrow

    def op_SHR(self, opcode):
        x = (opcode >> 8) & 0xF
        carry = self.V[x] & 1
        self.V[x] >>= 1
        self.V[0xF] = carry

    def op_SUBN(self, opcode):
        x = (opcode >> 8) & 0xF
        y = (opcode >> 4) & 0xF
        not_borrow = 1 if self.V[y] > self.V[x] else 0
        self.V[x] = (self.V[y] - self.V[x]) & 0xFF
        self.V[0xF] = not_borrow

    def op_SHL(self, opcode):
        x = (opcode >> 8) & 0xF
        carry = (self.V[x] >> 7) & 1
        self.V[x] = (self.V[x] << 1) & 0xFF
        self.V[0xF] = carry

    def op_SNE_Vx_Vy(self, opcode):
        x = (opcode >> 8) & 0xF
        y = (opcode >> 4) & 0xF
        if self.V[x] != self.V[y]:
            self._skip()

    def op_LD_I(self, opcode):
        self.I = opcode & 0x0FFF

    def op_JP_V0(self, opcode):
        self.pc = ((opcode & 0x0FFF) + self.V[0]) & 0xFFF

    def op_RND(self, opcode):
        x = (opcode >> 8) & 0xF
        self.V[x] = self.rng.getrandbits(8) & (opcode & 0xFF)

    def op_DRW(self, opcode):
        px = self.V[(opcode >> 8) & 0xF]
        py = self.V[(opcode >> 4) & 0xF]
        n = opcode & 0xF
        collision = 0
        for row in range(n):
            sprite = self.memory[(self.I + row) & 0xFFF]
            y = (py + row) % config.height
            for bit in range(8):
                if sprite & (0x80 >> bit):
                    x = (px + bit) % config.width
                    mask = LEFTMOST >> x
                    if self.rows[y] & mask:
                        collision = 1
                    self.rows[y] ^= mask
                    self.changed_pixels.append((x, y, bool(self.rows[y] & mask)))
        self.V[0xF] = collision
        self.display_changed = True
        logger.debug("drew %d-row sprite at (%d, %d), collision=%d", n, px, py, collision)

    def op_SKP(self, opcode):
        x = (opcode >> 8) & 0xF
        if self.keys[self.V[x] & 0xF]:
            self._skip()

    def op_SKNP(self, opcode):
        x = (opcode >> 8) & 0xF
        if not self.keys[self.V[x] & 0xF]:
            self._skip()

    def op_LD_Vx_DT(self, opcode):
        x = (opcode >> 8) & 0xF
        self.V[x] = self.delay_timer

    def op_WAITKEY(self, opcode):
        x = (opcode >> 8) & 0xF
        deadline = None
        if self.key_wait_timeout is not None:
            deadline = time.monotonic() + self.key_wait_timeout
        while True:
            key = self._first_pressed_key()
            if key is not None:
                self.V[x] = key
                logger.debug("got key press: %X", key)
                return
            if deadline is not None and time.monotonic() >= deadline:
                # stall: the same instruction runs again on the next step
                self.pc = (self.pc - 2) & 0xFFF
                self._stalled = True
                return
            time.sleep(self.poll_interval)

    def op_LD_DT_Vx(self, opcode):
        x = (opcode >> 8) & 0xF
        self.delay_timer = self.V[x]

    def op_LD_ST_Vx(self, opcode):
        x = (opcode >> 8) & 0xF
        self.sound_timer = self.V[x]

    def op_ADD_I_Vx(self, opcode):
        x = (opcode >> 8) & 0xF
        total = self.I + self.V[x]
        self.I = total & 0xFFF
        if self.quirks.index_overflow_flag:
            self.V[0xF] = 1 if total > 0xFFF else 0

    def op_FONT(self, opcode):
        x = (opcode >> 8) & 0xF
        self.I = config.FONT_START + (self.V[x] & 0xF) * config.BYTES_PER_GLYPH

    def op_BCD(self, opcode):
        x = (opcode >> 8) & 0xF
        v = self.V[x]
        self.memory[self.I] = v // 100
        self.memory[(self.I + 1) & 0xFFF] = (v // 10) % 10
        self.memory[(self.I + 2) & 0xFFF] = v % 10

    def op_STORE(self, opcode):
        x = (opcode >> 8) & 0xF
        for i in range(x + 1):
            self.memory[(self.I + i) & 0xFFF] = self.V[i]
        if self.quirks.load_store_increments_index:
            self.I = (self.I + x + 1) & 0xFFF

    def op_LOAD(self, opcode):
        x = (opcode >> 8) & 0xF
        for i in range(x + 1):
            self.V[i] = self.memory[(self.I + i) & 0xFFF]
        if self.quirks.load_store_increments_index:
            self.I = (self.I + x + 1) & 0xFFF
