"""CHIP-8 emulator: interpreter core, host driver and pyglet front end."""

from .chip8 import Chip8
from .config import Quirks
from .devices import FrameRecorder, NullSpeaker, StaticKeyboard
from .errors import (
    Chip8Error,
    ExecutionError,
    LoadError,
    MachineHaltedError,
    StackOverflowError,
    StackUnderflowError,
    UnimplementedInstructionError,
)
from .machine import Machine

__version__ = "0.1.0"

__all__ = [
    "Chip8",
    "Chip8Error",
    "ExecutionError",
    "FrameRecorder",
    "LoadError",
    "Machine",
    "MachineHaltedError",
    "NullSpeaker",
    "Quirks",
    "StackOverflowError",
    "StackUnderflowError",
    "StaticKeyboard",
    "UnimplementedInstructionError",
]
