"""
Exceptions raised by the CHIP-8 interpreter.

Two situations stop a program: a ROM that does not fit in program memory
(LoadError, raised before anything runs) and an instruction the machine
cannot execute (ExecutionError and its subclasses). Execution errors halt
the machine; its state stays inspectable until reset().
"""

from typing import Optional


class Chip8Error(Exception):
    """Base class for all interpreter errors."""


class LoadError(Chip8Error):
    """ROM image larger than the program area."""

    def __init__(self, size: int, capacity: int):
        self.size = size
        self.capacity = capacity
        super().__init__(
            f"ROM is {size} bytes, program memory holds at most {capacity}"
        )


class ExecutionError(Chip8Error):
    """An instruction could not be executed. Carries the opcode and its address."""

    def __init__(self, opcode: int, address: int, message: Optional[str] = None):
        self.opcode = opcode
        self.address = address
        if message is None:
            message = "cannot execute"
        super().__init__(f"{message}: opcode {opcode:04X} at {address:03X}")


class UnimplementedInstructionError(ExecutionError):
    def __init__(self, opcode: int, address: int):
        super().__init__(opcode, address, "unimplemented instruction")


class StackOverflowError(ExecutionError):
    def __init__(self, opcode: int, address: int):
        super().__init__(opcode, address, "stack overflow on CALL")


class StackUnderflowError(ExecutionError):
    def __init__(self, opcode: int, address: int):
        super().__init__(opcode, address, "stack underflow on RET")


class MachineHaltedError(ExecutionError):
    """step() was called after an execution error without a reset()."""

    def __init__(self, cause: ExecutionError):
        self.cause = cause
        super().__init__(cause.opcode, cause.address, "machine halted")
