"""
Exceptions raised by the CHIP-8 interpreter.
Load-time problems surface as RomLoadError before anything runs;
run-time faults are MachineFault subclasses raised out of step().
"""

from typing import Optional


class Chip8Error(Exception):
    """Base class for every error raised by chip8vm"""


class RomLoadError(Chip8Error):
    """Program could not be read or does not fit in memory"""

    def __init__(self, message: str, path: Optional[str] = None, size: Optional[int] = None):
        super().__init__(message)
        self.path = path
        self.size = size


class MachineFault(Chip8Error):
    """
    Recoverable run-time fault. The machine is left consistent:
    only the program counter advance of the faulting instruction has happened.
    """

    def __init__(self, message: str, address: int, instruction: Optional[int] = None):
        if instruction is None:
            where = f"at 0x{address:03X}"
        else:
            where = f"instruction 0x{instruction:04X} at 0x{address:03X}"
        super().__init__(f"{message} ({where})")
        self.address = address
        self.instruction = instruction


class StackOverflowFault(MachineFault):
    """CALL with all 16 stack slots in use"""


class StackUnderflowFault(MachineFault):
    """RET with an empty stack"""


class MemoryBoundsFault(MachineFault):
    """Memory access past 0xFFF"""
