"""
chip8vm - a CHIP-8 interpreter.
Machine holds the state, Interpreter executes it, FrameRunner drives it
at a fixed frame rate.
"""

from .disassembler import disassemble, disassemble_program
from .driver import FrameRunner, tick_timers
from .errors import (
    Chip8Error, MachineFault, MemoryBoundsFault, RomLoadError,
    StackOverflowFault, StackUnderflowFault,
)
from .interpreter import DEFAULT_QUIRKS, Interpreter
from .machine import FONTSET, Machine

__version__ = "0.1.0"

__all__ = [
    'Chip8Error', 'DEFAULT_QUIRKS', 'FONTSET', 'FrameRunner', 'Interpreter', 'Machine',
    'MachineFault', 'MemoryBoundsFault', 'RomLoadError', 'StackOverflowFault',
    'StackUnderflowFault', 'disassemble', 'disassemble_program', 'tick_timers',
]
