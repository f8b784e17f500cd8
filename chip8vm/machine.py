"""
CHIP-8 machine state.
One Machine holds everything a running program can touch: memory, registers,
stack, timers, framebuffer and keypad. The interpreter mutates it in place;
front ends only go through set_key, framebuffer_snapshot and consume_redraw.
"""

import logging
import os
from typing import Union

import numpy as np

from .errors import RomLoadError

logger = logging.getLogger(__name__)

# CHIP-8 System Constants
MEMORY_SIZE = 4096
DISPLAY_WIDTH = 64
DISPLAY_HEIGHT = 32
DISPLAY_PIXELS = DISPLAY_WIDTH * DISPLAY_HEIGHT
REGISTER_COUNT = 16
STACK_SIZE = 16
KEYPAD_SIZE = 16
PROGRAM_START = 0x200
MAX_PROGRAM_SIZE = MEMORY_SIZE - PROGRAM_START  # 3584 bytes available for programs
FONT_START = 0x000
GLYPH_SIZE = 5
FLAG_REGISTER = 0xF

# CHIP-8 Font set (hexadecimal digits 0-F)
FONTSET = (
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
)
FONT_SIZE = len(FONTSET)

ProgramData = Union[bytes, bytearray, np.ndarray]


def program_bytes(data: ProgramData) -> bytes:
    """Return program data as bytes; numpy arrays must be 1-D integers in 0-255"""
    if isinstance(data, np.ndarray):
        if data.ndim != 1:
            raise RomLoadError(f"ROM array must be one-dimensional, got shape {data.shape}", size=data.size)
        if not np.issubdtype(data.dtype, np.integer):
            raise RomLoadError(f"ROM array must hold integers, got dtype {data.dtype}", size=data.size)
        if data.size and (data.min() < 0 or data.max() > 0xFF):
            raise RomLoadError("ROM array holds values outside 0-255", size=data.size)
        return data.astype(np.uint8).tobytes()
    return bytes(data)


class Machine:
    """
    Complete state of a single CHIP-8 instance.
    Created with the glyph table installed and the program counter at 0x200.
    """

    def __init__(self):
        self.reset()

    def reset(self):
        """Reset to power-on state (memory zeroed, glyphs installed)"""
        self.memory = np.zeros(MEMORY_SIZE, dtype=np.uint8)
        self.registers = np.zeros(REGISTER_COUNT, dtype=np.uint8)
        # Plain ints so index/pc arithmetic never wraps at numpy widths
        self.index = 0
        self.program_counter = PROGRAM_START
        self.stack = np.zeros(STACK_SIZE, dtype=np.uint16)
        self.stack_pointer = 0
        self.delay_timer = 0
        self.sound_timer = 0
        self.framebuffer = np.zeros((DISPLAY_HEIGHT, DISPLAY_WIDTH), dtype=np.uint8)
        self.redraw_pending = False
        self.keypad = np.zeros(KEYPAD_SIZE, dtype=bool)

        self.memory[FONT_START:FONT_START + FONT_SIZE] = FONTSET

    def load_program(self, data: ProgramData):
        """Copy a program into memory starting at 0x200"""
        program = program_bytes(data)

        if len(program) > MAX_PROGRAM_SIZE:
            raise RomLoadError(
                f"ROM too large: {len(program)} bytes, max {MAX_PROGRAM_SIZE}",
                size=len(program))

        self.memory[PROGRAM_START:PROGRAM_START + len(program)] = np.frombuffer(program, dtype=np.uint8)
        logger.info("Loaded ROM: %d bytes", len(program))
        if len(program) >= 2:
            logger.debug("First instruction: 0x%02X%02X", program[0], program[1])

    def load_rom(self, path: Union[str, os.PathLike]):
        """Read a ROM file from disk and load it"""
        try:
            with open(path, 'rb') as f:
                size = os.fstat(f.fileno()).st_size
                if size > MAX_PROGRAM_SIZE:
                    raise RomLoadError(
                        f"ROM too large: {size} bytes, max {MAX_PROGRAM_SIZE}",
                        path=str(path), size=size)
                data = f.read()
        except OSError as e:
            raise RomLoadError(f"Could not read ROM {path}: {e}", path=str(path)) from e

        try:
            self.load_program(data)
        except RomLoadError as e:
            e.path = str(path)
            raise

    def set_key(self, key: int, pressed: bool):
        """Set key state (0-F)"""
        if not 0 <= key < KEYPAD_SIZE:
            raise ValueError(f"Key out of range: {key}")
        self.keypad[key] = bool(pressed)

    def framebuffer_snapshot(self) -> np.ndarray:
        """Get current display state as a 32x64 array of 0/1"""
        return self.framebuffer.copy()

    def consume_redraw(self) -> bool:
        """Return the redraw flag and clear it"""
        pending = self.redraw_pending
        self.redraw_pending = False
        return pending

    @property
    def sound_active(self) -> bool:
        return self.sound_timer > 0

    def __repr__(self):
        return (f"<Machine pc=0x{self.program_counter:03X} I=0x{self.index:03X} "
                f"sp={self.stack_pointer} dt={self.delay_timer} st={self.sound_timer}>")
