"""
CHIP-8 fetch-decode-execute engine.
Interpreter.step() fetches one instruction from a Machine, looks it up in a
flat dispatch table and runs the matching handler. Unknown encodings are
logged and skipped so a bad opcode never halts the machine.
"""

import logging
from typing import Callable, Dict, Optional

import numpy as np

from .disassembler import format_instruction
from .errors import MemoryBoundsFault, StackOverflowFault, StackUnderflowFault
from .machine import (
    DISPLAY_HEIGHT, DISPLAY_WIDTH, FLAG_REGISTER, FONT_START, GLYPH_SIZE,
    KEYPAD_SIZE, MEMORY_SIZE, STACK_SIZE, Machine,
)
from .opcodes import DispatchKey, Instruction, decode, dispatch_key

logger = logging.getLogger(__name__)

DEFAULT_QUIRKS = {
    'memory': True,  # Fx55/Fx65 advance I by x + 1
}

Handler = Callable[[Machine, Instruction], None]


class Interpreter:
    """
    Executes instructions against a Machine passed to step().
    The interpreter holds no machine state of its own, only configuration
    (quirks, random source, log sink) and instrumentation counters.
    """

    def __init__(self, quirks: Optional[dict] = None, rng: Optional[np.random.Generator] = None,
                 log: Optional[logging.Logger] = None):
        self.quirks = dict(DEFAULT_QUIRKS)
        if quirks:
            unknown = set(quirks) - set(DEFAULT_QUIRKS)
            if unknown:
                raise ValueError(f"Unknown quirks: {sorted(unknown)}")
            self.quirks.update(quirks)

        self.rng = rng if rng is not None else np.random.default_rng()
        self.log = log if log is not None else logger

        self.stats = {
            'instructions_executed': 0,
            'unknown_instructions': 0,
            'key_waits': 0,
            'sprites_drawn': 0,
            'sprite_collisions': 0,
        }

        self.handlers: Dict[DispatchKey, Handler] = {
            (0x0, 0xE0): self._op_cls,
            (0x0, 0xEE): self._op_ret,
            (0x1, None): self._op_jp,
            (0x2, None): self._op_call,
            (0x3, None): self._op_se_byte,
            (0x4, None): self._op_sne_byte,
            (0x5, None): self._op_se_reg,
            (0x6, None): self._op_ld_byte,
            (0x7, None): self._op_add_byte,
            (0x8, 0x0): self._op_ld_reg,
            (0x8, 0x1): self._op_or,
            (0x8, 0x2): self._op_and,
            (0x8, 0x3): self._op_xor,
            (0x8, 0x4): self._op_add_reg,
            (0x8, 0x5): self._op_sub,
            (0x8, 0x6): self._op_shr,
            (0x8, 0x7): self._op_subn,
            (0x8, 0xE): self._op_shl,
            (0x9, None): self._op_sne_reg,
            (0xA, None): self._op_ld_i,
            (0xB, None): self._op_jp_v0,
            (0xC, None): self._op_rnd,
            (0xD, None): self._op_drw,
            (0xE, 0x9E): self._op_skp,
            (0xE, 0xA1): self._op_sknp,
            (0xF, 0x07): self._op_ld_vx_dt,
            (0xF, 0x0A): self._op_ld_vx_k,
            (0xF, 0x15): self._op_ld_dt_vx,
            (0xF, 0x18): self._op_ld_st_vx,
            (0xF, 0x1E): self._op_add_i_vx,
            (0xF, 0x29): self._op_ld_f_vx,
            (0xF, 0x33): self._op_ld_b_vx,
            (0xF, 0x55): self._op_ld_mem_vx,
            (0xF, 0x65): self._op_ld_vx_mem,
        }

    def step(self, machine: Machine):
        """Fetch, decode and execute one instruction"""
        pc = machine.program_counter
        if pc + 1 >= MEMORY_SIZE:
            raise MemoryBoundsFault("Instruction fetch past end of memory", pc)

        # Convert to regular Python int to avoid numpy overflow issues
        word = (int(machine.memory[pc]) << 8) | int(machine.memory[pc + 1])
        machine.program_counter = pc + 2
        self.stats['instructions_executed'] += 1

        if self.log.isEnabledFor(logging.DEBUG):
            self.log.debug("0x%03X: %04X  %s", pc, word, format_instruction(word))

        handler = self.handlers.get(dispatch_key(word))
        if handler is None:
            self.stats['unknown_instructions'] += 1
            self.log.warning("Opcode unknown: 0x%04X at 0x%03X", word, pc)
            return

        handler(machine, decode(word, pc))

    def run(self, machine: Machine, cycles: int):
        """Execute a fixed number of instructions"""
        for _ in range(cycles):
            self.step(machine)

    # Control flow

    def _op_cls(self, m: Machine, ins: Instruction):
        m.framebuffer.fill(0)
        m.redraw_pending = True

    def _op_ret(self, m: Machine, ins: Instruction):
        if m.stack_pointer == 0:
            raise StackUnderflowFault("RET with empty stack", ins.address, ins.word)
        m.stack_pointer -= 1
        m.program_counter = int(m.stack[m.stack_pointer])

    def _op_jp(self, m: Machine, ins: Instruction):
        m.program_counter = ins.nnn

    def _op_call(self, m: Machine, ins: Instruction):
        if m.stack_pointer >= STACK_SIZE:
            raise StackOverflowFault("Stack overflow", ins.address, ins.word)
        m.stack[m.stack_pointer] = m.program_counter
        m.stack_pointer += 1
        m.program_counter = ins.nnn

    def _op_jp_v0(self, m: Machine, ins: Instruction):
        m.program_counter = ins.nnn + int(m.registers[0])

    def _op_se_byte(self, m: Machine, ins: Instruction):
        if int(m.registers[ins.x]) == ins.kk:
            m.program_counter += 2

    def _op_sne_byte(self, m: Machine, ins: Instruction):
        if int(m.registers[ins.x]) != ins.kk:
            m.program_counter += 2

    def _op_se_reg(self, m: Machine, ins: Instruction):
        if m.registers[ins.x] == m.registers[ins.y]:
            m.program_counter += 2

    def _op_sne_reg(self, m: Machine, ins: Instruction):
        if m.registers[ins.x] != m.registers[ins.y]:
            m.program_counter += 2

    # Register arithmetic

    def _op_ld_byte(self, m: Machine, ins: Instruction):
        m.registers[ins.x] = ins.kk

    def _op_add_byte(self, m: Machine, ins: Instruction):
        m.registers[ins.x] = (int(m.registers[ins.x]) + ins.kk) & 0xFF

    def _op_ld_reg(self, m: Machine, ins: Instruction):
        m.registers[ins.x] = m.registers[ins.y]

    def _op_or(self, m: Machine, ins: Instruction):
        m.registers[ins.x] = int(m.registers[ins.x]) | int(m.registers[ins.y])

    def _op_and(self, m: Machine, ins: Instruction):
        m.registers[ins.x] = int(m.registers[ins.x]) & int(m.registers[ins.y])

    def _op_xor(self, m: Machine, ins: Instruction):
        m.registers[ins.x] = int(m.registers[ins.x]) ^ int(m.registers[ins.y])

    # Operands are read before VF is written; destination is written last

    def _op_add_reg(self, m: Machine, ins: Instruction):
        result = int(m.registers[ins.x]) + int(m.registers[ins.y])
        m.registers[FLAG_REGISTER] = 1 if result > 0xFF else 0
        m.registers[ins.x] = result & 0xFF

    def _op_sub(self, m: Machine, ins: Instruction):
        vx, vy = int(m.registers[ins.x]), int(m.registers[ins.y])
        m.registers[FLAG_REGISTER] = 1 if vx >= vy else 0  # NOT borrow
        m.registers[ins.x] = (vx - vy) & 0xFF

    def _op_subn(self, m: Machine, ins: Instruction):
        vx, vy = int(m.registers[ins.x]), int(m.registers[ins.y])
        m.registers[FLAG_REGISTER] = 1 if vy >= vx else 0  # NOT borrow
        m.registers[ins.x] = (vy - vx) & 0xFF

    def _op_shr(self, m: Machine, ins: Instruction):
        vx = int(m.registers[ins.x])
        m.registers[FLAG_REGISTER] = vx & 0x1
        m.registers[ins.x] = vx >> 1

    def _op_shl(self, m: Machine, ins: Instruction):
        vx = int(m.registers[ins.x])
        m.registers[FLAG_REGISTER] = (vx >> 7) & 0x1
        m.registers[ins.x] = (vx << 1) & 0xFF

    def _op_rnd(self, m: Machine, ins: Instruction):
        m.registers[ins.x] = int(self.rng.integers(0, 256)) & ins.kk

    # Memory and index

    def _op_ld_i(self, m: Machine, ins: Instruction):
        m.index = ins.nnn

    def _op_add_i_vx(self, m: Machine, ins: Instruction):
        m.index = (m.index + int(m.registers[ins.x])) & 0xFFFF

    def _op_ld_f_vx(self, m: Machine, ins: Instruction):
        m.index = FONT_START + int(m.registers[ins.x]) * GLYPH_SIZE

    def _check_span(self, m: Machine, ins: Instruction, length: int, what: str):
        if length and m.index + length > MEMORY_SIZE:
            raise MemoryBoundsFault(
                f"{what} of {length} bytes at I=0x{m.index:03X} runs past end of memory",
                ins.address, ins.word)

    def _op_ld_b_vx(self, m: Machine, ins: Instruction):
        self._check_span(m, ins, 3, "BCD store")
        value = int(m.registers[ins.x])
        m.memory[m.index] = value // 100
        m.memory[m.index + 1] = (value // 10) % 10
        m.memory[m.index + 2] = value % 10

    def _op_ld_mem_vx(self, m: Machine, ins: Instruction):
        count = ins.x + 1
        self._check_span(m, ins, count, "Register store")
        m.memory[m.index:m.index + count] = m.registers[:count]
        if self.quirks['memory']:
            m.index = (m.index + count) & 0xFFFF

    def _op_ld_vx_mem(self, m: Machine, ins: Instruction):
        count = ins.x + 1
        self._check_span(m, ins, count, "Register load")
        m.registers[:count] = m.memory[m.index:m.index + count]
        if self.quirks['memory']:
            m.index = (m.index + count) & 0xFFFF

    # Display

    def _op_drw(self, m: Machine, ins: Instruction):
        """Draw an n-byte sprite from [I, I+n) at (Vx, Vy), wrapping per pixel"""
        height = ins.n
        self._check_span(m, ins, height, "Sprite read")

        vx = int(m.registers[ins.x])
        vy = int(m.registers[ins.y])
        m.registers[FLAG_REGISTER] = 0

        for row in range(height):
            sprite_byte = int(m.memory[m.index + row])
            pixel_y = (vy + row) % DISPLAY_HEIGHT
            for col in range(8):
                if sprite_byte & (0x80 >> col):
                    pixel_x = (vx + col) % DISPLAY_WIDTH
                    if m.framebuffer[pixel_y, pixel_x]:
                        m.registers[FLAG_REGISTER] = 1
                    m.framebuffer[pixel_y, pixel_x] ^= 1

        m.redraw_pending = True
        self.stats['sprites_drawn'] += 1
        if m.registers[FLAG_REGISTER]:
            self.stats['sprite_collisions'] += 1

    # Keypad and timers

    def _key_pressed(self, m: Machine, ins: Instruction) -> bool:
        # keypad has 16 entries; only the low nibble of Vx selects a key
        return bool(m.keypad[int(m.registers[ins.x]) % KEYPAD_SIZE])

    def _op_skp(self, m: Machine, ins: Instruction):
        if self._key_pressed(m, ins):
            m.program_counter += 2

    def _op_sknp(self, m: Machine, ins: Instruction):
        if not self._key_pressed(m, ins):
            m.program_counter += 2

    def _op_ld_vx_k(self, m: Machine, ins: Instruction):
        for key in range(KEYPAD_SIZE):
            if m.keypad[key]:
                m.registers[ins.x] = key
                self.log.debug("Key %X pressed, stored in V%X", key, ins.x)
                return
        # Run this instruction again on the next step
        m.program_counter -= 2
        self.stats['key_waits'] += 1

    def _op_ld_vx_dt(self, m: Machine, ins: Instruction):
        m.registers[ins.x] = m.delay_timer

    def _op_ld_dt_vx(self, m: Machine, ins: Instruction):
        m.delay_timer = int(m.registers[ins.x])

    def _op_ld_st_vx(self, m: Machine, ins: Instruction):
        m.sound_timer = int(m.registers[ins.x])
