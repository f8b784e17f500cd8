"""
CHIP-8 disassembler.
Turns instruction words into mnemonics for the interpreter's debug trace
and for ROM listings (chip8vm --disassemble).
"""

from typing import Iterator, NamedTuple, Tuple

from .machine import PROGRAM_START, ProgramData, program_bytes
from .opcodes import decode, dispatch_key

# dispatch key -> (mnemonic, operands, description), formatted with the
# instruction's x, y, n, kk and nnn fields
MNEMONICS = {
    (0x0, 0xE0): ("CLS", "", "Clear display"),
    (0x0, 0xEE): ("RET", "", "Return from subroutine"),
    (0x1, None): ("JP", "${nnn:03X}", "Jump to {nnn:03X}"),
    (0x2, None): ("CALL", "${nnn:03X}", "Call subroutine at {nnn:03X}"),
    (0x3, None): ("SE", "V{x:X}, #{kk:02X}", "Skip if V{x:X} == {kk}"),
    (0x4, None): ("SNE", "V{x:X}, #{kk:02X}", "Skip if V{x:X} != {kk}"),
    (0x5, None): ("SE", "V{x:X}, V{y:X}", "Skip if V{x:X} == V{y:X}"),
    (0x6, None): ("LD", "V{x:X}, #{kk:02X}", "Load {kk} into V{x:X}"),
    (0x7, None): ("ADD", "V{x:X}, #{kk:02X}", "Add {kk} to V{x:X}"),
    (0x8, 0x0): ("LD", "V{x:X}, V{y:X}", "V{x:X} = V{y:X}"),
    (0x8, 0x1): ("OR", "V{x:X}, V{y:X}", "V{x:X} |= V{y:X}"),
    (0x8, 0x2): ("AND", "V{x:X}, V{y:X}", "V{x:X} &= V{y:X}"),
    (0x8, 0x3): ("XOR", "V{x:X}, V{y:X}", "V{x:X} ^= V{y:X}"),
    (0x8, 0x4): ("ADD", "V{x:X}, V{y:X}", "V{x:X} += V{y:X}, VF = carry"),
    (0x8, 0x5): ("SUB", "V{x:X}, V{y:X}", "V{x:X} -= V{y:X}, VF = !borrow"),
    (0x8, 0x6): ("SHR", "V{x:X}", "V{x:X} >>= 1, VF = LSB"),
    (0x8, 0x7): ("SUBN", "V{x:X}, V{y:X}", "V{x:X} = V{y:X} - V{x:X}, VF = !borrow"),
    (0x8, 0xE): ("SHL", "V{x:X}", "V{x:X} <<= 1, VF = MSB"),
    (0x9, None): ("SNE", "V{x:X}, V{y:X}", "Skip if V{x:X} != V{y:X}"),
    (0xA, None): ("LD", "I, ${nnn:03X}", "Load {nnn:03X} into I"),
    (0xB, None): ("JP", "V0, ${nnn:03X}", "Jump to V0 + {nnn:03X}"),
    (0xC, None): ("RND", "V{x:X}, #{kk:02X}", "V{x:X} = random & {kk:02X}"),
    (0xD, None): ("DRW", "V{x:X}, V{y:X}, #{n:X}", "Draw {n}-byte sprite at V{x:X}, V{y:X}"),
    (0xE, 0x9E): ("SKP", "V{x:X}", "Skip if key V{x:X} pressed"),
    (0xE, 0xA1): ("SKNP", "V{x:X}", "Skip if key V{x:X} not pressed"),
    (0xF, 0x07): ("LD", "V{x:X}, DT", "V{x:X} = delay timer"),
    (0xF, 0x0A): ("LD", "V{x:X}, K", "Wait for key press, store in V{x:X}"),
    (0xF, 0x15): ("LD", "DT, V{x:X}", "Delay timer = V{x:X}"),
    (0xF, 0x18): ("LD", "ST, V{x:X}", "Sound timer = V{x:X}"),
    (0xF, 0x1E): ("ADD", "I, V{x:X}", "I += V{x:X}"),
    (0xF, 0x29): ("LD", "F, V{x:X}", "I = sprite address for digit V{x:X}"),
    (0xF, 0x33): ("LD", "B, V{x:X}", "Store BCD of V{x:X} at I, I+1, I+2"),
    (0xF, 0x55): ("LD", "[I], V{x:X}", "Store V0-V{x:X} at I"),
    (0xF, 0x65): ("LD", "V{x:X}, [I]", "Load V0-V{x:X} from I"),
}


class Line(NamedTuple):
    address: int
    word: int
    mnemonic: str
    operands: str
    description: str


def disassemble(word: int) -> Tuple[str, str, str]:
    """
    Disassemble a single CHIP-8 instruction
    Returns: (mnemonic, operands, description)
    """
    ins = decode(word)
    entry = MNEMONICS.get(dispatch_key(ins.word))
    if entry is None:
        return "UNKNOWN", f"${ins.word:04X}", "Unknown instruction (ignored)"

    mnemonic, operands, description = entry
    fields = ins._asdict()
    return mnemonic, operands.format(**fields), description.format(**fields)


def format_instruction(word: int) -> str:
    mnemonic, operands, _ = disassemble(word)
    return f"{mnemonic} {operands}" if operands else mnemonic


def disassemble_program(data: ProgramData,
                        origin: int = PROGRAM_START) -> Iterator[Line]:
    """Walk a ROM two bytes at a time; a trailing odd byte is listed as data"""
    data = program_bytes(data)

    for offset in range(0, len(data) - 1, 2):
        word = (data[offset] << 8) | data[offset + 1]
        yield Line(origin + offset, word, *disassemble(word))

    if len(data) % 2:
        last = data[-1]
        yield Line(origin + len(data) - 1, last, "DB", f"#{last:02X}", "Trailing byte")


def format_listing(data: ProgramData, origin: int = PROGRAM_START) -> str:
    lines = []
    for line in disassemble_program(data, origin):
        text = f"{line.mnemonic} {line.operands}".rstrip()
        lines.append(f"0x{line.address:03X}: {line.word:04X}  {text:<20} ; {line.description}")
    return "\n".join(lines)
