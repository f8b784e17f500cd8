"""
Instruction word decoding shared by the interpreter and the disassembler.
"""

from typing import NamedTuple, Optional, Tuple

# Families that need a second look to pick the concrete operation
LOW_BYTE_FAMILIES = frozenset((0x0, 0xE, 0xF))
LOW_NIBBLE_FAMILIES = frozenset((0x8,))

DispatchKey = Tuple[int, Optional[int]]


class Instruction(NamedTuple):
    """A fetched instruction word split into its operand fields"""
    address: int
    word: int
    x: int
    y: int
    n: int
    kk: int
    nnn: int


def decode(word: int, address: int = 0) -> Instruction:
    word = int(word)
    return Instruction(
        address=address,
        word=word,
        x=(word & 0x0F00) >> 8,
        y=(word & 0x00F0) >> 4,
        n=word & 0x000F,
        kk=word & 0x00FF,
        nnn=word & 0x0FFF,
    )


def dispatch_key(word: int) -> DispatchKey:
    """
    Classify an instruction word: (family, secondary).
    secondary is the low byte for 0x0/0xE/0xF, the low nibble for 0x8,
    and None for families selected by the top nibble alone.
    """
    family = (word & 0xF000) >> 12
    if family in LOW_BYTE_FAMILIES:
        return family, word & 0x00FF
    if family in LOW_NIBBLE_FAMILIES:
        return family, word & 0x000F
    return family, None
