"""
Keyboard layout for the hex keypad.

CHIP-8 keypad:     Modern keyboard mapping:
1 2 3 C            1 2 3 4
4 5 6 D     =>     Q W E R
7 8 9 E            A S D F
A 0 B F            Z X C V
"""

from typing import Optional

KEY_MAPPING = {
    '1': 0x1, '2': 0x2, '3': 0x3, '4': 0xC,
    'q': 0x4, 'w': 0x5, 'e': 0x6, 'r': 0xD,
    'a': 0x7, 's': 0x8, 'd': 0x9, 'f': 0xE,
    'z': 0xA, 'x': 0x0, 'c': 0xB, 'v': 0xF
}

KEYPAD_HELP = ("CHIP-8 Keypad Layout:\n"
               "1 2 3 4    ->    1 2 3 C\n"
               "Q W E R    ->    4 5 6 D\n"
               "A S D F    ->    7 8 9 E\n"
               "Z X C V    ->    A 0 B F\n\n"
               "Press ESC to close")


def keypad_index(keysym: str) -> Optional[int]:
    """Map a keyboard key name to a keypad index, None if unmapped"""
    return KEY_MAPPING.get(keysym.lower())
