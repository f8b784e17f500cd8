import numpy as np
import pytest

from chip8vm import Interpreter, Machine


def assemble(*words: int) -> bytes:
    """Pack 16-bit instruction words big-endian"""
    return b''.join(word.to_bytes(2, 'big') for word in words)


@pytest.fixture
def machine():
    return Machine()


@pytest.fixture
def interpreter():
    return Interpreter(rng=np.random.default_rng(1234))


@pytest.fixture
def load(machine):
    """Load instruction words at 0x200 and return the machine"""
    def _load(*words):
        machine.load_program(assemble(*words))
        return machine
    return _load


@pytest.fixture
def run(machine, interpreter, load):
    """Load words and execute one step per word"""
    def _run(*words, steps=None):
        load(*words)
        interpreter.run(machine, len(words) if steps is None else steps)
        return machine
    return _run
