"""
Command line entry point.

    chip8vm ROM                      interactive window
    chip8vm ROM --headless 600       run 600 frames without a window
    chip8vm ROM --disassemble        print a listing and exit
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

import numpy as np

from .disassembler import format_listing
from .driver import DEFAULT_CYCLES_PER_FRAME, FrameRunner
from .errors import MachineFault, RomLoadError
from .interpreter import Interpreter
from .machine import MAX_PROGRAM_SIZE, Machine

logger = logging.getLogger(__name__)


def positive_int(text: str) -> int:
    value = int(text)
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='chip8vm', description='CHIP-8 interpreter')
    parser.add_argument('rom', help='Path to a CHIP-8 ROM file')
    parser.add_argument('--cycles-per-frame', type=int, default=DEFAULT_CYCLES_PER_FRAME,
                        help=f'Instructions executed per 1/60s frame (default: {DEFAULT_CYCLES_PER_FRAME})')
    parser.add_argument('--scale', type=positive_int, default=10,
                        help='Window/screenshot pixel scale (default: 10)')
    parser.add_argument('--no-memory-quirk', action='store_true',
                        help='Leave I unchanged after Fx55/Fx65')
    parser.add_argument('--seed', type=int, help='Seed for the RND instruction')
    parser.add_argument('--headless', type=int, metavar='FRAMES',
                        help='Run this many frames without opening a window')
    parser.add_argument('--screenshot', metavar='PNG', help='Save the final display as a PNG')
    parser.add_argument('--disassemble', action='store_true', help='Print a disassembly and exit')
    parser.add_argument('--debug-log', metavar='FILE', help='Write an instruction trace to FILE')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log at INFO level')
    return parser


def configure_logging(verbose: bool, debug_log: Optional[str] = None) -> Optional[logging.Handler]:
    """Set up console logging; returns the trace file handler when debug_log is given"""
    level = logging.INFO if verbose else logging.WARNING
    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter('%(levelname)s %(name)s: %(message)s'))
    logging.basicConfig(level=level, handlers=[console])

    if not debug_log:
        return None

    # Instruction trace goes to the file only; the console keeps its level
    trace = logging.FileHandler(debug_log, mode='w', encoding='utf-8')
    trace.setFormatter(logging.Formatter('%(message)s'))
    package_logger = logging.getLogger('chip8vm')
    package_logger.addHandler(trace)
    package_logger.setLevel(logging.DEBUG)
    return trace


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    trace = configure_logging(args.verbose, args.debug_log)
    try:
        return run(args)
    finally:
        if trace is not None:
            package_logger = logging.getLogger('chip8vm')
            package_logger.removeHandler(trace)
            package_logger.setLevel(logging.NOTSET)
            trace.close()


def run(args: argparse.Namespace) -> int:
    if args.disassemble:
        try:
            with open(args.rom, 'rb') as f:
                data = f.read(MAX_PROGRAM_SIZE + 1)
        except OSError as e:
            logger.error("Could not read ROM %s: %s", args.rom, e)
            return 1
        print(format_listing(data))
        return 0

    machine = Machine()
    try:
        machine.load_rom(args.rom)
    except RomLoadError as e:
        logger.error("Could not load the ROM: %s", e)
        return 1

    quirks = {'memory': not args.no_memory_quirk}
    interpreter = Interpreter(quirks=quirks, rng=np.random.default_rng(args.seed))
    try:
        runner = FrameRunner(machine, interpreter, cycles_per_frame=args.cycles_per_frame)
    except ValueError as e:
        logger.error("%s", e)
        return 2

    status = 0
    if args.headless is not None:
        try:
            runner.run(args.headless)
        except MachineFault as e:
            logger.error("Machine fault: %s", e)
            status = 1
    else:
        from .window import Chip8Window
        window = Chip8Window(runner, scale=args.scale, title=f"CHIP-8: {os.path.basename(args.rom)}")
        window.mainloop()
        if window.fault is not None:
            status = 1

    if args.screenshot:
        from .screenshot import save_png
        save_png(machine.framebuffer_snapshot(), args.screenshot, scale=args.scale)

    return status


if __name__ == "__main__":
    sys.exit(main())
