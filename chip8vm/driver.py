"""
Timer driver and frame loop.
Timers count down at 60Hz regardless of how many instructions run per frame,
so a frame is: N steps, one timer tick, then a look at the redraw flag.
"""

import logging
import time
from typing import Optional

from .interpreter import Interpreter
from .machine import Machine

logger = logging.getLogger(__name__)

DEFAULT_CYCLES_PER_FRAME = 10
FRAME_RATE = 60


def tick_timers(machine: Machine):
    """Decrement delay and sound timers by one, stopping at zero"""
    if machine.delay_timer > 0:
        machine.delay_timer -= 1
    if machine.sound_timer > 0:
        machine.sound_timer -= 1


class FrameRunner:
    """
    Drives one Machine with one Interpreter at a fixed frame cadence.
    run_frame() is what a window's update callback calls; run() is the
    headless equivalent with optional real-time pacing.
    """

    def __init__(self, machine: Machine, interpreter: Optional[Interpreter] = None,
                 cycles_per_frame: int = DEFAULT_CYCLES_PER_FRAME, frame_rate: int = FRAME_RATE):
        if cycles_per_frame < 1:
            raise ValueError(f"cycles_per_frame must be positive, got {cycles_per_frame}")
        if frame_rate < 1:
            raise ValueError(f"frame_rate must be positive, got {frame_rate}")
        self.machine = machine
        self.interpreter = interpreter if interpreter is not None else Interpreter()
        self.cycles_per_frame = cycles_per_frame
        self.frame_rate = frame_rate
        self.frames = 0

    def run_frame(self) -> bool:
        """Run one time slice. Returns True when the framebuffer should be presented."""
        for _ in range(self.cycles_per_frame):
            self.interpreter.step(self.machine)
        tick_timers(self.machine)
        self.frames += 1
        return self.machine.consume_redraw()

    def run(self, frames: int, realtime: bool = False) -> int:
        """Run a number of frames, returns how many of them needed a redraw"""
        frame_time = 1 / self.frame_rate
        redraws = 0
        for _ in range(frames):
            start_time = time.perf_counter()
            if self.run_frame():
                redraws += 1
            if realtime:
                elapsed = time.perf_counter() - start_time
                time.sleep(max(0, frame_time - elapsed))

        logger.info("Ran %d frames (%d instructions, %d redraws)",
                    frames, self.interpreter.stats['instructions_executed'], redraws)
        return redraws
