"""
tkinter front end: draws the framebuffer, feeds key events into the keypad,
rings the bell while the sound timer runs.
"""

import logging
import tkinter as tk
from tkinter import Canvas

from .driver import FrameRunner
from .errors import MachineFault
from .keymap import KEYPAD_HELP, keypad_index
from .machine import DISPLAY_HEIGHT, DISPLAY_WIDTH

logger = logging.getLogger(__name__)


class Chip8Window:
    """Interactive window around a FrameRunner"""

    def __init__(self, runner: FrameRunner, scale: int = 10, title: str = "CHIP-8"):
        self.runner = runner
        self.machine = runner.machine
        self.scale = scale
        self.fault = None
        self._closing = False
        self._sounding = False
        self._pressed = set()

        self.root = tk.Tk()
        self.root.title(title)
        self.root.resizable(False, False)

        self.canvas = Canvas(self.root, width=DISPLAY_WIDTH * scale,
                             height=DISPLAY_HEIGHT * scale, bg='black')
        self.canvas.pack()

        info_frame = tk.Frame(self.root)
        info_frame.pack(fill='x', padx=5, pady=5)
        tk.Label(info_frame, text=KEYPAD_HELP, font=('Courier', 9),
                 justify='left', bg='lightgray').pack(side='left')
        self.status = tk.Label(info_frame, text="", font=('Courier', 9), justify='right')
        self.status.pack(side='right')

        self.root.bind('<KeyPress>', self._key_press)
        self.root.bind('<KeyRelease>', self._key_release)
        self.root.protocol("WM_DELETE_WINDOW", self.close)
        self.root.focus_set()

    def _key_press(self, event):
        if event.keysym == 'Escape':
            self.close()
            return
        key = keypad_index(event.keysym)
        if key is not None and key not in self._pressed:
            self._pressed.add(key)
            self.machine.set_key(key, True)

    def _key_release(self, event):
        key = keypad_index(event.keysym)
        if key is not None and key in self._pressed:
            self._pressed.discard(key)
            self.machine.set_key(key, False)

    def close(self):
        if self._closing:
            return
        self._closing = True
        self.root.quit()
        self.root.destroy()

    def draw(self):
        self.canvas.delete("all")
        s = self.scale
        for y, x in zip(*self.machine.framebuffer.nonzero()):
            x1, y1 = int(x) * s, int(y) * s
            self.canvas.create_rectangle(x1, y1, x1 + s, y1 + s, fill='white', outline='white')

    def _update(self):
        if self._closing:
            return
        try:
            if self.runner.run_frame():
                self.draw()
        except MachineFault as e:
            logger.error("Machine fault: %s", e)
            self.fault = e
            self.status.config(text=f"FAULT\n{e}")
            return

        # Rising edge only, the Tk bell has no duration
        if self.machine.sound_active and not self._sounding:
            self.root.bell()
        self._sounding = self.machine.sound_active

        m = self.machine
        self.status.config(text=f"PC: 0x{m.program_counter:03X}\nI: 0x{m.index:03X}\n"
                                f"Frames: {self.runner.frames}")
        self.root.after(1000 // self.runner.frame_rate, self._update)

    def mainloop(self):
        self.draw()
        self._update()
        try:
            self.root.mainloop()
        finally:
            self._closing = True
