from collections import namedtuple

from cpu import Chip8
from timers import TIMER_FREQUENCY

DEFAULT_INSTRUCTIONS_PER_FRAME = 10

# what the render and audio adapters pull after each frame
Frame = namedtuple("Frame", "pixels sound_active redraw")


class Driver:
    """
    interleaves CPU cycles with the 60Hz timers tick
    every frame runs up to instructions_per_frame cycles, stopping early while the CPU waits for a key
    """
    def __init__(self, chip=None, instructions_per_frame=DEFAULT_INSTRUCTIONS_PER_FRAME, tracer=None):
        if instructions_per_frame < 1:
            raise ValueError("At least one instruction per frame must be executed")
        self.chip = chip or Chip8()
        self.instructions_per_frame = instructions_per_frame
        self.tracer = tracer    # called with (address, instruction) after each executed instruction
        self.frames = 0

    @property
    def frame_duration(self):
        return 1 / TIMER_FREQUENCY

    def load_rom(self, rom: bytes):
        """copy the ROM at the program start address, must happen before the first frame"""
        self.chip.load_rom(rom)

    def run_frame(self) -> Frame:
        """emulate one 1/60s frame, CPU faults propagate to the caller and leave the CPU halted"""
        redraw = False
        for _ in range(self.instructions_per_frame):
            address = self.chip.pc
            instruction = self.chip.step()
            redraw = redraw or self.chip.draw
            if instruction is not None and self.tracer:
                self.tracer(address, instruction)
            if self.chip.awaiting_key:
                break
        self.chip.timers.tick()
        self.frames += 1
        return self.frame(redraw)

    def frame(self, redraw=True) -> Frame:
        return Frame(self.chip.screen.snapshot(), self.chip.timers.get_sound_active(), redraw)
