# CHIP-8 INFO
# https://chip-8.github.io/extensions/#chip-8
# https://chip-8.github.io/links/
#
# COMPATIBILITY QUIRKS TABLE
# https://games.gulrak.net/cadmium/chip8-opcode-table.html#quirk6
#
# MASTERING CHIP-8
# https://github.com/mattmikolay/chip-8/wiki/Mastering-CHIP%E2%80%908
#
# TEST SUITE
# https://github.com/Timendus/chip8-test-suite


import argparse
import sys
from array import array

import os
os.environ["PYGAME_HIDE_SUPPORT_PROMPT"] = "no welcome message"   # this env var disable pygame's welcome message when imported
import pygame
from pygame.locals import (
    K_0, K_1, K_2, K_3,
    K_4, K_5, K_6, K_7,
    K_8, K_9, K_a, K_b,
    K_c, K_d, K_e, K_f,
)

from cpu import Chip8, Quirks
from display import SCREEN_HEIGHT, SCREEN_WIDTH
from driver import DEFAULT_INSTRUCTIONS_PER_FRAME, Driver
from errors import Chip8Error
from timers import TIMER_FREQUENCY


# ******************** STATIC SECTION
KEY_MAPPINGS = {
    K_0: 0x0,
    K_1: 0x1,
    K_2: 0x2,
    K_3: 0x3,
    K_4: 0x4,
    K_5: 0x5,
    K_6: 0x6,
    K_7: 0x7,
    K_8: 0x8,
    K_9: 0x9,
    K_a: 0xA,
    K_b: 0xB,
    K_c: 0xC,
    K_d: 0xD,
    K_e: 0xE,
    K_f: 0xF,
}

DEBUG = True if int(os.getenv('DEBUG', 0)) >= 1 else False
SCALE = 15
BLUE = pygame.Color(80,69,155,255)
LIGHT_BLUE = pygame.Color(136,126,203,255)
TONE_FREQUENCY = 440    # Hz
TONE_VOLUME = 0.25


# ******************** UTILITIES SECTION
def trace(address, instruction):
    """print out the ASM of the instruction just executed"""
    print(f"mem_addr: 0x{address:04x}    opcode: 0x{instruction.opcode:04x}    instruction: {instruction.asm()}")

def get_args(argv=None):
    parser = argparse.ArgumentParser(description="CHIP-8 interpreter")
    parser.add_argument("-f", "--file", required=True, help="input rom file")
    parser.add_argument("--ipf", type=int, default=DEFAULT_INSTRUCTIONS_PER_FRAME,
                        help="instructions executed every 1/60s frame")
    parser.add_argument("--scale", type=int, default=SCALE, help="size in pixels of a CHIP-8 pixel")
    parser.add_argument("--load-store-quirk", action="store_true", help="FX55/FX65 increment I")
    parser.add_argument("--shift-quirk", action="store_true", help="8XY6/8XYE shift VY into VX")
    parser.add_argument("--logic-quirk", action="store_true", help="8XY1/8XY2/8XY3 reset VF")
    args = parser.parse_args(argv)
    if args.ipf < 1:
        parser.error("--ipf must be a positive number")
    return args

def read_rom(path):
    """read the whole ROM file, the size is validated when it gets loaded in memory"""
    with open(path, mode='rb') as f:
        return f.read()


# ******************** I/O SECTION
class Screen:
    def __init__(self, w=SCREEN_WIDTH, h=SCREEN_HEIGHT, s=SCALE, bg_color=BLUE, fg_color=LIGHT_BLUE):
        self.w, self.h, self.scale = w, h, s
        self.background = bg_color
        self.foreground = fg_color
        self.surface = pygame.display.set_mode(
            (w * self.scale, h * self.scale),
        )
        self.surface.fill(self.background)

    def render(self, pixels):
        """paint the whole frame buffer snapshot, the change is visible after refresh"""
        self.surface.fill(self.background)
        for y, row in enumerate(pixels):
            for x, on in enumerate(row):
                if on:
                    pygame.draw.rect(
                        self.surface,
                        self.foreground,
                        (x * self.scale, y * self.scale, self.scale, self.scale)
                    )

    @staticmethod
    def refresh():
        pygame.display.flip()

class Buzzer:
    """square wave tone played in loop while the sound timer is active"""
    def __init__(self, frequency=TONE_FREQUENCY, volume=TONE_VOLUME):
        self.playing = False
        self.tone = None
        if not pygame.mixer.get_init():
            print("Audio disabled: no mixer device available", file=sys.stderr)
            return
        sample_rate, _, channels = pygame.mixer.get_init()
        period = max(int(sample_rate / frequency), 2)
        amplitude = int(volume * 32767)
        samples = array('h')
        # one second worth of full periods, every sample repeated for each channel
        for i in range(period * frequency):
            value = amplitude if i % period < period // 2 else -amplitude
            samples.extend([value] * channels)
        self.tone = pygame.mixer.Sound(buffer=samples.tobytes())

    def update(self, active):
        if self.tone is None or active == self.playing:
            return
        if active:
            self.tone.play(loops=-1)
        else:
            self.tone.stop()
        self.playing = active


# ******************** ENTRY POINT SECTION
def main(argv=None):
    args = get_args(argv)
    quirks = Quirks(
        load_store_increments_index=args.load_store_quirk,
        shift_uses_vy=args.shift_quirk,
        logic_resets_vf=args.logic_quirk,
    )
    driver = Driver(Chip8(quirks), instructions_per_frame=args.ipf, tracer=trace if DEBUG else None)
    try:
        driver.load_rom(read_rom(args.file))
    except (OSError, Chip8Error) as e:
        sys.exit(f"Unable to load the ROM at path {args.file}: {e}")
    if DEBUG: print(f"The ROM at path {args.file} has been loaded successfully")
    # pygame initialization, 16 bit signed mono samples for the buzzer tone
    pygame.mixer.pre_init(frequency=44100, size=-16, channels=1)
    pygame.init()
    clock = pygame.time.Clock()
    pygame.display.set_caption(os.path.basename(args.file))
    # IO
    s = Screen(s=args.scale)
    b = Buzzer()
    keypad = driver.chip.keypad
    # emulation loop
    run = True
    try:
        while run:
            # frames per second
            clock.tick(TIMER_FREQUENCY)
            # process user input
            # loop throught the event queue
            for event in pygame.event.get():
                if event.type == pygame.KEYDOWN:
                    if event.key == pygame.K_ESCAPE:
                        run = False
                    elif event.key in KEY_MAPPINGS:
                        keypad[KEY_MAPPINGS[event.key]] = True     # register keypress
                elif event.type == pygame.KEYUP:
                    if event.key in KEY_MAPPINGS:
                        keypad[KEY_MAPPINGS[event.key]] = False
                elif event.type == pygame.WINDOWFOCUSLOST:
                    keypad.release_all()    # key up events are delivered to the focused window only
                elif event.type == pygame.QUIT:
                    run = False
            try:
                frame = driver.run_frame()     # emulate one frame worth of cycles and tick the timers
            except Chip8Error as e:
                sys.exit(f"********** THE EMULATOR CRASHED: {e}\n{driver.chip}")
            if frame.redraw:
                s.render(frame.pixels)
                s.refresh()
            b.update(frame.sound_active)
    finally:
        pygame.quit()


if __name__ == "__main__":
    main()
