import unittest
from cpu import AwaitingKey, Chip8, Halted, Quirks, Running
from errors import (DecodeError, MemoryAccessError, StackOverflowError,
                    StackUnderflowError, UnimplementedInstructionError)
from memory import ROM_START_ADDRESS


def program(*opcodes):
    """assemble a list of 16 bit opcodes into a big endian ROM"""
    rom = b""
    for opcode in opcodes:
        rom += opcode.to_bytes(2, "big")
    return rom

def run(chip, steps):
    for _ in range(steps):
        chip.step()


class Chip8TestCase(unittest.TestCase):
    def chip(self, *opcodes, quirks=None):
        chip = Chip8(quirks)
        chip.load_rom(program(*opcodes))
        return chip


class TestFlow(Chip8TestCase):
    def test_initial_state(self):
        chip = Chip8()
        self.assertEqual(chip.pc, ROM_START_ADDRESS)
        self.assertEqual(chip.v_regs, [0] * 16)
        self.assertEqual(chip.idx, 0)
        self.assertEqual(chip.state, Running())

    def test_reload_restarts_halted_chip(self):
        chip = self.chip(0x6A07, 0x2206, 0xFFFF, 0xFFFF)
        chip.screen.draw(0, 0, [0xFF])
        chip.timers.set_delay(9)
        with self.assertRaises(DecodeError):
            run(chip, 3)
        self.assertTrue(chip.halted)
        chip.load_rom(program(0x6001))
        self.assertEqual(chip.state, Running())
        self.assertEqual(chip.pc, ROM_START_ADDRESS)
        self.assertEqual(chip.v_regs, [0] * 16)
        self.assertEqual(len(chip.stack), 0)
        self.assertEqual(chip.timers.get_delay(), 0)
        self.assertFalse(any(any(row) for row in chip.screen.snapshot()))
        chip.step()
        self.assertEqual(chip.v_regs[0], 1)

    def test_reload_stops_waiting_for_key(self):
        chip = self.chip(0xF30A)
        chip.step()
        self.assertTrue(chip.awaiting_key)
        chip.load_rom(program(0x6001))
        self.assertFalse(chip.awaiting_key)
        self.assertIsNotNone(chip.step())
        self.assertEqual(chip.v_regs[0], 1)

    def test_clear_then_jump_to_start(self):
        chip = self.chip(0x00E0, 0x1200)
        chip.screen.draw(0, 0, [0xFF])
        chip.step()
        self.assertFalse(any(any(row) for row in chip.screen.snapshot()))
        self.assertEqual(chip.pc, 0x202)
        chip.step()
        self.assertEqual(chip.pc, 0x200)
        run(chip, 2)
        self.assertEqual(chip.pc, 0x200)

    def test_jump_to_self(self):
        chip = self.chip(0x1200)
        run(chip, 3)
        self.assertEqual(chip.pc, 0x200)

    def test_step_returns_instruction(self):
        chip = self.chip(0x6005)
        self.assertEqual(chip.step().asm(), "LD V0, 0x05")

    def test_call_and_return(self):
        chip = self.chip(0x2206, 0x6101, 0x1204, 0x6007, 0x00EE)
        chip.step()
        self.assertEqual(chip.pc, 0x206)
        self.assertEqual(len(chip.stack), 1)
        run(chip, 2)
        self.assertEqual(chip.pc, 0x202)
        self.assertEqual(chip.v_regs[0], 7)
        chip.step()
        self.assertEqual(chip.v_regs[1], 1)

    def test_skips(self):
        cases = [
            (0x3005, 5, 0, 0x204),
            (0x3006, 5, 0, 0x202),
            (0x4006, 5, 0, 0x204),
            (0x4005, 5, 0, 0x202),
            (0x5010, 5, 5, 0x204),
            (0x5010, 5, 6, 0x202),
            (0x9010, 5, 6, 0x204),
            (0x9010, 5, 5, 0x202),
        ]
        for opcode, v0, v1, pc in cases:
            with self.subTest(opcode=hex(opcode), v0=v0, v1=v1):
                chip = self.chip(opcode)
                chip.v_regs[0], chip.v_regs[1] = v0, v1
                chip.step()
                self.assertEqual(chip.pc, pc)

    def test_jump_plus_v0(self):
        chip = self.chip(0x6004, 0xB300)
        run(chip, 2)
        self.assertEqual(chip.pc, 0x304)

    def test_sixteen_nested_calls(self):
        # every subroutine calls the next one
        chip = self.chip(*[0x2202 + i * 2 for i in range(17)])
        run(chip, 16)
        self.assertEqual(len(chip.stack), 16)
        with self.assertRaises(StackOverflowError):
            chip.step()

    def test_return_with_empty_stack(self):
        chip = self.chip(0x00EE)
        with self.assertRaises(StackUnderflowError):
            chip.step()


class TestArithmetic(Chip8TestCase):
    def exec_regs(self, opcode, vx, vy, quirks=None):
        chip = self.chip(opcode, quirks=quirks)
        chip.v_regs[1], chip.v_regs[2] = vx, vy
        chip.step()
        return chip.v_regs[1], chip.v_regs[0xF]

    def test_load_and_add_immediate(self):
        chip = self.chip(0x6AFE, 0x7A03)
        chip.v_regs[0xF] = 9
        run(chip, 2)
        self.assertEqual(chip.v_regs[0xA], 0x01)
        self.assertEqual(chip.v_regs[0xF], 9)

    def test_logic(self):
        self.assertEqual(self.exec_regs(0x8120, 0x0F, 0xF0)[0], 0xF0)
        self.assertEqual(self.exec_regs(0x8121, 0x0F, 0xF0)[0], 0xFF)
        self.assertEqual(self.exec_regs(0x8122, 0x3C, 0xF0)[0], 0x30)
        self.assertEqual(self.exec_regs(0x8123, 0x3C, 0xF0)[0], 0xCC)

    def test_logic_resets_vf_quirk(self):
        chip = self.chip(0x8121, quirks=Quirks(logic_resets_vf=True))
        chip.v_regs[0xF] = 1
        chip.step()
        self.assertEqual(chip.v_regs[0xF], 0)

    def test_add_carry(self):
        self.assertEqual(self.exec_regs(0x8124, 200, 55), (255, 0))
        self.assertEqual(self.exec_regs(0x8124, 200, 56), (0, 1))
        self.assertEqual(self.exec_regs(0x8124, 255, 255), (254, 1))

    def test_sub_not_borrow(self):
        self.assertEqual(self.exec_regs(0x8125, 10, 3), (7, 1))
        self.assertEqual(self.exec_regs(0x8125, 10, 10), (0, 1))
        self.assertEqual(self.exec_regs(0x8125, 3, 10), (249, 0))

    def test_subn_not_borrow(self):
        self.assertEqual(self.exec_regs(0x8127, 3, 10), (7, 1))
        self.assertEqual(self.exec_regs(0x8127, 10, 10), (0, 1))
        self.assertEqual(self.exec_regs(0x8127, 10, 3), (249, 0))

    def test_shifts(self):
        self.assertEqual(self.exec_regs(0x8126, 0b00000101, 0), (0b00000010, 1))
        self.assertEqual(self.exec_regs(0x8126, 0b00000100, 0), (0b00000010, 0))
        self.assertEqual(self.exec_regs(0x812E, 0b10000001, 0), (0b00000010, 1))
        self.assertEqual(self.exec_regs(0x812E, 0b01000001, 0), (0b10000010, 0))

    def test_shift_uses_vy_quirk(self):
        quirks = Quirks(shift_uses_vy=True)
        self.assertEqual(self.exec_regs(0x8126, 0, 0b11, quirks), (0b01, 1))
        self.assertEqual(self.exec_regs(0x812E, 0, 0x81, quirks), (0x02, 1))

    def test_flag_register_as_operand(self):
        chip = self.chip(0x8F14)
        chip.v_regs[0xF], chip.v_regs[1] = 0xFF, 0x02
        chip.step()
        self.assertEqual(chip.v_regs[0xF], 1)

    def test_random_is_masked(self):
        chip = self.chip(*[0xC10F] * 20)
        for _ in range(20):
            chip.step()
            self.assertEqual(chip.v_regs[1] & 0xF0, 0)


class TestMemoryInstructions(Chip8TestCase):
    def test_font_digit(self):
        chip = self.chip(0x6005, 0xF029)
        run(chip, 2)
        self.assertEqual(chip.mem[chip.idx:chip.idx+5],
                         bytes([0xF0, 0x80, 0xF0, 0x10, 0xF0]))

    def test_bcd(self):
        chip = self.chip(0x6087, 0xA400, 0xF033)
        run(chip, 3)
        self.assertEqual(chip.mem[0x400:0x403], bytes([1, 3, 5]))

    def test_bcd_edges(self):
        chip = self.chip(0x60FF, 0xA400, 0xF033)
        run(chip, 3)
        self.assertEqual(chip.mem[0x400:0x403], bytes([2, 5, 5]))
        chip = self.chip(0x6000, 0xA400, 0xF033)
        chip.mem.write(0x400, [9, 9, 9])
        run(chip, 3)
        self.assertEqual(chip.mem[0x400:0x403], bytes([0, 0, 0]))

    def test_font_digit_uses_low_nibble(self):
        chip = self.chip(0x6015, 0xF029)
        run(chip, 2)
        self.assertEqual(chip.idx, 25)

    def test_store_and_load_keep_index(self):
        chip = self.chip(0x6011, 0x6122, 0x6233, 0xA400, 0xF255, 0x6000, 0x6100, 0x6200, 0xF165)
        run(chip, 5)
        self.assertEqual(chip.mem[0x400:0x403], bytes([0x11, 0x22, 0x33]))
        self.assertEqual(chip.idx, 0x400)
        run(chip, 4)
        self.assertEqual(chip.v_regs[:3], [0x11, 0x22, 0])
        self.assertEqual(chip.idx, 0x400)

    def test_store_and_load_increment_quirk(self):
        chip = self.chip(0xA400, 0xF255, 0xF065, quirks=Quirks(load_store_increments_index=True))
        run(chip, 2)
        self.assertEqual(chip.idx, 0x403)
        chip.step()
        self.assertEqual(chip.idx, 0x404)

    def test_add_to_index(self):
        chip = self.chip(0xA3FF, 0x6102, 0xF11E)
        run(chip, 3)
        self.assertEqual(chip.idx, 0x401)

    def test_store_into_interpreter_area(self):
        chip = self.chip(0xA100, 0xF055)
        chip.step()
        with self.assertRaises(MemoryAccessError):
            chip.step()

    def test_store_past_memory_end(self):
        chip = self.chip(0xAFFE, 0xF255)
        chip.step()
        with self.assertRaises(MemoryAccessError):
            chip.step()


class TestDrawing(Chip8TestCase):
    def test_draw_twice_restores_screen(self):
        # I points to the F glyph's top row, 0xF0
        chip = self.chip(0xA000 + 75, 0x6A0A, 0x6B05, 0xDAB1, 0xDAB1)
        run(chip, 4)
        self.assertEqual(chip.v_regs[0xF], 0)
        self.assertTrue(chip.draw)
        self.assertEqual(chip.screen.snapshot()[5][10:14], (True, True, True, True))
        chip.step()
        self.assertEqual(chip.v_regs[0xF], 1)
        self.assertFalse(any(any(row) for row in chip.screen.snapshot()))

    def test_draw_wraps(self):
        chip = self.chip(0xA20A, 0x603F, 0x611F, 0xD012, 0x1208, 0xFFFF)
        run(chip, 4)
        pixels = chip.screen.snapshot()
        self.assertTrue(pixels[31][63])
        self.assertTrue(pixels[31][0])
        self.assertTrue(pixels[0][63])
        self.assertTrue(pixels[0][0])

    def test_draw_zero_rows(self):
        chip = self.chip(0xD000)
        chip.screen.draw(0, 0, [0x80])
        chip.v_regs[0xF] = 1
        chip.step()
        self.assertEqual(chip.v_regs[0xF], 0)
        self.assertEqual(sum(chip.screen.buffer), 1)
        self.assertTrue(chip.screen.snapshot()[0][0])

    def test_draw_reads_past_memory_end(self):
        chip = self.chip(0xAFFE, 0xD005)
        chip.step()
        with self.assertRaises(MemoryAccessError):
            chip.step()


class TestTimersAndKeys(Chip8TestCase):
    def test_delay_timer(self):
        chip = self.chip(0x6A20, 0xFA15, 0xFB07)
        run(chip, 2)
        chip.timers.tick()
        chip.step()
        self.assertEqual(chip.v_regs[0xB], 0x1F)

    def test_sound_timer(self):
        chip = self.chip(0x6A02, 0xFA18)
        run(chip, 2)
        self.assertTrue(chip.timers.get_sound_active())

    def test_skip_if_pressed(self):
        chip = self.chip(0x6A07, 0xEA9E)
        chip.keypad[7] = True
        run(chip, 2)
        self.assertEqual(chip.pc, 0x206)

    def test_key_skips_use_low_nibble(self):
        chip = self.chip(0x601A, 0xE09E)
        chip.keypad[0xA] = True
        run(chip, 2)
        self.assertEqual(chip.pc, 0x206)
        chip = self.chip(0x601A, 0xE0A1)
        chip.keypad[0xA] = True
        run(chip, 2)
        self.assertEqual(chip.pc, 0x204)

    def test_skip_if_not_pressed(self):
        chip = self.chip(0x6A07, 0xEAA1)
        run(chip, 2)
        self.assertEqual(chip.pc, 0x206)
        chip = self.chip(0x6A07, 0xEAA1)
        chip.keypad[7] = True
        run(chip, 2)
        self.assertEqual(chip.pc, 0x204)

    def test_wait_for_key(self):
        chip = self.chip(0xF30A, 0x6001)
        self.assertIsNotNone(chip.step())
        self.assertEqual(chip.state, AwaitingKey(3))
        self.assertTrue(chip.awaiting_key)
        # polling doesn't execute anything
        self.assertIsNone(chip.step())
        self.assertIsNone(chip.step())
        self.assertEqual(chip.v_regs[0], 0)
        chip.keypad[0xB] = True
        self.assertIsNone(chip.step())
        self.assertEqual(chip.v_regs[3], 0xB)
        self.assertEqual(chip.state, Running())
        chip.step()
        self.assertEqual(chip.v_regs[0], 1)

    def test_wait_for_key_already_pressed(self):
        chip = self.chip(0xF30A)
        chip.keypad[0x2] = True
        chip.step()
        self.assertFalse(chip.awaiting_key)
        self.assertEqual(chip.v_regs[3], 0x2)


class TestFaults(Chip8TestCase):
    def test_unknown_opcode_halts(self):
        chip = self.chip(0xFFFF)
        with self.assertRaises(DecodeError):
            chip.step()
        self.assertTrue(chip.halted)
        self.assertIsInstance(chip.state, Halted)
        pc = chip.pc
        with self.assertRaises(DecodeError):
            chip.step()
        self.assertEqual(chip.pc, pc)

    def test_machine_code_call(self):
        chip = self.chip(0x0123)
        with self.assertRaises(UnimplementedInstructionError):
            chip.step()

    def test_fetch_beyond_memory(self):
        chip = self.chip(0x6001, 0xBFFF)
        run(chip, 2)
        self.assertEqual(chip.pc, 0x1000)
        with self.assertRaises(MemoryAccessError):
            chip.step()

    def test_state_dump(self):
        chip = self.chip(0x6A2B)
        chip.step()
        dump = str(chip)
        self.assertIn("PC_REGISTER:0x202", dump)
        self.assertIn("VA:0x2b", dump)


if __name__ == "__main__":
    unittest.main()
