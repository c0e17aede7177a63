import random
from dataclasses import dataclass

from display import DisplayBuffer
from errors import Chip8Error, MemoryAccessError, UnimplementedInstructionError
from instructions import Instruction, Op, decode
from keypad import Keypad
from memory import MEMORY_SIZE, ROM_START_ADDRESS, Memory, Stack
from timers import Timers

REGISTERS_COUNT = 16
FLAG_REGISTER = 0xF


# ******************** CONFIGURATION SECTION
@dataclass
class Quirks:
    """
    behaviours that differ across historical interpreters
    the defaults follow the common instruction table: I is never advanced, shifts work on Vx in place, VF is only a flag
    """
    load_store_increments_index: bool = False   # compatibility quirk 6
    shift_uses_vy: bool = False                 # compatibility quirk 2
    logic_resets_vf: bool = False               # compatibility quirk 1


# ******************** RUN STATES SECTION
@dataclass(frozen=True)
class Running:
    pass


@dataclass(frozen=True)
class AwaitingKey:
    register: int


@dataclass(frozen=True)
class Halted:
    fault: Chip8Error


# ******************** CPU SECTION
class Chip8:
    def __init__(self, quirks=None, rng=None):
        self.mem = Memory()
        self.stack = Stack()
        self.screen = DisplayBuffer()
        self.keypad = Keypad()
        self.timers = Timers()
        self.v_regs = [0] * REGISTERS_COUNT
        self.pc = ROM_START_ADDRESS
        self.idx = 0    # specify where the sprites reside in memory
        self.state = Running()
        self.draw = False
        self.quirks = quirks or Quirks()
        self.rng = rng or random.Random()
        self.instructions = {
            Op.SYS: self._sys,
            Op.CLS: self._clear_screen,
            Op.RET: self._return,
            Op.JP: self._jump,
            Op.CALL: self._call_addr,
            Op.SE: self._skip_if_eq,
            Op.SNE: self._skip_if_not_eq,
            Op.SE_REG: self._skip_if_eq_regs,
            Op.LD: self._set_vk,
            Op.ADD: self._add_to_vk,
            Op.LD_REG: self._set_vx_to_vy,
            Op.OR: self._set_vx_or_vy,
            Op.AND: self._set_vx_and_vy,
            Op.XOR: self._set_vx_xor_vy,
            Op.ADD_REG: self._add_vx_vy,
            Op.SUB: self._sub_vx_vy,
            Op.SHR: self._shr,
            Op.SUBN: self._subn_vx_vy,
            Op.SHL: self._shl,
            Op.SNE_REG: self._skip_if_not_eq_regs,
            Op.LD_I: self._set_idx,
            Op.JP_V0: self._jump_plus,
            Op.RND: self._random_byte_and,
            Op.DRW: self._to_screen,
            Op.SKP: self._skip_if_pressed,
            Op.SKNP: self._skip_if_not_pressed,
            Op.LD_VX_DT: self._set_vx_dt,
            Op.LD_VX_K: self._wait_keypress,
            Op.LD_DT_VX: self._set_dt_vx,
            Op.LD_ST_VX: self._set_st,
            Op.ADD_I: self._add_to_idx,
            Op.LD_F: self._select_char,
            Op.LD_B: self._bcd_repr,
            Op.LD_MEM_VX: self._store_vregs,
            Op.LD_VX_MEM: self._load_vregs,
        }

    def __str__(self):
        registers = " ".join(f"V{i:X}:0x{v:02x}" for i, v in enumerate(self.v_regs))
        pointers = f"PC_REGISTER:0x{self.pc:03x} | IDX_REGISTER:0x{self.idx:03x} | {self.timers}"
        stack = f"STACK:{self.stack}"
        state = f"STATE:{self.state}"
        return f"{pointers}\nVARIABLE_REGISTERS: {registers}\n{stack}\n{state}"

    @property
    def awaiting_key(self):
        return isinstance(self.state, AwaitingKey)

    @property
    def halted(self):
        return isinstance(self.state, Halted)

    def reset(self):
        """back to the power on state, the memory program area and the keypad are left as they are"""
        self.stack = Stack()
        self.screen.clear()
        self.timers = Timers()
        self.v_regs = [0] * REGISTERS_COUNT
        self.pc = ROM_START_ADDRESS
        self.idx = 0
        self.state = Running()
        self.draw = False

    def load_rom(self, rom: bytes):
        """copy the ROM in memory and restart the machine from the program start address"""
        self.mem.load_rom(rom)
        self.reset()

    # ********** FETCH / DECODE / EXECUTE
    def fetch(self):
        """read the big endian 16 bit opcode the program counter points to"""
        if not 0 <= self.pc <= MEMORY_SIZE - 2:
            raise MemoryAccessError(self.pc, "instruction fetch beyond memory")
        return self.mem[self.pc] << 8 | self.mem[self.pc + 1]

    def execute(self, instruction: Instruction):
        self.instructions[instruction.op](instruction)

    def step(self):
        """
        emulate one machine cycle and return the executed Instruction
        while waiting for a key the keypad is polled instead and None is returned
        a fault halts the CPU, every following call raises it again
        """
        if isinstance(self.state, Halted):
            raise self.state.fault
        self.draw = False
        if isinstance(self.state, AwaitingKey):
            self._poll_keypad(self.state.register)
            return None
        try:
            instruction = decode(self.fetch())
            # each instruction is two bytes long
            self._goto_next_instruction()
            self.execute(instruction)
        except Chip8Error as fault:
            self.state = Halted(fault)
            raise
        return instruction

    def _goto_next_instruction(self):
        self.pc += 0x2

    def _poll_keypad(self, x):
        key = self.keypad.first()
        if key is None:
            self.state = AwaitingKey(x)
        else:
            self.v_regs[x] = key
            self.state = Running()

    # ********** INSTRUCTIONS
    def _sys(self, ins):
        raise UnimplementedInstructionError(f"Machine code routine call ({ins.asm()}) is not supported")

    def _clear_screen(self, ins):
        self.screen.clear()
        self.draw = True

    def _return(self, ins):
        """return from a subroutine"""
        self.pc = self.stack.pop()

    def _jump(self, ins):
        self.pc = ins.nnn

    def _call_addr(self, ins):
        self.stack.append(self.pc)
        self.pc = ins.nnn

    def _skip_if_eq(self, ins):
        if self.v_regs[ins.x] == ins.kk:
            self._goto_next_instruction()

    def _skip_if_not_eq(self, ins):
        if self.v_regs[ins.x] != ins.kk:
            self._goto_next_instruction()

    def _skip_if_eq_regs(self, ins):
        if self.v_regs[ins.x] == self.v_regs[ins.y]:
            self._goto_next_instruction()

    def _skip_if_not_eq_regs(self, ins):
        if self.v_regs[ins.x] != self.v_regs[ins.y]:
            self._goto_next_instruction()

    def _set_vk(self, ins):
        """set the value of one of the 16 variable registers, Vx"""
        self.v_regs[ins.x] = ins.kk

    def _add_to_vk(self, ins):
        """add to the value already present in Vx, VF is left untouched"""
        self.v_regs[ins.x] = (self.v_regs[ins.x] + ins.kk) & 0xFF

    def _set_vx_to_vy(self, ins):
        self.v_regs[ins.x] = self.v_regs[ins.y]

    def _set_vx_or_vy(self, ins):
        self.v_regs[ins.x] |= self.v_regs[ins.y]
        if self.quirks.logic_resets_vf:
            self.v_regs[FLAG_REGISTER] = 0

    def _set_vx_and_vy(self, ins):
        self.v_regs[ins.x] &= self.v_regs[ins.y]
        if self.quirks.logic_resets_vf:
            self.v_regs[FLAG_REGISTER] = 0

    def _set_vx_xor_vy(self, ins):
        self.v_regs[ins.x] ^= self.v_regs[ins.y]
        if self.quirks.logic_resets_vf:
            self.v_regs[FLAG_REGISTER] = 0

    # the flag is always written last so that it wins when x is F
    def _add_vx_vy(self, ins):
        """set Vx = Vx + Vy, VF = carry"""
        total = self.v_regs[ins.x] + self.v_regs[ins.y]
        self.v_regs[ins.x] = total & 0xFF
        self.v_regs[FLAG_REGISTER] = 1 if total > 0xFF else 0

    def _sub_vx_vy(self, ins):
        """set Vx = Vx - Vy, VF = NOT borrow"""
        vx, vy = self.v_regs[ins.x], self.v_regs[ins.y]
        self.v_regs[ins.x] = (vx - vy) & 0xFF
        self.v_regs[FLAG_REGISTER] = 1 if vx >= vy else 0

    def _subn_vx_vy(self, ins):
        """set Vx = Vy - Vx, VF = NOT borrow"""
        vx, vy = self.v_regs[ins.x], self.v_regs[ins.y]
        self.v_regs[ins.x] = (vy - vx) & 0xFF
        self.v_regs[FLAG_REGISTER] = 1 if vy >= vx else 0

    def _shr(self, ins):
        """set Vx = Vx SHR 1, VF = shifted out bit"""
        value = self.v_regs[ins.y if self.quirks.shift_uses_vy else ins.x]
        self.v_regs[ins.x] = value >> 1
        self.v_regs[FLAG_REGISTER] = value & 0x1

    def _shl(self, ins):
        """set Vx = Vx SHL 1, VF = shifted out bit"""
        value = self.v_regs[ins.y if self.quirks.shift_uses_vy else ins.x]
        self.v_regs[ins.x] = (value << 1) & 0xFF
        self.v_regs[FLAG_REGISTER] = (value & 0x80) >> 7

    def _set_idx(self, ins):
        self.idx = ins.nnn

    def _jump_plus(self, ins):
        self.pc = ins.nnn + self.v_regs[0x0]

    def _random_byte_and(self, ins):
        self.v_regs[ins.x] = self.rng.randint(0, 255) & ins.kk

    def _to_screen(self, ins):
        """display n-byte sprite starting at memory location I at (Vx, Vy), set VF = collision"""
        sprite = self.mem[self.idx:self.idx+ins.n]
        collided = self.screen.draw(self.v_regs[ins.x], self.v_regs[ins.y], sprite)
        self.v_regs[FLAG_REGISTER] = 1 if collided else 0
        self.draw = True

    def _skip_if_pressed(self, ins):
        # only the low nibble of Vx names a key
        if self.keypad[self.v_regs[ins.x] & 0xF]:
            self._goto_next_instruction()

    def _skip_if_not_pressed(self, ins):
        if not self.keypad[self.v_regs[ins.x] & 0xF]:
            self._goto_next_instruction()

    def _set_vx_dt(self, ins):
        self.v_regs[ins.x] = self.timers.get_delay()

    def _wait_keypress(self, ins):
        """wait for a key press and store its value in Vx, the program counter stays past this instruction"""
        self._poll_keypad(ins.x)

    def _set_dt_vx(self, ins):
        self.timers.set_delay(self.v_regs[ins.x])

    def _set_st(self, ins):
        self.timers.set_sound(self.v_regs[ins.x])

    def _add_to_idx(self, ins):
        self.idx = (self.idx + self.v_regs[ins.x]) & 0xFFFF

    def _select_char(self, ins):
        """set I to location of sprite for digit Vx"""
        self.idx = self.mem.font_address(self.v_regs[ins.x])

    def _bcd_repr(self, ins):
        """store the hundreds digit of Vx in memory at I, the tens digit at I+1, the ones digit at I+2"""
        value = self.v_regs[ins.x]
        self.mem.write(self.idx, [value // 100, value // 10 % 10, value % 10])

    def _store_vregs(self, ins):
        """store registers V0 through Vx (included) in memory starting at location I"""
        self.mem.write(self.idx, self.v_regs[:ins.x+1])
        if self.quirks.load_store_increments_index:
            self.idx += ins.x + 1

    def _load_vregs(self, ins):
        """read registers V0 through Vx (included) from memory starting at location I"""
        self.v_regs[:ins.x+1] = list(self.mem[self.idx:self.idx+ins.x+1])
        if self.quirks.load_store_increments_index:
            self.idx += ins.x + 1
