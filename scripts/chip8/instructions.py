from collections import namedtuple
from enum import Enum, unique

from errors import DecodeError


# ******************** OPCODES SECTION
# each member value is the assembler template used to disassemble the instruction
@unique
class Op(Enum):
    SYS = "SYS 0x{nnn:03x}"
    CLS = "CLS"
    RET = "RET"
    JP = "JP 0x{nnn:03x}"
    CALL = "CALL 0x{nnn:03x}"
    SE = "SE V{x:X}, 0x{kk:02x}"
    SNE = "SNE V{x:X}, 0x{kk:02x}"
    SE_REG = "SE V{x:X}, V{y:X}"
    LD = "LD V{x:X}, 0x{kk:02x}"
    ADD = "ADD V{x:X}, 0x{kk:02x}"
    LD_REG = "LD V{x:X}, V{y:X}"
    OR = "OR V{x:X}, V{y:X}"
    AND = "AND V{x:X}, V{y:X}"
    XOR = "XOR V{x:X}, V{y:X}"
    ADD_REG = "ADD V{x:X}, V{y:X}"
    SUB = "SUB V{x:X}, V{y:X}"
    SHR = "SHR V{x:X}, V{y:X}"
    SUBN = "SUBN V{x:X}, V{y:X}"
    SHL = "SHL V{x:X}, V{y:X}"
    SNE_REG = "SNE V{x:X}, V{y:X}"
    LD_I = "LD I, 0x{nnn:03x}"
    JP_V0 = "JP V0, 0x{nnn:03x}"
    RND = "RND V{x:X}, 0x{kk:02x}"
    DRW = "DRW V{x:X}, V{y:X}, {n}"
    SKP = "SKP V{x:X}"
    SKNP = "SKNP V{x:X}"
    LD_VX_DT = "LD V{x:X}, DT"
    LD_VX_K = "LD V{x:X}, K"
    LD_DT_VX = "LD DT, V{x:X}"
    LD_ST_VX = "LD ST, V{x:X}"
    ADD_I = "ADD I, V{x:X}"
    LD_F = "LD F, V{x:X}"
    LD_B = "LD B, V{x:X}"
    LD_MEM_VX = "LD [I], V{x:X}"
    LD_VX_MEM = "LD V{x:X}, [I]"


# WATCH OUT: masks order is important!!!
# the lookup stops at the first mask whose table contains the masked opcode
MASKS = {
    0xFFFF: {0x00E0: Op.CLS, 0x00EE: Op.RET},
    0xF0FF: {
        0xE09E: Op.SKP, 0xE0A1: Op.SKNP,
        0xF007: Op.LD_VX_DT, 0xF00A: Op.LD_VX_K, 0xF015: Op.LD_DT_VX, 0xF018: Op.LD_ST_VX,
        0xF01E: Op.ADD_I, 0xF029: Op.LD_F, 0xF033: Op.LD_B, 0xF055: Op.LD_MEM_VX, 0xF065: Op.LD_VX_MEM,
    },
    0xF00F: {
        0x5000: Op.SE_REG, 0x9000: Op.SNE_REG,
        0x8000: Op.LD_REG, 0x8001: Op.OR, 0x8002: Op.AND, 0x8003: Op.XOR,
        0x8004: Op.ADD_REG, 0x8005: Op.SUB, 0x8006: Op.SHR, 0x8007: Op.SUBN, 0x800E: Op.SHL,
    },
    0xF000: {
        0x0000: Op.SYS, 0x1000: Op.JP, 0x2000: Op.CALL, 0x3000: Op.SE, 0x4000: Op.SNE,
        0x6000: Op.LD, 0x7000: Op.ADD, 0xA000: Op.LD_I, 0xB000: Op.JP_V0,
        0xC000: Op.RND, 0xD000: Op.DRW,
    },
}


# ******************** DECODING SECTION
class Instruction(namedtuple("Instruction", "op opcode")):
    """a decoded opcode, operand fields are sliced out of the raw 16 bit value"""
    __slots__ = ()

    @property
    def x(self):
        return (self.opcode & 0x0F00) >> 8

    @property
    def y(self):
        return (self.opcode & 0x00F0) >> 4

    @property
    def n(self):
        return self.opcode & 0x000F

    @property
    def kk(self):
        return self.opcode & 0x00FF

    @property
    def nnn(self):
        return self.opcode & 0x0FFF

    def asm(self):
        return self.op.value.format(x=self.x, y=self.y, n=self.n, kk=self.kk, nnn=self.nnn)

    def __str__(self):
        return self.asm()


def decode(opcode: int) -> Instruction:
    """map a 16 bit opcode to its Instruction, raise DecodeError when no instruction matches"""
    if not 0 <= opcode <= 0xFFFF:
        raise DecodeError(opcode & 0xFFFF)
    for mask, ops in MASKS.items():
        op = ops.get(opcode & mask)
        if op is not None:
            return Instruction(op, opcode)
    raise DecodeError(opcode)
