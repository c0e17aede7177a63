# ******************** ERRORS SECTION
# every fault the core can raise derives from Chip8Error so the frontend
# can stop the emulation loop with a single except clause


class Chip8Error(Exception):
    pass


class RomLoadError(Chip8Error):
    """the ROM image does not fit in the program area of memory"""


class DecodeError(Chip8Error):
    def __init__(self, opcode):
        self.opcode = opcode
        super().__init__(f"Unknown opcode 0x{opcode:04x}")


# ********** EXECUTION FAULTS
class ExecutionFault(Chip8Error):
    pass


class StackOverflowError(ExecutionFault):
    pass


class StackUnderflowError(ExecutionFault):
    pass


class MemoryAccessError(ExecutionFault):
    def __init__(self, address, reason="out of bounds"):
        self.address = address
        super().__init__(f"Memory access at 0x{address:04x} failed: {reason}")


class UnimplementedInstructionError(ExecutionFault):
    """raised for 0NNN, the call to native COSMAC VIP machine code"""
