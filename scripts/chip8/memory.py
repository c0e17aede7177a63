from errors import MemoryAccessError, RomLoadError, StackOverflowError, StackUnderflowError


# ******************** STATIC SECTION
C8_FONTS = [0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
            0x20, 0x60, 0x20, 0x20, 0x70,  # 1
            0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
            0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
            0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
            0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
            0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
            0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
            0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
            0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
            0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
            0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
            0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
            0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
            0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
            0xF0, 0x80, 0xF0, 0x80, 0x80]  # F

FONT_START_ADDRESS = 0x000
FONT_SPRITE_SIZE = 5
MEMORY_SIZE = 4096
ROM_START_ADDRESS = 0x200
MAX_ROM_SIZE = MEMORY_SIZE - ROM_START_ADDRESS
STACK_SIZE = 16


# ******************** MEMORY SECTION
# ********** WRAPS A LIST TO REPRESENT A STACK WITH A LIMITED SIZE OF 16 ADDRESSES
class Stack:
    def __init__(self, capacity=STACK_SIZE):
        self.addr_list = []
        self.capacity = capacity

    def __len__(self):
        return len(self.addr_list)

    def __repr__(self):
        return "[" + ", ".join(f"0x{a:03x}" for a in self.addr_list) + "]"

    def append(self, address):
        if len(self.addr_list) >= self.capacity:
            raise StackOverflowError(f"The CHIP-8 stack can contain at most {self.capacity} addresses. Limit exceeded")
        self.addr_list.append(address)

    def pop(self):
        if not self.addr_list:
            raise StackUnderflowError("Return from subroutine with an empty stack")
        return self.addr_list.pop()


# ********** WRAPS A BYTEARRAY TO REPRESENT THE MAIN MEMORY WITH A LIMITED SIZE OF 4KB
class Memory:
    """
    4KB of byte addressable memory
    the interpreter area (0x000-0x1FF) holds the font sprites and becomes read only
    once the memory is initialized, every access outside 0x000-0xFFF raises MemoryAccessError
    """
    def __init__(self):
        self.inner = bytearray(MEMORY_SIZE)
        self.inner[FONT_START_ADDRESS:FONT_START_ADDRESS+len(C8_FONTS)] = bytes(C8_FONTS)
        self.protected_below = ROM_START_ADDRESS

    def _check_range(self, start, stop):
        if start < 0 or start >= MEMORY_SIZE:
            raise MemoryAccessError(start)
        if stop > MEMORY_SIZE:
            raise MemoryAccessError(stop - 1)

    def __getitem__(self, index):
        if isinstance(index, slice):
            if index.step not in (None, 1):
                raise ValueError("Memory slices must be contiguous")
            start, stop = index.start or 0, index.stop
            if stop is None:
                stop = MEMORY_SIZE
            if stop <= start:
                return b""
            self._check_range(start, stop)
            return bytes(self.inner[start:stop])
        self._check_range(index, index + 1)
        return self.inner[index]

    def __setitem__(self, key, value):
        if isinstance(key, slice):
            self.write(key.start or 0, value)
        else:
            self.write(key, [value])

    def write(self, address, data):
        """copy data starting at address, the interpreter area can't be overwritten"""
        data = bytes(data)
        if not data:
            return
        self._check_range(address, address + len(data))
        if address < self.protected_below:
            raise MemoryAccessError(address, "write to the interpreter area")
        self.inner[address:address+len(data)] = data

    def font_address(self, digit):
        """return the address of the sprite for the hex digit, only the low nibble is considered"""
        return FONT_START_ADDRESS + (digit & 0xF) * FONT_SPRITE_SIZE

    def load_rom(self, rom: bytes):
        """copy the ROM image at the program start address, raise RomLoadError if it doesn't fit"""
        if len(rom) > MAX_ROM_SIZE:
            raise RomLoadError(f"The ROM is {len(rom)} bytes long, at most {MAX_ROM_SIZE} bytes fit in memory")
        self.inner[ROM_START_ADDRESS:] = bytes(MAX_ROM_SIZE)
        self.inner[ROM_START_ADDRESS:ROM_START_ADDRESS+len(rom)] = rom
