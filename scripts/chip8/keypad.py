KEYS_COUNT = 16


class Keypad:
    """state of the 16 keys hexadecimal keypad, written by the input adapter and read by the CPU"""
    def __init__(self):
        self.pressed_keys = set()

    @staticmethod
    def _validate(key):
        if not 0 <= key < KEYS_COUNT:
            raise ValueError(f"The CHIP-8 keypad has keys 0x0-0xF, got {key}")

    def __getitem__(self, key):
        return self.is_pressed(key)

    def __setitem__(self, key, value):
        self.set_key(key, value)

    def __repr__(self):
        return "{" + ", ".join(f"{k:X}" for k in sorted(self.pressed_keys)) + "}"

    def set_key(self, key, pressed):
        self._validate(key)
        if pressed:
            self.pressed_keys.add(key)
        else:
            self.pressed_keys.discard(key)

    def is_pressed(self, key):
        self._validate(key)
        return key in self.pressed_keys

    def first(self):
        """get the lowest key currently pressed, None when no key is pressed"""
        return min(self.pressed_keys) if self.pressed_keys else None

    def release_all(self):
        """forget every key press, used when the input adapter stops receiving key up events"""
        self.pressed_keys.clear()
