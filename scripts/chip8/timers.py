TIMER_FREQUENCY = 60    # Hz, independent from the CPU speed


class Timers:
    """delay and sound timers, both count down to zero once per tick"""
    def __init__(self):
        self._dt = 0    # delay timer, active when non-zero
        self._st = 0    # sound timer, active when non-zero

    def __repr__(self):
        return f"Timers(dt={self._dt}, st={self._st})"

    @staticmethod
    def _clamp(value):
        return min(max(int(value), 0), 0xFF)

    def tick(self):
        if self._dt > 0:
            self._dt -= 1
        if self._st > 0:
            self._st -= 1

    def get_delay(self):
        return self._dt

    def set_delay(self, value):
        self._dt = self._clamp(value)

    def get_sound(self):
        return self._st

    def set_sound(self, value):
        self._st = self._clamp(value)

    def get_sound_active(self):
        return self._st > 0
