SCREEN_HEIGHT = 32
SCREEN_WIDTH = 64


# ******************** DISPLAY SECTION
class DisplayBuffer:
    """monochrome 64x32 frame buffer, sprites are XORed onto it and wrap around the edges"""
    def __init__(self, w=SCREEN_WIDTH, h=SCREEN_HEIGHT):
        self.w, self.h = w, h
        self.buffer = [0] * h * w

    def read_pixel(self, x, y):
        """return 1 if pixel is ON, return 0 if pixel is OFF"""
        return self.buffer[(y % self.h) * self.w + (x % self.w)]

    def clear(self):
        self.buffer = [0] * self.h * self.w

    def draw(self, x, y, sprite) -> bool:
        """
        XOR the sprite bytes onto the buffer with their top left corner at (x, y)
        each byte is a row of 8 pixels, MSB first
        return True if any pixel has been turned from ON to OFF
        """
        collided = False
        for i, sprite_byte in enumerate(sprite):
            # increment y by one for each new sprite's byte read
            # this allows for wrap around of displayed sprites
            y_coordinate = (y + i) % self.h
            for j in range(8):
                bit = (sprite_byte >> (7 - j)) & 0x1
                if not bit:
                    continue
                x_coordinate = (x + j) % self.w
                offset = y_coordinate * self.w + x_coordinate
                # the only case when a pixel gets erased is when it was ON and is turned ON again
                if self.buffer[offset]:
                    collided = True
                self.buffer[offset] ^= 1
        return collided

    def snapshot(self):
        """return a read only copy of the buffer as h rows of w booleans"""
        return tuple(
            tuple(bool(p) for p in self.buffer[row * self.w:(row + 1) * self.w])
            for row in range(self.h)
        )
