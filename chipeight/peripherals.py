"""Window, rendering and keypad input for the emulator, built on pygame."""

from __future__ import annotations

from collections.abc import MutableSequence, Sequence
from typing import Optional

import pygame

from chipeight.cpu import DISPLAY_HEIGHT, DISPLAY_WIDTH, KEY_COUNT

DEFAULT_SCALE = 16
WINDOW_TITLE = "chip8"
BACKGROUND = (0, 0, 0)
FOREGROUND = (255, 255, 255)

# Host keys for CHIP-8 keys 0x0 through 0xF, in order.
KEYMAP: tuple[int, ...] = (
    pygame.K_x,  # 0
    pygame.K_1,  # 1
    pygame.K_2,  # 2
    pygame.K_3,  # 3
    pygame.K_q,  # 4
    pygame.K_w,  # 5
    pygame.K_e,  # 6
    pygame.K_a,  # 7
    pygame.K_s,  # 8
    pygame.K_d,  # 9
    pygame.K_z,  # A
    pygame.K_c,  # B
    pygame.K_4,  # C
    pygame.K_r,  # D
    pygame.K_f,  # E
    pygame.K_v,  # F
)

_KEY_LOOKUP = {key: index for index, key in enumerate(KEYMAP)}


def key_index(key: int) -> Optional[int]:
    """Return the CHIP-8 key for a host key code, or None if it is not mapped."""
    return _KEY_LOOKUP.get(key)


def apply_event(event: pygame.event.Event, keys: MutableSequence[int]) -> bool:
    """Update the keypad from one event; return False when the event asks to quit."""
    if event.type == pygame.QUIT:
        return False
    if event.type in (pygame.KEYDOWN, pygame.KEYUP):
        index = key_index(event.key)
        if index is not None and index < len(keys):
            keys[index] = 1 if event.type == pygame.KEYDOWN else 0
    return True


class Screen:
    """A scaled window showing the 64x32 monochrome display and reading the keypad."""

    def __init__(self, scale: int = DEFAULT_SCALE) -> None:
        if scale < 1:
            raise ValueError(f"scale must be at least 1, got {scale}")
        self.scale = scale
        pygame.display.init()
        self.surface = pygame.display.set_mode(
            (DISPLAY_WIDTH * scale, DISPLAY_HEIGHT * scale)
        )
        pygame.display.set_caption(WINDOW_TITLE)
        self._closed = False

    def draw(self, display: Sequence[int]) -> None:
        """Render a display buffer of DISPLAY_WIDTH * DISPLAY_HEIGHT pixels."""
        self.surface.fill(BACKGROUND)
        scale = self.scale
        for pixel, value in enumerate(display[: DISPLAY_WIDTH * DISPLAY_HEIGHT]):
            if value == 1:
                row, col = divmod(pixel, DISPLAY_WIDTH)
                self.surface.fill(
                    FOREGROUND, pygame.Rect(col * scale, row * scale, scale, scale)
                )
        pygame.display.flip()

    def poll(self, keys: MutableSequence[int]) -> bool:
        """Drain pending events into the keypad; return False once quit is requested."""
        running = True
        for event in pygame.event.get():
            if not apply_event(event, keys):
                running = False
        return running

    def close(self) -> None:
        """Destroy the window and shut the display down."""
        if not self._closed:
            self._closed = True
            pygame.display.quit()

    def __enter__(self) -> "Screen":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = [
    "DEFAULT_SCALE",
    "KEYMAP",
    "KEY_COUNT",
    "Screen",
    "apply_event",
    "key_index",
]