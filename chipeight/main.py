"""Command-line entry point: load a ROM and run it in a window."""

from __future__ import annotations

import sys
import time
from typing import Optional, Protocol, Sequence

from chipeight.cpu import Chip8

DEFAULT_DELAY = 0.0015


class _Display(Protocol):
    def draw(self, display: Sequence[int]) -> None: ...

    def poll(self, keys) -> bool: ...


def run(cpu: Chip8, screen: _Display, delay: float = DEFAULT_DELAY) -> int:
    """Run the machine until the screen reports a quit; return the cycles executed."""
    cycles = 0
    running = True
    while running:
        cpu.execute()
        cycles += 1
        running = screen.poll(cpu.keys)
        if cpu.draw_flag:
            screen.draw(cpu.display)
        if delay > 0:
            time.sleep(delay)
    return cycles


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start the emulator on the ROM named by the single argument."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) != 1:
        print("Please provide a rom file.")
        return 1

    cpu = Chip8()
    try:
        cpu.load_rom(args[0])
    except (OSError, ValueError) as error:
        print(f"Cannot load ROM: {error}", file=sys.stderr)
        return 1

    from chipeight.peripherals import Screen

    with Screen() as screen:
        run(cpu, screen, DEFAULT_DELAY)
    return 0


if __name__ == "__main__":
    sys.exit(main())