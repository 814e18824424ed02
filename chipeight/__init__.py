"""A CHIP-8 interpreter: the processor, a pygame window and keypad, and a command to run ROMs."""

__version__ = "0.1.0"
__all__ = ["cpu", "peripherals", "main"]