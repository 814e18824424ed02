# chipeight

A small CHIP-8 interpreter. It loads a ROM into 4 KB of memory at address
`0x200` and runs it, one instruction per cycle with a short pause between
cycles. The 64×32 monochrome display is drawn in a pygame window titled
`chip8`, scaled 16 times.

## Installation

```
pip install .
```

## Running a ROM

```
chipeight path/to/game.ch8
```

The command takes exactly one argument, the ROM file. Without it, it prints
`Please provide a rom file.` and exits with status 1. If the file cannot be
read, or is larger than the 3584 bytes that fit above `0x200`, it prints
`Cannot load ROM: ...` to standard error and exits with status 1. Close the
window to stop.

## Keypad

The sixteen CHIP-8 keys are mapped onto the keyboard like this:

| CHIP-8 | Key |   | CHIP-8 | Key |
|--------|-----|---|--------|-----|
| 0      | X   |   | 8      | S   |
| 1      | 1   |   | 9      | D   |
| 2      | 2   |   | A      | Z   |
| 3      | 3   |   | B      | C   |
| 4      | Q   |   | C      | 4   |
| 5      | W   |   | D      | R   |
| 6      | E   |   | E      | F   |
| 7      | A   |   | F      | V   |

A key counts as pressed from its key-down event until its key-up event.

## Using the interpreter from Python

```python
from chipeight.cpu import Chip8

cpu = Chip8()
cpu.load_bytes(bytes([0x60, 0x2A, 0x12, 0x00]))  # LD V0, 0x2A; JP 0x200
cpu.execute()
assert cpu.v[0] == 0x2A
```

- `Chip8.load_rom(path)` reads a ROM file; `Chip8.load_bytes(data)` loads a
  program image. Both raise `ValueError` if the program does not fit.
- `Chip8.execute()` fetches and runs one instruction, counts the delay and
  sound timers down, and returns the opcode. `Chip8.fetch()` only reads the
  opcode at the program counter.
- `Chip8.reset()` returns the machine to its power-on state, with the font
  at `0x50`.
- The machine's state is in plain attributes: `memory`, `v`, `index`, `pc`,
  `sp`, `stack`, `delay_timer`, `sound_timer`, `display`, `keys`,
  `draw_flag` and `sound_flag`. `rng` is the `random.Random` used by `RND`;
  seed it for repeatable runs.
- A `RET` with an empty call stack, or a `CALL` nested too deep, raises
  `IndexError`.

`chipeight.peripherals` holds the window: `Screen(scale)` opens it (also a
context manager), `Screen.draw(display)` renders a display buffer,
`Screen.poll(keys)` feeds pending keyboard events into a keypad and returns
`False` once the window is closed, and `Screen.close()` shuts it. The helpers
`key_index(key)` and `apply_event(event, keys)` map pygame key codes and
events onto the keypad.

`chipeight.main.run(cpu, screen, delay)` drives a CPU against any object with
`draw` and `poll` methods until `poll` returns `False`, and returns the number
of cycles run.

## Logging

Each executed instruction is logged at `DEBUG` level, and `BEEP!` at `INFO`
level while the sound timer runs, on the `chipeight.cpu` logger. The
`chipeight` command does not configure logging, so none of this is shown
unless you set up `logging` yourself when driving the interpreter from Python.

## What it does not do

There is no audio output: a running sound timer only sets `sound_flag` and
logs `BEEP!`. There are no save states, no debugger and no way to change the
key mapping, scale or speed from the command line.

## Tests

```
pip install .[test]
pytest
```