"""The CHIP-8 processor: memory, registers, display buffer, keypad and the instruction set."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import Callable, Union

logger = logging.getLogger(__name__)

MEMORY_SIZE = 4096
PROGRAM_START = 0x200
FONT_START = 0x50
DISPLAY_WIDTH = 64
DISPLAY_HEIGHT = 32
DISPLAY_SIZE = DISPLAY_WIDTH * DISPLAY_HEIGHT
STACK_SIZE = 16
REGISTER_COUNT = 16
KEY_COUNT = 16
MAX_ROM_SIZE = MEMORY_SIZE - PROGRAM_START

_ADDRESS_MASK = MEMORY_SIZE - 1
_WORD_MASK = 0xFFFF
_BYTE_MASK = 0xFF

FONTSET = bytes(
    (
        0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
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
        0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
    )
)


@dataclass(frozen=True)
class _Instruction:
    """A decoded view of one 16-bit opcode."""

    opcode: int

    @property
    def x(self) -> int:
        return (self.opcode >> 8) & 0xF

    @property
    def y(self) -> int:
        return (self.opcode >> 4) & 0xF

    @property
    def n(self) -> int:
        return self.opcode & 0xF

    @property
    def kk(self) -> int:
        return self.opcode & 0xFF

    @property
    def nnn(self) -> int:
        return self.opcode & 0xFFF


class Chip8:
    """A CHIP-8 machine that executes one instruction per call to :meth:`execute`."""

    def __init__(self) -> None:
        self.rng = random.Random()
        self._groups: dict[int, Callable[[_Instruction], None]] = {
            0x0: self._op_system,
            0x1: self._op_jump,
            0x2: self._op_call,
            0x3: self._op_skip_eq_byte,
            0x4: self._op_skip_ne_byte,
            0x5: self._op_skip_eq_reg,
            0x6: self._op_load_byte,
            0x7: self._op_add_byte,
            0x8: self._op_arithmetic,
            0x9: self._op_skip_ne_reg,
            0xA: self._op_load_index,
            0xB: self._op_jump_offset,
            0xC: self._op_random,
            0xD: self._op_draw,
            0xE: self._op_keys,
            0xF: self._op_misc,
        }
        self._arithmetic: dict[int, Callable[[_Instruction], None]] = {
            0x0: self._op_ld_reg,
            0x1: self._op_or,
            0x2: self._op_and,
            0x3: self._op_xor,
            0x4: self._op_add_reg,
            0x5: self._op_sub,
            0x6: self._op_shr,
            0x7: self._op_subn,
            0xE: self._op_shl,
        }
        self._misc: dict[int, Callable[[_Instruction], None]] = {
            0x07: self._op_ld_from_delay,
            0x0A: self._op_wait_key,
            0x15: self._op_ld_delay,
            0x18: self._op_ld_sound,
            0x1E: self._op_add_index,
            0x29: self._op_ld_font,
            0x33: self._op_bcd,
            0x55: self._op_store_registers,
            0x65: self._op_load_registers,
        }
        self.reset()

    def reset(self) -> None:
        """Return the machine to power-on state with the font loaded."""
        self.opcode = 0
        self.index = 0
        self.pc = PROGRAM_START
        self.sp = 0
        self.stack = [0] * STACK_SIZE
        self.v = bytearray(REGISTER_COUNT)
        self.delay_timer = 0
        self.sound_timer = 0
        self.memory = bytearray(MEMORY_SIZE)
        self.display = bytearray(DISPLAY_SIZE)
        self.keys = bytearray(KEY_COUNT)
        self.draw_flag = False
        self.sound_flag = False
        self.memory[FONT_START:FONT_START + len(FONTSET)] = FONTSET

    def load_rom(self, path: Union[str, PathLike]) -> None:
        """Load a ROM file into memory at the program start address."""
        self.load_bytes(Path(path).read_bytes())

    def load_bytes(self, data: bytes) -> None:
        """Load a program image into memory at the program start address."""
        if len(data) > MAX_ROM_SIZE:
            raise ValueError(
                f"program of {len(data)} bytes does not fit in {MAX_ROM_SIZE} bytes of memory"
            )
        self.memory[PROGRAM_START:PROGRAM_START + len(data)] = data

    def fetch(self) -> int:
        """Read the big-endian opcode at the program counter."""
        high = self.memory[self.pc & _ADDRESS_MASK]
        low = self.memory[(self.pc + 1) & _ADDRESS_MASK]
        self.opcode = (high << 8) | low
        return self.opcode

    def execute(self) -> int:
        """Fetch and run one instruction, then tick the timers; return the opcode."""
        opcode = self.fetch()
        self.draw_flag = False
        self.sound_flag = False

        self._groups[opcode >> 12](_Instruction(opcode))

        if self.delay_timer > 0:
            self.delay_timer -= 1
        if self.sound_timer > 0:
            logger.info("BEEP!")
            self.sound_flag = True
            self.sound_timer -= 1
        return opcode

    # -- helpers -----------------------------------------------------------

    def _advance(self, steps: int = 1) -> None:
        self.pc = (self.pc + 2 * steps) & _WORD_MASK

    def _skip_if(self, condition: bool) -> None:
        self._advance(2 if condition else 1)

    def _mem_index(self, offset: int) -> int:
        return (self.index + offset) & _ADDRESS_MASK

    # -- instruction groups ------------------------------------------------

    def _op_system(self, ins: _Instruction) -> None:
        if ins.nnn == 0x0E0:
            logger.debug("Executing CLS (0x00E0)")
            self.display[:] = bytes(DISPLAY_SIZE)
            self._advance()
        elif ins.nnn == 0x0EE:
            logger.debug("Executing RET (0x00EE)")
            if self.sp == 0:
                raise IndexError("stack underflow: RET with an empty call stack")
            self.pc = self.stack[self.sp]
            self.sp -= 1
            self._advance()

    def _op_jump(self, ins: _Instruction) -> None:
        logger.debug("Executing JP (0x1nnn) to address %x", ins.nnn)
        self.pc = ins.nnn

    def _op_call(self, ins: _Instruction) -> None:
        logger.debug("Executing CALL (0x2nnn) to subroutine at address %x", ins.nnn)
        if self.sp + 1 >= STACK_SIZE:
            raise IndexError("stack overflow: too many nested CALLs")
        self.sp += 1
        self.stack[self.sp] = self.pc
        self.pc = ins.nnn

    def _op_skip_eq_byte(self, ins: _Instruction) -> None:
        logger.debug("Executing SE (0x3xkk) on register V%x with value %x", ins.x, ins.kk)
        self._skip_if(self.v[ins.x] == ins.kk)

    def _op_skip_ne_byte(self, ins: _Instruction) -> None:
        logger.debug("Executing SNE (0x4xkk) on register V%x with value %x", ins.x, ins.kk)
        self._skip_if(self.v[ins.x] != ins.kk)

    def _op_skip_eq_reg(self, ins: _Instruction) -> None:
        logger.debug("Executing SE (0x5xy0) on registers V%x and V%x", ins.x, ins.y)
        self._skip_if(self.v[ins.x] == self.v[ins.y])

    def _op_load_byte(self, ins: _Instruction) -> None:
        logger.debug("Executing LD (0x6xkk) on register V%x with value %x", ins.x, ins.kk)
        self.v[ins.x] = ins.kk
        self._advance()

    def _op_add_byte(self, ins: _Instruction) -> None:
        logger.debug("Executing ADD (0x7xkk) on register V%x with value %x", ins.x, ins.kk)
        self.v[ins.x] = (self.v[ins.x] + ins.kk) & _BYTE_MASK
        self._advance()

    def _op_arithmetic(self, ins: _Instruction) -> None:
        handler = self._arithmetic.get(ins.n)
        if handler is not None:
            handler(ins)
            self._advance()

    def _op_skip_ne_reg(self, ins: _Instruction) -> None:
        logger.debug("Executing SNE (0x9xy0) on registers V%x and V%x", ins.x, ins.y)
        self._skip_if(self.v[ins.x] != self.v[ins.y])

    def _op_load_index(self, ins: _Instruction) -> None:
        logger.debug("Executing LD I (0xAnnn) with address %x", ins.nnn)
        self.index = ins.nnn
        self._advance()

    def _op_jump_offset(self, ins: _Instruction) -> None:
        logger.debug(
            "Executing JP (0xBnnn) with address %x and V0 value %x", ins.nnn, self.v[0]
        )
        self.pc = ins.nnn + self.v[0]

    def _op_random(self, ins: _Instruction) -> None:
        value = self.rng.randrange(255) & ins.kk
        logger.debug("Executing RND (0xCxkk) on register V%x AND %x", ins.x, ins.kk)
        self.v[ins.x] = value
        self._advance()

    def _op_draw(self, ins: _Instruction) -> None:
        x = self.v[ins.x]
        y = self.v[ins.y]
        logger.debug(
            "Executing DRW (0xDxyn) to display sprite starting at (%x, %x) with height %x",
            x, y, ins.n,
        )
        self.v[0xF] = 0
        for row in range(ins.n):
            sprite = self.memory[self._mem_index(row)]
            for col in range(8):
                if not sprite & (0x80 >> col):
                    continue
                pixel = x + col + (y + row) * DISPLAY_WIDTH
                if pixel >= DISPLAY_SIZE:
                    continue
                if self.display[pixel] == 1:
                    self.v[0xF] = 1
                self.display[pixel] ^= 1
        self.draw_flag = True
        self._advance()

    def _key_pressed(self, key: int) -> bool:
        return key < KEY_COUNT and bool(self.keys[key])

    def _op_keys(self, ins: _Instruction) -> None:
        if ins.kk == 0x9E:
            logger.debug("Executing SKP (0xEx9E) on key in V%x", ins.x)
            self._skip_if(self._key_pressed(self.v[ins.x]))
        elif ins.kk == 0xA1:
            logger.debug("Executing SKNP (0xExA1) on key in V%x", ins.x)
            self._skip_if(not self._key_pressed(self.v[ins.x]))

    def _op_misc(self, ins: _Instruction) -> None:
        handler = self._misc.get(ins.kk)
        if handler is not None:
            handler(ins)

    # -- 8xyN --------------------------------------------------------------

    def _op_ld_reg(self, ins: _Instruction) -> None:
        logger.debug("Executing LD (0x8xy0) on registers V%x and V%x", ins.x, ins.y)
        self.v[ins.x] = self.v[ins.y]

    def _op_or(self, ins: _Instruction) -> None:
        logger.debug("Executing OR (0x8xy1) on registers V%x and V%x", ins.x, ins.y)
        self.v[ins.x] |= self.v[ins.y]

    def _op_and(self, ins: _Instruction) -> None:
        logger.debug("Executing AND (0x8xy2) on registers V%x and V%x", ins.x, ins.y)
        self.v[ins.x] &= self.v[ins.y]

    def _op_xor(self, ins: _Instruction) -> None:
        logger.debug("Executing XOR (0x8xy3) on registers V%x and V%x", ins.x, ins.y)
        self.v[ins.x] ^= self.v[ins.y]

    def _op_add_reg(self, ins: _Instruction) -> None:
        logger.debug("Executing ADD (0x8xy4) on registers V%x and V%x", ins.x, ins.y)
        self.v[0xF] = 1 if self.v[ins.x] + self.v[ins.y] > _BYTE_MASK else 0
        self.v[ins.x] = (self.v[ins.x] + self.v[ins.y]) & _BYTE_MASK

    def _op_sub(self, ins: _Instruction) -> None:
        logger.debug("Executing SUB (0x8xy5) on registers V%x and V%x", ins.x, ins.y)
        self.v[ins.x] = (self.v[ins.x] - self.v[ins.y]) & _BYTE_MASK
        self.v[0xF] = 1 if self.v[ins.x] > self.v[ins.y] else 0

    def _op_shr(self, ins: _Instruction) -> None:
        logger.debug("Executing SHR (0x8xy6) on register V%x", ins.x)
        self.v[0xF] = self.v[ins.x] & 0x1
        self.v[ins.x] >>= 1

    def _op_subn(self, ins: _Instruction) -> None:
        logger.debug("Executing SUBN (0x8xy7) on registers V%x and V%x", ins.x, ins.y)
        self.v[0xF] = 1 if self.v[ins.y] > self.v[ins.x] else 0
        self.v[ins.x] = (self.v[ins.y] - self.v[ins.x]) & _BYTE_MASK

    def _op_shl(self, ins: _Instruction) -> None:
        logger.debug("Executing SHL (0x8xyE) on register V%x", ins.x)
        self.v[0xF] = (self.v[ins.x] >> 7) & 0x1
        self.v[ins.x] = (self.v[ins.x] << 1) & _BYTE_MASK

    # -- FxNN --------------------------------------------------------------

    def _op_ld_from_delay(self, ins: _Instruction) -> None:
        logger.debug("Executing LD (0xFx07) to load delay timer value into V%x", ins.x)
        self.v[ins.x] = self.delay_timer
        self._advance()

    def _op_wait_key(self, ins: _Instruction) -> None:
        logger.debug("Executing LD (0xFx0A) to wait for key press and store in V%x", ins.x)
        pressed = next((key for key, state in enumerate(self.keys) if state), None)
        if pressed is not None:
            self.v[ins.x] = pressed
            self._advance()

    def _op_ld_delay(self, ins: _Instruction) -> None:
        logger.debug("Executing LD (0xFx15) to set delay timer to value in V%x", ins.x)
        self.delay_timer = self.v[ins.x]
        self._advance()

    def _op_ld_sound(self, ins: _Instruction) -> None:
        logger.debug("Executing LD (0xFx18) to set sound timer to value in V%x", ins.x)
        self.sound_timer = self.v[ins.x]
        self._advance()

    def _op_add_index(self, ins: _Instruction) -> None:
        logger.debug("Executing ADD (0xFx1E) to add value in V%x to index register I", ins.x)
        self.index = (self.index + self.v[ins.x]) & _WORD_MASK
        self._advance()

    def _op_ld_font(self, ins: _Instruction) -> None:
        logger.debug("Executing LD (0xFx29) to set I to location of sprite for digit V%x", ins.x)
        self.index = self.v[ins.x] * 5
        self._advance()

    def _op_bcd(self, ins: _Instruction) -> None:
        logger.debug("Executing LD (0xFx33) to store BCD representation of V%x in memory", ins.x)
        value = self.v[ins.x]
        self.memory[self._mem_index(0)] = value // 100
        self.memory[self._mem_index(1)] = (value // 10) % 10
        self.memory[self._mem_index(2)] = value % 10
        self._advance()

    def _op_store_registers(self, ins: _Instruction) -> None:
        logger.debug("Executing LD (0xFx55) to store registers V0 to V%x in memory", ins.x)
        for offset, value in enumerate(self.v[: ins.x + 1]):
            self.memory[self._mem_index(offset)] = value
        self._advance()

    def _op_load_registers(self, ins: _Instruction) -> None:
        logger.debug("Executing LD (0xFx65) to read registers V0 to V%x from memory", ins.x)
        for register in range(ins.x + 1):
            self.v[register] = self.memory[self._mem_index(register)]
        self._advance()