"""CHIP-8 virtual machine package."""

from chip8vm.state import (
    EmulatorState, create_state, load_program,
    read_register, write_register, read_memory, write_memory,
    get_pixel, is_key_pressed, set_key,
)
from chip8vm.emulator import execute, fetch, tick_timers, cycle, step, run_cycles, load_rom
from chip8vm.decode import Op, DecodedInstruction, decode, disassemble
from chip8vm.errors import (
    Fault, Chip8Error, ProgramTooLargeError, UnknownOpcodeError,
    StackOverflowError, StackUnderflowError, OutOfRangeError, AddressOutOfRangeError,
    ProtectedMemoryError, KeyOutOfRangeError, RegisterOutOfRangeError, PixelOutOfRangeError,
    raise_for_fault,
)
from chip8vm.constants import *

__all__ = [
    "EmulatorState",
    "create_state",
    "load_program",
    "read_register",
    "write_register",
    "read_memory",
    "write_memory",
    "get_pixel",
    "is_key_pressed",
    "set_key",
    "fetch",
    "execute",
    "tick_timers",
    "cycle",
    "step",
    "run_cycles",
    "load_rom",
    "Op",
    "DecodedInstruction",
    "decode",
    "disassemble",
    "Fault",
    "Chip8Error",
    "ProgramTooLargeError",
    "UnknownOpcodeError",
    "StackOverflowError",
    "StackUnderflowError",
    "OutOfRangeError",
    "AddressOutOfRangeError",
    "ProtectedMemoryError",
    "KeyOutOfRangeError",
    "RegisterOutOfRangeError",
    "PixelOutOfRangeError",
    "raise_for_fault",
    "PROGRAM_START",
    "FONT_START",
    "MEMORY_SIZE",
    "SCREEN_WIDTH",
    "SCREEN_HEIGHT",
]
