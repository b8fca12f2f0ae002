"""CHIP-8 fault codes and the exceptions they are reported as.

Instruction handlers run under ``jax.lax.switch`` and cannot raise, so they
record a :class:`Fault` code in the emulator state instead. The driver turns
that code into one of the exceptions below with :func:`raise_for_fault`.
"""

import enum

import jax.numpy as jnp

from chip8vm.constants import MAX_PROGRAM_SIZE


class Fault(enum.IntEnum):
    """Fault codes stored in ``EmulatorState.fault``."""
    NONE = 0
    UNKNOWN_OPCODE = 1
    STACK_OVERFLOW = 2
    STACK_UNDERFLOW = 3
    ADDRESS_OUT_OF_RANGE = 4
    PROTECTED_WRITE = 5
    KEY_OUT_OF_RANGE = 6


def _location(pc) -> str:
    return "" if pc is None else f" at 0x{pc:03X}"


class Chip8Error(Exception):
    """Base class for every error reported by the virtual machine."""


class ProgramTooLargeError(Chip8Error):
    """Program image does not fit between 0x200 and the end of memory."""

    def __init__(self, size: int, limit: int = MAX_PROGRAM_SIZE):
        self.size = size
        self.limit = limit
        super().__init__(f"Program of {size} bytes exceeds the {limit} bytes available")


class UnknownOpcodeError(Chip8Error):
    """No instruction is registered for the fetched word."""

    def __init__(self, opcode: int, pc: int = None):
        self.opcode = opcode
        self.pc = pc
        super().__init__(f"Unknown opcode 0x{opcode:04X}{_location(pc)}")


class StackOverflowError(Chip8Error):
    """CALL executed with all stack slots in use."""

    def __init__(self, opcode: int, pc: int = None):
        self.opcode = opcode
        self.pc = pc
        super().__init__(f"Stack overflow on 0x{opcode:04X}{_location(pc)}")


class StackUnderflowError(Chip8Error):
    """RET executed with an empty stack."""

    def __init__(self, opcode: int, pc: int = None):
        self.opcode = opcode
        self.pc = pc
        super().__init__(f"Stack underflow on 0x{opcode:04X}{_location(pc)}")


class OutOfRangeError(Chip8Error, IndexError):
    """Base class for bounds errors."""

    kind = "index"

    def __init__(self, value: int, pc: int = None):
        self.value = value
        self.pc = pc
        super().__init__(f"{self.kind.capitalize()} {value:#x} out of range{_location(pc)}")


class AddressOutOfRangeError(OutOfRangeError):
    kind = "address"

    @property
    def address(self) -> int:
        return self.value


class ProtectedMemoryError(AddressOutOfRangeError):
    """Write into the font table region."""
    kind = "protected address"


class KeyOutOfRangeError(OutOfRangeError):
    kind = "key"


class RegisterOutOfRangeError(OutOfRangeError):
    kind = "register"


class PixelOutOfRangeError(OutOfRangeError):
    kind = "pixel"

    def __init__(self, row: int, col: int):
        self.row = row
        self.col = col
        Chip8Error.__init__(self, f"Pixel ({row}, {col}) out of range")


_FAULT_ERRORS = {
    Fault.UNKNOWN_OPCODE: UnknownOpcodeError,
    Fault.STACK_OVERFLOW: StackOverflowError,
    Fault.STACK_UNDERFLOW: StackUnderflowError,
    Fault.ADDRESS_OUT_OF_RANGE: AddressOutOfRangeError,
    Fault.PROTECTED_WRITE: ProtectedMemoryError,
    Fault.KEY_OUT_OF_RANGE: KeyOutOfRangeError,
}


def fault_unless(state, ok, fault: Fault, info):
    """Record ``fault`` with ``info`` in the state unless ``ok`` holds.

    Traceable; the first recorded fault of an instruction is kept.
    """
    record = jnp.logical_not(ok) & (state.fault == int(Fault.NONE))
    return state.replace(
        fault=jnp.where(record, jnp.uint8(int(fault)), state.fault),
        fault_info=jnp.where(record, jnp.astype(info, jnp.uint16), state.fault_info),
    )


def raise_for_fault(state):
    """Raise the exception matching the fault recorded in ``state``, if any."""
    fault = Fault(int(state.fault))
    if fault == Fault.NONE:
        return state
    raise _FAULT_ERRORS[fault](int(state.fault_info), pc=int(state.pc))
