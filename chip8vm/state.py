"""CHIP-8 emulator state structures and host-side accessors."""

import jax
import jax.numpy as jnp
import numpy as np
from flax.struct import dataclass, PyTreeNode, field

from chip8vm.constants import (
    MEMORY_SIZE, PROGRAM_START, MAX_PROGRAM_SIZE, FONT_START, FONT_END, FONT_DATA,
    SCREEN_WIDTH, SCREEN_HEIGHT, STACK_SIZE, NUM_REGISTERS, NUM_KEYS,
)
from chip8vm.errors import (
    Fault, ProgramTooLargeError, AddressOutOfRangeError, ProtectedMemoryError,
    KeyOutOfRangeError, RegisterOutOfRangeError, PixelOutOfRangeError,
)


@dataclass
class StackState:
    """Stack state for subroutine calls. ``pointer`` is both depth and next free slot."""
    data: jnp.ndarray
    pointer: jnp.ndarray


class EmulatorState(PyTreeNode):
    """Main CHIP-8 emulator state.

    ``display`` is a ``(SCREEN_HEIGHT, SCREEN_WIDTH)`` boolean grid indexed
    ``[row, col]``. ``fault`` holds a :class:`~chip8vm.errors.Fault` code and
    ``fault_info`` the opcode, address or key it refers to.

    The remaining fields select historical interpreter behaviours and are
    static, so changing one retraces jitted code.
    """
    rng: jax.Array
    memory: jnp.ndarray
    pc: jnp.ndarray
    display: jnp.ndarray
    stack: StackState
    delay_timer: jnp.ndarray
    sound_timer: jnp.ndarray
    keypad: jnp.ndarray
    V: jnp.ndarray
    I: jnp.ndarray
    fault: jnp.ndarray
    fault_info: jnp.ndarray
    shift_uses_vy: bool = field(pytree_node=False, default=False)
    increment_index: bool = field(pytree_node=False, default=False)
    jump_uses_vx: bool = field(pytree_node=False, default=False)
    logic_resets_vf: bool = field(pytree_node=False, default=False)


def create_state(rng: jax.Array = None, **quirks) -> EmulatorState:
    """Create initial emulator state with font data loaded.

    Keyword arguments set the quirk flags of :class:`EmulatorState`.
    """
    if rng is None:
        rng = jax.random.PRNGKey(0)
    memory = jnp.zeros(MEMORY_SIZE, dtype=jnp.uint8).at[FONT_START:FONT_END].set(FONT_DATA)
    return EmulatorState(
        rng=rng,
        memory=memory,
        pc=jnp.asarray(PROGRAM_START, dtype=jnp.uint16),
        display=jnp.zeros((SCREEN_HEIGHT, SCREEN_WIDTH), dtype=jnp.bool_),
        stack=StackState(
            data=jnp.zeros(STACK_SIZE, dtype=jnp.uint16),
            pointer=jnp.zeros((), dtype=jnp.uint8),
        ),
        delay_timer=jnp.zeros((), dtype=jnp.uint8),
        sound_timer=jnp.zeros((), dtype=jnp.uint8),
        keypad=jnp.zeros(NUM_KEYS, dtype=jnp.bool_),
        V=jnp.zeros(NUM_REGISTERS, dtype=jnp.uint8),
        I=jnp.zeros((), dtype=jnp.uint16),
        fault=jnp.asarray(int(Fault.NONE), dtype=jnp.uint8),
        fault_info=jnp.zeros((), dtype=jnp.uint16),
        **quirks,
    )


def load_program(state: EmulatorState, program) -> EmulatorState:
    """Copy a program image into memory starting at 0x200.

    ``program`` is a bytes-like object or a sequence/array of byte values.

    Raises:
        ValueError: if an element does not fit in a byte.
        ProgramTooLargeError: if the image does not fit below 4096.
    """
    if isinstance(program, (bytes, bytearray, memoryview)):
        data = np.frombuffer(bytes(program), dtype=np.uint8)
    else:
        values = np.asarray(program, dtype=np.int64).reshape(-1)
        if values.size and (values.min() < 0 or values.max() > 0xFF):
            raise ValueError("Program image contains values that do not fit in a byte")
        data = values.astype(np.uint8)
    if len(data) > MAX_PROGRAM_SIZE:
        raise ProgramTooLargeError(len(data))
    new_memory = state.memory.at[PROGRAM_START:PROGRAM_START + len(data)].set(jnp.asarray(data))
    return state.replace(memory=new_memory)


def _check_byte(value: int):
    if not 0 <= value <= 0xFF:
        raise ValueError(f"Value {value} does not fit in a byte")


def _check_address(address: int):
    if not 0 <= address < MEMORY_SIZE:
        raise AddressOutOfRangeError(address)


def read_register(state: EmulatorState, index: int) -> int:
    if not 0 <= index < NUM_REGISTERS:
        raise RegisterOutOfRangeError(index)
    return int(state.V[index])


def write_register(state: EmulatorState, index: int, value: int) -> EmulatorState:
    if not 0 <= index < NUM_REGISTERS:
        raise RegisterOutOfRangeError(index)
    _check_byte(value)
    return state.replace(V=state.V.at[index].set(value))


def read_memory(state: EmulatorState, address: int) -> int:
    _check_address(address)
    return int(state.memory[address])


def write_memory(state: EmulatorState, address: int, value: int) -> EmulatorState:
    """Write one byte; the font table region is read-only."""
    _check_address(address)
    if FONT_START <= address < FONT_END:
        raise ProtectedMemoryError(address)
    _check_byte(value)
    return state.replace(memory=state.memory.at[address].set(value))


def get_pixel(state: EmulatorState, row: int, col: int) -> bool:
    """Lit state of the framebuffer cell at ``(row, col)``."""
    if not (0 <= row < SCREEN_HEIGHT and 0 <= col < SCREEN_WIDTH):
        raise PixelOutOfRangeError(row, col)
    return bool(state.display[row, col])


def is_key_pressed(state: EmulatorState, key: int) -> bool:
    if not 0 <= key < NUM_KEYS:
        raise KeyOutOfRangeError(key)
    return bool(state.keypad[key])


def set_key(state: EmulatorState, key: int, pressed: bool = True) -> EmulatorState:
    """Press or release a keypad key (0x0-0xF)."""
    if not 0 <= key < NUM_KEYS:
        raise KeyOutOfRangeError(key)
    return state.replace(keypad=state.keypad.at[key].set(pressed))
