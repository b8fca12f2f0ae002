"""CHIP-8 miscellaneous instructions (Fxxx)."""

import jax
import jax.lax
import jax.numpy as jnp
from chip8vm.state import EmulatorState
from chip8vm.decode import DecodedInstruction
from chip8vm.constants import FONT_START, FONT_END, FONT_CHAR_SIZE, MEMORY_SIZE, NUM_REGISTERS
from chip8vm.errors import Fault, fault_unless


def _check_readable(state: EmulatorState, last: jnp.ndarray) -> EmulatorState:
    return fault_unless(state, last < MEMORY_SIZE, Fault.ADDRESS_OUT_OF_RANGE, last)


def _check_writable(state: EmulatorState, first: jnp.ndarray, last: jnp.ndarray) -> EmulatorState:
    """Memory writes must stay in bounds and outside the font table."""
    state = _check_readable(state, last)
    overlaps_font = (first < FONT_END) & (last >= FONT_START)
    return fault_unless(state, jnp.logical_not(overlaps_font), Fault.PROTECTED_WRITE, first)


def execute_get_delay_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX07 - Set VX to delay timer value."""
    return state.replace(V=state.V.at[instruction.x].set(state.delay_timer))


def execute_set_delay_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX15 - Set delay timer to VX."""
    return state.replace(delay_timer=state.V[instruction.x])


def execute_set_sound_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX18 - Set sound timer to VX."""
    return state.replace(sound_timer=state.V[instruction.x])


def execute_add_to_index(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX1E - Add VX to I register. VF is untouched."""
    return state.replace(I=state.I + jnp.astype(state.V[instruction.x], jnp.uint16))


def execute_wait_for_key(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX0A - Wait for key press.

    Re-runs on the next cycle until a key is down, then latches the lowest
    pressed key into VX.
    """
    def key_pressed_action(state):
        pressed_key = jnp.astype(jnp.argmax(state.keypad), jnp.uint8)
        return state.replace(V=state.V.at[instruction.x].set(pressed_key))

    def wait_action(state):
        return state.replace(pc=state.pc - 2)

    return jax.lax.cond(jnp.any(state.keypad), key_pressed_action, wait_action, state)


def execute_font_character(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX29 - Set I to location of sprite for hex digit in the low nibble of VX."""
    digit = jnp.astype(state.V[instruction.x] & 0xF, jnp.uint16)
    return state.replace(I=FONT_START + digit * FONT_CHAR_SIZE)


def execute_bcd_conversion(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX33 - Store BCD representation of VX at I, I+1, I+2."""
    value = state.V[instruction.x]

    digits = jnp.array([
        value // 100,
        (value // 10) % 10,
        value % 10
    ], dtype=jnp.uint8)

    indices = jnp.astype(state.I, jnp.int32) + jnp.arange(3)
    state = state.replace(memory=state.memory.at[indices].set(digits))
    return _check_writable(state, indices[0], indices[-1])


def execute_store_registers(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX55 - Store V0 through VX in memory starting at I."""
    register_mask = jnp.arange(NUM_REGISTERS) <= instruction.x
    base_indices = jnp.astype(state.I, jnp.int32) + jnp.arange(NUM_REGISTERS)
    current_memory_values = state.memory[base_indices]
    new_memory_values = jnp.where(register_mask, state.V, current_memory_values)
    new_memory = state.memory.at[base_indices].set(new_memory_values)

    if state.increment_index:
        state = state.replace(memory=new_memory, I=state.I + instruction.x + 1)
    else:
        state = state.replace(memory=new_memory)
    return _check_writable(state, base_indices[0], base_indices[0] + instruction.x)


def execute_load_registers(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX65 - Load V0 through VX from memory starting at I."""
    register_mask = jnp.arange(NUM_REGISTERS) <= instruction.x
    base_indices = jnp.astype(state.I, jnp.int32) + jnp.arange(NUM_REGISTERS)
    memory_values = state.memory[base_indices]
    new_V = jnp.where(register_mask, memory_values, state.V)

    if state.increment_index:
        state = state.replace(V=new_V, I=state.I + instruction.x + 1)
    else:
        state = state.replace(V=new_V)
    return _check_readable(state, base_indices[0] + instruction.x)
