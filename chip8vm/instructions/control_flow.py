"""CHIP-8 control flow instructions."""

import jax
import jax.lax
import jax.numpy as jnp
from chip8vm.state import EmulatorState
from chip8vm.decode import DecodedInstruction
from chip8vm.constants import NUM_KEYS
from chip8vm.errors import Fault, fault_unless
from chip8vm.stack import push


def execute_jump(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """1NNN - Jump to address NNN."""
    return state.replace(pc=jnp.astype(instruction.nnn, jnp.uint16))


def execute_call(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """2NNN - Call subroutine at NNN."""
    stack, ok = push(state.stack, state.pc)
    state = execute_jump(state.replace(stack=stack), instruction)
    return fault_unless(state, ok, Fault.STACK_OVERFLOW, instruction.raw)


def make_skip_instruction(condition_fn):
    """Factory for skip instructions."""
    def skip_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
        condition = condition_fn(state, instruction)
        return jax.lax.cond(
            condition,
            lambda s: s.replace(pc=s.pc + 2),
            lambda s: s,
            state
        )
    return skip_instruction


execute_skip_if_equal_immediate = make_skip_instruction(
    lambda state, inst: state.V[inst.x] == inst.nn
)

execute_skip_if_not_equal_immediate = make_skip_instruction(
    lambda state, inst: state.V[inst.x] != inst.nn
)

execute_skip_if_equal_register = make_skip_instruction(
    lambda state, inst: state.V[inst.x] == state.V[inst.y]
)

execute_skip_if_not_equal_register = make_skip_instruction(
    lambda state, inst: state.V[inst.x] != state.V[inst.y]
)


def execute_jump_with_offset(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """BNNN - Jump to address NNN + V0, or NNN + VX with ``jump_uses_vx``."""
    register = instruction.x if state.jump_uses_vx else 0
    jump_address = jnp.astype(instruction.nnn, jnp.uint16) + jnp.astype(state.V[register], jnp.uint16)
    return state.replace(pc=jump_address)


def make_key_skip_instruction(skip_if_pressed: bool):
    """Factory for EX9E/EXA1. VX must name a key 0x0-0xF."""
    skip = make_skip_instruction(
        lambda state, inst: state.keypad[state.V[inst.x] & 0xF] == skip_if_pressed
    )

    def key_skip_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
        key = state.V[instruction.x]
        return fault_unless(skip(state, instruction), key < NUM_KEYS, Fault.KEY_OUT_OF_RANGE, key)
    return key_skip_instruction


execute_skip_if_key = make_key_skip_instruction(True)

execute_skip_if_not_key = make_key_skip_instruction(False)
