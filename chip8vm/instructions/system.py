"""CHIP-8 system instructions (0x0xxx) and the unknown-opcode handler."""

import jax.numpy as jnp
from chip8vm.state import EmulatorState
from chip8vm.decode import DecodedInstruction
from chip8vm.errors import Fault, fault_unless
from chip8vm.stack import pop


def execute_machine_routine(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """0NNN - Call machine code routine at NNN. Ignored by interpreters."""
    return state


def execute_clear_screen(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """00E0 - Clear display."""
    return state.replace(display=jnp.zeros_like(state.display))


def execute_return(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """00EE - Return from subroutine."""
    stack, address, ok = pop(state.stack)
    state = state.replace(stack=stack, pc=address)
    return fault_unless(state, ok, Fault.STACK_UNDERFLOW, instruction.raw)


def execute_unknown(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """Word with no registered instruction."""
    return fault_unless(state, False, Fault.UNKNOWN_OPCODE, instruction.raw)
