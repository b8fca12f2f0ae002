"""Main CHIP-8 emulator execution engine.

``execute`` and ``cycle`` are pure and traceable, so they can be jitted,
scanned or vmapped. Faults raised by an instruction are recorded in the
state (see :mod:`chip8vm.errors`); ``step`` and ``run_cycles`` are the
host-side drivers that turn them into exceptions.
"""

from functools import partial

import jax
import jax.lax
import jax.numpy as jnp
from chip8vm.state import EmulatorState, load_program
from chip8vm.decode import Op, decode
from chip8vm.constants import MEMORY_SIZE
from chip8vm.errors import Fault, fault_unless, raise_for_fault
from chip8vm.instructions.system import (
    execute_machine_routine, execute_clear_screen, execute_return, execute_unknown
)
from chip8vm.instructions.control_flow import (
    execute_jump, execute_call, execute_skip_if_equal_immediate,
    execute_skip_if_not_equal_immediate, execute_skip_if_equal_register,
    execute_skip_if_not_equal_register, execute_jump_with_offset,
    execute_skip_if_key, execute_skip_if_not_key
)
from chip8vm.instructions.alu import (
    execute_alu_set, execute_alu_or, execute_alu_and, execute_alu_xor, execute_alu_add,
    execute_alu_sub_xy, execute_alu_shift_right, execute_alu_sub_yx, execute_alu_shift_left
)
from chip8vm.instructions.memory import execute_set, execute_add, execute_set_index, execute_random
from chip8vm.instructions.display import execute_display
from chip8vm.instructions.misc import (
    execute_get_delay_timer, execute_wait_for_key, execute_set_delay_timer,
    execute_set_sound_timer, execute_add_to_index, execute_font_character,
    execute_bcd_conversion, execute_store_registers, execute_load_registers
)
from chip8vm.logging import scan_with_progress

INSTRUCTION_HANDLERS = {
    Op.SYS: execute_machine_routine,
    Op.CLS: execute_clear_screen,
    Op.RET: execute_return,
    Op.JP: execute_jump,
    Op.CALL: execute_call,
    Op.SE_IMM: execute_skip_if_equal_immediate,
    Op.SNE_IMM: execute_skip_if_not_equal_immediate,
    Op.SE_REG: execute_skip_if_equal_register,
    Op.LD_IMM: execute_set,
    Op.ADD_IMM: execute_add,
    Op.LD_REG: execute_alu_set,
    Op.OR: execute_alu_or,
    Op.AND: execute_alu_and,
    Op.XOR: execute_alu_xor,
    Op.ADD_REG: execute_alu_add,
    Op.SUB: execute_alu_sub_xy,
    Op.SHR: execute_alu_shift_right,
    Op.SUBN: execute_alu_sub_yx,
    Op.SHL: execute_alu_shift_left,
    Op.SNE_REG: execute_skip_if_not_equal_register,
    Op.LD_I: execute_set_index,
    Op.JP_OFFSET: execute_jump_with_offset,
    Op.RND: execute_random,
    Op.DRW: execute_display,
    Op.SKP: execute_skip_if_key,
    Op.SKNP: execute_skip_if_not_key,
    Op.LD_VX_DT: execute_get_delay_timer,
    Op.LD_VX_K: execute_wait_for_key,
    Op.LD_DT_VX: execute_set_delay_timer,
    Op.LD_ST_VX: execute_set_sound_timer,
    Op.ADD_I: execute_add_to_index,
    Op.LD_F: execute_font_character,
    Op.LD_B: execute_bcd_conversion,
    Op.STORE: execute_store_registers,
    Op.LOAD: execute_load_registers,
    Op.UNKNOWN: execute_unknown,
}

# Indexed by Op; raises KeyError at import if a tag has no handler
HANDLERS = [INSTRUCTION_HANDLERS[op] for op in Op]


def _rollback(before: EmulatorState, after: EmulatorState) -> EmulatorState:
    """Keep ``after`` unless it faulted, in which case only its fault is kept."""
    return jax.lax.cond(
        after.fault == int(Fault.NONE),
        lambda: after,
        lambda: before.replace(fault=after.fault, fault_info=after.fault_info),
    )


def execute(state: EmulatorState, instruction: int) -> EmulatorState:
    """Execute single CHIP-8 instruction.

    A faulting instruction has no effect besides recording its fault.
    """
    decoded_instruction = decode(jnp.astype(instruction, jnp.uint16))
    new_state = jax.lax.switch(decoded_instruction.op, HANDLERS, state, decoded_instruction)
    return _rollback(state, new_state)


def _pack_u16(high: jnp.uint8, low: jnp.uint8) -> jnp.uint16:
    """Pack two bytes into uint16."""
    return (high.astype(jnp.uint16) << 8) | low.astype(jnp.uint16)


def fetch(state: EmulatorState) -> tuple[EmulatorState, jnp.uint16]:
    """Fetch next instruction from memory and advance PC past it."""
    instruction = _pack_u16(state.memory[state.pc], state.memory[state.pc + 1])
    in_range = jnp.astype(state.pc, jnp.int32) + 1 < MEMORY_SIZE
    state = fault_unless(state, in_range, Fault.ADDRESS_OUT_OF_RANGE, state.pc)
    return state.replace(pc=state.pc + 2), instruction


def tick_timers(state: EmulatorState) -> EmulatorState:
    """Decrement delay and sound timers if non-zero."""
    return state.replace(
        delay_timer=jnp.where(state.delay_timer > 0, state.delay_timer - 1, state.delay_timer),
        sound_timer=jnp.where(state.sound_timer > 0, state.sound_timer - 1, state.sound_timer),
    )


def _cycle(state: EmulatorState) -> EmulatorState:
    fetched, instruction = fetch(state)
    executed = tick_timers(execute(fetched, instruction))
    return _rollback(state, executed)


def cycle(state: EmulatorState) -> EmulatorState:
    """Fetch, decode and execute one instruction, then tick the timers.

    A faulted state is halted and returned unchanged. A faulting cycle
    returns the state it started from with the fault recorded.
    """
    return jax.lax.cond(state.fault == int(Fault.NONE), _cycle, lambda s: s, state)


_jitted_cycle = jax.jit(cycle)


def step(state: EmulatorState) -> EmulatorState:
    """Run one cycle and raise the fault it produced, if any."""
    return raise_for_fault(_jitted_cycle(state))


def _cycle_body(state, _):
    return cycle(state), None


@partial(jax.jit, static_argnums=1)
def _run_n_cycles(state: EmulatorState, n: int) -> EmulatorState:
    state, _ = jax.lax.scan(_cycle_body, state, length=n)
    return state


@partial(jax.jit, static_argnums=1)
def _run_n_cycles_with_progress(state: EmulatorState, n: int) -> EmulatorState:
    body = scan_with_progress(n, desc=f"Running {n:,} cycles")(_cycle_body)
    state, _ = jax.lax.scan(body, state, jnp.arange(n))
    return state


def run_cycles(state: EmulatorState, n: int, progress: bool = False) -> EmulatorState:
    """Run ``n`` cycles under jit; stops early on the first fault and raises it."""
    if n <= 0:
        return state
    if progress:
        state = _run_n_cycles_with_progress(state, n)
    else:
        state = _run_n_cycles(state, n)
    return raise_for_fault(state)


def load_rom(state: EmulatorState, filename: str) -> EmulatorState:
    """Load ROM data into CHIP-8 memory starting at 0x200."""
    with open(filename, 'rb') as f:
        rom_data = f.read()
    return load_program(state, rom_data)
