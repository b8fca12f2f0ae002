"""CHIP-8 ALU operations (8xxx).

Each operation maps ``(vx, vy)`` to ``(result, vf)``. ``vf`` is None for
operations that leave the flag register alone. Operands arrive as int32 so
carries and borrows are visible before the result is truncated to 8 bits.
"""

import jax.numpy as jnp
from chip8vm.state import EmulatorState
from chip8vm.decode import DecodedInstruction
from chip8vm.constants import FLAG_REGISTER


def alu_set(vx: int, vy: int) -> tuple[int, int]:
    """8XY0 - Set: VX = VY."""
    return vy, None


def alu_or(vx: int, vy: int) -> tuple[int, int]:
    """8XY1 - Binary OR: VX |= VY."""
    return vx | vy, None


def alu_and(vx: int, vy: int) -> tuple[int, int]:
    """8XY2 - Binary AND: VX &= VY."""
    return vx & vy, None


def alu_xor(vx: int, vy: int) -> tuple[int, int]:
    """8XY3 - Logical XOR: VX ^= VY."""
    return vx ^ vy, None


def alu_add(vx: int, vy: int) -> tuple[int, int]:
    """8XY4 - Add: VX += VY, set carry flag."""
    result = vx + vy
    return result & 0xFF, result > 0xFF


def alu_sub_xy(vx: int, vy: int) -> tuple[int, int]:
    """8XY5 - Subtract: VX -= VY, VF = 1 when no borrow."""
    return (vx - vy) & 0xFF, vx >= vy


def alu_shift_right(vx: int, vy: int) -> tuple[int, int]:
    """8XY6 - Shift right: VX >>= 1, VF = bit shifted out."""
    return vx >> 1, vx & 1


def alu_sub_yx(vx: int, vy: int) -> tuple[int, int]:
    """8XY7 - Subtract: VX = VY - VX, VF = 1 when no borrow."""
    return (vy - vx) & 0xFF, vy >= vx


def alu_shift_left(vx: int, vy: int) -> tuple[int, int]:
    """8XYE - Shift left: VX <<= 1, VF = bit shifted out."""
    return (vx << 1) & 0xFF, (vx >> 7) & 1


def make_alu_instruction(operation, shift: bool = False, logic: bool = False):
    """Factory for 8XYN handlers.

    ``shift`` operations read VY instead of VX under ``shift_uses_vy``;
    ``logic`` operations clear VF under ``logic_resets_vf``. The flag is
    written after the result, so it wins when X is F.
    """
    def alu_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
        vx = jnp.astype(state.V[instruction.x], jnp.int32)
        vy = jnp.astype(state.V[instruction.y], jnp.int32)
        if shift and state.shift_uses_vy:
            vx = vy

        result, vf = operation(vx, vy)
        if logic and state.logic_resets_vf:
            vf = 0

        new_V = state.V.at[instruction.x].set(jnp.astype(result, jnp.uint8))
        if vf is not None:
            new_V = new_V.at[FLAG_REGISTER].set(jnp.astype(vf, jnp.uint8))
        return state.replace(V=new_V)
    return alu_instruction


execute_alu_set = make_alu_instruction(alu_set)
execute_alu_or = make_alu_instruction(alu_or, logic=True)
execute_alu_and = make_alu_instruction(alu_and, logic=True)
execute_alu_xor = make_alu_instruction(alu_xor, logic=True)
execute_alu_add = make_alu_instruction(alu_add)
execute_alu_sub_xy = make_alu_instruction(alu_sub_xy)
execute_alu_shift_right = make_alu_instruction(alu_shift_right, shift=True)
execute_alu_sub_yx = make_alu_instruction(alu_sub_yx)
execute_alu_shift_left = make_alu_instruction(alu_shift_left, shift=True)
