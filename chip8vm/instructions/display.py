"""CHIP-8 display operations."""

import jax.numpy as jnp
from chip8vm.state import EmulatorState
from chip8vm.decode import DecodedInstruction
from chip8vm.constants import SCREEN_WIDTH, SCREEN_HEIGHT, MEMORY_SIZE, MAX_SPRITE_HEIGHT, FLAG_REGISTER
from chip8vm.errors import Fault, fault_unless

# Offsets of every pixel a sprite can cover
sprite_rows = jnp.arange(MAX_SPRITE_HEIGHT)
sprite_cols = jnp.arange(8)


def execute_display(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """DXYN - Draw N-byte sprite from memory at I at (VX, VY).

    Pixels wrap around both screen edges. VF is set when any lit pixel is
    turned off.
    """
    origin_col = jnp.astype(state.V[instruction.x], jnp.int32) % SCREEN_WIDTH
    origin_row = jnp.astype(state.V[instruction.y], jnp.int32) % SCREEN_HEIGHT

    addresses = jnp.astype(state.I, jnp.int32) + sprite_rows
    sprite_bytes = jnp.astype(state.memory[addresses], jnp.int32)
    bits = (sprite_bytes[:, None] >> (7 - sprite_cols[None, :])) & 1
    bits = (bits == 1) & (sprite_rows < instruction.n)[:, None]

    rows = (origin_row + sprite_rows) % SCREEN_HEIGHT
    cols = (origin_col + sprite_cols) % SCREEN_WIDTH
    sprite = jnp.zeros_like(state.display).at[rows[:, None], cols[None, :]].set(bits)

    state = state.replace(
        display=state.display ^ sprite,
        V=state.V.at[FLAG_REGISTER].set(jnp.astype(jnp.any(state.display & sprite), jnp.uint8))
    )
    last_address = jnp.astype(state.I, jnp.int32) + instruction.n - 1
    in_range = (instruction.n == 0) | (last_address < MEMORY_SIZE)
    return fault_unless(state, in_range, Fault.ADDRESS_OUT_OF_RANGE, last_address)
