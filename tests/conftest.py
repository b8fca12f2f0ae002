"""Test configuration and fixtures for CHIP-8 virtual machine tests."""

import pytest
import jax.numpy as jnp
from chip8vm import create_state, load_program


@pytest.fixture
def fresh_state():
    """Provide a fresh emulator state for each test."""
    return create_state()


@pytest.fixture
def legacy_state():
    """Provide a fresh state with the original COSMAC VIP quirks."""
    return create_state(shift_uses_vy=True, increment_index=True, logic_resets_vf=True)


def setup_memory(state, address, data):
    """Helper to put bytes (e.g. sprite data) in memory."""
    return state.replace(
        memory=state.memory.at[address:address+len(data)].set(
            jnp.array(data, dtype=jnp.uint8)
        )
    )


def set_registers(state, **registers):
    """Helper to set registers by name, e.g. ``set_registers(state, V1=3, VF=1)``."""
    V = state.V
    for name, value in registers.items():
        V = V.at[int(name[1:], 16)].set(value)
    return state.replace(V=V)


def assemble(*words):
    """Encode 16-bit instruction words as a big-endian program image."""
    return b"".join(word.to_bytes(2, "big") for word in words)


def load_words(state, *words):
    """Load a program made of 16-bit instruction words at 0x200."""
    return load_program(state, assemble(*words))
