"""CHIP-8 stack operations.

Both operations return a validity flag alongside the result; when it is
False the returned stack is unchanged.
"""

import jax.numpy as jnp
from chip8vm.constants import STACK_SIZE
from chip8vm.state import StackState


def push(stack: StackState, address: jnp.ndarray) -> tuple[StackState, jnp.ndarray]:
    """Push address onto stack. Invalid when all slots are in use."""
    ok = stack.pointer < STACK_SIZE
    new_data = jnp.where(ok, stack.data.at[stack.pointer].set(jnp.astype(address, jnp.uint16)), stack.data)
    new_pointer = jnp.where(ok, stack.pointer + 1, stack.pointer)
    return stack.replace(data=new_data, pointer=new_pointer), ok


def pop(stack: StackState) -> tuple[StackState, jnp.ndarray, jnp.ndarray]:
    """Pop address from stack. Invalid when the stack is empty."""
    ok = stack.pointer > 0
    new_pointer = jnp.where(ok, stack.pointer - 1, stack.pointer)
    popped_address = stack.data[new_pointer]
    new_data = jnp.where(ok, stack.data.at[new_pointer].set(0), stack.data)
    return stack.replace(data=new_data, pointer=new_pointer), popped_address, ok
