"""CHIP-8 instruction decoding.

Decoding is two-level. The top nibble selects an instruction family through
``PRIMARY_TABLE``; families 0x0, 0x8, 0xE and 0xF share their primary nibble
between several instructions and are resolved by a second lookup. Words with
no registered instruction decode to ``Op.UNKNOWN``.
"""

import enum

import jax.numpy as jnp
import numpy as np
from chex import dataclass


class Op(enum.IntEnum):
    """Instruction tags, in dispatch order."""
    SYS = 0          # 0NNN
    CLS = 1          # 00E0
    RET = 2          # 00EE
    JP = 3           # 1NNN
    CALL = 4         # 2NNN
    SE_IMM = 5       # 3XNN
    SNE_IMM = 6      # 4XNN
    SE_REG = 7       # 5XY0
    LD_IMM = 8       # 6XNN
    ADD_IMM = 9      # 7XNN
    LD_REG = 10      # 8XY0
    OR = 11          # 8XY1
    AND = 12         # 8XY2
    XOR = 13         # 8XY3
    ADD_REG = 14     # 8XY4
    SUB = 15         # 8XY5
    SHR = 16         # 8XY6
    SUBN = 17        # 8XY7
    SHL = 18         # 8XYE
    SNE_REG = 19     # 9XY0
    LD_I = 20        # ANNN
    JP_OFFSET = 21   # BNNN
    RND = 22         # CXNN
    DRW = 23         # DXYN
    SKP = 24         # EX9E
    SKNP = 25        # EXA1
    LD_VX_DT = 26    # FX07
    LD_VX_K = 27     # FX0A
    LD_DT_VX = 28    # FX15
    LD_ST_VX = 29    # FX18
    ADD_I = 30       # FX1E
    LD_F = 31        # FX29
    LD_B = 32        # FX33
    STORE = 33       # FX55
    LOAD = 34        # FX65
    UNKNOWN = 35


def _lookup_table(size: int, entries: dict) -> jnp.ndarray:
    table = np.full(size, int(Op.UNKNOWN), dtype=np.int32)
    for key, op in entries.items():
        table[key] = int(op)
    return jnp.asarray(table)


PRIMARY_TABLE = _lookup_table(16, {
    0x1: Op.JP,
    0x2: Op.CALL,
    0x3: Op.SE_IMM,
    0x4: Op.SNE_IMM,
    0x5: Op.SE_REG,
    0x6: Op.LD_IMM,
    0x7: Op.ADD_IMM,
    0x9: Op.SNE_REG,
    0xA: Op.LD_I,
    0xB: Op.JP_OFFSET,
    0xC: Op.RND,
    0xD: Op.DRW,
})

# Keyed on the low nibble
ALU_TABLE = _lookup_table(16, {
    0x0: Op.LD_REG,
    0x1: Op.OR,
    0x2: Op.AND,
    0x3: Op.XOR,
    0x4: Op.ADD_REG,
    0x5: Op.SUB,
    0x6: Op.SHR,
    0x7: Op.SUBN,
    0xE: Op.SHL,
})

# Keyed on the low byte
KEY_TABLE = _lookup_table(256, {
    0x9E: Op.SKP,
    0xA1: Op.SKNP,
})

MISC_TABLE = _lookup_table(256, {
    0x07: Op.LD_VX_DT,
    0x0A: Op.LD_VX_K,
    0x15: Op.LD_DT_VX,
    0x18: Op.LD_ST_VX,
    0x1E: Op.ADD_I,
    0x29: Op.LD_F,
    0x33: Op.LD_B,
    0x55: Op.STORE,
    0x65: Op.LOAD,
})


@dataclass(frozen=True)
class DecodedInstruction:
    """Decoded CHIP-8 instruction with extracted operands."""
    raw: int
    op: int      # Op tag
    opcode: int  # First nibble
    x: int       # Second nibble (VX register)
    y: int       # Third nibble (VY register)
    n: int       # Fourth nibble (4-bit immediate)
    nn: int      # Last byte (8-bit immediate)
    nnn: int     # Last 12 bits (12-bit address)


def decode(instruction: int) -> DecodedInstruction:
    """Decode 16-bit instruction into its tag and components. Traceable."""
    opcode = (instruction & 0xF000) >> 12
    n = instruction & 0x000F
    nn = instruction & 0x00FF

    system_op = jnp.where(
        instruction == 0x00E0, int(Op.CLS),
        jnp.where(instruction == 0x00EE, int(Op.RET), int(Op.SYS)),
    )
    op = PRIMARY_TABLE[opcode]
    op = jnp.where(opcode == 0x0, system_op, op)
    op = jnp.where(opcode == 0x8, ALU_TABLE[n], op)
    op = jnp.where(opcode == 0xE, KEY_TABLE[nn], op)
    op = jnp.where(opcode == 0xF, MISC_TABLE[nn], op)
    # 5XY0 and 9XY0 reserve their low nibble
    op = jnp.where(((opcode == 0x5) | (opcode == 0x9)) & (n != 0), int(Op.UNKNOWN), op)

    return DecodedInstruction(
        raw=instruction,
        op=op,
        opcode=opcode,
        x=(instruction & 0x0F00) >> 8,
        y=(instruction & 0x00F0) >> 4,
        n=n,
        nn=nn,
        nnn=instruction & 0x0FFF
    )


_MNEMONICS = {
    Op.SYS: "SYS {nnn:#05x}",
    Op.CLS: "CLS",
    Op.RET: "RET",
    Op.JP: "JP {nnn:#05x}",
    Op.CALL: "CALL {nnn:#05x}",
    Op.SE_IMM: "SE V{x:X}, {nn:#04x}",
    Op.SNE_IMM: "SNE V{x:X}, {nn:#04x}",
    Op.SE_REG: "SE V{x:X}, V{y:X}",
    Op.LD_IMM: "LD V{x:X}, {nn:#04x}",
    Op.ADD_IMM: "ADD V{x:X}, {nn:#04x}",
    Op.LD_REG: "LD V{x:X}, V{y:X}",
    Op.OR: "OR V{x:X}, V{y:X}",
    Op.AND: "AND V{x:X}, V{y:X}",
    Op.XOR: "XOR V{x:X}, V{y:X}",
    Op.ADD_REG: "ADD V{x:X}, V{y:X}",
    Op.SUB: "SUB V{x:X}, V{y:X}",
    Op.SHR: "SHR V{x:X}, V{y:X}",
    Op.SUBN: "SUBN V{x:X}, V{y:X}",
    Op.SHL: "SHL V{x:X}, V{y:X}",
    Op.SNE_REG: "SNE V{x:X}, V{y:X}",
    Op.LD_I: "LD I, {nnn:#05x}",
    Op.JP_OFFSET: "JP V0, {nnn:#05x}",
    Op.RND: "RND V{x:X}, {nn:#04x}",
    Op.DRW: "DRW V{x:X}, V{y:X}, {n}",
    Op.SKP: "SKP V{x:X}",
    Op.SKNP: "SKNP V{x:X}",
    Op.LD_VX_DT: "LD V{x:X}, DT",
    Op.LD_VX_K: "LD V{x:X}, K",
    Op.LD_DT_VX: "LD DT, V{x:X}",
    Op.LD_ST_VX: "LD ST, V{x:X}",
    Op.ADD_I: "ADD I, V{x:X}",
    Op.LD_F: "LD F, V{x:X}",
    Op.LD_B: "LD B, V{x:X}",
    Op.STORE: "LD [I], V{x:X}",
    Op.LOAD: "LD V{x:X}, [I]",
    Op.UNKNOWN: "DATA {raw:#06x}",
}


def disassemble(instruction: int) -> str:
    """Render a 16-bit word as an assembly mnemonic."""
    decoded = decode(int(instruction))
    fields = {name: int(getattr(decoded, name)) for name in ("raw", "x", "y", "n", "nn", "nnn")}
    return _MNEMONICS[Op(int(decoded.op))].format(**fields)
