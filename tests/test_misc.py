"""Tests for miscellaneous instructions (Fxxx)."""

import jax.numpy as jnp
import pytest
from chip8vm import execute, set_key, Fault, FONT_START
from conftest import set_registers, setup_memory


class TestTimers:
    """Test timer-related instructions."""

    def test_misc_timer_instructions(self, fresh_state):
        """Test timer set and get operations."""
        state = execute(fresh_state, 0x6030)  # V0 = 48
        state = execute(state, 0xF015)  # Set delay timer to V0
        assert state.delay_timer == 48

        state = execute(state, 0x6120)  # V1 = 32
        state = execute(state, 0xF118)  # Set sound timer to V1
        assert state.sound_timer == 32

        state = execute(state, 0xF207)  # V2 = delay timer
        assert state.V[2] == 48

    def test_execute_does_not_tick_timers(self, fresh_state):
        """Timers only tick once per cycle, not per execute call."""
        state = fresh_state.replace(delay_timer=jnp.asarray(5, dtype=jnp.uint8))
        state = execute(state, 0x6000)
        assert state.delay_timer == 5


class TestBCD:
    """Test BCD conversion."""

    def test_misc_bcd_conversion(self, fresh_state):
        """Test BCD conversion with 156."""
        state = execute(fresh_state, 0x609C)  # V0 = 156
        state = execute(state, 0xA300)  # I = 0x300
        state = execute(state, 0xF033)

        assert state.memory[0x300] == 1  # Hundreds
        assert state.memory[0x301] == 5  # Tens
        assert state.memory[0x302] == 6  # Ones
        assert state.I == 0x300

    @pytest.mark.parametrize("value, digits", [(0, (0, 0, 0)), (7, (0, 0, 7)), (42, (0, 4, 2)), (255, (2, 5, 5))])
    def test_bcd_edge_cases(self, fresh_state, value, digits):
        state = set_registers(fresh_state, V0=value)
        state = execute(state, 0xA400)
        state = execute(state, 0xF033)

        assert tuple(int(d) for d in state.memory[0x400:0x403]) == digits

    def test_bcd_past_memory_end(self, fresh_state):
        """Writing BCD digits beyond 0xFFF is reported and writes nothing."""
        state = set_registers(fresh_state, V0=123)
        state = execute(state, 0xAFFE)
        before = state.memory

        state = execute(state, 0xF033)

        assert int(state.fault) == Fault.ADDRESS_OUT_OF_RANGE
        assert state.fault_info == 0x1000
        assert (state.memory == before).all()

    def test_bcd_into_font_table(self, fresh_state):
        """The font table cannot be overwritten."""
        state = set_registers(fresh_state, V0=123)
        state = execute(state, 0xA000 | (FONT_START - 1))

        state = execute(state, 0xF033)

        assert int(state.fault) == Fault.PROTECTED_WRITE
        assert state.fault_info == FONT_START - 1
        assert state.memory[FONT_START] == 0xF0


class TestFont:
    """Test font character addressing."""

    def test_misc_font_character(self, fresh_state):
        state = execute(fresh_state, 0x600A)  # V0 = 0xA
        state = execute(state, 0xF029)  # I = font address for A

        assert state.I == 0x50 + (0xA * 5)

    def test_font_all_characters(self, fresh_state):
        state = fresh_state

        for digit in range(16):
            state = execute(state, 0x6000 | digit)
            state = execute(state, 0xF029)

            expected = 0x50 + (digit * 5)
            assert state.I == expected, f"Font address wrong for digit {digit:X}"

    def test_font_uses_low_nibble(self, fresh_state):
        state = set_registers(fresh_state, V3=0x1B)
        state = execute(state, 0xF329)
        assert state.I == 0x50 + 0xB * 5

    def test_font_table_loaded(self, fresh_state):
        """Glyph "F" starts with a full row."""
        assert state_bytes(fresh_state, 0x50 + 0xF * 5, 5) == [0xF0, 0x80, 0xF0, 0x80, 0x80]


def state_bytes(state, address, count):
    return [int(b) for b in state.memory[address:address + count]]


class TestMemoryOperations:
    """Test store/load register operations."""

    def test_store_load_default(self, fresh_state):
        """Store/load leave I unchanged by default."""
        state = execute(fresh_state, 0x6001)  # V0 = 1
        state = execute(state, 0x6102)  # V1 = 2
        state = execute(state, 0x6203)  # V2 = 3
        state = execute(state, 0xA300)  # I = 0x300

        state = execute(state, 0xF255)  # Store V0-V2
        assert state.I == 0x300
        assert state_bytes(state, 0x300, 4) == [1, 2, 3, 0]

        state = execute(state, 0x6000)
        state = execute(state, 0x6100)
        state = execute(state, 0x6200)

        state = execute(state, 0xF265)  # Load V0-V2
        assert state.V[0] == 1
        assert state.V[1] == 2
        assert state.V[2] == 3
        assert state.I == 0x300

    def test_store_load_increment_quirk(self, legacy_state):
        """Store/load advance I by X + 1 with the COSMAC quirk."""
        state = execute(legacy_state, 0x6001)  # V0 = 1
        state = execute(state, 0x6102)  # V1 = 2
        state = execute(state, 0xA400)  # I = 0x400

        state = execute(state, 0xF155)  # Store V0-V1
        assert state.I == 0x400 + 2

        state = execute(state, 0xA400)
        state = execute(state, 0x6000)
        state = execute(state, 0x6100)

        state = execute(state, 0xF165)  # Load V0-V1
        assert state.V[0] == 1
        assert state.V[1] == 2
        assert state.I == 0x400 + 2

    def test_store_inclusive_range(self, fresh_state):
        """FX55 stores V0 through VX inclusive and nothing else."""
        state = set_registers(fresh_state, V0=0x11, V1=0x22, V2=0x33, V3=0x44)
        state = execute(state, 0xA600)
        state = execute(state, 0xF255)
        assert state_bytes(state, 0x600, 4) == [0x11, 0x22, 0x33, 0x00]

    def test_load_inclusive_range(self, fresh_state):
        state = setup_memory(fresh_state, 0x600, [9, 8, 7, 6])
        state = execute(state, 0xA600)
        state = execute(state, 0xF265)
        assert [int(v) for v in state.V[:4]] == [9, 8, 7, 0]

    def test_store_all_registers_at_memory_end(self, fresh_state):
        state = set_registers(fresh_state, VF=0xEE)
        state = execute(state, 0xAFF0)
        state = execute(state, 0xFF55)
        assert int(state.fault) == Fault.NONE
        assert state.memory[0xFFF] == 0xEE

    def test_store_past_memory_end(self, fresh_state):
        state = execute(fresh_state, 0xAFF8)
        state = execute(state, 0xF855)  # needs 0xFF8..0x1000
        assert int(state.fault) == Fault.ADDRESS_OUT_OF_RANGE
        assert state.fault_info == 0x1000

    def test_load_past_memory_end(self, fresh_state):
        state = execute(fresh_state, 0xAFFF)
        state = execute(state, 0xF165)
        assert int(state.fault) == Fault.ADDRESS_OUT_OF_RANGE
        assert (state.V == 0).all()

    def test_store_into_font_table(self, fresh_state):
        state = execute(fresh_state, 0xA000 | FONT_START)
        state = execute(state, 0xF055)
        assert int(state.fault) == Fault.PROTECTED_WRITE
        assert state.memory[FONT_START] == 0xF0

    def test_load_from_font_table_is_allowed(self, fresh_state):
        state = execute(fresh_state, 0xA000 | FONT_START)
        state = execute(state, 0xF065)
        assert int(state.fault) == Fault.NONE
        assert state.V[0] == 0xF0


class TestWaitForKey:
    """Test FX0A."""

    def test_wait_for_key_blocking(self, fresh_state):
        """No key pressed rewinds PC so the instruction repeats."""
        initial_pc = fresh_state.pc

        state = execute(fresh_state, 0xF00A)

        assert state.pc == initial_pc - 2

    def test_wait_for_key_press(self, fresh_state):
        state = set_key(fresh_state, 7)
        initial_pc = state.pc

        state = execute(state, 0xF30A)

        assert state.V[3] == 7
        assert state.pc == initial_pc

    def test_wait_for_key_lowest_wins(self, fresh_state):
        state = set_key(set_key(set_key(fresh_state, 0xC), 0x4), 0x9)

        state = execute(state, 0xF20A)

        assert state.V[2] == 4


class TestIndexArithmetic:

    def test_add_to_index(self, fresh_state):
        """FX1E - Add VX to I register."""
        state = execute(fresh_state, 0x6010)  # V0 = 0x10
        state = execute(state, 0xA300)  # I = 0x300
        state = execute(state, 0xF01E)  # I += V0

        assert state.I == 0x310
        assert state.V[15] == 0

    def test_add_to_index_beyond_12_bits(self, fresh_state):
        """FX1E keeps the full 16-bit sum and leaves VF alone."""
        state = execute(fresh_state, 0x60FF)  # V0 = 0xFF
        state = execute(state, 0xAF80)  # I = 0xF80
        state = execute(state, 0xF01E)

        assert state.I == 0x107F
        assert state.V[15] == 0


@pytest.mark.parametrize("instruction", [0xF000, 0xF008, 0xF0FF, 0xF066, 0xF130])
def test_unknown_misc_opcodes(fresh_state, instruction):
    state = execute(fresh_state, instruction)
    assert int(state.fault) == Fault.UNKNOWN_OPCODE
    assert state.fault_info == instruction
