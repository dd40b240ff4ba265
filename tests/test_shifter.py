"""Tests for the barrel shifter."""

import pytest
from armemu.cpu import CPU
from armemu.decoder import decode
from armemu.disasm import format_instruction
from armemu.executor import (
    apply_shift_operand,
    arithmetic_shift_right,
    execute,
    logical_shift_left,
    logical_shift_right,
    rotate_right_extended,
    rotate_right_with_carry,
    shift_value,
)
from armemu.instruction import ImmediateShift, RegisterShift, ShiftType


class TestLogicalShiftLeft:
    def test_zero_keeps_carry(self):
        assert logical_shift_left(0x80000001, 0, True) == (0x80000001, True)
        assert logical_shift_left(0x80000001, 0, False) == (0x80000001, False)

    def test_small_amount(self):
        assert logical_shift_left(0x00000003, 4, False) == (0x30, False)

    def test_carry_is_last_bit_out(self):
        assert logical_shift_left(0x80000000, 1, False) == (0, True)
        assert logical_shift_left(0x40000000, 1, True) == (0x80000000, False)

    def test_by_32(self):
        assert logical_shift_left(0x00000001, 32, False) == (0, True)
        assert logical_shift_left(0x00000002, 32, True) == (0, False)

    def test_beyond_32(self):
        assert logical_shift_left(0xFFFFFFFF, 33, True) == (0, False)


class TestLogicalShiftRight:
    def test_small_amount(self):
        assert logical_shift_right(0x000000F0, 4, False) == (0x0F, False)

    def test_carry_is_last_bit_out(self):
        assert logical_shift_right(0x00000008, 4, False) == (0, True)

    def test_by_32(self):
        assert logical_shift_right(0x80000000, 32, False) == (0, True)
        assert logical_shift_right(0x7FFFFFFF, 32, True) == (0, False)

    def test_beyond_32(self):
        assert logical_shift_right(0xFFFFFFFF, 40, True) == (0, False)


class TestArithmeticShiftRight:
    def test_positive(self):
        assert arithmetic_shift_right(0x00000010, 4, False) == (0x1, False)

    def test_negative_fills_with_ones(self):
        assert arithmetic_shift_right(0x80000000, 4, False) == (0xF8000000, False)

    def test_carry(self):
        assert arithmetic_shift_right(0x00000003, 1, False) == (0x1, True)

    @pytest.mark.parametrize("amount", [32, 33, 255])
    def test_large_amount(self, amount):
        assert arithmetic_shift_right(0x80000000, amount, False) == (0xFFFFFFFF, True)
        assert arithmetic_shift_right(0x7FFFFFFF, amount, True) == (0, False)


class TestRotateRight:
    def test_rotate(self):
        assert rotate_right_with_carry(0x000000FF, 8, False) == (0xFF000000, True)

    def test_carry_is_result_sign(self):
        assert rotate_right_with_carry(0x00000100, 8, True) == (0x1, False)

    def test_zero_keeps_carry(self):
        assert rotate_right_with_carry(0x12345678, 0, True) == (0x12345678, True)

    @pytest.mark.parametrize("amount", [32, 64])
    def test_multiple_of_32(self, amount):
        assert rotate_right_with_carry(0x80000001, amount, False) == (0x80000001, True)


class TestRotateRightExtended:
    """ROR #0 on a data-processing operand rotates through the carry."""

    def test_carry_shifted_in(self):
        assert rotate_right_extended(0x00000001, True) == (0x80000000, True)

    def test_carry_clear(self):
        assert rotate_right_extended(0x80000002, False) == (0x40000001, False)

    def test_immediate_ror_zero_is_rrx(self):
        cpu = CPU()
        cpu.set_register(1, 0x00000001)
        cpu.set_status(carry=True)
        result = apply_shift_operand(cpu, 1, ShiftType.ROTATE_RIGHT, ImmediateShift(0))
        assert result == (0x80000000, True)

    def test_movs_rrx(self):
        """MOVS r0, r1, RRX"""
        cpu = CPU()
        cpu.set_register(1, 0x00000001)
        cpu.set_status(carry=True)
        execute(cpu, decode(0xE1B00061))
        assert cpu.registers[0] == 0x80000000
        assert cpu.status.carry is True
        assert cpu.status.negative is True

    def test_register_ror_zero_is_not_rrx(self):
        """ROR by a register holding 0 leaves value and carry alone."""
        cpu = CPU()
        cpu.set_register(1, 0x00000001)
        cpu.set_register(2, 0)
        result = apply_shift_operand(cpu, 1, ShiftType.ROTATE_RIGHT, RegisterShift(2))
        assert result == (0x00000001, False)

    def test_load_offset_ror_zero_means_32(self):
        """LDR r0, [r1, r2, ROR #32] adds r2 unchanged."""
        cpu = CPU()
        cpu.memory.write_word(0x104, 0xCAFE)
        cpu.set_register(1, 0x100)
        cpu.set_register(2, 4)
        cpu.set_status(carry=True)
        execute(cpu, decode(0xE7910062))
        assert cpu.registers[0] == 0xCAFE

    def test_disassembly(self):
        assert format_instruction(decode(0xE1B00061)) == "MOVS r0, r1, rrx"


class TestShiftOperand:
    """Shift amounts taken from the instruction or a register."""

    def test_shift_value_masks_input(self):
        assert shift_value(0x1FFFFFFFF, ShiftType.LOGICAL_LEFT, 0, False) == (0xFFFFFFFF, False)

    def test_immediate_zero_lsr_means_32(self):
        cpu = CPU()
        cpu.set_register(1, 0x80000000)
        assert apply_shift_operand(cpu, 1, ShiftType.LOGICAL_RIGHT, ImmediateShift(0)) == (0, True)

    def test_immediate_zero_asr_means_32(self):
        cpu = CPU()
        cpu.set_register(1, 0x80000000)
        result = apply_shift_operand(cpu, 1, ShiftType.ARITHMETIC_RIGHT, ImmediateShift(0))
        assert result == (0xFFFFFFFF, True)

    def test_immediate_zero_lsl_is_identity(self):
        cpu = CPU()
        cpu.set_register(1, 0x1234)
        cpu.set_status(carry=True)
        assert apply_shift_operand(cpu, 1, ShiftType.LOGICAL_LEFT, ImmediateShift(0)) == (0x1234, True)

    def test_register_amount_uses_low_byte(self):
        cpu = CPU()
        cpu.set_register(1, 0x1)
        cpu.set_register(2, 0x104)
        assert apply_shift_operand(cpu, 1, ShiftType.LOGICAL_LEFT, RegisterShift(2)) == (0x10, False)

    @pytest.mark.parametrize("shift_type", list(ShiftType))
    def test_register_amount_zero_keeps_value_and_carry(self, shift_type):
        cpu = CPU()
        cpu.set_register(1, 0x80000001)
        cpu.set_register(2, 0x100)
        cpu.set_status(carry=True)
        result = apply_shift_operand(cpu, 1, shift_type, RegisterShift(2))
        assert result == (0x80000001, True)
