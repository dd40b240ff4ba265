"""Tests for the Memory module."""

import pytest
from armemu.memory import Memory
from armemu.errors import MemoryAccessFault


class TestMemory:
    """Memory module tests."""

    def test_default_initialization(self):
        """Memory initializes with zeros."""
        mem = Memory(size=16)
        for i in range(0, 16, 4):
            assert mem.read_word(i) == 0
        assert mem.size == 16

    def test_default_size(self):
        """Default memory is 64 KiB."""
        assert Memory().size == 0x10000

    def test_write_and_read_word(self):
        """Can write and read back words."""
        mem = Memory(size=16)
        mem.write_word(4, 0xDEADBEEF)
        assert mem.read_word(4) == 0xDEADBEEF

    def test_little_endian(self):
        """Words are stored least significant byte first."""
        mem = Memory(size=16)
        mem.write_word(0, 0x11223344)
        assert [mem.read_byte(i) for i in range(4)] == [0x44, 0x33, 0x22, 0x11]
        assert mem.read_half_word(0) == 0x3344
        assert mem.read_half_word(2) == 0x1122

    def test_byte_write_preserves_neighbours(self):
        """Storing a byte leaves the other bytes of the word alone."""
        mem = Memory(size=16)
        mem.write_word(0, 0xAABBCCDD)
        mem.write_byte(0, 0x11)
        assert mem.read_word(0) == 0xAABBCC11

    def test_half_word_write_preserves_neighbours(self):
        """Storing a half word leaves the other half alone."""
        mem = Memory(size=16)
        mem.write_word(0, 0xAABBCCDD)
        mem.write_half_word(2, 0x1234)
        assert mem.read_word(0) == 0x1234CCDD

    def test_values_truncated_to_width(self):
        """Written values are truncated to the access width."""
        mem = Memory(size=16)
        mem.write_byte(0, 0x1FF)
        mem.write_half_word(2, 0x12345)
        assert mem.read_byte(0) == 0xFF
        assert mem.read_half_word(2) == 0x2345

    def test_unaligned_word(self):
        """Word accesses need not be aligned."""
        mem = Memory(size=16)
        mem.write_word(1, 0xCAFEBABE)
        assert mem.read_word(1) == 0xCAFEBABE

    def test_bounds_check_read(self):
        """Reading out of bounds raises error."""
        mem = Memory(size=16)
        with pytest.raises(MemoryAccessFault):
            mem.read_word(16)
        with pytest.raises(MemoryAccessFault):
            mem.read_word(13)
        with pytest.raises(MemoryAccessFault):
            mem.read_byte(-1)
        with pytest.raises(MemoryAccessFault):
            mem.read_half_word(0xFFFFFFFF)

    def test_bounds_check_write(self):
        """Writing out of bounds raises error."""
        mem = Memory(size=16)
        with pytest.raises(MemoryAccessFault):
            mem.write_word(14, 0)
        with pytest.raises(MemoryAccessFault):
            mem.write_byte(16, 0)

    def test_fault_address(self):
        """Fault carries the offending address."""
        mem = Memory(size=16)
        with pytest.raises(MemoryAccessFault) as excinfo:
            mem.read_word(0x100)
        assert excinfo.value.fault_address == 0x100

    def test_last_word_accessible(self):
        """The final word of memory is in range."""
        mem = Memory(size=16)
        mem.write_word(12, 1)
        assert mem.read_word(12) == 1

    def test_load(self):
        """Blocks of bytes can be loaded at an offset."""
        mem = Memory(size=16)
        mem.load(b"\x01\x02\x03\x04", offset=4)
        assert mem.read_word(4) == 0x04030201
        with pytest.raises(MemoryAccessFault):
            mem.load(b"\x00" * 17)

    def test_read_string(self):
        """Strings are read up to the NUL terminator."""
        mem = Memory(size=16)
        mem.load(b"Hello\x00World")
        assert mem.read_string(0) == b"Hello"
        assert mem.read_string(6) == b"World"

    def test_read_string_unterminated(self):
        """A string running off the end of memory is a fault."""
        mem = Memory(size=4)
        mem.load(b"abcd")
        with pytest.raises(MemoryAccessFault):
            mem.read_string(0)

    def test_initial_values(self):
        """Memory can be initialized with word values."""
        mem = Memory(size=32, initial_values={8: 10, 12: 0xFFFFFFFF})
        assert mem.read_word(8) == 10
        assert mem.read_word(12) == 0xFFFFFFFF
        assert mem.read_word(4) == 0

    def test_get_watched(self):
        """Get watched words as dict keyed by hex address."""
        mem = Memory(size=32, initial_values={8: 10})
        watched = mem.get_watched([8, 12, 64])
        assert watched == {"0x00000008": 10, "0x0000000c": 0}

    def test_invalid_size(self):
        """Memory size must be positive."""
        with pytest.raises(ValueError):
            Memory(size=0)
