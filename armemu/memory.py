"""Memory model for the ARM emulator."""

from typing import Optional
from .errors import MemoryAccessFault


DEFAULT_MEMORY_SIZE = 0x10000


class Memory:
    """Flat little-endian byte memory with bounds-checked accessors."""

    def __init__(
        self,
        size: int = DEFAULT_MEMORY_SIZE,
        initial_values: Optional[dict[int, int]] = None,
    ):
        if size <= 0:
            raise ValueError(f"Memory size must be positive: {size}")
        self.size = size
        self._data = bytearray(size)

        # Initialize with provided word values
        if initial_values:
            for addr, val in initial_values.items():
                self.write_word(addr, val)

    def _check_bounds(self, addr: int, width: int) -> None:
        """Check that [addr, addr + width) lies inside memory."""
        if addr < 0 or addr + width > self.size:
            raise MemoryAccessFault(
                f"Memory address out of range: {addr:#010x} (width {width}, size {self.size:#x})",
                fault_address=addr,
            )

    def _read(self, addr: int, width: int) -> int:
        self._check_bounds(addr, width)
        return int.from_bytes(self._data[addr:addr + width], "little")

    def _write(self, addr: int, width: int, value: int) -> None:
        self._check_bounds(addr, width)
        mask = (1 << (width * 8)) - 1
        self._data[addr:addr + width] = (value & mask).to_bytes(width, "little")

    def read_byte(self, addr: int) -> int:
        return self._read(addr, 1)

    def read_half_word(self, addr: int) -> int:
        return self._read(addr, 2)

    def read_word(self, addr: int) -> int:
        return self._read(addr, 4)

    def write_byte(self, addr: int, value: int) -> None:
        self._write(addr, 1, value)

    def write_half_word(self, addr: int, value: int) -> None:
        self._write(addr, 2, value)

    def write_word(self, addr: int, value: int) -> None:
        self._write(addr, 4, value)

    def load(self, data: bytes, offset: int = 0) -> None:
        """Copy a block of bytes into memory starting at offset."""
        self._check_bounds(offset, len(data))
        self._data[offset:offset + len(data)] = data

    def read_string(self, addr: int) -> bytes:
        """Read bytes from addr up to (not including) the next NUL byte."""
        self._check_bounds(addr, 1)
        end = self._data.find(0, addr)
        if end == -1:
            raise MemoryAccessFault(
                f"Unterminated string at {addr:#010x}",
                fault_address=self.size,
            )
        return bytes(self._data[addr:end])

    def get_watched(self, addresses: list[int]) -> dict[str, int]:
        """Get words at watched addresses as hex-string-keyed dict."""
        result = {}
        for addr in addresses:
            if 0 <= addr and addr + 4 <= self.size:
                result[f"{addr:#010x}"] = self.read_word(addr)
        return result
