"""CPU state model for the ARM emulator."""

from dataclasses import dataclass
from typing import Optional
from .arith import WORD_MASK
from .memory import Memory, DEFAULT_MEMORY_SIZE


REGISTER_COUNT = 16
LINK_REGISTER = 14
PROGRAM_COUNTER = 15


@dataclass
class StatusFlags:
    """NZCV condition flags."""
    negative: bool = False
    zero: bool = False
    carry: bool = False
    overflow: bool = False


class CPU:
    """Register file, status flags and memory of one machine instance."""

    def __init__(self, memory_size: int = DEFAULT_MEMORY_SIZE, memory: Optional[Memory] = None):
        self.memory = memory if memory is not None else Memory(size=memory_size)
        self.registers: list[int] = [0] * REGISTER_COUNT
        self.status = StatusFlags()
        self.halted: bool = False

    @staticmethod
    def _check_register(register: int) -> None:
        if not 0 <= register < REGISTER_COUNT:
            raise ValueError(f"Invalid register index: {register}")

    def get_register(self, register: int) -> int:
        """Read a register as an instruction operand.

        PC has already been advanced by one instruction when operands are
        read, so one more word is added to give the address + 8 view.
        """
        self._check_register(register)
        value = self.registers[register]
        if register == PROGRAM_COUNTER:
            return (value + 4) & WORD_MASK
        return value

    def set_register(self, register: int, value: int) -> None:
        self._check_register(register)
        self.registers[register] = value & WORD_MASK

    @property
    def program_counter(self) -> int:
        return self.registers[PROGRAM_COUNTER]

    @program_counter.setter
    def program_counter(self, value: int) -> None:
        self.registers[PROGRAM_COUNTER] = value & WORD_MASK

    def set_status(
        self,
        negative: Optional[bool] = None,
        zero: Optional[bool] = None,
        carry: Optional[bool] = None,
        overflow: Optional[bool] = None,
    ) -> None:
        """Update only the flags that are given."""
        if negative is not None:
            self.status.negative = negative
        if zero is not None:
            self.status.zero = zero
        if carry is not None:
            self.status.carry = carry
        if overflow is not None:
            self.status.overflow = overflow

    def load_memory(self, data: bytes, offset: int = 0) -> None:
        self.memory.load(data, offset)

    def read_word(self, addr: int) -> int:
        return self.memory.read_word(addr)

    def is_halted(self) -> bool:
        return self.halted

    def halt(self) -> None:
        self.halted = True

    def debug_get_registers(self) -> str:
        return "".join(f"R{i}: {value:08X}\n" for i, value in enumerate(self.registers))

    def debug_get_status(self) -> str:
        flags = (self.status.negative, self.status.zero, self.status.carry, self.status.overflow)
        return "(NZCV) " + "".join("1" if flag else "0" for flag in flags)

    def get_state(self) -> dict:
        """Get current machine state as dictionary."""
        return {
            "registers": list(self.registers),
            "pc": self.program_counter,
            "flags": {
                "n": self.status.negative,
                "z": self.status.zero,
                "c": self.status.carry,
                "v": self.status.overflow,
            },
            "halted": self.halted,
        }
