"""Custom exceptions for the ARM emulator."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ErrorInfo:
    """Structured error information for API responses."""
    type: str
    message: str
    step: int
    addr: int
    word: Optional[int] = None
    instruction_text: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "message": self.message,
            "step": self.step,
            "addr": self.addr,
            "word": self.word,
            "instruction_text": self.instruction_text,
        }


class EmulatorError(Exception):
    """Base exception for all emulator errors."""

    def __init__(
        self,
        message: str,
        step: int = 0,
        addr: int = 0,
        word: Optional[int] = None,
        instruction_text: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.step = step
        self.addr = addr
        self.word = word
        self.instruction_text = instruction_text

    def to_error_info(self) -> ErrorInfo:
        return ErrorInfo(
            type=self.__class__.__name__,
            message=self.message,
            step=self.step,
            addr=self.addr,
            word=self.word,
            instruction_text=self.instruction_text,
        )


class DecodeError(EmulatorError):
    """Instruction word does not match any supported encoding."""
    pass


class EmulatorRuntimeError(EmulatorError):
    """Error during program execution."""
    pass


class UnimplementedInstruction(EmulatorRuntimeError):
    """Decoded instruction that the executor does not support."""

    def __init__(self, message: str, instruction=None, **kwargs):
        super().__init__(message, **kwargs)
        self.instruction = instruction


class MemoryAccessFault(EmulatorRuntimeError):
    """Memory address out of bounds."""

    def __init__(self, message: str, fault_address: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.fault_address = fault_address


class UnsupportedSyscall(EmulatorRuntimeError):
    """Unknown system call number or file descriptor."""
    pass


class StepLimitExceeded(EmulatorRuntimeError):
    """Maximum step count exceeded."""
    pass
