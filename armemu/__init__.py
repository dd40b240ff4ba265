"""ARM Emulator Core Package."""

from .runner import run_program, RunOptions, RunResult
from .cpu import CPU
from .decoder import decode
from .executor import execute
from .errors import (
    EmulatorError,
    DecodeError,
    EmulatorRuntimeError,
    UnimplementedInstruction,
    MemoryAccessFault,
    UnsupportedSyscall,
    StepLimitExceeded,
)

__all__ = [
    "run_program",
    "RunOptions",
    "RunResult",
    "CPU",
    "decode",
    "execute",
    "EmulatorError",
    "DecodeError",
    "EmulatorRuntimeError",
    "UnimplementedInstruction",
    "MemoryAccessFault",
    "UnsupportedSyscall",
    "StepLimitExceeded",
]
