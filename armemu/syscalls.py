"""System call emulation for the ARM emulator."""

import logging
from typing import Callable, Optional, TextIO

from .cpu import CPU
from .errors import UnsupportedSyscall


logger = logging.getLogger(__name__)

SYSTEM_CALL_REGISTER = 7
EXIT_SYSTEM_CALL = 0x1
WRITE_SYSTEM_CALL = 0x4
STDOUT_FILE_DESCRIPTOR = 1


class Console:
    """Output buffer for the write system call."""

    def __init__(self, stream: Optional[TextIO] = None):
        self._output: list[str] = []
        self.stream = stream
        self.last_out_text: Optional[str] = None

    def write_text(self, text: str) -> None:
        """Append text to the output buffer, mirroring it to the stream if any."""
        self.last_out_text = text
        self._output.append(text)
        if self.stream is not None:
            self.stream.write(text)
            self.stream.flush()

    def get_output(self) -> str:
        """Get accumulated output as string."""
        return "".join(self._output)

    def reset_io_codes(self) -> None:
        """Reset last output for new instruction."""
        self.last_out_text = None


def execute_exit(cpu: CPU, console: Optional[Console]) -> None:
    """exit(): stop the machine."""
    cpu.halt()


def execute_write(cpu: CPU, console: Optional[Console]) -> None:
    """write(fd=r0, string=r1): copy a NUL-terminated string to stdout."""
    file_descriptor = cpu.get_register(0)
    address = cpu.get_register(1)

    if file_descriptor != STDOUT_FILE_DESCRIPTOR:
        raise UnsupportedSyscall(f"write to unsupported file descriptor {file_descriptor}")
    if console is None:
        raise UnsupportedSyscall("write with no console attached")

    data = cpu.memory.read_string(address)
    console.write_text(data.decode("latin-1"))


SystemCallExecutor = Callable[[CPU, Optional[Console]], None]

SYSTEM_CALLS: dict[int, SystemCallExecutor] = {
    EXIT_SYSTEM_CALL: execute_exit,
    WRITE_SYSTEM_CALL: execute_write,
}


def execute_system_call(cpu: CPU, console: Optional[Console] = None) -> None:
    """Dispatch on the system call number held in r7."""
    number = cpu.get_register(SYSTEM_CALL_REGISTER)
    executor = SYSTEM_CALLS.get(number)
    if executor is None:
        raise UnsupportedSyscall(f"Unsupported system call {number:08X}")
    logger.debug("system call %d (%s)", number, executor.__name__)
    executor(cpu, console)
