"""Tests for system call emulation."""

import io

import pytest
from armemu.cpu import CPU
from armemu.errors import MemoryAccessFault, UnsupportedSyscall
from armemu.syscalls import (
    EXIT_SYSTEM_CALL,
    SYSTEM_CALL_REGISTER,
    WRITE_SYSTEM_CALL,
    Console,
    execute_system_call,
)


def write_setup(text: bytes, fd: int = 1) -> CPU:
    cpu = CPU()
    cpu.memory.load(text, 0x200)
    cpu.set_register(SYSTEM_CALL_REGISTER, WRITE_SYSTEM_CALL)
    cpu.set_register(0, fd)
    cpu.set_register(1, 0x200)
    return cpu


class TestConsole:
    def test_accumulates(self):
        console = Console()
        console.write_text("ab")
        console.write_text("c")
        assert console.get_output() == "abc"
        assert console.last_out_text == "c"

    def test_reset_io_codes(self):
        console = Console()
        console.write_text("x")
        console.reset_io_codes()
        assert console.last_out_text is None
        assert console.get_output() == "x"

    def test_mirrors_to_stream(self):
        stream = io.StringIO()
        console = Console(stream=stream)
        console.write_text("hello")
        assert stream.getvalue() == "hello"


class TestSystemCalls:
    def test_exit(self):
        cpu = CPU()
        cpu.set_register(SYSTEM_CALL_REGISTER, EXIT_SYSTEM_CALL)
        execute_system_call(cpu, Console())
        assert cpu.is_halted()

    def test_write(self):
        cpu = write_setup(b"Hi!\n\x00")
        console = Console()
        execute_system_call(cpu, console)
        assert console.get_output() == "Hi!\n"
        assert not cpu.is_halted()

    def test_write_latin1(self):
        cpu = write_setup(b"caf\xe9\x00")
        console = Console()
        execute_system_call(cpu, console)
        assert console.get_output() == "café"

    def test_write_empty_string(self):
        cpu = write_setup(b"\x00")
        console = Console()
        execute_system_call(cpu, console)
        assert console.get_output() == ""

    def test_write_other_descriptor(self):
        cpu = write_setup(b"oops\x00", fd=2)
        with pytest.raises(UnsupportedSyscall) as excinfo:
            execute_system_call(cpu, Console())
        assert "descriptor" in excinfo.value.message

    def test_write_without_console(self):
        cpu = write_setup(b"x\x00")
        with pytest.raises(UnsupportedSyscall):
            execute_system_call(cpu)

    def test_write_unterminated(self):
        cpu = CPU(memory_size=0x10)
        cpu.memory.load(b"\x41" * 0x10)
        cpu.set_register(SYSTEM_CALL_REGISTER, WRITE_SYSTEM_CALL)
        cpu.set_register(0, 1)
        with pytest.raises(MemoryAccessFault):
            execute_system_call(cpu, Console())

    def test_unknown_number(self):
        cpu = CPU()
        cpu.set_register(SYSTEM_CALL_REGISTER, 0x42)
        with pytest.raises(UnsupportedSyscall) as excinfo:
            execute_system_call(cpu, Console())
        assert excinfo.value.message == "Unsupported system call 00000042"
