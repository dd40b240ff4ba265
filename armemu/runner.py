"""Program runner with tracing for the ARM emulator."""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional, TextIO

from .cpu import CPU
from .decoder import decode
from .disasm import format_instruction
from .errors import EmulatorError, ErrorInfo, StepLimitExceeded
from .executor import execute
from .instruction import Instruction
from .loader import load_image
from .memory import DEFAULT_MEMORY_SIZE, Memory
from .syscalls import Console


logger = logging.getLogger(__name__)

MAX_TRACE_ROWS = 100_000


@dataclass
class RunOptions:
    """Options for program execution."""
    memory_size: int = DEFAULT_MEMORY_SIZE
    start_address: Optional[int] = None
    max_steps: int = 1_000_000
    trace: bool = False
    trace_watch: list[int] = field(default_factory=list)
    trace_include_registers: bool = True
    max_trace_rows: int = MAX_TRACE_ROWS
    breakpoints: list[int] = field(default_factory=list)
    initial_memory: dict[int, int] = field(default_factory=dict)
    echo_output: Optional[TextIO] = None


@dataclass
class TraceRow:
    """Single row of execution trace."""
    step: int
    addr: int
    word: int
    instr_text: str
    status: str
    mem: dict[str, int]
    registers: Optional[list[int]] = None
    out_text: Optional[str] = None

    def to_dict(self) -> dict:
        result = {
            "step": self.step,
            "addr": self.addr,
            "word": self.word,
            "instr_text": self.instr_text,
            "status": self.status,
            "mem": self.mem,
            "out_text": self.out_text,
        }
        if self.registers is not None:
            result["registers"] = self.registers
        return result


@dataclass
class RunResult:
    """Result of program execution."""
    status: str  # "ok" | "break" | "error"
    output_text: str
    steps_executed: int
    final_state: dict
    trace_watch: list[int]
    trace: list[dict]
    watched: dict[str, int]
    debug_registers: str
    debug_status: str
    elapsed_seconds: float = 0.0
    steps_per_second: float = 0.0
    trace_truncated: bool = False
    error: Optional[ErrorInfo] = None

    def to_dict(self) -> dict:
        result = {
            "status": self.status,
            "output_text": self.output_text,
            "steps_executed": self.steps_executed,
            "final_state": self.final_state,
            "trace_watch": self.trace_watch,
            "trace": self.trace,
            "watched": self.watched,
            "debug_registers": self.debug_registers,
            "debug_status": self.debug_status,
            "elapsed_seconds": self.elapsed_seconds,
            "steps_per_second": self.steps_per_second,
            "trace_truncated": self.trace_truncated,
        }
        if self.error:
            result["error"] = self.error.to_dict()
        return result


def _build_result(
    status: str,
    cpu: CPU,
    console: Console,
    options: RunOptions,
    steps_executed: int,
    trace_rows: list[dict],
    elapsed: float = 0.0,
    error: Optional[ErrorInfo] = None,
    trace_truncated: bool = False,
) -> RunResult:
    return RunResult(
        status=status,
        output_text=console.get_output(),
        steps_executed=steps_executed,
        final_state=cpu.get_state(),
        trace_watch=options.trace_watch,
        trace=trace_rows,
        watched=cpu.memory.get_watched(options.trace_watch),
        debug_registers=cpu.debug_get_registers(),
        debug_status=cpu.debug_get_status(),
        elapsed_seconds=elapsed,
        steps_per_second=steps_executed / elapsed if elapsed > 0 else 0.0,
        trace_truncated=trace_truncated,
        error=error,
    )


def run_program(image: bytes, options: Optional[RunOptions] = None) -> RunResult:
    """Load and run a program image.

    Args:
        image: Raw binary or ELF image, loaded at address 0
        options: Execution options

    Returns:
        RunResult with execution status, output, and trace
    """
    if options is None:
        options = RunOptions()

    trace_rows: list[dict] = []
    trace_truncated = False
    steps_executed = 0
    breakpoints = set(options.breakpoints)

    console = Console(stream=options.echo_output)

    # Seed initial data, then load the image over it
    try:
        memory = Memory(size=options.memory_size, initial_values=options.initial_memory)
    except EmulatorError as e:
        logger.warning("Invalid initial memory: %s", e.message)
        cpu = CPU(memory_size=options.memory_size)
        return _build_result("error", cpu, console, options, 0, [], error=e.to_error_info())

    cpu = CPU(memory=memory)
    try:
        load_image(cpu, image)
    except EmulatorError as e:
        logger.warning("Failed to load image: %s", e.message)
        return _build_result("error", cpu, console, options, 0, [], error=e.to_error_info())

    if options.start_address is not None:
        cpu.program_counter = options.start_address

    status = "ok"
    error_info: Optional[ErrorInfo] = None
    instr_addr = cpu.program_counter
    current_word: Optional[int] = None
    current_instr: Optional[Instruction] = None

    logger.info("Starting at %08X", cpu.program_counter)
    started = time.perf_counter()

    try:
        while not cpu.is_halted() and steps_executed < options.max_steps:
            instr_addr = cpu.program_counter
            current_word = None
            current_instr = None

            if instr_addr in breakpoints:
                logger.info("Breakpoint hit at %08X after %d steps", instr_addr, steps_executed)
                status = "break"
                break

            # Fetch, decode, execute
            current_word = cpu.read_word(instr_addr)
            current_instr = decode(current_word)

            console.reset_io_codes()
            execute(cpu, current_instr, console)
            steps_executed += 1

            if options.trace and len(trace_rows) >= options.max_trace_rows:
                trace_truncated = True
            elif options.trace:
                row = TraceRow(
                    step=steps_executed,
                    addr=instr_addr,
                    word=current_word,
                    instr_text=format_instruction(current_instr, instr_addr),
                    status=cpu.debug_get_status(),
                    mem=cpu.memory.get_watched(options.trace_watch),
                    registers=list(cpu.registers) if options.trace_include_registers else None,
                    out_text=console.last_out_text,
                )
                trace_rows.append(row.to_dict())

        # Check step limit
        if status == "ok" and not cpu.is_halted():
            raise StepLimitExceeded(f"Step limit exceeded: {options.max_steps}")

    except EmulatorError as e:
        # Attach context to error
        e.step = steps_executed
        e.addr = instr_addr
        if e.word is None:
            e.word = current_word
        if current_instr is not None:
            e.instruction_text = format_instruction(current_instr, instr_addr)
        logger.warning("%s at %08X: %s", type(e).__name__, instr_addr, e.message)
        status = "error"
        error_info = e.to_error_info()

    elapsed = time.perf_counter() - started
    logger.info("Stopped (%s) after %d steps in %.6f s", status, steps_executed, elapsed)

    return _build_result(
        status, cpu, console, options, steps_executed, trace_rows, elapsed, error_info,
        trace_truncated,
    )
