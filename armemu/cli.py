"""
ARM emulator command-line interface
===================================
Loads a raw binary or ELF image, runs it to completion and reports the
final machine state.

Usage:
  armemu IMAGE [--memory-size N] [--start ADDR] [--max-steps N]
               [--break ADDR]... [--watch ADDR]... [--trace] [-v]
"""

from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .loader import read_image_file
from .memory import DEFAULT_MEMORY_SIZE
from .runner import RunOptions, RunResult, run_program


def _int(text: str) -> int:
    """Parse decimal or 0x-prefixed integers."""
    return int(text, 0)


def _print_trace(result: RunResult) -> None:
    for row in result.trace:
        print(f"{row['step']:>8}  {row['addr']:08X}  {row['word']:08X}  "
              f"{row['status']}  {row['instr_text']}")
    if result.trace_truncated:
        print(f"(trace stopped after {len(result.trace)} rows)")


def _print_report(result: RunResult) -> None:
    print(f"Registers:\n{result.debug_registers}\n{result.debug_status}")

    if result.watched:
        print("Watched memory:")
        for addr, value in result.watched.items():
            print(f"  {addr}: {value:08X}")

    elapsed = result.elapsed_seconds
    print(f"Executed {result.steps_executed} instructions in {elapsed * 1e9:.0f} ns "
          f"({elapsed * 1e3:.3f} ms, {result.steps_per_second:.0f} instructions/s).")


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="armemu",
        description="32-bit ARM instruction set emulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:\n"
               "  armemu program.bin\n"
               "  armemu hello.elf --trace\n"
               "  armemu program.bin --break 0x40 --watch 0x1000\n"
    )
    parser.add_argument("image", help="Raw binary or ELF image, loaded at address 0")
    parser.add_argument("--memory-size", type=_int, default=DEFAULT_MEMORY_SIZE,
                        help=f"Memory size in bytes (default: {DEFAULT_MEMORY_SIZE:#x})")
    parser.add_argument("--start", type=_int, default=None, metavar="ADDR",
                        help="Initial program counter (default: ELF entry point or 0)")
    parser.add_argument("--max-steps", type=int, default=1_000_000,
                        help="Stop with an error after N instructions (default: 1000000)")
    parser.add_argument("--break", dest="breakpoints", type=_int, action="append",
                        default=[], metavar="ADDR",
                        help="Stop before executing the instruction at ADDR (can repeat)")
    parser.add_argument("--watch", type=_int, action="append", default=[], metavar="ADDR",
                        help="Report the word at ADDR after the run (can repeat)")
    parser.add_argument("--trace", action="store_true",
                        help="Print every executed instruction after the run")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Log progress (-v) or system calls too (-vv)")
    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        image = read_image_file(args.image)
    except OSError as e:
        print(f"error: cannot read {args.image}: {e}", file=sys.stderr)
        return 1

    print(f"Read {len(image)} bytes from {Path(args.image).name}")

    options = RunOptions(
        memory_size=args.memory_size,
        start_address=args.start,
        max_steps=args.max_steps,
        trace=args.trace,
        trace_watch=args.watch,
        breakpoints=args.breakpoints,
        echo_output=sys.stdout,
    )
    result = run_program(image, options)

    if result.output_text and not result.output_text.endswith("\n"):
        print()
    if args.trace:
        _print_trace(result)
    if result.status == "break":
        print(f"Breakpoint at {result.final_state['pc']:08X}")
    if result.error is not None:
        err = result.error
        word = f" ({err.word:08X})" if err.word is not None else ""
        text = f" [{err.instruction_text}]" if err.instruction_text else ""
        print(f"error: {err.type} at {err.addr:08X}{word}{text}: {err.message}",
              file=sys.stderr)

    _print_report(result)
    return 1 if result.status == "error" else 0


if __name__ == "__main__":
    sys.exit(main())
