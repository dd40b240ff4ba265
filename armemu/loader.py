"""Program image loading for the ARM emulator."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .cpu import CPU
from .errors import MemoryAccessFault


logger = logging.getLogger(__name__)

ELF_MAGIC = bytes([0x7F, 0x45, 0x4C, 0x46, 0x01, 0x01, 0x01, 0x00])
ELF_ENTRY_POINT_OFFSET = 0x18
ELF_ENTRY_POINT_SIZE = 4


@dataclass
class LoadedImage:
    """Summary of a loaded program image."""
    size: int
    entry_point: int
    is_elf: bool


def is_elf_image(data: bytes) -> bool:
    """True for a 32-bit little-endian ELF image long enough to hold an entry point."""
    return (
        data.startswith(ELF_MAGIC)
        and len(data) > ELF_ENTRY_POINT_OFFSET + ELF_ENTRY_POINT_SIZE
    )


def load_image(cpu: CPU, data: bytes) -> LoadedImage:
    """Copy an image to address 0 and seed PC from an ELF header if present.

    Raises:
        MemoryAccessFault: if the image does not fit in memory
    """
    if len(data) > cpu.memory.size:
        raise MemoryAccessFault(
            f"Image of {len(data)} bytes does not fit in {cpu.memory.size} bytes of memory",
            fault_address=cpu.memory.size,
        )

    cpu.load_memory(data)
    logger.info("Loaded %d bytes", len(data))

    if is_elf_image(data):
        entry_point = cpu.memory.read_word(ELF_ENTRY_POINT_OFFSET)
        logger.info("Image is ELF; entry point is %08X", entry_point)
        cpu.program_counter = entry_point
        return LoadedImage(size=len(data), entry_point=entry_point, is_elf=True)

    return LoadedImage(size=len(data), entry_point=cpu.program_counter, is_elf=False)


def read_image_file(path: Union[str, Path]) -> bytes:
    """Read a program image from disk."""
    return Path(path).read_bytes()
