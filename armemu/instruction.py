"""Decoded instruction model for the ARM emulator.

Every operation is its own frozen dataclass carrying only the operands that
operation needs; operand shapes are likewise split into separate immediate
and register variants. ``InstructionData`` is the closed union of all
operations and ``Instruction`` pairs one with its condition.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union


class Condition(Enum):
    """Condition field, valued by its 4-bit encoding."""
    EQUAL = 0x0
    NOT_EQUAL = 0x1
    CARRY_SET = 0x2
    CARRY_CLEAR = 0x3
    NEGATIVE = 0x4
    POSITIVE = 0x5
    OVERFLOW = 0x6
    NO_OVERFLOW = 0x7
    UNSIGNED_HIGHER = 0x8
    UNSIGNED_LOWER_OR_SAME = 0x9
    GREATER_OR_EQUAL = 0xA
    LESS_THAN = 0xB
    GREATER_THAN = 0xC
    LESS_OR_EQUAL = 0xD
    ALWAYS = 0xE


class ShiftType(Enum):
    """Shift type field, valued by its 2-bit encoding."""
    LOGICAL_LEFT = 0b00
    LOGICAL_RIGHT = 0b01
    ARITHMETIC_RIGHT = 0b10
    ROTATE_RIGHT = 0b11


class IndexingType(Enum):
    PRE = "pre"
    POST = "post"


class OffsetDirection(Enum):
    POSITIVE = "+"
    NEGATIVE = "-"


class LoadDataSize(Enum):
    WORD = "word"
    BYTE = "byte"
    DOUBLE_WORD = "double_word"
    UNSIGNED_HALF_WORD = "unsigned_half_word"
    SIGNED_BYTE = "signed_byte"
    SIGNED_HALF_WORD = "signed_half_word"


class StoreDataSize(Enum):
    WORD = "word"
    BYTE = "byte"
    DOUBLE_WORD = "double_word"
    HALF_WORD = "half_word"


# Shift operands

@dataclass(frozen=True)
class ImmediateShift:
    """Shift by a 5-bit amount encoded in the instruction."""
    amount: int


@dataclass(frozen=True)
class RegisterShift:
    """Shift by the low byte of a register."""
    register: int


ShiftOperand = Union[ImmediateShift, RegisterShift]


# Data processing operands

@dataclass(frozen=True)
class ImmediateDataArguments:
    register: int
    immediate: int
    carry: bool
    rotate: int


@dataclass(frozen=True)
class RegisterDataArguments:
    register: int
    operand_register: int
    shift_type: ShiftType
    shift_operand: ShiftOperand


DataArguments = Union[ImmediateDataArguments, RegisterDataArguments]


@dataclass(frozen=True)
class ReadWriteImmediateDataArguments:
    source_register: int
    destination_register: int
    immediate: int
    carry: bool
    rotate: int


@dataclass(frozen=True)
class ReadWriteRegisterDataArguments:
    source_register: int
    destination_register: int
    operand_register: int
    shift_type: ShiftType
    shift_operand: ShiftOperand


ReadWriteDataArguments = Union[ReadWriteImmediateDataArguments, ReadWriteRegisterDataArguments]


@dataclass(frozen=True)
class LargeImmediateArguments:
    register: int
    immediate: int


# Load/store operands

@dataclass(frozen=True)
class ImmediateOffset:
    value: int


@dataclass(frozen=True)
class RegisterOffset:
    register: int
    shift_type: ShiftType
    shift_amount: int


LoadStoreOffset = Union[ImmediateOffset, RegisterOffset]


@dataclass(frozen=True)
class LoadStoreArguments:
    indexing_type: IndexingType
    write_back: bool
    offset_direction: OffsetDirection
    value_register: int
    address_register: int
    offset: LoadStoreOffset


# Operations

@dataclass(frozen=True)
class Add:
    """ADD{S}"""
    arguments: ReadWriteDataArguments
    update_flags: bool


@dataclass(frozen=True)
class AddWithCarry:
    """ADC{S}"""
    arguments: ReadWriteDataArguments
    update_flags: bool


@dataclass(frozen=True)
class And:
    """AND{S}"""
    arguments: ReadWriteDataArguments
    update_flags: bool


@dataclass(frozen=True)
class Or:
    """ORR{S}"""
    arguments: ReadWriteDataArguments
    update_flags: bool


@dataclass(frozen=True)
class Subtract:
    """SUB{S}"""
    arguments: ReadWriteDataArguments
    update_flags: bool


@dataclass(frozen=True)
class Compare:
    """CMP, always updates flags."""
    arguments: DataArguments


@dataclass(frozen=True)
class Move:
    """MOV{S}"""
    arguments: DataArguments
    update_flags: bool


@dataclass(frozen=True)
class MoveNot:
    """MVN{S}"""
    arguments: DataArguments
    update_flags: bool


@dataclass(frozen=True)
class MoveHalfWord:
    """MOVW"""
    arguments: LargeImmediateArguments


@dataclass(frozen=True)
class MoveTop:
    """MOVT"""
    arguments: LargeImmediateArguments


@dataclass(frozen=True)
class Branch:
    """B / BL; offset is relative to the fetch address."""
    offset: int
    link: bool


@dataclass(frozen=True)
class BranchExchange:
    """BX"""
    register: int


@dataclass(frozen=True)
class Load:
    """LDR, LDRB, LDRH, LDRSB, LDRSH, LDRD"""
    data_size: LoadDataSize
    arguments: LoadStoreArguments


@dataclass(frozen=True)
class Store:
    """STR, STRB, STRH, STRD"""
    data_size: StoreDataSize
    arguments: LoadStoreArguments


@dataclass(frozen=True)
class SupervisorCall:
    """SVC"""
    immediate: int


InstructionData = Union[
    Add,
    AddWithCarry,
    And,
    Branch,
    BranchExchange,
    Compare,
    Load,
    Move,
    MoveHalfWord,
    MoveNot,
    MoveTop,
    Or,
    Store,
    Subtract,
    SupervisorCall,
]


@dataclass(frozen=True)
class Instruction:
    """A decoded instruction: condition plus operation."""
    condition: Condition
    data: InstructionData
