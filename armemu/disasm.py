"""Render decoded instructions as assembly text for traces and diagnostics."""

from typing import Optional

from .arith import WORD_MASK
from .instruction import (
    Add,
    AddWithCarry,
    And,
    Branch,
    BranchExchange,
    Compare,
    Condition,
    ImmediateDataArguments,
    ImmediateOffset,
    ImmediateShift,
    IndexingType,
    Instruction,
    Load,
    LoadDataSize,
    LoadStoreArguments,
    Move,
    MoveHalfWord,
    MoveNot,
    MoveTop,
    OffsetDirection,
    Or,
    ReadWriteImmediateDataArguments,
    ShiftType,
    Store,
    StoreDataSize,
    Subtract,
    SupervisorCall,
)


REGISTER_NAMES = [f"r{i}" for i in range(13)] + ["sp", "lr", "pc"]

CONDITION_SUFFIXES = {
    Condition.EQUAL: "EQ",
    Condition.NOT_EQUAL: "NE",
    Condition.CARRY_SET: "CS",
    Condition.CARRY_CLEAR: "CC",
    Condition.NEGATIVE: "MI",
    Condition.POSITIVE: "PL",
    Condition.OVERFLOW: "VS",
    Condition.NO_OVERFLOW: "VC",
    Condition.UNSIGNED_HIGHER: "HI",
    Condition.UNSIGNED_LOWER_OR_SAME: "LS",
    Condition.GREATER_OR_EQUAL: "GE",
    Condition.LESS_THAN: "LT",
    Condition.GREATER_THAN: "GT",
    Condition.LESS_OR_EQUAL: "LE",
    Condition.ALWAYS: "",
}

SHIFT_NAMES = {
    ShiftType.LOGICAL_LEFT: "lsl",
    ShiftType.LOGICAL_RIGHT: "lsr",
    ShiftType.ARITHMETIC_RIGHT: "asr",
    ShiftType.ROTATE_RIGHT: "ror",
}

READ_WRITE_MNEMONICS = {
    Add: "ADD",
    AddWithCarry: "ADC",
    And: "AND",
    Or: "ORR",
    Subtract: "SUB",
}

LOAD_MNEMONICS = {
    LoadDataSize.WORD: "LDR",
    LoadDataSize.BYTE: "LDRB",
    LoadDataSize.DOUBLE_WORD: "LDRD",
    LoadDataSize.UNSIGNED_HALF_WORD: "LDRH",
    LoadDataSize.SIGNED_BYTE: "LDRSB",
    LoadDataSize.SIGNED_HALF_WORD: "LDRSH",
}

STORE_MNEMONICS = {
    StoreDataSize.WORD: "STR",
    StoreDataSize.BYTE: "STRB",
    StoreDataSize.DOUBLE_WORD: "STRD",
    StoreDataSize.HALF_WORD: "STRH",
}


def _immediate(value: int) -> str:
    return f"#{value}" if value < 10 else f"#{value:#x}"


def _shifted_register(register: int, shift_type: ShiftType, shift: str) -> str:
    return f"{REGISTER_NAMES[register]}, {SHIFT_NAMES[shift_type]} {shift}"


def _operand(arguments) -> str:
    """Format the flexible second operand of a data-processing instruction."""
    if isinstance(arguments, (ImmediateDataArguments, ReadWriteImmediateDataArguments)):
        return _immediate(arguments.immediate)

    shift_operand = arguments.shift_operand
    if isinstance(shift_operand, ImmediateShift):
        if shift_operand.amount == 0 and arguments.shift_type is ShiftType.LOGICAL_LEFT:
            return REGISTER_NAMES[arguments.operand_register]
        if shift_operand.amount == 0 and arguments.shift_type is ShiftType.ROTATE_RIGHT:
            return f"{REGISTER_NAMES[arguments.operand_register]}, rrx"
        return _shifted_register(
            arguments.operand_register, arguments.shift_type, f"#{shift_operand.amount}"
        )
    return _shifted_register(
        arguments.operand_register, arguments.shift_type, REGISTER_NAMES[shift_operand.register]
    )


def _address(arguments: LoadStoreArguments) -> str:
    base = REGISTER_NAMES[arguments.address_register]
    sign = "-" if arguments.offset_direction is OffsetDirection.NEGATIVE else ""
    offset = arguments.offset

    if isinstance(offset, ImmediateOffset):
        if offset.value == 0 and arguments.indexing_type is IndexingType.PRE:
            return f"[{base}]" + ("!" if arguments.write_back else "")
        offset_text = f"#{sign}{offset.value}"
    else:
        offset_text = f"{sign}{REGISTER_NAMES[offset.register]}"
        if offset.shift_amount or offset.shift_type is not ShiftType.LOGICAL_LEFT:
            offset_text += f", {SHIFT_NAMES[offset.shift_type]} #{offset.shift_amount}"

    if arguments.indexing_type is IndexingType.POST:
        return f"[{base}], {offset_text}"
    return f"[{base}, {offset_text}]" + ("!" if arguments.write_back else "")


def format_instruction(instruction: Instruction, address: Optional[int] = None) -> str:
    """Format a decoded instruction in UAL-like syntax.

    Branch targets are shown as absolute addresses when the fetch address
    is known, otherwise as an offset relative to it.
    """
    cond = CONDITION_SUFFIXES[instruction.condition]
    data = instruction.data

    if type(data) in READ_WRITE_MNEMONICS:
        args = data.arguments
        s = "S" if data.update_flags else ""
        return (
            f"{READ_WRITE_MNEMONICS[type(data)]}{s}{cond} {REGISTER_NAMES[args.destination_register]}, "
            f"{REGISTER_NAMES[args.source_register]}, {_operand(args)}"
        )
    if isinstance(data, (Move, MoveNot)):
        mnemonic = "MOV" if isinstance(data, Move) else "MVN"
        s = "S" if data.update_flags else ""
        return f"{mnemonic}{s}{cond} {REGISTER_NAMES[data.arguments.register]}, {_operand(data.arguments)}"
    if isinstance(data, Compare):
        return f"CMP{cond} {REGISTER_NAMES[data.arguments.register]}, {_operand(data.arguments)}"
    if isinstance(data, (MoveHalfWord, MoveTop)):
        mnemonic = "MOVW" if isinstance(data, MoveHalfWord) else "MOVT"
        args = data.arguments
        return f"{mnemonic}{cond} {REGISTER_NAMES[args.register]}, #{args.immediate:#x}"
    if isinstance(data, Branch):
        mnemonic = "BL" if data.link else "B"
        if address is None:
            return f"{mnemonic}{cond} {data.offset:+#x}"
        return f"{mnemonic}{cond} {(address + data.offset) & WORD_MASK:#010x}"
    if isinstance(data, BranchExchange):
        return f"BX{cond} {REGISTER_NAMES[data.register]}"
    if isinstance(data, Load):
        args = data.arguments
        return f"{LOAD_MNEMONICS[data.data_size]}{cond} {REGISTER_NAMES[args.value_register]}, {_address(args)}"
    if isinstance(data, Store):
        args = data.arguments
        return f"{STORE_MNEMONICS[data.data_size]}{cond} {REGISTER_NAMES[args.value_register]}, {_address(args)}"
    if isinstance(data, SupervisorCall):
        return f"SVC{cond} #{data.immediate:#x}"

    return f"<{type(data).__name__}>"
