"""Instruction execution for the ARM emulator."""

from typing import Callable, Optional

from .arith import WORD_MASK, is_negative, rotate_right, sign_extend
from .cpu import CPU, LINK_REGISTER
from .errors import UnimplementedInstruction
from .instruction import (
    Add,
    AddWithCarry,
    And,
    Branch,
    BranchExchange,
    Compare,
    Condition,
    DataArguments,
    ImmediateDataArguments,
    ImmediateOffset,
    ImmediateShift,
    IndexingType,
    Instruction,
    Load,
    LoadDataSize,
    LoadStoreArguments,
    LoadStoreOffset,
    Move,
    MoveHalfWord,
    MoveNot,
    MoveTop,
    OffsetDirection,
    Or,
    ReadWriteDataArguments,
    ReadWriteImmediateDataArguments,
    ShiftOperand,
    ShiftType,
    Store,
    StoreDataSize,
    Subtract,
    SupervisorCall,
)
from .syscalls import Console, execute_system_call


INSTRUCTION_SIZE = 4


CONDITION_CHECKS: dict[Condition, Callable] = {
    Condition.EQUAL: lambda s: s.zero,
    Condition.NOT_EQUAL: lambda s: not s.zero,
    Condition.CARRY_SET: lambda s: s.carry,
    Condition.CARRY_CLEAR: lambda s: not s.carry,
    Condition.NEGATIVE: lambda s: s.negative,
    Condition.POSITIVE: lambda s: not s.negative,
    Condition.OVERFLOW: lambda s: s.overflow,
    Condition.NO_OVERFLOW: lambda s: not s.overflow,
    Condition.UNSIGNED_HIGHER: lambda s: s.carry and not s.zero,
    Condition.UNSIGNED_LOWER_OR_SAME: lambda s: not s.carry or s.zero,
    Condition.GREATER_OR_EQUAL: lambda s: s.negative == s.overflow,
    Condition.LESS_THAN: lambda s: s.negative != s.overflow,
    Condition.GREATER_THAN: lambda s: not s.zero and s.negative == s.overflow,
    Condition.LESS_OR_EQUAL: lambda s: s.zero or s.negative != s.overflow,
    Condition.ALWAYS: lambda s: True,
}


def is_condition_met(cpu: CPU, condition: Condition) -> bool:
    """Evaluate a condition against the current NZCV flags."""
    return bool(CONDITION_CHECKS[condition](cpu.status))


# Shifter

def logical_shift_left(value: int, amount: int, carry_in: bool) -> tuple[int, bool]:
    if amount == 0:
        return value, carry_in
    if amount < 32:
        return (value << amount) & WORD_MASK, value & (1 << (32 - amount)) != 0
    if amount == 32:
        return 0, value & 1 != 0
    return 0, False


def logical_shift_right(value: int, amount: int, carry_in: bool) -> tuple[int, bool]:
    if amount == 0:
        return value, carry_in
    if amount < 32:
        return value >> amount, value & (1 << (amount - 1)) != 0
    if amount == 32:
        return 0, is_negative(value)
    return 0, False


def arithmetic_shift_right(value: int, amount: int, carry_in: bool) -> tuple[int, bool]:
    if amount == 0:
        return value, carry_in
    if amount < 32:
        signed = value - (1 << 32) if is_negative(value) else value
        return (signed >> amount) & WORD_MASK, value & (1 << (amount - 1)) != 0
    # Every bit is shifted out; the result is filled with the sign
    return (WORD_MASK if is_negative(value) else 0), is_negative(value)


def rotate_right_with_carry(value: int, amount: int, carry_in: bool) -> tuple[int, bool]:
    if amount == 0:
        return value, carry_in
    result = rotate_right(value, amount)
    return result, is_negative(result)


def rotate_right_extended(value: int, carry_in: bool) -> tuple[int, bool]:
    """RRX: rotate right by one bit through the carry flag."""
    value &= WORD_MASK
    return (int(carry_in) << 31) | (value >> 1), value & 1 != 0


SHIFTERS = {
    ShiftType.LOGICAL_LEFT: logical_shift_left,
    ShiftType.LOGICAL_RIGHT: logical_shift_right,
    ShiftType.ARITHMETIC_RIGHT: arithmetic_shift_right,
    ShiftType.ROTATE_RIGHT: rotate_right_with_carry,
}


def shift_value(value: int, shift_type: ShiftType, amount: int, carry_in: bool) -> tuple[int, bool]:
    """Apply a shift, returning (result, carry out)."""
    return SHIFTERS[shift_type](value & WORD_MASK, amount, carry_in)


def _immediate_shift_amount(shift_type: ShiftType, amount: int) -> int:
    """An encoded amount of 0 means 32 for every shift type except LSL."""
    if amount == 0 and shift_type is not ShiftType.LOGICAL_LEFT:
        return 32
    return amount


def apply_shift_operand(
    cpu: CPU,
    register: int,
    shift_type: ShiftType,
    shift_operand: ShiftOperand,
) -> tuple[int, bool]:
    """Resolve a register-shifted operand to (value, carry out)."""
    if isinstance(shift_operand, ImmediateShift):
        if shift_operand.amount == 0 and shift_type is ShiftType.ROTATE_RIGHT:
            return rotate_right_extended(cpu.get_register(register), cpu.status.carry)
        amount = _immediate_shift_amount(shift_type, shift_operand.amount)
    else:
        amount = cpu.get_register(shift_operand.register) & 0xFF
    return shift_value(cpu.get_register(register), shift_type, amount, cpu.status.carry)


# Operand resolution

def _resolve_immediate(cpu: CPU, immediate: int, carry: bool, rotate: int) -> tuple[int, bool]:
    # An unrotated immediate leaves the carry flag as it was
    return immediate, carry if rotate != 0 else cpu.status.carry


def _resolve_data_arguments(cpu: CPU, args: DataArguments) -> tuple[int, int, bool]:
    """Return (register, operand, carry out)."""
    if isinstance(args, ImmediateDataArguments):
        operand, carry = _resolve_immediate(cpu, args.immediate, args.carry, args.rotate)
    else:
        operand, carry = apply_shift_operand(
            cpu, args.operand_register, args.shift_type, args.shift_operand
        )
    return args.register, operand, carry


def _resolve_read_write_arguments(
    cpu: CPU, args: ReadWriteDataArguments
) -> tuple[int, int, int, bool]:
    """Return (destination register, source value, operand, carry out)."""
    if isinstance(args, ReadWriteImmediateDataArguments):
        operand, carry = _resolve_immediate(cpu, args.immediate, args.carry, args.rotate)
    else:
        operand, carry = apply_shift_operand(
            cpu, args.operand_register, args.shift_type, args.shift_operand
        )
    return args.destination_register, cpu.get_register(args.source_register), operand, carry


def _add(original: int, operand: int, carry_in: int) -> tuple[int, bool, bool]:
    """Return (result, carry, overflow) of original + operand + carry_in."""
    total = original + operand + carry_in
    result = total & WORD_MASK
    overflow = (
        is_negative(original) == is_negative(operand)
        and is_negative(result) != is_negative(original)
    )
    return result, total > WORD_MASK, overflow


def _subtract(original: int, operand: int) -> tuple[int, bool, bool]:
    """Return (result, carry, overflow) of original - operand."""
    result = (original - operand) & WORD_MASK
    overflow = (
        is_negative(original) != is_negative(operand)
        and is_negative(result) != is_negative(original)
    )
    # Carry is set when no borrow occurred
    return result, result <= original, overflow


# Instruction executor type
InstructionExecutor = Callable[..., None]


def execute_move(data: Move, cpu: CPU, console: Optional[Console]) -> None:
    """MOV{S} Rd, operand"""
    register, value, carry = _resolve_data_arguments(cpu, data.arguments)
    cpu.set_register(register, value)
    if data.update_flags:
        cpu.set_status(negative=is_negative(value), zero=value == 0, carry=carry)


def execute_move_not(data: MoveNot, cpu: CPU, console: Optional[Console]) -> None:
    """MVN{S} Rd, operand"""
    register, operand, carry = _resolve_data_arguments(cpu, data.arguments)
    value = ~operand & WORD_MASK
    cpu.set_register(register, value)
    if data.update_flags:
        cpu.set_status(negative=is_negative(value), zero=value == 0, carry=carry)


def execute_add(data: Add, cpu: CPU, console: Optional[Console]) -> None:
    """ADD{S} Rd, Rn, operand"""
    destination, original, operand, _ = _resolve_read_write_arguments(cpu, data.arguments)
    result, carry, overflow = _add(original, operand, 0)
    cpu.set_register(destination, result)
    if data.update_flags:
        cpu.set_status(
            negative=is_negative(result), zero=result == 0, carry=carry, overflow=overflow
        )


def execute_add_with_carry(data: AddWithCarry, cpu: CPU, console: Optional[Console]) -> None:
    """ADC{S} Rd, Rn, operand"""
    destination, original, operand, _ = _resolve_read_write_arguments(cpu, data.arguments)
    result, carry, overflow = _add(original, operand, int(cpu.status.carry))
    cpu.set_register(destination, result)
    if data.update_flags:
        cpu.set_status(
            negative=is_negative(result), zero=result == 0, carry=carry, overflow=overflow
        )


def execute_subtract(data: Subtract, cpu: CPU, console: Optional[Console]) -> None:
    """SUB{S} Rd, Rn, operand"""
    destination, original, operand, _ = _resolve_read_write_arguments(cpu, data.arguments)
    result, carry, overflow = _subtract(original, operand)
    cpu.set_register(destination, result)
    if data.update_flags:
        cpu.set_status(
            negative=is_negative(result), zero=result == 0, carry=carry, overflow=overflow
        )


def execute_compare(data: Compare, cpu: CPU, console: Optional[Console]) -> None:
    """CMP Rn, operand: flags from Rn - operand"""
    register, operand, _ = _resolve_data_arguments(cpu, data.arguments)
    result, carry, overflow = _subtract(cpu.get_register(register), operand)
    cpu.set_status(
        negative=is_negative(result), zero=result == 0, carry=carry, overflow=overflow
    )


def execute_and(data: And, cpu: CPU, console: Optional[Console]) -> None:
    """AND{S} Rd, Rn, operand"""
    destination, original, operand, carry = _resolve_read_write_arguments(cpu, data.arguments)
    result = original & operand
    cpu.set_register(destination, result)
    if data.update_flags:
        cpu.set_status(negative=is_negative(result), zero=result == 0, carry=carry)


def execute_or(data: Or, cpu: CPU, console: Optional[Console]) -> None:
    """ORR{S} Rd, Rn, operand"""
    destination, original, operand, carry = _resolve_read_write_arguments(cpu, data.arguments)
    result = original | operand
    cpu.set_register(destination, result)
    if data.update_flags:
        cpu.set_status(negative=is_negative(result), zero=result == 0, carry=carry)


def execute_move_half_word(data: MoveHalfWord, cpu: CPU, console: Optional[Console]) -> None:
    """MOVW Rd, #imm16: Rd := imm16"""
    cpu.set_register(data.arguments.register, data.arguments.immediate & 0xFFFF)


def execute_move_top(data: MoveTop, cpu: CPU, console: Optional[Console]) -> None:
    """MOVT Rd, #imm16: replace the top half of Rd"""
    register = data.arguments.register
    low = cpu.get_register(register) & 0xFFFF
    cpu.set_register(register, ((data.arguments.immediate & 0xFFFF) << 16) | low)


def execute_branch(data: Branch, cpu: CPU, console: Optional[Console]) -> None:
    """B{L} target; a branch to itself halts the machine."""
    # execute has already advanced PC by INSTRUCTION_SIZE
    return_address = cpu.program_counter
    fetch_address = (return_address - INSTRUCTION_SIZE) & WORD_MASK

    if data.link:
        cpu.set_register(LINK_REGISTER, return_address)

    destination = (fetch_address + data.offset) & WORD_MASK
    if destination == fetch_address:
        cpu.halt()
    else:
        cpu.program_counter = destination


def execute_branch_exchange(data: BranchExchange, cpu: CPU, console: Optional[Console]) -> None:
    """BX Rm: PC := Rm"""
    cpu.program_counter = cpu.get_register(data.register)


def _resolve_offset(cpu: CPU, offset: LoadStoreOffset) -> int:
    if isinstance(offset, ImmediateOffset):
        return offset.value
    amount = _immediate_shift_amount(offset.shift_type, offset.shift_amount)
    value, _ = shift_value(
        cpu.get_register(offset.register), offset.shift_type, amount, cpu.status.carry
    )
    return value


def _transfer_addresses(cpu: CPU, args: LoadStoreArguments) -> tuple[int, int]:
    """Return (access address, offset-adjusted address)."""
    base = cpu.get_register(args.address_register)
    offset = _resolve_offset(cpu, args.offset)

    if args.offset_direction is OffsetDirection.POSITIVE:
        offset_address = (base + offset) & WORD_MASK
    else:
        offset_address = (base - offset) & WORD_MASK

    if args.indexing_type is IndexingType.PRE:
        return offset_address, offset_address
    return base, offset_address


def _write_back(cpu: CPU, args: LoadStoreArguments, offset_address: int) -> None:
    if args.write_back or args.indexing_type is IndexingType.POST:
        cpu.set_register(args.address_register, offset_address)


def _check_register_pair(data, register: int) -> None:
    if register % 2 != 0 or register == LINK_REGISTER:
        raise UnimplementedInstruction(
            f"Double-word transfer needs an even register below r14, got r{register}",
            instruction=data,
        )


LOAD_READERS = {
    LoadDataSize.WORD: lambda memory, address: memory.read_word(address),
    LoadDataSize.BYTE: lambda memory, address: memory.read_byte(address),
    LoadDataSize.UNSIGNED_HALF_WORD: lambda memory, address: memory.read_half_word(address),
    LoadDataSize.SIGNED_BYTE: lambda memory, address: sign_extend(memory.read_byte(address), 8),
    LoadDataSize.SIGNED_HALF_WORD: lambda memory, address: sign_extend(
        memory.read_half_word(address), 16
    ),
}

STORE_WRITERS = {
    StoreDataSize.WORD: lambda memory, address, value: memory.write_word(address, value),
    StoreDataSize.BYTE: lambda memory, address, value: memory.write_byte(address, value),
    StoreDataSize.HALF_WORD: lambda memory, address, value: memory.write_half_word(address, value),
}


def execute_load(data: Load, cpu: CPU, console: Optional[Console]) -> None:
    """LDR{B,H,SB,SH,D} Rt, address"""
    args = data.arguments
    if data.data_size is LoadDataSize.DOUBLE_WORD:
        _check_register_pair(data, args.value_register)

    address, offset_address = _transfer_addresses(cpu, args)

    if data.data_size is LoadDataSize.DOUBLE_WORD:
        values = [cpu.memory.read_word(address), cpu.memory.read_word(address + 4)]
    else:
        values = [LOAD_READERS[data.data_size](cpu.memory, address)]

    _write_back(cpu, args, offset_address)
    for index, value in enumerate(values):
        cpu.set_register(args.value_register + index, value)


def execute_store(data: Store, cpu: CPU, console: Optional[Console]) -> None:
    """STR{B,H,D} Rt, address"""
    args = data.arguments
    if data.data_size is StoreDataSize.DOUBLE_WORD:
        _check_register_pair(data, args.value_register)

    address, offset_address = _transfer_addresses(cpu, args)
    value = cpu.get_register(args.value_register)

    if data.data_size is StoreDataSize.DOUBLE_WORD:
        high = cpu.get_register(args.value_register + 1)
        cpu.memory.write_word(address, value)
        cpu.memory.write_word(address + 4, high)
    else:
        STORE_WRITERS[data.data_size](cpu.memory, address, value)

    _write_back(cpu, args, offset_address)


def execute_supervisor_call(data: SupervisorCall, cpu: CPU, console: Optional[Console]) -> None:
    """SVC #imm: system call selected by r7"""
    execute_system_call(cpu, console)


# Instruction dispatch table
INSTRUCTION_EXECUTORS: dict[type, InstructionExecutor] = {
    Add: execute_add,
    AddWithCarry: execute_add_with_carry,
    And: execute_and,
    Branch: execute_branch,
    BranchExchange: execute_branch_exchange,
    Compare: execute_compare,
    Load: execute_load,
    Move: execute_move,
    MoveHalfWord: execute_move_half_word,
    MoveNot: execute_move_not,
    MoveTop: execute_move_top,
    Or: execute_or,
    Store: execute_store,
    Subtract: execute_subtract,
    SupervisorCall: execute_supervisor_call,
}


def execute(cpu: CPU, instruction: Instruction, console: Optional[Console] = None) -> None:
    """Execute a single decoded instruction.

    PC is advanced past the instruction before anything else, so a failed
    condition still moves on to the next instruction.

    Raises:
        UnimplementedInstruction: if the operation has no executor
    """
    cpu.program_counter = cpu.program_counter + INSTRUCTION_SIZE

    if not is_condition_met(cpu, instruction.condition):
        return

    executor = INSTRUCTION_EXECUTORS.get(type(instruction.data))
    if executor is None:
        raise UnimplementedInstruction(
            f"Instruction {instruction.data!r} not implemented",
            instruction=instruction,
            addr=(cpu.program_counter - INSTRUCTION_SIZE) & WORD_MASK,
        )
    executor(instruction.data, cpu, console)
