"""Instruction decoder for the ARM emulator.

Turns a 32-bit instruction word into an ``Instruction``. Fields are pulled
out with masks and shifts; overlapping encodings are told apart purely by
the order of the checks in ``decode``.
"""

from .arith import WORD_MASK, rotate_right, to_signed
from .errors import DecodeError
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
    InstructionData,
    LargeImmediateArguments,
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
    ReadWriteRegisterDataArguments,
    RegisterDataArguments,
    RegisterOffset,
    RegisterShift,
    ShiftOperand,
    ShiftType,
    Store,
    StoreDataSize,
    Subtract,
    SupervisorCall,
)


CONDITION_MASK = 0xF0000000
CONDITION_SHIFT = 28

INSTRUCTION_CLASS_MASK = 0x0E000000
DATA_PROCESSING_REGISTER_CLASS = 0x00000000
DATA_PROCESSING_IMMEDIATE_CLASS = 0x02000000
LOAD_STORE_IMMEDIATE_CLASS = 0x04000000
LOAD_STORE_REGISTER_CLASS = 0x06000000
BRANCH_CLASS = 0x0A000000
SUPERVISOR_CALL_MASK = 0x0F000000
SUPERVISOR_CALL_PATTERN = 0x0F000000

# MOVW/MOVT live where TST/CMP would sit without the S bit
EXTRA_IMMEDIATE_MASK = 0x01B00000
EXTRA_IMMEDIATE_PATTERN = 0x01000000
MOVE_TOP_BIT = 0x00400000

BRANCH_EXCHANGE_MASK = 0x0FFFFFF0
BRANCH_EXCHANGE_PATTERN = 0x012FFF10

# Bits 7 and 4 both set in the register class
EXTRA_LOAD_STORE_MASK = 0x00000090
EXTRA_LOAD_STORE_PATTERN = 0x00000090
EXTRA_LOAD_STORE_TYPE_MASK = 0x00000060
EXTRA_LOAD_STORE_IMMEDIATE_BIT = 0x00400000

UPDATE_STATUS_BIT = 0x00100000
IMMEDIATE_MODE_BIT = 0x02000000
OPCODE_MASK = 0x01E00000
OPCODE_SHIFT = 21

FIRST_REGISTER_MASK = 0x000F0000
SECOND_REGISTER_MASK = 0x0000F000
OPERAND_REGISTER_MASK = 0x0000000F
SHIFT_REGISTER_MASK = 0x00000F00

ROTATE_MASK = 0x00000F00
IMMEDIATE_8_MASK = 0x000000FF
IMMEDIATE_12_MASK = 0x00000FFF
IMMEDIATE_24_MASK = 0x00FFFFFF

SHIFT_TYPE_MASK = 0x00000060
SHIFT_TYPE_SHIFT = 5
SHIFT_AMOUNT_MASK = 0x00000F80
SHIFT_AMOUNT_SHIFT = 7
SHIFT_REGISTER_BIT = 0x00000010

PRE_INDEX_BIT = 0x01000000
OFFSET_POSITIVE_BIT = 0x00800000
BYTE_BIT = 0x00400000
WRITE_BACK_BIT = 0x00200000
LOAD_BIT = 0x00100000
REGISTER_OFFSET_BIT = 0x02000000
MEDIA_BIT = 0x00000010

BRANCH_LINK_BIT = 0x01000000
BRANCH_OFFSET_BITS = 24
PC_BIAS = 8

AND_OPCODE = 0x0
SUBTRACT_OPCODE = 0x2
ADD_OPCODE = 0x4
ADD_WITH_CARRY_OPCODE = 0x5
COMPARE_OPCODE = 0xA
OR_OPCODE = 0xC
MOVE_OPCODE = 0xD
MOVE_NOT_OPCODE = 0xF

READ_WRITE_OPCODES = {
    AND_OPCODE: And,
    SUBTRACT_OPCODE: Subtract,
    ADD_OPCODE: Add,
    ADD_WITH_CARRY_OPCODE: AddWithCarry,
    OR_OPCODE: Or,
}

WRITE_OPCODES = {
    MOVE_OPCODE: Move,
    MOVE_NOT_OPCODE: MoveNot,
}

CONDITIONS = {condition.value: condition for condition in Condition}

# (bits [6:5], load bit) -> transfer for the extended load/store family
EXTRA_LOAD_STORE_SIZES = {
    (0b01, False): (Store, StoreDataSize.HALF_WORD),
    (0b01, True): (Load, LoadDataSize.UNSIGNED_HALF_WORD),
    (0b10, False): (Load, LoadDataSize.DOUBLE_WORD),
    (0b10, True): (Load, LoadDataSize.SIGNED_BYTE),
    (0b11, False): (Store, StoreDataSize.DOUBLE_WORD),
    (0b11, True): (Load, LoadDataSize.SIGNED_HALF_WORD),
}


def decode(word: int) -> Instruction:
    """Decode one instruction word.

    Raises:
        DecodeError: if the word matches no supported encoding
    """
    if not 0 <= word <= WORD_MASK:
        raise DecodeError(f"Instruction word out of range: {word}")

    condition = _decode_condition(word)
    instruction_class = word & INSTRUCTION_CLASS_MASK

    if instruction_class == BRANCH_CLASS:
        data = _decode_branch(word)
    elif instruction_class == DATA_PROCESSING_IMMEDIATE_CLASS:
        if word & EXTRA_IMMEDIATE_MASK == EXTRA_IMMEDIATE_PATTERN:
            data = _decode_move_half_word(word)
        else:
            data = _decode_data_processing(word)
    elif instruction_class == DATA_PROCESSING_REGISTER_CLASS:
        if word & BRANCH_EXCHANGE_MASK == BRANCH_EXCHANGE_PATTERN:
            data = BranchExchange(word & OPERAND_REGISTER_MASK)
        elif word & EXTRA_LOAD_STORE_MASK == EXTRA_LOAD_STORE_PATTERN:
            data = _decode_extra_load_store(word)
        else:
            data = _decode_data_processing(word)
    elif instruction_class in (LOAD_STORE_IMMEDIATE_CLASS, LOAD_STORE_REGISTER_CLASS):
        if instruction_class == LOAD_STORE_REGISTER_CLASS and word & MEDIA_BIT:
            raise DecodeError(f"Unknown media instruction {word:08X}", word=word)
        data = _decode_load_store(word)
    elif word & SUPERVISOR_CALL_MASK == SUPERVISOR_CALL_PATTERN:
        data = SupervisorCall(word & IMMEDIATE_24_MASK)
    else:
        raise DecodeError(f"Unknown instruction {word:08X}", word=word)

    return Instruction(condition, data)


def _decode_condition(word: int) -> Condition:
    code = (word & CONDITION_MASK) >> CONDITION_SHIFT
    condition = CONDITIONS.get(code)
    if condition is None:
        raise DecodeError(f"Unknown condition {code:X} in {word:08X}", word=word)
    return condition


def _decode_branch(word: int) -> Branch:
    offset = to_signed(word & IMMEDIATE_24_MASK, BRANCH_OFFSET_BITS)
    # Offsets are encoded relative to the fetch address + 8
    offset = (offset << 2) + PC_BIAS
    return Branch(offset=offset, link=bool(word & BRANCH_LINK_BIT))


def _decode_data_processing(word: int) -> InstructionData:
    update_flags = bool(word & UPDATE_STATUS_BIT)
    opcode = (word & OPCODE_MASK) >> OPCODE_SHIFT

    if opcode in READ_WRITE_OPCODES:
        return READ_WRITE_OPCODES[opcode](_decode_read_write_arguments(word), update_flags)
    if opcode in WRITE_OPCODES:
        return WRITE_OPCODES[opcode](_decode_write_arguments(word), update_flags)
    if opcode == COMPARE_OPCODE and update_flags:
        return Compare(_decode_read_arguments(word))

    raise DecodeError(f"Unknown opcode {opcode:X} in {word:08X}", word=word)


def _decode_move_half_word(word: int) -> InstructionData:
    register = (word & SECOND_REGISTER_MASK) >> 12
    immediate = ((word & FIRST_REGISTER_MASK) >> 4) | (word & IMMEDIATE_12_MASK)
    arguments = LargeImmediateArguments(register=register, immediate=immediate)
    if word & MOVE_TOP_BIT:
        return MoveTop(arguments)
    return MoveHalfWord(arguments)


def _decode_shifted_immediate(word: int) -> tuple[int, bool, int]:
    """Return (value, carry out, rotate amount) of an 8-bit rotated immediate."""
    rotate = ((word & ROTATE_MASK) >> 8) << 1
    immediate = rotate_right(word & IMMEDIATE_8_MASK, rotate)
    carry = immediate & 0x80000000 != 0
    return immediate, carry, rotate


def _decode_shift_type(word: int) -> ShiftType:
    return ShiftType((word & SHIFT_TYPE_MASK) >> SHIFT_TYPE_SHIFT)


def _decode_register_shift_arguments(word: int) -> tuple[int, ShiftType, ShiftOperand]:
    operand_register = word & OPERAND_REGISTER_MASK
    shift_type = _decode_shift_type(word)

    if word & SHIFT_REGISTER_BIT:
        shift_operand: ShiftOperand = RegisterShift((word & SHIFT_REGISTER_MASK) >> 8)
    else:
        shift_operand = ImmediateShift((word & SHIFT_AMOUNT_MASK) >> SHIFT_AMOUNT_SHIFT)

    return operand_register, shift_type, shift_operand


def _decode_data_arguments(word: int, register: int) -> DataArguments:
    if word & IMMEDIATE_MODE_BIT:
        immediate, carry, rotate = _decode_shifted_immediate(word)
        return ImmediateDataArguments(
            register=register,
            immediate=immediate,
            carry=carry,
            rotate=rotate,
        )

    operand_register, shift_type, shift_operand = _decode_register_shift_arguments(word)
    return RegisterDataArguments(
        register=register,
        operand_register=operand_register,
        shift_type=shift_type,
        shift_operand=shift_operand,
    )


def _decode_write_arguments(word: int) -> DataArguments:
    """Operands of MOV/MVN: destination register in bits [15:12]."""
    return _decode_data_arguments(word, (word & SECOND_REGISTER_MASK) >> 12)


def _decode_read_arguments(word: int) -> DataArguments:
    """Operands of CMP: source register in bits [19:16]."""
    return _decode_data_arguments(word, (word & FIRST_REGISTER_MASK) >> 16)


def _decode_read_write_arguments(word: int) -> ReadWriteDataArguments:
    source_register = (word & FIRST_REGISTER_MASK) >> 16
    destination_register = (word & SECOND_REGISTER_MASK) >> 12

    if word & IMMEDIATE_MODE_BIT:
        immediate, carry, rotate = _decode_shifted_immediate(word)
        return ReadWriteImmediateDataArguments(
            source_register=source_register,
            destination_register=destination_register,
            immediate=immediate,
            carry=carry,
            rotate=rotate,
        )

    operand_register, shift_type, shift_operand = _decode_register_shift_arguments(word)
    return ReadWriteRegisterDataArguments(
        source_register=source_register,
        destination_register=destination_register,
        operand_register=operand_register,
        shift_type=shift_type,
        shift_operand=shift_operand,
    )


def _decode_load_store_arguments(word: int, offset: LoadStoreOffset) -> LoadStoreArguments:
    indexing_type = IndexingType.PRE if word & PRE_INDEX_BIT else IndexingType.POST
    # Post-indexed transfers always update the base register
    write_back = indexing_type is IndexingType.POST or bool(word & WRITE_BACK_BIT)
    offset_direction = (
        OffsetDirection.POSITIVE if word & OFFSET_POSITIVE_BIT else OffsetDirection.NEGATIVE
    )

    return LoadStoreArguments(
        indexing_type=indexing_type,
        write_back=write_back,
        offset_direction=offset_direction,
        value_register=(word & SECOND_REGISTER_MASK) >> 12,
        address_register=(word & FIRST_REGISTER_MASK) >> 16,
        offset=offset,
    )


def _decode_load_store(word: int) -> InstructionData:
    if word & REGISTER_OFFSET_BIT:
        offset: LoadStoreOffset = RegisterOffset(
            register=word & OPERAND_REGISTER_MASK,
            shift_type=_decode_shift_type(word),
            shift_amount=(word & SHIFT_AMOUNT_MASK) >> SHIFT_AMOUNT_SHIFT,
        )
    else:
        offset = ImmediateOffset(word & IMMEDIATE_12_MASK)

    arguments = _decode_load_store_arguments(word, offset)
    is_byte = bool(word & BYTE_BIT)

    if word & LOAD_BIT:
        return Load(LoadDataSize.BYTE if is_byte else LoadDataSize.WORD, arguments)
    return Store(StoreDataSize.BYTE if is_byte else StoreDataSize.WORD, arguments)


def _decode_extra_load_store(word: int) -> InstructionData:
    transfer_type = (word & EXTRA_LOAD_STORE_TYPE_MASK) >> 5
    size = EXTRA_LOAD_STORE_SIZES.get((transfer_type, bool(word & LOAD_BIT)))
    if size is None:
        raise DecodeError(f"Unknown multiply or swap instruction {word:08X}", word=word)

    if word & EXTRA_LOAD_STORE_IMMEDIATE_BIT:
        # Only an 8-bit offset, split into two nibbles at bits [11:8] and [3:0]
        offset: LoadStoreOffset = ImmediateOffset(
            ((word & SHIFT_REGISTER_MASK) >> 4) | (word & OPERAND_REGISTER_MASK)
        )
    else:
        offset = RegisterOffset(
            register=word & OPERAND_REGISTER_MASK,
            shift_type=ShiftType.LOGICAL_LEFT,
            shift_amount=0,
        )

    operation, data_size = size
    return operation(data_size, _decode_load_store_arguments(word, offset))
