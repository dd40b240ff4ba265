"""Word arithmetic helpers shared by the decoder and executor."""

WORD_BITS = 32
WORD_MASK = 0xFFFFFFFF
SIGN_BIT = 0x80000000


def is_negative(value: int) -> bool:
    """Return the sign bit of a 32-bit word."""
    return value & SIGN_BIT != 0


def rotate_right(value: int, amount: int) -> int:
    """Rotate a 32-bit word right by amount (taken modulo 32)."""
    amount %= WORD_BITS
    value &= WORD_MASK
    return ((value >> amount) | (value << (WORD_BITS - amount))) & WORD_MASK


def sign_extend(value: int, bits: int) -> int:
    """Sign-extend a bits-wide field into an unsigned 32-bit word."""
    value &= (1 << bits) - 1
    if value & (1 << (bits - 1)):
        value -= 1 << bits
    return value & WORD_MASK


def to_signed(value: int, bits: int) -> int:
    """Interpret a bits-wide field as a two's complement integer."""
    value &= (1 << bits) - 1
    if value & (1 << (bits - 1)):
        value -= 1 << bits
    return value
