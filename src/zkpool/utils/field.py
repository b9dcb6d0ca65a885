"""Prime-field guard for values handed to the tree hash.

The proving circuit works over the scalar field of BN254. A value at or
above the modulus would wrap inside the circuit but not in plain integer
arithmetic, so it must be rejected before it reaches the hash.
"""

from typing import Union

from zkpool.exceptions import OutOfFieldError

FIELD_MODULUS = 21888242871839275222246405745257275088548364400416034343698204186575808495617


def check_in_field(value: int) -> int:
    """
    Ensure ``value`` is a canonical field element.

    Args:
        value: Candidate field element

    Returns:
        int: The value, unchanged

    Raises:
        OutOfFieldError: If value is negative or >= FIELD_MODULUS
        TypeError: If value is not an integer
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"Field element must be int, got {type(value).__name__}")
    if value < 0 or value >= FIELD_MODULUS:
        raise OutOfFieldError(f"Value {value:#x} is outside the field")
    return value


def is_in_field(value: int) -> bool:
    """Return True if value is a canonical field element."""
    try:
        check_in_field(value)
    except (OutOfFieldError, TypeError):
        return False
    return True


def to_field(data: Union[bytes, int]) -> int:
    """Reduce bytes (big-endian) or an integer modulo the field."""
    if isinstance(data, bytes):
        data = int.from_bytes(data, "big")
    return data % FIELD_MODULUS
