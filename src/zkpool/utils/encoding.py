"""Encoding and decoding utilities."""

from typing import Union

ADDRESS_LENGTH = 20


def field_to_hex(value: int) -> str:
    """
    Convert a field element to a 32-byte hexadecimal string.

    Args:
        value: Non-negative integer below 2**256

    Returns:
        str: Hexadecimal string with '0x' prefix, zero-padded to 64 digits
    """
    if value < 0 or value >= 2**256:
        raise ValueError("Value does not fit in 32 bytes")
    return f"0x{value:064x}"


def hex_to_field(hex_str: str) -> int:
    """
    Convert a hexadecimal string to an integer.

    Args:
        hex_str: Hexadecimal string (with or without '0x' prefix)

    Returns:
        int: Decoded value

    Raises:
        ValueError: If hex string is invalid
    """
    if hex_str.startswith("0x"):
        hex_str = hex_str[2:]
    if not hex_str:
        raise ValueError("Empty hex string")
    return int(hex_str, 16)


def parse_field(value: Union[int, str]) -> int:
    """Accept an int, a decimal string or a 0x-prefixed hex string."""
    if isinstance(value, int):
        return value
    if value.startswith("0x"):
        return hex_to_field(value)
    return int(value)


def normalize_address(address: str) -> str:
    """
    Normalize an account address to lowercase 0x-prefixed hex.

    Raises:
        ValueError: If address is not 20 bytes of hex
    """
    if not isinstance(address, str):
        raise ValueError(f"Address must be str, got {type(address).__name__}")
    body = address[2:] if address.startswith("0x") else address
    if len(body) != ADDRESS_LENGTH * 2:
        raise ValueError(f"Address must be {ADDRESS_LENGTH} bytes: {address}")
    try:
        bytes.fromhex(body)
    except ValueError:
        raise ValueError(f"Address is not hex: {address}")
    return "0x" + body.lower()


def address_to_field(address: str) -> int:
    """Interpret an address as an integer public signal."""
    return int(normalize_address(address), 16)


def short_hex(value: int, digits: int = 16) -> str:
    """Abbreviated hex form for log messages."""
    return f"0x{value:064x}"[: digits + 2] + "..." if value >= 0 else str(value)
