"""Shared type definitions for optimizer models.

These types are used across quote, opportunity and optimization models.
"""

import math
from typing import Annotated, Any

from pydantic import AfterValidator, Field


def validate_positive_amount(value: Any) -> float:
    """Validate that a value is a finite, strictly positive amount.

    Args:
        value: Value to validate (already coerced to float by pydantic)

    Returns:
        The amount as float

    Raises:
        ValueError: If the value is zero, negative, NaN or infinite
    """
    amount = float(value)
    if not math.isfinite(amount):
        raise ValueError(f"Amount must be finite: {value}")
    if amount <= 0:
        raise ValueError(f"Amount must be positive: {value}")
    return amount


# Ethereum address (40 hex chars after 0x prefix)
Address = Annotated[str, Field(pattern=r"^0x[a-fA-F0-9]{40}$")]

# Strictly positive, finite amount or price
PositiveAmount = Annotated[
    float,
    AfterValidator(validate_positive_amount),
    Field(description="Strictly positive finite amount"),
]


def normalize_address(address: str, *, validate: bool = False) -> str:
    """Normalize an Ethereum address to lowercase.

    Args:
        address: An Ethereum address (with or without 0x prefix)
        validate: If True, raises ValueError for invalid addresses.
                  If False (default), returns normalized form without validation.

    Returns:
        Lowercase address with 0x prefix

    Raises:
        ValueError: If validate=True and address is not a valid Ethereum address
    """
    addr = address.lower()
    if not addr.startswith("0x"):
        addr = "0x" + addr

    if validate and not is_valid_address(addr):
        raise ValueError(f"Invalid address: {address}")

    return addr


def is_valid_address(address: str) -> bool:
    """Check if a string is a valid Ethereum address.

    Args:
        address: String to validate

    Returns:
        True if valid Ethereum address format
    """
    if not isinstance(address, str):
        return False
    if not address.startswith("0x"):
        return False
    if len(address) != 42:
        return False
    try:
        int(address, 16)
        return True
    except ValueError:
        return False


def is_positive_finite(value: object) -> bool:
    """True if value is a real number that is finite and > 0."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return False
    return math.isfinite(value) and value > 0
