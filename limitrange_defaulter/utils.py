"""Utility functions for resource quantity arithmetic and model conversion."""

import json
import math
import re
from decimal import Decimal
from typing import Any, Dict, Optional

from kubernetes import client
from kubernetes.utils import parse_quantity

# Quantity formats, named as the API server names them
BINARY_SI = "BinarySI"
DECIMAL_SI = "DecimalSI"
DECIMAL_EXPONENT = "DecimalExponent"

# Largest suffix first
_BINARY_UNITS = [
    ("Ei", 1024 ** 6),
    ("Pi", 1024 ** 5),
    ("Ti", 1024 ** 4),
    ("Gi", 1024 ** 3),
    ("Mi", 1024 ** 2),
    ("Ki", 1024),
]

_DECIMAL_UNITS = [
    (18, "E"),
    (15, "P"),
    (12, "T"),
    (9, "G"),
    (6, "M"),
    (3, "k"),
    (0, ""),
    (-3, "m"),
    (-6, "u"),
    (-9, "n"),
]

_EXPONENT_RE = re.compile(r"[eE][+-]?\d+$")

ResourceList = Dict[str, str]


def parse(quantity: Optional[str]) -> Decimal:
    """
    Parse a quantity string to an exact Decimal.

    An absent or empty quantity is zero.

    Examples:
        "100m" -> Decimal("0.1")
        "1Ki" -> Decimal("1024")

    Raises:
        ValueError: If the quantity is malformed, NaN or infinite
    """
    if quantity is None or str(quantity).strip() == "":
        return Decimal(0)
    result = parse_quantity(quantity)
    if not result.is_finite():
        raise ValueError(f"Invalid quantity: {quantity}")
    return result


def is_zero(quantity: Optional[str]) -> bool:
    """Check if a quantity is absent or equal to zero."""
    return parse(quantity) == 0


def compare(a: Optional[str], b: Optional[str]) -> int:
    """Three-way comparison of two quantities: -1, 0 or 1."""
    a_val = parse(a)
    b_val = parse(b)
    if a_val > b_val:
        return 1
    if a_val < b_val:
        return -1
    return 0


def take_the_max(
    current: Optional[str],
    default: Optional[str],
    minimum: Optional[str]
) -> Optional[str]:
    """
    Return the largest of three quantities.

    Starts from the current value, raises it to the default if greater,
    then to the minimum if greater still.
    """
    result = current
    if compare(default, result) > 0:
        result = default
    if compare(minimum, result) > 0:
        result = minimum
    return result


def value(quantity: Optional[str]) -> int:
    """Whole-unit value of a quantity, rounded up."""
    return math.ceil(parse(quantity))


def milli_value(quantity: Optional[str]) -> int:
    """Milli-unit value of a quantity, rounded up."""
    return math.ceil(parse(quantity).scaleb(3))


def quantity_format(quantity: Optional[str]) -> str:
    """
    Detect the format a quantity string was written in.

    Examples:
        "300Mi" -> BinarySI
        "500m" -> DecimalSI
        "1e3" -> DecimalExponent
    """
    if quantity is None:
        return DECIMAL_SI
    quantity = str(quantity).strip()
    for suffix, _ in _BINARY_UNITS:
        if quantity.endswith(suffix):
            return BINARY_SI
    if _EXPONENT_RE.search(quantity):
        return DECIMAL_EXPONENT
    return DECIMAL_SI


def format_quantity(amount, fmt: str = DECIMAL_SI) -> str:
    """
    Format an amount to its canonical Kubernetes quantity string.

    BinarySI amounts below 1024 or with a fractional part are written
    in DecimalSI.

    Examples:
        (Decimal("0.166"), DecimalSI) -> "166m"
        (78643200, BinarySI) -> "75Mi"
        (1000, DecimalExponent) -> "1e3"
    """
    amount = Decimal(amount)
    if amount == 0:
        return "0"

    if fmt == BINARY_SI and amount == amount.to_integral_value() and abs(amount) >= 1024:
        whole = int(amount)
        for suffix, multiplier in _BINARY_UNITS:
            if whole % multiplier == 0:
                return f"{whole // multiplier}{suffix}"
        return str(whole)

    for exponent, suffix in _DECIMAL_UNITS:
        scaled = amount.scaleb(-exponent)
        if scaled == scaled.to_integral_value():
            if fmt == DECIMAL_EXPONENT:
                return f"{int(scaled)}e{exponent}" if exponent else str(int(scaled))
            return f"{int(scaled)}{suffix}"

    # Finer than nano
    return f"{math.ceil(amount.scaleb(9))}n"


def new_quantity(whole: int, fmt: str = DECIMAL_SI) -> str:
    """Create a quantity from a whole-unit value."""
    return format_quantity(Decimal(whole), fmt)


def new_milli_quantity(milli: int, fmt: str = DECIMAL_SI) -> str:
    """Create a quantity from a milli-unit value."""
    return format_quantity(Decimal(milli).scaleb(-3), fmt)


def deserialize(data: Dict[str, Any], klass: str):
    """
    Build a Kubernetes client model from a manifest dict.

    Args:
        data: Manifest as loaded from JSON
        klass: Model name, e.g. "V1Pod"

    Returns:
        The model instance
    """
    return client.ApiClient().deserialize(json.dumps(data), klass, "application/json")


def serialize(obj) -> Dict[str, Any]:
    """Convert a Kubernetes client model to a manifest dict."""
    return client.ApiClient().sanitize_for_serialization(obj)
