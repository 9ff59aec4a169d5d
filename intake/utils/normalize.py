# intake/utils/normalize.py
"""
Plate and tax-id normalisation helpers.
Plates are stored normalised; tax ids are stored formatted and compared as digits.
"""

import re
from typing import Optional

from intake.utils.constants import PLATE_LENGTH

_NON_ALNUM = re.compile(r"[^A-Z0-9]")
_NON_DIGIT = re.compile(r"\D")


def normalize_plate(value: Optional[str]) -> str:
    """Uppercase and drop everything that is not A-Z or 0-9. Idempotent."""
    return _NON_ALNUM.sub("", (value or "").upper())


def is_valid_plate(value: Optional[str]) -> bool:
    plate = normalize_plate(value)
    return len(plate) == PLATE_LENGTH


def digits_only(value: Optional[str]) -> str:
    return _NON_DIGIT.sub("", value or "")


def format_cnpj(value: Optional[str]) -> str:
    """'12345678000190' -> '12.345.678/0001-90'. Partial input is formatted as far as it goes."""
    d = digits_only(value)[:14]
    if len(d) <= 2:
        return d
    if len(d) <= 5:
        return f"{d[:2]}.{d[2:]}"
    if len(d) <= 8:
        return f"{d[:2]}.{d[2:5]}.{d[5:]}"
    if len(d) <= 12:
        return f"{d[:2]}.{d[2:5]}.{d[5:8]}/{d[8:]}"
    return f"{d[:2]}.{d[2:5]}.{d[5:8]}/{d[8:12]}-{d[12:]}"


def format_cpf(value: Optional[str]) -> str:
    """'12345678901' -> '123.456.789-01'."""
    d = digits_only(value)[:11]
    if len(d) <= 3:
        return d
    if len(d) <= 6:
        return f"{d[:3]}.{d[3:]}"
    if len(d) <= 9:
        return f"{d[:3]}.{d[3:6]}.{d[6:]}"
    return f"{d[:3]}.{d[3:6]}.{d[6:9]}-{d[9:]}"


def format_phone(value: Optional[str]) -> str:
    """'11987654321' -> '(11) 98765-4321'."""
    d = digits_only(value)[:11]
    if len(d) <= 2:
        return d
    if len(d) <= 7:
        return f"({d[:2]}) {d[2:]}"
    return f"({d[:2]}) {d[2:7]}-{d[7:]}"
