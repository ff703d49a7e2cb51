"""Barcode validation and UPC/EAN normalization."""

import re

_BARCODE_PATTERN = re.compile(r"[0-9]{8,14}")


def is_valid_barcode(barcode: str) -> bool:
    """Return True when the barcode is an 8-14 digit numeric string."""
    return _BARCODE_PATTERN.fullmatch(barcode) is not None


def normalize_barcode(barcode: str) -> str:
    """Reconcile UPC and EAN lengths without checksum validation.

    Short codes are promoted to UPC-A length (8 digits) and UPC-A sized codes
    to EAN-13. Anything else is returned unchanged.
    """
    digits = barcode.lstrip("0")
    if len(digits) <= 7:
        return digits.zfill(8)
    if 9 <= len(digits) <= 12:
        return digits.zfill(13)
    return barcode
