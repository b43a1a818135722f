"""
Syntax and checksum validators for IMEI strings.

Why this file exists
--------------------
A 15-digit string is cheap to fabricate. These functions give the engine its
first two gates: the exact shape of the identifier and its Luhn check digit.
Most made-up identifiers fail one of the two.

Design principles
-----------------
- **Pure functions**: easy to test and reason about.
- **Strict**: the engine never repairs its input. `digits_only` exists for
  callers that want to pre-filter user input; the validators do not use it.
"""

from __future__ import annotations

import re

IMEI_LENGTH = 15

# ASCII only: `str.isdigit` and `\d` without re.ASCII accept other numerals.
_IMEI_RE = re.compile(rf"[0-9]{{{IMEI_LENGTH}}}")


def digits_only(s: str) -> str:
    """
    Return only the ASCII digit characters from a string.

    Used by the HTTP layer so inputs like "35-552162-123456-2" normalize to
    "355521621234562" before they reach the engine.
    """
    return "".join(ch for ch in s if "0" <= ch <= "9")


def is_imei_syntax(raw: object) -> bool:
    """True if `raw` is exactly fifteen ASCII digits, nothing more."""
    return isinstance(raw, str) and _IMEI_RE.fullmatch(raw) is not None


def _luhn_sum(digits: str, double_first: bool) -> int:
    total = 0
    for i, ch in enumerate(reversed(digits)):
        d = ord(ch) - 48  # '0' -> 48
        if (i % 2 == 0) == double_first:
            d *= 2
            if d > 9:
                d -= 9  # sum of digits for doubled value (e.g., 8*2 -> 16 -> 1+6 -> 7)
        total += d
    return total


def luhn_ok(digits: str) -> bool:
    """
    Validate a digit string with the Luhn checksum (a.k.a. "mod 10").

    The rightmost digit is the check digit. Moving left, every second digit is
    doubled. The all-zero string passes: checksum validity says nothing about
    whether the device exists.

    Args:
        digits: Candidate string, digits only (syntax must already be checked).

    Returns:
        True if the digits pass Luhn; False otherwise.
    """
    if not digits or not digits.isascii() or not digits.isdigit():
        return False
    return _luhn_sum(digits, double_first=False) % 10 == 0


def luhn_check_digit(body: str) -> int:
    """
    Compute the Luhn check digit for a 14-digit IMEI body.

    Raises:
        ValueError: if `body` is not exactly 14 ASCII digits.
    """
    if len(body) != IMEI_LENGTH - 1 or not body.isascii() or not body.isdigit():
        raise ValueError(f"IMEI body must be {IMEI_LENGTH - 1} digits, got {len(body)} characters")
    # The check digit will sit at position 0 from the right, so the body's
    # rightmost digit is the first one doubled.
    return (10 - _luhn_sum(body, double_first=True) % 10) % 10


def complete_imei(body: str) -> str:
    """Append the Luhn check digit to a 14-digit body."""
    return body + str(luhn_check_digit(body))


def mask_imei(imei: str) -> str:
    """
    Return a masked IMEI for logs: the TAC followed by asterisks.

    Full identifiers never go to the log.
    """
    return imei[:8] + "*" * max(len(imei) - 8, 0)
