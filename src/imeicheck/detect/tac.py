"""
Type Allocation Code (TAC) tables and lookups.

The TAC is the first eight digits of an IMEI. It identifies the device model
the GSMA allocated the range to. The tables here are static and shipped with
the engine; nothing in this module does I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

TAC_LENGTH = 8

UNKNOWN_MANUFACTURER = "Unknown Manufacturer"


@dataclass(frozen=True)
class DeviceIdentity:
    """Manufacturer and (when known) model resolved from a TAC."""
    manufacturer: str
    model: Optional[str] = None


# Placeholder patterns that show up in synthetic or counterfeit identifiers.
FAKE_TACS: frozenset[str] = frozenset(
    [str(d) * TAC_LENGTH for d in range(10)] + ["12345678", "00000001"]
)

# Bump when entries change so results can be traced to a table revision.
KNOWN_TACS_VERSION = "2024.1"

KNOWN_TACS: Mapping[str, DeviceIdentity] = MappingProxyType({
    "35552162": DeviceIdentity("Apple", "iPhone 14"),
    "35875512": DeviceIdentity("Apple", "iPhone 15"),
    "35290611": DeviceIdentity("Samsung", "Galaxy S23"),
    "35948213": DeviceIdentity("Samsung", "Galaxy S24"),
    "35766921": DeviceIdentity("Google", "Pixel 8"),
    "86687106": DeviceIdentity("Xiaomi", "Redmi Note 13"),
})

# Coarse two-digit reporting-body prefixes. "35" is shared by most major
# brands, so it stays ambiguous on purpose.
PREFIX_MANUFACTURERS: Mapping[str, str] = MappingProxyType({
    "01": "Apple",
    "35": "Unknown (Apple/Samsung/Google)",
    "86": "Apple",
    "99": "Apple",
})


def extract_tac(imei: str) -> str:
    return imei[:TAC_LENGTH]


def is_fake_tac(tac: str) -> bool:
    return tac in FAKE_TACS


def lookup_known_tac(tac: str) -> Optional[DeviceIdentity]:
    """Exact-match lookup in the built-in table. Deterministic, no I/O."""
    return KNOWN_TACS.get(tac)


def manufacturer_from_prefix(tac: str) -> DeviceIdentity:
    """
    Last-resort identification from the first two TAC digits.

    Always returns a readable manufacturer label; the model is never known on
    this path.
    """
    return DeviceIdentity(PREFIX_MANUFACTURERS.get(tac[:2], UNKNOWN_MANUFACTURER), None)
