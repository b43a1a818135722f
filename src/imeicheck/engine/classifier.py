"""
Resolves a checksum-valid IMEI's TAC to a device, or flags it as fake.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..detect.tac import (
    DeviceIdentity,
    extract_tac,
    is_fake_tac,
    lookup_known_tac,
    manufacturer_from_prefix,
)
from ..detect.validators import mask_imei
from ..nl.device_lookup import identify_tac
from ..nl.gemini_client import TextOracle

logger = logging.getLogger(__name__)


class IdentitySource(str, Enum):
    known_table = "known_table"
    oracle = "oracle"
    prefix = "prefix"


@dataclass(frozen=True)
class Classification:
    """Result of the allocation stage. `identity` is None only when `fake`."""
    tac: str
    fake: bool
    identity: Optional[DeviceIdentity] = None
    source: Optional[IdentitySource] = None


class AllocationClassifier:
    """
    Three tiers, most specific first: built-in table, oracle, prefix heuristic.

    Each tier trades specificity for availability, so `classify` always
    produces an identity for a non-fake TAC even when the oracle is down.
    """

    def __init__(self, oracle: Optional[TextOracle] = None) -> None:
        self.oracle = oracle

    def classify(self, imei: str) -> Classification:
        tac = extract_tac(imei)

        if is_fake_tac(tac):
            logger.info(f"Placeholder TAC in {mask_imei(imei)}")
            return Classification(tac=tac, fake=True)

        identity = lookup_known_tac(tac)
        if identity is not None:
            return Classification(tac, False, identity, IdentitySource.known_table)

        identity = self._ask_oracle(tac)
        if identity is not None:
            return Classification(tac, False, identity, IdentitySource.oracle)

        return Classification(tac, False, manufacturer_from_prefix(tac), IdentitySource.prefix)

    def _ask_oracle(self, tac: str) -> Optional[DeviceIdentity]:
        if self.oracle is None or not getattr(self.oracle, "available", True):
            return None
        try:
            return identify_tac(self.oracle, tac)
        except Exception:
            # A bug in the oracle client must not fail the verification.
            logger.exception(f"Oracle raised while identifying TAC {tac}")
            return None
