"""
Runs the verification stages in order and assembles the result.

syntax -> checksum -> TAC (fake check + identity) -> registry -> clean/blacklisted

A failing stage ends the run with a typed result; later stages never see
input an earlier stage rejected.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..config import ImeiCheckConfig
from ..detect.tac import KNOWN_TACS_VERSION
from ..detect.validators import is_imei_syntax, luhn_ok, mask_imei
from ..nl.gemini_client import GeminiClient
from .classifier import AllocationClassifier, Classification, IdentitySource
from .registry import BlacklistRegistry, HttpRegistry, SimulatedRegistry

logger = logging.getLogger(__name__)


class VerificationStatus(str, Enum):
    invalid_length = "invalid_length"
    invalid_checksum = "invalid_checksum"
    fake_tac = "fake_tac"
    blacklisted = "blacklisted"
    clean = "clean"
    error = "error"


@dataclass(frozen=True)
class VerificationDetails:
    recommendation: str
    tac: Optional[str] = None
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    warning: Optional[str] = None
    source: Optional[str] = None
    table_version: Optional[str] = None  # set when the identity came from KNOWN_TACS


_CAMEL = {"table_version": "tableVersion"}


@dataclass(frozen=True)
class VerificationResult:
    is_valid: bool
    is_blacklisted: bool
    status: VerificationStatus
    status_detail: str
    details: Optional[VerificationDetails] = None

    def __post_init__(self) -> None:
        if self.is_blacklisted and not self.is_valid:
            raise ValueError("a blacklisted result must also be valid")

    def as_dict(self) -> Dict[str, Any]:
        """Wire shape used by the HTTP layer (camelCase keys)."""
        out: Dict[str, Any] = {
            "isValid": self.is_valid,
            "isBlacklisted": self.is_blacklisted,
            "status": self.status.value,
            "statusDetail": self.status_detail,
        }
        if self.details is not None:
            out["details"] = {
                _CAMEL.get(k, k): v for k, v in asdict(self.details).items() if v is not None
            }
        return out


def _identity_details(c: Classification, recommendation: str, warning: Optional[str] = None) -> VerificationDetails:
    identity = c.identity
    return VerificationDetails(
        recommendation=recommendation,
        tac=c.tac,
        manufacturer=identity.manufacturer if identity else None,
        model=identity.model if identity else None,
        warning=warning,
        source=c.source.value if c.source else None,
        table_version=KNOWN_TACS_VERSION if c.source is IdentitySource.known_table else None,
    )


class ImeiVerifier:
    """
    Stateless orchestrator. Safe to share between threads and requests.
    """

    def __init__(
        self,
        classifier: Optional[AllocationClassifier] = None,
        registry: Optional[BlacklistRegistry] = None,
    ) -> None:
        self.classifier = classifier or AllocationClassifier()
        self.registry = registry or SimulatedRegistry()

    def verify(self, raw: str) -> VerificationResult:
        """Verify `raw`. Never raises; unexpected failures become status=error."""
        try:
            return self._verify(raw)
        except Exception:
            logger.exception("IMEI verification failed unexpectedly")
            return VerificationResult(
                is_valid=False,
                is_blacklisted=False,
                status=VerificationStatus.error,
                status_detail="Unable to check IMEI at this time",
                details=VerificationDetails(recommendation="Try again later"),
            )

    def _verify(self, raw: str) -> VerificationResult:
        if not is_imei_syntax(raw):
            return VerificationResult(
                is_valid=False,
                is_blacklisted=False,
                status=VerificationStatus.invalid_length,
                status_detail="IMEI must be exactly 15 digits",
                details=VerificationDetails(recommendation="Check the number and enter all 15 digits"),
            )

        if not luhn_ok(raw):
            return VerificationResult(
                is_valid=False,
                is_blacklisted=False,
                status=VerificationStatus.invalid_checksum,
                status_detail="Failed checksum validation (likely fake)",
                details=VerificationDetails(
                    recommendation="Do not trust this identifier",
                    tac=raw[:8],
                    warning="The check digit does not match; the number was probably made up",
                ),
            )

        classification = self.classifier.classify(raw)
        if classification.fake:
            return VerificationResult(
                is_valid=False,
                is_blacklisted=False,
                status=VerificationStatus.fake_tac,
                status_detail="Invalid manufacturer code detected",
                details=VerificationDetails(
                    recommendation="Do not purchase this device",
                    tac=classification.tac,
                    warning="The allocation code is a known placeholder used by counterfeit devices",
                ),
            )

        if self.registry.is_blacklisted(raw):
            logger.info(f"Blacklisted device {mask_imei(raw)}")
            return VerificationResult(
                is_valid=True,
                is_blacklisted=True,
                status=VerificationStatus.blacklisted,
                status_detail="Device reported as lost or stolen",
                details=_identity_details(
                    classification,
                    recommendation="Do not purchase this device",
                    warning="This device has been reported to authorities",
                ),
            )

        return VerificationResult(
            is_valid=True,
            is_blacklisted=False,
            status=VerificationStatus.clean,
            status_detail="Device is valid and not blacklisted",
            details=_identity_details(classification, recommendation="Device checks passed"),
        )


def build_verifier(cfg: Optional[ImeiCheckConfig] = None) -> ImeiVerifier:
    """Wire an ImeiVerifier from config (oracle client, registry backend)."""
    cfg = cfg or ImeiCheckConfig()

    oracle = None
    if cfg.oracle.usable:
        oracle = GeminiClient(
            api_key=cfg.oracle.api_key,
            model=cfg.oracle.model,
            api_base=cfg.oracle.api_base,
            timeout=cfg.oracle.timeout_seconds,
        )
    else:
        logger.info("Gemini oracle not configured; unknown TACs fall back to prefix lookup")

    if cfg.registry.backend == "http":
        registry: BlacklistRegistry = HttpRegistry(
            url=cfg.registry.url or "",
            timeout=cfg.registry.timeout_seconds,
            api_key=cfg.registry.api_key,
        )
    else:
        registry = SimulatedRegistry(extra=cfg.registry.extra_blacklisted)

    return ImeiVerifier(AllocationClassifier(oracle), registry)


def verify_imei(raw: str, verifier: Optional[ImeiVerifier] = None) -> VerificationResult:
    """
    Convenience entry point.

    Args:
        raw: Candidate IMEI exactly as supplied
        verifier: Optional configured verifier; defaults to an offline one
            (built-in tables, simulated registry)

    Returns:
        VerificationResult, always

    Examples:
        >>> verify_imei("355521621234562").status
        <VerificationStatus.clean: 'clean'>
    """
    return (verifier or ImeiVerifier()).verify(raw)
