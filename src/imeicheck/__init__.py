"""imeicheck: IMEI validation, device identification and blacklist checks."""

from .engine.verifier import (
    ImeiVerifier,
    VerificationResult,
    VerificationStatus,
    build_verifier,
    verify_imei,
)

__version__ = "0.1.0"

__all__ = [
    "ImeiVerifier",
    "VerificationResult",
    "VerificationStatus",
    "build_verifier",
    "verify_imei",
]
