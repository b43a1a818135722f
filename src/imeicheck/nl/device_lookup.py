"""
Ask a text-generation oracle which device a TAC belongs to.

Model output is never trusted as structured data. Parsing happens in two
phases:

1. Strict: strip code fences, `json.loads`, validate into `OracleDevice`.
2. Fallback: pull the `manufacturer` and `model` string fields out with
   regexes, accepting a manufacturer-only answer.

Anything that survives neither phase is treated as "oracle unavailable".
"""

from __future__ import annotations

import json
import logging
import re
from typing import Optional

from pydantic import ValidationError

from ..detect.tac import DeviceIdentity
from .gemini_client import TextOracle
from .schema import OracleDevice

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^\s*```[a-zA-Z]*\s*|\s*```\s*$")
_MANUFACTURER_RE = re.compile(r'"manufacturer"\s*:\s*"([^"\r\n]*)"')
_MODEL_RE = re.compile(r'"model"\s*:\s*"([^"\r\n]*)"')

# Answers the model gives when it does not know; treated as no answer.
_NON_ANSWERS = {"", "unknown", "n/a", "none", "null"}


def build_tac_prompt(tac: str) -> str:
    """Minimal prompt asking for a strict JSON answer about one TAC."""
    return (
        f"Identify the mobile device with IMEI Type Allocation Code (TAC) {tac}. "
        'Respond with JSON only, exactly {"manufacturer": "...", "model": "..."}. '
        'Use "Unknown" for any field you are not sure about.'
    )


def strip_code_fences(text: str) -> str:
    """Remove leading/trailing markdown fences such as ```json ... ```."""
    return _FENCE_RE.sub("", text).strip()


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return None if value.lower() in _NON_ANSWERS else value


def _to_identity(manufacturer: Optional[str], model: Optional[str]) -> Optional[DeviceIdentity]:
    manufacturer = _clean(manufacturer)
    if not manufacturer:
        return None
    return DeviceIdentity(manufacturer=manufacturer, model=_clean(model))


def parse_device_reply(text: str) -> Optional[DeviceIdentity]:
    """
    Turn raw oracle text into a DeviceIdentity, or None if nothing usable.

    Args:
        text: Raw model output, possibly fenced or wrapped in prose

    Returns:
        DeviceIdentity (model may be None) or None
    """
    body = strip_code_fences(text)

    # Phase 1: strict typed parse
    try:
        device = OracleDevice.model_validate(json.loads(body))
        return _to_identity(device.manufacturer, device.model)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.debug(f"Strict parse of oracle reply failed: {e}")

    # Phase 2: regex fallback over the raw text
    manufacturer = _MANUFACTURER_RE.search(body)
    if not manufacturer:
        return None
    model = _MODEL_RE.search(body)
    return _to_identity(manufacturer.group(1), model.group(1) if model else None)


def identify_tac(oracle: TextOracle, tac: str) -> Optional[DeviceIdentity]:
    """
    Single oracle attempt for `tac`. Returns None on any oracle failure.

    Exceptions raised by the oracle object itself are not handled here; the
    classifier owns that boundary.
    """
    reply = oracle.generate_text(build_tac_prompt(tac))
    if not reply.ok:
        logger.info(f"Oracle unavailable for TAC {tac}: {reply.error}")
        return None

    identity = parse_device_reply(reply.text)
    if identity is None:
        logger.warning(f"Could not parse oracle reply for TAC {tac}")
    return identity
