"""
FastAPI application exposing the IMEI verification engine.

Endpoints:
- GET  /health     liveness probe
- POST /api/imei   verify one IMEI, body {"imei": "..."}

The engine is strict about its input; this layer is where user-friendly
formatting (spaces, dashes) is stripped before verification.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import load_config
from ..detect.validators import digits_only
from ..engine.verifier import ImeiVerifier, build_verifier

logger = logging.getLogger(__name__)


class ImeiCheckRequest(BaseModel):
    """Request body for IMEI verification."""
    imei: Optional[str] = None


app = FastAPI(
    title="imeicheck API",
    description="IMEI validation, device identification and blacklist checks",
    version="0.1.0",
)


@lru_cache
def get_verifier() -> ImeiVerifier:
    """Verifier built once from environment config on first use."""
    return build_verifier(load_config())


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "imeicheck-api"}


@app.post("/api/imei")
def check_imei(body: ImeiCheckRequest, verifier: ImeiVerifier = Depends(get_verifier)):
    """Verify an IMEI; separators in the submitted value are ignored."""
    if not body.imei:
        return JSONResponse(status_code=400, content={"error": "IMEI is required"})

    try:
        result = verifier.verify(digits_only(body.imei))
    except Exception:
        logger.exception("IMEI check error")
        return JSONResponse(
            status_code=500,
            content={
                "isValid": False,
                "isBlacklisted": False,
                "status": "error",
                "statusDetail": "Unable to check IMEI at this time",
                "error": "Failed to check IMEI",
            },
        )
    return result.as_dict()
