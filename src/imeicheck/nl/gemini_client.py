"""
Gemini text-generation client used as a device identification oracle.

The engine only needs one capability from the model: turn a prompt into text.
This client wraps the `generateContent` REST endpoint behind that single call.

Features:
- Explicit (connect, read) timeout; one attempt per call, no retries. The
  read timeout bounds each socket read, not the whole call: a server that
  trickles bytes can hold a call past `timeout`
- Never raises for transport, HTTP or payload errors; returns an OracleReply
  with `error` set instead so callers branch on the value
- No network I/O at all when no API key is configured
"""

from __future__ import annotations

import logging
import requests
from dataclasses import dataclass
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

# Gemini API configuration
GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
GEMINI_MODEL = "gemini-2.5-flash"  # fast, free-tier friendly
DEFAULT_TIMEOUT_SECONDS = 5.0


@dataclass
class OracleReply:
    """Outcome of one text-generation call."""
    text: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class TextOracle(Protocol):
    """Anything that can answer a prompt. GeminiClient and test fakes qualify."""

    def generate_text(self, prompt: str) -> OracleReply:
        ...


class GeminiClient:
    """Thin Gemini REST client returning OracleReply values."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = GEMINI_MODEL,
        api_base: str = GEMINI_API_BASE,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        if api_key:
            self.session.headers.update({
                "x-goog-api-key": api_key,
                "Content-Type": "application/json",
            })

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    def generate_text(self, prompt: str) -> OracleReply:
        """
        Send a single-turn prompt and return the first candidate's text.

        Args:
            prompt: Complete prompt text

        Returns:
            OracleReply with `text` on success, `error` describing the failure
            otherwise
        """
        if not self.api_key:
            return OracleReply(error="no API key configured")

        url = f"{self.api_base}/models/{self.model}:generateContent"
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": 0.1,  # low temperature for consistent lookups
                "maxOutputTokens": 200,
                "responseMimeType": "application/json",
            },
        }

        try:
            response = self.session.post(url, json=payload, timeout=(self.timeout, self.timeout))
            response.raise_for_status()
            data = response.json()
        except requests.Timeout:
            logger.warning(f"Gemini API timed out after {self.timeout}s")
            return OracleReply(error="timeout")
        except requests.RequestException as e:
            logger.warning(f"Gemini API error: {e}")
            return OracleReply(error=str(e))
        except ValueError as e:
            logger.warning(f"Gemini API returned non-JSON body: {e}")
            return OracleReply(error="malformed response")

        text = self._extract_text(data)
        if not text:
            logger.warning("Unexpected Gemini API response format")
            return OracleReply(error="empty response")

        logger.debug(f"Gemini response received, content length: {len(text)}")
        return OracleReply(text=text)

    @staticmethod
    def _extract_text(data: object) -> str:
        if not isinstance(data, dict):
            return ""
        try:
            parts = data["candidates"][0]["content"]["parts"]
            return "".join(p.get("text", "") for p in parts if isinstance(p, dict))
        except (KeyError, IndexError, TypeError):
            return ""
