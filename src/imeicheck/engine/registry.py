"""
Blacklist (lost/stolen) registries.

The orchestrator only sees `BlacklistRegistry`. `SimulatedRegistry` is a
stand-in with no real-world meaning; `HttpRegistry` talks to a real lookup
service over HTTP.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional

import requests

from ..detect.validators import mask_imei

logger = logging.getLogger(__name__)

SIMULATED_BLACKLIST: frozenset[str] = frozenset({
    "123456789012345",
    "111111111111111",
})
SIMULATED_SUFFIX = "13"


class RegistryError(Exception):
    """The registry could not give an answer (network, HTTP or payload failure)."""


class BlacklistRegistry(ABC):
    @abstractmethod
    def is_blacklisted(self, imei: str) -> bool:
        """True if `imei` is reported lost or stolen."""

    def check(self, imei: str) -> bool:
        return self.is_blacklisted(imei)


class SimulatedRegistry(BlacklistRegistry):
    """Static list plus the `...13` suffix rule."""

    def __init__(self, extra: Iterable[str] = ()) -> None:
        self.blacklist = SIMULATED_BLACKLIST | frozenset(extra)

    def is_blacklisted(self, imei: str) -> bool:
        return imei in self.blacklist or imei.endswith(SIMULATED_SUFFIX)


class HttpRegistry(BlacklistRegistry):
    """
    Network-backed registry.

    POSTs `{"imei": ...}` to `url` and expects `{"blacklisted": true|false}`.
    Anything else raises RegistryError; there is no silent "clean" default.
    `timeout` applies to connecting and to each socket read separately, as
    requests does; it does not cap the total duration of a slow response.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not url:
            raise ValueError("HttpRegistry requires a URL")
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        if api_key:
            self.session.headers.update({"Authorization": f"Bearer {api_key}"})

    def is_blacklisted(self, imei: str) -> bool:
        try:
            response = self.session.post(self.url, json={"imei": imei}, timeout=(self.timeout, self.timeout))
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise RegistryError(f"registry request failed: {e}") from e
        except ValueError as e:
            raise RegistryError("registry returned non-JSON body") from e

        flag = data.get("blacklisted") if isinstance(data, dict) else None
        if not isinstance(flag, bool):
            raise RegistryError(f"registry payload missing boolean 'blacklisted': {data!r}")

        logger.debug(f"Registry answered {flag} for {mask_imei(imei)}")
        return flag
