"""Post-publish reachability check."""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass
from typing import Any, Optional

import requests

from vigil.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class VerificationResult:
    reachable: bool
    url: str
    status_code: Optional[int] = None
    latency_ms: Optional[float] = None
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class HttpVerifier:
    """GET the published URL; any 2xx within the timeout counts as reachable."""

    def __init__(self, timeout_s: float = 10.0):
        self.timeout_s = timeout_s

    def __call__(self, url: str) -> VerificationResult:
        start = time.monotonic()
        try:
            response = requests.get(url, timeout=self.timeout_s)
        except requests.Timeout:
            return VerificationResult(False, url, message=f"no response within {self.timeout_s:g}s")
        except requests.RequestException as e:
            return VerificationResult(False, url, message=str(e))

        latency = round((time.monotonic() - start) * 1000.0, 1)
        if not 200 <= response.status_code < 300:
            return VerificationResult(
                False, url, response.status_code, latency, f"HTTP {response.status_code}"
            )
        return VerificationResult(True, url, response.status_code, latency, "Health check passed")
