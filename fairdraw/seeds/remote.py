"""Seeds fetched from a remote JSON-RPC randomness service.

Where a seed came from is outside the commit-reveal guarantee: only its hash
has to be committed before enrollment. The remote provider therefore falls
back to a locally generated seed whenever the service is unavailable.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Mapping, Optional

import requests

from ..config import SeedProviderSettings
from .local import SeedPair, generate_seed

logger = logging.getLogger(__name__)

SEED_RESULT_KEYS = ("seed", "random", "randomSeed")


class RandomnessClient:
    def __init__(
        self,
        host: str,
        port: int = 80,
        token: Optional[str] = None,
        method: str = "thanos_getRandom",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        if not host:
            raise ValueError("Seed provider host is not set")
        scheme = "https" if port == 443 else "http"
        default_port = 443 if scheme == "https" else 80
        netloc = host if port == default_port else f"{host}:{port}"
        self.base_url = f"{scheme}://{netloc}".rstrip("/")
        self.token = token
        self.method = method
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(
        cls, settings: SeedProviderSettings, session: Optional[requests.Session] = None
    ) -> "RandomnessClient":
        return cls(
            host=settings.host or "",
            port=settings.port,
            token=settings.token,
            method=settings.method,
            timeout=settings.timeout,
            session=session,
        )

    # -------- headers --------
    @property
    def headers(self) -> Mapping[str, str]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.token:
            headers["token"] = self.token
        return headers

    # -------- core request --------
    def _rpc(self, method: str, params: Optional[list] = None) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": int(time.time() * 1000),
        }
        r = self.session.post(
            self.base_url + "/",
            headers=self.headers,
            json=payload,
            timeout=self.timeout,
        )
        r.raise_for_status()
        return r.json() if r.content else None

    def get_random(self) -> str:
        """Call the configured RPC method and return the seed it carries.

        Raises
        ------
        ValueError
            If the response does not contain a non-empty seed string.
        requests.RequestException
            If the request itself fails.
        """
        response = self._rpc(self.method)
        if not isinstance(response, dict):
            raise ValueError(f"Unexpected seed provider response: {response!r}")
        result = response.get("result")
        seed: Any = None
        if isinstance(result, str):
            seed = result
        elif isinstance(result, dict):
            for key in SEED_RESULT_KEYS:
                if result.get(key):
                    seed = result[key]
                    break
        if not isinstance(seed, str) or not seed:
            raise ValueError("Seed provider response did not include a seed")
        return seed


class RemoteSeedProvider:
    """Seed provider backed by :class:`RandomnessClient` with local fallback."""

    def __init__(self, client: RandomnessClient) -> None:
        self.client = client

    def new_seed(self) -> SeedPair:
        try:
            seed = self.client.get_random()
        except (requests.RequestException, ValueError) as exc:
            # Do not log the response body; it may carry the seed.
            logger.warning(f"Remote seed provider unavailable, using local seed: {exc}")
            return generate_seed()
        logger.debug("Seed obtained from remote provider")
        return SeedPair.from_seed(seed)


__all__ = ["RandomnessClient", "RemoteSeedProvider"]
