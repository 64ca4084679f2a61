"""ProofSnap — Abstract oracle client.

Every classifier call goes through ``BaseOracleClient.query``: multipart upload
of the media bytes with a bounded timeout. Any failure (empty input, timeout,
transport error, non-2xx, unparsable body) yields None and the subclass
returns its flagged simulated estimate instead.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any

import httpx
import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0  # seconds per oracle call


class BaseOracleClient(ABC):
    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self.rng = rng or np.random.default_rng()

    # --- abstract properties ---

    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def endpoint(self) -> str:
        """Path of the oracle route, e.g. ``/api/detect``."""
        ...

    # --- transport ---

    async def query(self, media: bytes, filename: str = "media.jpg") -> dict[str, Any] | None:
        if not media:
            logger.info("%s: empty input, using simulated estimate", self.name)
            return None

        start = time.perf_counter()
        try:
            # httpx timeouts are per phase; wait_for bounds the whole call
            response = await asyncio.wait_for(
                self._client.post(
                    f"{self.base_url}{self.endpoint}",
                    files={"media": (filename, media, "application/octet-stream")},
                    timeout=self.timeout,
                ),
                timeout=self.timeout,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError):
            logger.warning("%s timed out after %.0fs", self.name, self.timeout)
            return None
        except httpx.HTTPError as exc:
            logger.warning("%s unavailable: %s", self.name, exc)
            return None

        elapsed = (time.perf_counter() - start) * 1000
        if not 200 <= response.status_code < 300:
            logger.warning("%s returned HTTP %d (%.0fms)", self.name, response.status_code, elapsed)
            return None
        try:
            data = response.json()
        except ValueError:
            logger.warning("%s returned a non-JSON body", self.name)
            return None
        if not isinstance(data, dict):
            logger.warning("%s returned an unexpected payload type %s", self.name, type(data).__name__)
            return None

        logger.debug("%s answered in %.0fms", self.name, elapsed)
        return data

    async def aclose(self) -> None:
        await self._client.aclose()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r} url={self.base_url}{self.endpoint}>"
