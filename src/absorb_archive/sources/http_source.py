# absorb_archive/sources/http_source.py
from __future__ import annotations
import logging
from typing import Any, Optional

import httpx

from ..config import HTTP_TIMEOUT
from ..errors import TransportError

log = logging.getLogger(__name__)


class HttpSource:
    """Fetches archive documents from a deployed copy of the static site."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def fetch_json(self, path: str) -> Any:
        url = self.url_for(path)
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            log.warning(f"GET {url} failed with status {e.response.status_code}")
            raise TransportError(f"GET {url} returned {e.response.status_code}") from e
        except httpx.RequestError as e:
            log.warning(f"GET {url} failed: {e}")
            raise TransportError(f"GET {url} failed: {e}") from e
        except ValueError as e:
            raise TransportError(f"{url} is not valid JSON") from e

    async def aclose(self) -> None:
        return None

    def __repr__(self) -> str:
        return f"HttpSource({self.base_url!r})"
