"""alternative.me Fear & Greed index client."""

from typing import Any

import httpx

from ticker.clients.errors import FeedUnavailableError


class FearGreedClient:
    """Client for the crypto Fear & Greed index."""

    URL = "https://api.alternative.me/fng/"

    def __init__(
        self,
        url: str = URL,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def get_index(self) -> int:
        """Get the latest index value (0-100)."""
        client = await self._get_client()
        try:
            response = await client.get(self.url, params={"limit": 1})
            response.raise_for_status()
            data: Any = response.json()
            return int(data["data"][0]["value"])
        except httpx.HTTPError as e:
            raise FeedUnavailableError("fear_greed", str(e)) from e
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise FeedUnavailableError("fear_greed", "malformed response") from e
