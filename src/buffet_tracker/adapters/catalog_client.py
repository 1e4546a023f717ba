"""HTTP client for the published menu spreadsheet."""

from dataclasses import dataclass
from typing import Protocol

import httpx


class CatalogClient(Protocol):
    """Interface for fetching the raw catalog export."""

    async def fetch_text(self, url: str) -> str:
        """Return the CSV body served at url."""


@dataclass
class HttpxCatalogClient(CatalogClient):
    """HTTPX-backed catalog client."""

    http_client: httpx.AsyncClient

    @classmethod
    def create(cls) -> "HttpxCatalogClient":
        """Create a catalog client with a managed httpx session."""
        return cls(http_client=httpx.AsyncClient(follow_redirects=True))

    async def fetch_text(self, url: str) -> str:
        """Download the CSV export."""
        response = await self.http_client.get(url, timeout=15)
        response.raise_for_status()
        return response.text

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
