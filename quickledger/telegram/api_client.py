from __future__ import annotations

from typing import Any, Optional

import httpx


class LedgerApiClient:
    """HTTP client that forwards Telegram messages and button presses to the FastAPI backend."""

    def __init__(self, api_base_url: str, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.client = httpx.AsyncClient(
            base_url=api_base_url,
            timeout=httpx.Timeout(timeout=30.0, connect=10.0),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _post_reply(self, path: str, payload: dict[str, Any]) -> Optional[dict[str, Any]]:
        response = await self.client.post(path, json=payload)
        response.raise_for_status()
        if response.status_code == httpx.codes.NO_CONTENT:
            return None
        return response.json()

    async def post_entry(
        self, ledger: str, text: str, *, event_id: Optional[str] = None
    ) -> Optional[dict[str, Any]]:
        """Submit a quick entry; ``None`` when the backend already saw ``event_id``."""
        return await self._post_reply(
            f"/api/ledgers/{ledger}/entries", {"text": text, "event_id": event_id}
        )

    async def post_callback(
        self, ledger: str, payload: str, *, event_id: Optional[str] = None
    ) -> Optional[dict[str, Any]]:
        return await self._post_reply(
            f"/api/ledgers/{ledger}/callbacks", {"payload": payload, "event_id": event_id}
        )

    async def list_wallets(self, ledger: str) -> list[dict[str, Any]]:
        response = await self.client.get(f"/api/ledgers/{ledger}/wallets")
        response.raise_for_status()
        return response.json()

    async def list_categories(self, ledger: str) -> list[dict[str, Any]]:
        response = await self.client.get(f"/api/ledgers/{ledger}/categories")
        response.raise_for_status()
        return response.json()
