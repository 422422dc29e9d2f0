"""
Ledger transports: how a contract read reaches the chain.

LedgerTransport is the seam tests substitute. HttpLedgerTransport talks to a
contract-read gateway:
    GET {base_url}/contract/{chain}/{contract_address}/read?functionName=...&args=...
and returns the JSON "result" field. Read-only; nothing here mutates state.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Sequence

import httpx

from ledger.errors import LedgerCallError, LedgerNotConfiguredError, TransientNetworkError

logger = logging.getLogger(__name__)


class LedgerTransport(ABC):
    """Abstract read-only contract transport."""

    @abstractmethod
    async def read(self, function_name: str, args: Sequence[int]) -> Any:
        """Call a view function and return its raw decoded JSON result."""
        ...

    async def aclose(self) -> None:
        """Release network resources (no-op by default)."""
        return None


class HttpLedgerTransport(LedgerTransport):
    """Contract reads over HTTP through a read gateway, one pooled httpx.AsyncClient."""

    def __init__(
        self,
        base_url: str,
        chain: str,
        contract_address: str,
        api_key: str = "",
        timeout_seconds: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base_url = (base_url or "").rstrip("/")
        self._chain = chain
        self._contract_address = contract_address
        headers: Dict[str, str] = {"Accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds, headers=headers)
        self._owns_client = client is None

    @property
    def configured(self) -> bool:
        return bool(self._base_url and self._contract_address)

    def _read_url(self) -> str:
        return f"{self._base_url}/contract/{self._chain}/{self._contract_address}/read"

    async def read(self, function_name: str, args: Sequence[int]) -> Any:
        if not self.configured:
            raise LedgerNotConfiguredError(
                "ledger reads require LEDGER_BASE_URL and LEDGER_CONTRACT_ADDRESS"
            )
        params = {"functionName": function_name}
        if args:
            params["args"] = ",".join(str(a) for a in args)
        try:
            resp = await self._client.get(self._read_url(), params=params)
        except httpx.TimeoutException as e:
            raise TransientNetworkError(f"{function_name}: ledger request timed out") from e
        except httpx.TransportError as e:
            raise TransientNetworkError(f"{function_name}: ledger unreachable: {e!s}") from e
        except httpx.HTTPError as e:
            # undecodable bodies, redirect loops and bad URLs
            raise TransientNetworkError(f"{function_name}: ledger request failed: {e!s}") from e

        if resp.status_code >= 500:
            raise TransientNetworkError(
                f"{function_name}: ledger gateway returned {resp.status_code}"
            )
        if resp.status_code >= 400:
            raise LedgerCallError(
                f"{function_name}: call rejected ({resp.status_code}): {resp.text[:200]}"
            )
        try:
            data = resp.json()
        except ValueError as e:
            raise LedgerCallError(f"{function_name}: response is not JSON") from e
        if not isinstance(data, dict):
            raise LedgerCallError(f"{function_name}: response must be an object")
        if data.get("error"):
            # gateways report reverts as 200 + error body
            raise LedgerCallError(f"{function_name}: reverted: {data['error']}")
        if "result" not in data:
            raise LedgerCallError(f"{function_name}: response has no result")
        return data["result"]

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
