"""
Minimal JSON-RPC 2.0 client for read-only chain queries.
"""

import itertools
from typing import Any, List, Optional

import httpx

from src.paykeeper.config import ChainSettings, settings
from src.paykeeper.logging import get_logger
from src.paykeeper.shared.funding_errors import RpcError

logger = get_logger(__name__)


class JsonRpcClient:
    """JSON-RPC client over HTTP."""

    def __init__(
        self,
        config: Optional[ChainSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or settings.chain
        self.rpc_url = self.config.rpc_url
        self.client = client or httpx.AsyncClient(timeout=self.config.rpc_timeout_seconds)
        self._ids = itertools.count(1)

    async def call(self, method: str, params: List[Any]) -> Any:
        """
        Perform one JSON-RPC request and return its result.

        Raises:
            RpcError: On transport failure, non-200 status or a JSON-RPC error object
        """
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }

        try:
            response = await self.client.post(self.rpc_url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RpcError(f"{method} returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise RpcError(f"{method} request failed: {e!r}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise RpcError(f"{method} returned a non-JSON body") from e

        if not isinstance(body, dict):
            raise RpcError(f"{method} returned an unexpected body")

        error = body.get("error")
        if error and not isinstance(error, dict):
            raise RpcError(f"{method} failed: {error}")
        if error:
            raise RpcError(
                f"{method} failed: {error.get('message', 'unknown error')}",
                error.get("code"),
            )

        if "result" not in body:
            raise RpcError(f"{method} response has no result")

        return body["result"]

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()
