"""
Solana HTTP JSON-RPC client

Minimal aiohttp client for getSignaturesForAddress and jsonParsed getTransaction
"""

import asyncio
import itertools
from typing import Any, Dict, List, Optional

import aiohttp

from mint_tracker.core.config import RPCConfig
from mint_tracker.core.logger import get_logger
from mint_tracker.core.metrics import get_metrics, LatencyTimer


logger = get_logger(__name__)
metrics = get_metrics()


class RPCError(Exception):
    """Raised when the node answers with an HTTP or JSON-RPC error"""

    def __init__(self, method: str, message: str, code: Optional[int] = None):
        self.method = method
        self.code = code
        super().__init__(f"{method} failed: {message}" + (f" (code {code})" if code is not None else ""))


class SolanaRPCClient:
    """
    HTTP RPC client bound to a single endpoint

    Use as an async context manager so the aiohttp session is closed:

        async with SolanaRPCClient(config.rpc_config) as client:
            page = await client.get_signatures_for_address(address)

    No retries: every failure surfaces to the caller.
    """

    def __init__(self, config: RPCConfig, session: Optional[aiohttp.ClientSession] = None):
        """
        Args:
            config: RPC configuration
            session: Optional externally owned session
        """
        self.config = config
        self._session = session
        self._owns_session = session is None
        self._request_ids = itertools.count(1)

    async def __aenter__(self) -> "SolanaRPCClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    async def start(self) -> None:
        """Initialize aiohttp session"""
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout_s)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True

    async def stop(self) -> None:
        """Close aiohttp session if we created it"""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def call_http_rpc(self, method: str, params: List[Any]) -> Any:
        """
        Make a JSON-RPC call and return its result member

        Raises:
            RPCError: On non-200 responses or a JSON-RPC error member
            aiohttp.ClientError: On transport failures
        """
        if self._session is None:
            raise RuntimeError("HTTP session not initialized. Call start() first.")

        payload = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": method,
            "params": params
        }

        try:
            with LatencyTimer(metrics, "rpc_call", {"method": method}):
                async with self._session.post(self.config.url, json=payload) as response:
                    if response.status != 200:
                        text = await response.text()
                        raise RPCError(method, f"HTTP {response.status}: {text[:200]}")
                    body = await response.json(content_type=None)
        except (RPCError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            metrics.increment_counter("rpc_errors", labels={"method": method})
            logger.debug("rpc_call_failed", method=method, error=str(e))
            raise

        if "error" in body:
            error = body["error"] or {}
            metrics.increment_counter("rpc_errors", labels={"method": method})
            raise RPCError(method, error.get("message", str(error)), error.get("code"))

        return body.get("result")

    async def get_signatures_for_address(
        self,
        address: str,
        before: Optional[str] = None,
        limit: int = 1000
    ) -> List[Dict[str, Any]]:
        """
        Fetch one page of signatures, newest first, older than `before`

        Returns:
            Raw signature entries (signature, blockTime, err, ...)
        """
        options: Dict[str, Any] = {"limit": limit, "commitment": self.config.commitment}
        if before is not None:
            options["before"] = before

        result = await self.call_http_rpc("getSignaturesForAddress", [address, options])
        return result or []

    async def get_parsed_transaction(self, signature: str) -> Optional[Dict[str, Any]]:
        """
        Fetch a transaction with jsonParsed encoding

        Returns:
            The transaction payload, or None if the node does not have it
        """
        options = {
            "encoding": "jsonParsed",
            "commitment": self.config.commitment,
            "maxSupportedTransactionVersion": self.config.max_supported_transaction_version
        }
        return await self.call_http_rpc("getTransaction", [signature, options])
