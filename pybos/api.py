"""JSON-RPC client for NEAR nodes hosting the SocialDB contract."""

from __future__ import annotations

import base64
import json
import logging
import time
from typing import Any

import httpx

from .exceptions import BosInvalidResponseError, BosNetworkError, BosRpcError

logger = logging.getLogger(__name__)


class SocialDbClient:
    """Client for read-only RPC queries against a NEAR node.

    Retries transient failures (network errors, HTTP 5xx and 429) with
    exponential backoff. Callers above this layer never retry.
    """

    def __init__(
        self,
        rpc_url: str,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 30.0,
    ):
        """Initialize the RPC client.

        Args:
            rpc_url: JSON-RPC endpoint of the node
            max_retries: Maximum number of retry attempts (default: 3)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            timeout: Request timeout in seconds (default: 30.0)
        """
        self.rpc_url = rpc_url
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                headers={"Content-Type": "application/json"},
                timeout=httpx.Timeout(self.timeout),
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> SocialDbClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Exponential backoff with +/- 25% jitter."""
        import random

        base_delay = self.retry_delay * (2**attempt)
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    def _request(self, method: str, params: Any) -> Any:
        """Send a JSON-RPC request and return its ``result``.

        Args:
            method: JSON-RPC method (e.g. "query")
            params: JSON-RPC params

        Returns:
            The ``result`` member of the response

        Raises:
            BosNetworkError: Transport failure after all retries
            BosRpcError: HTTP error status or JSON-RPC error envelope
            BosInvalidResponseError: Response is not a JSON-RPC document
        """
        payload = {
            "jsonrpc": "2.0",
            "id": "dontcare",
            "method": method,
            "params": params,
        }
        last_exception: Exception | None = None
        client = self._get_client()

        for attempt in range(self.max_retries + 1):
            try:
                logger.debug(f"RPC {method} -> {self.rpc_url} (attempt {attempt + 1})")
                response = client.post(self.rpc_url, json=payload)
                response.raise_for_status()
                try:
                    body = response.json()
                except ValueError as e:
                    raise BosInvalidResponseError(
                        "Invalid JSON response from RPC server"
                    ) from e
            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                last_exception = BosRpcError(
                    f"RPC request failed with status {status_code}"
                )
                if (status_code == 429 or status_code >= 500) and (
                    attempt < self.max_retries
                ):
                    time.sleep(self._calculate_retry_delay(attempt))
                    continue
                raise last_exception from e
            except httpx.RequestError as e:
                last_exception = BosNetworkError(f"Network error: {e}")
                if attempt < self.max_retries:
                    time.sleep(self._calculate_retry_delay(attempt))
                    continue
                raise last_exception from e

            if not isinstance(body, dict):
                raise BosInvalidResponseError("RPC response is not a JSON object")
            if body.get("error") is not None:
                error = body["error"]
                if isinstance(error, dict):
                    cause = error.get("cause") or {}
                    detail = (
                        cause.get("name") if isinstance(cause, dict) else None
                    ) or error.get("message") or error.get("name")
                    data = error.get("data")
                    message = f"RPC error: {detail}"
                    if data:
                        message = f"{message} ({data})"
                else:
                    message = f"RPC error: {error}"
                raise BosRpcError(message)
            if "result" not in body:
                raise BosInvalidResponseError("RPC response has no result")
            return body["result"]

        if last_exception:
            raise last_exception
        raise BosRpcError("Request failed after all retry attempts")

    # =========================
    # Contract view calls
    # =========================

    def call_view_function(
        self, account_id: str, method_name: str, args: dict[str, Any]
    ) -> Any:
        """Call a view method of a contract at final finality.

        Args:
            account_id: Contract account id
            method_name: View method to call
            args: JSON arguments

        Returns:
            The decoded JSON value returned by the contract

        Raises:
            BosRpcError: If the call fails or the contract panics
            BosInvalidResponseError: If the returned bytes are not JSON
        """
        args_base64 = base64.b64encode(json.dumps(args).encode("utf-8")).decode()
        result = self._request(
            "query",
            {
                "request_type": "call_function",
                "finality": "final",
                "account_id": account_id,
                "method_name": method_name,
                "args_base64": args_base64,
            },
        )
        if not isinstance(result, dict):
            raise BosInvalidResponseError("Unexpected call_function result")
        if result.get("error"):
            raise BosRpcError(
                f"{account_id}.{method_name} failed: {result['error']}"
            )
        try:
            raw = bytes(result["result"])
            return json.loads(raw.decode("utf-8"))
        except (KeyError, TypeError, ValueError) as e:
            raise BosInvalidResponseError(
                f"Could not parse the result of {account_id}.{method_name}"
            ) from e

    def view_access_key(self, account_id: str, public_key: str) -> dict[str, Any]:
        """Fetch an access key of an account.

        Returns:
            Access key view, e.g. ``{"nonce": 1, "permission": "FullAccess"}``
        """
        result = self._request(
            "query",
            {
                "request_type": "view_access_key",
                "finality": "final",
                "account_id": account_id,
                "public_key": public_key,
            },
        )
        if not isinstance(result, dict):
            raise BosInvalidResponseError("Unexpected view_access_key result")
        if result.get("error"):
            raise BosRpcError(
                f"Access key {public_key} of <{account_id}>: {result['error']}"
            )
        if "permission" not in result:
            raise BosInvalidResponseError("Access key view has no permission")
        return result
