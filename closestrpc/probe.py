"""JSON-RPC latency probe.

A probe is any async callable taking a provider URL and returning the
measured round-trip time in milliseconds, raising
:class:`~closestrpc.errors.ProbeFailure` when the provider is unusable.
:class:`JsonRpcProbe` is the default: it POSTs a minimal JSON-RPC request
and times it with ``time.perf_counter()``.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, Optional

import httpx

from closestrpc.config import (
    ERROR_CONNECTION,
    ERROR_HTTP_STATUS,
    ERROR_INVALID_RESPONSE,
    ERROR_RPC,
    ERROR_TIMEOUT,
    PROBE_RPC_ID,
    USER_AGENT,
)
from closestrpc.errors import ProbeFailure
from closestrpc.models import BalancerConfig

logger = logging.getLogger(__name__)

# Signature: (url) -> latency in milliseconds
Probe = Callable[[str], Awaitable[float]]


def build_request_body(method: str) -> dict[str, Any]:
    """Return the JSON-RPC body sent on every probe."""
    return {
        "jsonrpc": "2.0",
        "method": method,
        "params": [],
        "id": PROBE_RPC_ID,
    }


class JsonRpcProbe:
    """Times a ``POST`` of a no-op JSON-RPC call against a provider.

    One ``httpx.AsyncClient`` is shared across all providers and rounds.
    It is created on first use and released by :meth:`aclose`.
    """

    def __init__(
        self,
        timeout: float,
        config: Optional[BalancerConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = timeout
        self.config = config or BalancerConfig()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._body = build_request_body(self.config.rpc_method)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            kwargs: dict[str, Any] = {
                "timeout": httpx.Timeout(self.timeout),
                "headers": {"User-Agent": USER_AGENT, **self.config.extra_headers},
            }
            if self._transport is not None:
                kwargs["transport"] = self._transport
            else:
                kwargs["http2"] = self.config.http2
                kwargs["verify"] = self.config.verify
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    async def __call__(self, url: str) -> float:
        client = self._get_client()

        t0 = time.perf_counter()
        try:
            response = await client.post(url, json=self._body)
        except httpx.TimeoutException as exc:
            raise ProbeFailure(ERROR_TIMEOUT, str(exc) or type(exc).__name__) from exc
        except (httpx.TransportError, httpx.InvalidURL) as exc:
            raise ProbeFailure(ERROR_CONNECTION, str(exc) or type(exc).__name__) from exc
        elapsed_ms = (time.perf_counter() - t0) * 1000.0

        if not response.is_success:
            raise ProbeFailure(ERROR_HTTP_STATUS, f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProbeFailure(ERROR_INVALID_RESPONSE, "body is not JSON") from exc

        if not isinstance(payload, dict):
            raise ProbeFailure(ERROR_INVALID_RESPONSE, "body is not a JSON object")
        if payload.get("error") is not None:
            raise ProbeFailure(ERROR_RPC, f"{payload['error']!r}")

        return round(elapsed_ms, 3)

    async def aclose(self) -> None:
        if self._client is not None:
            client, self._client = self._client, None
            await client.aclose()
