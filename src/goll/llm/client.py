"""Single-shot ``POST /generate`` client.

One call = one HTTP exchange, no retries. The exchange runs as a task raced
against the shared cancellation token and the per-call timeout; whichever
finishes first decides the outcome. httpx's own timeouts are disabled so
the per-call bound is the only clock.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from goll import metrics
from goll.cancellation import CancellationToken
from goll.errors import CancellationError

from .exceptions import DecodeError, UpstreamConnectionError, UpstreamStatusError
from .types import GenerationRequest, GenerationResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 300.0
GENERATE_PATH = "/generate"


class GenerationClient:
    """Owns the base URL, default timeout and HTTP transport.

    Use as an async context manager, or call ``aclose()`` when done. An
    externally supplied ``client`` is never closed here.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float | None = DEFAULT_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("API base URL is required")
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client = client
        self._owns_client = client is None

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def url(self) -> str:
        return self._base_url + GENERATE_PATH

    async def __aenter__(self) -> "GenerationClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _require_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=None, transport=self._transport
            )
        return self._client

    async def send(
        self,
        token: CancellationToken,
        request: GenerationRequest,
        timeout: Optional[float] = None,
    ) -> GenerationResult:
        """Perform one exchange under ``token`` bounded by ``timeout``.

        ``timeout`` None -> client default; <= 0 -> no bound (only the
        token can stop the call).

        Raises:
            CancellationError: token cancelled or timeout elapsed
            UpstreamStatusError: non-200 reply
            DecodeError: malformed reply body
            UpstreamConnectionError: transport failure
        """
        token.raise_if_cancelled()
        effective = self._timeout if timeout is None else timeout
        bound = effective if effective and effective > 0 else None

        client = self._require_client()
        start = time.perf_counter()
        exchange = asyncio.ensure_future(self._exchange(client, request))
        cancelled = asyncio.ensure_future(token.wait())
        try:
            done, _ = await asyncio.wait(
                {exchange, cancelled},
                timeout=bound,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            exchange.cancel()
            raise
        finally:
            cancelled.cancel()

        latency_ms = int((time.perf_counter() - start) * 1000)
        if exchange in done:
            try:
                result = exchange.result()
            except Exception:
                metrics.inc("generation_requests_total", {"status": "error"})
                raise
            metrics.inc("generation_requests_total", {"status": "ok"})
            metrics.observe("generation_latency_ms", latency_ms)
            logger.debug(
                "generate model=%s eval_count=%d latency_ms=%d",
                result.model,
                result.eval_count,
                latency_ms,
            )
            return result

        exchange.cancel()
        await asyncio.gather(exchange, return_exceptions=True)
        if token.cancelled:
            err = CancellationError(reason="interrupted")
        else:
            err = CancellationError(reason="timeout", timeout_seconds=bound)
        metrics.inc("generation_cancelled_total", {"reason": err.reason})
        logger.info(
            "generate aborted after %d ms (%s)", latency_ms, err.reason
        )
        raise err

    async def _exchange(
        self, client: httpx.AsyncClient, request: GenerationRequest
    ) -> GenerationResult:
        url = self.url
        logger.debug(
            "POST %s model=%s prompt_chars=%d",
            url,
            request.model,
            len(request.prompt),
        )
        try:
            response = await client.post(
                url,
                json=request.to_payload(),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise UpstreamConnectionError(url, exc) from exc

        if response.status_code != httpx.codes.OK:
            raise UpstreamStatusError(response.status_code, url)

        try:
            data = response.json()
        except ValueError as exc:
            raise DecodeError(str(exc), url) from exc
        try:
            return GenerationResult.model_validate(data)
        except ValidationError as exc:
            raise DecodeError(str(exc), url) from exc


async def send(
    token: CancellationToken,
    base_url: str,
    request: GenerationRequest,
    timeout: Optional[float] = DEFAULT_TIMEOUT_S,
    transport: httpx.AsyncBaseTransport | None = None,
) -> GenerationResult:
    """One exchange with a short-lived client."""
    async with GenerationClient(
        base_url, timeout=timeout, transport=transport
    ) as client:
        return await client.send(token, request)


__all__ = ["GenerationClient", "send", "DEFAULT_TIMEOUT_S"]
