import time
import asyncio
from dataclasses import dataclass

import aiohttp

from indexer_service.errors import ReaderRateLimitError, ReaderRequestError
from indexer_service.logging import log

RPC_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
    # brotli disabled, aiohttp and brotli do not always agree
    "Accept-Encoding": "gzip, deflate",
}


@dataclass
class RequestTrace:
    path: str
    attempts: int = 0
    total_ms: float | None = None


# -----------------------------
# AsyncRpcClient
# POSTs JSON to a node query endpoint, returns (result, trace)
# -----------------------------
class AsyncRpcClient:
    def __init__(self, timeout: float = 60.0, retries: int = 3):
        self.timeout = timeout
        self.retries = max(1, retries)
        self._session: aiohttp.ClientSession | None = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers=RPC_HEADERS,
            )
        return self._session

    async def _post_once(self, url: str, payload: dict):
        session = self._get_session()
        async with session.post(url, json=payload) as resp:
            if resp.status == 429:
                raise ReaderRateLimitError(f"HTTP 429 rate limited: {url}")
            if resp.status >= 400:
                body = await resp.text()
                raise ReaderRequestError(
                    f"HTTP {resp.status} from {url}: {body[:200]}",
                    status=resp.status,
                )
            return await resp.json(content_type=None)

    async def call(self, base_url: str, path: str, payload: dict):
        """
        Transport level retries only, the orchestrator owns task level retries.
        """
        url = f"{base_url.rstrip('/')}/v1/query/{path}"
        trace = RequestTrace(path=path)
        start = time.perf_counter()
        last_exc: Exception | None = None

        for attempt in range(1, self.retries + 1):
            trace.attempts = attempt
            try:
                data = await self._post_once(url, payload)
                trace.total_ms = (time.perf_counter() - start) * 1000
                return data, trace
            except (ReaderRequestError, ReaderRateLimitError) as e:
                last_exc = e
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_exc = ReaderRequestError(f"{type(e).__name__}: {e}")

            log.debug(
                "reader_request_retry",
                extra={
                    "url": url,
                    "attempt": attempt,
                    "error": str(last_exc)[:200],
                },
            )

        raise last_exc

    async def close(self):
        if self._session is not None and not self._session.closed:
            await self._session.close()
