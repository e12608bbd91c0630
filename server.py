"""
Async client for the remote address inventory.

Every failure of a remote call (transport, timeout, non-2xx status, undecodable body,
payload of the wrong shape) is raised as `RecordSourceError`, so callers handle one type.
"""

import logging
from typing import Any, Callable, TypeVar

import httpx
from pydantic import TypeAdapter
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from records import MenuItem, Record
from settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

_menu_items = TypeAdapter(list[MenuItem])


class RecordSourceError(Exception):
    def __init__(self, url: str, message: str):
        super().__init__(f"{url}: {message}")
        self.url = url


def _parse_count(payload: Any) -> int:
    if isinstance(payload, bool) or not isinstance(payload, int):
        raise ValueError(f"expected an integer count, got {type(payload).__name__}")
    if payload < 0:
        raise ValueError(f"count must be >= 0, got {payload}")
    return payload


class Server:
    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        retry_attempts: int = 3,
        retry_backoff: float = 0.5,
        retry_backoff_max: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.retry_attempts = retry_attempts
        self.retry_backoff = retry_backoff
        self.retry_backoff_max = retry_backoff_max
        self._client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=transport
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> "Server":
        return cls(
            settings.api_base_url,
            timeout=settings.request_timeout_seconds,
            retry_attempts=settings.retry_attempts,
            retry_backoff=settings.retry_backoff_seconds,
            retry_backoff_max=settings.retry_backoff_max_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "Server":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def menu_items(self) -> list[MenuItem]:
        return await self._fetch_with_retry("/menu_items", _menu_items.validate_python)

    async def customer_numbers(self) -> int:
        return await self._fetch_with_retry("/customer_numbers", _parse_count)

    async def address(self, record_id: int) -> Record:
        """
        Single best-effort read. Not retried: a missing row is acceptable, the caller drops it.
        """
        return await self._fetch(f"/address_inventory/{record_id}", Record.model_validate)

    async def _fetch(self, path: str, parse: Callable[[Any], T]) -> T:
        try:
            response = await self._client.get(path)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise RecordSourceError(path, f"{type(e).__name__}: {e}") from e
        except (ValueError, RecursionError) as e:
            # deeply nested JSON exhausts the decoder's stack
            raise RecordSourceError(path, f"undecodable body: {e}") from e
        try:
            return parse(payload)
        except (ValueError, RecursionError) as e:
            # pydantic.ValidationError is a ValueError
            raise RecordSourceError(path, f"malformed payload: {e}") from e

    async def _fetch_with_retry(self, path: str, parse: Callable[[Any], T]) -> T:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=self.retry_backoff, max=self.retry_backoff_max),
            retry=retry_if_exception_type(RecordSourceError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._fetch(path, parse)
