from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Optional

import httpx

from ..domain.errors import StoreError, StoreWriteError
from ..domain.interfaces import RootCallback

logger = logging.getLogger(__name__)


def apply_event(cache: dict[str, Any], event: str, payload: dict[str, Any]) -> bool:
    """Apply one ``put``/``patch`` stream event to the cached root.

    Returns True when the cache changed shape or content.
    """
    if event not in ("put", "patch"):
        return False
    path = [p for p in str(payload.get("path", "/")).split("/") if p]
    data = payload.get("data")

    if not path:
        if event == "put":
            cache.clear()
            if isinstance(data, dict):
                cache.update(data)
        elif isinstance(data, dict):
            for k, v in data.items():
                if v is None:
                    cache.pop(k, None)
                else:
                    cache[k] = v
        return True

    node = cache
    for part in path[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    leaf = path[-1]

    if event == "patch" and isinstance(data, dict):
        target = node.get(leaf)
        if not isinstance(target, dict):
            target = {}
            node[leaf] = target
        for k, v in data.items():
            if v is None:
                target.pop(k, None)
            else:
                target[k] = v
    elif data is None:
        node.pop(leaf, None)
    else:
        node[leaf] = data
    return True


class FirebaseRealtimeStore:
    """Firebase Realtime Database over its REST and streaming API."""

    def __init__(
        self,
        base_url: str,
        root_path: str = "",
        auth_token: str = "",
        timeout: float = 5.0,
        reconnect_seconds: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._root_path = root_path.strip("/")
        self._auth_token = auth_token
        self._timeout = timeout
        self._reconnect_seconds = reconnect_seconds
        self._transport = transport

        self._cache: dict[str, Any] = {}
        self._listeners: list[RootCallback] = []
        self._task: Optional[asyncio.Task] = None
        self._stop = asyncio.Event()

    def _url(self, key: str = "") -> str:
        parts = [p for p in (self._root_path, key.strip("/")) if p]
        return f"{self._base_url}/{'/'.join(parts)}.json"

    def _params(self) -> dict[str, str]:
        return {"auth": self._auth_token} if self._auth_token else {}

    def _client(self, timeout: httpx.Timeout | float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def start(self) -> None:
        self._stop.clear()
        self._task = asyncio.create_task(self._run(), name="firebase_stream")

    async def stop(self) -> None:
        self._stop.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def get_root(self) -> dict[str, Any]:
        try:
            async with self._client(self._timeout) as client:
                resp = await client.get(self._url(), params=self._params())
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise StoreError(f"read failed: {e}") from e
        return data if isinstance(data, dict) else {}

    async def set_value(self, key: str, value: Any) -> None:
        try:
            async with self._client(self._timeout) as client:
                resp = await client.put(self._url(key), params=self._params(), json=value)
                resp.raise_for_status()
        except httpx.HTTPError as e:
            raise StoreWriteError(key, str(e)) from e
        logger.info("Firebase set %s=%s", key, value)

    def subscribe(self, callback: RootCallback) -> Callable[[], None]:
        self._listeners.append(callback)
        if self._cache:
            callback(dict(self._cache))

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def handle_event(self, event: str, raw_data: str) -> None:
        if event == "keep-alive":
            return
        if event in ("cancel", "auth_revoked"):
            logger.warning("Firebase stream %s: %s", event, raw_data)
            return
        try:
            payload = json.loads(raw_data)
        except ValueError:
            logger.warning("Firebase stream sent unparseable %s event: %r", event, raw_data)
            return
        if not isinstance(payload, dict):
            return
        if apply_event(self._cache, event, payload):
            self._notify()

    def _notify(self) -> None:
        for cb in list(self._listeners):
            try:
                cb(dict(self._cache))
            except Exception:
                logger.exception("Firebase subscriber failed")

    async def _stream_once(self) -> None:
        headers = {"Accept": "text/event-stream"}
        timeout = httpx.Timeout(self._timeout, read=None)
        async with self._client(timeout) as client:
            async with client.stream(
                "GET", self._url(), params=self._params(), headers=headers
            ) as resp:
                resp.raise_for_status()
                logger.info("Firebase stream connected: %s", self._url())
                event = ""
                async for line in resp.aiter_lines():
                    if line.startswith("event:"):
                        event = line[len("event:"):].strip()
                    elif line.startswith("data:"):
                        self.handle_event(event, line[len("data:"):].strip())

    async def _run(self) -> None:
        while not self._stop.is_set():
            try:
                await self._stream_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning("Firebase stream dropped: %s", e)
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._reconnect_seconds)
            except asyncio.TimeoutError:
                pass
        logger.info("Firebase stream stopped")
