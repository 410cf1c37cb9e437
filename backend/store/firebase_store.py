"""Firebase Realtime Database store -- talks to the REST API over httpx."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx

from backend.config.settings import Settings

from .base import (
    FormStore,
    MalformedDataError,
    StoreTimeoutError,
    StoreUnavailableError,
)

logger = logging.getLogger(__name__)


class FirebaseFormStore(FormStore):
    """Reads and writes ``{database_url}/{path}.json``."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings or Settings()
        if not self._settings.firebase_database_url:
            raise ValueError("firebase_database_url is not configured")
        self._base_url = self._settings.firebase_database_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=self._settings.store_timeout_seconds)

    async def health_check(self) -> bool:
        try:
            resp = await self._client.get(
                self._url(""), params={**self._params(), "shallow": "true"}
            )
            return resp.status_code == 200
        except Exception as e:
            logger.error(f"Firebase health check failed: {e}")
            return False

    async def get(self, path: str) -> Any:
        return await self._request("GET", path)

    async def set(self, path: str, value: Any) -> None:
        await self._request("PUT", path, value)

    async def update(self, path: str, values: dict[str, Any]) -> None:
        await self._request("PATCH", path, values)

    async def remove(self, path: str) -> None:
        await self._request("DELETE", path)

    async def push(self, path: str, value: Any) -> str:
        body = await self._request("POST", path, value)
        if not isinstance(body, dict) or not isinstance(body.get("name"), str):
            raise MalformedDataError(f"Push to {path} returned no key", path=path)
        return body["name"]

    async def aclose(self) -> None:
        await self._client.aclose()

    def _url(self, path: str) -> str:
        path = path.strip("/")
        return f"{self._base_url}/{path}.json" if path else f"{self._base_url}/.json"

    def _params(self) -> dict[str, str]:
        if self._settings.firebase_auth_token:
            return {"auth": self._settings.firebase_auth_token}
        return {}

    async def _request(self, method: str, path: str, body: Any = None) -> Any:
        kwargs: dict[str, Any] = {"params": self._params()}
        if method in ("PUT", "PATCH", "POST"):
            kwargs["content"] = json.dumps(body)
            kwargs["headers"] = {"Content-Type": "application/json"}
        try:
            resp = await self._client.request(method, self._url(path), **kwargs)
        except httpx.TimeoutException as e:
            raise StoreTimeoutError(f"{method} {path} timed out", path=path) from e
        except httpx.HTTPError as e:
            raise StoreUnavailableError(f"{method} {path} failed: {e}", path=path) from e

        if resp.status_code >= 400:
            raise StoreUnavailableError(
                f"{method} {path} returned HTTP {resp.status_code}", path=path
            )
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise MalformedDataError(f"{method} {path} returned invalid JSON", path=path) from e
