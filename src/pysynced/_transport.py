"""HTTP remote: JSON transport for the transactional update/insert actions."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any

import aiohttp

from pysynced._constants import INSERT_ENDPOINT, RECORDS_ENDPOINT, UPDATE_ENDPOINT, USER_AGENT
from pysynced.config import SyncConfig
from pysynced.exceptions import RemoteCallFailure, RemoteTransportError
from pysynced.models.results import UpdateResult

_logger = logging.getLogger(__name__)


class HttpRemote:
    """Remote store reached over HTTP.

    Every endpoint answers with ``{"ok": true, "result": ...}`` or
    ``{"ok": false, "message": "..."}``. The transactional calls return
    failures as :class:`RemoteCallFailure` values; :meth:`fetch_all` raises.

    Usage::

        async with HttpRemote(config) as remote:
            rows = await remote.fetch_all("SELECT * FROM widgets")
    """

    def __init__(
        self,
        config: SyncConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config or SyncConfig()
        self._external_session = session is not None
        self._http = session

    async def __aenter__(self) -> HttpRemote:
        if self._http is None:
            self._http = aiohttp.ClientSession()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if not self._external_session and self._http is not None:
            await self._http.close()
        self._http = None

    def _require_session(self) -> aiohttp.ClientSession:
        if self._http is None:
            raise RemoteTransportError("HTTP session not open. Use 'async with HttpRemote(...) as remote:'")
        return self._http

    async def _post(self, endpoint: str, payload: Mapping[str, Any]) -> Any:
        """POST *payload* as JSON and return the unwrapped ``result`` field."""
        http = self._require_session()
        url = f"{self._config.base_url.rstrip('/')}{endpoint}"
        headers = {
            "content-type": "application/json; charset=UTF-8",
            "user-agent": USER_AGENT,
        }
        timeout = aiohttp.ClientTimeout(total=self._config.request_timeout)

        try:
            data = json.dumps(payload)
        except (TypeError, ValueError) as exc:
            raise RemoteTransportError(
                f"Cannot encode request for {endpoint}: {exc}",
                endpoint=endpoint,
                cause=exc,
            ) from exc

        _logger.debug("POST %s", url)

        try:
            async with http.post(url, data=data, headers=headers, timeout=timeout) as resp:
                try:
                    text = await resp.text()
                except UnicodeDecodeError as exc:
                    raise RemoteTransportError(
                        f"Undecodable response body from {endpoint}: {exc}",
                        status_code=resp.status,
                        endpoint=endpoint,
                        cause=exc,
                    ) from exc
                if resp.status != 200:
                    raise RemoteTransportError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except RemoteTransportError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise RemoteTransportError(
                f"Request to {endpoint} failed: {exc!r}",
                endpoint=endpoint,
                cause=exc,
            ) from exc

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise RemoteTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                endpoint=endpoint,
                status_code=200,
                cause=exc,
            ) from exc

        if not isinstance(body, dict) or "ok" not in body:
            raise RemoteTransportError(f"Missing 'ok' field from {endpoint}", endpoint=endpoint, status_code=200)

        if not body["ok"]:
            raise RemoteCallFailure(
                str(body.get("message") or f"{endpoint} reported failure"),
                endpoint=endpoint,
                status_code=200,
            )
        return body.get("result")

    async def transactional_update(
        self,
        keys: Sequence[Any],
        request_template: str,
    ) -> list[UpdateResult] | RemoteCallFailure:
        payload = {"keys": list(keys), "requestTemplate": request_template}
        try:
            result = await self._post(UPDATE_ENDPOINT, payload)
            if not isinstance(result, list) or not all(isinstance(row, dict) for row in result):
                raise RemoteCallFailure(
                    f"Expected a list of result rows from {UPDATE_ENDPOINT}",
                    endpoint=UPDATE_ENDPOINT,
                )
            return [UpdateResult.model_validate({"key": key, **row}) for key, row in zip(keys, result, strict=True)]
        except RemoteCallFailure as exc:
            return exc
        except ValueError as exc:
            return RemoteCallFailure(f"Malformed update result: {exc}", endpoint=UPDATE_ENDPOINT, cause=exc)

    async def transactional_insert(
        self,
        record: Mapping[str, Any],
        request_template: str,
    ) -> list[dict[str, Any]] | RemoteCallFailure:
        payload = {"record": dict(record), "requestTemplate": request_template}
        try:
            result = await self._post(INSERT_ENDPOINT, payload)
        except RemoteCallFailure as exc:
            return exc
        if isinstance(result, dict):
            result = [result]
        if not isinstance(result, list) or not all(isinstance(row, dict) for row in result):
            return RemoteCallFailure(f"Expected a list of rows from {INSERT_ENDPOINT}", endpoint=INSERT_ENDPOINT)
        return result

    async def fetch_all(self, query: str) -> list[dict[str, Any]]:
        result = await self._post(RECORDS_ENDPOINT, {"query": query})
        if not isinstance(result, list) or not all(isinstance(row, dict) for row in result):
            raise RemoteTransportError(f"Expected a list of rows from {RECORDS_ENDPOINT}", endpoint=RECORDS_ENDPOINT)
        return [dict(row) for row in result]
