# vocant/adapters/aiohttp_client_adapter.py
import asyncio
from typing import Any, Dict, Optional

import aiohttp

from vocant.core.exceptions import TransportError
from vocant.core.interfaces.http_client import HttpClientPort
from vocant.core.settings import logger


def _redact(url: str) -> str:
    # presigned upload URLs carry their signature in the query string
    return url.split("?", 1)[0]


class AioHttpClientAdapter(HttpClientPort):
    def __init__(self, default_timeout: float = 30.0, sock_connect: float = 10.0):
        self._session: Optional[aiohttp.ClientSession] = None
        # Per-request timeouts: callers pass a total, connect timeout stays fixed.
        # sock_read is left unset so large uploads/downloads are bounded by total only.
        self._sock_connect = sock_connect
        self._default_client_timeout = aiohttp.ClientTimeout(
            total=default_timeout,
            sock_connect=sock_connect,
        )

    async def __aenter__(self):
        """Async context manager entry"""
        self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.close()
        return False

    def _client_timeout(self, timeout: float | None) -> aiohttp.ClientTimeout:
        if timeout is None:
            return self._default_client_timeout
        return aiohttp.ClientTimeout(total=timeout, sock_connect=self._sock_connect)

    async def request(
        self,
        method: str,
        url: str,
        headers: Dict[str, str] | None = None,
        json: Any = None,
        data: bytes | None = None,
        timeout: float | None = None,
    ) -> Dict[str, Any]:
        if self._session is None:
            raise RuntimeError("HTTP client not initialized. Use 'async with' context manager.")

        try:
            async with self._session.request(
                method,
                url,
                headers=headers,
                json=json,
                data=data,
                timeout=self._client_timeout(timeout),
            ) as response:
                body = await response.read()
                logger.debug(
                    f"[http] {method} {_redact(url)} status={response.status} bytes={len(body)}"
                )
                # No raise_for_status: the caller maps non-success statuses itself
                return {
                    "status": response.status,
                    "headers": dict(response.headers),
                    "body": body,
                }

        except asyncio.TimeoutError:
            logger.error("Timeout when requesting remote service. Method: %s, URL: %s", method, _redact(url))
            raise TransportError(
                title="Upstream Timeout",
                upstream_status=504,
                message=f"{method} {_redact(url)} timed out",
            )

        except aiohttp.ClientError as client_error:
            logger.error(
                "Connection error when requesting remote service. Method: %s, URL: %s, Error: %s",
                method,
                _redact(url),
                str(client_error),
            )
            raise TransportError(
                title="Upstream Connection Error",
                upstream_status=502,
                message=f"{method} {_redact(url)} failed: {client_error}",
            )

    async def close(self) -> None:
        """Close the session"""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
