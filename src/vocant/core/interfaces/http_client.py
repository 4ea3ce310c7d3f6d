# vocant/core/interfaces/http_client.py
from abc import ABC, abstractmethod
from typing import Any, Dict


class HttpClientPort(ABC):
    @abstractmethod
    async def __aenter__(self) -> "HttpClientPort":
        """Async context manager entry method"""
        pass

    @abstractmethod
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit method"""
        pass

    @abstractmethod
    async def request(
        self,
        method: str,
        url: str,
        headers: Dict[str, str] | None = None,
        json: Any = None,
        data: bytes | None = None,
        timeout: float | None = None,
    ) -> Dict[str, Any]:
        """Perform a single HTTP request.

        Returns a dict with keys 'status' (int), 'headers' (dict) and 'body'
        (raw bytes, undecoded). HTTP error statuses are returned, not raised,
        so callers can map them to their own errors. Timeouts and connection
        failures raise TransportError.

        The timeout is optional; adapters may use an internal default when
        timeout is None.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the HTTP client session"""
        pass

    async def get(self, url: str, headers: Dict[str, str] | None = None, timeout: float | None = None) -> Dict[str, Any]:
        return await self.request("GET", url, headers=headers, timeout=timeout)

    async def post(self, url: str, json: Any, headers: Dict[str, str] | None = None, timeout: float | None = None) -> Dict[str, Any]:
        return await self.request("POST", url, headers=headers, json=json, timeout=timeout)

    async def put(self, url: str, data: bytes, headers: Dict[str, str] | None = None, timeout: float | None = None) -> Dict[str, Any]:
        return await self.request("PUT", url, headers=headers, data=data, timeout=timeout)
