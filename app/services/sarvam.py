"""Shared HTTP client for the Sarvam AI speech, translation and synthesis APIs."""

import logging
from typing import Any

import httpx

from app.config import get_settings
from app.errors import ConfigMissing, UpstreamError

logger = logging.getLogger("parley")


class SarvamClient:
    """Single-attempt async client for the Sarvam AI REST API.

    Every call is one request: non-2xx responses surface as ``UpstreamError``
    carrying the provider status and body, with no retry or backoff.
    """

    AUTH_HEADER = "api-subscription-key"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        api_key = api_key if api_key is not None else settings.SARVAM_API_KEY
        if not api_key:
            raise ConfigMissing("SARVAM_API_KEY not configured")

        self.base_url = (base_url or settings.SARVAM_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.UPSTREAM_TIMEOUT_SECONDS
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={self.AUTH_HEADER: api_key},
            timeout=httpx.Timeout(self.timeout),
            transport=transport,
        )

    async def post_json(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST a JSON body and return the decoded JSON response."""
        response = await self._client.post(path, json=payload)
        return self._handle(path, response)

    async def post_multipart(
        self, path: str, files: dict[str, tuple[str, bytes, str]], data: dict[str, str] | None = None
    ) -> dict[str, Any]:
        """POST a multipart form and return the decoded JSON response."""
        response = await self._client.post(path, files=files, data=data or {})
        return self._handle(path, response)

    def _handle(self, path: str, response: httpx.Response) -> dict[str, Any]:
        if not response.is_success:
            logger.error("Sarvam AI %s error: %d %s", path, response.status_code, response.text)
            raise UpstreamError(response.status_code, response.text)
        return response.json()

    async def aclose(self) -> None:
        await self._client.aclose()


_sarvam_client: SarvamClient | None = None


def get_sarvam_client() -> SarvamClient:
    """Get singleton Sarvam client. Raises ConfigMissing when no API key is configured."""
    global _sarvam_client
    if _sarvam_client is None:
        _sarvam_client = SarvamClient()
    return _sarvam_client


def reset_sarvam_client(client: SarvamClient | None = None) -> None:
    """Replace the singleton (``None`` forces a rebuild from settings on next use)."""
    global _sarvam_client
    _sarvam_client = client


async def close_sarvam_client() -> None:
    """Close the singleton's connection pool, if it was ever built."""
    global _sarvam_client
    if _sarvam_client is not None:
        await _sarvam_client.aclose()
        _sarvam_client = None
